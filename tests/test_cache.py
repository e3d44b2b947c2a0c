from __future__ import annotations

import threading

import pytest

from acquisition.cache import CacheStore, cache_key, location_identity
from acquisition.entities import Coordinates, LocationQuery


class TimeController:
    def __init__(self) -> None:
        self.now = 0.0

    def advance(self, seconds: float) -> None:
        self.now += seconds

    def __call__(self) -> float:
        return self.now


def test_entries_expire_after_ttl() -> None:
    clock = TimeController()
    cache = CacheStore(time_func=clock)
    cache.set("weather:current:london", "snapshot", ttl=600)

    clock.advance(599)
    assert cache.get("weather:current:london") == "snapshot"

    clock.advance(1)
    assert cache.get("weather:current:london") is None
    assert len(cache) == 0


def test_set_overwrites_and_resets_ttl() -> None:
    clock = TimeController()
    cache = CacheStore(time_func=clock)
    cache.set("key", "old", ttl=10)
    clock.advance(8)
    cache.set("key", "new", ttl=10)
    clock.advance(8)

    assert cache.get("key") == "new"


def test_ttl_must_be_positive() -> None:
    with pytest.raises(ValueError):
        CacheStore().set("key", "value", ttl=0)


def test_lru_eviction_respects_recent_reads() -> None:
    cache = CacheStore(max_entries=2)
    cache.set("a", 1, ttl=60)
    cache.set("b", 2, ttl=60)
    cache.get("a")
    cache.set("c", 3, ttl=60)

    assert cache.get("a") == 1
    assert cache.get("b") is None
    assert cache.get("c") == 3


def test_delete_and_clear() -> None:
    cache = CacheStore()
    cache.set("a", 1, ttl=60)
    cache.set("b", 2, ttl=60)
    cache.delete("a")
    assert cache.get("a") is None
    cache.clear()
    assert len(cache) == 0


def test_concurrent_writers_do_not_lose_entries() -> None:
    cache = CacheStore()

    def writer(offset: int) -> None:
        for index in range(100):
            cache.set(f"key-{offset}-{index}", index, ttl=60)

    threads = [threading.Thread(target=writer, args=(offset,)) for offset in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(cache) == 400


def test_city_identity_ignores_case_and_whitespace() -> None:
    assert location_identity("  New   York ") == location_identity("new york")
    assert cache_key("current", LocationQuery.for_city("LONDON")) == "weather:current:london"


def test_coordinate_identity_is_rounded() -> None:
    first = LocationQuery.for_coordinates(51.50741, -0.12779)
    second = LocationQuery.for_coordinates(51.5074, -0.1278)

    assert cache_key("current", first) == cache_key("current", second) == "weather:current:51.5074,-0.1278"
    assert location_identity(Coordinates(-0.00001, 0.0)) == "0.0000,0.0000"


def test_extra_component_separates_keys() -> None:
    query = LocationQuery.for_city("Paris")

    assert cache_key("historical", query, 7) != cache_key("historical", query, 14)
    assert cache_key("current", query) != cache_key("forecast", query)


def test_len_waits_for_writers() -> None:
    cache = CacheStore()
    cache.set("a", 1, ttl=60)
    counted = []

    with cache._lock:
        reader = threading.Thread(target=lambda: counted.append(len(cache)))
        reader.start()
        reader.join(timeout=0.1)
        assert reader.is_alive()

    reader.join(timeout=5)
    assert counted == [1]
