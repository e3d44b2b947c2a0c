"""Periodic weather checks for one location.

A :class:`ChangeDetector` is either idle (no baseline) or monitoring (one
baseline snapshot held).  Every tick fetches a fresh snapshot, compares it to
the baseline against independent per-field thresholds and then makes the
fresh snapshot the new baseline, whether or not anything fired.

An :class:`UpdateNotifier` shares the same timer but simply hands every
fetched snapshot to its callback: once on start, then once per interval.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from .conditions import ConditionFamily, condition_family
from .entities import WeatherSnapshot


MS_TO_KMH = 3.6


@dataclass(frozen=True)
class ChangeThresholds:
    temperature_c: float = 3.0
    precipitation_pct: float = 20.0
    # used when either snapshot lacks a precipitation probability
    precipitation_mm: float = 20.0
    wind_speed_kmh: float = 15.0
    condition_family: bool = True


@dataclass(frozen=True)
class ChangeEntry:
    field: str
    old_value: object
    new_value: object
    magnitude: float

    def describe(self) -> str:
        if self.field == "temperature":
            direction = "increased" if self.new_value > self.old_value else "decreased"  # type: ignore[operator]
            return f"Temperature {direction} by {self.magnitude:.1f}°C"
        if self.field == "precipitation":
            return f"Precipitation chance changed by {self.magnitude:.0f}%"
        if self.field == "precipitation_amount":
            return f"Precipitation changed by {self.magnitude:.1f} mm"
        if self.field == "wind_speed":
            return f"Wind speed changed by {self.magnitude:.0f} km/h"
        return f"Condition changed from {self.old_value} to {self.new_value}"


@dataclass(frozen=True)
class ChangeReport:
    location_name: str
    entries: Tuple[ChangeEntry, ...] = ()

    def __bool__(self) -> bool:
        return bool(self.entries)

    def fields(self) -> List[str]:
        return [entry.field for entry in self.entries]


@dataclass(frozen=True)
class ChangeAlert:
    report: ChangeReport
    previous: WeatherSnapshot
    current: WeatherSnapshot


def compare_snapshots(old: WeatherSnapshot, new: WeatherSnapshot, thresholds: ChangeThresholds) -> ChangeReport:
    entries: List[ChangeEntry] = []

    temp_delta = abs(new.temperature_c - old.temperature_c)
    if temp_delta >= thresholds.temperature_c:
        entries.append(ChangeEntry("temperature", old.temperature_c, new.temperature_c, round(temp_delta, 2)))

    old_precip, new_precip = old.precipitation_probability_pct, new.precipitation_probability_pct
    if old_precip is not None and new_precip is not None:
        precip_delta = abs(new_precip - old_precip)
        if precip_delta >= thresholds.precipitation_pct:
            entries.append(ChangeEntry("precipitation", old_precip, new_precip, float(precip_delta)))
    elif old.precipitation_mm is not None and new.precipitation_mm is not None:
        amount_delta = abs(new.precipitation_mm - old.precipitation_mm)
        if amount_delta >= thresholds.precipitation_mm:
            entries.append(
                ChangeEntry("precipitation_amount", old.precipitation_mm, new.precipitation_mm, round(amount_delta, 2))
            )

    if old.wind_speed_ms is not None and new.wind_speed_ms is not None:
        wind_delta_kmh = abs(new.wind_speed_ms - old.wind_speed_ms) * MS_TO_KMH
        if wind_delta_kmh >= thresholds.wind_speed_kmh:
            entries.append(ChangeEntry("wind_speed", old.wind_speed_ms, new.wind_speed_ms, round(wind_delta_kmh, 2)))

    if thresholds.condition_family:
        old_family, new_family = condition_family(old.condition), condition_family(new.condition)
        if ConditionFamily.UNKNOWN not in (old_family, new_family) and old_family is not new_family:
            entries.append(ChangeEntry("condition", old.condition, new.condition, 1.0))

    return ChangeReport(location_name=new.location_name, entries=tuple(entries))


class MonitorHandle:
    """Cancellation token returned by ``start`` on the periodic workers."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float) -> bool:
        return self._event.wait(timeout)


class _IntervalWorker:
    """Run :meth:`tick` on a daemon thread until cancelled."""

    thread_name = "weather-interval"

    def __init__(self) -> None:
        self._fetch: Optional[Callable[[], WeatherSnapshot]] = None
        self._handle: Optional[MonitorHandle] = None
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._log = logging.getLogger(self.__class__.__name__)

    @property
    def monitoring(self) -> bool:
        return self._handle is not None

    def stop(self) -> None:
        with self._lock:
            handle, thread = self._handle, self._thread
            self._handle = None
            self._thread = None
        if handle is None:
            return
        handle.cancel()
        if thread is not None and thread is not threading.current_thread():
            thread.join()
        self._fetch = None
        self._reset()
        self._log.info("%s stopped", self.__class__.__name__)

    def tick(self):
        raise NotImplementedError

    # helpers ------------------------------------------------------------
    def _begin(self, fetch: Callable[[], WeatherSnapshot], interval_minutes: float) -> MonitorHandle:
        if interval_minutes <= 0:
            raise ValueError("interval_minutes must be positive")
        self.stop()
        handle = MonitorHandle()
        with self._lock:
            self._fetch = fetch
            self._handle = handle
        return handle

    def _launch(self, handle: MonitorHandle, interval_minutes: float) -> None:
        thread = threading.Thread(
            target=self._run,
            args=(handle, interval_minutes * 60.0),
            name=self.thread_name,
            daemon=True,
        )
        with self._lock:
            if self._handle is not handle:
                return
            self._thread = thread
            thread.start()

    def _run(self, handle: MonitorHandle, interval_seconds: float) -> None:
        while not handle.wait(interval_seconds):
            try:
                self.tick()
            except Exception:  # noqa: BLE001
                self._log.exception("Periodic weather check failed")

    def _reset(self) -> None:
        pass


class ChangeDetector(_IntervalWorker):
    """Watch one location and raise alerts on significant changes."""

    thread_name = "weather-change-detector"

    def __init__(
        self,
        on_alert: Callable[[ChangeAlert], None],
        thresholds: Optional[ChangeThresholds] = None,
    ) -> None:
        super().__init__()
        self.on_alert = on_alert
        self.thresholds = thresholds or ChangeThresholds()
        self._baseline: Optional[WeatherSnapshot] = None

    @property
    def baseline(self) -> Optional[WeatherSnapshot]:
        return self._baseline

    def start(self, fetch: Callable[[], WeatherSnapshot], interval_minutes: float = 15.0, background: bool = True) -> MonitorHandle:
        """Seed the baseline immediately, then re-check every ``interval_minutes``.

        Starting while already monitoring stops the previous run first.  With
        ``background=False`` no timer thread is started and the caller drives
        :meth:`tick` itself.
        """
        handle = self._begin(fetch, interval_minutes)
        self._baseline = self._fetch_real(fetch)
        if background:
            self._launch(handle, interval_minutes)
        self._log.info("Change monitoring started (every %s minutes)", interval_minutes)
        return handle

    def tick(self) -> Optional[ChangeReport]:
        """Run one fetch/compare cycle and return the report, if any was made."""
        fetch = self._fetch
        if fetch is None:
            return None
        current = self._fetch_real(fetch)
        if current is None:
            return None
        previous = self._baseline
        self._baseline = current
        if previous is None:
            return None
        report = compare_snapshots(previous, current, self.thresholds)
        if report:
            self._log.info(
                "Significant weather change for %s: %s",
                report.location_name,
                "; ".join(entry.describe() for entry in report.entries),
            )
            self.on_alert(ChangeAlert(report=report, previous=previous, current=current))
        return report

    # helpers ------------------------------------------------------------
    def _fetch_real(self, fetch: Callable[[], WeatherSnapshot]) -> Optional[WeatherSnapshot]:
        try:
            snapshot = fetch()
        except Exception:  # noqa: BLE001
            self._log.exception("Fetching weather for change check failed")
            return None
        if snapshot is None or snapshot.is_fallback:
            self._log.warning("Skipping synthesized snapshot in change check")
            return None
        return snapshot

    def _reset(self) -> None:
        self._baseline = None


class UpdateNotifier(_IntervalWorker):
    """Deliver the current weather now and then every ``interval_minutes``.

    Synthesized snapshots are delivered too; consumers can tell them apart by
    ``is_fallback``.  A fetch that fails or returns nothing sends no update.
    """

    thread_name = "weather-update-notifier"

    def __init__(self, on_update: Callable[[WeatherSnapshot], None]) -> None:
        super().__init__()
        self.on_update = on_update

    def start(self, fetch: Callable[[], WeatherSnapshot], interval_minutes: float = 60.0, background: bool = True) -> MonitorHandle:
        handle = self._begin(fetch, interval_minutes)
        self.tick()
        if background:
            self._launch(handle, interval_minutes)
        self._log.info("Weather updates started (every %s minutes)", interval_minutes)
        return handle

    def tick(self) -> Optional[WeatherSnapshot]:
        fetch = self._fetch
        if fetch is None:
            return None
        try:
            snapshot = fetch()
            if snapshot is None:
                return None
            self.on_update(snapshot)
        except Exception:  # noqa: BLE001
            self._log.exception("Sending weather update failed")
            return None
        return snapshot


__all__ = [
    "ChangeThresholds",
    "ChangeEntry",
    "ChangeReport",
    "ChangeAlert",
    "ChangeDetector",
    "MonitorHandle",
    "UpdateNotifier",
    "compare_snapshots",
]
