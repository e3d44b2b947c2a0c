from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Mapping, Optional
from urllib.parse import urlparse

import requests
from requests import Response

from .errors import (
    NotFoundError,
    ProtocolError,
    QuotaExceeded,
    RequestTimeoutError,
    Retryability,
    UpstreamError,
    WeatherError,
    classify_error,
)


ALLOWED_SCHEMES = ("http", "https")
SECRET_PARAMS = frozenset({"appid", "key", "api_key", "apikey", "token"})


@dataclass
class RetryPolicy:
    timeout: float = 10.0
    max_retries: int = 2
    base_delay: float = 1.0
    multiplier: float = 2.0
    max_delay: float = 5.0
    jitter: float = 0.0
    classifier: Callable[[BaseException], Retryability] = classify_error

    def delay_for(self, attempt: int) -> float:
        """Delay before the retry that follows the zero-based ``attempt``."""
        return min(self.base_delay * (self.multiplier ** attempt), self.max_delay)


@dataclass
class RequestSpec:
    url: str
    params: Dict[str, object] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    provider: str = "unknown"
    not_found: Optional[Callable[[Response], bool]] = None


def redact(params: Mapping[str, object]) -> Dict[str, object]:
    return {key: ("***" if key.lower() in SECRET_PARAMS else value) for key, value in params.items()}


class RequestExecutor:
    """Issue one logical GET with a per-attempt deadline and bounded retries."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], None] = time.sleep,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.session = session or requests.Session()
        self.policy = policy or RetryPolicy()
        self._sleep = sleep
        self._rng = rng or random.Random()
        self._log = logging.getLogger(self.__class__.__name__)

    def execute(self, spec: RequestSpec, policy: Optional[RetryPolicy] = None) -> Response:
        policy = policy or self.policy
        self._check_protocol(spec)

        attempt = 0
        while True:
            try:
                return self._attempt(spec, policy)
            except WeatherError as exc:
                exc.attempts = attempt + 1
                if policy.classifier(exc) is Retryability.TERMINAL:
                    self._log.info("%s request failed terminally (%s) after %d attempt(s)", spec.provider, exc.kind.value, exc.attempts)
                    raise
                if attempt >= policy.max_retries:
                    self._log.error("%s request failed after %d attempt(s): %s", spec.provider, exc.attempts, exc)
                    raise
                delay = policy.delay_for(attempt)
                if policy.jitter:
                    delay += self._rng.uniform(0.0, policy.jitter)
                self._log.warning(
                    "Retrying %s request in %.2fs (attempt %d/%d): %s",
                    spec.provider,
                    delay,
                    attempt + 2,
                    policy.max_retries + 1,
                    exc,
                )
                self._sleep(delay)
                attempt += 1

    def close(self) -> None:
        self.session.close()

    # helpers ------------------------------------------------------------
    def _check_protocol(self, spec: RequestSpec) -> None:
        scheme = urlparse(spec.url).scheme.lower()
        if scheme not in ALLOWED_SCHEMES:
            raise ProtocolError(f"unsupported protocol {scheme or '<none>'!r} for {spec.provider}")

    def _attempt(self, spec: RequestSpec, policy: RetryPolicy) -> Response:
        self._log.debug("GET %s params=%s", spec.url, redact(spec.params))
        try:
            response = self.session.get(
                spec.url,
                params=spec.params,
                headers=spec.headers,
                timeout=policy.timeout,
            )
        except requests.Timeout as exc:
            raise RequestTimeoutError(f"{spec.provider} timed out after {policy.timeout}s") from exc
        except requests.RequestException as exc:
            raise UpstreamError(f"{spec.provider} request failed: {exc.__class__.__name__}") from exc
        return self._handle_response(spec, response)

    def _handle_response(self, spec: RequestSpec, response: Response) -> Response:
        status = response.status_code
        if status < 400:
            return response
        self._log.debug("%s returned %s: %s", spec.provider, status, response.text[:200])
        try:
            if status == 404 or (spec.not_found is not None and spec.not_found(response)):
                raise NotFoundError(f"{spec.provider} reported location not found")
            if status == 429:
                raise QuotaExceeded(f"{spec.provider} quota exceeded", status_code=status)
            raise UpstreamError(f"{spec.provider} returned HTTP {status}", status_code=status)
        finally:
            response.close()


__all__ = ["RetryPolicy", "RequestSpec", "RequestExecutor", "redact"]
