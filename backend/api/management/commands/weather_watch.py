"""Watch one location and print significant weather changes."""
from __future__ import annotations

import json
import logging
import signal
import threading
import time
from typing import Any, Optional

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from acquisition.config import PipelineConfig
from acquisition.entities import WeatherSnapshot
from acquisition.monitoring import ChangeAlert, ChangeDetector, UpdateNotifier
from backend.api.views import get_weather_service


logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Monitor a city or coordinates and report significant weather changes"

    def add_arguments(self, parser) -> None:  # noqa: D401
        parser.add_argument("--lat", type=float, help="Latitude")
        parser.add_argument("--lon", type=float, help="Longitude")
        parser.add_argument("--city", type=str, help="City name")
        parser.add_argument("--interval", type=float, default=None, help="Minutes between checks")
        parser.add_argument(
            "--updates",
            type=float,
            default=None,
            help="Also print the current weather every N minutes",
        )
        parser.add_argument(
            "--duration",
            type=float,
            default=None,
            help="Stop after N minutes (default: run until interrupted)",
        )

    def handle(self, *args: Any, **options: Any) -> None:  # noqa: D401
        city = options.get("city")
        latitude = options.get("lat")
        longitude = options.get("lon")
        if not city and (latitude is None or longitude is None):
            raise CommandError("--city or both --lat and --lon are required")
        for name in ("interval", "updates", "duration"):
            if options.get(name) is not None and options[name] <= 0:
                raise CommandError(f"--{name} must be positive")

        config = PipelineConfig.from_settings(settings)
        interval = options.get("interval") or config.monitor_interval_minutes
        service = get_weather_service()

        def fetch():
            return service.get_current_weather(city=city, latitude=latitude, longitude=longitude)

        detector = ChangeDetector(on_alert=self._print_alert, thresholds=config.thresholds())
        notifier: Optional[UpdateNotifier] = None
        stop_event = threading.Event()

        def _stop(signum, _frame) -> None:
            logger.info("Received signal %s, stopping monitor", signum)
            stop_event.set()

        previous_handlers = {sig: signal.signal(sig, _stop) for sig in (signal.SIGINT, signal.SIGTERM)}
        try:
            detector.start(fetch, interval_minutes=interval)
            baseline = detector.baseline
            if baseline is None:
                logger.warning("No real observation available yet; waiting for the next check")
            else:
                self.stdout.write(json.dumps({"baseline": baseline.to_dict()}))
            if options.get("updates"):
                notifier = UpdateNotifier(on_update=self._print_update)
                notifier.start(fetch, interval_minutes=options["updates"])
            self._wait(stop_event, options.get("duration"))
        finally:
            detector.stop()
            if notifier is not None:
                notifier.stop()
            for sig, handler in previous_handlers.items():
                signal.signal(sig, handler)

    def _wait(self, stop_event: threading.Event, duration_minutes: Optional[float]) -> None:
        # short waits keep the main thread responsive to signals
        deadline = time.monotonic() + duration_minutes * 60 if duration_minutes else None
        while True:
            step = 1.0 if deadline is None else min(1.0, deadline - time.monotonic())
            if step <= 0 or stop_event.wait(step):
                return

    def _print_alert(self, alert: ChangeAlert) -> None:
        self.stdout.write(
            json.dumps(
                {
                    "location": alert.report.location_name,
                    "changes": [entry.describe() for entry in alert.report.entries],
                    "current": alert.current.to_dict(),
                }
            )
        )

    def _print_update(self, snapshot: WeatherSnapshot) -> None:
        self.stdout.write(json.dumps({"update": snapshot.to_dict()}))
