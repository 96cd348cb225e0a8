"""Caller location: single-shot fixes, freshness reuse and shared watches.

The platform side is abstracted as a :class:`GeolocationSource`; the
provider owns fix caching, timeouts, accuracy retries and fan-out of one
underlying watch to any number of subscribers.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Protocol

from clinicfinder.config import settings
from clinicfinder.exceptions import LocationUnavailable
from clinicfinder.models import FixQuality, LocationErrorReason, UserLocation
from clinicfinder.services.metrics import MetricsCollector, metrics as default_metrics

logger = logging.getLogger(__name__)

_SOURCE_LABELS = {
    FixQuality.HIGH: "GPS (High Accuracy)",
    FixQuality.GOOD: "GPS (Good Accuracy)",
    FixQuality.MEDIUM: "WiFi/Cell Tower (Medium Accuracy)",
    FixQuality.LOW: "Network/IP (Low Accuracy)",
}


def classify_fix_quality(accuracy_m: float) -> FixQuality:
    """Informational only; never used to accept or reject a fix."""
    if accuracy_m <= 5:
        return FixQuality.HIGH
    if accuracy_m <= 20:
        return FixQuality.GOOD
    if accuracy_m <= 100:
        return FixQuality.MEDIUM
    return FixQuality.LOW


def source_label(quality: FixQuality) -> str:
    return _SOURCE_LABELS[quality]


# ---------------------------------------------------------------------------
# Platform abstraction
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PositionOptions:
    enable_high_accuracy: bool = True
    timeout_s: float = 10.0
    max_cache_age_ms: int = 0


@dataclass(frozen=True)
class PositionReading:
    latitude: float
    longitude: float
    accuracy_m: float
    altitude: float | None = None
    altitude_accuracy: float | None = None
    heading: float | None = None
    speed: float | None = None


class PositionError(Exception):
    """Raised or reported by a :class:`GeolocationSource`."""

    def __init__(self, reason: LocationErrorReason, detail: str = "") -> None:
        self.reason = reason
        self.detail = detail
        super().__init__(detail or reason.value)


PositionCallback = Callable[[PositionReading], None]
PositionErrorCallback = Callable[[PositionError], None]


class GeolocationSource(Protocol):
    async def get_current_position(self, options: PositionOptions) -> PositionReading: ...

    def watch_position(
        self,
        on_position: PositionCallback,
        on_error: PositionErrorCallback,
        options: PositionOptions,
    ) -> int: ...

    def clear_watch(self, watch_id: int) -> None: ...


class ManualLocationSource:
    """Fixes from user-entered coordinates.

    ``set_position`` replaces the current entry and pushes it to every
    active watch, so manual entry behaves like a (very slow) GPS stream.
    """

    def __init__(
        self,
        latitude: float | None = None,
        longitude: float | None = None,
        accuracy_m: float = 0.0,
    ) -> None:
        self._reading: PositionReading | None = None
        self._watchers: dict[int, tuple[PositionCallback, PositionErrorCallback]] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()
        if latitude is not None and longitude is not None:
            self._reading = PositionReading(latitude, longitude, accuracy_m)

    def set_position(self, latitude: float, longitude: float, accuracy_m: float = 0.0) -> None:
        reading = PositionReading(latitude, longitude, accuracy_m)
        with self._lock:
            self._reading = reading
            watchers = list(self._watchers.values())
        for on_position, _ in watchers:
            on_position(reading)

    async def get_current_position(self, options: PositionOptions) -> PositionReading:
        if self._reading is None:
            raise PositionError(
                LocationErrorReason.POSITION_UNAVAILABLE, "no location has been entered"
            )
        return self._reading

    def watch_position(
        self,
        on_position: PositionCallback,
        on_error: PositionErrorCallback,
        options: PositionOptions,
    ) -> int:
        with self._lock:
            watch_id = next(self._ids)
            self._watchers[watch_id] = (on_position, on_error)
            reading = self._reading
        if reading is not None:
            on_position(reading)
        return watch_id

    def clear_watch(self, watch_id: int) -> None:
        with self._lock:
            self._watchers.pop(watch_id, None)

    @property
    def active_watches(self) -> int:
        with self._lock:
            return len(self._watchers)


class UnsupportedLocationSource:
    """Source for hosts with no positioning hardware (e.g. a server)."""

    async def get_current_position(self, options: PositionOptions) -> PositionReading:
        raise PositionError(LocationErrorReason.UNSUPPORTED, "geolocation is not supported")

    def watch_position(
        self,
        on_position: PositionCallback,
        on_error: PositionErrorCallback,
        options: PositionOptions,
    ) -> int:
        raise PositionError(LocationErrorReason.UNSUPPORTED, "geolocation is not supported")

    def clear_watch(self, watch_id: int) -> None:
        pass


# ---------------------------------------------------------------------------
# Subscriptions
# ---------------------------------------------------------------------------


class Subscription:
    """Handle returned by :meth:`GeoLocationProvider.watch`."""

    def __init__(
        self,
        provider: GeoLocationProvider,
        token: int,
        on_update: Callable[[UserLocation], None],
        on_error: Callable[[LocationUnavailable], None] | None,
    ) -> None:
        self._provider = provider
        self.token = token
        self.on_update = on_update
        self.on_error = on_error
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        self._provider.unsubscribe(self)

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc: object) -> None:
        self.cancel()


# ---------------------------------------------------------------------------
# Provider
# ---------------------------------------------------------------------------


class GeoLocationProvider:
    def __init__(
        self,
        source: GeolocationSource,
        *,
        timeout: float | None = None,
        high_accuracy_timeout: float | None = None,
        cache_max_age: float | None = None,
        recent_max_age: float | None = None,
        retry_delays: tuple[float, float] = (2.0, 1.0),
        collector: MetricsCollector | None = None,
    ) -> None:
        self._source = source
        self._timeout = timeout if timeout is not None else settings.location_timeout
        self._high_accuracy_timeout = (
            high_accuracy_timeout
            if high_accuracy_timeout is not None
            else settings.high_accuracy_timeout
        )
        self._cache_max_age = (
            cache_max_age if cache_max_age is not None else settings.location_cache_max_age
        )
        self._recent_max_age = (
            recent_max_age if recent_max_age is not None else settings.recent_fix_max_age
        )
        # (after an inaccurate fix, after a failed attempt)
        self._retry_delays = retry_delays
        self._metrics = collector or default_metrics

        self._lock = threading.RLock()
        self._last: UserLocation | None = None
        self._subscribers: dict[int, Subscription] = {}
        self._tokens = itertools.count(1)
        self._watch_id: int | None = None
        self._watch_options = PositionOptions(
            enable_high_accuracy=True, timeout_s=20.0, max_cache_age_ms=5000
        )

    # -- single-shot ---------------------------------------------------------

    async def get_current_location(self, options: PositionOptions | None = None) -> UserLocation:
        opts = options or PositionOptions(enable_high_accuracy=True, timeout_s=self._timeout)
        try:
            reading = await asyncio.wait_for(
                self._source.get_current_position(opts), timeout=opts.timeout_s
            )
        except asyncio.TimeoutError as exc:
            self._metrics.inc_location(False)
            raise LocationUnavailable(
                LocationErrorReason.TIMEOUT, f"no fix within {opts.timeout_s}s"
            ) from exc
        except PositionError as exc:
            self._metrics.inc_location(False)
            raise LocationUnavailable(exc.reason, exc.detail) from exc

        location = self._to_location(reading)
        with self._lock:
            self._last = location
        self._metrics.inc_location(True)
        logger.debug(
            "Location fix %.5f,%.5f ±%.0fm",
            location.latitude,
            location.longitude,
            location.accuracy_m,
        )
        return location

    async def get_high_accuracy_location(
        self,
        max_attempts: int | None = None,
        target_accuracy_m: float | None = None,
    ) -> UserLocation:
        """Try up to *max_attempts* fresh fixes, returning the most accurate.

        Stops early once a fix reaches *target_accuracy_m*. Terminal errors
        stop the loop but still return the best fix obtained so far; the call
        fails only if no attempt produced a fix.
        """
        attempts = (
            max_attempts if max_attempts is not None else settings.high_accuracy_attempts
        )
        target = (
            target_accuracy_m if target_accuracy_m is not None else settings.high_accuracy_target_m
        )
        opts = PositionOptions(
            enable_high_accuracy=True,
            timeout_s=self._high_accuracy_timeout,
            max_cache_age_ms=0,
        )
        after_fix_delay, after_error_delay = self._retry_delays

        best: UserLocation | None = None
        last_error: LocationUnavailable | None = None
        for attempt in range(1, attempts + 1):
            try:
                location = await self.get_current_location(opts)
            except LocationUnavailable as exc:
                last_error = exc
                if not exc.retryable:
                    logger.info("High-accuracy loop stopped on attempt %d: %s", attempt, exc)
                    break
                logger.info("High-accuracy attempt %d/%d failed: %s", attempt, attempts, exc)
                if attempt < attempts:
                    await asyncio.sleep(after_error_delay)
                continue

            if best is None or location.accuracy_m < best.accuracy_m:
                best = location
            if location.accuracy_m <= target:
                return location
            if attempt < attempts:
                await asyncio.sleep(after_fix_delay)

        if best is not None:
            with self._lock:
                self._last = best
            return best
        raise last_error or LocationUnavailable(LocationErrorReason.POSITION_UNAVAILABLE)

    # -- cached reuse --------------------------------------------------------

    def get_cached_location(self, max_age: float | None = None) -> UserLocation | None:
        """Last fix if younger than *max_age* seconds; stale fixes are discarded."""
        limit = max_age if max_age is not None else self._cache_max_age
        with self._lock:
            if self._last is None:
                return None
            if self._last.age_ms(_now_ms()) > limit * 1000:
                self._last = None
                return None
            return self._last

    async def get_cached_or_fetch(self) -> UserLocation:
        cached = self.get_cached_location(self._cache_max_age)
        if cached is not None:
            return cached
        return await self.get_current_location()

    async def get_recent_location(self) -> UserLocation:
        cached = self.get_cached_location(self._recent_max_age)
        if cached is not None:
            return cached
        return await self.get_current_location()

    # -- watch ---------------------------------------------------------------

    def watch(
        self,
        on_update: Callable[[UserLocation], None],
        on_error: Callable[[LocationUnavailable], None] | None = None,
    ) -> Subscription:
        """Subscribe to the shared location stream.

        The first subscriber starts the underlying watch; later ones join it
        and immediately receive the last known fix.
        """
        with self._lock:
            sub = Subscription(self, next(self._tokens), on_update, on_error)
            self._subscribers[sub.token] = sub
            if self._watch_id is not None:
                last = self._last
                if last is not None:
                    try:
                        on_update(last)
                    except Exception:
                        logger.exception("Location subscriber %d failed", sub.token)
                return sub
            try:
                self._watch_id = self._source.watch_position(
                    self._dispatch_position, self._dispatch_error, self._watch_options
                )
            except PositionError as exc:
                del self._subscribers[sub.token]
                sub._active = False
                raise LocationUnavailable(exc.reason, exc.detail) from exc
            logger.info("Started location watch %s", self._watch_id)
            return sub

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            if self._subscribers.pop(subscription.token, None) is None:
                return
            subscription._active = False
            if self._subscribers or self._watch_id is None:
                return
            watch_id, self._watch_id = self._watch_id, None
            self._source.clear_watch(watch_id)
            logger.info("Stopped location watch %s", watch_id)

    @property
    def is_watching(self) -> bool:
        with self._lock:
            return self._watch_id is not None

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def status(self) -> dict:
        with self._lock:
            return {
                "supported": not isinstance(self._source, UnsupportedLocationSource),
                "has_location": self._last is not None,
                "watching": self._watch_id is not None,
                "subscribers": len(self._subscribers),
                "last_update": self._last.captured_at_ms if self._last else None,
            }

    def clear(self) -> None:
        """Forget the cached fix and stop the underlying watch."""
        with self._lock:
            self._last = None
            for sub in self._subscribers.values():
                sub._active = False
            self._subscribers.clear()
            if self._watch_id is not None:
                watch_id, self._watch_id = self._watch_id, None
                self._source.clear_watch(watch_id)

    def _dispatch_position(self, reading: PositionReading) -> None:
        location = self._to_location(reading)
        with self._lock:
            self._last = location
            targets = list(self._subscribers.values())
        for sub in targets:
            if not sub.active:
                continue
            try:
                sub.on_update(location)
            except Exception:
                logger.exception("Location subscriber %d failed", sub.token)

    def _dispatch_error(self, error: PositionError) -> None:
        failure = LocationUnavailable(error.reason, error.detail)
        with self._lock:
            targets = list(self._subscribers.values())
        for sub in targets:
            if not sub.active or sub.on_error is None:
                continue
            try:
                sub.on_error(failure)
            except Exception:
                logger.exception("Location error subscriber %d failed", sub.token)

    @staticmethod
    def _to_location(reading: PositionReading) -> UserLocation:
        quality = classify_fix_quality(reading.accuracy_m)
        return UserLocation(
            latitude=reading.latitude,
            longitude=reading.longitude,
            accuracy_m=reading.accuracy_m,
            captured_at_ms=_now_ms(),
            altitude=reading.altitude,
            altitude_accuracy=reading.altitude_accuracy,
            heading=reading.heading,
            speed=reading.speed,
            source_label=source_label(quality),
            quality=quality,
        )


def _now_ms() -> int:
    return int(time.time() * 1000)
