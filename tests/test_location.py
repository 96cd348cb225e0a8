import asyncio
import time
from unittest.mock import AsyncMock, patch

import pytest

from clinicfinder.exceptions import LocationUnavailable
from clinicfinder.models import FixQuality, LocationErrorReason
from clinicfinder.services.location import (
    GeoLocationProvider,
    ManualLocationSource,
    PositionError,
    PositionOptions,
    PositionReading,
    UnsupportedLocationSource,
    classify_fix_quality,
    source_label,
)
from clinicfinder.services.metrics import MetricsCollector


class ScriptedSource:
    """Returns queued readings (accuracy floats) or raises queued errors."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = 0
        self.on_error = None

    async def get_current_position(self, options):
        self.calls += 1
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return PositionReading(13.0827, 80.2707, outcome)

    def watch_position(self, on_position, on_error, options):
        self.on_error = on_error
        return 7

    def clear_watch(self, watch_id):
        self.on_error = None


class SlowSource(ScriptedSource):
    async def get_current_position(self, options):
        await asyncio.sleep(5)


def _provider(source, **kwargs):
    kwargs.setdefault("retry_delays", (0, 0))
    kwargs.setdefault("collector", MetricsCollector())
    return GeoLocationProvider(source, **kwargs)


@pytest.mark.parametrize(
    "accuracy, quality",
    [(3, FixQuality.HIGH), (5, FixQuality.HIGH), (20, FixQuality.GOOD), (80, FixQuality.MEDIUM), (500, FixQuality.LOW)],
)
def test_classify_fix_quality(accuracy, quality):
    assert classify_fix_quality(accuracy) is quality


def test_source_labels():
    assert source_label(FixQuality.HIGH) == "GPS (High Accuracy)"
    assert source_label(FixQuality.LOW) == "Network/IP (Low Accuracy)"


# ---------------------------------------------------------------------------
# Single-shot fixes
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_current_location_from_manual_source():
    collector = MetricsCollector()
    provider = _provider(ManualLocationSource(13.0827, 80.2707, accuracy_m=12), collector=collector)

    fix = await provider.get_current_location()

    assert (fix.latitude, fix.longitude) == (13.0827, 80.2707)
    assert fix.accuracy_m == 12
    assert fix.quality is FixQuality.GOOD
    assert fix.source_label == "GPS (Good Accuracy)"
    assert fix.captured_at_ms > 0
    assert collector.location_fixes == 1


@pytest.mark.asyncio
async def test_manual_source_without_entry_is_unavailable():
    provider = _provider(ManualLocationSource())
    with pytest.raises(LocationUnavailable) as exc_info:
        await provider.get_current_location()
    assert exc_info.value.reason is LocationErrorReason.POSITION_UNAVAILABLE
    assert exc_info.value.retryable


@pytest.mark.asyncio
async def test_unsupported_source():
    collector = MetricsCollector()
    provider = _provider(UnsupportedLocationSource(), collector=collector)
    with pytest.raises(LocationUnavailable) as exc_info:
        await provider.get_current_location()
    assert exc_info.value.reason is LocationErrorReason.UNSUPPORTED
    assert not exc_info.value.retryable
    assert collector.location_failures == 1


@pytest.mark.asyncio
async def test_permission_denied_propagates_reason():
    provider = _provider(ScriptedSource(PositionError(LocationErrorReason.PERMISSION_DENIED)))
    with pytest.raises(LocationUnavailable) as exc_info:
        await provider.get_current_location()
    assert exc_info.value.reason is LocationErrorReason.PERMISSION_DENIED


@pytest.mark.asyncio
async def test_timeout():
    provider = _provider(SlowSource())
    with pytest.raises(LocationUnavailable) as exc_info:
        await provider.get_current_location(PositionOptions(timeout_s=0.01))
    assert exc_info.value.reason is LocationErrorReason.TIMEOUT


# ---------------------------------------------------------------------------
# High-accuracy loop
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_high_accuracy_stops_at_target():
    source = ScriptedSource(50.0, 10.0, 4.0)
    fix = await _provider(source).get_high_accuracy_location(max_attempts=3, target_accuracy_m=20)
    assert fix.accuracy_m == 10.0
    assert source.calls == 2


@pytest.mark.asyncio
async def test_high_accuracy_returns_best_of_attempts():
    source = ScriptedSource(80.0, 35.0, 60.0)
    provider = _provider(source)
    fix = await provider.get_high_accuracy_location(max_attempts=3, target_accuracy_m=20)
    assert fix.accuracy_m == 35.0
    assert source.calls == 3
    assert provider.get_cached_location().accuracy_m == 35.0


@pytest.mark.asyncio
async def test_high_accuracy_retries_transient_errors():
    source = ScriptedSource(PositionError(LocationErrorReason.TIMEOUT), 15.0)
    fix = await _provider(source).get_high_accuracy_location(max_attempts=3, target_accuracy_m=20)
    assert fix.accuracy_m == 15.0
    assert source.calls == 2


@pytest.mark.asyncio
async def test_high_accuracy_terminal_error_is_immediate():
    source = ScriptedSource(PositionError(LocationErrorReason.PERMISSION_DENIED), 5.0)
    with pytest.raises(LocationUnavailable) as exc_info:
        await _provider(source).get_high_accuracy_location(max_attempts=3)
    assert exc_info.value.reason is LocationErrorReason.PERMISSION_DENIED
    assert source.calls == 1


@pytest.mark.asyncio
async def test_high_accuracy_terminal_error_keeps_earlier_fix():
    source = ScriptedSource(50.0, PositionError(LocationErrorReason.PERMISSION_DENIED), 5.0)
    fix = await _provider(source).get_high_accuracy_location(max_attempts=3, target_accuracy_m=20)
    assert fix.accuracy_m == 50.0
    assert source.calls == 2


@pytest.mark.asyncio
async def test_high_accuracy_zero_attempts_never_queries():
    source = ScriptedSource(5.0)
    with pytest.raises(LocationUnavailable) as exc_info:
        await _provider(source).get_high_accuracy_location(max_attempts=0)
    assert exc_info.value.reason is LocationErrorReason.POSITION_UNAVAILABLE
    assert source.calls == 0


@pytest.mark.asyncio
async def test_high_accuracy_all_attempts_fail():
    source = ScriptedSource(
        PositionError(LocationErrorReason.POSITION_UNAVAILABLE),
        PositionError(LocationErrorReason.POSITION_UNAVAILABLE),
        PositionError(LocationErrorReason.TIMEOUT),
    )
    with pytest.raises(LocationUnavailable) as exc_info:
        await _provider(source).get_high_accuracy_location(max_attempts=3)
    assert exc_info.value.reason is LocationErrorReason.TIMEOUT
    assert source.calls == 3


@pytest.mark.asyncio
async def test_high_accuracy_waits_between_attempts():
    source = ScriptedSource(80.0, 70.0)
    provider = _provider(source, retry_delays=(2.0, 1.0))
    with patch(
        "clinicfinder.services.location.asyncio.sleep", new_callable=AsyncMock
    ) as mock_sleep:
        await provider.get_high_accuracy_location(max_attempts=2, target_accuracy_m=20)
    mock_sleep.assert_awaited_once_with(2.0)


# ---------------------------------------------------------------------------
# Freshness
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_cached_location_reused_until_stale():
    source = ScriptedSource(12.0, 30.0)
    provider = _provider(source, cache_max_age=600)

    first = await provider.get_cached_or_fetch()
    again = await provider.get_cached_or_fetch()
    assert again is first
    assert source.calls == 1

    with patch("clinicfinder.services.location.time") as mock_time:
        mock_time.time.return_value = time.time() + 601
        assert provider.get_cached_location() is None
        refreshed = await provider.get_cached_or_fetch()
    assert refreshed.accuracy_m == 30.0
    assert source.calls == 2


@pytest.mark.asyncio
async def test_recent_location_uses_shorter_window():
    source = ScriptedSource(12.0, 30.0)
    provider = _provider(source, cache_max_age=600, recent_max_age=300)
    await provider.get_current_location()

    with patch("clinicfinder.services.location.time") as mock_time:
        mock_time.time.return_value = time.time() + 400
        fix = await provider.get_recent_location()
    assert fix.accuracy_m == 30.0
    assert source.calls == 2


def test_no_cached_location_initially():
    assert _provider(ManualLocationSource()).get_cached_location() is None


# ---------------------------------------------------------------------------
# Watches
# ---------------------------------------------------------------------------


def test_watch_is_shared_between_subscribers():
    source = ManualLocationSource(13.0827, 80.2707, accuracy_m=8)
    provider = _provider(source)
    first, second = [], []

    sub1 = provider.watch(first.append)
    sub2 = provider.watch(second.append)

    assert source.active_watches == 1
    assert provider.subscriber_count == 2
    assert len(first) == 1
    assert len(second) == 1
    assert second[0] == first[0]

    source.set_position(13.09, 80.28, accuracy_m=4)
    assert first[-1].latitude == 13.09
    assert second[-1].quality is FixQuality.HIGH

    sub1.cancel()
    assert provider.is_watching
    assert source.active_watches == 1

    sub2.cancel()
    assert not provider.is_watching
    assert source.active_watches == 0


def test_cancelled_subscriber_gets_no_updates():
    source = ManualLocationSource(13.0827, 80.2707)
    provider = _provider(source)
    updates = []
    keep = provider.watch(lambda loc: None)
    with provider.watch(updates.append) as sub:
        pass
    assert not sub.active
    source.set_position(1.0, 2.0)
    assert len(updates) == 1
    keep.cancel()


def test_cancel_twice_is_harmless():
    provider = _provider(ManualLocationSource(1.0, 2.0))
    sub = provider.watch(lambda loc: None)
    sub.cancel()
    sub.cancel()
    assert provider.subscriber_count == 0


def test_failing_subscriber_does_not_block_others():
    source = ManualLocationSource()
    provider = _provider(source)
    received = []

    def boom(location):
        raise RuntimeError("subscriber bug")

    provider.watch(boom)
    provider.watch(received.append)
    source.set_position(13.0, 80.0)
    assert len(received) == 1


def test_failing_subscriber_joining_active_watch():
    source = ManualLocationSource(13.0827, 80.2707)
    provider = _provider(source)
    first = provider.watch(lambda loc: None)

    def boom(location):
        raise RuntimeError("subscriber bug")

    second = provider.watch(boom)
    assert second.active
    assert provider.subscriber_count == 2

    first.cancel()
    second.cancel()
    assert not provider.is_watching
    assert source.active_watches == 0


def test_watch_updates_cached_location():
    source = ManualLocationSource()
    provider = _provider(source)
    provider.watch(lambda loc: None)
    source.set_position(13.0, 80.0, accuracy_m=50)
    assert provider.get_cached_location().quality is FixQuality.MEDIUM


def test_watch_errors_delivered_to_subscribers():
    source = ScriptedSource()
    provider = _provider(source)
    errors = []
    provider.watch(lambda loc: None, errors.append)
    provider.watch(lambda loc: None)  # no error callback

    source.on_error(PositionError(LocationErrorReason.TIMEOUT, "no satellites"))

    assert len(errors) == 1
    assert errors[0].reason is LocationErrorReason.TIMEOUT


def test_watch_unsupported():
    provider = _provider(UnsupportedLocationSource())
    with pytest.raises(LocationUnavailable) as exc_info:
        provider.watch(lambda loc: None)
    assert exc_info.value.reason is LocationErrorReason.UNSUPPORTED
    assert provider.subscriber_count == 0
    assert not provider.is_watching


def test_status_and_clear():
    source = ManualLocationSource(13.0827, 80.2707)
    provider = _provider(source)
    sub = provider.watch(lambda loc: None)

    status = provider.status()
    assert status["supported"] is True
    assert status["has_location"] is True
    assert status["watching"] is True
    assert status["subscribers"] == 1
    assert status["last_update"] is not None

    provider.clear()
    assert not sub.active
    assert source.active_watches == 0
    assert provider.status()["has_location"] is False
    assert provider.get_cached_location() is None


def test_status_reports_unsupported():
    assert _provider(UnsupportedLocationSource()).status()["supported"] is False
