"""Tests for the observation collector."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from pulse_app.services import Collector
from pulse_app.storage import RecordResult, SeriesStore
from pulse_core.models import Observation


def make_source(*observations):
    source = MagicMock()
    source.fetch = AsyncMock(side_effect=list(observations))
    return source


class TestCollectOnce:
    """Tests for a single collection step."""

    @pytest.mark.asyncio
    async def test_records_and_notifies(self):
        """Test a fetched observation is recorded and passed to callbacks."""
        obs = Observation(asset_id="ABC", price=1.0, monotonic=0.0)
        store = SeriesStore(interval=15.0)
        collector = Collector(make_source(obs), store)
        callback = AsyncMock()
        collector.on_observation(callback)

        result = await collector.collect_once("ABC")

        assert result == RecordResult.RECORDED
        assert collector.recorded_count == 1
        assert store.size("ABC") == 1
        callback.assert_awaited_once_with(obs)

    @pytest.mark.asyncio
    async def test_rate_limited_not_notified(self):
        """Test rate-limited observations are counted but not passed on."""
        store = SeriesStore(interval=15.0)
        collector = Collector(
            make_source(
                Observation(asset_id="ABC", price=1.0, monotonic=0.0),
                Observation(asset_id="ABC", price=2.0, monotonic=5.0),
            ),
            store,
        )
        callback = AsyncMock()
        collector.on_observation(callback)

        await collector.collect_once("ABC")
        result = await collector.collect_once("ABC")

        assert result == RecordResult.RATE_LIMITED
        assert collector.rate_limited_count == 1
        assert callback.await_count == 1
        assert await store.prices("ABC") == [1.0]

    @pytest.mark.asyncio
    async def test_invalid_counted(self):
        """Test invalid observations are counted as rejected."""
        collector = Collector(make_source(Observation(asset_id="ABC", price=-1.0)), SeriesStore())

        assert await collector.collect_once("ABC") == RecordResult.INVALID
        assert collector.rejected_count == 1

    @pytest.mark.asyncio
    async def test_source_failure_is_logged(self):
        """Test a failing fetch is counted and returns None."""
        source = MagicMock()
        source.fetch = AsyncMock(side_effect=ConnectionError("down"))
        collector = Collector(source, SeriesStore())

        assert await collector.collect_once("ABC") is None
        assert collector.error_count == 1

    @pytest.mark.asyncio
    async def test_source_has_nothing(self):
        """Test an empty fetch records nothing."""
        collector = Collector(make_source(None), SeriesStore())

        assert await collector.collect_once("ABC") is None
        assert collector.recorded_count == 0

    @pytest.mark.asyncio
    async def test_callback_error_does_not_stop_others(self):
        """Test one failing callback does not block the rest."""
        collector = Collector(
            make_source(Observation(asset_id="ABC", price=1.0)), SeriesStore()
        )
        collector.on_observation(AsyncMock(side_effect=RuntimeError("boom")))
        good = AsyncMock()
        collector.on_observation(good)

        assert await collector.collect_once("ABC") == RecordResult.RECORDED
        good.assert_awaited_once()

    def test_interval_defaults_to_store(self):
        """Test the polling interval defaults to the store interval."""
        collector = Collector(MagicMock(), SeriesStore(interval=7.5))
        assert collector.interval == 7.5


class TestTracking:
    """Tests for per-asset collection tasks."""

    @pytest.fixture
    def source(self):
        source = MagicMock()
        source.fetch = AsyncMock(return_value=None)
        return source

    @pytest.mark.asyncio
    async def test_track_and_untrack(self, source):
        """Test tracking starts polling and untracking stops it."""
        collector = Collector(source, SeriesStore(), interval=0.01)

        assert collector.track("ABC") is True
        assert collector.track("ABC") is False
        await asyncio.sleep(0.05)

        assert source.fetch.await_count >= 2
        assert collector.tracked == ["ABC"]

        assert await collector.untrack("ABC") is True
        assert collector.is_tracking("ABC") is False
        assert await collector.untrack("ABC") is False

        calls = source.fetch.await_count
        await asyncio.sleep(0.03)
        assert source.fetch.await_count == calls

    @pytest.mark.asyncio
    async def test_start_and_stop(self, source):
        """Test start tracks every asset and stop cancels them all."""
        collector = Collector(source, SeriesStore(), interval=0.01)

        await collector.start(["A", "B", "C"])
        assert collector.tracked == ["A", "B", "C"]

        await collector.stop()
        assert collector.tracked == []

    @pytest.mark.asyncio
    async def test_loop_survives_fetch_errors(self):
        """Test the polling loop keeps running after fetch errors."""
        source = MagicMock()
        source.fetch = AsyncMock(side_effect=ConnectionError("down"))
        collector = Collector(source, SeriesStore(), interval=0.01)

        collector.track("ABC")
        await asyncio.sleep(0.05)

        assert collector.is_tracking("ABC") is True
        assert collector.error_count >= 2
        await collector.stop()
