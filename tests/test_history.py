"""
Tests for precipitation history accumulation and wet-spell detection.
"""

from datetime import date, datetime, timedelta, timezone
from unittest.mock import AsyncMock
from zoneinfo import ZoneInfo

import pytest

from conftest import ST_ROW, make_response, obs_payload
from tempestwx.exceptions import TempestConnectionError, TempestDecodeError
from tempestwx.history import (
    EVENT_STEP,
    HISTORY_STEPS,
    EventState,
    PrecipEventDetector,
    accumulate_precip,
    daily_precip_mm,
    days_into_year,
    detect_precip_event,
    fetch_daily_precip,
    month_to_date_precip,
    refresh_history,
    update_state,
    year_to_date_precip,
)
from tempestwx.models import ClientState, HistoryRecord, Observation, StationMeta

TODAY = date(2024, 5, 10)


def day(n):
    """The date ``n`` days before TODAY."""
    return TODAY - timedelta(days=n)


class TestDailyPrecip:
    """Final-preferred choice of a day's rain total."""

    def test_provisional_when_final_missing(self):
        obs = Observation(local_day_rain_accum=5.0, local_day_rain_accum_final=None)
        assert daily_precip_mm(obs) == 5.0

    def test_final_preferred(self):
        obs = Observation(local_day_rain_accum=5.0, local_day_rain_accum_final=3.0)
        assert daily_precip_mm(obs) == 3.0

    def test_final_zero_is_used(self):
        obs = Observation(local_day_rain_accum=5.0, local_day_rain_accum_final=0.0)
        assert daily_precip_mm(obs) == 0.0

    def test_parse_error_is_a_fault(self):
        obs = Observation(parse_error=TempestDecodeError("short row"))
        with pytest.raises(TempestDecodeError, match="short row"):
            daily_precip_mm(obs, TODAY)

    def test_missing_value_is_a_fault(self):
        with pytest.raises(TempestDecodeError, match="No precipitation value"):
            daily_precip_mm(Observation(), TODAY)


class TestAccumulate:
    """Test fixed-window accumulation."""

    @pytest.mark.asyncio
    async def test_requests_days_before_today(self, fake_client_factory):
        client = fake_client_factory()

        await accumulate_precip(client, 7, TODAY)

        assert sorted(client.requested) == [day(n) for n in range(7, 0, -1)]
        assert TODAY not in client.requested

    @pytest.mark.asyncio
    async def test_default_today_from_client(self, fake_client_factory):
        client = fake_client_factory(now=datetime(2024, 5, 10, 9, tzinfo=timezone.utc))

        await accumulate_precip(client, 2)
        assert sorted(client.requested) == [day(2), day(1)]

    @pytest.mark.asyncio
    async def test_seven_days_of_final_values(self, fake_client_factory):
        client = fake_client_factory(default=(1.27, 0.0))

        assert await accumulate_precip(client, 7, TODAY) == 0.35

    @pytest.mark.asyncio
    async def test_converts_once(self, fake_client_factory):
        # Each day rounds to 0.00 in, the sum does not
        client = fake_client_factory(default=(None, 0.1))

        assert await accumulate_precip(client, 28, TODAY) == 0.11

    @pytest.mark.asyncio
    async def test_tie_break_mix(self, fake_client_factory):
        rain = {day(1): (None, 5.0), day(2): (3.0, 5.0), day(3): (None, 0.0)}
        client = fake_client_factory(rain=rain)

        values = await fetch_daily_precip(client, 3, TODAY)
        assert values == [5.0, 3.0, 0.0]

    @pytest.mark.asyncio
    async def test_monotonic(self, fake_client_factory):
        rain = {day(n): (None, float(n % 3)) for n in range(1, 15)}
        client = fake_client_factory(rain=rain)

        totals = [await accumulate_precip(client, n, TODAY) for n in range(1, 15)]
        assert totals == sorted(totals)

    @pytest.mark.asyncio
    async def test_one_failure_fails_window(self, fake_client_factory):
        error = TempestConnectionError("Network error: reset")
        client = fake_client_factory(default=(1.27, 0.0), failures={day(4): error})

        with pytest.raises(TempestConnectionError) as excinfo:
            await accumulate_precip(client, 7, TODAY)
        assert excinfo.value is error

    @pytest.mark.asyncio
    async def test_undecodable_day_fails_window(self, fake_client_factory):
        client = fake_client_factory(default=(1.27, 0.0))
        original = client.get_history

        async def get_history(d):
            if d == day(2):
                return Observation(parse_error=TempestDecodeError("bad row"))
            return await original(d)

        client.get_history = get_history

        with pytest.raises(TempestDecodeError, match="bad row"):
            await accumulate_precip(client, 7, TODAY)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("days_back", [0, -3])
    async def test_invalid_window(self, fake_client_factory, days_back):
        client = fake_client_factory()
        with pytest.raises(ValueError):
            await accumulate_precip(client, days_back, TODAY)
        assert client.requested == []

    @pytest.mark.asyncio
    async def test_through_real_client(self, client):
        """Seven vendor responses of 1.27 mm final rain total 0.35 in."""
        row = list(ST_ROW)
        row[18] = 2.0
        row[20] = 1.27
        client._client.get.return_value = make_response(obs_payload(row))

        assert await accumulate_precip(client, 7, TODAY) == 0.35
        assert client._client.get.await_count == 7
        ends = sorted(c[1]["params"]["time_end"] for c in client._client.get.call_args_list)
        assert all(b - a == 86400 for a, b in zip(ends, ends[1:]))

    @pytest.mark.asyncio
    async def test_through_real_client_failure(self, client):
        responses = [make_response(obs_payload()) for _ in range(6)]
        responses.insert(3, make_response({"status": {"status_code": 5, "status_message": "BUSY"}}))
        client._client.get = AsyncMock(side_effect=responses)

        with pytest.raises(Exception, match="BUSY"):
            await accumulate_precip(client, 7, TODAY)


class TestCalendarWindows:
    """Test month-to-date and year-to-date windows."""

    @pytest.mark.asyncio
    async def test_month_to_date(self, fake_client_factory):
        client = fake_client_factory(default=(1.27, 0.0))

        assert await month_to_date_precip(client, date(2024, 5, 4)) == 0.15
        assert sorted(client.requested) == [date(2024, 5, 1), date(2024, 5, 2), date(2024, 5, 3)]

    @pytest.mark.asyncio
    async def test_month_to_date_on_the_first(self, fake_client_factory):
        client = fake_client_factory(default=(1.27, 0.0))

        assert await month_to_date_precip(client, date(2024, 5, 1)) == 0.0
        assert client.requested == []

    @pytest.mark.asyncio
    async def test_year_to_date(self, fake_client_factory):
        client = fake_client_factory(default=(1.27, 0.0))
        now = datetime(2024, 1, 3, 8, tzinfo=timezone.utc)

        assert await year_to_date_precip(client, now) == 0.15
        assert sorted(client.requested) == [
            date(2023, 12, 31),
            date(2024, 1, 1),
            date(2024, 1, 2),
        ]

    @pytest.mark.asyncio
    async def test_year_to_date_on_new_year(self, fake_client_factory):
        client = fake_client_factory(default=(1.27, 0.0))
        now = datetime(2024, 1, 1, 8, tzinfo=timezone.utc)

        assert await year_to_date_precip(client, now) == 0.05
        assert client.requested == [date(2023, 12, 31)]

    def test_days_into_year(self):
        assert days_into_year(datetime(2024, 1, 1, 0, 0, tzinfo=timezone.utc)) == 1
        assert days_into_year(datetime(2023, 12, 31, 23, 59, tzinfo=timezone.utc)) == 365
        assert days_into_year(datetime(2024, 12, 31, 12, tzinfo=timezone.utc)) == 366

    def test_days_into_year_across_dst(self):
        # Just after midnight in summer time; the raw elapsed time is an hour
        # short of 186 whole days
        now = datetime(2024, 7, 4, 0, 30, tzinfo=ZoneInfo("America/New_York"))
        assert days_into_year(now) == 186

    def test_days_into_year_naive(self):
        assert days_into_year(datetime(2024, 3, 1, 12)) == 61


class TestEventDetector:
    """Test the wet-spell state machine."""

    def test_stops_at_first_dry_day(self):
        detector = PrecipEventDetector()
        total = detector.feed_all([2.0, 3.0, 0.0, 7.0])

        assert total == 5.0
        assert detector.total_inches == 0.2
        assert detector.days == 2
        assert detector.state is EventState.EVENT_ENDED

    def test_ended_is_terminal(self):
        detector = PrecipEventDetector()
        assert detector.feed(0.0) is EventState.EVENT_ENDED
        assert detector.feed(10.0) is EventState.EVENT_ENDED
        assert detector.total_mm == 0.0

    def test_all_wet(self):
        detector = PrecipEventDetector()
        detector.feed_all([1.0, 1.0, 1.0])
        assert detector.state is EventState.ACCUMULATING
        assert detector.total_mm == 3.0

    @pytest.mark.asyncio
    async def test_detect_event(self, fake_client_factory):
        rain = {
            day(1): (2.0, 2.5),
            day(2): (None, 3.0),
            day(3): (0.0, 0.4),
            day(4): (7.0, 7.0),
        }
        client = fake_client_factory(rain=rain, default=(None, 9.0))

        assert await detect_precip_event(client, 4, TODAY) == 0.2

    @pytest.mark.asyncio
    async def test_dry_yesterday(self, fake_client_factory):
        rain = {day(1): (0.0, 0.0)}
        client = fake_client_factory(rain=rain, default=(5.0, 5.0))

        assert await detect_precip_event(client, 7, TODAY) == 0.0

    @pytest.mark.asyncio
    async def test_event_default_window(self, fake_client_factory):
        client = fake_client_factory(default=(1.27, 0.0))

        assert await detect_precip_event(client, today=TODAY) == 0.35
        assert len(client.requested) == 7


class TestRefreshHistory:
    """Test the sequential history refresh."""

    def test_step_order(self):
        assert [s.field for s in HISTORY_STEPS] == [
            "precip_last_7_days",
            "precip_last_14_days",
            "precip_last_28_days",
            "precip_year",
            "precip_month",
        ]
        assert EVENT_STEP.field == "precip_event"

    @pytest.mark.asyncio
    async def test_refresh_all(self, fake_client_factory):
        now = datetime(2024, 3, 5, 12, tzinfo=timezone.utc)
        client = fake_client_factory(now=now, default=(1.27, 0.0))

        record = await refresh_history(client)

        assert record == HistoryRecord(
            precip_last_7_days=0.35,
            precip_last_14_days=0.7,
            precip_last_28_days=1.4,
            precip_year=3.25,
            precip_month=0.2,
            precip_event=0.35,
        )
        assert len(client.requested) == 7 + 14 + 28 + 65 + 4 + 7

    @pytest.mark.asyncio
    async def test_refresh_without_event(self, fake_client_factory):
        now = datetime(2024, 3, 5, 12, tzinfo=timezone.utc)
        client = fake_client_factory(now=now, default=(1.27, 0.0))

        record = await refresh_history(client, include_event=False)
        assert record.precip_event is None
        assert record.precip_month == 0.2

    @pytest.mark.asyncio
    async def test_steps_run_in_sequence(self, fake_client_factory):
        now = datetime(2024, 3, 5, 12, tzinfo=timezone.utc)
        client = fake_client_factory(now=now, default=(1.27, 0.0))

        await refresh_history(client, include_event=False)

        # Each step's batch starts only after the previous one was requested
        batches = [7, 14, 28, 65, 4]
        offset = 0
        for size in batches:
            batch = client.requested[offset:offset + size]
            assert sorted(batch, reverse=True) == [date(2024, 3, 5) - timedelta(days=n) for n in range(1, size + 1)]
            offset += size

    @pytest.mark.asyncio
    async def test_first_failure_aborts(self, fake_client_factory):
        now = datetime(2024, 5, 10, 12, tzinfo=timezone.utc)
        error = TempestConnectionError("Network error")
        client = fake_client_factory(now=now, default=(1.27, 0.0), failures={day(10): error})
        record = HistoryRecord()

        with pytest.raises(TempestConnectionError):
            await refresh_history(client, record=record)

        assert record.precip_last_7_days == 0.35
        assert record.precip_last_14_days is None
        assert record.precip_year is None
        assert len(client.requested) == 7 + 14

    @pytest.mark.asyncio
    async def test_update_state(self, fake_client_factory):
        now = datetime(2024, 3, 5, 12, tzinfo=timezone.utc)
        client = fake_client_factory(now=now, default=(1.27, 0.0))
        client.station = StationMeta(station_id=1, device_id=2)
        state = ClientState()

        new_state = await update_state(client, state, include_event=False)

        assert new_state is not state
        assert state.history == HistoryRecord()
        assert new_state.station.device_id == 2
        assert new_state.history.precip_last_7_days == 0.35
