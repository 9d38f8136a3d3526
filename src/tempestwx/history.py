"""
Precipitation history built from day-by-day observation queries.

Each day's rain total is read from the last observation of that local day.
The API reprocesses recent days, so a day may carry a confirmed ("final")
total, or only the provisional same-day estimate; the final value wins
whenever it is present.

Totals are summed in millimetres and converted to inches once at the end.
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Awaitable, Callable, Iterable, List, Optional

from .client import TempestClient
from .exceptions import TempestDecodeError
from .models import ClientState, HistoryRecord, Observation
from .units import mm_to_inch

logger = logging.getLogger(__name__)

DEFAULT_EVENT_DAYS = 7


def daily_precip_mm(observation: Observation, day: Optional[date] = None) -> float:
    """
    Rain total for the local day an observation closes, in millimetres.

    Prefers ``local_day_rain_accum_final`` and falls back to
    ``local_day_rain_accum`` when the final value is not available yet.

    Raises:
        TempestDecodeError: If the observation failed to decode or has
            neither value
    """
    label = day.isoformat() if day else "observation"
    if observation.parse_error is not None:
        raise TempestDecodeError(
            f"Cannot read precipitation for {label}: {observation.parse_error}"
        )
    if observation.local_day_rain_accum_final is not None:
        value = observation.local_day_rain_accum_final
    else:
        value = observation.local_day_rain_accum
    if value is None:
        raise TempestDecodeError(f"No precipitation value for {label}")
    return float(value)


def days_into_year(now: datetime) -> int:
    """
    Day of the year for ``now`` (1 on January 1).

    Counted from January 0 (December 31 of the previous year). The elapsed
    time is corrected by the change in UTC offset between the two instants,
    so a daylight saving transition does not shift the count.
    """
    if now.tzinfo is None:
        now = now.astimezone()
    start = datetime(now.year - 1, 12, 31, tzinfo=now.tzinfo)
    elapsed = now.astimezone(timezone.utc) - start.astimezone(timezone.utc)
    offset_change = (now.utcoffset() or timedelta(0)) - (start.utcoffset() or timedelta(0))
    return (elapsed + offset_change) // timedelta(days=1)


def _days_before(today: date, days_back: int) -> List[date]:
    return [today - timedelta(days=i) for i in range(1, days_back + 1)]


async def fetch_daily_precip(
    client: TempestClient, days_back: int, today: Optional[date] = None
) -> List[float]:
    """
    Fetch rain totals for the ``days_back`` days before ``today``.

    All days are requested concurrently. If any request fails the whole call
    fails with that error.

    Returns:
        Per-day totals in millimetres, nearest day first (today-1, today-2, ...)
    """
    if days_back < 1:
        raise ValueError(f"days_back must be at least 1, got {days_back}")
    if today is None:
        today = client.now().date()

    days = _days_before(today, days_back)
    observations = await asyncio.gather(*(client.get_history(day) for day in days))

    values = []
    for day, observation in zip(days, observations):
        value = daily_precip_mm(observation, day)
        logger.debug(
            f"Rain for {day.isoformat()}: final={observation.local_day_rain_accum_final}, "
            f"provisional={observation.local_day_rain_accum}, used={value} mm"
        )
        values.append(value)
    return values


async def accumulate_precip(
    client: TempestClient, days_back: int = 7, today: Optional[date] = None
) -> float:
    """
    Total precipitation over the ``days_back`` days before today.

    Today's partial total is not included.

    Args:
        client: Connected TempestClient
        days_back: Number of whole days to include (at least 1)
        today: Reference day (default: today in the station's timezone)

    Returns:
        Accumulated precipitation in inches, rounded to 2 decimals
    """
    values = await fetch_daily_precip(client, days_back, today)
    return mm_to_inch(sum(values))


async def month_to_date_precip(
    client: TempestClient, today: Optional[date] = None
) -> float:
    """Precipitation since the first of the month, excluding today (inches)."""
    if today is None:
        today = client.now().date()
    days_back = today.day - 1
    if days_back == 0:
        return 0.0
    return await accumulate_precip(client, days_back, today)


async def year_to_date_precip(
    client: TempestClient, now: Optional[datetime] = None
) -> float:
    """
    Precipitation for the year so far, excluding today (inches).

    The window is the day-of-year count of days before today, so it reaches
    back one day further than January 1 (on January 1 it covers
    December 31).
    """
    if now is None:
        now = client.now()
    return await accumulate_precip(client, days_into_year(now), now.date())


class EventState(Enum):
    ACCUMULATING = "accumulating"
    EVENT_ENDED = "event_ended"


class PrecipEventDetector:
    """
    Totals an unbroken run of wet days.

    Feed daily values walking back in time from yesterday. The first dry day
    ends the event; nothing fed after that is counted.
    """

    def __init__(self) -> None:
        self.state = EventState.ACCUMULATING
        self.total_mm = 0.0
        self.days = 0

    def feed(self, value_mm: float) -> EventState:
        if self.state is EventState.EVENT_ENDED:
            return self.state
        if value_mm == 0:
            self.state = EventState.EVENT_ENDED
        else:
            self.total_mm += value_mm
            self.days += 1
        return self.state

    def feed_all(self, values_mm: Iterable[float]) -> float:
        for value in values_mm:
            if self.feed(value) is EventState.EVENT_ENDED:
                break
        return self.total_mm

    @property
    def total_inches(self) -> float:
        return mm_to_inch(self.total_mm)


async def detect_precip_event(
    client: TempestClient, days_back: int = DEFAULT_EVENT_DAYS, today: Optional[date] = None
) -> float:
    """
    Precipitation of the current wet spell, in inches.

    Looks at most ``days_back`` days before today and sums the consecutive
    rainy days ending yesterday. A dry yesterday gives 0.0.
    """
    values = await fetch_daily_precip(client, days_back, today)
    detector = PrecipEventDetector()
    detector.feed_all(values)
    logger.debug(f"Precipitation event: {detector.days} day(s), {detector.total_mm} mm")
    return detector.total_inches


@dataclass(frozen=True)
class HistoryStep:
    """One named step of a history refresh, filling one HistoryRecord field."""

    field: str
    run: Callable[[TempestClient, datetime], Awaitable[float]]


def _window_step(field: str, days_back: int) -> HistoryStep:
    return HistoryStep(
        field, lambda client, now: accumulate_precip(client, days_back, now.date())
    )


HISTORY_STEPS = (
    _window_step("precip_last_7_days", 7),
    _window_step("precip_last_14_days", 14),
    _window_step("precip_last_28_days", 28),
    HistoryStep("precip_year", year_to_date_precip),
    HistoryStep("precip_month", lambda client, now: month_to_date_precip(client, now.date())),
)

EVENT_STEP = HistoryStep(
    "precip_event",
    lambda client, now: detect_precip_event(client, DEFAULT_EVENT_DAYS, now.date()),
)


async def refresh_history(
    client: TempestClient,
    include_event: bool = True,
    now: Optional[datetime] = None,
    record: Optional[HistoryRecord] = None,
) -> HistoryRecord:
    """
    Recompute every precipitation history total.

    Steps run one after another, not concurrently, to keep the request
    rate down: 7, 14 and 28 days, year to date, month to date and, when
    ``include_event`` is set, the current wet spell. All steps share one
    reference time. The first failing step stops the refresh and its error
    propagates; fields assigned before it remain set on ``record``.

    Args:
        client: Connected TempestClient
        include_event: Also compute ``precip_event``
        now: Reference time (default: now in the station's timezone)
        record: Record to fill in (default: a new HistoryRecord)

    Returns:
        The filled HistoryRecord
    """
    if now is None:
        now = client.now()
    if record is None:
        record = HistoryRecord()

    steps = HISTORY_STEPS + (EVENT_STEP,) if include_event else HISTORY_STEPS
    for step in steps:
        try:
            value = await step.run(client, now)
        except Exception:
            logger.error(f"Error getting history for {step.field}")
            raise
        logger.debug(f"Setting {step.field} = {value}")
        setattr(record, step.field, value)
    return record


async def update_state(
    client: TempestClient, state: ClientState, include_event: bool = True
) -> ClientState:
    """Return a copy of ``state`` with refreshed history and station metadata."""
    history = await refresh_history(client, include_event=include_event)
    return replace(state, station=client.station, history=history)
