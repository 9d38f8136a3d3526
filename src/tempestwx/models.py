"""
Data models for Tempest station, observation and history data.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class ObservationLayout(Enum):
    """Positional row layouts, one per hardware family."""

    ST = "obs_st"
    SKY = "obs_sky"


@dataclass
class StationMeta:
    """Metadata for the station tied to an API key."""

    station_id: Optional[int] = None
    public_name: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    device_id: Optional[int] = None
    device_type: Optional[str] = None  # 'ST' or 'SKY'
    timezone: Optional[str] = None


@dataclass
class WindSample:
    """Wind readings in m/s and degrees."""

    lull: Optional[float]
    avg: Optional[float]
    gust: Optional[float]
    direction: Optional[float]
    interval: Optional[float]


@dataclass
class ObservationSummary:
    """Derived values the API attaches to some observation responses."""

    pressure_trend: Optional[str] = None
    strike_count_1h: Optional[int] = None
    strike_count_3h: Optional[int] = None
    precip_total_1h: Optional[float] = None
    strike_last_dist: Optional[float] = None
    strike_last_epoch: Optional[int] = None
    precip_accum_local_yesterday: Optional[float] = None
    feels_like: Optional[float] = None
    heat_index: Optional[float] = None
    wind_chill: Optional[float] = None


@dataclass
class Observation:
    """A single decoded observation in metric units.

    Either ``parse_error`` is None and the data fields hold the decoded row,
    or ``parse_error`` holds the fault and every data field is None.
    """

    layout: Optional[ObservationLayout] = None
    epoch: Optional[int] = None  # milliseconds
    wind: Optional[WindSample] = None
    pressure: Optional[float] = None
    air_temp: Optional[float] = None
    humidity: Optional[float] = None
    lux: Optional[float] = None
    illuminance: Optional[float] = None
    uv: Optional[float] = None
    solar_radiation: Optional[float] = None
    rain_accum: Optional[float] = None
    rain_accum_final: Optional[float] = None
    local_day_rain_accum: Optional[float] = None
    local_day_rain_accum_final: Optional[float] = None
    precip_type: Optional[int] = None
    precip_analysis: Optional[int] = None
    strike_count: Optional[int] = None
    avg_strike_distance: Optional[float] = None
    battery: Optional[float] = None
    report_interval: Optional[int] = None
    summary: Optional[ObservationSummary] = None
    parse_error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.parse_error is None

    @property
    def timestamp(self) -> Optional[datetime]:
        if self.epoch is None:
            return None
        return datetime.fromtimestamp(self.epoch / 1000, tz=timezone.utc)


@dataclass
class CurrentConditions:
    """Latest observation converted to imperial units."""

    obs_date: Optional[datetime] = None
    temp: Optional[float] = None  # degF
    feels_like: Optional[float] = None  # degF
    wind: Optional[float] = None  # mph
    wind_gust: Optional[float] = None  # mph
    wind_degree: Optional[float] = None
    pressure: Optional[float] = None  # inHg
    precip: Optional[float] = None  # inch, local day so far
    humidity: Optional[float] = None  # %


@dataclass
class ForecastSummary:
    """Today's forecast highlights in imperial units."""

    max_temp: Optional[float] = None
    min_temp: Optional[float] = None
    max_wind: Optional[float] = None
    total_precip: Optional[float] = None
    precip_chance: Optional[int] = None


@dataclass
class HistoryRecord:
    """Precipitation totals in inches, all relative to one reference day."""

    precip_last_7_days: Optional[float] = None
    precip_last_14_days: Optional[float] = None
    precip_last_28_days: Optional[float] = None
    precip_year: Optional[float] = None
    precip_month: Optional[float] = None
    precip_event: Optional[float] = None


@dataclass
class ClientState:
    """Station metadata plus the most recently computed history."""

    station: StationMeta = field(default_factory=StationMeta)
    history: HistoryRecord = field(default_factory=HistoryRecord)


@dataclass
class WeatherData:
    """Snapshot combining current conditions, forecast and history."""

    station: StationMeta
    current: CurrentConditions
    forecast: ForecastSummary
    history: HistoryRecord
