"""
Python client for the WeatherFlow Tempest Smart Weather API.

Fetch station observations, current conditions and forecasts, and build
precipitation history (rolling totals and wet-spell detection).
"""

try:
    from importlib import metadata

    __version__ = metadata.version(__name__)
except Exception:
    __version__ = "unknown"

from .client import TempestClient, find_forecast_highs
from .config import ClientConfig
from .convenience import get_precip_history, get_weather_data
from .decoder import (
    decode_observation,
    decode_response,
    encode_observation,
    layout_for_type,
)
from .exceptions import (
    TempestConfigurationError,
    TempestConnectionError,
    TempestDecodeError,
    TempestError,
    TempestStatusError,
)
from .history import (
    EventState,
    PrecipEventDetector,
    accumulate_precip,
    daily_precip_mm,
    days_into_year,
    detect_precip_event,
    month_to_date_precip,
    refresh_history,
    update_state,
    year_to_date_precip,
)
from .models import (
    ClientState,
    CurrentConditions,
    ForecastSummary,
    HistoryRecord,
    Observation,
    ObservationLayout,
    ObservationSummary,
    StationMeta,
    WeatherData,
    WindSample,
)
from .sync import AsyncSyncBridge
from .units import (
    celsius_to_fahrenheit,
    inch_to_mm,
    km_to_miles,
    millibar_to_inhg,
    mm_to_inch,
    mps_to_mph,
)

__all__ = [
    # Client and configuration
    "TempestClient",
    "ClientConfig",
    "AsyncSyncBridge",
    # Convenience functions
    "get_precip_history",
    "get_weather_data",
    # Decoding
    "decode_observation",
    "decode_response",
    "encode_observation",
    "layout_for_type",
    # History
    "accumulate_precip",
    "month_to_date_precip",
    "year_to_date_precip",
    "detect_precip_event",
    "refresh_history",
    "update_state",
    "daily_precip_mm",
    "days_into_year",
    "PrecipEventDetector",
    "EventState",
    "find_forecast_highs",
    # Models
    "ClientState",
    "CurrentConditions",
    "ForecastSummary",
    "HistoryRecord",
    "Observation",
    "ObservationLayout",
    "ObservationSummary",
    "StationMeta",
    "WeatherData",
    "WindSample",
    # Units
    "celsius_to_fahrenheit",
    "inch_to_mm",
    "km_to_miles",
    "millibar_to_inhg",
    "mm_to_inch",
    "mps_to_mph",
    # Exceptions
    "TempestError",
    "TempestConfigurationError",
    "TempestConnectionError",
    "TempestDecodeError",
    "TempestStatusError",
]
