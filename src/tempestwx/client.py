"""
Tempest (WeatherFlow Smart Weather) API client.
"""

import json
import logging
from datetime import date, datetime, time, tzinfo
from typing import Any, Dict, List, Mapping, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import httpx

from .config import ClientConfig
from .decoder import decode_response
from .exceptions import (
    TempestConfigurationError,
    TempestConnectionError,
    TempestDecodeError,
    TempestError,
    TempestStatusError,
)
from .models import (
    CurrentConditions,
    ForecastSummary,
    Observation,
    StationMeta,
)
from .units import (
    celsius_to_fahrenheit,
    millibar_to_inhg,
    mm_to_inch,
    mps_to_mph,
)

logger = logging.getLogger(__name__)

# Device families that report weather observations, in order of preference
OBSERVATION_DEVICE_TYPES = ("ST", "SKY")

# Width of the range query used to pick the last reading of a day
DAY_WINDOW_SECONDS = 60


class TempestClient:
    """
    Client for the WeatherFlow Smart Weather REST API.

    Construction does no I/O. Call ``connect()`` to look up the station tied
    to the API key before requesting observations::

        async with TempestClient(api_key) as client:
            await client.connect()
            obs = await client.get_history(date(2024, 5, 1))

    API documentation: https://weatherflow.github.io/SmartWeather/api/
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        config: Optional[ClientConfig] = None,
    ):
        if config is None:
            config = ClientConfig.from_env(api_key)
        elif api_key is not None:
            config = ClientConfig(
                api_key=api_key,
                base_url=config.base_url,
                timeout=config.timeout,
                user_agent=config.user_agent,
            )
        self.config = config
        self.timeout = config.timeout
        self.station = StationMeta()
        self._client = httpx.AsyncClient(
            timeout=config.timeout,
            headers={
                "User-Agent": config.user_agent,
                "Accept": "application/json",
            },
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "TempestClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def _make_request(
        self, endpoint: str, params: Optional[Dict[str, Any]] = None
    ) -> Any:
        """Make a request to the API with error handling."""
        if not self.config.api_key:
            raise TempestConfigurationError("API key is not set")

        url = f"{self.config.base_url}/{endpoint}"
        query = dict(params or {})
        query["api_key"] = self.config.api_key
        logger.debug(f"GET {url} {self._redacted(query)}")

        try:
            response = await self._client.get(url, params=query)
            response.raise_for_status()
            payload = response.json()

        except httpx.TimeoutException as e:
            raise TempestConnectionError(f"Request timeout after {self.timeout}s") from e
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 401:
                raise TempestConfigurationError("API key was rejected") from e
            elif e.response.status_code == 429:
                raise TempestConnectionError("Rate limit exceeded") from e
            elif e.response.status_code >= 500:
                raise TempestConnectionError("Tempest service temporarily unavailable") from e
            else:
                raise TempestConnectionError(
                    f"HTTP error {e.response.status_code}: {e}"
                ) from e
        except httpx.RequestError as e:
            raise TempestConnectionError(f"Network error: {e}") from e
        except json.JSONDecodeError as e:
            raise TempestDecodeError(f"Invalid JSON response: {e}") from e

        self._check_status(payload)
        return payload

    @staticmethod
    def _redacted(params: Mapping[str, Any]) -> Dict[str, Any]:
        return {k: ("***" if k == "api_key" else v) for k, v in params.items()}

    @staticmethod
    def _check_status(payload: Any) -> None:
        """Raise TempestStatusError for an ``error`` body or non-zero status."""
        if not isinstance(payload, Mapping):
            raise TempestDecodeError(
                f"Expected a JSON object, got {type(payload).__name__}"
            )
        if payload.get("error"):
            raise TempestStatusError(str(payload["error"]))
        status = payload.get("status")
        if isinstance(status, Mapping):
            code = status.get("status_code", 0)
            if code not in (0, None):
                raise TempestStatusError(
                    str(status.get("status_message", f"status code {code}")),
                    status_code=code,
                )

    def _require_device(self) -> int:
        if not self.station.device_id:
            raise TempestConfigurationError("Device ID is not set; call connect() first")
        return self.station.device_id

    def station_tz(self) -> Optional[tzinfo]:
        """Timezone of the station, or None to use the host's local time."""
        if not self.station.timezone:
            return None
        try:
            return ZoneInfo(self.station.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(f"Unknown station timezone {self.station.timezone!r}")
            return None

    def now(self) -> datetime:
        """Current time as an aware datetime in the station's timezone."""
        tz = self.station_tz()
        return datetime.now(tz) if tz is not None else datetime.now().astimezone()

    def day_window(self, day: date) -> Tuple[int, int]:
        """
        Query window selecting the last reading of a local day.

        Returns:
            (time_start, time_end) in Unix seconds, ending at 23:59:00 local
            time and starting one minute earlier.
        """
        tz = self.station_tz()
        end = datetime.combine(day, time(23, 59))
        end = end.replace(tzinfo=tz) if tz is not None else end.astimezone()
        end_epoch = int(end.timestamp())
        return end_epoch - DAY_WINDOW_SECONDS, end_epoch

    async def connect(self) -> StationMeta:
        """
        Look up the station tied to the API key and select its device.

        The first station is used. Its first ST device is preferred, falling
        back to the first SKY device.

        Returns:
            The populated StationMeta, also stored on ``self.station``
        """
        data = await self._make_request("stations")

        try:
            station_data = data["stations"][0]
            devices = station_data.get("devices") or []
            device = None
            for device_type in OBSERVATION_DEVICE_TYPES:
                device = next(
                    (d for d in devices if d.get("device_type") == device_type), None
                )
                if device is not None:
                    break

            station = StationMeta(
                station_id=station_data.get("station_id"),
                public_name=station_data.get("public_name"),
                latitude=station_data.get("latitude"),
                longitude=station_data.get("longitude"),
                device_id=device.get("device_id") if device else None,
                device_type=device.get("device_type") if device else None,
                timezone=station_data.get("timezone"),
            )
        except TempestError:
            raise
        except Exception as e:
            raise TempestDecodeError(f"Failed to read station metadata: {e}") from e

        if station.device_id is None:
            logger.warning(
                f"Station {station.public_name} has no ST or SKY device; "
                "observation requests will fail"
            )
        else:
            logger.debug(
                f"Station metadata acquired for {station.public_name}: "
                f"device {station.device_id} ({station.device_type})"
            )
        self.station = station
        return station

    async def get_observations(self, time_start: int, time_end: int) -> List[Observation]:
        """
        Get every observation the device reported in a time range.

        Args:
            time_start: Range start in Unix seconds
            time_end: Range end in Unix seconds

        Returns:
            List of decoded observations, oldest first. Rows that fail to
            decode are kept with ``parse_error`` set.
        """
        device_id = self._require_device()
        data = await self._make_request(
            "observations/",
            {"device_id": device_id, "time_start": time_start, "time_end": time_end},
        )
        return decode_response(data)

    async def get_history(self, day: date) -> Observation:
        """
        Get the last observation of a local calendar day.

        The observation carries the day's rain totals in
        ``local_day_rain_accum`` and ``local_day_rain_accum_final``.
        """
        device_id = self._require_device()
        time_start, time_end = self.day_window(day)
        logger.debug(
            f"Getting history for {day.isoformat()}: "
            f"time_start={time_start}, time_end={time_end}"
        )

        data = await self._make_request(
            "observations/",
            {"device_id": device_id, "time_start": time_start, "time_end": time_end},
        )
        observations = decode_response(data)
        if not observations:
            raise TempestDecodeError(f"No observation returned for {day.isoformat()}")

        observation = observations[0]
        if observation.parse_error is not None:
            logger.warning(
                f"Parse error in history for {day.isoformat()}: {observation.parse_error}"
            )
        return observation

    async def get_latest_observation(self) -> Observation:
        """Get the device's most recent observation, with its summary block."""
        device_id = self._require_device()
        data = await self._make_request("observations/", {"device_id": device_id})
        observations = decode_response(data)
        if not observations:
            raise TempestDecodeError("No current observation returned")
        return observations[0]

    async def get_current(self) -> CurrentConditions:
        """Get current conditions in imperial units."""
        observation = await self.get_latest_observation()
        if observation.parse_error is not None:
            raise TempestDecodeError(
                f"Current observation could not be decoded: {observation.parse_error}"
            )

        summary = observation.summary
        wind = observation.wind
        return CurrentConditions(
            obs_date=observation.timestamp,
            temp=celsius_to_fahrenheit(observation.air_temp),
            feels_like=celsius_to_fahrenheit(summary.feels_like if summary else None),
            wind=mps_to_mph(wind.avg if wind else None),
            wind_gust=mps_to_mph(wind.gust if wind else None),
            wind_degree=wind.direction if wind else None,
            pressure=millibar_to_inhg(observation.pressure),
            precip=mm_to_inch(observation.local_day_rain_accum),
            humidity=observation.humidity,
        )

    async def get_forecast(self, day: Optional[date] = None) -> ForecastSummary:
        """
        Get today's forecast for the station's location.

        Args:
            day: Local day the hourly highs are collected for (default: today)

        Returns:
            ForecastSummary in imperial units
        """
        if self.station.latitude is None or self.station.longitude is None:
            raise TempestConfigurationError("Station location is not set; call connect() first")

        data = await self._make_request(
            "better_forecast",
            {"lat": self.station.latitude, "lon": self.station.longitude},
        )
        if day is None:
            day = self.now().date()

        try:
            daily = data["forecast"]["daily"][0]
            max_wind, max_precip = find_forecast_highs(data, day)
            return ForecastSummary(
                max_temp=celsius_to_fahrenheit(daily.get("air_temp_high")),
                min_temp=celsius_to_fahrenheit(daily.get("air_temp_low")),
                max_wind=mps_to_mph(max_wind),
                total_precip=mm_to_inch(max_precip),
                precip_chance=daily.get("precip_probability"),
            )
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            raise TempestDecodeError(f"Failed to read forecast: {e}") from e


def find_forecast_highs(
    forecast: Mapping[str, Any], day: date
) -> Tuple[Optional[float], Optional[float]]:
    """
    Scan the hourly forecast for one local day.

    Returns:
        (max hourly average wind in m/s, max hourly precipitation in mm), or
        (None, None) when the forecast has no hourly list
    """
    hourly = (forecast.get("forecast") or {}).get("hourly")
    if not isinstance(hourly, list):
        return None, None

    max_wind = 0.0
    max_precip = 0.0
    for hour in hourly:
        if hour.get("local_day") != day.day:
            continue
        wind_avg = hour.get("wind_avg")
        if wind_avg is not None and wind_avg > max_wind:
            max_wind = wind_avg
        precip = hour.get("precip")
        if precip is not None and precip > max_precip:
            max_precip = precip
    return max_wind, max_precip
