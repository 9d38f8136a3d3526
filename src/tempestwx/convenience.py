"""
High-level convenience functions for one-shot data access.

Each function accepts an existing client, or creates (and closes) its own
from ``api_key`` / the ``TEMPEST_*`` environment. All of them have a ``.sync``
variant.
"""

import logging
from typing import Optional

from .client import TempestClient
from .history import refresh_history
from .models import HistoryRecord, WeatherData
from .utils import add_sync_version

logger = logging.getLogger(__name__)


async def _ensure_connected(client: TempestClient) -> None:
    if client.station.device_id is None:
        await client.connect()


@add_sync_version
async def get_precip_history(
    api_key: Optional[str] = None,
    include_event: bool = True,
    client: Optional[TempestClient] = None,
) -> HistoryRecord:
    """
    Get 7/14/28-day, month, year and wet-spell precipitation totals.

    Args:
        api_key: Personal use token (used only when ``client`` is not given)
        include_event: Also compute the current wet spell total
        client: Optional client to reuse

    Returns:
        HistoryRecord with all totals in inches
    """
    if client is None:
        async with TempestClient(api_key) as own_client:
            return await get_precip_history(include_event=include_event, client=own_client)

    await _ensure_connected(client)
    return await refresh_history(client, include_event=include_event)


@add_sync_version
async def get_weather_data(
    api_key: Optional[str] = None,
    include_event: bool = True,
    client: Optional[TempestClient] = None,
) -> WeatherData:
    """
    Get history, current conditions and today's forecast in one call.

    History is fetched first, then current conditions, then the forecast;
    the first failure aborts the call.
    """
    if client is None:
        async with TempestClient(api_key) as own_client:
            return await get_weather_data(include_event=include_event, client=own_client)

    await _ensure_connected(client)
    history = await refresh_history(client, include_event=include_event)
    logger.debug("History complete, getting current conditions")
    current = await client.get_current()
    logger.debug("Current conditions complete, getting forecast")
    forecast = await client.get_forecast()
    return WeatherData(
        station=client.station,
        current=current,
        forecast=forecast,
        history=history,
    )
