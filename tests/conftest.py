"""
Shared fixtures for tempestwx tests.
"""

from datetime import date, datetime, timezone
from unittest.mock import AsyncMock, Mock

import pytest

from tempestwx.client import TempestClient
from tempestwx.config import ClientConfig
from tempestwx.models import Observation, ObservationLayout, StationMeta

# Last reading of 2020-08-08 from a Tempest (obs_st) device
ST_ROW = [
    1596889860, 0.67, 1.23, 1.79, 141, 3, 1002.5, 20.9, 88, 15688, 0.62,
    131, 0, 0, 0, 0, 2.6, 1, 0, 0, 0, 1,
]

SKY_ROW = [
    1596889860, 15688, 0.62, 0.1, 0.67, 1.23, 1.79, 141, 3.4, 1, 131, 4.2,
    1, 3, 0.0, 3.9, 1,
]


def make_response(payload):
    """Mock httpx response returning ``payload`` as JSON."""
    response = Mock()
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    return response


def obs_payload(row=None, type_code="obs_st", summary=None):
    payload = {
        "status": {"status_code": 0, "status_message": "SUCCESS"},
        "device_id": 1234,
        "type": type_code,
        "obs": [list(row if row is not None else ST_ROW)],
    }
    if summary is not None:
        payload["summary"] = summary
    return payload


@pytest.fixture
def client():
    """A client with a connected station and a mocked transport."""
    client = TempestClient(config=ClientConfig(api_key="test-key", timeout=5))
    client.station = StationMeta(
        station_id=100,
        public_name="Backyard",
        latitude=41.0,
        longitude=-87.0,
        device_id=1234,
        device_type="ST",
        timezone="America/Chicago",
    )
    client._client = AsyncMock()
    return client


class FakeHistoryClient:
    """Stands in for TempestClient in history tests.

    ``rain`` maps days to ``(final, provisional)`` millimetre pairs; days not
    listed get ``default``.
    """

    def __init__(self, now, rain=None, default=(None, 0.0), failures=None):
        self._now = now
        self.rain = rain or {}
        self.default = default
        self.failures = failures or {}
        self.requested = []

    def now(self):
        return self._now

    async def get_history(self, day):
        self.requested.append(day)
        if day in self.failures:
            raise self.failures[day]
        final, provisional = self.rain.get(day, self.default)
        return Observation(
            layout=ObservationLayout.ST,
            epoch=int(datetime(day.year, day.month, day.day, 23, 59, tzinfo=timezone.utc).timestamp()) * 1000,
            local_day_rain_accum=provisional,
            local_day_rain_accum_final=final,
        )


@pytest.fixture
def fake_client_factory():
    def factory(now=None, **kwargs):
        if now is None:
            now = datetime(2024, 5, 10, 9, 0, tzinfo=timezone.utc)
        return FakeHistoryClient(now, **kwargs)

    return factory


@pytest.fixture
def today():
    return date(2024, 5, 10)
