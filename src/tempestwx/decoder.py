"""
Decoding of positional observation rows into Observation records.

The API reports observations as bare arrays whose positions depend on the
hardware family. Each layout below lists the field at every offset; decoding
and encoding both walk the same table, so there is a single path per layout.

The epoch at offset 0 is always whole seconds and is scaled to milliseconds
here; callers never pre-scale it.
"""

import logging
from numbers import Real
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .exceptions import TempestDecodeError
from .models import Observation, ObservationLayout, ObservationSummary, WindSample

logger = logging.getLogger(__name__)

WIND_FIELDS = ("wind_lull", "wind_avg", "wind_gust", "wind_direction", "wind_interval")

LAYOUT_FIELDS: Dict[ObservationLayout, Tuple[str, ...]] = {
    ObservationLayout.ST: (
        "epoch",
        "wind_lull",
        "wind_avg",
        "wind_gust",
        "wind_direction",
        "wind_interval",
        "pressure",
        "air_temp",
        "humidity",
        "lux",
        "uv",
        "solar_radiation",
        "rain_accum",
        "precip_type",
        "avg_strike_distance",
        "strike_count",
        "battery",
        "report_interval",
        "local_day_rain_accum",
        "rain_accum_final",
        "local_day_rain_accum_final",
        "precip_analysis",
    ),
    ObservationLayout.SKY: (
        "epoch",
        "illuminance",
        "uv",
        "rain_accum",
        "wind_lull",
        "wind_avg",
        "wind_gust",
        "wind_direction",
        "battery",
        "report_interval",
        "solar_radiation",
        "local_day_rain_accum",
        "precip_type",
        "wind_interval",
        "rain_accum_final",
        "local_day_rain_accum_final",
        "precip_analysis",
    ),
}

# Summary block keys as sent by the API
SUMMARY_FIELDS = (
    "pressure_trend",
    "strike_count_1h",
    "strike_count_3h",
    "precip_total_1h",
    "strike_last_dist",
    "strike_last_epoch",
    "precip_accum_local_yesterday",
    "feels_like",
    "heat_index",
    "wind_chill",
)


def layout_for_type(type_code: Any) -> ObservationLayout:
    """Resolve a response ``type`` discriminator such as ``"obs_st"``."""
    try:
        return ObservationLayout(type_code)
    except ValueError:
        raise TempestDecodeError(f"Unsupported observation type: {type_code!r}") from None


def _check_row(row: Any, layout: ObservationLayout) -> Sequence[Any]:
    if isinstance(row, (str, bytes)) or not isinstance(row, (list, tuple)):
        raise TempestDecodeError(
            f"Observation row must be a list, got {type(row).__name__}"
        )
    expected = len(LAYOUT_FIELDS[layout])
    if len(row) != expected:
        raise TempestDecodeError(
            f"{layout.name} row has {len(row)} fields, expected {expected}"
        )
    for offset, value in enumerate(row):
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, Real):
            raise TempestDecodeError(
                f"Non-numeric value {value!r} at offset {offset} of {layout.name} row"
            )
    if row[0] is None:
        raise TempestDecodeError("Observation row has no epoch")
    return row


def _decode_summary(summary: Any) -> ObservationSummary:
    if not isinstance(summary, Mapping):
        raise TempestDecodeError(
            f"Observation summary must be a mapping, got {type(summary).__name__}"
        )
    return ObservationSummary(**{name: summary.get(name) for name in SUMMARY_FIELDS})


def decode_observation(
    row: Any,
    layout: ObservationLayout,
    summary: Optional[Mapping[str, Any]] = None,
) -> Observation:
    """
    Decode one positional observation row.

    Args:
        row: Raw observation array from the ``obs`` list of a response
        layout: Layout of the row (ST or SKY)
        summary: Optional ``summary`` block of the same response

    Returns:
        An Observation. Decoding never raises; a malformed row or summary
        yields an Observation whose ``parse_error`` holds the fault and whose
        data fields are all None.
    """
    if not isinstance(layout, ObservationLayout):
        error = TempestDecodeError(f"Unknown observation layout: {layout!r}")
        logger.warning(f"Failed to decode observation: {error}")
        return Observation(parse_error=error)

    try:
        checked = _check_row(row, layout)
        values = dict(zip(LAYOUT_FIELDS[layout], checked))
        wind = WindSample(*(values.pop(name) for name in WIND_FIELDS))
        epoch = values.pop("epoch")
        decoded_summary = _decode_summary(summary) if summary is not None else None
    except TempestDecodeError as e:
        logger.warning(f"Failed to decode {layout.name} observation: {e}")
        return Observation(parse_error=e)

    return Observation(
        layout=layout,
        epoch=int(epoch * 1000),
        wind=wind,
        summary=decoded_summary,
        **values,
    )


def encode_observation(observation: Observation) -> List[Any]:
    """Rebuild the positional row an Observation was decoded from."""
    if observation.parse_error is not None or observation.layout is None:
        raise TempestDecodeError("Cannot encode an observation that failed to decode")

    wind = observation.wind or WindSample(None, None, None, None, None)
    wind_values = {
        "wind_lull": wind.lull,
        "wind_avg": wind.avg,
        "wind_gust": wind.gust,
        "wind_direction": wind.direction,
        "wind_interval": wind.interval,
    }

    row: List[Any] = []
    for name in LAYOUT_FIELDS[observation.layout]:
        if name == "epoch":
            epoch = observation.epoch
            row.append(None if epoch is None else epoch // 1000)
        elif name in wind_values:
            row.append(wind_values[name])
        else:
            row.append(getattr(observation, name))
    return row


def decode_response(payload: Mapping[str, Any]) -> List[Observation]:
    """Decode every row of an ``/observations`` response.

    The layout comes from the response ``type``; an unknown type raises
    TempestDecodeError since there is no way to read its rows. The summary
    block is attached to each row.
    """
    layout = layout_for_type(payload.get("type"))
    rows = payload.get("obs") or []
    summary = payload.get("summary")
    return [decode_observation(row, layout, summary) for row in rows]
