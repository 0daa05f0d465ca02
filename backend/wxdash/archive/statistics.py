"""Summary statistics for the dashboard's statistics panel."""

from __future__ import annotations

import math
from collections.abc import Callable, Sequence
from typing import Any

import numpy as np

STATISTICS_COLUMNS = (
    "rain",
    "rainRate",
    "lightning_strike_count",
    "lightning_distance",
    "outTemp",
    "dewpoint",
    "outHumidity",
    "barometer",
    "heatindex",
    "windchill",
    "windSpeed",
    "windGust",
    "windDir",
    "inTemp",
    "inHumidity",
)

MISSING = "--"


def _round_half_away(v: float) -> int:
    return int(math.copysign(math.floor(abs(v) + 0.5), v))


def fmt0(v: float) -> str:
    return str(_round_half_away(v))


def fmt1(v: float) -> str:
    return f"{v:.1f}"


def fmt2(v: float) -> str:
    return f"{v:.2f}"


def column(rows: Sequence[dict[str, Any]], name: str) -> np.ndarray:
    """Extract one column as a float array with NULLs as NaN."""
    return np.array(
        [np.nan if row.get(name) is None else float(row[name]) for row in rows],
        dtype=float,
    )


def hi_lo(values: np.ndarray, formatter: Callable[[float], str]) -> str:
    """Format ``"hi / lo"`` over the non-NaN values, or ``--`` when there are none."""
    valid = values[~np.isnan(values)]
    if valid.size == 0:
        return MISSING
    return f"{formatter(float(valid.max()))} / {formatter(float(valid.min()))}"


def feels_like_series(heat_index: np.ndarray, wind_chill: np.ndarray, temp: np.ndarray) -> np.ndarray:
    """Per-row apparent temperature: heat index, else wind chill, else air temperature."""
    return np.where(~np.isnan(heat_index), heat_index, np.where(~np.isnan(wind_chill), wind_chill, temp))


def wind_summary(speed: np.ndarray, gust: np.ndarray, direction: np.ndarray) -> dict[str, str]:
    """Average, RMS, vector mean and peak gust for one window."""
    has_speed = ~np.isnan(speed)
    count = int(has_speed.sum())
    result = {"avg": MISSING, "rms": MISSING, "vector": MISSING, "vector_dir": MISSING, "max": MISSING}

    if count:
        speeds = speed[has_speed]
        result["avg"] = fmt0(float(speeds.mean()))
        result["rms"] = fmt0(float(np.sqrt(np.mean(speeds**2))))

        has_vector = has_speed & ~np.isnan(direction)
        radians = np.deg2rad(direction[has_vector])
        ux = float(np.sum(speed[has_vector] * np.cos(radians)))
        uy = float(np.sum(speed[has_vector] * np.sin(radians)))
        if ux != 0 or uy != 0:
            result["vector"] = fmt0(math.hypot(ux, uy) / count)
            bearing = math.degrees(math.atan2(uy, ux))
            if bearing < 0:
                bearing += 360
            result["vector_dir"] = fmt0(bearing)

    has_gust = ~np.isnan(gust)
    if has_gust.any():
        # nanargmax returns the first occurrence of the peak
        idx = int(np.nanargmax(np.where(has_gust, gust, -np.inf)))
        peak = float(gust[idx])
        if peak > 0:
            text = fmt0(peak)
            if not np.isnan(direction[idx]):
                text += " • " + fmt0(float(direction[idx]))
            result["max"] = text

    return result


def _window(arrays: dict[str, np.ndarray], mask: np.ndarray) -> dict[str, Any]:
    a = {name: values[mask] for name, values in arrays.items()}

    rain = a["rain"]
    strikes = a["lightning_strike_count"]
    rain_rate = a["rainRate"]
    distance = a["lightning_distance"]
    distance = distance[~np.isnan(distance) & (distance > 0)]
    wind = wind_summary(a["windSpeed"], a["windGust"], a["windDir"])

    return {
        "rain": round(float(np.nansum(rain)), 2),
        "strikes": int(np.nansum(strikes)),
        "temp": hi_lo(a["outTemp"], fmt1),
        "feels": hi_lo(feels_like_series(a["heatindex"], a["windchill"], a["outTemp"]), fmt1),
        "windchill": fmt1(float(np.nanmin(a["windchill"])))
        if (~np.isnan(a["windchill"])).any()
        else MISSING,
        "dew": hi_lo(a["dewpoint"], fmt1),
        "humidity": hi_lo(a["outHumidity"], fmt0),
        "barometer": hi_lo(a["barometer"], fmt2),
        "wind_avg": wind["avg"],
        "wind_max": wind["max"],
        "wind_rms": wind["rms"],
        "wind_vector": wind["vector"],
        "wind_vector_dir": wind["vector_dir"],
        "rain_rate": fmt2(float(np.nanmax(rain_rate)) if (~np.isnan(rain_rate)).any() else 0.0),
        "lightning_dist": fmt1(float(distance.min())) if distance.size else MISSING,
        "inside_temp": hi_lo(a["inTemp"], fmt1),
        "inside_hum": hi_lo(a["inHumidity"], fmt0),
    }


# Response key prefix for each window aggregate
_RESPONSE_KEYS = {
    "rain": "rain",
    "strikes": "strikes",
    "temp": "temp",
    "feels": "feels",
    "windchill": "windchill",
    "dew": "dew",
    "humidity": "humidity",
    "barometer": "barometer",
    "wind_avg": "windAvg",
    "wind_max": "windMax",
    "wind_rms": "windRms",
    "wind_vector": "windVector",
    "wind_vector_dir": "windVectorDir",
    "rain_rate": "rainRate",
    "lightning_dist": "lightningDist",
    "inside_temp": "insideTemp",
    "inside_hum": "insideHum",
}


def compute_statistics(rows: Sequence[dict[str, Any]], midnight: int) -> dict[str, Any]:
    """Aggregate rows into the ``<metric>Today`` / ``<metric>Range`` response.

    ``rows`` cover the selected range; "today" is the subset at or after
    ``midnight`` (local midnight, epoch seconds).
    """
    timestamps = np.array([row["dateTime"] for row in rows], dtype=np.int64)
    arrays = {name: column(rows, name) for name in STATISTICS_COLUMNS}

    today = _window(arrays, timestamps >= midnight)
    in_range = _window(arrays, np.ones(len(rows), dtype=bool))

    result: dict[str, Any] = {}
    for key, prefix in _RESPONSE_KEYS.items():
        result[f"{prefix}Today"] = today[key]
        result[f"{prefix}Range"] = in_range[key]
    return result
