"""Derived values computed from the newest readings of a series."""

from __future__ import annotations

import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

COMPASS_POINTS = (
    "N", "NNE", "NE", "ENE",
    "E", "ESE", "SE", "SSE",
    "S", "SSW", "SW", "WSW",
    "W", "WNW", "NW", "NNW",
)

HIGH_PRESSURE_INHG = 30.20
LOW_PRESSURE_INHG = 29.80

# Archive interval is typically 5 minutes, so 4 steps back is ~25 minutes.
# Scaling the change by 2.4 approximates a per-hour rate.
TREND_LOOKBACK = 4
TREND_HOURLY_SCALE = 2.4
RAPID_CHANGE_INHG = 0.06
SLOW_CHANGE_INHG = 0.02

FORECASTS: dict[str, dict[str, str]] = {
    "high": {
        "steady": "Fair weather",
        "slow-rise": "Fair weather",
        "rapid-rise": "Fair, improving",
        "slow-fall": "Cloudy later",
        "rapid-fall": "Warmer, cloudier",
    },
    "normal": {
        "steady": "Conditions continue",
        "slow-rise": "Conditions continue",
        "rapid-rise": "Improving",
        "slow-fall": "Minor changes",
        "rapid-fall": "Rain/snow likely",
    },
    "low": {
        "steady": "Cooler, clearing",
        "slow-rise": "Cooler, clearing",
        "rapid-rise": "Improving quickly",
        "slow-fall": "Rain coming",
        "rapid-fall": "Stormy weather",
    },
}

HEAT_INDEX_THRESHOLD_F = 80.0
WIND_CHILL_THRESHOLD_F = 50.0

RECENT_ACTIVITY_SECONDS = 10 * 60


@dataclass(frozen=True, slots=True)
class BarometerOutlook:
    level: str  # high, normal, low
    trend: str  # rapid-rise, slow-rise, steady, slow-fall, rapid-fall
    forecast: str


@dataclass(frozen=True, slots=True)
class FeelsLike:
    value: float
    source: str  # heat, chill, air
    label: str


def pressure_level(pressure: float) -> str:
    if pressure > HIGH_PRESSURE_INHG:
        return "high"
    if pressure < LOW_PRESSURE_INHG:
        return "low"
    return "normal"


def pressure_trend(change: float) -> str:
    """Classify a pressure change over the lookback window."""
    per_hour = abs(change) * TREND_HOURLY_SCALE
    if change == 0 or per_hour < SLOW_CHANGE_INHG:
        return "steady"
    speed = "rapid" if per_hour >= RAPID_CHANGE_INHG else "slow"
    return f"{speed}-{'rise' if change > 0 else 'fall'}"


def barometer_outlook(pressures: Sequence[float]) -> BarometerOutlook | None:
    """Level, trend and forecast for the newest pressure.

    Needs more than TREND_LOOKBACK readings; returns None otherwise.
    """
    if len(pressures) <= TREND_LOOKBACK:
        return None
    current = pressures[-1]
    prior = pressures[-1 - TREND_LOOKBACK]
    level = pressure_level(current)
    trend = pressure_trend(current - prior)
    return BarometerOutlook(level=level, trend=trend, forecast=FORECASTS[level][trend])


def pick_feels_like(temp_f: float, heat_index_f: float | None, wind_chill_f: float | None) -> FeelsLike:
    """Choose which apparent temperature to show.

    Heat index applies at or above 80 F, wind chill at or below 50 F. A missing
    or zero index falls back to the air temperature.
    """
    if heat_index_f and not math.isnan(heat_index_f) and temp_f >= HEAT_INDEX_THRESHOLD_F:
        return FeelsLike(value=heat_index_f, source="heat", label="Heat Index")
    if wind_chill_f and not math.isnan(wind_chill_f) and temp_f <= WIND_CHILL_THRESHOLD_F:
        return FeelsLike(value=wind_chill_f, source="chill", label="Wind Chill")
    return FeelsLike(value=temp_f, source="air", label="Air Temp")


def degrees_to_compass(degrees: float | None) -> str:
    """16-point compass name for a bearing; ``--`` when unknown."""
    if degrees is None or math.isnan(degrees):
        return "--"
    # Half-way bearings round clockwise (11.25 -> NNE)
    index = math.floor((degrees % 360.0) / 22.5 + 0.5) % 16
    return COMPASS_POINTS[index]


def recently_active(
    rows: Sequence[dict[str, Any]],
    is_active: Callable[[dict[str, Any]], bool],
    now: float,
    window: float = RECENT_ACTIVITY_SECONDS,
) -> bool:
    """Scan backwards from the newest row for activity within ``window`` seconds of ``now``."""
    cutoff = now - window
    for row in reversed(rows):
        if row["dateTime"] < cutoff:
            break
        if is_active(row):
            return True
    return False
