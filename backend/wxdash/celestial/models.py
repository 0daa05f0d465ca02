"""Data models for per-day celestial data."""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import datetime
from typing import Any


@dataclass(frozen=True, slots=True)
class Coordinates:
    latitude: float
    longitude: float  # west is negative

    def __post_init__(self) -> None:
        if not -90.0 <= self.latitude <= 90.0:
            raise ValueError(f"latitude out of range: {self.latitude}")
        if not -180.0 <= self.longitude <= 180.0:
            raise ValueError(f"longitude out of range: {self.longitude}")


@dataclass(frozen=True, slots=True)
class MoonPhase:
    fraction: float  # illuminated fraction, 0..1
    elongation: float  # degrees from the sun, 0..360
    waxing: bool
    name: str

    @property
    def percentage(self) -> int:
        return int(self.fraction * 100)

    def to_dict(self) -> dict[str, Any]:
        return {
            "fraction": self.fraction,
            "elongation": self.elongation,
            "waxing": self.waxing,
            "name": self.name,
            "percentage": self.percentage,
        }


@dataclass(frozen=True, slots=True)
class CelestialData:
    """Sun and moon events for one local date. Events that do not occur are None."""

    date: str  # YYYY-MM-DD
    timezone: str
    sunrise: datetime | None = None
    sunset: datetime | None = None
    daylight_hours: float | None = None
    moonrise: datetime | None = None
    moonset: datetime | None = None
    moon_phase: MoonPhase | None = None
    civil_dawn: datetime | None = None
    civil_dusk: datetime | None = None
    nautical_dawn: datetime | None = None
    nautical_dusk: datetime | None = None
    astronomical_dawn: datetime | None = None
    astronomical_dusk: datetime | None = None
    golden_hour_morning_start: datetime | None = None
    golden_hour_morning_end: datetime | None = None
    golden_hour_evening_start: datetime | None = None
    golden_hour_evening_end: datetime | None = None
    blue_hour_morning_start: datetime | None = None
    blue_hour_morning_end: datetime | None = None
    blue_hour_evening_start: datetime | None = None
    blue_hour_evening_end: datetime | None = None

    @property
    def daylight_formatted(self) -> str | None:
        """Daylight as ``"Xh Ym"``."""
        if self.daylight_hours is None:
            return None
        hours = int(self.daylight_hours)
        minutes = int((self.daylight_hours - hours) * 60)
        return f"{hours}h {minutes}m"

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON.

        Each event is emitted as ISO-8601 under its camelCase name and as
        local ``HH:MM`` under ``<name>24``. Missing events are omitted.
        """
        result: dict[str, Any] = {"date": self.date, "timezone": self.timezone}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, datetime):
                key = _camel(f.name)
                result[key] = value.isoformat()
                result[f"{key}24"] = value.strftime("%H:%M")
        if self.daylight_hours is not None:
            result["daylightHours"] = self.daylight_hours
            result["daylightHoursFormatted"] = self.daylight_formatted
        if self.moon_phase is not None:
            result["moonPhase"] = self.moon_phase.to_dict()
        return result


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)
