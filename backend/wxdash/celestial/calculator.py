"""Astronomical calculations for one date, delegated to astral."""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from datetime import date as Date
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from astral import Depression, Observer, SunDirection, moon
from astral import sun as astral_sun

from .models import CelestialData, Coordinates, MoonPhase

logger = logging.getLogger(__name__)

# astral reports the moon phase on a 0..28 scale (0 new, 14 full)
ASTRAL_PHASE_SCALE = 28.0

# Eight phase names, each centred on its elongation (0 = new, 180 = full)
PHASE_NAMES = (
    "New Moon",
    "Waxing Crescent",
    "First Quarter",
    "Waxing Gibbous",
    "Full Moon",
    "Waning Gibbous",
    "Last Quarter",
    "Waning Crescent",
)


def moon_phase_at(when: datetime) -> MoonPhase:
    """Illumination, elongation and name of the moon on the date of ``when``.

    The illuminated fraction follows from the elongation angle.
    """
    age = moon.phase(when.date())
    elongation = (age / ASTRAL_PHASE_SCALE * 360.0) % 360.0
    fraction = (1.0 - math.cos(math.radians(elongation))) / 2.0
    name = PHASE_NAMES[int((elongation + 22.5) // 45) % 8]
    return MoonPhase(
        fraction=round(fraction, 4),
        elongation=round(elongation, 2),
        waxing=elongation < 180.0,
        name=name,
    )


def _optional(label: str, fn: Callable[[], datetime | None]) -> datetime | None:
    """Run an event calculation; events that do not happen on this date give None.

    astral raises ValueError when the sun or moon never reaches the requested
    altitude (polar day/night, no moonrise on a given date).
    """
    try:
        return fn()
    except ValueError as e:
        logger.debug("No %s: %s", label, e)
        return None


def _window(label: str, fn: Callable[[], tuple[datetime, datetime]]) -> tuple[datetime | None, datetime | None]:
    try:
        start, end = fn()
    except ValueError as e:
        logger.debug("No %s: %s", label, e)
        return None, None
    return start, end


def compute_celestial_data(coords: Coordinates, day: Date, tz_name: str) -> CelestialData:
    """Compute sun, moon and twilight events for ``day`` in timezone ``tz_name``.

    Blocking and CPU-bound; async callers should run it in a worker thread.
    Raises ValueError for an unknown timezone.
    """
    try:
        tz = ZoneInfo(tz_name)
    except (KeyError, ValueError) as e:
        raise ValueError(f"unknown timezone {tz_name!r}") from e

    observer = Observer(latitude=coords.latitude, longitude=coords.longitude)

    sunrise = _optional("sunrise", lambda: astral_sun.sunrise(observer, day, tzinfo=tz))
    sunset = _optional("sunset", lambda: astral_sun.sunset(observer, day, tzinfo=tz))

    daylight_hours = None
    if sunrise is not None and sunset is not None:
        span = sunset - sunrise
        if span < timedelta(0):
            span += timedelta(days=1)
        daylight_hours = round(span.total_seconds() / 3600.0, 4)

    twilight: dict[str, datetime | None] = {}
    for name, depression in (
        ("civil", Depression.CIVIL),
        ("nautical", Depression.NAUTICAL),
        ("astronomical", Depression.ASTRONOMICAL),
    ):
        twilight[f"{name}_dawn"] = _optional(
            f"{name} dawn", lambda d=depression: astral_sun.dawn(observer, day, depression=d, tzinfo=tz)
        )
        twilight[f"{name}_dusk"] = _optional(
            f"{name} dusk", lambda d=depression: astral_sun.dusk(observer, day, depression=d, tzinfo=tz)
        )

    golden_am = _window(
        "morning golden hour",
        lambda: astral_sun.golden_hour(observer, day, direction=SunDirection.RISING, tzinfo=tz),
    )
    golden_pm = _window(
        "evening golden hour",
        lambda: astral_sun.golden_hour(observer, day, direction=SunDirection.SETTING, tzinfo=tz),
    )
    blue_am = _window(
        "morning blue hour",
        lambda: astral_sun.blue_hour(observer, day, direction=SunDirection.RISING, tzinfo=tz),
    )
    blue_pm = _window(
        "evening blue hour",
        lambda: astral_sun.blue_hour(observer, day, direction=SunDirection.SETTING, tzinfo=tz),
    )

    moonrise = _optional("moonrise", lambda: moon.moonrise(observer, day, tzinfo=tz))
    moonset = _optional("moonset", lambda: moon.moonset(observer, day, tzinfo=tz))
    # Phase at local noon of the requested date
    phase = moon_phase_at(datetime(day.year, day.month, day.day, 12, tzinfo=tz))

    return CelestialData(
        date=day.isoformat(),
        timezone=tz_name,
        sunrise=sunrise,
        sunset=sunset,
        daylight_hours=daylight_hours,
        moonrise=moonrise,
        moonset=moonset,
        moon_phase=phase,
        golden_hour_morning_start=golden_am[0],
        golden_hour_morning_end=golden_am[1],
        golden_hour_evening_start=golden_pm[0],
        golden_hour_evening_end=golden_pm[1],
        blue_hour_morning_start=blue_am[0],
        blue_hour_morning_end=blue_am[1],
        blue_hour_evening_start=blue_pm[0],
        blue_hour_evening_end=blue_pm[1],
        **twilight,
    )
