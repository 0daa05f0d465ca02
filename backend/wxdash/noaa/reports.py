"""NOAA-style climatological summaries rendered as fixed-width text."""

from __future__ import annotations

import calendar
import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from typing import Any

from ..config import LocationConfig
from ..errors import NoDataError

MONTHLY_COLUMNS = ("outTemp", "rain", "windSpeed", "windGust", "windDir")
YEARLY_COLUMNS = MONTHLY_COLUMNS

DEGREE_DAY_BASE_F = 65.0


def vector_mean_direction(sin_sum: float, cos_sum: float) -> int:
    """Mean bearing from summed unit-vector components, rounded to whole degrees."""
    bearing = math.degrees(math.atan2(sin_sum, cos_sum))
    if bearing < 0:
        bearing += 360
    return int(bearing + 0.5) % 360


def degree_days(high: float, low: float) -> tuple[float, float]:
    """(heating, cooling) degree days for one day, base 65 F."""
    mean = (high + low) / 2.0
    return max(DEGREE_DAY_BASE_F - mean, 0.0), max(mean - DEGREE_DAY_BASE_F, 0.0)


@dataclass
class DayAggregate:
    temp_count: int = 0
    temp_sum: float = 0.0
    high: float | None = None
    high_time: str = ""
    low: float | None = None
    low_time: str = ""
    rain: float = 0.0
    wind_sum: float = 0.0
    wind_count: int = 0
    gust: float = 0.0
    gust_time: str = ""
    dir_sin: float = 0.0
    dir_cos: float = 0.0
    dir_count: int = 0

    def add(self, row: dict[str, Any], clock_time: str) -> None:
        temp = row.get("outTemp")
        if temp is not None:
            self.temp_count += 1
            self.temp_sum += temp
            if self.high is None or temp > self.high:
                self.high, self.high_time = temp, clock_time
            if self.low is None or temp < self.low:
                self.low, self.low_time = temp, clock_time
        if row.get("rain") is not None:
            self.rain += row["rain"]
        if row.get("windSpeed") is not None:
            self.wind_sum += row["windSpeed"]
            self.wind_count += 1
        gust = row.get("windGust")
        if gust is not None and gust > self.gust:
            self.gust, self.gust_time = gust, clock_time
        if row.get("windDir") is not None:
            radians = math.radians(row["windDir"])
            self.dir_sin += math.sin(radians)
            self.dir_cos += math.cos(radians)
            self.dir_count += 1

    @property
    def has_temp(self) -> bool:
        return self.temp_count > 0

    @property
    def mean_temp(self) -> float:
        return self.temp_sum / self.temp_count

    @property
    def avg_wind(self) -> float | None:
        return self.wind_sum / self.wind_count if self.wind_count else None

    @property
    def mean_dir_components(self) -> tuple[float, float] | None:
        """Average (sin, cos) of the wind direction, or None without direction data."""
        if not self.dir_count:
            return None
        return self.dir_sin / self.dir_count, self.dir_cos / self.dir_count


def aggregate_days(rows: Iterable[dict[str, Any]], tz: tzinfo) -> dict[tuple[int, int, int], DayAggregate]:
    """Bucket archive rows by local (year, month, day)."""
    days: dict[tuple[int, int, int], DayAggregate] = {}
    for row in rows:
        ts = datetime.fromtimestamp(row["dateTime"], tz)
        agg = days.setdefault((ts.year, ts.month, ts.day), DayAggregate())
        agg.add(row, ts.strftime("%H:%M"))
    return days


def _station_header(title: str, location: LocationConfig) -> str:
    lat_hemi = "N" if location.latitude >= 0 else "S"
    lon_hemi = "E" if location.longitude >= 0 else "W"
    return (
        f"{title}\n\n\n"
        f"NAME: {location.name}\n"
        f"ELEV: {location.altitude:.0f} feet    "
        f"LAT: {abs(location.latitude):.2f} {lat_hemi}    "
        f"LONG: {abs(location.longitude):.2f} {lon_hemi}\n\n\n"
    )


MONTHLY_TABLE_HEADER = (
    "                   TEMPERATURE (F), RAIN (in), WIND SPEED (mph)\n\n"
    "                                         HEAT   COOL         AVG\n"
    "      MEAN                               DEG    DEG          WIND                   DOM\n"
    "DAY   TEMP   HIGH   TIME    LOW   TIME   DAYS   DAYS   RAIN  SPEED   HIGH   TIME    DIR\n"
)
MONTHLY_RULE = "-" * 87 + "\n"


def render_monthly(
    rows: Sequence[dict[str, Any]],
    year: int,
    month: int,
    location: LocationConfig,
    tz: tzinfo,
) -> str:
    """Monthly climatological summary: one line per day plus a summary line.

    Raises NoDataError when no day in the month has temperature data.
    """
    days = aggregate_days(rows, tz)
    title_month = datetime(year, month, 1).strftime("%b %Y")
    if not any(agg.has_temp for key, agg in days.items() if key[:2] == (year, month)):
        raise NoDataError(f"no data available for {datetime(year, month, 1):%B %Y}")

    lines = []
    means, highs, lows, gusts, avg_winds = [], [], [], [], []
    rain_total = heat_total = cool_total = 0.0
    month_sin = month_cos = 0.0
    month_dirs = 0

    for day in range(1, calendar.monthrange(year, month)[1] + 1):
        agg = days.get((year, month, day))
        if agg is None or not agg.has_temp:
            lines.append(
                f"{day:3d}     --     --     --     --     --    --     --     --      --     --     --     --\n"
            )
            continue

        heat, cool = degree_days(agg.high, agg.low)
        avg_wind = agg.avg_wind
        if avg_wind is not None:
            avg_winds.append(avg_wind)
        dom_dir = 0
        components = agg.mean_dir_components
        if components is not None:
            dom_dir = vector_mean_direction(*components)
            month_sin += components[0]
            month_cos += components[1]
            month_dirs += 1

        means.append(agg.mean_temp)
        highs.append(agg.high)
        lows.append(agg.low)
        gusts.append(agg.gust)
        rain_total += agg.rain
        heat_total += heat
        cool_total += cool

        lines.append(
            f"{day:3d}   {agg.mean_temp:4.1f}  {agg.high:5.1f}  {agg.high_time:>5s}  "
            f"{agg.low:5.1f}  {agg.low_time:>5s}  {heat:4.0f}   {cool:4.0f}   {agg.rain:4.2f}    "
            f"{(avg_wind or 0.0):4.1f}   {agg.gust:4.1f}  {agg.gust_time:>5s}  {dom_dir:5d}\n"
        )

    summary_dir = f"{vector_mean_direction(month_sin, month_cos):3d}" if month_dirs else "--"
    footer = MONTHLY_RULE + (
        f"      {_mean(means):4.1f}  {_mean(highs):5.1f}         {_mean(lows):5.1f}         "
        f"{heat_total:4.0f}   {cool_total:4.0f}   {rain_total:4.2f}    {_mean(avg_winds):4.1f}   "
        f"{_mean(gusts):4.1f}           {summary_dir:>3s}\n"
    )

    header = _station_header(f"MONTHLY CLIMATOLOGICAL SUMMARY for {title_month}", location)
    return header + MONTHLY_TABLE_HEADER + MONTHLY_RULE + "".join(lines) + footer


@dataclass
class MonthAggregate:
    """Daily aggregates rolled up into one calendar month."""

    days_with_data: int = 0
    high_sum: float = 0.0
    low_sum: float = 0.0
    high: float | None = None
    high_day: int = 0
    low: float | None = None
    low_day: int = 0
    heat_days: float = 0.0
    cool_days: float = 0.0
    max_ge_90: int = 0
    max_le_32: int = 0
    min_le_32: int = 0
    min_le_0: int = 0
    rain: float = 0.0
    max_daily_rain: float = 0.0
    max_rain_day: int = 0
    rain_ge_001: int = 0
    rain_ge_010: int = 0
    rain_ge_100: int = 0
    daily_avg_winds: list[float] = field(default_factory=list)
    gust: float = 0.0
    gust_day: int = 0
    dir_sin: float = 0.0
    dir_cos: float = 0.0
    dir_count: int = 0

    def add_day(self, day: int, agg: DayAggregate) -> None:
        self.days_with_data += 1
        self.high_sum += agg.high
        self.low_sum += agg.low
        if self.high is None or agg.high > self.high:
            self.high, self.high_day = agg.high, day
        if self.low is None or agg.low < self.low:
            self.low, self.low_day = agg.low, day
        heat, cool = degree_days(agg.high, agg.low)
        self.heat_days += heat
        self.cool_days += cool
        self.max_ge_90 += agg.high >= 90.0
        self.max_le_32 += agg.high <= 32.0
        self.min_le_32 += agg.low <= 32.0
        self.min_le_0 += agg.low <= 0.0

        self.rain += agg.rain
        if agg.rain > self.max_daily_rain:
            self.max_daily_rain, self.max_rain_day = agg.rain, day
        self.rain_ge_001 += agg.rain >= 0.01
        self.rain_ge_010 += agg.rain >= 0.10
        self.rain_ge_100 += agg.rain >= 1.00

        if agg.avg_wind is not None:
            self.daily_avg_winds.append(agg.avg_wind)
        if agg.gust > self.gust:
            self.gust, self.gust_day = agg.gust, day
        components = agg.mean_dir_components
        if components is not None:
            self.dir_sin += components[0]
            self.dir_cos += components[1]
            self.dir_count += 1

    @property
    def mean_max(self) -> float:
        return self.high_sum / self.days_with_data

    @property
    def mean_min(self) -> float:
        return self.low_sum / self.days_with_data

    @property
    def avg_wind(self) -> float:
        return _mean(self.daily_avg_winds)

    @property
    def mean_dir_components(self) -> tuple[float, float] | None:
        if not self.dir_count:
            return None
        return self.dir_sin / self.dir_count, self.dir_cos / self.dir_count


def render_yearly(
    rows: Sequence[dict[str, Any]],
    year: int,
    location: LocationConfig,
    tz: tzinfo,
) -> str:
    """Yearly climatological summary with temperature, precipitation and wind sections.

    Raises NoDataError when no month of the year has temperature data.
    """
    months = {m: MonthAggregate() for m in range(1, 13)}
    for (y, m, d), agg in sorted(aggregate_days(rows, tz).items()):
        if y == year and agg.has_temp:
            months[m].add_day(d, agg)
    active = [months[m] for m in range(1, 13) if months[m].days_with_data]
    if not active:
        raise NoDataError(f"no data available for year {year}")

    out = [
        _station_header(f"CLIMATOLOGICAL SUMMARY for year {year}", location),
        "                                       TEMPERATURE (F)\n\n",
        "                              HEAT    COOL                              MAX    MAX    MIN    MIN\n",
        "          MEAN   MEAN         DEG     DEG                                >=     <=     <=     <=\n",
        " YR  MO   MAX    MIN    MEAN  DAYS    DAYS      HI  DAY     LOW  DAY     90     32     32      0\n",
        "-" * 96 + "\n",
    ]
    for m, agg in months.items():
        if not agg.days_with_data:
            out.append(
                f"{year:4d} {m:02d}     --     --      --   --     --      --   --      --   --      --     --     --     --\n"
            )
            continue
        mean = (agg.mean_max + agg.mean_min) / 2.0
        out.append(
            f"{year:4d} {m:02d}  {agg.mean_max:5.1f}  {agg.mean_min:5.1f}   {mean:5.1f}  "
            f"{agg.heat_days:3.0f}   {agg.cool_days:3.0f}   {agg.high:5.1f}  {agg.high_day:3d}   "
            f"{agg.low:5.1f}  {agg.low_day:3d}     {agg.max_ge_90:3d}    {agg.max_le_32:3d}    "
            f"{agg.min_le_32:3d}    {agg.min_le_0:3d}\n"
        )

    mean_maxes = [a.mean_max for a in active]
    mean_mins = [a.mean_min for a in active]
    out.append("-" * 96 + "\n")
    out.append(
        f"          {_mean(mean_maxes):5.1f}  {_mean(mean_mins):5.1f}   "
        f"{(_mean(mean_maxes) + _mean(mean_mins)) / 2.0:5.1f}  "
        f"{sum(a.heat_days for a in active):3.0f}   {sum(a.cool_days for a in active):3.0f}   "
        f"{max(a.high for a in active):5.1f}  --    {min(a.low for a in active):5.1f}  --      "
        f"{sum(a.max_ge_90 for a in active):2d}     {sum(a.max_le_32 for a in active):2d}     "
        f"{sum(a.min_le_32 for a in active):2d}     {sum(a.min_le_0 for a in active):2d}\n\n\n"
    )

    out.append(
        "                  PRECIPITATION (in)\n\n"
        "                  MAX         ---DAYS OF RAIN---\n"
        "                  OBS.               OVER\n"
        " YR  MO  TOTAL    DAY  DATE   0.01   0.10   1.00\n" + "-" * 48 + "\n"
    )
    for m, agg in months.items():
        if not agg.days_with_data:
            out.append(f"{year:4d} {m:02d}    --      --   --     --     --    --\n")
            continue
        out.append(
            f"{year:4d} {m:02d} {agg.rain:5.2f}   {agg.max_daily_rain:5.2f}   {agg.max_rain_day:2d}     "
            f"{agg.rain_ge_001:2d}     {agg.rain_ge_010:2d}    {agg.rain_ge_100:2d}\n"
        )
    out.append("-" * 48 + "\n")
    out.append(
        f"        {sum(a.rain for a in active):5.2f}   {max(a.max_daily_rain for a in active):5.2f}          "
        f"{sum(a.rain_ge_001 for a in active):2d}     {sum(a.rain_ge_010 for a in active):2d}    "
        f"{sum(a.rain_ge_100 for a in active):2d}\n\n\n"
    )

    out.append(
        "           WIND SPEED (mph)\n\n"
        "                                DOM\n"
        " YR  MO    AVG     HI   DATE    DIR\n" + "-" * 35 + "\n"
    )
    year_sin = year_cos = 0.0
    year_dirs = 0
    monthly_winds = []
    for m, agg in months.items():
        if not agg.days_with_data:
            out.append(f"{year:4d} {m:02d}     --     --     --    --\n")
            continue
        if agg.daily_avg_winds:
            monthly_winds.append(agg.avg_wind)
        dom_dir = "--"
        components = agg.mean_dir_components
        if components is not None:
            dom_dir = f"{vector_mean_direction(*components):3d}"
            year_sin += components[0]
            year_cos += components[1]
            year_dirs += 1
        out.append(f"{year:4d} {m:02d}  {agg.avg_wind:5.1f}  {agg.gust:5.1f}     {agg.gust_day:2d}   {dom_dir:>3s}\n")

    year_dir = f"{vector_mean_direction(year_sin, year_cos):3d}" if year_dirs else "--"
    out.append("-" * 35 + "\n")
    out.append(f"         {_mean(monthly_winds):5.1f}  {_mean([a.gust for a in active]):5.1f}          {year_dir:>3s}\n")
    return "".join(out)


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0
