"""Tests for NOAA report rendering."""

from datetime import datetime, timezone

import pytest

from wxdash.config import LocationConfig
from wxdash.errors import NoDataError
from wxdash.noaa.reports import degree_days, render_monthly, render_yearly, vector_mean_direction

UTC = timezone.utc
STATION = LocationConfig(name="Test Station", latitude=32.09, longitude=-110.78, altitude=2650)


def row(year, month, day, hour, **values):
    ts = int(datetime(year, month, day, hour, tzinfo=UTC).timestamp())
    return {"dateTime": ts, **values}


JUNE_ROWS = [
    row(2024, 5, 31, 12, outTemp=99.0),  # Outside the month
    row(2024, 6, 1, 6, outTemp=60.0, rain=0.10, windSpeed=5.0, windGust=9.0, windDir=90.0),
    row(2024, 6, 1, 14, outTemp=80.0, rain=0.05, windSpeed=10.0, windGust=15.0, windDir=90.0),
    row(2024, 6, 3, 3, outTemp=50.0, rain=0.0),
    row(2024, 6, 3, 15, outTemp=56.0),
]

JANUARY_ROWS = [
    row(2024, 1, 5, 6, outTemp=30.0),
    row(2024, 1, 5, 14, outTemp=40.0, rain=1.2),
]


def line_for(text: str, prefix: str, after: str = "") -> list[str]:
    """Whitespace-split tokens of the first line starting with prefix (after a marker)."""
    start = text.index(after) if after else 0
    for line in text[start:].splitlines():
        if line.startswith(prefix):
            return line.split()
    raise AssertionError(f"no line starting with {prefix!r}")


class TestHelpers:
    """Unit tests for report helpers."""

    def test_degree_days(self):
        assert degree_days(80.0, 60.0) == (0.0, 5.0)
        assert degree_days(56.0, 50.0) == (12.0, 0.0)
        assert degree_days(70.0, 60.0) == (0.0, 0.0)

    def test_vector_mean_direction(self):
        assert vector_mean_direction(1.0, 0.0) == 90
        assert vector_mean_direction(0.0, -1.0) == 180
        assert vector_mean_direction(-1.0, 0.0) == 270
        # 350 and 10 average to north, not 180
        assert vector_mean_direction(0.0, 2.0) == 0


class TestRenderMonthly:
    """Tests for the monthly summary."""

    def test_header(self):
        text = render_monthly(JUNE_ROWS, 2024, 6, STATION, UTC)
        assert text.startswith("MONTHLY CLIMATOLOGICAL SUMMARY for Jun 2024")
        assert "NAME: Test Station" in text
        assert "ELEV: 2650 feet" in text
        assert "LAT: 32.09 N" in text
        assert "LONG: 110.78 W" in text

    def test_day_with_data(self):
        text = render_monthly(JUNE_ROWS, 2024, 6, STATION, UTC)
        assert line_for(text, "  1 ") == [
            "1", "70.0", "80.0", "14:00", "60.0", "06:00", "0", "5", "0.15", "7.5", "15.0", "14:00", "90",
        ]

    def test_day_without_data(self):
        text = render_monthly(JUNE_ROWS, 2024, 6, STATION, UTC)
        tokens = line_for(text, "  2 ")
        assert tokens[0] == "2"
        assert set(tokens[1:]) == {"--"}

    def test_one_line_per_day(self):
        text = render_monthly(JUNE_ROWS, 2024, 6, STATION, UTC)
        rule = "-" * 87
        body = text.split(rule)[1]
        assert len(body.strip("\n").splitlines()) == 30

    def test_summary_line(self):
        text = render_monthly(JUNE_ROWS, 2024, 6, STATION, UTC)
        summary = text.rstrip("\n").splitlines()[-1].split()
        assert summary == ["61.5", "68.0", "55.0", "12", "5", "0.15", "7.5", "7.5", "90"]

    def test_rows_outside_month_are_ignored(self):
        text = render_monthly(JUNE_ROWS, 2024, 6, STATION, UTC)
        assert "99.0" not in text

    def test_no_data(self):
        with pytest.raises(NoDataError, match="June 2024"):
            render_monthly([], 2024, 6, STATION, UTC)

    def test_rows_without_temperature_are_no_data(self):
        with pytest.raises(NoDataError):
            render_monthly([row(2024, 6, 1, 6, rain=0.2)], 2024, 6, STATION, UTC)


class TestRenderYearly:
    """Tests for the yearly summary."""

    def test_temperature_section(self):
        text = render_yearly(JANUARY_ROWS + JUNE_ROWS, 2024, STATION, UTC)
        assert text.startswith("CLIMATOLOGICAL SUMMARY for year 2024")
        assert line_for(text, "2024 01") == [
            "2024", "01", "40.0", "30.0", "35.0", "30", "0", "40.0", "5", "30.0", "5", "0", "0", "1", "0",
        ]
        assert line_for(text, "2024 06") == [
            "2024", "06", "68.0", "55.0", "61.5", "12", "5", "80.0", "1", "50.0", "3", "0", "0", "0", "0",
        ]
        assert line_for(text, "2024 02")[2] == "--"

    def test_precipitation_section(self):
        text = render_yearly(JANUARY_ROWS + JUNE_ROWS, 2024, STATION, UTC)
        assert line_for(text, "2024 01", after="PRECIPITATION") == ["2024", "01", "1.20", "1.20", "5", "1", "1", "1"]
        assert line_for(text, "2024 06", after="PRECIPITATION") == ["2024", "06", "0.15", "0.15", "1", "1", "1", "0"]

    def test_wind_section(self):
        text = render_yearly(JANUARY_ROWS + JUNE_ROWS, 2024, STATION, UTC)
        assert line_for(text, "2024 01", after="WIND SPEED") == ["2024", "01", "0.0", "0.0", "0", "--"]
        assert line_for(text, "2024 06", after="WIND SPEED") == ["2024", "06", "7.5", "15.0", "1", "90"]

    def test_no_data(self):
        with pytest.raises(NoDataError, match="2023"):
            render_yearly(JUNE_ROWS, 2023, STATION, UTC)
