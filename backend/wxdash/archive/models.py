"""Data models for archive records."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Any

# Archive column -> ArchiveRecord attribute, in the order the latest-record query selects them
RECORD_COLUMNS: dict[str, str] = {
    "outTemp": "out_temp",
    "dewpoint": "dewpoint",
    "barometer": "barometer",
    "outHumidity": "out_humidity",
    "windSpeed": "wind_speed",
    "windGust": "wind_gust",
    "windDir": "wind_dir",
    "rainRate": "rain_rate",
    "rain": "rain",
    "lightning_strike_count": "lightning_strike_count",
    "inTemp": "in_temp",
    "inHumidity": "in_humidity",
}


@dataclass(frozen=True, slots=True)
class ArchiveRecord:
    """Immutable snapshot of one archive row. Every sensor field may be None."""

    timestamp: int  # Unix seconds (archive dateTime)
    out_temp: float | None = None
    dewpoint: float | None = None
    barometer: float | None = None
    out_humidity: float | None = None
    wind_speed: float | None = None
    wind_gust: float | None = None
    wind_dir: float | None = None
    rain_rate: float | None = None
    rain: float | None = None
    lightning_strike_count: float | None = None
    in_temp: float | None = None
    in_humidity: float | None = None

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> ArchiveRecord:
        """Build a record from a mapping keyed by archive column names."""
        values: dict[str, Any] = {}
        for column, attr in RECORD_COLUMNS.items():
            value = row.get(column)
            values[attr] = float(value) if value is not None else None
        return cls(timestamp=int(row["dateTime"]), **values)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON / SSE transmission. Null fields are omitted."""
        result: dict[str, Any] = {"timestamp": self.timestamp}
        for column, attr in RECORD_COLUMNS.items():
            value = getattr(self, attr)
            if value is not None:
                result[column] = value
        return result


def iso_timestamp(epoch: int | float, tz: tzinfo) -> str:
    """Render archive epoch seconds as ISO-8601 in the station timezone."""
    return datetime.fromtimestamp(epoch, tz).isoformat()
