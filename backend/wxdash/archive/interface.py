"""Abstract interface for the sensor archive."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from typing import Any

from .models import ArchiveRecord

# Columns that callers may request from fetch_rows()
ARCHIVE_COLUMNS: frozenset[str] = frozenset(
    {
        "dateTime",
        "outTemp",
        "dewpoint",
        "barometer",
        "outHumidity",
        "heatindex",
        "windchill",
        "windSpeed",
        "windGust",
        "windDir",
        "rainRate",
        "rain",
        "lightning_strike_count",
        "lightning_distance",
        "inTemp",
        "inHumidity",
    }
)


def validate_columns(columns: Iterable[str]) -> list[str]:
    """Return columns as a list, rejecting anything not in ARCHIVE_COLUMNS."""
    result = list(columns)
    unknown = [c for c in result if c not in ARCHIVE_COLUMNS]
    if unknown:
        raise ValueError(f"unknown archive columns: {', '.join(unknown)}")
    return result


class ArchiveSource(ABC):
    """Contract for the time-ordered store of station readings.

    All methods are blocking. Async callers run them via asyncio.to_thread();
    FastAPI runs plain ``def`` handlers in its threadpool.

    Every database failure surfaces as ArchiveError.
    """

    @abstractmethod
    def ping(self) -> None:
        """Check the store is reachable. Raises ArchiveError if not."""

    @abstractmethod
    def latest_marker(self) -> int | None:
        """Return the newest dateTime in the archive, or None when it is empty.

        This is the cheap change-detection query the broker runs every tick.
        """

    @abstractmethod
    def latest_record(self) -> ArchiveRecord | None:
        """Return the newest full row, or None when the archive is empty."""

    @abstractmethod
    def fetch_rows(
        self,
        columns: Sequence[str],
        start: int,
        end: int | None = None,
        not_null: Sequence[str] = (),
    ) -> list[dict[str, Any]]:
        """Return rows with start <= dateTime < end, oldest first.

        Each row is a dict with ``dateTime`` plus the requested columns.
        Rows where any column in ``not_null`` is NULL are skipped.
        """

    def close(self) -> None:
        """Release connections. Safe to call multiple times."""
