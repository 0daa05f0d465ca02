"""Pytest configuration and fixtures."""

from __future__ import annotations

from typing import Any

import pytest
from sqlalchemy import text

from wxdash.archive.interface import ARCHIVE_COLUMNS, ArchiveSource
from wxdash.archive.models import ArchiveRecord
from wxdash.archive.sql_source import SQLArchiveSource
from wxdash.errors import ArchiveError


@pytest.fixture
def event_loop_policy():
    """Use the default event loop policy for all async tests."""
    import asyncio

    return asyncio.DefaultEventLoopPolicy()


class FakeArchiveSource(ArchiveSource):
    """In-memory archive. Rows are dicts keyed by archive column names.

    ``markers`` (if set) scripts the values returned by successive
    latest_marker() calls; an ArchiveError instance in the list is raised.
    """

    def __init__(self, rows: list[dict[str, Any]] | None = None) -> None:
        self.rows = sorted(rows or [], key=lambda r: r["dateTime"])
        self.markers: list[int | None | ArchiveError] | None = None
        self._scripted: int | None = None
        self.fail = False
        self.marker_calls = 0
        self.record_calls = 0
        self.fetch_calls = 0
        self.closed = False

    def add(self, **row: Any) -> None:
        self.rows.append(row)
        self.rows.sort(key=lambda r: r["dateTime"])

    def ping(self) -> None:
        if self.fail:
            raise ArchiveError("database unreachable: fake outage")

    def latest_marker(self) -> int | None:
        self.marker_calls += 1
        if self.fail:
            raise ArchiveError("fake outage")
        if self.markers is not None:
            value = self.markers.pop(0)
            if isinstance(value, ArchiveError):
                raise value
            self._scripted = value
            return value
        return self.rows[-1]["dateTime"] if self.rows else None

    def latest_record(self) -> ArchiveRecord | None:
        self.record_calls += 1
        if self.fail:
            raise ArchiveError("fake outage")
        if self.markers is not None:
            # Scripted markers: the "newest row" carries the last marker handed out
            return ArchiveRecord(timestamp=self._scripted, out_temp=90.0)
        return ArchiveRecord.from_row(self.rows[-1]) if self.rows else None

    def fetch_rows(self, columns, start, end=None, not_null=()):
        self.fetch_calls += 1
        if self.fail:
            raise ArchiveError("fake outage")
        unknown = [c for c in [*columns, *not_null] if c not in ARCHIVE_COLUMNS]
        if unknown:
            raise ValueError(f"unknown archive columns: {', '.join(unknown)}")
        result = []
        for row in self.rows:
            if row["dateTime"] < start or (end is not None and row["dateTime"] >= end):
                continue
            if any(row.get(c) is None for c in not_null):
                continue
            result.append({"dateTime": row["dateTime"], **{c: row.get(c) for c in columns if c != "dateTime"}})
        return result

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_source() -> FakeArchiveSource:
    return FakeArchiveSource()


_ARCHIVE_DDL = "CREATE TABLE archive (dateTime INTEGER NOT NULL UNIQUE, {columns})".format(
    columns=", ".join(f"{c} REAL" for c in sorted(ARCHIVE_COLUMNS - {"dateTime"}))
)


@pytest.fixture
def sqlite_source(tmp_path):
    """SQLArchiveSource over an empty WeeWX-style archive table in a temp SQLite file.

    Use ``insert(**row)`` on the returned source to add rows.
    """
    source = SQLArchiveSource.from_url(f"sqlite:///{tmp_path / 'weewx.sdb'}")
    with source.engine.begin() as conn:
        conn.execute(text(_ARCHIVE_DDL))

    def insert(**row: Any) -> None:
        names = ", ".join(row)
        params = ", ".join(f":{k}" for k in row)
        with source.engine.begin() as conn:
            conn.execute(text(f"INSERT INTO archive ({names}) VALUES ({params})"), row)

    source.insert = insert
    yield source
    source.close()
