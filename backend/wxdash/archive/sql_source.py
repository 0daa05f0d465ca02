"""SQLAlchemy-backed archive source (WeeWX ``archive`` table)."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ..errors import ArchiveError
from .interface import ArchiveSource, validate_columns
from .models import RECORD_COLUMNS, ArchiveRecord

logger = logging.getLogger(__name__)

_LATEST_RECORD_SQL = text(
    f"""
    SELECT dateTime, {", ".join(RECORD_COLUMNS)}
    FROM archive
    WHERE dateTime IS NOT NULL
    ORDER BY dateTime DESC
    LIMIT 1
    """
)


class SQLArchiveSource(ArchiveSource):
    """ArchiveSource that queries an ``archive`` table through SQLAlchemy Core.

    Works with any SQLAlchemy URL; production uses MySQL via PyMySQL, tests
    use SQLite.
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    @classmethod
    def from_url(cls, url: str, **engine_kwargs: Any) -> SQLArchiveSource:
        engine_kwargs.setdefault("pool_pre_ping", True)
        return cls(create_engine(url, **engine_kwargs))

    @property
    def engine(self) -> Engine:
        return self._engine

    def ping(self) -> None:
        try:
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            raise ArchiveError(f"database unreachable: {e}") from e

    def latest_marker(self) -> int | None:
        try:
            with self._engine.connect() as conn:
                value = conn.execute(text("SELECT MAX(dateTime) FROM archive")).scalar()
        except SQLAlchemyError as e:
            raise ArchiveError(f"reading MAX(dateTime): {e}") from e
        if value is None:
            return None
        try:
            return int(value)
        except (TypeError, ValueError) as e:
            raise ArchiveError(f"malformed dateTime {value!r}") from e

    def latest_record(self) -> ArchiveRecord | None:
        try:
            with self._engine.connect() as conn:
                row = conn.execute(_LATEST_RECORD_SQL).mappings().first()
        except SQLAlchemyError as e:
            raise ArchiveError(f"reading latest row: {e}") from e
        if row is None:
            return None
        try:
            return ArchiveRecord.from_row(dict(row))
        except (TypeError, ValueError, KeyError) as e:
            raise ArchiveError(f"malformed latest row: {e}") from e

    def fetch_rows(
        self,
        columns: Sequence[str],
        start: int,
        end: int | None = None,
        not_null: Sequence[str] = (),
    ) -> list[dict[str, Any]]:
        selected = [c for c in validate_columns(columns) if c != "dateTime"]
        required = validate_columns(not_null)

        clauses = ["dateTime >= :start"]
        params: dict[str, Any] = {"start": start}
        if end is not None:
            clauses.append("dateTime < :end")
            params["end"] = end
        clauses.extend(f"{c} IS NOT NULL" for c in required)

        # Column names are checked against ARCHIVE_COLUMNS above
        sql = text(
            f"SELECT {', '.join(['dateTime', *selected])} FROM archive "
            f"WHERE {' AND '.join(clauses)} ORDER BY dateTime ASC"
        )
        try:
            with self._engine.connect() as conn:
                rows = conn.execute(sql, params).mappings().all()
        except SQLAlchemyError as e:
            raise ArchiveError(f"querying archive: {e}") from e
        return [dict(r) for r in rows]

    def close(self) -> None:
        self._engine.dispose()
        logger.info("Archive engine disposed")
