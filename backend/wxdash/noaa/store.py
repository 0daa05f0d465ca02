"""Generated NOAA reports, cached per period."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import MAXYEAR, MINYEAR, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from ..archive.interface import ArchiveSource
from ..cache import Clock, ComputeCache, utc_now
from ..config import LocationConfig
from .reports import MONTHLY_COLUMNS, YEARLY_COLUMNS, render_monthly, render_yearly

logger = logging.getLogger(__name__)

# Expiry used for reports of periods that have already ended
NEVER = datetime(MAXYEAR, 12, 31, tzinfo=timezone.utc)


@dataclass(frozen=True, slots=True)
class ReportParams:
    """Which report to generate: monthly when ``month`` is set, yearly otherwise."""

    year: int
    month: int | None = None

    def __post_init__(self) -> None:
        if not MINYEAR < self.year < MAXYEAR:
            raise ValueError(f"year out of range: {self.year}")
        if self.month is not None and not 1 <= self.month <= 12:
            raise ValueError(f"month must be in 1..12, got {self.month}")

    @property
    def kind(self) -> str:
        return "yearly" if self.month is None else "monthly"

    @property
    def key(self) -> str:
        if self.month is None:
            return f"yearly:{self.year:04d}"
        return f"monthly:{self.year:04d}-{self.month:02d}"

    def bounds(self, tz: ZoneInfo) -> tuple[datetime, datetime]:
        """[start, end) of the period in local time."""
        if self.month is None:
            return datetime(self.year, 1, 1, tzinfo=tz), datetime(self.year + 1, 1, 1, tzinfo=tz)
        start = datetime(self.year, self.month, 1, tzinfo=tz)
        if self.month == 12:
            return start, datetime(self.year + 1, 1, 1, tzinfo=tz)
        return start, datetime(self.year, self.month + 1, 1, tzinfo=tz)


class ReportStore:
    """Monthly and yearly reports rendered from the archive and kept in memory.

    Concurrent requests for the same report share one generation. A report
    for a finished period is kept indefinitely; the report for the period in
    progress is regenerated after the next local midnight.

    Usage:
        store = ReportStore(source, config.location)
        text = await store.get_or_generate(ReportParams(2024, 6))
        text = await store.get_or_generate(ReportParams(2024), force=True)
    """

    def __init__(
        self,
        source: ArchiveSource,
        location: LocationConfig,
        cache: ComputeCache[str] | None = None,
        clock: Clock = utc_now,
    ) -> None:
        self._source = source
        self._location = location
        self._tz = ZoneInfo(location.timezone)
        self._clock = clock
        self._cache = cache if cache is not None else ComputeCache(clock=clock)

    @property
    def cache(self) -> ComputeCache[str]:
        return self._cache

    async def get_or_generate(self, params: ReportParams, force: bool = False) -> str:
        """Return the cached report for ``params``, generating it when absent,
        expired or ``force`` is set. Raises ComputationError on failure."""
        if force:
            logger.info("Forced regeneration of %s", params.key)
        return await self._cache.get_or_compute(
            params.key,
            lambda: asyncio.to_thread(self.generate, params),
            lambda: self.expiry_for(params),
            force=force,
        )

    def expiry_for(self, params: ReportParams) -> datetime:
        """NEVER for a finished period, otherwise the next local midnight."""
        now = self._clock().astimezone(self._tz)
        _, end = params.bounds(self._tz)
        if now >= end:
            return NEVER
        return datetime.combine(now.date() + timedelta(days=1), time(0), tzinfo=self._tz)

    def generate(self, params: ReportParams) -> str:
        """Fetch the period's rows and render the report. Blocking."""
        start, end = params.bounds(self._tz)
        columns = MONTHLY_COLUMNS if params.month is not None else YEARLY_COLUMNS
        rows = self._source.fetch_rows(columns, int(start.timestamp()), int(end.timestamp()))
        logger.info("Generating %s report from %d rows", params.key, len(rows))
        if params.month is not None:
            return render_monthly(rows, params.year, params.month, self._location, self._tz)
        return render_yearly(rows, params.year, self._location, self._tz)
