"""Cached celestial data for the station, with a nightly refresh task."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from datetime import date as Date
from datetime import datetime, time, timedelta
from zoneinfo import ZoneInfo

from ..config import LocationConfig
from ..cache import Clock, ComputeCache, utc_now
from .calculator import compute_celestial_data
from .models import CelestialData, Coordinates

logger = logging.getLogger(__name__)

# Refresh shortly after midnight so the first visitor of the day hits a warm cache
REFRESH_AT = time(0, 5)

# Furthest future date served; each distinct date holds a cache entry until it passes
MAX_DAYS_AHEAD = 366

Calculator = Callable[[Coordinates, Date, str], CelestialData]


class CelestialService:
    """Per-day sun/moon data for one location, cached until local midnight.

    Cache keys are ``"YYYY-MM-DD|<timezone>"``. Concurrent requests for an
    uncached date share one calculation (see ComputeCache).
    """

    def __init__(
        self,
        coords: Coordinates,
        tz_name: str,
        cache: ComputeCache[CelestialData] | None = None,
        calculator: Calculator = compute_celestial_data,
        clock: Clock = utc_now,
    ) -> None:
        self._coords = coords
        self._tz_name = tz_name
        self._tz = ZoneInfo(tz_name)
        self._clock = clock
        self._cache = cache if cache is not None else ComputeCache(clock=clock)
        self._calculator = calculator
        self._task: asyncio.Task | None = None

    @classmethod
    def from_config(cls, location: LocationConfig, **kwargs) -> CelestialService:
        coords = Coordinates(latitude=location.latitude, longitude=location.longitude)
        return cls(coords, location.timezone, **kwargs)

    @property
    def cache(self) -> ComputeCache[CelestialData]:
        return self._cache

    @property
    def timezone(self) -> str:
        return self._tz_name

    def today(self) -> Date:
        """Current date in the station timezone."""
        return self._clock().astimezone(self._tz).date()

    def cache_key(self, day: Date) -> str:
        return f"{day.isoformat()}|{self._tz_name}"

    def expiry_for(self, day: Date) -> datetime:
        """Local midnight at the end of ``day``."""
        return datetime.combine(day + timedelta(days=1), time(0), tzinfo=self._tz)

    async def get(self, day: Date | None = None, force: bool = False) -> CelestialData:
        """Celestial data for ``day`` (default: today).

        Raises ValueError if ``day`` is more than MAX_DAYS_AHEAD days after
        today, and ComputationError if the calculation fails.
        """
        today = self.today()
        if day is None:
            day = today
        elif (day - today).days > MAX_DAYS_AHEAD:
            raise ValueError(f"date must be at most {MAX_DAYS_AHEAD} days ahead")
        return await self._cache.get_or_compute(
            self.cache_key(day),
            lambda: asyncio.to_thread(self._calculator, self._coords, day, self._tz_name),
            lambda: self.expiry_for(day),
            force=force,
        )

    async def refresh(self, days: Iterable[Date]) -> list[Date]:
        """Recompute and store the given dates. Returns the dates that succeeded.

        Each failure is logged; entries already cached stay untouched.
        """
        refreshed = []
        for day in days:
            try:
                await self.get(day, force=True)
            except Exception as e:
                logger.error("Celestial refresh failed for %s: %s", day.isoformat(), e)
                continue
            refreshed.append(day)
            logger.info("Celestial cache refreshed for %s", day.isoformat())
        return refreshed

    # --- Background refresh ---

    def next_refresh(self) -> datetime:
        """Next REFRESH_AT in the station timezone, strictly after now."""
        now = self._clock().astimezone(self._tz)
        run = datetime.combine(now.date(), REFRESH_AT, tzinfo=self._tz)
        if now >= run:
            run = datetime.combine(now.date() + timedelta(days=1), REFRESH_AT, tzinfo=self._tz)
        return run

    async def start(self) -> None:
        if self._task and not self._task.done():
            return
        self._task = asyncio.create_task(self._refresh_loop(), name="celestial-refresh")
        logger.info("Celestial refresh task started")

    async def stop(self) -> None:
        """Stop the refresh task. Safe to call multiple times."""
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("Celestial refresh task stopped")

    async def _refresh_loop(self) -> None:
        """Sleep until shortly after local midnight, then warm today and tomorrow."""
        while True:
            run_at = self.next_refresh()
            wait = max((run_at - self._clock()).total_seconds(), 0.0)
            logger.info(
                "Next celestial refresh at %s (in %ds)",
                run_at.strftime("%Y-%m-%d %H:%M:%S %Z"),
                int(wait),
            )
            await asyncio.sleep(wait)
            try:
                today = self.today()
                self._cache.purge_expired()
                await self.refresh([today, today + timedelta(days=1)])
            except Exception:
                logger.exception("Celestial refresh cycle failed")
