"""Admin-only endpoints serving NOAA reports as plain text."""

from __future__ import annotations

import logging
from datetime import datetime
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import PlainTextResponse

from ..auth import require_admin
from ..errors import ComputationError
from .store import ReportParams, ReportStore

logger = logging.getLogger(__name__)


def _parse_int(value: str | None, default: int) -> int:
    """Integer query parameter; missing or unparsable values fall back to ``default``."""
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        logger.debug("Ignoring non-integer parameter %r", value)
        return default


def _is_forced(value: str | None) -> bool:
    return (value or "").lower() in ("1", "true")


def create_noaa_router(store: ReportStore, tz_name: str) -> APIRouter:
    """Create the /api/noaa router. Year and month default to the current local date."""
    router = APIRouter(prefix="/api/noaa", tags=["noaa"], dependencies=[Depends(require_admin)])
    tz = ZoneInfo(tz_name)

    async def render(params: ReportParams, force: bool) -> PlainTextResponse:
        try:
            text = await store.get_or_generate(params, force=force)
        except ComputationError as e:
            logger.error("Error generating %s summary: %s", params.kind, e)
            raise HTTPException(status_code=500, detail="Failed to generate summary") from e
        return PlainTextResponse(text)

    @router.get("/monthly", response_class=PlainTextResponse)
    async def monthly(
        year: str | None = Query(default=None),
        month: str | None = Query(default=None),
        force: str | None = Query(default=None),
    ) -> PlainTextResponse:
        now = datetime.now(tz)
        try:
            params = ReportParams(_parse_int(year, now.year), _parse_int(month, now.month))
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        return await render(params, _is_forced(force))

    @router.get("/yearly", response_class=PlainTextResponse)
    async def yearly(
        year: str | None = Query(default=None),
        force: str | None = Query(default=None),
    ) -> PlainTextResponse:
        try:
            params = ReportParams(_parse_int(year, datetime.now(tz).year))
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e
        return await render(params, _is_forced(force))

    return router
