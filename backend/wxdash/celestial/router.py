"""REST endpoint for cached celestial data."""

from __future__ import annotations

import logging
from datetime import date as Date
from typing import Any

from fastapi import APIRouter, HTTPException, Query

from ..errors import ComputationError
from .service import CelestialService

logger = logging.getLogger(__name__)


def create_celestial_router(service: CelestialService) -> APIRouter:
    """Create the /api/celestial router bound to a CelestialService."""
    router = APIRouter(prefix="/api", tags=["celestial"])

    @router.get("/celestial")
    async def celestial(date: str | None = Query(default=None)) -> dict[str, Any]:
        """Sun/moon data for ``date`` (YYYY-MM-DD, default today in the station timezone)."""
        day = None
        if date:
            try:
                day = Date.fromisoformat(date)
            except ValueError as e:
                logger.info("Invalid date parameter: %s", date)
                raise HTTPException(status_code=400, detail="Invalid date format (use YYYY-MM-DD)") from e

        try:
            data = await service.get(day)
        except ValueError as e:
            logger.info("Rejected date parameter %s: %s", date, e)
            raise HTTPException(status_code=400, detail=str(e)) from e
        except ComputationError as e:
            logger.error("Error computing celestial data: %s", e)
            raise HTTPException(status_code=500, detail="Celestial calculation error") from e
        return data.to_dict()

    return router
