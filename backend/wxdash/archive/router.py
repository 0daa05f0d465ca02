"""REST endpoints for archive series, health and statistics."""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import JSONResponse

from ..config import AppConfig
from ..errors import ArchiveError
from .interface import ArchiveSource
from .metrics import barometer_outlook, degrees_to_compass, pick_feels_like, recently_active
from .models import iso_timestamp
from .statistics import STATISTICS_COLUMNS, compute_statistics

logger = logging.getLogger(__name__)

DAY_SECONDS = 24 * 3600

RANGE_SECONDS: dict[str, int] = {
    "day": DAY_SECONDS,
    "week": 7 * DAY_SECONDS,
    "month": 30 * DAY_SECONDS,  # simple 30-day month
}


def range_seconds(value: str | None) -> int:
    """Window length for the ``range`` query parameter; unknown values mean one day."""
    return RANGE_SECONDS.get((value or "").lower(), DAY_SECONDS)


def create_archive_router(source: ArchiveSource, config: AppConfig) -> APIRouter:
    """Create the archive router bound to a source and the station config.

    Handlers are plain ``def`` functions: FastAPI runs them in its threadpool,
    so the blocking queries never stall the event loop.
    """
    router = APIRouter(tags=["archive"])
    tz = ZoneInfo(config.location.timezone)
    alerts = config.alerts

    def fetch(name: str, columns: Sequence[str], range_: str | None, not_null: Sequence[str] = ()) -> list[dict[str, Any]]:
        since = int(time.time()) - range_seconds(range_)
        try:
            return source.fetch_rows(columns, since, not_null=not_null)
        except ArchiveError as e:
            logger.error("DB query error (%s): %s", name, e)
            raise HTTPException(status_code=500, detail="DB error") from e

    def ts(row: dict[str, Any]) -> str:
        return iso_timestamp(row["dateTime"], tz)

    @router.get("/api/ping")
    def ping() -> dict[str, str]:
        return {"message": "pong"}

    @router.get("/health")
    def health() -> JSONResponse:
        try:
            source.ping()
        except ArchiveError as e:
            logger.warning("Health check failed: %s", e)
            return JSONResponse(
                status_code=503,
                content={"status": "unhealthy", "error": "database unreachable"},
            )
        return JSONResponse(content={"status": "ok"})

    @router.get("/api/weather")
    def weather(range_: str | None = Query(default=None, alias="range")) -> list[dict[str, Any]]:
        rows = fetch("weather", ["outTemp", "dewpoint"], range_, not_null=["outTemp", "dewpoint"])
        return [{"timestamp": ts(r), "temperature": r["outTemp"], "dewpoint": r["dewpoint"]} for r in rows]

    @router.get("/api/barometer")
    def barometer(range_: str | None = Query(default=None, alias="range")) -> list[dict[str, Any]]:
        rows = fetch("barometer", ["barometer"], range_, not_null=["barometer"])
        readings = [{"timestamp": ts(r), "pressure": r["barometer"]} for r in rows]
        outlook = barometer_outlook([r["barometer"] for r in rows])
        if outlook is not None:
            readings[-1].update(level=outlook.level, trend=outlook.trend, forecast=outlook.forecast)
        return readings

    @router.get("/api/feelslike")
    def feels_like(range_: str | None = Query(default=None, alias="range")) -> list[dict[str, Any]]:
        rows = fetch("feelslike", ["heatindex", "windchill", "outTemp"], range_)
        readings = [
            {"timestamp": ts(r), "heatIndex": r["heatindex"], "windChill": r["windchill"]} for r in rows
        ]
        if rows and rows[-1]["outTemp"] is not None:
            latest = rows[-1]
            active = pick_feels_like(latest["outTemp"], latest["heatindex"], latest["windchill"])
            readings[-1].update(
                activeValue=active.value,
                activeSource=active.source,
                activeLabel=active.label,
            )
        return readings

    @router.get("/api/humidity")
    def humidity(range_: str | None = Query(default=None, alias="range")) -> list[dict[str, Any]]:
        rows = fetch("humidity", ["outHumidity"], range_, not_null=["outHumidity"])
        return [{"timestamp": ts(r), "humidity": r["outHumidity"]} for r in rows]

    @router.get("/api/wind")
    def wind(range_: str | None = Query(default=None, alias="range")) -> list[dict[str, Any]]:
        rows = fetch("wind", ["windSpeed", "windGust", "windDir"], range_, not_null=["windSpeed", "windGust"])
        readings = [
            {"timestamp": ts(r), "speed": r["windSpeed"], "gust": r["windGust"], "direction": r["windDir"]}
            for r in rows
        ]
        if readings:
            latest = readings[-1]
            latest["compass"] = degrees_to_compass(latest["direction"])
            latest["strong"] = latest["speed"] >= alerts.wind_speed or latest["gust"] >= alerts.wind_gust
        return readings

    @router.get("/api/rain")
    def rain(range_: str | None = Query(default=None, alias="range")) -> list[dict[str, Any]]:
        rows = fetch("rain", ["rainRate", "rain"], range_, not_null=["rainRate", "rain"])
        readings = [{"timestamp": ts(r), "rate": r["rainRate"], "amount": r["rain"]} for r in rows]
        if readings:
            readings[-1]["recentlyActive"] = recently_active(
                rows, lambda r: r["rainRate"] > 0 or r["rain"] > 0, now=time.time()
            )
        return readings

    @router.get("/api/lightning")
    def lightning(range_: str | None = Query(default=None, alias="range")) -> list[dict[str, Any]]:
        rows = fetch(
            "lightning",
            ["lightning_strike_count", "lightning_distance"],
            range_,
            not_null=["lightning_strike_count"],
        )
        readings = [
            {"timestamp": ts(r), "strikes": r["lightning_strike_count"], "distance": r["lightning_distance"]}
            for r in rows
        ]
        if readings:
            readings[-1]["recentlyActive"] = recently_active(
                rows, lambda r: r["lightning_strike_count"] > 0, now=time.time()
            )
        return readings

    @router.get("/api/insideTemp")
    def inside_temp(range_: str | None = Query(default=None, alias="range")) -> list[dict[str, Any]]:
        rows = fetch("insideTemp", ["inTemp"], range_, not_null=["inTemp"])
        return [{"timestamp": ts(r), "inside_temp_f": r["inTemp"]} for r in rows]

    @router.get("/api/insideHumidity")
    def inside_humidity(range_: str | None = Query(default=None, alias="range")) -> list[dict[str, Any]]:
        rows = fetch("insideHumidity", ["inHumidity"], range_, not_null=["inHumidity"])
        return [{"timestamp": ts(r), "inside_humidity": r["inHumidity"]} for r in rows]

    @router.get("/api/statistics")
    def statistics(range_: str | None = Query(default=None, alias="range")) -> dict[str, Any]:
        rows = fetch("statistics", STATISTICS_COLUMNS, range_)
        now = datetime.now(tz)
        midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
        return compute_statistics(rows, int(midnight.timestamp()))

    return router
