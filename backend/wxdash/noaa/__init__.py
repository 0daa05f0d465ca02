"""NOAA-style climatological reports.

Public API:
    ReportParams       - Which monthly or yearly report to produce
    ReportStore        - Cached report generation (get_or_generate)
    render_monthly     - Monthly summary text from archive rows
    render_yearly      - Yearly summary text from archive rows
    create_noaa_router - FastAPI router factory for /api/noaa
"""

from .reports import render_monthly, render_yearly
from .router import create_noaa_router
from .store import ReportParams, ReportStore

__all__ = [
    "ReportParams",
    "ReportStore",
    "create_noaa_router",
    "render_monthly",
    "render_yearly",
]
