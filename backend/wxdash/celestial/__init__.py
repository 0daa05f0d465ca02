"""Celestial data subsystem.

Public API:
    CelestialData           - Immutable sun/moon data for one date
    CelestialService        - Station-bound cached lookups and nightly refresh
    compute_celestial_data  - The underlying astral calculation
    create_celestial_router - FastAPI router factory for /api/celestial
"""

from .calculator import compute_celestial_data
from .models import CelestialData, Coordinates, MoonPhase
from .router import create_celestial_router
from .service import CelestialService

__all__ = [
    "CelestialData",
    "CelestialService",
    "Coordinates",
    "MoonPhase",
    "compute_celestial_data",
    "create_celestial_router",
]
