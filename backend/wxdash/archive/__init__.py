"""Sensor archive subsystem.

Public API:
    ArchiveRecord          - Immutable snapshot of one archive row
    ArchiveSource          - Abstract interface for the archive store
    SQLArchiveSource       - SQLAlchemy implementation
    create_archive_source  - Factory that builds the source from config
    create_archive_router  - FastAPI router factory for the REST endpoints
"""

from .factory import create_archive_source
from .interface import ArchiveSource
from .models import ArchiveRecord
from .router import create_archive_router
from .sql_source import SQLArchiveSource

__all__ = [
    "ArchiveRecord",
    "ArchiveSource",
    "SQLArchiveSource",
    "create_archive_source",
    "create_archive_router",
]
