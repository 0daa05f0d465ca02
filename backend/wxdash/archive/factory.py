"""Factory for creating the archive source."""

from __future__ import annotations

import logging

from ..config import AppConfig
from .interface import ArchiveSource
from .sql_source import SQLArchiveSource

logger = logging.getLogger(__name__)


def create_archive_source(config: AppConfig) -> ArchiveSource:
    """Create the archive source described by the ``db`` config section.

    Returns an unchecked source. Callers that must fail fast should call
    source.ping().
    """
    url = config.db.sqlalchemy_url()
    source = SQLArchiveSource.from_url(url)
    # Never log the password
    logger.info("Archive source: %s", source.engine.url.render_as_string(hide_password=True))
    return source
