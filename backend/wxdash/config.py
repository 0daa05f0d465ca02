"""YAML configuration for the dashboard backend."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any
from urllib.parse import quote_plus

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "WXDASH_CONFIG"
DEFAULT_CONFIG_PATH = "config.yaml"

DEFAULT_PORT = 8081
DEFAULT_POLL_SECONDS = 60


@dataclass(slots=True)
class DBConfig:
    # A full SQLAlchemy URL takes precedence over the individual parts below
    url: str = ""
    driver: str = "mysql+pymysql"
    user: str = ""
    password: str = ""
    host: str = "localhost"
    port: int = 3306
    name: str = "weewx"
    params: str = ""

    def sqlalchemy_url(self) -> str:
        """Return the URL passed to create_engine()."""
        if self.url:
            return self.url
        auth = quote_plus(self.user)
        if self.password:
            auth += ":" + quote_plus(self.password)
        url = f"{self.driver}://{auth}@{self.host}:{self.port}/{self.name}"
        if self.params:
            url += "?" + self.params
        return url


@dataclass(slots=True)
class ServerConfig:
    port: int = DEFAULT_PORT
    # How often the broker polls the archive for new rows
    sse_poll_seconds: int = DEFAULT_POLL_SECONDS
    # How often the browser reloads its charts (passed through to the frontend)
    client_poll_seconds: int = DEFAULT_POLL_SECONDS
    sse_queue_size: int = 4
    sse_keepalive_seconds: float = 15.0


@dataclass(slots=True)
class LocationConfig:
    name: str = ""
    latitude: float = 32.093174
    longitude: float = -110.777557  # west is negative
    altitude: float = 0.0  # feet
    timezone: str = "America/Phoenix"


@dataclass(slots=True)
class AlertsConfig:
    extreme_heat: float = 105.0  # heat index, F
    extreme_cold: float = 32.0  # wind chill, F
    wind_speed: float = 20.0  # mph
    wind_gust: float = 25.0  # mph


@dataclass(slots=True)
class AppConfig:
    db: DBConfig = field(default_factory=DBConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    location: LocationConfig = field(default_factory=LocationConfig)
    alerts: AlertsConfig = field(default_factory=AlertsConfig)


def _build_section(cls: type, raw: Any, section: str) -> Any:
    if raw is None:
        return cls()
    if not isinstance(raw, dict):
        raise ConfigError(f"section {section!r} must be a mapping")
    known = {f.name for f in fields(cls)}
    unknown = set(raw) - known
    if unknown:
        logger.warning("Ignoring unknown keys in %r: %s", section, ", ".join(sorted(unknown)))
    try:
        return cls(**{k: v for k, v in raw.items() if k in known})
    except TypeError as e:
        raise ConfigError(f"invalid section {section!r}: {e}") from e


def parse_config(raw: dict[str, Any] | None) -> AppConfig:
    """Build an AppConfig from an already-parsed YAML mapping and apply defaults."""
    raw = raw or {}
    if not isinstance(raw, dict):
        raise ConfigError("top level of the config file must be a mapping")

    config = AppConfig(
        db=_build_section(DBConfig, raw.get("db"), "db"),
        server=_build_section(ServerConfig, raw.get("server"), "server"),
        location=_build_section(LocationConfig, raw.get("location"), "location"),
        alerts=_build_section(AlertsConfig, raw.get("alerts"), "alerts"),
    )

    if config.server.sse_poll_seconds <= 0:
        config.server.sse_poll_seconds = DEFAULT_POLL_SECONDS
    if config.server.client_poll_seconds <= 0:
        config.server.client_poll_seconds = DEFAULT_POLL_SECONDS
    if not config.server.port:
        config.server.port = DEFAULT_PORT
    if config.server.sse_queue_size <= 0:
        raise ConfigError("server.sse_queue_size must be positive")

    return config


def load_config(path: str | os.PathLike[str] | None = None) -> AppConfig:
    """Load the config file.

    The path defaults to $WXDASH_CONFIG, then ``config.yaml`` in the working
    directory.
    """
    if path is None:
        path = os.environ.get(CONFIG_ENV_VAR, "").strip() or DEFAULT_CONFIG_PATH
    config_path = Path(path)
    try:
        text = config_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"reading config {config_path}: {e}") from e
    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"parsing YAML in {config_path}: {e}") from e

    config = parse_config(raw)
    logger.info("Loaded config from %s", config_path)
    return config
