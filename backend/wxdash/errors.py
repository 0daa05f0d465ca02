"""Exception types shared across wxdash subsystems."""

from __future__ import annotations


class WxDashError(Exception):
    """Base class for all wxdash errors."""


class ConfigError(WxDashError):
    """The configuration file is missing or invalid."""


class ArchiveError(WxDashError):
    """The archive database could not be queried, or returned malformed data."""


class ComputationError(WxDashError):
    """A cached computation failed. Wraps the original exception as __cause__."""

    def __init__(self, key: str, message: str) -> None:
        super().__init__(f"computation for {key!r} failed: {message}")
        self.key = key


class NoDataError(WxDashError):
    """The archive holds no usable data for the requested period."""
