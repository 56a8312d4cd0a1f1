"""
Error taxonomy for the sync pipeline.

Per-article failures derive from EntryError: the engine logs them, skips the
offending article and keeps going. Everything else aborts the current pass.
"""

from __future__ import annotations


class CuboxSyncError(Exception):
    """Base class for all sync errors."""


class ConfigurationMissing(CuboxSyncError):
    """Domain or API key is not configured."""


class CuboxApiError(CuboxSyncError):
    """Transport-level failure talking to the Cubox API.

    Attributes:
        status_code: HTTP status code, or None for network-level failures
    """

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class EntryError(CuboxSyncError):
    """A single article could not be turned into a note entry."""


class InvalidTimestamp(EntryError):
    pass


class EmptyContent(EntryError):
    pass


class NoImageFound(EntryError):
    pass


class EmptyTemplate(EntryError):
    pass


class InvalidImageUrl(EntryError):
    pass


class NotAFolder(EntryError):
    pass


class DownloadFailed(EntryError):
    pass
