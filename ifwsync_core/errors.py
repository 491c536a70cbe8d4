"""Error taxonomy for repository synchronization."""

from __future__ import annotations


class SyncError(RuntimeError):
    """Base class for every failure raised by the sync core."""


class ConfigError(SyncError):
    """Raised when the repository configuration cannot be loaded or is invalid."""


class TemplateError(ConfigError):
    """Raised when a family template references an unknown placeholder."""


class SourceFetchError(SyncError):
    """Raised when the upstream release list cannot be fetched or parsed."""


class ReleaseFormatError(SourceFetchError):
    """Raised when a selected upstream release carries an unparseable tag."""


class MaterializationError(SyncError):
    """Raised when a metadata archive cannot be built or published."""


class PackerError(MaterializationError):
    """Raised when the external archiver fails, times out or is missing."""


class ManifestWriteError(SyncError):
    """Raised when the aggregate manifest cannot be persisted."""
