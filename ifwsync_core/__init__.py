"""Mirror upstream binary releases into an installer framework update repository."""

from .config import (
    ApplicationConfig,
    FamilyConfig,
    GitHubConfig,
    LicenseRef,
    PackerConfig,
    PathsConfig,
    SyncConfig,
    load_config,
)
from .errors import (
    ConfigError,
    ManifestWriteError,
    MaterializationError,
    PackerError,
    ReleaseFormatError,
    SourceFetchError,
    SyncError,
    TemplateError,
)
from .materializer import ArchiveMaterializer, MaterializedArtifact, StagingFile
from .models import Cell, CellOutcome, CellStatus, SyncReport
from .orchestrator import SyncOrchestrator
from .packer import SevenZipPacker
from .resolver import CellResolver, StagingLayout, build_descriptor

__all__ = [
    "ApplicationConfig",
    "ArchiveMaterializer",
    "Cell",
    "CellOutcome",
    "CellResolver",
    "CellStatus",
    "ConfigError",
    "FamilyConfig",
    "GitHubConfig",
    "LicenseRef",
    "ManifestWriteError",
    "MaterializationError",
    "MaterializedArtifact",
    "PackerConfig",
    "PackerError",
    "PathsConfig",
    "ReleaseFormatError",
    "SevenZipPacker",
    "SourceFetchError",
    "StagingFile",
    "StagingLayout",
    "SyncConfig",
    "SyncError",
    "SyncOrchestrator",
    "SyncReport",
    "TemplateError",
    "build_descriptor",
    "load_config",
]
