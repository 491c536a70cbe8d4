from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from .digests import file_sha1_hex
from .manifest.models import ANY_OS, INSTALL_SCRIPT, PackageDescriptor
from .materializer import ArchiveMaterializer, StagingFile
from .models import Cell, CellOutcome, CellStatus
from .sources.models import Release, UpstreamRelease
from .sources.selection import DEFAULT_ARCHIVE_SUFFIX, select_asset
from .templates import COMMIT_HASH, PLATFORM, RELEASE_DATE, apply_template

logger = logging.getLogger(__name__)

LICENSE_TARGET = "license.txt"

# Estimate only: the true uncompressed size is unknown without unpacking the
# upstream asset, so installers are told to reserve twice the download size.
UNCOMPRESSED_SIZE_FACTOR = 2


@dataclass(frozen=True)
class StagingLayout:
    license_file: Path
    scripts_dir: Path

    def files_for(self, cell: Cell) -> tuple[StagingFile, ...]:
        return (
            StagingFile(source=self.license_file, target_name=LICENSE_TARGET),
            StagingFile(source=self.scripts_dir / f"{cell.script_name}.qs", target_name=INSTALL_SCRIPT),
        )


class CellResolver:
    def __init__(
        self,
        materializer: ArchiveMaterializer,
        staging: StagingLayout,
        *,
        archive_suffix: str = DEFAULT_ARCHIVE_SUFFIX,
    ) -> None:
        self.materializer = materializer
        self.staging = staging
        self.archive_suffix = archive_suffix

    def resolve_cell(self, cell: Cell, releases: Sequence[UpstreamRelease]) -> CellOutcome:
        """Resolve ``cell`` against its family's release listing.

        Returns a ``skipped`` outcome when no asset matches. Materialization
        errors propagate to the caller.
        """
        cell_key = cell.key
        release = select_asset(releases, cell.platform, self.archive_suffix)
        if release is None:
            logger.warning("release information not found for %s", cell_key)
            return CellOutcome(
                cell_key=cell_key,
                family=cell.family.id,
                platform=cell.platform,
                status=CellStatus.SKIPPED,
                detail="no matching upstream asset",
            )

        artifact = self.materializer.materialize(cell_key, release.version, self.staging.files_for(cell))
        descriptor = build_descriptor(cell, release, sha1=file_sha1_hex(artifact.path))
        return CellOutcome(
            cell_key=cell_key,
            family=cell.family.id,
            platform=cell.platform,
            status=CellStatus.BUILT if artifact.created else CellStatus.REUSED,
            descriptor=descriptor,
        )


def build_descriptor(cell: Cell, release: Release, *, sha1: str) -> PackageDescriptor:
    family = cell.family
    values = {
        PLATFORM: cell.platform,
        COMMIT_HASH: release.commit_token,
        RELEASE_DATE: release.release_date,
    }
    return PackageDescriptor(
        name=cell.key,
        display_name=apply_template(family.display_name, values),
        version=release.version,
        downloadable_archives=release.asset_name,
        uncompressed_size=release.asset_size * UNCOMPRESSED_SIZE_FACTOR,
        compressed_size=release.asset_size,
        release_date=release.release_date,
        description=apply_template(family.description, values),
        default=family.default,
        licenses=family.licenses,
        sha1=sha1,
        script=INSTALL_SCRIPT,
        os=ANY_OS,
    )
