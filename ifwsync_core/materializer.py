"""Build installer metadata archives exactly once per (component, version)."""

from __future__ import annotations

import logging
import os
import shutil
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from .errors import MaterializationError
from .packer import Packer

logger = logging.getLogger(__name__)

META_SUFFIX = "meta"


@dataclass(frozen=True)
class StagingFile:
    source: Path
    target_name: str


@dataclass(frozen=True)
class MaterializedArtifact:
    path: Path
    created: bool


def _safe_key(raw: str) -> str:
    key = raw.strip()
    if not key or key in {".", ".."} or "/" in key or "\\" in key:
        raise MaterializationError(f"invalid cell key: {raw!r}")
    return key


class ArchiveMaterializer:
    """Produce ``<artifact_root>/<cell_key>/<version>meta.<ext>``.

    The artifact path is the only idempotency signal: an existing file is
    returned untouched. New archives are packed in a scratch directory owned
    by the cell and renamed into place so the final path never holds a
    partial file.
    """

    def __init__(
        self,
        artifact_root: Path,
        scratch_root: Path,
        packer: Packer,
        *,
        archive_extension: str = "7z",
    ) -> None:
        self.artifact_root = Path(artifact_root)
        self.scratch_root = Path(scratch_root)
        self.packer = packer
        self.archive_extension = archive_extension.lstrip(".")

    def artifact_path(self, cell_key: str, version: str) -> Path:
        key = _safe_key(cell_key)
        return self.artifact_root / key / f"{version}{META_SUFFIX}.{self.archive_extension}"

    def scratch_dir(self, cell_key: str) -> Path:
        return self.scratch_root / _safe_key(cell_key)

    def materialize(self, cell_key: str, version: str, staging_files: Sequence[StagingFile]) -> MaterializedArtifact:
        target = self.artifact_path(cell_key, version)
        if target.exists():
            logger.debug("metadata already exists for %s %s, skipping build", cell_key, version)
            return MaterializedArtifact(path=target, created=False)

        logger.info("building metadata archive for %s %s", cell_key, version)
        workdir = self.scratch_dir(cell_key)
        try:
            if workdir.exists():
                shutil.rmtree(workdir)
            content_dir = workdir / cell_key
            content_dir.mkdir(parents=True, exist_ok=True)
            for item in staging_files:
                if not item.source.is_file():
                    raise MaterializationError(f"{cell_key}: staging file not found: {item.source}")
                shutil.copy2(item.source, content_dir / item.target_name)

            packed_name = f"{META_SUFFIX}.{self.archive_extension}"
            self.packer.pack(packed_name, cell_key, cwd=workdir)
            packed = workdir / packed_name
            if not packed.is_file():
                raise MaterializationError(f"{cell_key}: packer reported success but produced no archive")

            self._publish(packed, target)
        except OSError as exc:
            raise MaterializationError(f"{cell_key}: filesystem error while materializing {version}: {exc}") from exc
        finally:
            shutil.rmtree(workdir, ignore_errors=True)

        logger.debug("created target metadata for %s at %s", cell_key, target)
        return MaterializedArtifact(path=target, created=True)

    def _publish(self, packed: Path, target: Path) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        partial = target.parent / f".{target.name}.{uuid.uuid4().hex}.partial"
        try:
            shutil.copy2(packed, partial)
            os.replace(partial, target)
        finally:
            if partial.exists():
                partial.unlink()
