from __future__ import annotations

import logging
import os
from pathlib import Path

from ..errors import ManifestWriteError
from .models import Manifest
from .rendering import render_manifest_xml

logger = logging.getLogger(__name__)


def write_manifest(manifest: Manifest, path: Path) -> Path:
    """Atomically replace ``path`` with the rendered manifest."""

    path = Path(path)
    partial = path.parent / f".{path.name}.partial"
    try:
        payload = render_manifest_xml(manifest)
        path.parent.mkdir(parents=True, exist_ok=True)
        partial.write_text(payload, encoding="utf-8")
        os.replace(partial, path)
    except OSError as exc:
        try:
            partial.unlink(missing_ok=True)
        except OSError:
            logger.debug("unable to remove partial manifest %s", partial, exc_info=True)
        raise ManifestWriteError(f"unable to write manifest to {path}: {exc}") from exc
    logger.info("wrote %s with %s packages", path, len(manifest.packages))
    return path
