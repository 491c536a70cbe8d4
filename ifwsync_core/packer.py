"""Wrapper around the external archiver (7-Zip) used to pack metadata."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Protocol

from .config import PackerConfig
from .errors import PackerError

logger = logging.getLogger(__name__)


class Packer(Protocol):
    def pack(self, output_name: str, input_name: str, *, cwd: Path) -> None: ...


class SevenZipPacker:
    """Run ``<executable> a <output> <input>`` inside a working directory.

    Failures are never retried: a half-finished archive is discarded by the
    caller and the cell is reported as failed.
    """

    def __init__(self, config: PackerConfig | None = None) -> None:
        self.config = config or PackerConfig()

    def command(self, output_name: str, input_name: str) -> list[str]:
        return [self.config.executable, "a", output_name, input_name]

    def pack(self, output_name: str, input_name: str, *, cwd: Path) -> None:
        command = self.command(output_name, input_name)
        timeout = max(float(self.config.timeout_seconds), 1.0)
        logger.debug("packer cmd=%s cwd=%s", " ".join(command), cwd)
        try:
            result = subprocess.run(
                command,
                check=False,
                capture_output=True,
                text=True,
                timeout=timeout,
                cwd=str(cwd),
            )
        except FileNotFoundError as exc:
            raise PackerError(
                f"packer executable '{self.config.executable}' not found. Install 7-Zip and ensure it is in PATH."
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise PackerError(f"packer timed out after {timeout:.1f}s") from exc
        except OSError as exc:
            raise PackerError(f"unable to launch packer: {exc}") from exc
        if result.returncode != 0:
            raise PackerError(_format_failure(command, result.returncode, result.stderr))


def _format_failure(command: list[str], code: int, stderr: str | None) -> str:
    joined = " ".join(command)
    detail = (stderr or "").strip()
    if detail:
        return f"packer failed (exit={code}) cmd='{joined}' err='{detail}'"
    return f"packer failed (exit={code}) cmd='{joined}'"
