from __future__ import annotations

import threading
from pathlib import Path

import pytest

from ifwsync_core.config import FamilyConfig, LicenseRef, PathsConfig, SyncConfig
from ifwsync_core.errors import PackerError
from ifwsync_core.sources.models import UpstreamAsset, UpstreamRelease

PLATFORMS = ("msvc", "linux")


class FakePacker:
    """Stand-in for 7-Zip: concatenates the staged files into ``output_name``."""

    def __init__(self, *, fail_for: set[str] | None = None) -> None:
        self.fail_for = set(fail_for or ())
        self.calls: list[tuple[str, str, Path]] = []
        self._lock = threading.Lock()

    def pack(self, output_name: str, input_name: str, *, cwd: Path) -> None:
        with self._lock:
            self.calls.append((output_name, input_name, cwd))
        if input_name in self.fail_for:
            raise PackerError(f"packer failed (exit=2) for {input_name}")
        content_dir = cwd / input_name
        payload = b""
        for path in sorted(content_dir.iterdir()):
            payload += path.name.encode("utf-8") + b"\n" + path.read_bytes()
        (cwd / output_name).write_bytes(payload)


def make_family(name: str = "nightly", repo: str | None = None) -> FamilyConfig:
    return FamilyConfig(
        id=f"org.example.{name}.{{platform}}",
        display_name=f"Example {name.title()}",
        description=f"{name} build ({{platform}}, commit: {{commitHash}}, release date: {{releaseDate}})",
        repo=repo or f"example/{name}",
        script_name=name,
        licenses=(LicenseRef(file="license.txt", name="GNU General Public License v2.0"),),
    )


def make_release(tag: str, published_at: str | None, *assets: tuple[str, int]) -> UpstreamRelease:
    return UpstreamRelease(
        tag=tag,
        published_at=published_at,
        assets=tuple(UpstreamAsset(name=name, size=size) for name, size in assets),
    )


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    root = tmp_path / "workspace"
    scripts = root / "scripts"
    scripts.mkdir(parents=True)
    (root / "license.txt").write_text("GPLv2\n", encoding="utf-8")
    for platform in PLATFORMS:
        for family in ("nightly", "canary"):
            (scripts / f"{platform}-{family}.qs").write_text(f"// {platform} {family}\n", encoding="utf-8")
    return root


@pytest.fixture
def sync_config(workspace: Path) -> SyncConfig:
    return SyncConfig(
        paths=PathsConfig(
            artifact_root=workspace / "repo",
            scratch_root=workspace / "temp",
            license_file=workspace / "license.txt",
            scripts_dir=workspace / "scripts",
        ),
        platforms=PLATFORMS,
        families=(make_family("nightly"), make_family("canary")),
        max_workers=4,
    )
