from __future__ import annotations

from dataclasses import replace

from conftest import FakePacker, make_release
from ifwsync_core.config import SyncConfig
from ifwsync_core.errors import SourceFetchError
from ifwsync_core.manifest import parse_manifest_xml
from ifwsync_core.models import CellStatus
from ifwsync_core.orchestrator import SyncOrchestrator
from ifwsync_core.sources.models import UpstreamRelease


class _FakeSource:
    def __init__(self, listings: dict[str, list[UpstreamRelease] | Exception]) -> None:
        self.listings = listings
        self.requested: list[str] = []

    def fetch_releases(self, source_id: str) -> list[UpstreamRelease]:
        self.requested.append(source_id)
        listing = self.listings[source_id]
        if isinstance(listing, Exception):
            raise listing
        return listing


def _listings(nightly: str = "1001", canary: str = "512") -> dict[str, list[UpstreamRelease]]:
    return {
        "example/nightly": [
            make_release(
                f"nightly-{nightly}",
                "2018-03-01T10:00:00Z",
                ("citra-linux-20180301.7z", 1000000),
                ("citra-msvc-20180301.7z", 2000000),
            )
        ],
        "example/canary": [
            make_release(
                f"canary-{canary}",
                "2018-02-27T08:30:00Z",
                ("citra-linux-20180227.7z", 1100000),
                ("citra-msvc-20180227.7z", 2100000),
            )
        ],
    }


def _run(config: SyncConfig, source: _FakeSource, packer: FakePacker):
    return SyncOrchestrator(config, source=source, packer=packer).run()


def test_cells_follow_platform_then_family_order(sync_config: SyncConfig) -> None:
    orchestrator = SyncOrchestrator(sync_config, source=_FakeSource({}), packer=FakePacker())
    assert [cell.key for cell in orchestrator.cells()] == [
        "org.example.nightly.msvc",
        "org.example.canary.msvc",
        "org.example.nightly.linux",
        "org.example.canary.linux",
    ]


def test_first_run_builds_every_cell_and_writes_manifest(sync_config: SyncConfig) -> None:
    packer = FakePacker()
    report = _run(sync_config, _FakeSource(_listings()), packer)

    assert report.exit_code == 0
    assert len(report.by_status(CellStatus.BUILT)) == 4
    assert report.manifest_path == sync_config.paths.manifest_path
    assert len(packer.calls) == 4

    packages = parse_manifest_xml(sync_config.paths.manifest_path.read_text(encoding="utf-8"))
    assert sorted(item["Name"] for item in packages) == [
        "org.example.canary.linux",
        "org.example.canary.msvc",
        "org.example.nightly.linux",
        "org.example.nightly.msvc",
    ]
    root = sync_config.paths.artifact_root
    assert (root / "org.example.nightly.linux" / "1001meta.7z").is_file()
    assert (root / "org.example.canary.msvc" / "512meta.7z").is_file()


def test_second_run_is_a_no_op(sync_config: SyncConfig) -> None:
    _run(sync_config, _FakeSource(_listings()), FakePacker())
    manifest = sync_config.paths.manifest_path
    before = manifest.read_bytes()
    before_mtime = manifest.stat().st_mtime_ns

    packer = FakePacker()
    report = _run(sync_config, _FakeSource(_listings()), packer)

    assert packer.calls == []
    assert report.manifest_path is None
    assert len(report.by_status(CellStatus.REUSED)) == 4
    assert report.exit_code == 0
    assert manifest.read_bytes() == before
    assert manifest.stat().st_mtime_ns == before_mtime


def test_new_upstream_release_rebuilds_only_affected_cells(sync_config: SyncConfig) -> None:
    _run(sync_config, _FakeSource(_listings()), FakePacker())

    packer = FakePacker()
    report = _run(sync_config, _FakeSource(_listings(nightly="1002")), packer)

    assert sorted(call[1] for call in packer.calls) == ["org.example.nightly.linux", "org.example.nightly.msvc"]
    assert len(report.by_status(CellStatus.REUSED)) == 2
    packages = {
        item["Name"]: item for item in parse_manifest_xml(sync_config.paths.manifest_path.read_text(encoding="utf-8"))
    }
    assert packages["org.example.nightly.linux"]["Version"] == "1002"
    assert packages["org.example.canary.linux"]["Version"] == "512"
    assert len(packages) == 4


def test_failing_cell_does_not_stop_siblings(sync_config: SyncConfig) -> None:
    packer = FakePacker(fail_for={"org.example.nightly.linux"})
    report = _run(sync_config, _FakeSource(_listings()), packer)

    failed = report.by_status(CellStatus.FAILED)
    assert [item.cell_key for item in failed] == ["org.example.nightly.linux"]
    assert "packer failed" in (failed[0].detail or "")
    assert len(report.by_status(CellStatus.BUILT)) == 3
    assert report.exit_code == 1

    packages = parse_manifest_xml(sync_config.paths.manifest_path.read_text(encoding="utf-8"))
    assert "org.example.nightly.linux" not in {item["Name"] for item in packages}
    assert not (sync_config.paths.artifact_root / "org.example.nightly.linux" / "1001meta.7z").exists()


def test_failing_cell_leaves_published_artifacts_untouched(sync_config: SyncConfig) -> None:
    _run(sync_config, _FakeSource(_listings()), FakePacker())
    root = sync_config.paths.artifact_root
    published = {path: path.read_bytes() for path in root.glob("*/*meta.7z")}
    assert len(published) == 4

    packer = FakePacker(fail_for={"org.example.nightly.linux"})
    report = _run(sync_config, _FakeSource(_listings(nightly="1002", canary="513")), packer)

    assert [item.cell_key for item in report.by_status(CellStatus.FAILED)] == ["org.example.nightly.linux"]
    assert len(report.by_status(CellStatus.BUILT)) == 3
    assert report.exit_code == 1
    for path, payload in published.items():
        assert path.read_bytes() == payload
    failed_dir = root / "org.example.nightly.linux"
    assert sorted(path.name for path in failed_dir.iterdir()) == ["1001meta.7z"]
    assert (root / "org.example.nightly.msvc" / "1002meta.7z").is_file()
    assert (root / "org.example.canary.linux" / "513meta.7z").is_file()


def test_no_matching_assets_leaves_manifest_untouched(sync_config: SyncConfig) -> None:
    listings = {
        "example/nightly": [make_release("nightly-1001", "2018-03-01T10:00:00Z", ("source.tar.gz", 10))],
        "example/canary": [],
    }
    packer = FakePacker()
    report = _run(sync_config, _FakeSource(listings), packer)

    assert len(report.by_status(CellStatus.SKIPPED)) == 4
    assert report.manifest_path is None
    assert report.exit_code == 0
    assert packer.calls == []
    assert not sync_config.paths.manifest_path.exists()


def test_fetch_failure_marks_family_cells_failed(sync_config: SyncConfig, caplog) -> None:
    listings: dict = _listings()
    listings["example/canary"] = SourceFetchError("example/canary: failed to fetch releases after 2 attempts")
    report = _run(sync_config, _FakeSource(listings), FakePacker())

    assert list(report.fetch_failures) == ["org.example.canary.{platform}"]
    failed = report.by_status(CellStatus.FAILED)
    assert sorted(item.cell_key for item in failed) == ["org.example.canary.linux", "org.example.canary.msvc"]
    assert all("release listing unavailable" in (item.detail or "") for item in failed)
    assert len(report.by_status(CellStatus.BUILT)) == 2
    assert report.exit_code == 1
    assert report.manifest_path is not None
    assert "cell org.example.canary.linux failed: release listing unavailable" in caplog.text
    assert "cell org.example.canary.msvc failed: release listing unavailable" in caplog.text


def test_outcomes_are_reported_in_matrix_order(sync_config: SyncConfig) -> None:
    report = _run(sync_config, _FakeSource(_listings()), FakePacker())
    assert [item.cell_key for item in report.outcomes] == [
        "org.example.nightly.msvc",
        "org.example.canary.msvc",
        "org.example.nightly.linux",
        "org.example.canary.linux",
    ]


def test_scratch_root_is_reset_before_run(sync_config: SyncConfig) -> None:
    scratch = sync_config.paths.scratch_root
    leftover = scratch / "stale" / "file.txt"
    leftover.parent.mkdir(parents=True)
    leftover.write_text("old", encoding="utf-8")

    _run(sync_config, _FakeSource(_listings()), FakePacker())

    assert scratch.is_dir()
    assert list(scratch.iterdir()) == []


def test_single_worker_produces_same_result(sync_config: SyncConfig) -> None:
    serial = replace(sync_config, max_workers=1)
    report = _run(serial, _FakeSource(_listings()), FakePacker())
    assert len(report.by_status(CellStatus.BUILT)) == 4
    assert report.exit_code == 0
