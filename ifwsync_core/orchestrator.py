"""Drive one synchronization run across the family x platform matrix."""

from __future__ import annotations

import logging
import shutil
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Sequence

from .config import SyncConfig
from .errors import MaterializationError, SourceFetchError, SyncError
from .manifest.aggregator import ManifestAggregator
from .manifest.models import ManifestHeader
from .manifest.writer import write_manifest
from .materializer import ArchiveMaterializer
from .models import Cell, CellOutcome, CellStatus, SyncReport
from .packer import Packer, SevenZipPacker
from .resolver import CellResolver, StagingLayout
from .sources.github import GitHubReleaseSource, ReleaseSource
from .sources.models import UpstreamRelease

logger = logging.getLogger(__name__)


class SyncOrchestrator:
    """Fetch, resolve and publish every cell, then decide on the manifest.

    Cells run concurrently on a thread pool capped by ``config.max_workers``.
    A failing cell is recorded and never aborts its siblings; the manifest is
    only evaluated after every cell has finished.
    """

    def __init__(
        self,
        config: SyncConfig,
        *,
        source: ReleaseSource | None = None,
        packer: Packer | None = None,
    ) -> None:
        self.config = config
        self.source = source or GitHubReleaseSource(config.github)
        self.materializer = ArchiveMaterializer(
            config.paths.artifact_root,
            config.paths.scratch_root,
            packer or SevenZipPacker(config.packer),
            archive_extension=config.packer.archive_extension,
        )
        self.resolver = CellResolver(
            self.materializer,
            StagingLayout(license_file=config.paths.license_file, scripts_dir=config.paths.scripts_dir),
            archive_suffix=config.packer.suffix,
        )

    def cells(self) -> list[Cell]:
        return [Cell(family=family, platform=platform) for platform in self.config.platforms for family in self.config.families]

    def header(self) -> ManifestHeader:
        app = self.config.application
        return ManifestHeader(
            application_name=app.name,
            application_version=app.version,
            checksum=app.checksum,
        )

    def run(self) -> SyncReport:
        self._prepare_scratch()

        logger.debug("getting release info...")
        releases, fetch_failures = self._fetch_all()

        logger.debug("building metadata...")
        aggregator = ManifestAggregator(self.header())
        outcomes = self._resolve_all(releases, fetch_failures, aggregator)

        manifest_path = None
        if aggregator.has_new_work():
            manifest_path = write_manifest(aggregator.render(), self.config.paths.manifest_path)
            logger.info(
                "wrote a new %s (%s new archives) -- updates are available",
                self.config.paths.manifest_name,
                aggregator.new_artifact_count,
            )
        else:
            logger.info("no binary release updates are available for %s -- nothing to do", self.config.paths.manifest_name)

        return SyncReport(outcomes=outcomes, fetch_failures=fetch_failures, manifest_path=manifest_path)

    def _prepare_scratch(self) -> None:
        scratch_root = self.config.paths.scratch_root
        try:
            if scratch_root.exists():
                shutil.rmtree(scratch_root)
            scratch_root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise MaterializationError(f"unable to prepare scratch root {scratch_root}: {exc}") from exc

    def _fetch_all(self) -> tuple[dict[str, list[UpstreamRelease]], dict[str, str]]:
        families = self.config.families
        releases: dict[str, list[UpstreamRelease]] = {}
        failures: dict[str, str] = {}
        workers = max(1, min(len(families), self.config.max_workers))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="ifwsync-fetch") as executor:
            futures = {executor.submit(self.source.fetch_releases, family.repo): family for family in families}
            for future in as_completed(futures):
                family = futures[future]
                try:
                    releases[family.id] = future.result()
                except SourceFetchError as exc:
                    logger.error("unable to fetch releases for %s (%s): %s", family.id, family.repo, exc)
                    failures[family.id] = str(exc)
                except Exception as exc:
                    logger.exception("unexpected error fetching releases for %s (%s)", family.id, family.repo)
                    failures[family.id] = f"{type(exc).__name__}: {exc}"
        return releases, failures

    def _resolve_all(
        self,
        releases: dict[str, list[UpstreamRelease]],
        fetch_failures: dict[str, str],
        aggregator: ManifestAggregator,
    ) -> tuple[CellOutcome, ...]:
        cells = self.cells()
        outcomes: dict[str, CellOutcome] = {}
        runnable: list[Cell] = []
        for cell in cells:
            failure = fetch_failures.get(cell.family.id)
            if failure is not None:
                logger.error("cell %s failed: release listing unavailable: %s", cell.key, failure)
                outcomes[cell.key] = CellOutcome(
                    cell_key=cell.key,
                    family=cell.family.id,
                    platform=cell.platform,
                    status=CellStatus.FAILED,
                    detail=f"release listing unavailable: {failure}",
                )
                continue
            runnable.append(cell)

        if runnable:
            workers = max(1, min(len(runnable), self.config.max_workers))
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="ifwsync-cell") as executor:
                futures = {
                    executor.submit(self._run_cell, cell, releases.get(cell.family.id, []), aggregator): cell
                    for cell in runnable
                }
                for future in as_completed(futures):
                    outcome = future.result()
                    outcomes[outcome.cell_key] = outcome

        return tuple(outcomes[cell.key] for cell in cells)

    def _run_cell(
        self,
        cell: Cell,
        releases: Sequence[UpstreamRelease],
        aggregator: ManifestAggregator,
    ) -> CellOutcome:
        try:
            outcome = self.resolver.resolve_cell(cell, releases)
        except SyncError as exc:
            logger.error("cell %s failed: %s", cell.key, exc)
            return _failed(cell, str(exc))
        except Exception as exc:
            logger.exception("cell %s failed unexpectedly", cell.key)
            return _failed(cell, f"{type(exc).__name__}: {exc}")

        if outcome.descriptor is not None:
            aggregator.add(outcome.descriptor, created=outcome.created)
            logger.debug("cell %s %s version %s", cell.key, outcome.status.value, outcome.descriptor.version)
        return outcome


def _failed(cell: Cell, detail: str) -> CellOutcome:
    return CellOutcome(
        cell_key=cell.key,
        family=cell.family.id,
        platform=cell.platform,
        status=CellStatus.FAILED,
        detail=detail,
    )
