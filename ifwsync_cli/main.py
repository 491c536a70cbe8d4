import logging
from pathlib import Path
from typing import Optional

import typer

from ifwsync_core.config import CONFIG_FILENAME, SyncConfig, load_config
from ifwsync_core.errors import ConfigError, SyncError
from ifwsync_core.models import Cell, CellStatus
from ifwsync_core.orchestrator import SyncOrchestrator

from .logging_setup import setup_logging

logger = logging.getLogger(__name__)

app = typer.Typer(help="Mirror upstream releases into an installer update repository")


def _load(config_path: Optional[Path]) -> SyncConfig:
    if config_path is None:
        default = Path.cwd() / CONFIG_FILENAME
        config_path = default if default.exists() else None
    return load_config(config_path)


@app.command("sync")
def sync(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help=f"Repository config (default: ./{CONFIG_FILENAME})"),
    artifact_root: Optional[Path] = typer.Option(None, "--artifact-root", help="Override paths.artifact_root"),
    scratch_root: Optional[Path] = typer.Option(None, "--scratch-root", help="Override paths.scratch_root"),
    workers: Optional[int] = typer.Option(None, "--workers", min=1, help="Maximum number of cells processed at once"),
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Also append logs to this file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """
    Run one synchronization:
    - fetch the upstream release list of every family
    - build missing metadata archives for each (family, platform) cell
    - rewrite the update manifest only when a new archive was built
    """
    setup_logging("DEBUG" if verbose else "INFO", log_file)
    try:
        settings = _load(config).with_overrides(
            artifact_root=artifact_root,
            scratch_root=scratch_root,
            max_workers=workers,
        )
    except ConfigError as exc:
        typer.echo(f"[ifwsync:sync] invalid configuration: {exc}")
        raise typer.Exit(1)

    try:
        report = SyncOrchestrator(settings).run()
    except SyncError as exc:
        logger.error("synchronization aborted: %s", exc)
        typer.echo(f"[ifwsync:sync] failed: {exc}")
        raise typer.Exit(1)

    for status in CellStatus:
        typer.echo(f"[ifwsync:sync] {status.value}={len(report.by_status(status))}")
    for family, reason in sorted(report.fetch_failures.items()):
        typer.echo(f"[ifwsync:sync] fetch failed family={family} reason={reason}")
    for outcome in report.by_status(CellStatus.FAILED):
        typer.echo(f"[ifwsync:sync] cell failed {outcome.cell_key}: {outcome.detail}")
    if report.manifest_path is not None:
        typer.echo(f"[ifwsync:sync] manifest={report.manifest_path}")
    else:
        typer.echo("[ifwsync:sync] manifest unchanged")
    raise typer.Exit(report.exit_code)


@app.command("matrix")
def matrix(
    config: Optional[Path] = typer.Option(None, "--config", "-c", help=f"Repository config (default: ./{CONFIG_FILENAME})"),
):
    """Print every (family, platform) cell the configuration expands to."""
    try:
        settings = _load(config)
    except ConfigError as exc:
        typer.echo(f"[ifwsync:matrix] invalid configuration: {exc}")
        raise typer.Exit(1)
    for platform in settings.platforms:
        for family in settings.families:
            cell = Cell(family=family, platform=platform)
            typer.echo(f"{cell.key} <- {family.repo} ({cell.script_name}.qs)")


def main() -> int:
    app(prog_name="ifwsync")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
