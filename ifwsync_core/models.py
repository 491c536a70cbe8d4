from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from .config import FamilyConfig
from .manifest.models import PackageDescriptor
from .templates import PLATFORM, apply_template


class CellStatus(str, Enum):
    BUILT = "built"
    REUSED = "reused"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class Cell:
    """One (family, platform) pair of the sync matrix."""

    family: FamilyConfig
    platform: str

    @property
    def key(self) -> str:
        return apply_template(self.family.id, {PLATFORM: self.platform})

    @property
    def script_name(self) -> str:
        return f"{self.platform}-{self.family.script_name}"


@dataclass(frozen=True)
class CellOutcome:
    cell_key: str
    family: str
    platform: str
    status: CellStatus
    descriptor: PackageDescriptor | None = None
    detail: str | None = None

    @property
    def created(self) -> bool:
        return self.status is CellStatus.BUILT


@dataclass(frozen=True)
class SyncReport:
    outcomes: tuple[CellOutcome, ...] = ()
    fetch_failures: dict[str, str] = field(default_factory=dict)
    manifest_path: Path | None = None

    def by_status(self, status: CellStatus) -> tuple[CellOutcome, ...]:
        return tuple(item for item in self.outcomes if item.status is status)

    @property
    def failed(self) -> bool:
        return bool(self.fetch_failures) or any(item.status is CellStatus.FAILED for item in self.outcomes)

    @property
    def exit_code(self) -> int:
        return 1 if self.failed else 0
