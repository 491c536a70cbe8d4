from __future__ import annotations

from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True)
class UpstreamAsset:
    name: str
    size: int


@dataclass(frozen=True)
class UpstreamRelease:
    """One entry of the upstream release listing, in upstream order.

    ``published_at`` is ``None`` for unpublished drafts.
    """

    tag: str
    published_at: str | None
    assets: tuple[UpstreamAsset, ...] = ()


@dataclass(frozen=True)
class Release:
    """The release chosen for one (family, platform) cell.

    ``commit_token`` is the raw release tag; it identifies the upstream build
    and is not a digest of any content.
    """

    version: str
    published_on: date
    asset_name: str
    asset_size: int
    commit_token: str

    @property
    def release_date(self) -> str:
        return self.published_on.isoformat()
