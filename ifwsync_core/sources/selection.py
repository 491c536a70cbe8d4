"""Pick the upstream asset that feeds one (family, platform) cell."""

from __future__ import annotations

from datetime import date
from typing import Iterable

from ..errors import ReleaseFormatError
from .models import Release, UpstreamAsset, UpstreamRelease

DEFAULT_ARCHIVE_SUFFIX = ".7z"


def select_asset(
    releases: Iterable[UpstreamRelease],
    platform: str,
    suffix: str = DEFAULT_ARCHIVE_SUFFIX,
) -> Release | None:
    """Return the first matching asset in upstream order, or ``None``.

    Releases are walked in the order the source returned them (newest first
    for GitHub) and are never re-sorted. Within a release, the first asset
    whose name contains ``platform`` and ends with ``suffix`` wins.
    """

    for release in releases:
        for asset in release.assets:
            if platform in asset.name and asset.name.endswith(suffix):
                return _to_release(release, asset)
    return None


def parse_version(tag: str) -> str:
    parts = tag.split("-")
    if len(parts) < 2 or not parts[1].strip():
        raise ReleaseFormatError(f"release tag {tag!r} has no version segment")
    return parts[1].strip()


def parse_release_date(published_at: str | None) -> date:
    if not published_at:
        raise ReleaseFormatError("selected release has no publish date")
    try:
        return date.fromisoformat(published_at[:10])
    except ValueError as exc:
        raise ReleaseFormatError(f"unparseable publish date {published_at!r}") from exc


def _to_release(release: UpstreamRelease, asset: UpstreamAsset) -> Release:
    return Release(
        version=parse_version(release.tag),
        published_on=parse_release_date(release.published_at),
        asset_name=asset.name,
        asset_size=asset.size,
        commit_token=release.tag,
    )
