from .github import GitHubReleaseSource, ReleaseSource, parse_releases_payload
from .models import Release, UpstreamAsset, UpstreamRelease
from .selection import DEFAULT_ARCHIVE_SUFFIX, parse_release_date, parse_version, select_asset

__all__ = [
    "DEFAULT_ARCHIVE_SUFFIX",
    "GitHubReleaseSource",
    "Release",
    "ReleaseSource",
    "UpstreamAsset",
    "UpstreamRelease",
    "parse_release_date",
    "parse_releases_payload",
    "parse_version",
    "select_asset",
]
