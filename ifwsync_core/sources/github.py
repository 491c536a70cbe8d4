from __future__ import annotations

import logging
import time
from typing import Any, Protocol

import requests
from requests.exceptions import RequestException, Timeout

from ..config import GitHubConfig
from ..errors import SourceFetchError
from .models import UpstreamAsset, UpstreamRelease

logger = logging.getLogger(__name__)

GITHUB_ACCEPT = "application/vnd.github.v3+json"


class ReleaseSource(Protocol):
    def fetch_releases(self, source_id: str) -> list[UpstreamRelease]: ...


def _error_body_snippet(response: requests.Response, max_chars: int = 200) -> str:
    body = response.text or ""
    compact = " ".join(body.split())
    return compact[:max_chars]


def parse_releases_payload(payload: Any, source_id: str) -> list[UpstreamRelease]:
    if not isinstance(payload, list):
        raise SourceFetchError(f"{source_id}: release listing must be a JSON list")

    releases: list[UpstreamRelease] = []
    for index, item in enumerate(payload):
        if not isinstance(item, dict):
            raise SourceFetchError(f"{source_id}: release[{index}] must be an object")
        tag = item.get("tag_name")
        published_at = item.get("published_at")
        if not isinstance(tag, str) or not tag:
            raise SourceFetchError(f"{source_id}: release[{index}] missing 'tag_name'")
        if published_at is not None and not isinstance(published_at, str):
            raise SourceFetchError(f"{source_id}: release {tag} has malformed 'published_at'")
        assets_raw = item.get("assets") or []
        if not isinstance(assets_raw, list):
            raise SourceFetchError(f"{source_id}: release {tag} has malformed 'assets'")
        assets: list[UpstreamAsset] = []
        for asset in assets_raw:
            if not isinstance(asset, dict):
                raise SourceFetchError(f"{source_id}: release {tag} has a non-object asset")
            name = asset.get("name")
            size = asset.get("size")
            if not isinstance(name, str) or not isinstance(size, int) or isinstance(size, bool):
                raise SourceFetchError(f"{source_id}: release {tag} has an asset without name/size")
            assets.append(UpstreamAsset(name=name, size=size))
        releases.append(UpstreamRelease(tag=tag, published_at=published_at, assets=tuple(assets)))
    return releases


class GitHubReleaseSource:
    """Fetch release listings from the GitHub REST API."""

    def __init__(self, config: GitHubConfig | None = None, *, session: requests.Session | None = None) -> None:
        self.config = config or GitHubConfig()
        self._session = session
        self.headers: dict[str, str] = {
            "Accept": GITHUB_ACCEPT,
            "User-Agent": self.config.user_agent,
        }
        if self.config.token:
            self.headers["Authorization"] = f"Bearer {self.config.token}"

    def releases_url(self, source_id: str) -> str:
        return f"{self.config.api_url.rstrip('/')}/repos/{source_id.strip('/')}/releases"

    def fetch_releases(self, source_id: str) -> list[UpstreamRelease]:
        url = self.releases_url(source_id)
        timeout = max(float(self.config.timeout_seconds), 1.0)
        retries = max(int(self.config.max_retries), 1)
        backoff = max(float(self.config.backoff_seconds), 0.0)
        getter = self._session.get if self._session is not None else requests.get
        last_error: Exception | None = None

        for attempt in range(1, retries + 1):
            try:
                logger.debug("github releases request attempt=%s/%s url=%s", attempt, retries, url)
                response = getter(
                    url,
                    headers=self.headers,
                    params={"per_page": int(self.config.per_page)},
                    timeout=timeout,
                )
                status = response.status_code
                if 400 <= status < 500:
                    snippet = _error_body_snippet(response)
                    raise SourceFetchError(
                        f"{source_id}: releases request rejected (status={status}) body='{snippet}'"
                    )
                if 500 <= status < 600:
                    raise RuntimeError(f"upstream error status={status}")
                try:
                    payload = response.json()
                except ValueError as exc:
                    raise SourceFetchError(f"{source_id}: releases response is not valid JSON") from exc
                releases = parse_releases_payload(payload, source_id)
                logger.debug("fetched %s releases for %s", len(releases), source_id)
                return releases
            except Timeout as exc:
                last_error = exc
                logger.warning("github releases timeout for %s attempt=%s/%s", source_id, attempt, retries)
            except RequestException as exc:
                last_error = exc
                logger.warning(
                    "github releases transport error for %s attempt=%s/%s: %s", source_id, attempt, retries, exc
                )
            except RuntimeError as exc:
                if isinstance(exc, SourceFetchError):
                    raise
                last_error = exc
                logger.warning(
                    "github releases upstream error for %s attempt=%s/%s: %s", source_id, attempt, retries, exc
                )

            if attempt < retries:
                time.sleep(min(backoff * attempt, 5.0))

        raise SourceFetchError(f"{source_id}: failed to fetch releases after {retries} attempts") from last_error
