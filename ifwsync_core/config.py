from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Mapping

import yaml

from .errors import ConfigError
from .templates import COMMIT_HASH, PLATFORM, RELEASE_DATE, apply_template, placeholders_in, validate_template

CONFIG_FILENAME = "repository.yml"

DEFAULT_PLATFORMS: tuple[str, ...] = ("msvc", "mingw", "osx", "linux")
DEFAULT_USER_AGENT = "ifw-repo-sync"

_IDENTIFIER_PLACEHOLDERS = (PLATFORM,)
_DESCRIPTION_PLACEHOLDERS = (PLATFORM, COMMIT_HASH, RELEASE_DATE)


def _ensure_mapping(data: Any, what: str) -> Mapping[str, Any]:
    if isinstance(data, Mapping):
        return data
    raise ConfigError(f"expected mapping for {what}")


def _resolve_env_value(value: Any) -> Any:
    if isinstance(value, str) and value.startswith("${") and value.endswith("}"):
        env_name = value[2:-1].strip()
        if env_name:
            return os.getenv(env_name, "")
    return value


def _to_str(value: Any, default: str) -> str:
    value = _resolve_env_value(value)
    if value is None or value == "":
        return default
    return str(value)


def _to_optional_str(value: Any) -> str | None:
    value = _resolve_env_value(value)
    if value is None:
        return None
    data = str(value).strip()
    return data if data else None


def _to_int(value: Any, default: int, what: str) -> int:
    value = _resolve_env_value(value)
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{what} must be an integer, got {value!r}") from exc


def _to_float(value: Any, default: float, what: str) -> float:
    value = _resolve_env_value(value)
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{what} must be a number, got {value!r}") from exc


def _to_bool(value: Any, default: bool) -> bool:
    value = _resolve_env_value(value)
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"1", "true", "yes", "on"}:
            return True
        if normalized in {"0", "false", "no", "off"}:
            return False
    return bool(value)


@dataclass(frozen=True)
class LicenseRef:
    file: str
    name: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LicenseRef":
        raw = _ensure_mapping(data, "license entry")
        file = _to_optional_str(raw.get("file"))
        name = _to_optional_str(raw.get("name"))
        if not file or not name:
            raise ConfigError("license entries require 'file' and 'name'")
        return cls(file=file, name=name)


@dataclass(frozen=True)
class FamilyConfig:
    """A package line mirrored into the repository, e.g. nightly or canary."""

    id: str
    display_name: str
    description: str
    repo: str
    script_name: str
    default: str = "script"
    licenses: tuple[LicenseRef, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FamilyConfig":
        raw = _ensure_mapping(data, "family entry")
        missing = [key for key in ("id", "display_name", "description", "repo", "script_name") if not raw.get(key)]
        if missing:
            raise ConfigError(f"family entry missing required keys: {', '.join(missing)}")
        licenses_raw = raw.get("licenses") or []
        if not isinstance(licenses_raw, list):
            raise ConfigError("family 'licenses' must be a list")
        family = cls(
            id=str(raw["id"]).strip(),
            display_name=str(raw["display_name"]),
            description=str(raw["description"]),
            repo=str(raw["repo"]).strip().strip("/"),
            script_name=str(raw["script_name"]).strip(),
            default=_to_str(raw.get("default"), "script"),
            licenses=tuple(LicenseRef.from_dict(item) for item in licenses_raw),
        )
        family.validate()
        return family

    def validate(self) -> None:
        validate_template(self.id, _IDENTIFIER_PLACEHOLDERS, field=f"{self.id}.id")
        validate_template(self.display_name, _IDENTIFIER_PLACEHOLDERS, field=f"{self.id}.display_name")
        validate_template(self.description, _DESCRIPTION_PLACEHOLDERS, field=f"{self.id}.description")
        if PLATFORM not in placeholders_in(self.id):
            # Without {platform} every platform would share one artifact directory.
            raise ConfigError(f"family id {self.id!r} must contain the {{{PLATFORM}}} placeholder")


@dataclass(frozen=True)
class ApplicationConfig:
    name: str = "{AnyApplication}"
    version: str = "1.0.0"
    checksum: bool = False


@dataclass(frozen=True)
class PathsConfig:
    artifact_root: Path = Path("dist")
    scratch_root: Path = Path("temp")
    license_file: Path = Path("license.txt")
    scripts_dir: Path = Path("scripts")
    manifest_name: str = "Updates.xml"

    @property
    def manifest_path(self) -> Path:
        return self.artifact_root / self.manifest_name


@dataclass(frozen=True)
class PackerConfig:
    executable: str = "7za"
    timeout_seconds: float = 300.0
    archive_extension: str = "7z"

    @property
    def suffix(self) -> str:
        return f".{self.archive_extension}"


@dataclass(frozen=True)
class GitHubConfig:
    api_url: str = "https://api.github.com"
    token: str | None = None
    user_agent: str = DEFAULT_USER_AGENT
    timeout_seconds: float = 30.0
    max_retries: int = 2
    backoff_seconds: float = 0.5
    per_page: int = 30


def default_families() -> tuple[FamilyConfig, ...]:
    gpl = (LicenseRef(file="license.txt", name="GNU General Public License v2.0"),)
    return (
        FamilyConfig(
            id="org.citra.nightly.{platform}",
            display_name="Citra Nightly",
            description=(
                "The nightly builds of Citra are official, tested versions of Citra that are known to work.\n"
                "({platform}, commit: {commitHash}, release date: {releaseDate})"
            ),
            repo="citra-emu/citra-nightly",
            script_name="nightly",
            licenses=gpl,
        ),
        FamilyConfig(
            id="org.citra.canary.{platform}",
            display_name="Citra Canary",
            description=(
                "An in-development version of Citra that uses changes that are relatively untested.\n"
                "({platform}, commit: {commitHash}, release date: {releaseDate})"
            ),
            repo="citra-emu/citra-canary",
            script_name="canary",
            licenses=gpl,
        ),
    )


@dataclass(frozen=True)
class SyncConfig:
    """Immutable configuration for one synchronization run."""

    application: ApplicationConfig = field(default_factory=ApplicationConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)
    packer: PackerConfig = field(default_factory=PackerConfig)
    github: GitHubConfig = field(default_factory=GitHubConfig)
    platforms: tuple[str, ...] = DEFAULT_PLATFORMS
    families: tuple[FamilyConfig, ...] = field(default_factory=default_families)
    max_workers: int = 4

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], *, base_dir: Path | None = None) -> "SyncConfig":
        raw = _ensure_mapping(data, "repository configuration")
        base = base_dir or Path.cwd()

        app_raw = _ensure_mapping(raw.get("application") or {}, "application")
        application = ApplicationConfig(
            name=_to_str(app_raw.get("name"), ApplicationConfig.name),
            version=_to_str(app_raw.get("version"), ApplicationConfig.version),
            checksum=_to_bool(app_raw.get("checksum"), ApplicationConfig.checksum),
        )

        paths_raw = _ensure_mapping(raw.get("paths") or {}, "paths")

        def _path(key: str, default: Path) -> Path:
            value = _to_optional_str(paths_raw.get(key))
            path = Path(value).expanduser() if value else default
            return path if path.is_absolute() else base / path

        paths = PathsConfig(
            artifact_root=_path("artifact_root", PathsConfig.artifact_root),
            scratch_root=_path("scratch_root", PathsConfig.scratch_root),
            license_file=_path("license_file", PathsConfig.license_file),
            scripts_dir=_path("scripts_dir", PathsConfig.scripts_dir),
            manifest_name=_to_str(paths_raw.get("manifest_name"), PathsConfig.manifest_name),
        )

        packer_raw = _ensure_mapping(raw.get("packer") or {}, "packer")
        packer = PackerConfig(
            executable=_to_str(packer_raw.get("executable"), PackerConfig.executable),
            timeout_seconds=_to_float(packer_raw.get("timeout_seconds"), PackerConfig.timeout_seconds, "packer.timeout_seconds"),
            archive_extension=_to_str(packer_raw.get("archive_extension"), PackerConfig.archive_extension).lstrip("."),
        )

        github_raw = _ensure_mapping(raw.get("github") or {}, "github")
        github = GitHubConfig(
            api_url=_to_str(github_raw.get("api_url"), GitHubConfig.api_url).rstrip("/"),
            token=_to_optional_str(github_raw.get("token")),
            user_agent=_to_str(github_raw.get("user_agent"), GitHubConfig.user_agent),
            timeout_seconds=_to_float(github_raw.get("timeout_seconds"), GitHubConfig.timeout_seconds, "github.timeout_seconds"),
            max_retries=_to_int(github_raw.get("max_retries"), GitHubConfig.max_retries, "github.max_retries"),
            backoff_seconds=_to_float(github_raw.get("backoff_seconds"), GitHubConfig.backoff_seconds, "github.backoff_seconds"),
            per_page=_to_int(github_raw.get("per_page"), GitHubConfig.per_page, "github.per_page"),
        )

        sync_raw = _ensure_mapping(raw.get("sync") or {}, "sync")
        max_workers = _to_int(sync_raw.get("max_workers"), 4, "sync.max_workers")

        platforms_raw = raw.get("platforms")
        if platforms_raw is None:
            platforms = DEFAULT_PLATFORMS
        elif isinstance(platforms_raw, list):
            platforms = tuple(str(item).strip() for item in platforms_raw if str(item).strip())
        else:
            raise ConfigError("'platforms' must be a list of platform tags")

        families_raw = raw.get("families")
        if families_raw is None:
            families = default_families()
        elif isinstance(families_raw, list):
            families = tuple(FamilyConfig.from_dict(item) for item in families_raw)
        else:
            raise ConfigError("'families' must be a list")

        config = cls(
            application=application,
            paths=paths,
            packer=packer,
            github=github,
            platforms=platforms,
            families=families,
            max_workers=max_workers,
        )
        config.validate()
        return config

    def validate(self) -> None:
        if not self.platforms:
            raise ConfigError("at least one platform is required")
        if len(set(self.platforms)) != len(self.platforms):
            raise ConfigError("platform tags must be unique")
        if not self.families:
            raise ConfigError("at least one family is required")
        ids = [family.id for family in self.families]
        if len(set(ids)) != len(ids):
            raise ConfigError("family ids must be unique")
        if self.max_workers < 1:
            raise ConfigError("sync.max_workers must be at least 1")
        artifact_root = Path(self.paths.artifact_root).expanduser().resolve()
        scratch_root = Path(self.paths.scratch_root).expanduser().resolve()
        # The scratch root is wiped on every run.
        if artifact_root.is_relative_to(scratch_root) or scratch_root.is_relative_to(artifact_root):
            raise ConfigError(
                f"paths.scratch_root ({scratch_root}) and paths.artifact_root ({artifact_root}) must not overlap"
            )
        for family in self.families:
            family.validate()
        keys = [apply_template(family.id, {PLATFORM: platform}) for platform in self.platforms for family in self.families]
        if len(set(keys)) != len(keys):
            raise ConfigError("family ids must produce a distinct identifier for every platform")

    def with_overrides(
        self,
        *,
        artifact_root: Path | None = None,
        scratch_root: Path | None = None,
        max_workers: int | None = None,
    ) -> "SyncConfig":
        paths = self.paths
        if artifact_root is not None:
            paths = replace(paths, artifact_root=artifact_root)
        if scratch_root is not None:
            paths = replace(paths, scratch_root=scratch_root)
        updated = replace(
            self,
            paths=paths,
            max_workers=self.max_workers if max_workers is None else max_workers,
        )
        updated.validate()
        return updated


def load_config(path: Path | None = None) -> SyncConfig:
    """Load ``path`` (or the built-in defaults when ``path`` is ``None``)."""

    if path is None:
        return SyncConfig.from_dict({})
    path = Path(path).expanduser()
    if not path.exists():
        raise ConfigError(f"configuration file not found: {path}")
    try:
        payload = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"unable to read {path}: {exc}") from exc
    if payload is None:
        payload = {}
    return SyncConfig.from_dict(payload, base_dir=path.resolve().parent)
