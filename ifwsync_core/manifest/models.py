"""Typed model of the installer update manifest."""

from __future__ import annotations

from dataclasses import dataclass

from ..config import LicenseRef

ANY_OS = "Any"
INSTALL_SCRIPT = "installscript.qs"


@dataclass(frozen=True)
class ManifestHeader:
    application_name: str
    application_version: str
    checksum: bool


@dataclass(frozen=True)
class PackageDescriptor:
    """One ``PackageUpdate`` entry, fully instantiated for a single cell."""

    name: str
    display_name: str
    version: str
    downloadable_archives: str
    uncompressed_size: int
    compressed_size: int
    release_date: str
    description: str
    default: str
    licenses: tuple[LicenseRef, ...]
    sha1: str
    script: str = INSTALL_SCRIPT
    os: str = ANY_OS


@dataclass(frozen=True)
class Manifest:
    header: ManifestHeader
    packages: tuple[PackageDescriptor, ...] = ()
