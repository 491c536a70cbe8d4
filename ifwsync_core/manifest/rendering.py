"""Serialize a :class:`Manifest` to the installer framework's ``Updates.xml``.

This is the only module that knows the concrete document syntax.
"""

from __future__ import annotations

import xml.etree.ElementTree as ET

from .models import Manifest, PackageDescriptor


def _bool_text(value: bool) -> str:
    return "true" if value else "false"


def _text_element(parent: ET.Element, tag: str, text: str) -> ET.Element:
    element = ET.SubElement(parent, tag)
    element.text = text
    return element


def _package_element(parent: ET.Element, package: PackageDescriptor) -> None:
    node = ET.SubElement(parent, "PackageUpdate")
    _text_element(node, "Name", package.name)
    _text_element(node, "DisplayName", package.display_name)
    _text_element(node, "Version", package.version)
    _text_element(node, "DownloadableArchives", package.downloadable_archives)
    ET.SubElement(
        node,
        "UpdateFile",
        {
            "UncompressedSize": str(package.uncompressed_size),
            "CompressedSize": str(package.compressed_size),
            "OS": package.os,
        },
    )
    _text_element(node, "ReleaseDate", package.release_date)
    _text_element(node, "Description", package.description)
    _text_element(node, "Default", package.default)
    licenses = ET.SubElement(node, "Licenses")
    for license_ref in package.licenses:
        ET.SubElement(licenses, "License", {"file": license_ref.file, "name": license_ref.name})
    _text_element(node, "Script", package.script)
    # The installer framework verifies <SHA1>; older generators emitted <SHA>.
    _text_element(node, "SHA1", package.sha1)


def manifest_to_element(manifest: Manifest) -> ET.Element:
    root = ET.Element("Updates")
    _text_element(root, "ApplicationName", manifest.header.application_name)
    _text_element(root, "ApplicationVersion", manifest.header.application_version)
    _text_element(root, "Checksum", _bool_text(manifest.header.checksum))
    for package in manifest.packages:
        _package_element(root, package)
    return root


def render_manifest_xml(manifest: Manifest) -> str:
    root = manifest_to_element(manifest)
    ET.indent(root, space="  ")
    return ET.tostring(root, encoding="unicode") + "\n"


def parse_manifest_xml(payload: str) -> list[dict[str, str]]:
    """Return a flat ``{tag: text}`` view of every package in ``payload``."""

    root = ET.fromstring(payload)
    packages: list[dict[str, str]] = []
    for node in root.findall("PackageUpdate"):
        entry = {child.tag: (child.text or "") for child in node if len(child) == 0 and not child.attrib}
        packages.append(entry)
    return packages
