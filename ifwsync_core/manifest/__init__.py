"""Update manifest model, aggregation and serialization."""

from .aggregator import ManifestAggregator
from .models import ANY_OS, INSTALL_SCRIPT, Manifest, ManifestHeader, PackageDescriptor
from .rendering import manifest_to_element, parse_manifest_xml, render_manifest_xml
from .writer import write_manifest

__all__ = [
    "ANY_OS",
    "INSTALL_SCRIPT",
    "Manifest",
    "ManifestAggregator",
    "ManifestHeader",
    "PackageDescriptor",
    "manifest_to_element",
    "parse_manifest_xml",
    "render_manifest_xml",
    "write_manifest",
]
