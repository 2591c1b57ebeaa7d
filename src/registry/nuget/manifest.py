"""Read dependency declarations from the .nuspec manifest inside a .nupkg."""
from __future__ import annotations

import logging
import zipfile
from typing import List
from xml.etree import ElementTree as ET

from errors import ManifestError
from versioning.models import DependencyDeclaration

logger = logging.getLogger(__name__)


def _find_nuspec(archive: zipfile.ZipFile) -> str:
    for name in archive.namelist():
        if name.lower().endswith(".nuspec") and not name.endswith("/"):
            return name
    raise ManifestError(f"No .nuspec manifest in {archive.filename}")


def parse_nuspec(xml_bytes: bytes) -> List[DependencyDeclaration]:
    """Parse dependency elements from nuspec XML.

    Dependencies may be listed directly under <dependencies> or inside
    framework-specific <group> elements; a package id seen in more than one
    group is reported once, first occurrence wins. Entries without an id are
    logged and skipped.
    """
    root = ET.fromstring(xml_bytes)
    # Remove namespace for easier parsing
    for elem in root.iter():
        if "}" in elem.tag:
            elem.tag = elem.tag.split("}")[1]

    declarations: List[DependencyDeclaration] = []
    seen = set()
    for dependency in root.findall(".//dependencies//dependency"):
        dep_id = (dependency.get("id") or "").strip()
        if not dep_id:
            logger.warning("Skipping manifest dependency without an id: %s", dependency.attrib)
            continue
        key = dep_id.lower()
        if key in seen:
            continue
        seen.add(key)
        declarations.append(
            DependencyDeclaration(dep_id, (dependency.get("version") or "").strip())
        )
    return declarations


def read_dependencies(artifact_path: str) -> List[DependencyDeclaration]:
    """Return the dependency declarations of a .nupkg without extracting its payload.

    Raises:
        ManifestError: If the archive is unreadable or has no valid manifest.
    """
    try:
        with zipfile.ZipFile(artifact_path) as archive:
            nuspec_name = _find_nuspec(archive)
            xml_bytes = archive.read(nuspec_name)
    except (zipfile.BadZipFile, OSError) as exc:
        raise ManifestError(f"Couldn't open {artifact_path}: {exc}") from exc

    try:
        return parse_nuspec(xml_bytes)
    except ET.ParseError as exc:
        raise ManifestError(f"Couldn't parse manifest in {artifact_path}: {exc}") from exc
