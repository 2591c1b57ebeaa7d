"""Artifact naming and identity recovery for the download directory.

Artifacts are stored flat as ``Name.Version.nupkg``. Next to each one a
sidecar ``Name.Version.nupkg.json`` records the structured identity, because
the filename alone is ambiguous when a name ends in numeric segments.
"""
from __future__ import annotations

import json
import logging
import os
from typing import List, Optional

from constants import Constants
from versioning.models import PackageIdentity

logger = logging.getLogger(__name__)


def artifact_filename(identity: PackageIdentity) -> str:
    return f"{identity.name}.{identity.version}{Constants.ARTIFACT_EXTENSION}"


def artifact_path(directory: str, identity: PackageIdentity) -> str:
    return os.path.join(directory, artifact_filename(identity))


def sidecar_path(path: str) -> str:
    return path + Constants.SIDECAR_EXTENSION


def write_sidecar(path: str, identity: PackageIdentity) -> str:
    """Write the identity record for the artifact at ``path``."""
    target = sidecar_path(path)
    with open(target, "w", encoding="utf-8") as fh:
        json.dump({"name": identity.name, "version": identity.version}, fh)
    return target


def read_sidecar(path: str) -> Optional[PackageIdentity]:
    """Return the identity recorded next to ``path``, or None if absent/invalid."""
    target = sidecar_path(path)
    if not os.path.isfile(target):
        return None
    try:
        with open(target, "r", encoding="utf-8") as fh:
            data = json.load(fh)
        return PackageIdentity(str(data["name"]), str(data["version"]))
    except (OSError, ValueError, KeyError, TypeError) as exc:
        logger.warning("Ignoring unreadable identity record %s: %s", target, exc)
        return None


def parse_artifact_filename(filename: str) -> PackageIdentity:
    """Recover an identity from ``Name.Major.Minor.Patch.nupkg``.

    The last three dot-separated tokens are the version and everything before
    them is the name.

    Raises:
        ValueError: If the filename doesn't have that shape.
    """
    base = os.path.basename(filename)
    if base.lower().endswith(Constants.ARTIFACT_EXTENSION):
        base = base[: -len(Constants.ARTIFACT_EXTENSION)]
    tokens = base.split(".")
    if len(tokens) < 4 or not all(tokens[-3:]) or not all(tokens[:-3]):
        raise ValueError(f"Can't split {filename!r} into name and three-part version")
    return PackageIdentity(".".join(tokens[:-3]), ".".join(tokens[-3:]))


def list_artifacts(directory: str) -> List[str]:
    """Return artifact paths in ``directory``, sorted by filename."""
    if not os.path.isdir(directory):
        return []
    return sorted(
        os.path.join(directory, name)
        for name in os.listdir(directory)
        if name.lower().endswith(Constants.ARTIFACT_EXTENSION)
        and os.path.isfile(os.path.join(directory, name))
    )


def read_identities(directory: str) -> List[PackageIdentity]:
    """Reconstruct the identity set from the artifacts present on disk.

    Sidecar records are preferred; filename parsing is the fallback. Malformed
    names are reported and skipped.
    """
    identities: List[PackageIdentity] = []
    seen = set()
    for path in list_artifacts(directory):
        identity = read_sidecar(path)
        if identity is None:
            try:
                identity = parse_artifact_filename(path)
            except ValueError as exc:
                logger.warning("Skipping artifact: %s", exc)
                continue
        if identity in seen:
            continue
        seen.add(identity)
        identities.append(identity)
    logger.info("Found %d artifact(s) in %s", len(identities), directory)
    return identities


def locate_artifact(directory: str, identity: PackageIdentity) -> Optional[str]:
    """Find the artifact file for ``identity``, by name first, then by sidecar."""
    candidate = artifact_path(directory, identity)
    if os.path.isfile(candidate):
        return candidate
    for path in list_artifacts(directory):
        if read_sidecar(path) == identity:
            return path
    return None
