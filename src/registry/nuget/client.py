"""NuGet v2 (OData) registry client: list published versions and download packages.

The PowerShell Gallery and most private NuGet feeds expose the v2 API. All
network calls are routed through a Fetcher so transient failures are retried.
"""
from __future__ import annotations

import logging
import os
import urllib.parse
from typing import List, Optional
from xml.etree import ElementTree as ET

import requests

from constants import Constants
from common.fetcher import Fetcher
from common.http_client import create_session, download_to_file, get_text
from common.logging_utils import extra_context, is_debug_enabled, safe_url
from versioning.models import IndexEntry, PackageIdentity

logger = logging.getLogger(__name__)

HEADERS_ATOM = {"Accept": "application/atom+xml,application/xml"}
_MAX_PAGES = 100


def _log_http_pre(url: str, action: str = "GET") -> None:
    """Debug-log outbound HTTP request for the NuGet client."""
    if is_debug_enabled(logger):
        logger.debug(
            "HTTP request",
            extra=extra_context(
                event="http_request",
                component="client",
                action=action,
                target=safe_url(url),
                package_manager="nuget",
            ),
        )


def _strip_namespaces(root: ET.Element) -> ET.Element:
    """Remove XML namespaces in place for easier lookups."""
    for elem in root.iter():
        if isinstance(elem.tag, str) and "}" in elem.tag:
            elem.tag = elem.tag.split("}", 1)[1]
        for attr in list(elem.attrib):
            if "}" in attr:
                elem.attrib[attr.split("}", 1)[1]] = elem.attrib.pop(attr)
    return root


def _text(elem: Optional[ET.Element]) -> Optional[str]:
    if elem is None or elem.text is None:
        return None
    value = elem.text.strip()
    return value or None


def _as_bool(value: Optional[str]) -> bool:
    return (value or "").strip().lower() == "true"


def parse_feed(xml_text: str, package_id: str) -> tuple[List[IndexEntry], Optional[str]]:
    """Parse one page of an OData Atom feed.

    Args:
        xml_text: Response body.
        package_id: Id that was queried; used when an entry carries no Id.

    Returns:
        Tuple of (entries in feed order, next page URL or None)
    """
    root = _strip_namespaces(ET.fromstring(xml_text))
    entries: List[IndexEntry] = []
    for entry in root.findall("entry"):
        props = entry.find(".//properties")
        if props is None:
            continue
        version = _text(props.find("Version"))
        if not version:
            logger.warning("Skipping feed entry without a version for %s", package_id)
            continue
        name = _text(props.find("Id")) or _text(entry.find("title")) or package_id
        entries.append(
            IndexEntry(
                name=name,
                version=version,
                is_latest=_as_bool(_text(props.find("IsLatestVersion"))),
            )
        )

    next_url = None
    for link in root.findall("link"):
        if link.get("rel") == "next" and link.get("href"):
            next_url = link.get("href")
            break
    return entries, next_url


class GalleryClient:
    """Client for a NuGet v2 feed such as the PowerShell Gallery."""

    def __init__(
        self,
        fetcher: Fetcher,
        base_url: Optional[str] = None,
        session: Optional[requests.Session] = None,
    ):
        self.fetcher = fetcher
        self.base_url = (base_url or Constants.GALLERY_URL).rstrip("/")
        self.session = session or create_session(HEADERS_ATOM)

    def versions_url(self, package_id: str) -> str:
        query = urllib.parse.urlencode({"id": f"'{package_id}'"})
        return f"{self.base_url}/FindPackagesById()?{query}"

    def package_url(self, identity: PackageIdentity) -> str:
        name = urllib.parse.quote(identity.name, safe="")
        version = urllib.parse.quote(identity.version, safe="")
        return f"{self.base_url}/package/{name}/{version}"

    def find_entries(self, package_id: str) -> List[IndexEntry]:
        """Return every published entry for ``package_id`` in index order."""
        entries: List[IndexEntry] = []
        url: Optional[str] = self.versions_url(package_id)
        seen = set()
        while url and url not in seen and len(seen) < _MAX_PAGES:
            seen.add(url)
            _log_http_pre(url)
            page_url = url
            body = self.fetcher.fetch(
                lambda: get_text(self.session, page_url, context="nuget"),
                description=f"query {package_id}",
            )
            try:
                page, url = parse_feed(body, package_id)
            except ET.ParseError as exc:
                logger.warning("Couldn't parse index response for %s: %s", package_id, exc)
                break
            entries.extend(page)

        if is_debug_enabled(logger):
            logger.debug(
                "Index entries fetched",
                extra=extra_context(
                    event="package_found" if entries else "not_found",
                    component="client",
                    action="find_entries",
                    count=len(entries),
                    target=package_id,
                    package_manager="nuget",
                ),
            )
        return entries

    def find_versions(self, package_id: str) -> List[str]:
        """Return all published version strings for ``package_id`` in index order."""
        return [e.version for e in self.find_entries(package_id)]

    def latest_version(self, package_id: str) -> Optional[str]:
        """Return the index's notion of the latest version.

        An entry flagged IsLatestVersion wins even when the index lists it after
        other entries; the first entry reported is only used when no entry
        carries the flag. The index ordering is trusted, not recomputed.
        """
        entries = self.find_entries(package_id)
        if not entries:
            return None
        for entry in entries:
            if entry.is_latest:
                return entry.version
        return entries[0].version

    def download(self, identity: PackageIdentity, dest: str) -> str:
        """Download the artifact for ``identity`` to ``dest``."""
        url = self.package_url(identity)
        _log_http_pre(url, "DOWNLOAD")
        os.makedirs(os.path.dirname(os.path.abspath(dest)), exist_ok=True)
        return self.fetcher.fetch(
            lambda: download_to_file(self.session, url, dest, context="nuget"),
            description=f"download {identity}",
        )
