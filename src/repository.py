"""Local feed assembly.

Turns a flat download directory into a NuGet feed that a package-manager
client can install from, using ``nuget init``.
"""
from __future__ import annotations

import logging
import os
import shutil
import subprocess
import zipfile
from typing import Callable, List, Optional

import artifacts
from constants import Constants
from common.fetcher import Fetcher
from common.http_client import create_session, download_to_file
from common.logging_utils import extra_context, is_debug_enabled, Timer
from errors import RepositoryBuildError
from versioning.models import PackageIdentity

logger = logging.getLogger(__name__)

# Files inside a .nupkg that belong to the package format, not the module.
_PACKAGING_ENTRIES = ("[Content_Types].xml", "_rels/", "package/")


def clean_directory(path: str) -> None:
    """Remove everything inside ``path``, creating it if missing."""
    if os.path.isdir(path):
        for name in os.listdir(path):
            target = os.path.join(path, name)
            if os.path.isdir(target) and not os.path.islink(target):
                shutil.rmtree(target)
            else:
                os.remove(target)
    os.makedirs(path, exist_ok=True)


def expand_module(identity: PackageIdentity, source_dir: str, feed_dir: str) -> str:
    """Extract the artifact for ``identity`` into ``feed_dir/Name/Version``.

    Packaging metadata (content types, relationships, the nuspec) is left out
    so the directory is shaped like an installed module.

    Raises:
        FileNotFoundError: If no artifact for ``identity`` exists in ``source_dir``.
        zipfile.BadZipFile: If the artifact is not a valid archive.
    """
    path = artifacts.locate_artifact(source_dir, identity)
    if path is None:
        raise FileNotFoundError(
            f"{artifacts.artifact_filename(identity)} not found in {source_dir}"
        )
    dest = os.path.join(feed_dir, identity.name, identity.version)
    # May share a directory with the hierarchical layout written by nuget init
    # on case-insensitive filesystems, so extract over it rather than replace.
    os.makedirs(dest, exist_ok=True)
    with zipfile.ZipFile(path) as archive:
        members = [
            m for m in archive.namelist()
            if not m.startswith(_PACKAGING_ENTRIES) and not m.lower().endswith(".nuspec")
        ]
        archive.extractall(dest, members=members)
    logger.info("Expanded %s into %s", identity, dest)
    return dest


def _contains(parent: str, child: str) -> bool:
    """True if ``child`` is ``parent`` or lies somewhere below it."""
    parent = os.path.normcase(os.path.abspath(parent))
    child = os.path.normcase(os.path.abspath(child))
    try:
        return os.path.commonpath([parent, child]) == parent
    except ValueError:
        # Different drives.
        return False


class RepositoryBuilder:
    """Build a local feed from downloaded artifacts."""

    def __init__(
        self,
        fetcher: Fetcher,
        tool_path: str,
        tool_url: Optional[str] = None,
        launcher: Optional[str] = None,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
        session=None,
    ):
        self.fetcher = fetcher
        self.tool_path = tool_path
        self.tool_url = tool_url or Constants.NUGET_TOOL_URL
        self.launcher = launcher if launcher is not None else Constants.NUGET_TOOL_LAUNCHER
        self._runner = runner
        self._session = session

    def ensure_tool(self) -> str:
        """Download the indexing tool once; a present file is never re-fetched."""
        if os.path.isfile(self.tool_path):
            logger.debug("Indexing tool present at %s", self.tool_path)
            return self.tool_path
        logger.info("Fetching indexing tool from %s", self.tool_url)
        os.makedirs(os.path.dirname(os.path.abspath(self.tool_path)), exist_ok=True)
        session = self._session or create_session()
        return self.fetcher.fetch(
            lambda: download_to_file(session, self.tool_url, self.tool_path, context="nuget-tool"),
            description="download indexing tool",
        )

    def tool_command(self, *args: str) -> List[str]:
        cmd = [self.launcher] if self.launcher else []
        cmd.append(self.tool_path)
        cmd.extend(args)
        return cmd

    def copy_artifacts(self, source_dir: str, feed_dir: str) -> List[str]:
        copied = []
        for path in artifacts.list_artifacts(source_dir):
            dest = os.path.join(feed_dir, os.path.basename(path))
            shutil.copy2(path, dest)
            copied.append(dest)
        logger.info("Copied %d artifact(s) into %s", len(copied), feed_dir)
        return copied

    def init_feed(self, source_dir: str, feed_dir: str) -> str:
        """Run ``nuget init`` and return its combined output.

        Raises:
            RepositoryBuildError: If the tool can't be started or exits non-zero.
        """
        cmd = self.tool_command("init", source_dir, feed_dir)
        with Timer() as t:
            try:
                result = self._runner(
                    cmd,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.STDOUT,
                    text=True,
                    check=False,
                )
            except OSError as exc:
                raise RepositoryBuildError(f"Couldn't run {cmd[0]}: {exc}") from exc
        output = (result.stdout or "").strip()
        for line in output.splitlines():
            logger.info("nuget: %s", line)
        if is_debug_enabled(logger):
            logger.debug(
                "Indexing tool finished",
                extra=extra_context(
                    event="subprocess", component="repository", action="init",
                    outcome=result.returncode, duration_ms=t.duration_ms(),
                ),
            )
        if result.returncode != 0:
            raise RepositoryBuildError(
                f"nuget init exited with status {result.returncode}", output
            )
        return output

    def build(self, source_dir: str, feed_dir: str) -> str:
        """Rebuild ``feed_dir`` from the artifacts in ``source_dir``.

        The feed is cleaned first; it is never merged incrementally.
        """
        if _contains(feed_dir, source_dir):
            raise RepositoryBuildError(
                f"Feed directory {feed_dir} must not be or contain the source directory {source_dir}"
            )
        self.ensure_tool()
        clean_directory(feed_dir)
        self.copy_artifacts(source_dir, feed_dir)
        return self.init_feed(source_dir, feed_dir)
