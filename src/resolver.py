"""Recursive dependency resolver.

Walks the dependency graph of a root package depth-first, downloading each
(name, version) artifact exactly once into an output directory.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import artifacts
from constants import Constants, VersionStrategies
from common.logging_utils import extra_context, is_debug_enabled
from errors import ManifestError, ResolutionDepthError, VersionRangeError
from registry.nuget.client import GalleryClient
from registry.nuget.manifest import read_dependencies
from versioning.models import DependencyDeclaration, PackageIdentity
from versioning.ranges import NuGetVersion, VersionRange, extract_literal_version, pick_highest

logger = logging.getLogger(__name__)


@dataclass
class ResolutionContext:
    """State owned by one top-level resolve() call.

    ``visited`` maps identity keys to True; a key, once present, is never
    fetched or expanded again.
    """

    max_depth: int = 64
    visited: Dict[str, bool] = field(default_factory=dict)
    resolved: List[PackageIdentity] = field(default_factory=list)
    downloaded: List[PackageIdentity] = field(default_factory=list)
    cached: List[PackageIdentity] = field(default_factory=list)
    skipped: List[DependencyDeclaration] = field(default_factory=list)
    candidates: Dict[str, List[str]] = field(default_factory=dict)

    def is_visited(self, identity: PackageIdentity) -> bool:
        return self.visited.get(identity.key, False)

    def mark_visited(self, identity: PackageIdentity) -> None:
        self.visited[identity.key] = True
        self.resolved.append(identity)


class DependencyResolver:
    """Resolve and download a package and its transitive dependencies."""

    def __init__(
        self,
        client: GalleryClient,
        output_dir: str,
        strategy: str = VersionStrategies.HIGHEST.value,
        max_depth: Optional[int] = None,
    ):
        if strategy not in Constants.VERSION_STRATEGIES:
            raise ValueError(f"Unknown version strategy: {strategy}")
        self.client = client
        self.output_dir = output_dir
        self.strategy = strategy
        self.max_depth = max_depth if max_depth is not None else Constants.MAX_RESOLUTION_DEPTH

    def resolve(
        self,
        name: str,
        version: Optional[str] = None,
        context: Optional[ResolutionContext] = None,
    ) -> ResolutionContext:
        """Resolve ``name`` (at ``version``, or the latest) and everything it depends on.

        Returns:
            The ResolutionContext describing what was resolved and downloaded.

        Raises:
            FetchError: If a required network call exhausted its retries.
            ResolutionDepthError: If the graph is deeper than ``max_depth``.
        """
        ctx = context or ResolutionContext(max_depth=self.max_depth)
        os.makedirs(self.output_dir, exist_ok=True)
        if not version:
            version = self.client.latest_version(name)
            if not version:
                logger.error("Package %s was not found in the index.", name)
                return ctx
            logger.info("Latest version of %s is %s", name, version)
        self._visit(PackageIdentity(name, version), ctx, depth=0)
        logger.info(
            "Resolved %d package(s): %d downloaded, %d already present.",
            len(ctx.resolved),
            len(ctx.downloaded),
            len(ctx.cached),
        )
        return ctx

    def _visit(self, identity: PackageIdentity, ctx: ResolutionContext, depth: int) -> None:
        if ctx.is_visited(identity):
            if is_debug_enabled(logger):
                logger.debug(
                    "Already visited",
                    extra=extra_context(
                        event="decision", component="resolver", action="visit",
                        target=identity.key, outcome="memoized",
                    ),
                )
            return
        if depth >= ctx.max_depth:
            raise ResolutionDepthError(
                f"Dependency chain longer than {ctx.max_depth} levels at {identity}"
            )
        # Mark before expanding so cycles terminate.
        ctx.mark_visited(identity)

        path = self._materialize(identity, ctx)

        try:
            declarations = read_dependencies(path)
        except ManifestError as exc:
            logger.warning("Can't read dependencies of %s: %s", identity, exc)
            return

        for declaration in declarations:
            version = self.select_version(declaration, ctx)
            if version is None:
                ctx.skipped.append(declaration)
                continue
            self._visit(PackageIdentity(declaration.name, version), ctx, depth + 1)

    def _materialize(self, identity: PackageIdentity, ctx: ResolutionContext) -> str:
        path = artifacts.artifact_path(self.output_dir, identity)
        if os.path.isfile(path):
            logger.info("%s is already present.", artifacts.artifact_filename(identity))
            ctx.cached.append(identity)
        else:
            logger.info("Downloading %s", identity)
            self.client.download(identity, path)
            ctx.downloaded.append(identity)
        if artifacts.read_sidecar(path) is None:
            artifacts.write_sidecar(path, identity)
        return path

    def _exact_spelling(self, name: str, version: NuGetVersion, ctx: ResolutionContext) -> str:
        """Spell an exact version the way the index does, so one version has one key."""
        for candidate in ctx.candidates.get(name.lower()) or ():
            try:
                if NuGetVersion.parse(candidate) == version:
                    return candidate
            except VersionRangeError:
                continue
        return version.normalized

    def select_version(
        self, declaration: DependencyDeclaration, ctx: ResolutionContext
    ) -> Optional[str]:
        """Turn a dependency's constraint into a concrete version, or None.

        Unresolvable constraints are logged and yield None; they never raise.
        """
        constraint = declaration.version_constraint
        if self.strategy == VersionStrategies.LITERAL.value:
            version = extract_literal_version(constraint)
            if version is None:
                logger.warning(
                    "No exact version in constraint %r for %s; skipping.",
                    constraint, declaration.name,
                )
            return version

        try:
            version_range = VersionRange.parse(constraint)
        except VersionRangeError as exc:
            logger.warning("Skipping %s: %s", declaration.name, exc)
            return None

        if version_range.is_exact:
            return self._exact_spelling(declaration.name, version_range.lower, ctx)

        candidates = ctx.candidates.get(declaration.name.lower())
        if candidates is None:
            candidates = self.client.find_versions(declaration.name)
            ctx.candidates[declaration.name.lower()] = candidates
        version = pick_highest(candidates, version_range)
        if version is None:
            logger.warning(
                "No published version of %s satisfies %r; skipping.",
                declaration.name, constraint,
            )
        return version
