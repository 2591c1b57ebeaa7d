"""Install resolved packages from the local feed."""
from __future__ import annotations

import logging
import zipfile
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

import artifacts
from constants import Constants
from errors import PackageManagerError
from package_manager import PowerShellPackageManager
from repository import RepositoryBuilder, expand_module
from versioning.models import PackageIdentity

logger = logging.getLogger(__name__)


@dataclass
class InstallReport:
    """Outcome of one install_all() run."""
    installed: List[PackageIdentity] = field(default_factory=list)
    skipped: List[PackageIdentity] = field(default_factory=list)
    failed: Dict[PackageIdentity, str] = field(default_factory=dict)
    expand_failed: Dict[PackageIdentity, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed and not self.expand_failed


class Installer:
    """Build the feed, register it and install every identity from it."""

    def __init__(
        self,
        builder: RepositoryBuilder,
        package_manager: PowerShellPackageManager,
        source_dir: str,
        feed_dir: str,
        repository_name: Optional[str] = None,
        meta_package: Optional[str] = None,
    ):
        self.builder = builder
        self.package_manager = package_manager
        self.source_dir = source_dir
        self.feed_dir = feed_dir
        self.repository_name = repository_name or Constants.REPOSITORY_NAME
        self.meta_package = meta_package if meta_package is not None else Constants.META_PACKAGE

    def is_meta_package(self, identity: PackageIdentity) -> bool:
        return bool(self.meta_package) and identity.name.lower() == self.meta_package.lower()

    def install_all(
        self,
        module_root: str,
        identities: Optional[Iterable[PackageIdentity]] = None,
    ) -> InstallReport:
        """Install ``identities`` (or everything found on disk) into ``module_root``.

        Raises:
            RepositoryBuildError: If the feed can't be built.
            PackageManagerError: If the feed can't be registered.
        """
        if identities is None:
            identities = artifacts.read_identities(self.source_dir)
        identities = list(identities)
        report = InstallReport()

        self.builder.build(self.source_dir, self.feed_dir)

        for identity in identities:
            try:
                expand_module(identity, self.source_dir, self.feed_dir)
            except (OSError, zipfile.BadZipFile) as exc:
                logger.error("Couldn't expand %s: %s", identity, exc)
                report.expand_failed[identity] = str(exc)

        self.package_manager.register_source(self.repository_name, self.feed_dir)

        for identity in identities:
            if self.is_meta_package(identity):
                logger.info("Skipping meta-package %s", identity)
                report.skipped.append(identity)
                continue
            if identity in report.expand_failed:
                logger.error("Not installing %s: its artifact could not be expanded", identity)
                continue
            logger.info("Installing %s into %s", identity, module_root)
            try:
                self.package_manager.install(identity, self.repository_name, module_root)
            except PackageManagerError as exc:
                logger.error("Failed to install %s: %s", identity, exc)
                report.failed[identity] = str(exc)
                continue
            report.installed.append(identity)

        logger.info(
            "Install finished: %d installed, %d skipped, %d failed.",
            len(report.installed),
            len(report.skipped),
            len(report.failed),
        )
        return report
