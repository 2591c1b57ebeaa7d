"""PowerShell package-manager client.

Registers a local feed as a trusted PowerShellGet repository and saves modules
from it into a module root. Each operation is one ``pwsh -Command`` call.
"""
from __future__ import annotations

import logging
import os
import subprocess
from typing import Callable, List, Optional

from constants import Constants
from errors import PackageManagerError
from versioning.models import PackageIdentity

logger = logging.getLogger(__name__)


def ps_quote(value: str) -> str:
    """Quote a value as a PowerShell single-quoted string literal."""
    return "'" + str(value).replace("'", "''") + "'"


def module_path_candidates(env_value: Optional[str] = None) -> List[str]:
    """Return the distinct entries of PSModulePath, in order."""
    raw = env_value if env_value is not None else os.environ.get("PSModulePath", "")
    seen = set()
    roots = []
    for entry in raw.split(os.pathsep):
        entry = entry.strip()
        if entry and entry not in seen:
            seen.add(entry)
            roots.append(entry)
    return roots


class PowerShellPackageManager:
    """Thin wrapper over PowerShellGet cmdlets."""

    def __init__(
        self,
        executable: Optional[str] = None,
        runner: Callable[..., subprocess.CompletedProcess] = subprocess.run,
    ):
        self.executable = executable or Constants.POWERSHELL_EXECUTABLE
        self._runner = runner

    def _run(self, script: str) -> subprocess.CompletedProcess:
        cmd = [self.executable, "-NoProfile", "-NonInteractive", "-Command", script]
        logger.debug("Running: %s", script)
        try:
            return self._runner(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                check=False,
            )
        except OSError as exc:
            raise PackageManagerError(f"Couldn't start {self.executable}: {exc}") from exc

    def _run_checked(self, script: str, what: str) -> str:
        result = self._run(script)
        output = (result.stdout or "").strip()
        if result.returncode != 0:
            raise PackageManagerError(f"{what} failed: {output or result.returncode}", output)
        return output

    def source_exists(self, name: str) -> bool:
        script = (
            f"if (Get-PSRepository -Name {ps_quote(name)} -ErrorAction SilentlyContinue) "
            "{ exit 0 } else { exit 1 }"
        )
        return self._run(script).returncode == 0

    def register_source(self, name: str, location: str) -> None:
        """Register ``location`` as a trusted repository, or update it if registered."""
        location = os.path.abspath(location)
        if self.source_exists(name):
            logger.info("Updating repository %s -> %s", name, location)
            script = (
                f"Set-PSRepository -Name {ps_quote(name)} -SourceLocation {ps_quote(location)} "
                "-InstallationPolicy Trusted -ErrorAction Stop"
            )
        else:
            logger.info("Registering repository %s -> %s", name, location)
            script = (
                f"Register-PSRepository -Name {ps_quote(name)} -SourceLocation {ps_quote(location)} "
                "-InstallationPolicy Trusted -ErrorAction Stop"
            )
        self._run_checked(script, f"Registering repository {name}")

    def install(self, identity: PackageIdentity, repository: str, module_root: str) -> str:
        """Save one module at its exact version from ``repository`` into ``module_root``."""
        script = (
            f"Save-Module -Name {ps_quote(identity.name)} "
            f"-RequiredVersion {ps_quote(identity.version)} "
            f"-Repository {ps_quote(repository)} -Path {ps_quote(module_root)} "
            "-Force -ErrorAction Stop"
        )
        return self._run_checked(script, f"Installing {identity}")
