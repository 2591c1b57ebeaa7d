"""Tests for the PowerShell package-manager wrapper."""

import os
import subprocess
from unittest.mock import MagicMock

import pytest

from errors import PackageManagerError
from package_manager import PowerShellPackageManager, module_path_candidates, ps_quote
from versioning.models import PackageIdentity


def completed(returncode=0, stdout=""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout)


def scripts(runner):
    return [call[0][0][-1] for call in runner.call_args_list]


def test_ps_quote_escapes_single_quotes():
    assert ps_quote("C:\\Program Files\\it's") == "'C:\\Program Files\\it''s'"


def test_module_path_candidates_dedupes_in_order():
    raw = os.pathsep.join(["/a", "/b", "", "/a", " /c "])
    assert module_path_candidates(raw) == ["/a", "/b", "/c"]


def test_module_path_candidates_from_env(monkeypatch):
    monkeypatch.setenv("PSModulePath", "/x")
    assert module_path_candidates() == ["/x"]


class TestRegisterSource:
    def test_registers_new_source(self, tmp_path):
        runner = MagicMock(side_effect=[completed(1), completed(0)])
        PowerShellPackageManager("pwsh", runner=runner).register_source("Local", str(tmp_path))

        first, second = scripts(runner)
        assert "Get-PSRepository -Name 'Local'" in first
        assert second.startswith("Register-PSRepository -Name 'Local'")
        assert f"-SourceLocation '{tmp_path}'" in second
        assert "-InstallationPolicy Trusted" in second

    def test_updates_existing_source(self, tmp_path):
        runner = MagicMock(side_effect=[completed(0), completed(0)])
        PowerShellPackageManager("pwsh", runner=runner).register_source("Local", str(tmp_path))
        assert scripts(runner)[1].startswith("Set-PSRepository -Name 'Local'")

    def test_failure_raises(self, tmp_path):
        runner = MagicMock(side_effect=[completed(1), completed(1, "access denied")])
        with pytest.raises(PackageManagerError) as exc_info:
            PowerShellPackageManager("pwsh", runner=runner).register_source("Local", str(tmp_path))
        assert exc_info.value.output == "access denied"


class TestInstall:
    def test_command_shape(self):
        runner = MagicMock(return_value=completed(0, "ok"))
        manager = PowerShellPackageManager("pwsh", runner=runner)
        assert manager.install(PackageIdentity("Az.Accounts", "2.1.0"), "Local", "/modules") == "ok"

        cmd = runner.call_args[0][0]
        assert cmd[:4] == ["pwsh", "-NoProfile", "-NonInteractive", "-Command"]
        assert cmd[4] == (
            "Save-Module -Name 'Az.Accounts' -RequiredVersion '2.1.0' "
            "-Repository 'Local' -Path '/modules' -Force -ErrorAction Stop"
        )

    def test_nonzero_exit_raises(self):
        runner = MagicMock(return_value=completed(1, "No match was found"))
        with pytest.raises(PackageManagerError):
            PowerShellPackageManager("pwsh", runner=runner).install(PackageIdentity("A", "1.0.0"), "Local", "/m")

    def test_missing_executable_raises(self):
        runner = MagicMock(side_effect=FileNotFoundError("pwsh"))
        with pytest.raises(PackageManagerError):
            PowerShellPackageManager("pwsh", runner=runner).install(PackageIdentity("A", "1.0.0"), "Local", "/m")
