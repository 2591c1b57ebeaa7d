"""Tests for local feed assembly."""

import os
import subprocess
from unittest.mock import MagicMock, patch

import pytest

import artifacts
from common.fetcher import Fetcher, RetryPolicy
from errors import RepositoryBuildError
from repository import RepositoryBuilder, clean_directory, expand_module
from versioning.models import PackageIdentity


def completed(returncode=0, stdout=""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout)


def make_builder(tmp_path, runner=None, launcher=""):
    tool = tmp_path / "tools" / "nuget.exe"
    tool.parent.mkdir(parents=True, exist_ok=True)
    tool.write_bytes(b"MZ")
    return RepositoryBuilder(
        Fetcher(RetryPolicy(delay=0), sleep=lambda _: None),
        str(tool),
        tool_url="https://tools.example.test/nuget.exe",
        launcher=launcher,
        runner=runner or MagicMock(return_value=completed(stdout="Installing 'A 1.0.0'.\n")),
        session=MagicMock(),
    )


class TestEnsureTool:
    def test_present_tool_is_not_fetched(self, tmp_path):
        builder = make_builder(tmp_path)
        with patch("repository.download_to_file") as mock_download:
            assert builder.ensure_tool() == builder.tool_path
        mock_download.assert_not_called()

    def test_missing_tool_is_fetched_with_retries(self, tmp_path):
        builder = make_builder(tmp_path)
        os.remove(builder.tool_path)
        with patch("repository.download_to_file") as mock_download:
            mock_download.side_effect = [OSError("reset"), builder.tool_path]
            assert builder.ensure_tool() == builder.tool_path
        assert mock_download.call_count == 2
        assert mock_download.call_args[0][1] == "https://tools.example.test/nuget.exe"


class TestToolCommand:
    def test_direct(self, tmp_path):
        builder = make_builder(tmp_path)
        assert builder.tool_command("init", "a", "b") == [builder.tool_path, "init", "a", "b"]

    def test_with_launcher(self, tmp_path):
        builder = make_builder(tmp_path, launcher="mono")
        assert builder.tool_command("init")[:2] == ["mono", builder.tool_path]


class TestBuild:
    """Clean, copy and index."""

    def test_build_cleans_copies_and_indexes(self, tmp_path, make_nupkg):
        source = tmp_path / "dl"
        feed = tmp_path / "feed"
        make_nupkg(source / "A.1.0.0.nupkg", "A", "1.0.0")
        make_nupkg(source / "B.2.0.0.nupkg", "B", "2.0.0")
        feed.mkdir()
        (feed / "stale.txt").write_text("old")
        (feed / "OldDir").mkdir()

        runner = MagicMock(return_value=completed(stdout="Installing 'A 1.0.0'.\nInstalling 'B 2.0.0'.\n"))
        builder = make_builder(tmp_path, runner=runner)
        output = builder.build(str(source), str(feed))

        assert sorted(os.listdir(feed)) == ["A.1.0.0.nupkg", "B.2.0.0.nupkg"]
        assert "Installing 'B 2.0.0'." in output
        cmd = runner.call_args[0][0]
        assert cmd == [builder.tool_path, "init", str(source), str(feed)]

    def test_init_output_is_logged(self, tmp_path, caplog):
        builder = make_builder(tmp_path)
        (tmp_path / "dl").mkdir()
        with caplog.at_level("INFO", logger="repository"):
            builder.build(str(tmp_path / "dl"), str(tmp_path / "feed"))
        assert "nuget: Installing 'A 1.0.0'." in caplog.text

    def test_nonzero_exit_raises(self, tmp_path):
        builder = make_builder(tmp_path, runner=MagicMock(return_value=completed(1, "boom")))
        (tmp_path / "dl").mkdir()
        with pytest.raises(RepositoryBuildError) as exc_info:
            builder.build(str(tmp_path / "dl"), str(tmp_path / "feed"))
        assert exc_info.value.output == "boom"

    def test_missing_tool_binary_raises(self, tmp_path):
        builder = make_builder(tmp_path, runner=MagicMock(side_effect=FileNotFoundError("mono")))
        (tmp_path / "dl").mkdir()
        with pytest.raises(RepositoryBuildError):
            builder.build(str(tmp_path / "dl"), str(tmp_path / "feed"))

    def test_feed_must_differ_from_source(self, tmp_path):
        builder = make_builder(tmp_path)
        with pytest.raises(RepositoryBuildError):
            builder.build(str(tmp_path), str(tmp_path))

    def test_feed_containing_source_is_rejected(self, tmp_path, make_nupkg):
        source = tmp_path / "pkgs"
        artifact = make_nupkg(source / "A.1.0.0.nupkg", "A", "1.0.0")
        runner = MagicMock(return_value=completed())
        builder = make_builder(tmp_path, runner=runner)

        with pytest.raises(RepositoryBuildError):
            builder.build(str(source), str(tmp_path))

        assert os.path.isfile(artifact)
        runner.assert_not_called()

    def test_feed_inside_source_is_allowed(self, tmp_path, make_nupkg):
        source = tmp_path / "pkgs"
        artifact = make_nupkg(source / "A.1.0.0.nupkg", "A", "1.0.0")
        builder = make_builder(tmp_path)

        builder.build(str(source), str(source / "feed"))

        assert os.path.isfile(artifact)
        assert os.path.isfile(source / "feed" / "A.1.0.0.nupkg")


class TestExpandModule:
    def test_layout(self, tmp_path, make_nupkg):
        source = tmp_path / "dl"
        make_nupkg(
            source / "Az.Accounts.2.1.0.nupkg", "Az.Accounts", "2.1.0",
            extra_files={"Az.Accounts.psm1": "function Get-X {}", "package/services/x.psmdcp": "meta"},
        )
        dest = expand_module(PackageIdentity("Az.Accounts", "2.1.0"), str(source), str(tmp_path / "feed"))

        assert dest == os.path.join(str(tmp_path / "feed"), "Az.Accounts", "2.1.0")
        assert sorted(os.listdir(dest)) == ["Az.Accounts.psd1", "Az.Accounts.psm1"]

    def test_uses_sidecar_for_renamed_artifact(self, tmp_path, make_nupkg):
        source = tmp_path / "dl"
        path = make_nupkg(source / "odd-name.nupkg", "Mod", "1.0.0.0")
        artifacts.write_sidecar(path, PackageIdentity("Mod", "1.0.0.0"))
        dest = expand_module(PackageIdentity("Mod", "1.0.0.0"), str(source), str(tmp_path / "feed"))
        assert os.path.isfile(os.path.join(dest, "Mod.psd1"))

    def test_missing_artifact(self, tmp_path):
        (tmp_path / "dl").mkdir()
        with pytest.raises(FileNotFoundError):
            expand_module(PackageIdentity("Nope", "1.0.0"), str(tmp_path / "dl"), str(tmp_path / "feed"))


def test_clean_directory_creates_missing(tmp_path):
    target = tmp_path / "new"
    clean_directory(str(target))
    assert target.is_dir()
