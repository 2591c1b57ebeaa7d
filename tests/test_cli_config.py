"""Tests for configuration loading and CLI overrides."""

import json

import pytest

from args import parse_args
from cli_config import apply_cli_overrides, load_config, load_config_file
from constants import Constants


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    monkeypatch.delenv(Constants.CONFIG_ENV, raising=False)


class TestLoadConfigFile:
    def test_yaml(self, tmp_path):
        path = tmp_path / "cfg.yml"
        path.write_text("gallery_url: https://mirror.example.test/api/v2\nretry:\n  delay: 2\n")
        assert load_config_file(str(path)) == {
            "gallery_url": "https://mirror.example.test/api/v2",
            "retry": {"delay": 2},
        }

    def test_json(self, tmp_path):
        path = tmp_path / "cfg.json"
        path.write_text(json.dumps({"max_depth": 5}))
        assert load_config_file(str(path)) == {"max_depth": 5}

    def test_missing(self, tmp_path, caplog):
        assert load_config_file(str(tmp_path / "nope.yml")) == {}
        assert "not found" in caplog.text

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yml"
        path.write_text("key: [unclosed\n")
        assert load_config_file(str(path)) == {}

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "list.yml"
        path.write_text("- a\n- b\n")
        assert load_config_file(str(path)) == {}


class TestLoadConfig:
    def test_explicit_file_is_applied(self, tmp_path):
        path = tmp_path / "cfg.yml"
        path.write_text(
            "gallery_url: https://mirror.example.test/api/v2\n"
            "version_strategy: literal\n"
            "retry:\n  delay: 1.5\n  max_attempts: 3\n"
        )
        load_config(parse_args(["download", "-c", str(path)]))
        assert Constants.GALLERY_URL == "https://mirror.example.test/api/v2"
        assert Constants.VERSION_STRATEGY == "literal"
        assert Constants.RETRY_DELAY_SEC == 1.5
        assert Constants.RETRY_MAX_ATTEMPTS == 3

    def test_zero_attempts_means_forever(self, tmp_path):
        path = tmp_path / "cfg.yml"
        path.write_text("retry:\n  max_attempts: 0\n")
        load_config(parse_args(["download", "-c", str(path)]))
        assert Constants.RETRY_MAX_ATTEMPTS is None

    def test_default_location(self, tmp_path):
        (tmp_path / "nugetferry.yml").write_text("repository_name: Offline\n")
        load_config(parse_args(["download"]))
        assert Constants.REPOSITORY_NAME == "Offline"

    def test_env_location(self, tmp_path, monkeypatch):
        path = tmp_path / "elsewhere.yml"
        path.write_text("meta_package: Az\n")
        monkeypatch.setenv(Constants.CONFIG_ENV, str(path))
        load_config(parse_args(["download"]))
        assert Constants.META_PACKAGE == "Az"


class TestCliOverrides:
    def test_cli_wins_over_config(self, tmp_path):
        path = tmp_path / "cfg.yml"
        path.write_text("gallery_url: https://from-config.example.test\nmax_depth: 10\n")
        args = parse_args([
            "download", "-c", str(path),
            "--gallery-url", "https://from-cli.example.test",
            "--max-depth", "7",
            "--retry-delay", "0.5",
            "--max-attempts", "4",
        ])
        load_config(args)
        apply_cli_overrides(args)
        assert Constants.GALLERY_URL == "https://from-cli.example.test"
        assert Constants.MAX_RESOLUTION_DEPTH == 7
        assert Constants.RETRY_DELAY_SEC == 0.5
        assert Constants.RETRY_MAX_ATTEMPTS == 4

    def test_retry_forever(self):
        apply_cli_overrides(parse_args(["download", "--retry-forever"]))
        assert Constants.RETRY_MAX_ATTEMPTS is None

    def test_no_flags_leave_constants(self):
        before = Constants.GALLERY_URL, Constants.RETRY_MAX_ATTEMPTS
        apply_cli_overrides(parse_args([]))
        assert (Constants.GALLERY_URL, Constants.RETRY_MAX_ATTEMPTS) == before
