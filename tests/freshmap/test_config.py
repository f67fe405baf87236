"""Tests for environment-driven settings."""

from __future__ import annotations

import json

import pytest

from freshmap.core.config import (
    DEFAULT_BRANCHES,
    DEFAULT_REPO_URLS,
    ConfigError,
    Settings,
    load_category_file,
    load_settings,
)

_VARS = (
    "FRESHMAP_REPOS",
    "FRESHMAP_DEPENDENCY_MODE",
    "FRESHMAP_BRANCHES",
    "FRESHMAP_FETCH_TIMEOUT",
    "FRESHMAP_MAX_CONCURRENCY",
    "FRESHMAP_REFRESH_INTERVAL",
    "FRESHMAP_CATEGORY_FILE",
    "FRESHMAP_CORS_ORIGINS",
    "GITHUB_TOKEN",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in _VARS:
        monkeypatch.delenv(var, raising=False)


class TestLoadSettings:
    def test_defaults(self):
        settings = load_settings()
        assert settings == Settings()
        assert settings.repo_urls == DEFAULT_REPO_URLS
        assert settings.branches == DEFAULT_BRANCHES == ("main", "master")
        assert settings.fetch_timeout == 15.0
        assert settings.max_concurrency == 8
        assert settings.refresh_interval == 60.0
        assert settings.github_token is None

    def test_overrides(self, monkeypatch):
        monkeypatch.setenv("FRESHMAP_REPOS", "https://github.com/a/b, https://github.com/c/d")
        monkeypatch.setenv("FRESHMAP_DEPENDENCY_MODE", "PEER")
        monkeypatch.setenv("FRESHMAP_BRANCHES", "trunk")
        monkeypatch.setenv("FRESHMAP_FETCH_TIMEOUT", "2.5")
        monkeypatch.setenv("FRESHMAP_MAX_CONCURRENCY", "3")
        monkeypatch.setenv("GITHUB_TOKEN", "ghp_x")
        settings = load_settings()
        assert settings.repo_urls == ("https://github.com/a/b", "https://github.com/c/d")
        assert settings.dependency_mode == "peer"
        assert settings.branches == ("trunk",)
        assert settings.fetch_timeout == 2.5
        assert settings.max_concurrency == 3
        assert settings.github_token == "ghp_x"

    def test_bad_mode(self, monkeypatch):
        monkeypatch.setenv("FRESHMAP_DEPENDENCY_MODE", "dev")
        with pytest.raises(ConfigError, match="FRESHMAP_DEPENDENCY_MODE"):
            load_settings()

    @pytest.mark.parametrize("value", ["soon", "0", "-1"])
    def test_bad_timeout(self, monkeypatch, value):
        monkeypatch.setenv("FRESHMAP_FETCH_TIMEOUT", value)
        with pytest.raises(ConfigError, match="FRESHMAP_FETCH_TIMEOUT"):
            load_settings()

    def test_bad_concurrency(self, monkeypatch):
        monkeypatch.setenv("FRESHMAP_MAX_CONCURRENCY", "0")
        with pytest.raises(ConfigError):
            load_settings()

    def test_category_file(self, monkeypatch, tmp_path):
        path = tmp_path / "categories.json"
        path.write_text(json.dumps({"@acme/widget": "Core"}), encoding="utf-8")
        monkeypatch.setenv("FRESHMAP_CATEGORY_FILE", str(path))
        assert load_settings().category_overrides == {"@acme/widget": "Core"}


class TestLoadCategoryFile:
    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="cannot read"):
            load_category_file(tmp_path / "nope.json")

    def test_wrong_shape(self, tmp_path):
        path = tmp_path / "categories.json"
        path.write_text(json.dumps(["Core"]), encoding="utf-8")
        with pytest.raises(ConfigError, match="string-to-string"):
            load_category_file(path)
