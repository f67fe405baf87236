"""Runtime settings — read once from ``FRESHMAP_*`` environment variables."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path

from freshmap.exceptions import FreshmapError

DEFAULT_REPO_URLS: tuple[str, ...] = (
    "https://github.com/tscircuit/tscircuit",
    "https://github.com/tscircuit/core",
    "https://github.com/tscircuit/schematic-viewer",
    "https://github.com/tscircuit/circuit-to-svg",
    "https://github.com/tscircuit/pcb-viewer",
    "https://github.com/tscircuit/circuit-json",
    "https://github.com/tscircuit/props",
    "https://github.com/tscircuit/tscircuit-autorouter",
    "https://github.com/tscircuit/tscircuit.com",
    "https://github.com/tscircuit/svg.tscircuit.com",
    "https://github.com/tscircuit/runframe",
    "https://github.com/tscircuit/eval",
    "https://github.com/tscircuit/easyeda-converter",
    "https://github.com/tscircuit/3d-viewer",
    "https://github.com/tscircuit/schematic-symbols",
    "https://github.com/tscircuit/jscad-fiber",
    "https://github.com/tscircuit/footprinter",
    "https://github.com/tscircuit/jscad-electronics",
    "https://github.com/tscircuit/parts-engine",
    "https://github.com/tscircuit/cli",
)

DEFAULT_BRANCHES: tuple[str, ...] = ("main", "master")


class ConfigError(FreshmapError):
    """Raised when an environment variable holds an unusable value."""


@dataclass(frozen=True)
class Settings:
    repo_urls: tuple[str, ...] = DEFAULT_REPO_URLS
    dependency_mode: str = "all"
    branches: tuple[str, ...] = DEFAULT_BRANCHES
    fetch_timeout: float = 15.0
    max_concurrency: int = 8
    refresh_interval: float = 60.0
    category_overrides: dict[str, str] = field(default_factory=dict)
    cors_origins: tuple[str, ...] = ("http://localhost:3000",)
    github_token: str | None = None


def _env_list(key: str, default: tuple[str, ...]) -> tuple[str, ...]:
    raw = os.environ.get(key)
    if raw is None:
        return default
    items = tuple(item.strip() for item in raw.split(",") if item.strip())
    return items or default


def _env_float(key: str, default: float) -> float:
    raw = os.environ.get(key)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigError(f"{key} must be a number, got {raw!r}") from exc
    if value <= 0:
        raise ConfigError(f"{key} must be positive, got {raw!r}")
    return value


def _env_int(key: str, default: int) -> int:
    raw = os.environ.get(key)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigError(f"{key} must be an integer, got {raw!r}") from exc
    if value < 1:
        raise ConfigError(f"{key} must be at least 1, got {raw!r}")
    return value


def load_category_file(path: str | Path) -> dict[str, str]:
    """Load a ``{name: category}`` JSON object used to extend the category table."""
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"cannot read category file {str(path)!r}: {exc}") from exc
    if not isinstance(data, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in data.items()
    ):
        raise ConfigError(f"category file {str(path)!r} must hold a string-to-string object")
    return data


def load_settings() -> Settings:
    """Build :class:`Settings` from the environment.

    Recognised variables:
        FRESHMAP_REPOS             — comma-separated repository URLs
        FRESHMAP_DEPENDENCY_MODE   — peer | all (default: all)
        FRESHMAP_BRANCHES          — candidate branches, in order (default: main,master)
        FRESHMAP_FETCH_TIMEOUT     — per-repository timeout in seconds (default: 15)
        FRESHMAP_MAX_CONCURRENCY   — concurrent repository fetches (default: 8)
        FRESHMAP_REFRESH_INTERVAL  — seconds between refresh cycles (default: 60)
        FRESHMAP_CATEGORY_FILE     — JSON object of extra name → category entries
        FRESHMAP_CORS_ORIGINS      — comma-separated allowed origins
        GITHUB_TOKEN               — optional, raises the public API rate limit
    """
    mode = os.environ.get("FRESHMAP_DEPENDENCY_MODE", "all").strip().lower()
    if mode not in ("peer", "all"):
        raise ConfigError(f"FRESHMAP_DEPENDENCY_MODE must be 'peer' or 'all', got {mode!r}")

    category_file = os.environ.get("FRESHMAP_CATEGORY_FILE")
    overrides = load_category_file(category_file) if category_file else {}

    return Settings(
        repo_urls=_env_list("FRESHMAP_REPOS", DEFAULT_REPO_URLS),
        dependency_mode=mode,
        branches=_env_list("FRESHMAP_BRANCHES", DEFAULT_BRANCHES),
        fetch_timeout=_env_float("FRESHMAP_FETCH_TIMEOUT", 15.0),
        max_concurrency=_env_int("FRESHMAP_MAX_CONCURRENCY", 8),
        refresh_interval=_env_float("FRESHMAP_REFRESH_INTERVAL", 60.0),
        category_overrides=overrides,
        cors_origins=_env_list("FRESHMAP_CORS_ORIGINS", ("http://localhost:3000",)),
        github_token=os.environ.get("GITHUB_TOKEN") or None,
    )
