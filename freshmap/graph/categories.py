"""Static category table — which part of the project a package belongs to."""

from __future__ import annotations

from collections.abc import Mapping

DEFAULT_CATEGORY = "Downstream"

ALL_CATEGORIES: tuple[str, ...] = (
    "Specifications",
    "Core Utility",
    "Core",
    "UI Packages",
    "Packaged Bundles",
    DEFAULT_CATEGORY,
)

# Shown by default; the rest are opt-in.
DEFAULT_VISIBLE_CATEGORIES: tuple[str, ...] = tuple(
    c for c in ALL_CATEGORIES if c not in (DEFAULT_CATEGORY, "UI Packages")
)

PACKAGE_CATEGORY_MAP: Mapping[str, str] = {
    "circuit-json": "Specifications",
    "@tscircuit/props": "Specifications",
    "schematic-symbols": "Specifications",
    "@tscircuit/footprinter": "Specifications",
    "jscad-fiber": "Specifications",
    "circuit-to-svg": "Core Utility",
    "jscad-electronics": "UI Packages",
    "@tscircuit/core": "Core",
    "@tscircuit/schematic-viewer": "UI Packages",
    "@tscircuit/pcb-viewer": "UI Packages",
    "@tscircuit/3d-viewer": "UI Packages",
    "@tscircuit/eval": "Packaged Bundles",
    "@tscircuit/runframe": "Packaged Bundles",
    "tscircuit": "Packaged Bundles",
}


def build_category_table(overrides: Mapping[str, str] | None = None) -> dict[str, str]:
    """The built-in table with *overrides* layered on top."""
    table = dict(PACKAGE_CATEGORY_MAP)
    if overrides:
        table.update(overrides)
    return table


def category_for_package(
    package_name: str | None,
    repo_name: str,
    table: Mapping[str, str] = PACKAGE_CATEGORY_MAP,
) -> str:
    """Package name first, then repository name, then the catch-all."""
    if package_name and package_name in table:
        return table[package_name]
    if repo_name in table:
        return table[repo_name]
    return DEFAULT_CATEGORY
