"""Version registry — package name → latest known version, built once per run."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from types import MappingProxyType

import structlog

from freshmap.engines.manifest_fetcher.models import ManifestResult

log = structlog.get_logger("freshmap.engine")

VersionRegistry = Mapping[str, str]


def build_registry(results: Iterable[ManifestResult]) -> VersionRegistry:
    """Aggregate successful manifests into a read-only name → version map.

    Input order is priority order: on a name collision the first entry
    wins and the later one is logged and ignored.
    """
    versions: dict[str, str] = {}
    for result in results:
        if not result.ok:
            continue
        name = result.package_name
        if name in versions:
            log.warning(
                "registry.name_collision",
                package=name,
                kept=versions[name],
                ignored=result.package_version,
                repo=result.source.full_name,
            )
            continue
        versions[name] = result.package_version  # type: ignore[index]
    return MappingProxyType(versions)


def registry_owners(results: Iterable[ManifestResult]) -> dict[str, ManifestResult]:
    """The result that supplied each registry entry (first-seen wins)."""
    owners: dict[str, ManifestResult] = {}
    for result in results:
        if result.ok and result.package_name not in owners:
            owners[result.package_name] = result  # type: ignore[index]
    return owners
