"""Staleness classifier — evaluate declared ranges against the registry."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import structlog

from freshmap.engines.manifest_fetcher.models import ManifestResult
from freshmap.engines.staleness.registry import VersionRegistry
from freshmap.engines.staleness.semver import satisfies
from freshmap.exceptions import VersionRangeError
from freshmap.graph.models import NodeStatus

log = structlog.get_logger("freshmap.engine")

MISSING_NAME_OR_VERSION = "Missing package name or version after successful fetch."


class DependencyMode(str, Enum):
    """Which declared dependency kinds take part in classification."""

    PEER = "peer"  # runtime + peer dependencies
    ALL = "all"  # adds devDependencies


@dataclass(frozen=True)
class Classification:
    status: NodeStatus
    error: str | None = None


def selected_dependencies(result: ManifestResult, mode: DependencyMode) -> dict[str, str]:
    """Merge the dependency kinds *mode* selects, keeping declaration order.

    A name declared again by a later kind takes that kind's range but keeps
    its original position.
    """
    merged = dict(result.dependencies)
    merged.update(result.peer_dependencies)
    if mode is DependencyMode.ALL:
        merged.update(result.dev_dependencies)
    return merged


def classify(
    result: ManifestResult,
    registry: VersionRegistry,
    mode: DependencyMode = DependencyMode.ALL,
) -> Classification:
    """Assign a status to one fetched manifest.

    The first tracked dependency whose range the latest version does not
    satisfy marks the node stale and ends the scan.  An invalid range does
    the same and adds a note to the node's error.  Untracked dependencies
    are ignored.
    """
    if result.error is not None:
        return Classification(NodeStatus.ERROR, result.error)
    if not result.package_name or not result.package_version:
        return Classification(NodeStatus.ERROR, MISSING_NAME_OR_VERSION)

    for dep_name, range_expr in selected_dependencies(result, mode).items():
        latest = registry.get(dep_name)
        if latest is None:
            continue
        try:
            ok = satisfies(latest, range_expr)
        except VersionRangeError:
            log.warning(
                "classifier.invalid_range",
                package=result.package_name,
                dependency=dep_name,
                range=range_expr,
                latest=latest,
            )
            return Classification(
                NodeStatus.STALE_DEPENDENCY,
                append_note(result.error, f"Invalid semver range for {dep_name}"),
            )
        if not ok:
            log.debug(
                "classifier.stale",
                package=result.package_name,
                dependency=dep_name,
                range=range_expr,
                latest=latest,
            )
            return Classification(NodeStatus.STALE_DEPENDENCY)

    return Classification(NodeStatus.UP_TO_DATE)


def append_note(existing: str | None, note: str) -> str:
    return f"{existing}; {note}" if existing else note
