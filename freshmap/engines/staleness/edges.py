"""Edge annotator — drift severity, colour and label per dependency edge."""

from __future__ import annotations

from collections.abc import Mapping

from freshmap.engines.manifest_fetcher.models import ManifestResult
from freshmap.engines.staleness.classifier import DependencyMode, selected_dependencies
from freshmap.engines.staleness.registry import VersionRegistry
from freshmap.engines.staleness.semver import SemverRange, parse_version, triple
from freshmap.exceptions import VersionRangeError
from freshmap.graph.models import DriftSeverity, GraphEdge, NodeStatus

_MAJOR_PATCH_DRIFT = 20
_MINOR_PATCH_DRIFT = 2


def edge_id(source_id: str, target_id: str) -> str:
    """Stable edge id.  ``>`` never occurs in npm package names or GitHub owner/repo names."""
    return f"e:{source_id}->{target_id}"


def drift_severity(required_range: str, latest_version: str) -> DriftSeverity:
    """Bucket the distance between the range's minimum version and *latest_version*.

    Either side being unparsable falls back to MODERATE.
    """
    latest = parse_version(latest_version)
    try:
        required = SemverRange.parse(required_range).min_version()
    except VersionRangeError:
        required = None
    if latest is None or required is None:
        return DriftSeverity.MODERATE

    if required == latest:
        return DriftSeverity.CURRENT

    req_major, req_minor, req_patch = triple(required)
    major, minor, patch = triple(latest)
    if (major, minor) != (req_major, req_minor):
        return DriftSeverity.MAJOR

    patch_diff = patch - req_patch
    if patch_diff > _MAJOR_PATCH_DRIFT:
        return DriftSeverity.MAJOR
    if patch_diff > _MINOR_PATCH_DRIFT:
        return DriftSeverity.MODERATE
    return DriftSeverity.MINOR


def edge_color(required_range: str, latest_version: str) -> str:
    return drift_severity(required_range, latest_version).color


def format_edge_label(
    dep_name: str, required_range: str, latest_version: str, is_latest: bool
) -> str:
    if is_latest:
        return required_range
    return f"{dep_name}\n{required_range} / {latest_version}"


def annotate_edges(
    result: ManifestResult,
    node_id: str,
    status: NodeStatus,
    registry: VersionRegistry,
    source_ids: Mapping[str, str],
    mode: DependencyMode = DependencyMode.ALL,
) -> list[GraphEdge]:
    """Build the incoming edges of one dependent node.

    *source_ids* maps each tracked package name to its node id; it only
    holds packages whose own fetch succeeded, so an edge never dangles.
    """
    if not result.ok:
        return []

    edges: list[GraphEdge] = []
    for dep_name, range_expr in selected_dependencies(result, mode).items():
        source_id = source_ids.get(dep_name)
        latest = registry.get(dep_name)
        if source_id is None or latest is None or source_id == node_id:
            continue
        severity = drift_severity(range_expr, latest)
        edges.append(
            GraphEdge(
                id=edge_id(source_id, node_id),
                source=source_id,
                target=node_id,
                label=format_edge_label(
                    dep_name, range_expr, latest, severity is DriftSeverity.CURRENT
                ),
                color=severity.color,
                severity=severity,
                animated=status is NodeStatus.STALE_DEPENDENCY,
            )
        )
    return edges
