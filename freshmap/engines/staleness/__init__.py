"""Staleness engine — version registry, classification and edge drift."""

from freshmap.engines.staleness.classifier import Classification, DependencyMode, classify
from freshmap.engines.staleness.edges import DriftSeverity, edge_color, format_edge_label
from freshmap.engines.staleness.registry import VersionRegistry, build_registry

__all__ = [
    "Classification",
    "DependencyMode",
    "DriftSeverity",
    "VersionRegistry",
    "build_registry",
    "classify",
    "edge_color",
    "format_edge_label",
]
