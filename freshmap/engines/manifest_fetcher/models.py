"""Data models for the manifest fetcher engine."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class RepoSource:
    """A repository resolved from a raw URL."""

    url: str
    owner: str
    repo_name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo_name}"


@dataclass(frozen=True)
class ManifestResult:
    """Outcome of fetching one repository's ``package.json``.

    This is a pure data structure — produced once per :class:`RepoSource`
    and never mutated afterwards.  ``error`` and ``error_kind`` are set
    together; ``error_kind`` is the ``kind`` of the ManifestError raised.
    """

    source: RepoSource
    package_name: str | None = None
    package_version: str | None = None
    dependencies: dict[str, str] = field(default_factory=dict)
    dev_dependencies: dict[str, str] = field(default_factory=dict)
    peer_dependencies: dict[str, str] = field(default_factory=dict)
    raw_manifest_url: str | None = None
    branch: str | None = None
    last_updated: str | None = None  # ISO timestamp of the last manifest commit
    error: str | None = None
    error_kind: str | None = None

    @property
    def ok(self) -> bool:
        """True when the manifest was fetched and declares a name and version."""
        return self.error is None and bool(self.package_name) and bool(self.package_version)
