"""Manifest fetcher engine — resolve repositories to package manifests."""

from freshmap.engines.manifest_fetcher.client import GitHubClient
from freshmap.engines.manifest_fetcher.fetcher import fetch_all, fetch_manifest, fetch_repo
from freshmap.engines.manifest_fetcher.models import ManifestResult, RepoSource

__all__ = [
    "GitHubClient",
    "ManifestResult",
    "RepoSource",
    "fetch_all",
    "fetch_manifest",
    "fetch_repo",
]
