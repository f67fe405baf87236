"""GitHub repository identifiers — URL → (owner, repo)."""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlparse

from freshmap.engines.manifest_fetcher.models import RepoSource
from freshmap.exceptions import InvalidIdentifierError

GITHUB_HOSTS = frozenset({"github.com", "www.github.com"})


@dataclass(frozen=True)
class InvalidSource:
    """A repository URL that could not be resolved.

    ``url`` doubles as the display label of the resulting ERROR node.
    """

    url: str
    error: str = "Invalid GitHub URL"


def resolve_source(url: str) -> RepoSource | InvalidSource:
    """Resolve *url* into a :class:`RepoSource`, never raising.

    Unresolvable input comes back as an :class:`InvalidSource` so the
    caller can turn it into an ERROR node without aborting the batch.
    """
    try:
        owner, repo = parse_repo_url(url)
    except InvalidIdentifierError:
        return InvalidSource(url=url)
    return RepoSource(url=url, owner=owner, repo_name=repo)


def parse_repo_url(repo_url: str) -> tuple[str, str]:
    """Extract (owner, repo) from a GitHub URL.

    Raises InvalidIdentifierError if the URL cannot be parsed.
    """
    result = _extract_owner_repo(repo_url)
    if result is None:
        raise InvalidIdentifierError(repo_url)
    return result


def _extract_owner_repo(repo_url: str) -> tuple[str, str] | None:
    """Extract (owner, repo) from a GitHub URL.

    Handles:
      - https://github.com/owner/repo
      - https://github.com/owner/repo.git
      - https://github.com/owner/repo/tree/main/sub  (extra segments ignored)
      - git@github.com:owner/repo.git
    """
    if not isinstance(repo_url, str):
        return None
    value = repo_url.strip()
    if not value:
        return None

    # SSH format: git@github.com:owner/repo
    if value.startswith("git@"):
        host, sep, path = value[4:].partition(":")
        if not sep or host.lower() not in GITHUB_HOSTS:
            return None
        return _owner_repo_from_path(path)

    try:
        parsed = urlparse(value)
    except ValueError:
        return None
    if parsed.scheme not in ("http", "https"):
        return None
    if (parsed.hostname or "").lower() not in GITHUB_HOSTS:
        return None
    return _owner_repo_from_path(parsed.path)


def _owner_repo_from_path(path: str) -> tuple[str, str] | None:
    parts = [p for p in path.split("/") if p]
    if len(parts) < 2:
        return None
    owner, repo = parts[0], parts[1]
    if repo.endswith(".git"):
        repo = repo[:-4]
    if not owner or not repo:
        return None
    return owner, repo
