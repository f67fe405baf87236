"""Custom exceptions for freshmap."""


class FreshmapError(Exception):
    """Base exception for all freshmap errors."""


class InvalidIdentifierError(FreshmapError):
    """Raised when a repository URL cannot be resolved to (owner, repo)."""

    def __init__(self, url: str):
        self.url = url
        super().__init__(f"Invalid GitHub URL: {url!r}")


class ManifestError(FreshmapError):
    """Base class for per-repository manifest failures."""

    kind = "manifest_error"


class ManifestNotFoundError(ManifestError):
    """Raised when no candidate branch holds a manifest."""

    kind = "not_found"


class ManifestFetchError(ManifestError):
    """Raised on a transport or HTTP failure other than not-found."""

    kind = "fetch_failed"


class ManifestParseError(ManifestError):
    """Raised when the manifest body is not a JSON object."""

    kind = "parse_error"


class ManifestIncompleteError(ManifestError):
    """Raised when a manifest lacks a name or a version."""

    kind = "incomplete"


class FetchCanceledError(ManifestError):
    """Raised when a per-repository fetch is canceled by the batch caller."""

    kind = "canceled"


class VersionRangeError(FreshmapError):
    """Raised when a declared dependency range is not a valid semver range."""

    def __init__(self, range_expr: str):
        self.range_expr = range_expr
        super().__init__(f"invalid semver range: {range_expr!r}")


class PipelineError(FreshmapError):
    """Raised when the orchestration layer itself fails (not a node error)."""
