"""npm-style semver ranges.

``package.json`` ranges (``^1.2.0``, ``~1.2``, ``1.x``, ``>=1 <2``,
``1.0.0 - 2.0.0``, ``a || b``) are desugared into comparator sets.  A range
is satisfied when any of its sets is.

Concrete versions must be strict ``MAJOR.MINOR.PATCH[-pre][+build]``.
Ordering follows SemVer 2.0 precedence: pre-release identifiers compare
dot by dot, numeric ones numerically and below alphanumeric ones, and a
shorter identifier list sorts first when it is a prefix of the other.
Build metadata is ignored.

Pre-release rule: a pre-release version only satisfies a set that holds a
comparator with the same ``MAJOR.MINOR.PATCH`` and a pre-release of its own.
"""

from __future__ import annotations

import operator
import re
from dataclasses import dataclass
from functools import lru_cache, total_ordering
from typing import Callable

from freshmap.exceptions import VersionRangeError

_WILDCARDS = frozenset({"x", "X", "*"})

_NUM = r"0|[1-9]\d*"
_PART = rf"{_NUM}|[xX*]"
_IDENT = r"[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*"
_NUMERIC_ID_RE = re.compile(rf"^(?:{_NUM})$")
_ALNUM_ID_RE = re.compile(r"^\d*[A-Za-z-][0-9A-Za-z-]*$")

_FULL_VERSION_RE = re.compile(
    rf"^[=v]*\s*(?P<major>{_NUM})\.(?P<minor>{_NUM})\.(?P<patch>{_NUM})"
    rf"(?:-(?P<pre>{_IDENT}))?(?:\+(?P<build>{_IDENT}))?$"
)

_PARTIAL_RE = re.compile(
    rf"^(?P<op><=|>=|~>|<|>|=|~|\^)?v?(?P<major>{_PART})"
    rf"(?:\.(?P<minor>{_PART})"
    rf"(?:\.(?P<patch>{_PART})(?:-(?P<pre>{_IDENT}))?(?:\+(?P<build>{_IDENT}))?)?)?$"
)

_HYPHEN_RE = re.compile(r"^(?P<low>\S+)\s+-\s+(?P<high>\S+)$")
_OP_SPACE_RE = re.compile(r"(<=|>=|~>|<|>|=|~|\^)\s+")

Identifier = int | str


def _prerelease(text: str | None) -> tuple[Identifier, ...] | None:
    """Split a pre-release tag into identifiers; ``None`` when one is malformed."""
    if not text:
        return ()
    identifiers: list[Identifier] = []
    for part in text.split("."):
        if _NUMERIC_ID_RE.match(part):
            identifiers.append(int(part))
        elif _ALNUM_ID_RE.match(part):
            identifiers.append(part)
        else:
            return None
    return tuple(identifiers)


@total_ordering
@dataclass(frozen=True)
class SemVer:
    """A concrete semver version, ordered by SemVer 2.0 precedence."""

    major: int
    minor: int
    patch: int
    prerelease: tuple[Identifier, ...] = ()

    @property
    def release(self) -> tuple[int, int, int]:
        return self.major, self.minor, self.patch

    @property
    def is_prerelease(self) -> bool:
        return bool(self.prerelease)

    def _key(self) -> tuple:
        if not self.prerelease:
            return (self.release, 1)
        # Numeric identifiers rank below alphanumeric ones.
        pre = tuple((0, i, "") if isinstance(i, int) else (1, 0, i) for i in self.prerelease)
        return (self.release, 0, pre)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, SemVer):
            return NotImplemented
        return self._key() < other._key()

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += "-" + ".".join(str(i) for i in self.prerelease)
        return text


Comparator = tuple[str, SemVer]

_OPS: dict[str, Callable[[SemVer, SemVer], bool]] = {
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "==": operator.eq,
}

# Matches no release: "<0.0.0" also excludes 0.0.0 pre-releases.
_NOTHING: list[Comparator] = [("<", SemVer(0, 0, 0))]


def parse_version(text: str) -> SemVer | None:
    """Parse a strict semver string, or return ``None`` when it is invalid."""
    if not isinstance(text, str):
        return None
    match = _FULL_VERSION_RE.match(text.strip())
    if match is None:
        return None
    pre = _prerelease(match["pre"])
    if pre is None:
        return None
    return SemVer(int(match["major"]), int(match["minor"]), int(match["patch"]), pre)


def triple(version: SemVer) -> tuple[int, int, int]:
    """``(major, minor, patch)`` of *version*."""
    return version.release


@dataclass(frozen=True)
class ComparatorSet:
    """Intersection of comparators: one ``||`` branch of a range."""

    comparators: tuple[Comparator, ...]

    def test(self, version: SemVer) -> bool:
        if not all(_OPS[op](version, ver) for op, ver in self.comparators):
            return False
        if not version.is_prerelease:
            return True
        return any(
            ver.is_prerelease and ver.release == version.release
            for _, ver in self.comparators
        )


@dataclass(frozen=True)
class SemverRange:
    """A parsed npm range: the union of its comparator sets."""

    raw: str
    sets: tuple[ComparatorSet, ...]

    @classmethod
    def parse(cls, expr: str) -> SemverRange:
        """Parse *expr*, raising :class:`VersionRangeError` when it is invalid."""
        return _parse_range(expr)

    def test(self, version: SemVer) -> bool:
        return any(cset.test(version) for cset in self.sets)

    def min_version(self) -> SemVer | None:
        """Lowest version that satisfies the range, or ``None`` if none does."""
        zero = SemVer(0, 0, 0)
        if self.test(zero):
            return zero

        best: SemVer | None = None
        for cset in self.sets:
            set_min: SemVer | None = None
            for op, ver in cset.comparators:
                if op in ("<", "<="):
                    continue
                candidate = _next_version(ver) if op == ">" else ver
                if set_min is None or candidate > set_min:
                    set_min = candidate
            if set_min is not None and (best is None or set_min < best):
                best = set_min

        if best is not None and self.test(best):
            return best
        return None


def is_valid_range(expr: str) -> bool:
    try:
        _parse_range(expr)
    except VersionRangeError:
        return False
    return True


def satisfies(version: str, expr: str) -> bool:
    """True when *version* satisfies range *expr*.

    An invalid *version* never satisfies.  An invalid *expr* raises
    :class:`VersionRangeError`.
    """
    parsed_range = _parse_range(expr)
    parsed_version = parse_version(version)
    if parsed_version is None:
        return False
    return parsed_range.test(parsed_version)


def min_version(expr: str) -> SemVer | None:
    """Lowest version satisfying *expr* (raises on an invalid range)."""
    return _parse_range(expr).min_version()


# ── parsing ──────────────────────────────────────────────────────────────


@lru_cache(maxsize=1024)
def _parse_range(expr: str) -> SemverRange:
    if not isinstance(expr, str):
        raise VersionRangeError(repr(expr))
    sets: list[ComparatorSet] = []
    for branch in expr.split("||"):
        comparators = _parse_set(branch.strip(), expr)
        sets.append(ComparatorSet(tuple(comparators)))
    return SemverRange(raw=expr, sets=tuple(sets))


def _parse_set(text: str, expr: str) -> list[Comparator]:
    if not text:
        return []

    hyphen = _HYPHEN_RE.match(text)
    if hyphen:
        return _hyphen_bounds(hyphen["low"], hyphen["high"], expr)

    comparators: list[Comparator] = []
    for token in _OP_SPACE_RE.sub(r"\1", text).split():
        match = _PARTIAL_RE.match(token)
        if match is None:
            raise VersionRangeError(expr)
        comparators.extend(_desugar(match, expr))
    return comparators


def _hyphen_bounds(low: str, high: str, expr: str) -> list[Comparator]:
    lo = _PARTIAL_RE.match(low)
    hi = _PARTIAL_RE.match(high)
    if lo is None or hi is None or lo["op"] or hi["op"]:
        raise VersionRangeError(expr)

    comparators: list[Comparator] = []
    major, minor, patch = _parts(lo)
    if major is not None:
        comparators.append((">=", _version(major, minor or 0, patch or 0, lo["pre"], expr)))

    major, minor, patch = _parts(hi)
    if major is None:
        return comparators
    if minor is None:
        comparators.append(("<", _version(major + 1, 0, 0, None, expr)))
    elif patch is None:
        comparators.append(("<", _version(major, minor + 1, 0, None, expr)))
    else:
        comparators.append(("<=", _version(major, minor, patch, hi["pre"], expr)))
    return comparators


def _desugar(match: re.Match[str], expr: str) -> list[Comparator]:
    op = match["op"] or "="
    major, minor, patch = _parts(match)
    pre = match["pre"]

    if major is None:
        return list(_NOTHING) if op in ("<", ">") else []

    if op in ("~", "~>"):
        if minor is None:
            return _between(major, 0, 0, major + 1, 0, expr)
        if patch is None:
            return _between(major, minor, 0, major, minor + 1, expr)
        return [
            (">=", _version(major, minor, patch, pre, expr)),
            ("<", _version(major, minor + 1, 0, None, expr)),
        ]

    if op == "^":
        if minor is None:
            return _between(major, 0, 0, major + 1, 0, expr)
        if patch is None:
            if major == 0:
                return _between(0, minor, 0, 0, minor + 1, expr)
            return _between(major, minor, 0, major + 1, 0, expr)
        low = _version(major, minor, patch, pre, expr)
        if major > 0:
            high = _version(major + 1, 0, 0, None, expr)
        elif minor > 0:
            high = _version(0, minor + 1, 0, None, expr)
        else:
            high = _version(0, 0, patch + 1, None, expr)
        return [(">=", low), ("<", high)]

    if op == "=":
        if minor is None:
            return _between(major, 0, 0, major + 1, 0, expr)
        if patch is None:
            return _between(major, minor, 0, major, minor + 1, expr)
        return [("==", _version(major, minor, patch, pre, expr))]

    # >, >=, <, <=
    if patch is not None:
        return [(op, _version(major, minor, patch, pre, expr))]
    if op == ">":
        if minor is None:
            return [(">=", _version(major + 1, 0, 0, None, expr))]
        return [(">=", _version(major, minor + 1, 0, None, expr))]
    if op == ">=":
        return [(">=", _version(major, minor or 0, 0, None, expr))]
    if op == "<":
        return [("<", _version(major, minor or 0, 0, None, expr))]
    # <=
    if minor is None:
        return [("<", _version(major + 1, 0, 0, None, expr))]
    return [("<", _version(major, minor + 1, 0, None, expr))]


def _between(
    low_major: int, low_minor: int, low_patch: int, high_major: int, high_minor: int, expr: str
) -> list[Comparator]:
    return [
        (">=", _version(low_major, low_minor, low_patch, None, expr)),
        ("<", _version(high_major, high_minor, 0, None, expr)),
    ]


def _parts(match: re.Match[str]) -> tuple[int | None, int | None, int | None]:
    """Numeric parts of a partial version; a wildcard blanks everything after it."""
    values: list[int | None] = []
    for key in ("major", "minor", "patch"):
        raw = match[key]
        if raw is None or raw in _WILDCARDS or (values and values[-1] is None):
            values.append(None)
        else:
            values.append(int(raw))
    return values[0], values[1], values[2]


def _version(major: int, minor: int, patch: int, pre: str | None, expr: str) -> SemVer:
    identifiers = _prerelease(pre)
    if identifiers is None:
        raise VersionRangeError(expr)
    return SemVer(major, minor, patch, identifiers)


def _next_version(version: SemVer) -> SemVer:
    """Smallest version strictly above *version*."""
    if version.is_prerelease:
        return SemVer(version.major, version.minor, version.patch, version.prerelease + (0,))
    return SemVer(version.major, version.minor, version.patch + 1)
