"""NuGet version parsing, range grammar and version selection.

Supported constraint forms (NuGet interval notation):

    1.0        x >= 1.0            (minimum, inclusive)
    [1.0]      x == 1.0            (exact)
    (1.0,)     x > 1.0
    [1.0,2.0]  1.0 <= x <= 2.0
    (1.0,2.0)  1.0 < x < 2.0
    [1.0,2.0)  1.0 <= x < 2.0
    (,1.0]     x <= 1.0
    "" or *    any version
"""

import functools
import re
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

import semantic_version

from errors import VersionRangeError

_VERSION_RE = re.compile(
    r"^v?(\d+)(?:\.(\d+))?(?:\.(\d+))?(?:\.(\d+))?"
    r"(?:-([0-9A-Za-z][0-9A-Za-z.\-]*))?"
    r"(?:\+[0-9A-Za-z.\-]+)?$"
)
_LITERAL_RE = re.compile(r"^\d+\.\d+\.\d+$")
_DELIMITERS_RE = re.compile(r"[\[\]\(\),]")


@functools.total_ordering
class NuGetVersion:
    """A NuGet version: up to four numeric parts plus an optional prerelease label.

    Prerelease precedence follows SemVer and is delegated to semantic_version;
    the fourth (revision) part is compared numerically after the patch.
    """

    __slots__ = ("raw", "release", "prerelease", "_pre_key")

    def __init__(self, raw: str, release: Tuple[int, int, int, int], prerelease: Tuple[str, ...]):
        self.raw = raw
        self.release = release
        self.prerelease = prerelease
        self._pre_key = semantic_version.Version(major=0, minor=0, patch=0, prerelease=prerelease)

    @classmethod
    def parse(cls, text: str) -> "NuGetVersion":
        raw = (text or "").strip()
        m = _VERSION_RE.match(raw)
        if not m:
            raise VersionRangeError(f"Invalid version: {text!r}")
        release = tuple(int(g) if g is not None else 0 for g in m.group(1, 2, 3, 4))
        prerelease = tuple(m.group(5).split(".")) if m.group(5) else ()
        try:
            return cls(raw, release, prerelease)  # type: ignore[arg-type]
        except ValueError as exc:
            raise VersionRangeError(f"Invalid prerelease label in version: {text!r}") from exc

    @property
    def is_prerelease(self) -> bool:
        return bool(self.prerelease)

    @property
    def normalized(self) -> str:
        """Canonical spelling: at least three parts, revision only when non-zero.

        ``1.0`` and ``1.0.0.0`` both normalize to ``1.0.0``.
        """
        parts = self.release if self.release[3] else self.release[:3]
        text = ".".join(str(p) for p in parts)
        if self.prerelease:
            text += "-" + ".".join(self.prerelease)
        return text

    def _key(self):
        return (self.release, self._pre_key)

    def __eq__(self, other) -> bool:
        if not isinstance(other, NuGetVersion):
            return NotImplemented
        return self._key() == other._key()

    def __lt__(self, other) -> bool:
        if not isinstance(other, NuGetVersion):
            return NotImplemented
        return self._key() < other._key()

    def __hash__(self) -> int:
        return hash((self.release, self.prerelease))

    def __repr__(self) -> str:
        return f"NuGetVersion({self.raw!r})"

    def __str__(self) -> str:
        return self.raw


@dataclass(frozen=True)
class VersionRange:
    """An interval of acceptable versions."""
    raw: str
    lower: Optional[NuGetVersion] = None
    lower_inclusive: bool = False
    upper: Optional[NuGetVersion] = None
    upper_inclusive: bool = False

    @classmethod
    def parse(cls, text: Optional[str]) -> "VersionRange":
        """Parse a NuGet constraint string.

        Raises:
            VersionRangeError: If the text is not valid interval notation.
        """
        raw = (text or "").strip()
        if raw in ("", "*"):
            return cls(raw)

        if raw[0] not in "[(":
            return cls(raw, lower=NuGetVersion.parse(raw), lower_inclusive=True)

        if raw[-1] not in "])" or len(raw) < 3:
            raise VersionRangeError(f"Unbalanced version range: {raw!r}")

        lower_inclusive = raw[0] == "["
        upper_inclusive = raw[-1] == "]"
        inner = raw[1:-1]

        if "," not in inner:
            if not (lower_inclusive and upper_inclusive):
                raise VersionRangeError(f"Exact version must use square brackets: {raw!r}")
            exact = NuGetVersion.parse(inner)
            return cls(raw, exact, True, exact, True)

        parts = inner.split(",")
        if len(parts) != 2:
            raise VersionRangeError(f"Too many bounds in version range: {raw!r}")
        lo_text, hi_text = parts[0].strip(), parts[1].strip()
        if not lo_text and not hi_text:
            raise VersionRangeError(f"Version range has no bounds: {raw!r}")

        lower = NuGetVersion.parse(lo_text) if lo_text else None
        upper = NuGetVersion.parse(hi_text) if hi_text else None
        if lower is not None and upper is not None:
            if lower > upper:
                raise VersionRangeError(f"Lower bound exceeds upper bound: {raw!r}")
            if lower == upper and not (lower_inclusive and upper_inclusive):
                raise VersionRangeError(f"Empty version range: {raw!r}")

        return cls(
            raw,
            lower,
            lower_inclusive if lower is not None else False,
            upper,
            upper_inclusive if upper is not None else False,
        )

    @property
    def is_exact(self) -> bool:
        return (
            self.lower is not None
            and self.lower == self.upper
            and self.lower_inclusive
            and self.upper_inclusive
        )

    @property
    def allows_prerelease(self) -> bool:
        """Prereleases are only considered when a bound names one."""
        return any(b is not None and b.is_prerelease for b in (self.lower, self.upper))

    def satisfies(self, version: NuGetVersion) -> bool:
        if self.lower is not None:
            if version < self.lower or (version == self.lower and not self.lower_inclusive):
                return False
        if self.upper is not None:
            if version > self.upper or (version == self.upper and not self.upper_inclusive):
                return False
        return True


def extract_literal_version(constraint: str) -> Optional[str]:
    """Return the first exact three-part numeric token in a constraint, if any.

    Splits on brackets, parentheses and commas; ``[2.28.0]`` gives ``2.28.0``
    and ``[1.0.0, 2.0.0)`` gives ``1.0.0``. Bounds are not interpreted.
    """
    for token in _DELIMITERS_RE.split(constraint or ""):
        token = token.strip()
        if _LITERAL_RE.match(token):
            return token
    return None


def pick_highest(candidates: Iterable[str], version_range: VersionRange) -> Optional[str]:
    """Pick the highest candidate inside the range.

    Unparseable candidates are ignored. Prereleases are excluded unless the
    range itself has a prerelease bound.
    """
    best: Optional[NuGetVersion] = None
    for candidate in candidates:
        try:
            ver = NuGetVersion.parse(candidate)
        except VersionRangeError:
            continue
        if ver.is_prerelease and not version_range.allows_prerelease:
            continue
        if not version_range.satisfies(ver):
            continue
        if best is None or ver > best:
            best = ver
    return str(best) if best is not None else None
