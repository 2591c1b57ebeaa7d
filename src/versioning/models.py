"""Data models for package identities and dependency declarations."""

from dataclasses import dataclass


@dataclass(frozen=True)
class PackageIdentity:
    """One downloadable artifact, identified by its exact (name, version) pair."""
    name: str
    version: str

    @property
    def key(self) -> str:
        """Stable key used for deduplication, e.g. ``Az.Accounts.2.0.0``."""
        return f"{self.name}.{self.version}"

    def __str__(self) -> str:
        return f"{self.name} {self.version}"


@dataclass(frozen=True)
class DependencyDeclaration:
    """A dependency as written in a package manifest."""
    name: str
    version_constraint: str


@dataclass(frozen=True)
class IndexEntry:
    """One published version of a package, as reported by the index."""
    name: str
    version: str
    is_latest: bool = False
