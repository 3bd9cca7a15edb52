"""Value types for package identity, versions and version ranges."""
from __future__ import annotations

import functools
from dataclasses import dataclass, field
from typing import Optional, Tuple

import semantic_version


@functools.total_ordering
@dataclass(frozen=True, eq=False)
class SemanticVersion:
    """NuGet flavoured semantic version (up to four numeric parts).

    Ordering compares the numeric parts, then prerelease precedence using
    SemVer 2.0 rules (case-insensitive). Build metadata never participates
    in ordering or equality.
    """
    major: int
    minor: int = 0
    patch: int = 0
    revision: int = 0
    prerelease: Tuple[str, ...] = ()
    metadata: Optional[str] = None
    original: Optional[str] = field(default=None, compare=False)

    @property
    def is_prerelease(self) -> bool:
        return bool(self.prerelease)

    @property
    def release(self) -> Tuple[int, int, int, int]:
        return (self.major, self.minor, self.patch, self.revision)

    def _prerelease_key(self) -> Optional[semantic_version.Version]:
        if not self.prerelease:
            return None
        labels = tuple(label.lower() for label in self.prerelease)
        return semantic_version.Version(major=0, minor=0, patch=0, prerelease=labels)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return (
            self.release == other.release
            and tuple(p.lower() for p in self.prerelease) == tuple(p.lower() for p in other.prerelease)
        )

    def __hash__(self) -> int:
        return hash((self.release, tuple(p.lower() for p in self.prerelease)))

    def __lt__(self, other: "SemanticVersion") -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        if self.release != other.release:
            return self.release < other.release
        mine, theirs = self._prerelease_key(), other._prerelease_key()
        if mine is None:
            return False
        if theirs is None:
            return True
        return mine < theirs

    def to_normalized_string(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.revision:
            text = f"{text}.{self.revision}"
        if self.prerelease:
            text = f"{text}-{'.'.join(self.prerelease)}"
        return text

    def __str__(self) -> str:
        return self.to_normalized_string()


@dataclass(frozen=True)
class VersionRange:
    """Interval over SemanticVersion; a missing bound is unbounded."""
    min_version: Optional[SemanticVersion] = None
    max_version: Optional[SemanticVersion] = None
    include_min: bool = True
    include_max: bool = False
    original: Optional[str] = field(default=None, compare=False)

    def satisfies(self, version: SemanticVersion) -> bool:
        """Return True if ``version`` lies within the interval."""
        if self.min_version is not None:
            if self.include_min:
                if version < self.min_version:
                    return False
            elif version <= self.min_version:
                return False
        if self.max_version is not None:
            if self.include_max:
                if version > self.max_version:
                    return False
            elif version >= self.max_version:
                return False
        return True

    @property
    def is_exact(self) -> bool:
        return (
            self.min_version is not None
            and self.min_version == self.max_version
            and self.include_min
            and self.include_max
        )

    def __str__(self) -> str:
        if self.is_exact:
            return f"[{self.min_version}]"
        lower = "[" if self.include_min and self.min_version is not None else "("
        upper = "]" if self.include_max and self.max_version is not None else ")"
        low = str(self.min_version) if self.min_version is not None else ""
        high = str(self.max_version) if self.max_version is not None else ""
        return f"{lower}{low},{high}{upper}"


@dataclass(frozen=True, eq=False)
class PackageIdentity:
    """Package id plus version; ids compare case-insensitively."""
    id: str
    version: SemanticVersion

    @property
    def key(self) -> Tuple[str, SemanticVersion]:
        return (self.id.casefold(), self.version)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PackageIdentity):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __str__(self) -> str:
        return f"{self.id}@{self.version}"


@dataclass(frozen=True)
class PackageDependency:
    """A declared dependency: target package id and acceptable range."""
    id: str
    version_range: VersionRange

    def matches(self, identity: PackageIdentity) -> bool:
        """True if ``identity`` has this id and a version inside the range."""
        return (
            identity.id.casefold() == self.id.casefold()
            and self.version_range.satisfies(identity.version)
        )

    def __str__(self) -> str:
        return f"{self.id} {self.version_range}"


@dataclass(frozen=True, eq=False)
class CandidatePackage:
    """A (package, version) discovered in a registry, with its dependencies.

    Equality follows the identity so a candidate set keeps one entry per
    (id, version) regardless of which registry answered.
    """
    identity: PackageIdentity
    source: str
    dependencies: Tuple[PackageDependency, ...] = ()

    @property
    def id(self) -> str:
        return self.identity.id

    @property
    def version(self) -> SemanticVersion:
        return self.identity.version

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CandidatePackage):
            return NotImplemented
        return self.identity == other.identity

    def __hash__(self) -> int:
        return hash(self.identity)

    def __str__(self) -> str:
        return str(self.identity)
