"""Parsing of NuGet version and version-range strings."""
from __future__ import annotations

import re
from typing import Optional

import semantic_version

from common.errors import MalformedVersionError
from .models import PackageIdentity, SemanticVersion, VersionRange

_VERSION_RE = re.compile(
    r"^\s*(?P<major>\d+)"
    r"(?:\.(?P<minor>\d+))?"
    r"(?:\.(?P<patch>\d+))?"
    r"(?:\.(?P<revision>\d+))?"
    r"(?:-(?P<prerelease>[0-9A-Za-z.-]+))?"
    r"(?:\+(?P<metadata>[0-9A-Za-z.-]+))?\s*$"
)
_FLOAT_RE = re.compile(r"^(?P<prefix>(?:\d+\.){0,3})\*$")


def parse_version(text: str) -> SemanticVersion:
    """Parse a NuGet version string.

    Accepts one to four numeric parts plus optional prerelease and build
    metadata; prerelease/metadata labels are validated with semantic_version.

    Raises:
        MalformedVersionError: If the text is not a valid version.
    """
    if text is None:
        raise MalformedVersionError("None")
    m = _VERSION_RE.match(str(text))
    if not m:
        raise MalformedVersionError(str(text))

    major = int(m.group("major"))
    minor = int(m.group("minor") or 0)
    patch = int(m.group("patch") or 0)
    revision = int(m.group("revision") or 0)
    prerelease = m.group("prerelease")
    metadata = m.group("metadata")

    # Delegate label validation (empty identifiers, leading zeros) to semver
    probe = "0.0.0"
    if prerelease:
        probe = f"{probe}-{prerelease}"
    if metadata:
        probe = f"{probe}+{metadata}"
    try:
        semantic_version.Version(probe)
    except ValueError as exc:
        raise MalformedVersionError(str(text), str(exc)) from exc

    return SemanticVersion(
        major=major,
        minor=minor,
        patch=patch,
        revision=revision,
        prerelease=tuple(prerelease.split(".")) if prerelease else (),
        metadata=metadata,
        original=str(text).strip(),
    )


def _parse_floating(text: str) -> Optional[VersionRange]:
    """Floating ranges ('*', '1.*', '1.2.*') resolve to their lower bound."""
    m = _FLOAT_RE.match(text)
    if not m:
        return None
    parts = [p for p in m.group("prefix").split(".") if p]
    padded = (parts + ["0", "0", "0"])[:3] if len(parts) < 3 else parts
    return VersionRange(
        min_version=parse_version(".".join(padded)),
        include_min=True,
        original=text,
    )


def parse_range(text: Optional[str]) -> VersionRange:
    """Parse NuGet range notation into a VersionRange.

    ``1.0`` means ``[1.0,)``, ``[1.0]`` is exact, ``(,2.0]``/``[1.0,2.0)``
    are intervals, ``1.*`` floats from its lower bound and an empty string
    accepts every version.

    Raises:
        MalformedVersionError: On unbalanced brackets, empty exclusive
            ranges or a lower bound above the upper bound.
    """
    if text is None:
        return VersionRange(original=None)
    raw = str(text)
    s = raw.strip()
    if not s:
        return VersionRange(original=raw)

    floating = _parse_floating(s)
    if floating is not None:
        return floating

    if s[0] not in "[(":
        if s[-1] in "])":
            raise MalformedVersionError(raw, "unbalanced brackets")
        return VersionRange(min_version=parse_version(s), include_min=True, original=raw)

    if len(s) < 2 or s[-1] not in "])":
        raise MalformedVersionError(raw, "unbalanced brackets")

    include_min = s[0] == "["
    include_max = s[-1] == "]"
    inner = s[1:-1]
    parts = inner.split(",")
    if len(parts) > 2:
        raise MalformedVersionError(raw, "too many bounds")

    if len(parts) == 1:
        # "[1.0]" is exact; "(1.0)" and "[1.0)" make no sense
        if not (include_min and include_max) or not parts[0].strip():
            raise MalformedVersionError(raw, "single-version range must be inclusive")
        version = parse_version(parts[0])
        return VersionRange(
            min_version=version,
            max_version=version,
            include_min=True,
            include_max=True,
            original=raw,
        )

    low, high = parts[0].strip(), parts[1].strip()
    min_version = parse_version(low) if low else None
    max_version = parse_version(high) if high else None

    if min_version is None and include_min:
        include_min = False
    if max_version is None and include_max:
        include_max = False

    if min_version is not None and max_version is not None:
        if min_version > max_version:
            raise MalformedVersionError(raw, "lower bound above upper bound")
        if min_version == max_version and not (include_min and include_max):
            raise MalformedVersionError(raw, "empty range")

    return VersionRange(
        min_version=min_version,
        max_version=max_version,
        include_min=include_min,
        include_max=include_max,
        original=raw,
    )


def parse_identity(package_id: str, version: str) -> PackageIdentity:
    """Build a PackageIdentity from an id and a version string."""
    if not package_id or not package_id.strip():
        raise ValueError("package id must not be empty")
    return PackageIdentity(package_id.strip(), parse_version(version))
