"""Target framework monikers and the framework compatibility table.

Frameworks are parsed from NuGet short folder names (``net48``,
``netstandard2.0``, ``net6.0-windows``) or full names
(``.NETFramework,Version=v4.7.2``, ``.NETStandard2.0``). Compatibility
follows a fixed table:

* same identifier, candidate version <= target version, platform empty or equal;
* .NETStandard candidates up to the highest standard the target implements;
* the Any framework fits every target.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from common.errors import MalformedFrameworkError

NET_FRAMEWORK = ".NETFramework"
NET_STANDARD = ".NETStandard"
NET_CORE_APP = ".NETCoreApp"
ANY = "Any"
UNSUPPORTED = "Unsupported"

Version4 = Tuple[int, int, int, int]

# Highest .NETStandard version implemented, keyed by the lowest target
# version of each band. Bands are checked from the highest version down.
NETSTANDARD_SUPPORT = {
    NET_FRAMEWORK: (
        ((4, 6, 1, 0), (2, 0, 0, 0)),
        ((4, 6, 0, 0), (1, 3, 0, 0)),
        ((4, 5, 1, 0), (1, 2, 0, 0)),
        ((4, 5, 0, 0), (1, 1, 0, 0)),
    ),
    NET_CORE_APP: (
        ((3, 0, 0, 0), (2, 1, 0, 0)),
        ((2, 0, 0, 0), (2, 0, 0, 0)),
        ((1, 0, 0, 0), (1, 6, 0, 0)),
    ),
}

_SHORT_NAMES = {
    NET_FRAMEWORK: "net",
    NET_STANDARD: "netstandard",
    NET_CORE_APP: "netcoreapp",
}

_FULL_NAME_RE = re.compile(
    r"^\.?(?P<ident>netframework|netstandard|netcoreapp)"
    r"\s*(?:,\s*version\s*=\s*)?v?(?P<version>\d+(?:\.\d+){0,3})"
    r"(?:\s*,\s*profile\s*=\s*\w+)?$",
    re.IGNORECASE,
)
_SHORT_RE = re.compile(
    r"^(?P<ident>netstandard|netcoreapp|net)(?P<version>\d+(?:\.\d+){0,3})"
    r"(?:-(?P<platform>[a-z]+)[0-9.]*)?$",
    re.IGNORECASE,
)


def _pad(parts: Iterable[int]) -> Version4:
    values = list(parts)[:4]
    values += [0] * (4 - len(values))
    return (values[0], values[1], values[2], values[3])


@dataclass(frozen=True)
class TargetFramework:
    """A parsed target framework moniker."""
    identifier: str
    version: Version4 = (0, 0, 0, 0)
    platform: str = ""

    @property
    def is_any(self) -> bool:
        return self.identifier == ANY

    @property
    def is_unsupported(self) -> bool:
        return self.identifier == UNSUPPORTED

    def get_short_folder_name(self) -> str:
        """Render as a NuGet folder name, e.g. net472, netstandard2.0, net6.0."""
        if self.is_any:
            return "any"
        if self.is_unsupported:
            return "unsupported"
        major, minor, build, _ = self.version
        if self.identifier == NET_FRAMEWORK:
            return f"net{major}{minor}{build if build else ''}"
        name = _SHORT_NAMES[self.identifier]
        if self.identifier == NET_CORE_APP and major >= 5:
            name = "net"
        text = f"{name}{major}.{minor}"
        if self.platform:
            text = f"{text}-{self.platform}"
        return text

    def __str__(self) -> str:
        return self.get_short_folder_name()


ANY_FRAMEWORK = TargetFramework(ANY)
UNSUPPORTED_FRAMEWORK = TargetFramework(UNSUPPORTED)


def _parse_net_short_version(digits: str) -> Optional[Version4]:
    """``net472`` style: each digit is a version part (``net4.7.2`` also accepted)."""
    if "." in digits:
        return _pad(int(p) for p in digits.split("."))
    if len(digits) > 3:
        return None
    return _pad(int(d) for d in digits)


def parse_framework(text: Optional[str]) -> TargetFramework:
    """Parse a folder or full framework name.

    Empty text and ``any`` give the Any framework; anything unrecognized
    gives the Unsupported framework, which nothing is compatible with.
    """
    if text is None:
        return ANY_FRAMEWORK
    s = str(text).strip()
    if not s or s.lower() in ("any", "agnostic"):
        return ANY_FRAMEWORK

    m = _FULL_NAME_RE.match(s)
    if m and (s.startswith(".") or "version" in s.lower()):
        ident = {
            "netframework": NET_FRAMEWORK,
            "netstandard": NET_STANDARD,
            "netcoreapp": NET_CORE_APP,
        }[m.group("ident").lower()]
        return TargetFramework(ident, _pad(int(p) for p in m.group("version").split(".")))

    m = _SHORT_RE.match(s)
    if not m:
        return UNSUPPORTED_FRAMEWORK

    ident = m.group("ident").lower()
    digits = m.group("version")
    platform = (m.group("platform") or "").lower()

    if ident == "netstandard":
        return TargetFramework(NET_STANDARD, _pad(int(p) for p in digits.split(".")))
    if ident == "netcoreapp":
        return TargetFramework(NET_CORE_APP, _pad(int(p) for p in digits.split(".")))

    # "net": net5.0 and later are .NETCoreApp, everything else .NETFramework
    if "." in digits and int(digits.split(".")[0]) >= 5:
        return TargetFramework(NET_CORE_APP, _pad(int(p) for p in digits.split(".")), platform)
    if "." not in digits and int(digits[0]) >= 5:
        return TargetFramework(NET_CORE_APP, _pad(int(d) for d in digits), platform)
    if platform:
        return UNSUPPORTED_FRAMEWORK
    version = _parse_net_short_version(digits)
    if version is None:
        return UNSUPPORTED_FRAMEWORK
    return TargetFramework(NET_FRAMEWORK, version)


def parse_target_framework(text: str) -> TargetFramework:
    """Strict variant for user input: the target must be a concrete framework.

    Raises:
        MalformedFrameworkError: If the moniker is unknown or is ``any``.
    """
    framework = parse_framework(text)
    if framework.is_unsupported or framework.is_any:
        raise MalformedFrameworkError(str(text))
    return framework


def max_netstandard_version(target: TargetFramework) -> Optional[Version4]:
    """Highest .NETStandard version ``target`` implements, or None."""
    if target.identifier == NET_STANDARD:
        return target.version
    for lowest, standard in NETSTANDARD_SUPPORT.get(target.identifier, ()):
        if target.version >= lowest:
            return standard
    return None


def is_compatible(target: TargetFramework, candidate: TargetFramework) -> bool:
    """True if assets published for ``candidate`` can be used by ``target``."""
    if candidate.is_any:
        return True
    if target.is_unsupported or candidate.is_unsupported or target.is_any:
        return False
    if candidate.identifier == target.identifier:
        if candidate.platform and candidate.platform != target.platform:
            return False
        return candidate.version <= target.version
    if candidate.identifier == NET_STANDARD:
        supported = max_netstandard_version(target)
        return supported is not None and candidate.version <= supported
    return False


def _rank(target: TargetFramework, candidate: TargetFramework) -> Tuple[int, int, Version4]:
    """Sort key; smaller is nearer."""
    if candidate.is_any:
        return (2, 0, (0, 0, 0, 0))
    negated = _pad(-p for p in candidate.version)
    if candidate.identifier == target.identifier:
        return (0, 0 if candidate.platform else 1, negated)
    return (1, 0, negated)


def get_nearest(target: TargetFramework, candidates: Iterable[TargetFramework]) -> Optional[TargetFramework]:
    """Pick the candidate nearest to ``target``, or None if none is compatible.

    Preference: same identifier (platform-specific first, newest version
    first), then .NETStandard (newest first), then Any.
    """
    compatible = [c for c in set(candidates) if is_compatible(target, c)]
    if not compatible:
        return None
    return min(compatible, key=lambda c: (_rank(target, c), c.get_short_folder_name()))
