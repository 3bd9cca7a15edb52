"""Version, identity and framework model."""

from .models import (  # noqa: F401
    CandidatePackage,
    PackageDependency,
    PackageIdentity,
    SemanticVersion,
    VersionRange,
)
from .parser import parse_identity, parse_range, parse_version  # noqa: F401
from .frameworks import (  # noqa: F401
    TargetFramework,
    get_nearest,
    parse_framework,
    parse_target_framework,
)

__all__ = [
    "CandidatePackage",
    "PackageDependency",
    "PackageIdentity",
    "SemanticVersion",
    "VersionRange",
    "TargetFramework",
    "get_nearest",
    "parse_framework",
    "parse_identity",
    "parse_range",
    "parse_target_framework",
    "parse_version",
]
