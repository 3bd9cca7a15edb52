"""Registry collaborator contract shared by all package sources."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Tuple, runtime_checkable

from versioning.frameworks import TargetFramework
from versioning.models import CandidatePackage, PackageIdentity, SemanticVersion


@dataclass(frozen=True)
class FrameworkSpecificGroup:
    """Items a package publishes for a single target framework."""
    framework: TargetFramework
    items: Tuple[str, ...] = ()


@dataclass(frozen=True)
class PackageContents:
    """Asset listing of a downloaded package.

    library_items are archive paths (``lib/net45/Foo.dll``); framework_items
    are assembly names the target framework provides (``System.Net.Http``).
    """
    library_items: Tuple[FrameworkSpecificGroup, ...] = field(default_factory=tuple)
    framework_items: Tuple[FrameworkSpecificGroup, ...] = field(default_factory=tuple)


@runtime_checkable
class Repository(Protocol):
    """What the resolver and assembler need from a package source."""

    name: str

    def lookup_dependency_info(
        self, identity: PackageIdentity, framework: TargetFramework
    ) -> Optional[CandidatePackage]:
        """Return the candidate for exactly ``identity`` or None if absent.

        Raises:
            RegistryError: On transport or payload failures.
        """

    def download(self, identity: PackageIdentity) -> PackageContents:
        """Fetch the package and list its assets.

        Raises:
            PackageNotFoundError: If this source does not have the package.
            RegistryError: On transport or payload failures.
        """

    def list_versions(self, package_id: str) -> List[SemanticVersion]:
        """All published versions of ``package_id`` (empty if unknown)."""
