"""Local folder feed: a directory of .nupkg files used as a package source.

Both flat (``feed/Foo.1.0.0.nupkg``) and hierarchical
(``feed/foo/1.0.0/foo.1.0.0.nupkg``) layouts are recognized.
"""
from __future__ import annotations

import logging
import os
import threading
from glob import glob
from typing import Dict, List, Optional

from common.errors import MalformedVersionError, PackageNotFoundError, RegistryError
from registry.base import PackageContents
from versioning.frameworks import TargetFramework
from versioning.models import CandidatePackage, PackageIdentity, SemanticVersion
from versioning.parser import parse_version
from .client import select_dependency_group
from .package_reader import NupkgReader

logger = logging.getLogger(__name__)


class LocalFeedRepository:
    """Package source backed by .nupkg files on disk."""

    def __init__(self, name: str, path: str):
        self.name = name
        self.path = path
        self._index: Optional[Dict[PackageIdentity, str]] = None
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return f"LocalFeedRepository({self.name!r}, {self.path!r})"

    def _packages(self) -> Dict[PackageIdentity, str]:
        with self._lock:
            if self._index is None:
                if not os.path.isdir(self.path):
                    raise RegistryError(f"{self.name}: feed folder {self.path} does not exist")
                index: Dict[PackageIdentity, str] = {}
                for nupkg in sorted(glob(os.path.join(self.path, "**", "*.nupkg"), recursive=True)):
                    try:
                        with NupkgReader(nupkg) as reader:
                            package_id, version = reader.get_identity()
                        index.setdefault(PackageIdentity(package_id, parse_version(version)), nupkg)
                    except (RegistryError, MalformedVersionError) as e:
                        logger.warning("Skipping unreadable package %s: %s", nupkg, e)
                        continue
                self._index = index
                logger.debug("Indexed %d packages in %s", len(index), self.path)
            return self._index

    def list_versions(self, package_id: str) -> List[SemanticVersion]:
        wanted = package_id.casefold()
        return sorted(i.version for i in self._packages() if i.id.casefold() == wanted)

    def lookup_dependency_info(
        self, identity: PackageIdentity, framework: TargetFramework
    ) -> Optional[CandidatePackage]:
        packages = self._packages()
        path = packages.get(identity)
        if path is None:
            return None
        stored = next(i for i in packages if i == identity)
        with NupkgReader(path) as reader:
            dependencies = select_dependency_group(reader.get_dependency_groups(), framework)
        return CandidatePackage(stored, self.name, dependencies)

    def download(self, identity: PackageIdentity) -> PackageContents:
        path = self._packages().get(identity)
        if path is None:
            raise PackageNotFoundError(identity)
        with NupkgReader(path) as reader:
            return reader.get_contents()
