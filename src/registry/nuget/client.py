"""NuGet V3 registry client: dependency metadata and package downloads.

Uses the service index to locate the registration (metadata) and flat
container (package content) resources, then reads registration pages for
dependency groups and downloads .nupkg archives for asset listings.
"""
from __future__ import annotations

import logging
import threading
import urllib.parse
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from constants import Constants
from common.errors import MalformedVersionError, PackageNotFoundError, RegistryError
from common.logging_utils import extra_context, is_debug_enabled, safe_url

import registry.nuget as nuget_pkg
from registry.base import PackageContents
from versioning.frameworks import ANY_FRAMEWORK, TargetFramework, get_nearest, parse_framework
from versioning.models import CandidatePackage, PackageDependency, PackageIdentity, SemanticVersion
from versioning.parser import parse_range, parse_version
from .package_reader import NupkgReader

logger = logging.getLogger(__name__)

HEADERS_JSON = {"Accept": "application/json"}

REGISTRATION_TYPES = (
    "RegistrationsBaseUrl/3.6.0",
    "RegistrationsBaseUrl/3.4.0",
    "RegistrationsBaseUrl/3.0.0-rc",
    "RegistrationsBaseUrl",
)
PACKAGE_BASE_TYPES = ("PackageBaseAddress/3.0.0",)

DependencyGroup = Tuple[TargetFramework, Tuple[PackageDependency, ...]]


def select_dependency_group(
    groups: Sequence[DependencyGroup], framework: TargetFramework
) -> Tuple[PackageDependency, ...]:
    """Dependencies of the group nearest to ``framework``; empty if none fits."""
    if not groups:
        return ()
    nearest = get_nearest(framework, (fw for fw, _ in groups))
    if nearest is None:
        return ()
    for group_framework, dependencies in groups:
        if group_framework == nearest:
            return dependencies
    return ()


def _parse_dependency_groups(catalog_entry: Dict[str, Any]) -> List[DependencyGroup]:
    """Read ``dependencyGroups`` from a registration catalog entry."""
    groups: List[DependencyGroup] = []
    for group in catalog_entry.get("dependencyGroups") or []:
        framework = parse_framework(group.get("targetFramework")) if group.get("targetFramework") else ANY_FRAMEWORK
        dependencies = []
        for dep in group.get("dependencies") or []:
            dep_id = (dep.get("id") or "").strip()
            if not dep_id:
                continue
            dependencies.append(PackageDependency(dep_id, parse_range(dep.get("range") or "")))
        groups.append((framework, tuple(dependencies)))
    return groups


class NuGetV3Repository:
    """A NuGet V3 feed addressed by its service index URL."""

    def __init__(self, name: str, index_url: str = Constants.REGISTRY_URL_NUGET_V3):
        self.name = name
        self.index_url = index_url
        self._resources: Optional[Dict[str, str]] = None
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return f"NuGetV3Repository({self.name!r}, {safe_url(self.index_url)!r})"

    def _get_json(self, url: str, *, allow_missing: bool = False) -> Optional[Any]:
        """GET JSON, mapping transport failures to RegistryError.

        A 404 returns None when ``allow_missing`` is set.
        """
        status_code, _, data = nuget_pkg.get_json(url, headers=HEADERS_JSON)
        if status_code == 404 and allow_missing:
            return None
        if status_code != 200 or data is None:
            raise RegistryError(
                f"{self.name}: GET {safe_url(url)} failed (status {status_code})"
            )
        return data

    def _service_resources(self) -> Dict[str, str]:
        with self._lock:
            if self._resources is None:
                index = self._get_json(self.index_url)
                resources: Dict[str, str] = {}
                for resource in index.get("resources", []):
                    rtype, rid = resource.get("@type"), resource.get("@id")
                    if isinstance(rtype, str) and rid:
                        resources.setdefault(rtype, rid)
                self._resources = resources
            return self._resources

    def _resource_url(self, types: Iterable[str]) -> str:
        resources = self._service_resources()
        for rtype in types:
            if rtype in resources:
                base = resources[rtype]
                return base if base.endswith("/") else base + "/"
        raise RegistryError(f"{self.name}: service index lacks {', '.join(types)}")

    def _registration_entries(
        self, package_id: str, version: Optional[SemanticVersion] = None
    ) -> List[Dict[str, Any]]:
        """Catalog entries from the registration index, following paged leaves.

        With ``version`` set, pages whose bounds exclude it are not fetched.
        """
        base = self._resource_url(REGISTRATION_TYPES)
        encoded_id = urllib.parse.quote(package_id.lower(), safe="")
        index = self._get_json(f"{base}{encoded_id}/index.json", allow_missing=True)
        if index is None:
            return []

        entries: List[Dict[str, Any]] = []
        for page in index.get("items", []):
            leaves = page.get("items")
            if leaves is None:
                if version is not None and not _page_may_contain(page, version):
                    continue
                page_data = self._get_json(page["@id"])
                leaves = page_data.get("items", [])
            for leaf in leaves:
                entry = leaf.get("catalogEntry")
                if isinstance(entry, dict) and entry.get("version"):
                    entries.append(entry)
        return entries

    def list_versions(self, package_id: str) -> List[SemanticVersion]:
        versions = []
        for entry in self._registration_entries(package_id):
            try:
                versions.append(parse_version(entry["version"]))
            except MalformedVersionError:
                logger.debug("Skipping unparseable version %r of %s", entry["version"], package_id)
        return sorted(set(versions))

    def lookup_dependency_info(
        self, identity: PackageIdentity, framework: TargetFramework
    ) -> Optional[CandidatePackage]:
        for entry in self._registration_entries(identity.id, identity.version):
            try:
                version = parse_version(entry["version"])
            except MalformedVersionError:
                continue
            if version != identity.version:
                continue
            dependencies = select_dependency_group(_parse_dependency_groups(entry), framework)
            if is_debug_enabled(logger):
                logger.debug(
                    "Dependency info resolved",
                    extra=extra_context(
                        event="lookup",
                        component="nuget_client",
                        action="lookup_dependency_info",
                        outcome="found",
                        target=str(identity),
                        count=len(dependencies),
                        registry=self.name,
                    ),
                )
            return CandidatePackage(
                PackageIdentity(entry.get("id") or identity.id, version),
                self.name,
                dependencies,
            )
        return None

    def download(self, identity: PackageIdentity) -> PackageContents:
        base = self._resource_url(PACKAGE_BASE_TYPES)
        lower_id = identity.id.lower()
        lower_version = identity.version.to_normalized_string().lower()
        url = f"{base}{urllib.parse.quote(lower_id, safe='')}/{lower_version}/{lower_id}.{lower_version}.nupkg"
        status_code, content = nuget_pkg.get_bytes(url)
        if status_code == 404:
            raise PackageNotFoundError(identity)
        if status_code != 200 or not content:
            raise RegistryError(f"{self.name}: download of {identity} failed (status {status_code})")
        with NupkgReader(content) as reader:
            return reader.get_contents()


def _page_may_contain(page: Dict[str, Any], version: SemanticVersion) -> bool:
    try:
        lower = parse_version(page["lower"]) if page.get("lower") else None
        upper = parse_version(page["upper"]) if page.get("upper") else None
    except MalformedVersionError:
        return True
    if lower is not None and version < lower:
        return False
    if upper is not None and version > upper:
        return False
    return True
