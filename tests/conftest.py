"""Shared fixtures: an in-memory package source and a .nupkg builder."""

import io
import zipfile
from typing import Dict, Iterable, List, Optional, Tuple

import pytest

from common.errors import PackageNotFoundError, RegistryError
from common.http_client import clear_cache
from registry.base import FrameworkSpecificGroup, PackageContents
from versioning.frameworks import parse_framework
from versioning.models import CandidatePackage, PackageDependency, PackageIdentity
from versioning.parser import parse_range, parse_version


def identity(package_id, version):
    return PackageIdentity(package_id, parse_version(version))


def dependency(package_id, version_range):
    return PackageDependency(package_id, parse_range(version_range))


def contents(lib: Optional[Dict[str, Iterable[str]]] = None,
             framework: Optional[Dict[str, Iterable[str]]] = None) -> PackageContents:
    """PackageContents from {"net20": ["lib/net20/A.dll"]} style mappings."""
    return PackageContents(
        library_items=tuple(
            FrameworkSpecificGroup(parse_framework(fw), tuple(items)) for fw, items in (lib or {}).items()
        ),
        framework_items=tuple(
            FrameworkSpecificGroup(parse_framework(fw), tuple(items)) for fw, items in (framework or {}).items()
        ),
    )


class FakeRepository:
    """In-memory package source.

    ``add`` registers a package with its dependencies (already selected for
    every framework) and its contents.
    """

    def __init__(self, name="fake"):
        self.name = name
        self.packages: Dict[PackageIdentity, Tuple[Tuple[PackageDependency, ...], PackageContents]] = {}
        self.lookups: List[PackageIdentity] = []
        self.downloads: List[PackageIdentity] = []
        self.listings: List[str] = []
        self.fail_lookups = False
        self.fail_downloads = False

    def add(self, package_id, version, deps=(), package_contents=None):
        ident = identity(package_id, version)
        self.packages[ident] = (
            tuple(dependency(d_id, d_range) for d_id, d_range in deps),
            package_contents or contents(),
        )
        return ident

    def lookup_dependency_info(self, ident, framework):
        self.lookups.append(ident)
        if self.fail_lookups:
            raise RegistryError(f"{self.name} is down")
        for known, (deps, _) in self.packages.items():
            if known == ident:
                return CandidatePackage(known, self.name, deps)
        return None

    def download(self, ident):
        self.downloads.append(ident)
        if self.fail_downloads:
            raise RegistryError(f"{self.name} is down")
        for known, (_, package_contents) in self.packages.items():
            if known == ident:
                return package_contents
        raise PackageNotFoundError(ident)

    def list_versions(self, package_id):
        self.listings.append(package_id)
        return sorted(i.version for i in self.packages if i.id.casefold() == package_id.casefold())


NUSPEC_TEMPLATE = """<?xml version="1.0" encoding="utf-8"?>
<package xmlns="http://schemas.microsoft.com/packaging/2013/05/nuspec.xsd">
  <metadata>
    <id>{id}</id>
    <version>{version}</version>
    <authors>test</authors>
    <description>test package</description>
{dependencies}{framework_assemblies}  </metadata>
</package>
"""


def make_nuspec(package_id, version, dependency_groups=None, flat_dependencies=None,
                framework_assemblies=None):
    """Build nuspec XML.

    dependency_groups: {"net45": [("B", "1.0.0")]}
    flat_dependencies: [("B", "1.0.0")]
    framework_assemblies: [("System.Net.Http", "net45")]
    """
    deps = ""
    if dependency_groups is not None or flat_dependencies is not None:
        lines = ["    <dependencies>"]
        for framework, entries in (dependency_groups or {}).items():
            lines.append(f'      <group targetFramework="{framework}">')
            for dep_id, dep_range in entries:
                lines.append(f'        <dependency id="{dep_id}" version="{dep_range}" />')
            lines.append("      </group>")
        for dep_id, dep_range in flat_dependencies or []:
            lines.append(f'      <dependency id="{dep_id}" version="{dep_range}" />')
        lines.append("    </dependencies>")
        deps = "\n".join(lines) + "\n"
    assemblies = ""
    if framework_assemblies:
        lines = ["    <frameworkAssemblies>"]
        for name, target in framework_assemblies:
            lines.append(f'      <frameworkAssembly assemblyName="{name}" targetFramework="{target}" />')
        lines.append("    </frameworkAssemblies>")
        assemblies = "\n".join(lines) + "\n"
    return NUSPEC_TEMPLATE.format(id=package_id, version=version, dependencies=deps,
                                  framework_assemblies=assemblies)


def make_nupkg(package_id, version, files=(), **nuspec_kwargs) -> bytes:
    """Zip archive bytes holding a nuspec and empty ``files``."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr(f"{package_id}.nuspec", make_nuspec(package_id, version, **nuspec_kwargs))
        archive.writestr("[Content_Types].xml", "<Types />")
        for name in files:
            archive.writestr(name, b"")
    return buffer.getvalue()


@pytest.fixture
def fake_repository():
    return FakeRepository()


@pytest.fixture(autouse=True)
def _clear_http_cache():
    clear_cache()
    yield
    clear_cache()
