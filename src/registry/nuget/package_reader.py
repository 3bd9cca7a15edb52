"""Reader for .nupkg archives: nuspec metadata plus lib/ asset listing."""
from __future__ import annotations

import io
import zipfile
import xml.etree.ElementTree as ET
from typing import Dict, List, Optional, Tuple, Union

from common.errors import RegistryError
from registry.base import FrameworkSpecificGroup, PackageContents
from versioning.frameworks import ANY_FRAMEWORK, TargetFramework, parse_framework
from versioning.models import PackageDependency
from versioning.parser import parse_range

LIB_FOLDER = "lib"


def _strip_namespaces(root: ET.Element) -> ET.Element:
    """Remove XML namespaces for easier lookups."""
    for elem in root.iter():
        if '}' in elem.tag:
            elem.tag = elem.tag.split('}')[1]
    return root


class NupkgReader:
    """Reads a NuGet package archive held in memory or on disk."""

    def __init__(self, source: Union[bytes, str]):
        try:
            if isinstance(source, bytes):
                self._zip = zipfile.ZipFile(io.BytesIO(source))
            else:
                self._zip = zipfile.ZipFile(source)
        except (zipfile.BadZipFile, OSError) as exc:
            raise RegistryError(f"Not a valid package archive: {exc}") from exc
        self._nuspec: Optional[ET.Element] = None

    def close(self) -> None:
        self._zip.close()

    def __enter__(self) -> "NupkgReader":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    def get_files(self) -> List[str]:
        return [n for n in self._zip.namelist() if not n.endswith("/")]

    @property
    def nuspec(self) -> ET.Element:
        if self._nuspec is None:
            names = [n for n in self.get_files() if "/" not in n and n.lower().endswith(".nuspec")]
            if not names:
                raise RegistryError("Package archive has no .nuspec")
            try:
                root = ET.fromstring(self._zip.read(names[0]))
            except ET.ParseError as exc:
                raise RegistryError(f"Couldn't parse {names[0]}: {exc}") from exc
            self._nuspec = _strip_namespaces(root)
        return self._nuspec

    def get_identity(self) -> Tuple[str, str]:
        """(id, version) from the nuspec metadata."""
        metadata = self.nuspec.find("metadata")
        if metadata is None:
            raise RegistryError("nuspec has no metadata element")
        package_id = (metadata.findtext("id") or "").strip()
        version = (metadata.findtext("version") or "").strip()
        if not package_id or not version:
            raise RegistryError("nuspec lacks id or version")
        return package_id, version

    def get_lib_items(self) -> List[FrameworkSpecificGroup]:
        """Files under lib/, grouped by the framework folder they sit in.

        Files directly under lib/ belong to the Any framework.
        """
        groups: Dict[TargetFramework, List[str]] = {}
        for name in self.get_files():
            parts = name.split("/")
            if len(parts) < 2 or parts[0].lower() != LIB_FOLDER:
                continue
            framework = ANY_FRAMEWORK if len(parts) == 2 else parse_framework(parts[1])
            groups.setdefault(framework, []).append(name)
        return [
            FrameworkSpecificGroup(fw, tuple(sorted(items)))
            for fw, items in sorted(groups.items(), key=lambda kv: kv[0].get_short_folder_name())
        ]

    def get_framework_items(self) -> List[FrameworkSpecificGroup]:
        """<frameworkAssemblies> entries grouped by target framework."""
        groups: Dict[TargetFramework, List[str]] = {}
        for assembly in self.nuspec.iter("frameworkAssembly"):
            name = (assembly.get("assemblyName") or "").strip()
            if not name:
                continue
            targets = [t.strip() for t in (assembly.get("targetFramework") or "").split(",")]
            for target in targets:
                framework = parse_framework(target)
                items = groups.setdefault(framework, [])
                if name not in items:
                    items.append(name)
        return [
            FrameworkSpecificGroup(fw, tuple(items))
            for fw, items in sorted(groups.items(), key=lambda kv: kv[0].get_short_folder_name())
        ]

    def get_dependency_groups(self) -> List[Tuple[TargetFramework, Tuple[PackageDependency, ...]]]:
        """<dependencies> per target framework; ungrouped entries map to Any."""
        dependencies = self.nuspec.find("metadata/dependencies")
        if dependencies is None:
            return []
        result = []
        groups = dependencies.findall("group")
        if groups:
            for group in groups:
                framework = parse_framework(group.get("targetFramework"))
                result.append((framework, tuple(_read_dependency(d) for d in group.findall("dependency"))))
        flat = dependencies.findall("dependency")
        if flat:
            result.append((ANY_FRAMEWORK, tuple(_read_dependency(d) for d in flat)))
        return result

    def get_contents(self) -> PackageContents:
        return PackageContents(
            library_items=tuple(self.get_lib_items()),
            framework_items=tuple(self.get_framework_items()),
        )


def _read_dependency(element: ET.Element) -> PackageDependency:
    package_id = (element.get("id") or "").strip()
    if not package_id:
        raise RegistryError("nuspec dependency without id")
    return PackageDependency(package_id, parse_range(element.get("version") or ""))
