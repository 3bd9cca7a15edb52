"""Minimal build collaborator for SDK-style .csproj/.fsproj/.vbproj files.

Reads the project XML statically (no MSBuild evaluation): target
framework(s), PackageReference and Reference items and the location of the
restore output (project.assets.json).
"""
from __future__ import annotations

import logging
import ntpath
import os
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from constants import Constants
from common.errors import ProjectLoadError, UnsupportedProjectError
from versioning.frameworks import TargetFramework, parse_framework

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PackageReference:
    """A direct <PackageReference> of the project."""
    id: str
    version: Optional[str] = None


@dataclass(frozen=True)
class ProjectInfo:
    """What the analyzer needs to know about a project."""
    path: str
    target_framework: TargetFramework
    target_framework_moniker: str
    package_references: Tuple[PackageReference, ...] = ()
    file_references: Tuple[str, ...] = ()
    assets_path: str = ""


def _strip_namespaces(root: ET.Element) -> ET.Element:
    for elem in root.iter():
        if '}' in elem.tag:
            elem.tag = elem.tag.split('}')[1]
    return root


def _is_sdk_project(root: ET.Element) -> bool:
    if root.get("Sdk"):
        return True
    if root.find("Sdk") is not None:
        return True
    return any(imp.get("Sdk") for imp in root.findall("Import"))


def _read_properties(root: ET.Element) -> Dict[str, str]:
    """Unconditional properties; the last definition wins like in MSBuild."""
    properties: Dict[str, str] = {}
    for group in root.findall("PropertyGroup"):
        if group.get("Condition"):
            continue
        for prop in group:
            if prop.get("Condition") or prop.text is None:
                continue
            properties[prop.tag] = prop.text.strip()
    return properties


def _item_metadata(item: ET.Element, name: str) -> Optional[str]:
    value = item.get(name)
    if value is None:
        child = item.find(name)
        if child is not None and child.text:
            value = child.text
    return value.strip() if value else None


def _read_package_references(root: ET.Element) -> List[PackageReference]:
    references: List[PackageReference] = []
    seen = set()
    for item in root.iter("PackageReference"):
        include = item.get("Include")
        if not include:
            continue
        for package_id in (p.strip() for p in include.split(";")):
            if package_id and package_id.casefold() not in seen:
                seen.add(package_id.casefold())
                references.append(PackageReference(package_id, _item_metadata(item, "Version")))
    return references


def _read_file_references(root: ET.Element) -> List[str]:
    names: List[str] = []
    for item in root.iter("Reference"):
        include = item.get("Include")
        if not include:
            continue
        hint_path = _item_metadata(item, "HintPath")
        if hint_path:
            name = ntpath.basename(hint_path)
        else:
            # "System.Xml, Version=4.0.0.0, ..." -> "System.Xml"
            name = ntpath.basename(include.split(",")[0].strip())
        if name and name not in names:
            names.append(name)
    return names


def _choose_framework(project_path: str, monikers: List[str], override: Optional[str]) -> Tuple[TargetFramework, str]:
    if override:
        wanted = parse_framework(override)
        if wanted.is_unsupported or wanted.is_any:
            raise ProjectLoadError(f"Unrecognized target framework '{override}'")
        if monikers and not any(parse_framework(m) == wanted for m in monikers):
            raise ProjectLoadError(
                f"{project_path} does not target {override} (targets: {';'.join(monikers)})"
            )
        return wanted, override
    if not monikers:
        raise ProjectLoadError(f"{project_path} declares no TargetFramework")
    framework = parse_framework(monikers[0])
    if framework.is_unsupported:
        raise ProjectLoadError(f"{project_path}: unsupported target framework '{monikers[0]}'")
    return framework, monikers[0]


def load_project(project_path: str, framework: Optional[str] = None) -> ProjectInfo:
    """Load an SDK-style project file.

    Args:
        project_path: Path to the project file.
        framework: Optional framework override; must be one the project targets.

    Raises:
        ProjectLoadError: If the file is missing, unparseable or has no target framework.
        UnsupportedProjectError: If the project is not SDK-style.
    """
    if not project_path or not project_path.strip():
        raise ProjectLoadError("Project path must not be empty")
    if not os.path.isfile(project_path):
        raise ProjectLoadError(f"Project path does not exist: {project_path}")

    try:
        root = _strip_namespaces(ET.parse(project_path).getroot())
    except (ET.ParseError, OSError) as e:
        raise ProjectLoadError(f"Unable to load project {project_path}: {e}") from e

    if root.tag != "Project":
        raise ProjectLoadError(f"{project_path} is not an MSBuild project")
    if not _is_sdk_project(root):
        raise UnsupportedProjectError(
            f"{project_path} is not an SDK-style project; only SDK-style projects are supported"
        )

    properties = _read_properties(root)
    monikers = [
        m.strip()
        for m in (properties.get("TargetFrameworks") or properties.get("TargetFramework") or "").split(";")
        if m.strip()
    ]
    target_framework, moniker = _choose_framework(project_path, monikers, framework)

    project_dir = os.path.dirname(os.path.abspath(project_path))
    intermediate = (
        properties.get("MSBuildProjectExtensionsPath")
        or properties.get("BaseIntermediateOutputPath")
        or Constants.DEFAULT_INTERMEDIATE_DIR
    )
    intermediate = intermediate.replace("\\", os.sep).replace("$(MSBuildProjectDirectory)", project_dir)
    assets_path = os.path.normpath(os.path.join(project_dir, intermediate, Constants.PROJECT_ASSETS_FILE))

    info = ProjectInfo(
        path=project_path,
        target_framework=target_framework,
        target_framework_moniker=moniker,
        package_references=tuple(_read_package_references(root)),
        file_references=tuple(_read_file_references(root)),
        assets_path=assets_path,
    )
    logger.debug(
        "Loaded project %s targeting %s with %d package references",
        project_path, moniker, len(info.package_references),
    )
    return info
