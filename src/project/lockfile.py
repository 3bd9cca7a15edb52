"""Reader for project.assets.json, the lock file written by a NuGet restore.

Only what graph assembly needs is extracted: for every target framework the
resolved libraries with their dependencies and assemblies, plus the
project's declared package dependencies per framework.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from common.errors import LockFileError
from versioning.frameworks import TargetFramework, parse_framework

logger = logging.getLogger(__name__)

PACKAGE_LIBRARY = "package"


@dataclass(frozen=True)
class LockFileLibrary:
    """A resolved library entry of one target."""
    id: str
    version: str
    type: str = PACKAGE_LIBRARY
    dependencies: Tuple[Tuple[str, str], ...] = ()
    framework_assemblies: Tuple[str, ...] = ()
    runtime_assemblies: Tuple[str, ...] = ()

    @property
    def is_package(self) -> bool:
        return self.type == PACKAGE_LIBRARY


@dataclass(frozen=True)
class LockFileTarget:
    name: str
    framework: TargetFramework
    libraries: Tuple[LockFileLibrary, ...] = ()

    def packages(self) -> List[LockFileLibrary]:
        return [lib for lib in self.libraries if lib.is_package]


@dataclass
class LockFile:
    """Parsed project.assets.json."""
    path: str
    version: int
    targets: Dict[str, LockFileTarget] = field(default_factory=dict)
    # framework -> {package id: declared range}
    project_dependencies: Dict[TargetFramework, Dict[str, str]] = field(default_factory=dict)

    def get_target(self, framework: TargetFramework) -> LockFileTarget:
        """The runtime-agnostic target for ``framework``.

        Raises:
            LockFileError: If the lock file has no such target.
        """
        for name, target in self.targets.items():
            if "/" in name:
                continue
            if target.framework == framework:
                return target
        available = ", ".join(sorted(n for n in self.targets if "/" not in n)) or "none"
        raise LockFileError(
            f"{self.path} has no target for {framework} (available: {available})"
        )

    def declared_range(self, framework: TargetFramework, package_id: str) -> Optional[str]:
        deps = self.project_dependencies.get(framework, {})
        wanted = package_id.casefold()
        for dep_id, value in deps.items():
            if dep_id.casefold() == wanted:
                return value
        return None


def _parse_library(key: str, body: Any) -> LockFileLibrary:
    if "/" not in key:
        raise LockFileError(f"Malformed library key '{key}'")
    if not isinstance(body, dict):
        raise LockFileError(f"Malformed library entry for '{key}'")
    package_id, version = key.split("/", 1)
    dependencies = body.get("dependencies") or {}
    if not isinstance(dependencies, dict):
        raise LockFileError(f"Malformed dependencies for '{key}'")
    runtime = body.get("runtime") or {}
    return LockFileLibrary(
        id=package_id,
        version=version,
        type=str(body.get("type") or PACKAGE_LIBRARY),
        dependencies=tuple((str(k), str(v)) for k, v in dependencies.items()),
        framework_assemblies=tuple(str(a) for a in body.get("frameworkAssemblies") or ()),
        runtime_assemblies=tuple(str(p) for p in runtime),
    )


def _parse_project_dependencies(project: Dict[str, Any]) -> Dict[TargetFramework, Dict[str, str]]:
    result: Dict[TargetFramework, Dict[str, str]] = {}
    frameworks = project.get("frameworks") or {}
    if not isinstance(frameworks, dict):
        raise LockFileError("Malformed project frameworks")
    for name, body in frameworks.items():
        if not isinstance(body, dict):
            raise LockFileError(f"Malformed project framework '{name}'")
        framework = parse_framework(name)
        declared = body.get("dependencies") or {}
        if not isinstance(declared, dict):
            raise LockFileError(f"Malformed project dependencies for '{name}'")
        deps: Dict[str, str] = {}
        for dep_id, spec in declared.items():
            if isinstance(spec, dict):
                version = spec.get("version")
            else:
                version = spec
            if version:
                deps[str(dep_id)] = str(version)
        result[framework] = deps
    return result


def read_lock_file(path: str) -> LockFile:
    """Parse a project.assets.json file.

    Raises:
        LockFileError: If the file cannot be read or is structurally invalid.
    """
    try:
        with open(path, "r", encoding="utf-8-sig") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise LockFileError(f"Couldn't read lock file {path}: {e}") from e
    if not isinstance(data, dict):
        raise LockFileError(f"{path}: expected a JSON object")

    raw_targets = data.get("targets") or {}
    if not isinstance(raw_targets, dict):
        raise LockFileError(f"{path}: malformed targets")
    targets: Dict[str, LockFileTarget] = {}
    for name, libraries in raw_targets.items():
        if not isinstance(libraries, dict):
            raise LockFileError(f"{path}: malformed target '{name}'")
        framework = parse_framework(name.split("/", 1)[0])
        targets[name] = LockFileTarget(
            name=name,
            framework=framework,
            libraries=tuple(_parse_library(k, {} if v is None else v) for k, v in libraries.items()),
        )

    try:
        version = int(data.get("version") or 0)
    except (TypeError, ValueError) as e:
        raise LockFileError(f"{path}: malformed version {data.get('version')!r}") from e
    project = data.get("project") or {}
    if not isinstance(project, dict):
        raise LockFileError(f"{path}: malformed project section")

    lock_file = LockFile(
        path=path,
        version=version,
        targets=targets,
        project_dependencies=_parse_project_dependencies(project),
    )
    logger.debug("Read lock file %s with %d targets", path, len(targets))
    return lock_file
