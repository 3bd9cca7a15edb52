"""Graph assembler: build dependency graphs for a package or a project.

The registry path resolves, prunes and downloads candidates before adding
nodes and edges; the project path reads the restore lock file instead.
"""
from __future__ import annotations

import logging
import ntpath
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Dict, List, Optional, Sequence, Union

from constants import Constants
from common.cancellation import CancellationToken, check_cancelled
from common.errors import MalformedVersionError, MissingRestoreError, PackageNotFoundError, RegistryError
from common.logging_utils import extra_context, is_debug_enabled, Timer
from graph.model import DependencyGraph, Edge, GraphBuilder
from graph.nodes import AssemblyReferenceNode, PackageReferenceNode, ProjectReferenceNode, assembly_node_from_path
from project.lockfile import LockFile, LockFileLibrary, read_lock_file
from project.msbuild import ProjectInfo, load_project
from registry.base import PackageContents, Repository
from versioning.frameworks import TargetFramework, parse_target_framework
from versioning.models import CandidatePackage, PackageIdentity
from versioning.parser import parse_range
from .assets import select_assets
from .pruner import prune
from .resolver import resolve

logger = logging.getLogger(__name__)

FrameworkLike = Union[str, TargetFramework]


def _as_framework(framework: FrameworkLike) -> TargetFramework:
    if isinstance(framework, TargetFramework):
        return framework
    return parse_target_framework(framework)


def _range_label(text: Optional[str]) -> Optional[str]:
    """Normalized range text, or the raw text if it does not parse."""
    if text is None:
        return None
    try:
        return str(parse_range(text))
    except MalformedVersionError:
        return text.strip() or None


class DependencyAnalyzer:
    """Builds DependencyGraph instances from registries or project lock files."""

    def __init__(
        self,
        repositories: Optional[Sequence[Repository]] = None,
        *,
        max_workers: Optional[int] = None,
        cancellation: Optional[CancellationToken] = None,
        project_loader: Callable[..., ProjectInfo] = load_project,
        lock_file_reader: Callable[[str], LockFile] = read_lock_file,
    ):
        self.repositories: List[Repository] = list(repositories or [])
        self.max_workers = max(1, max_workers or Constants.MAX_WORKERS)
        self.cancellation = cancellation
        self._load_project = project_loader
        self._read_lock_file = lock_file_reader

    # ---------- registry-driven path ----------

    def analyze_package(self, package: PackageIdentity, framework: FrameworkLike) -> DependencyGraph:
        """Graph of ``package`` and everything it pulls in for ``framework``.

        Raises:
            PackageNotFoundError: If a package cannot be found or downloaded.
            UnsatisfiedDependencyError: If pruning cannot satisfy a range.
            ResolutionCancelledError: If the cancellation token fires.
        """
        target = _as_framework(framework)
        with Timer() as t:
            candidates = resolve(package, target, self.repositories, self.cancellation)
            pruned = prune(candidates, package)

            root_node = PackageReferenceNode(package.id, str(package.version))
            builder = GraphBuilder(root_node)
            package_nodes = self._add_package_nodes(builder, pruned, target)

            for candidate in pruned:
                check_cancelled(self.cancellation)
                source = package_nodes[candidate.id.casefold()]
                builder.with_edges(
                    Edge(source, package_nodes[dep.id.casefold()], str(dep.version_range))
                    for dep in candidate.dependencies
                )
            graph = builder.build()

        logger.info(
            "Built graph for %s (%s): %d nodes, %d edges",
            package, target, len(graph.nodes), len(graph.edges),
            extra=extra_context(
                event="analyze", component="analyzer", action="analyze_package", outcome="success",
                target=str(package), duration_ms=t.duration_ms(),
            ),
        )
        return graph

    def _add_package_nodes(
        self, builder: GraphBuilder, pruned: Sequence[CandidatePackage], target: TargetFramework
    ) -> Dict[str, PackageReferenceNode]:
        """Add a node plus its selected assemblies for every pruned candidate."""
        nodes: Dict[str, PackageReferenceNode] = {}
        if self.max_workers == 1 or len(pruned) < 2:
            for candidate in pruned:
                nodes[candidate.id.casefold()] = self._add_package(builder, candidate, target)
            return nodes

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {executor.submit(self._add_package, builder, c, target): c for c in pruned}
            try:
                for future in as_completed(futures):
                    nodes[futures[future].id.casefold()] = future.result()
            except BaseException:
                for future in futures:
                    future.cancel()
                raise
        return nodes

    def _add_package(
        self, builder: GraphBuilder, candidate: CandidatePackage, target: TargetFramework
    ) -> PackageReferenceNode:
        check_cancelled(self.cancellation)
        contents = self._download(candidate)
        selection = select_assets(contents, target)

        node = PackageReferenceNode(candidate.id, str(candidate.version))
        assemblies = [
            AssemblyReferenceNode(name)
            for name in selection.library_items + selection.framework_items
        ]
        builder.with_node(node)
        builder.with_nodes(assemblies)
        builder.with_edges(Edge(node, assembly) for assembly in assemblies)

        if is_debug_enabled(logger):
            logger.debug(
                "Selected assets",
                extra=extra_context(
                    event="select_assets", component="analyzer", action="add_package",
                    target=str(candidate.identity), count=len(assemblies),
                ),
            )
        return node

    def _download(self, candidate: CandidatePackage) -> PackageContents:
        """Download from the candidate's source first, then the other repositories."""
        ordered = sorted(self.repositories, key=lambda r: r.name != candidate.source)
        last_error: Optional[Exception] = None
        for repository in ordered:
            check_cancelled(self.cancellation)
            try:
                return repository.download(candidate.identity)
            except (PackageNotFoundError, RegistryError) as e:
                logger.warning("Download of %s from %s failed: %s", candidate.identity, repository.name, e)
                last_error = e
        if isinstance(last_error, RegistryError):
            raise last_error
        raise PackageNotFoundError(candidate.identity)

    # ---------- project/lock-file-driven path ----------

    def analyze_project(self, project_path: str, framework: Optional[str] = None) -> DependencyGraph:
        """Graph of a restored project, read from its project.assets.json.

        Raises:
            ProjectLoadError: If the project cannot be loaded.
            UnsupportedProjectError: If the project is not SDK-style.
            MissingRestoreError: If the lock file does not exist.
            LockFileError: If the lock file is unreadable or lacks the target.
        """
        info = self._load_project(project_path, framework)
        if not os.path.isfile(info.assets_path):
            raise MissingRestoreError(info.assets_path)
        lock_file = self._read_lock_file(info.assets_path)
        libraries = lock_file.get_target(info.target_framework).packages()

        project_node = ProjectReferenceNode(info.path)
        builder = GraphBuilder(project_node)

        library_nodes: Dict[str, PackageReferenceNode] = {}
        for library in libraries:
            check_cancelled(self.cancellation)
            node = PackageReferenceNode(library.id, library.version)
            builder.with_node(node)
            library_nodes[library.id.casefold()] = node
            assemblies = self._library_assemblies(library)
            builder.with_nodes(assemblies)
            builder.with_edges(Edge(node, assembly) for assembly in assemblies)

        for library in libraries:
            source = library_nodes[library.id.casefold()]
            for dep_id, dep_range in library.dependencies:
                dependency_node = library_nodes.get(dep_id.casefold())
                if dependency_node is None:
                    # Project-to-project references are not package libraries
                    logger.debug("Skipping non-package dependency %s of %s", dep_id, library.id)
                    continue
                builder.with_edge(Edge(source, dependency_node, _range_label(dep_range)))

        for reference in info.package_references:
            library_node = library_nodes.get(reference.id.casefold())
            if library_node is None:
                logger.warning(
                    "Package reference %s is not in %s for %s",
                    reference.id, info.assets_path, info.target_framework_moniker,
                )
                continue
            label = reference.version or lock_file.declared_range(info.target_framework, reference.id)
            builder.with_edge(Edge(project_node, library_node, _range_label(label)))

        references = [AssemblyReferenceNode(name) for name in info.file_references]
        builder.with_nodes(references)
        builder.with_edges(Edge(project_node, reference) for reference in references)

        graph = builder.build()
        logger.info(
            "Built graph for %s (%s): %d nodes, %d edges",
            info.path, info.target_framework_moniker, len(graph.nodes), len(graph.edges),
        )
        return graph

    @staticmethod
    def _library_assemblies(library: LockFileLibrary) -> List[AssemblyReferenceNode]:
        nodes = [AssemblyReferenceNode(name) for name in library.framework_assemblies]
        nodes.extend(
            assembly_node_from_path(path)
            for path in library.runtime_assemblies
            if ntpath.basename(path) != Constants.PLACEHOLDER_ASSEMBLY
        )
        return nodes
