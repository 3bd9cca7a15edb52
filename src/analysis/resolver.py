"""Remote resolver: discover every reachable (package, version) candidate.

The walk is depth-first from the root identity. Each dependency is visited
at the minimum version of its declared range and at the newest published
version the range accepts, so several versions of one package id may be
discovered; the pruner collapses them afterwards.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from common.cancellation import CancellationToken, check_cancelled
from common.errors import PackageNotFoundError, RegistryError
from common.logging_utils import extra_context, is_debug_enabled, Timer
from registry.base import Repository
from versioning.frameworks import TargetFramework
from versioning.models import CandidatePackage, PackageDependency, PackageIdentity, SemanticVersion, VersionRange

logger = logging.getLogger(__name__)


class _ResolutionContext:
    """State of one resolve() call; owned by a single walk.

    ``visited`` and ``candidates`` are append-only: the first answer for an
    identity wins and later duplicates are dropped.
    """

    def __init__(self, framework: TargetFramework, repositories: Sequence[Repository],
                 cancellation: Optional[CancellationToken]):
        self.framework = framework
        self.repositories = list(repositories)
        self.cancellation = cancellation
        self.visited: set = set()
        self.candidates: Dict[PackageIdentity, CandidatePackage] = {}
        # (casefolded id, range) -> versions to visit
        self.seeds: Dict[Tuple[str, VersionRange], List[SemanticVersion]] = {}

    def record(self, candidate: CandidatePackage) -> None:
        self.candidates.setdefault(candidate.identity, candidate)


def _lookup_all(identity: PackageIdentity, ctx: _ResolutionContext) -> List[CandidatePackage]:
    """Ask every repository, in order, about ``identity``.

    A failing repository is logged and skipped.
    """
    answers: List[CandidatePackage] = []
    for repository in ctx.repositories:
        check_cancelled(ctx.cancellation)
        try:
            info = repository.lookup_dependency_info(identity, ctx.framework)
        except RegistryError as e:
            logger.warning("Lookup of %s in %s failed: %s", identity, repository.name, e)
            continue
        if info is None:
            if is_debug_enabled(logger):
                logger.debug(
                    "Package not in repository",
                    extra=extra_context(
                        event="lookup", component="resolver", action="lookup_dependency_info",
                        outcome="not_found", target=str(identity), registry=repository.name,
                    ),
                )
            continue
        answers.append(info)
    return answers


def _allows_prerelease(version_range: VersionRange) -> bool:
    return any(
        bound is not None and bound.is_prerelease
        for bound in (version_range.min_version, version_range.max_version)
    )


def _listed_versions(dependency: PackageDependency, ctx: _ResolutionContext) -> List[SemanticVersion]:
    """Published versions of ``dependency.id`` that its range accepts, ascending."""
    version_range = dependency.version_range
    listed = set()
    for repository in ctx.repositories:
        check_cancelled(ctx.cancellation)
        try:
            listed.update(repository.list_versions(dependency.id))
        except RegistryError as e:
            logger.warning("Listing versions of %s in %s failed: %s", dependency.id, repository.name, e)
    prerelease_ok = _allows_prerelease(version_range)
    return sorted(
        v for v in listed
        if version_range.satisfies(v) and (prerelease_ok or not v.is_prerelease)
    )


def _seed_versions(dependency: PackageDependency, ctx: _ResolutionContext) -> List[SemanticVersion]:
    """Versions to visit for ``dependency``.

    An inclusive lower bound is always visited. The newest published
    version the range accepts is visited as well. Without an inclusive
    lower bound the lowest accepted version takes its place.

    Raises:
        PackageNotFoundError: If no version can be visited.
    """
    key = (dependency.id.casefold(), dependency.version_range)
    cached = ctx.seeds.get(key)
    if cached is not None:
        return cached

    version_range = dependency.version_range
    matching = _listed_versions(dependency, ctx)
    seeds: List[SemanticVersion] = []
    if version_range.min_version is not None and version_range.include_min:
        seeds.append(version_range.min_version)
    elif matching:
        seeds.append(matching[0])
    else:
        raise PackageNotFoundError(f"{dependency.id} {version_range}")
    if matching and matching[-1] not in seeds:
        seeds.append(matching[-1])

    ctx.seeds[key] = seeds
    return seeds


def resolve(
    root: PackageIdentity,
    framework: TargetFramework,
    repositories: Sequence[Repository],
    cancellation: Optional[CancellationToken] = None,
) -> List[CandidatePackage]:
    """Discover all candidates reachable from ``root``.

    Args:
        root: Requested package identity.
        framework: Target framework used to pick dependency groups.
        repositories: Package sources, queried in order for every identity.
        cancellation: Optional token checked between lookups.

    Returns:
        Candidates in discovery order, one per identity.

    Raises:
        PackageNotFoundError: If no repository knows a visited identity.
        ResolutionCancelledError: If ``cancellation`` fires.
    """
    if not repositories:
        raise PackageNotFoundError(root)

    ctx = _ResolutionContext(framework, repositories, cancellation)
    stack: List[PackageIdentity] = [root]

    with Timer() as t:
        while stack:
            check_cancelled(cancellation)
            identity = stack.pop()
            if identity in ctx.visited:
                continue
            ctx.visited.add(identity)

            answers = _lookup_all(identity, ctx)
            if not answers:
                raise PackageNotFoundError(identity)

            pending: List[PackageIdentity] = []
            for info in answers:
                ctx.record(info)
                for dependency in info.dependencies:
                    for version in _seed_versions(dependency, ctx):
                        nxt = PackageIdentity(dependency.id, version)
                        if nxt not in ctx.visited and nxt not in pending:
                            pending.append(nxt)
            # Reverse so the first declared dependency is explored first
            stack.extend(reversed(pending))

    logger.info(
        "Resolved %d candidate packages for %s",
        len(ctx.candidates), root,
        extra=extra_context(
            event="resolve", component="resolver", action="resolve", outcome="success",
            count=len(ctx.candidates), duration_ms=t.duration_ms(), target=str(root),
        ),
    )
    return list(ctx.candidates.values())
