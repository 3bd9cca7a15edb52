"""Version pruner: reduce discovered candidates to one version per package id.

Step 1 groups candidates by id and keeps the newest version of each group;
older versions are removable. Step 2 walks the dependency tree from the
requested root (post-order, iterative) and keeps only reachable survivors.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Sequence, Set, Tuple

from common.errors import PackageNotFoundError, UnsatisfiedDependencyError
from versioning.models import CandidatePackage, PackageDependency, PackageIdentity

logger = logging.getLogger(__name__)


def find_removable(candidates: Sequence[CandidatePackage]) -> Tuple[Dict[str, CandidatePackage], Set[CandidatePackage]]:
    """Split candidates into the newest survivor per id and the removable rest.

    Sorting is stable over discovery order, so between versions that compare
    equal the earliest discovered candidate survives.

    Returns:
        (survivors keyed by casefolded id, removable candidates)
    """
    groups: Dict[str, List[CandidatePackage]] = {}
    for candidate in candidates:
        group = groups.setdefault(candidate.id.casefold(), [])
        if candidate not in group:
            group.append(candidate)

    survivors: Dict[str, CandidatePackage] = {}
    removable: Set[CandidatePackage] = set()
    for key, group in groups.items():
        ordered = sorted(group, key=lambda c: c.version, reverse=True)
        # sorted(reverse=True) keeps equal elements in original order
        survivors[key] = ordered[0]
        removable.update(ordered[1:])
        if len(ordered) > 1:
            logger.debug(
                "Keeping %s over %s",
                ordered[0], ", ".join(str(c.version) for c in ordered[1:]),
            )
    return survivors, removable


def _target_for(
    dependency: PackageDependency,
    survivors: Dict[str, CandidatePackage],
    by_id: Dict[str, List[CandidatePackage]],
) -> CandidatePackage:
    """The surviving candidate a dependency resolves to.

    Raises:
        UnsatisfiedDependencyError: If no discovered version satisfies the
            range, or the newest version (the survivor) falls outside it.
    """
    key = dependency.id.casefold()
    if not any(dependency.matches(c.identity) for c in by_id.get(key, ())):
        raise UnsatisfiedDependencyError(dependency.id, dependency.version_range)
    survivor = survivors[key]
    if not dependency.version_range.satisfies(survivor.version):
        raise UnsatisfiedDependencyError(dependency.id, dependency.version_range)
    return survivor


def prune(candidates: Sequence[CandidatePackage], root: PackageIdentity) -> List[CandidatePackage]:
    """Flatten ``candidates`` to one version per id, reachable from ``root``.

    Args:
        candidates: Every discovered candidate, in discovery order.
        root: The requested root identity; the walk starts there.

    Returns:
        Pruned candidates in post-order (dependencies before dependents).

    Raises:
        PackageNotFoundError: If ``root`` is not among the candidates.
        UnsatisfiedDependencyError: If a dependency cannot be satisfied.
    """
    root_candidate = next((c for c in candidates if c.identity == root), None)
    if root_candidate is None:
        raise PackageNotFoundError(root)

    survivors, removable = find_removable(candidates)
    by_id: Dict[str, List[CandidatePackage]] = {}
    for c in candidates:
        by_id.setdefault(c.id.casefold(), []).append(c)
    # The requested root version is pinned even if a newer one was discovered
    root_key = root_candidate.id.casefold()
    if survivors[root_key] != root_candidate:
        removable.add(survivors[root_key])
        removable.discard(root_candidate)
        survivors[root_key] = root_candidate

    result: List[CandidatePackage] = []
    added: Set[CandidatePackage] = set()
    on_walk: Set[CandidatePackage] = {root_candidate}

    # (candidate, children_done)
    stack: List[Tuple[CandidatePackage, bool]] = [(root_candidate, False)]
    while stack:
        current, children_done = stack.pop()
        if children_done:
            if current not in removable and current not in added:
                added.add(current)
                result.append(current)
            continue

        stack.append((current, True))
        children: List[CandidatePackage] = []
        for dependency in current.dependencies:
            target = _target_for(dependency, survivors, by_id)
            if target in added or target in on_walk:
                continue
            on_walk.add(target)
            children.append(target)
        stack.extend((child, False) for child in reversed(children))

    logger.debug("Pruned %d candidates down to %d", len(candidates), len(result))
    return result
