"""Tests for the version pruner."""

import pytest

from analysis.pruner import find_removable, prune
from common.errors import PackageNotFoundError, UnsatisfiedDependencyError
from conftest import dependency, identity
from versioning.models import CandidatePackage


def candidate(package_id, version, deps=(), source="fake"):
    return CandidatePackage(
        identity(package_id, version),
        source,
        tuple(dependency(d_id, d_range) for d_id, d_range in deps),
    )


class TestFindRemovable:
    """Test newest-wins selection."""

    def test_newest_version_survives(self):
        """Test older versions are removable."""
        old, new = candidate("B", "1.0.0"), candidate("B", "1.1.0")
        survivors, removable = find_removable([old, new])
        assert survivors["b"] is new
        assert removable == {old}

    def test_ids_group_case_insensitively(self):
        """Test differently cased ids form one group."""
        survivors, removable = find_removable([candidate("Foo", "2.0.0"), candidate("foo", "1.0.0")])
        assert list(survivors) == ["foo"]
        assert len(removable) == 1

    def test_prerelease_loses_to_release(self):
        """Test a release beats its own prerelease."""
        survivors, _ = find_removable([candidate("B", "1.0.0"), candidate("B", "1.0.0-rc.1")])
        assert str(survivors["b"].version) == "1.0.0"

    def test_equal_versions_keep_first_discovered(self):
        """Test versions equal after normalization keep discovery order."""
        first = candidate("B", "1.0.0", source="one")
        second = CandidatePackage(identity("B", "1.0.0.0"), "two")
        survivors, removable = find_removable([first, second])
        assert survivors["b"].source == "one"
        assert not removable


class TestPrune:
    """Test flattening to one version per id."""

    def test_scenario_newer_version_replaces_older(self):
        """Test A -> B [1.0.0,) with B 1.0.0 and 1.1.0 keeps only B 1.1.0."""
        a = candidate("A", "1.0.0", deps=[("B", "[1.0.0,)")])
        b_old, b_new = candidate("B", "1.0.0"), candidate("B", "1.1.0")

        result = prune([a, b_old, b_new], identity("A", "1.0.0"))

        assert [str(c) for c in result] == ["B@1.1.0", "A@1.0.0"]

    def test_shared_dependency_kept_once(self):
        """Test A -> B, C and C -> B keeps one B."""
        a = candidate("A", "1.0.0", deps=[("B", "1.0.0"), ("C", "1.0.0")])
        b = candidate("B", "1.0.0")
        c = candidate("C", "1.0.0", deps=[("B", "1.0.0")])

        result = prune([a, b, c], identity("A", "1.0.0"))

        assert [str(x) for x in result] == ["B@1.0.0", "C@1.0.0", "A@1.0.0"]

    def test_unreachable_candidates_are_dropped(self):
        """Test dependencies only reachable through removed versions disappear."""
        a = candidate("A", "1.0.0", deps=[("B", "1.0.0")])
        b_old = candidate("B", "1.0.0", deps=[("Legacy", "1.0.0")])
        b_new = candidate("B", "2.0.0")
        legacy = candidate("Legacy", "1.0.0")

        result = prune([a, b_old, b_new, legacy], identity("A", "1.0.0"))

        assert [str(c) for c in result] == ["B@2.0.0", "A@1.0.0"]

    def test_root_version_is_pinned(self):
        """Test the requested root is kept even if a newer version was seen."""
        a_old = candidate("A", "1.0.0", deps=[("B", "1.0.0")])
        b = candidate("B", "1.0.0", deps=[("A", "1.0.0")])
        a_new = candidate("A", "2.0.0")

        result = prune([a_old, b, a_new], identity("A", "1.0.0"))

        assert [str(c) for c in result] == ["B@1.0.0", "A@1.0.0"]

    def test_every_dependency_is_satisfied(self):
        """Test dependency ranges hold for the kept versions."""
        a = candidate("A", "1.0.0", deps=[("B", "[1.0.0,3.0.0)"), ("C", "1.0.0")])
        c = candidate("C", "1.0.0", deps=[("B", "2.0.0")])
        candidates = [a, candidate("B", "1.0.0"), c, candidate("B", "2.0.0")]

        result = prune(candidates, identity("A", "1.0.0"))

        kept = {x.id: x for x in result}
        for x in result:
            for dep in x.dependencies:
                assert dep.version_range.satisfies(kept[dep.id].version)

    def test_newest_outside_range_is_unsatisfied(self):
        """Test an upper bound excluding the newest version fails."""
        a = candidate("A", "1.0.0", deps=[("B", "[1.0.0,2.0.0)"), ("C", "1.0.0")])
        c = candidate("C", "1.0.0", deps=[("B", "2.0.0")])
        candidates = [a, candidate("B", "1.0.0"), c, candidate("B", "2.0.0")]

        with pytest.raises(UnsatisfiedDependencyError) as exc_info:
            prune(candidates, identity("A", "1.0.0"))
        assert exc_info.value.package_id == "B"

    def test_no_matching_candidate_is_unsatisfied(self):
        """Test a dependency without any discovered version fails."""
        a = candidate("A", "1.0.0", deps=[("B", "[5.0.0]")])

        with pytest.raises(UnsatisfiedDependencyError):
            prune([a, candidate("B", "1.0.0")], identity("A", "1.0.0"))

    def test_missing_root_raises(self):
        """Test the root must be among the candidates."""
        with pytest.raises(PackageNotFoundError):
            prune([candidate("B", "1.0.0")], identity("A", "1.0.0"))

    def test_deep_chain_is_iterative(self):
        """Test long chains do not hit the recursion limit."""
        depth = 3000
        chain = [
            candidate(f"P{i}", "1.0.0", deps=[(f"P{i + 1}", "1.0.0")] if i + 1 < depth else [])
            for i in range(depth)
        ]

        result = prune(chain, identity("P0", "1.0.0"))

        assert len(result) == depth
        assert str(result[0]) == "P2999@1.0.0"
        assert str(result[-1]) == "P0@1.0.0"
