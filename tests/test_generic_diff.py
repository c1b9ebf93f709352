# =============================================================================
# test_generic_diff.py - LCS Diff Engine Tests
# =============================================================================
# Tests for Diff, DiffElement, Diffable and apply_diff.
# =============================================================================

import pytest
from asmtool.diff import Diff, DiffElement, Diffable, DiffType, SequenceDiffable, apply_diff


def types(script) -> list:
    return [entry.type for entry in script]


EQUAL = DiffType.EQUAL
ADDED = DiffType.ADDED
REMOVED = DiffType.REMOVED


# =============================================================================
# Basic Diff Tests
# =============================================================================

class TestDiff:
    """Test alignment of simple sequences."""

    def test_identical(self):
        diff = Diff([1, 2, 3], [1, 2, 3])
        assert not diff.is_different()
        assert types(diff.get_diff()) == [EQUAL, EQUAL, EQUAL]

    def test_both_empty(self):
        diff = Diff([], [])
        assert not diff.is_different()
        assert diff.get_diff() == []

    def test_replacement(self):
        script = Diff("abc", "abd").get_diff()
        assert script == [
            DiffElement(EQUAL, 0, 0),
            DiffElement(EQUAL, 1, 1),
            DiffElement(REMOVED, 2, None),
            DiffElement(ADDED, None, 2),
        ]

    def test_all_added(self):
        script = Diff("", "ab").get_diff()
        assert script == [DiffElement(ADDED, None, 0), DiffElement(ADDED, None, 1)]

    def test_all_removed(self):
        script = Diff("ab", "").get_diff()
        assert script == [DiffElement(REMOVED, 0, None), DiffElement(REMOVED, 1, None)]

    def test_prefix_is_different(self):
        """Different lengths are always different."""
        assert Diff("ab", "abc").is_different()

    def test_same_length_different_content(self):
        assert Diff("abc", "axc").is_different()

    def test_lcs_length(self):
        assert Diff("kitten", "sitting").lcs_length == 4

    def test_custom_equality(self):
        diff = Diff(["A", "b"], ["a", "B"], equal=lambda x, y: x.lower() == y.lower())
        assert not diff.is_different()

    def test_insert_in_middle(self):
        script = Diff([1, 3], [1, 2, 3]).get_diff()
        assert types(script) == [EQUAL, ADDED, EQUAL]
        assert script[1].index_b == 1

    def test_long_sequence_without_recursion(self):
        """The back-trace is iterative, so long inputs are fine."""
        a = list(range(5000))
        script = Diff(a, [4999]).get_diff()
        assert len(script) == 5000
        assert script[-1] == DiffElement(EQUAL, 4999, 0)


# =============================================================================
# Round-Trip Tests
# =============================================================================

class TestApplyDiff:
    """Replaying the edit script of A against B yields B."""

    @pytest.mark.parametrize("a,b", [
        ("kitten", "sitting"),
        ("", "abc"),
        ("abc", ""),
        ("abcabba", "cbabac"),
        ([1, 2, 3, 4], [2, 4, 6]),
    ])
    def test_round_trip(self, a, b):
        script = Diff(a, b).get_diff()
        assert apply_diff(script, a, b) == list(b)

    def test_script_out_of_order(self):
        with pytest.raises(ValueError):
            apply_diff([DiffElement(EQUAL, 1, 0)], "ab", "b")

    def test_script_incomplete(self):
        with pytest.raises(ValueError):
            apply_diff([DiffElement(EQUAL, 0, 0)], "ab", "a")


# =============================================================================
# Diffable Tests
# =============================================================================

class TestDiffable:
    """Test the Diffable interface."""

    def test_sequence_adapter(self):
        adapter = SequenceDiffable((1, 2))
        assert len(adapter) == 2
        assert adapter.element(1) == 2

    def test_custom_diffable(self):
        class Lines(Diffable):
            def __init__(self, text):
                self.lines = text.splitlines()

            def elements(self):
                return self.lines

        diff = Diff(Lines("a\nb"), Lines("a\nc"))
        assert diff.is_different()
        assert types(diff.get_diff()) == [EQUAL, REMOVED, ADDED]

    def test_base_class_is_abstract(self):
        with pytest.raises(NotImplementedError):
            Diffable().elements()
