"""
Generic Sequence Diff
=====================

Longest-common-subsequence alignment of two sequences, with a pluggable
element equality.

Algorithm
---------
`Diff` fills an (n+1) x (m+1) table where `lcs[i][j]` is the length of the
longest common subsequence of the first i elements of A and the first j
elements of B, and remembers which cells matched. The edit script is
recovered by walking back from `(n, m)`:

- matched cell: EQUAL, step diagonally
- otherwise ADDED if `i == 0` or `lcs[i][j-1] >= lcs[i-1][j]`, step left
- otherwise REMOVED, step up

The walk is a loop rather than recursion, so long sequences cannot hit
the interpreter's recursion limit.

Example
-------
>>> diff = Diff("abc", "abd")
>>> diff.is_different()
True
>>> [e.type.name for e in diff.get_diff()]
['EQUAL', 'EQUAL', 'REMOVED', 'ADDED']
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Callable, Optional, Sequence, Union
import operator


class DiffType(Enum):
    """Edit operation of one diff script entry."""
    EQUAL = auto()
    ADDED = auto()
    REMOVED = auto()


@dataclass(frozen=True)
class DiffElement:
    """
    One entry of an edit script.

    Attributes:
        type: EQUAL, ADDED or REMOVED
        index_a: Index into sequence A (None for ADDED)
        index_b: Index into sequence B (None for REMOVED)
    """
    type: DiffType
    index_a: Optional[int]
    index_b: Optional[int]


class Diffable:
    """
    Base class for anything that can be diffed element by element.

    Subclasses provide `elements()`; `element(i)` and `len()` default to
    indexing into it.
    """

    def elements(self) -> Sequence[Any]:
        raise NotImplementedError

    def element(self, index: int) -> Any:
        return self.elements()[index]

    def __len__(self) -> int:
        return len(self.elements())


class SequenceDiffable(Diffable):
    """Diffable view of a plain sequence (list, tuple, str, ...)."""

    def __init__(self, items: Sequence[Any]):
        self.items = items

    def elements(self) -> Sequence[Any]:
        return self.items


def as_diffable(value: Union[Diffable, Sequence[Any]]) -> Diffable:
    if isinstance(value, Diffable):
        return value
    return SequenceDiffable(value)


Equality = Callable[[Any, Any], bool]


class Diff:
    """
    LCS alignment of two Diffables.

    The tables are computed once in the constructor; `is_different()` and
    `get_diff()` only read them.

    Args:
        a: Old sequence
        b: New sequence
        equal: Element equality, `==` by default
    """

    def __init__(
        self,
        a: Union[Diffable, Sequence[Any]],
        b: Union[Diffable, Sequence[Any]],
        equal: Equality = operator.eq,
    ):
        self.a = as_diffable(a)
        self.b = as_diffable(b)
        self.equal = equal

        self.n = len(self.a)
        self.m = len(self.b)

        self._lcs = [[0] * (self.m + 1) for _ in range(self.n + 1)]
        self._match = [[False] * (self.m + 1) for _ in range(self.n + 1)]
        self._compute()

    def _compute(self) -> None:
        lcs = self._lcs
        match = self._match
        b_items = [self.b.element(j) for j in range(self.m)]

        for i in range(1, self.n + 1):
            item_a = self.a.element(i - 1)
            row = lcs[i]
            above = lcs[i - 1]
            for j in range(1, self.m + 1):
                if self.equal(item_a, b_items[j - 1]):
                    match[i][j] = True
                    row[j] = above[j - 1] + 1
                else:
                    row[j] = max(above[j], row[j - 1])

    @property
    def lcs_length(self) -> int:
        return self._lcs[self.n][self.m]

    def is_different(self) -> bool:
        """True unless A and B are element-wise equal."""
        return self.n != self.m or self.lcs_length != self.n

    def get_diff(self) -> list[DiffElement]:
        """
        Build the edit script turning A into B.

        Returns:
            DiffElements in forward order
        """
        script: list[DiffElement] = []
        i, j = self.n, self.m

        while i > 0 or j > 0:
            if i > 0 and j > 0 and self._match[i][j]:
                script.append(DiffElement(DiffType.EQUAL, i - 1, j - 1))
                i -= 1
                j -= 1
            elif j > 0 and (i == 0 or self._lcs[i][j - 1] >= self._lcs[i - 1][j]):
                script.append(DiffElement(DiffType.ADDED, None, j - 1))
                j -= 1
            else:
                script.append(DiffElement(DiffType.REMOVED, i - 1, None))
                i -= 1

        script.reverse()
        return script


def apply_diff(
    script: Sequence[DiffElement],
    a: Union[Diffable, Sequence[Any]],
    b: Union[Diffable, Sequence[Any]],
) -> list[Any]:
    """
    Replay an edit script against A, taking added elements from B.

    Returns:
        The reconstructed sequence (equal to B element-wise)

    Raises:
        ValueError: If the script does not walk A and B in order
    """
    a = as_diffable(a)
    b = as_diffable(b)
    result: list[Any] = []
    next_a = 0
    next_b = 0

    for entry in script:
        if entry.type != DiffType.ADDED:
            if entry.index_a != next_a:
                raise ValueError(f"expected index_a {next_a}, got {entry.index_a}")
            next_a += 1
        if entry.type != DiffType.REMOVED:
            if entry.index_b != next_b:
                raise ValueError(f"expected index_b {next_b}, got {entry.index_b}")
            next_b += 1

        if entry.type == DiffType.EQUAL:
            result.append(a.element(entry.index_a))
        elif entry.type == DiffType.ADDED:
            result.append(b.element(entry.index_b))

    if next_a != len(a) or next_b != len(b):
        raise ValueError("script does not cover both sequences")

    return result
