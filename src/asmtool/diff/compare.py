"""
Semantic Symbol Comparison
==========================

Compares functions and data objects between two versions of an assembly
file, ignoring changes that only rename compiler-generated symbols.

Dependency Chains
-----------------
Two bodies that are equal after normalization can still behave
differently: `foo` may call `bar.part.0` in both versions while
`bar.part.0` itself changed. When a flat comparison finds no difference,
the comparator maps every identifier of B's body to the identifier at the
same position in A's body and compares each generated function/object it
finds, recursively. The result is a DiffChain tree:

    foo [f=]
    └── bar.part.0 (was bar.part.1) [f!]

`deep_equal` of a node is true only if the node and its whole subtree are
flat-equal.

Memoization
-----------
Every B-side name is compared at most once per SymbolComparator. A name
is entered into the cache as equal before its dependencies are visited,
so a cycle (`a.isra.0` calling `b.isra.0` calling `a.isra.0`) terminates.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Iterator, Optional
import logging

from asmtool.assembly.asmfile import AsmFile
from asmtool.assembly.objects import AsmObject, ExtractFlags
from asmtool.assembly.parser import SYMBOLIC_KINDS, Statement
from asmtool.assembly.lexer import TokenKind
from asmtool.assembly.symbols import SymbolKind, is_generated_symbol
from asmtool.diff.generic import Diff
from asmtool.errors import SymbolTypeMismatchError

logger = logging.getLogger(__name__)


COMPARE_FLAGS = ExtractFlags.STRIP_DEBUG | ExtractFlags.NORMALIZE


# =============================================================================
# Result Types
# =============================================================================

@dataclass
class DiffChain:
    """
    Comparison result of one symbol pair and its dependencies.

    Attributes:
        kind: FUNCTION or OBJECT
        name_a: Symbol name in file A
        name_b: Symbol name in file B
        flat_equal: Bodies are equal after normalization
        deep_equal: flat_equal holds for this node and all descendants
        children: Chains of the generated symbols this body references
    """
    kind: SymbolKind
    name_a: str
    name_b: str
    flat_equal: bool = True
    deep_equal: bool = True
    children: list["DiffChain"] = field(default_factory=list)

    def walk(self) -> Iterator["DiffChain"]:
        """Iterate over this node and its descendants, depth first."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))


@dataclass
class ComparedPair:
    """Extracted bodies and their Diff, kept for rendering."""
    obj_a: AsmObject
    obj_b: AsmObject
    diff: Diff


class ChangeStatus(Enum):
    """Outcome of comparing one top-level symbol."""
    NEW = auto()
    REMOVED = auto()
    CHANGED = auto()
    DEPENDENCY_CHANGED = auto()
    UNCHANGED = auto()


@dataclass
class SymbolChange:
    """
    One line of a file comparison.

    Attributes:
        name: Symbol name
        kind: FUNCTION or OBJECT
        status: What happened to the symbol
        chain: Comparison tree (None for NEW and REMOVED)
    """
    name: str
    kind: SymbolKind
    status: ChangeStatus
    chain: Optional[DiffChain] = None


# =============================================================================
# Symbol Mapping
# =============================================================================

def build_symbol_map(obj_a: AsmObject, obj_b: AsmObject) -> dict[str, str]:
    """
    Map identifiers of B's body to the identifiers at the same place in A.

    Only instructions and data definitions are considered. The bodies are
    expected to be equal, so they pair up statement by statement. When one
    B name maps to two different A names, the first mapping is kept and a
    warning is logged.

    Returns:
        Mapping of B identifier to A identifier
    """
    mapping: dict[str, str] = {}

    for stmt_a, stmt_b in zip(obj_a.statements, obj_b.statements):
        if stmt_b.kind not in SYMBOLIC_KINDS:
            continue
        for param_a, param_b in zip(stmt_a.params, stmt_b.params):
            for token_a, token_b in zip(param_a, param_b):
                if token_b.kind != TokenKind.IDENTIFIER or token_a.kind != TokenKind.IDENTIFIER:
                    continue
                previous = mapping.setdefault(token_b.text, token_a.text)
                if previous != token_a.text:
                    logger.warning(
                        f"{obj_b.name}: {token_b.text} maps to both "
                        f"{previous} and {token_a.text}, keeping {previous}"
                    )

    return mapping


# =============================================================================
# Comparator
# =============================================================================

class SymbolComparator:
    """
    Compares symbols of two loaded files, with a run-wide results cache.

    Usage:
        comparator = SymbolComparator(file_a, file_b)
        chain = comparator.compare(SymbolKind.FUNCTION, "main", "main")
        if not chain.deep_equal:
            ...

    Attributes:
        file_a: Old file
        file_b: New file
        results: name_b -> flat_equal for every symbol compared so far
        pairs: (name_a, name_b) -> ComparedPair for every pair that was
               extracted on both sides
    """

    def __init__(self, file_a: AsmFile, file_b: AsmFile):
        self.file_a = file_a
        self.file_b = file_b
        self.results: dict[str, bool] = {}
        self.pairs: dict[tuple[str, str], ComparedPair] = {}

    def extract(self, kind: SymbolKind, name_a: str,
                name_b: str) -> tuple[Optional[AsmObject], Optional[AsmObject]]:
        """Extract and normalize both sides."""
        if kind == SymbolKind.FUNCTION:
            return (self.file_a.get_function(name_a, COMPARE_FLAGS),
                    self.file_b.get_function(name_b, COMPARE_FLAGS))
        return (self.file_a.get_object(name_a, COMPARE_FLAGS),
                self.file_b.get_object(name_b, COMPARE_FLAGS))

    def compare(self, kind: SymbolKind, name_a: str, name_b: str) -> DiffChain:
        """
        Compare `name_a` in file A against `name_b` in file B.

        Returns:
            The DiffChain rooted at this pair
        """
        root = DiffChain(kind, name_a, name_b)
        dependencies = self._evaluate(root)
        if dependencies is None:
            return root

        # Each frame is a chain whose dependencies are still being visited
        stack = [(root, iter(dependencies))]

        while stack:
            chain, pending = stack[-1]
            dependency = next(pending, None)

            if dependency is None:
                stack.pop()
                chain.deep_equal = chain.flat_equal and all(
                    child.deep_equal for child in chain.children
                )
                continue

            child = DiffChain(*dependency)
            chain.children.append(child)
            grandchildren = self._evaluate(child)
            if grandchildren is not None:
                stack.append((child, iter(grandchildren)))

        return root

    def _evaluate(self, chain: DiffChain) -> Optional[list[tuple[SymbolKind, str, str]]]:
        """
        Run the flat comparison of one node.

        Returns:
            The dependencies to visit, or None when the node is final
            (cached, missing or different)
        """
        cached = self.results.get(chain.name_b)
        if cached is not None:
            chain.flat_equal = chain.deep_equal = cached
            return None

        self.results[chain.name_b] = False

        obj_a, obj_b = self.extract(chain.kind, chain.name_a, chain.name_b)
        if obj_a is None or obj_b is None:
            logger.debug(f"Cannot extract {chain.name_a} / {chain.name_b}")
            chain.flat_equal = chain.deep_equal = False
            return None

        diff = Diff(obj_a, obj_b)
        self.pairs[(chain.name_a, chain.name_b)] = ComparedPair(obj_a, obj_b, diff)

        if diff.is_different():
            logger.debug(f"{chain.name_b} differs from {chain.name_a}")
            chain.flat_equal = chain.deep_equal = False
            return None

        self.results[chain.name_b] = True
        chain.flat_equal = chain.deep_equal = True

        dependencies = []
        mapping = build_symbol_map(obj_a, obj_b)
        for name_b in sorted(mapping):
            name_a = mapping[name_b]
            if not is_generated_symbol(name_b):
                continue
            if self.file_a.has_function(name_a) and self.file_b.has_function(name_b):
                dependencies.append((SymbolKind.FUNCTION, name_a, name_b))
            elif self.file_a.has_object(name_a) and self.file_b.has_object(name_b):
                dependencies.append((SymbolKind.OBJECT, name_a, name_b))

        return dependencies

    def pair(self, name_a: str, name_b: str) -> Optional[ComparedPair]:
        return self.pairs.get((name_a, name_b))


# =============================================================================
# File and Symbol Comparison
# =============================================================================

def top_level_symbols(asm_file: AsmFile) -> dict[str, SymbolKind]:
    """Named (not compiler-generated) functions and objects, sorted by name."""
    symbols = {}
    for symbol in asm_file.iter_symbols():
        if is_generated_symbol(symbol.name):
            continue
        kind = asm_file.symbol_kind(symbol.name)
        if kind != SymbolKind.UNKNOWN:
            symbols[symbol.name] = kind
    return symbols


def compare_files(
    file_a: AsmFile,
    file_b: AsmFile,
    comparator: Optional[SymbolComparator] = None,
) -> list[SymbolChange]:
    """
    Compare every named function and object of two files.

    Symbols of B come first in name order (NEW, CHANGED, DEPENDENCY_CHANGED
    or UNCHANGED), followed by the symbols only A has (REMOVED).

    Args:
        file_a: Old file
        file_b: New file
        comparator: Comparator to use, so callers can render its diffs
    """
    if comparator is None:
        comparator = SymbolComparator(file_a, file_b)

    symbols_a = top_level_symbols(file_a)
    symbols_b = top_level_symbols(file_b)
    changes: list[SymbolChange] = []

    for name, kind in symbols_b.items():
        if name not in symbols_a:
            changes.append(SymbolChange(name, kind, ChangeStatus.NEW))
            continue

        if symbols_a[name] != kind:
            logger.debug(f"{name} changed kind, reporting as changed")
            changes.append(SymbolChange(name, kind, ChangeStatus.CHANGED,
                                        DiffChain(kind, name, name, False, False)))
            continue

        chain = comparator.compare(kind, name, name)
        if not chain.flat_equal:
            status = ChangeStatus.CHANGED
        elif not chain.deep_equal:
            status = ChangeStatus.DEPENDENCY_CHANGED
        else:
            status = ChangeStatus.UNCHANGED
        changes.append(SymbolChange(name, kind, status, chain))

    for name, kind in symbols_a.items():
        if name not in symbols_b:
            changes.append(SymbolChange(name, kind, ChangeStatus.REMOVED))

    return changes


def _definition(asm_file: AsmFile, name: str) -> Optional[Statement]:
    if not asm_file.has_symbol(name):
        return None
    index = asm_file.get_symbol(name).stmt_index
    if index is None:
        return None
    return asm_file.statement(index)


def compare_symbols(
    file_a: AsmFile,
    file_b: AsmFile,
    name_a: str,
    name_b: str,
    comparator: Optional[SymbolComparator] = None,
) -> DiffChain:
    """
    Compare one symbol of file A against one symbol of file B.

    Raises:
        SymbolTypeMismatchError: If either symbol is undefined or the two
                                 are not both functions or both objects
    """
    kind_a = file_a.symbol_kind(name_a)
    kind_b = file_b.symbol_kind(name_b)
    if kind_a != kind_b or kind_a == SymbolKind.UNKNOWN:
        # Point at whichever definition exists, B first
        definition = _definition(file_b, name_b)
        if definition is None:
            definition = _definition(file_a, name_a)
        if definition is None:
            raise SymbolTypeMismatchError(name_a, name_b)
        raise SymbolTypeMismatchError(
            name_a, name_b,
            location=definition.location,
            source_line=definition.text,
        )

    if comparator is None:
        comparator = SymbolComparator(file_a, file_b)
    return comparator.compare(kind_a, name_a, name_b)
