"""
Symbol Metadata and Naming Rules
================================

This module holds the per-symbol record kept by the symbol table and the
heuristics that classify symbol names.

Naming Rules
------------
Compilers invent names the programmer never wrote (`.L3`, `.LC0`,
`foo.part.0`, `bar.constprop.1`). They are not stable between two
compilations, so the comparison treats them as interchangeable. One
consistent set of rules is used throughout the package:

| Rule                  | Test                                   | Used by                       |
|-----------------------|----------------------------------------|-------------------------------|
| generated symbol      | name contains `.`                      | statement equality, deep diff |
| valid symbol          | non-empty, does not start with a digit | symbol table                  |
| normalizable label    | starts with `.L` or is at most 2 long  | normalization                 |
| debug label           | `.L` followed by a letter              | STRIP_DEBUG                   |
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional


class SymbolKind(Enum):
    """What a symbol names."""
    FUNCTION = auto()
    OBJECT = auto()
    UNKNOWN = auto()


class SymbolScope(Enum):
    """Symbol visibility."""
    UNKNOWN = auto()
    LOCAL = auto()
    GLOBAL = auto()


# Canonical names assigned by normalization: ~ASMTOOL0, ~ASMTOOL1, ...
CANONICAL_LABEL_PREFIX = "~ASMTOOL"


def is_generated_symbol(name: str) -> bool:
    """Check whether a name looks compiler-generated."""
    return "." in name


def is_valid_symbol(name: str) -> bool:
    """Check whether a label name is tracked in the symbol table."""
    return bool(name) and not name[0].isdigit()


def is_normalizable_label(name: str) -> bool:
    """Check whether a label is renamed by normalization."""
    return name.startswith(".L") or len(name) <= 2


def is_debug_label(name: str) -> bool:
    """
    Check whether a label only exists for debug information.

    GCC emits `.LFB0`, `.LFE0`, `.LVL3`, `.LBB2` and friends around
    function bodies; numbered jump targets such as `.L3` are kept.
    """
    return len(name) >= 3 and name.startswith(".L") and name[2].isalpha()


def default_scope(name: str) -> SymbolScope:
    """Scope inferred from a name when no .globl/.local says otherwise."""
    return SymbolScope.LOCAL if name.startswith(".") else SymbolScope.GLOBAL


@dataclass
class Symbol:
    """
    Symbol table entry.

    All indices point into the statement list of the AsmFile that
    produced the entry and are meaningless for any other file.

    Attributes:
        name: Symbol name
        kind: FUNCTION, OBJECT or UNKNOWN
        scope: LOCAL, GLOBAL or UNKNOWN
        stmt_index: Index of the defining label (or .comm/.lcomm) statement
        size_stmt_index: Index of the .size statement
        section_stmt_index: Index of the section statement in force at the
                            definition
        align_stmt_index: Index of the alignment statement preceding the
                          definition
        type_stmt_index: Index of the .type statement
    """
    name: str
    kind: SymbolKind = SymbolKind.UNKNOWN
    scope: SymbolScope = SymbolScope.UNKNOWN
    stmt_index: Optional[int] = None
    size_stmt_index: Optional[int] = None
    section_stmt_index: Optional[int] = None
    align_stmt_index: Optional[int] = None
    type_stmt_index: Optional[int] = None

    @property
    def is_defined(self) -> bool:
        """True if a label or .comm defining the symbol was seen."""
        return self.stmt_index is not None

    def set_default_scope(self) -> None:
        """Infer the scope from the name unless already resolved."""
        if self.scope == SymbolScope.UNKNOWN:
            self.scope = default_scope(self.name)
