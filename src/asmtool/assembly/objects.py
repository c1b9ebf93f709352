"""
Extracted Symbol Bodies
=======================

An AsmObject is the body of one function or data object, copied out of
its AsmFile. Every statement is a deep copy, so an object can be renamed,
normalized and compared without affecting the file it came from or any
other object extracted from it.

Normalization
-------------
Compilers number their local labels (`.L3`, `.L7`) per translation unit,
so an unrelated change elsewhere in the file renumbers every label in a
function. `normalize()` renames each local label defined in the body to
a canonical name (`~ASMTOOL0`, `~ASMTOOL1`, ...) in order of appearance,
which makes two bodies that differ only in label numbering compare equal.
"""

from enum import IntFlag
from typing import Iterator, Optional
import logging

from asmtool.assembly.lexer import TokenKind
from asmtool.assembly.parser import Statement, StatementKind
from asmtool.assembly.symbols import (
    CANONICAL_LABEL_PREFIX,
    SymbolKind,
    is_normalizable_label,
)
from asmtool.diff.generic import Diffable

logger = logging.getLogger(__name__)


class ExtractFlags(IntFlag):
    """Options for AsmFile.get_function / AsmFile.get_object."""
    NONE = 0
    NORMALIZE = 0x01      # Rename local labels canonically
    STRIP_DEBUG = 0x02    # Drop .file/.loc and debug labels


class AsmObject(Diffable):
    """
    The extracted body of a function or data object.

    Attributes:
        name: Symbol name
        kind: SymbolKind.FUNCTION or SymbolKind.OBJECT
        statements: Body statements (copies), label and .size excluded
        section: Copy of the section statement in force at the label
        alignment: Copy of the alignment statement preceding the label
        size: Copy of the .size statement naming the symbol
        type_statement: Copy of the .type statement naming the symbol
    """

    def __init__(
        self,
        name: str,
        kind: SymbolKind,
        statements: Optional[list[Statement]] = None,
        section: Optional[Statement] = None,
        alignment: Optional[Statement] = None,
        size: Optional[Statement] = None,
        type_statement: Optional[Statement] = None,
    ):
        self.name = name
        self.kind = kind
        self.statements: list[Statement] = []
        self.section = section
        self.alignment = alignment
        self.size = size
        self.type_statement = type_statement
        self.normalized = False

        for stmt in statements or []:
            self.add_statement(stmt)

    def __repr__(self) -> str:
        return f"AsmObject({self.name!r}, {self.kind.name}, {len(self.statements)} statements)"

    def add_statement(self, stmt: Statement) -> None:
        """Append a copy of `stmt` to the body."""
        self.statements.append(stmt.copy())

    # =========================================================================
    # Diffable Interface
    # =========================================================================

    def elements(self) -> list[Statement]:
        return self.statements

    def element(self, index: int) -> Statement:
        return self.statements[index]

    def __len__(self) -> int:
        return len(self.statements)

    def __iter__(self) -> Iterator[Statement]:
        return iter(self.statements)

    # =========================================================================
    # Normalization
    # =========================================================================

    def local_labels(self) -> list[str]:
        """Normalizable labels defined in the body, in order of appearance."""
        labels: list[str] = []
        for stmt in self.statements:
            name = stmt.label
            if name is not None and is_normalizable_label(name) and name not in labels:
                labels.append(name)
        return labels

    def normalize(self) -> dict[str, str]:
        """
        Rename local labels to canonical names.

        Canonical names are never normalizable themselves, so calling this
        twice leaves the body unchanged.

        Returns:
            Mapping from original label name to canonical name
        """
        renames = {
            label: f"{CANONICAL_LABEL_PREFIX}{number}"
            for number, label in enumerate(self.local_labels())
        }

        for old, new in renames.items():
            for stmt in self.statements:
                stmt.rename_label(old, new)

        if renames:
            logger.debug(f"Normalized {len(renames)} labels in {self.name}")
        self.normalized = True
        return renames

    # =========================================================================
    # References
    # =========================================================================

    def calls(self) -> list[str]:
        """
        Names called by this body, in order, without duplicates.

        Only direct calls are reported: the first operand token must be an
        identifier (`call foo`, `call foo@PLT`); `call *%rax` is skipped.
        """
        callees: list[str] = []
        for stmt in self.statements:
            if stmt.kind != StatementKind.INSTRUCTION or not stmt.mnemonic.startswith("call"):
                continue
            if not stmt.params:
                continue
            target = stmt.params[0].first(TokenKind.IDENTIFIER)
            if target is not None and target.text not in callees:
                callees.append(target.text)
        return callees
