"""
asmtool - GNU Assembler Source Inspection and Comparison
========================================================

This package parses GNU assembler (`.s`) files into a symbol-aware model
and compares two versions of the same file, telling real code-generation
changes apart from churn in compiler-generated names (`.L3`, `.LC0`,
`foo.part.0`).

Main Components
---------------
- **assembly**: Lexer, statement parser, symbol table and extraction
    Turns `.s` text into statements and per-symbol bodies

- **diff**: Generic LCS diff and the semantic symbol comparator
    Finds changed functions and objects, following references into
    compiler-generated symbols

- **report**: Text output for listings, diffs and comparison summaries

- **callgraph**: Static call graph in DOT format

Quick Start
-----------
Compare two builds of a file:
    >>> from asmtool import AsmFile, compare_files
    >>> old = AsmFile.from_file("old/foo.s")
    >>> new = AsmFile.from_file("new/foo.s")
    >>> for change in compare_files(old, new):
    ...     print(change.status.name, change.name)

Or use the command-line tool:
    $ asmtool diff old/foo.s new/foo.s --show
"""

__version__ = "1.0.0"

# =============================================================================
# Public API Exports
# =============================================================================

from asmtool.errors import (
    AsmToolError,
    SourceLocation,
    LocatedError,
    AsmFileError,
    SymbolError,
    SymbolNotFoundError,
    SymbolTypeMismatchError,
    CallGraphError,
)
from asmtool.assembly import (
    AsmFile,
    AsmObject,
    ExtractFlags,
    Statement,
    StatementKind,
    Symbol,
    SymbolKind,
    SymbolScope,
    parse_statement,
    parse_source,
)
from asmtool.diff import Diff, DiffElement, DiffType
from asmtool.diff.compare import (
    ChangeStatus,
    DiffChain,
    SymbolChange,
    SymbolComparator,
    compare_files,
    compare_symbols,
)

__all__ = [
    # Version
    "__version__",
    # Errors
    "AsmToolError",
    "SourceLocation",
    "LocatedError",
    "AsmFileError",
    "SymbolError",
    "SymbolNotFoundError",
    "SymbolTypeMismatchError",
    "CallGraphError",
    # Assembly model
    "AsmFile",
    "AsmObject",
    "ExtractFlags",
    "Statement",
    "StatementKind",
    "Symbol",
    "SymbolKind",
    "SymbolScope",
    "parse_statement",
    "parse_source",
    # Diff
    "Diff",
    "DiffElement",
    "DiffType",
    "ChangeStatus",
    "DiffChain",
    "SymbolChange",
    "SymbolComparator",
    "compare_files",
    "compare_symbols",
]
