"""
asmtool Error Hierarchy
=======================

This module defines the exception hierarchy for the whole package.
All exceptions inherit from AsmToolError, so callers can catch every
asmtool-related error with a single except clause.

Exception Hierarchy
-------------------
AsmToolError (base)
├── AsmFileError - input file cannot be read
├── SymbolError (symbol lookups)
│   ├── SymbolNotFoundError - symbol not present in a file
│   └── SymbolTypeMismatchError - symbols are unknown or of different kinds
└── CallGraphError - invalid call-graph request

Recoverable conditions found while scanning a file (a `.popsection`
without matching `.pushsection`, conflicting symbol mappings while
comparing) are not exceptions: they are logged as warnings and the scan
continues.

Error messages follow this format:
    filename:line: error: description
        source_line_text
    hint: suggestion for fixing (when available)
"""

from dataclasses import dataclass
from typing import Optional


# =============================================================================
# Base Exception Class
# =============================================================================

class AsmToolError(Exception):
    """
    Base exception for all asmtool errors.

        try:
            asm_file.load()
        except AsmToolError as e:
            print(f"Error: {e}")
    """
    pass


# =============================================================================
# Source Location Tracking
# =============================================================================

@dataclass(frozen=True)
class SourceLocation:
    """
    A location in an assembly source file.

    Every parsed statement carries one, so reports can point back to the
    line a statement came from.

    Attributes:
        filename: Name of the source file (or "<input>" for string input)
        line: Line number (1-indexed)
    """
    filename: str
    line: int

    def __str__(self) -> str:
        """Format as 'filename:line'."""
        return f"{self.filename}:{self.line}"


class LocatedError(AsmToolError):
    """
    Error with optional source location, source text and hint.

    Attributes:
        message: The error description
        location: Where in the source the error occurred (optional)
        hint: A suggestion for fixing the error (optional)
        source_line: The source text at the error location (optional)
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        source_line: Optional[str] = None,
    ):
        self.message = message
        self.location = location
        self.hint = hint
        self.source_line = source_line
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """
        Format the error message with location, source context, and hint.

        Example output:
            b.s:15: error: unknown or mismatching types: main vs. table
                table:
        """
        parts = []

        if self.location:
            parts.append(f"{self.location}: error: {self.message}")
        else:
            parts.append(f"error: {self.message}")

        if self.source_line is not None and self.location is not None:
            parts.append(f"    {self.source_line}")

        if self.hint:
            parts.append(f"hint: {self.hint}")

        return "\n".join(parts)


# =============================================================================
# File Exceptions
# =============================================================================

class AsmFileError(LocatedError):
    """
    An assembly input file cannot be read.

    This is fatal for the file concerned: no partially loaded AsmFile is
    produced.
    """

    def __init__(self, filename: str, reason: str):
        self.filename = filename
        self.reason = reason
        super().__init__(f"cannot read '{filename}': {reason}")


# =============================================================================
# Symbol Exceptions
# =============================================================================

class SymbolError(LocatedError):
    """Base exception for symbol lookup errors."""
    pass


class SymbolNotFoundError(SymbolError):
    """
    A symbol was requested that the file does not define.

    Batch operations (show, copy) catch this per symbol and carry on with
    the remaining symbols.
    """

    def __init__(
        self,
        symbol: str,
        filename: Optional[str] = None,
        similar_symbols: Optional[list[str]] = None,
    ):
        self.symbol = symbol
        self.filename = filename
        self.similar_symbols = similar_symbols or []

        hint = None
        if self.similar_symbols:
            suggestions = ", ".join(f"'{s}'" for s in self.similar_symbols[:3])
            hint = f"did you mean {suggestions}?"

        where = f" in '{filename}'" if filename else ""
        super().__init__(f"symbol not found{where}: {symbol}", hint=hint)


class SymbolTypeMismatchError(SymbolError):
    """
    Two symbols cannot be compared because their kinds are unknown or differ.

    Example:
        asmtool diff-symbol a.s foo b.s bar   # foo is a function, bar an object
    """

    def __init__(
        self,
        symbol_a: str,
        symbol_b: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.symbol_a = symbol_a
        self.symbol_b = symbol_b
        super().__init__(
            f"unknown or mismatching types: {symbol_a} vs. {symbol_b}",
            location=location,
            source_line=source_line,
        )


# =============================================================================
# Call Graph Exceptions
# =============================================================================

class CallGraphError(LocatedError):
    """
    Invalid call-graph request.

    Raised when a requested root is not a function of the file.
    """
    pass
