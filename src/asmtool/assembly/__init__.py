"""
GNU Assembler Source Model
==========================

Parsing and symbol bookkeeping for `.s` files.

Modules
-------
- **source**: comment stripping, statement and label splitting
- **lexer**: operand tokenizer
- **parser**: statement classification and kind-specific analysis
- **symbols**: symbol records and naming rules
- **asmfile**: AsmFile, the loaded file with its symbol table
- **objects**: AsmObject, an extracted function or object body

Usage
-----
    >>> from asmtool.assembly import AsmFile, ExtractFlags
    >>> asm = AsmFile.from_file("foo.s")
    >>> body = asm.get_function("main", ExtractFlags.STRIP_DEBUG)
"""

from asmtool.assembly.lexer import Lexer, Param, Token, TokenKind, tokenize
from asmtool.assembly.parser import (
    DIRECTIVES,
    CommInfo,
    LabelInfo,
    SectionInfo,
    SizeInfo,
    Statement,
    StatementKind,
    TypeInfo,
    parse_source,
    parse_statement,
)
from asmtool.assembly.symbols import Symbol, SymbolKind, SymbolScope
from asmtool.assembly.objects import AsmObject, ExtractFlags
from asmtool.assembly.asmfile import AsmFile

__all__ = [
    "Lexer",
    "Param",
    "Token",
    "TokenKind",
    "tokenize",
    "DIRECTIVES",
    "CommInfo",
    "LabelInfo",
    "SectionInfo",
    "SizeInfo",
    "Statement",
    "StatementKind",
    "TypeInfo",
    "parse_source",
    "parse_statement",
    "Symbol",
    "SymbolKind",
    "SymbolScope",
    "AsmObject",
    "ExtractFlags",
    "AsmFile",
]
