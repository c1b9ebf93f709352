"""
Assembly File Model
===================

AsmFile owns the parsed statements of one `.s` file and the symbol table
built from them.

Loading
-------
`load()` parses the file and scans the statements exactly once, in file
order, keeping three pieces of state:

- the current section (the statement that selected it) and a stack of
  saved sections for `.pushsection` / `.popsection`
- the first `.section NAME` statement per section name, so every
  `.section foo` shares one anchor
- an alignment cursor: the last `.align`-class statement, handed to the
  next label or `.comm`

Each label, `.comm`, `.type`, `.globl`/`.local` and `.size` updates the
Symbol entry of the name it mentions.

Example
-------
>>> asm = AsmFile.from_source('''
...     .globl main
...     .type main, @function
... main:
...     ret
...     .size main, .-main
... ''')
>>> asm.get_symbol("main").kind
<SymbolKind.FUNCTION: 1>
"""

from itertools import islice
from pathlib import Path
from typing import Callable, Iterator, Optional, Union
import difflib
import logging

from asmtool.assembly.objects import AsmObject, ExtractFlags
from asmtool.assembly.parser import (
    CommInfo,
    SectionInfo,
    SizeInfo,
    Statement,
    StatementKind,
    TypeInfo,
    parse_source,
)
from asmtool.assembly.symbols import (
    Symbol,
    SymbolKind,
    SymbolScope,
    is_debug_label,
    is_valid_symbol,
)
from asmtool.errors import AsmFileError, SymbolNotFoundError

logger = logging.getLogger(__name__)


SymbolHandler = Callable[[str, SymbolScope, SymbolKind], None]


class AsmFile:
    """
    A loaded assembly file: statements plus symbol table.

    The file is read-only once loaded. Extraction (`get_function`,
    `get_object`) always works on copies, so renaming labels in an
    extracted body never touches the file's own statements.

    Attributes:
        filename: Path of the source file (or "<input>")
        warnings: Diagnostics collected during the last load
    """

    def __init__(self, filename: Union[str, Path] = "<input>"):
        self.filename = str(filename)
        self.warnings: list[str] = []
        self._statements: list[Statement] = []
        self._symbols: dict[str, Symbol] = {}

    @classmethod
    def from_source(cls, source: str, filename: str = "<input>") -> "AsmFile":
        """Create and load an AsmFile from source text."""
        asm_file = cls(filename)
        asm_file.load(source)
        return asm_file

    @classmethod
    def from_file(cls, filepath: Union[str, Path]) -> "AsmFile":
        """
        Create and load an AsmFile from a file.

        Raises:
            AsmFileError: If the file cannot be read
        """
        asm_file = cls(filepath)
        asm_file.load()
        return asm_file

    # =========================================================================
    # Loading
    # =========================================================================

    def load(self, source: Optional[str] = None) -> None:
        """
        Parse the file and build the symbol table.

        Any previous contents are discarded; symbol indices from an earlier
        load are no longer valid.

        Args:
            source: Source text to use instead of reading `filename`

        Raises:
            AsmFileError: If the file cannot be read
        """
        if source is None:
            try:
                source = Path(self.filename).read_text(errors="replace")
            except OSError as e:
                raise AsmFileError(self.filename, e.strerror or str(e)) from e

        self.warnings = []
        self._statements = parse_source(source, self.filename)
        self._symbols = {}
        self._scan()

        logger.debug(
            f"Loaded {self.filename}: {len(self._statements)} statements, "
            f"{len(self._symbols)} symbols"
        )

    def _symbol(self, name: str) -> Symbol:
        symbol = self._symbols.get(name)
        if symbol is None:
            symbol = Symbol(name)
            self._symbols[name] = symbol
        return symbol

    def _warn(self, statement: Statement, message: str) -> None:
        where = statement.location or self.filename
        text = f"{where}: {message}"
        self.warnings.append(text)
        logger.warning(text)

    def _scan(self) -> None:
        """Build the symbol table in one pass over the statements."""
        section_stack: list[Optional[int]] = []
        section_anchors: dict[str, int] = {}
        current_section: Optional[int] = None
        align_index: Optional[int] = None
        unknown_directives: set[str] = set()

        for index, stmt in enumerate(self._statements):
            kind = stmt.kind

            if kind in (StatementKind.TEXT, StatementKind.DATA, StatementKind.BSS):
                current_section = index

            elif kind == StatementKind.SECTION:
                current_section = self._section_anchor(section_anchors, stmt, index)

            elif kind == StatementKind.PUSHSECTION:
                section_stack.append(current_section)
                if isinstance(stmt.payload, SectionInfo) and stmt.payload.name:
                    current_section = self._section_anchor(section_anchors, stmt, index)

            elif kind == StatementKind.POPSECTION:
                if section_stack:
                    current_section = section_stack.pop()
                else:
                    self._warn(stmt, ".popsection without matching .pushsection")

            elif kind == StatementKind.LABEL:
                name = stmt.label
                if name is not None and is_valid_symbol(name):
                    symbol = self._symbol(name)
                    symbol.stmt_index = index
                    symbol.section_stmt_index = current_section
                    if align_index is not None:
                        symbol.align_stmt_index = align_index
                        align_index = None
                    symbol.set_default_scope()
                    if symbol.kind == SymbolKind.UNKNOWN:
                        symbol.kind = SymbolKind.OBJECT

            elif kind in (StatementKind.COMM, StatementKind.LCOMM):
                info = stmt.payload
                if isinstance(info, CommInfo) and info.symbol:
                    symbol = self._symbol(info.symbol)
                    symbol.stmt_index = index
                    symbol.section_stmt_index = current_section
                    symbol.kind = SymbolKind.OBJECT
                    if symbol.scope == SymbolScope.UNKNOWN:
                        symbol.scope = (SymbolScope.LOCAL if kind == StatementKind.LCOMM
                                        else SymbolScope.GLOBAL)
                # .comm ends any pending alignment
                align_index = None

            elif kind == StatementKind.TYPE:
                info = stmt.payload
                if isinstance(info, TypeInfo) and info.symbol:
                    symbol = self._symbol(info.symbol)
                    symbol.kind = info.symbol_kind
                    symbol.type_stmt_index = index
                    symbol.set_default_scope()

            elif kind in (StatementKind.LOCAL, StatementKind.GLOBAL):
                scope = SymbolScope.LOCAL if kind == StatementKind.LOCAL else SymbolScope.GLOBAL
                for name in stmt.named_symbols():
                    self._symbol(name).scope = scope

            elif kind == StatementKind.SIZE:
                info = stmt.payload
                if isinstance(info, SizeInfo) and info.symbol:
                    self._symbol(info.symbol).size_stmt_index = index

            elif stmt.is_alignment:
                align_index = index

            else:
                if kind == StatementKind.UNKNOWN and stmt.mnemonic not in unknown_directives:
                    unknown_directives.add(stmt.mnemonic)
                    logger.debug(f"{self.filename}: directive {stmt.mnemonic} kept uninterpreted")
                align_index = None

    def _section_anchor(self, anchors: dict[str, int], stmt: Statement, index: int) -> int:
        """Return the index of the first statement selecting this section."""
        info = stmt.payload
        if not isinstance(info, SectionInfo) or not info.name:
            return index
        return anchors.setdefault(info.name, index)

    # =========================================================================
    # Statement Access
    # =========================================================================

    @property
    def statements(self) -> tuple[Statement, ...]:
        return tuple(self._statements)

    def __len__(self) -> int:
        return len(self._statements)

    def statement(self, index: int) -> Statement:
        return self._statements[index]

    # =========================================================================
    # Symbol Queries
    # =========================================================================

    def iter_symbols(self) -> Iterator[Symbol]:
        """Iterate over all symbols, sorted by name."""
        for name in sorted(self._symbols):
            yield self._symbols[name]

    def for_each_symbol(self, handler: SymbolHandler) -> None:
        """Call `handler(name, scope, kind)` for every symbol, sorted by name."""
        for symbol in self.iter_symbols():
            handler(symbol.name, symbol.scope, symbol.kind)

    def has_symbol(self, name: str) -> bool:
        return name in self._symbols

    def get_symbol(self, name: str) -> Symbol:
        """
        Look up the symbol table entry for `name`.

        Raises:
            SymbolNotFoundError: If the file has no such symbol
        """
        symbol = self._symbols.get(name)
        if symbol is None:
            raise SymbolNotFoundError(name, self.filename, self.similar_symbols(name))
        return symbol

    def similar_symbols(self, name: str) -> list[str]:
        """Up to three known symbol names close to `name`."""
        return difflib.get_close_matches(name, list(self._symbols), n=3)

    def has_function(self, name: str) -> bool:
        symbol = self._symbols.get(name)
        return (symbol is not None and symbol.kind == SymbolKind.FUNCTION
                and symbol.is_defined)

    def has_object(self, name: str) -> bool:
        symbol = self._symbols.get(name)
        return (symbol is not None and symbol.kind == SymbolKind.OBJECT
                and symbol.is_defined)

    def symbol_kind(self, name: str) -> SymbolKind:
        """FUNCTION or OBJECT for defined symbols, UNKNOWN otherwise."""
        if self.has_function(name):
            return SymbolKind.FUNCTION
        if self.has_object(name):
            return SymbolKind.OBJECT
        return SymbolKind.UNKNOWN

    # =========================================================================
    # Extraction
    # =========================================================================

    def get_function(self, name: str,
                     flags: ExtractFlags = ExtractFlags.NONE) -> Optional[AsmObject]:
        """
        Extract the body of function `name`.

        The body runs from the statement after the label up to the `.size`
        statement naming the function (or the end of the file).

        Args:
            name: Function name
            flags: STRIP_DEBUG drops `.file`, `.loc` and debug labels;
                   NORMALIZE renames compiler-generated labels

        Returns:
            The extracted body, or None if `name` is not a function
        """
        if not self.has_function(name):
            return None

        symbol = self._symbols[name]
        obj = self._new_object(symbol)

        for stmt in islice(self._statements, symbol.stmt_index + 1, None):
            if stmt.kind == StatementKind.SIZE and stmt.symbol == name:
                break
            if flags & ExtractFlags.STRIP_DEBUG and self._is_function_debug(stmt):
                continue
            obj.add_statement(stmt)

        return self._finish(obj, flags)

    def get_object(self, name: str,
                   flags: ExtractFlags = ExtractFlags.NONE) -> Optional[AsmObject]:
        """
        Extract the body of data object `name`.

        A `.comm`/`.lcomm` object is that single statement. Otherwise the
        body is every statement after the label while it is a data
        definition, a debug statement, or a label that does not start
        another symbol.

        Returns:
            The extracted body, or None if `name` is not an object
        """
        if not self.has_object(name):
            return None

        symbol = self._symbols[name]
        obj = self._new_object(symbol)
        first = self._statements[symbol.stmt_index]

        if first.kind in (StatementKind.COMM, StatementKind.LCOMM):
            obj.add_statement(first)
            return self._finish(obj, flags)

        for stmt in islice(self._statements, symbol.stmt_index + 1, None):
            if stmt.is_data:
                obj.add_statement(stmt)
            elif stmt.is_debug:
                if not flags & ExtractFlags.STRIP_DEBUG:
                    obj.add_statement(stmt)
            elif stmt.is_label and not self._starts_symbol(stmt):
                obj.add_statement(stmt)
            else:
                break

        return self._finish(obj, flags)

    def _is_function_debug(self, stmt: Statement) -> bool:
        if stmt.kind in (StatementKind.DOTFILE, StatementKind.LOC):
            return True
        return stmt.is_label and is_debug_label(stmt.label or "")

    def _starts_symbol(self, stmt: Statement) -> bool:
        name = stmt.label
        return name is not None and self.symbol_kind(name) != SymbolKind.UNKNOWN

    def _new_object(self, symbol: Symbol) -> AsmObject:
        section = self._copy_at(symbol.section_stmt_index)
        alignment = self._copy_at(symbol.align_stmt_index)
        size = self._copy_at(symbol.size_stmt_index)
        type_stmt = self._copy_at(symbol.type_stmt_index)
        return AsmObject(symbol.name, symbol.kind, section=section,
                         alignment=alignment, size=size, type_statement=type_stmt)

    def _copy_at(self, index: Optional[int]) -> Optional[Statement]:
        if index is None:
            return None
        return self._statements[index].copy()

    @staticmethod
    def _finish(obj: AsmObject, flags: ExtractFlags) -> AsmObject:
        if flags & ExtractFlags.NORMALIZE:
            obj.normalize()
        return obj
