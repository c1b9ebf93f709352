"""
GNU Assembler Statement Parser
==============================

This module turns one assembler statement string into a typed Statement.

Statement Kinds
---------------
The mnemonic (first word) selects the kind:

1. **Directives** listed in DIRECTIVES (`.section`, `.type`, `.size`,
   `.comm`, data definitions, CFI directives, ...)
2. **LABEL**: any other word ending in `:`
   ```asm
   main:
   .L3:
   ```
3. **UNKNOWN**: any other word starting with `.`. Kept verbatim and never
   interpreted, so unsupported assembler extensions do not break parsing.
4. **INSTRUCTION**: everything else
   ```asm
   movl    $0, %eax
   call    .L5
   ```

Derived Fields
--------------
A few kinds carry a payload with fields extracted from their parameters.
The payload class is fixed by the kind (see PAYLOAD_TYPES):

| Kind                                  | Payload      | Fields                        |
|---------------------------------------|--------------|-------------------------------|
| LABEL                                 | LabelInfo    | name                          |
| TYPE                                  | TypeInfo     | symbol, symbol_kind           |
| SIZE                                  | SizeInfo     | symbol                        |
| SECTION, TEXT, DATA, BSS, PUSHSECTION | SectionInfo  | name, flags, executable       |
| COMM, LCOMM                           | CommInfo     | symbol, size, alignment       |

Statement Equality
------------------
Two statements are equal when kind, mnemonic and the shape of their
parameters match and every token pair has the same kind and text. In
instructions and data definitions, two identifiers that are both
compiler-generated names (contain a `.`) also compare equal, so
differently numbered temporaries do not count as a change.
"""

from dataclasses import dataclass, field, replace
from enum import Enum, auto
from types import MappingProxyType
from typing import Iterator, Optional, Union

from asmtool.assembly.lexer import Lexer, Param, Token, TokenKind
from asmtool.assembly.source import iter_statements, split_mnemonic
from asmtool.assembly.symbols import SymbolKind, is_generated_symbol
from asmtool.errors import SourceLocation


# =============================================================================
# Statement Kinds
# =============================================================================

class StatementKind(Enum):
    """Classification of a parsed statement."""

    UNKNOWN = auto()
    DOTFILE = auto()
    INSTRUCTION = auto()
    SECTION = auto()
    TEXT = auto()
    DATA = auto()
    BSS = auto()
    TYPE = auto()
    GLOBAL = auto()
    LOCAL = auto()
    DATADEF = auto()
    SIZE = auto()
    ALIGN = auto()
    P2ALIGN = auto()
    BALIGN = auto()
    COMM = auto()
    LCOMM = auto()
    POPSECTION = auto()
    PUSHSECTION = auto()
    LABEL = auto()
    IDENT = auto()
    LOC = auto()
    CFI_STARTPROC = auto()
    CFI_ENDPROC = auto()
    CFI_OFFSET = auto()
    CFI_REMEMBER_STATE = auto()
    CFI_RESTORE_STATE = auto()
    CFI_RESTORE = auto()
    CFI_DEF_CFA_OFFSET = auto()
    CFI_DEF_CFA_REGISTER = auto()
    CFI_DEF_CFA = auto()
    CFI_SECTIONS = auto()
    CFI_ESCAPE = auto()
    WEAK = auto()
    VALUE = auto()
    ULEB128 = auto()
    SLEB128 = auto()


# =============================================================================
# Directive Table
# =============================================================================

DIRECTIVES = MappingProxyType({
    ".file": StatementKind.DOTFILE,
    ".section": StatementKind.SECTION,
    ".text": StatementKind.TEXT,
    ".data": StatementKind.DATA,
    ".bss": StatementKind.BSS,
    ".type": StatementKind.TYPE,
    ".globl": StatementKind.GLOBAL,
    ".global": StatementKind.GLOBAL,
    ".local": StatementKind.LOCAL,
    # Data definitions
    ".string": StatementKind.DATADEF,
    ".ascii": StatementKind.DATADEF,
    ".asciz": StatementKind.DATADEF,
    ".byte": StatementKind.DATADEF,
    ".short": StatementKind.DATADEF,
    ".word": StatementKind.DATADEF,
    ".int": StatementKind.DATADEF,
    ".long": StatementKind.DATADEF,
    ".quad": StatementKind.DATADEF,
    ".float": StatementKind.DATADEF,
    ".double": StatementKind.DATADEF,
    ".org": StatementKind.DATADEF,
    ".zero": StatementKind.DATADEF,
    ".skip": StatementKind.DATADEF,
    ".space": StatementKind.DATADEF,
    ".size": StatementKind.SIZE,
    ".align": StatementKind.ALIGN,
    ".p2align": StatementKind.P2ALIGN,
    ".balign": StatementKind.BALIGN,
    ".comm": StatementKind.COMM,
    ".lcomm": StatementKind.LCOMM,
    ".popsection": StatementKind.POPSECTION,
    ".pushsection": StatementKind.PUSHSECTION,
    ".ident": StatementKind.IDENT,
    ".loc": StatementKind.LOC,
    ".cfi_startproc": StatementKind.CFI_STARTPROC,
    ".cfi_endproc": StatementKind.CFI_ENDPROC,
    ".cfi_offset": StatementKind.CFI_OFFSET,
    ".cfi_remember_state": StatementKind.CFI_REMEMBER_STATE,
    ".cfi_restore_state": StatementKind.CFI_RESTORE_STATE,
    ".cfi_restore": StatementKind.CFI_RESTORE,
    ".cfi_def_cfa_offset": StatementKind.CFI_DEF_CFA_OFFSET,
    ".cfi_def_cfa_register": StatementKind.CFI_DEF_CFA_REGISTER,
    ".cfi_def_cfa": StatementKind.CFI_DEF_CFA,
    ".cfi_sections": StatementKind.CFI_SECTIONS,
    ".cfi_escape": StatementKind.CFI_ESCAPE,
    ".weak": StatementKind.WEAK,
    ".value": StatementKind.VALUE,
    ".uleb128": StatementKind.ULEB128,
    ".sleb128": StatementKind.SLEB128,
})

# Statements that emit data into an object body
DATA_KINDS = frozenset({
    StatementKind.DATADEF,
    StatementKind.VALUE,
    StatementKind.ULEB128,
    StatementKind.SLEB128,
})

# Statements that only carry debug/unwind information
DEBUG_KINDS = frozenset({
    StatementKind.DOTFILE,
    StatementKind.LOC,
    StatementKind.CFI_STARTPROC,
    StatementKind.CFI_ENDPROC,
    StatementKind.CFI_OFFSET,
    StatementKind.CFI_REMEMBER_STATE,
    StatementKind.CFI_RESTORE_STATE,
    StatementKind.CFI_RESTORE,
    StatementKind.CFI_DEF_CFA_OFFSET,
    StatementKind.CFI_DEF_CFA_REGISTER,
    StatementKind.CFI_DEF_CFA,
    StatementKind.CFI_SECTIONS,
    StatementKind.CFI_ESCAPE,
})

ALIGN_KINDS = frozenset({
    StatementKind.ALIGN,
    StatementKind.P2ALIGN,
    StatementKind.BALIGN,
})

SECTION_KINDS = frozenset({
    StatementKind.SECTION,
    StatementKind.TEXT,
    StatementKind.DATA,
    StatementKind.BSS,
    StatementKind.PUSHSECTION,
})

# Statements whose identifiers may be generated symbols for equality
SYMBOLIC_KINDS = DATA_KINDS | {StatementKind.INSTRUCTION}

# .type flag spellings (without the @, % or quote prefix)
FUNCTION_TYPE_NAMES = frozenset({"function", "STT_FUNC"})
OBJECT_TYPE_NAMES = frozenset({"object", "STT_OBJECT"})


# =============================================================================
# Statement Payloads
# =============================================================================

@dataclass
class LabelInfo:
    """Payload of a LABEL statement."""
    name: str


@dataclass
class TypeInfo:
    """Payload of a `.type` statement."""
    symbol: str = ""
    symbol_kind: SymbolKind = SymbolKind.UNKNOWN


@dataclass
class SizeInfo:
    """Payload of a `.size` statement."""
    symbol: str = ""


@dataclass
class SectionInfo:
    """
    Payload of a section-selecting statement.

    Attributes:
        name: Section name (`.text`, `.rodata.str1.1`, ...)
        flags: Flag string of `.section` (`"ax"`, `"aMS"`, ...)
        executable: True if the section holds code
    """
    name: str = ""
    flags: str = ""
    executable: bool = False


@dataclass
class CommInfo:
    """Payload of a `.comm` / `.lcomm` statement."""
    symbol: str = ""
    size: int = 0
    alignment: int = 0


StatementPayload = Union[LabelInfo, TypeInfo, SizeInfo, SectionInfo, CommInfo]

PAYLOAD_TYPES = MappingProxyType({
    StatementKind.LABEL: LabelInfo,
    StatementKind.TYPE: TypeInfo,
    StatementKind.SIZE: SizeInfo,
    StatementKind.SECTION: SectionInfo,
    StatementKind.TEXT: SectionInfo,
    StatementKind.DATA: SectionInfo,
    StatementKind.BSS: SectionInfo,
    StatementKind.PUSHSECTION: SectionInfo,
    StatementKind.COMM: CommInfo,
    StatementKind.LCOMM: CommInfo,
})


# =============================================================================
# Statement
# =============================================================================

@dataclass(eq=False)
class Statement:
    """
    One parsed assembler statement.

    Attributes:
        text: The statement as written in the source
        mnemonic: First word (label name without colon for labels)
        kind: The StatementKind classification
        params: Operands, in order
        payload: Kind-specific derived fields (None for most kinds)
        location: Where the statement came from
    """
    text: str
    mnemonic: str
    kind: StatementKind
    params: list[Param] = field(default_factory=list)
    payload: Optional[StatementPayload] = None
    location: Optional[SourceLocation] = None

    def __post_init__(self) -> None:
        expected = PAYLOAD_TYPES.get(self.kind)
        if expected is None:
            if self.payload is not None:
                raise TypeError(f"{self.kind.name} statements carry no payload")
        elif self.payload is None:
            self.payload = expected(self.mnemonic) if expected is LabelInfo else expected()
        elif not isinstance(self.payload, expected):
            raise TypeError(
                f"{self.kind.name} statement needs {expected.__name__}, "
                f"got {type(self.payload).__name__}"
            )

    # =========================================================================
    # Classification
    # =========================================================================

    @property
    def is_label(self) -> bool:
        return self.kind == StatementKind.LABEL

    @property
    def is_data(self) -> bool:
        return self.kind in DATA_KINDS

    @property
    def is_debug(self) -> bool:
        return self.kind in DEBUG_KINDS

    @property
    def is_alignment(self) -> bool:
        return self.kind in ALIGN_KINDS

    @property
    def is_section(self) -> bool:
        return self.kind in SECTION_KINDS

    @property
    def label(self) -> Optional[str]:
        """Label name for LABEL statements, None otherwise."""
        if isinstance(self.payload, LabelInfo):
            return self.payload.name
        return None

    @property
    def symbol(self) -> Optional[str]:
        """
        Symbol named by the payload: label name, `.type`/`.size` symbol or
        `.comm` symbol. None for other statements or when the directive did
        not name a symbol.
        """
        if isinstance(self.payload, LabelInfo):
            return self.payload.name
        if isinstance(self.payload, (TypeInfo, SizeInfo, CommInfo)):
            return self.payload.symbol or None
        return None

    def named_symbols(self) -> list[str]:
        """First identifier of every parameter (`.globl a, b` -> [a, b])."""
        names = []
        for param in self.params:
            token = _first_token(param, TokenKind.IDENTIFIER)
            if token is not None:
                names.append(token.text)
        return names

    def identifiers(self) -> Iterator[Token]:
        """Iterate over all IDENTIFIER tokens of all parameters."""
        for param in self.params:
            for token in param:
                if token.kind == TokenKind.IDENTIFIER:
                    yield token

    # =========================================================================
    # Copy and Rename
    # =========================================================================

    def copy(self) -> "Statement":
        """Return a deep copy with independent token storage."""
        return Statement(
            text=self.text,
            mnemonic=self.mnemonic,
            kind=self.kind,
            params=[param.copy() for param in self.params],
            payload=replace(self.payload) if self.payload is not None else None,
            location=self.location,
        )

    def rename_label(self, old: str, new: str) -> None:
        """
        Rename every reference to label `old` as `new`.

        Rewrites matching IDENTIFIER tokens and the symbol held by the
        payload. Section statements are left alone: section names are not
        label references.
        """
        if self.is_section:
            return

        for token in self.identifiers():
            if token.text == old:
                token.text = new

        payload = self.payload
        if isinstance(payload, LabelInfo):
            if payload.name == old:
                payload.name = new
                self.mnemonic = new
        elif isinstance(payload, (TypeInfo, SizeInfo, CommInfo)):
            if payload.symbol == old:
                payload.symbol = new

    # =========================================================================
    # Comparison and Output
    # =========================================================================

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Statement):
            return NotImplemented

        if (self.kind != other.kind
                or self.mnemonic != other.mnemonic
                or len(self.params) != len(other.params)):
            return False

        symbolic = self.kind in SYMBOLIC_KINDS

        for p1, p2 in zip(self.params, other.params):
            if len(p1) != len(p2):
                return False
            for t1, t2 in zip(p1, p2):
                if t1.kind != t2.kind:
                    return False
                if t1.text == t2.text and t1.immediate == t2.immediate:
                    continue
                if (symbolic and t1.kind == TokenKind.IDENTIFIER
                        and is_generated_symbol(t1.text)
                        and is_generated_symbol(t2.text)):
                    continue
                return False

        return True

    def serialize(self) -> str:
        """
        Render the statement from its tokens.

        Unlike `text`, the result reflects label renaming.
        """
        if self.kind == StatementKind.LABEL:
            return f"{self.mnemonic}:"
        if not self.params:
            return self.mnemonic
        operands = _serialize_param(self.params[0])
        for param in self.params[1:]:
            text = _serialize_param(param)
            operands += f", {text}" if text else ","
        return f"{self.mnemonic}\t{operands}"

    def __str__(self) -> str:
        return self.serialize()


def _first_token(param: Param, kind: TokenKind) -> Optional[Token]:
    for token in param:
        if token.kind == kind:
            return token
    return None


_WORD_KINDS = frozenset({
    TokenKind.IDENTIFIER,
    TokenKind.REGISTER,
    TokenKind.NUMBER,
    TokenKind.STRING,
})


def _serialize_param(param: Param) -> str:
    parts = []
    previous: Optional[Token] = None
    for token in param:
        if (previous is not None and previous.kind in _WORD_KINDS
                and token.kind in _WORD_KINDS):
            parts.append(" ")
        parts.append(token.serialize())
        previous = token
    return "".join(parts)


# =============================================================================
# Kind-Specific Analysis
# =============================================================================

def parse_number(text: str) -> int:
    """
    Parse an assembler integer literal (decimal, 0x hex, leading-0 octal).

    Returns 0 for text that is not a number.
    """
    try:
        if text[:2] in ("0x", "0X"):
            return int(text[2:], 16)
        if len(text) > 1 and text.startswith("0"):
            return int(text[1:], 8)
        return int(text)
    except ValueError:
        return 0


def _type_flag_kind(token: Optional[Token]) -> SymbolKind:
    if token is None:
        return SymbolKind.UNKNOWN
    name = token.text.lstrip("@%")
    if name in FUNCTION_TYPE_NAMES:
        return SymbolKind.FUNCTION
    if name in OBJECT_TYPE_NAMES:
        return SymbolKind.OBJECT
    return SymbolKind.UNKNOWN


def _analyze_type(params: list[Param]) -> TypeInfo:
    info = TypeInfo()
    if not params:
        return info

    symbol = _first_token(params[0], TokenKind.IDENTIFIER)
    if symbol is not None:
        info.symbol = symbol.text

    if len(params) >= 2:
        flag = params[1].first()
    elif len(params[0]) >= 2:
        # .type name STT_FUNC
        flag = params[0][-1]
    else:
        flag = None
    info.symbol_kind = _type_flag_kind(flag)
    return info


def _analyze_size(params: list[Param]) -> SizeInfo:
    info = SizeInfo()
    if params:
        symbol = _first_token(params[0], TokenKind.IDENTIFIER)
        if symbol is not None:
            info.symbol = symbol.text
    return info


def _analyze_section(params: list[Param]) -> SectionInfo:
    info = SectionInfo()
    if not params:
        return info

    name = params[0].first()
    if name is not None and name.kind in (TokenKind.IDENTIFIER, TokenKind.STRING):
        info.name = name.text

    if len(params) >= 2:
        flags = params[1].first(TokenKind.STRING)
        if flags is not None:
            info.flags = flags.text

    info.executable = "x" in info.flags
    return info


def _analyze_comm(params: list[Param]) -> CommInfo:
    info = CommInfo()
    if not params:
        return info

    symbol = params[0].first(TokenKind.IDENTIFIER)
    if symbol is not None:
        info.symbol = symbol.text

    if len(params) >= 2:
        size = params[1].first(TokenKind.NUMBER)
        if size is not None:
            info.size = parse_number(size.text)

    if len(params) >= 3:
        alignment = params[2].first(TokenKind.NUMBER)
        if alignment is not None:
            info.alignment = parse_number(alignment.text)

    return info


# Fixed sections selected by their own directive
_FIXED_SECTIONS = MappingProxyType({
    StatementKind.TEXT: (".text", True),
    StatementKind.DATA: (".data", False),
    StatementKind.BSS: (".bss", False),
})


def _analyze(kind: StatementKind, mnemonic: str,
             params: list[Param]) -> Optional[StatementPayload]:
    """Build the payload for `kind` from the statement's parameters."""
    if kind == StatementKind.LABEL:
        return LabelInfo(mnemonic)
    if kind == StatementKind.TYPE:
        return _analyze_type(params)
    if kind == StatementKind.SIZE:
        return _analyze_size(params)
    if kind in (StatementKind.SECTION, StatementKind.PUSHSECTION):
        return _analyze_section(params)
    if kind in _FIXED_SECTIONS:
        name, executable = _FIXED_SECTIONS[kind]
        return SectionInfo(name=name, executable=executable)
    if kind in (StatementKind.COMM, StatementKind.LCOMM):
        return _analyze_comm(params)
    return None


# =============================================================================
# Parsing Entry Points
# =============================================================================

def classify_mnemonic(mnemonic: str) -> tuple[StatementKind, str]:
    """
    Determine the statement kind of a mnemonic.

    Returns:
        Tuple of (kind, mnemonic), with the colon stripped from labels
    """
    kind = DIRECTIVES.get(mnemonic)
    if kind is not None:
        return kind, mnemonic
    if mnemonic.endswith(":"):
        return StatementKind.LABEL, mnemonic[:-1]
    if mnemonic.startswith("."):
        return StatementKind.UNKNOWN, mnemonic
    return StatementKind.INSTRUCTION, mnemonic


def parse_statement(
    text: str,
    location: Optional[SourceLocation] = None,
) -> Optional[Statement]:
    """
    Parse one statement string.

    Args:
        text: A trimmed, comment-free statement, with any `label:` prefix
              already split off
        location: Source location to attach to the statement

    Returns:
        The parsed Statement, or None when the text holds no mnemonic
    """
    mnemonic, param_text = split_mnemonic(text)
    if not mnemonic:
        return None

    kind, mnemonic = classify_mnemonic(mnemonic)
    params = Lexer(param_text).tokenize()

    return Statement(
        text=text,
        mnemonic=mnemonic,
        kind=kind,
        params=params,
        payload=_analyze(kind, mnemonic, params),
        location=location,
    )


def parse_source(source: str, filename: str = "<input>") -> list[Statement]:
    """
    Parse a whole assembly source text.

    Args:
        source: Assembly source text
        filename: Source filename recorded in statement locations

    Returns:
        List of parsed statements in source order
    """
    statements = []
    for text, location in iter_statements(source, filename):
        statement = parse_statement(text, location)
        if statement is not None:
            statements.append(statement)
    return statements
