"""
GNU Assembler Operand Lexer
===========================

This module implements the tokenizer for the parameter part of a GNU
assembler statement (everything after the mnemonic). It slices the text
into typed tokens and groups them into parameters, one per operand.

Token Kinds
-----------
- IDENTIFIER: Symbol and label names (`foo`, `.L3`, `bar.part.0`)
- REGISTER: AT&T register names (`%rax`, `%xmm0`)
- NUMBER: Decimal or hex literals (`16`, `0x1A`); a `$` prefix marks an
  immediate and is kept out of the token text
- STRING: Double-quoted strings, quotes stripped, escapes kept verbatim
- TYPEFLAG: `@function`, `@object`, `@progbits`, `@PLT`, ...
- OPERATOR: `, ( ) + - * / : [ ] =` and a lone `$`
- UNKNOWN: Any other single character

Parameter Splitting
-------------------
A comma at parenthesis/bracket depth zero separates parameters. Inside a
group it is kept as an OPERATOR token, so an addressing-mode operand such
as `(%rax,%rbx,4)` stays one parameter.

Example
-------
>>> from asmtool.assembly.lexer import Lexer
>>> params = Lexer("-8(%rbp), %eax").tokenize()
>>> [p.serialize() for p in params]
['- 8 ( %rbp )', '%eax']
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Iterator, Optional
import string


# =============================================================================
# Token Kind Enumeration
# =============================================================================

class TokenKind(Enum):
    """Lexical category of an operand token."""

    UNKNOWN = auto()
    OPERATOR = auto()
    IDENTIFIER = auto()
    REGISTER = auto()
    NUMBER = auto()
    STRING = auto()
    TYPEFLAG = auto()


# =============================================================================
# Token and Param Data Classes
# =============================================================================

@dataclass
class Token:
    """
    A single operand token.

    Tokens are mutable only so that label renaming can rewrite the text
    of IDENTIFIER tokens in extracted copies.

    Attributes:
        text: Token text (without quotes for strings, without `$` for
              immediate numbers)
        kind: The TokenKind classification
        immediate: True for a `$`-prefixed number
    """
    text: str
    kind: TokenKind
    immediate: bool = False

    def __repr__(self) -> str:
        prefix = "$" if self.immediate else ""
        return f"Token({self.kind.name}, {prefix}{self.text!r})"

    def serialize(self) -> str:
        """Render the token back to assembler text."""
        if self.kind == TokenKind.STRING:
            return f'"{self.text}"'
        if self.immediate:
            return f"${self.text}"
        return self.text

    def copy(self) -> "Token":
        """Return an independent copy of this token."""
        return Token(self.text, self.kind, self.immediate)


@dataclass
class Param:
    """
    One statement operand: an ordered sequence of tokens. It is empty only
    for an omitted operand, as in the middle of ".p2align 4,,10".
    """
    tokens: list[Token] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.tokens)

    def __iter__(self) -> Iterator[Token]:
        return iter(self.tokens)

    def __getitem__(self, index: int) -> Token:
        return self.tokens[index]

    def first(self, kind: Optional[TokenKind] = None) -> Optional[Token]:
        """
        Return the first token, or None if the param is empty or the
        first token is not of the requested kind.
        """
        if not self.tokens:
            return None
        token = self.tokens[0]
        if kind is not None and token.kind != kind:
            return None
        return token

    def serialize(self) -> str:
        return " ".join(token.serialize() for token in self.tokens)

    def copy(self) -> "Param":
        return Param([token.copy() for token in self.tokens])


# =============================================================================
# Lexer Implementation
# =============================================================================

class Lexer:
    """
    Tokenizes the parameter text of one assembler statement.

    The lexer is a character-class state machine with at most one token
    in progress at a time. It never fails: characters it cannot classify
    become UNKNOWN tokens and an unterminated string is flushed as-is.

    Usage:
        params = Lexer("%rdi, %rsi").tokenize()
    """

    # Characters that can start an identifier
    IDENT_START = frozenset(string.ascii_letters + "._")

    # Characters that can continue an identifier
    IDENT_CHARS = frozenset(string.ascii_letters + string.digits + "._")

    # Characters that can continue a register or type flag
    ALNUM_CHARS = frozenset(string.ascii_letters + string.digits)

    HEX_DIGITS = frozenset(string.hexdigits)

    # Single-character operators (comma handled separately)
    OPERATOR_CHARS = frozenset("()+-*/:[]=")

    OPEN_GROUP = frozenset("([")
    CLOSE_GROUP = frozenset(")]")

    def __init__(self, text: str):
        """
        Initialize the lexer.

        Args:
            text: Parameter text, i.e. the statement without its mnemonic
        """
        self.text = text

        self._pos = 0
        self._depth = 0

        # Token in progress
        self._kind: Optional[TokenKind] = None
        self._chars: list[str] = []
        self._immediate = False

        self._current = Param()
        self._params: list[Param] = []

    def tokenize(self) -> list[Param]:
        """
        Split the text into parameters.

        Returns:
            Ordered list of Params, with an empty Param for each omitted operand
        """
        while not self._at_end():
            char = self._advance()

            if self._kind is not None:
                if self._kind == TokenKind.STRING:
                    self._scan_string_char(char)
                    continue
                if self._continues_token(char):
                    self._chars.append(char)
                    continue
                self._flush_token()

            self._start_token(char)

        self._flush_token()
        self._flush_param()

        return self._params

    # =========================================================================
    # Character Access
    # =========================================================================

    def _at_end(self) -> bool:
        return self._pos >= len(self.text)

    def _peek(self, offset: int = 0) -> str:
        pos = self._pos + offset
        if pos >= len(self.text):
            return ""
        return self.text[pos]

    def _advance(self) -> str:
        char = self.text[self._pos]
        self._pos += 1
        return char

    # =========================================================================
    # Token State Machine
    # =========================================================================

    def _continues_token(self, char: str) -> bool:
        """Check whether `char` extends the token in progress."""
        if self._kind == TokenKind.IDENTIFIER:
            return char in self.IDENT_CHARS
        if self._kind in (TokenKind.REGISTER, TokenKind.TYPEFLAG):
            return char in self.ALNUM_CHARS
        if self._kind == TokenKind.NUMBER:
            if char in self.HEX_DIGITS:
                return True
            # 0x prefix: x is only valid as the second character
            return char in "xX" and len(self._chars) == 1
        return False

    def _start_token(self, char: str) -> None:
        """Handle a character while no token is in progress."""
        if char in " \t":
            return

        if char == ",":
            if self._depth > 0:
                self._emit(",", TokenKind.OPERATOR)
            else:
                self._end_param()
            return

        if char in self.OPERATOR_CHARS:
            if char in self.OPEN_GROUP:
                self._depth += 1
            elif char in self.CLOSE_GROUP and self._depth > 0:
                self._depth -= 1
            self._emit(char, TokenKind.OPERATOR)
            return

        if char in self.IDENT_START:
            self._begin(TokenKind.IDENTIFIER, char)
        elif char == "%":
            self._begin(TokenKind.REGISTER, char)
        elif char.isdigit():
            self._begin(TokenKind.NUMBER, char)
        elif char == "$":
            # Note: '' in string.digits is True, so check for non-empty first
            next_char = self._peek()
            if next_char and next_char in string.digits:
                self._begin(TokenKind.NUMBER, self._advance(), immediate=True)
            else:
                self._emit("$", TokenKind.OPERATOR)
        elif char == '"':
            self._begin(TokenKind.STRING, "")
        elif char == "@":
            self._begin(TokenKind.TYPEFLAG, char)
        else:
            self._emit(char, TokenKind.UNKNOWN)

    def _scan_string_char(self, char: str) -> None:
        """Consume one character inside a string literal."""
        if char == "\\":
            self._chars.append(char)
            if not self._at_end():
                self._chars.append(self._advance())
            return

        if char == '"':
            self._flush_token()
            return

        self._chars.append(char)

    def _begin(self, kind: TokenKind, text: str, immediate: bool = False) -> None:
        self._kind = kind
        self._chars = [text] if text else []
        self._immediate = immediate

    def _flush_token(self) -> None:
        if self._kind is None:
            return
        self._current.tokens.append(
            Token("".join(self._chars), self._kind, self._immediate)
        )
        self._kind = None
        self._chars = []
        self._immediate = False

    def _emit(self, text: str, kind: TokenKind) -> None:
        self._current.tokens.append(Token(text, kind))

    def _end_param(self) -> None:
        # Operands left empty between commas are kept
        self._params.append(self._current)
        self._current = Param()

    def _flush_param(self) -> None:
        if self._current.tokens:
            self._params.append(self._current)
        self._current = Param()


def tokenize(text: str) -> list[Param]:
    """Convenience wrapper around Lexer(text).tokenize()."""
    return Lexer(text).tokenize()
