"""
Assembly Source Line Handling
=============================

Turns raw `.s` text into the stream of statement strings the statement
parser consumes:

1. Comments are stripped: text from `#` to end of line is removed, except
   when the `#` is inside a quoted string.
2. The remainder is split into statements at `;` (again quote aware).
3. A leading `label:` is separated from the rest of the statement, so
   `foo: ret` yields `foo:` and `ret`.

Example
-------
>>> from asmtool.assembly.source import iter_statements
>>> [text for text, _ in iter_statements('foo: movl $1, %eax # one')]
['foo:', 'movl $1, %eax']
"""

from typing import Iterator, Optional
import string

from asmtool.errors import SourceLocation


# Characters allowed in a label name before its colon
LABEL_CHARS = frozenset(string.ascii_letters + string.digits + "._")

QUOTES = "\"'"


def _end_of_string(line: str, start: int) -> int:
    """
    Find the closing quote matching the one at `start`.

    Returns:
        Index of the closing quote, or -1 if the string is unterminated
    """
    quote = line[start]
    pos = start + 1
    while pos < len(line):
        if line[pos] == "\\":
            pos += 2
            continue
        if line[pos] == quote:
            return pos
        pos += 1
    return -1


def strip_comment(line: str) -> str:
    """Remove a trailing `#` comment that is not inside a string."""
    pos = 0
    while pos < len(line):
        char = line[pos]
        if char == "#":
            return line[:pos]
        if char in QUOTES:
            end = _end_of_string(line, pos)
            if end < 0:
                return line
            pos = end + 1
            continue
        pos += 1
    return line


def split_trim(line: str, delimiters: str, max_splits: int = 0) -> list[str]:
    """
    Split `line` at any of `delimiters`, ignoring delimiters inside quotes.

    Items are stripped of surrounding whitespace.

    Args:
        line: Text to split
        delimiters: Characters that separate items
        max_splits: Stop after this many splits (0 means unlimited); the
                    rest of the line becomes the last item

    Returns:
        List of stripped items (empty for a blank line)
    """
    line = line.strip()
    if not line:
        return []

    items: list[str] = []
    start = 0
    pos = 0
    while pos < len(line):
        char = line[pos]
        if char in QUOTES:
            end = _end_of_string(line, pos)
            pos = len(line) if end < 0 else end + 1
            continue
        if char in delimiters:
            items.append(line[start:pos].strip())
            start = pos + 1
            if max_splits and len(items) == max_splits:
                break
        pos += 1

    items.append(line[start:].strip())
    return items


def split_statements(line: str) -> list[str]:
    """Split a comment-free line into its `;`-separated statements."""
    return [item for item in split_trim(line, ";") if item]


def split_mnemonic(statement: str) -> tuple[str, str]:
    """
    Split a statement into its first word and the parameter text.

    >>> split_mnemonic("movl\\t$1, %eax")
    ('movl', '$1, %eax')
    """
    items = split_trim(statement, " \t", max_splits=1)
    if not items:
        return "", ""
    if len(items) == 1:
        return items[0], ""
    return items[0], items[1]


def split_label(statement: str) -> tuple[Optional[str], str]:
    """
    Separate a leading `label:` from the rest of a statement.

    Only a run of label characters directly followed by `:` counts as a
    label prefix.

    Returns:
        Tuple of (label text including the colon, or None; remaining text)
    """
    for pos, char in enumerate(statement):
        if char == ":":
            if pos == 0:
                break
            return statement[:pos + 1], statement[pos + 1:].strip()
        if char not in LABEL_CHARS:
            break
    return None, statement


def iter_statements(
    source: str,
    filename: str = "<input>",
) -> Iterator[tuple[str, SourceLocation]]:
    """
    Yield every statement string of a source text with its location.

    Labels are yielded as their own statement (`name:`), before the rest
    of the statement that shares their line.
    """
    for line_number, raw_line in enumerate(source.splitlines(), start=1):
        line = strip_comment(raw_line).strip()
        if not line:
            continue

        location = SourceLocation(filename, line_number)

        for statement in split_statements(line):
            rest = statement
            while rest:
                label, rest = split_label(rest)
                if label is None:
                    yield rest, location
                    break
                yield label, location
