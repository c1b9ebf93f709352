"""
Text Reports
============

Formatting for everything the command-line tool prints: symbol tables,
symbol bodies, re-assemblable copies, diffs and comparison summaries.

All functions return lines (or text) instead of printing, so the CLI
decides where output goes and tests can inspect it directly. Colors are
applied with click.style and stripped by click.echo when the output is
not a terminal.
"""

from typing import Iterable, Optional

import click

from asmtool.assembly.asmfile import AsmFile
from asmtool.assembly.objects import AsmObject, ExtractFlags
from asmtool.assembly.parser import Statement, StatementKind
from asmtool.assembly.symbols import SymbolKind, SymbolScope
from asmtool.diff.compare import ChangeStatus, DiffChain, SymbolChange, SymbolComparator
from asmtool.diff.generic import DiffElement, DiffType


# Width of one side in side-by-side output
COLUMN_WIDTH = 40

# Lines at least COLUMN_WIDTH long are cut to this length plus "[...]"
TRUNCATE_AT = 34

ELLIPSIS = "[...]"

DIFF_INDENT = " " * 8

# Indentation of the dependency-chain note under a changed symbol
CHANGE_INDENT = " " * 20

KIND_NAMES = {
    SymbolKind.FUNCTION: "function",
    SymbolKind.OBJECT: "object",
    SymbolKind.UNKNOWN: "symbol",
}

SCOPE_NAMES = {
    SymbolScope.LOCAL: "Local",
    SymbolScope.GLOBAL: "Global",
    SymbolScope.UNKNOWN: "Unknown",
}


# =============================================================================
# Symbol Listings
# =============================================================================

def format_symbol_table(
    asm_file: AsmFile,
    functions: bool = True,
    objects: bool = True,
    global_: bool = True,
    local: bool = True,
) -> list[str]:
    """
    List the symbols of a file.

    Global functions come first, then local functions, global objects and
    local objects; each group is sorted by name.
    """
    groups = []
    if functions and global_:
        groups.append((SymbolKind.FUNCTION, SymbolScope.GLOBAL))
    if functions and local:
        groups.append((SymbolKind.FUNCTION, SymbolScope.LOCAL))
    if objects and global_:
        groups.append((SymbolKind.OBJECT, SymbolScope.GLOBAL))
    if objects and local:
        groups.append((SymbolKind.OBJECT, SymbolScope.LOCAL))

    lines = []
    for kind, scope in groups:
        for symbol in asm_file.iter_symbols():
            if symbol.kind != kind or symbol.scope != scope:
                continue
            label = f"{KIND_NAMES[kind].capitalize()}:"
            lines.append(f"{label:<10}{symbol.name:<48} Scope: {SCOPE_NAMES[scope]}")
    return lines


def _body_lines(obj: AsmObject) -> list[str]:
    lines = []
    for stmt in obj.statements:
        indent = "" if stmt.is_label else "\t"
        lines.append(f"{indent}{stmt.text}")
    return lines


def format_symbol_body(obj: AsmObject) -> list[str]:
    """The symbol's label followed by its body as written in the source."""
    return [f"{obj.name}:"] + _body_lines(obj)


def extract_symbol(asm_file: AsmFile, name: str,
                   flags: ExtractFlags = ExtractFlags.STRIP_DEBUG) -> Optional[AsmObject]:
    """Extract `name` as a function or, failing that, as an object."""
    if asm_file.has_function(name):
        return asm_file.get_function(name, flags)
    return asm_file.get_object(name, flags)


def _common_statement(obj: AsmObject) -> Optional[Statement]:
    """The `.comm`/`.lcomm` statement of a common object, else None."""
    if len(obj.statements) != 1:
        return None
    stmt = obj.statements[0]
    if stmt.kind not in (StatementKind.COMM, StatementKind.LCOMM):
        return None
    return stmt


def format_copy(asm_file: AsmFile, names: Iterable[str]) -> tuple[str, list[str]]:
    """
    Render symbols as stand-alone assembly.

    Each symbol is preceded by the section and alignment directives in
    force at its definition and its `.type` directive, and followed by its
    `.size` directive, so the output assembles on its own (provided the
    symbols it references are copied as well). A `.comm`/`.lcomm` object
    is copied as its single defining statement.

    Returns:
        Tuple of (assembly text, names that are not functions or objects)
    """
    lines: list[str] = []
    missing: list[str] = []

    for name in names:
        obj = extract_symbol(asm_file, name)
        if obj is None:
            missing.append(name)
            continue

        common = _common_statement(obj)
        if common is not None:
            # .comm defines the symbol, so no label, section or alignment
            if (common.kind == StatementKind.COMM
                    and asm_file.get_symbol(name).scope == SymbolScope.LOCAL):
                lines.append(f"\t.local {name}")
            lines.append(f"\t{common.text}")
            continue

        for directive in (obj.section, obj.alignment, obj.type_statement):
            if directive is not None:
                lines.append(f"\t{directive.text}")
        lines.extend(format_symbol_body(obj))
        if obj.size is not None:
            lines.append(f"\t{obj.size.text}")

    text = "\n".join(lines) + "\n" if lines else ""
    return text, missing


# =============================================================================
# Diff Rendering
# =============================================================================

def _clip(text: str) -> str:
    if len(text) >= COLUMN_WIDTH:
        return text[:TRUNCATE_AT] + ELLIPSIS
    return text


def _statement_text(stmt: Optional[Statement]) -> str:
    if stmt is None:
        return ""
    return stmt.serialize().strip().expandtabs(8)


def _diff_line(obj_a: AsmObject, obj_b: AsmObject, entry: DiffElement,
               pretty: bool, color: bool) -> str:
    left = obj_a.element(entry.index_a) if entry.index_a is not None else None
    right = obj_b.element(entry.index_b) if entry.index_b is not None else None

    if entry.type == DiffType.ADDED:
        marker, fg = "+", "green"
        left_text, right_text = "", _statement_text(right)
        text = right_text
    elif entry.type == DiffType.REMOVED:
        marker, fg = "-", "red"
        left_text, right_text = _statement_text(left), ""
        text = left_text
    else:
        marker, fg = " ", None
        left_text, right_text = _statement_text(left), _statement_text(right)
        text = left_text

    if pretty:
        line = f"{DIFF_INDENT} {_clip(left_text):<{COLUMN_WIDTH}}| {_clip(right_text)}"
    else:
        line = f"{DIFF_INDENT}{marker}{text}"

    if color and fg is not None:
        line = click.style(line, fg=fg)
    return line


def render_diff_header(name_a: str, name_b: str, pretty: bool = False) -> str:
    if pretty:
        return f"{DIFF_INDENT} {_clip(name_a):<{COLUMN_WIDTH}}| {_clip(name_b)}"
    return f"{name_b} (was/is {name_a}):"


def render_diff(
    obj_a: AsmObject,
    obj_b: AsmObject,
    script: list[DiffElement],
    context: int = 3,
    pretty: bool = False,
    color: bool = True,
) -> list[str]:
    """
    Render an edit script between two bodies.

    Only lines within `context` entries of a change are shown. A `[...]`
    line marks every gap between (or before) the shown hunks.

    Args:
        obj_a: Old body
        obj_b: New body
        script: Edit script from Diff(obj_a, obj_b).get_diff()
        context: Unchanged lines to show around each change
        pretty: Side-by-side output instead of +/- lines
        color: Color added lines green and removed lines red
    """
    changes = [i for i, entry in enumerate(script) if entry.type != DiffType.EQUAL]
    visible = set()
    for i in changes:
        visible.update(range(max(0, i - context), min(len(script), i + context + 1)))

    lines = []
    previous = -1
    for i, entry in enumerate(script):
        if i not in visible:
            continue
        if i != previous + 1:
            lines.append(f"{DIFF_INDENT} {ELLIPSIS}")
        lines.append(_diff_line(obj_a, obj_b, entry, pretty, color))
        previous = i
    return lines


def render_chain(chain: DiffChain, indent: str = "") -> list[str]:
    """
    Render a dependency chain as an indented tree.

    Each line reads `-> name_b (was name_a)[kf]`, where k is `f` for a
    function or `o` for an object and f is `=` when the flat comparison
    found no difference and `!` when it did.
    """
    lines = []
    stack = [(chain, indent)]
    while stack:
        node, prefix = stack.pop()
        line = f"{prefix}-> {node.name_b}"
        if node.name_a != node.name_b:
            line += f" (was {node.name_a})"
        kind = "f" if node.kind == SymbolKind.FUNCTION else "o"
        flat = "=" if node.flat_equal else "!"
        lines.append(f"{line}[{kind}{flat}]")
        for child in reversed(node.children):
            stack.append((child, prefix + "    "))
    return lines


# =============================================================================
# Comparison Summary
# =============================================================================

def _status_line(status: str, change: SymbolChange) -> str:
    label = f"{status} {KIND_NAMES[change.kind]}:"
    return f"{label:<{len(CHANGE_INDENT)}}{change.name}"


def format_changes(
    changes: list[SymbolChange],
    comparator: Optional[SymbolComparator] = None,
    show: bool = False,
    pretty: bool = False,
    color: bool = True,
    context: int = 3,
) -> list[str]:
    """
    Summarize a file comparison.

    Unchanged symbols are not listed. With `show`, each changed symbol is
    followed by its diff (taken from the comparator that produced the
    changes).
    """
    lines = []

    for change in changes:
        if change.status == ChangeStatus.NEW:
            lines.append(_status_line("New", change))

        elif change.status == ChangeStatus.REMOVED:
            lines.append(_status_line("Removed", change))

        elif change.status == ChangeStatus.CHANGED:
            lines.append(_status_line("Changed", change))
            if show and comparator is not None:
                pair = comparator.pair(change.name, change.name)
                if pair is not None:
                    lines.extend(render_diff(pair.obj_a, pair.obj_b, pair.diff.get_diff(),
                                             context=context, pretty=pretty, color=color))

        elif change.status == ChangeStatus.DEPENDENCY_CHANGED:
            lines.append(_status_line("Changed", change))
            lines.append(f"{CHANGE_INDENT}(Only referenced compiler-generated symbols changed)")
            lines.append(f"{CHANGE_INDENT}Dependency chain:")
            if change.chain is not None:
                lines.extend(render_chain(change.chain, CHANGE_INDENT))

    return lines
