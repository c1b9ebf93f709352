"""
asmtool - Assembly Inspection and Comparison Tool
=================================================

Command-line front end for the asmtool package.

Usage Examples
--------------
List the functions and objects of a file:
    $ asmtool info foo.s

Print the body of two functions:
    $ asmtool show foo.s main helper

Copy symbols into a new file:
    $ asmtool copy foo.s main helper -o main.s

Compare two builds of the same file:
    $ asmtool diff old/foo.s new/foo.s --show

Compare a symbol against a renamed version:
    $ asmtool diff-symbol old/foo.s bar.part.0 new/foo.s bar.part.1

Write the call graph:
    $ asmtool callgraph foo.s -r main -d 3 -o main.dot
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click

from asmtool import __version__
from asmtool.assembly import AsmFile
from asmtool.callgraph import build_callgraph, format_dot
from asmtool.cli.errors import ExitCode, handle_cli_exception
from asmtool.diff.compare import SymbolComparator, compare_files, compare_symbols
from asmtool.errors import SymbolNotFoundError
from asmtool.report import (
    extract_symbol,
    format_changes,
    format_copy,
    format_symbol_body,
    format_symbol_table,
    render_chain,
    render_diff,
    render_diff_header,
)

logger = logging.getLogger(__name__)


# =============================================================================
# CLI Context and Utilities
# =============================================================================

class Context:
    """
    Shared context for CLI commands.

    Stores the global options given before the subcommand.
    """

    def __init__(self) -> None:
        self.verbose: bool = False

    def setup_logging(self) -> None:
        """Configure logging based on verbosity."""
        level = logging.DEBUG if self.verbose else logging.WARNING
        logging.basicConfig(
            level=level,
            format="%(levelname)s: %(message)s",
        )


pass_context = click.make_pass_decorator(Context, ensure=True)


INPUT_FILE = click.Path(exists=True, dir_okay=False, path_type=Path)


def load_file(path: Path) -> AsmFile:
    """Load an assembly file, logging what was found."""
    asm_file = AsmFile.from_file(path)
    logger.info(f"{path}: {len(asm_file)} statements")
    return asm_file


def report_missing(asm_file: AsmFile, names: list[str]) -> None:
    """Print one error line per symbol the file does not define."""
    for name in names:
        error = SymbolNotFoundError(name, asm_file.filename, asm_file.similar_symbols(name))
        click.echo(str(error), err=True)


def diff_display_options(func):
    """Options shared by the commands that print diffs."""
    func = click.option(
        "-C", "--context", "context_lines",
        type=click.IntRange(min=0),
        default=3,
        show_default=True,
        help="Unchanged lines shown around each change",
    )(func)
    func = click.option(
        "--color/--no-color",
        default=True,
        help="Color added and removed lines (default: on)",
    )(func)
    func = click.option(
        "--pretty",
        is_flag=True,
        help="Side-by-side output",
    )(func)
    return func


# =============================================================================
# Main CLI Group
# =============================================================================

@click.group()
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Enable verbose output",
)
@click.version_option(version=__version__, prog_name="asmtool")
@pass_context
def main(ctx: Context, verbose: bool) -> None:
    """
    Inspect and compare GNU assembler (.s) files.

    The diff commands compare functions and data objects after
    renaming compiler-generated labels, so only real code changes
    are reported.

    \b
    Commands:
      info         List functions and objects
      show         Print symbol bodies
      copy         Copy symbols into a new file
      diff         Compare two versions of a file
      diff-symbol  Compare two symbols
      callgraph    Write the call graph as DOT
    """
    ctx.verbose = verbose
    ctx.setup_logging()


# =============================================================================
# Info Command
# =============================================================================

@main.command("info")
@click.argument("input_file", type=INPUT_FILE)
@click.option("--functions/--no-functions", default=True, help="List functions")
@click.option("--objects/--no-objects", default=True, help="List data objects")
@click.option("--global/--no-global", "global_", default=True, help="List global symbols")
@click.option("--local/--no-local", default=True, help="List local symbols")
@pass_context
def cmd_info(
    ctx: Context,
    input_file: Path,
    functions: bool,
    objects: bool,
    global_: bool,
    local: bool,
) -> None:
    """
    List the functions and data objects defined in INPUT_FILE.

    \b
    Examples:
      asmtool info foo.s
      asmtool info --no-objects --no-local foo.s
    """
    try:
        asm_file = load_file(input_file)
        for line in format_symbol_table(asm_file, functions, objects, global_, local):
            click.echo(line)
    except Exception as e:
        handle_cli_exception(e, verbose=ctx.verbose)


# =============================================================================
# Show Command
# =============================================================================

@main.command("show")
@click.argument("input_file", type=INPUT_FILE)
@click.argument("symbols", nargs=-1, required=True)
@pass_context
def cmd_show(ctx: Context, input_file: Path, symbols: tuple[str, ...]) -> None:
    """
    Print the bodies of SYMBOLS from INPUT_FILE.

    Debug directives are left out. Symbols that are not found are
    reported and the remaining ones are still printed.
    """
    try:
        asm_file = load_file(input_file)
        missing = []

        for name in symbols:
            obj = extract_symbol(asm_file, name)
            if obj is None:
                missing.append(name)
                continue
            for line in format_symbol_body(obj):
                click.echo(line)

        if missing:
            report_missing(asm_file, missing)
            sys.exit(ExitCode.COMPARE_ERROR)
    except Exception as e:
        handle_cli_exception(e, verbose=ctx.verbose)


# =============================================================================
# Copy Command
# =============================================================================

@main.command("copy")
@click.argument("input_file", type=INPUT_FILE)
@click.argument("symbols", nargs=-1, required=True)
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Output file (default: stdout)",
)
@pass_context
def cmd_copy(
    ctx: Context,
    input_file: Path,
    symbols: tuple[str, ...],
    output: Optional[Path],
) -> None:
    """
    Copy SYMBOLS from INPUT_FILE into a stand-alone assembly file.

    Each symbol is written with its section, alignment, .type and
    .size directives.

    \b
    Examples:
      asmtool copy foo.s main -o main.s
      asmtool copy foo.s helper table > part.s
    """
    try:
        asm_file = load_file(input_file)
        text, missing = format_copy(asm_file, symbols)

        if output is not None:
            output.write_text(text)
            logger.info(f"Wrote {len(symbols) - len(missing)} symbols to {output}")
        else:
            click.echo(text, nl=False)

        if missing:
            report_missing(asm_file, missing)
            sys.exit(ExitCode.COMPARE_ERROR)
    except Exception as e:
        handle_cli_exception(e, verbose=ctx.verbose)


# =============================================================================
# Diff Commands
# =============================================================================

@main.command("diff")
@click.argument("file_a", type=INPUT_FILE)
@click.argument("file_b", type=INPUT_FILE)
@click.option("--show", is_flag=True, help="Print the diff of every changed symbol")
@diff_display_options
@pass_context
def cmd_diff(
    ctx: Context,
    file_a: Path,
    file_b: Path,
    show: bool,
    pretty: bool,
    color: bool,
    context_lines: int,
) -> None:
    """
    Compare FILE_A (old) with FILE_B (new) symbol by symbol.

    Reports new, removed and changed functions and objects. A symbol
    whose body is unchanged but which references a compiler-generated
    symbol that changed is reported with its dependency chain.
    """
    try:
        asm_a = load_file(file_a)
        asm_b = load_file(file_b)

        comparator = SymbolComparator(asm_a, asm_b)
        changes = compare_files(asm_a, asm_b, comparator)

        for line in format_changes(changes, comparator, show=show, pretty=pretty,
                                   color=color, context=context_lines):
            click.echo(line)
    except Exception as e:
        handle_cli_exception(e, verbose=ctx.verbose)


@main.command("diff-symbol")
@click.argument("file_a", type=INPUT_FILE)
@click.argument("symbol_a")
@click.argument("file_b", type=INPUT_FILE)
@click.argument("symbol_b", required=False)
@diff_display_options
@pass_context
def cmd_diff_symbol(
    ctx: Context,
    file_a: Path,
    symbol_a: str,
    file_b: Path,
    symbol_b: Optional[str],
    pretty: bool,
    color: bool,
    context_lines: int,
) -> None:
    """
    Compare SYMBOL_A of FILE_A with SYMBOL_B of FILE_B.

    SYMBOL_B defaults to SYMBOL_A. Both symbols must be functions or
    both must be data objects.

    \b
    Examples:
      asmtool diff-symbol old.s main new.s
      asmtool diff-symbol old.s f.part.0 new.s f.part.1 --pretty
    """
    if symbol_b is None:
        symbol_b = symbol_a

    try:
        asm_a = load_file(file_a)
        asm_b = load_file(file_b)

        comparator = SymbolComparator(asm_a, asm_b)
        chain = compare_symbols(asm_a, asm_b, symbol_a, symbol_b, comparator)

        if not chain.flat_equal:
            pair = comparator.pair(symbol_a, symbol_b)
            click.echo(render_diff_header(symbol_a, symbol_b, pretty=pretty))
            if pair is not None:
                for line in render_diff(pair.obj_a, pair.obj_b, pair.diff.get_diff(),
                                        context=context_lines, pretty=pretty, color=color):
                    click.echo(line)
        elif not chain.deep_equal:
            click.echo(f"{file_b}:{symbol_b} references changed compiler-generated symbols")
            for line in render_chain(chain, "    "):
                click.echo(line)
        else:
            click.echo(f"{file_a}:{symbol_a} and {file_b}:{symbol_b} are identical")
    except Exception as e:
        handle_cli_exception(e, verbose=ctx.verbose)


# =============================================================================
# Callgraph Command
# =============================================================================

@main.command("callgraph")
@click.argument("input_file", type=INPUT_FILE)
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Output DOT file (default: stdout)",
)
@click.option(
    "--external",
    is_flag=True,
    help="Include calls to functions not defined in the file",
)
@click.option(
    "-r", "--root",
    "roots",
    multiple=True,
    help="Start from this function (repeatable; default: all functions)",
)
@click.option(
    "-d", "--max-depth",
    type=click.IntRange(min=1),
    default=None,
    help="Call levels to follow from the roots",
)
@pass_context
def cmd_callgraph(
    ctx: Context,
    input_file: Path,
    output: Optional[Path],
    external: bool,
    roots: tuple[str, ...],
    max_depth: Optional[int],
) -> None:
    """
    Write the call graph of INPUT_FILE in Graphviz DOT format.

    \b
    Examples:
      asmtool callgraph foo.s -o foo.dot
      asmtool callgraph foo.s -r main -d 2 | dot -Tsvg > main.svg
    """
    try:
        asm_file = load_file(input_file)
        graph = build_callgraph(
            asm_file,
            roots=roots or None,
            max_depth=max_depth,
            include_external=external,
        )
        dot = format_dot(graph)

        if output is not None:
            output.write_text(dot)
            click.echo(f"Wrote {output} ({len(graph)} functions)")
        else:
            click.echo(dot, nl=False)
    except Exception as e:
        handle_cli_exception(e, verbose=ctx.verbose)


if __name__ == "__main__":
    main()
