# =============================================================================
# test_report.py - Text Report Tests
# =============================================================================
# Tests for symbol listings, body printing, symbol copies, diff rendering,
# dependency chains and the comparison summary.
# =============================================================================

import pytest
from asmtool.assembly import AsmFile, ExtractFlags
from asmtool.diff import Diff
from asmtool.diff.compare import SymbolComparator, compare_files, compare_symbols
from asmtool.report import (
    format_changes,
    format_copy,
    format_symbol_body,
    format_symbol_table,
    render_chain,
    render_diff,
    render_diff_header,
)


SAMPLE = """\
	.text
	.p2align 4
	.globl main
	.type main, @function
main:
	movl $1, %eax
.L2:
	ret
	.size main, .-main
	.section .rodata
	.type tbl, @object
tbl:
	.quad 1
	.size tbl, 8
	.local helper
	.type helper, @function
helper:
	ret
	.size helper, .-helper
"""

COMPARE = ExtractFlags.STRIP_DEBUG | ExtractFlags.NORMALIZE


def function(name: str, *body: str) -> str:
    lines = ["\t.text", f"\t.type {name}, @function", f"{name}:"]
    lines.extend(f"\t{stmt}" for stmt in body)
    lines.append(f"\t.size {name}, .-{name}")
    return "\n".join(lines) + "\n"


@pytest.fixture
def sample() -> AsmFile:
    return AsmFile.from_source(SAMPLE, "sample.s")


@pytest.fixture
def changed_pair():
    """Two versions of f whose last instruction differs."""
    nops = ["nop"] * 8
    file_a = AsmFile.from_source(function("f", *nops, "movl $1, %eax"))
    file_b = AsmFile.from_source(function("f", *nops, "movl $2, %eax"))
    obj_a = file_a.get_function("f", COMPARE)
    obj_b = file_b.get_function("f", COMPARE)
    return obj_a, obj_b, Diff(obj_a, obj_b).get_diff()


# =============================================================================
# Symbol Table Tests
# =============================================================================

class TestSymbolTable:
    """Test the info listing."""

    def test_group_order(self, sample):
        lines = format_symbol_table(sample)
        assert [line.split()[1] for line in lines] == ["main", "helper", "tbl", ".L2"]

    def test_line_format(self, sample):
        line = format_symbol_table(sample)[0]
        assert line.startswith("Function: main")
        assert line.endswith("Scope: Global")

    def test_local_function(self, sample):
        line = format_symbol_table(sample)[1]
        assert line.startswith("Function: helper")
        assert line.endswith("Scope: Local")

    def test_objects_only(self, sample):
        lines = format_symbol_table(sample, functions=False)
        assert all(line.startswith("Object:") for line in lines)
        assert len(lines) == 2

    def test_global_only(self, sample):
        lines = format_symbol_table(sample, local=False)
        assert [line.split()[1] for line in lines] == ["main", "tbl"]


# =============================================================================
# Body and Copy Tests
# =============================================================================

class TestBodies:
    """Test show and copy output."""

    def test_symbol_body(self, sample):
        obj = sample.get_function("main", ExtractFlags.STRIP_DEBUG)
        assert format_symbol_body(obj) == ["main:", "\tmovl $1, %eax", ".L2:", "\tret"]

    def test_copy_function(self, sample):
        text, missing = format_copy(sample, ["main"])
        assert missing == []
        assert text.splitlines() == [
            "\t.text",
            "\t.p2align 4",
            "\t.type main, @function",
            "main:",
            "\tmovl $1, %eax",
            ".L2:",
            "\tret",
            "\t.size main, .-main",
        ]

    def test_copy_object(self, sample):
        text, _ = format_copy(sample, ["tbl"])
        assert text.splitlines() == [
            "\t.section .rodata",
            "\t.type tbl, @object",
            "tbl:",
            "\t.quad 1",
            "\t.size tbl, 8",
        ]

    def test_copy_missing(self, sample):
        text, missing = format_copy(sample, ["nope", "main"])
        assert missing == ["nope"]
        assert "main:" in text.splitlines()

    def test_copy_nothing(self, sample):
        assert format_copy(sample, ["nope"]) == ("", ["nope"])

    def test_copy_common_object(self):
        """A .comm object is copied without a label of its own."""
        asm = AsmFile.from_source("\t.text\n\t.comm buf,64,32\n")
        text, missing = format_copy(asm, ["buf"])
        assert missing == []
        assert text.splitlines() == ["\t.comm buf,64,32"]
        assert "buf:" not in text

    def test_copy_local_common_object(self):
        asm = AsmFile.from_source("\t.local cnt\n\t.comm cnt,4,4\n\t.lcomm tmp,8\n")
        text, _ = format_copy(asm, ["cnt", "tmp"])
        assert text.splitlines() == [
            "\t.local cnt",
            "\t.comm cnt,4,4",
            "\t.lcomm tmp,8",
        ]

    def test_copy_reassembles(self, sample):
        """The copied text parses back into the same symbols."""
        text, _ = format_copy(sample, ["main", "tbl"])
        copied = AsmFile.from_source(text)
        assert copied.has_function("main")
        assert copied.has_object("tbl")
        assert len(copied.get_function("main")) == len(sample.get_function("main"))


# =============================================================================
# Diff Rendering Tests
# =============================================================================

class TestRenderDiff:
    """Test unified and side-by-side diff output."""

    def test_unified_with_context(self, changed_pair):
        obj_a, obj_b, script = changed_pair
        lines = render_diff(obj_a, obj_b, script, context=1, color=False)
        assert lines == [
            "         [...]",
            "         nop",
            "        -movl    $1, %eax",
            "        +movl    $2, %eax",
        ]

    def test_default_context(self, changed_pair):
        obj_a, obj_b, script = changed_pair
        lines = render_diff(obj_a, obj_b, script, color=False)
        assert len(lines) == 6
        assert lines[0].strip() == "[...]"

    def test_large_context_shows_everything(self, changed_pair):
        obj_a, obj_b, script = changed_pair
        lines = render_diff(obj_a, obj_b, script, context=20, color=False)
        assert len(lines) == len(script)
        assert "[...]" not in "".join(lines)

    def test_no_changes(self, changed_pair):
        obj_a, _, _ = changed_pair
        script = Diff(obj_a, obj_a).get_diff()
        assert render_diff(obj_a, obj_a, script) == []

    def test_pretty(self, changed_pair):
        obj_a, obj_b, script = changed_pair
        lines = render_diff(obj_a, obj_b, script, context=1, pretty=True, color=False)
        assert lines[1].startswith("         nop")
        assert lines[1].endswith("| nop")
        assert lines[2].endswith("| ")
        assert lines[3].startswith(" " * 9 + " " * 40 + "| movl")

    def test_colors(self, changed_pair):
        obj_a, obj_b, script = changed_pair
        lines = render_diff(obj_a, obj_b, script, context=1, color=True)
        assert lines[2].startswith("\x1b[31m")
        assert lines[3].startswith("\x1b[32m")
        assert "\x1b[" not in lines[1]

    def test_header(self):
        assert render_diff_header("f", "g") == "g (was/is f):"

    def test_pretty_header_truncates(self):
        header = render_diff_header("a" * 50, "b", pretty=True)
        assert "a" * 34 + "[...]" in header
        assert "a" * 35 not in header
        assert header.endswith("| b")


# =============================================================================
# Chain and Summary Tests
# =============================================================================

class TestChangeSummary:
    """Test dependency chains and the diff summary."""

    @pytest.fixture
    def dependency_files(self):
        main = function("main", "call helper.part.0", "ret")
        file_a = AsmFile.from_source(function("helper.part.0", "movl $1, %eax") + main)
        file_b = AsmFile.from_source(function("helper.part.0", "movl $2, %eax") + main)
        return file_a, file_b

    def test_render_chain(self, dependency_files):
        chain = compare_symbols(*dependency_files, "main", "main")
        assert render_chain(chain) == [
            "-> main[f=]",
            "    -> helper.part.0[f!]",
        ]

    def test_render_chain_renamed(self):
        file_a = AsmFile.from_source(function("g.part.0", "ret") + function("main", "call g.part.0"))
        file_b = AsmFile.from_source(function("g.part.1", "ret") + function("main", "call g.part.1"))
        chain = compare_symbols(file_a, file_b, "main", "main")
        assert render_chain(chain, "  ")[1] == "      -> g.part.1 (was g.part.0)[f=]"

    def test_dependency_summary(self, dependency_files):
        changes = compare_files(*dependency_files)
        lines = format_changes(changes)
        assert lines[0] == f"{'Changed function:':<20}main"
        assert lines[1].strip() == "(Only referenced compiler-generated symbols changed)"
        assert lines[2].strip() == "Dependency chain:"
        assert lines[3] == " " * 20 + "-> main[f=]"

    def test_new_and_removed(self):
        file_a = AsmFile.from_source(function("gone", "ret"))
        file_b = AsmFile.from_source(function("extra", "ret"))
        lines = format_changes(compare_files(file_a, file_b))
        assert lines == [
            f"{'New function:':<20}extra",
            f"{'Removed function:':<20}gone",
        ]

    def test_unchanged_not_listed(self):
        source = AsmFile.from_source(function("main", "ret"))
        assert format_changes(compare_files(source, source)) == []

    def test_show_includes_diff(self):
        file_a = AsmFile.from_source(function("main", "movl $1, %eax"))
        file_b = AsmFile.from_source(function("main", "movl $2, %eax"))
        comparator = SymbolComparator(file_a, file_b)
        changes = compare_files(file_a, file_b, comparator)

        lines = format_changes(changes, comparator, show=True, color=False)

        assert lines[0] == f"{'Changed function:':<20}main"
        assert "        -movl    $1, %eax" in lines
        assert "        +movl    $2, %eax" in lines
