# =============================================================================
# test_asmfile.py - Symbol Table and Extraction Tests
# =============================================================================
# Tests for AsmFile: loading, section tracking, alignment cursor, symbol
# kinds and scopes, and function/object extraction.
# =============================================================================

import logging

import pytest
from asmtool.assembly import AsmFile, ExtractFlags, StatementKind, SymbolKind, SymbolScope
from asmtool.errors import AsmFileError, SymbolNotFoundError


# =============================================================================
# Sample Source
# =============================================================================

SAMPLE = """\
	.file "test.c"
	.text
.Ltext0:
	.section .rodata
	.align 8
	.type bar, @object
	.size bar, 16
bar:
	.quad 1
	.quad 2
	.text
	.p2align 4
	.globl main
	.type main, @function
main:
.LFB0:
	.loc 1 3 0
	.cfi_startproc
	movl bar(%rip), %eax
	call helper.part.0
	jmp .L3
.L3:
	ret
	.cfi_endproc
.LFE0:
	.size main, .-main
	.comm buf,16,8
	.local lbuf
	.lcomm lbuf,8
"""


@pytest.fixture
def sample() -> AsmFile:
    return AsmFile.from_source(SAMPLE, "sample.s")


def body_texts(obj) -> list:
    return [stmt.serialize() for stmt in obj.statements]


# =============================================================================
# Loading Tests
# =============================================================================

class TestLoading:
    """Test reading and parsing files."""

    def test_from_file(self, tmp_path):
        path = tmp_path / "a.s"
        path.write_text(SAMPLE)
        asm = AsmFile.from_file(path)
        assert asm.filename == str(path)
        assert asm.has_function("main")

    def test_missing_file(self, tmp_path):
        with pytest.raises(AsmFileError) as exc_info:
            AsmFile.from_file(tmp_path / "missing.s")
        assert "missing.s" in str(exc_info.value)

    def test_statement_access(self, sample):
        assert sample.statement(0).kind == StatementKind.DOTFILE
        assert len(sample.statements) == len(sample)

    def test_reload_resets_state(self, sample):
        sample.load("other:\n\tnop\n")
        assert not sample.has_symbol("main")
        assert sample.has_symbol("other")
        assert len(sample) == 2

    def test_empty_source(self):
        asm = AsmFile.from_source("")
        assert len(asm) == 0
        assert list(asm.iter_symbols()) == []


# =============================================================================
# Symbol Table Tests
# =============================================================================

class TestSymbols:
    """Test symbol kinds, scopes and bookmarks."""

    def test_function_symbol(self, sample):
        symbol = sample.get_symbol("main")
        assert symbol.kind == SymbolKind.FUNCTION
        assert symbol.scope == SymbolScope.GLOBAL
        assert sample.statement(symbol.stmt_index).label == "main"
        assert sample.statement(symbol.type_stmt_index).kind == StatementKind.TYPE
        assert sample.statement(symbol.size_stmt_index).kind == StatementKind.SIZE

    def test_object_bookkeeping(self, sample):
        """.type bar,@object / .size bar,16 / bar: are all recorded."""
        symbol = sample.get_symbol("bar")
        assert symbol.kind == SymbolKind.OBJECT
        assert symbol.scope == SymbolScope.GLOBAL
        assert sample.statement(symbol.size_stmt_index).text == ".size bar, 16"
        assert sample.statement(symbol.section_stmt_index).payload.name == ".rodata"
        assert sample.statement(symbol.align_stmt_index).text == ".align 8"

    def test_comm_symbol(self, sample):
        symbol = sample.get_symbol("buf")
        assert symbol.kind == SymbolKind.OBJECT
        assert symbol.scope == SymbolScope.GLOBAL
        assert sample.statement(symbol.stmt_index).kind == StatementKind.COMM

    def test_lcomm_symbol_is_local(self, sample):
        symbol = sample.get_symbol("lbuf")
        assert symbol.kind == SymbolKind.OBJECT
        assert symbol.scope == SymbolScope.LOCAL

    def test_lcomm_default_scope(self):
        asm = AsmFile.from_source(".lcomm tmp,4\n")
        assert asm.get_symbol("tmp").scope == SymbolScope.LOCAL

    def test_comm_with_type_object(self):
        asm = AsmFile.from_source(".type bar,@object\n.comm bar,16,8\n.size bar,16\n")
        assert asm.has_object("bar")
        assert asm.get_symbol("bar").size_stmt_index == 2

    def test_local_label_scope(self, sample):
        assert sample.get_symbol(".L3").scope == SymbolScope.LOCAL

    def test_plain_label_defaults_to_global_object(self):
        asm = AsmFile.from_source("table:\n\t.long 1\n")
        symbol = asm.get_symbol("table")
        assert symbol.kind == SymbolKind.OBJECT
        assert symbol.scope == SymbolScope.GLOBAL

    def test_local_directive_forces_scope(self):
        asm = AsmFile.from_source("foo:\n\tret\n\t.local foo\n")
        assert asm.get_symbol("foo").scope == SymbolScope.LOCAL

    def test_resolved_scope_is_kept(self):
        asm = AsmFile.from_source(".local foo\n.type foo, @function\nfoo:\n\tret\n")
        assert asm.get_symbol("foo").scope == SymbolScope.LOCAL

    def test_globl_multiple_names(self):
        asm = AsmFile.from_source(".globl a, b\n")
        assert asm.get_symbol("a").scope == SymbolScope.GLOBAL
        assert asm.get_symbol("b").scope == SymbolScope.GLOBAL

    def test_numeric_label_not_tracked(self):
        asm = AsmFile.from_source("1:\n\tjmp 1b\n")
        assert not asm.has_symbol("1")

    def test_type_without_label_is_undefined(self):
        asm = AsmFile.from_source(".type ext, @function\n")
        assert asm.has_symbol("ext")
        assert not asm.has_function("ext")
        assert asm.get_function("ext") is None

    def test_get_symbol_not_found(self, sample):
        with pytest.raises(SymbolNotFoundError) as exc_info:
            sample.get_symbol("mai")
        assert "main" in exc_info.value.similar_symbols
        assert "did you mean" in str(exc_info.value)

    def test_iter_symbols_sorted(self, sample):
        names = [s.name for s in sample.iter_symbols()]
        assert names == sorted(names)

    def test_for_each_symbol(self, sample):
        seen = []
        sample.for_each_symbol(lambda name, scope, kind: seen.append((name, scope, kind)))
        assert ("main", SymbolScope.GLOBAL, SymbolKind.FUNCTION) in seen
        assert ("bar", SymbolScope.GLOBAL, SymbolKind.OBJECT) in seen

    def test_has_function_and_object(self, sample):
        assert sample.has_function("main")
        assert not sample.has_object("main")
        assert sample.has_object("bar")
        assert not sample.has_function("bar")
        assert not sample.has_function("nope")
        assert sample.symbol_kind("nope") == SymbolKind.UNKNOWN


# =============================================================================
# Section Tracking Tests
# =============================================================================

class TestSections:
    """Test the section stack and section memo."""

    def test_same_section_shares_anchor(self):
        source = (
            ".section .rodata\n"
            "a:\n\t.byte 1\n"
            ".text\n"
            ".section .rodata\n"
            "b:\n\t.byte 2\n"
        )
        asm = AsmFile.from_source(source)
        assert asm.get_symbol("a").section_stmt_index == 0
        assert asm.get_symbol("b").section_stmt_index == 0

    def test_push_and_pop(self):
        source = (
            ".text\n"
            '.pushsection .data.rel,"aw"\n'
            "obj:\n\t.long 1\n"
            ".popsection\n"
            "fn:\n\tret\n"
        )
        asm = AsmFile.from_source(source)
        assert asm.statement(asm.get_symbol("obj").section_stmt_index).kind == StatementKind.PUSHSECTION
        assert asm.get_symbol("fn").section_stmt_index == 0
        assert asm.warnings == []

    def test_pop_underflow_warns_once_per_pop(self, caplog):
        """Each unmatched .popsection produces exactly one warning."""
        source = ".text\n.popsection\nfoo:\n\tret\n.popsection\n"
        with caplog.at_level(logging.WARNING, logger="asmtool.assembly.asmfile"):
            asm = AsmFile.from_source(source, "pop.s")
        assert len(asm.warnings) == 2
        assert all(".popsection" in w for w in asm.warnings)
        assert len([r for r in caplog.records if r.levelno == logging.WARNING]) == 2
        # The scan continues with the current section
        assert asm.get_symbol("foo").section_stmt_index == 0

    def test_no_section(self):
        asm = AsmFile.from_source("foo:\n\tret\n")
        assert asm.get_symbol("foo").section_stmt_index is None


# =============================================================================
# Alignment Cursor Tests
# =============================================================================

class TestAlignment:
    """Test the alignment cursor."""

    def test_label_consumes_cursor(self):
        asm = AsmFile.from_source(".align 4\nfoo:\nbar:\n\tnop\n")
        assert asm.get_symbol("foo").align_stmt_index == 0
        assert asm.get_symbol("bar").align_stmt_index is None

    def test_instruction_clears_cursor(self):
        asm = AsmFile.from_source(".align 4\n\tnop\nfoo:\n")
        assert asm.get_symbol("foo").align_stmt_index is None

    def test_comm_clears_cursor(self):
        asm = AsmFile.from_source(".align 4\n.comm x,4,4\nfoo:\n")
        assert asm.get_symbol("foo").align_stmt_index is None

    def test_symbol_directives_keep_cursor(self):
        asm = AsmFile.from_source(".balign 16\n.globl f\n.type f, @function\nf:\n\tret\n")
        assert asm.get_symbol("f").align_stmt_index == 0

    def test_unknown_directive_noted_once(self, caplog):
        source = ".weird 1\n.weird 2\n.other\nfoo:\n"
        with caplog.at_level(logging.DEBUG, logger="asmtool.assembly.asmfile"):
            AsmFile.from_source(source)
        notes = [r for r in caplog.records if "directive .weird" in r.getMessage()]
        assert len(notes) == 1


# =============================================================================
# Function Extraction Tests
# =============================================================================

class TestGetFunction:
    """Test function body extraction."""

    def test_full_body(self, sample):
        obj = sample.get_function("main")
        assert obj.name == "main"
        assert obj.kind == SymbolKind.FUNCTION
        assert [s.kind for s in obj.statements] == [
            StatementKind.LABEL,
            StatementKind.LOC,
            StatementKind.CFI_STARTPROC,
            StatementKind.INSTRUCTION,
            StatementKind.INSTRUCTION,
            StatementKind.INSTRUCTION,
            StatementKind.LABEL,
            StatementKind.INSTRUCTION,
            StatementKind.CFI_ENDPROC,
            StatementKind.LABEL,
        ]

    def test_strip_debug(self, sample):
        obj = sample.get_function("main", ExtractFlags.STRIP_DEBUG)
        assert body_texts(obj) == [
            ".cfi_startproc",
            "movl\tbar(%rip), %eax",
            "call\thelper.part.0",
            "jmp\t.L3",
            ".L3:",
            "ret",
            ".cfi_endproc",
        ]

    def test_normalize(self, sample):
        obj = sample.get_function("main", ExtractFlags.STRIP_DEBUG | ExtractFlags.NORMALIZE)
        assert "jmp\t~ASMTOOL0" in body_texts(obj)
        assert "~ASMTOOL0:" in body_texts(obj)

    def test_extraction_does_not_touch_file(self, sample):
        sample.get_function("main", ExtractFlags.NORMALIZE)
        index = sample.get_symbol(".L3").stmt_index
        assert sample.statement(index).label == ".L3"

    def test_context_statements(self, sample):
        obj = sample.get_function("main")
        assert obj.section.kind == StatementKind.TEXT
        assert obj.alignment.text == ".p2align 4"
        assert obj.size.text == ".size main, .-main"
        assert obj.type_statement.text == ".type main, @function"

    def test_not_a_function(self, sample):
        assert sample.get_function("bar") is None
        assert sample.get_function("missing") is None

    def test_body_without_size_runs_to_end(self):
        asm = AsmFile.from_source(".type f, @function\nf:\n\tnop\n\tret\n")
        assert body_texts(asm.get_function("f")) == ["nop", "ret"]


# =============================================================================
# Object Extraction Tests
# =============================================================================

class TestGetObject:
    """Test data object extraction."""

    def test_data_body(self, sample):
        obj = sample.get_object("bar")
        assert obj.kind == SymbolKind.OBJECT
        assert body_texts(obj) == [".quad\t1", ".quad\t2"]
        assert obj.section.payload.name == ".rodata"

    def test_comm_object(self, sample):
        obj = sample.get_object("buf")
        assert len(obj) == 1
        assert obj.statements[0].kind == StatementKind.COMM

    def test_not_an_object(self, sample):
        assert sample.get_object("main") is None

    def test_object_stops_at_next_symbol(self):
        source = "a:\n\t.long 1\nb:\n\t.long 2\n"
        asm = AsmFile.from_source(source)
        assert body_texts(asm.get_object("a")) == [".long\t1"]

    def test_object_keeps_unrecorded_labels(self):
        source = "tbl:\n\t.long 1\n1:\n\t.long 2\n\tret\n"
        asm = AsmFile.from_source(source)
        assert body_texts(asm.get_object("tbl")) == [".long\t1", "1:", ".long\t2"]

    def test_object_debug_statements(self):
        source = "tbl:\n\t.long 1\n\t.loc 1 2 0\n\t.long 2\n"
        asm = AsmFile.from_source(source)
        assert len(asm.get_object("tbl")) == 3
        assert len(asm.get_object("tbl", ExtractFlags.STRIP_DEBUG)) == 2
