"""
Tests for the symbol table and file name assembler.
"""

import pytest

from go6obj.symbols import SymbolTable, FilenameAssembler


# =============================================================================
# Symbol Table
# =============================================================================

class TestSymbolTable:
    """Tests for SymbolTable."""

    def test_register_then_resolve(self):
        table = SymbolTable()
        table.register(3, "foo")
        assert table.resolve(3) == "foo"

    def test_unregistered_handle_is_empty(self):
        table = SymbolTable()
        assert table.resolve(7) == ""
        assert 7 not in table

    def test_out_of_range_handle_resolves_empty(self):
        """Handles outside 0-255 are dangling, not errors."""
        table = SymbolTable()
        assert table.resolve(256) == ""
        assert table.resolve(-1) == ""

    def test_register_out_of_range_rejected(self):
        table = SymbolTable()
        with pytest.raises(ValueError, match="out of range"):
            table.register(256, "x")

    def test_last_writer_wins(self):
        """A reused handle resolves to its current binding."""
        table = SymbolTable()
        table.register(1, "first")
        before = table.resolve(1)
        table.register(1, "second")
        assert before == "first"
        assert table.resolve(1) == "second"

    def test_len_and_items(self):
        table = SymbolTable()
        table.register(0, "a")
        table.register(255, "z")
        assert len(table) == 2
        assert list(table.items()) == [(0, "a"), (255, "z")]

    def test_clear(self):
        table = SymbolTable()
        table.register(5, "x")
        table.clear()
        assert len(table) == 0
        assert table.resolve(5) == ""


# =============================================================================
# File Name Assembler
# =============================================================================

class TestFilenameAssembler:
    """Tests for FilenameAssembler."""

    def test_join_in_order(self):
        files = FilenameAssembler()
        files.push_fragment("a")
        files.push_fragment("b.go")
        assert files.drain_and_join() == "a/b.go"

    def test_drain_clears(self):
        files = FilenameAssembler()
        files.push_fragment("a")
        files.push_fragment("b.go")
        files.drain_and_join()
        assert files.drain_and_join() == ""
        assert len(files) == 0

    def test_empty_drain(self):
        assert FilenameAssembler().drain_and_join() == ""

    def test_rooted_path(self):
        """A leading "/" component yields an absolute path."""
        files = FilenameAssembler()
        for part in ["/", "usr", "go", "src", "main.go"]:
            files.push_fragment(part)
        assert files.drain_and_join() == "/usr/go/src/main.go"

    def test_empty_and_dot_components_cleaned(self):
        files = FilenameAssembler()
        for part in ["src", "", ".", "pkg//", "x.go"]:
            files.push_fragment(part)
        assert files.drain_and_join() == "src/pkg/x.go"

    def test_pending(self):
        files = FilenameAssembler()
        files.push_fragment("a")
        assert files.pending == ("a",)
