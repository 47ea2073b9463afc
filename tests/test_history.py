"""
Tests for source-position history reconstruction.
"""

import logging

import pytest

from go6obj.history import (
    SourceHistory,
    SourcePosition,
    HistoryOp,
    classify_history,
)


@pytest.fixture
def history() -> SourceHistory:
    return SourceHistory()


# =============================================================================
# Enter / Exit / Position
# =============================================================================

class TestPosition:
    """Tests for SourceHistory.position()."""

    def test_empty_history_has_no_position(self, history):
        assert history.position(1) is None

    def test_enter_then_position(self, history):
        history.enter("main.c", 10)
        assert history.position(12) == ("main.c", 2)

    def test_position_is_named(self, history):
        history.enter("main.c", 10)
        pos = history.position(15)
        assert isinstance(pos, SourcePosition)
        assert pos.file == "main.c"
        assert pos.line == 5
        assert str(pos) == "main.c:5"

    def test_before_first_enter(self, history):
        history.enter("main.c", 10)
        assert history.position(9) is None

    def test_exit_returns_to_no_file(self, history):
        """After the outermost file ends, lines resolve as before it began."""
        history.enter("main.c", 10)
        history.exit(20)
        assert history.position(25) is None
        assert history.position(25) == history.position(5)

    def test_exit_resumes_enclosing_file(self, history):
        history.enter("main.go", 1)
        history.enter("defs.go", 10)
        assert history.position(12) == ("defs.go", 2)
        history.exit(20)
        # main.go was at local line 9 when defs.go was entered
        assert history.position(20) == ("main.go", 9)
        assert history.position(23) == ("main.go", 12)

    def test_nested_three_deep(self, history):
        history.enter("a.go", 0)
        history.enter("b.go", 5)
        history.enter("c.go", 8)
        assert history.position(9) == ("c.go", 1)
        history.exit(12)
        assert history.position(13) == ("b.go", 4)
        history.exit(15)
        assert history.position(16) == ("a.go", 6)
        assert history.depth == 1

    def test_queries_are_retroactive(self, history):
        """Earlier lines keep resolving against the frame active then."""
        history.enter("main.go", 1)
        history.enter("defs.go", 10)
        history.exit(20)
        history.enter("more.go", 30)
        assert history.position(5) == ("main.go", 4)
        assert history.position(15) == ("defs.go", 5)
        assert history.position(31) == ("more.go", 1)

    def test_files_in_first_seen_order(self, history):
        history.enter("main.go", 1)
        history.enter("defs.go", 10)
        history.exit(20)
        assert history.files() == ["main.go", "defs.go"]

    def test_frames(self, history):
        history.enter("main.go", 1)
        history.enter("defs.go", 10)
        assert [f.file for f in history.frames] == ["main.go", "defs.go"]

    def test_frames_are_snapshots(self, history):
        history.enter("main.go", 1)
        history.enter("defs.go", 10)
        outer, inner = history.frames
        outer.file = "other.go"
        inner.include_line = 100
        history.exit(20)
        assert history.position(20) == ("main.go", 9)
        assert history.frames[0].file == "main.go"


# =============================================================================
# Malformed Histories
# =============================================================================

class TestMalformed:
    """Malformations are logged and tolerated."""

    def test_exit_on_empty_stack_is_ignored(self, history, caplog):
        with caplog.at_level(logging.WARNING, logger="go6obj.history"):
            history.exit(5)
        assert "no open file" in caplog.text
        assert history.depth == 0
        assert history.position(5) is None

    def test_decreasing_line_is_clamped(self, history, caplog):
        history.enter("main.go", 10)
        with caplog.at_level(logging.WARNING, logger="go6obj.history"):
            history.enter("defs.go", 4)
        assert "clamping" in caplog.text
        assert history.position(12) == ("defs.go", 2)


# =============================================================================
# Imports and Classification
# =============================================================================

class TestImports:
    """Tests for import records."""

    def test_import_populates_mapping(self, history):
        history.record_import(5, "fmt")
        assert history.imports == {5: "fmt"}

    def test_import_leaves_stack_alone(self, history):
        history.enter("main.go", 1)
        history.record_import(5, "fmt")
        assert history.depth == 1
        assert history.position(6) == ("main.go", 5)


class TestClassify:
    """Tests for classify_history() and apply()."""

    def test_import_sentinel_wins(self):
        assert classify_history(-1, "fmt") is HistoryOp.IMPORT
        assert classify_history(-1, "") is HistoryOp.IMPORT

    def test_named_record_enters(self):
        assert classify_history(0, "main.go") is HistoryOp.ENTER

    def test_unnamed_record_exits(self):
        assert classify_history(0, "") is HistoryOp.EXIT

    def test_apply_dispatches(self, history):
        history.apply(HistoryOp.ENTER, 1, "main.go")
        history.apply(HistoryOp.IMPORT, 2, "fmt")
        history.apply(HistoryOp.EXIT, 9)
        assert history.imports == {2: "fmt"}
        assert history.depth == 0
        assert history.position(3) == ("main.go", 2)
