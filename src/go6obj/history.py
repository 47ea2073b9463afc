"""
Source-Position History
=======================

The object stream does not carry (file, line) pairs. Every instruction
carries a *virtual line*: a single counter that increases across all the
source text the compiler read, with included files spliced in where they
were included. HISTORY records mark the points where the compiler entered
or left a file, and this module turns those marks back into positions.

Frames
------
The active files form a stack. Entering a file at virtual line L pushes a
frame whose local line is 0 at L; leaving it at virtual line M pops the
frame, and the enclosing file resumes at M with the local line it had at
the point of inclusion:

    enter("main.go", 1)     main.go:0 at line 1
    enter("defs.go", 10)    main.go is at local 9 here
    position(12)            -> defs.go:2
    exit(20)
    position(20)            -> main.go:9
    position(23)            -> main.go:12

Each enter/exit also records a segment (start line, file, local base).
Positions are answered from the segments, so the history can be queried
for any virtual line after the whole stream has been decoded.

Imports
-------
A HISTORY record whose `to` offset is -1 marks an imported package. It is
recorded in a separate {virtual line: library} mapping and leaves the
frame stack alone.
"""

from bisect import bisect_right
from dataclasses import dataclass, replace
from enum import Enum
from typing import NamedTuple, Optional
import logging


logger = logging.getLogger(__name__)


# Sentinel `to` offset marking an import HISTORY record
IMPORT_OFFSET = -1


# =============================================================================
# Data Structures
# =============================================================================

class SourcePosition(NamedTuple):
    """A resolved (file, local line) pair. Compares equal to a plain tuple."""
    file: str
    line: int

    def __str__(self) -> str:
        return f"{self.file}:{self.line}"


@dataclass
class Frame:
    """
    One active file on the history stack.

    Attributes:
        file: Source file name
        start: Virtual line where the current stretch of this file began
        base: Local line number at `start`
        include_line: Local line of the enclosing file where this one was
                      entered; the enclosing file resumes there on exit
    """
    file: str
    start: int
    base: int = 0
    include_line: int = 0

    def local_line(self, virtual_line: int) -> int:
        return virtual_line - self.start + self.base


@dataclass(frozen=True)
class Segment:
    """A stretch of virtual lines mapped to one file (None = no file)."""
    start: int
    file: Optional[str]
    base: int


class HistoryOp(Enum):
    """The three things a HISTORY record can do."""
    ENTER = "enter"
    EXIT = "exit"
    IMPORT = "import"


def classify_history(to_offset: int, filename: str) -> HistoryOp:
    """
    Decide what a HISTORY record does from its own fields.

    Args:
        to_offset: Offset of the record's `to` operand
        filename: Path assembled from the D_FILE declarations that
                  immediately preceded the record ("" if none)

    Returns:
        IMPORT for the -1 sentinel offset, ENTER when the record names a
        file, EXIT otherwise
    """
    if to_offset == IMPORT_OFFSET:
        return HistoryOp.IMPORT
    if filename:
        return HistoryOp.ENTER
    return HistoryOp.EXIT


# =============================================================================
# History
# =============================================================================

class SourceHistory:
    """
    Maps virtual lines back to (file, local line).

    Attributes:
        imports: Virtual line -> imported library name
    """

    def __init__(self):
        self._stack: list[Frame] = []
        self._segments: list[Segment] = []
        self._starts: list[int] = []
        self._last_line = 0
        self.imports: dict[int, str] = {}

    # -------------------------------------------------------------------------
    # Updates
    # -------------------------------------------------------------------------

    def enter(self, file_name: str, virtual_line: int) -> None:
        """Begin a new innermost frame for `file_name` at `virtual_line`."""
        virtual_line = self._check_order(virtual_line)
        include_line = 0
        if self._stack:
            include_line = self._stack[-1].local_line(virtual_line)
        frame = Frame(file=file_name, start=virtual_line, include_line=include_line)
        self._stack.append(frame)
        self._add_segment(virtual_line, file_name, 0)
        logger.debug(f"Enter {file_name} at line {virtual_line} (depth {self.depth})")

    def exit(self, virtual_line: int) -> None:
        """
        End the innermost frame at `virtual_line`.

        The enclosing frame, if any, resumes with the local line it had
        when the ended frame was entered. Exiting with no active frame is
        logged and ignored.
        """
        virtual_line = self._check_order(virtual_line)
        if not self._stack:
            logger.warning(f"History exit at line {virtual_line} with no open file")
            return

        frame = self._stack.pop()
        if self._stack:
            parent = self._stack[-1]
            parent.start = virtual_line
            parent.base = frame.include_line
            self._add_segment(virtual_line, parent.file, parent.base)
        else:
            self._add_segment(virtual_line, None, 0)
        logger.debug(f"Exit {frame.file} at line {virtual_line} (depth {self.depth})")

    def record_import(self, virtual_line: int, library_name: str) -> None:
        """Note that `virtual_line` starts the imported unit `library_name`."""
        self.imports[virtual_line] = library_name
        logger.debug(f"Import {library_name!r} at line {virtual_line}")

    def apply(self, op: HistoryOp, virtual_line: int, file_name: str = "") -> None:
        """Apply one classified HISTORY record."""
        if op is HistoryOp.IMPORT:
            self.record_import(virtual_line, file_name)
        elif op is HistoryOp.ENTER:
            self.enter(file_name, virtual_line)
        else:
            self.exit(virtual_line)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def position(self, virtual_line: int) -> Optional[SourcePosition]:
        """
        Resolve a virtual line.

        Returns:
            The innermost file covering `virtual_line` and the local line
            within it, or None if no file was open at that line
        """
        i = bisect_right(self._starts, virtual_line) - 1
        if i < 0:
            return None
        segment = self._segments[i]
        if segment.file is None:
            return None
        return SourcePosition(segment.file, virtual_line - segment.start + segment.base)

    @property
    def depth(self) -> int:
        """Number of currently open frames."""
        return len(self._stack)

    @property
    def frames(self) -> tuple[Frame, ...]:
        """Snapshots of the currently open frames, outermost first."""
        return tuple(replace(frame) for frame in self._stack)

    @property
    def segments(self) -> tuple[Segment, ...]:
        return tuple(self._segments)

    def files(self) -> list[str]:
        """Distinct file names in the order they were first entered."""
        seen: dict[str, None] = {}
        for segment in self._segments:
            if segment.file is not None:
                seen.setdefault(segment.file)
        return list(seen)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _check_order(self, virtual_line: int) -> int:
        if virtual_line < self._last_line:
            logger.warning(
                f"History line {virtual_line} precedes line {self._last_line}; clamping"
            )
            return self._last_line
        self._last_line = virtual_line
        return virtual_line

    def _add_segment(self, start: int, file_name: Optional[str], base: int) -> None:
        self._segments.append(Segment(start, file_name, base))
        self._starts.append(start)

    def __repr__(self) -> str:
        return (
            f"SourceHistory(depth={self.depth}, segments={len(self._segments)}, "
            f"imports={len(self.imports)})"
        )
