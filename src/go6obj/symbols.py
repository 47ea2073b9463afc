"""
Symbol Table and File Name Assembly
===================================

Name declaration records bind a one-byte handle to a name. Operands that
follow refer to symbols by handle only, so the decoder keeps a 256-slot
table and resolves each handle against its contents *at the point of use*:
the format reuses handles within one stream, and a later declaration
silently replaces the earlier binding.

Declarations whose kind is D_FILE carry one component of a source file
path rather than a symbol. The decoder collects those components in a
FilenameAssembler until the next HISTORY record joins them into a path.

Usage:
    table = SymbolTable()
    table.register(3, "main.init")
    table.resolve(3)      # -> "main.init"
    table.resolve(4)      # -> "" (never registered)

    files = FilenameAssembler()
    files.push_fragment("src")
    files.push_fragment("main.go")
    files.drain_and_join()  # -> "src/main.go"
    files.drain_and_join()  # -> ""
"""

from typing import Iterator
import logging
import posixpath

from go6obj.constants import NSYM


logger = logging.getLogger(__name__)


# =============================================================================
# Symbol Table
# =============================================================================

class SymbolTable:
    """
    Fixed-size mapping from an 8-bit handle to a symbol name.

    Empty slots hold "". Handles outside 0-255 can never be registered and
    resolve to "" as well, so a dangling reference is not an error.
    """

    def __init__(self):
        self._slots: list[str] = [""] * NSYM

    def register(self, handle: int, name: str) -> None:
        """
        Bind `handle` to `name`, replacing any earlier binding.

        Raises:
            ValueError: If handle is not in 0-255
        """
        if not 0 <= handle < NSYM:
            raise ValueError(f"symbol handle {handle} out of range 0-{NSYM - 1}")
        previous = self._slots[handle]
        if previous and previous != name:
            logger.debug(f"Handle {handle} rebound: '{previous}' -> '{name}'")
        self._slots[handle] = name

    def resolve(self, handle: int) -> str:
        """Get the name currently bound to `handle`, or "" if none."""
        if not 0 <= handle < NSYM:
            return ""
        return self._slots[handle]

    def items(self) -> Iterator[tuple[int, str]]:
        """Iterate over (handle, name) for every non-empty slot."""
        for handle, name in enumerate(self._slots):
            if name:
                yield handle, name

    def clear(self) -> None:
        """Empty every slot."""
        self._slots = [""] * NSYM

    def __contains__(self, handle: int) -> bool:
        return bool(self.resolve(handle))

    def __len__(self) -> int:
        return sum(1 for name in self._slots if name)

    def __repr__(self) -> str:
        return f"SymbolTable({len(self)} bound)"


# =============================================================================
# File Name Assembly
# =============================================================================

class FilenameAssembler:
    """
    Collects path components from D_FILE declarations.

    Components are joined with "/" in the order received, skipping empty
    ones and cleaning redundant separators and "." elements, the way the
    native toolchain joins paths.
    """

    def __init__(self):
        self._fragments: list[str] = []

    def push_fragment(self, text: str) -> None:
        """Append one path component."""
        self._fragments.append(text)

    def drain_and_join(self) -> str:
        """
        Join all pending components into one path and forget them.

        Returns:
            The joined path, or "" when nothing was pushed since the
            previous drain
        """
        parts = [p for p in self._fragments if p]
        self._fragments = []
        if not parts:
            return ""

        path = posixpath.normpath("/".join(parts))
        # normpath keeps exactly two leading slashes; a rooted path has one
        if path.startswith("//"):
            path = "/" + path.lstrip("/")
        return path

    @property
    def pending(self) -> tuple[str, ...]:
        """Components pushed since the last drain."""
        return tuple(self._fragments)

    def __len__(self) -> int:
        return len(self._fragments)
