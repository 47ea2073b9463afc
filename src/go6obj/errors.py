"""
go6obj Error Hierarchy
======================

This module defines the exception hierarchy for the object stream decoder.
All exceptions inherit from ObjectFileError, allowing callers to catch every
decoder failure with a single except clause.

Exception Hierarchy
-------------------
ObjectFileError (base)
└── DecodeError - structural failure while decoding the byte stream
    ├── OpcodeOutOfRange - opcode outside the valid opcode space
    └── TruncatedField - short read or I/O failure inside a named field

Design Philosophy
-----------------
A decode error is terminal for the stream: the format carries no sync
markers, so the reader never tries to skip ahead after a failure. Each
exception records the byte offset where the failing read began so that a
hex dump of the input can be lined up with the message.

Error messages follow this format:
    offset 0x0012: error while reading from address: expected 4 bytes, got 1
"""

from typing import Optional


# =============================================================================
# Base Exception Class
# =============================================================================

class ObjectFileError(Exception):
    """
    Base exception for all go6obj errors.

        try:
            records = list(ObjectReader.from_file("main.6"))
        except ObjectFileError as e:
            print(f"Error: {e}")
    """
    pass


# =============================================================================
# Stream Decoding Exceptions
# =============================================================================

class DecodeError(ObjectFileError):
    """
    Base exception for errors raised while decoding a record.

    Attributes:
        message: The error description
        offset: Byte offset in the stream where the failing read started
                (None when the source does not track offsets)
    """

    def __init__(self, message: str, offset: Optional[int] = None):
        self.message = message
        self.offset = offset
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.offset is None:
            return self.message
        return f"offset 0x{self.offset:04X}: {self.message}"


class OpcodeOutOfRange(DecodeError):
    """
    Opcode value outside the valid opcode space.

    Raised when the 2-byte opcode is less than or equal to the low sentinel
    or greater than or equal to the high sentinel of the configured
    OpcodeSpace. Only the two opcode bytes have been consumed when this is
    raised.
    """

    def __init__(self, opcode: int, offset: Optional[int] = None):
        self.opcode = opcode
        super().__init__(f"opcode {opcode} out of range", offset=offset)


class TruncatedField(DecodeError):
    """
    Short read or I/O failure while decoding a named field.

    Attributes:
        field: Name of the field being read (e.g. "line number",
               "from address", "symbol value")
        cause: The underlying exception (EOFError for short reads,
               OSError for failures of the byte source)
        partial: The partially decoded operand when the failure happened
                 inside an operand, otherwise None. It must not be used
                 as if it were complete.
    """

    def __init__(
        self,
        field: str,
        cause: BaseException,
        offset: Optional[int] = None,
        partial: Optional[object] = None,
    ):
        self.field = field
        self.cause = cause
        self.partial = partial
        super().__init__(f"error while reading {field}: {cause}", offset=offset)
