"""
go6obj - Decoder for Legacy Compiler Object Streams
===================================================

This package decodes the intermediate object stream written by the early
amd64 compiler backend: a flat sequence of opcode-tagged little-endian
records describing instructions, symbol declarations and source-position
history.

From the raw bytes it reconstructs:

- the instruction records, with operands decoded and symbol handles
  resolved to names,
- the symbol table binding one-byte handles to names,
- the mapping from the compiler's global "virtual line" counter back to
  source files and local line numbers, plus the imported packages.

Main Components
---------------
- **reader**: ObjectReader, the pull decoder (one record per call)
- **records**: immutable Record and Operand values
- **symbols**: SymbolTable and FilenameAssembler
- **history**: SourceHistory, the virtual line -> (file, line) mapping
- **constants**: opcode space, operand types and flag bits
- **cli**: the go6objdump command

Quick Start
-----------
    >>> from go6obj import ObjectReader
    >>> reader = ObjectReader.from_file("main.6")
    >>> for record in reader:
    ...     if record.pos:
    ...         print(record.pos, record.from_, record.to)
    >>> history, imports = reader.files()
    >>> history.position(120)
    SourcePosition(file='main.go', line=17)

Or from the command line:
    $ go6objdump main.6 --history
"""

__version__ = "1.0.0"

# =============================================================================
# Public API Exports
# =============================================================================

from go6obj.constants import (
    AddrType,
    OperandFlag,
    OpcodeSpace,
    DEFAULT_OPCODES,
    NSNAME,
    NSYM,
)
from go6obj.errors import (
    ObjectFileError,
    DecodeError,
    OpcodeOutOfRange,
    TruncatedField,
)
from go6obj.history import (
    SourceHistory,
    SourcePosition,
    HistoryOp,
    classify_history,
)
from go6obj.records import Operand, Record, format_record
from go6obj.symbols import SymbolTable, FilenameAssembler
from go6obj.reader import ObjectReader, ByteSource, decode_stream, decode_file

__all__ = [
    "__version__",
    # Constants
    "AddrType",
    "OperandFlag",
    "OpcodeSpace",
    "DEFAULT_OPCODES",
    "NSNAME",
    "NSYM",
    # Errors
    "ObjectFileError",
    "DecodeError",
    "OpcodeOutOfRange",
    "TruncatedField",
    # History
    "SourceHistory",
    "SourcePosition",
    "HistoryOp",
    "classify_history",
    # Records
    "Operand",
    "Record",
    "format_record",
    # Symbols
    "SymbolTable",
    "FilenameAssembler",
    # Reader
    "ObjectReader",
    "ByteSource",
    "decode_stream",
    "decode_file",
]
