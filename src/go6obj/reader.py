"""
Object Stream Reader
====================

This module decodes the object stream one record at a time. The reader
owns all decoding state for a single stream (symbol table, pending file
name components and source-position history) and is a plain iterator:

    >>> from go6obj import ObjectReader
    >>> reader = ObjectReader.from_file("main.6")
    >>> for record in reader:
    ...     print(record)
    >>> history, imports = reader.files()

Records must be consumed in stream order: a record's symbol names and
source position depend on every declaration and HISTORY record before it.

Errors
------
next_record() raises OpcodeOutOfRange for opcodes outside the opcode space
and TruncatedField for short reads, naming the field that was being read.
Either error ends the stream; the reader keeps raising it on later calls
instead of trying to resynchronise.
"""

from pathlib import Path
from typing import BinaryIO, Iterator, Optional, Union
import io
import logging
import struct

from go6obj.constants import AddrType, OperandFlag, OpcodeSpace, DEFAULT_OPCODES, NSNAME
from go6obj.errors import DecodeError, OpcodeOutOfRange, TruncatedField
from go6obj.history import SourceHistory, classify_history, HistoryOp
from go6obj.records import Operand, Record
from go6obj.symbols import SymbolTable, FilenameAssembler


logger = logging.getLogger(__name__)


# =============================================================================
# Byte Source
# =============================================================================

class ByteSource:
    """
    Little-endian field reads over a binary stream.

    Short reads raise EOFError; failures of the underlying stream propagate
    as OSError. The record decoder turns both into TruncatedField.
    """

    _U16 = struct.Struct("<H")
    _U32 = struct.Struct("<I")
    _I32 = struct.Struct("<i")
    _I64 = struct.Struct("<q")
    _F64 = struct.Struct("<d")

    def __init__(self, stream: BinaryIO):
        self._stream = stream
        self.offset = 0

    def read(self, n: int) -> bytes:
        """Read up to n bytes; fewer only at end of stream."""
        data = self._stream.read(n)
        self.offset += len(data)
        return data

    def read_exact(self, n: int) -> bytes:
        data = self.read(n)
        if len(data) != n:
            raise EOFError(f"expected {n} bytes, got {len(data)}")
        return data

    def read_u8(self) -> int:
        return self.read_exact(1)[0]

    def read_u16(self) -> int:
        return self._U16.unpack(self.read_exact(2))[0]

    def read_u32(self) -> int:
        return self._U32.unpack(self.read_exact(4))[0]

    def read_i32(self) -> int:
        return self._I32.unpack(self.read_exact(4))[0]

    def read_i64(self) -> int:
        return self._I64.unpack(self.read_exact(8))[0]

    def read_f64(self) -> float:
        return self._F64.unpack(self.read_exact(8))[0]

    def read_cstring(self) -> bytes:
        """Read up to and including a NUL byte; return the bytes before it."""
        out = bytearray()
        while True:
            b = self.read(1)
            if not b:
                raise EOFError(f"unterminated string after {len(out)} bytes")
            if b == b"\x00":
                return bytes(out)
            out += b


# =============================================================================
# Object Reader
# =============================================================================

class ObjectReader:
    """
    Pull decoder for one object stream.

    Attributes:
        opcodes: Opcode layout the reader dispatches on
        symbols: Symbol table, updated by every name declaration
        history: Source-position history, updated by HISTORY records
    """

    def __init__(self, stream: BinaryIO, opcodes: OpcodeSpace = DEFAULT_OPCODES):
        self.opcodes = opcodes
        self.symbols = SymbolTable()
        self.history = SourceHistory()
        self._source = ByteSource(stream)
        self._filenames = FilenameAssembler()
        self._error: Optional[DecodeError] = None
        self._done = False
        self.record_count = 0

    @classmethod
    def from_bytes(cls, data: bytes, opcodes: OpcodeSpace = DEFAULT_OPCODES) -> "ObjectReader":
        """Create a reader over an in-memory object stream."""
        return cls(io.BytesIO(data), opcodes=opcodes)

    @classmethod
    def from_file(
        cls, filepath: Union[str, Path], opcodes: OpcodeSpace = DEFAULT_OPCODES
    ) -> "ObjectReader":
        """
        Create a reader over the contents of a file.

        Raises:
            FileNotFoundError: If the file doesn't exist
        """
        data = Path(filepath).read_bytes()
        return cls.from_bytes(data, opcodes=opcodes)

    @property
    def offset(self) -> int:
        """Number of bytes consumed so far."""
        return self._source.offset

    def files(self) -> tuple[SourceHistory, dict[int, str]]:
        """Get the source-position history and the imports mapping."""
        return self.history, self.history.imports

    # -------------------------------------------------------------------------
    # Iteration
    # -------------------------------------------------------------------------

    def __iter__(self) -> Iterator[Record]:
        return self

    def __next__(self) -> Record:
        record = self.next_record()
        if record is None:
            raise StopIteration
        return record

    def next_record(self) -> Optional[Record]:
        """
        Decode the next record.

        Returns:
            The decoded record, or None at the end of the stream

        Raises:
            OpcodeOutOfRange: If the opcode is outside the opcode space
            TruncatedField: If the stream ends or fails inside a record
        """
        if self._error is not None:
            raise self._error.with_traceback(None)
        if self._done:
            return None

        try:
            record = self._read_record()
        except DecodeError as e:
            self._error = e
            logger.error(f"Decode failed after {self.record_count} records: {e}")
            raise

        if record is None:
            self._done = True
            logger.info(
                f"End of stream: {self.record_count} records, "
                f"{len(self.history.files())} files, {len(self.history.imports)} imports"
            )
            return None
        self.record_count += 1
        return record

    # -------------------------------------------------------------------------
    # Records
    # -------------------------------------------------------------------------

    def _field(self, name: str, read, *args):
        start = self._source.offset
        try:
            return read(*args)
        except (EOFError, OSError) as e:
            raise TruncatedField(name, e, offset=start) from e

    def _read_record(self) -> Optional[Record]:
        start = self._source.offset
        try:
            head = self._source.read(2)
        except OSError as e:
            raise TruncatedField("opcode", e, offset=start) from e
        if not head:
            return None
        if len(head) < 2:
            raise TruncatedField("opcode", EOFError("expected 2 bytes, got 1"), offset=start)

        op = int.from_bytes(head, "little")
        if not self.opcodes.in_range(op):
            raise OpcodeOutOfRange(op, offset=start)

        if self.opcodes.is_declaration(op):
            return self._read_declaration(op)
        return self._read_instruction(op)

    def _read_declaration(self, op: int) -> Record:
        signature = 0
        if op == self.opcodes.signed_name:
            signature = self._field("signature", self._source.read_u32)
        kind = self._field("symbol type", self._source.read_u8)
        handle = self._field("symbol id", self._source.read_u8)
        raw = self._field("symbol value", self._source.read_cstring)
        name = raw.decode("utf-8", errors="surrogateescape")

        self.symbols.register(handle, name)
        if kind == AddrType.D_FILE:
            # First character is a marker, not part of the path component
            self._filenames.push_fragment(name[1:])
        logger.debug(f"Declared #{handle} = {name!r} (kind {kind})")

        return Record(
            op=op,
            name=name,
            symbol_kind=kind,
            handle=handle,
            signature=signature,
        )

    def _read_instruction(self, op: int) -> Record:
        line = self._field("line number", self._source.read_u32)
        from_ = self.read_operand("from address")
        to = self.read_operand("to address")

        pos = None
        if op == self.opcodes.history:
            filename = self._filenames.drain_and_join()
            action = classify_history(to.offset, filename)
            self.history.apply(action, line, filename)
            if action is HistoryOp.IMPORT:
                logger.info(f"Import {filename!r} at line {line}")
        elif line != 0:
            pos = self.history.position(line)

        return Record(op=op, line=line, pos=pos, from_=from_, to=to)

    # -------------------------------------------------------------------------
    # Operands
    # -------------------------------------------------------------------------

    def read_operand(self, field: str = "operand") -> Operand:
        """
        Decode one operand: a flag byte followed by the fields it enables.

        Args:
            field: Field name reported if the read fails

        Raises:
            TruncatedField: On the first short read, with the operand
                            decoded so far attached as `partial`
        """
        start = self._source.offset
        src = self._source
        fields: dict = {}
        try:
            flags = OperandFlag(src.read_u8())

            if flags & OperandFlag.T_INDEX:
                fields["index"] = src.read_u8()
                fields["scale"] = src.read_u8()

            if flags & OperandFlag.T_OFFSET:
                if flags & OperandFlag.T_64:
                    fields["offset"] = src.read_i64()
                else:
                    fields["offset"] = src.read_i32()

            if flags & OperandFlag.T_SYM:
                fields["sym"] = self.symbols.resolve(src.read_u8())

            if flags & OperandFlag.T_FCONST:
                fields["type"] = AddrType.D_FCONST
                fields["float_value"] = src.read_f64()
            elif flags & OperandFlag.T_SCONST:
                fields["type"] = AddrType.D_SCONST
                fields["string_value"] = src.read_exact(NSNAME)

            if flags & OperandFlag.T_TYPE:
                fields["type"] = src.read_u8()

            if flags & OperandFlag.T_GOTYPE:
                fields["go_type"] = self.symbols.resolve(src.read_u8())
        except (EOFError, OSError) as e:
            raise TruncatedField(field, e, offset=start, partial=Operand(**fields)) from e

        return Operand(**fields)


# =============================================================================
# Convenience Functions
# =============================================================================

def decode_stream(
    data: bytes, opcodes: OpcodeSpace = DEFAULT_OPCODES
) -> tuple[list[Record], SourceHistory, dict[int, str]]:
    """
    Decode a whole object stream held in memory.

    Returns:
        (records, history, imports)

    Raises:
        DecodeError: If the stream is malformed
    """
    reader = ObjectReader.from_bytes(data, opcodes=opcodes)
    records = list(reader)
    history, imports = reader.files()
    return records, history, imports


def decode_file(
    filepath: Union[str, Path], opcodes: OpcodeSpace = DEFAULT_OPCODES
) -> tuple[list[Record], SourceHistory, dict[int, str]]:
    """Decode a whole object stream read from disk."""
    return decode_stream(Path(filepath).read_bytes(), opcodes=opcodes)
