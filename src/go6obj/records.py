"""
Decoded Record Types
====================

This module defines the immutable values the record decoder hands to its
caller: Operand, one decoded addressing/value structure, and Record, one
decoded unit of the object stream.

Both are frozen dataclasses. Every optional field has an explicit
"absent" default (None, "" or D_NONE) that is distinguishable from a
decoded zero, so a consumer can tell a zero offset from a missing float
constant.

Listing Format
--------------
str(operand) follows the assembler's operand syntax:

    $42             integer constant (D_CONST)
    $1.5            float constant
    $"hello\\x00.."  string constant
    main.x+8(SB)    external symbol
    buf<>+0(SB)     file-local symbol
    x+16(SP)        automatic variable
    AX              register
    8(BX)(CX*4)     indirect with index
"""

from dataclasses import dataclass, asdict
import math
from typing import Optional

from go6obj.constants import AddrType, OpcodeSpace, DEFAULT_OPCODES, is_register, type_name
from go6obj.history import SourcePosition


# =============================================================================
# Operand
# =============================================================================

@dataclass(frozen=True)
class Operand:
    """
    One decoded operand.

    Attributes:
        type: Operand type value (register number or D_ pseudo type)
        offset: Signed 64-bit displacement or integer constant
        index: Index register, D_NONE when the operand is not indexed
        scale: Index scale factor, 0 when not indexed
        sym: Resolved symbol name, "" when no symbol was referenced
        float_value: Payload of float constants, otherwise None
        string_value: NSNAME-byte payload of string constants, otherwise None
        go_type: Resolved type symbol name, "" when absent
    """
    type: int = AddrType.D_NONE
    offset: int = 0
    index: int = AddrType.D_NONE
    scale: int = 0
    sym: str = ""
    float_value: Optional[float] = None
    string_value: Optional[bytes] = None
    go_type: str = ""

    @property
    def has_index(self) -> bool:
        return self.index != AddrType.D_NONE

    def _symbolic(self, base: str) -> str:
        name = self.sym
        if self.type == AddrType.D_STATIC:
            name += "<>"
        if self.offset:
            name = f"{name}{self.offset:+d}" if name else str(self.offset)
        elif not name:
            name = "0"
        return f"{name}({base})"

    def __str__(self) -> str:
        t = self.type
        if t == AddrType.D_NONE:
            text = ""
        elif t == AddrType.D_CONST:
            text = f"${self.offset}"
        elif t == AddrType.D_FCONST:
            text = f"${self.float_value!r}"
        elif t == AddrType.D_SCONST:
            blob = self.string_value or b""
            text = "$\"" + "".join(
                chr(b) if 0x20 <= b < 0x7F and b != 0x22 else f"\\x{b:02x}"
                for b in blob
            ) + "\""
        elif t in (AddrType.D_EXTERN, AddrType.D_STATIC):
            text = self._symbolic("SB")
        elif t == AddrType.D_AUTO:
            text = self._symbolic("SP")
        elif t == AddrType.D_PARAM:
            text = self._symbolic("FP")
        elif t == AddrType.D_BRANCH:
            text = f"{self.offset}(PC)"
        elif t in (AddrType.D_FILE, AddrType.D_FILE1):
            text = f"<{self.sym}>"
        elif is_register(t):
            text = type_name(t)
        elif t >= AddrType.D_INDIR:
            text = f"{self.offset}{type_name(t)}" if self.offset else type_name(t)
        else:
            text = f"{type_name(t)}:{self.sym}{self.offset:+d}"

        if self.has_index:
            text += f"({type_name(self.index)}*{self.scale})"
        return text

    def to_dict(self) -> dict:
        """Convert to a JSON-friendly dictionary. Non-finite floats become strings."""
        d = asdict(self)
        if self.string_value is not None:
            d["string_value"] = self.string_value.hex()
        if self.float_value is not None and not math.isfinite(self.float_value):
            d["float_value"] = repr(self.float_value)
        return d


# =============================================================================
# Record
# =============================================================================

@dataclass(frozen=True)
class Record:
    """
    One decoded unit of the object stream.

    Name declarations carry `name`, `symbol_kind`, `handle` and (for
    SIGNAME) `signature`; instruction records carry `line`, `from_`, `to`
    and, when the line is nonzero and a file is open, `pos`.

    Attributes:
        op: Opcode
        line: Virtual line counter, 0 meaning "no position"
        pos: Resolved source position, or None
        name: Declared name ("" for instruction records)
        symbol_kind: Declared kind byte of a name declaration, else None
        handle: Symbol handle assigned by a name declaration, else None
        signature: Signature hash of a SIGNAME declaration, else 0
        from_: Source operand of an instruction record
        to: Destination operand of an instruction record
    """
    op: int
    line: int = 0
    pos: Optional[SourcePosition] = None
    name: str = ""
    symbol_kind: Optional[int] = None
    handle: Optional[int] = None
    signature: int = 0
    from_: Optional[Operand] = None
    to: Optional[Operand] = None

    @property
    def is_declaration(self) -> bool:
        return self.symbol_kind is not None

    def to_dict(self) -> dict:
        """Convert to a JSON-friendly dictionary. Non-finite floats become strings."""
        return {
            "op": self.op,
            "line": self.line,
            "pos": str(self.pos) if self.pos else None,
            "name": self.name,
            "symbol_kind": self.symbol_kind,
            "handle": self.handle,
            "signature": self.signature,
            "from": self.from_.to_dict() if self.from_ else None,
            "to": self.to.to_dict() if self.to else None,
        }

    def __str__(self) -> str:
        return format_record(self)


def format_record(record: Record, opcodes: OpcodeSpace = DEFAULT_OPCODES) -> str:
    """
    Format a record as one listing line.

    Examples:
        NAME     #3 main.x (EXTERN)
        (main.go:12)             op31     main.x(SB),AX
    """
    mnemonic = opcodes.name_of(record.op)
    if record.is_declaration:
        kind = type_name(record.symbol_kind)
        if kind.startswith("D_"):
            kind = kind[2:]
        text = f"{mnemonic:<8} #{record.handle} {record.name} ({kind})"
        if record.signature:
            text += f" sig={record.signature:08x}"
        return text

    texts = [str(a) for a in (record.from_, record.to) if a is not None]
    operands = ",".join(t for t in texts if t)
    if record.pos is not None:
        where = f"({record.pos})"
    elif record.line:
        where = f"(line {record.line})"
    else:
        where = ""
    return f"{where:<24} {mnemonic:<8} {operands}".rstrip()
