"""
Object Stream Format Constants
==============================

This module defines the numeric vocabulary of the amd64 intermediate object
stream: the opcode space the record decoder dispatches on, the operand type
values, and the flag bits that select which optional operand fields follow.

Record Layout
-------------
Every record starts with a 2-byte little-endian opcode.

**Name declarations** (NAME, SIGNAME):
    [signature:4 (SIGNAME only)] [kind:1] [handle:1] [name...] 0x00

**Instructions** (everything else, including HISTORY):
    [line:4] [from operand] [to operand]

Operand Layout
--------------
One flag byte, then the fields its bits enable, in this order:

    T_INDEX   -> index:1 scale:1
    T_OFFSET  -> offset:8 if T_64 else offset:4 (sign-extended)
    T_SYM     -> symbol handle:1
    T_FCONST  -> IEEE-754 double:8
    T_SCONST  -> string blob:NSNAME (only if T_FCONST is clear)
    T_TYPE    -> type:1 (overrides the constant type)
    T_GOTYPE  -> type symbol handle:1

Operand Types
-------------
Values below D_NONE name machine registers; D_INDIR + reg is an indirect
reference through that register. The pseudo types between D_NONE and
D_INDIR describe symbols, constants and file markers.
"""

from dataclasses import dataclass, fields, replace
from enum import IntEnum, IntFlag
import logging
import os


logger = logging.getLogger(__name__)


# Width of the fixed string constant blob carried by D_SCONST operands
NSNAME = 8

# Number of symbol table slots (handles are a single byte)
NSYM = 256


# =============================================================================
# Operand Flag Bits
# =============================================================================

class OperandFlag(IntFlag):
    """Bits of the operand flag byte; each enables one optional field."""
    T_TYPE = 1 << 0     # explicit type byte follows
    T_INDEX = 1 << 1    # index register and scale follow
    T_OFFSET = 1 << 2   # offset follows (4 or 8 bytes)
    T_FCONST = 1 << 3   # 8-byte float constant follows
    T_SYM = 1 << 4      # symbol handle follows
    T_SCONST = 1 << 5   # NSNAME-byte string constant follows
    T_64 = 1 << 6       # offset is 8 bytes instead of 4
    T_GOTYPE = 1 << 7   # type symbol handle follows


# =============================================================================
# Operand Types
# =============================================================================

class AddrType(IntEnum):
    """
    Operand type values.

    Register banks are listed by their first member; the remaining
    registers of a bank follow consecutively (see REGISTER_NAMES).
    """
    D_AL = 0
    D_AX = 16
    D_AH = 32
    D_F0 = 36
    D_M0 = 44
    D_X0 = 52
    D_CS = 68
    D_GDTR = 74
    D_CR = 79
    D_DR = 95
    D_TR = 103

    D_NONE = 111        # no operand / no index register
    D_BRANCH = 112      # branch target (offset is a program counter)
    D_EXTERN = 113      # external symbol reference
    D_STATIC = 114      # file-local symbol reference
    D_AUTO = 115        # automatic (stack) variable
    D_PARAM = 116       # function parameter
    D_CONST = 117       # integer constant
    D_FCONST = 118      # float constant
    D_SCONST = 119      # string constant
    D_ADDR = 120        # address of a memory operand
    D_FILE = 121        # source file name fragment
    D_FILE1 = 122       # continuation of a file name
    D_INDIR = 123       # indirect through register (D_INDIR + reg)


def _register_names() -> dict[int, str]:
    names: dict[int, str] = {}
    banks = [
        (AddrType.D_AL, ["AL", "CL", "DL", "BL", "SPB", "BPB", "SIB", "DIB"]
            + [f"R{n}B" for n in range(8, 16)]),
        (AddrType.D_AX, ["AX", "CX", "DX", "BX", "SP", "BP", "SI", "DI"]
            + [f"R{n}" for n in range(8, 16)]),
        (AddrType.D_AH, ["AH", "CH", "DH", "BH"]),
        (AddrType.D_F0, [f"F{n}" for n in range(8)]),
        (AddrType.D_M0, [f"M{n}" for n in range(8)]),
        (AddrType.D_X0, [f"X{n}" for n in range(16)]),
        (AddrType.D_CS, ["CS", "SS", "DS", "ES", "FS", "GS"]),
        (AddrType.D_GDTR, ["GDTR", "IDTR", "LDTR", "MSW", "TASK"]),
        (AddrType.D_CR, [f"CR{n}" for n in range(16)]),
        (AddrType.D_DR, [f"DR{n}" for n in range(8)]),
        (AddrType.D_TR, [f"TR{n}" for n in range(8)]),
    ]
    for base, bank in banks:
        for i, name in enumerate(bank):
            names[base + i] = name
    return names


# Register number -> assembler name, for every value below D_NONE
REGISTER_NAMES = _register_names()


def is_register(type_value: int) -> bool:
    """True if the operand type names a machine register."""
    return 0 <= type_value < AddrType.D_NONE


def type_name(type_value: int) -> str:
    """
    Get a printable name for an operand type value.

    Registers print as their assembler name, pseudo types as their
    D_ constant name and indirect types as "(REG)".
    """
    if type_value in REGISTER_NAMES:
        return REGISTER_NAMES[type_value]
    if type_value >= AddrType.D_INDIR:
        reg = type_value - AddrType.D_INDIR
        return f"({REGISTER_NAMES.get(reg, reg)})"
    try:
        return AddrType(type_value).name
    except ValueError:
        return f"type{type_value}"


# =============================================================================
# Opcode Space
# =============================================================================

@dataclass(frozen=True)
class OpcodeSpace:
    """
    The opcode values the record decoder dispatches on.

    Opcodes must lie strictly between `low` and `high`; everything that is
    not a name declaration or a history marker is decoded as a generic
    instruction record. The defaults follow the amd64 object layout and can
    be overridden for a different backend.

    Attributes:
        low: Low sentinel (AXXX); this value and anything below is invalid
        history: Source-position history pseudo-instruction (AHISTORY)
        name: Symbol name declaration (ANAME)
        signed_name: Name declaration carrying a 4-byte signature (ASIGNAME)
        high: High sentinel (ALAST); this value and anything above is invalid
    """
    low: int = 0
    history: int = 56
    name: int = 127
    signed_name: int = 576
    high: int = 577

    def __post_init__(self) -> None:
        for op in (self.history, self.name, self.signed_name):
            if not self.low < op < self.high:
                raise ValueError(
                    f"opcode {op} outside opcode space ({self.low}, {self.high})"
                )

    def in_range(self, op: int) -> bool:
        """True if `op` lies strictly between the two sentinels."""
        return self.low < op < self.high

    def is_declaration(self, op: int) -> bool:
        """True for NAME and SIGNAME records."""
        return op in (self.name, self.signed_name)

    def name_of(self, op: int) -> str:
        """Get the mnemonic of a pseudo-op, or a numeric placeholder."""
        names = {
            self.history: "HISTORY",
            self.name: "NAME",
            self.signed_name: "SIGNAME",
        }
        return names.get(op, f"op{op}")

    @classmethod
    def from_env(cls) -> "OpcodeSpace":
        """
        Create an OpcodeSpace from environment variables.

        Environment variables (all optional, decimal or 0x-prefixed hex):
            GO6OBJ_OP_LOW, GO6OBJ_OP_HISTORY, GO6OBJ_OP_NAME,
            GO6OBJ_OP_SIGNED_NAME, GO6OBJ_OP_HIGH

        Returns:
            OpcodeSpace with defaults replaced by any valid overrides

        Raises:
            ValueError: If the overrides leave a pseudo-op outside the
                        (low, high) range
        """
        overrides = {}
        for f in fields(cls):
            var = f"GO6OBJ_OP_{f.name.upper()}"
            if value := os.environ.get(var):
                try:
                    overrides[f.name] = int(value, 0)
                except ValueError:
                    logger.warning(f"Ignoring {var}={value!r}: not an integer")
        return replace(cls(), **overrides)


# Default layout used when the caller does not pass one
DEFAULT_OPCODES = OpcodeSpace()
