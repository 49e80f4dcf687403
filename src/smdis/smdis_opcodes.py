"""Opcode definitions and the per-opcode format descriptor table."""

from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, Iterable, Tuple


class OperandFormat(IntEnum):
    """Operand encoding of an opcode (the JOF_* type of the engine)."""
    BYTE = 0                # No operand
    JUMP = 1                # Signed 32-bit jump offset
    ATOM = 2                # 32-bit atom table index
    UINT16 = 3              # 16-bit immediate
    TABLESWITCH = 4         # default, low, high, then (high - low + 1) jump offsets
    QARG = 6                # 16-bit argument index
    LOCAL = 7               # Local slot index (24-bit, or 16-bit for 3-byte forms)
    DOUBLE = 8              # 32-bit constant table index
    UINT24 = 12             # 24-bit immediate
    UINT8 = 13              # 8-bit immediate
    INT32 = 14              # Signed 32-bit immediate
    OBJECT = 15             # 32-bit object table index
    REGEXP = 17             # 32-bit object table index of a regexp
    INT8 = 18               # Signed 8-bit immediate
    SCOPECOORD = 21         # 8-bit hops, 24-bit slot


# Formats whose operand is an integer immediate (tracked by the idiom history).
IMMEDIATE_FORMATS = frozenset({
    OperandFormat.UINT8,
    OperandFormat.UINT16,
    OperandFormat.UINT24,
    OperandFormat.INT8,
    OperandFormat.INT32,
})


# Byte length used for opcodes whose length depends on their operands.
VARIABLE_LENGTH = -1


def _op(n: int, length: int = 1, fmt: OperandFormat = OperandFormat.BYTE) -> Tuple[int, int, OperandFormat]:
    """Helper to construct an Opcode value: (byte_value, instruction_length, operand_format)."""
    return (n, length, fmt)


class Opcode(IntEnum):
    """Bytecode operation codes.

    Each member's value is a (byte_value, length, format) tuple.  The byte value
    is the IntEnum value; length and format are the defaults used to build the
    standard opcode table.
    """

    _length: int
    _format: OperandFormat

    def __new__(cls, int_value: int, length: int = 1, fmt: OperandFormat = OperandFormat.BYTE) -> 'Opcode':
        obj = int.__new__(cls, int_value)
        obj._value_ = int_value
        obj._length = length
        obj._format = fmt
        return obj

    @property
    def length(self) -> int:
        """Default instruction length in bytes (VARIABLE_LENGTH for switch tables)."""
        return self._length

    @property
    def format(self) -> OperandFormat:
        """Default operand format."""
        return self._format

    @property
    def mnemonic(self) -> str:
        """Mnemonic as printed in listings."""
        return self.name.lower()

    NOP = _op(0)
    UNDEFINED = _op(1)
    ENTERWITH = _op(3, 5, OperandFormat.OBJECT)
    LEAVEWITH = _op(4)
    RETURN = _op(5)
    GOTO = _op(6, 5, OperandFormat.JUMP)
    IFEQ = _op(7, 5, OperandFormat.JUMP)
    IFNE = _op(8, 5, OperandFormat.JUMP)
    ARGUMENTS = _op(9)
    SWAP = _op(10)
    POPN = _op(11, 3, OperandFormat.UINT16)
    DUP = _op(12)
    DUP2 = _op(13)
    SETCONST = _op(14, 5, OperandFormat.ATOM)
    BITOR = _op(15)
    BITXOR = _op(16)
    BITAND = _op(17)
    EQ = _op(18)
    NE = _op(19)
    LT = _op(20)
    LE = _op(21)
    GT = _op(22)
    GE = _op(23)
    LSH = _op(24)
    RSH = _op(25)
    URSH = _op(26)
    ADD = _op(27)
    SUB = _op(28)
    MUL = _op(29)
    DIV = _op(30)
    MOD = _op(31)
    NOT = _op(32)
    BITNOT = _op(33)
    NEG = _op(34)
    POS = _op(35)
    DELNAME = _op(36, 5, OperandFormat.ATOM)
    DELPROP = _op(37, 5, OperandFormat.ATOM)
    DELELEM = _op(38)
    TYPEOF = _op(39)
    VOID = _op(40)
    SPREADCALL = _op(41)
    SPREADNEW = _op(42)
    SPREADEVAL = _op(43)
    DUPAT = _op(44, 4, OperandFormat.UINT24)
    GETPROP = _op(53, 5, OperandFormat.ATOM)
    SETPROP = _op(54, 5, OperandFormat.ATOM)
    GETELEM = _op(55)
    SETELEM = _op(56)
    CALL = _op(58, 3, OperandFormat.UINT16)
    NAME = _op(59, 5, OperandFormat.ATOM)
    DOUBLE = _op(60, 5, OperandFormat.DOUBLE)
    STRING = _op(61, 5, OperandFormat.ATOM)
    ZERO = _op(62)
    ONE = _op(63)
    NULL = _op(64)
    THIS = _op(65)
    FALSE = _op(66)
    TRUE = _op(67)
    OR = _op(68, 5, OperandFormat.JUMP)
    AND = _op(69, 5, OperandFormat.JUMP)
    TABLESWITCH = _op(70, VARIABLE_LENGTH, OperandFormat.TABLESWITCH)
    STRICTEQ = _op(72)
    STRICTNE = _op(73)
    ITER = _op(75, 2, OperandFormat.UINT8)
    MOREITER = _op(76)
    ENDITER = _op(78)
    FUNAPPLY = _op(79, 3, OperandFormat.UINT16)
    OBJECT = _op(80, 5, OperandFormat.OBJECT)
    POP = _op(81)
    NEW = _op(82, 3, OperandFormat.UINT16)
    GETARG = _op(84, 3, OperandFormat.QARG)
    SETARG = _op(85, 3, OperandFormat.QARG)
    GETLOCAL = _op(86, 4, OperandFormat.LOCAL)
    SETLOCAL = _op(87, 4, OperandFormat.LOCAL)
    UINT16 = _op(88, 3, OperandFormat.UINT16)
    NEWINIT = _op(89, 5, OperandFormat.UINT8)
    NEWARRAY = _op(90, 4, OperandFormat.UINT24)
    NEWOBJECT = _op(91, 5, OperandFormat.OBJECT)
    ENDINIT = _op(92)
    INITPROP = _op(93, 5, OperandFormat.ATOM)
    INITELEM = _op(94)
    INITELEM_INC = _op(95)
    INITELEM_ARRAY = _op(96, 4, OperandFormat.UINT24)
    INITPROP_GETTER = _op(97, 5, OperandFormat.ATOM)
    INITPROP_SETTER = _op(98, 5, OperandFormat.ATOM)
    FUNCALL = _op(108, 3, OperandFormat.UINT16)
    LOOPHEAD = _op(109)
    BINDNAME = _op(110, 5, OperandFormat.ATOM)
    SETNAME = _op(111, 5, OperandFormat.ATOM)
    THROW = _op(112)
    IN = _op(113)
    INSTANCEOF = _op(114)
    DEBUGGER = _op(115)
    GOSUB = _op(116, 5, OperandFormat.JUMP)
    RETSUB = _op(117)
    EXCEPTION = _op(118)
    LINENO = _op(119, 3, OperandFormat.UINT16)
    CONDSWITCH = _op(120)
    CASE = _op(121, 5, OperandFormat.JUMP)
    DEFAULT = _op(122, 5, OperandFormat.JUMP)
    EVAL = _op(123, 3, OperandFormat.UINT16)
    DEFFUN = _op(127, 5, OperandFormat.OBJECT)
    DEFCONST = _op(128, 5, OperandFormat.ATOM)
    DEFVAR = _op(129, 5, OperandFormat.ATOM)
    LAMBDA = _op(130, 5, OperandFormat.OBJECT)
    LAMBDA_ARROW = _op(131, 5, OperandFormat.OBJECT)
    CALLEE = _op(132)
    PICK = _op(133, 2, OperandFormat.UINT8)
    TRY = _op(134)
    FINALLY = _op(135)
    GETALIASEDVAR = _op(136, 5, OperandFormat.SCOPECOORD)
    SETALIASEDVAR = _op(137, 5, OperandFormat.SCOPECOORD)
    SETRVAL = _op(152)
    RETRVAL = _op(153)
    GETGNAME = _op(154, 5, OperandFormat.ATOM)
    SETGNAME = _op(155, 5, OperandFormat.ATOM)
    REGEXP = _op(160, 5, OperandFormat.REGEXP)
    CALLPROP = _op(184, 5, OperandFormat.ATOM)
    UINT24 = _op(188, 4, OperandFormat.UINT24)
    INT8 = _op(215, 2, OperandFormat.INT8)
    INT32 = _op(216, 5, OperandFormat.INT32)
    LENGTH = _op(217, 5, OperandFormat.ATOM)
    HOLE = _op(218)
    LOOPENTRY = _op(227, 2, OperandFormat.UINT8)


# Comparison opcodes and the operator each one renders as.
COMPARISON_SYMBOLS: Dict[Opcode, str] = {
    Opcode.LT: "<",
    Opcode.LE: "<=",
    Opcode.GT: ">",
    Opcode.GE: ">=",
    Opcode.EQ: "==",
    Opcode.NE: "!=",
}


# Opcodes whose value is a literal the idiom history treats as an immediate.
LITERAL_IMMEDIATES: Dict[Opcode, int] = {
    Opcode.ZERO: 0,
    Opcode.ONE: 1,
    Opcode.FALSE: 0,
    Opcode.TRUE: 1,
}


@dataclass(frozen=True)
class OpcodeInfo:
    """
    Format descriptor for one opcode byte.

    byte defaults to the opcode's standard numbering; set it to place the
    opcode at a different byte.
    """
    opcode: Opcode
    length: int
    format: OperandFormat
    byte: int | None = None

    @property
    def code(self) -> int:
        """Raw byte this descriptor is stored under."""
        return int(self.opcode) if self.byte is None else self.byte

    @property
    def mnemonic(self) -> str:
        """Mnemonic as printed in listings."""
        return self.opcode.mnemonic


class OpcodeTable:
    """
    Maps raw opcode bytes to their format descriptors.

    The table is plain data so a different engine version (or a test) can supply
    its own byte assignments, lengths and formats without touching the decoder.
    """

    def __init__(self, entries: Iterable[OpcodeInfo]) -> None:
        """
        Initialize the table.

        Args:
            entries: Descriptors; each is keyed by its code
        """
        self._entries: Dict[int, OpcodeInfo] = {}
        for info in entries:
            self._entries[info.code] = info

    @classmethod
    def default(cls) -> 'OpcodeTable':
        """Build the standard table from the Opcode enum defaults."""
        return cls(OpcodeInfo(op, op.length, op.format) for op in Opcode)

    def with_overrides(self, overrides: Iterable[OpcodeInfo]) -> 'OpcodeTable':
        """
        Return a copy of this table with some descriptors replaced.

        An override removes every existing entry for the same opcode, so an
        opcode moved to a new byte no longer decodes at its old one.

        Args:
            overrides: Descriptors that replace (or add to) existing entries

        Returns:
            New OpcodeTable
        """
        table = OpcodeTable(self._entries.values())
        for info in overrides:
            stale = [code for code, entry in table._entries.items() if entry.opcode == info.opcode]
            for code in stale:
                del table._entries[code]

            table._entries[info.code] = info

        return table

    def lookup(self, byte: int) -> OpcodeInfo | None:
        """
        Look up the descriptor for an opcode byte.

        Args:
            byte: Raw opcode byte

        Returns:
            The descriptor, or None if the byte is not a known opcode
        """
        return self._entries.get(byte)

    def __contains__(self, byte: object) -> bool:
        return byte in self._entries

    def __len__(self) -> int:
        return len(self._entries)
