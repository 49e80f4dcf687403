"""Decoding of single instructions from a unit's instruction stream."""

from dataclasses import dataclass, field
from typing import Iterator, List

from smdis.smdis_error import (
    InvalidInstructionLengthError, SwitchTableError, TruncatedOperandError, UnknownOpcodeError
)
from smdis.smdis_opcodes import (
    IMMEDIATE_FORMATS, LITERAL_IMMEDIATES, Opcode, OpcodeInfo, OpcodeTable, OperandFormat, VARIABLE_LENGTH
)


# Size of a jump offset (and of each tableswitch field).
JUMP_OFFSET_LEN = 4

# Fixed part of a tableswitch: opcode, default, low, high.
TABLESWITCH_HEADER_LEN = 1 + 3 * JUMP_OFFSET_LEN


@dataclass
class SwitchTable:
    """Decoded tableswitch operands; all offsets are absolute."""
    default_offset: int
    low: int
    high: int
    case_offsets: List[int] = field(default_factory=list)


@dataclass
class Instruction:
    """Decoded view of the instruction at one offset."""
    offset: int
    info: OpcodeInfo
    length: int
    operand: int = 0
    hops: int = 0
    switch: SwitchTable | None = None

    @property
    def opcode(self) -> Opcode:
        return self.info.opcode

    @property
    def format(self) -> OperandFormat:
        return self.info.format

    @property
    def jump_target(self) -> int | None:
        """Absolute target of a jump, or None for other formats."""
        if self.info.format != OperandFormat.JUMP:
            return None

        return self.offset + self.operand

    @property
    def local_slot(self) -> int | None:
        if self.info.format != OperandFormat.LOCAL:
            return None

        return self.operand

    @property
    def argument_index(self) -> int | None:
        if self.info.format != OperandFormat.QARG:
            return None

        return self.operand

    @property
    def has_immediate(self) -> bool:
        """True for integer-immediate formats and the zero/one/false/true literals."""
        return self.info.format in IMMEDIATE_FORMATS or self.info.opcode in LITERAL_IMMEDIATES

    @property
    def immediate(self) -> int:
        if self.info.opcode in LITERAL_IMMEDIATES:
            return LITERAL_IMMEDIATES[self.info.opcode]

        if self.info.format in IMMEDIATE_FORMATS:
            return self.operand

        return 0

    def __repr__(self) -> str:
        return f"{self.offset:05X} {self.info.mnemonic} {self.operand}"


def _read_unsigned(code: bytes, pos: int, size: int) -> int:
    return int.from_bytes(code[pos:pos + size], "big", signed=False)


def _read_signed(code: bytes, pos: int, size: int) -> int:
    return int.from_bytes(code[pos:pos + size], "big", signed=True)


def _decode_switch(code: bytes, offset: int, info: OpcodeInfo) -> Instruction:
    if offset + TABLESWITCH_HEADER_LEN > len(code):
        raise TruncatedOperandError("tableswitch header runs past end of code", offset, code[offset])

    pos = offset + 1
    default_delta = _read_signed(code, pos, JUMP_OFFSET_LEN)
    low = _read_signed(code, pos + JUMP_OFFSET_LEN, JUMP_OFFSET_LEN)
    high = _read_signed(code, pos + 2 * JUMP_OFFSET_LEN, JUMP_OFFSET_LEN)

    count = 0
    if high >= low:
        count = high - low + 1

    available = (len(code) - offset - TABLESWITCH_HEADER_LEN) // JUMP_OFFSET_LEN
    if count > available:
        raise SwitchTableError(
            f"tableswitch declares {count} cases but only {available} fit", offset, code[offset]
        )

    cases = []
    pos = offset + TABLESWITCH_HEADER_LEN
    for _ in range(count):
        cases.append(offset + _read_signed(code, pos, JUMP_OFFSET_LEN))
        pos += JUMP_OFFSET_LEN

    table = SwitchTable(offset + default_delta, low, high, cases)
    return Instruction(offset, info, TABLESWITCH_HEADER_LEN + count * JUMP_OFFSET_LEN, switch=table)


def decode_instruction(code: bytes, offset: int, table: OpcodeTable) -> Instruction:
    """
    Decode the instruction at an offset.

    Args:
        code: Instruction stream
        offset: Offset of the opcode byte
        table: Opcode descriptor table

    Returns:
        The decoded instruction; its length is always at least 1

    Raises:
        UnknownOpcodeError: If the opcode byte is not in the table
        InvalidInstructionLengthError: If the descriptor gives a zero length
        TruncatedOperandError: If the operands run past the end of the stream
        SwitchTableError: If a tableswitch declares more cases than the stream can hold
    """
    if offset < 0 or offset >= len(code):
        raise TruncatedOperandError("offset outside instruction stream", offset)

    byte = code[offset]
    info = table.lookup(byte)
    if info is None:
        raise UnknownOpcodeError("unknown opcode", offset, byte)

    if info.format == OperandFormat.TABLESWITCH or info.length == VARIABLE_LENGTH:
        return _decode_switch(code, offset, info)

    length = info.length
    if length <= 0:
        raise InvalidInstructionLengthError(f"bad instruction length {length}", offset, byte)

    if offset + length > len(code):
        raise TruncatedOperandError(
            f"operands need {length} bytes, {len(code) - offset} available", offset, byte
        )

    fmt = info.format
    pos = offset + 1
    operand = 0
    hops = 0

    if fmt == OperandFormat.JUMP:
        operand = _read_signed(code, pos, JUMP_OFFSET_LEN)

    elif fmt in (OperandFormat.ATOM, OperandFormat.DOUBLE, OperandFormat.OBJECT, OperandFormat.REGEXP):
        operand = _read_unsigned(code, pos, 4)

    elif fmt in (OperandFormat.UINT16, OperandFormat.QARG):
        operand = _read_unsigned(code, pos, 2)

    elif fmt == OperandFormat.LOCAL:
        operand = _read_unsigned(code, pos, 2 if length == 3 else 3)

    elif fmt == OperandFormat.UINT24:
        operand = _read_unsigned(code, pos, 3)

    elif fmt == OperandFormat.UINT8:
        operand = code[pos]

    elif fmt == OperandFormat.INT8:
        operand = _read_signed(code, pos, 1)

    elif fmt == OperandFormat.INT32:
        operand = _read_signed(code, pos, 4)

    elif fmt == OperandFormat.SCOPECOORD:
        hops = code[pos]
        operand = _read_unsigned(code, pos + 1, 3)

    return Instruction(offset, info, length, operand, hops)


def iter_instructions(code: bytes, table: OpcodeTable, start: int = 0) -> Iterator[Instruction]:
    """
    Yield successive instructions from an offset to the end of the stream.

    Decoding errors propagate to the caller after all preceding instructions
    have been yielded.
    """
    offset = start
    while offset < len(code):
        instr = decode_instruction(code, offset, table)
        yield instr
        offset += instr.length
