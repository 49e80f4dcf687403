"""Exception classes for the smdis disassembler."""

from typing import Optional


class SmdisError(Exception):
    """Base exception for smdis errors."""


class CorruptBytecodeError(SmdisError):
    """
    Structural corruption found while decoding a unit's instruction stream.

    These are raised by the decoder and caught at the unit boundary: the walk of
    the affected unit stops, everything emitted so far is kept, and a diagnostic
    is recorded instead.
    """

    kind = "invalid"

    def __init__(self, message: str, offset: int, opcode: Optional[int] = None) -> None:
        """
        Initialize corruption error.

        Args:
            message: Description of the problem
            offset: Byte offset of the instruction being decoded
            opcode: Raw opcode byte, if one could be read
        """
        self.message = message
        self.offset = offset
        self.opcode = opcode
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        parts = [f"{self.message} at offset {self.offset}"]
        if self.opcode is not None:
            parts.append(f"(opcode 0x{self.opcode:02x})")

        return " ".join(parts)


class UnknownOpcodeError(CorruptBytecodeError):
    """Opcode byte has no entry in the opcode table."""

    kind = "unknown_opcode"


class InvalidInstructionLengthError(CorruptBytecodeError):
    """Instruction length could not be determined or is zero."""

    kind = "invalid"


class TruncatedOperandError(CorruptBytecodeError):
    """Instruction operand runs past the end of the instruction stream."""

    kind = "truncated"


class SwitchTableError(CorruptBytecodeError):
    """Switch table size is negative or larger than the remaining stream."""

    kind = "switch"


class UnitLoadError(SmdisError):
    """A unit description could not be loaded."""
