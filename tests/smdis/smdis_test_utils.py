"""Utilities for building bytecode units in smdis tests."""

from typing import Any, List, Tuple

from smdis.smdis_opcodes import Opcode, OperandFormat
from smdis.smdis_unit import ScriptUnit, TryNote, UnitObject


class UnitBuilder:
    """Assembles instruction streams for test units."""

    def __init__(self) -> None:
        self.code = bytearray()
        self.atoms: List[str] = []
        self.consts: List[Any] = []
        self.objects: List[UnitObject] = []
        self.notes: List[TryNote] = []
        self.lines: List[Tuple[int, int]] = []

    @property
    def offset(self) -> int:
        """Offset the next instruction will be placed at."""
        return len(self.code)

    def op(self, opcode: Opcode, *operands: int) -> int:
        """
        Append an instruction encoded per the opcode's default format.

        Jump operands are signed deltas relative to the instruction.  Tableswitch
        operands are default delta, low, high and then one delta per case.

        Returns:
            Offset of the appended instruction
        """
        at = len(self.code)
        self.code.append(int(opcode))
        fmt = opcode.format

        if fmt == OperandFormat.BYTE:
            return at

        if fmt == OperandFormat.TABLESWITCH:
            for value in operands:
                self.code += value.to_bytes(4, "big", signed=True)

            return at

        value = operands[0] if operands else 0
        if fmt in (OperandFormat.JUMP, OperandFormat.INT32):
            self.code += value.to_bytes(4, "big", signed=True)

        elif fmt in (OperandFormat.ATOM, OperandFormat.DOUBLE, OperandFormat.OBJECT, OperandFormat.REGEXP):
            self.code += value.to_bytes(4, "big")

        elif fmt in (OperandFormat.UINT16, OperandFormat.QARG):
            self.code += value.to_bytes(2, "big")

        elif fmt in (OperandFormat.LOCAL, OperandFormat.UINT24):
            self.code += value.to_bytes(3, "big")

        elif fmt == OperandFormat.UINT8:
            self.code += value.to_bytes(1, "big")

        elif fmt == OperandFormat.INT8:
            self.code += value.to_bytes(1, "big", signed=True)

        elif fmt == OperandFormat.SCOPECOORD:
            slot = operands[1] if len(operands) > 1 else 0
            self.code += value.to_bytes(1, "big") + slot.to_bytes(3, "big")

        return at

    def jump_to(self, opcode: Opcode, target: int) -> int:
        """Append a jump with an absolute target."""
        return self.op(opcode, target - len(self.code))

    def patch_jump(self, at: int, target: int) -> None:
        """Point the jump at offset at to an absolute target."""
        self.code[at + 1:at + 5] = (target - at).to_bytes(4, "big", signed=True)

    def atom(self, text: str) -> int:
        self.atoms.append(text)
        return len(self.atoms) - 1

    def build(self, **kwargs: Any) -> ScriptUnit:
        """Create the ScriptUnit; keyword arguments override ScriptUnit fields."""
        fields = {
            "bytecode": bytes(self.code),
            "atoms": list(self.atoms),
            "consts": list(self.consts),
            "objects": list(self.objects),
            "notes": list(self.notes),
            "lines": list(self.lines),
        }
        fields.update(kwargs)
        return ScriptUnit(**fields)
