"""Label (branch target) analysis for a bytecode unit."""

import logging
from typing import Iterable, Iterator

from smdis.smdis_error import CorruptBytecodeError
from smdis.smdis_instruction import iter_instructions
from smdis.smdis_opcodes import OpcodeTable
from smdis.smdis_unit import BytecodeUnit


logger = logging.getLogger(__name__)


class LabelSet:
    """Set of offsets that need a label, sized to the unit length plus one."""

    def __init__(self, length: int) -> None:
        self._length = length
        self._bits = bytearray(length + 1)

    @property
    def length(self) -> int:
        return self._length

    def mark(self, offset: int) -> bool:
        """
        Mark an offset as a label.

        Args:
            offset: Candidate target offset

        Returns:
            True if the offset was within [0, length] and has been marked
        """
        if offset < 0 or offset > self._length:
            return False

        self._bits[offset] = 1
        return True

    def mark_all(self, offsets: Iterable[int]) -> None:
        for offset in offsets:
            self.mark(offset)

    def contains(self, offset: int) -> bool:
        return 0 <= offset <= self._length and self._bits[offset] == 1

    def __contains__(self, offset: object) -> bool:
        return isinstance(offset, int) and self.contains(offset)

    def __iter__(self) -> Iterator[int]:
        for offset, bit in enumerate(self._bits):
            if bit:
                yield offset

    def __len__(self) -> int:
        return sum(self._bits)


def collect_labels(unit: BytecodeUnit, table: OpcodeTable) -> LabelSet:
    """
    Collect every in-range jump and switch target of a unit.

    The pass starts at offset 0 and stops quietly at the first corrupt
    instruction, returning the labels found up to that point.

    Args:
        unit: Unit to analyze
        table: Opcode descriptor table

    Returns:
        LabelSet of the unit
    """
    labels = LabelSet(unit.length())
    try:
        for instr in iter_instructions(unit.instruction_bytes(), table):
            target = instr.jump_target
            if target is not None:
                labels.mark(target)
                continue

            if instr.switch is not None:
                labels.mark(instr.switch.default_offset)
                labels.mark_all(instr.switch.case_offsets)

    except CorruptBytecodeError as e:
        logger.debug("Label scan stopped early: %s", e)

    return labels
