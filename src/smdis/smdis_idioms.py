"""
Idiom annotation for disassembly listings.

A short history of recently emitted instructions is matched against a fixed
catalogue of bytecode shapes that commonly come from simple source constructs
(loop counters, increments, property-length checks).  A match produces a short
trailing comment for the instruction being emitted.

Rules are evaluated in catalogue order and a later match replaces an earlier
one, so at most one annotation is produced per instruction:

1. first getlocal after loopentry        -> "i"
2. getarg n                              -> "arg[n]"
3. goto/ifeq/ifne right after a compare  -> "if (<op>)"
4. getlocal x, pos|getlocal, dup, one, add         -> "local[x]++" (on the add)
5. getlocal x, any, immediate, add, setlocal x     -> "local[x] += imm"
6. callprop, swap, true|false, call      -> "show" / "hide"
7. getlocal, getarg n, getprop, lt, ifeq|ifne      -> "if (i < arg[n].length)"
"""

from dataclasses import dataclass
from typing import List

from smdis.smdis_instruction import Instruction
from smdis.smdis_opcodes import COMPARISON_SYMBOLS, Opcode


HISTORY_SIZE = 5


@dataclass(frozen=True)
class HistoryEntry:
    """Instruction reduced to the fields the idiom rules look at."""
    opcode: Opcode | None = None
    slot: int = -1
    has_immediate: bool = False
    immediate: int = 0


class HistoryWindow:
    """Most recent instructions of one unit, newest first, plus the loop-index hint."""

    def __init__(self, size: int = HISTORY_SIZE) -> None:
        self._size = size
        self._entries: List[HistoryEntry] = [HistoryEntry() for _ in range(size)]
        self.after_loop_entry = False

    def __getitem__(self, index: int) -> HistoryEntry:
        """Return the entry index steps back (0 is the previous instruction)."""
        if 0 <= index < self._size:
            return self._entries[index]

        return HistoryEntry()

    def __len__(self) -> int:
        return self._size

    def reset(self) -> None:
        self._entries = [HistoryEntry() for _ in range(self._size)]
        self.after_loop_entry = False

    def push(self, instr: Instruction) -> None:
        """
        Record an emitted instruction.

        A loopentry sets the loop-index hint and the next getlocal consumes it.

        Args:
            instr: Instruction that was just emitted
        """
        op = instr.opcode
        slot = -1
        if op in (Opcode.GETLOCAL, Opcode.SETLOCAL, Opcode.GETARG):
            slot = instr.operand

        if op == Opcode.LOOPENTRY:
            self.after_loop_entry = True

        elif op == Opcode.GETLOCAL:
            self.after_loop_entry = False

        entry = HistoryEntry(op, slot, instr.has_immediate, instr.immediate)
        self._entries = [entry] + self._entries[:self._size - 1]


def _is(entry: HistoryEntry, *opcodes: Opcode) -> bool:
    return entry.opcode is not None and entry.opcode in opcodes


def annotate(history: HistoryWindow, instr: Instruction) -> str | None:
    """
    Produce the idiom comment for an instruction about to be emitted.

    The history is not modified; the caller pushes the instruction afterwards.

    Args:
        history: Window of previously emitted instructions of the same unit
        instr: Instruction being emitted

    Returns:
        Annotation text without the leading "; ", or None when nothing matches
    """
    op = instr.opcode
    h = history
    comment: str | None = None

    if op == Opcode.GETLOCAL and history.after_loop_entry:
        comment = "i"

    elif op == Opcode.GETARG:
        comment = f"arg[{instr.operand}]"

    elif op in (Opcode.GOTO, Opcode.IFEQ, Opcode.IFNE):
        prev = h[0].opcode
        if prev is not None and prev in COMPARISON_SYMBOLS:
            comment = f"if ({COMPARISON_SYMBOLS[prev]})"

    if (op == Opcode.ADD and _is(h[0], Opcode.ONE) and _is(h[1], Opcode.DUP)
            and _is(h[2], Opcode.POS, Opcode.GETLOCAL)
            and _is(h[3], Opcode.GETLOCAL) and h[3].slot >= 0):
        comment = f"local[{h[3].slot}]++"

    if (op == Opcode.SETLOCAL and _is(h[0], Opcode.ADD) and h[1].has_immediate
            and _is(h[3], Opcode.GETLOCAL) and h[3].slot == instr.operand):
        comment = f"local[{instr.operand}] += {h[1].immediate}"

    if op == Opcode.CALL and _is(h[1], Opcode.SWAP) and _is(h[2], Opcode.CALLPROP):
        if _is(h[0], Opcode.TRUE):
            comment = "show"

        elif _is(h[0], Opcode.FALSE):
            comment = "hide"

    if (op in (Opcode.IFEQ, Opcode.IFNE) and _is(h[0], Opcode.LT) and _is(h[1], Opcode.GETPROP)
            and _is(h[2], Opcode.GETARG) and _is(h[3], Opcode.GETLOCAL)):
        comment = f"if (i < arg[{h[2].slot}].length)"

    return comment
