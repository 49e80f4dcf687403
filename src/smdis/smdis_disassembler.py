"""
Per-unit disassembly.

UnitDisassembler turns one bytecode unit into listing text.  Every call builds a
fresh EmissionContext (output lines, idiom history and first-line state), so
disassembling the same unit twice gives identical text and nested units never
see each other's history.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, List

from smdis.smdis_config import DisassemblyConfig
from smdis.smdis_error import CorruptBytecodeError
from smdis.smdis_idioms import HistoryWindow, annotate
from smdis.smdis_instruction import Instruction, iter_instructions
from smdis.smdis_labels import LabelSet, collect_labels
from smdis.smdis_opcodes import OpcodeTable, OperandFormat
from smdis.smdis_try_regions import TryRegionIndex
from smdis.smdis_unit import BytecodeUnit, JSSpecial, ObjectKind


# Column at which trailing comments start.
COMMENT_COLUMN = 60
COMMENT_COLUMN_WITH_LINES = 68

# Longest escaped atom text printed in an operand.
MAX_ATOM_CHARS = 4096

# Number of cases listed in a tableswitch summary.
MAX_SWITCH_SUMMARY_CASES = 6

HEADER = ["loc     op", "-----   --"]
HEADER_WITH_LINES = ["loc     line  op", "-----  ----  --"]

_REGEXP_FLAGS = [(1, "g"), (2, "i"), (4, "m"), (8, "y")]

_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\b": "\\b",
    "\f": "\\f",
    "\v": "\\v",
}


@dataclass(frozen=True)
class Diagnostic:
    """Structural problem found while walking a unit."""
    offset: int
    kind: str
    message: str
    function: str

    def __str__(self) -> str:
        return f"{self.function}: {self.kind} at offset {self.offset}: {self.message}"


@dataclass
class UnitListing:
    """Listing of a single unit."""
    name: str
    text: str
    diagnostics: List[Diagnostic] = field(default_factory=list)
    complete: bool = True


class EmissionContext:
    """Mutable state for one unit's walk."""

    def __init__(self, show_lines: bool) -> None:
        self.history = HistoryWindow()
        self.lines: List[str] = []
        self.first_line = True
        self.comment_column = COMMENT_COLUMN_WITH_LINES if show_lines else COMMENT_COLUMN

    def emit(self, line: str) -> None:
        self.lines.append(line)

    def emit_with_comment(self, text: str, comment: str | None) -> None:
        """Emit a line, padding it out to the comment column if there is a comment."""
        if comment is None:
            self.emit(text)
            return

        pad = max(self.comment_column - len(text), 1)
        self.emit(f"{text}{' ' * pad}; {comment}")


def escape_atom(text: str) -> str:
    """Escape an atom for display, capped at MAX_ATOM_CHARS characters."""
    parts = []
    for ch in text:
        if ch in _ESCAPES:
            parts.append(_ESCAPES[ch])

        elif ' ' <= ch <= '~':
            parts.append(ch)

        elif ord(ch) <= 0xff:
            parts.append(f"\\x{ord(ch):02X}")

        elif ord(ch) <= 0xffff:
            parts.append(f"\\u{ord(ch):04X}")

        else:
            parts.append(f"\\u{{{ord(ch):X}}}")

    return "".join(parts)[:MAX_ATOM_CHARS]


def format_constant(value: Any) -> str:
    """Render a constant-table value the way JavaScript source would spell it."""
    if isinstance(value, JSSpecial):
        return value.value

    if isinstance(value, bool):
        return "true" if value else "false"

    if isinstance(value, int):
        return f"{value:d}"

    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"

        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"

        return f"{value:g}"

    if isinstance(value, str):
        return f'"{escape_atom(value)}"'

    return str(value)


def format_target(target: int, length: int) -> str:
    if 0 <= target <= length:
        return f"loc_{target:05X}"

    return "<bad-target>"


def infer_parameter_list(unit: BytecodeUnit, table: OpcodeTable) -> str:
    """
    Build a parameter hint from the highest argument index the unit touches.

    Returns:
        Text such as " (/* arg0, arg1 */)", or "" if no arguments are used
    """
    max_arg = -1
    try:
        for instr in iter_instructions(unit.instruction_bytes(), table):
            if instr.format == OperandFormat.QARG:
                max_arg = max(max_arg, instr.operand)

    except CorruptBytecodeError:
        pass

    if max_arg < 0:
        return ""

    names = ", ".join(f"arg{i}" for i in range(max_arg + 1))
    return f" (/* {names} */)"


class UnitDisassembler:
    """Produces the listing of one bytecode unit."""

    def __init__(self, table: OpcodeTable | None = None, config: DisassemblyConfig | None = None) -> None:
        """
        Initialize the disassembler.

        Args:
            table: Opcode descriptor table (defaults to the standard table)
            config: Disassembly options (defaults to DisassemblyConfig())
        """
        self._table = table or OpcodeTable.default()
        self._config = config or DisassemblyConfig()
        self._logger = logging.getLogger(self.__class__.__name__)

    @property
    def table(self) -> OpcodeTable:
        return self._table

    @property
    def config(self) -> DisassemblyConfig:
        return self._config

    def disassemble(self, unit: BytecodeUnit, name: str = "main", include_header: bool = False) -> UnitListing:
        """
        Disassemble one unit.

        Corrupt bytecode stops the walk of this unit only: everything emitted up to
        that point is kept and a Diagnostic is recorded.

        Args:
            unit: Unit to disassemble
            name: Function name printed at the main entry offset
            include_header: Print the column header first (root unit only)

        Returns:
            UnitListing with the text and any diagnostics
        """
        ctx = EmissionContext(self._config.show_lines)
        length = unit.length()
        main_offset = unit.main_entry_offset()

        labels = collect_labels(unit, self._table)
        regions = TryRegionIndex.build(unit)
        labels.mark_all(regions.boundaries())

        if include_header:
            for line in HEADER_WITH_LINES if self._config.show_lines else HEADER:
                ctx.emit(line)

        params = ""
        if self._config.extended_hints:
            params = infer_parameter_list(unit, self._table)

        diagnostics: List[Diagnostic] = []
        name_printed = False
        complete = True
        try:
            for instr in iter_instructions(unit.instruction_bytes(), self._table):
                if instr.offset < main_offset:
                    continue

                if not name_printed:
                    ctx.emit(f"{name}{params}")
                    name_printed = True

                self._emit_step(ctx, unit, instr, labels, regions)

        except CorruptBytecodeError as e:
            complete = False
            diagnostics.append(Diagnostic(e.offset, e.kind, e.message, name))
            self._logger.warning("Stopped disassembling '%s': %s", name, e)

        if not name_printed:
            ctx.emit(f"{name}{params}")

        if complete:
            for region in regions.begins_at(length):
                ctx.emit(region.begin_marker())

            for region in regions.ends_at(length):
                ctx.emit(region.end_marker())

        text = "\n".join(ctx.lines) + "\n"
        return UnitListing(name, text, diagnostics, complete)

    def _emit_step(
        self,
        ctx: EmissionContext,
        unit: BytecodeUnit,
        instr: Instruction,
        labels: LabelSet,
        regions: TryRegionIndex
    ) -> None:
        offset = instr.offset
        if offset in labels:
            if not ctx.first_line:
                ctx.emit("")

            ctx.emit_with_comment(f"loc_{offset:05X}:", f"L{offset}")

        for region in regions.begins_at(offset):
            ctx.emit(region.begin_marker())

        for region in regions.ends_at(offset):
            ctx.emit(region.end_marker())

        if self._config.show_lines:
            prefix = f"{offset:05X}  {unit.line_for_offset(offset):4d}  "

        else:
            prefix = f"{offset:05X}  "

        text = f"{prefix}{instr.info.mnemonic:<12}{self._format_operand(unit, instr)}"

        comment = None
        if self._config.extended_hints and instr.switch is not None:
            comment = self._switch_summary(instr, unit.length())

        if self._config.annotate:
            idiom = annotate(ctx.history, instr)
            if idiom is not None:
                comment = idiom

        ctx.emit_with_comment(text, comment)
        ctx.history.push(instr)
        ctx.first_line = False

    def _format_operand(self, unit: BytecodeUnit, instr: Instruction) -> str:
        fmt = instr.format
        length = unit.length()

        if fmt == OperandFormat.JUMP:
            return f" {format_target(instr.offset + instr.operand, length)} ({instr.operand:+d})"

        if fmt == OperandFormat.ATOM:
            atom = unit.atom_at(instr.operand)
            if atom is None:
                return f" <atom#{instr.operand}>"

            return f' "{escape_atom(atom)}"'

        if fmt == OperandFormat.DOUBLE:
            value = unit.const_at(instr.operand)
            if value is None:
                return f" <const#{instr.operand}>"

            return f" {format_constant(value)}"

        if fmt == OperandFormat.OBJECT:
            return f" <object#{instr.operand}>"

        if fmt == OperandFormat.REGEXP:
            obj = unit.object_at(instr.operand)
            if obj is None or obj.kind != ObjectKind.REGEXP or obj.source is None:
                return " <RegExp>"

            flags = "".join(letter for bit, letter in _REGEXP_FLAGS if obj.flags & bit)
            return f" /{obj.source}/{flags}"

        if fmt == OperandFormat.TABLESWITCH and instr.switch is not None:
            switch = instr.switch
            return f" default {format_target(switch.default_offset, length)} low {switch.low} high {switch.high}"

        if fmt == OperandFormat.SCOPECOORD:
            return f" (hops = {instr.hops}, slot = {instr.operand})"

        if fmt == OperandFormat.BYTE:
            return ""

        return f" {instr.operand}"

    def _switch_summary(self, instr: Instruction, length: int) -> str | None:
        switch = instr.switch
        if switch is None or not switch.case_offsets:
            return None

        shown = switch.case_offsets[:MAX_SWITCH_SUMMARY_CASES]
        cases = ", ".join(
            f"{switch.low + i}->{format_target(target, length)}" for i, target in enumerate(shown)
        )
        if len(switch.case_offsets) > len(shown):
            cases += ", …"

        return f"case {cases}"
