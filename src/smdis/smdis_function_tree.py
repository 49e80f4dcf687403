"""Discovery and disassembly of nested function units."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List

from smdis.smdis_config import DisassemblyConfig
from smdis.smdis_disassembler import Diagnostic, UnitDisassembler
from smdis.smdis_error import CorruptBytecodeError
from smdis.smdis_instruction import iter_instructions
from smdis.smdis_opcodes import Opcode, OpcodeTable, OperandFormat
from smdis.smdis_unit import BytecodeUnit, ObjectKind


# Object tables larger than this are treated as corrupt.
MAX_OBJECT_TABLE_SIZE = 100000


class ResolutionStatus(Enum):
    """Outcome of resolving an object-table reference to a nested function."""
    RESOLVED = "resolved"
    OUT_OF_RANGE = "out_of_range"
    NOT_A_FUNCTION = "not_a_function"
    CORRUPT_TABLE = "corrupt_table"
    MISSING_SCRIPT = "missing_script"


@dataclass
class FunctionResolution:
    """Result of resolve_function()."""
    status: ResolutionStatus
    index: int
    unit: BytecodeUnit | None = None
    name: str | None = None


@dataclass(frozen=True)
class FunctionLiteralRef:
    """A lambda whose object index was immediately stored under a property name."""
    object_index: int
    offset: int
    property_name: str


@dataclass
class DisassemblyResult:
    """Listing of a whole unit tree."""
    text: str
    diagnostics: List[Diagnostic] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def resolve_function(unit: BytecodeUnit, index: int) -> FunctionResolution:
    """
    Resolve an object-table index to a nested function unit.

    Args:
        unit: Unit owning the object table
        index: Object-table index taken from an instruction operand

    Returns:
        FunctionResolution; only RESOLVED results carry a unit
    """
    count = unit.object_count()
    if count > MAX_OBJECT_TABLE_SIZE or count > unit.length():
        return FunctionResolution(ResolutionStatus.CORRUPT_TABLE, index)

    if index < 0 or index >= count:
        return FunctionResolution(ResolutionStatus.OUT_OF_RANGE, index)

    obj = unit.object_at(index)
    if obj is None:
        return FunctionResolution(ResolutionStatus.OUT_OF_RANGE, index)

    if obj.kind != ObjectKind.FUNCTION:
        return FunctionResolution(ResolutionStatus.NOT_A_FUNCTION, index)

    if obj.script is None:
        return FunctionResolution(ResolutionStatus.MISSING_SCRIPT, index, name=obj.name)

    return FunctionResolution(ResolutionStatus.RESOLVED, index, obj.script, obj.name)


def scan_function_refs(unit: BytecodeUnit, table: OpcodeTable, limit: int = 32) -> List[FunctionLiteralRef]:
    """
    Find lambdas that are immediately followed by an initprop.

    Args:
        unit: Unit to scan
        table: Opcode descriptor table
        limit: Maximum number of references returned; later ones are dropped

    Returns:
        References in bytecode order
    """
    refs: List[FunctionLiteralRef] = []
    previous = None
    try:
        for instr in iter_instructions(unit.instruction_bytes(), table):
            if len(refs) >= limit:
                break

            if (previous is not None and previous.opcode == Opcode.LAMBDA
                    and instr.opcode == Opcode.INITPROP and instr.format == OperandFormat.ATOM):
                prop = unit.atom_at(instr.operand)
                if prop is not None:
                    refs.append(FunctionLiteralRef(previous.operand, previous.offset, prop))

            previous = instr

    except CorruptBytecodeError:
        pass

    return refs


def clean_function_name(name: str) -> str:
    """Collapse nested-name markers, e.g. "Outer<.inner" becomes "Outer.inner"."""
    return name.replace("<.", ".")


class FunctionTreeWalker:
    """
    Disassembles a unit and, recursively, the function units it references.

    Output is depth-first pre-order: a unit's listing comes before the listings
    of the functions it references, each followed by a blank line.
    """

    def __init__(self, table: OpcodeTable | None = None, config: DisassemblyConfig | None = None) -> None:
        self._config = config or DisassemblyConfig()
        self._config.validate()
        self._table = table or OpcodeTable.default()
        self._disassembler = UnitDisassembler(self._table, self._config)
        self._logger = logging.getLogger(self.__class__.__name__)

    def walk(self, unit: BytecodeUnit, name: str = "main") -> DisassemblyResult:
        """
        Disassemble a unit tree.

        Args:
            unit: Root unit
            name: Name printed for the root function

        Returns:
            DisassemblyResult with the combined text, diagnostics and deferred warnings
        """
        parts: List[str] = []
        result = DisassemblyResult("")
        self._walk_unit(unit, name, 0, parts, result)
        result.text = "".join(parts)

        for warning in result.warnings:
            self._logger.warning(warning)

        return result

    def _walk_unit(
        self,
        unit: BytecodeUnit,
        name: str,
        depth: int,
        parts: List[str],
        result: DisassemblyResult
    ) -> None:
        self._logger.debug("Disassembling '%s' at depth %d", name, depth)
        refs = scan_function_refs(unit, self._table, self._config.max_function_refs)
        prop_names: Dict[int, str] = {}
        for ref in refs:
            prop_names.setdefault(ref.object_index, ref.property_name)

        listing = self._disassembler.disassemble(unit, name, include_header=(depth == 0))
        parts.append(listing.text)
        parts.append("\n")
        result.diagnostics.extend(listing.diagnostics)

        if not self._config.recurse_nested:
            return

        for index in self._object_refs(unit):
            resolution = resolve_function(unit, index)
            if resolution.status != ResolutionStatus.RESOLVED or resolution.unit is None:
                self._logger.debug(
                    "Skipping object #%d in '%s': %s", index, name, resolution.status.value
                )
                continue

            if depth >= self._config.max_depth:
                result.warnings.append(
                    f"Maximum function nesting depth ({self._config.max_depth}) reached in '{name}', "
                    "nested functions not shown"
                )
                return

            child_name = resolution.name or prop_names.get(index) or "unknown"
            self._walk_unit(resolution.unit, clean_function_name(child_name), depth + 1, parts, result)

    def _object_refs(self, unit: BytecodeUnit) -> List[int]:
        indices = []
        try:
            for instr in iter_instructions(unit.instruction_bytes(), self._table):
                if instr.format == OperandFormat.OBJECT:
                    indices.append(instr.operand)

        except CorruptBytecodeError as e:
            self._logger.debug("Object scan stopped early: %s", e)

        return indices
