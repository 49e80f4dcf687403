"""smdis - annotated disassembler for SpiderMonkey bytecode units."""

# Main API
from smdis.smdis_function_tree import (
    FunctionTreeWalker, DisassemblyResult, FunctionResolution, FunctionLiteralRef, ResolutionStatus,
    resolve_function, scan_function_refs
)
from smdis.smdis_disassembler import UnitDisassembler, UnitListing, Diagnostic
from smdis.smdis_config import DisassemblyConfig

# Exceptions
from smdis.smdis_error import (
    SmdisError, CorruptBytecodeError, UnknownOpcodeError, InvalidInstructionLengthError,
    TruncatedOperandError, SwitchTableError, UnitLoadError
)

# Units
from smdis.smdis_unit import BytecodeUnit, ScriptUnit, UnitObject, ObjectKind, TryNote, JSSpecial
from smdis.smdis_unit_loader import load_unit, unit_from_dict

# Lower-level components (for advanced usage)
from smdis.smdis_opcodes import Opcode, OpcodeInfo, OpcodeTable, OperandFormat
from smdis.smdis_instruction import Instruction, SwitchTable, decode_instruction, iter_instructions
from smdis.smdis_labels import LabelSet, collect_labels
from smdis.smdis_try_regions import TryRegion, TryRegionIndex
from smdis.smdis_idioms import HistoryEntry, HistoryWindow, annotate


__all__ = [
    # Main API
    "FunctionTreeWalker", "DisassemblyResult", "FunctionResolution", "FunctionLiteralRef", "ResolutionStatus",
    "resolve_function", "scan_function_refs",
    "UnitDisassembler", "UnitListing", "Diagnostic", "DisassemblyConfig",

    # Exceptions
    "SmdisError", "CorruptBytecodeError", "UnknownOpcodeError", "InvalidInstructionLengthError",
    "TruncatedOperandError", "SwitchTableError", "UnitLoadError",

    # Units
    "BytecodeUnit", "ScriptUnit", "UnitObject", "ObjectKind", "TryNote", "JSSpecial",
    "load_unit", "unit_from_dict",

    # Lower-level components
    "Opcode", "OpcodeInfo", "OpcodeTable", "OperandFormat",
    "Instruction", "SwitchTable", "decode_instruction", "iter_instructions",
    "LabelSet", "collect_labels", "TryRegion", "TryRegionIndex",
    "HistoryEntry", "HistoryWindow", "annotate",
]

__version__ = "0.1.0"
