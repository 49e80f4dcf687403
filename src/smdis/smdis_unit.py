"""Bytecode unit interface and the in-memory unit implementation."""

import bisect
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Protocol, Sequence, Tuple


class JSSpecial(Enum):
    """JavaScript constants that have no direct Python equivalent."""
    NULL = "null"
    UNDEFINED = "undefined"


class ObjectKind(Enum):
    """Kinds of entries found in a unit's object table."""
    FUNCTION = "function"
    REGEXP = "regexp"
    BLOCK = "block"
    OBJECT = "object"


@dataclass(frozen=True)
class TryNote:
    """Raw try-note entry as stored in a unit."""
    kind: int
    stack_depth: int
    start: int
    length: int


@dataclass
class UnitObject:
    """
    Object-table entry.

    Functions carry an optional display name and their nested unit (which may be
    missing if the engine could not materialize it).  Regexps carry their source
    text and flag bits.
    """
    kind: ObjectKind
    name: str | None = None
    script: 'BytecodeUnit | None' = None
    source: str | None = None
    flags: int = 0


class BytecodeUnit(Protocol):
    """Read-only view of one compiled function body."""

    def instruction_bytes(self) -> bytes:
        """Return the raw instruction stream."""

    def length(self) -> int:
        """Return the instruction stream length in bytes."""

    def atom_at(self, index: int) -> str | None:
        """Return the atom at index, or None if out of range."""

    def const_at(self, index: int) -> Any:
        """Return the constant at index, or None if out of range."""

    def object_at(self, index: int) -> UnitObject | None:
        """Return the object-table entry at index, or None if out of range."""

    def object_count(self) -> int:
        """Return the declared size of the object table."""

    def try_notes(self) -> Sequence[TryNote]:
        """Return the unit's try notes in table order."""

    def line_for_offset(self, offset: int) -> int:
        """Return the source line for a bytecode offset."""

    def main_entry_offset(self) -> int:
        """Return the offset of the function's main entry (after the prologue)."""


@dataclass
class ScriptUnit:
    """In-memory BytecodeUnit built from explicit tables."""
    bytecode: bytes
    main_offset: int = 0
    atoms: List[str] = field(default_factory=list)
    consts: List[Any] = field(default_factory=list)
    objects: List[UnitObject] = field(default_factory=list)
    notes: List[TryNote] = field(default_factory=list)
    lines: List[Tuple[int, int]] = field(default_factory=list)
    start_line: int = 1
    filename: str | None = None
    declared_object_count: int | None = None

    def __post_init__(self) -> None:
        self.lines = sorted(self.lines)
        self._line_offsets = [offset for offset, _ in self.lines]

    def instruction_bytes(self) -> bytes:
        return self.bytecode

    def length(self) -> int:
        return len(self.bytecode)

    def atom_at(self, index: int) -> str | None:
        if 0 <= index < len(self.atoms):
            return self.atoms[index]

        return None

    def const_at(self, index: int) -> Any:
        if 0 <= index < len(self.consts):
            return self.consts[index]

        return None

    def object_at(self, index: int) -> UnitObject | None:
        if 0 <= index < len(self.objects):
            return self.objects[index]

        return None

    def object_count(self) -> int:
        """Return the declared object count, which a corrupt unit may overstate."""
        if self.declared_object_count is not None:
            return self.declared_object_count

        return len(self.objects)

    def try_notes(self) -> Sequence[TryNote]:
        return self.notes

    def line_for_offset(self, offset: int) -> int:
        """
        Map a bytecode offset to a source line.

        Args:
            offset: Bytecode offset

        Returns:
            Line of the last mapping at or before the offset, or the unit's start line
        """
        pos = bisect.bisect_right(self._line_offsets, offset)
        if pos == 0:
            return self.start_line

        return self.lines[pos - 1][1]

    def main_entry_offset(self) -> int:
        return self.main_offset
