"""Exception (try-note) region indexing."""

import logging
from dataclasses import dataclass
from typing import Dict, List

from smdis.smdis_unit import BytecodeUnit


# Try-note kind codes and their printed names; anything else prints as "try".
TRY_KIND_NAMES: Dict[int, str] = {
    0: "catch",
    1: "finally",
    2: "iter",
    3: "loop",
}


def try_kind_name(kind: int) -> str:
    return TRY_KIND_NAMES.get(kind, "try")


@dataclass(frozen=True)
class TryRegion:
    """Validated try region; id is the entry's position in the unit's try-note table."""
    id: int
    start: int
    end: int
    depth: int
    kind: int

    @property
    def kind_name(self) -> str:
        return try_kind_name(self.kind)

    def begin_marker(self) -> str:
        return f"; try begin ({self.kind_name}, depth={self.depth}, id={self.id})"

    def end_marker(self) -> str:
        return f"; try end ({self.kind_name}, id={self.id})"


class TryRegionIndex:
    """
    Try regions of one unit indexed by begin and end offset.

    Lookups return regions in try-note table order, which is also the order in
    which the markers are printed.
    """

    def __init__(self, regions: List[TryRegion] | None = None) -> None:
        self._regions: List[TryRegion] = []
        self._begins: Dict[int, List[TryRegion]] = {}
        self._ends: Dict[int, List[TryRegion]] = {}
        for region in regions or []:
            self._add(region)

    def _add(self, region: TryRegion) -> None:
        self._regions.append(region)
        self._begins.setdefault(region.start, []).append(region)
        self._ends.setdefault(region.end, []).append(region)

    @classmethod
    def build(cls, unit: BytecodeUnit) -> 'TryRegionIndex':
        """
        Build the index for a unit.

        A table whose entry count is implausible for the unit length
        (more than length // 2 + 1024 entries) is rejected as a whole.  Entries
        whose span does not satisfy 0 <= start <= end <= length are dropped.

        Args:
            unit: Unit whose try notes are indexed

        Returns:
            The index (empty if the table was rejected)
        """
        logger = logging.getLogger(cls.__name__)
        notes = unit.try_notes()
        length = unit.length()
        index = cls()

        limit = length // 2 + 1024
        if len(notes) > limit:
            logger.warning(
                "Ignoring try-note table with %d entries (limit %d for %d bytes of code)",
                len(notes), limit, length
            )
            return index

        for position, note in enumerate(notes):
            start = note.start
            end = note.start + note.length
            if start < 0 or note.length < 0 or end > length:
                logger.debug("Dropping try note %d with span %d..%d", position, start, end)
                continue

            index._add(TryRegion(position, start, end, note.stack_depth, note.kind))

        return index

    @property
    def regions(self) -> List[TryRegion]:
        return list(self._regions)

    def begins_at(self, offset: int) -> List[TryRegion]:
        return list(self._begins.get(offset, ()))

    def ends_at(self, offset: int) -> List[TryRegion]:
        return list(self._ends.get(offset, ()))

    def boundaries(self) -> List[int]:
        """Return every begin and end offset, sorted, for marking as labels."""
        return sorted(set(self._begins) | set(self._ends))

    def __len__(self) -> int:
        return len(self._regions)
