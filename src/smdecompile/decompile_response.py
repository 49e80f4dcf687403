"""Result types returned by the decompilation client."""

from dataclasses import dataclass
from typing import Dict


@dataclass
class DecompileError:
    """Error information for a failed decompilation."""
    code: str
    message: str
    retries_exhausted: bool = False
    details: Dict | None = None


@dataclass
class DecompileResponse:
    """Outcome of a decompilation request."""
    content: str
    error: DecompileError | None = None
    attempts: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None
