"""Shared fixtures and utilities for smdis tests."""

from typing import Any, List

import pytest

from smdis.smdis_config import DisassemblyConfig
from smdis.smdis_disassembler import UnitDisassembler
from smdis.smdis_function_tree import FunctionTreeWalker
from smdis.smdis_opcodes import Opcode, OpcodeTable
from smdis.smdis_unit import ScriptUnit

from smdis_test_utils import UnitBuilder


class SmdisTestHelpers:
    """Helper utilities for smdis testing."""

    @staticmethod
    def simple_unit(*opcodes: Opcode) -> ScriptUnit:
        """Build a unit from operand-less opcodes."""
        builder = UnitBuilder()
        for opcode in opcodes:
            builder.op(opcode)

        return builder.build()

    @staticmethod
    def instruction_lines(text: str) -> List[str]:
        """Return only the instruction lines of a listing (those starting with a 5-digit address)."""
        result = []
        for line in text.splitlines():
            head = line[:5]
            if len(head) == 5 and all(c in "0123456789ABCDEF" for c in head) and line[5:7] == "  ":
                result.append(line)

        return result

    @staticmethod
    def comment_of(line: str) -> str | None:
        """Return the trailing comment of a listing line, if any."""
        pos = line.find("; ")
        if pos < 0:
            return None

        return line[pos + 2:]


@pytest.fixture
def builder():
    """Create a fresh UnitBuilder for each test."""
    return UnitBuilder()


@pytest.fixture
def table():
    """Standard opcode table."""
    return OpcodeTable.default()


@pytest.fixture
def plain_config():
    """Configuration without console-only hints."""
    return DisassemblyConfig(extended_hints=False)


@pytest.fixture
def disassembler(plain_config):
    """UnitDisassembler using the plain configuration."""
    return UnitDisassembler(config=plain_config)


@pytest.fixture
def walker_factory():
    """Factory for FunctionTreeWalker instances with custom configuration."""
    def _create_walker(**kwargs: Any) -> FunctionTreeWalker:
        return FunctionTreeWalker(config=DisassemblyConfig(**kwargs))

    return _create_walker


@pytest.fixture
def helpers():
    """Provide test helper utilities."""
    return SmdisTestHelpers
