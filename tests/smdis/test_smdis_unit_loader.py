"""Tests for loading unit descriptions."""

import json

import pytest

from smdis.smdis_error import UnitLoadError
from smdis.smdis_unit import JSSpecial, ObjectKind, TryNote
from smdis.smdis_unit_loader import load_unit, unit_from_dict


def write_unit(tmp_path, data, name="unit.json"):
    path = tmp_path / name
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


class TestUnitFromDict:
    """Test building units from decoded JSON."""

    def test_minimal(self):
        """Test only bytecode is required."""
        unit = unit_from_dict({"bytecode": "05"})

        assert unit.instruction_bytes() == b"\x05"
        assert unit.main_entry_offset() == 0
        assert unit.object_count() == 0
        assert unit.line_for_offset(0) == 1

    def test_hex_with_whitespace(self):
        """Test hex strings may be split across whitespace and lines."""
        unit = unit_from_dict({"bytecode": "3f 3e\n1b  05"})

        assert unit.instruction_bytes() == bytes([0x3f, 0x3e, 0x1b, 0x05])

    def test_byte_list(self):
        """Test bytecode given as a list of integers."""
        assert unit_from_dict({"bytecode": [0, 5]}).instruction_bytes() == b"\x00\x05"

    def test_tables(self):
        """Test atoms, constants, try notes and line tables are loaded."""
        unit = unit_from_dict({
            "bytecode": "00 00 00 05",
            "main_offset": 1,
            "start_line": 10,
            "atoms": ["length"],
            "consts": [1.5, "s", True, None, {"special": "undefined"}, {"special": "null"}],
            "try_notes": [{"kind": 1, "stack_depth": 2, "start": 1, "length": 2}],
            "lines": [[2, 12], [0, 10]],
            "filename": "game.js"
        })

        assert unit.main_entry_offset() == 1
        assert unit.atom_at(0) == "length"
        assert unit.consts == [1.5, "s", True, JSSpecial.NULL, JSSpecial.UNDEFINED, JSSpecial.NULL]
        assert list(unit.try_notes()) == [TryNote(1, 2, 1, 2)]
        assert unit.line_for_offset(1) == 10
        assert unit.line_for_offset(3) == 12
        assert unit.filename == "game.js"

    def test_nested_function(self):
        """Test function objects carry their own units."""
        unit = unit_from_dict({
            "bytecode": "82 00 00 00 00 05",
            "objects": [
                {"kind": "function", "name": "inner", "script": {"bytecode": "05"}},
                {"kind": "function", "name": "lost"},
                {"kind": "regexp", "source": "a+", "flags": 3}
            ]
        })

        inner = unit.object_at(0)
        assert inner.kind == ObjectKind.FUNCTION
        assert inner.name == "inner"
        assert inner.script.instruction_bytes() == b"\x05"
        assert unit.object_at(1).script is None
        regexp = unit.object_at(2)
        assert regexp.kind == ObjectKind.REGEXP
        assert (regexp.source, regexp.flags) == ("a+", 3)

    def test_declared_object_count(self):
        """Test object_count overrides the real table size."""
        unit = unit_from_dict({"bytecode": "05", "object_count": 500})

        assert unit.object_count() == 500
        assert unit.object_at(0) is None

    @pytest.mark.parametrize("data,message", [
        ([], "must be a JSON object"),
        ({}, "has no bytecode"),
        ({"bytecode": "zz"}, "invalid bytecode hex"),
        ({"bytecode": [256]}, "invalid bytecode byte list"),
        ({"bytecode": 5}, "hex string or a list"),
        ({"bytecode": "05", "consts": [{"special": "nan"}]}, "unknown constant"),
        ({"bytecode": "05", "consts": [[1]]}, "unsupported constant"),
        ({"bytecode": "05", "objects": [{"kind": "class"}]}, "unknown object kind"),
        ({"bytecode": "05", "objects": ["f"]}, "must be a JSON object"),
        ({"bytecode": "05", "try_notes": [{"start": 0}]}, "invalid try note"),
        ({"bytecode": "05", "lines": [["a", 1]]}, "invalid line table"),
        ({"bytecode": "05", "lines": 5}, "lines at depth 0 must be a JSON array"),
        ({"bytecode": "05", "main_offset": "start"}, "invalid unit description at depth 0"),
        ({"bytecode": "05", "start_line": [1]}, "invalid unit description at depth 0"),
        ({"bytecode": "05", "object_count": "many"}, "invalid unit description at depth 0"),
        ({"bytecode": "05", "objects": [{"kind": "regexp", "flags": "gi"}]}, "invalid unit description"),
        ({"bytecode": "05", "try_notes": 5}, "try_notes at depth 0 must be a JSON array"),
        ({"bytecode": "05", "atoms": "length"}, "atoms at depth 0 must be a JSON array"),
        ({"bytecode": "05", "consts": {"a": 1}}, "consts at depth 0 must be a JSON array"),
        ({"bytecode": "05", "objects": 3}, "objects at depth 0 must be a JSON array"),
    ])
    def test_malformed(self, data, message):
        """Test malformed descriptions raise UnitLoadError."""
        with pytest.raises(UnitLoadError, match=message):
            unit_from_dict(data)

    def test_malformed_nested_unit(self):
        """Test errors in nested units name their depth."""
        with pytest.raises(UnitLoadError, match="depth 1"):
            unit_from_dict({"bytecode": "05", "objects": [{"kind": "function", "script": {}}]})


class TestLoadUnit:
    """Test loading unit description files."""

    def test_load(self, tmp_path):
        """Test a file round trip."""
        path = write_unit(tmp_path, {"bytecode": "00 05", "atoms": ["x"]})

        unit = load_unit(path)

        assert unit.length() == 2
        assert unit.atom_at(0) == "x"

    def test_missing_file(self, tmp_path):
        """Test a missing file raises UnitLoadError."""
        with pytest.raises(UnitLoadError, match="cannot read"):
            load_unit(str(tmp_path / "missing.json"))

    def test_invalid_json(self, tmp_path):
        """Test a file that is not JSON raises UnitLoadError."""
        path = tmp_path / "bad.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(UnitLoadError, match="invalid JSON"):
            load_unit(str(path))

    def test_not_utf8(self, tmp_path):
        """Test a file that is not UTF-8 raises UnitLoadError."""
        path = tmp_path / "binary.json"
        path.write_bytes(b'{"bytecode": "\xff"}')

        with pytest.raises(UnitLoadError, match="not valid UTF-8"):
            load_unit(str(path))
