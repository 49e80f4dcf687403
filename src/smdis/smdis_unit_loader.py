"""
Loading of bytecode units from JSON unit descriptions.

A unit description is a JSON object:

    {
        "filename": "game.js",
        "bytecode": "3f 3e 1b 05",
        "main_offset": 0,
        "start_line": 1,
        "atoms": ["length", "onClick"],
        "consts": [1.5, "text", true, null, {"special": "undefined"}],
        "objects": [
            {"kind": "function", "name": "onClick", "script": { ...unit... }},
            {"kind": "regexp", "source": "a+b", "flags": 3}
        ],
        "object_count": 2,
        "try_notes": [{"kind": 0, "stack_depth": 0, "start": 4, "length": 10}],
        "lines": [[0, 1], [4, 2]]
    }

Only "bytecode" is required.  "object_count" overrides the declared object
table size and exists to describe damaged units.
"""

import json
from typing import Any, Dict, List

from smdis.smdis_error import UnitLoadError
from smdis.smdis_unit import JSSpecial, ObjectKind, ScriptUnit, TryNote, UnitObject


def _parse_bytecode(value: Any) -> bytes:
    if isinstance(value, list):
        try:
            return bytes(value)

        except (TypeError, ValueError) as e:
            raise UnitLoadError(f"invalid bytecode byte list: {e}") from e

    if not isinstance(value, str):
        raise UnitLoadError("bytecode must be a hex string or a list of bytes")

    try:
        return bytes.fromhex("".join(value.split()))

    except ValueError as e:
        raise UnitLoadError(f"invalid bytecode hex: {e}") from e


def _parse_const(value: Any) -> Any:
    if value is None:
        return JSSpecial.NULL

    if isinstance(value, dict):
        special = value.get("special")
        if special == "undefined":
            return JSSpecial.UNDEFINED

        if special == "null":
            return JSSpecial.NULL

        raise UnitLoadError(f"unknown constant {value!r}")

    if isinstance(value, (bool, int, float, str)):
        return value

    raise UnitLoadError(f"unsupported constant {value!r}")


def _parse_object(data: Any, depth: int) -> UnitObject:
    if not isinstance(data, dict):
        raise UnitLoadError(f"object entry must be a JSON object, got {data!r}")

    try:
        kind = ObjectKind(data.get("kind", "object"))

    except ValueError as e:
        raise UnitLoadError(f"unknown object kind {data.get('kind')!r}") from e

    script = None
    if kind == ObjectKind.FUNCTION and data.get("script") is not None:
        script = unit_from_dict(data["script"], depth + 1)

    return UnitObject(
        kind=kind,
        name=data.get("name"),
        script=script,
        source=data.get("source"),
        flags=int(data.get("flags", 0))
    )


def _parse_try_notes(entries: List[Any]) -> List[TryNote]:
    notes = []
    for entry in entries:
        try:
            notes.append(TryNote(
                kind=int(entry.get("kind", 0)),
                stack_depth=int(entry.get("stack_depth", 0)),
                start=int(entry["start"]),
                length=int(entry["length"])
            ))

        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise UnitLoadError(f"invalid try note {entry!r}") from e

    return notes


def _list_field(data: Dict[str, Any], key: str, depth: int) -> List[Any]:
    value = data.get(key, [])
    if not isinstance(value, list):
        raise UnitLoadError(f"{key} at depth {depth} must be a JSON array, got {type(value).__name__}")

    return value


def unit_from_dict(data: Dict[str, Any], depth: int = 0) -> ScriptUnit:
    """
    Build a ScriptUnit (and its nested function units) from a unit description.

    Args:
        data: Decoded JSON unit description
        depth: Nesting depth of this description, used for error messages

    Returns:
        ScriptUnit

    Raises:
        UnitLoadError: If the description is malformed
    """
    if not isinstance(data, dict):
        raise UnitLoadError(f"unit description at depth {depth} must be a JSON object")

    if "bytecode" not in data:
        raise UnitLoadError(f"unit description at depth {depth} has no bytecode")

    try:
        lines = [(int(offset), int(line)) for offset, line in _list_field(data, "lines", depth)]

    except (TypeError, ValueError) as e:
        raise UnitLoadError(f"invalid line table: {e}") from e

    declared = data.get("object_count")

    try:
        return ScriptUnit(
            bytecode=_parse_bytecode(data["bytecode"]),
            main_offset=int(data.get("main_offset", 0)),
            atoms=[str(atom) for atom in _list_field(data, "atoms", depth)],
            consts=[_parse_const(value) for value in _list_field(data, "consts", depth)],
            objects=[_parse_object(entry, depth) for entry in _list_field(data, "objects", depth)],
            notes=_parse_try_notes(_list_field(data, "try_notes", depth)),
            lines=lines,
            start_line=int(data.get("start_line", 1)),
            filename=data.get("filename"),
            declared_object_count=int(declared) if declared is not None else None
        )

    except (AttributeError, TypeError, ValueError) as e:
        raise UnitLoadError(f"invalid unit description at depth {depth}: {e}") from e


def load_unit(path: str) -> ScriptUnit:
    """
    Load a unit description file.

    Args:
        path: Path to the JSON file

    Returns:
        Root ScriptUnit

    Raises:
        UnitLoadError: If the file cannot be read or is malformed
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)

    except OSError as e:
        raise UnitLoadError(f"cannot read {path}: {e.strerror}") from e

    except UnicodeDecodeError as e:
        raise UnitLoadError(f"{path} is not valid UTF-8: {e}") from e

    except json.JSONDecodeError as e:
        raise UnitLoadError(f"invalid JSON in {path}: {e}") from e

    return unit_from_dict(data)
