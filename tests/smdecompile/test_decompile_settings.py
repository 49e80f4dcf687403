"""Tests for decompiler settings."""

import json

import pytest

from smdecompile.decompile_settings import DecompileSettings


class TestDecompileSettings:
    """Test settings defaults, validation and loading."""

    def test_defaults(self):
        settings = DecompileSettings()

        assert settings.host == "http://localhost:11434"
        assert settings.model == "llama31-abliterated-q8:latest"
        assert settings.timeout == 300
        assert settings.retries == 3
        assert settings.num_ctx == 65536
        assert settings.connect_timeout == 5
        assert settings.first_byte_timeout == 30
        assert settings.max_wall_time == 600
        settings.validate()

    def test_generate_url(self):
        """Test the endpoint URL tolerates a trailing slash."""
        assert DecompileSettings(host="http://box:11434/").generate_url == "http://box:11434/api/generate"

    @pytest.mark.parametrize("changes,message", [
        ({"host": ""}, "host"),
        ({"model": ""}, "model"),
        ({"timeout": 0}, "timeout"),
        ({"retries": -1}, "retries"),
        ({"num_ctx": 1023}, "num_ctx"),
        ({"num_ctx": 131073}, "num_ctx"),
        ({"connect_timeout": 0}, "connect_timeout"),
        ({"max_wall_time": -1}, "max_wall_time"),
    ])
    def test_validate_rejects(self, changes, message):
        """Test out-of-range values are rejected."""
        with pytest.raises(ValueError, match=message):
            DecompileSettings(**changes).validate()

    def test_context_bounds_accepted(self):
        DecompileSettings(num_ctx=1024).validate()
        DecompileSettings(num_ctx=131072).validate()

    def test_load_partial_file(self, tmp_path):
        """Test keys missing from the file keep their defaults."""
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"model": "qwen", "timeout": 60, "max_wall_time": 120}), encoding="utf-8")

        settings = DecompileSettings.load(str(path))

        assert settings.model == "qwen"
        assert settings.timeout == 60
        assert settings.max_wall_time == 120
        assert settings.retries == 3

    def test_load_invalid_json(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("{", encoding="utf-8")

        with pytest.raises(json.JSONDecodeError):
            DecompileSettings.load(str(path))

    def test_load_invalid_value(self, tmp_path):
        """Test loaded values are validated."""
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"retries": -2}), encoding="utf-8")

        with pytest.raises(ValueError, match="retries"):
            DecompileSettings.load(str(path))
