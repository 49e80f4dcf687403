"""Tests for output file helpers."""

import os
from unittest.mock import patch

import pytest

from smdis.smdis_files import redact_path, sibling_path, write_file_atomic


class TestPaths:
    """Test path helpers."""

    def test_sibling_path(self):
        assert sibling_path(os.path.join("a", "game.json"), ".dis") == os.path.join("a", "game.dis")

    def test_sibling_path_without_extension(self):
        assert sibling_path("unit", ".js") == "unit.js"

    def test_redact_path(self):
        """Test only the file name is shown unless debugging."""
        path = os.path.join("home", "user", "game.json")

        assert redact_path(path) == "game.json"
        assert redact_path(path, debug=True) == path


class TestWriteFileAtomic:
    """Test atomic file writes."""

    def test_write_and_replace(self, tmp_path):
        """Test new content replaces the old file and no temporary file is left."""
        path = tmp_path / "out.dis"
        path.write_text("old", encoding="utf-8")

        write_file_atomic(str(path), "new\n")

        assert path.read_text(encoding="utf-8") == "new\n"
        assert os.listdir(tmp_path) == ["out.dis"]

    def test_failed_replace_keeps_original(self, tmp_path):
        """Test a failing replace leaves the target untouched and cleans up."""
        path = tmp_path / "out.dis"
        path.write_text("old", encoding="utf-8")

        with patch("smdis.smdis_files.os.replace", side_effect=OSError(28, "No space left on device")):
            with pytest.raises(OSError):
                write_file_atomic(str(path), "new")

        assert path.read_text(encoding="utf-8") == "old"
        assert os.listdir(tmp_path) == ["out.dis"]

    def test_missing_directory(self, tmp_path):
        with pytest.raises(OSError):
            write_file_atomic(str(tmp_path / "missing" / "out.dis"), "x")
