"""Tests for writing generated files."""

import pytest

from modelgen_cli.errors import GenerationError
from modelgen_cli.generator import write_files


class TestWriteFiles:
    """Test file output."""

    def test_creates_nested_directories(self, tmp_path):
        written = write_files(tmp_path / "out", {"models/users.py": "x = 1\n", "models/__init__.py": ""})

        assert (tmp_path / "out" / "models" / "users.py").read_text(encoding="utf-8") == "x = 1\n"
        assert len(written) == 2

    def test_overwrites_by_default(self, tmp_path):
        target = tmp_path / "users.py"
        target.write_text("old", encoding="utf-8")

        write_files(tmp_path, {"users.py": "new"})

        assert target.read_text(encoding="utf-8") == "new"

    def test_skips_existing_without_overwrite(self, tmp_path):
        target = tmp_path / "users.py"
        target.write_text("edited by hand", encoding="utf-8")

        written = write_files(tmp_path, {"users.py": "new", "posts.py": "new"}, overwrite=False)

        assert target.read_text(encoding="utf-8") == "edited by hand"
        assert written == [tmp_path / "posts.py"]

    def test_os_error_is_wrapped(self, tmp_path):
        (tmp_path / "models").write_text("not a directory", encoding="utf-8")

        with pytest.raises(GenerationError) as exc_info:
            write_files(tmp_path, {"models/users.py": "x = 1\n"})

        assert exc_info.value.code == "GENERATION_ERROR"
        assert exc_info.value.details["path"].endswith("users.py")
