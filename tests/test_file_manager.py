"""Unit tests for file manager module."""

import logging
import re
from pathlib import Path
from unittest.mock import patch

import pytest

from file_converter.file_manager import (
    MAX_FILENAME_LENGTH,
    FileManager,
    cleanup_files,
    sanitize_filename,
)
from file_converter.logging_config import IOFailureError


class TestSanitizeFilename:
    """Test cases for client filename sanitisation."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("song.mp3", "song.mp3"),
            ("../../etc/passwd", "passwd"),
            ("..\\..\\windows\\system32\\evil.dll", "evil.dll"),
            ("/absolute/path/report.docx", "report.docx"),
            ("my file (1).png", "my_file__1_.png"),
            ("..hidden", "hidden"),
            ("résumé.pdf", "r_sum_.pdf"),
        ],
    )
    def test_sanitize(self, raw, expected):
        assert sanitize_filename(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "..", "/", "../..", "???"])
    def test_sanitize_falls_back_to_default(self, raw):
        assert sanitize_filename(raw) == "upload"

    def test_sanitize_truncates_long_names_keeping_extension(self):
        name = sanitize_filename("a" * 500 + ".jpeg")

        assert len(name) == MAX_FILENAME_LENGTH
        assert name.endswith(".jpeg")

    def test_sanitized_name_has_no_separators(self):
        name = sanitize_filename("a/b\\c/../d.txt")

        assert "/" not in name
        assert "\\" not in name


class TestCleanupFiles:
    """Test cases for the cleanup policy."""

    def test_removes_all_files(self, tmp_path):
        files = [tmp_path / f"f{i}" for i in range(3)]
        for f in files:
            f.write_bytes(b"x")

        removed = cleanup_files(files)

        assert removed == files
        assert not any(f.exists() for f in files)

    def test_missing_files_are_tolerated(self, tmp_path):
        present = tmp_path / "present"
        present.write_bytes(b"x")

        removed = cleanup_files([tmp_path / "missing", None, present])

        assert removed == [present]

    def test_idempotent(self, tmp_path):
        target = tmp_path / "once"
        target.write_bytes(b"x")

        assert cleanup_files([target]) == [target]
        assert cleanup_files([target]) == []

    def test_duplicates_removed_once(self, tmp_path):
        target = tmp_path / "dup"
        target.write_bytes(b"x")

        assert cleanup_files([target, str(target)]) == [target]

    def test_failures_are_logged_not_raised(self, tmp_path, caplog):
        first = tmp_path / "locked"
        second = tmp_path / "free"
        first.write_bytes(b"x")
        second.write_bytes(b"x")

        original_unlink = Path.unlink

        def flaky_unlink(self, *args, **kwargs):
            if self.name == "locked":
                raise PermissionError("denied")
            return original_unlink(self, *args, **kwargs)

        with patch.object(Path, "unlink", flaky_unlink):
            with caplog.at_level(logging.ERROR):
                removed = cleanup_files([first, second])

        assert removed == [second]
        assert first.exists()
        assert "denied" in caplog.text


class TestFileManager:
    """Test cases for FileManager class."""

    def test_ensure_upload_dir_idempotent(self, tmp_path):
        manager = FileManager(tmp_path / "a" / "b")

        assert manager.ensure_upload_dir().is_dir()
        assert manager.ensure_upload_dir().is_dir()

    def test_ensure_upload_dir_failure(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        manager = FileManager(blocker / "uploads")

        with pytest.raises(IOFailureError):
            manager.ensure_upload_dir()

    def test_upload_name(self, tmp_path):
        name = FileManager(tmp_path).upload_name("../secret/song.mp3")

        assert re.fullmatch(r"\d+-song\.mp3", name)

    def test_output_name(self, tmp_path):
        name = FileManager(tmp_path).output_name("webp")

        assert re.fullmatch(r"\d+-converted\.webp", name)

    def test_open_unique_creates_file(self, tmp_path):
        manager = FileManager(tmp_path)
        path, handle = manager.open_unique("123-song.mp3")
        with handle:
            handle.write(b"data")

        assert path == tmp_path / "123-song.mp3"
        assert path.read_bytes() == b"data"

    def test_open_unique_handles_collision(self, tmp_path):
        manager = FileManager(tmp_path)
        (tmp_path / "123-song.mp3").write_bytes(b"first")

        path, handle = manager.open_unique("123-song.mp3")
        handle.close()

        assert path == tmp_path / "123-song-1.mp3"
        assert (tmp_path / "123-song.mp3").read_bytes() == b"first"

    def test_open_unique_multiple_collisions(self, tmp_path):
        manager = FileManager(tmp_path)
        paths = [manager.reserve_path("same.txt") for _ in range(3)]

        assert [p.name for p in paths] == ["same.txt", "same-1.txt", "same-2.txt"]

    def test_reserve_output_path(self, tmp_path):
        manager = FileManager(tmp_path)
        path = manager.reserve_output_path("pdf")

        assert path.parent == tmp_path
        assert path.suffix == ".pdf"
        assert path.exists()
        assert path.stat().st_size == 0

    def test_same_timestamp_yields_distinct_paths(self, tmp_path):
        """Two requests in the same nanosecond still get distinct files."""
        manager = FileManager(tmp_path)

        with patch.object(FileManager, "timestamp", return_value=42):
            first = manager.reserve_path(manager.upload_name("song.mp3"))
            second = manager.reserve_path(manager.upload_name("song.mp3"))

        assert first != second
        assert first.exists() and second.exists()
