"""File management for request-scoped temporary artifacts.

This module provides the FileManager class that owns the private upload
directory: sanitising client supplied filenames, reserving collision-free
paths for uploads and conversion outputs, and the cleanup policy that removes
them once a request is finished.
"""

import re
import time
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Iterable, Optional

from .logging_config import IOFailureError, get_logger

logger = get_logger("file_manager")

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")
MAX_FILENAME_LENGTH = 128
MAX_COLLISIONS = 1000


def sanitize_filename(filename: Optional[str], default: str = "upload") -> str:
    """Reduce a client supplied filename to a safe single path component.

    Directory parts (``/`` or ``\\``) are dropped, unsafe characters become
    ``_`` and leading dots are stripped so the result can never escape the
    upload directory or become a hidden file.
    """
    if not filename:
        return default

    name = PurePosixPath(filename.replace("\\", "/")).name
    name = _UNSAFE_CHARS.sub("_", name).lstrip(".")

    if len(name) > MAX_FILENAME_LENGTH:
        stem, dot, ext = name.rpartition(".")
        if dot and len(ext) < 16:
            name = stem[: MAX_FILENAME_LENGTH - len(ext) - 1] + "." + ext
        else:
            name = name[:MAX_FILENAME_LENGTH]

    if not name.strip("_"):
        return default
    return name


def cleanup_files(paths: Iterable[Optional[str | Path]]) -> list[Path]:
    """Remove every path, logging and tolerating individual failures.

    Missing files are skipped silently; None entries are ignored.

    Returns:
        The paths that were actually removed.
    """
    removed: list[Path] = []
    seen: set[Path] = set()

    for raw in paths:
        if raw is None:
            continue
        path = Path(raw)
        if path in seen:
            continue
        seen.add(path)

        try:
            path.unlink()
            removed.append(path)
            logger.debug(f"Removed temp file: {path}")
        except FileNotFoundError:
            continue
        except OSError as e:
            logger.error(f"Error cleaning up file {path}: {e}")

    return removed


class FileManager:
    """Handles the private upload directory and collision-free file names."""

    def __init__(self, upload_dir: str | Path):
        """Initialize FileManager.

        Args:
            upload_dir: Directory that holds uploaded inputs and converted outputs.
        """
        self.upload_dir = Path(upload_dir)

    def ensure_upload_dir(self) -> Path:
        """Create the upload directory if it does not exist yet.

        Raises:
            IOFailureError: If the directory cannot be created.
        """
        try:
            self.upload_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise IOFailureError(
                f"Failed to create upload directory {self.upload_dir}",
                technical_details=str(e),
            ) from e
        return self.upload_dir

    @staticmethod
    def timestamp() -> int:
        """High resolution timestamp used as a unique file name prefix."""
        return time.time_ns()

    def upload_name(self, original_filename: Optional[str]) -> str:
        """Storage name for an uploaded file: ``<timestamp>-<sanitised name>``."""
        return f"{self.timestamp()}-{sanitize_filename(original_filename)}"

    def output_name(self, target_format: str) -> str:
        """Storage name for a conversion output: ``<timestamp>-converted.<format>``."""
        return f"{self.timestamp()}-converted.{target_format}"

    def open_unique(self, name: str) -> tuple[Path, BinaryIO]:
        """Create ``name`` exclusively in the upload directory and open it for writing.

        On collision a numeric suffix is appended to the stem until a free
        name is found.

        Returns:
            Tuple of (path, open binary file handle).

        Raises:
            IOFailureError: If the file cannot be created or too many collisions occur.
        """
        self.ensure_upload_dir()
        candidate = self.upload_dir / name
        stem, suffix = candidate.stem, candidate.suffix

        counter = 0
        while True:
            try:
                handle = candidate.open("xb")
                if counter:
                    logger.debug(f"Collision detected, using renamed path: {candidate}")
                return candidate, handle
            except FileExistsError:
                counter += 1
                if counter > MAX_COLLISIONS:
                    raise IOFailureError(
                        f"Too many file collisions for {name}. Cannot find available path."
                    )
                candidate = self.upload_dir / f"{stem}-{counter}{suffix}"
            except OSError as e:
                raise IOFailureError(
                    f"Failed to create file {candidate}", technical_details=str(e)
                ) from e

    def reserve_path(self, name: str) -> Path:
        """Reserve a collision-free path by creating it as an empty file."""
        path, handle = self.open_unique(name)
        handle.close()
        return path

    def reserve_output_path(self, target_format: str) -> Path:
        """Reserve a fresh output path carrying the target format's extension."""
        path = self.reserve_path(self.output_name(target_format))
        logger.debug(f"Resolved output path: {path}")
        return path
