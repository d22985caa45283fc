"""Persist uploaded files into the private upload directory."""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol

from .file_manager import FileManager, cleanup_files
from .logging_config import IOFailureError, NoFileUploadedError, get_logger
from .monitor import ResourceMonitor

logger = get_logger("upload")

CHUNK_SIZE = 1024 * 1024


class UploadSource(Protocol):
    filename: Optional[str]

    async def read(self, size: int = -1) -> bytes: ...


@dataclass(frozen=True)
class StoredUpload:
    """An uploaded file stored on disk for the lifetime of one request."""

    path: Path
    original_filename: str
    size_bytes: int

    @property
    def source_format(self) -> str:
        return Path(self.original_filename).suffix.lower().lstrip(".")


class UploadReceiver:
    """Stream an uploaded file to a collision-free path under the upload directory."""

    def __init__(
        self,
        file_manager: FileManager,
        max_upload_mb: int = 0,
        monitor: Optional[ResourceMonitor] = None,
    ):
        self.file_manager = file_manager
        self.max_upload_mb = max_upload_mb
        self.monitor = monitor

    async def receive(self, upload: Optional[UploadSource]) -> StoredUpload:
        """Persist ``upload`` to disk.

        Raises:
            NoFileUploadedError: If no file was sent.
            IOFailureError: If the file cannot be written or exceeds the size limit,
                or the upload directory is low on disk space.
        """
        if upload is None or not upload.filename:
            raise NoFileUploadedError()

        if self.monitor is not None:
            self.monitor.check_disk_space(self.file_manager.ensure_upload_dir())

        original_filename = upload.filename
        path, handle = self.file_manager.open_unique(
            self.file_manager.upload_name(original_filename)
        )
        max_bytes = self.max_upload_mb * 1024 * 1024
        size_bytes = 0

        try:
            with handle:
                while True:
                    chunk = await upload.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    size_bytes += len(chunk)
                    if max_bytes and size_bytes > max_bytes:
                        raise IOFailureError(
                            f"Upload exceeds {self.max_upload_mb} MB",
                            suggestion="Upload a smaller file",
                        )
                    handle.write(chunk)
        except OSError as e:
            cleanup_files([path])
            raise IOFailureError(
                f"Failed to store upload {original_filename}", technical_details=str(e)
            ) from e
        except BaseException:
            cleanup_files([path])
            raise

        logger.info(f"Stored upload {original_filename!r} ({size_bytes} bytes) at {path}")
        return StoredUpload(path=path, original_filename=original_filename, size_bytes=size_bytes)
