"""Disk space monitoring for the upload directory."""

from pathlib import Path

import psutil

from .logging_config import DiskSpaceError, get_logger

logger = get_logger("monitor")


class ResourceMonitor:
    """Guard conversions against running the upload volume out of space."""

    def __init__(self, min_free_disk_mb: int = 100):
        self.min_free_disk_mb = min_free_disk_mb

    def get_disk_space(self, path: Path) -> dict:
        """Get disk space information for a path."""
        path = Path(path)
        if path.is_file():
            path = path.parent

        usage = psutil.disk_usage(str(path))
        return {
            "total_gb": usage.total / (1024**3),
            "free_mb": usage.free / (1024**2),
            "percent_used": usage.percent,
        }

    def check_disk_space(self, path: Path) -> bool:
        """Check there is enough free space below ``path`` to accept a file.

        A minimum of 0 disables the check.

        Raises:
            DiskSpaceError: If free space is below the configured minimum.
        """
        if not self.min_free_disk_mb:
            return True

        space = self.get_disk_space(path)
        if space["free_mb"] < self.min_free_disk_mb:
            raise DiskSpaceError(
                f"Insufficient disk space: {space['free_mb']:.0f}MB free, "
                f"{self.min_free_disk_mb}MB required",
                suggestion="Free up space in the upload directory",
            )
        return True

    def log_disk_space(self, path: Path) -> None:
        space = self.get_disk_space(path)
        logger.info(
            f"Disk space for {path}: {space['free_mb']:.0f}MB free "
            f"({space['percent_used']:.0f}% used)"
        )

