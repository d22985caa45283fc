"""Configuration management for the converter service."""

import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .formats import FormatCategory


def _default_upload_dir() -> Path:
    return Path(tempfile.gettempdir()) / "file-converter" / "uploads"


@dataclass
class ConverterConfig:
    """Configuration settings for the converter service."""

    host: str = "0.0.0.0"
    port: int = 3571

    upload_dir: Optional[Path] = None
    max_upload_mb: int = 0
    min_free_disk_mb: int = 100

    max_concurrent: int = field(default_factory=lambda: min(4, os.cpu_count() or 4))
    audio_timeout: int = 1800
    document_timeout: int = 600
    image_timeout: int = 300

    ffmpeg_path: str = "ffmpeg"
    soffice_path: str = "soffice"
    require_dependencies: bool = False

    log_level: str = "INFO"
    log_file: Optional[Path] = None

    def __post_init__(self):
        if self.upload_dir is None:
            self.upload_dir = _default_upload_dir()

        if isinstance(self.upload_dir, str):
            self.upload_dir = Path(self.upload_dir)

        if isinstance(self.log_file, str):
            self.log_file = Path(self.log_file)

    @classmethod
    def from_env(cls) -> "ConverterConfig":
        """Load configuration from environment variables."""
        return cls(
            host=os.environ.get("CONVERTER_HOST", "0.0.0.0"),
            port=int(os.environ.get("CONVERTER_PORT", 3571)),
            upload_dir=Path(p) if (p := os.environ.get("CONVERTER_UPLOAD_DIR")) else None,
            max_upload_mb=int(os.environ.get("CONVERTER_MAX_UPLOAD_MB", 0)),
            min_free_disk_mb=int(os.environ.get("CONVERTER_MIN_FREE_DISK_MB", 100)),
            max_concurrent=int(
                os.environ.get("CONVERTER_MAX_CONCURRENT", min(4, os.cpu_count() or 4))
            ),
            audio_timeout=int(os.environ.get("CONVERTER_AUDIO_TIMEOUT", 1800)),
            document_timeout=int(os.environ.get("CONVERTER_DOCUMENT_TIMEOUT", 600)),
            image_timeout=int(os.environ.get("CONVERTER_IMAGE_TIMEOUT", 300)),
            ffmpeg_path=os.environ.get("CONVERTER_FFMPEG_PATH", "ffmpeg"),
            soffice_path=os.environ.get("CONVERTER_SOFFICE_PATH", "soffice"),
            require_dependencies=os.environ.get("CONVERTER_REQUIRE_DEPENDENCIES", "").lower()
            in {"1", "true", "yes", "on"},
            log_level=os.environ.get("CONVERTER_LOG_LEVEL", "INFO"),
            log_file=Path(p) if (p := os.environ.get("CONVERTER_LOG_FILE")) else None,
        )

    def get_timeout_for_category(self, category: FormatCategory) -> int:
        """Get timeout for a specific format category."""
        if category is FormatCategory.AUDIO:
            return self.audio_timeout
        elif category is FormatCategory.DOCUMENT:
            return self.document_timeout
        else:
            return self.image_timeout


config = ConverterConfig.from_env()
