"""
Audio converter using FFmpeg.

Re-encodes any input FFmpeg can read into one of the audio targets:
- MP3, WAV, OGG, M4A

Every target is encoded with the LAME MP3 codec at 192 kbit/s; the container
is inferred by FFmpeg from the output file's extension.
"""

from pathlib import Path
from typing import Optional

from ..async_utils import (
    ConcurrencyLimiter,
    SubprocessError,
    SubprocessTimeoutError,
    concurrency_limiter,
    safe_subprocess,
)
from ..config import config
from ..formats import FormatCategory, default_registry
from ..logging_config import (
    ConversionFailureError,
    DependencyError,
    UnsupportedFormatError,
    get_logger,
)

logger = get_logger("converters.audio")

SUPPORTED_OUTPUT_FORMATS = set(default_registry.formats_for(FormatCategory.AUDIO))

AUDIO_CODEC = "libmp3lame"
AUDIO_BITRATE = "192k"


class AudioConverter:
    """Convert audio files between formats using FFmpeg."""

    def __init__(
        self,
        ffmpeg_path: Optional[str] = None,
        timeout: Optional[int] = None,
        limiter: Optional[ConcurrencyLimiter] = None,
    ):
        self.ffmpeg_path = ffmpeg_path or config.ffmpeg_path
        self.timeout = timeout or config.audio_timeout
        self.limiter = limiter or concurrency_limiter

    @staticmethod
    def is_format_supported(format_name: str) -> bool:
        """Check if an output format is supported."""
        return format_name.lower() in SUPPORTED_OUTPUT_FORMATS

    async def convert(self, input_path: Path, output_path: Path, target_format: str) -> Path:
        """
        Convert an audio file to the target format.

        Args:
            input_path: Path to source audio
            output_path: Path the converted audio is written to
            target_format: Target format (mp3, wav, ogg, m4a)

        Returns:
            Path to the converted audio file

        Raises:
            UnsupportedFormatError: If format is not supported
            ConversionFailureError: If FFmpeg fails or times out
            DependencyError: If FFmpeg is not installed
        """
        target_format = target_format.lower()

        if not self.is_format_supported(target_format):
            raise UnsupportedFormatError(
                f"Conversion to {target_format} is not supported",
                suggestion=f"Supported formats: {', '.join(sorted(SUPPORTED_OUTPUT_FORMATS))}",
            )

        cmd = self._build_ffmpeg_command(Path(input_path), Path(output_path))

        async with self.limiter:
            try:
                await safe_subprocess(cmd, timeout=self.timeout)
            except SubprocessError as e:
                raise ConversionFailureError(
                    "Audio conversion failed",
                    suggestion=f"Check if source file is valid. FFmpeg stderr: {e.stderr[-500:]}",
                ) from e
            except SubprocessTimeoutError as e:
                raise ConversionFailureError(
                    f"Audio conversion timed out after {e.timeout}s"
                ) from e
            except FileNotFoundError as e:
                raise DependencyError(
                    f"FFmpeg executable not found: {self.ffmpeg_path}",
                    suggestion="Install FFmpeg or set CONVERTER_FFMPEG_PATH",
                ) from e

        logger.info(f"Converted {input_path} -> {output_path}")
        return Path(output_path)

    def _build_ffmpeg_command(self, source: Path, output: Path) -> list[str]:
        """Build FFmpeg command for audio conversion."""
        return [
            self.ffmpeg_path,
            "-y",
            "-i",
            str(source),
            "-acodec",
            AUDIO_CODEC,
            "-b:a",
            AUDIO_BITRATE,
            str(output),
        ]
