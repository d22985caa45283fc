"""
Image converter using Pillow.

Re-encodes any raster image Pillow can open into one of the image targets:
- JPEG, PNG, WebP

All targets are saved with a fixed quality of 90. Pillow ignores ``quality``
for PNG, which is accepted as-is.
"""

import asyncio
from pathlib import Path
from typing import Optional

from ..async_utils import ConcurrencyLimiter, concurrency_limiter
from ..config import config
from ..formats import FormatCategory, default_registry
from ..logging_config import ConversionFailureError, UnsupportedFormatError, get_logger

logger = get_logger("converters.image")

SUPPORTED_OUTPUT_FORMATS = set(default_registry.formats_for(FormatCategory.IMAGE))

PILLOW_FORMAT_MAP = {
    "jpg": "JPEG",
    "jpeg": "JPEG",
    "png": "PNG",
    "webp": "WEBP",
}

IMAGE_QUALITY = 90


class ImageConverter:
    """Convert images between formats using Pillow."""

    def __init__(
        self,
        quality: int = IMAGE_QUALITY,
        timeout: Optional[int] = None,
        limiter: Optional[ConcurrencyLimiter] = None,
    ):
        self.quality = quality
        self.timeout = timeout or config.image_timeout
        self.limiter = limiter or concurrency_limiter

    @staticmethod
    def is_format_supported(format_name: str) -> bool:
        """Check if an output format is supported."""
        return format_name.lower() in SUPPORTED_OUTPUT_FORMATS

    async def convert(self, input_path: Path, output_path: Path, target_format: str) -> Path:
        """
        Convert an image to the target format.

        Args:
            input_path: Path to source image
            output_path: Path the converted image is written to
            target_format: Target format (jpg, jpeg, png, webp)

        Returns:
            Path to the converted image

        Raises:
            UnsupportedFormatError: If format is not supported
            ConversionFailureError: If Pillow cannot decode or encode the image
        """
        target_format = target_format.lower()

        if not self.is_format_supported(target_format):
            raise UnsupportedFormatError(
                f"Conversion to {target_format} is not supported",
                suggestion=f"Supported formats: {', '.join(sorted(SUPPORTED_OUTPUT_FORMATS))}",
            )

        async with self.limiter:
            worker = asyncio.get_running_loop().run_in_executor(
                None,
                self._convert_sync,
                Path(input_path),
                Path(output_path),
                target_format,
            )
            try:
                result = await asyncio.wait_for(asyncio.shield(worker), timeout=self.timeout)
            except asyncio.TimeoutError as e:
                raise ConversionFailureError(
                    f"Image conversion timed out after {self.timeout}s"
                ) from e
            finally:
                # Pillow threads cannot be interrupted; keep the slot and the
                # output path until the worker has stopped writing.
                if not worker.done():
                    logger.warning(f"Waiting for abandoned image conversion of {input_path}")
                    await asyncio.gather(worker, return_exceptions=True)

        logger.info(f"Converted {input_path} -> {output_path}")
        return result

    def _convert_sync(self, source: Path, output: Path, target_format: str) -> Path:
        """Synchronous conversion using Pillow."""
        from PIL import Image, UnidentifiedImageError

        pillow_format = PILLOW_FORMAT_MAP[target_format]

        try:
            with Image.open(source) as img:
                if pillow_format == "JPEG" and img.mode not in ("RGB", "L", "CMYK"):
                    img = img.convert("RGB")
                img.save(output, format=pillow_format, quality=self.quality)
        except UnidentifiedImageError as e:
            raise ConversionFailureError(
                f"Input file is not a supported image: {source.name}",
                suggestion="Upload a JPEG, PNG, WebP, GIF, BMP or TIFF image",
            ) from e
        except (OSError, ValueError) as e:
            raise ConversionFailureError(f"Image conversion failed: {e}") from e

        return output
