"""
Document converter using the LibreOffice CLI.

Supports conversions of any office document LibreOffice can open into:
- PDF, DOCX, TXT

The whole input is buffered in memory, converted in a private scratch
directory and the resulting buffer is written verbatim to the output path.
"""

import asyncio
import tempfile
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

logger = get_logger("converters.document")

SUPPORTED_OUTPUT_FORMATS = set(default_registry.formats_for(FormatCategory.DOCUMENT))

SOURCE_STEM = "source"


class DocumentConverter:
    """Convert office documents between formats using LibreOffice."""

    def __init__(
        self,
        soffice_path: Optional[str] = None,
        timeout: Optional[int] = None,
        limiter: Optional[ConcurrencyLimiter] = None,
    ):
        self.soffice_path = soffice_path or config.soffice_path
        self.timeout = timeout or config.document_timeout
        self.limiter = limiter or concurrency_limiter

    @staticmethod
    def is_format_supported(format_name: str) -> bool:
        """Check if an output format is supported."""
        return format_name.lower() in SUPPORTED_OUTPUT_FORMATS

    async def convert(self, input_path: Path, output_path: Path, target_format: str) -> Path:
        """
        Convert a document to the target format.

        Args:
            input_path: Path to source document
            output_path: Path the converted document is written to
            target_format: Target format (pdf, docx, txt)

        Returns:
            Path to the converted document

        Raises:
            UnsupportedFormatError: If format is not supported
            ConversionFailureError: If LibreOffice fails or produces no output
            DependencyError: If LibreOffice is not installed
        """
        target_format = target_format.lower()

        if not self.is_format_supported(target_format):
            raise UnsupportedFormatError(
                f"Conversion to {target_format} is not supported",
                suggestion=f"Supported formats: {', '.join(sorted(SUPPORTED_OUTPUT_FORMATS))}",
            )

        input_path = Path(input_path)
        output_path = Path(output_path)

        data = await asyncio.to_thread(input_path.read_bytes)
        converted = await self.convert_bytes(data, f".{target_format}", input_path.suffix)
        await asyncio.to_thread(output_path.write_bytes, converted)

        logger.info(f"Converted {input_path} -> {output_path}")
        return output_path

    async def convert_bytes(self, data: bytes, extension: str, source_suffix: str = "") -> bytes:
        """
        Convert an in-memory document for the given target extension.

        Args:
            data: Raw bytes of the source document
            extension: Target extension including the dot (e.g. ".pdf")
            source_suffix: Extension of the source document, helps LibreOffice
                pick an import filter for formats it cannot sniff

        Returns:
            Raw bytes of the converted document
        """
        target = extension.lstrip(".")

        with tempfile.TemporaryDirectory(
            prefix="converter_soffice_", ignore_cleanup_errors=True
        ) as scratch:
            work_dir = Path(scratch)
            source = work_dir / f"{SOURCE_STEM}{source_suffix}"
            out_dir = work_dir / "out"
            out_dir.mkdir()
            await asyncio.to_thread(source.write_bytes, data)

            cmd = self._build_soffice_command(source, out_dir, target, work_dir / "profile")

            async with self.limiter:
                try:
                    _, stdout, stderr = await safe_subprocess(cmd, timeout=self.timeout)
                except SubprocessError as e:
                    raise ConversionFailureError(
                        "Document conversion failed",
                        suggestion=f"Check if source file is valid. stderr: {e.stderr[-500:]}",
                    ) from e
                except SubprocessTimeoutError as e:
                    raise ConversionFailureError(
                        f"Document conversion timed out after {e.timeout}s"
                    ) from e
                except FileNotFoundError as e:
                    raise DependencyError(
                        f"LibreOffice executable not found: {self.soffice_path}",
                        suggestion="Install LibreOffice or set CONVERTER_SOFFICE_PATH",
                    ) from e

            result = out_dir / f"{SOURCE_STEM}.{target}"
            if not result.is_file():
                raise ConversionFailureError(
                    f"Document conversion to {target} produced no output",
                    suggestion=(stderr or stdout)[-500:] or None,
                )

            return await asyncio.to_thread(result.read_bytes)

    def _build_soffice_command(
        self, source: Path, out_dir: Path, target: str, profile_dir: Path
    ) -> list[str]:
        """Build LibreOffice headless conversion command.

        Each run gets its own user profile so concurrent conversions do not
        contend for the profile lock.
        """
        return [
            self.soffice_path,
            f"-env:UserInstallation={profile_dir.as_uri()}",
            "--headless",
            "--norestore",
            "--convert-to",
            target,
            "--outdir",
            str(out_dir),
            str(source),
        ]
