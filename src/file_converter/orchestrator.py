"""
Conversion orchestration.

Validates the requested target format against the format registry, reserves
an output path and routes the conversion to the converter registered for the
format's category.
"""

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from .config import ConverterConfig, config as default_config
from .converters import AudioConverter, Converter, DocumentConverter, ImageConverter
from .file_manager import FileManager, cleanup_files
from .formats import FormatCategory, FormatRegistry, default_registry
from .logging_config import (
    ConversionFailureError,
    ConverterError,
    IOFailureError,
    UnsupportedFormatError,
    get_logger,
    log_conversion_complete,
    log_conversion_start,
)

logger = get_logger("orchestrator")


@dataclass(frozen=True)
class ConversionRequest:
    """One uploaded file and the format the client wants it converted to."""

    source_path: Path
    original_filename: str
    target_format: str

    @property
    def source_format(self) -> str:
        return Path(self.original_filename).suffix.lower().lstrip(".")


@dataclass(frozen=True)
class ConversionResult:
    """A converted file ready to be streamed back to the client."""

    output_path: Path
    mime_type: str
    suggested_filename: str


def default_converters(cfg: Optional[ConverterConfig] = None) -> dict[FormatCategory, Converter]:
    """Build the production converter for every format category."""
    cfg = cfg or default_config
    timeout = cfg.get_timeout_for_category
    return {
        FormatCategory.AUDIO: AudioConverter(
            ffmpeg_path=cfg.ffmpeg_path, timeout=timeout(FormatCategory.AUDIO)
        ),
        FormatCategory.DOCUMENT: DocumentConverter(
            soffice_path=cfg.soffice_path, timeout=timeout(FormatCategory.DOCUMENT)
        ),
        FormatCategory.IMAGE: ImageConverter(timeout=timeout(FormatCategory.IMAGE)),
    }


class ConversionOrchestrator:
    """Route conversion requests to the converter for the target's category."""

    def __init__(
        self,
        registry: FormatRegistry,
        converters: Mapping[FormatCategory, Converter],
        file_manager: FileManager,
    ):
        self.registry = registry
        self.converters = dict(converters)
        self.file_manager = file_manager

    def converter_for(self, category: FormatCategory) -> Converter:
        try:
            return self.converters[category]
        except KeyError:
            raise UnsupportedFormatError(
                f"No converter registered for {category.value} formats"
            ) from None

    async def convert(self, request: ConversionRequest) -> ConversionResult:
        """
        Convert the request's source file to its target format.

        The input file is never removed here; cleanup belongs to the caller.
        An output file this call reserved is discarded again if the converter
        fails, so on error nothing produced by the orchestrator is left behind.

        Raises:
            UnsupportedFormatError: If the target format is unknown. Raised
                before any output file is created.
            ConversionFailureError: If the converter fails.
            IOFailureError: If reading or writing a file fails.
        """
        descriptor = self.registry.lookup(request.target_format)
        if descriptor is None:
            raise UnsupportedFormatError(
                f"Conversion to {request.target_format} is not supported",
                suggestion=f"Supported formats: {', '.join(sorted(d.format for d in self.registry))}",
            )

        converter = self.converter_for(descriptor.category)
        output_path: Optional[Path] = None
        started = time.perf_counter()

        log_conversion_start(
            logger,
            request.original_filename,
            descriptor.format,
            source_format=request.source_format or "unknown",
            category=descriptor.category.value,
        )

        succeeded = False
        try:
            output_path = self.file_manager.reserve_output_path(descriptor.format)
            await converter.convert(request.source_path, output_path, descriptor.format)
            succeeded = True
        except ConverterError:
            raise
        except OSError as e:
            raise IOFailureError(
                f"File access failed during conversion: {e}", technical_details=repr(e)
            ) from e
        except Exception as e:
            raise ConversionFailureError(str(e) or type(e).__name__) from e
        finally:
            if not succeeded:
                log_conversion_complete(logger, False, time.perf_counter() - started)
                cleanup_files([output_path])

        log_conversion_complete(
            logger, True, time.perf_counter() - started, output_file=str(output_path)
        )
        return ConversionResult(
            output_path=output_path,
            mime_type=descriptor.mime_type,
            suggested_filename=output_path.name,
        )


def build_orchestrator(
    cfg: Optional[ConverterConfig] = None,
    registry: Optional[FormatRegistry] = None,
    converters: Optional[Mapping[FormatCategory, Converter]] = None,
) -> ConversionOrchestrator:
    """Wire an orchestrator from configuration, defaulting every collaborator."""
    cfg = cfg or default_config
    return ConversionOrchestrator(
        registry=registry or default_registry,
        converters=converters if converters is not None else default_converters(cfg),
        file_manager=FileManager(cfg.upload_dir),
    )
