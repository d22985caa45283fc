"""Converter capability shared by the audio, document and image converters."""

from pathlib import Path
from typing import Protocol, runtime_checkable


@runtime_checkable
class Converter(Protocol):
    async def convert(self, input_path: Path, output_path: Path, target_format: str) -> Path:
        """Convert ``input_path`` into ``output_path`` encoded as ``target_format``.

        Raises a ``ConverterError`` subclass on failure.
        """
        ...
