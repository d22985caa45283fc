"""
Format converters for the file conversion service.

This package provides converters for:
- Audio: MP3, WAV, OGG, M4A (FFmpeg)
- Documents: PDF, DOCX, TXT (LibreOffice)
- Images: JPEG, PNG, WebP (Pillow)
"""

from .base import Converter
from .audio import AudioConverter
from .document import DocumentConverter
from .image import ImageConverter

__all__ = [
    "Converter",
    "AudioConverter",
    "DocumentConverter",
    "ImageConverter",
]
