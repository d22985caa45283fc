"""
Target format registry.

Maps every supported target format to its converter category and the MIME
type sent back to the client. The table is fixed: extend it by editing
``FORMAT_TABLE``, not at runtime.
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping, Optional


class FormatCategory(str, Enum):
    """Converter family a target format belongs to."""

    AUDIO = "audio"
    DOCUMENT = "document"
    IMAGE = "image"


@dataclass(frozen=True)
class FormatDescriptor:
    """Category and MIME type of one target format."""

    format: str
    category: FormatCategory
    mime_type: str

    @property
    def extension(self) -> str:
        return f".{self.format}"


FORMAT_TABLE: tuple[FormatDescriptor, ...] = (
    FormatDescriptor("mp3", FormatCategory.AUDIO, "audio/mpeg"),
    FormatDescriptor("wav", FormatCategory.AUDIO, "audio/wav"),
    FormatDescriptor("ogg", FormatCategory.AUDIO, "audio/ogg"),
    FormatDescriptor("m4a", FormatCategory.AUDIO, "audio/mp4"),
    FormatDescriptor("pdf", FormatCategory.DOCUMENT, "application/pdf"),
    FormatDescriptor(
        "docx",
        FormatCategory.DOCUMENT,
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ),
    FormatDescriptor("txt", FormatCategory.DOCUMENT, "text/plain"),
    FormatDescriptor("jpg", FormatCategory.IMAGE, "image/jpeg"),
    FormatDescriptor("jpeg", FormatCategory.IMAGE, "image/jpeg"),
    FormatDescriptor("png", FormatCategory.IMAGE, "image/png"),
    FormatDescriptor("webp", FormatCategory.IMAGE, "image/webp"),
)


def normalize_format(format_name: Optional[str]) -> str:
    """Lower-case and strip a client supplied format name."""
    return (format_name or "").strip().lower().lstrip(".")


class FormatRegistry:
    """Immutable lookup table from target format to its descriptor."""

    def __init__(self, descriptors: Iterable[FormatDescriptor] = FORMAT_TABLE):
        table: dict[str, FormatDescriptor] = {}
        for descriptor in descriptors:
            key = normalize_format(descriptor.format)
            if key in table:
                raise ValueError(f"Format '{key}' registered twice")
            table[key] = descriptor
        self._table: Mapping[str, FormatDescriptor] = MappingProxyType(table)

    def lookup(self, format_name: Optional[str]) -> Optional[FormatDescriptor]:
        """Return the descriptor for ``format_name`` or None if it is unknown."""
        return self._table.get(normalize_format(format_name))

    def formats_for(self, category: FormatCategory) -> list[str]:
        """Get all formats handled by a category, sorted."""
        return sorted(d.format for d in self._table.values() if d.category is category)

    def supported_formats(self) -> dict[str, list[str]]:
        """Get all supported target formats grouped by category."""
        return {category.value: self.formats_for(category) for category in FormatCategory}

    def __contains__(self, format_name: object) -> bool:
        return isinstance(format_name, str) and self.lookup(format_name) is not None

    def __iter__(self) -> Iterator[FormatDescriptor]:
        return iter(self._table.values())

    def __len__(self) -> int:
        return len(self._table)


default_registry = FormatRegistry()
