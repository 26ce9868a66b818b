from __future__ import annotations

from abc import ABC, abstractmethod
from typing import ClassVar

from doc_service.errors import UnsupportedContentTypeError
from doc_service.ingestion.types import ExtractResult


def base_content_type(content_type: str | None) -> str:
    """Lower-cased MIME type without parameters ("Text/Plain; charset=x" -> "text/plain")."""
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


class Extractor(ABC):
    """A text extraction strategy for a set of MIME types and/or MIME prefixes."""

    name: ClassVar[str]
    content_types: ClassVar[frozenset[str]] = frozenset()
    content_type_prefixes: ClassVar[tuple[str, ...]] = ()

    def supports(self, content_type: str | None) -> bool:
        ct = base_content_type(content_type)
        if not ct:
            return False
        return ct in self.content_types or ct.startswith(self.content_type_prefixes)

    def extract(self, data: bytes, content_type: str | None) -> ExtractResult:
        if not self.supports(content_type):
            raise UnsupportedContentTypeError(type(self).__name__, content_type or "")
        return self._extract(data)

    @abstractmethod
    def _extract(self, data: bytes) -> ExtractResult: ...


def normalize_text(text: str) -> str:
    if not text:
        return ""
    # Remove null bytes, normalize whitespace a bit
    text = text.replace("\x00", "")
    text = text.replace("\r\n", "\n")
    # Collapse very long runs of blank lines
    while "\n\n\n\n" in text:
        text = text.replace("\n\n\n\n", "\n\n\n")
    return text.strip()
