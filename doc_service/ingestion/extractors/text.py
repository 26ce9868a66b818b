from __future__ import annotations

from doc_service.ingestion.extractors.base import Extractor, normalize_text
from doc_service.ingestion.types import ExtractResult


class PlainTextExtractor(Extractor):
    name = "text"
    content_types = frozenset(
        {
            "application/json",
            "application/xml",
            "application/markdown",
            "application/x-yaml",
            "application/csv",
        }
    )
    content_type_prefixes = ("text/",)

    def _extract(self, data: bytes) -> ExtractResult:
        # utf-8-sig drops a leading BOM when present
        text = data.decode("utf-8-sig", errors="ignore")
        text = normalize_text(text)
        return ExtractResult(
            text=text,
            extractor=self.name,
            pages=None,
            extraction_meta={"strategy": self.name},
        )
