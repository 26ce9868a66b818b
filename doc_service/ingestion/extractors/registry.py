"""Ordered extractor dispatch.

Strategies are consulted in registration order and the first whose
`supports()` claims the content type wins. `PlainTextExtractor` claims every
`text/*` type, so narrower text strategies (HTML) must be registered before it.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from doc_service.ingestion.extractors.base import Extractor
from doc_service.ingestion.extractors.docx import DocxExtractor
from doc_service.ingestion.extractors.html import HtmlExtractor
from doc_service.ingestion.extractors.pdf import PdfExtractor
from doc_service.ingestion.extractors.text import PlainTextExtractor
from doc_service.ingestion.types import ExtractResult

logger = logging.getLogger(__name__)

EMPTY_RESULT = ExtractResult(text="", extractor=None, pages=None, extraction_meta={})


def default_extractors() -> list[Extractor]:
    return [
        HtmlExtractor(),
        PdfExtractor(),
        DocxExtractor(),
        PlainTextExtractor(),
    ]


class ExtractorRegistry:
    def __init__(self, extractors: Iterable[Extractor] | None = None) -> None:
        self._extractors = list(extractors) if extractors is not None else default_extractors()

    @property
    def extractors(self) -> list[Extractor]:
        return list(self._extractors)

    def select(self, content_type: str | None) -> Extractor | None:
        return next((ex for ex in self._extractors if ex.supports(content_type)), None)

    def extract_text(self, data: bytes, content_type: str | None, *, source: str = "") -> ExtractResult:
        """Extract text with the first matching strategy.

        Never raises: no matching strategy, or a strategy that fails, yields an
        empty result and a warning.
        """
        extractor = self.select(content_type)
        if extractor is None:
            logger.warning("No text extractor for MIME type %s (%s)", content_type, source)
            return EMPTY_RESULT

        try:
            result = extractor.extract(data, content_type)
        except Exception:
            logger.warning(
                "Text extraction with %s failed for %s; continuing without text",
                extractor.name,
                source,
                exc_info=True,
            )
            return EMPTY_RESULT

        logger.info("Extracted %d characters from %s via %s", len(result.text), source, extractor.name)
        return result
