from __future__ import annotations

import io
import logging

from pypdf import PdfReader

from doc_service.ingestion.extractors.base import Extractor, normalize_text
from doc_service.ingestion.types import ExtractResult

logger = logging.getLogger(__name__)


class PdfExtractor(Extractor):
    name = "pdf"
    content_types = frozenset({"application/pdf"})

    def _extract(self, data: bytes) -> ExtractResult:
        r = PdfReader(io.BytesIO(data))
        pages = len(r.pages)
        parts: list[str] = []
        empty_pages = 0
        for p in r.pages:
            t = p.extract_text() or ""
            if t.strip():
                parts.append(t)
            else:
                empty_pages += 1

        if empty_pages:
            # Scanned pages carry no text layer; there is no OCR fallback here
            logger.info("PDF has %d/%d pages without a text layer", empty_pages, pages)

        text = normalize_text("\n".join(parts))
        return ExtractResult(
            text=text,
            extractor=self.name,
            pages=pages,
            extraction_meta={"strategy": "pypdf", "empty_pages": empty_pages},
        )
