from __future__ import annotations

import io

import docx  # python-docx

from doc_service.ingestion.extractors.base import Extractor, normalize_text
from doc_service.ingestion.types import ExtractResult


class DocxExtractor(Extractor):
    name = "docx"
    content_types = frozenset(
        {
            "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
            # Legacy binary .doc is claimed but python-docx cannot open it; the
            # resulting error is handled by the caller like any extraction failure.
            "application/msword",
        }
    )

    def _extract(self, data: bytes) -> ExtractResult:
        f = io.BytesIO(data)
        d = docx.Document(f)
        parts: list[str] = []
        for p in d.paragraphs:
            if p.text and p.text.strip():
                parts.append(p.text)
        # Table cell text is not part of d.paragraphs
        for table in d.tables:
            for row in table.rows:
                cells = [c.text.strip() for c in row.cells if c.text and c.text.strip()]
                if cells:
                    parts.append("\t".join(cells))
        text = normalize_text("\n".join(parts))
        return ExtractResult(
            text=text,
            extractor=self.name,
            pages=None,
            extraction_meta={"strategy": self.name, "tables": len(d.tables)},
        )
