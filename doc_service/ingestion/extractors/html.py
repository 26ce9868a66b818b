from __future__ import annotations

from bs4 import BeautifulSoup

from doc_service.ingestion.extractors.base import Extractor, normalize_text
from doc_service.ingestion.types import ExtractResult


class HtmlExtractor(Extractor):
    name = "html"
    content_types = frozenset({"text/html", "application/xhtml+xml"})

    def _extract(self, data: bytes) -> ExtractResult:
        raw = data.decode("utf-8-sig", errors="ignore")
        soup = BeautifulSoup(raw, "lxml")
        # Remove script/style
        for tag in soup(["script", "style", "noscript"]):
            tag.decompose()
        title = soup.title.get_text(strip=True) if soup.title else None
        text = soup.get_text(separator="\n")
        text = normalize_text(text)
        return ExtractResult(
            text=text,
            extractor=self.name,
            pages=None,
            extraction_meta={"strategy": self.name, "html_title": title},
        )
