"""Exception types raised by the ingestion and indexing pipelines."""

from __future__ import annotations


class DocServiceError(Exception):
    """Base class for errors raised by doc_service."""


class UnsupportedContentTypeError(DocServiceError):
    """An extractor was asked to handle a content type it does not support."""

    def __init__(self, extractor: str, content_type: str) -> None:
        super().__init__(f"MIME type '{content_type}' is not supported by {extractor}")
        self.extractor = extractor
        self.content_type = content_type


class StorageMoveError(DocServiceError):
    """A copy-verify-delete move could not be verified."""


class SearchEngineError(DocServiceError):
    """A search engine call failed. The original cause is chained via __cause__."""

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.status_code = status_code
