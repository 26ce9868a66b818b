"""Search index schema and record -> search document mapping."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from doc_service.stores.document_store import DocumentRecord

PRIMARY_KEY = "id"

SEARCHABLE_ATTRIBUTES = [
    "title",
    "description",
    "extractedText",
    "originalFileName",
    "tags",
    "metadata",
]
FILTERABLE_ATTRIBUTES = [
    "tenantId",
    "documentTypeId",
    "mimeType",
    "isCurrentVersion",
    "createdAt",
    "updatedAt",
    "tags",
]
SORTABLE_ATTRIBUTES = ["createdAt", "updatedAt", "title", "fileSizeBytes"]
DISPLAYED_ATTRIBUTES = [
    "id",
    "documentId",
    "tenantId",
    "documentTypeId",
    "title",
    "description",
    "originalFileName",
    "mimeType",
    "tags",
    "fileSizeBytes",
    "version",
    "isCurrentVersion",
    "createdAt",
    "createdBy",
    "updatedAt",
    "updatedBy",
]


def index_settings() -> dict[str, list[str]]:
    return {
        "searchableAttributes": SEARCHABLE_ATTRIBUTES,
        "filterableAttributes": FILTERABLE_ATTRIBUTES,
        "sortableAttributes": SORTABLE_ATTRIBUTES,
        "displayedAttributes": DISPLAYED_ATTRIBUTES,
    }


def search_document_id(document_id: int) -> str:
    """Stable per-record id, so re-upserting a record replaces it."""
    return f"doc_{document_id}"


def _unix(ts: datetime | None) -> int | None:
    return int(ts.timestamp()) if ts is not None else None


def to_search_document(record: DocumentRecord, *, text: str | None = None) -> dict[str, Any]:
    """Map a record to the camelCase search document.

    `text` replaces the record's extracted text (raw-content fallback).
    """
    return {
        "id": search_document_id(record.id),
        "documentId": record.id,
        "tenantId": record.tenant_id,
        "documentTypeId": record.document_type_id,
        "title": record.title,
        "description": record.description,
        "extractedText": text if text is not None else (record.extracted_text or ""),
        "originalFileName": record.original_file_name,
        "mimeType": record.mime_type,
        "tags": list(record.tags or []),
        "metadata": json.dumps(record.metadata, sort_keys=True) if record.metadata else None,
        "fileSizeBytes": record.file_size_bytes,
        "version": record.version,
        "isCurrentVersion": record.is_current_version,
        "createdAt": _unix(record.created_at),
        "createdBy": record.created_by,
        "updatedAt": _unix(record.updated_at),
        "updatedBy": record.updated_by,
    }


def _quote(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


@dataclass(frozen=True)
class SearchQuery:
    query: str = ""
    tenant_id: int | None = None
    document_type_id: int | None = None
    mime_type: str | None = None
    only_current_version: bool = True
    created_from: datetime | None = None
    created_to: datetime | None = None
    tags: list[str] = field(default_factory=list)
    sort: list[str] = field(default_factory=list)  # e.g. ["createdAt:desc"]
    page: int = 1
    page_size: int = 20

    def build_filter(self) -> str | None:
        filters: list[str] = []
        if self.tenant_id is not None:
            filters.append(f"tenantId = {int(self.tenant_id)}")
        if self.document_type_id is not None:
            filters.append(f"documentTypeId = {int(self.document_type_id)}")
        if self.mime_type:
            filters.append(f"mimeType = {_quote(self.mime_type)}")
        if self.only_current_version:
            filters.append("isCurrentVersion = true")
        if self.created_from is not None:
            filters.append(f"createdAt >= {_unix(self.created_from)}")
        if self.created_to is not None:
            filters.append(f"createdAt <= {_unix(self.created_to)}")
        for tag in self.tags:
            filters.append(f"tags = {_quote(tag)}")
        return " AND ".join(filters) if filters else None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "q": self.query,
            "page": max(1, self.page),
            "hitsPerPage": max(1, self.page_size),
        }
        if (flt := self.build_filter()) is not None:
            payload["filter"] = flt
        if self.sort:
            payload["sort"] = list(self.sort)
        return payload


@dataclass(frozen=True)
class SearchPage:
    hits: list[dict[str, Any]]
    total_hits: int
    page: int
    page_size: int
    total_pages: int
    processing_time_ms: int
    query: str
