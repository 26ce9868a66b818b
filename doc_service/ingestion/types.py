from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from google.cloud import storage

STATUS_CREATED = "created"
STATUS_DUPLICATE = "duplicate"
STATUS_FAILED = "failed"


@dataclass(frozen=True)
class InboxItem:
    bucket: str
    name: str  # object name in bucket, may contain "/"
    content_type: str | None
    size: int | None
    time_created: datetime
    generation: int | None
    metadata: dict[str, str] = field(default_factory=dict)

    @property
    def file_name(self) -> str:
        return self.name.rsplit("/", 1)[-1]

    @classmethod
    def from_blob(cls, blob: storage.Blob) -> InboxItem:
        created = blob.time_created or datetime.now(UTC)
        return cls(
            bucket=blob.bucket.name,
            name=blob.name,
            content_type=blob.content_type,
            size=blob.size,
            time_created=created,
            generation=blob.generation,
            metadata=dict(blob.metadata or {}),
        )


@dataclass(frozen=True)
class ExtractedMetadata:
    tenant_id: int
    document_type_id: int
    title: str
    description: str | None
    tags: list[str] | None
    metadata: dict[str, Any] | None
    file_name: str
    content_type: str


@dataclass(frozen=True)
class ExtractResult:
    text: str
    extractor: str | None
    pages: int | None
    extraction_meta: dict[str, Any]


@dataclass(frozen=True)
class ProcessResult:
    item: InboxItem
    status: str  # created|duplicate|failed
    document_id: int | None
    error_message: str | None
    elapsed_ms: int = 0
