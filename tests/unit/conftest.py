"""Unit test conftest — no database, GCS or search engine required.

Provides in-memory fakes for google-cloud-storage and the document store, and
generated PDF/DOCX fixtures.
"""

from __future__ import annotations

import dataclasses
import io
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

import pytest
from google.api_core.exceptions import NotFound, PreconditionFailed

from doc_service.ingestion.config import InboxConfig
from doc_service.stores.document_store import (
    STATUS_INDEXED,
    STATUS_UNINDEXED,
    DocumentRecord,
    NewDocument,
)

# ---------------------------------------------------------------------------
# Fake google-cloud-storage
# ---------------------------------------------------------------------------


@dataclass
class StoredObject:
    data: bytes
    content_type: str | None
    metadata: dict[str, str] | None
    generation: int
    time_created: datetime


class FakeBlob:
    def __init__(self, bucket: FakeBucket, name: str, generation: int | None = None) -> None:
        self.bucket = bucket
        self.name = name
        self._pinned = generation
        self.content_type: str | None = None
        self.metadata: dict[str, str] | None = None
        self.generation: int | None = None
        self.time_created: datetime | None = None
        self.size: int | None = None

    def _stored(self) -> StoredObject:
        obj = self.bucket.objects.get(self.name)
        if obj is None or (self._pinned is not None and obj.generation != self._pinned):
            raise NotFound(f"gs://{self.bucket.name}/{self.name}")
        return obj

    def _load(self) -> FakeBlob:
        obj = self._stored()
        self.content_type = obj.content_type
        self.metadata = dict(obj.metadata) if obj.metadata else None
        self.generation = obj.generation
        self.time_created = obj.time_created
        self.size = len(obj.data)
        return self

    def reload(self) -> None:
        self._load()

    def download_as_bytes(self) -> bytes:
        self.bucket.client.maybe_fail("download", self.bucket.name, self.name)
        data = self._stored().data
        self.bucket.client.downloads.append((self.bucket.name, self.name))
        return data

    def upload_from_string(self, data: bytes | str, content_type: str = "application/octet-stream") -> None:
        self.bucket.client.maybe_fail("upload", self.bucket.name, self.name)
        if isinstance(data, str):
            data = data.encode("utf-8")
        self.bucket.put(self.name, data, content_type=content_type, metadata=self.metadata)
        self._load()

    def rewrite(self, source: FakeBlob, token: str | None = None) -> tuple[str | None, int, int]:
        client = self.bucket.client
        client.maybe_fail("rewrite", self.bucket.name, self.name)
        client.rewrite_calls += 1
        src = source._stored()
        total = len(src.data)
        step = 0 if token is None else int(token)
        step += 1
        if step < client.rewrite_steps:
            return str(step), total * step // client.rewrite_steps, total
        self.bucket.put(
            self.name,
            src.data,
            content_type=src.content_type,
            metadata=dict(src.metadata) if src.metadata else None,
        )
        self._load()
        return None, total, total

    def patch(self) -> None:
        self.bucket.client.maybe_fail("patch", self.bucket.name, self.name)
        obj = self._stored()
        obj.metadata = dict(self.metadata) if self.metadata else None

    def delete(self, if_generation_match: int | None = None) -> None:
        self.bucket.client.maybe_fail("delete", self.bucket.name, self.name)
        obj = self._stored()
        if if_generation_match is not None and obj.generation != if_generation_match:
            raise PreconditionFailed(f"generation {obj.generation} != {if_generation_match}")
        del self.bucket.objects[self.name]


class FakeBucket:
    def __init__(self, client: FakeStorageClient, name: str) -> None:
        self.client = client
        self.name = name
        self.objects: dict[str, StoredObject] = {}

    def blob(self, name: str, generation: int | None = None) -> FakeBlob:
        return FakeBlob(self, name, generation)

    def get_blob(self, name: str, generation: int | None = None) -> FakeBlob | None:
        obj = self.objects.get(name)
        if obj is None or (generation is not None and obj.generation != generation):
            return None
        return FakeBlob(self, name, generation)._load()

    def put(
        self,
        name: str,
        data: bytes,
        *,
        content_type: str | None = None,
        metadata: dict[str, str] | None = None,
        time_created: datetime | None = None,
    ) -> FakeBlob:
        self.objects[name] = StoredObject(
            data=data,
            content_type=content_type,
            metadata=dict(metadata) if metadata else None,
            generation=self.client.next_generation(),
            time_created=time_created or datetime.now(UTC),
        )
        return FakeBlob(self, name)._load()


class FakeStorageClient:
    """Just enough of `google.cloud.storage.Client` for the service."""

    def __init__(self) -> None:
        self.buckets: dict[str, FakeBucket] = {}
        self.downloads: list[tuple[str, str]] = []
        self.list_calls: list[tuple[str, int | None]] = []
        self.rewrite_calls = 0
        self.rewrite_steps = 1
        self._generation = 1000
        self._failures: dict[tuple[str, str, str], list[BaseException]] = {}

    def next_generation(self) -> int:
        self._generation += 1
        return self._generation

    def bucket(self, name: str) -> FakeBucket:
        if name not in self.buckets:
            self.buckets[name] = FakeBucket(self, name)
        return self.buckets[name]

    def list_blobs(self, bucket_or_name: str | FakeBucket, max_results: int | None = None) -> list[FakeBlob]:
        b = bucket_or_name if isinstance(bucket_or_name, FakeBucket) else self.bucket(bucket_or_name)
        self.list_calls.append((b.name, max_results))
        names = sorted(b.objects)
        if max_results is not None:
            names = names[:max_results]
        return [FakeBlob(b, n)._load() for n in names]

    def fail(self, op: str, bucket: str, name: str, *errors: BaseException) -> None:
        """Make the next len(errors) `op` calls on bucket/name raise, in order."""
        self._failures.setdefault((op, bucket, name), []).extend(errors)

    def maybe_fail(self, op: str, bucket: str, name: str) -> None:
        pending = self._failures.get((op, bucket, name))
        if pending:
            raise pending.pop(0)


# ---------------------------------------------------------------------------
# Fake document store / connection
# ---------------------------------------------------------------------------


class FakeConnection:
    def __init__(self) -> None:
        self.transactions = 0

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        self.transactions += 1
        yield


class FakeDocumentStore:
    """In-memory stand-in for `DocumentStore` with the same dedup rule."""

    def __init__(self) -> None:
        self.records: dict[int, DocumentRecord] = {}
        self._next_id = 1
        self.mark_calls: list[list[tuple[int, str]]] = []

    def _live(self) -> list[DocumentRecord]:
        return [r for r in self.records.values() if r.deleted_at is None]

    async def find_by_content_hash(
        self, conn: Any, *, tenant_id: int, content_hash: str
    ) -> DocumentRecord | None:
        matches = [r for r in self._live() if r.tenant_id == tenant_id and r.content_hash == content_hash]
        if not matches:
            return None
        return max(matches, key=lambda r: (r.created_at, r.id))

    async def create_document(self, conn: Any, doc: NewDocument) -> DocumentRecord | None:
        if any(r.tenant_id == doc.tenant_id and r.content_hash == doc.content_hash for r in self._live()):
            return None
        return self.add(
            tenant_id=doc.tenant_id,
            document_type_id=doc.document_type_id,
            title=doc.title,
            description=doc.description,
            storage_path=doc.storage_path,
            content_hash=doc.content_hash,
            file_size_bytes=doc.file_size_bytes,
            mime_type=doc.mime_type,
            original_file_name=doc.original_file_name,
            metadata=doc.metadata,
            tags=doc.tags,
            extracted_text=doc.extracted_text,
            created_by=doc.created_by,
        )

    async def get_document(self, conn: Any, doc_id: int) -> DocumentRecord | None:
        return self.records.get(doc_id)

    async def list_unindexed(self, conn: Any, *, limit: int) -> list[DocumentRecord]:
        rows = [r for r in self._live() if r.indexing_status == STATUS_UNINDEXED]
        rows.sort(key=lambda r: (r.created_at, r.id))
        return rows[:limit]

    async def mark_indexed(
        self, conn: Any, marks: list[tuple[int, str]], *, indexed_at: datetime
    ) -> list[int]:
        self.mark_calls.append(list(marks))
        changed: list[int] = []
        for doc_id, search_id in marks:
            r = self.records.get(doc_id)
            if r is None or r.indexing_status != STATUS_UNINDEXED:
                continue
            self.records[doc_id] = dataclasses.replace(
                r,
                indexing_status=STATUS_INDEXED,
                last_indexed_at=indexed_at,
                search_document_id=search_id,
            )
            changed.append(doc_id)
        return changed

    async def soft_delete(self, conn: Any, doc_id: int, *, deleted_by: str, reason: str | None = None) -> bool:
        r = self.records.get(doc_id)
        if r is None or r.deleted_at is not None:
            return False
        self.records[doc_id] = dataclasses.replace(r, deleted_at=datetime.now(UTC), updated_by=deleted_by)
        return True

    def add(self, **overrides: Any) -> DocumentRecord:
        """Insert a record directly, bypassing the dedup rule."""
        doc_id = self._next_id
        self._next_id += 1
        values: dict[str, Any] = {
            "id": doc_id,
            "tenant_id": 1,
            "document_type_id": 1,
            "title": f"Doc {doc_id}",
            "description": None,
            "storage_path": f"1/2026/01/01/{doc_id:032x}/doc{doc_id}.txt",
            "content_hash": f"{doc_id:064x}",
            "file_size_bytes": 10,
            "mime_type": "text/plain",
            "original_file_name": f"doc{doc_id}.txt",
            "metadata": None,
            "tags": None,
            "extracted_text": f"text of document {doc_id}",
            "version": 1,
            "parent_document_id": None,
            "is_current_version": True,
            "indexing_status": STATUS_UNINDEXED,
            "last_indexed_at": None,
            "search_document_id": None,
            "created_at": datetime(2026, 1, 1, 12, 0, doc_id % 60, tzinfo=UTC),
            "created_by": "InboxProcessor",
            "updated_at": None,
            "updated_by": None,
            "deleted_at": None,
        }
        values.update(overrides)
        record = DocumentRecord(**values)
        self.records[doc_id] = record
        return record


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def inbox_cfg() -> InboxConfig:
    return InboxConfig(
        enabled=True,
        inbox_bucket="inbox",
        processed_bucket="processed",
        failed_bucket="failed",
        storage_bucket="documents",
        poll_interval_seconds=30,
        startup_delay_seconds=0,
        batch_size=10,
        default_tenant_id=1,
        default_document_type_id=1,
        system_user="InboxProcessor",
        max_retries_per_item=0,
    )


@pytest.fixture
def gcs() -> FakeStorageClient:
    return FakeStorageClient()


@pytest.fixture
def store() -> FakeDocumentStore:
    return FakeDocumentStore()


@pytest.fixture
def conn() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def sample_docx_bytes() -> bytes:
    """Generate a 3-paragraph DOCX file in memory."""
    docx = pytest.importorskip("docx")
    doc = docx.Document()
    doc.add_paragraph("First paragraph of the document.")
    doc.add_paragraph("Second paragraph with more detail.")
    doc.add_paragraph("Third and final paragraph.")
    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()


@pytest.fixture
def empty_docx_bytes() -> bytes:
    """Generate a valid DOCX with no paragraphs containing text."""
    docx = pytest.importorskip("docx")
    doc = docx.Document()
    buf = io.BytesIO()
    doc.save(buf)
    return buf.getvalue()


@pytest.fixture
def sample_pdf_bytes() -> bytes:
    """Generate a 1-page PDF with 3 lines via fpdf2."""
    fpdf = pytest.importorskip("fpdf")
    pdf = fpdf.FPDF()
    pdf.add_page()
    pdf.set_font("Helvetica", size=12)
    pdf.cell(text="Line one of the PDF document.")
    pdf.ln()
    pdf.cell(text="Line two with additional content.")
    pdf.ln()
    pdf.cell(text="Line three concludes the page.")
    return bytes(pdf.output())


@pytest.fixture
def multi_page_pdf_bytes() -> bytes:
    """Generate a 3-page PDF for page count verification."""
    fpdf = pytest.importorskip("fpdf")
    pdf = fpdf.FPDF()
    pdf.set_font("Helvetica", size=12)
    for i in range(1, 4):
        pdf.add_page()
        pdf.cell(text=f"Content on page {i}.")
    return bytes(pdf.output())
