from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import UTC, datetime

import asyncpg
from google.cloud.storage import Client

from doc_service.ingestion.config import InboxConfig
from doc_service.ingestion.gcs import delete_if_exists, gs_uri, upload_bytes
from doc_service.ingestion.types import ExtractedMetadata, ExtractResult
from doc_service.stores.document_store import DocumentRecord, DocumentStore, NewDocument

logger = logging.getLogger(__name__)


def build_storage_path(tenant_id: int, file_name: str, *, now: datetime | None = None) -> str:
    """`<tenant>/<YYYY>/<MM>/<DD>/<uuid4 hex>/<file name>`"""
    now = now or datetime.now(UTC)
    return f"{tenant_id}/{now:%Y/%m/%d}/{uuid.uuid4().hex}/{file_name}"


class DocumentWriter:
    """Stores the original bytes durably and inserts the document record."""

    def __init__(self, *, cfg: InboxConfig, storage_client: Client, store: DocumentStore) -> None:
        self._cfg = cfg
        self._gcs = storage_client
        self._store = store

    async def write(
        self,
        conn: asyncpg.Connection,
        *,
        meta: ExtractedMetadata,
        data: bytes,
        content_hash: str,
        extracted: ExtractResult,
    ) -> tuple[DocumentRecord, bool]:
        """Upload then insert. Returns (record, created).

        `created` is False when a concurrent writer inserted the same
        (tenant, content hash) first; the existing record is returned and this
        writer's upload is removed.
        """
        bucket = self._cfg.storage_bucket
        path = build_storage_path(meta.tenant_id, meta.file_name)

        await asyncio.to_thread(
            upload_bytes, self._gcs, bucket, path, data, content_type=meta.content_type
        )
        logger.debug("Uploaded %d bytes to %s", len(data), gs_uri(bucket, path))

        record = await self._store.create_document(
            conn,
            NewDocument(
                tenant_id=meta.tenant_id,
                document_type_id=meta.document_type_id,
                title=meta.title,
                description=meta.description,
                storage_path=path,
                content_hash=content_hash,
                file_size_bytes=len(data),
                mime_type=meta.content_type,
                original_file_name=meta.file_name,
                extracted_text=extracted.text,
                metadata=meta.metadata,
                tags=meta.tags,
                created_by=self._cfg.system_user,
            ),
        )
        if record is not None:
            return record, True

        existing = await self._store.find_by_content_hash(
            conn, tenant_id=meta.tenant_id, content_hash=content_hash
        )
        await self._discard_upload(bucket, path)
        if existing is None:
            # Conflicting row vanished between insert and lookup (soft-deleted meanwhile)
            raise RuntimeError(f"Insert conflicted but no live document for hash {content_hash}")
        logger.info("Lost insert race for %s; using existing document %s", meta.file_name, existing.id)
        return existing, False

    async def _discard_upload(self, bucket: str, path: str) -> None:
        try:
            await asyncio.to_thread(delete_if_exists, self._gcs, bucket, path)
        except Exception:
            logger.warning("Could not remove orphaned upload %s", gs_uri(bucket, path), exc_info=True)
