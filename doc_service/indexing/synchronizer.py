"""Push unindexed document records into the search index.

A record is marked indexed only after the engine acknowledged the upsert, so a
failure anywhere before the mark leaves the whole batch for the next cycle.
Re-upserting is harmless because search ids are derived from record ids.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime

import asyncpg
from google.cloud.storage import Client

from doc_service import db
from doc_service.indexing.config import IndexSyncConfig
from doc_service.ingestion.extractors.base import base_content_type
from doc_service.ingestion.gcs import download_bytes, gs_uri
from doc_service.scheduling import run_periodic
from doc_service.search.documents import search_document_id, to_search_document
from doc_service.search.meilisearch import MeilisearchClient
from doc_service.stores.document_store import DocumentRecord, DocumentStore

logger = logging.getLogger(__name__)

_TEXTUAL_TYPES = frozenset({"application/json", "application/xml", "application/markdown"})


def is_text_mime(mime_type: str | None) -> bool:
    ct = base_content_type(mime_type)
    return ct.startswith("text/") or ct in _TEXTUAL_TYPES


class IndexSynchronizer:
    def __init__(
        self,
        *,
        cfg: IndexSyncConfig,
        search: MeilisearchClient,
        storage_client: Client,
        store: DocumentStore | None = None,
    ) -> None:
        self._cfg = cfg
        self._search = search
        self._gcs = storage_client
        self._store = store or DocumentStore()

    async def run_once(self) -> int:
        """One sync cycle inside its own connection scope. Returns records marked indexed."""
        if not self._cfg.enabled:
            logger.debug("Index synchronizer is disabled")
            return 0
        async with db.scoped_connection() as conn:
            return await self.sync_batch(conn)

    async def run(self, stop: asyncio.Event) -> int:
        return await run_periodic(
            "Index synchronizer",
            self.run_once,
            stop=stop,
            enabled=self._cfg.enabled,
            interval_seconds=self._cfg.interval_seconds,
            startup_delay_seconds=self._cfg.startup_delay_seconds,
        )

    async def sync_batch(self, conn: asyncpg.Connection) -> int:
        await self._search.initialize_index()

        records = await self._store.list_unindexed(conn, limit=self._cfg.batch_size)
        if not records:
            logger.debug("No unindexed documents")
            return 0

        logger.info("Indexing %d documents", len(records))
        docs = [to_search_document(r, text=await self._fallback_text(r)) for r in records]

        await self._search.upsert_documents(docs)

        marks = [(r.id, search_document_id(r.id)) for r in records]
        async with conn.transaction():
            changed = await self._store.mark_indexed(conn, marks, indexed_at=datetime.now(UTC))

        if len(changed) != len(records):
            logger.info("%d of %d documents were already indexed", len(records) - len(changed), len(records))
        logger.info("Marked %d documents indexed", len(changed))
        return len(changed)

    async def _fallback_text(self, record: DocumentRecord) -> str | None:
        """Raw content for small textual records stored without extracted text."""
        if record.extracted_text:
            return None
        if not is_text_mime(record.mime_type):
            return None
        size = record.file_size_bytes
        if size is None or size > self._cfg.max_text_file_bytes:
            return None

        try:
            data = await asyncio.to_thread(
                download_bytes, self._gcs, self._cfg.storage_bucket, record.storage_path
            )
        except Exception:
            logger.warning(
                "Could not read %s for document %s; indexing without text",
                gs_uri(self._cfg.storage_bucket, record.storage_path),
                record.id,
                exc_info=True,
            )
            return None
        return data.decode("utf-8-sig", errors="ignore")
