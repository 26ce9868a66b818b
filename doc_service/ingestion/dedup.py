from __future__ import annotations

import hashlib
import logging

import asyncpg

from doc_service.stores.document_store import DocumentRecord, DocumentStore

logger = logging.getLogger(__name__)


def compute_content_hash(data: bytes) -> str:
    """SHA-256 hex digest of the full file bytes."""
    return hashlib.sha256(data).hexdigest()


class DeduplicationGate:
    """Looks up a live document with identical bytes for the same tenant."""

    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def find_existing(
        self,
        conn: asyncpg.Connection,
        *,
        tenant_id: int,
        content_hash: str,
    ) -> DocumentRecord | None:
        existing = await self._store.find_by_content_hash(
            conn, tenant_id=tenant_id, content_hash=content_hash
        )
        if existing is not None:
            logger.info(
                "Content hash %s… for tenant %s matches document %s",
                content_hash[:12],
                tenant_id,
                existing.id,
            )
        return existing
