"""CRUD operations for the documents table.

All methods take an already-acquired asyncpg connection (see
`db.scoped_connection`); callers own transaction boundaries. The store never
rewrites `extracted_text` and only ever moves `indexing_status` forward.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import asyncpg

logger = logging.getLogger(__name__)

STATUS_UNINDEXED = "unindexed"
STATUS_INDEXED = "indexed"


@dataclass(frozen=True)
class NewDocument:
    tenant_id: int
    document_type_id: int
    title: str
    description: str | None
    storage_path: str
    content_hash: str
    file_size_bytes: int
    mime_type: str
    original_file_name: str
    extracted_text: str
    metadata: dict[str, Any] | None
    tags: list[str] | None
    created_by: str


@dataclass(frozen=True)
class DocumentRecord:
    id: int
    tenant_id: int
    document_type_id: int
    title: str
    description: str | None
    storage_path: str
    content_hash: str
    file_size_bytes: int | None
    mime_type: str | None
    original_file_name: str | None
    metadata: dict[str, Any] | None
    tags: list[str] | None
    extracted_text: str | None
    version: int
    parent_document_id: int | None
    is_current_version: bool
    indexing_status: str
    last_indexed_at: datetime | None
    search_document_id: str | None
    created_at: datetime
    created_by: str | None
    updated_at: datetime | None
    updated_by: str | None
    deleted_at: datetime | None


_COLUMNS = """
    id, tenant_id, document_type_id, title, description, storage_path,
    content_hash, file_size_bytes, mime_type, original_file_name, metadata,
    tags, extracted_text, version, parent_document_id, is_current_version,
    indexing_status, last_indexed_at, search_document_id, created_at,
    created_by, updated_at, updated_by, deleted_at
"""


def record_from_row(row: Mapping[str, Any]) -> DocumentRecord:
    return DocumentRecord(
        id=int(row["id"]),
        tenant_id=int(row["tenant_id"]),
        document_type_id=int(row["document_type_id"]),
        title=row["title"],
        description=row["description"],
        storage_path=row["storage_path"],
        content_hash=row["content_hash"],
        file_size_bytes=row["file_size_bytes"],
        mime_type=row["mime_type"],
        original_file_name=row["original_file_name"],
        metadata=row["metadata"],
        tags=row["tags"],
        extracted_text=row["extracted_text"],
        version=row["version"],
        parent_document_id=row["parent_document_id"],
        is_current_version=row["is_current_version"],
        indexing_status=row["indexing_status"],
        last_indexed_at=row["last_indexed_at"],
        search_document_id=row["search_document_id"],
        created_at=row["created_at"],
        created_by=row["created_by"],
        updated_at=row["updated_at"],
        updated_by=row["updated_by"],
        deleted_at=row["deleted_at"],
    )


class DocumentStore:
    """Stateless data-access object for the documents table."""

    async def find_by_content_hash(
        self,
        conn: asyncpg.Connection,
        *,
        tenant_id: int,
        content_hash: str,
    ) -> DocumentRecord | None:
        """Most recently created live document with this hash for the tenant."""
        row = await conn.fetchrow(
            f"""
            SELECT {_COLUMNS}
            FROM documents
            WHERE tenant_id = $1
              AND content_hash = $2
              AND deleted_at IS NULL
            ORDER BY created_at DESC, id DESC
            LIMIT 1
            """,
            tenant_id,
            content_hash,
        )
        return record_from_row(row) if row else None

    async def create_document(
        self,
        conn: asyncpg.Connection,
        doc: NewDocument,
    ) -> DocumentRecord | None:
        """Insert a version-1 current document.

        Returns None when a live document with the same (tenant, hash) already
        exists; the dedup index decides, so concurrent writers cannot both win.
        """
        row = await conn.fetchrow(
            f"""
            INSERT INTO documents
                (tenant_id, document_type_id, title, description, storage_path,
                 content_hash, file_size_bytes, mime_type, original_file_name,
                 metadata, tags, extracted_text, version, is_current_version,
                 indexing_status, created_by)
            VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12,
                    1, TRUE, '{STATUS_UNINDEXED}', $13)
            ON CONFLICT (tenant_id, content_hash) WHERE deleted_at IS NULL
            DO NOTHING
            RETURNING {_COLUMNS}
            """,
            doc.tenant_id,
            doc.document_type_id,
            doc.title,
            doc.description,
            doc.storage_path,
            doc.content_hash,
            doc.file_size_bytes,
            doc.mime_type,
            doc.original_file_name,
            doc.metadata,
            doc.tags,
            doc.extracted_text,
            doc.created_by,
        )
        return record_from_row(row) if row else None

    async def get_document(
        self,
        conn: asyncpg.Connection,
        doc_id: int,
    ) -> DocumentRecord | None:
        row = await conn.fetchrow(
            f"SELECT {_COLUMNS} FROM documents WHERE id = $1",
            doc_id,
        )
        return record_from_row(row) if row else None

    async def list_unindexed(
        self,
        conn: asyncpg.Connection,
        *,
        limit: int,
    ) -> list[DocumentRecord]:
        """Oldest-first batch of live documents not yet in the search index."""
        rows = await conn.fetch(
            f"""
            SELECT {_COLUMNS}
            FROM documents
            WHERE indexing_status = '{STATUS_UNINDEXED}'
              AND deleted_at IS NULL
            ORDER BY created_at, id
            LIMIT $1
            """,
            limit,
        )
        return [record_from_row(r) for r in rows]

    async def mark_indexed(
        self,
        conn: asyncpg.Connection,
        marks: Sequence[tuple[int, str]],
        *,
        indexed_at: datetime,
    ) -> list[int]:
        """Flip (document id, search document id) pairs to indexed.

        Rows already indexed are left untouched. Returns the ids that changed.
        """
        if not marks:
            return []
        ids = [m[0] for m in marks]
        search_ids = [m[1] for m in marks]
        rows = await conn.fetch(
            f"""
            UPDATE documents AS d
            SET indexing_status = '{STATUS_INDEXED}',
                last_indexed_at = $3,
                search_document_id = m.search_id
            FROM unnest($1::bigint[], $2::text[]) AS m(doc_id, search_id)
            WHERE d.id = m.doc_id
              AND d.indexing_status = '{STATUS_UNINDEXED}'
            RETURNING d.id
            """,
            ids,
            search_ids,
            indexed_at,
        )
        return [int(r["id"]) for r in rows]

    async def soft_delete(
        self,
        conn: asyncpg.Connection,
        doc_id: int,
        *,
        deleted_by: str,
        reason: str | None = None,
    ) -> bool:
        """Soft-delete a document by setting deleted_at.

        Frees the (tenant, content hash) slot so the same bytes can be ingested
        again as a new document.
        """
        tag = await conn.execute(
            """
            UPDATE documents
            SET deleted_at = NOW(),
                deleted_by = $2,
                deleted_reason = $3,
                updated_at = NOW(),
                updated_by = $2
            WHERE id = $1 AND deleted_at IS NULL
            """,
            doc_id,
            deleted_by,
            reason,
        )
        return tag == "UPDATE 1"
