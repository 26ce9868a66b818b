"""Create the documents table and its dedup/indexing indexes.

Revision ID: 001
Create Date: 2026-10-19

One row per unique (tenant, content hash) among non-deleted documents. The
partial unique index backs the inbox dedup gate; the partial index on
unindexed rows backs the index synchronizer's oldest-first batch query.
"""

from alembic import op

revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # -- documents ------------------------------------------------------------
    op.execute(
        """
        CREATE TABLE documents (
            id BIGINT GENERATED BY DEFAULT AS IDENTITY PRIMARY KEY,
            tenant_id INT NOT NULL,
            document_type_id INT NOT NULL,

            title TEXT NOT NULL,
            description TEXT,
            storage_path TEXT NOT NULL,
            content_hash TEXT NOT NULL,
            file_size_bytes BIGINT,
            mime_type TEXT,
            original_file_name TEXT,
            metadata JSONB,
            tags JSONB,
            extracted_text TEXT,

            version INT NOT NULL DEFAULT 1,
            parent_document_id BIGINT REFERENCES documents(id),
            is_current_version BOOLEAN NOT NULL DEFAULT TRUE,

            indexing_status TEXT NOT NULL DEFAULT 'unindexed'
                CHECK (indexing_status IN ('unindexed', 'indexed')),
            last_indexed_at TIMESTAMPTZ,
            search_document_id TEXT,

            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            created_by TEXT,
            updated_at TIMESTAMPTZ,
            updated_by TEXT,
            deleted_at TIMESTAMPTZ,
            deleted_by TEXT,
            deleted_reason TEXT
        )
    """
    )

    # -- Dedup: one live document per (tenant, content_hash) ------------------
    op.execute(
        """
        CREATE UNIQUE INDEX ux_documents_tenant_content_hash
        ON documents (tenant_id, content_hash)
        WHERE deleted_at IS NULL
    """
    )

    # -- Index sync batch: oldest unindexed first ----------------------------
    op.execute(
        """
        CREATE INDEX ix_documents_unindexed
        ON documents (created_at, id)
        WHERE indexing_status = 'unindexed' AND deleted_at IS NULL
    """
    )

    op.execute("CREATE INDEX ix_documents_tenant ON documents (tenant_id, deleted_at)")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS documents CASCADE")
