"""Unit tests for the index synchronizer."""

from __future__ import annotations

import dataclasses
from datetime import UTC, datetime
from typing import Any

import pytest

from doc_service.errors import SearchEngineError
from doc_service.indexing.config import IndexSyncConfig
from doc_service.indexing.synchronizer import IndexSynchronizer, is_text_mime
from doc_service.stores.document_store import STATUS_INDEXED, STATUS_UNINDEXED


class FakeSearch:
    def __init__(self) -> None:
        self.initialized = 0
        self.upserts: list[list[dict[str, Any]]] = []
        self.fail_with: Exception | None = None

    async def initialize_index(self) -> None:
        self.initialized += 1

    async def upsert_documents(self, docs):
        if self.fail_with is not None:
            raise self.fail_with
        self.upserts.append(list(docs))
        return [d["id"] for d in docs]


@pytest.fixture
def index_cfg() -> IndexSyncConfig:
    return IndexSyncConfig(
        enabled=True,
        interval_seconds=300,
        startup_delay_seconds=0,
        batch_size=20,
        storage_bucket="documents",
        max_text_file_mb=5,
    )


@pytest.fixture
def search() -> FakeSearch:
    return FakeSearch()


@pytest.fixture
def sync(index_cfg, search, gcs, store) -> IndexSynchronizer:
    return IndexSynchronizer(cfg=index_cfg, search=search, storage_client=gcs, store=store)


class TestSyncBatch:
    async def test_indexes_and_marks(self, sync, search, store, conn):
        a = store.add()
        b = store.add()

        n = await sync.sync_batch(conn)

        assert n == 2
        assert search.initialized == 1
        (batch,) = search.upserts
        assert [d["id"] for d in batch] == [f"doc_{a.id}", f"doc_{b.id}"]
        for rec in (a, b):
            after = store.records[rec.id]
            assert after.indexing_status == STATUS_INDEXED
            assert after.search_document_id == f"doc_{rec.id}"
            assert after.last_indexed_at is not None
        assert conn.transactions == 1

    async def test_rerun_is_noop(self, sync, search, store, conn):
        store.add()
        await sync.sync_batch(conn)
        assert await sync.sync_batch(conn) == 0
        assert len(search.upserts) == 1

    async def test_upsert_failure_leaves_records_unindexed(self, sync, search, store, conn):
        rec = store.add()
        search.fail_with = SearchEngineError("task failed", code="internal")

        with pytest.raises(SearchEngineError):
            await sync.sync_batch(conn)

        assert store.records[rec.id].indexing_status == STATUS_UNINDEXED
        assert store.mark_calls == []

        search.fail_with = None
        assert await sync.sync_batch(conn) == 1
        assert store.records[rec.id].indexing_status == STATUS_INDEXED

    async def test_batch_size_and_order(self, index_cfg, search, gcs, store, conn):
        sync = IndexSynchronizer(
            cfg=dataclasses.replace(index_cfg, batch_size=2), search=search, storage_client=gcs, store=store
        )
        late = store.add(created_at=datetime(2026, 3, 1, tzinfo=UTC))
        early = store.add(created_at=datetime(2026, 1, 1, tzinfo=UTC))
        mid = store.add(created_at=datetime(2026, 2, 1, tzinfo=UTC))

        assert await sync.sync_batch(conn) == 2
        assert [d["documentId"] for d in search.upserts[0]] == [early.id, mid.id]
        assert store.records[late.id].indexing_status == STATUS_UNINDEXED

    async def test_deleted_records_skipped(self, sync, search, store, conn):
        rec = store.add()
        await store.soft_delete(conn, rec.id, deleted_by="admin")
        assert await sync.sync_batch(conn) == 0
        assert search.upserts == []

    async def test_already_indexed_not_marked_again(self, sync, search, store, conn, monkeypatch):
        rec = store.add()
        original = search.upsert_documents

        async def _upsert_and_race(docs):
            ids = await original(docs)
            # Another synchronizer marked the record meanwhile
            store.records[rec.id] = dataclasses.replace(store.records[rec.id], indexing_status=STATUS_INDEXED)
            return ids

        monkeypatch.setattr(search, "upsert_documents", _upsert_and_race)
        assert await sync.sync_batch(conn) == 0


class TestRawContentFallback:
    async def test_downloads_small_text_without_extracted_text(self, sync, search, gcs, store, conn):
        rec = store.add(extracted_text="", mime_type="text/plain", file_size_bytes=11)
        gcs.bucket("documents").put(rec.storage_path, b"raw content")

        await sync.sync_batch(conn)

        assert search.upserts[0][0]["extractedText"] == "raw content"
        assert gcs.downloads == [("documents", rec.storage_path)]

    async def test_existing_text_not_downloaded(self, sync, search, gcs, store, conn):
        store.add(extracted_text="already here")
        await sync.sync_batch(conn)
        assert gcs.downloads == []
        assert search.upserts[0][0]["extractedText"] == "already here"

    async def test_binary_type_not_downloaded(self, sync, gcs, store, conn):
        store.add(extracted_text="", mime_type="image/png")
        await sync.sync_batch(conn)
        assert gcs.downloads == []

    async def test_oversized_not_downloaded(self, sync, gcs, store, conn):
        store.add(extracted_text="", mime_type="text/plain", file_size_bytes=6 * 1024 * 1024)
        await sync.sync_batch(conn)
        assert gcs.downloads == []

    async def test_download_failure_is_non_fatal(self, sync, search, store, conn, caplog):
        rec = store.add(extracted_text="", mime_type="application/json", file_size_bytes=5)
        # Object missing from the documents bucket

        assert await sync.sync_batch(conn) == 1
        assert search.upserts[0][0]["extractedText"] == ""
        assert store.records[rec.id].indexing_status == STATUS_INDEXED
        assert "indexing without text" in caplog.text

    @pytest.mark.parametrize(
        "mime,expected",
        [
            ("text/plain", True),
            ("text/csv; charset=utf-8", True),
            ("application/json", True),
            ("application/xml", True),
            ("application/markdown", True),
            ("application/pdf", False),
            (None, False),
        ],
    )
    def test_is_text_mime(self, mime, expected):
        assert is_text_mime(mime) is expected


async def test_disabled_run_once_does_nothing(index_cfg, search, gcs, store):
    sync = IndexSynchronizer(
        cfg=dataclasses.replace(index_cfg, enabled=False), search=search, storage_client=gcs, store=store
    )
    assert await sync.run_once() == 0
    assert search.initialized == 0
