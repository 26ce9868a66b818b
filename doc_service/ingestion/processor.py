from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import asyncpg
from google.api_core import exceptions as gexc
from google.cloud.storage import Client

from doc_service.ingestion.config import InboxConfig
from doc_service.ingestion.dedup import DeduplicationGate, compute_content_hash
from doc_service.ingestion.extractors.registry import ExtractorRegistry
from doc_service.ingestion.gcs import download_bytes, gs_uri, list_inbox
from doc_service.ingestion.metadata import MetadataExtractor
from doc_service.ingestion.mover import StateMover, describe_error
from doc_service.ingestion.types import (
    STATUS_CREATED,
    STATUS_DUPLICATE,
    STATUS_FAILED,
    InboxItem,
    ProcessResult,
)
from doc_service.ingestion.writer import DocumentWriter
from doc_service.stores.document_store import DocumentStore

logger = logging.getLogger(__name__)

_T = TypeVar("_T")

_TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (
    gexc.ServiceUnavailable,
    gexc.TooManyRequests,
    gexc.InternalServerError,
    gexc.GatewayTimeout,
    ConnectionError,
    TimeoutError,
    asyncpg.InterfaceError,
    asyncpg.ConnectionDoesNotExistError,
)


def is_transient(exc: BaseException) -> bool:
    return isinstance(exc, _TRANSIENT_ERRORS)


def empty_stats() -> dict[str, int]:
    return {"total": 0, STATUS_CREATED: 0, STATUS_DUPLICATE: 0, STATUS_FAILED: 0}


class InboxProcessor:
    """Runs the per-item pipeline over one bounded inbox batch.

    ingest (metadata -> fetch -> dedup gate -> [extract -> write]) -> move.
    Items are processed sequentially; one item's failure never affects its
    neighbours.
    """

    def __init__(
        self,
        *,
        cfg: InboxConfig,
        storage_client: Client,
        store: DocumentStore | None = None,
        registry: ExtractorRegistry | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._cfg = cfg
        self._gcs = storage_client
        store = store or DocumentStore()
        self._metadata = MetadataExtractor(cfg)
        self._gate = DeduplicationGate(store)
        self._registry = registry or ExtractorRegistry()
        self._writer = DocumentWriter(cfg=cfg, storage_client=storage_client, store=store)
        self._mover = StateMover(cfg=cfg, storage_client=storage_client)
        self._sleep = sleep

    async def list_batch(self) -> list[InboxItem]:
        blobs = await asyncio.to_thread(
            list_inbox, self._gcs, self._cfg.inbox_bucket, limit=self._cfg.batch_size
        )
        return [InboxItem.from_blob(b) for b in blobs[: self._cfg.batch_size]]

    async def process_batch(
        self,
        conn: asyncpg.Connection,
        *,
        stop: asyncio.Event | None = None,
    ) -> dict[str, int]:
        stats = empty_stats()
        items = await self.list_batch()
        if not items:
            logger.debug("No files found in inbox %s", self._cfg.inbox_bucket)
            return stats

        logger.info("Found %d files in inbox %s", len(items), self._cfg.inbox_bucket)
        for item in items:
            if stop is not None and stop.is_set():
                logger.info("Stop requested; %d of %d items handled", stats["total"], len(items))
                break
            res = await self.process_item(conn, item)
            stats["total"] += 1
            stats[res.status] += 1

        logger.info("Inbox batch done stats=%s", stats)
        return stats

    async def process_item(self, conn: asyncpg.Connection, item: InboxItem) -> ProcessResult:
        """Ingest one item, then move it to processed or failed.

        Only items that never produced a document go to the failed bucket. When
        the document exists but the processed move does not complete, the item
        stays in the inbox; the next cycle sees it as a duplicate and finishes
        the move.
        """
        uri = gs_uri(item.bucket, item.name)
        started = time.monotonic()
        logger.info("Processing %s", uri)

        try:
            status, document_id = await self._with_retry(item, self._ingest, conn, item)
        except Exception as e:
            logger.exception("Failed to process %s", uri)
            try:
                await self._mover.move_to_failed(item, e)
            except Exception:
                logger.exception("Failed to move %s to failed bucket", uri)
            return self._result(item, STATUS_FAILED, None, started, error=e)

        try:
            await self._with_retry(item, self._mover.move_to_processed, item)
        except Exception as e:
            logger.exception(
                "Document %s stored but %s could not be moved to processed; left for the next cycle",
                document_id,
                uri,
            )
            return self._result(item, STATUS_FAILED, document_id, started, error=e)

        result = self._result(item, status, document_id, started)
        logger.info("Processed %s -> document %s (%s) in %dms", uri, document_id, status, result.elapsed_ms)
        return result

    @staticmethod
    def _result(
        item: InboxItem,
        status: str,
        document_id: int | None,
        started: float,
        *,
        error: BaseException | None = None,
    ) -> ProcessResult:
        return ProcessResult(
            item=item,
            status=status,
            document_id=document_id,
            error_message=describe_error(error) if error is not None else None,
            elapsed_ms=int((time.monotonic() - started) * 1000),
        )

    async def _with_retry(
        self,
        item: InboxItem,
        op: Callable[..., Awaitable[_T]],
        *args: Any,
    ) -> _T:
        retries = self._cfg.max_retries_per_item
        for attempt in range(retries + 1):
            try:
                return await op(*args)
            except Exception as e:
                if attempt >= retries or not is_transient(e):
                    raise
                logger.warning(
                    "Transient failure (attempt %d/%d): %s :: %s",
                    attempt + 1,
                    retries + 1,
                    gs_uri(item.bucket, item.name),
                    describe_error(e),
                )
                await self._sleep(min(2**attempt, 10))
        raise AssertionError("unreachable")

    async def _ingest(self, conn: asyncpg.Connection, item: InboxItem) -> tuple[str, int]:
        """metadata -> fetch -> dedup gate -> [extract -> write]. Returns (status, document id)."""
        uri = gs_uri(item.bucket, item.name)
        meta = self._metadata.extract(item)

        # Download bytes (blocking I/O -> run in thread to not block event loop)
        data = await asyncio.to_thread(
            download_bytes, self._gcs, item.bucket, item.name, generation=item.generation
        )
        content_hash = compute_content_hash(data)

        existing = await self._gate.find_existing(
            conn, tenant_id=meta.tenant_id, content_hash=content_hash
        )
        if existing is not None:
            logger.warning("%s is a duplicate of document %s", uri, existing.id)
            return STATUS_DUPLICATE, existing.id

        extracted = await asyncio.to_thread(
            self._registry.extract_text, data, meta.content_type, source=uri
        )
        record, created = await self._writer.write(
            conn,
            meta=meta,
            data=data,
            content_hash=content_hash,
            extracted=extracted,
        )
        return (STATUS_CREATED if created else STATUS_DUPLICATE), record.id
