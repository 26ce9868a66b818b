"""Async Meilisearch adapter over its HTTP API.

Writes in Meilisearch are asynchronous tasks; every write here waits for its
task to reach `succeeded` so callers can rely on the acknowledgment. Every
failure surfaces as `SearchEngineError` chained to its cause.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Sequence
from typing import Any

import httpx

from doc_service.errors import SearchEngineError
from doc_service.search.config import SearchConfig
from doc_service.search.documents import PRIMARY_KEY, SearchPage, SearchQuery, index_settings

logger = logging.getLogger(__name__)

_TASK_DONE_FAILED = {"failed", "canceled"}


class MeilisearchClient:
    def __init__(
        self,
        cfg: SearchConfig,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._cfg = cfg
        headers = {"Content-Type": "application/json"}
        if cfg.api_key:
            headers["Authorization"] = f"Bearer {cfg.api_key}"
        self._http = httpx.AsyncClient(
            base_url=cfg.url,
            headers=headers,
            timeout=cfg.timeout_seconds,
            transport=transport,
        )
        self._index_path = f"/indexes/{cfg.index_name}"
        self._index_ready = False

    @property
    def index_name(self) -> str:
        return self._cfg.index_name

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> MeilisearchClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    # -- transport -----------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        try:
            resp = await self._http.request(method, path, json=json, params=params)
        except httpx.HTTPError as e:
            raise SearchEngineError(f"Meilisearch {method} {path} failed: {e}") from e

        if resp.status_code >= 400:
            code = None
            message = resp.text
            try:
                body = resp.json()
            except ValueError:
                body = None
            if isinstance(body, dict):
                code = body.get("code")
                message = body.get("message", message)
            raise SearchEngineError(
                f"Meilisearch {method} {path} returned {resp.status_code}: {message}",
                code=code,
                status_code=resp.status_code,
            )

        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise SearchEngineError(f"Meilisearch {method} {path} returned invalid JSON") from e

    async def wait_for_task(self, task_uid: int) -> dict[str, Any]:
        """Poll a task until it finishes. Raises unless it succeeded."""
        deadline = time.monotonic() + self._cfg.task_timeout_seconds
        while True:
            task = await self._request("GET", f"/tasks/{task_uid}")
            status = task.get("status")
            if status == "succeeded":
                return task
            if status in _TASK_DONE_FAILED:
                error = task.get("error") or {}
                raise SearchEngineError(
                    f"Meilisearch task {task_uid} {status}: {error.get('message', 'no detail')}",
                    code=error.get("code"),
                )
            if time.monotonic() >= deadline:
                raise SearchEngineError(
                    f"Meilisearch task {task_uid} still {status} after "
                    f"{self._cfg.task_timeout_seconds}s"
                )
            await asyncio.sleep(self._cfg.task_poll_seconds)

    async def _write(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        enqueued = await self._request(method, path, json=json, params=params)
        task_uid = (enqueued or {}).get("taskUid")
        if task_uid is None:
            raise SearchEngineError(f"Meilisearch {method} {path} returned no task uid")
        return await self.wait_for_task(task_uid)

    # -- index lifecycle -------------------------------------------------------

    async def initialize_index(self) -> None:
        """Create the index if missing and apply attribute settings.

        Runs once per client; later calls return immediately after the first
        acknowledged settings update.
        """
        if self._index_ready:
            return

        try:
            await self._write(
                "POST",
                "/indexes",
                json={"uid": self._cfg.index_name, "primaryKey": PRIMARY_KEY},
            )
            logger.info("Created search index %s", self._cfg.index_name)
        except SearchEngineError as e:
            if e.code != "index_already_exists":
                raise
            logger.debug("Search index %s already exists", self._cfg.index_name)

        await self._write("PATCH", f"{self._index_path}/settings", json=index_settings())
        self._index_ready = True

    async def clear_index(self) -> None:
        await self._write("DELETE", f"{self._index_path}/documents")
        logger.warning("Cleared all documents from search index %s", self._cfg.index_name)

    # -- documents -----------------------------------------------------------

    async def upsert_documents(self, docs: Sequence[dict[str, Any]]) -> list[str]:
        """Add or replace documents by id; returns their ids once acknowledged."""
        if not docs:
            return []
        await self._write(
            "POST",
            f"{self._index_path}/documents",
            json=list(docs),
            params={"primaryKey": PRIMARY_KEY},
        )
        ids = [str(d[PRIMARY_KEY]) for d in docs]
        logger.info("Upserted %d documents into %s", len(ids), self._cfg.index_name)
        return ids

    async def upsert_document(self, doc: dict[str, Any]) -> str:
        ids = await self.upsert_documents([doc])
        return ids[0]

    async def delete_documents(self, ids: Sequence[str]) -> None:
        if not ids:
            return
        await self._write("POST", f"{self._index_path}/documents/delete-batch", json=list(ids))

    async def delete_document(self, doc_id: str) -> None:
        await self._write("DELETE", f"{self._index_path}/documents/{doc_id}")

    # -- queries ---------------------------------------------------------------

    async def search(self, query: SearchQuery) -> SearchPage:
        body = await self._request("POST", f"{self._index_path}/search", json=query.to_payload())
        hits = list(body.get("hits") or [])
        page_size = int(body.get("hitsPerPage") or query.page_size)
        total_hits = int(body.get("totalHits", len(hits)))
        total_pages = int(body.get("totalPages", -(-total_hits // max(page_size, 1))))
        page = SearchPage(
            hits=hits,
            total_hits=total_hits,
            page=int(body.get("page") or query.page),
            page_size=page_size,
            total_pages=total_pages,
            processing_time_ms=int(body.get("processingTimeMs") or 0),
            query=query.query,
        )
        logger.info(
            "Search completed: query=%r hits=%d processing=%dms",
            query.query,
            page.total_hits,
            page.processing_time_ms,
        )
        return page

    async def is_healthy(self) -> bool:
        try:
            body = await self._request("GET", "/health")
        except SearchEngineError:
            logger.exception("Meilisearch health check failed")
            return False
        return (body or {}).get("status") == "available"
