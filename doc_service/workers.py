"""Wiring for the two background loops, shared by the CLI and the FastAPI app."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from google.cloud.storage import Client

from doc_service.indexing.config import IndexSyncConfig
from doc_service.indexing.synchronizer import IndexSynchronizer
from doc_service.ingestion.config import InboxConfig
from doc_service.ingestion.poller import InboxPoller
from doc_service.search.config import SearchConfig
from doc_service.search.meilisearch import MeilisearchClient

logger = logging.getLogger(__name__)


@dataclass
class Workers:
    poller: InboxPoller
    synchronizer: IndexSynchronizer
    search: MeilisearchClient

    async def run(self, stop: asyncio.Event) -> None:
        """Run both loops until `stop` is set."""
        await asyncio.gather(self.poller.run(stop), self.synchronizer.run(stop))

    async def aclose(self) -> None:
        await self.search.aclose()


def build_workers(
    *,
    inbox_cfg: InboxConfig | None = None,
    index_cfg: IndexSyncConfig | None = None,
    search_cfg: SearchConfig | None = None,
    storage_client: Client | None = None,
) -> Workers:
    inbox_cfg = inbox_cfg or InboxConfig.from_env()
    index_cfg = index_cfg or IndexSyncConfig.from_env()
    search_cfg = search_cfg or SearchConfig.from_env()
    inbox_cfg.validate()
    index_cfg.validate()
    search_cfg.validate()

    client = storage_client or Client()
    search = MeilisearchClient(search_cfg)
    return Workers(
        poller=InboxPoller(cfg=inbox_cfg, storage_client=client),
        synchronizer=IndexSynchronizer(cfg=index_cfg, search=search, storage_client=client),
        search=search,
    )
