from __future__ import annotations

import asyncio
import logging

from google.cloud.storage import Client

from doc_service import db
from doc_service.ingestion.config import InboxConfig
from doc_service.ingestion.processor import InboxProcessor, empty_stats
from doc_service.scheduling import run_periodic

logger = logging.getLogger(__name__)


class InboxPoller:
    """Periodically drains one bounded batch from the inbox bucket."""

    def __init__(
        self,
        *,
        cfg: InboxConfig,
        storage_client: Client,
        processor: InboxProcessor | None = None,
    ) -> None:
        self._cfg = cfg
        self._processor = processor or InboxProcessor(cfg=cfg, storage_client=storage_client)
        self._stop: asyncio.Event | None = None

    async def run_once(self) -> dict[str, int]:
        """One poll cycle inside its own connection scope."""
        if not self._cfg.enabled:
            logger.debug("Inbox processor is disabled")
            return empty_stats()
        async with db.scoped_connection() as conn:
            return await self._processor.process_batch(conn, stop=self._stop)

    async def run(self, stop: asyncio.Event) -> int:
        self._stop = stop
        try:
            return await run_periodic(
                "Inbox poller",
                self.run_once,
                stop=stop,
                enabled=self._cfg.enabled,
                interval_seconds=self._cfg.poll_interval_seconds,
                startup_delay_seconds=self._cfg.startup_delay_seconds,
            )
        finally:
            self._stop = None
