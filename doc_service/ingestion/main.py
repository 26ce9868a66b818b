from __future__ import annotations

import asyncio
import contextlib
import logging
import signal

from doc_service.db import close_pool
from doc_service.ingestion.cli import build_parser
from doc_service.logging_config import setup_logging
from doc_service.workers import Workers, build_workers

logger = logging.getLogger("doc_service.ingestion")


async def _run_once(workers: Workers, command: str) -> int:
    failed = 0
    if command in ("poll", "run"):
        stats = await workers.poller.run_once()
        logger.info("Poll done stats=%s", stats)
        failed = stats["failed"]
    if command in ("index-sync", "run"):
        indexed = await workers.synchronizer.run_once()
        logger.info("Index sync done indexed=%d", indexed)
    return 0 if failed == 0 else 2


async def _run_forever(workers: Workers, command: str) -> int:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop.set)

    if command == "poll":
        await workers.poller.run(stop)
    elif command == "index-sync":
        await workers.synchronizer.run(stop)
    else:
        await workers.run(stop)
    return 0


async def _amain() -> int:
    parser = build_parser()
    args = parser.parse_args()

    setup_logging(level=args.log_level.upper())

    workers = build_workers()
    try:
        if args.once:
            return await _run_once(workers, args.command)
        return await _run_forever(workers, args.command)
    finally:
        await workers.aclose()
        await close_pool()


def main() -> None:
    raise SystemExit(asyncio.run(_amain()))


if __name__ == "__main__":
    main()
