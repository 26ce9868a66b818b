"""Inbox -> processed / failed state transitions.

A move is copy (rewrite loop until done), stamp metadata, verify size, then
delete the original guarded by its generation. The destination name depends
only on the inbox object, so a move interrupted after the copy is resumed by
the next attempt: a destination already stamped with the same source
generation is not copied again.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime

from google.api_core.exceptions import PreconditionFailed
from google.cloud.storage import Bucket, Client

from doc_service.errors import StorageMoveError
from doc_service.ingestion.config import InboxConfig
from doc_service.ingestion.gcs import copy_blob, delete_if_exists, gs_uri
from doc_service.ingestion.types import InboxItem

logger = logging.getLogger(__name__)

# GCS caps total custom metadata at 8 KiB per object
MAX_ERROR_MESSAGE_CHARS = 1024


def destination_name(item: InboxItem, *, with_generation: bool = False) -> str:
    """`<yyyyMMddHHmmss of inbox creation, UTC>_<name with "/" flattened to "_">`

    `with_generation` inserts the source generation after the timestamp; it is
    the fallback when the plain name is taken by a different inbox object.
    """
    created = item.time_created.astimezone(UTC)
    flat = item.name.replace("/", "_")
    if with_generation:
        return f"{created:%Y%m%d%H%M%S}_{item.generation}_{flat}"
    return f"{created:%Y%m%d%H%M%S}_{flat}"


def _truncate(message: str, limit: int = MAX_ERROR_MESSAGE_CHARS) -> str:
    message = " ".join(message.split())
    if len(message) <= limit:
        return message
    return message[: limit - 3] + "..."


def describe_error(error: BaseException | str) -> str:
    if isinstance(error, BaseException):
        return f"{type(error).__name__}: {error}"
    return error


class StateMover:
    def __init__(self, *, cfg: InboxConfig, storage_client: Client) -> None:
        self._cfg = cfg
        self._gcs = storage_client

    async def move_to_processed(self, item: InboxItem) -> str:
        return await asyncio.to_thread(self._move, item, self._cfg.processed_bucket, {})

    async def move_to_failed(self, item: InboxItem, error: BaseException | str) -> str:
        extra = {
            "ErrorMessage": _truncate(describe_error(error)),
            "ErrorTime": datetime.now(UTC).isoformat(),
        }
        return await asyncio.to_thread(self._move, item, self._cfg.failed_bucket, extra)

    def _pick_destination(self, dst: Bucket, item: InboxItem, source_generation: str) -> tuple[str, bool]:
        """Destination name for `item` and whether its copy is already in place.

        A destination stamped with another source generation belongs to a
        different inbox object whose flattened name collides with this one; it
        is never overwritten.
        """
        for with_generation in (False, True):
            name = destination_name(item, with_generation=with_generation)
            existing = dst.get_blob(name)
            if existing is None:
                return name, False
            stamped = (existing.metadata or {}).get("SourceGeneration")
            if not stamped:
                # Unstamped copy left by an interrupted attempt of ours
                return name, False
            if stamped == source_generation:
                return name, True
        raise StorageMoveError(
            f"Destination names for {gs_uri(item.bucket, item.name)} are taken in {dst.name}"
        )

    def _move(self, item: InboxItem, dest_bucket: str, extra: dict[str, str]) -> str:
        source_generation = str(item.generation) if item.generation is not None else ""

        dst = self._gcs.bucket(dest_bucket)
        dest_name, copied = self._pick_destination(dst, item, source_generation)
        if copied:
            logger.info(
                "%s already copied to %s; finishing move",
                gs_uri(item.bucket, item.name),
                gs_uri(dest_bucket, dest_name),
            )
        else:
            # Pinned to the listed generation
            source = self._gcs.bucket(item.bucket).get_blob(item.name, generation=item.generation)
            if source is None:
                raise StorageMoveError(
                    f"Source object {gs_uri(item.bucket, item.name)} "
                    f"(generation {item.generation}) no longer exists"
                )

            dest = dst.blob(dest_name)
            copy_blob(source, dest)

            dest.metadata = {
                **(source.metadata or {}),
                "ProcessedTime": datetime.now(UTC).isoformat(),
                "ProcessedBy": self._cfg.system_user,
                "SourceContainer": item.bucket,
                "SourceGeneration": source_generation,
                **extra,
            }
            dest.patch()

            dest.reload()
            if dest.size != source.size:
                delete_if_exists(self._gcs, dest_bucket, dest_name)
                raise StorageMoveError(
                    f"Copy of {gs_uri(item.bucket, item.name)} has {dest.size} bytes, "
                    f"expected {source.size}; copy removed"
                )

        try:
            delete_if_exists(
                self._gcs,
                item.bucket,
                item.name,
                if_generation_match=item.generation,
            )
        except PreconditionFailed:
            # A newer upload replaced the object; it stays for the next cycle
            logger.warning(
                "%s changed since listing (generation %s); newer object left in place",
                gs_uri(item.bucket, item.name),
                item.generation,
            )
        logger.info(
            "Moved %s to %s",
            gs_uri(item.bucket, item.name),
            gs_uri(dest_bucket, dest_name),
        )
        return dest_name
