"""Thin synchronous wrappers over google-cloud-storage.

Callers run these in `asyncio.to_thread` so blocking I/O never stalls the
event loop.
"""

from __future__ import annotations

import logging

from google.api_core.exceptions import NotFound
from google.cloud import storage

logger = logging.getLogger(__name__)


def gs_uri(bucket: str, name: str) -> str:
    return f"gs://{bucket}/{name}"


def list_inbox(client: storage.Client, bucket: str, *, limit: int) -> list[storage.Blob]:
    """Return up to `limit` objects from the inbox.

    Folder markers stay in the inbox forever; they are skipped and do not count
    toward `limit`.
    """
    out: list[storage.Blob] = []
    for blob in client.list_blobs(bucket):
        if blob.name.endswith("/"):
            continue
        out.append(blob)
        if len(out) >= limit:
            break
    return out


def download_bytes(
    client: storage.Client,
    bucket: str,
    name: str,
    *,
    generation: int | None = None,
) -> bytes:
    """Download an object, pinned to `generation` when given."""
    b = client.bucket(bucket)
    blob = b.blob(name, generation=generation)
    return blob.download_as_bytes()


def upload_bytes(
    client: storage.Client,
    bucket: str,
    name: str,
    data: bytes,
    *,
    content_type: str = "application/octet-stream",
) -> None:
    b = client.bucket(bucket)
    blob = b.blob(name)
    blob.upload_from_string(data, content_type=content_type)


def copy_blob(source: storage.Blob, dest: storage.Blob) -> None:
    """Server-side copy, polling the rewrite token until the copy completes.

    Large or cross-location copies come back in several rewrite calls.
    """
    token, written, total = dest.rewrite(source)
    while token is not None:
        logger.debug("Rewrite in progress %s: %s/%s bytes", dest.name, written, total)
        token, written, total = dest.rewrite(source, token=token)


def delete_if_exists(
    client: storage.Client,
    bucket: str,
    name: str,
    *,
    if_generation_match: int | None = None,
) -> bool:
    """Delete an object; a missing object is not an error. Returns True if deleted."""
    blob = client.bucket(bucket).blob(name)
    try:
        blob.delete(if_generation_match=if_generation_match)
    except NotFound:
        logger.info("Object already gone: %s", gs_uri(bucket, name))
        return False
    return True
