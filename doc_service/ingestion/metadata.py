"""Derive document metadata from an inbox object's tags and path.

Precedence, lowest to highest: configured defaults, object metadata tags,
then the `tenant-<id>/...` path convention for the tenant id.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping
from typing import Any

from doc_service.ingestion.config import InboxConfig
from doc_service.ingestion.types import ExtractedMetadata, InboxItem

logger = logging.getLogger(__name__)

OCTET_STREAM = "application/octet-stream"

_TENANT_SEGMENT = re.compile(r"^tenant-(\d+)$", re.IGNORECASE)

_EXT_CONTENT_TYPES: dict[str, str] = {
    ".pdf": "application/pdf",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".doc": "application/msword",
    ".html": "text/html",
    ".htm": "text/html",
    ".xhtml": "application/xhtml+xml",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".csv": "text/csv",
    ".json": "application/json",
    ".xml": "application/xml",
    ".yaml": "application/x-yaml",
    ".yml": "application/x-yaml",
}


def _parse_int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def _split_ext(file_name: str) -> tuple[str, str]:
    stem, dot, ext = file_name.rpartition(".")
    if not dot or not stem:
        return file_name, ""
    return stem, f".{ext.lower()}"


def guess_content_type(file_name: str, declared: str | None) -> str:
    if declared and declared.strip() and declared.strip().lower() != OCTET_STREAM:
        return declared.strip()
    _, ext = _split_ext(file_name)
    return _EXT_CONTENT_TYPES.get(ext, OCTET_STREAM)


def parse_tags(raw: str | None) -> list[str] | None:
    """JSON array text, or a comma separated list when it is not valid JSON."""
    if raw is None or not raw.strip():
        return None
    try:
        parsed = json.loads(raw)
    except ValueError:
        parsed = None
    else:
        if isinstance(parsed, list):
            return [str(t).strip() for t in parsed if str(t).strip()]
        if isinstance(parsed, str):
            raw = parsed
    tags = [t.strip() for t in raw.split(",") if t.strip()]
    return tags or None


def parse_metadata(raw: str | None, *, source: str = "") -> dict[str, Any] | None:
    if raw is None or not raw.strip():
        return None
    try:
        parsed = json.loads(raw)
    except ValueError:
        logger.warning("Ignoring invalid Metadata JSON on %s", source)
        return None
    if not isinstance(parsed, dict):
        logger.warning("Ignoring non-object Metadata JSON on %s", source)
        return None
    return parsed


def tenant_from_path(name: str) -> int | None:
    parts = [p for p in name.split("/") if p]
    if len(parts) < 2:
        return None
    m = _TENANT_SEGMENT.match(parts[0])
    return int(m.group(1)) if m else None


class MetadataExtractor:
    def __init__(self, cfg: InboxConfig) -> None:
        self._cfg = cfg

    def extract(self, item: InboxItem) -> ExtractedMetadata:
        return self.derive(item.name, item.metadata, content_type=item.content_type)

    def derive(
        self,
        name: str,
        tags: Mapping[str, str] | None,
        *,
        content_type: str | None = None,
    ) -> ExtractedMetadata:
        tags = tags or {}
        file_name = name.rsplit("/", 1)[-1]
        stem, _ = _split_ext(file_name)

        tenant_id = self._cfg.default_tenant_id
        document_type_id = self._cfg.default_document_type_id

        if (v := _parse_int(tags.get("TenantId"))) is not None:
            tenant_id = v
        elif "TenantId" in tags:
            logger.warning("Non-integer TenantId tag %r on %s; using default", tags["TenantId"], name)

        if (v := _parse_int(tags.get("DocumentTypeId"))) is not None:
            document_type_id = v
        elif "DocumentTypeId" in tags:
            logger.warning(
                "Non-integer DocumentTypeId tag %r on %s; using default", tags["DocumentTypeId"], name
            )

        if (v := tenant_from_path(name)) is not None:
            tenant_id = v

        title = (tags.get("Title") or "").strip() or stem
        description = (tags.get("Description") or "").strip() or None

        md = ExtractedMetadata(
            tenant_id=tenant_id,
            document_type_id=document_type_id,
            title=title,
            description=description,
            tags=parse_tags(tags.get("Tags")),
            metadata=parse_metadata(tags.get("Metadata"), source=name),
            file_name=file_name,
            content_type=guess_content_type(file_name, content_type),
        )
        logger.debug(
            "Metadata for %s: tenant=%s type=%s title=%s",
            name,
            md.tenant_id,
            md.document_type_id,
            md.title,
        )
        return md
