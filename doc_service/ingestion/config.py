from __future__ import annotations

from dataclasses import dataclass

from doc_service.config import get_bool, get_int, get_str


@dataclass(frozen=True)
class InboxConfig:
    enabled: bool

    # GCS
    inbox_bucket: str
    processed_bucket: str
    failed_bucket: str
    storage_bucket: str

    # Scheduling
    poll_interval_seconds: int
    startup_delay_seconds: int
    batch_size: int

    # Record defaults
    default_tenant_id: int
    default_document_type_id: int
    system_user: str

    # Retries (transient causes only)
    max_retries_per_item: int

    @classmethod
    def from_env(cls) -> InboxConfig:
        return cls(
            enabled=get_bool("DOCS_INBOX_ENABLED", True),
            inbox_bucket=get_str("DOCS_INBOX_BUCKET", "inbox"),
            processed_bucket=get_str("DOCS_PROCESSED_BUCKET", "processed"),
            failed_bucket=get_str("DOCS_FAILED_BUCKET", "failed"),
            storage_bucket=get_str("DOCS_STORAGE_BUCKET", "documents"),
            poll_interval_seconds=get_int("DOCS_POLL_INTERVAL_SECONDS", 30),
            startup_delay_seconds=get_int("DOCS_POLL_STARTUP_DELAY_SECONDS", 5),
            batch_size=get_int("DOCS_INBOX_BATCH_SIZE", 10),
            default_tenant_id=get_int("DOCS_DEFAULT_TENANT_ID", 1),
            default_document_type_id=get_int("DOCS_DEFAULT_DOCUMENT_TYPE_ID", 1),
            system_user=get_str("DOCS_SYSTEM_USER", "InboxProcessor"),
            max_retries_per_item=get_int("DOCS_INBOX_MAX_RETRIES_PER_ITEM", 0),
        )

    def validate(self) -> None:
        if self.batch_size < 1:
            raise ValueError("DOCS_INBOX_BATCH_SIZE must be >= 1")
        if self.poll_interval_seconds < 1:
            raise ValueError("DOCS_POLL_INTERVAL_SECONDS must be >= 1")
        if self.startup_delay_seconds < 0:
            raise ValueError("DOCS_POLL_STARTUP_DELAY_SECONDS must be >= 0")
        if self.max_retries_per_item < 0:
            raise ValueError("DOCS_INBOX_MAX_RETRIES_PER_ITEM must be >= 0")

        for name, bucket in (
            ("DOCS_PROCESSED_BUCKET", self.processed_bucket),
            ("DOCS_FAILED_BUCKET", self.failed_bucket),
        ):
            if bucket == self.inbox_bucket:
                raise ValueError(f"{name} must differ from DOCS_INBOX_BUCKET")
