from __future__ import annotations

from dataclasses import dataclass

from doc_service.config import get_bool, get_int, get_str


@dataclass(frozen=True)
class IndexSyncConfig:
    enabled: bool
    interval_seconds: int
    startup_delay_seconds: int
    batch_size: int

    # Raw-content fallback for records stored without extracted text
    storage_bucket: str
    max_text_file_mb: int

    @property
    def max_text_file_bytes(self) -> int:
        return self.max_text_file_mb * 1024 * 1024

    @classmethod
    def from_env(cls) -> IndexSyncConfig:
        return cls(
            enabled=get_bool("DOCS_INDEX_SYNC_ENABLED", True),
            interval_seconds=get_int("DOCS_INDEX_SYNC_INTERVAL_SECONDS", 300),
            startup_delay_seconds=get_int("DOCS_INDEX_SYNC_STARTUP_DELAY_SECONDS", 30),
            batch_size=get_int("DOCS_INDEX_BATCH_SIZE", 20),
            storage_bucket=get_str("DOCS_STORAGE_BUCKET", "documents"),
            max_text_file_mb=get_int("DOCS_INDEX_MAX_TEXT_FILE_MB", 5),
        )

    def validate(self) -> None:
        if self.batch_size < 1:
            raise ValueError("DOCS_INDEX_BATCH_SIZE must be >= 1")
        if self.interval_seconds < 1:
            raise ValueError("DOCS_INDEX_SYNC_INTERVAL_SECONDS must be >= 1")
        if self.startup_delay_seconds < 0:
            raise ValueError("DOCS_INDEX_SYNC_STARTUP_DELAY_SECONDS must be >= 0")
        if self.max_text_file_mb <= 0:
            raise ValueError("DOCS_INDEX_MAX_TEXT_FILE_MB must be > 0")
