from __future__ import annotations

import os
from dataclasses import dataclass

from doc_service.config import get_float, get_str


@dataclass(frozen=True)
class SearchConfig:
    url: str
    api_key: str | None
    index_name: str
    timeout_seconds: float
    task_timeout_seconds: float
    task_poll_seconds: float

    @classmethod
    def from_env(cls) -> SearchConfig:
        return cls(
            url=get_str("MEILISEARCH_URL", "http://localhost:7700").rstrip("/"),
            api_key=os.getenv("MEILISEARCH_API_KEY") or None,
            index_name=get_str("MEILISEARCH_INDEX", "documents"),
            timeout_seconds=get_float("MEILISEARCH_TIMEOUT_SECONDS", 30.0),
            task_timeout_seconds=get_float("MEILISEARCH_TASK_TIMEOUT_SECONDS", 60.0),
            task_poll_seconds=get_float("MEILISEARCH_TASK_POLL_SECONDS", 0.25),
        )

    def validate(self) -> None:
        if not self.url.startswith(("http://", "https://")):
            raise ValueError("MEILISEARCH_URL must be an http(s) URL")
        if not self.index_name:
            raise ValueError("MEILISEARCH_INDEX must not be empty")
        if self.timeout_seconds <= 0 or self.task_timeout_seconds <= 0:
            raise ValueError("Meilisearch timeouts must be > 0")
        if self.task_poll_seconds <= 0:
            raise ValueError("MEILISEARCH_TASK_POLL_SECONDS must be > 0")
