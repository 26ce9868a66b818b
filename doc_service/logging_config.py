"""Logging setup shared by the CLI and the FastAPI app.

On Cloud Run (services and jobs) every record is one JSON object carrying the
`severity` key Cloud Logging reads; elsewhere records are plain text.
"""

from __future__ import annotations

import logging
import os

from pythonjsonlogger.json import JsonFormatter

_JSON_FIELDS = "%(message)s %(name)s %(funcName)s %(lineno)d"
_TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s:%(lineno)d  %(message)s"

# Too chatty at INFO for a service that polls
_QUIET_LOGGERS = ("httpx", "httpcore", "google.auth", "urllib3")


class GCPJsonFormatter(JsonFormatter):
    def add_fields(
        self,
        log_record: dict[str, object],
        record: logging.LogRecord,
        message_dict: dict[str, object],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["severity"] = record.levelname


def on_cloud_run() -> bool:
    return bool(os.getenv("K_SERVICE") or os.getenv("CLOUD_RUN_JOB"))


def setup_logging(*, level: str = "INFO", json_output: bool | None = None) -> None:
    """Replace the root handlers with one stderr handler.

    `json_output` defaults to whether the process runs on Cloud Run.
    """
    if json_output is None:
        json_output = on_cloud_run()

    handler = logging.StreamHandler()
    if json_output:
        handler.setFormatter(GCPJsonFormatter(_JSON_FIELDS, rename_fields={"name": "logger"}))
    else:
        handler.setFormatter(logging.Formatter(_TEXT_FORMAT, datefmt="%H:%M:%S"))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        handlers=[handler],
        force=True,
    )
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
