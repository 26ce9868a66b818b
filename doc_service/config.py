"""Environment-variable-driven configuration for the document service.

Loop-specific settings are frozen dataclasses built from the environment
(`ingestion/config.py`, `indexing/config.py`, `search/config.py`) and passed
explicitly into constructors. This module holds the env parsing helpers they
share plus a few process-level flags.
"""

from __future__ import annotations

import os

_TRUTHY = ("1", "true", "t", "yes", "y", "on")


def get_bool(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return v.strip().lower() in _TRUTHY


def get_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None or not v.strip():
        return default
    return int(v)


def get_float(name: str, default: float) -> float:
    v = os.getenv(name)
    if v is None or not v.strip():
        return default
    return float(v)


def get_str(name: str, default: str) -> str:
    v = os.getenv(name)
    if v is None or not v.strip():
        return default
    return v.strip()


# -- Process ------------------------------------------------------------------
LOG_LEVEL: str = os.getenv("DOCS_LOG_LEVEL", "INFO")
SERVICE_VERSION: str = os.getenv("DOCS_SERVICE_VERSION", "0.1.0")
