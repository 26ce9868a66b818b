from __future__ import annotations

import argparse

from doc_service.config import LOG_LEVEL


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="doc-ingestor",
        description="Ingest files from the GCS inbox and keep the search index in sync",
    )
    p.add_argument("--log-level", default=LOG_LEVEL, help="Python logging level (INFO, DEBUG, ...)")

    sub = p.add_subparsers(dest="command", required=True)
    for name, help_text in (
        ("poll", "Poll the inbox bucket"),
        ("index-sync", "Push unindexed documents into the search index"),
        ("run", "Run the inbox poller and index synchronizer together"),
    ):
        sp = sub.add_parser(name, help=help_text)
        sp.add_argument("--once", action="store_true", help="Run a single cycle and exit")
    return p
