"""Drop sample files into the inbox bucket for local development.

Usage:
    python scripts/drop-sample-files.py [--tenant 2]

Requires:
    - GCS credentials (or STORAGE_EMULATOR_HOST for fake-gcs-server)
    - DOCS_INBOX_BUCKET set (default: inbox)
"""

from __future__ import annotations

import argparse
import json
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


SAMPLE_FILES = [
    {
        "name": "api-design-guidelines.md",
        "content_type": "text/markdown",
        "content": (
            "# REST API Design Best Practices\n\n"
            "1. Use nouns for resource URLs, not verbs.\n"
            "2. Return appropriate HTTP status codes.\n"
            "3. Use pagination for list endpoints.\n"
        ),
        "metadata": {
            "Title": "API Design Guidelines",
            "Tags": json.dumps(["guidelines", "api"]),
            "Metadata": json.dumps({"owner": "platform"}),
        },
    },
    {
        "name": "migration-runbook.html",
        "content_type": "text/html",
        "content": (
            "<html><head><title>Migration Runbook</title></head><body>"
            "<h1>Database Migration Procedures</h1>"
            "<p>Take a full backup, then run alembic upgrade head.</p>"
            "</body></html>"
        ),
        "metadata": {"Description": "How to run schema migrations", "Tags": "runbook,database"},
    },
    {
        "name": "notes.txt",
        "content_type": "text/plain",
        "content": "Plain notes dropped without any tags.\n",
        "metadata": {},
    },
]


def main() -> None:
    from google.cloud.storage import Client

    from doc_service.ingestion.config import InboxConfig

    p = argparse.ArgumentParser(description="Upload sample files into the inbox bucket")
    p.add_argument("--tenant", type=int, default=None, help="Place files under tenant-<id>/")
    args = p.parse_args()

    cfg = InboxConfig.from_env()
    bucket = Client().bucket(cfg.inbox_bucket)
    prefix = f"tenant-{args.tenant}/" if args.tenant is not None else ""

    print(f"Uploading {len(SAMPLE_FILES)} files to gs://{cfg.inbox_bucket}/{prefix}...")
    for f in SAMPLE_FILES:
        blob = bucket.blob(prefix + f["name"])
        blob.metadata = f["metadata"] or None
        blob.upload_from_string(f["content"], content_type=f["content_type"])
        print(f"  {blob.name}")
    print("Done!")


if __name__ == "__main__":
    main()
