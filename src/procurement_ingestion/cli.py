# ============================================================================
# src/procurement_ingestion/cli.py
# ============================================================================
"""
Command line entry point.

Extract one document end to end:

    procurement-extract invoice.pdf --project-id p1 --project-name "Marina Bay Tower"

Check the vision backend:

    procurement-extract --health
"""

import argparse
import asyncio
import json
import mimetypes
import sys
import uuid
from pathlib import Path
from typing import List, Optional

from .config import logging_settings
from .constants import AUTO_DETECT
from .core.config import get_config
from .core.context import ExtractionJob
from .core.document_store import ProcurementDocumentStore
from .core.extraction_pipeline import ExtractionPipeline
from .core.job_queue import ExtractionJobQueue
from .utils.logging import setup_logging
from .vision.client import create_client


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="procurement-extract",
        description="Classify and extract a procurement document with a vision model",
    )
    parser.add_argument("file", nargs="?", help="PDF or image to extract")
    parser.add_argument("--project-id", default="cli-project", help="Project the document belongs to")
    parser.add_argument("--project-name", help="Project name used for mismatch checking")
    parser.add_argument("--document-id", help="Document id (default: random)")
    parser.add_argument("--mime-type", help="Declared MIME type (default: guessed from the file name)")
    parser.add_argument("--type", dest="document_type", default=AUTO_DETECT,
                        help="Document type hint, e.g. SUPPLIER_INVOICE (default: AUTO)")
    parser.add_argument("--db", help="SQLite database path (default: DB_PATH or data/procurement.db)")
    parser.add_argument("--health", action="store_true", help="Check the vision backend and exit")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser


async def _health(config) -> int:
    client = create_client(config)
    try:
        status = await client.health_check()
    finally:
        await client.close()
    print(json.dumps(status, indent=2))
    return 0 if status.get("healthy") else 1


async def _extract(args, config) -> int:
    file_path = Path(args.file)
    if not file_path.exists():
        print(f"File not found: {file_path}", file=sys.stderr)
        return 2

    store = ProcurementDocumentStore(args.db or config.get('db_path'))
    document_id = args.document_id or str(uuid.uuid4())
    mime_type = args.mime_type or mimetypes.guess_type(file_path.name)[0] or ""

    if args.project_name:
        store.register_project(args.project_id, args.project_name)
    store.register_document(document_id, args.project_id, file_path, mime_type)

    vision_client = create_client(config)
    pipeline = ExtractionPipeline(store, config=config, vision_client=vision_client)
    queue = ExtractionJobQueue(pipeline, max_concurrent_jobs=config.get('max_concurrent_jobs'))

    try:
        queue.submit(ExtractionJob(
            document_id=document_id,
            project_id=args.project_id,
            file_path=file_path,
            mime_type=mime_type,
            document_type_hint=args.document_type,
        ))
        await queue.drain()
    finally:
        await vision_client.close()

    document = store.get(document_id)
    print(json.dumps(document, indent=2, default=str))
    return 0 if document and document["status"] == "EXTRACTED" else 1


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = dict(get_config())
    level = "DEBUG" if args.verbose else logging_settings.LOG_LEVEL
    setup_logging(level=level, log_file=logging_settings.LOG_FILE, format_json=logging_settings.LOG_JSON)

    if args.health:
        return asyncio.run(_health(config))

    if not args.file:
        parser.error("a file is required unless --health is given")

    return asyncio.run(_extract(args, config))


if __name__ == "__main__":
    sys.exit(main())
