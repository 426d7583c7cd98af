"""
Bulk-import .docx legal templates into storage, the catalog DB and search.

Usage:
  python scripts/import_templates.py --source "/data/English Legal draft"
  python scripts/import_templates.py --limit 100        # stop after 100 files
  python scripts/import_templates.py --retry-failed     # re-attempt failures
  python scripts/import_templates.py --fresh            # ignore the saved ledger

Progress is checkpointed to IMPORT_PROGRESS_FILE after every batch; running
the command again continues where the last run stopped.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from sqlalchemy.exc import SQLAlchemyError

from backend.config import Settings, get_settings
from backend.dependencies import (
    build_db_client,
    get_db_client,
    get_search_index,
    get_storage_client,
    uses_in_memory_backends,
)
from backend.search import InMemorySearchIndex
from backend.storage import InMemoryStorageClient
from import_pipeline.importer import ImportConfigError, TemplateImporter
from import_pipeline.progress import LedgerCorruptError, ProgressLedger
from import_pipeline.scanner import load_metadata_csv

logger = logging.getLogger(__name__)


def _non_negative_int(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"must not be negative: {value}")
    return number


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1: {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="NyayaMitra template import")
    parser.add_argument(
        "--source",
        action="append",
        default=None,
        help="Source folder to scan (repeatable). Overrides IMPORT_SOURCE_FOLDERS.",
    )
    parser.add_argument(
        "--batch-size",
        type=_positive_int,
        default=None,
        help="Files per checkpoint batch (default: IMPORT_BATCH_SIZE)",
    )
    parser.add_argument(
        "--limit",
        type=_non_negative_int,
        default=None,
        help="Stop after attempting this many files",
    )
    parser.add_argument(
        "--fresh",
        action="store_true",
        help="Discard the saved progress ledger and start over",
    )
    parser.add_argument(
        "--retry-failed",
        action="store_true",
        help="Re-attempt files that failed in earlier runs",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Scan and parse only; write nothing to storage, DB or search",
    )
    parser.add_argument(
        "--metadata-csv",
        default=None,
        help="CSV with filename,name,description,categoryId,estimatedMinutes",
    )
    return parser


def build_backends(settings: Settings, dry_run: bool):
    """
    Returns (db, storage, search). A dry run only reads the catalog: it never
    creates tables, uploads or touches the search collection.
    """
    if dry_run:
        return (
            build_db_client(settings, create_schema=False),
            InMemoryStorageClient(),
            InMemorySearchIndex(),
        )
    backends = (get_db_client(), get_storage_client(), get_search_index())
    if uses_in_memory_backends():
        logger.warning(
            "One or more backends are in-memory; imported data will not persist"
        )
    return backends


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(message)s")

    settings = get_settings()
    dry_run = args.dry_run or settings.dry_run
    if dry_run:
        logger.info("DRY RUN MODE - no changes will be made")

    try:
        db, storage, search = build_backends(settings, dry_run)
        overrides = load_metadata_csv(args.metadata_csv) if args.metadata_csv else None
        importer = TemplateImporter(
            db=db,
            storage=storage,
            search=search,
            ledger=ProgressLedger(
                settings.import_progress_file, settings.import_error_log_file
            ),
            source_folders=args.source or settings.import_source_folders,
            storage_prefix=settings.storage_prefix,
            batch_size=args.batch_size or settings.import_batch_size,
            dry_run=dry_run,
        )
        report = importer.run(
            resume=not args.fresh,
            retry_failed=args.retry_failed,
            limit=args.limit,
            metadata_overrides=overrides,
        )
    except (
        ImportConfigError,
        LedgerCorruptError,
        FileNotFoundError,
        ValueError,
        SQLAlchemyError,
    ) as exc:
        logger.error("Fatal error: %s", exc)
        return 2

    print("========================================")
    print("IMPORT COMPLETE" if not report.stopped_early else "IMPORT PAUSED")
    print("========================================")
    print(f"Total files found: {report.total_found}")
    print(f"Already imported: {report.already_imported}")
    print(f"Successfully imported: {report.succeeded}")
    print(f"Failed: {report.failed}")
    print(f"Skipped (failed earlier): {report.skipped_failed}")
    print(f"Categories touched: {report.categories_touched}")
    print(f"Duration: {report.duration_seconds:.2f}s")
    if not dry_run:
        print(f"Progress saved to: {settings.import_progress_file}")
        if report.failed:
            print(f"Error details saved to: {settings.import_error_log_file}")
    if report.stopped_early:
        print("Not all templates processed. Run again to continue.")
    return 1 if report.failed else 0


if __name__ == "__main__":
    raise SystemExit(main())
