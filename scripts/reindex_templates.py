"""
Rebuild the template search index from the catalog database.

Use after a search outage or a schema change: the database is the source of
truth, and every document is upserted by template id.
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

from backend.db import DbClient
from backend.dependencies import get_db_client, get_search_index
from backend.search import SearchIndex

logger = logging.getLogger(__name__)


def reindex(
    db: DbClient, search: SearchIndex, *, batch_size: int, dry_run: bool
) -> int:
    total = 0
    if not dry_run:
        search.ensure_collection()
    for batch in db.iter_templates(batch_size=batch_size):
        if dry_run:
            total += len(batch)
            continue
        total += search.upsert_many(batch)
        logger.info("Indexed %d templates", total)
    return total


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Rebuild the Typesense template index from the database"
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=100,
        help="Templates per bulk upsert",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report how many templates would be indexed without writing",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s:%(message)s")
    total = reindex(
        get_db_client(),
        get_search_index(),
        batch_size=args.batch_size,
        dry_run=args.dry_run,
    )
    logger.info(
        "%s %d templates", "Would index" if args.dry_run else "Indexed", total
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
