# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================


"""
Bulk template import: scan -> extract variables -> upload -> upsert -> index.

A run is resumable and safe to repeat. Every record derives its id from the
source file's location, uploads and writes are upserts, and the ledger is
checkpointed after each batch. A crash anywhere means the next run redoes at
most one batch, overwriting identical data.
"""

import logging
import os
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence
from urllib.parse import quote

from backend.db import DbClient
from backend.search import SearchIndex
from backend.storage import StorageClient
from import_pipeline import docx_variables, scanner, template_builder
from import_pipeline.progress import ImportProgress, ProgressLedger
from shared.types import (
    DOCX_CONTENT_TYPE,
    Category,
    MetadataOverride,
    SourceFile,
    Template,
)

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 10
CATEGORY_ICON = "file-text"


class ImportConfigError(Exception):
    """Raised when the importer is started without a usable configuration."""


class CategoryNotFoundError(Exception):
    """Raised when curated metadata points at a category that does not exist."""


@dataclass
class ImportReport:
    """Summary of one import run."""

    total_found: int = 0
    already_imported: int = 0
    pending: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped_failed: int = 0
    categories_touched: int = 0
    stopped_early: bool = False
    dry_run: bool = False
    duration_seconds: float = 0.0
    errors: List[Dict[str, str]] = field(default_factory=list)

    def summary(self) -> str:
        return (
            f"found={self.total_found} "
            f"already_imported={self.already_imported} "
            f"pending={self.pending} "
            f"succeeded={self.succeeded} "
            f"failed={self.failed} "
            f"skipped_failed={self.skipped_failed} "
            f"categories={self.categories_touched} "
            f"stopped_early={self.stopped_early} "
            f"dry_run={self.dry_run} "
            f"duration={self.duration_seconds:.2f}s"
        )


class TemplateImporter:
    """Drives one import run over the configured source folders."""

    def __init__(
        self,
        *,
        db: DbClient,
        storage: StorageClient,
        search: SearchIndex,
        ledger: ProgressLedger,
        source_folders: Sequence[str],
        storage_prefix: str = "templates",
        batch_size: int = DEFAULT_BATCH_SIZE,
        dry_run: bool = False,
    ):
        if not source_folders:
            raise ImportConfigError("No source folders configured for the import")
        if batch_size < 1:
            raise ImportConfigError(f"batch_size must be positive, got {batch_size}")
        folders_by_name: Dict[str, str] = {}
        for folder in source_folders:
            name = scanner.source_folder_name(folder)
            if name in folders_by_name:
                raise ImportConfigError(
                    f"Source folders {folders_by_name[name]} and {folder} share the "
                    f"name {name!r}; their files would get the same keys"
                )
            folders_by_name[name] = folder
        self.db = db
        self.storage = storage
        self.search = search
        self.ledger = ledger
        self.source_folders = list(source_folders)
        self.storage_prefix = storage_prefix
        self.batch_size = batch_size
        self.dry_run = dry_run

    def run(
        self,
        *,
        resume: bool = True,
        retry_failed: bool = False,
        limit: Optional[int] = None,
        metadata_overrides: Optional[Dict[str, MetadataOverride]] = None,
    ) -> ImportReport:
        """
        Imports every pending template.

        Args:
            resume (bool): Continue from the saved ledger. False starts over
                (existing rows are overwritten in place, not duplicated).
            retry_failed (bool): Re-attempt files that failed in earlier runs.
            limit (int): Stop after attempting this many files.
            metadata_overrides (dict): Curated fields keyed by file name.

        Returns:
            ImportReport: Counts for this run.
        """
        if limit is not None and limit < 0:
            raise ImportConfigError(f"limit must not be negative, got {limit}")
        start_time = time.time()
        report = ImportReport(dry_run=self.dry_run)

        if not self.dry_run:
            self.search.ensure_collection()

        progress = self.ledger.load() if resume else ImportProgress()
        if not resume and not self.dry_run:
            self.ledger.reset()

        all_files = scanner.scan_source_folders(self.source_folders)
        report.total_found = len(all_files)
        pending: List[SourceFile] = []
        for source_file in all_files:
            if progress.is_imported(source_file.source_key):
                report.already_imported += 1
            elif progress.has_failed(source_file.source_key) and not retry_failed:
                report.skipped_failed += 1
            else:
                pending.append(source_file)
        report.pending = len(pending)

        logger.info(
            "Found %d .docx files: %d pending, %d already imported, %d previously failed",
            report.total_found,
            report.pending,
            report.already_imported,
            len(progress.failed),
        )

        if limit is not None and limit < len(pending):
            pending = pending[:limit]
            report.stopped_early = True

        touched_categories: set[str] = set()
        total_batches = (len(pending) + self.batch_size - 1) // self.batch_size
        for batch_index in range(total_batches):
            batch = pending[
                batch_index * self.batch_size : (batch_index + 1) * self.batch_size
            ]
            logger.info("--- Batch %d/%d ---", batch_index + 1, total_batches)
            batch_errors: List[Dict[str, str]] = []
            batch_categories: set[str] = set()
            for source_file in batch:
                try:
                    template = self.import_file(
                        source_file,
                        progress,
                        metadata_overrides or {},
                        touched_categories=batch_categories,
                    )
                except Exception as exc:
                    message = str(exc) or exc.__class__.__name__
                    logger.error("Failed: %s - %s", source_file.source_key, message)
                    batch_errors.append(
                        progress.mark_failed(source_file.source_key, message)
                    )
                    report.failed += 1
                    continue
                progress.mark_imported(source_file.source_key)
                report.succeeded += 1
                logger.info(
                    "Imported %s (%s)",
                    template.name,
                    f"{len(template.variables)} vars" if template.variables else "static",
                )
            report.errors.extend(batch_errors)
            touched_categories |= batch_categories
            if not self.dry_run:
                # Recounted from the rows, never incremented.
                self.refresh_category_counts(batch_categories)
            self._checkpoint(progress, batch_errors)

        report.categories_touched = len(touched_categories)
        self._checkpoint(progress, [])

        report.duration_seconds = time.time() - start_time
        logger.info("Import finished: %s", report.summary())
        if report.stopped_early:
            logger.warning("Not all templates processed. Run again to continue.")
        return report

    def import_file(
        self,
        source_file: SourceFile,
        progress: ImportProgress,
        metadata_overrides: Dict[str, MetadataOverride],
        touched_categories: Optional[set] = None,
    ) -> Template:
        """
        Runs every pipeline step for one file. Raises on any failure.

        Once the row is written, its category and the category it was moved
        out of (if any) are added to touched_categories.
        """
        override = scanner.find_override(source_file, metadata_overrides)
        if override and override.category_id:
            category = self.require_category(override.category_id)
            category_id, category_name, category_slug = (
                category.id,
                category.name,
                category.slug,
            )
        else:
            category_name, category_slug = scanner.extract_category(source_file)
            category_id = self.ensure_category(category_slug, category_name, progress)

        with open(source_file.path, "rb") as f:
            docx_bytes = f.read()
        variables = docx_variables.extract_variables(docx_bytes)

        template = template_builder.build_template(
            source_file=source_file,
            category_id=category_id,
            category_name=category_name,
            category_slug=category_slug,
            variables=variables,
            storage_prefix=self.storage_prefix,
            override=override,
        )
        if self.dry_run:
            if touched_categories is not None:
                touched_categories.add(template.category_id)
            return template

        self.storage.upload_bytes(
            template.template_file_path,
            docx_bytes,
            DOCX_CONTENT_TYPE,
            metadata={"original-filename": quote(os.path.basename(source_file.path))},
        )
        previous = self.db.get_template(template.id)
        self.db.upsert_template(template)
        if touched_categories is not None:
            touched_categories.add(template.category_id)
            if previous and previous.category_id != template.category_id:
                touched_categories.add(previous.category_id)
        self.search.upsert(template)
        return template

    def require_category(self, category_id: str) -> Category:
        category = self.db.get_category(category_id)
        if not category:
            raise CategoryNotFoundError(f"Category not found: {category_id}")
        return category

    def ensure_category(
        self, slug: str, name: str, progress: ImportProgress
    ) -> str:
        """Returns the id for a category slug, creating the category if needed."""
        cached = progress.categories.get(slug)
        if cached:
            return cached

        category_id = template_builder.category_id_for(slug)
        if self.dry_run:
            progress.categories[slug] = category_id
            return category_id

        existing = self.db.get_category_by_slug(slug)
        if existing:
            progress.categories[slug] = existing.id
            return existing.id

        self.db.upsert_category(
            Category(
                id=category_id,
                name=name,
                slug=slug,
                icon=CATEGORY_ICON,
                description=f"{name} legal documents and templates",
                sort_order=self.db.count_categories() + 1,
                template_count=0,
                is_active=True,
            )
        )
        progress.categories[slug] = category_id
        logger.info("Created category: %s", name)
        return category_id

    def refresh_category_counts(self, category_ids) -> None:
        for category_id in sorted(category_ids):
            try:
                count = self.db.refresh_category_count(category_id)
            except Exception:
                logger.exception("Failed to update category count: %s", category_id)
                continue
            logger.info("Updated category %s: %d templates", category_id, count)

    def _checkpoint(self, progress: ImportProgress, errors: List[Dict[str, str]]) -> None:
        if self.dry_run:
            return
        self.ledger.save(progress)
        self.ledger.record_errors(errors)
