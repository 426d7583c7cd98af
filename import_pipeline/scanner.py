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


"""Finds template .docx files under the import source folders."""

import csv
import logging
import os
from pathlib import PurePath
from typing import Dict, Iterable, List, Tuple

from shared.string_utils import slugify
from shared.types import MetadataOverride, SourceFile

logger = logging.getLogger(__name__)

DOCX_EXTENSION = ".docx"
WORD_LOCK_FILE_PREFIX = "~$"
DEFAULT_CATEGORY_NAME = "General"
DEFAULT_CATEGORY_SLUG = "general"


def _is_ignored(name: str) -> bool:
    return name.startswith(".") or name.startswith(WORD_LOCK_FILE_PREFIX)


def source_folder_name(source_folder: str) -> str:
    """The leading component of every key scanned from this folder."""
    return os.path.basename(os.path.abspath(source_folder).rstrip(os.sep))


def build_source_key(path: str, source_folder: str) -> str:
    """Returns "<folder name>/<relative posix path>" for a scanned file."""
    folder = os.path.abspath(source_folder)
    relative = PurePath(os.path.relpath(os.path.abspath(path), folder)).as_posix()
    return f"{source_folder_name(folder)}/{relative}"


def _walk(directory: str, source_folder: str, found: List[SourceFile]) -> None:
    try:
        with os.scandir(directory) as it:
            entries = sorted(it, key=lambda entry: entry.name)
    except OSError as exc:
        logger.error("Error reading directory %s: %s", directory, exc)
        return

    for entry in entries:
        if _is_ignored(entry.name):
            continue
        if entry.is_dir(follow_symlinks=False):
            _walk(entry.path, source_folder, found)
        elif entry.is_file() and entry.name.lower().endswith(DOCX_EXTENSION):
            found.append(
                SourceFile(
                    path=os.path.abspath(entry.path),
                    source_folder=os.path.abspath(source_folder),
                    source_key=build_source_key(entry.path, source_folder),
                )
            )


def scan_source_folders(folders: Iterable[str]) -> List[SourceFile]:
    """
    Recursively collects .docx files from every source folder.

    Hidden entries and Word lock files (~$*.docx) are skipped. Missing folders
    are logged and ignored so one unmounted drive does not abort a run.

    Returns:
        List[SourceFile]: Files in deterministic (sorted) walk order.
    """
    found: List[SourceFile] = []
    for folder in folders:
        if not os.path.isdir(folder):
            logger.warning("Source folder not found: %s", folder)
            continue
        _walk(folder, folder, found)
    return found


def extract_category(source_file: SourceFile) -> Tuple[str, str]:
    """The first directory under the source folder names the category."""
    relative = os.path.relpath(source_file.path, source_file.source_folder)
    parts = PurePath(relative).parts
    if len(parts) > 1:
        name = parts[0]
        return name, slugify(name) or DEFAULT_CATEGORY_SLUG
    return DEFAULT_CATEGORY_NAME, DEFAULT_CATEGORY_SLUG


def _parse_minutes(value: str) -> int:
    try:
        return max(0, int(str(value).strip()))
    except (TypeError, ValueError):
        return 0


def load_metadata_csv(path: str) -> Dict[str, MetadataOverride]:
    """
    Loads curated template metadata keyed by file name.

    Expected columns: filename, name, description, categoryId, estimatedMinutes.
    Rows without a filename are ignored.
    """
    if not os.path.exists(path):
        raise FileNotFoundError(f"Metadata file not found: {path}")

    overrides: Dict[str, MetadataOverride] = {}
    with open(path, newline="", encoding="utf-8-sig") as f:
        for record in csv.DictReader(f):
            filename = (record.get("filename") or "").strip()
            if not filename:
                continue
            overrides[filename] = MetadataOverride(
                filename=filename,
                name=(record.get("name") or "").strip(),
                description=(record.get("description") or "").strip(),
                category_id=(record.get("categoryId") or "").strip() or None,
                estimated_minutes=_parse_minutes(record.get("estimatedMinutes")),
            )
    return overrides


def find_override(
    source_file: SourceFile, overrides: Dict[str, MetadataOverride]
) -> MetadataOverride | None:
    """Matches a CSV row by relative path first, then by bare file name."""
    if not overrides:
        return None
    relative = PurePath(
        os.path.relpath(source_file.path, source_file.source_folder)
    ).as_posix()
    return overrides.get(relative) or overrides.get(os.path.basename(source_file.path))
