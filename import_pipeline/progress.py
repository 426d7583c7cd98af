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


"""Persisted progress and error ledger for resumable template imports."""

import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)


class LedgerCorruptError(Exception):
    """Raised when an existing ledger file cannot be parsed."""


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class ImportProgress:
    """What a run has already done, keyed by SourceFile.source_key."""

    imported: List[str] = field(default_factory=list)
    failed: List[Dict[str, str]] = field(default_factory=list)
    # slug -> category id, so resumed runs skip category lookups.
    categories: Dict[str, str] = field(default_factory=dict)
    last_processed: Optional[str] = None
    total_processed: int = 0
    last_updated: str = field(default_factory=_now_iso)

    def __post_init__(self):
        self._imported_set = set(self.imported)

    def is_imported(self, key: str) -> bool:
        return key in self._imported_set

    def has_failed(self, key: str) -> bool:
        return any(entry.get("file") == key for entry in self.failed)

    def failed_keys(self) -> List[str]:
        return [entry["file"] for entry in self.failed]

    def mark_imported(self, key: str) -> None:
        if key not in self._imported_set:
            self.imported.append(key)
            self._imported_set.add(key)
        self.failed = [entry for entry in self.failed if entry.get("file") != key]
        self.last_processed = key
        self.total_processed += 1

    def mark_failed(self, key: str, error: str) -> Dict[str, str]:
        entry = {"file": key, "error": error, "timestamp": _now_iso()}
        self.failed = [e for e in self.failed if e.get("file") != key]
        self.failed.append(entry)
        self.last_processed = key
        self.total_processed += 1
        return entry

    def as_dict(self) -> dict:
        return {
            "imported": list(self.imported),
            "failed": [dict(entry) for entry in self.failed],
            "categories": dict(self.categories),
            "lastProcessed": self.last_processed,
            "totalProcessed": self.total_processed,
            "lastUpdated": self.last_updated,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ImportProgress":
        """Raises ValueError when a field has the wrong shape."""
        imported = data.get("imported") or []
        if not isinstance(imported, list) or not all(
            isinstance(key, str) for key in imported
        ):
            raise ValueError("'imported' must be a list of file keys")
        raw_failed = data.get("failed") or []
        if not isinstance(raw_failed, list):
            raise ValueError("'failed' must be a list")
        failed = []
        for entry in raw_failed:
            # Older ledgers stored bare file names.
            if isinstance(entry, str):
                entry = {"file": entry, "error": "", "timestamp": ""}
            if not isinstance(entry, dict) or not isinstance(entry.get("file"), str):
                raise ValueError(f"Invalid 'failed' entry: {entry!r}")
            failed.append(dict(entry))
        categories = data.get("categories") or {}
        if not isinstance(categories, dict):
            raise ValueError("'categories' must be an object")
        return cls(
            imported=list(imported),
            failed=failed,
            categories=dict(categories),
            last_processed=data.get("lastProcessed"),
            total_processed=int(data.get("totalProcessed") or 0),
            last_updated=data.get("lastUpdated") or _now_iso(),
        )


def _atomic_write_json(path: str, payload) -> None:
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)
    fd, temp_path = tempfile.mkstemp(
        prefix=f".{os.path.basename(path)}.", suffix=".tmp", dir=directory
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)
            f.flush()
            os.fsync(f.fileno())
        os.replace(temp_path, path)
    except BaseException:
        if os.path.exists(temp_path):
            os.remove(temp_path)
        raise


def _read_json(path: str):
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise LedgerCorruptError(f"Cannot parse ledger file {path}: {exc}") from exc


class ProgressLedger:
    """
    JSON-file checkpoint for an import run.

    Both files are replaced atomically, so a crash mid-write leaves the
    previous version on disk rather than a truncated file.
    """

    def __init__(self, progress_file: str, error_log_file: str):
        self.progress_file = progress_file
        self.error_log_file = error_log_file

    def load(self) -> ImportProgress:
        if not os.path.exists(self.progress_file):
            return ImportProgress()
        data = _read_json(self.progress_file)
        if not isinstance(data, dict):
            raise LedgerCorruptError(
                f"Ledger file {self.progress_file} does not hold a JSON object"
            )
        try:
            return ImportProgress.from_dict(data)
        except (TypeError, ValueError) as exc:
            raise LedgerCorruptError(
                f"Ledger file {self.progress_file} is malformed: {exc}"
            ) from exc

    def save(self, progress: ImportProgress) -> None:
        progress.last_updated = _now_iso()
        _atomic_write_json(self.progress_file, progress.as_dict())

    def load_errors(self) -> List[dict]:
        if not os.path.exists(self.error_log_file):
            return []
        data = _read_json(self.error_log_file)
        return data if isinstance(data, list) else []

    def record_errors(self, entries: List[dict]) -> None:
        if not entries:
            return
        errors = self.load_errors()
        errors.extend(entries)
        _atomic_write_json(self.error_log_file, errors)

    def reset(self) -> None:
        for path in (self.progress_file, self.error_log_file):
            if os.path.exists(path):
                os.remove(path)
                logger.info("Removed %s", path)
