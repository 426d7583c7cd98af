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



import os
import shutil
import tempfile
import unittest

from import_pipeline import scanner
from shared.types import SourceFile


class ScannerTest(unittest.TestCase):

    def setUp(self):
        self.root = tempfile.mkdtemp()
        self.source = os.path.join(self.root, "Legal Templates")
        self._touch("Rental/Rent Agreement.docx")
        self._touch("Rental/Sub Lease/Sub Lease Deed.DOCX")
        self._touch("Affidavit.docx")
        self._touch("Rental/~$Rent Agreement.docx")
        self._touch(".drafts/Hidden.docx")
        self._touch("Rental/notes.txt")

    def tearDown(self):
        shutil.rmtree(self.root, ignore_errors=True)

    def _touch(self, relative_path):
        path = os.path.join(self.source, *relative_path.split("/"))
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "wb") as f:
            f.write(b"")
        return path

    def test_scan_finds_docx_files_recursively_in_sorted_order(self):
        files = scanner.scan_source_folders([self.source])
        self.assertEqual(
            [f.source_key for f in files],
            [
                "Legal Templates/Affidavit.docx",
                "Legal Templates/Rental/Rent Agreement.docx",
                "Legal Templates/Rental/Sub Lease/Sub Lease Deed.DOCX",
            ],
        )
        for f in files:
            self.assertTrue(os.path.isabs(f.path))
            self.assertEqual(f.source_folder, os.path.abspath(self.source))

    def test_missing_folder_is_skipped(self):
        with self.assertLogs("import_pipeline.scanner", level="WARNING") as logs:
            files = scanner.scan_source_folders(
                [os.path.join(self.root, "missing"), self.source]
            )
        self.assertEqual(len(files), 3)
        self.assertIn("Source folder not found", logs.output[0])

    def test_source_key_is_independent_of_trailing_separator(self):
        path = os.path.join(self.source, "Affidavit.docx")
        self.assertEqual(
            scanner.build_source_key(path, self.source + os.sep),
            scanner.build_source_key(path, self.source),
        )

    def test_extract_category(self):
        files = {f.source_key: f for f in scanner.scan_source_folders([self.source])}
        self.assertEqual(
            scanner.extract_category(files["Legal Templates/Rental/Rent Agreement.docx"]),
            ("Rental", "rental"),
        )
        # Deeper folders still belong to the top-level category.
        self.assertEqual(
            scanner.extract_category(
                files["Legal Templates/Rental/Sub Lease/Sub Lease Deed.DOCX"]
            ),
            ("Rental", "rental"),
        )
        self.assertEqual(
            scanner.extract_category(files["Legal Templates/Affidavit.docx"]),
            ("General", "general"),
        )

    def test_extract_category_falls_back_to_general_slug(self):
        source_file = SourceFile(
            path=os.path.join(self.source, "!!!", "Deed.docx"),
            source_folder=self.source,
            source_key="Legal Templates/!!!/Deed.docx",
        )
        self.assertEqual(scanner.extract_category(source_file), ("!!!", "general"))


class MetadataCsvTest(unittest.TestCase):

    def setUp(self):
        self.root = tempfile.mkdtemp()

    def tearDown(self):
        shutil.rmtree(self.root, ignore_errors=True)

    def _write_csv(self, content):
        path = os.path.join(self.root, "metadata.csv")
        with open(path, "w", encoding="utf-8-sig", newline="") as f:
            f.write(content)
        return path

    def test_load_metadata_csv(self):
        path = self._write_csv(
            "filename,name,description,categoryId,estimatedMinutes\n"
            "Rent Agreement.docx,Residential Rent Agreement,11 month lease,cat-rental,12\n"
            ",Ignored,,,\n"
            "Rental/Notice.docx,Eviction Notice,,,soon\n"
        )
        overrides = scanner.load_metadata_csv(path)

        self.assertEqual(set(overrides), {"Rent Agreement.docx", "Rental/Notice.docx"})
        rent = overrides["Rent Agreement.docx"]
        self.assertEqual(rent.name, "Residential Rent Agreement")
        self.assertEqual(rent.description, "11 month lease")
        self.assertEqual(rent.category_id, "cat-rental")
        self.assertEqual(rent.estimated_minutes, 12)
        notice = overrides["Rental/Notice.docx"]
        self.assertIsNone(notice.category_id)
        self.assertEqual(notice.estimated_minutes, 0)

    def test_missing_metadata_csv_raises(self):
        with self.assertRaises(FileNotFoundError):
            scanner.load_metadata_csv(os.path.join(self.root, "nope.csv"))

    def test_find_override_prefers_relative_path(self):
        path = self._write_csv(
            "filename,name\n"
            "Notice.docx,Generic Notice\n"
            "Rental/Notice.docx,Eviction Notice\n"
        )
        overrides = scanner.load_metadata_csv(path)
        source = os.path.join(self.root, "src")
        rental = SourceFile(
            path=os.path.join(source, "Rental", "Notice.docx"),
            source_folder=source,
            source_key="src/Rental/Notice.docx",
        )
        other = SourceFile(
            path=os.path.join(source, "Labour", "Notice.docx"),
            source_folder=source,
            source_key="src/Labour/Notice.docx",
        )
        self.assertEqual(scanner.find_override(rental, overrides).name, "Eviction Notice")
        self.assertEqual(scanner.find_override(other, overrides).name, "Generic Notice")
        self.assertIsNone(scanner.find_override(other, {}))


if __name__ == "__main__":
    unittest.main()
