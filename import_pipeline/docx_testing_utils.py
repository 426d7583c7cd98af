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


"""Builds small .docx fixtures for pipeline tests."""

import io
import os
from typing import List, Optional

from docx import Document


def build_docx_bytes(
    paragraphs: List[str],
    table_rows: Optional[List[List[str]]] = None,
    header: Optional[str] = None,
    footer: Optional[str] = None,
    split_runs: Optional[List[List[str]]] = None,
    first_page_header: Optional[str] = None,
    even_page_footer: Optional[str] = None,
) -> bytes:
    """
    Args:
        paragraphs: Body paragraphs, one run each.
        table_rows: Optional table appended after the paragraphs.
        header: Optional header paragraph text.
        footer: Optional footer paragraph text.
        split_runs: Paragraphs given as several runs, to mimic Word splitting
            a placeholder across formatting boundaries.
        first_page_header: Optional header shown only on the first page.
        even_page_footer: Optional footer shown only on even pages.
    """
    document = Document()
    for text in paragraphs:
        document.add_paragraph(text)
    for runs in split_runs or []:
        paragraph = document.add_paragraph()
        for run_text in runs:
            paragraph.add_run(run_text)
    if table_rows:
        table = document.add_table(rows=len(table_rows), cols=len(table_rows[0]))
        for r, row in enumerate(table_rows):
            for c, text in enumerate(row):
                table.cell(r, c).text = text
    section = document.sections[0]
    if header is not None:
        section.header.is_linked_to_previous = False
        section.header.paragraphs[0].text = header
    if footer is not None:
        section.footer.is_linked_to_previous = False
        section.footer.paragraphs[0].text = footer
    if first_page_header is not None:
        section.different_first_page_header_footer = True
        section.first_page_header.is_linked_to_previous = False
        section.first_page_header.paragraphs[0].text = first_page_header
    if even_page_footer is not None:
        document.settings.odd_and_even_pages_header_footer = True
        section.even_page_footer.is_linked_to_previous = False
        section.even_page_footer.paragraphs[0].text = even_page_footer
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def write_docx(path: str, paragraphs: List[str], **kwargs) -> str:
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "wb") as f:
        f.write(build_docx_bytes(paragraphs, **kwargs))
    return path
