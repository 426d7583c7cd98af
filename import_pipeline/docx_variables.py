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


"""Placeholder discovery and form-field typing for .docx templates."""

import io
import re
import zipfile
from typing import Iterable, Iterator, List

from docx import Document
from docx.opc.exceptions import PackageNotFoundError
from docx.text.paragraph import Paragraph

from shared.string_utils import humanize_variable_name
from shared.types import TemplateVariable, VariableType

# {{name}}, {name} and [NAME], matched left to right in document order.
PLACEHOLDER_PATTERN = re.compile(
    r"\{\{([^{}]+)\}\}|\{([A-Za-z][^{}]*)\}|\[([A-Z][^\[\]]*)\]"
)
MAX_VARIABLE_NAME_LENGTH = 100

# Checked in order; the first group with a matching keyword wins.
TYPE_KEYWORDS = (
    (VariableType.DATE, ("date", "_on", "_at", " on ", " at ")),
    (
        VariableType.CURRENCY,
        ("amount", "price", "rent", "salary", "fee", "cost", "payment"),
    ),
    (VariableType.PHONE, ("phone", "mobile", "contact")),
    (VariableType.EMAIL, ("email", "e-mail")),
    (
        VariableType.TEXT,
        ("address", "description", "details", "reason", "explanation"),
    ),
    (VariableType.NUMBER, ("number", "count", "quantity", "age", "years")),
)


class DocxParseError(Exception):
    """Raised when a file cannot be opened as a Word document."""


def _container_paragraphs(container) -> Iterator[Paragraph]:
    yield from container.paragraphs
    for table in container.tables:
        for row in table.rows:
            for cell in row.cells:
                yield from _container_paragraphs(cell)


def _header_footer_parts(section):
    return (
        section.header,
        section.footer,
        section.first_page_header,
        section.first_page_footer,
        section.even_page_header,
        section.even_page_footer,
    )


def iter_paragraphs(document) -> Iterator[Paragraph]:
    """
    Yields every paragraph of a python-docx Document: body, tables, and the
    default, first-page and even-page headers and footers of each section.
    """
    yield from _container_paragraphs(document)
    for section in document.sections:
        for part in _header_footer_parts(section):
            # A linked header/footer has no content of its own.
            if part.is_linked_to_previous:
                continue
            yield from _container_paragraphs(part)


def iter_document_text(document) -> Iterator[str]:
    for paragraph in iter_paragraphs(document):
        yield paragraph.text


def open_document(docx_bytes: bytes):
    """Raises DocxParseError if the bytes are not a readable Word document."""
    try:
        return Document(io.BytesIO(docx_bytes))
    except (PackageNotFoundError, zipfile.BadZipFile, KeyError, ValueError) as exc:
        raise DocxParseError(f"Not a readable .docx file: {exc}") from exc


def find_placeholders(texts: Iterable[str]) -> List[str]:
    names: List[str] = []
    seen = set()
    for text in texts:
        for match in PLACEHOLDER_PATTERN.finditer(text):
            raw = next(group for group in match.groups() if group is not None)
            name = raw.strip()
            if (
                not name
                or len(name) >= MAX_VARIABLE_NAME_LENGTH
                or not name[0].isalpha()
                or name in seen
            ):
                continue
            seen.add(name)
            names.append(name)
    return names


def extract_placeholders(docx_bytes: bytes) -> List[str]:
    """
    Extracts unique placeholder names from a .docx file.

    Args:
        docx_bytes (bytes): Raw contents of the .docx file.

    Returns:
        List[str]: Placeholder names in first-seen order.

    Raises:
        DocxParseError: If the bytes are not a readable Word document.
    """
    return find_placeholders(iter_document_text(open_document(docx_bytes)))


def infer_variable_type(name: str) -> VariableType:
    lower_name = name.lower()
    for variable_type, keywords in TYPE_KEYWORDS:
        if any(keyword in lower_name for keyword in keywords):
            return variable_type
    return VariableType.STRING


def parse_variables(names: Iterable[str]) -> List[TemplateVariable]:
    return [
        TemplateVariable(
            name=name,
            label=humanize_variable_name(name),
            type=infer_variable_type(name),
            required=True,
            order=index,
        )
        for index, name in enumerate(names, start=1)
    ]


def extract_variables(docx_bytes: bytes) -> List[TemplateVariable]:
    return parse_variables(extract_placeholders(docx_bytes))
