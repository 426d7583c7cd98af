"""
Fills a .docx template with formatted variable values.

Values are formatted for Indian legal documents: DD/MM/YYYY dates, INR
amounts with lakh/crore grouping and +91 phone numbers.
"""

from __future__ import annotations

import io
import logging
import math
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Dict, Mapping, Optional, Sequence

from import_pipeline import docx_variables
from import_pipeline.docx_variables import PLACEHOLDER_PATTERN, DocxParseError
from shared.types import TemplateVariable, VariableType

logger = logging.getLogger(__name__)

RUPEE = "₹"
PHONE_COUNTRY_CODE = "+91"
MULTISELECT_SEPARATOR = ", "


class DocumentGenerationError(Exception):
    """Raised when a template cannot be loaded or filled."""


@dataclass
class GeneratedDocument:
    data: bytes
    variable_count: int
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


def _group_indian(digits: str) -> str:
    # 12345678 -> 1,23,45,678
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups + [tail])


def format_indian_number(value: float, max_fraction_digits: int = 2) -> str:
    """1234567.891 -> "12,34,567.89". Trailing fraction zeros are dropped."""
    amount = Decimal(str(value)).quantize(
        Decimal(1).scaleb(-max_fraction_digits), rounding=ROUND_HALF_UP
    )
    sign = "-" if amount < 0 else ""
    integer_part, _, fraction = f"{abs(amount):f}".partition(".")
    fraction = fraction.rstrip("0")
    grouped = _group_indian(integer_part)
    return f"{sign}{grouped}.{fraction}" if fraction else f"{sign}{grouped}"


def format_indian_currency(value: float) -> str:
    """100000 -> "₹1,00,000". Rounded to whole rupees."""
    formatted = format_indian_number(value, max_fraction_digits=0)
    if formatted.startswith("-"):
        return f"-{RUPEE}{formatted[1:]}"
    return f"{RUPEE}{formatted}"


def format_indian_date(value: date) -> str:
    """DD/MM/YYYY. Aware datetimes are converted to UTC first."""
    if isinstance(value, datetime) and value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime("%d/%m/%Y")


def format_phone(value: str) -> str:
    digits = re.sub(r"\D", "", value)
    if len(digits) != 10:
        return value
    return f"{PHONE_COUNTRY_CODE} {digits[:5]} {digits[5:]}"


def _parse_date(value: Any) -> Optional[date]:
    if isinstance(value, (date, datetime)):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    return None


def _parse_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return None
    try:
        number = float(value.strip() if isinstance(value, str) else value)
        Decimal(str(number)).quantize(Decimal("0.01"))
    except (ValueError, OverflowError, InvalidOperation):
        return None
    return number if math.isfinite(number) else None


def format_value(variable_type: VariableType, value: Any) -> str:
    """Formats one value for its variable type; unparseable values pass through."""
    if variable_type == VariableType.DATE:
        parsed = _parse_date(value)
        if parsed is not None:
            return format_indian_date(parsed)
    elif variable_type == VariableType.CURRENCY:
        number = _parse_number(value)
        if number is not None:
            return format_indian_currency(number)
    elif variable_type == VariableType.NUMBER:
        number = _parse_number(value)
        if number is not None:
            return format_indian_number(number)
    elif variable_type == VariableType.PHONE and isinstance(value, str):
        return format_phone(value)
    elif variable_type == VariableType.MULTISELECT and isinstance(value, (list, tuple)):
        return MULTISELECT_SEPARATOR.join(str(item) for item in value)
    return str(value)


def format_variables(
    schema: Sequence[TemplateVariable], values: Mapping[str, Any]
) -> Dict[str, str]:
    """Formats the supplied values of schema variables. Others are skipped."""
    formatted: Dict[str, str] = {}
    for variable in schema:
        value = values.get(variable.name)
        if value is None:
            continue
        formatted[variable.name] = format_value(variable.type, value)
    return formatted


def _fill_text(text: str, values: Mapping[str, str]) -> str:
    def substitute(match: re.Match) -> str:
        raw = next(group for group in match.groups() if group is not None)
        return values.get(raw.strip(), match.group(0))

    return PLACEHOLDER_PATTERN.sub(substitute, text)


def _fill_paragraph(paragraph, values: Mapping[str, str]) -> None:
    text = paragraph.text
    filled = _fill_text(text, values)
    if filled == text:
        return
    runs = paragraph.runs
    if not runs:
        return
    run_texts = [_fill_text(run.text, values) for run in runs]
    if "".join(run_texts) == filled:
        # Every placeholder sits inside one run; formatting is kept.
        for run, run_text in zip(runs, run_texts):
            if run.text != run_text:
                run.text = run_text
        return
    # A placeholder spans runs: the paragraph takes the first run's format.
    runs[0].text = filled
    for run in runs[1:]:
        run.text = ""


def generate_document(
    template_bytes: bytes,
    values: Mapping[str, Any],
    schema: Sequence[TemplateVariable],
) -> GeneratedDocument:
    """
    Fills every placeholder of a .docx template.

    Args:
        template_bytes (bytes): The stored template file.
        values (Mapping[str, Any]): Validated values keyed by variable name.
        schema (Sequence[TemplateVariable]): The template's variables, used
            to pick a format for each value.

    Returns:
        GeneratedDocument: The filled .docx bytes.

    Raises:
        DocumentGenerationError: If the template cannot be read or written.
    """
    formatted = format_variables(schema, values)
    try:
        document = docx_variables.open_document(template_bytes)
    except DocxParseError as exc:
        raise DocumentGenerationError("Failed to load template") from exc

    try:
        for paragraph in docx_variables.iter_paragraphs(document):
            _fill_paragraph(paragraph, formatted)
        buffer = io.BytesIO()
        document.save(buffer)
    except Exception as exc:
        logger.exception("Document generation failed")
        raise DocumentGenerationError("Document generation failed") from exc

    return GeneratedDocument(data=buffer.getvalue(), variable_count=len(formatted))
