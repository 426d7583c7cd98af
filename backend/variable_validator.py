"""
Validation of user-supplied values against a template's variable schema.
"""

from __future__ import annotations

import html
import math
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from shared.types import TemplateVariable, VariableType

REQUIRED = "REQUIRED"
INVALID_TYPE = "INVALID_TYPE"
MIN_LENGTH = "MIN_LENGTH"
MAX_LENGTH = "MAX_LENGTH"
PATTERN = "PATTERN"
INVALID_DATE = "INVALID_DATE"
INVALID_NUMBER = "INVALID_NUMBER"
INVALID_OPTION = "INVALID_OPTION"
INVALID_PHONE = "INVALID_PHONE"
INVALID_EMAIL = "INVALID_EMAIL"

# Indian mobile numbers: ten digits, starting 6-9.
PHONE_PATTERN = re.compile(r"^[6-9][0-9]{9}$")
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


@dataclass(frozen=True)
class FieldError:
    field: str
    code: str
    message: str

    def as_dict(self) -> dict:
        return {"field": self.field, "code": self.code, "message": self.message}


@dataclass
class ValidationResult:
    valid: bool
    errors: List[FieldError] = field(default_factory=list)
    # Cleaned values for every variable that passed and was supplied.
    sanitized: Dict[str, Any] = field(default_factory=dict)


class _FieldValidator:
    """Collects the errors for one variable."""

    def __init__(self, variable: TemplateVariable, escape_html: bool):
        self.variable = variable
        self.escape_html = escape_html
        self.errors: List[FieldError] = []

    def error(self, code: str, message: str) -> None:
        self.errors.append(FieldError(self.variable.name, code, message))

    def missing(self) -> None:
        if self.variable.required:
            self.error(REQUIRED, "Value is required")

    def required_string(self, raw: Any) -> Optional[str]:
        if raw is None:
            self.missing()
            return None
        if not isinstance(raw, str):
            self.error(INVALID_TYPE, "Value must be a string")
            return None
        trimmed = raw.strip()
        if not trimmed:
            self.missing()
            return None
        return trimmed

    def string_value(self, raw: Any) -> Any:
        trimmed = self.required_string(raw)
        if trimmed is None:
            return None
        variable = self.variable
        if variable.min_length > 0 and len(trimmed) < variable.min_length:
            self.error(MIN_LENGTH, "Value is too short")
        if variable.max_length > 0 and len(trimmed) > variable.max_length:
            self.error(MAX_LENGTH, "Value is too long")
        pattern = variable.pattern.strip()
        if pattern:
            try:
                if not re.search(pattern, trimmed):
                    self.error(PATTERN, "Value does not match pattern")
            except re.error:
                self.error(PATTERN, "Invalid pattern")
        if self.errors:
            return None
        return html.escape(trimmed) if self.escape_html else trimmed

    def date_value(self, raw: Any) -> Any:
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            self.missing()
            return None
        if isinstance(raw, (date, datetime)):
            return raw
        if isinstance(raw, str):
            try:
                return datetime.fromisoformat(raw.strip())
            except ValueError:
                self.error(INVALID_DATE, "Invalid date")
                return None
        if isinstance(raw, (int, float)) and not isinstance(raw, bool):
            # Epoch milliseconds, as browsers send them.
            try:
                return datetime.fromtimestamp(raw / 1000, tz=timezone.utc)
            except (OverflowError, OSError, ValueError):
                self.error(INVALID_DATE, "Invalid date")
                return None
        self.error(INVALID_TYPE, "Value must be a date")
        return None

    def number_value(self, raw: Any) -> Any:
        if raw is None or (isinstance(raw, str) and not raw.strip()):
            self.missing()
            return None
        if isinstance(raw, bool) or not isinstance(raw, (str, int, float)):
            self.error(INVALID_TYPE, "Value must be a number")
            return None
        try:
            value = float(raw.strip() if isinstance(raw, str) else raw)
        except (ValueError, OverflowError):
            value = math.nan
        if not math.isfinite(value):
            self.error(INVALID_NUMBER, "Invalid number")
            return None
        return value

    def _allowed(self) -> set:
        return {option.value for option in self.variable.options}

    def select_value(self, raw: Any) -> Any:
        trimmed = self.required_string(raw)
        if trimmed is None:
            return None
        if trimmed not in self._allowed():
            self.error(INVALID_OPTION, "Invalid option")
            return None
        return trimmed

    def multiselect_value(self, raw: Any) -> Any:
        if raw is None:
            self.missing()
            return None
        if not isinstance(raw, (list, tuple)):
            self.error(INVALID_TYPE, "Value must be an array")
            return None
        if not raw:
            self.missing()
            return []
        allowed = self._allowed()
        values = []
        for item in raw:
            if not isinstance(item, str):
                self.error(INVALID_TYPE, "Value must be a string")
                return None
            trimmed = item.strip()
            if not trimmed or trimmed not in allowed:
                self.error(INVALID_OPTION, "Invalid option")
                return None
            values.append(trimmed)
        return values

    def phone_value(self, raw: Any) -> Any:
        trimmed = self.required_string(raw)
        if trimmed is None:
            return None
        if not PHONE_PATTERN.match(trimmed):
            self.error(INVALID_PHONE, "Invalid phone number")
            return None
        return trimmed

    def email_value(self, raw: Any) -> Any:
        trimmed = self.required_string(raw)
        if trimmed is None:
            return None
        if not EMAIL_PATTERN.match(trimmed):
            self.error(INVALID_EMAIL, "Invalid email")
            return None
        return trimmed

    def check(self, raw: Any) -> Any:
        handlers: Dict[VariableType, Callable[[Any], Any]] = {
            VariableType.STRING: self.string_value,
            VariableType.TEXT: self.string_value,
            VariableType.DATE: self.date_value,
            VariableType.NUMBER: self.number_value,
            VariableType.CURRENCY: self.number_value,
            VariableType.SELECT: self.select_value,
            VariableType.MULTISELECT: self.multiselect_value,
            VariableType.PHONE: self.phone_value,
            VariableType.EMAIL: self.email_value,
        }
        return handlers[self.variable.type](raw)


def validate_variables(
    schema: Sequence[TemplateVariable],
    values: Mapping[str, Any],
    *,
    escape_html: bool = True,
) -> ValidationResult:
    """
    Checks submitted values against a template's variables.

    Args:
        schema (Sequence[TemplateVariable]): The template's variables.
        values (Mapping[str, Any]): Raw values keyed by variable name. Keys
            that are not in the schema are dropped.
        escape_html (bool): HTML-escape accepted STRING and TEXT values. Turn
            off when the values go straight into a .docx.

    Returns:
        ValidationResult: All errors, plus the trimmed and parsed values.
    """
    errors: List[FieldError] = []
    sanitized: Dict[str, Any] = {}
    for variable in schema:
        validator = _FieldValidator(variable, escape_html)
        value = validator.check(values.get(variable.name))
        errors.extend(validator.errors)
        if not validator.errors and value is not None:
            sanitized[variable.name] = value
    return ValidationResult(valid=not errors, errors=errors, sanitized=sanitized)
