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


from enum import StrEnum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import List, Optional


DOCX_CONTENT_TYPE = (
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
)


class VariableType(StrEnum):
    STRING = "STRING"
    TEXT = "TEXT"
    DATE = "DATE"
    NUMBER = "NUMBER"
    CURRENCY = "CURRENCY"
    SELECT = "SELECT"
    MULTISELECT = "MULTISELECT"
    PHONE = "PHONE"
    EMAIL = "EMAIL"


@dataclass(frozen=True)
class SelectOption:
    value: str
    label: str


@dataclass
class TemplateVariable:
    """A fillable placeholder found in a template document."""

    name: str
    label: str
    type: VariableType = VariableType.STRING
    required: bool = True
    order: int = 0
    # 0 means no limit.
    min_length: int = 0
    max_length: int = 0
    pattern: str = ""
    # Allowed values for SELECT and MULTISELECT.
    options: List[SelectOption] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "name": self.name,
            "label": self.label,
            "type": self.type.value,
            "required": self.required,
            "order": self.order,
            "minLength": self.min_length,
            "maxLength": self.max_length,
            "pattern": self.pattern,
            "options": [
                {"value": option.value, "label": option.label}
                for option in self.options
            ],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TemplateVariable":
        options = []
        for option in data.get("options") or []:
            if isinstance(option, dict):
                value = str(option["value"])
                options.append(SelectOption(value, str(option.get("label") or value)))
            else:
                options.append(SelectOption(str(option), str(option)))
        return cls(
            name=data["name"],
            label=data.get("label") or data["name"],
            type=VariableType(data.get("type") or VariableType.STRING),
            required=bool(data.get("required", True)),
            order=int(data.get("order") or 0),
            min_length=int(data.get("minLength") or 0),
            max_length=int(data.get("maxLength") or 0),
            pattern=data.get("pattern") or "",
            options=options,
        )


@dataclass
class Category:
    id: str
    name: str
    slug: str
    icon: str = "file-text"
    description: str = ""
    sort_order: int = 0
    template_count: int = 0
    is_active: bool = True


@dataclass
class Template:
    """Catalog entry for one legal document template."""

    id: str
    category_id: str
    category_name: str
    name: str
    slug: str
    description: str
    keywords: List[str]
    template_file_path: str
    variables: List[TemplateVariable]
    estimated_minutes: int
    is_active: bool = True
    usage_count: int = 0
    source_key: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class SourceFile:
    """A .docx file found under one of the import source folders."""

    path: str
    source_folder: str
    # "<source folder name>/<posix path relative to it>", stable across machines.
    source_key: str


@dataclass(frozen=True)
class MetadataOverride:
    """Curated catalog fields for one file, loaded from a metadata CSV."""

    filename: str
    name: str
    description: str = ""
    category_id: Optional[str] = None
    estimated_minutes: int = 0
