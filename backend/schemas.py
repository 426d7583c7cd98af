"""
Pydantic schemas for the catalog API.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Serializes snake_case fields as camelCase, the shape clients expect."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HealthResponse(BaseModel):
    status: Literal["ok"]


class CategoryOut(CamelModel):
    id: str
    name: str
    slug: str
    icon: str
    description: str
    sort_order: int
    template_count: int
    is_active: bool


class CategoryListResponse(BaseModel):
    data: List[CategoryOut]


class SelectOptionOut(BaseModel):
    value: str
    label: str


class TemplateVariableOut(CamelModel):
    name: str
    label: str
    type: str
    required: bool
    order: int
    min_length: int = 0
    max_length: int = 0
    pattern: str = ""
    options: List[SelectOptionOut] = Field(default_factory=list)


class TemplateSummaryOut(CamelModel):
    id: str
    category_id: str
    category_name: str
    name: str
    slug: str
    description: str
    keywords: List[str] = Field(default_factory=list)
    estimated_minutes: int
    is_active: bool = True
    usage_count: int = 0


class TemplateOut(TemplateSummaryOut):
    variables: List[TemplateVariableOut]


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int


class TemplateListResponse(BaseModel):
    data: List[TemplateSummaryOut]
    pagination: Pagination


class TemplateResponse(BaseModel):
    data: TemplateOut


class DownloadUrlResponse(CamelModel):
    url: str
    expires_in: int
    path: Optional[str] = None


class GenerateDocumentRequest(BaseModel):
    variables: Dict[str, Any] = Field(default_factory=dict)
