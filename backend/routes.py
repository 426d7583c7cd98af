"""
HTTP routes for the template catalog API.
"""

from __future__ import annotations

import logging
import math
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from backend.db import DbClient
from backend.dependencies import get_db_client, get_search_index, get_storage_client
from backend.document_generator import generate_document
from backend.errors import not_found, validation_error
from backend.schemas import (
    CategoryListResponse,
    CategoryOut,
    DownloadUrlResponse,
    GenerateDocumentRequest,
    HealthResponse,
    Pagination,
    TemplateListResponse,
    TemplateOut,
    TemplateResponse,
    TemplateSummaryOut,
    TemplateVariableOut,
)
from backend.search import SearchIndex
from backend.storage import StorageClient
from backend.variable_validator import validate_variables
from shared.types import DOCX_CONTENT_TYPE, Category, Template

logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20
MAX_LIMIT = 100


def _category_out(category: Category) -> CategoryOut:
    return CategoryOut(
        id=category.id,
        name=category.name,
        slug=category.slug,
        icon=category.icon,
        description=category.description,
        sort_order=category.sort_order,
        template_count=category.template_count,
        is_active=category.is_active,
    )


def _summary_fields(template: Template) -> dict:
    return dict(
        id=template.id,
        category_id=template.category_id,
        category_name=template.category_name,
        name=template.name,
        slug=template.slug,
        description=template.description,
        keywords=list(template.keywords),
        estimated_minutes=template.estimated_minutes,
        is_active=template.is_active,
        usage_count=template.usage_count,
    )


def _pagination(page: int, limit: int, total: int) -> Pagination:
    total_pages = 0 if total == 0 else math.ceil(total / limit)
    return Pagination(page=page, limit=limit, total=total, total_pages=total_pages)


def _active_template(db: DbClient, template_id: str) -> Template:
    template = db.get_template(template_id)
    if not template or not template.is_active:
        raise not_found("Template not found")
    return template


@router.get("/health", response_model=HealthResponse)
def health():
    return HealthResponse(status="ok")


@router.get("/categories", response_model=CategoryListResponse)
def list_categories(db: DbClient = Depends(get_db_client)):
    categories = db.list_categories(active_only=True)
    return CategoryListResponse(data=[_category_out(c) for c in categories])


@router.get("/templates", response_model=TemplateListResponse)
def list_templates(
    category_id: Optional[str] = Query(None, alias="categoryId", min_length=1),
    search: Optional[str] = Query(None, min_length=1),
    page: int = Query(DEFAULT_PAGE, ge=1),
    limit: int = Query(DEFAULT_LIMIT, ge=1, le=MAX_LIMIT),
    db: DbClient = Depends(get_db_client),
    index: SearchIndex = Depends(get_search_index),
):
    """
    Lists active templates. With ``search`` the search index ranks results;
    otherwise the database pages through them by name.
    """
    if search:
        result = index.search(
            search, category_id=category_id, page=page, per_page=limit
        )
        data = [TemplateSummaryOut.model_validate(hit) for hit in result.hits]
        return TemplateListResponse(
            data=data, pagination=_pagination(page, limit, result.total)
        )

    templates, total = db.list_templates(
        category_id=category_id,
        active_only=True,
        limit=limit,
        offset=(page - 1) * limit,
    )
    data = [TemplateSummaryOut(**_summary_fields(t)) for t in templates]
    return TemplateListResponse(data=data, pagination=_pagination(page, limit, total))


@router.get("/templates/{template_id}", response_model=TemplateResponse)
def get_template(template_id: str, db: DbClient = Depends(get_db_client)):
    template = _active_template(db, template_id)
    variables = [
        TemplateVariableOut.model_validate(v.as_dict())
        for v in sorted(template.variables, key=lambda v: v.order)
    ]
    return TemplateResponse(
        data=TemplateOut(**_summary_fields(template), variables=variables)
    )


@router.get(
    "/templates/{template_id}/download-url", response_model=DownloadUrlResponse
)
def template_download_url(
    template_id: str,
    expires_in: int = Query(3600, alias="expiresIn", ge=60, le=86400),
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
):
    template = _active_template(db, template_id)
    url = storage.presign_get(template.template_file_path, expires_in=expires_in)
    return DownloadUrlResponse(
        url=url, expires_in=expires_in, path=template.template_file_path
    )


@router.post("/templates/{template_id}/generate")
def generate_template_document(
    template_id: str,
    request: GenerateDocumentRequest,
    db: DbClient = Depends(get_db_client),
    storage: StorageClient = Depends(get_storage_client),
):
    """Validates the submitted values and returns the filled .docx."""
    template = _active_template(db, template_id)
    result = validate_variables(
        template.variables, request.variables, escape_html=False
    )
    if not result.valid:
        raise validation_error(
            "Invalid variables", details=[e.as_dict() for e in result.errors]
        )

    try:
        template_bytes = storage.get_bytes(template.template_file_path)
    except FileNotFoundError:
        raise not_found("Template file not found")
    generated = generate_document(template_bytes, result.sanitized, template.variables)
    logger.info(
        "Generated %s with %d variables", template.id, generated.variable_count
    )
    filename = f"{template.slug or template.id}.docx"
    return Response(
        content=generated.data,
        media_type=DOCX_CONTENT_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
