"""
Search index abstraction for the template catalog: Typesense and an in-memory
keyword scorer for tests and local runs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Protocol
from urllib.parse import urlparse

import typesense
from typesense import exceptions as typesense_exceptions

from shared.json_utils import convert_keys
from shared.types import Template

logger = logging.getLogger(__name__)

DEFAULT_COLLECTION = "templates"
QUERY_BY_FIELDS = "name,description,keywords"
DEFAULT_PROTOCOL = "https"
DEFAULT_PORT = 443

TEMPLATE_COLLECTION_FIELDS = [
    {"name": "name", "type": "string"},
    {"name": "description", "type": "string"},
    {"name": "categoryId", "type": "string", "facet": True},
    {"name": "categoryName", "type": "string", "facet": True},
    {"name": "keywords", "type": "string[]", "facet": True},
    {"name": "variableCount", "type": "int32"},
    {"name": "estimatedMinutes", "type": "int32"},
    {"name": "hasVariables", "type": "bool", "facet": True},
    {"name": "isActive", "type": "bool", "facet": True},
]


@dataclass
class SearchResult:
    hits: List[dict] = field(default_factory=list)
    total: int = 0


def to_search_document(template: Template) -> dict:
    """Flattens a template into the camelCase document stored in the index."""
    return convert_keys(
        {
            "id": template.id,
            "name": template.name,
            "slug": template.slug,
            "description": template.description,
            "category_id": template.category_id,
            "category_name": template.category_name,
            "keywords": list(template.keywords),
            "variable_count": len(template.variables),
            "estimated_minutes": template.estimated_minutes,
            "has_variables": bool(template.variables),
            "is_active": template.is_active,
            "usage_count": template.usage_count,
        },
        "snake_to_camel",
    )


def build_filter_by(category_id: Optional[str]) -> str:
    filters = ["isActive:=true"]
    if category_id:
        filters.append(f"categoryId:={category_id}")
    return " && ".join(filters)


def parse_typesense_node(
    raw_host: str,
    port: Optional[int] = None,
    protocol: Optional[str] = None,
) -> dict:
    """
    Accepts either a bare hostname or a full URL such as
    ``http://localhost:8108``. Explicit port/protocol settings win over
    the defaults but not over values spelled out in the URL.
    """
    value = (raw_host or "").strip()
    if not value:
        raise ValueError("Missing TYPESENSE_HOST")

    if value.startswith(("http://", "https://")):
        url = urlparse(value)
        url_protocol = "http" if url.scheme == "http" else "https"
        url_port = url.port or port or (80 if url_protocol == "http" else 443)
        if not url.hostname:
            raise ValueError("Invalid TYPESENSE_HOST")
        return {"host": url.hostname, "port": url_port, "protocol": url_protocol}

    return {
        "host": value,
        "port": port or DEFAULT_PORT,
        "protocol": protocol or DEFAULT_PROTOCOL,
    }


class SearchIndex(Protocol):
    """Operations the importer and API need from the search engine."""

    def ensure_collection(self) -> None:
        ...

    def upsert(self, template: Template) -> None:
        ...

    def upsert_many(self, templates: Iterable[Template]) -> int:
        ...

    def delete(self, template_id: str) -> None:
        ...

    def search(
        self,
        query: str,
        *,
        category_id: Optional[str] = None,
        page: int = 1,
        per_page: int = 20,
    ) -> SearchResult:
        ...


class InMemorySearchIndex:
    """Keyword-scoring index used in tests and with in-memory backends."""

    def __init__(self):
        self.documents: dict[str, dict] = {}
        self.collection_ready = False

    def ensure_collection(self) -> None:
        self.collection_ready = True

    def upsert(self, template: Template) -> None:
        self.documents[template.id] = to_search_document(template)

    def upsert_many(self, templates: Iterable[Template]) -> int:
        count = 0
        for template in templates:
            self.upsert(template)
            count += 1
        return count

    def delete(self, template_id: str) -> None:
        self.documents.pop(template_id, None)

    def search(
        self,
        query: str,
        *,
        category_id: Optional[str] = None,
        page: int = 1,
        per_page: int = 20,
    ) -> SearchResult:
        if not query.strip():
            return SearchResult()
        qs = query.lower().strip().split()

        def score_doc(doc: dict) -> float:
            name = doc["name"].lower()
            description = doc["description"].lower()
            keywords = " ".join(doc["keywords"]).lower()
            match = lambda s: sum(min(3, s.count(q)) for q in qs)
            matchu = lambda s: sum(int(s.count(q) > 0) for q in qs)
            score = 0.0
            score += 20.0 * matchu(name)
            score += 10.0 * matchu(keywords)
            score += 1.0 * match(description)
            return score

        scored: list[tuple[float, dict]] = []
        for doc in self.documents.values():
            if not doc["isActive"]:
                continue
            if category_id and doc["categoryId"] != category_id:
                continue
            score = score_doc(doc)
            if score > 0:
                scored.append((score, doc))
        scored.sort(key=lambda item: (-item[0], item[1]["name"]))
        offset = (page - 1) * per_page
        page_docs = [dict(doc) for _, doc in scored[offset : offset + per_page]]
        return SearchResult(hits=page_docs, total=len(scored))


class TypesenseSearchIndex:
    """Typesense-backed index. Documents are upserted by template id."""

    def __init__(
        self,
        *,
        host: str,
        api_key: str,
        port: Optional[int] = None,
        protocol: Optional[str] = None,
        collection: str = DEFAULT_COLLECTION,
        timeout_seconds: float = 10.0,
        client=None,
    ):
        if not api_key and client is None:
            raise ValueError("TYPESENSE_API_KEY is required for TypesenseSearchIndex")
        self.collection = collection
        if client is None:
            node = parse_typesense_node(host, port, protocol)
            client = typesense.Client(
                {
                    "nodes": [
                        {
                            "host": node["host"],
                            "port": str(node["port"]),
                            "protocol": node["protocol"],
                        }
                    ],
                    "api_key": api_key,
                    "connection_timeout_seconds": timeout_seconds,
                }
            )
        self.client = client

    def _documents(self):
        return self.client.collections[self.collection].documents

    def ensure_collection(self) -> None:
        try:
            self.client.collections[self.collection].retrieve()
        except typesense_exceptions.ObjectNotFound:
            logger.info("Creating Typesense collection: %s", self.collection)
            self.client.collections.create(
                {
                    "name": self.collection,
                    "fields": TEMPLATE_COLLECTION_FIELDS,
                    "default_sorting_field": "estimatedMinutes",
                }
            )

    def upsert(self, template: Template) -> None:
        self._documents().upsert(to_search_document(template))

    def upsert_many(self, templates: Iterable[Template]) -> int:
        documents = [to_search_document(t) for t in templates]
        if not documents:
            return 0
        results = self._documents().import_(documents, {"action": "upsert"})
        failures = [r for r in results if not r.get("success")]
        if failures:
            raise RuntimeError(
                f"Typesense rejected {len(failures)} of {len(documents)} documents: "
                f"{failures[0].get('error')}"
            )
        return len(documents)

    def delete(self, template_id: str) -> None:
        try:
            self._documents()[template_id].delete()
        except typesense_exceptions.ObjectNotFound:
            logger.info("Template %s was not indexed; nothing to delete", template_id)

    def search(
        self,
        query: str,
        *,
        category_id: Optional[str] = None,
        page: int = 1,
        per_page: int = 20,
    ) -> SearchResult:
        params = {
            "q": query,
            "query_by": QUERY_BY_FIELDS,
            "filter_by": build_filter_by(category_id),
            "page": page,
            "per_page": per_page,
        }
        response = self._documents().search(params)
        hits = [hit["document"] for hit in response.get("hits") or []]
        return SearchResult(hits=hits, total=response.get("found") or 0)
