"""
Database abstraction for the template catalog: Postgres (Supabase) and an
in-memory test implementation.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timezone
from typing import Dict, Iterator, List, Optional, Protocol, Tuple

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Integer,
    String,
    Text,
    create_engine,
    func,
    select,
)
from sqlalchemy.dialects.postgresql import ARRAY, JSONB
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from shared.types import Category, Template, TemplateVariable


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; stored values are always UTC.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class DbClient(Protocol):
    """Interface for catalog database access."""

    def get_category(self, category_id: str) -> Optional[Category]:
        ...

    def get_category_by_slug(self, slug: str) -> Optional[Category]:
        ...

    def count_categories(self) -> int:
        ...

    def upsert_category(self, category: Category) -> Category:
        ...

    def list_categories(self, active_only: bool = True) -> List[Category]:
        ...

    def upsert_template(self, template: Template) -> Template:
        ...

    def get_template(self, template_id: str) -> Optional[Template]:
        ...

    def list_templates(
        self,
        *,
        category_id: Optional[str] = None,
        active_only: bool = True,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[Template], int]:
        ...

    def iter_templates(self, batch_size: int = 100) -> Iterator[List[Template]]:
        ...

    def count_templates(
        self, category_id: Optional[str] = None, active_only: bool = True
    ) -> int:
        ...

    def refresh_category_count(self, category_id: str) -> int:
        ...


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.categories: Dict[str, Category] = {}
        self.templates: Dict[str, Template] = {}

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        self.categories.clear()
        self.templates.clear()

    def get_category(self, category_id: str) -> Optional[Category]:
        return self.categories.get(category_id)

    def get_category_by_slug(self, slug: str) -> Optional[Category]:
        for category in self.categories.values():
            if category.slug == slug:
                return category
        return None

    def count_categories(self) -> int:
        return len(self.categories)

    def upsert_category(self, category: Category) -> Category:
        self.categories[category.id] = replace(category)
        return self.categories[category.id]

    def list_categories(self, active_only: bool = True) -> List[Category]:
        items = [
            c for c in self.categories.values() if c.is_active or not active_only
        ]
        return sorted(items, key=lambda c: (c.sort_order, c.name))

    def upsert_template(self, template: Template) -> Template:
        existing = self.templates.get(template.id)
        stored = replace(template, updated_at=_utcnow())
        if existing:
            stored.created_at = existing.created_at
            stored.usage_count = existing.usage_count
        self.templates[template.id] = stored
        return stored

    def get_template(self, template_id: str) -> Optional[Template]:
        return self.templates.get(template_id)

    def _filtered(
        self, category_id: Optional[str], active_only: bool
    ) -> List[Template]:
        items = [
            t
            for t in self.templates.values()
            if (t.is_active or not active_only)
            and (category_id is None or t.category_id == category_id)
        ]
        return sorted(items, key=lambda t: (t.name, t.id))

    def list_templates(
        self,
        *,
        category_id: Optional[str] = None,
        active_only: bool = True,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[Template], int]:
        items = self._filtered(category_id, active_only)
        return items[offset : offset + limit], len(items)

    def iter_templates(self, batch_size: int = 100) -> Iterator[List[Template]]:
        items = sorted(self.templates.values(), key=lambda t: t.id)
        for start in range(0, len(items), batch_size):
            yield items[start : start + batch_size]

    def count_templates(
        self, category_id: Optional[str] = None, active_only: bool = True
    ) -> int:
        return len(self._filtered(category_id, active_only))

    def refresh_category_count(self, category_id: str) -> int:
        category = self.categories.get(category_id)
        if not category:
            raise KeyError(category_id)
        category.template_count = self.count_templates(category_id)
        return category.template_count


class PostgresDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL (e.g., Supabase
    Postgres or SQLite for tests).
    """

    def __init__(self, database_url: str, create_schema: bool = True):
        if not database_url:
            raise ValueError("DATABASE_URL is required for PostgresDbClient")
        self.engine = create_engine(
            database_url,
            future=True,
            pool_pre_ping=True,
            pool_recycle=1800,
        )
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )
        if create_schema:
            Base.metadata.create_all(self.engine)

    def _to_category(self, row: "CategoryRow") -> Category:
        return Category(
            id=row.id,
            name=row.name,
            slug=row.slug,
            icon=row.icon,
            description=row.description or "",
            sort_order=row.sort_order,
            template_count=row.template_count,
            is_active=row.is_active,
        )

    def _to_template(self, row: "TemplateRow", category_name: str) -> Template:
        return Template(
            id=row.id,
            category_id=row.category_id,
            category_name=category_name,
            name=row.name,
            slug=row.slug,
            description=row.description or "",
            keywords=list(row.keywords or []),
            template_file_path=row.template_file_path,
            variables=[TemplateVariable.from_dict(v) for v in row.variables or []],
            estimated_minutes=row.estimated_minutes,
            is_active=row.is_active,
            usage_count=row.usage_count,
            source_key=row.source_key,
            created_at=_as_utc(row.created_at),
            updated_at=_as_utc(row.updated_at),
        )

    def _template_query(self):
        return select(TemplateRow, CategoryRow.name).join(
            CategoryRow, CategoryRow.id == TemplateRow.category_id, isouter=True
        )

    def get_category(self, category_id: str) -> Optional[Category]:
        with self.Session() as session:
            row = session.get(CategoryRow, category_id)
            return self._to_category(row) if row else None

    def get_category_by_slug(self, slug: str) -> Optional[Category]:
        with self.Session() as session:
            row = session.execute(
                select(CategoryRow).where(CategoryRow.slug == slug).limit(1)
            ).scalar_one_or_none()
            return self._to_category(row) if row else None

    def count_categories(self) -> int:
        with self.Session() as session:
            return session.execute(select(func.count(CategoryRow.id))).scalar_one()

    def upsert_category(self, category: Category) -> Category:
        now = _utcnow()
        with self.Session() as session:
            row = session.get(CategoryRow, category.id)
            if row:
                row.name = category.name
                row.slug = category.slug
                row.icon = category.icon
                row.description = category.description
                row.sort_order = category.sort_order
                row.template_count = category.template_count
                row.is_active = category.is_active
                row.updated_at = now
            else:
                row = CategoryRow(
                    id=category.id,
                    name=category.name,
                    slug=category.slug,
                    icon=category.icon,
                    description=category.description,
                    sort_order=category.sort_order,
                    template_count=category.template_count,
                    is_active=category.is_active,
                    created_at=now,
                    updated_at=now,
                )
                session.add(row)
            session.commit()
            return self._to_category(row)

    def list_categories(self, active_only: bool = True) -> List[Category]:
        with self.Session() as session:
            stmt = select(CategoryRow).order_by(
                CategoryRow.sort_order.asc(), CategoryRow.name.asc()
            )
            if active_only:
                stmt = stmt.where(CategoryRow.is_active.is_(True))
            return [self._to_category(row) for row in session.execute(stmt).scalars()]

    def upsert_template(self, template: Template) -> Template:
        now = _utcnow()
        variables = [v.as_dict() for v in template.variables]
        with self.Session() as session:
            row = session.get(TemplateRow, template.id)
            if row:
                # created_at and usage_count belong to the first import.
                row.category_id = template.category_id
                row.name = template.name
                row.slug = template.slug
                row.description = template.description
                row.keywords = list(template.keywords)
                row.template_file_path = template.template_file_path
                row.variables = variables
                row.estimated_minutes = template.estimated_minutes
                row.is_active = template.is_active
                row.source_key = template.source_key
                row.updated_at = now
            else:
                row = TemplateRow(
                    id=template.id,
                    category_id=template.category_id,
                    name=template.name,
                    slug=template.slug,
                    description=template.description,
                    keywords=list(template.keywords),
                    template_file_path=template.template_file_path,
                    variables=variables,
                    estimated_minutes=template.estimated_minutes,
                    is_active=template.is_active,
                    usage_count=template.usage_count,
                    source_key=template.source_key,
                    created_at=template.created_at or now,
                    updated_at=now,
                )
                session.add(row)
            session.commit()
            return self._to_template(row, template.category_name)

    def get_template(self, template_id: str) -> Optional[Template]:
        with self.Session() as session:
            result = session.execute(
                self._template_query().where(TemplateRow.id == template_id)
            ).first()
            if not result:
                return None
            row, category_name = result
            return self._to_template(row, category_name or "")

    def _template_filters(self, stmt, category_id: Optional[str], active_only: bool):
        if category_id:
            stmt = stmt.where(TemplateRow.category_id == category_id)
        if active_only:
            stmt = stmt.where(TemplateRow.is_active.is_(True))
        return stmt

    def list_templates(
        self,
        *,
        category_id: Optional[str] = None,
        active_only: bool = True,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[Template], int]:
        total = self.count_templates(category_id, active_only)
        with self.Session() as session:
            stmt = self._template_filters(
                self._template_query(), category_id, active_only
            )
            stmt = (
                stmt.order_by(TemplateRow.name.asc(), TemplateRow.id.asc())
                .offset(offset)
                .limit(limit)
            )
            rows = session.execute(stmt).all()
            return [self._to_template(row, name or "") for row, name in rows], total

    def iter_templates(self, batch_size: int = 100) -> Iterator[List[Template]]:
        last_id = ""
        while True:
            with self.Session() as session:
                stmt = (
                    self._template_query()
                    .where(TemplateRow.id > last_id)
                    .order_by(TemplateRow.id.asc())
                    .limit(batch_size)
                )
                rows = session.execute(stmt).all()
            if not rows:
                return
            batch = [self._to_template(row, name or "") for row, name in rows]
            last_id = batch[-1].id
            yield batch

    def count_templates(
        self, category_id: Optional[str] = None, active_only: bool = True
    ) -> int:
        with self.Session() as session:
            stmt = self._template_filters(
                select(func.count(TemplateRow.id)), category_id, active_only
            )
            return session.execute(stmt).scalar_one()

    def refresh_category_count(self, category_id: str) -> int:
        count = self.count_templates(category_id)
        with self.Session() as session:
            row = session.get(CategoryRow, category_id)
            if not row:
                raise KeyError(category_id)
            row.template_count = count
            row.updated_at = _utcnow()
            session.commit()
        return count


# Supabase declares keywords as text[] and variables as jsonb.
KeywordsType = JSON().with_variant(ARRAY(String), "postgresql")
VariablesType = JSON().with_variant(JSONB(), "postgresql")

Base = declarative_base()


class CategoryRow(Base):
    __tablename__ = "categories"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    slug = Column(String, nullable=False, unique=True, index=True)
    icon = Column(String, nullable=False, default="file-text")
    description = Column(Text, nullable=True)
    sort_order = Column(Integer, nullable=False, default=0)
    template_count = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)


class TemplateRow(Base):
    __tablename__ = "templates"

    id = Column(String, primary_key=True)
    category_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    slug = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    keywords = Column(KeywordsType, nullable=False, default=list)
    template_file_path = Column(String, nullable=False)
    variables = Column(VariablesType, nullable=False, default=list)
    estimated_minutes = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    usage_count = Column(Integer, nullable=False, default=0)
    source_key = Column(String, nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)
