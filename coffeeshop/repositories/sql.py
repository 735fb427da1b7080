import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from fastapi.encoders import jsonable_encoder
from pydantic import BaseModel
from sqlalchemy import String, func, inspect
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from coffeeshop.core.errors import ConflictError, PersistenceError, ValidationError
from coffeeshop.models import database as db
from coffeeshop.repositories.base import (
    CategoryRepository,
    ContentRepository,
    OrderRepository,
    ProductRepository,
    UnitOfWork,
    UserRepository,
    parse_lookup,
    parse_ordering,
)

logger = logging.getLogger(__name__)


def _storable(value):
    """Convert enums and nested models into what the columns accept"""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (BaseModel, list, dict)):
        return jsonable_encoder(value)
    return value


def _as_utc(value):
    # SQLite hands DateTime values back without their offset
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class SqlRepository:
    """Generic SQLAlchemy implementation of the repository interface"""

    orm_model = None

    def __init__(self, session: Session):
        self.session = session

    def _column(self, field: str):
        self.check_field(field)
        if field not in self.orm_model.__table__.c:
            raise ValidationError(f"Unknown field: {field}")
        return getattr(self.orm_model, field)

    def _to_record(self, row):
        values = {attr.key: _as_utc(getattr(row, attr.key)) for attr in inspect(row).mapper.column_attrs}
        return self.model.model_validate(values)

    def _flush(self) -> None:
        try:
            self.session.flush()
        except IntegrityError as e:
            self.session.rollback()
            raise ConflictError(f"Duplicate {self.orm_model.__tablename__} record") from e
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Error writing {self.orm_model.__tablename__}: {str(e)}")
            raise PersistenceError("Database write error") from e

    def _apply_filters(self, query, filters: Optional[Dict[str, Any]]):
        for key, value in (filters or {}).items():
            field, lookup = parse_lookup(key)
            column = self._column(field)
            value = _storable(value) if not isinstance(value, (list, tuple, set)) else [_storable(v) for v in value]
            if lookup == "exact":
                condition = column.is_(None) if value is None else column == value
            elif lookup == "ne":
                condition = column.isnot(None) if value is None else column != value
            elif lookup == "gt":
                condition = column > value
            elif lookup == "gte":
                condition = column >= value
            elif lookup == "lt":
                condition = column < value
            elif lookup == "lte":
                condition = column <= value
            elif lookup == "in":
                condition = column.in_(list(value))
            else:
                condition = func.lower(column) == str(value).lower()
            query = query.filter(condition)
        return query

    def find(
        self,
        filters: Optional[Dict[str, Any]] = None,
        ordering: Sequence[str] = (),
        offset: int = 0,
        limit: Optional[int] = None,
        ignore_case: bool = False,
    ) -> List:
        query = self._apply_filters(self.session.query(self.orm_model), filters)
        for field, descending in parse_ordering(ordering):
            column = self._column(field)
            if ignore_case and isinstance(self.orm_model.__table__.c[field].type, String):
                column = func.lower(column)
            query = query.order_by(column.desc() if descending else column.asc())
        query = query.order_by(self.orm_model.id.asc())
        if offset:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)
        return [self._to_record(row) for row in query.all()]

    def count(self, filters: Optional[Dict[str, Any]] = None) -> int:
        return self._apply_filters(self.session.query(self.orm_model), filters).count()

    def find_by_id(self, record_id: int):
        row = self.session.get(self.orm_model, record_id)
        return self._to_record(row) if row is not None else None

    def create(self, data: Dict[str, Any]):
        row = self.orm_model(**{key: _storable(value) for key, value in data.items()})
        self.session.add(row)
        self._flush()
        return self._to_record(row)

    def update(self, record_id: int, data: Dict[str, Any]):
        row = self.session.get(self.orm_model, record_id)
        if row is None:
            return None
        for key, value in data.items():
            self._column(key)
            setattr(row, key, _storable(value))
        self._flush()
        return self._to_record(row)

    def delete(self, record_id: int) -> bool:
        row = self.session.get(self.orm_model, record_id)
        if row is None:
            return False
        self.session.delete(row)
        self._flush()
        return True


class SqlProductRepository(SqlRepository, ProductRepository):
    orm_model = db.Product


class SqlCategoryRepository(SqlRepository, CategoryRepository):
    orm_model = db.Category


class SqlUserRepository(SqlRepository, UserRepository):
    orm_model = db.User


class SqlOrderRepository(SqlRepository, OrderRepository):
    orm_model = db.Order

    def summarize_by_status(self, user_id: int) -> Dict[str, Tuple[int, float]]:
        rows = (
            self.session.query(
                db.Order.status,
                func.count(db.Order.id),
                func.coalesce(func.sum(db.Order.total_amount), 0),
            )
            .filter(db.Order.user_id == user_id)
            .group_by(db.Order.status)
            .all()
        )
        return {status: (count, float(total)) for status, count, total in rows}

    def totals(self, user_id: int) -> Tuple[int, float]:
        count, total = (
            self.session.query(func.count(db.Order.id), func.coalesce(func.sum(db.Order.total_amount), 0))
            .filter(db.Order.user_id == user_id)
            .one()
        )
        return count, float(total)


class SqlContentRepository(ContentRepository):
    def __init__(self, session: Session):
        self.session = session

    def get(self, key: str) -> str:
        row = self.session.get(db.SiteContent, key)
        return row.content if row is not None else ""

    def set(self, key: str, content: str) -> str:
        row = self.session.get(db.SiteContent, key)
        if row is None:
            row = db.SiteContent(key=key, content=content)
            self.session.add(row)
        else:
            row.content = content
        self.session.flush()
        return row.content


class SqlUnitOfWork(UnitOfWork):
    """One SQLAlchemy session per unit of work, committed once"""

    def __init__(self, session_factory: sessionmaker):
        self.session = session_factory()
        self.products = SqlProductRepository(self.session)
        self.categories = SqlCategoryRepository(self.session)
        self.users = SqlUserRepository(self.session)
        self.orders = SqlOrderRepository(self.session)
        self.content = SqlContentRepository(self.session)

    def commit(self) -> None:
        try:
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            raise ConflictError("Duplicate record") from e
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Commit failed: {str(e)}")
            raise PersistenceError("Database write error") from e

    def rollback(self) -> None:
        self.session.rollback()

    def close(self) -> None:
        self.session.close()
