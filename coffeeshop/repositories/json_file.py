"""
JSON-file persistence used when no database is reachable.

``db.json`` holds the ``products``, ``categories`` and ``orders`` arrays plus
the ``aboutUs`` / ``contactUs`` texts; ``users.json`` holds the ``users``
array. Each document also keeps ``lastIds``, the highest id handed out per
array, so ids of deleted records are never reused. A unit of work loads both documents into memory and writes back the
ones it changed on commit.
"""
import json
import logging
import os
import tempfile
import threading
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from coffeeshop.core.errors import PersistenceError
from coffeeshop.models.schemas import utcnow
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


def empty_data_document() -> Dict[str, Any]:
    return {"products": [], "categories": [], "orders": [], "aboutUs": "", "contactUs": "", "lastIds": {}}


def empty_users_document() -> Dict[str, Any]:
    return {"users": [], "lastIds": {}}


class JsonFileStore:
    """Reads and atomically rewrites the two JSON documents"""

    def __init__(self, data_file: Path, users_file: Path):
        self.data_file = Path(data_file)
        self.users_file = Path(users_file)
        self._lock = threading.Lock()

    def load(self) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        with self._lock:
            data = self._read(self.data_file, empty_data_document)
            users = self._read(self.users_file, empty_users_document)
        for key, default in empty_data_document().items():
            data.setdefault(key, default)
        for key, default in empty_users_document().items():
            users.setdefault(key, default)
        return data, users

    def save(self, data: Optional[Dict[str, Any]] = None, users: Optional[Dict[str, Any]] = None) -> None:
        with self._lock:
            if data is not None:
                self._write(self.data_file, data)
            if users is not None:
                self._write(self.users_file, users)

    def _read(self, path: Path, default: Callable[[], Dict[str, Any]]) -> Dict[str, Any]:
        if not path.exists():
            return default()
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Error reading {path}: {str(e)}")
            raise PersistenceError("Database read error") from e

    def _write(self, path: Path, document: Dict[str, Any]) -> None:
        """Write to a temp file then rename over the target (atomic on POSIX)"""
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}_", suffix=".tmp")
        except OSError as e:
            logger.error(f"Error writing {path}: {str(e)}")
            raise PersistenceError("Database write error") from e
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2, ensure_ascii=False)
                f.write("\n")
            os.replace(temp_path, path)
        except OSError as e:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            logger.error(f"Error writing {path}: {str(e)}")
            raise PersistenceError("Database write error") from e


def _plain(value):
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _matches(actual, lookup: str, expected) -> bool:
    actual = _plain(actual)
    if lookup == "exact":
        return actual == _plain(expected)
    if lookup == "ne":
        return actual != _plain(expected)
    if lookup == "in":
        return actual in {_plain(v) for v in expected}
    if lookup == "iexact":
        return actual is not None and str(actual).lower() == str(expected).lower()
    if actual is None:
        return False
    if lookup == "gt":
        return actual > expected
    if lookup == "gte":
        return actual >= expected
    if lookup == "lt":
        return actual < expected
    return actual <= expected


class JsonRepository:
    """Generic repository over one array of camelCase records"""

    def __init__(
        self,
        rows: List[Dict[str, Any]],
        mark_dirty: Callable[[], None],
        last_ids: Dict[str, int],
        name: str,
    ):
        self._rows = rows
        self._mark_dirty = mark_dirty
        self._last_ids = last_ids
        self._name = name

    def _dump(self, record) -> Dict[str, Any]:
        return record.model_dump(mode="json", by_alias=True, exclude=set(self.model.model_computed_fields))

    def _index_of(self, record_id: int) -> Optional[int]:
        for index, row in enumerate(self._rows):
            if row.get("id") == record_id:
                return index
        return None

    def _select(self, filters: Optional[Dict[str, Any]]) -> List:
        parsed = []
        for key, expected in (filters or {}).items():
            field, lookup = parse_lookup(key)
            self.check_field(field)
            parsed.append((field, lookup, expected))
        records = [self.model.model_validate(row) for row in self._rows]
        return [
            record for record in records
            if all(_matches(getattr(record, field), lookup, expected) for field, lookup, expected in parsed)
        ]

    def find(
        self,
        filters: Optional[Dict[str, Any]] = None,
        ordering: Sequence[str] = (),
        offset: int = 0,
        limit: Optional[int] = None,
        ignore_case: bool = False,
    ) -> List:
        records = sorted(self._select(filters), key=lambda r: r.id)
        # Stable sorts applied last key first give a multi-key ordering
        for field, descending in reversed(parse_ordering(ordering)):
            self.check_field(field)

            def sort_key(record, field=field, descending=descending):
                value = _plain(getattr(record, field))
                if ignore_case and isinstance(value, str):
                    value = value.lower()
                # Missing values sort last in both directions
                return (value is not None, value) if descending else (value is None, value)

            records.sort(key=sort_key, reverse=descending)
        end = None if limit is None else offset + limit
        return records[offset:end]

    def count(self, filters: Optional[Dict[str, Any]] = None) -> int:
        return len(self._select(filters))

    def find_by_id(self, record_id: int):
        index = self._index_of(record_id)
        return self.model.model_validate(self._rows[index]) if index is not None else None

    def create(self, data: Dict[str, Any]):
        next_id = max([self._last_ids.get(self._name, 0)] + [row.get("id", 0) for row in self._rows]) + 1
        self._last_ids[self._name] = next_id
        record = self.model.model_validate({**data, "id": next_id})
        self._rows.append(self._dump(record))
        self._mark_dirty()
        return record

    def update(self, record_id: int, data: Dict[str, Any]):
        index = self._index_of(record_id)
        if index is None:
            return None
        for key in data:
            self.check_field(key)
        changes = dict(data)
        if "updated_at" in self.model.model_fields:
            changes.setdefault("updated_at", utcnow())
        current = self.model.model_validate(self._rows[index])
        record = self.model.model_validate({**current.model_dump(), **changes})
        self._rows[index] = self._dump(record)
        self._mark_dirty()
        return record

    def delete(self, record_id: int) -> bool:
        index = self._index_of(record_id)
        if index is None:
            return False
        del self._rows[index]
        self._mark_dirty()
        return True


class JsonProductRepository(JsonRepository, ProductRepository):
    pass


class JsonCategoryRepository(JsonRepository, CategoryRepository):
    pass


class JsonUserRepository(JsonRepository, UserRepository):
    pass


class JsonOrderRepository(JsonRepository, OrderRepository):
    def summarize_by_status(self, user_id: int) -> Dict[str, Tuple[int, float]]:
        summary: Dict[str, Tuple[int, float]] = {}
        for order in self._select({"user_id": user_id}):
            count, total = summary.get(order.status.value, (0, 0.0))
            summary[order.status.value] = (count + 1, total + order.total_amount)
        return summary

    def totals(self, user_id: int) -> Tuple[int, float]:
        orders = self._select({"user_id": user_id})
        return len(orders), float(sum(order.total_amount for order in orders))


class JsonContentRepository(ContentRepository):
    def __init__(self, document: Dict[str, Any], mark_dirty: Callable[[], None]):
        self._document = document
        self._mark_dirty = mark_dirty

    def get(self, key: str) -> str:
        return self._document.get(key) or ""

    def set(self, key: str, content: str) -> str:
        self._document[key] = content
        self._mark_dirty()
        return content


class JsonUnitOfWork(UnitOfWork):
    """Works on an in-memory snapshot of the JSON documents"""

    def __init__(self, store: JsonFileStore):
        self.store = store
        self._bind(*store.load())

    def _bind(self, data: Dict[str, Any], users: Dict[str, Any]) -> None:
        self._data = data
        self._users = users
        self._data_dirty = False
        self._users_dirty = False
        self.products = JsonProductRepository(data["products"], self._touch_data, data["lastIds"], "products")
        self.categories = JsonCategoryRepository(data["categories"], self._touch_data, data["lastIds"], "categories")
        self.orders = JsonOrderRepository(data["orders"], self._touch_data, data["lastIds"], "orders")
        self.content = JsonContentRepository(data, self._touch_data)
        self.users = JsonUserRepository(users["users"], self._touch_users, users["lastIds"], "users")

    def _touch_data(self) -> None:
        self._data_dirty = True

    def _touch_users(self) -> None:
        self._users_dirty = True

    def commit(self) -> None:
        if not (self._data_dirty or self._users_dirty):
            return
        self.store.save(
            data=self._data if self._data_dirty else None,
            users=self._users if self._users_dirty else None,
        )
        self._data_dirty = False
        self._users_dirty = False

    def rollback(self) -> None:
        if self._data_dirty or self._users_dirty:
            self._bind(*self.store.load())
