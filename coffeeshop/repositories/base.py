"""
Repository interface shared by the SQL and JSON-file backends.

Filters use Django-style lookups: ``{"category": "coffee"}`` is an exact
match, ``{"discount__gt": 0}`` a comparison. Supported suffixes are ``ne``,
``gt``, ``gte``, ``lt``, ``lte``, ``in`` and ``iexact``. Ordering uses field
names with an optional ``-`` prefix for descending order.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, Iterable, List, Optional, Sequence, Tuple, Type, TypeVar

from pydantic import BaseModel

from coffeeshop.core.errors import ValidationError
from coffeeshop.models.schemas import Category, Order, Product, User

T = TypeVar("T", bound=BaseModel)

LOOKUPS = {"exact", "ne", "gt", "gte", "lt", "lte", "in", "iexact"}


def parse_lookup(key: str) -> Tuple[str, str]:
    """Split ``"discount__gt"`` into ``("discount", "gt")``"""
    field, sep, lookup = key.rpartition("__")
    if sep and lookup in LOOKUPS:
        return field, lookup
    return key, "exact"


def parse_ordering(ordering: Iterable[str]) -> List[Tuple[str, bool]]:
    """Turn ``["-sales_count", "id"]`` into ``[("sales_count", True), ("id", False)]``"""
    return [(o[1:], True) if o.startswith("-") else (o, False) for o in ordering]


class Repository(ABC, Generic[T]):
    """CRUD access to one entity type"""

    model: Type[T]

    def check_field(self, field: str) -> None:
        if field not in self.model.model_fields:
            raise ValidationError(f"Unknown field: {field}")

    @abstractmethod
    def find(
        self,
        filters: Optional[Dict[str, Any]] = None,
        ordering: Sequence[str] = (),
        offset: int = 0,
        limit: Optional[int] = None,
        ignore_case: bool = False,
    ) -> List[T]:
        """Return records matching ``filters``; ``ignore_case`` lower-cases string sort keys"""

    @abstractmethod
    def count(self, filters: Optional[Dict[str, Any]] = None) -> int:
        pass

    @abstractmethod
    def find_by_id(self, record_id: int) -> Optional[T]:
        pass

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> T:
        pass

    @abstractmethod
    def update(self, record_id: int, data: Dict[str, Any]) -> Optional[T]:
        """Merge ``data`` into the record; returns None when it does not exist"""

    @abstractmethod
    def delete(self, record_id: int) -> bool:
        pass

    def find_one(self, filters: Dict[str, Any]) -> Optional[T]:
        results = self.find(filters, ordering=("id",), limit=1)
        return results[0] if results else None


class ProductRepository(Repository[Product]):
    model = Product


class CategoryRepository(Repository[Category]):
    model = Category


class UserRepository(Repository[User]):
    model = User


class OrderRepository(Repository[Order]):
    model = Order

    @abstractmethod
    def summarize_by_status(self, user_id: int) -> Dict[str, Tuple[int, float]]:
        """Map each status present in the user's orders to ``(count, total_amount)``"""

    @abstractmethod
    def totals(self, user_id: int) -> Tuple[int, float]:
        """Number of orders and summed total amount for a user"""


class ContentRepository(ABC):
    """Key/value access to editable site texts"""

    @abstractmethod
    def get(self, key: str) -> str:
        pass

    @abstractmethod
    def set(self, key: str, content: str) -> str:
        pass


class UnitOfWork(ABC):
    """
    Groups the repositories of one request. Nothing written through them is
    persisted until ``commit``; leaving the context with an exception rolls
    the pending changes back.
    """

    products: ProductRepository
    categories: CategoryRepository
    users: UserRepository
    orders: OrderRepository
    content: ContentRepository

    def __enter__(self) -> "UnitOfWork":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is not None:
            self.rollback()
        self.close()

    @abstractmethod
    def commit(self) -> None:
        pass

    @abstractmethod
    def rollback(self) -> None:
        pass

    def close(self) -> None:
        pass
