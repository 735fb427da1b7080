import logging
from typing import List, Optional, Tuple

from coffeeshop.core.errors import ConflictError, NotFoundError
from coffeeshop.models.schemas import Category, CategoryCreate, CategoryUpdate, Product
from coffeeshop.repositories.base import UnitOfWork
from coffeeshop.services.product_service import resolve_sort_field, resolve_sort_order

logger = logging.getLogger(__name__)


class CategoryService:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    def list_categories(self) -> List[Category]:
        """Active categories by sort order; equal sort orders keep insertion order"""
        return self.uow.categories.find({"is_active": True}, ordering=("sort_order",))

    def get_category(self, category_id: int) -> Category:
        category = self.uow.categories.find_by_id(category_id)
        if category is None or not category.is_active:
            raise NotFoundError("Category", category_id)
        return category

    def get_by_slug(self, slug: str) -> Category:
        category = self.uow.categories.find_one({"slug": slug, "is_active": True})
        if category is None:
            raise NotFoundError("Category")
        return category

    def get_products(
        self,
        slug: str,
        page: int = 1,
        limit: int = 10,
        sort: str = "name",
        order: str = "asc",
    ) -> Tuple[Category, List[Product], int]:
        """One page of a category's active products; string fields sort case-insensitively"""
        category = self.get_by_slug(slug)
        field = resolve_sort_field(sort, Product)
        ordering = (f"-{field}" if resolve_sort_order(order) else field,)
        filters = {"category": category.slug, "is_active": True}

        total = self.uow.products.count(filters)
        products = self.uow.products.find(
            filters, ordering=ordering, offset=(page - 1) * limit, limit=limit, ignore_case=True
        )
        return category, products, total

    def _ensure_slug_free(self, slug: str, category_id: Optional[int] = None) -> None:
        filters = {"slug": slug}
        if category_id is not None:
            filters["id__ne"] = category_id
        if self.uow.categories.find_one(filters) is not None:
            raise ConflictError("Category with this slug already exists")

    def create_category(self, data: CategoryCreate) -> Category:
        self._ensure_slug_free(data.slug)
        category = self.uow.categories.create(data.model_dump())
        self.uow.commit()
        logger.info(f"Created category {category.slug}")
        return category

    def replace_category(self, category_id: int, data: CategoryCreate) -> Category:
        self.get_category(category_id)
        self._ensure_slug_free(data.slug, category_id)
        category = self.uow.categories.update(category_id, data.model_dump())
        self.uow.commit()
        return category

    def patch_category(self, category_id: int, data: CategoryUpdate) -> Category:
        self.get_category(category_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if "slug" in changes:
            self._ensure_slug_free(changes["slug"], category_id)
        category = self.uow.categories.update(category_id, changes)
        self.uow.commit()
        return category

    def delete_category(self, category_id: int) -> Category:
        self.get_category(category_id)
        category = self.uow.categories.update(category_id, {"is_active": False})
        self.uow.commit()
        logger.info(f"Deactivated category {category_id}")
        return category
