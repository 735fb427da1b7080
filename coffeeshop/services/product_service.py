import logging
from typing import List, Optional, Tuple

from pydantic.alias_generators import to_snake

from coffeeshop.core.errors import NotFoundError, ValidationError
from coffeeshop.models.schemas import Product, ProductCreate, ProductUpdate, Rating, RatingCreate
from coffeeshop.repositories.base import UnitOfWork

logger = logging.getLogger(__name__)

# Stored fields that cannot be used as a sort key
UNSORTABLE_FIELDS = {"ratings"}


def resolve_sort_field(sort_by: str, model) -> str:
    """Accept ``salesCount`` or ``sales_count``; reject derived and unknown fields"""
    field = to_snake(sort_by)
    if field not in model.model_fields or field in UNSORTABLE_FIELDS:
        raise ValidationError(f"Invalid sort field: {sort_by}")
    return field


def resolve_sort_order(sort_order: str) -> bool:
    """True for descending"""
    order = (sort_order or "").lower()
    if order not in ("asc", "desc"):
        raise ValidationError("Sort order must be 'asc' or 'desc'")
    return order == "desc"


class ProductService:
    """Catalog reads and writes over the product repository"""

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    def list_products(
        self,
        category: Optional[str] = None,
        has_discount: Optional[bool] = None,
        min_rating: Optional[float] = None,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> Tuple[List[Product], int]:
        """
        Active products matching the filters.

        Returns the requested page (or everything when no ``limit`` is given)
        and the number of matching products.
        """
        filters = {"is_active": True}
        if category:
            filters["category"] = category
        if has_discount is True:
            filters["discount__gt"] = 0
        elif has_discount is False:
            filters["discount__lte"] = 0
        if min_rating is not None:
            filters["average_rating__gte"] = min_rating

        field = resolve_sort_field(sort_by, Product)
        descending = resolve_sort_order(sort_order)
        ordering = (f"-{field}" if descending else field,)

        offset = (page - 1) * limit if page and limit else 0
        products = self.uow.products.find(filters, ordering=ordering, offset=offset, limit=limit)
        total = self.uow.products.count(filters) if limit else len(products)
        return products, total

    def get_product(self, product_id: int) -> Product:
        product = self.uow.products.find_by_id(product_id)
        if product is None or not product.is_active:
            raise NotFoundError("Product", product_id)
        return product

    def create_product(self, data: ProductCreate) -> Product:
        product = self.uow.products.create(data.model_dump())
        self.uow.commit()
        logger.info(f"Created product {product.id} ({product.name})")
        return product

    def replace_product(self, product_id: int, data: ProductCreate) -> Product:
        """PUT semantics: every editable field is overwritten"""
        self.get_product(product_id)
        product = self.uow.products.update(product_id, data.model_dump())
        self.uow.commit()
        return product

    def patch_product(self, product_id: int, data: ProductUpdate) -> Product:
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        self.get_product(product_id)
        product = self.uow.products.update(product_id, changes)
        self.uow.commit()
        return product

    def delete_product(self, product_id: int) -> Product:
        """Soft delete: the record stays but is hidden from every read"""
        self.get_product(product_id)
        product = self.uow.products.update(product_id, {"is_active": False})
        self.uow.commit()
        logger.info(f"Deactivated product {product_id}")
        return product

    def set_discount(self, product_id: int, discount: float) -> Product:
        self.get_product(product_id)
        product = self.uow.products.update(product_id, {"discount": discount})
        self.uow.commit()
        return product

    def rate_product(self, product_id: int, data: RatingCreate, token_user_id: Optional[int] = None) -> Product:
        """
        Record a 1-5 rating. A user who already rated the product replaces
        their previous rating instead of adding a second one.
        """
        if data.rating is None or not 1 <= data.rating <= 5:
            raise ValidationError("Rating must be between 1 and 5")
        user_id = token_user_id if token_user_id is not None else data.user_id
        if user_id is None:
            raise ValidationError("User ID is required")

        product = self.get_product(product_id)
        ratings = list(product.ratings)
        total_rating = product.total_rating
        rating_count = product.rating_count

        entry = Rating(user_id=user_id, rating=data.rating, comment=data.comment)
        previous = next((i for i, r in enumerate(ratings) if r.user_id == user_id), None)
        if previous is not None:
            total_rating = total_rating - ratings[previous].rating + data.rating
            ratings[previous] = entry
        else:
            total_rating += data.rating
            rating_count += 1
            ratings.append(entry)

        product = self.uow.products.update(product_id, {
            "ratings": ratings,
            "total_rating": total_rating,
            "rating_count": rating_count,
            "average_rating": total_rating / rating_count if rating_count else 0,
        })
        self.uow.commit()
        return product

    def get_ratings(self, product_id: int) -> dict:
        product = self.get_product(product_id)
        return {
            "averageRating": product.average_rating,
            "ratingCount": product.rating_count,
            "ratings": product.ratings,
        }

    def increment_sales(self, product_id: int, quantity: int = 1) -> Product:
        product = self.get_product(product_id)
        product = self.uow.products.update(product_id, {"sales_count": product.sales_count + quantity})
        self.uow.commit()
        return product

    def discounted(self, limit: Optional[int] = None) -> List[Product]:
        return self.uow.products.find(
            {"is_active": True, "discount__gt": 0}, ordering=("-discount",), limit=limit
        )

    def top_rated(self, limit: int = 10) -> List[Product]:
        return self.uow.products.find(
            {"is_active": True, "average_rating__gt": 0},
            ordering=("-average_rating", "-rating_count"),
            limit=limit,
        )

    def best_selling(self, limit: int = 10) -> List[Product]:
        return self.uow.products.find(
            {"is_active": True, "sales_count__gt": 0}, ordering=("-sales_count",), limit=limit
        )

    def by_category(self, category: str) -> List[Product]:
        return self.uow.products.find({"is_active": True, "category": category}, ordering=("-created_at",))
