import logging
from typing import List, Tuple

from coffeeshop.core.errors import ConflictError, NotFoundError
from coffeeshop.models.schemas import DashboardProfileUpdate, Product, User
from coffeeshop.repositories.base import UnitOfWork
from coffeeshop.services.order_service import OrderService, zero_status_summary
from coffeeshop.services.user_service import to_profile

logger = logging.getLogger(__name__)

DASHBOARD_RECENT_ORDERS = 3


def favorite_view(product: Product) -> dict:
    return {
        "id": product.id,
        "name": product.name,
        "image": product.image,
        "price": product.price,
        "discount": product.discount,
        "discountedPrice": product.discounted_price,
        "hasDiscount": product.has_discount,
        "averageRating": product.average_rating,
        "ratingCount": product.rating_count,
        "salesCount": product.sales_count,
    }


class DashboardService:
    """
    Composite per-user views: profile, order aggregates and favorites.
    """

    def __init__(self, uow: UnitOfWork):
        self.uow = uow
        self.orders = OrderService(uow)

    def _get_user(self, user_id: int) -> User:
        user = self.uow.users.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User")
        return user

    def _favorite_products(self, user: User) -> List[Product]:
        if not user.favorite_products:
            return []
        found = {
            p.id: p for p in self.uow.products.find({"id__in": user.favorite_products, "is_active": True})
        }
        # Keep the order in which they were favorited
        return [found[pid] for pid in user.favorite_products if pid in found]

    def _statistics(self, user: User) -> dict:
        stats = self.orders.statistics(user.id)
        stats["favoriteProductsCount"] = len(user.favorite_products)
        return stats

    def get_dashboard(self, user_id: int) -> dict:
        user = self._get_user(user_id)
        try:
            statistics = self._statistics(user)
            recent = self.orders.recent_orders(user.id, limit=DASHBOARD_RECENT_ORDERS)
            summary = self.orders.status_summary(user.id)
        except Exception as e:
            # Order aggregation failed: still serve the dashboard with zeroed numbers
            logger.warning(f"Order aggregation failed for user {user_id}, returning zero statistics: {str(e)}")
            self.uow.rollback()
            statistics = {
                "totalOrders": 0,
                "totalSpent": 0,
                "averageOrderValue": 0,
                "loyaltyPoints": user.loyalty_points,
                "favoriteProductsCount": len(user.favorite_products),
            }
            recent = []
            summary = zero_status_summary()

        return {
            "user": to_profile(user),
            "statistics": statistics,
            "recentOrders": recent,
            "orderStatusSummary": summary,
            "favoriteProducts": [favorite_view(p) for p in self._favorite_products(user)],
        }

    def get_profile(self, user_id: int):
        return to_profile(self._get_user(user_id))

    def update_profile(self, user_id: int, data: DashboardProfileUpdate):
        """Email, password and the order counters cannot be changed from here"""
        user = self._get_user(user_id)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        # Address and preferences are merged into the stored values field by field
        for field in ("address", "preferences"):
            if field in changes:
                changes[field] = getattr(user, field).model_copy(update=changes[field])
        if "username" in changes and self.uow.users.find_one(
            {"username__iexact": changes["username"], "id__ne": user_id}
        ):
            raise ConflictError("Username already taken")
        user = self.uow.users.update(user_id, changes)
        self.uow.commit()
        return to_profile(user)

    def get_statistics(self, user_id: int) -> dict:
        return self._statistics(self._get_user(user_id))

    def list_favorites(self, user_id: int, page: int = 1, limit: int = 10) -> Tuple[List[dict], int]:
        user = self._get_user(user_id)
        favorites = self._favorite_products(user)
        start = (page - 1) * limit
        return [favorite_view(p) for p in favorites[start:start + limit]], len(favorites)

    def add_favorite(self, user_id: int, product_id: int) -> int:
        user = self._get_user(user_id)
        product = self.uow.products.find_by_id(product_id)
        if product is None or not product.is_active:
            raise NotFoundError("Product")
        if product_id not in user.favorite_products:
            self.uow.users.update(user_id, {"favorite_products": user.favorite_products + [product_id]})
            self.uow.commit()
            return len(user.favorite_products) + 1
        return len(user.favorite_products)

    def remove_favorite(self, user_id: int, product_id: int) -> int:
        user = self._get_user(user_id)
        if product_id in user.favorite_products:
            remaining = [pid for pid in user.favorite_products if pid != product_id]
            self.uow.users.update(user_id, {"favorite_products": remaining})
            self.uow.commit()
            return len(remaining)
        return len(user.favorite_products)

    def is_favorite(self, user_id: int, product_id: int) -> bool:
        return product_id in self._get_user(user_id).favorite_products
