import logging
import random
from collections import Counter
from typing import Dict, List, Optional, Tuple

from coffeeshop.core.errors import ConflictError, NotFoundError, ValidationError
from coffeeshop.models.schemas import (
    Order,
    OrderCreate,
    OrderItem,
    OrderStatus,
    StatusEntry,
    discounted_price,
    utcnow,
)
from coffeeshop.repositories.base import UnitOfWork

logger = logging.getLogger(__name__)

# Allowed status transitions; delivered and cancelled are terminal
TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.COMPLETED, OrderStatus.CANCELLED},
    OrderStatus.COMPLETED: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}

POINTS_PER_CURRENCY = 1000


def generate_order_number() -> str:
    """Display number: YYYYMMDD plus a random 3-digit suffix (may collide)"""
    return f"{utcnow():%Y%m%d}{random.randint(0, 999):03d}"


def loyalty_points_for(total_amount: float) -> int:
    return int(total_amount // POINTS_PER_CURRENCY)


def zero_status_summary() -> Dict[str, dict]:
    return {status.value: {"count": 0, "totalAmount": 0} for status in OrderStatus}


def recent_order_view(order: Order) -> dict:
    return {
        "orderNumber": order.order_number,
        "status": order.status.value,
        "createdAt": order.created_at,
        "items": [{"productName": item.product_name, "quantity": item.quantity} for item in order.items],
    }


class OrderService:
    """
    Order creation, status transitions and per-user order aggregates.
    """

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    def create_order(self, data: OrderCreate) -> Order:
        """
        Create an order priced from the current catalog.

        Every item is resolved before anything is written; the order, the
        product sales counters and the user's totals are then committed
        together, so a failure leaves no partial state behind.
        """
        if not data.items:
            raise ValidationError("Order must contain at least one item")

        user = self.uow.users.find_by_id(data.user_id)
        if user is None:
            raise NotFoundError("User", data.user_id)

        # Step 1: resolve products and price the lines
        items: List[OrderItem] = []
        products = {}
        sold = Counter()
        for item_request in data.items:
            product = products.get(item_request.product_id) or self.uow.products.find_by_id(item_request.product_id)
            if product is None or not product.is_active:
                raise NotFoundError("Product", item_request.product_id)
            products[product.id] = product
            sold[product.id] += item_request.quantity

            unit_price = discounted_price(product.price, product.discount)
            items.append(OrderItem(
                product_id=product.id,
                product_name=product.name,
                price=product.price,
                discount=product.discount,
                quantity=item_request.quantity,
                total_price=unit_price * item_request.quantity,
            ))
        total_amount = sum(item.total_price for item in items)

        # Step 2: write order, sales counters and user totals in one unit
        order = self.uow.orders.create({
            "order_number": generate_order_number(),
            "user_id": user.id,
            "items": items,
            "total_amount": total_amount,
            "status": OrderStatus.PENDING,
            "status_history": [StatusEntry(status=OrderStatus.PENDING, note="Order created")],
            "delivery_address": data.delivery_address,
            "payment_method": data.payment_method,
            "notes": data.notes,
        })
        for product_id, quantity in sold.items():
            self.uow.products.update(product_id, {"sales_count": products[product_id].sales_count + quantity})
        points = loyalty_points_for(total_amount)
        self.uow.users.update(user.id, {
            "total_spent": user.total_spent + total_amount,
            "total_orders": user.total_orders + 1,
            "loyalty_points": user.loyalty_points + points,
        })
        self.uow.commit()

        logger.info(f"Order {order.id} ({order.order_number}) created for user {user.id}: "
                    f"total {total_amount}, +{points} loyalty points")
        return order

    def get_order(self, order_id: int) -> Order:
        order = self.uow.orders.find_by_id(order_id)
        if order is None:
            raise NotFoundError("Order")
        return order

    def _transition(self, order: Order, new_status: OrderStatus, note: Optional[str]) -> Order:
        history = list(order.status_history)
        history.append(StatusEntry(status=new_status, note=note))
        updated = self.uow.orders.update(order.id, {"status": new_status, "status_history": history})
        self.uow.commit()
        logger.info(f"Order {order.id} status changed: {order.status.value} -> {new_status.value}")
        return updated

    def update_status(self, order_id: int, new_status: OrderStatus, note: Optional[str] = None) -> Order:
        order = self.get_order(order_id)
        if new_status not in TRANSITIONS[order.status]:
            raise ConflictError(f"Cannot change order status from {order.status.value} to {new_status.value}")
        return self._transition(order, new_status, note)

    def cancel_order(self, order_id: int, reason: Optional[str] = None) -> Order:
        order = self.get_order(order_id)
        if OrderStatus.CANCELLED not in TRANSITIONS[order.status]:
            raise ConflictError("Order cannot be cancelled")
        return self._transition(order, OrderStatus.CANCELLED, reason or "Cancelled by user")

    def list_user_orders(
        self, user_id: int, status: Optional[OrderStatus] = None, page: int = 1, limit: int = 10
    ) -> Tuple[List[Order], int]:
        filters = {"user_id": user_id}
        if status is not None:
            filters["status"] = status
        total = self.uow.orders.count(filters)
        orders = self.uow.orders.find(filters, ordering=("-id",), offset=(page - 1) * limit, limit=limit)
        return orders, total

    def recent_orders(self, user_id: int, limit: int = 5) -> List[dict]:
        orders = self.uow.orders.find({"user_id": user_id}, ordering=("-id",), limit=limit)
        return [recent_order_view(order) for order in orders]

    def status_summary(self, user_id: int) -> Dict[str, dict]:
        """Per-status count and amount; every status is present even with no orders"""
        summary = zero_status_summary()
        for status, (count, total) in self.uow.orders.summarize_by_status(user_id).items():
            summary[status] = {"count": count, "totalAmount": total}
        return summary

    def statistics(self, user_id: int) -> dict:
        user = self.uow.users.find_by_id(user_id)
        count, total = self.uow.orders.totals(user_id)
        return {
            "totalOrders": count,
            "totalSpent": total,
            "averageOrderValue": total / count if count else 0,
            "loyaltyPoints": user.loyalty_points if user else 0,
        }
