from typing import Optional

from fastapi import APIRouter, Depends, Query

from coffeeshop.api.responses import envelope, pagination
from coffeeshop.core.database import get_uow
from coffeeshop.models.schemas import CancelRequest, OrderCreate, OrderStatus, StatusUpdate
from coffeeshop.repositories.base import UnitOfWork
from coffeeshop.services.order_service import OrderService

router = APIRouter()


@router.post("", status_code=201)
def create_order(order_data: OrderCreate, uow: UnitOfWork = Depends(get_uow)):
    """Create an order; items are priced from the current catalog"""
    order = OrderService(uow).create_order(order_data)
    return envelope(order, message="Order created successfully")


@router.get("/user/{user_id}")
def get_user_orders(
    user_id: int,
    status: Optional[OrderStatus] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    uow: UnitOfWork = Depends(get_uow),
):
    orders, total = OrderService(uow).list_user_orders(user_id, status, page, limit)
    return envelope(orders, pagination=pagination(page, limit, total, "totalOrders"))


@router.get("/user/{user_id}/summary")
def get_order_status_summary(user_id: int, uow: UnitOfWork = Depends(get_uow)):
    return envelope(OrderService(uow).status_summary(user_id))


@router.get("/user/{user_id}/recent")
def get_recent_orders(user_id: int, limit: int = Query(5, ge=1), uow: UnitOfWork = Depends(get_uow)):
    return envelope(OrderService(uow).recent_orders(user_id, limit))


@router.get("/user/{user_id}/statistics")
def get_order_statistics(user_id: int, uow: UnitOfWork = Depends(get_uow)):
    return envelope(OrderService(uow).statistics(user_id))


@router.get("/{order_id}")
def get_order(order_id: int, uow: UnitOfWork = Depends(get_uow)):
    return envelope(OrderService(uow).get_order(order_id))


@router.put("/{order_id}/status")
def update_order_status(order_id: int, status_data: StatusUpdate, uow: UnitOfWork = Depends(get_uow)):
    order = OrderService(uow).update_status(order_id, status_data.status, status_data.note)
    return envelope(order, message="Order status updated successfully")


@router.delete("/{order_id}")
def cancel_order(
    order_id: int,
    cancel_data: Optional[CancelRequest] = None,
    uow: UnitOfWork = Depends(get_uow),
):
    reason = cancel_data.reason if cancel_data else None
    order = OrderService(uow).cancel_order(order_id, reason)
    return envelope(order, message="Order cancelled successfully")
