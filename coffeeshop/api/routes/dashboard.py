from fastapi import APIRouter, Depends, Query

from coffeeshop.api.responses import envelope, pagination
from coffeeshop.core.database import get_uow
from coffeeshop.models.schemas import DashboardProfileUpdate
from coffeeshop.repositories.base import UnitOfWork
from coffeeshop.services.dashboard_service import DashboardService

router = APIRouter()


@router.get("/{user_id}")
def get_dashboard(user_id: int, uow: UnitOfWork = Depends(get_uow)):
    """Profile, order statistics, recent orders, status summary and favorites in one call"""
    return envelope(DashboardService(uow).get_dashboard(user_id))


@router.get("/{user_id}/profile")
def get_profile(user_id: int, uow: UnitOfWork = Depends(get_uow)):
    return envelope(DashboardService(uow).get_profile(user_id))


@router.put("/{user_id}/profile")
def update_profile(user_id: int, profile_data: DashboardProfileUpdate, uow: UnitOfWork = Depends(get_uow)):
    user = DashboardService(uow).update_profile(user_id, profile_data)
    return envelope(user, message="Profile updated successfully")


@router.get("/{user_id}/statistics")
def get_statistics(user_id: int, uow: UnitOfWork = Depends(get_uow)):
    return envelope(DashboardService(uow).get_statistics(user_id))


@router.get("/{user_id}/favorites")
def list_favorites(
    user_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    uow: UnitOfWork = Depends(get_uow),
):
    favorites, total = DashboardService(uow).list_favorites(user_id, page, limit)
    return envelope(favorites, pagination=pagination(page, limit, total, "totalProducts"))


@router.post("/{user_id}/favorites/{product_id}")
def add_favorite(user_id: int, product_id: int, uow: UnitOfWork = Depends(get_uow)):
    count = DashboardService(uow).add_favorite(user_id, product_id)
    return envelope({"favoriteProductsCount": count}, message="Product added to favorites successfully")


@router.delete("/{user_id}/favorites/{product_id}")
def remove_favorite(user_id: int, product_id: int, uow: UnitOfWork = Depends(get_uow)):
    count = DashboardService(uow).remove_favorite(user_id, product_id)
    return envelope({"favoriteProductsCount": count}, message="Product removed from favorites successfully")


@router.get("/{user_id}/favorites/{product_id}/check")
def check_favorite(user_id: int, product_id: int, uow: UnitOfWork = Depends(get_uow)):
    return envelope({"isFavorite": DashboardService(uow).is_favorite(user_id, product_id)})
