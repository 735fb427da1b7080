from fastapi import APIRouter, Depends

from coffeeshop.api.responses import envelope
from coffeeshop.core.database import get_uow
from coffeeshop.models.schemas import utcnow
from coffeeshop.repositories.base import UnitOfWork
from coffeeshop.services.content_service import ABOUT_US, CONTACT_US, ContentService

router = APIRouter()


@router.get("")
def api_index():
    return envelope(
        message="Coffee Shop API is running!",
        timestamp=utcnow(),
        endpoints={
            "products": "/api/products",
            "categories": "/api/categories",
            "users": "/api/users",
            "orders": "/api/orders",
            "dashboard": "/api/dashboard",
            "admin": "/api/admin",
        },
    )


@router.get("/health")
def health_check():
    return {"status": "ok"}


@router.get("/about-us")
def about_us(uow: UnitOfWork = Depends(get_uow)):
    return envelope(**ContentService(uow).get_page(ABOUT_US))


@router.get("/contact-us")
def contact_us(uow: UnitOfWork = Depends(get_uow)):
    return envelope(**ContentService(uow).get_page(CONTACT_US))
