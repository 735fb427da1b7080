from fastapi import APIRouter, Depends, Query

from coffeeshop.api.responses import envelope, pagination
from coffeeshop.core.database import get_uow
from coffeeshop.models.schemas import CategoryCreate, CategoryUpdate
from coffeeshop.repositories.base import UnitOfWork
from coffeeshop.services.category_service import CategoryService

router = APIRouter()


@router.get("")
def list_categories(uow: UnitOfWork = Depends(get_uow)):
    categories = CategoryService(uow).list_categories()
    return envelope(categories, total=len(categories))


@router.get("/slug/{slug}")
def get_category_by_slug(slug: str, uow: UnitOfWork = Depends(get_uow)):
    return envelope(CategoryService(uow).get_by_slug(slug))


@router.get("/{slug}/products")
def get_category_products(
    slug: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    sort: str = "name",
    order: str = "asc",
    uow: UnitOfWork = Depends(get_uow),
):
    """Paginated products of one category"""
    category, products, total = CategoryService(uow).get_products(slug, page, limit, sort, order)
    return envelope({
        "category": category,
        "products": products,
        "pagination": pagination(page, limit, total, "totalProducts"),
    })


@router.get("/{category_id}")
def get_category(category_id: int, uow: UnitOfWork = Depends(get_uow)):
    return envelope(CategoryService(uow).get_category(category_id))


@router.post("", status_code=201)
def create_category(category_data: CategoryCreate, uow: UnitOfWork = Depends(get_uow)):
    category = CategoryService(uow).create_category(category_data)
    return envelope(category, message="Category created successfully")


@router.put("/{category_id}")
def update_category(category_id: int, category_data: CategoryCreate, uow: UnitOfWork = Depends(get_uow)):
    category = CategoryService(uow).replace_category(category_id, category_data)
    return envelope(category, message="Category updated successfully")


@router.patch("/{category_id}")
def patch_category(category_id: int, category_data: CategoryUpdate, uow: UnitOfWork = Depends(get_uow)):
    category = CategoryService(uow).patch_category(category_id, category_data)
    return envelope(category, message="Category updated successfully")


@router.delete("/{category_id}")
def delete_category(category_id: int, uow: UnitOfWork = Depends(get_uow)):
    CategoryService(uow).delete_category(category_id)
    return envelope(message="Category deleted successfully")
