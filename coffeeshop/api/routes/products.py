from typing import Optional

from fastapi import APIRouter, Depends, Query

from coffeeshop.api.responses import envelope, pagination
from coffeeshop.core.database import get_uow
from coffeeshop.core.security import get_optional_user_id
from coffeeshop.models.schemas import ProductCreate, ProductUpdate, RatingCreate, SalesIncrement
from coffeeshop.repositories.base import UnitOfWork
from coffeeshop.services.product_service import ProductService

router = APIRouter()


# Derived lists are declared before "/{product_id}" so they are not shadowed

@router.get("/discounted/all")
def get_discounted_products(
    limit: Optional[int] = Query(None, ge=1),
    uow: UnitOfWork = Depends(get_uow),
):
    products = ProductService(uow).discounted(limit)
    return envelope(products, count=len(products))


@router.get("/top-rated/all")
def get_top_rated_products(limit: int = Query(10, ge=1), uow: UnitOfWork = Depends(get_uow)):
    products = ProductService(uow).top_rated(limit)
    return envelope(products, count=len(products))


@router.get("/best-selling/all")
def get_best_selling_products(limit: int = Query(10, ge=1), uow: UnitOfWork = Depends(get_uow)):
    products = ProductService(uow).best_selling(limit)
    return envelope(products, count=len(products))


@router.get("/category/{category}")
def get_products_by_category(category: str, uow: UnitOfWork = Depends(get_uow)):
    products = ProductService(uow).by_category(category)
    return envelope(products, count=len(products))


@router.get("")
def list_products(
    category: Optional[str] = None,
    has_discount: Optional[bool] = Query(None, alias="hasDiscount"),
    min_rating: Optional[float] = Query(None, alias="minRating"),
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder"),
    page: Optional[int] = Query(None, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    uow: UnitOfWork = Depends(get_uow),
):
    """List active products, newest first unless ``sortBy``/``sortOrder`` say otherwise"""
    if page is not None and limit is None:
        limit = 10
    products, total = ProductService(uow).list_products(
        category=category,
        has_discount=has_discount,
        min_rating=min_rating,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page or 1,
        limit=limit,
    )
    if limit is None:
        return envelope(products, count=len(products))
    return envelope(products, count=len(products), pagination=pagination(page or 1, limit, total, "totalProducts"))


@router.get("/{product_id}")
def get_product(product_id: int, uow: UnitOfWork = Depends(get_uow)):
    return envelope(ProductService(uow).get_product(product_id))


@router.post("", status_code=201)
def create_product(product_data: ProductCreate, uow: UnitOfWork = Depends(get_uow)):
    product = ProductService(uow).create_product(product_data)
    return envelope(product, message="Product created successfully")


@router.put("/{product_id}")
def update_product(product_id: int, product_data: ProductCreate, uow: UnitOfWork = Depends(get_uow)):
    product = ProductService(uow).replace_product(product_id, product_data)
    return envelope(product, message="Product updated successfully")


@router.patch("/{product_id}")
def patch_product(product_id: int, product_data: ProductUpdate, uow: UnitOfWork = Depends(get_uow)):
    product = ProductService(uow).patch_product(product_id, product_data)
    return envelope(product, message="Product updated successfully")


@router.delete("/{product_id}")
def delete_product(product_id: int, uow: UnitOfWork = Depends(get_uow)):
    ProductService(uow).delete_product(product_id)
    return envelope(message="Product deleted successfully")


@router.post("/{product_id}/rate")
def rate_product(
    product_id: int,
    rating_data: RatingCreate,
    token_user_id: Optional[int] = Depends(get_optional_user_id),
    uow: UnitOfWork = Depends(get_uow),
):
    """Rate a product; the bearer token's user wins over ``userId`` in the body"""
    product = ProductService(uow).rate_product(product_id, rating_data, token_user_id)
    return envelope(
        {
            "averageRating": product.average_rating,
            "ratingCount": product.rating_count,
            "totalRating": product.total_rating,
        },
        message="Rating submitted successfully",
    )


@router.get("/{product_id}/ratings")
def get_product_ratings(product_id: int, uow: UnitOfWork = Depends(get_uow)):
    return envelope(ProductService(uow).get_ratings(product_id))


@router.post("/{product_id}/increment-sales")
def increment_sales(
    product_id: int,
    sales_data: Optional[SalesIncrement] = None,
    uow: UnitOfWork = Depends(get_uow),
):
    product = ProductService(uow).increment_sales(product_id, sales_data.quantity if sales_data else 1)
    return envelope({"salesCount": product.sales_count}, message="Sales count updated successfully")
