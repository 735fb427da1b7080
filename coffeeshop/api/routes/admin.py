"""
Admin routes. Every endpoint requires the ``X-Admin-Password`` header.
"""
from fastapi import APIRouter, Depends

from coffeeshop.api.responses import envelope
from coffeeshop.core.database import get_uow
from coffeeshop.core.security import require_admin
from coffeeshop.models.schemas import ContentUpdate, DiscountUpdate, ProductCreate, ProductUpdate
from coffeeshop.repositories.base import UnitOfWork
from coffeeshop.services.content_service import ABOUT_US, CONTACT_US, ContentService
from coffeeshop.services.product_service import ProductService

router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("/dashboard")
def admin_dashboard(uow: UnitOfWork = Depends(get_uow)):
    return envelope(ContentService(uow).overview(), message="Admin dashboard")


@router.get("/products")
def admin_list_products(uow: UnitOfWork = Depends(get_uow)):
    products, _ = ProductService(uow).list_products()
    return envelope(products, count=len(products))


@router.post("/products", status_code=201)
def admin_create_product(product_data: ProductCreate, uow: UnitOfWork = Depends(get_uow)):
    product = ProductService(uow).create_product(product_data)
    return envelope(product, message="Product created successfully")


@router.put("/products/{product_id}")
def admin_update_product(product_id: int, product_data: ProductUpdate, uow: UnitOfWork = Depends(get_uow)):
    product = ProductService(uow).patch_product(product_id, product_data)
    return envelope(product, message="Product updated successfully")


@router.delete("/products/{product_id}")
def admin_delete_product(product_id: int, uow: UnitOfWork = Depends(get_uow)):
    ProductService(uow).delete_product(product_id)
    return envelope(message="Product deleted successfully")


@router.post("/discount/{product_id}")
def admin_set_discount(product_id: int, discount_data: DiscountUpdate, uow: UnitOfWork = Depends(get_uow)):
    product = ProductService(uow).set_discount(product_id, discount_data.discount)
    return envelope(product, message="Discount updated successfully")


@router.put("/about-us")
def admin_edit_about_us(content_data: ContentUpdate, uow: UnitOfWork = Depends(get_uow)):
    page = ContentService(uow).set_page(ABOUT_US, content_data.content)
    return envelope(page, message="About us updated successfully")


@router.put("/contact-us")
def admin_edit_contact_us(content_data: ContentUpdate, uow: UnitOfWork = Depends(get_uow)):
    page = ContentService(uow).set_page(CONTACT_US, content_data.content)
    return envelope(page, message="Contact us updated successfully")
