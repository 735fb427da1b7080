from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, computed_field, field_validator
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def discounted_price(price: float, discount: float) -> float:
    """Price after applying a percentage discount"""
    if discount and discount > 0:
        return price * (100 - discount) / 100
    return price


class CamelModel(BaseModel):
    """snake_case in Python, camelCase on the wire and in the JSON files"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ---------- Products ----------

class Rating(CamelModel):
    user_id: int
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=500)
    created_at: datetime = Field(default_factory=utcnow)


class Product(CamelModel):
    id: int
    name: str
    price: float
    discount: float = 0
    description: Optional[str] = None
    image: Optional[str] = None
    category: str
    sales_count: int = 0
    total_rating: float = 0
    rating_count: int = 0
    average_rating: float = 0
    ratings: List[Rating] = Field(default_factory=list)
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    # Records written before ratings and sales tracking existed carry nulls
    @field_validator("discount", "sales_count", "total_rating", "rating_count", "average_rating", mode="before")
    @classmethod
    def _null_as_zero(cls, value):
        return 0 if value is None else value

    @field_validator("ratings", mode="before")
    @classmethod
    def _null_as_empty(cls, value):
        return [] if value is None else value

    @computed_field(alias="discountedPrice")
    @property
    def discounted_price(self) -> float:
        return discounted_price(self.price, self.discount)

    @computed_field(alias="hasDiscount")
    @property
    def has_discount(self) -> bool:
        return self.discount > 0


class ProductCreate(CamelModel):
    name: str = Field(..., min_length=1)
    price: float = Field(..., gt=0)
    discount: float = Field(0, ge=0, le=100)
    description: Optional[str] = None
    image: Optional[str] = None
    category: str = Field(..., min_length=1)


class ProductUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1)
    price: Optional[float] = Field(None, gt=0)
    discount: Optional[float] = Field(None, ge=0, le=100)
    description: Optional[str] = None
    image: Optional[str] = None
    category: Optional[str] = Field(None, min_length=1)


class RatingCreate(CamelModel):
    rating: Optional[int] = None
    comment: Optional[str] = Field(None, max_length=500)
    user_id: Optional[int] = None


class SalesIncrement(CamelModel):
    quantity: int = Field(1, ge=1)


class DiscountUpdate(CamelModel):
    discount: float = Field(..., ge=0, le=100)


# ---------- Categories ----------

class Category(CamelModel):
    id: int
    name: str
    slug: str
    description: str = ""
    image: str = ""
    is_active: bool = True
    sort_order: int = 999
    created_at: datetime = Field(default_factory=utcnow)

    @field_validator("description", "image", mode="before")
    @classmethod
    def _null_as_blank(cls, value):
        return "" if value is None else value


class CategoryCreate(CamelModel):
    name: str = Field(..., min_length=1)
    slug: str = Field(..., min_length=1)
    description: str = ""
    image: str = ""
    sort_order: int = 999


class CategoryUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1)
    slug: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    image: Optional[str] = None
    sort_order: Optional[int] = None


# ---------- Users ----------

class Address(CamelModel):
    street: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None


class Preferences(CamelModel):
    notifications: bool = True
    newsletter: bool = True
    language: str = "fa"


class User(CamelModel):
    id: int
    username: str
    email: str
    password_hash: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    avatar: Optional[str] = None
    address: Address = Field(default_factory=Address)
    preferences: Preferences = Field(default_factory=Preferences)
    loyalty_points: int = 0
    total_spent: float = 0
    total_orders: int = 0
    favorite_products: List[int] = Field(default_factory=list)
    is_active: bool = True
    last_login: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("address", "preferences", mode="before")
    @classmethod
    def _null_as_default(cls, value):
        return {} if value is None else value

    @computed_field(alias="fullName")
    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    @computed_field(alias="displayName")
    @property
    def display_name(self) -> str:
        return self.full_name or self.username


class UserSummary(CamelModel):
    id: int
    username: str
    email: str


class UserProfile(CamelModel):
    """User as returned to clients; never carries the password hash"""
    id: int
    username: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    full_name: str = ""
    display_name: str = ""
    avatar: Optional[str] = None
    phone: Optional[str] = None
    loyalty_points: int = 0
    total_spent: float = 0
    total_orders: int = 0
    address: Address = Field(default_factory=Address)
    preferences: Preferences = Field(default_factory=Preferences)
    created_at: Optional[datetime] = None


class SignupRequest(CamelModel):
    username: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=1)


class SigninRequest(CamelModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class ProfileUpdate(CamelModel):
    username: Optional[str] = Field(None, min_length=1)
    email: Optional[EmailStr] = None
    current_password: Optional[str] = None
    new_password: Optional[str] = Field(None, min_length=1)


class ProfileDelete(CamelModel):
    password: str = ""


class UserUpdate(CamelModel):
    username: Optional[str] = Field(None, min_length=1)
    email: Optional[EmailStr] = None


class DashboardProfileUpdate(CamelModel):
    """Fields a user may edit from the dashboard; everything else is ignored"""
    username: Optional[str] = Field(None, min_length=1)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    avatar: Optional[str] = None
    address: Optional[Address] = None
    preferences: Optional[Preferences] = None


# ---------- Orders ----------

class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class OrderItem(CamelModel):
    product_id: int
    product_name: str
    price: float
    discount: float = 0
    quantity: int = Field(..., ge=1)
    total_price: float


class StatusEntry(CamelModel):
    status: OrderStatus
    timestamp: datetime = Field(default_factory=utcnow)
    note: Optional[str] = None


class DeliveryAddress(CamelModel):
    street: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    phone: Optional[str] = None


class Order(CamelModel):
    id: int
    order_number: str
    user_id: int
    items: List[OrderItem] = Field(default_factory=list)
    total_amount: float
    status: OrderStatus = OrderStatus.PENDING
    status_history: List[StatusEntry] = Field(default_factory=list)
    delivery_address: Optional[DeliveryAddress] = None
    payment_method: str = "cash"
    payment_status: PaymentStatus = PaymentStatus.PENDING
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class OrderItemCreate(CamelModel):
    product_id: int
    quantity: int = Field(1, ge=1)


class OrderCreate(CamelModel):
    user_id: int
    items: List[OrderItemCreate] = Field(default_factory=list)
    delivery_address: Optional[DeliveryAddress] = None
    payment_method: str = "cash"
    notes: Optional[str] = None


class StatusUpdate(CamelModel):
    status: OrderStatus
    note: Optional[str] = None


class CancelRequest(CamelModel):
    reason: Optional[str] = None


# ---------- Site content ----------

class ContentUpdate(CamelModel):
    content: str = ""
