from sqlalchemy import Column, Integer, String, Float, DateTime, Boolean, Text, JSON
from sqlalchemy.orm import declarative_base

from coffeeshop.models.schemas import utcnow

Base = declarative_base()


class Product(Base):
    """Catalog product; ratings are embedded as a JSON list"""
    __tablename__ = "products"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    price = Column(Float, nullable=False)
    discount = Column(Float, nullable=False, default=0)
    description = Column(Text)
    image = Column(String)
    category = Column(String, index=True, nullable=False)
    sales_count = Column(Integer, nullable=False, default=0)
    total_rating = Column(Float, nullable=False, default=0)
    rating_count = Column(Integer, nullable=False, default=0)
    average_rating = Column(Float, nullable=False, default=0)
    ratings = Column(JSON, nullable=False, default=list)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class Category(Base):
    """Product category addressed by its slug"""
    __tablename__ = "categories"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    slug = Column(String, unique=True, index=True, nullable=False)
    description = Column(Text, default="")
    image = Column(String, default="")
    is_active = Column(Boolean, nullable=False, default=True)
    sort_order = Column(Integer, nullable=False, default=999)
    created_at = Column(DateTime(timezone=True), default=utcnow)


class User(Base):
    """Customer account with loyalty counters and favorites"""
    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    first_name = Column(String)
    last_name = Column(String)
    phone = Column(String)
    avatar = Column(String)
    address = Column(JSON, nullable=False, default=dict)
    preferences = Column(JSON, nullable=False, default=dict)
    loyalty_points = Column(Integer, nullable=False, default=0)
    total_spent = Column(Float, nullable=False, default=0)
    total_orders = Column(Integer, nullable=False, default=0)
    favorite_products = Column(JSON, nullable=False, default=list)
    is_active = Column(Boolean, nullable=False, default=True)
    last_login = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class Order(Base):
    """Customer order; line items and status history are snapshots"""
    __tablename__ = "orders"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String, index=True, nullable=False)
    user_id = Column(Integer, index=True, nullable=False)
    items = Column(JSON, nullable=False, default=list)
    total_amount = Column(Float, nullable=False)
    status = Column(String, nullable=False, default="pending", index=True)
    status_history = Column(JSON, nullable=False, default=list)
    delivery_address = Column(JSON)
    payment_method = Column(String, nullable=False, default="cash")
    payment_status = Column(String, nullable=False, default="pending")
    notes = Column(Text)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)


class SiteContent(Base):
    """Editable static texts such as "about us" and "contact us"."""
    __tablename__ = "site_content"

    key = Column(String, primary_key=True)
    content = Column(Text, nullable=False, default="")
