"""
Database Models for the Las Delicias del Campo storefront

This module defines the SQLAlchemy ORM models for the application:
- User / Address: customers and staff, plus the addresses attached to orders
- Category: product categories, optionally nested under a parent
- Product / ProductVariant / ProductImage / ProductAttribute: the catalog
- Discount: coupon codes applied at checkout
- Order / OrderItem: purchases and their line items
- SiteConfig: key/value site settings editable from the admin console
- Subscription: recurring membership billed through the payment gateway

Enumerated columns (roles, statuses, types) are stored as plain strings;
the allowed values live next to the models as tuples so route handlers
can validate against them.
"""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base, relationship, backref
from datetime import datetime


Base = declarative_base()


USER_ROLES = ("CUSTOMER", "ADMIN", "SUPER_ADMIN")
ADMIN_ROLES = ("ADMIN", "SUPER_ADMIN")

PRODUCT_STATUSES = ("ACTIVE", "INACTIVE", "DRAFT")
PRODUCT_TYPES = ("SIMPLE", "VARIABLE")

DISCOUNT_TYPES = ("PERCENTAGE", "FIXED", "FREE_SHIPPING")

ORDER_STATUSES = ("PENDING", "CONFIRMED", "PROCESSING", "SHIPPED", "DELIVERED", "CANCELLED", "REFUNDED")
PAYMENT_STATUSES = ("PENDING", "PAID", "FAILED", "REFUNDED")

SUBSCRIPTION_PLANS = ("BASICO", "PREMIUM", "FAMILIAR")
BILLING_CYCLES = ("MONTHLY", "ANNUAL")
SUBSCRIPTION_STATUSES = ("PENDING", "AUTHORIZED", "PAUSED", "CANCELLED")


class User(Base):
    """
    A storefront customer or an admin console user.

    Customers created during guest checkout have no password_hash until
    they register with the same email.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=True)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    phone = Column(String, nullable=True)
    role = Column(String, default="CUSTOMER", nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    orders = relationship("Order", back_populates="user", order_by="Order.created_at.desc()")
    addresses = relationship("Address", back_populates="user", cascade="all, delete-orphan")
    subscriptions = relationship("Subscription", back_populates="user", cascade="all, delete-orphan")


class Address(Base):
    __tablename__ = "addresses"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True)
    type = Column(String, default="SHIPPING")
    first_name = Column(String)
    last_name = Column(String)
    street = Column(String)
    city = Column(String)
    state = Column(String)
    postal_code = Column(String)
    phone = Column(String, nullable=True)

    user = relationship("User", back_populates="addresses")


class Category(Base):
    """
    Product category. Categories form a tree through parent_id.
    """
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, nullable=False)
    slug = Column(String, unique=True, index=True, nullable=False)
    description = Column(Text, nullable=True)
    image = Column(String, nullable=True)
    parent_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    # Self-referential relationship: category.children / category.parent
    children = relationship(
        "Category",
        backref=backref("parent", remote_side=[id]),
    )
    products = relationship("Product", back_populates="category")


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    slug = Column(String, unique=True, index=True, nullable=False)
    description = Column(Text, nullable=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True, index=True)
    status = Column(String, default="ACTIVE", index=True)
    type = Column(String, default="SIMPLE")
    featured = Column(Boolean, default=False)
    position = Column(Integer, default=0)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    category = relationship("Category", back_populates="products")

    # Deleting a product removes its variants, images and attributes
    variants = relationship(
        "ProductVariant",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductVariant.position",
    )
    images = relationship(
        "ProductImage",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductImage.position",
    )
    attributes = relationship(
        "ProductAttribute",
        back_populates="product",
        cascade="all, delete-orphan",
    )


class ProductVariant(Base):
    """
    A purchasable presentation of a product (e.g. 250 g or 1 kg bag).
    """
    __tablename__ = "product_variants"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), index=True, nullable=False)
    name = Column(String, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    sale_price = Column(Numeric(10, 2), nullable=True)
    weight = Column(String, nullable=True)
    stock = Column(Integer, default=0)
    in_stock = Column(Boolean, default=True)
    position = Column(Integer, default=0)

    product = relationship("Product", back_populates="variants")


class ProductImage(Base):
    __tablename__ = "product_images"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), index=True, nullable=False)
    url = Column(String, nullable=False)
    alt = Column(String, nullable=True)
    position = Column(Integer, default=0)

    product = relationship("Product", back_populates="images")


class ProductAttribute(Base):
    __tablename__ = "product_attributes"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), index=True, nullable=False)
    name = Column(String, nullable=False)
    value = Column(String, nullable=False)

    product = relationship("Product", back_populates="attributes")


class Discount(Base):
    """
    Coupon code. Codes are stored upper-case and matched case-insensitively.

    value is a percentage for PERCENTAGE, an amount in MXN for FIXED,
    and ignored for FREE_SHIPPING.
    """
    __tablename__ = "discounts"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String, unique=True, index=True, nullable=False)
    type = Column(String, nullable=False)
    value = Column(Numeric(10, 2), nullable=True)
    min_purchase = Column(Numeric(10, 2), nullable=True)
    max_uses = Column(Integer, nullable=True)
    used_count = Column(Integer, default=0, nullable=False)
    start_date = Column(DateTime, nullable=True)
    end_date = Column(DateTime, nullable=True)
    active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String, unique=True, index=True, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), index=True)
    address_id = Column(Integer, ForeignKey("addresses.id"), nullable=True)
    status = Column(String, default="PENDING", index=True)
    payment_status = Column(String, default="PENDING")
    payment_method = Column(String, nullable=True)
    subtotal = Column(Numeric(10, 2), default=0)
    shipping_cost = Column(Numeric(10, 2), default=0)
    discount = Column(Numeric(10, 2), default=0)
    total = Column(Numeric(10, 2), default=0)
    notes = Column(Text, nullable=True)

    # Mercado Pago references, filled in by checkout and the webhook
    mp_preference_id = Column(String, nullable=True)
    mp_payment_id = Column(String, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    user = relationship("User", back_populates="orders")
    shipping_address = relationship("Address")
    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan")


class OrderItem(Base):
    """
    Line item. name is the snapshot "Product - Variant" at purchase time.
    """
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), index=True, nullable=False)
    variant_id = Column(Integer, ForeignKey("product_variants.id"), nullable=True)
    name = Column(String, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    quantity = Column(Integer, nullable=False)
    total = Column(Numeric(10, 2), nullable=False)

    order = relationship("Order", back_populates="items")
    variant = relationship("ProductVariant")


class SiteConfig(Base):
    __tablename__ = "site_config"

    id = Column(Integer, primary_key=True, index=True)
    key = Column(String, unique=True, index=True, nullable=False)
    value = Column(Text, nullable=False)
    type = Column(String, default="text")


class Subscription(Base):
    """
    Membership billed through a Mercado Pago preapproval agreement.
    """
    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    plan = Column(String, nullable=False)
    billing_cycle = Column(String, default="MONTHLY")
    status = Column(String, default="PENDING", index=True)
    price = Column(Numeric(10, 2), nullable=False)
    mp_subscription_id = Column(String, nullable=True, index=True)
    mp_init_point = Column(String, nullable=True)
    mp_payer_email = Column(String, nullable=True)
    start_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="subscriptions")
