"""
Database Models - Storefront Record Store

Three collections back the storefront and the admin analytics:

- Account: shoppers and admins, created on first identity-provider sign-in
- Product: catalog entries, owned by catalog management
- Purchase: one checkout attempt of one product by one account

Purchases snapshot the product price into ``amount`` at checkout time, so
``amount`` may diverge from the current ``Product.price``.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, List
import uuid

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Numeric,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from src.utils import utcnow


class Base(DeclarativeBase):
    """Base class for all database models"""
    pass


class PaymentStatus(str, Enum):
    """Purchase payment status. pending -> completed | failed, terminal thereafter."""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class Account(Base):
    """
    Storefront account.

    Exactly one account per identity-provider id; email is unique.
    """
    __tablename__ = "accounts"

    account_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    google_id: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    profile_image: Mapped[Optional[str]] = mapped_column(String(1000))
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    purchases: Mapped[List["Purchase"]] = relationship(back_populates="account")

    __table_args__ = (
        Index("ix_accounts_created_at", "created_at"),
    )


class Product(Base):
    """Catalog product. Read-only to the analytics engine."""
    __tablename__ = "products"

    product_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    image_url: Mapped[str] = mapped_column(String(1000), nullable=False, default="")

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    purchases: Mapped[List["Purchase"]] = relationship(back_populates="product")

    __table_args__ = (
        CheckConstraint("price > 0", name="ck_products_price_positive"),
        Index("ix_products_created_at", "created_at"),
    )


class Purchase(Base):
    """
    Purchase record.

    ``amount`` is immutable once set; ``payment_status`` only moves out of
    pending, never back.
    """
    __tablename__ = "purchases"

    purchase_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    account_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("accounts.account_id"), nullable=False
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("products.product_id"), nullable=False
    )
    payment_status: Mapped[PaymentStatus] = mapped_column(
        SQLEnum(PaymentStatus, name="payment_status", values_callable=lambda e: [m.value for m in e]),
        default=PaymentStatus.PENDING,
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    stripe_payment_id: Mapped[Optional[str]] = mapped_column(String(255))

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    account: Mapped["Account"] = relationship(back_populates="purchases")
    product: Mapped["Product"] = relationship(back_populates="purchases")

    __table_args__ = (
        Index("ix_purchases_account", "account_id"),
        Index("ix_purchases_product", "product_id"),
        Index("ix_purchases_status", "payment_status"),
        Index("ix_purchases_created_at", "created_at"),
    )
