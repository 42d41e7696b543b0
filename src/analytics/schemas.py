"""
Analytics Response Models

Field names are snake_case in Python and camelCase on the wire. Money and
rates are floats already rounded to two places by the engine.
"""

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.analytics.metrics import round2
from src.database.models import Account, Product, Purchase


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# ENTITY REFERENCES
# =============================================================================

class AccountRef(CamelModel):
    """Account fields embedded in purchases and leaderboards"""
    account_id: UUID
    name: str
    email: str
    profile_image: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_account(cls, account: Account) -> "AccountRef":
        return cls(
            account_id=account.account_id,
            name=account.name,
            email=account.email,
            profile_image=account.profile_image,
            created_at=account.created_at,
        )


class AccountOut(AccountRef):
    """Full account, without the identity-provider id"""
    is_admin: bool
    updated_at: datetime

    @classmethod
    def from_account(cls, account: Account) -> "AccountOut":
        return cls(
            **AccountRef.from_account(account).model_dump(),
            is_admin=account.is_admin,
            updated_at=account.updated_at,
        )


class ProductRef(CamelModel):
    """Product fields embedded in purchases and leaderboards"""
    product_id: UUID
    name: str
    description: str
    price: float
    image_url: str

    @classmethod
    def from_product(cls, product: Product) -> "ProductRef":
        return cls(
            product_id=product.product_id,
            name=product.name,
            description=product.description,
            price=round2(product.price),
            image_url=product.image_url,
        )


class PurchaseOut(CamelModel):
    """Purchase resolved with its account and/or product"""
    purchase_id: UUID
    account_id: UUID
    product_id: UUID
    payment_status: str
    amount: float
    stripe_payment_id: Optional[str] = None
    created_at: datetime
    account: Optional[AccountRef] = None
    product: Optional[ProductRef] = None

    @classmethod
    def from_purchase(
        cls,
        purchase: Purchase,
        with_account: bool = True,
        with_product: bool = True,
    ) -> "PurchaseOut":
        return cls(
            purchase_id=purchase.purchase_id,
            account_id=purchase.account_id,
            product_id=purchase.product_id,
            payment_status=purchase.payment_status.value,
            amount=round2(purchase.amount),
            stripe_payment_id=purchase.stripe_payment_id,
            created_at=purchase.created_at,
            account=AccountRef.from_account(purchase.account) if with_account and purchase.account else None,
            product=ProductRef.from_product(purchase.product) if with_product and purchase.product else None,
        )


# =============================================================================
# DASHBOARD SUMMARY
# =============================================================================

class TopProduct(CamelModel):
    product: ProductRef
    total_sold: int
    total_revenue: float
    avg_order_value: float


class TopAccount(CamelModel):
    account: AccountRef
    order_count: int
    total_spent: float
    avg_order_value: float
    last_purchase: Optional[datetime] = None


class DailySales(CamelModel):
    sale_date: date = Field(alias="date")
    total_sales: int
    total_revenue: float


class MonthlySales(CamelModel):
    year: int
    month: int
    total_sales: int
    total_revenue: float


class AccountGrowth(CamelModel):
    year: int
    month: int
    new_accounts: int


class ProductPerformance(CamelModel):
    product_id: UUID
    name: str
    price: float
    total_sales: int
    total_revenue: float
    conversion_rate: float


class DashboardSummary(CamelModel):
    """Global KPIs, leaderboards and time series for the admin dashboard"""
    total_accounts: int
    total_products: int
    total_purchases: int
    completed_purchases: int
    pending_purchases: int
    failed_purchases: int

    total_revenue: float
    avg_order_value: float
    conversion_rate: float
    revenue_growth: float

    recent_purchases: List[PurchaseOut]
    top_products: List[TopProduct]
    top_accounts: List[TopAccount]
    daily_sales: List[DailySales]
    monthly_sales: List[MonthlySales]
    account_growth: List[AccountGrowth]
    product_performance: List[ProductPerformance]


# =============================================================================
# ACCOUNTS
# =============================================================================

class FavoriteProduct(CamelModel):
    product: ProductRef
    count: int


class AccountStats(CamelModel):
    """Per-account purchase statistics, shared by the listing and the detail view"""
    total_purchases: int
    completed_purchases: int
    pending_purchases: int
    failed_purchases: int
    total_spent: float
    avg_order_value: float
    last_purchase: Optional[datetime] = None
    favorite_products: List[FavoriteProduct]
    account_age: int
    customer_value: str
    purchase_frequency: int


class EnrichedAccount(AccountOut):
    stats: AccountStats


class AccountPurchaseDetail(CamelModel):
    account: AccountOut
    purchases: List[PurchaseOut]
    stats: AccountStats


class AdminStatusUpdate(CamelModel):
    is_admin: bool


# =============================================================================
# PRODUCTS
# =============================================================================

class RecentBuyer(CamelModel):
    account: AccountRef
    purchase_date: datetime
    amount: float
    payment_id: Optional[str] = None


class ProductOut(ProductRef):
    created_at: datetime


class EnrichedProduct(ProductOut):
    total_sales: int
    pending_sales: int
    failed_sales: int
    total_attempts: int
    total_revenue: float
    avg_sale_value: float
    conversion_rate: float
    recent_sales_30_days: int = Field(alias="recentSales30Days")
    popularity_score: float
    status: str
    trending: str
    first_sale: Optional[datetime] = None
    last_sale: Optional[datetime] = None
    recent_buyers: List[RecentBuyer]


# =============================================================================
# PURCHASES
# =============================================================================

class Pagination(CamelModel):
    current_page: int
    total_pages: int
    total_purchases: int
    has_more: bool
    limit: int


class PurchaseSummary(CamelModel):
    """Totals over the filtered purchase set, not just the current page"""
    total_amount: float
    completed_count: int
    pending_count: int
    failed_count: int


class PurchaseListing(CamelModel):
    purchases: List[PurchaseOut]
    pagination: Pagination
    summary: PurchaseSummary
