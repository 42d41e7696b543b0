"""
Admin Analytics API Endpoints

Read-only analytics views for the admin dashboard plus the admin-flag
toggle. Every endpoint requires an admin bearer token.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from src.analytics.engine import AggregationEngine
from src.analytics.pagination import build_filters, build_page_request
from src.analytics.schemas import (
    AccountOut,
    AccountPurchaseDetail,
    AdminStatusUpdate,
    DashboardSummary,
    EnrichedAccount,
    EnrichedProduct,
    PurchaseListing,
)
from src.auth.admin import set_admin_status
from src.auth.dependencies import require_admin
from src.config import get_settings
from src.database.connection import get_db_dependency
from src.database.models import Account
from src.serving.cache import analytics_cache

router = APIRouter()
logger = structlog.get_logger(__name__)


def get_engine() -> AggregationEngine:
    return AggregationEngine(get_settings().analytics)


@router.get("/summary", response_model=DashboardSummary)
async def get_dashboard_summary(
    db: AsyncSession = Depends(get_db_dependency),
    engine: AggregationEngine = Depends(get_engine),
    admin: Account = Depends(require_admin),
) -> DashboardSummary:
    """Dashboard KPIs, leaderboards and sales series."""
    use_cache = engine.settings.summary_cache_enabled
    if use_cache:
        cached = await analytics_cache.get("summary")
        if cached:
            logger.debug("Returning cached dashboard summary")
            return DashboardSummary.model_validate(cached)

    summary = await engine.dashboard_summary(db)

    if use_cache:
        await analytics_cache.set(
            "summary",
            summary.model_dump(mode="json", by_alias=True),
            ttl=engine.settings.summary_cache_ttl,
        )
    return summary


@router.get("/accounts", response_model=List[EnrichedAccount])
async def list_enriched_accounts(
    db: AsyncSession = Depends(get_db_dependency),
    engine: AggregationEngine = Depends(get_engine),
    admin: Account = Depends(require_admin),
) -> List[EnrichedAccount]:
    """All accounts with purchase statistics, highest spend first."""
    return await engine.enriched_accounts(db)


@router.get("/products", response_model=List[EnrichedProduct])
async def list_enriched_products(
    db: AsyncSession = Depends(get_db_dependency),
    engine: AggregationEngine = Depends(get_engine),
    admin: Account = Depends(require_admin),
) -> List[EnrichedProduct]:
    """All products with sales statistics, most popular first."""
    return await engine.enriched_products(db)


@router.get("/purchases", response_model=PurchaseListing)
async def list_purchases(
    page: Optional[str] = Query(None, description="1-based page, defaults to 1"),
    limit: Optional[str] = Query(None, description="Page size, defaults to 50"),
    status: Optional[str] = Query(None, description="pending, completed or failed"),
    account_id: Optional[str] = Query(None, alias="accountId"),
    product_id: Optional[str] = Query(None, alias="productId"),
    db: AsyncSession = Depends(get_db_dependency),
    engine: AggregationEngine = Depends(get_engine),
    admin: Account = Depends(require_admin),
) -> PurchaseListing:
    """
    Filtered, paginated purchases, newest first.

    Unparseable paging or filter values fall back to their defaults.
    """
    page_request = build_page_request(
        page,
        limit,
        default_limit=engine.settings.default_page_size,
        max_limit=engine.settings.max_page_size,
    )
    filters = build_filters(status=status, account_id=account_id, product_id=product_id)
    return await engine.purchase_listing(db, page_request, filters)


@router.get("/purchases/by-account/{account_id}", response_model=AccountPurchaseDetail)
async def get_account_purchases(
    account_id: str,
    db: AsyncSession = Depends(get_db_dependency),
    engine: AggregationEngine = Depends(get_engine),
    admin: Account = Depends(require_admin),
) -> AccountPurchaseDetail:
    """One account with all its purchases and statistics."""
    return await engine.account_purchase_detail(db, account_id)


@router.patch("/accounts/{account_id}/admin", response_model=AccountOut)
async def update_admin_status(
    account_id: str,
    update: AdminStatusUpdate,
    db: AsyncSession = Depends(get_db_dependency),
    admin: Account = Depends(require_admin),
) -> AccountOut:
    """Grant or revoke the admin flag. The super admin cannot be demoted."""
    logger.info(
        "Admin status update requested",
        account_id=account_id,
        is_admin=update.is_admin,
        requested_by=str(admin.account_id),
    )
    account = await set_admin_status(db, account_id, update.is_admin)
    return AccountOut.from_account(account)
