"""
Aggregation Engine

Read-only views over accounts, products and purchases for the admin
dashboard. Each operation issues a handful of grouped queries against the
record store (one ``GROUP BY (key, payment_status)`` pass instead of a
sub-query set per entity), joins the groups against the entity listing in
memory and applies the metric formulas.

Sub-queries of one operation are not wrapped in a snapshot transaction, so a
purchase that completes mid-request may show up in one figure and not yet
in another. The engine keeps no state between calls.
"""

from collections import defaultdict
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence, Tuple, Union
import time
import uuid

import structlog
from prometheus_client import Counter, Histogram
from sqlalchemy import and_, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.analytics.exceptions import AggregationError, NotFoundError
from src.analytics.metrics import (
    PurchaseTally,
    ZERO,
    account_age_days,
    bucket_account_growth,
    bucket_sales,
    conversion_rate,
    customer_value_tier,
    day_window_start,
    favorite_products,
    month_window_start,
    period_date,
    popularity_score,
    product_status,
    purchase_frequency,
    rank_by_count,
    revenue_growth,
    round2,
    tally_purchases,
    trailing_window_start,
    trending_flag,
)
from src.analytics.pagination import PageRequest, PurchaseFilters, total_pages
from src.analytics.schemas import (
    AccountGrowth,
    AccountOut,
    AccountPurchaseDetail,
    AccountRef,
    AccountStats,
    DailySales,
    DashboardSummary,
    EnrichedAccount,
    EnrichedProduct,
    FavoriteProduct,
    MonthlySales,
    Pagination,
    ProductPerformance,
    ProductRef,
    PurchaseListing,
    PurchaseOut,
    PurchaseSummary,
    RecentBuyer,
    TopAccount,
    TopProduct,
)
from src.config import get_settings
from src.config.settings import AnalyticsSettings
from src.database.models import Account, PaymentStatus, Product, Purchase
from src.utils import utcnow

logger = structlog.get_logger(__name__)

COMPLETED = Purchase.payment_status == PaymentStatus.COMPLETED


# =============================================================================
# METRICS
# =============================================================================

AGGREGATIONS = Counter(
    "storefront_analytics_aggregations_total",
    "Aggregation operations by outcome",
    ["operation", "outcome"],
)

AGGREGATION_TIME = Histogram(
    "storefront_analytics_aggregation_seconds",
    "Time spent computing an aggregation",
    ["operation"],
)


class AggregationEngine:
    """
    Computes the five admin analytics views.

    All methods take the caller's session and an optional ``now`` so results
    are reproducible in tests.
    """

    def __init__(self, settings: Optional[AnalyticsSettings] = None):
        self.settings = settings or get_settings().analytics

    # -------------------------------------------------------------------------
    # Dashboard summary
    # -------------------------------------------------------------------------

    async def dashboard_summary(
        self,
        db: AsyncSession,
        now: Optional[datetime] = None,
    ) -> DashboardSummary:
        """Global KPIs, leaderboards, time series and per-product performance."""
        now = now or utcnow()
        cfg = self.settings

        async with self._operation("dashboard_summary") as log:
            total_accounts = await self._count(db, Account.account_id)
            total_products = await self._count(db, Product.product_id)
            overall = (await self._tally_by(db)).get(None, PurchaseTally())

            recent = await db.execute(
                select(Purchase)
                .options(selectinload(Purchase.account), selectinload(Purchase.product))
                .order_by(Purchase.created_at.desc(), Purchase.purchase_id.desc())
                .limit(cfg.recent_purchases_limit)
            )
            recent_purchases = [PurchaseOut.from_purchase(p) for p in recent.scalars().all()]

            products = (
                await db.execute(
                    select(Product).order_by(Product.created_at, Product.product_id)
                )
            ).scalars().all()
            product_tallies = await self._tally_by(db, Purchase.product_id)
            top_products = self._top_products(products, product_tallies)
            product_performance = [
                self._product_performance(product, product_tallies.get(product.product_id, PurchaseTally()))
                for product in products
            ]

            account_tallies = await self._tally_by(db, Purchase.account_id, COMPLETED)
            top_accounts = await self._top_accounts(db, account_tallies)

            day_start = day_window_start(now, cfg.daily_window_days)
            month_start = month_window_start(now, cfg.monthly_window_months)
            sales_rows = (
                await db.execute(
                    select(Purchase.created_at, Purchase.amount).where(
                        COMPLETED, Purchase.created_at >= min(day_start, month_start)
                    )
                )
            ).all()
            daily = bucket_sales(sales_rows, day_start, "day")
            monthly = bucket_sales(sales_rows, month_start, "month")

            created = (await db.execute(select(Account.created_at))).scalars().all()
            growth = bucket_account_growth(created)

            summary = DashboardSummary(
                total_accounts=total_accounts,
                total_products=total_products,
                total_purchases=overall.total,
                completed_purchases=overall.completed,
                pending_purchases=overall.pending,
                failed_purchases=overall.failed,
                total_revenue=round2(overall.revenue),
                avg_order_value=round2(overall.average_order_value),
                conversion_rate=conversion_rate(overall.completed, overall.total),
                revenue_growth=revenue_growth(
                    daily[0].total_revenue if daily else ZERO,
                    daily[-1].total_revenue if daily else ZERO,
                    len(daily),
                ),
                recent_purchases=recent_purchases,
                top_products=top_products,
                top_accounts=top_accounts,
                daily_sales=[
                    DailySales(
                        sale_date=period_date(b.period),
                        total_sales=b.total_sales,
                        total_revenue=round2(b.total_revenue),
                    )
                    for b in daily
                ],
                monthly_sales=[
                    MonthlySales(
                        year=b.period[0],
                        month=b.period[1],
                        total_sales=b.total_sales,
                        total_revenue=round2(b.total_revenue),
                    )
                    for b in monthly
                ],
                account_growth=[
                    AccountGrowth(year=year, month=month, new_accounts=count)
                    for year, month, count in growth
                ],
                product_performance=product_performance,
            )

            log.info(
                "Dashboard summary computed",
                total_purchases=summary.total_purchases,
                total_revenue=summary.total_revenue,
                daily_points=len(summary.daily_sales),
                monthly_points=len(summary.monthly_sales),
            )
            return summary

    def _top_products(
        self,
        products: Sequence[Product],
        tallies: Dict[Any, PurchaseTally],
    ) -> List[TopProduct]:
        by_id = {product.product_id: product for product in products}
        sold = {
            product_id: tally.completed
            for product_id, tally in tallies.items()
            if tally.completed > 0 and product_id in by_id
        }
        return [
            TopProduct(
                product=ProductRef.from_product(by_id[product_id]),
                total_sold=count,
                total_revenue=round2(tallies[product_id].revenue),
                avg_order_value=round2(tallies[product_id].average_order_value),
            )
            for product_id, count in rank_by_count(sold, self.settings.top_products_limit)
        ]

    async def _top_accounts(
        self,
        db: AsyncSession,
        tallies: Dict[Any, PurchaseTally],
    ) -> List[TopAccount]:
        ranked = sorted(
            (item for item in tallies.items() if item[1].completed > 0),
            key=lambda item: (-item[1].revenue, str(item[0])),
        )[: self.settings.top_accounts_limit]
        if not ranked:
            return []

        accounts = await self._load_by_id(db, Account, Account.account_id, [key for key, _ in ranked])
        return [
            TopAccount(
                account=AccountRef.from_account(accounts[account_id]),
                order_count=tally.completed,
                total_spent=round2(tally.revenue),
                avg_order_value=round2(tally.average_order_value),
                last_purchase=tally.last_sale_at,
            )
            for account_id, tally in ranked
            if account_id in accounts
        ]

    @staticmethod
    def _product_performance(product: Product, tally: PurchaseTally) -> ProductPerformance:
        return ProductPerformance(
            product_id=product.product_id,
            name=product.name,
            price=round2(product.price),
            total_sales=tally.completed,
            total_revenue=round2(tally.revenue),
            conversion_rate=conversion_rate(tally.completed, tally.total),
        )

    # -------------------------------------------------------------------------
    # Enriched listings
    # -------------------------------------------------------------------------

    async def enriched_accounts(
        self,
        db: AsyncSession,
        now: Optional[datetime] = None,
    ) -> List[EnrichedAccount]:
        """Every account with its purchase statistics, highest spend first."""
        now = now or utcnow()

        async with self._operation("enriched_accounts") as log:
            accounts = (
                await db.execute(
                    select(Account).order_by(Account.created_at.desc(), Account.account_id)
                )
            ).scalars().all()
            tallies = await self._tally_by(db, Purchase.account_id)

            favorite_rows = (
                await db.execute(
                    select(Purchase.account_id, Purchase.product_id, func.count(Purchase.purchase_id))
                    .where(COMPLETED)
                    .group_by(Purchase.account_id, Purchase.product_id)
                )
            ).all()
            counts: Dict[Any, Dict[Any, int]] = defaultdict(dict)
            for account_id, product_id, count in favorite_rows:
                counts[account_id][product_id] = count
            favorites = {
                account_id: rank_by_count(per_product, self.settings.favorite_products_limit)
                for account_id, per_product in counts.items()
            }
            product_ids = {product_id for ranked in favorites.values() for product_id, _ in ranked}
            products = await self._load_by_id(db, Product, Product.product_id, product_ids)

            enriched = []
            for account in accounts:
                tally = tallies.get(account.account_id, PurchaseTally())
                resolved = [
                    (products[product_id], count)
                    for product_id, count in favorites.get(account.account_id, [])
                    if product_id in products
                ]
                enriched.append(
                    (
                        tally.revenue,
                        EnrichedAccount(
                            **AccountOut.from_account(account).model_dump(),
                            stats=self._account_stats(account, tally, resolved, now),
                        ),
                    )
                )

            # Stable sort keeps newest-first order among equal spenders
            enriched.sort(key=lambda item: item[0], reverse=True)

            log.info("Enriched accounts computed", accounts=len(enriched))
            return [item for _, item in enriched]

    async def enriched_products(
        self,
        db: AsyncSession,
        now: Optional[datetime] = None,
    ) -> List[EnrichedProduct]:
        """Every product with sales statistics, most popular first."""
        now = now or utcnow()
        cfg = self.settings

        async with self._operation("enriched_products") as log:
            products = (
                await db.execute(
                    select(Product).order_by(Product.created_at.desc(), Product.product_id)
                )
            ).scalars().all()
            tallies = await self._tally_by(db, Purchase.product_id)

            recent_rows = (
                await db.execute(
                    select(Purchase.product_id, func.count(Purchase.purchase_id))
                    .where(
                        COMPLETED,
                        Purchase.created_at >= trailing_window_start(now, cfg.trending_window_days),
                    )
                    .group_by(Purchase.product_id)
                )
            ).all()
            recent_sales = {product_id: count for product_id, count in recent_rows}
            buyers = await self._recent_buyers(db, cfg.recent_buyers_limit)

            enriched = []
            for product in products:
                tally = tallies.get(product.product_id, PurchaseTally())
                score = popularity_score(tally.completed, tally.revenue)
                recent = recent_sales.get(product.product_id, 0)
                enriched.append(
                    (
                        score,
                        EnrichedProduct(
                            **ProductRef.from_product(product).model_dump(),
                            created_at=product.created_at,
                            total_sales=tally.completed,
                            pending_sales=tally.pending,
                            failed_sales=tally.failed,
                            total_attempts=tally.total,
                            total_revenue=round2(tally.revenue),
                            avg_sale_value=round2(
                                tally.average_order_value if tally.completed else product.price
                            ),
                            conversion_rate=conversion_rate(tally.completed, tally.total),
                            recent_sales_30_days=recent,
                            popularity_score=round2(score),
                            status=product_status(tally.completed),
                            trending=trending_flag(recent),
                            first_sale=tally.first_sale_at,
                            last_sale=tally.last_sale_at,
                            recent_buyers=buyers.get(product.product_id, []),
                        ),
                    )
                )

            enriched.sort(key=lambda item: item[0], reverse=True)

            log.info("Enriched products computed", products=len(enriched))
            return [item for _, item in enriched]

    async def _recent_buyers(self, db: AsyncSession, limit: int) -> Dict[Any, List[RecentBuyer]]:
        """Latest ``limit`` completed purchases per product in one windowed query."""
        ranked = (
            select(
                Purchase.purchase_id.label("purchase_id"),
                func.row_number()
                .over(
                    partition_by=Purchase.product_id,
                    order_by=[Purchase.created_at.desc(), Purchase.purchase_id.desc()],
                )
                .label("position"),
            )
            .where(COMPLETED)
            .subquery()
        )
        result = await db.execute(
            select(Purchase)
            .join(ranked, ranked.c.purchase_id == Purchase.purchase_id)
            .where(ranked.c.position <= limit)
            .options(selectinload(Purchase.account))
            .order_by(Purchase.product_id, Purchase.created_at.desc(), Purchase.purchase_id.desc())
        )

        buyers: Dict[Any, List[RecentBuyer]] = defaultdict(list)
        for purchase in result.scalars().all():
            if purchase.account is None:
                continue
            buyers[purchase.product_id].append(
                RecentBuyer(
                    account=AccountRef.from_account(purchase.account),
                    purchase_date=purchase.created_at,
                    amount=round2(purchase.amount),
                    payment_id=purchase.stripe_payment_id,
                )
            )
        return buyers

    # -------------------------------------------------------------------------
    # Purchases
    # -------------------------------------------------------------------------

    async def purchase_listing(
        self,
        db: AsyncSession,
        page: PageRequest,
        filters: Optional[PurchaseFilters] = None,
    ) -> PurchaseListing:
        """One page of filtered purchases, newest first, with totals over the whole filtered set."""
        filters = filters or PurchaseFilters()
        conditions = self._filter_conditions(filters)

        async with self._operation(
            "purchase_listing", page=page.page, limit=page.limit, **filters.as_log_context()
        ) as log:
            count_query = select(func.count(Purchase.purchase_id))
            query = select(Purchase).options(
                selectinload(Purchase.account), selectinload(Purchase.product)
            )
            if conditions:
                count_query = count_query.where(and_(*conditions))
                query = query.where(and_(*conditions))

            total = (await db.execute(count_query)).scalar() or 0
            pages = total_pages(total, page.limit)
            if page.page > max(pages, 1):
                # Past the last page: nothing to fetch
                purchases = []
            else:
                result = await db.execute(
                    query.order_by(Purchase.created_at.desc(), Purchase.purchase_id.desc())
                    .offset(page.offset)
                    .limit(page.limit)
                )
                purchases = [PurchaseOut.from_purchase(p) for p in result.scalars().all()]
            tally = (await self._tally_by(db, None, *conditions)).get(None, PurchaseTally())

            listing = PurchaseListing(
                purchases=purchases,
                pagination=Pagination(
                    current_page=page.page,
                    total_pages=pages,
                    total_purchases=total,
                    has_more=page.page < pages,
                    limit=page.limit,
                ),
                summary=PurchaseSummary(
                    total_amount=round2(tally.revenue),
                    completed_count=tally.completed,
                    pending_count=tally.pending,
                    failed_count=tally.failed,
                ),
            )

            log.info("Purchase listing computed", total=total, returned=len(purchases))
            return listing

    async def account_purchase_detail(
        self,
        db: AsyncSession,
        account_id: Union[str, uuid.UUID],
        now: Optional[datetime] = None,
    ) -> AccountPurchaseDetail:
        """
        One account with all its purchases and its statistics block.

        Raises:
            NotFoundError: ``account_id`` is malformed or unknown
        """
        now = now or utcnow()

        async with self._operation("account_purchase_detail", account_id=str(account_id)) as log:
            key = self._parse_id(account_id, "Account")
            account = await db.get(Account, key)
            if account is None:
                raise NotFoundError("Account", account_id)

            purchases = (
                await db.execute(
                    select(Purchase)
                    .where(Purchase.account_id == key)
                    .options(selectinload(Purchase.product))
                    .order_by(Purchase.created_at.desc(), Purchase.purchase_id.desc())
                )
            ).scalars().all()

            products = {p.product_id: p.product for p in purchases if p.product is not None}
            favorites = [
                (products[product_id], count)
                for product_id, count in favorite_products(purchases, self.settings.favorite_products_limit)
                if product_id in products
            ]

            detail = AccountPurchaseDetail(
                account=AccountOut.from_account(account),
                purchases=[PurchaseOut.from_purchase(p, with_account=False) for p in purchases],
                stats=self._account_stats(account, tally_purchases(purchases), favorites, now),
            )

            log.info("Account purchase detail computed", purchases=len(purchases))
            return detail

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _account_stats(
        account: Account,
        tally: PurchaseTally,
        favorites: List[Tuple[Product, int]],
        now: datetime,
    ) -> AccountStats:
        age = account_age_days(account.created_at, now)
        return AccountStats(
            total_purchases=tally.total,
            completed_purchases=tally.completed,
            pending_purchases=tally.pending,
            failed_purchases=tally.failed,
            total_spent=round2(tally.revenue),
            avg_order_value=round2(tally.average_order_value),
            last_purchase=tally.last_purchase_at,
            favorite_products=[
                FavoriteProduct(product=ProductRef.from_product(product), count=count)
                for product, count in favorites
            ],
            account_age=age,
            customer_value=customer_value_tier(tally.completed, tally.total),
            purchase_frequency=purchase_frequency(age, tally.completed),
        )

    @staticmethod
    def _filter_conditions(filters: PurchaseFilters) -> list:
        conditions = []
        if filters.status is not None:
            conditions.append(Purchase.payment_status == filters.status)
        if filters.account_id is not None:
            conditions.append(Purchase.account_id == filters.account_id)
        if filters.product_id is not None:
            conditions.append(Purchase.product_id == filters.product_id)
        return conditions

    @staticmethod
    def _parse_id(raw: Union[str, uuid.UUID], resource: str) -> uuid.UUID:
        if isinstance(raw, uuid.UUID):
            return raw
        try:
            return uuid.UUID(str(raw))
        except ValueError:
            raise NotFoundError(resource, raw) from None

    @staticmethod
    async def _count(db: AsyncSession, column) -> int:
        return (await db.execute(select(func.count(column)))).scalar() or 0

    @staticmethod
    async def _load_by_id(db: AsyncSession, model, column, ids) -> Dict[Any, Any]:
        ids = list(ids)
        if not ids:
            return {}
        rows = (await db.execute(select(model).where(column.in_(ids)))).scalars().all()
        return {getattr(row, column.key): row for row in rows}

    @staticmethod
    async def _tally_by(db: AsyncSession, key=None, *conditions) -> Dict[Any, PurchaseTally]:
        """
        Status partition of purchases grouped by ``key`` (or overall when
        ``key`` is None) in a single ``GROUP BY (key, payment_status)`` query.
        """
        measures = [
            Purchase.payment_status,
            func.count(Purchase.purchase_id),
            func.sum(Purchase.amount),
            func.min(Purchase.created_at),
            func.max(Purchase.created_at),
        ]
        if key is None:
            query = select(*measures).group_by(Purchase.payment_status)
        else:
            query = select(key, *measures).group_by(key, Purchase.payment_status)
        if conditions:
            query = query.where(and_(*conditions))

        tallies: Dict[Any, PurchaseTally] = defaultdict(PurchaseTally)
        for row in (await db.execute(query)).all():
            if key is None:
                group, (status, count, amount, first_at, last_at) = None, row
            else:
                group, status, count, amount, first_at, last_at = row
            tallies[group].add_group(status, count, amount, first_at, last_at)
        return dict(tallies)

    @asynccontextmanager
    async def _operation(self, name: str, **params) -> AsyncIterator[Any]:
        """Bind operation context for logging and convert store failures to AggregationError."""
        log = logger.bind(operation=name, **params)
        log.debug("Aggregation started")
        start = time.perf_counter()
        try:
            yield log
        except SQLAlchemyError as e:
            AGGREGATIONS.labels(operation=name, outcome="store_failure").inc()
            log.error("Record store failure", error=str(e), error_type=type(e).__name__)
            raise AggregationError(name, {k: str(v) for k, v in params.items()}) from e
        except NotFoundError as e:
            AGGREGATIONS.labels(operation=name, outcome="not_found").inc()
            log.info("Resource not found", details=e.details)
            raise
        AGGREGATIONS.labels(operation=name, outcome="success").inc()
        AGGREGATION_TIME.labels(operation=name).observe(time.perf_counter() - start)
