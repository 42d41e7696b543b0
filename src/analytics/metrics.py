"""
Metric Formulas

Pure, deterministic derivations used by the aggregation engine. No I/O.

Money is carried as ``Decimal`` at full precision and only rounded (half-up,
two places) by ``round2`` where a value leaves the engine. Every ratio
handles its zero-denominator case explicitly.
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Hashable, Iterable, List, Optional, Tuple

from src.database.models import PaymentStatus

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")

POPULARITY_SALES_WEIGHT = Decimal("0.6")
POPULARITY_REVENUE_WEIGHT = Decimal("0.4")
POPULARITY_REVENUE_UNIT = Decimal("1000")


def to_decimal(value: Any) -> Decimal:
    """Coerce a store value (Decimal, int, float, str or None) to Decimal."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def round2(value: Any) -> float:
    """Round half-up to two decimal places and emit a JSON-friendly float."""
    return float(to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP))


def average(total: Decimal, count: int) -> Decimal:
    """Mean value, 0 when there is nothing to average."""
    if count <= 0:
        return ZERO
    return total / count


def conversion_rate(completed: int, attempts: int) -> float:
    """Completed share of attempts as a percentage in [0, 100]; 0 for no attempts."""
    if attempts <= 0:
        return 0.0
    return round2(Decimal(completed) * HUNDRED / Decimal(attempts))


def popularity_score(completed_sales: int, revenue: Decimal) -> Decimal:
    """0.6 x completed sales + 0.4 x (revenue / 1000)."""
    return (
        POPULARITY_SALES_WEIGHT * completed_sales
        + POPULARITY_REVENUE_WEIGHT * to_decimal(revenue) / POPULARITY_REVENUE_UNIT
    )


def customer_value_tier(completed: int, total: int) -> str:
    """High with any completed purchase, Medium with any attempt, else Low."""
    if completed > 0:
        return "High"
    if total > 0:
        return "Medium"
    return "Low"


def account_age_days(created_at: datetime, now: datetime) -> int:
    """Whole days since account creation, never negative."""
    return max((now - created_at).days, 0)


def purchase_frequency(age_days: int, completed: int) -> int:
    """Days per completed purchase, floored; 0 without completed purchases."""
    if completed <= 0:
        return 0
    return age_days // completed


def product_status(completed_sales: int) -> str:
    return "Active" if completed_sales > 0 else "No Sales"


def trending_flag(recent_sales: int) -> str:
    return "Up" if recent_sales > 0 else "Flat"


@dataclass
class PurchaseTally:
    """
    Status partition of a set of purchases.

    ``completed + pending + failed == total`` by construction; revenue and the
    first/last sale timestamps only ever include completed purchases, while
    ``last_purchase_at`` tracks the most recent purchase of any status.
    """
    completed: int = 0
    pending: int = 0
    failed: int = 0
    revenue: Decimal = ZERO
    first_sale_at: Optional[datetime] = None
    last_sale_at: Optional[datetime] = None
    last_purchase_at: Optional[datetime] = None

    @property
    def total(self) -> int:
        return self.completed + self.pending + self.failed

    @property
    def average_order_value(self) -> Decimal:
        return average(self.revenue, self.completed)

    def add_group(
        self,
        status: PaymentStatus,
        count: int,
        amount: Any = None,
        first_at: Optional[datetime] = None,
        last_at: Optional[datetime] = None,
    ) -> None:
        """Merge one ``(status, count, sum(amount), min(created_at), max(created_at))`` group."""
        status = PaymentStatus(status)
        count = int(count or 0)
        if count == 0:
            return

        if status is PaymentStatus.COMPLETED:
            self.completed += count
            self.revenue += to_decimal(amount)
            self.first_sale_at = _earliest(self.first_sale_at, first_at)
            self.last_sale_at = _latest(self.last_sale_at, last_at)
        elif status is PaymentStatus.PENDING:
            self.pending += count
        else:
            self.failed += count

        self.last_purchase_at = _latest(self.last_purchase_at, last_at)


def tally_purchases(purchases: Iterable[Any]) -> PurchaseTally:
    """Build a tally from loaded purchase rows (anything with status, amount, created_at)."""
    tally = PurchaseTally()
    for purchase in purchases:
        tally.add_group(
            purchase.payment_status,
            1,
            purchase.amount,
            purchase.created_at,
            purchase.created_at,
        )
    return tally


def rank_by_count(counts: Dict[Hashable, int], limit: int) -> List[Tuple[Hashable, int]]:
    """Top ``limit`` keys by count descending, ties broken by key ascending."""
    ranked = sorted(counts.items(), key=lambda item: (-item[1], str(item[0])))
    return ranked[:limit]


def favorite_products(purchases: Iterable[Any], limit: int) -> List[Tuple[Hashable, int]]:
    """Top products by completed-purchase count among ``purchases``."""
    counts: Dict[Hashable, int] = defaultdict(int)
    for purchase in purchases:
        if PaymentStatus(purchase.payment_status) is PaymentStatus.COMPLETED:
            counts[purchase.product_id] += 1
    return rank_by_count(counts, limit)


def revenue_growth(first_revenue: Decimal, last_revenue: Decimal, periods: int) -> float:
    """
    Percentage change from the first to the last period of a series.

    0 for a series with fewer than two periods. A zero first period divides
    by 1 instead, which keeps the value defined.
    """
    if periods < 2:
        return 0.0
    first = to_decimal(first_revenue)
    last = to_decimal(last_revenue)
    denominator = first if first != ZERO else Decimal(1)
    return round2((last - first) / denominator * HUNDRED)


# =============================================================================
# TIME WINDOWS AND SERIES
# =============================================================================

@dataclass
class SeriesBucket:
    """Completed sales aggregated over one calendar period."""
    period: Tuple[int, ...]
    total_sales: int = 0
    total_revenue: Decimal = ZERO


def day_window_start(now: datetime, days: int) -> datetime:
    """Midnight starting a window of ``days`` calendar days that ends today."""
    first_day = now.date() - timedelta(days=max(days, 1) - 1)
    return datetime.combine(first_day, datetime.min.time())


def month_window_start(now: datetime, months: int) -> datetime:
    """Midnight on the 1st of the month starting ``months`` calendar months ending this month."""
    index = now.year * 12 + (now.month - 1) - (max(months, 1) - 1)
    return datetime(index // 12, index % 12 + 1, 1)


def trailing_window_start(now: datetime, days: int) -> datetime:
    return now - timedelta(days=days)


def bucket_sales(
    rows: Iterable[Tuple[datetime, Any]],
    start: datetime,
    granularity: str,
) -> List[SeriesBucket]:
    """
    Group ``(created_at, amount)`` rows at or after ``start`` by calendar
    ``day`` (period ``(year, month, day)``) or ``month`` (``(year, month)``).

    Periods without sales are omitted; the result is ascending by period.
    """
    if granularity not in ("day", "month"):
        raise ValueError(f"Unsupported granularity: {granularity}")

    buckets: Dict[Tuple[int, ...], SeriesBucket] = {}
    for created_at, amount in rows:
        if created_at < start:
            continue
        if granularity == "day":
            period = (created_at.year, created_at.month, created_at.day)
        else:
            period = (created_at.year, created_at.month)
        bucket = buckets.setdefault(period, SeriesBucket(period=period))
        bucket.total_sales += 1
        bucket.total_revenue += to_decimal(amount)

    return [buckets[key] for key in sorted(buckets)]


def bucket_account_growth(created: Iterable[datetime]) -> List[Tuple[int, int, int]]:
    """``(year, month, new_accounts)`` for every month with sign-ups, ascending."""
    counts: Dict[Tuple[int, int], int] = defaultdict(int)
    for created_at in created:
        counts[(created_at.year, created_at.month)] += 1
    return [(year, month, counts[(year, month)]) for year, month in sorted(counts)]


def period_date(period: Tuple[int, ...]) -> date:
    return date(*period)


def _earliest(current: Optional[datetime], candidate: Optional[datetime]) -> Optional[datetime]:
    if candidate is None:
        return current
    if current is None or candidate < current:
        return candidate
    return current


def _latest(current: Optional[datetime], candidate: Optional[datetime]) -> Optional[datetime]:
    if candidate is None:
        return current
    if current is None or candidate > current:
        return candidate
    return current
