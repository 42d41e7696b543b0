"""
Pagination and filter parsing for the purchase listing.

Unparseable values never fail a request: they fall back to their defaults
(an absent filter) and are logged.
"""

from dataclasses import dataclass
from math import ceil
from typing import Any, Dict, Optional
import uuid

import structlog

from src.database.models import PaymentStatus

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PageRequest:
    """1-based page number and page size."""
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True)
class PurchaseFilters:
    """Equality filters, AND-composed; ``None`` means unfiltered."""
    status: Optional[PaymentStatus] = None
    account_id: Optional[uuid.UUID] = None
    product_id: Optional[uuid.UUID] = None

    def as_log_context(self) -> Dict[str, Optional[str]]:
        return {
            "status": self.status.value if self.status else None,
            "account_id": str(self.account_id) if self.account_id else None,
            "product_id": str(self.product_id) if self.product_id else None,
        }


def parse_positive_int(raw: Any, default: int, maximum: Optional[int] = None) -> int:
    """
    Parse a positive integer query value.

    Absent, non-numeric and non-positive input yields ``default``; values
    above ``maximum`` are clamped.
    """
    if raw is None or raw == "":
        return default
    try:
        value = int(str(raw).strip())
    except ValueError:
        logger.warning("Ignoring non-numeric paging value", raw=str(raw), default=default)
        return default
    if value < 1:
        logger.warning("Ignoring non-positive paging value", raw=str(raw), default=default)
        return default
    if maximum is not None and value > maximum:
        return maximum
    return value


def parse_status(raw: Optional[str]) -> Optional[PaymentStatus]:
    if not raw:
        return None
    try:
        return PaymentStatus(raw.strip().lower())
    except ValueError:
        logger.warning("Ignoring unknown payment status filter", raw=raw)
        return None


def parse_uuid(raw: Optional[str], field: str = "id") -> Optional[uuid.UUID]:
    if not raw:
        return None
    try:
        return uuid.UUID(raw.strip())
    except ValueError:
        logger.warning("Ignoring malformed id filter", field=field, raw=raw)
        return None


def build_page_request(
    page: Any,
    limit: Any,
    default_limit: int = 50,
    max_limit: Optional[int] = None,
) -> PageRequest:
    return PageRequest(
        page=parse_positive_int(page, 1),
        limit=parse_positive_int(limit, default_limit, max_limit),
    )


def build_filters(
    status: Optional[str] = None,
    account_id: Optional[str] = None,
    product_id: Optional[str] = None,
) -> PurchaseFilters:
    return PurchaseFilters(
        status=parse_status(status),
        account_id=parse_uuid(account_id, "accountId"),
        product_id=parse_uuid(product_id, "productId"),
    )


def total_pages(total: int, limit: int) -> int:
    """ceil(total / limit); 0 for an empty result."""
    if total <= 0:
        return 0
    return ceil(total / limit)
