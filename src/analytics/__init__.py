"""
Analytics Aggregation Module
"""
from .engine import AggregationEngine
from .exceptions import (
    StorefrontAnalyticsError,
    NotFoundError,
    InvalidOperationError,
    AggregationError,
    AuthenticationError,
    AuthorizationError,
)
from .pagination import PageRequest, PurchaseFilters, build_filters, build_page_request

__all__ = [
    "AggregationEngine",
    "StorefrontAnalyticsError",
    "NotFoundError",
    "InvalidOperationError",
    "AggregationError",
    "AuthenticationError",
    "AuthorizationError",
    "PageRequest",
    "PurchaseFilters",
    "build_filters",
    "build_page_request",
]
