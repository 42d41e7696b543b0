"""
Analytics Service Exceptions

Every application error carries a machine-readable code and the HTTP status
the API layer renders it with.
"""

from typing import Any, Dict, Optional


class StorefrontAnalyticsError(Exception):
    """Base class for application errors."""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}


class NotFoundError(StorefrontAnalyticsError):
    """A referenced account, product or purchase does not exist."""

    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            f"{resource} not found",
            code="NOT_FOUND",
            status_code=404,
            details={"resource": resource, "id": str(identifier)},
        )


class InvalidOperationError(StorefrontAnalyticsError):
    """The request is well-formed but not allowed in the current state."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="INVALID_OPERATION", status_code=400, details=details)


class AggregationError(StorefrontAnalyticsError):
    """A required sub-aggregate could not be computed; no partial result is returned."""

    def __init__(self, operation: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            "Failed to compute analytics",
            code="AGGREGATION_FAILED",
            status_code=500,
            details={"operation": operation, **(details or {})},
        )


class AuthenticationError(StorefrontAnalyticsError):
    """Missing, invalid or expired credentials."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, code="UNAUTHENTICATED", status_code=401)


class AuthorizationError(StorefrontAnalyticsError):
    """Authenticated caller lacks the admin flag."""

    def __init__(self, message: str = "Admin access required"):
        super().__init__(message, code="FORBIDDEN", status_code=403)
