"""
Shared helpers
"""

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current UTC instant as a naive datetime, matching the stored timestamps."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
