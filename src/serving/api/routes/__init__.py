"""
API Routes Module
"""
from .health import router as health_router
from .admin import router as admin_router

__all__ = [
    "health_router",
    "admin_router",
]
