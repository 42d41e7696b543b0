"""
Database Module
"""
from .connection import init_database, close_database, get_db, get_db_dependency
from .models import Base, Account, Product, Purchase, PaymentStatus

__all__ = [
    "init_database",
    "close_database",
    "get_db",
    "get_db_dependency",
    "Base",
    "Account",
    "Product",
    "Purchase",
    "PaymentStatus",
]
