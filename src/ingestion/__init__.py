"""
Data Ingestion Module
"""
from .seed_db import (
    execute_batch_insert,
    seed_accounts,
    seed_all,
    seed_products,
    seed_purchases,
    seed_sample_products,
)

__all__ = [
    "execute_batch_insert",
    "seed_accounts",
    "seed_all",
    "seed_products",
    "seed_purchases",
    "seed_sample_products",
]
