"""
Data Generation Module
"""
from .generators import (
    SAMPLE_PRODUCTS,
    AccountGenerator,
    DataGenerator,
    ProductGenerator,
    PurchaseGenerator,
    seed_generators,
)

__all__ = [
    "SAMPLE_PRODUCTS",
    "AccountGenerator",
    "DataGenerator",
    "ProductGenerator",
    "PurchaseGenerator",
    "seed_generators",
]
