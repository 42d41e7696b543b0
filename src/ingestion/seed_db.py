"""
Database Seeding

Loads generated CSV datasets into the record store and inserts the
sample catalog into an empty store.
"""

import asyncio
import uuid
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List

import polars as pl
import structlog
from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from src.data.generators import SAMPLE_PRODUCTS
from src.database.connection import get_db, init_database, close_database
from src.database.models import Account, PaymentStatus, Product, Purchase
from src.utils import utcnow

logger = structlog.get_logger(__name__)

DATA_DIR = Path("data/generated")
CHUNK_SIZE = 1000


async def execute_batch_insert(db: AsyncSession, model: Any, records: List[Dict[str, Any]]) -> int:
    """Insert records in chunks, skipping rows whose keys already exist"""
    if not records:
        return 0

    dialect = db.get_bind().dialect.name
    insert = postgresql.insert if dialect == "postgresql" else sqlite.insert

    for i in range(0, len(records), CHUNK_SIZE):
        chunk = records[i:i + CHUNK_SIZE]
        await db.execute(insert(model).values(chunk).on_conflict_do_nothing())

    logger.info("Inserted records", table=model.__tablename__, count=len(records))
    return len(records)


def _read_csv(name: str, data_dir: Path, text_columns: tuple = ()) -> pl.DataFrame:
    path = data_dir / f"{name}.csv"
    if not path.exists():
        raise FileNotFoundError(f"Dataset not found: {path}. Run scripts/generate_dataset.py first.")
    return pl.read_csv(
        path,
        try_parse_dates=True,
        schema_overrides={column: pl.Utf8 for column in text_columns},
    )


async def seed_accounts(db: AsyncSession, data_dir: Path = DATA_DIR) -> int:
    """Load accounts from CSV"""
    df = _read_csv("accounts", data_dir, text_columns=("google_id",))
    now = utcnow()

    records = [
        {
            "account_id": uuid.UUID(row["account_id"]),
            "name": row["name"],
            "email": row["email"],
            "google_id": str(row["google_id"]),
            "profile_image": row["profile_image"],
            "is_admin": bool(row["is_admin"]),
            "created_at": row["created_at"],
            "updated_at": now,
        }
        for row in df.to_dicts()
    ]
    return await execute_batch_insert(db, Account, records)


async def seed_products(db: AsyncSession, data_dir: Path = DATA_DIR) -> int:
    """Load products from CSV"""
    df = _read_csv("products", data_dir)
    now = utcnow()

    records = [
        {
            "product_id": uuid.UUID(row["product_id"]),
            "name": row["name"],
            "description": row["description"] or "",
            "price": Decimal(str(row["price"])),
            "image_url": row["image_url"] or "",
            "created_at": row["created_at"],
            "updated_at": now,
        }
        for row in df.to_dicts()
    ]
    return await execute_batch_insert(db, Product, records)


async def seed_purchases(db: AsyncSession, data_dir: Path = DATA_DIR) -> int:
    """Load purchases from CSV"""
    df = _read_csv("purchases", data_dir)

    records = [
        {
            "purchase_id": uuid.UUID(row["purchase_id"]),
            "account_id": uuid.UUID(row["account_id"]),
            "product_id": uuid.UUID(row["product_id"]),
            "payment_status": PaymentStatus(row["payment_status"].lower()),
            "amount": Decimal(str(row["amount"])),
            "stripe_payment_id": row["stripe_payment_id"],
            "created_at": row["created_at"],
            "updated_at": row["created_at"],
        }
        for row in df.to_dicts()
    ]
    return await execute_batch_insert(db, Purchase, records)


async def seed_sample_products(db: AsyncSession) -> int:
    """
    Insert the sample catalog when the store has no products.

    Returns:
        Number of products inserted (0 if the catalog was not empty)
    """
    existing = await db.scalar(select(func.count()).select_from(Product))
    if existing:
        return 0

    db.add_all(
        Product(
            name=sample["name"],
            description=sample["description"],
            price=Decimal(str(sample["price"])),
            image_url=sample["image_url"],
        )
        for sample in SAMPLE_PRODUCTS
    )
    await db.flush()
    logger.info("Sample products added", count=len(SAMPLE_PRODUCTS))
    return len(SAMPLE_PRODUCTS)


async def seed_all(data_dir: Path = DATA_DIR, create_schema: bool = False) -> Dict[str, int]:
    """Load every generated dataset in dependency order"""
    logger.info("Starting database seeding", data_dir=str(data_dir))
    await init_database(create_schema=create_schema)

    try:
        async with get_db() as db:
            counts = {
                "accounts": await seed_accounts(db, data_dir),
                "products": await seed_products(db, data_dir),
                "purchases": await seed_purchases(db, data_dir),
            }
        logger.info("Database seeding completed", **counts)
        return counts
    finally:
        await close_database()


if __name__ == "__main__":
    asyncio.run(seed_all())
