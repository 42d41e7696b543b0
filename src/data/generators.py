"""
Synthetic Data Generator

Generates storefront data for development and demos:
- Accounts signed in through Google
- Products, starting with the sample catalog
- Purchases with a realistic payment status mix
"""

import random
import uuid
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, List, Optional

import polars as pl
import structlog
from faker import Faker

from src.utils import utcnow

logger = structlog.get_logger(__name__)

fake = Faker()


# =============================================================================
# CONFIGURATION
# =============================================================================

SAMPLE_PRODUCTS: List[Dict[str, object]] = [
    {
        "name": "MacBook Pro",
        "description": "Latest MacBook Pro with M1 chip",
        "price": 1999,
        "image_url": "https://images.unsplash.com/photo-1517336714731-489689fd1ca8?w=500",
    },
    {
        "name": "iPhone 15",
        "description": "Latest iPhone with advanced features",
        "price": 999,
        "image_url": "https://images.unsplash.com/photo-1592750475338-74b7b21085ab?w=500",
    },
    {
        "name": "AirPods Pro",
        "description": "Wireless earbuds with noise cancellation",
        "price": 249,
        "image_url": "https://images.unsplash.com/photo-1606220588913-b3aacb4d2f46?w=500",
    },
]

PAYMENT_STATUSES = [
    ("completed", 0.80),
    ("pending", 0.12),
    ("failed", 0.08),
]

PRODUCT_LINES = ["Laptop", "Phone", "Tablet", "Headphones", "Watch", "Camera", "Speaker", "Monitor"]


def seed_generators(seed: int) -> None:
    """Make generated datasets reproducible."""
    random.seed(seed)
    Faker.seed(seed)


# =============================================================================
# GENERATORS
# =============================================================================

class AccountGenerator:
    """Generate storefront accounts"""

    def generate(self, n: int = 200, start_date: Optional[datetime] = None) -> pl.DataFrame:
        """Generate n accounts created between start_date and now"""
        now = utcnow()
        start_date = start_date or now - timedelta(days=365)

        accounts = []
        for _ in range(n):
            name = fake.name()
            accounts.append({
                "account_id": str(uuid.uuid4()),
                "name": name,
                "email": fake.unique.email(),
                "google_id": str(fake.unique.random_number(digits=21, fix_len=True)),
                "profile_image": f"https://i.pravatar.cc/150?u={fake.uuid4()}",
                "is_admin": False,
                "created_at": fake.date_time_between(start_date=start_date, end_date=now),
            })

        return pl.DataFrame(accounts)


class ProductGenerator:
    """Generate a product catalog, led by the sample products"""

    def generate(self, n: int = 50, start_date: Optional[datetime] = None) -> pl.DataFrame:
        """Generate n products (at least the sample catalog)"""
        now = utcnow()
        start_date = start_date or now - timedelta(days=365)

        products = []
        for sample in SAMPLE_PRODUCTS[:n]:
            products.append({
                "product_id": str(uuid.uuid4()),
                **sample,
                "price": float(sample["price"]),
                "created_at": start_date,
            })

        for _ in range(max(n - len(products), 0)):
            line = random.choice(PRODUCT_LINES)
            products.append({
                "product_id": str(uuid.uuid4()),
                "name": f"{fake.word().title()} {line}",
                "description": fake.sentence(nb_words=10),
                "price": round(random.uniform(19, 2499), 2),
                "image_url": f"https://picsum.photos/seed/{fake.uuid4()[:8]}/500",
                "created_at": fake.date_time_between(start_date=start_date, end_date=now),
            })

        return pl.DataFrame(products)


class PurchaseGenerator:
    """Generate purchases between existing accounts and products"""

    def __init__(self, accounts_df: pl.DataFrame, products_df: pl.DataFrame):
        self.accounts = accounts_df.select(["account_id", "created_at"]).to_dicts()
        self.products = products_df.select(["product_id", "price", "created_at"]).to_dicts()

    def generate(self, n: int = 2000) -> pl.DataFrame:
        """Generate n purchases; each happens after both its account and product exist"""
        now = utcnow()
        statuses = [s[0] for s in PAYMENT_STATUSES]
        weights = [s[1] for s in PAYMENT_STATUSES]

        purchases = []
        for _ in range(n):
            account = random.choice(self.accounts)
            product = random.choice(self.products)
            earliest = max(account["created_at"], product["created_at"])
            created_at = fake.date_time_between(start_date=earliest, end_date=now)

            # Recent checkouts are more likely to still be pending
            if (now - created_at).days < 2:
                status = random.choice(statuses)
            else:
                status = random.choices(statuses, weights=weights)[0]

            purchases.append({
                "purchase_id": str(uuid.uuid4()),
                "account_id": account["account_id"],
                "product_id": product["product_id"],
                "payment_status": status,
                "amount": product["price"],
                "stripe_payment_id": f"pi_{fake.unique.pystr(min_chars=24, max_chars=24)}",
                "created_at": created_at,
            })

        return pl.DataFrame(purchases)


# =============================================================================
# MAIN GENERATOR
# =============================================================================

class DataGenerator:
    """Main data generator orchestrator"""

    def __init__(self, output_dir: Optional[str] = None):
        self.output_dir = Path(output_dir or "data/generated")

    def generate_all(
        self,
        n_accounts: int = 200,
        n_products: int = 50,
        n_purchases: int = 2000,
        save: bool = True,
    ) -> Dict[str, pl.DataFrame]:
        """Generate complete dataset"""
        logger.info(
            "Generating synthetic storefront data",
            accounts=n_accounts,
            products=n_products,
            purchases=n_purchases,
        )

        accounts_df = AccountGenerator().generate(n_accounts)
        products_df = ProductGenerator().generate(n_products)
        purchases_df = PurchaseGenerator(accounts_df, products_df).generate(n_purchases)

        data = {
            "accounts": accounts_df,
            "products": products_df,
            "purchases": purchases_df,
        }

        if save:
            self._save_data(data)

        return data

    def _save_data(self, data: Dict[str, pl.DataFrame]) -> None:
        """Save generated data as CSV"""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        for name, df in data.items():
            csv_path = self.output_dir / f"{name}.csv"
            df.write_csv(csv_path)
            logger.info("Saved dataset", name=name, rows=len(df), path=str(csv_path))
