"""
Unit Tests - Demo Data Generation and Seeding
"""
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from src.analytics.engine import AggregationEngine
from src.data.generators import (
    AccountGenerator,
    DataGenerator,
    PAYMENT_STATUSES,
    ProductGenerator,
    PurchaseGenerator,
    SAMPLE_PRODUCTS,
    seed_generators,
)
from src.database.models import Account, Product, Purchase
from src.ingestion.seed_db import (
    seed_accounts,
    seed_products,
    seed_purchases,
    seed_sample_products,
)


@pytest.fixture(autouse=True)
def reproducible():
    seed_generators(42)


class TestGenerators:
    """Tests for the synthetic storefront generators"""

    def test_catalog_starts_with_samples(self):
        products = ProductGenerator().generate(6)

        assert len(products) == 6
        assert products["name"].to_list()[:3] == [s["name"] for s in SAMPLE_PRODUCTS]
        assert products["price"].to_list()[:3] == [1999.0, 999.0, 249.0]

    def test_small_catalog_is_truncated_samples(self):
        products = ProductGenerator().generate(2)

        assert products["name"].to_list() == ["MacBook Pro", "iPhone 15"]

    def test_accounts(self):
        accounts = AccountGenerator().generate(10)

        assert len(accounts) == 10
        assert accounts["email"].n_unique() == 10
        assert all(len(g) == 21 for g in accounts["google_id"].to_list())
        assert not any(accounts["is_admin"].to_list())

    def test_purchases_follow_account_and_product(self):
        accounts = AccountGenerator().generate(8)
        products = ProductGenerator().generate(5)
        purchases = PurchaseGenerator(accounts, products).generate(50)

        account_created = dict(zip(accounts["account_id"], accounts["created_at"]))
        product_created = dict(zip(products["product_id"], products["created_at"]))
        prices = dict(zip(products["product_id"], products["price"]))
        valid_statuses = {s for s, _ in PAYMENT_STATUSES}

        for row in purchases.to_dicts():
            assert row["created_at"] >= account_created[row["account_id"]]
            assert row["created_at"] >= product_created[row["product_id"]]
            assert row["amount"] == prices[row["product_id"]]
            assert row["payment_status"] in valid_statuses
            assert row["stripe_payment_id"].startswith("pi_")


class TestSeeding:
    """Tests for loading data into the record store"""

    async def test_sample_products_only_into_empty_catalog(self, test_db):
        assert await seed_sample_products(test_db) == 3
        assert await seed_sample_products(test_db) == 0

        prices = (await test_db.execute(select(Product.price).order_by(Product.price))).scalars().all()
        assert prices == [Decimal("249.00"), Decimal("999.00"), Decimal("1999.00")]

    async def test_sample_products_skip_populated_catalog(self, test_db, store):
        await store.product()

        assert await seed_sample_products(test_db) == 0

    async def test_generated_csvs_load(self, test_db, tmp_path):
        data = DataGenerator(output_dir=str(tmp_path)).generate_all(
            n_accounts=6, n_products=4, n_purchases=25
        )
        assert {p.name for p in tmp_path.iterdir()} == {"accounts.csv", "products.csv", "purchases.csv"}

        assert await seed_accounts(test_db, tmp_path) == 6
        assert await seed_products(test_db, tmp_path) == 4
        assert await seed_purchases(test_db, tmp_path) == 25

        for model, expected in ((Account, 6), (Product, 4), (Purchase, 25)):
            assert await test_db.scalar(select(func.count()).select_from(model)) == expected

        summary = await AggregationEngine().dashboard_summary(test_db)
        completed = data["purchases"].filter(data["purchases"]["payment_status"] == "completed")
        assert summary.total_purchases == 25
        assert summary.completed_purchases == len(completed)

    async def test_reloading_skips_existing_rows(self, test_db, tmp_path):
        DataGenerator(output_dir=str(tmp_path)).generate_all(
            n_accounts=3, n_products=3, n_purchases=5
        )
        await seed_accounts(test_db, tmp_path)
        await seed_accounts(test_db, tmp_path)

        assert await test_db.scalar(select(func.count()).select_from(Account)) == 3

    async def test_missing_dataset(self, test_db, tmp_path):
        with pytest.raises(FileNotFoundError, match="generate_dataset.py"):
            await seed_products(test_db, tmp_path)
