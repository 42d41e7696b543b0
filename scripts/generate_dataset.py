"""
Storefront Dataset Generator

Writes accounts.csv, products.csv and purchases.csv, and optionally loads
them into the configured database.

Usage:
    python scripts/generate_dataset.py --accounts 500 --purchases 10000
    python scripts/generate_dataset.py --seed-db --create-schema
"""

import argparse
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from src.config.logging import configure_logging  # noqa: E402
from src.data.generators import DataGenerator, seed_generators  # noqa: E402
from src.ingestion.seed_db import seed_all  # noqa: E402

DEFAULT_OUTPUT = Path(__file__).resolve().parent.parent / "data" / "generated"


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate a synthetic storefront dataset")
    parser.add_argument("--accounts", type=int, default=200, help="Number of accounts")
    parser.add_argument("--products", type=int, default=50, help="Number of products (min 3 sample products)")
    parser.add_argument("--purchases", type=int, default=2000, help="Number of purchases")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    parser.add_argument("--output", type=Path, default=DEFAULT_OUTPUT, help="Output directory")
    parser.add_argument("--seed-db", action="store_true", help="Load the generated CSVs into the database")
    parser.add_argument("--create-schema", action="store_true", help="Create missing tables before loading")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    configure_logging(log_format="text")
    seed_generators(args.seed)

    DataGenerator(output_dir=str(args.output)).generate_all(
        n_accounts=args.accounts,
        n_products=args.products,
        n_purchases=args.purchases,
    )

    if args.seed_db:
        asyncio.run(seed_all(data_dir=args.output, create_schema=args.create_schema))


if __name__ == "__main__":
    main()
