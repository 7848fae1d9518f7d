"""Command-line interface for the product store."""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

# Add parent directory to path to allow imports when run as script
sys.path.insert(0, str(Path(__file__).parent.parent))

__all__ = ["main", "seed_products", "parse_args", "show_stats"]

from catalog.config import DB_PATH
from catalog.db import create_product, get_category_counts, get_product_count, init_db
from catalog.logging_config import log_event, setup_logging
from catalog.models import ValidationError


def seed_products(
    db_path: str,
    products: List[Dict[str, Any]],
) -> Tuple[List[Dict[str, Any]], List[Tuple[int, str]]]:
    """Create each product in ``products``.

    Invalid entries are reported and skipped; the rest are still created.

    Returns:
        (created documents, [(index, error message), ...])
    """
    created: List[Dict[str, Any]] = []
    failures: List[Tuple[int, str]] = []

    for index, fields in enumerate(products):
        try:
            created.append(create_product(db_path, fields))
        except ValidationError as e:
            failures.append((index, str(e)))
            log_event(
                "seed_validation_error",
                {"message": f"Skipping product #{index}: {e}", "index": index, "fields": e.fields},
                level=logging.WARNING,
            )

    log_event(
        "seed",
        {"message": f"Seeded {len(created)} products", "created": len(created), "failed": len(failures)},
    )
    return created, failures


def _load_seed_file(path: str) -> List[Dict[str, Any]]:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        # Accept the API envelope as well as a bare list
        data = data.get("data", [])
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a JSON list of products")
    return data


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Product catalog store management",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Create the database schema
  python -m catalog.cli --init

  # Load products from a JSON file (a list, or a {"data": [...]} envelope)
  python -m catalog.cli --seed data/products.json

  # Show database statistics
  python -m catalog.cli --stats
        """,
    )

    parser.add_argument(
        "--db",
        default=DB_PATH,
        help=f"SQLite database path (default: {DB_PATH})",
    )
    parser.add_argument(
        "--init",
        action="store_true",
        help="Create the database schema and exit",
    )
    parser.add_argument(
        "--seed",
        metavar="PATH",
        help="Create products from a JSON file",
    )
    parser.add_argument(
        "--stats",
        action="store_true",
        help="Show database statistics and exit",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    return parser.parse_args(argv)


def show_stats(db_path: str) -> None:
    """Display database statistics."""
    init_db(db_path)

    print(f"\n{'='*50}")
    print(f"Database: {db_path}")
    print(f"{'='*50}")

    total = get_product_count(db_path)
    print(f"\nTotal products: {total}")

    print("\nProducts by category:")
    counts = get_category_counts(db_path)
    if counts:
        for category, count in counts.items():
            print(f"  {category}: {count}")
    else:
        print("  No products yet")

    print()


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for CLI."""
    args = parse_args(argv)
    setup_logging(level=logging.DEBUG if args.verbose else logging.INFO, log_to_file=False)

    if args.stats:
        show_stats(args.db)
        return 0

    init_db(args.db)
    if args.init:
        print(f"Initialized database: {args.db}")
        return 0

    if args.seed:
        try:
            products = _load_seed_file(args.seed)
        except (OSError, ValueError) as e:
            print(f"Error: could not read seed file: {e}", file=sys.stderr)
            return 1

        created, failures = seed_products(args.db, products)
        print(f"\nCreated {len(created)} products in {args.db}")
        for index, message in failures:
            print(f"  Skipped #{index}: {message}")
        return 1 if failures and not created else 0

    print("Nothing to do. Use --init, --seed PATH or --stats (see --help).")
    return 0


if __name__ == "__main__":
    sys.exit(main())
