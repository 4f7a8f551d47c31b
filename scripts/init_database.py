"""
Initialize the catalog database with schema, LLM providers, demo users and
a demo taxonomy
"""

import sys
import argparse
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import pandas as pd

from src.services.catalog import CatalogDatabase, UserInput, import_taxonomy
from src.services.catalog.config import (
    DATABASE_PATH,
    TAXONOMY_CSV_PATH,
    TAXONOMY_COLUMNS,
    ROLE_ADMIN,
    ROLE_USER,
    ROLE_HUMAN_GRADER,
)
from src.services.llm_gateway import LLMRegistry

DEMO_USERS = [
    ("admin", "admin@example.com", ROLE_ADMIN),
    ("grader", "grader@example.com", ROLE_HUMAN_GRADER),
    ("user", "user@example.com", ROLE_USER),
]

# department, category, subcategory, attribute, data_type, is_required, options
DEMO_TAXONOMY = [
    ("Electronics", "Audio", "Headphones", "Brand", "text", "yes", ""),
    ("Electronics", "Audio", "Headphones", "Wireless", "boolean", "yes", ""),
    ("Electronics", "Audio", "Headphones", "Color", "select", "no", "Black|White|Blue"),
    ("Electronics", "Audio", "Speakers", "Brand", "text", "yes", ""),
    ("Electronics", "Audio", "Speakers", "Power (W)", "number", "no", ""),
    ("Electronics", "Computers", "Laptops", "Brand", "text", "yes", ""),
    ("Electronics", "Computers", "Laptops", "Screen Size", "number", "yes", ""),
    ("Electronics", "Computers", "Laptops", "Release Date", "date", "no", ""),
    ("Home & Kitchen", "Kitchen", "Cookware", "Material", "select", "yes", "Steel|Cast Iron|Aluminium"),
    ("Home & Kitchen", "Kitchen", "Cookware", "Dishwasher Safe", "boolean", "no", ""),
    ("Home & Kitchen", "Furniture", "Chairs", "Material", "select", "yes", "Wood|Metal|Plastic"),
    ("Home & Kitchen", "Furniture", "Chairs", "Seat Height (cm)", "number", "no", ""),
]


def write_demo_csv(csv_path: Path) -> Path:
    """Write the demo taxonomy to CSV"""
    csv_path.parent.mkdir(parents=True, exist_ok=True)
    pd.DataFrame(DEMO_TAXONOMY, columns=TAXONOMY_COLUMNS).to_csv(csv_path, index=False)
    return csv_path


def seed_users(db: CatalogDatabase) -> int:
    created = 0
    for username, email, role in DEMO_USERS:
        if db.get_user_by_email(email):
            continue
        db.create_user(UserInput(username=username, email=email, role=role))
        created += 1
    return created


def main():
    parser = argparse.ArgumentParser(description="Initialize the catalog database")
    parser.add_argument("--db", type=Path, default=DATABASE_PATH, help="Database path")
    parser.add_argument(
        "--no-demo", action="store_true", help="Only create schema and providers"
    )
    args = parser.parse_args()

    print("=" * 80)
    print("INITIALIZING CATALOG DATABASE")
    print("=" * 80)
    print(f"Database: {args.db.absolute()}")

    db = CatalogDatabase(args.db)
    db.create_schema()
    print("Schema created")

    registry = LLMRegistry(db)
    print(f"LLM providers seeded: {registry.seed_default_providers()}")

    if args.no_demo:
        return

    print(f"Demo users created: {seed_users(db)}")

    csv_path = TAXONOMY_CSV_PATH
    if not csv_path.exists():
        write_demo_csv(csv_path)
        print(f"Demo taxonomy written to: {csv_path}")

    report = import_taxonomy(csv_path=csv_path, db_path=args.db)
    print(f"\nDepartments created: {report.departments_created}")
    print(f"Categories created: {report.categories_created}")
    print(f"Subcategories created: {report.subcategories_created}")
    print(f"Attributes created: {report.attributes_created}")
    if report.skipped_rows:
        print(f"Skipped rows: {len(report.skipped_rows)}")

    print("\n" + "=" * 80)
    print("DONE")
    print("=" * 80)


if __name__ == "__main__":
    main()
