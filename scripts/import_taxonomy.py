"""
Import a taxonomy CSV into the catalog
"""

import sys
import argparse
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from src.services.catalog import import_taxonomy, get_catalog_info
from src.services.catalog.config import DATABASE_PATH, TAXONOMY_CSV_PATH


def main():
    parser = argparse.ArgumentParser(description="Import taxonomy CSV")
    parser.add_argument(
        "csv_path", nargs="?", type=Path, default=TAXONOMY_CSV_PATH, help="CSV file"
    )
    parser.add_argument("--db", type=Path, default=DATABASE_PATH, help="Database path")
    args = parser.parse_args()

    if not args.csv_path.exists():
        print(f"CSV file not found: {args.csv_path.absolute()}")
        print("Expected columns: department, category, subcategory, attribute, "
              "data_type, is_required, options")
        return 1

    print("=" * 80)
    print("STARTING TAXONOMY IMPORT")
    print("=" * 80)
    print(f"CSV file: {args.csv_path.absolute()}")
    print()

    try:
        report = import_taxonomy(csv_path=args.csv_path, db_path=args.db)
    except (FileNotFoundError, ValueError) as e:
        print(f"\nImport failed: {e}")
        return 1

    print("\n" + "=" * 80)
    print("IMPORT REPORT")
    print("=" * 80)
    print(f"Total rows: {report.total_rows}")
    print(f"Departments created: {report.departments_created}")
    print(f"Categories created: {report.categories_created}")
    print(f"Subcategories created: {report.subcategories_created}")
    print(f"Attributes created: {report.attributes_created}")
    print(f"Options created: {report.options_created}")

    if report.skipped_rows:
        print(f"\n Skipped rows: {len(report.skipped_rows)}")
        for skipped in report.skipped_rows[:10]:
            print(f"  - row {skipped['row']}: {skipped['error']}")

    info = get_catalog_info(db_path=args.db)
    stats = info["statistics"]
    print("\n" + "=" * 80)
    print("CATALOG INFO")
    print("=" * 80)
    print(f"Departments: {stats.total_departments}")
    print(f"Categories: {stats.total_categories}")
    print(f"Attributes: {stats.total_attributes}")
    print(f"Database size: {info['database_size_mb']:.2f} MB")
    return 0


if __name__ == "__main__":
    sys.exit(main())
