"""
Verify the catalog data: statistics and integrity report
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from src.services.catalog import get_catalog_info, CatalogDatabase


def main():
    info = get_catalog_info()
    stats = info["statistics"]
    integrity = info["integrity"]

    print("=" * 80)
    print("CATALOG STATISTICS")
    print("=" * 80)
    print(f"Database: {info['database_path']} ({info['database_size_mb']:.2f} MB)")
    print(f"Departments: {stats.total_departments}")
    print(f"Categories: {stats.total_categories}")
    print(f"Attributes: {stats.total_attributes}")
    print(f"Products: {stats.total_products}")
    print(f"Users: {stats.total_users}")
    print(
        f"Generated: {stats.generated_products} | Graded: {stats.graded_products} "
        f"| Pending: {stats.pending_grading}"
    )
    if stats.average_ai_confidence is not None:
        print(f"Average AI confidence: {stats.average_ai_confidence:.2f}")

    if stats.products_by_department:
        print("\nProducts by department:")
        for name, count in stats.products_by_department.items():
            print(f"  - {name}: {count}")

    print("\n" + "=" * 80)
    print("INTEGRITY REPORT")
    print("=" * 80)
    print(f"Integrity passed: {'YES' if integrity.integrity_passed else 'NO'}")
    for issue in integrity.issues_found:
        print(f"  - {issue}")

    # Sample products
    products = CatalogDatabase().list_products(limit=5)
    if products:
        print("\nFirst 5 products:")
        for product in products:
            category = product.category.name if product.category else product.category_id
            print(f"  - {product.id}: {product.name} [{category}]")
            for attr in product.attributes:
                print(f"      {attr.name}: {attr.value or '-'}")

    return 0 if integrity.integrity_passed else 1


if __name__ == "__main__":
    sys.exit(main())
