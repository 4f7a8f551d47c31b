"""
Catalog Service - Public API

This service stores the product taxonomy (departments, categories and their
attributes), products with attribute values, and users in SQLite.

Usage:
    from src.services.catalog import import_taxonomy, CatalogDatabase

    # Load a taxonomy CSV
    report = import_taxonomy('data/input/taxonomy.csv')

    # Direct database access
    db = CatalogDatabase()
    category = db.get_category(1)
"""

import logging
from pathlib import Path
from typing import Optional, Dict, Any

from .config import (
    DATABASE_PATH,
    TAXONOMY_CSV_PATH,
    EXPORT_DIR,
    LOG_DIR,
    LOG_FORMAT,
    LOG_DATE_FORMAT,
)
from .models import (
    Department,
    Category,
    CategoryRef,
    CategoryInput,
    Attribute,
    AttributeInput,
    AttributeOption,
    Product,
    ProductAttributeValue,
    User,
    UserInput,
    Page,
    CatalogStatistics,
    IntegrityReport,
    ImportReport,
    RecordNotFoundError,
)
from .loader import TaxonomyCSVLoader
from .validator import CatalogValidator
from .database import CatalogDatabase

# Configure logging
LOG_DIR.mkdir(parents=True, exist_ok=True)

# Main log file (all levels)
main_log_handler = logging.FileHandler(LOG_DIR / "catalog.log", mode="w")
main_log_handler.setLevel(logging.DEBUG)
main_log_handler.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT))

# Error log file (errors only)
error_log_handler = logging.FileHandler(LOG_DIR / "catalog_errors.log", mode="w")
error_log_handler.setLevel(logging.ERROR)
error_log_handler.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT))

console_handler = logging.StreamHandler()
console_handler.setLevel(logging.INFO)
console_handler.setFormatter(logging.Formatter(LOG_FORMAT, LOG_DATE_FORMAT))

logger = logging.getLogger("src.services.catalog")
logger.setLevel(logging.DEBUG)
logger.addHandler(main_log_handler)
logger.addHandler(error_log_handler)
logger.addHandler(console_handler)

# Prevent duplicate logs
logger.propagate = False


def import_taxonomy(
    csv_path: Optional[Path] = None, db_path: Optional[Path] = None
) -> ImportReport:
    """
    Taxonomy import pipeline: Load CSV → Create schema → Apply rows

    Rows that already exist in the catalog are left untouched, so the same
    file can be imported repeatedly.

    Args:
        csv_path: Path to CSV file (defaults to config.TAXONOMY_CSV_PATH)
        db_path: Path to database file (defaults to config.DATABASE_PATH)

    Returns:
        ImportReport with creation counts and skipped rows

    Raises:
        FileNotFoundError: If CSV file doesn't exist
        ValueError: If the CSV lacks the department/category columns

    Example:
        >>> report = import_taxonomy('data/input/taxonomy.csv')
        >>> print(f"Created {report.attributes_created} attributes")
    """
    csv_path = Path(csv_path) if csv_path else TAXONOMY_CSV_PATH
    db_path = Path(db_path) if db_path else DATABASE_PATH

    logger.info("=" * 80)
    logger.info("STARTING TAXONOMY IMPORT")
    logger.info("=" * 80)

    logger.info("STEP 1: Loading CSV...")
    loader = TaxonomyCSVLoader()
    df = loader.load(csv_path)

    logger.info("STEP 2: Creating database schema...")
    db = CatalogDatabase(db_path)
    db.create_schema()

    logger.info("STEP 3: Applying taxonomy rows...")
    report = loader.apply(df, db)

    if report.skipped_rows:
        logger.warning(f"{len(report.skipped_rows)} rows were skipped:")
        for skipped in report.skipped_rows[:10]:
            logger.warning(f"  Row {skipped['row']}: {skipped['error']}")

    logger.info("=" * 80)
    logger.info("TAXONOMY IMPORT COMPLETE!")
    logger.info("=" * 80)

    return report


def export_catalog(
    fmt: str = "json",
    db_path: Optional[Path] = None,
    output_path: Optional[Path] = None,
) -> Path:
    """
    Export all products to JSON or CSV

    Args:
        fmt: "json" or "csv"
        db_path: Path to database file (defaults to config.DATABASE_PATH)
        output_path: Output file (defaults to data/exports/products.<fmt>)

    Returns:
        Path of the written file
    """
    db_path = Path(db_path) if db_path else DATABASE_PATH
    output_path = (
        Path(output_path) if output_path else (EXPORT_DIR / f"products.{fmt}")
    )

    db = CatalogDatabase(db_path)
    count = db.export_products(output_path, fmt=fmt)

    logger.info(f" Exported {count} products to {output_path}")
    return output_path


def get_catalog_info(db_path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Get comprehensive catalog information

    Args:
        db_path: Path to database file (defaults to config.DATABASE_PATH)

    Returns:
        Dictionary with statistics and integrity report

    Example:
        >>> info = get_catalog_info()
        >>> print(f"Total products: {info['statistics'].total_products}")
    """
    db_path = Path(db_path) if db_path else DATABASE_PATH

    logger.info("Gathering catalog information...")

    db = CatalogDatabase(db_path)
    db.create_schema()

    return {
        "statistics": db.get_catalog_statistics(),
        "integrity": db.verify_catalog_integrity(),
        "database_path": str(db_path.absolute()),
        "database_size_mb": (
            db_path.stat().st_size / (1024 * 1024) if db_path.exists() else 0
        ),
    }


# Public exports
__all__ = [
    # Main functions
    "import_taxonomy",
    "export_catalog",
    "get_catalog_info",
    # Core classes
    "CatalogDatabase",
    "CatalogValidator",
    "TaxonomyCSVLoader",
    # Models
    "Department",
    "Category",
    "CategoryRef",
    "CategoryInput",
    "Attribute",
    "AttributeInput",
    "AttributeOption",
    "Product",
    "ProductAttributeValue",
    "User",
    "UserInput",
    "Page",
    "CatalogStatistics",
    "IntegrityReport",
    "ImportReport",
    "RecordNotFoundError",
    # Config paths
    "DATABASE_PATH",
    "TAXONOMY_CSV_PATH",
]
