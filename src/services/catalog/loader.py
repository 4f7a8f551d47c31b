"""
Taxonomy CSV loading with encoding handling and idempotent import
"""

import pandas as pd
from pathlib import Path
from typing import Dict, Optional, Tuple, Any
import logging

from .config import TAXONOMY_COLUMNS, OPTIONS_SEPARATOR, VALID_DATA_TYPES
from .models import CategoryInput, AttributeInput, ImportReport
from .database import CatalogDatabase

# Configure logger
logger = logging.getLogger(__name__)

REQUIRED_TAXONOMY_COLUMNS = ["department", "category"]
TRUE_STRINGS = {"true", "yes", "y", "1"}


class TaxonomyCSVLoader:
    """Loads taxonomy CSV files and applies them to the catalog"""

    def __init__(self):
        self.expected_columns = TAXONOMY_COLUMNS

    def load(self, csv_path: Path) -> pd.DataFrame:
        """
        Load taxonomy CSV with encoding fallback and column checks

        Args:
            csv_path: Path to CSV file

        Returns:
            DataFrame with the taxonomy columns (missing optional columns empty)

        Raises:
            FileNotFoundError: If CSV file doesn't exist
            ValueError: If CSV has wrong structure
        """
        csv_path = Path(csv_path)

        if not csv_path.exists():
            error_msg = f"CSV file not found: {csv_path.absolute()}"
            logger.error(error_msg)
            raise FileNotFoundError(error_msg)

        logger.info(f"Loading taxonomy from: {csv_path.absolute()}")

        # Try UTF-8 first, fallback to latin-1
        try:
            df = pd.read_csv(csv_path, encoding="utf-8", dtype=str)
            encoding_used = "utf-8"
        except UnicodeDecodeError as e:
            logger.warning(f"UTF-8 encoding failed: {e}")
            df = pd.read_csv(csv_path, encoding="latin-1", dtype=str)
            encoding_used = "latin-1"
        except Exception as e:
            error_msg = f"Failed to load CSV: {e}"
            logger.error(error_msg)
            raise ValueError(error_msg)

        logger.info(f"CSV loaded: {len(df)} rows, {len(df.columns)} columns")
        logger.debug(f"Encoding used: {encoding_used}")

        df.columns = [str(col).strip().lower() for col in df.columns]

        missing_columns = [
            col for col in REQUIRED_TAXONOMY_COLUMNS if col not in df.columns
        ]
        if missing_columns:
            error_msg = f"CSV is missing required columns: {missing_columns}"
            logger.error(error_msg)
            raise ValueError(error_msg)

        extra_columns = [col for col in df.columns if col not in self.expected_columns]
        if extra_columns:
            logger.warning(
                f"CSV contains extra columns (will be ignored): {extra_columns}"
            )

        for col in self.expected_columns:
            if col not in df.columns:
                df[col] = None

        df = df[self.expected_columns]
        df = df.where(pd.notna(df), None)
        return df

    def parse_row(self, row: Dict[str, Any]) -> Dict[str, Any]:
        """
        Normalize one CSV row

        Returns:
            Dict with stripped names, lower-cased data_type, bool is_required
            and a list of options
        """
        def clean(value: Any) -> Optional[str]:
            if value is None or pd.isna(value):
                return None
            text = str(value).strip()
            return text or None

        options_raw = clean(row.get("options"))
        options = []
        if options_raw:
            for option in options_raw.split(OPTIONS_SEPARATOR):
                option = option.strip()
                if option and option not in options:
                    options.append(option)

        data_type = (clean(row.get("data_type")) or "text").lower()
        if data_type not in VALID_DATA_TYPES:
            raise ValueError(f"Unknown data_type: {data_type}")

        return {
            "department": clean(row.get("department")),
            "category": clean(row.get("category")),
            "subcategory": clean(row.get("subcategory")),
            "attribute": clean(row.get("attribute")),
            "data_type": data_type,
            "is_required": (clean(row.get("is_required")) or "").lower() in TRUE_STRINGS,
            "options": options,
        }

    def apply(self, df: pd.DataFrame, db: CatalogDatabase) -> ImportReport:
        """
        Create missing departments, categories, subcategories, attributes and
        options; rows already present are left untouched

        Args:
            df: DataFrame from load()
            db: Target database

        Returns:
            ImportReport with creation counts and skipped rows
        """
        report = ImportReport(total_rows=len(df))

        departments = {d.name.lower(): d.id for d in db.list_departments()}
        categories: Dict[Tuple[int, Optional[int], str], int] = {
            (c.department_id, c.parent_category_id, c.name.lower()): c.id
            for c in db.list_categories()
        }
        attributes: Dict[Tuple[int, str], Any] = {
            (a.category_id, a.name.lower()): a for a in db.list_attributes()
        }
        known_options: Dict[int, set] = {}

        for idx, raw in enumerate(df.to_dict("records")):
            row_number = idx + 2  # 1-based index plus header
            try:
                row = self.parse_row(raw)
                if not row["department"] or not row["category"]:
                    raise ValueError("department and category are required")

                dept_key = row["department"].lower()
                if dept_key not in departments:
                    departments[dept_key] = db.create_department(row["department"]).id
                    report.departments_created += 1
                department_id = departments[dept_key]

                cat_key = (department_id, None, row["category"].lower())
                if cat_key not in categories:
                    categories[cat_key] = db.create_category(
                        CategoryInput(name=row["category"], department_id=department_id)
                    ).id
                    report.categories_created += 1
                target_id = categories[cat_key]

                if row["subcategory"]:
                    sub_key = (department_id, target_id, row["subcategory"].lower())
                    if sub_key not in categories:
                        categories[sub_key] = db.create_category(
                            CategoryInput(
                                name=row["subcategory"],
                                department_id=department_id,
                                parent_category_id=target_id,
                            )
                        ).id
                        report.subcategories_created += 1
                    target_id = categories[sub_key]

                if not row["attribute"]:
                    continue

                attr_key = (target_id, row["attribute"].lower())
                existing = attributes.get(attr_key)
                if existing is None:
                    created = db.create_attribute(
                        AttributeInput(
                            name=row["attribute"],
                            data_type=row["data_type"],
                            is_required=row["is_required"],
                            category_id=target_id,
                            options=row["options"],
                        )
                    )
                    attributes[attr_key] = created
                    known_options[created.id] = set(created.option_values)
                    report.attributes_created += 1
                    report.options_created += len(row["options"])
                else:
                    known = known_options.setdefault(
                        existing.id, set(existing.option_values)
                    )
                    for option in row["options"]:
                        if option not in known:
                            db.add_attribute_option(existing.id, option)
                            known.add(option)
                            report.options_created += 1

            except ValueError as e:
                logger.warning(f"Row {row_number} skipped: {e}")
                report.skipped_rows.append({"row": row_number, "error": str(e)})

        logger.info(
            f"Taxonomy import: {report.departments_created} departments, "
            f"{report.categories_created} categories, "
            f"{report.subcategories_created} subcategories, "
            f"{report.attributes_created} attributes, "
            f"{report.options_created} options, "
            f"{len(report.skipped_rows)} rows skipped"
        )
        return report
