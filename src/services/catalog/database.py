"""
SQLite database operations for the product catalog
Taxonomy (departments, categories, attributes), products and users
"""

import sqlite3
import json
import logging
from pathlib import Path
from typing import List, Optional, Dict, Any, Tuple
from contextlib import contextmanager
from datetime import datetime, timezone

import pandas as pd

from .config import (
    DATABASE_PATH,
    USERS_TABLE,
    DEPARTMENTS_TABLE,
    CATEGORIES_TABLE,
    ATTRIBUTES_TABLE,
    ATTRIBUTE_OPTIONS_TABLE,
    PRODUCTS_TABLE,
    PRODUCT_ATTRIBUTES_TABLE,
    GENERATED_PRODUCTS_TABLE,
    HUMAN_GRADED_TABLE,
    CREATE_TABLES_SQL,
    CREATE_INDEXES_SQL,
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    MAX_NAME_LENGTH,
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
    RecordNotFoundError,
)
from .validator import CatalogValidator

# Configure logger
logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class CatalogDatabase:
    """Manages SQLite database operations for the taxonomy, products and users"""

    def __init__(self, db_path: Path = DATABASE_PATH):
        self.db_path = Path(db_path)
        self.validator = CatalogValidator()

        # Ensure directory exists
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        logger.info(f"Database initialized at: {self.db_path.absolute()}")

    @contextmanager
    def get_connection(self):
        """
        Context manager for database connections
        Commits on success, rolls back and re-raises on error
        """
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row  # Access columns by name
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            logger.debug(f"Database connection opened: {self.db_path}")
            yield conn
            conn.commit()
            logger.debug("Transaction committed")
        except Exception as e:
            conn.rollback()
            logger.error(f"Transaction rolled back due to error: {e}")
            raise
        finally:
            conn.close()
            logger.debug("Database connection closed")

    def create_schema(self) -> None:
        """
        Create database tables and indexes
        Idempotent - safe to call multiple times
        """
        logger.info("Creating database schema...")

        with self.get_connection() as conn:
            cursor = conn.cursor()

            for sql in CREATE_TABLES_SQL:
                logger.debug(f"Executing: {sql}")
                cursor.execute(sql)
            logger.info(f" {len(CREATE_TABLES_SQL)} tables created/verified")

            for idx, sql in enumerate(CREATE_INDEXES_SQL, 1):
                logger.debug(f"Executing index {idx}/{len(CREATE_INDEXES_SQL)}: {sql}")
                cursor.execute(sql)
            logger.info(f" All {len(CREATE_INDEXES_SQL)} indexes created")

        logger.info(" Database schema created successfully")

    # ============= DEPARTMENTS =============

    def create_department(self, name: str) -> Department:
        """
        Create a department

        Raises:
            ValueError: If the name is empty, too long or already used
        """
        name = (name or "").strip()
        if not name:
            raise ValueError("Department name is required")
        if len(name) > MAX_NAME_LENGTH:
            raise ValueError(
                f"Department name must be {MAX_NAME_LENGTH} characters or less"
            )

        try:
            with self.get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    f"INSERT INTO {DEPARTMENTS_TABLE} (name) VALUES (?)", (name,)
                )
                department_id = cursor.lastrowid
        except sqlite3.IntegrityError:
            raise ValueError(f"Department '{name}' already exists")

        logger.info(f"Created department {department_id}: {name}")
        return Department(id=department_id, name=name)

    def list_departments(self) -> List[Department]:
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(f"SELECT id, name FROM {DEPARTMENTS_TABLE} ORDER BY name")
            rows = cursor.fetchall()
        return [Department(**dict(row)) for row in rows]

    def get_department(self, department_id: int) -> Optional[Department]:
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT id, name FROM {DEPARTMENTS_TABLE} WHERE id = ?",
                (department_id,),
            )
            row = cursor.fetchone()
        return Department(**dict(row)) if row else None

    def update_department(self, department_id: int, name: str) -> Department:
        name = (name or "").strip()
        if not name:
            raise ValueError("Department name is required")

        try:
            with self.get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    f"UPDATE {DEPARTMENTS_TABLE} SET name = ? WHERE id = ?",
                    (name, department_id),
                )
                if cursor.rowcount == 0:
                    raise RecordNotFoundError(f"Department {department_id} not found")
        except sqlite3.IntegrityError:
            raise ValueError(f"Department '{name}' already exists")

        logger.info(f"Updated department {department_id}: {name}")
        return Department(id=department_id, name=name)

    def delete_department(self, department_id: int) -> None:
        """
        Delete a department that has no categories

        Raises:
            RecordNotFoundError: If the department does not exist
            ValueError: If categories still belong to it
        """
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT COUNT(*) AS count FROM {CATEGORIES_TABLE} WHERE department_id = ?",
                (department_id,),
            )
            count = cursor.fetchone()["count"]
            if count:
                raise ValueError(
                    f"Department {department_id} still has {count} categories"
                )

            cursor.execute(
                f"DELETE FROM {DEPARTMENTS_TABLE} WHERE id = ?", (department_id,)
            )
            if cursor.rowcount == 0:
                raise RecordNotFoundError(f"Department {department_id} not found")

        logger.info(f"Deleted department {department_id}")

    # ============= CATEGORIES =============

    def _fetch_categories(
        self,
        conn: sqlite3.Connection,
        where: str = "",
        params: Tuple = (),
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Category]:
        """Load categories with department, parent and subcategories"""
        query = f"""
            SELECT
                c.id,
                c.name,
                c.department_id,
                c.parent_category_id,
                d.name AS department_name,
                p.name AS parent_name
            FROM {CATEGORIES_TABLE} c
            JOIN {DEPARTMENTS_TABLE} d ON c.department_id = d.id
            LEFT JOIN {CATEGORIES_TABLE} p ON c.parent_category_id = p.id
            {where}
            ORDER BY c.name, c.id
        """
        query_params = list(params)
        if limit is not None:
            query += " LIMIT ? OFFSET ?"
            query_params.extend([limit, offset])

        start_time = datetime.now()
        cursor = conn.cursor()
        cursor.execute(query, query_params)
        rows = cursor.fetchall()

        category_ids = [row["id"] for row in rows]
        children: Dict[int, List[CategoryRef]] = {cid: [] for cid in category_ids}
        if category_ids:
            placeholders = ", ".join(["?"] * len(category_ids))
            cursor.execute(
                f"""
                SELECT id, name, parent_category_id
                FROM {CATEGORIES_TABLE}
                WHERE parent_category_id IN ({placeholders})
                ORDER BY name, id
                """,
                category_ids,
            )
            for child in cursor.fetchall():
                children[child["parent_category_id"]].append(
                    CategoryRef(id=child["id"], name=child["name"])
                )

        execution_time = (datetime.now() - start_time).total_seconds()
        logger.debug(
            f"Category query executed in {execution_time:.4f} seconds, found {len(rows)}"
        )

        return [
            Category(
                id=row["id"],
                name=row["name"],
                department_id=row["department_id"],
                department=Department(
                    id=row["department_id"], name=row["department_name"]
                ),
                parent_category_id=row["parent_category_id"],
                parent_category=(
                    CategoryRef(id=row["parent_category_id"], name=row["parent_name"])
                    if row["parent_category_id"] is not None
                    and row["parent_name"] is not None
                    else None
                ),
                subcategories=children[row["id"]],
            )
            for row in rows
        ]

    def _check_category_input(
        self,
        conn: sqlite3.Connection,
        data: CategoryInput,
        category_id: Optional[int] = None,
    ) -> None:
        """
        Database-aware checks for a category form

        Raises:
            ValueError: If department/parent are invalid or a cycle would form
        """
        form_errors = self.validator.validate_category_form(
            {**data.model_dump(), "id": category_id}
        )
        if form_errors:
            raise ValueError("; ".join(form_errors.values()))

        cursor = conn.cursor()
        cursor.execute(
            f"SELECT id FROM {DEPARTMENTS_TABLE} WHERE id = ?", (data.department_id,)
        )
        if cursor.fetchone() is None:
            raise ValueError(f"Department {data.department_id} not found")

        if data.parent_category_id is None:
            return

        cursor.execute(
            f"SELECT id, department_id FROM {CATEGORIES_TABLE} WHERE id = ?",
            (data.parent_category_id,),
        )
        parent = cursor.fetchone()
        if parent is None:
            raise ValueError(f"Parent category {data.parent_category_id} not found")

        if parent["department_id"] != data.department_id:
            raise ValueError("Parent category must belong to the same department")

        if category_id is not None:
            cursor.execute(f"SELECT id, parent_category_id FROM {CATEGORIES_TABLE}")
            parent_map = {
                row["id"]: row["parent_category_id"] for row in cursor.fetchall()
            }
            if self.validator.creates_cycle(
                parent_map, category_id, data.parent_category_id
            ):
                raise ValueError(
                    f"Category {data.parent_category_id} is a descendant of "
                    f"category {category_id}; parentage would form a cycle"
                )

    def create_category(self, data: CategoryInput) -> Category:
        """
        Create a category (top-level or subcategory)

        Args:
            data: CategoryInput with name, department_id, parent_category_id

        Returns:
            The created Category

        Raises:
            ValueError: If validation fails
        """
        with self.get_connection() as conn:
            self._check_category_input(conn, data)
            cursor = conn.cursor()
            cursor.execute(
                f"""
                INSERT INTO {CATEGORIES_TABLE} (name, department_id, parent_category_id)
                VALUES (?, ?, ?)
                """,
                (data.name, data.department_id, data.parent_category_id),
            )
            category_id = cursor.lastrowid

        logger.info(f"Created category {category_id}: {data.name}")
        return self.get_category(category_id)

    def list_categories(self) -> List[Category]:
        with self.get_connection() as conn:
            return self._fetch_categories(conn)

    def list_categories_page(
        self, page: int = 1, limit: int = DEFAULT_PAGE_SIZE
    ) -> Page:
        """
        Paginated category listing ordered by name

        Args:
            page: 1-based page number
            limit: Page size (1..MAX_PAGE_SIZE)

        Returns:
            Page of Category items
        """
        page, limit = self._normalize_paging(page, limit)

        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(f"SELECT COUNT(*) AS total FROM {CATEGORIES_TABLE}")
            total = cursor.fetchone()["total"]
            items = self._fetch_categories(
                conn, limit=limit, offset=(page - 1) * limit
            )

        return self._build_page(items, total, page, limit)

    def get_category(self, category_id: int) -> Optional[Category]:
        with self.get_connection() as conn:
            categories = self._fetch_categories(
                conn, where="WHERE c.id = ?", params=(category_id,)
            )
        if not categories:
            logger.debug(f"Category not found: {category_id}")
            return None
        return categories[0]

    def list_top_level_categories(
        self, department_id: Optional[int] = None
    ) -> List[Category]:
        """Categories without a parent, optionally within one department"""
        where = "WHERE c.parent_category_id IS NULL"
        params: Tuple = ()
        if department_id is not None:
            where += " AND c.department_id = ?"
            params = (department_id,)

        with self.get_connection() as conn:
            return self._fetch_categories(conn, where=where, params=params)

    def list_subcategories(self, category_id: int) -> List[Category]:
        with self.get_connection() as conn:
            return self._fetch_categories(
                conn, where="WHERE c.parent_category_id = ?", params=(category_id,)
            )

    def update_category(self, category_id: int, data: CategoryInput) -> Category:
        """
        Update a category; a parent of None disconnects it from its parent

        Raises:
            RecordNotFoundError: If the category does not exist
            ValueError: If validation fails, or the department changes while
                subcategories exist
        """
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT department_id FROM {CATEGORIES_TABLE} WHERE id = ?",
                (category_id,),
            )
            current = cursor.fetchone()
            if current is None:
                raise RecordNotFoundError(f"Category {category_id} not found")

            self._check_category_input(conn, data, category_id=category_id)

            if data.department_id != current["department_id"]:
                cursor.execute(
                    f"SELECT COUNT(*) AS count FROM {CATEGORIES_TABLE} "
                    f"WHERE parent_category_id = ?",
                    (category_id,),
                )
                if cursor.fetchone()["count"] > 0:
                    raise ValueError(
                        "Cannot change the department of a category with subcategories"
                    )

            cursor.execute(
                f"""
                UPDATE {CATEGORIES_TABLE}
                SET name = ?, department_id = ?, parent_category_id = ?
                WHERE id = ?
                """,
                (data.name, data.department_id, data.parent_category_id, category_id),
            )

        logger.info(f"Updated category {category_id}: {data.name}")
        return self.get_category(category_id)

    def delete_category(self, category_id: int) -> None:
        """
        Delete a category and its attribute definitions

        Raises:
            RecordNotFoundError: If the category does not exist
            ValueError: If subcategories or products still reference it
        """
        with self.get_connection() as conn:
            cursor = conn.cursor()

            cursor.execute(
                f"SELECT COUNT(*) AS count FROM {CATEGORIES_TABLE} WHERE parent_category_id = ?",
                (category_id,),
            )
            subcategory_count = cursor.fetchone()["count"]
            if subcategory_count:
                raise ValueError(
                    f"Category {category_id} has {subcategory_count} subcategories"
                )

            cursor.execute(
                f"SELECT COUNT(*) AS count FROM {PRODUCTS_TABLE} WHERE category_id = ?",
                (category_id,),
            )
            product_count = cursor.fetchone()["count"]
            if product_count:
                raise ValueError(
                    f"Category {category_id} is used by {product_count} products"
                )

            cursor.execute(
                f"DELETE FROM {CATEGORIES_TABLE} WHERE id = ?", (category_id,)
            )
            if cursor.rowcount == 0:
                raise RecordNotFoundError(f"Category {category_id} not found")

        logger.info(f"Deleted category {category_id}")

    # ============= ATTRIBUTES =============

    def _fetch_attributes(
        self,
        conn: sqlite3.Connection,
        where: str = "",
        params: Tuple = (),
        order_by: str = "a.name, a.id",
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Attribute]:
        """Load attributes with their category and options"""
        query = f"""
            SELECT a.*, c.name AS category_name
            FROM {ATTRIBUTES_TABLE} a
            JOIN {CATEGORIES_TABLE} c ON a.category_id = c.id
            {where}
            ORDER BY {order_by}
        """
        query_params = list(params)
        if limit is not None:
            query += " LIMIT ? OFFSET ?"
            query_params.extend([limit, offset])

        cursor = conn.cursor()
        cursor.execute(query, query_params)
        rows = cursor.fetchall()

        attribute_ids = [row["id"] for row in rows]
        options: Dict[int, List[AttributeOption]] = {aid: [] for aid in attribute_ids}
        if attribute_ids:
            placeholders = ", ".join(["?"] * len(attribute_ids))
            cursor.execute(
                f"""
                SELECT id, attribute_id, value FROM {ATTRIBUTE_OPTIONS_TABLE}
                WHERE attribute_id IN ({placeholders})
                ORDER BY id
                """,
                attribute_ids,
            )
            for option in cursor.fetchall():
                options[option["attribute_id"]].append(AttributeOption(**dict(option)))

        return [
            Attribute(
                id=row["id"],
                name=row["name"],
                data_type=row["data_type"],
                is_required=bool(row["is_required"]),
                category_id=row["category_id"],
                category=CategoryRef(id=row["category_id"], name=row["category_name"]),
                options=options[row["id"]],
            )
            for row in rows
        ]

    def _check_attribute_input(
        self, conn: sqlite3.Connection, data: AttributeInput
    ) -> None:
        form_errors = self.validator.validate_attribute_form(data.model_dump())
        if form_errors:
            raise ValueError("; ".join(form_errors.values()))

        cursor = conn.cursor()
        cursor.execute(
            f"SELECT id FROM {CATEGORIES_TABLE} WHERE id = ?", (data.category_id,)
        )
        if cursor.fetchone() is None:
            raise ValueError(f"Category {data.category_id} not found")

    def create_attribute(self, data: AttributeInput) -> Attribute:
        """
        Create an attribute with its options

        Raises:
            ValueError: If validation fails
        """
        with self.get_connection() as conn:
            self._check_attribute_input(conn, data)
            cursor = conn.cursor()
            cursor.execute(
                f"""
                INSERT INTO {ATTRIBUTES_TABLE} (name, data_type, is_required, category_id)
                VALUES (?, ?, ?, ?)
                """,
                (data.name, data.data_type, int(data.is_required), data.category_id),
            )
            attribute_id = cursor.lastrowid
            cursor.executemany(
                f"INSERT INTO {ATTRIBUTE_OPTIONS_TABLE} (attribute_id, value) VALUES (?, ?)",
                [(attribute_id, value) for value in data.options],
            )

        logger.info(
            f"Created attribute {attribute_id}: {data.name} ({data.data_type}, "
            f"{len(data.options)} options)"
        )
        return self.get_attribute(attribute_id)

    def list_attributes(self) -> List[Attribute]:
        with self.get_connection() as conn:
            return self._fetch_attributes(conn)

    def list_attributes_page(
        self, page: int = 1, limit: int = DEFAULT_PAGE_SIZE
    ) -> Page:
        page, limit = self._normalize_paging(page, limit)

        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(f"SELECT COUNT(*) AS total FROM {ATTRIBUTES_TABLE}")
            total = cursor.fetchone()["total"]
            items = self._fetch_attributes(
                conn, limit=limit, offset=(page - 1) * limit
            )

        return self._build_page(items, total, page, limit)

    def get_attribute(self, attribute_id: int) -> Optional[Attribute]:
        with self.get_connection() as conn:
            attributes = self._fetch_attributes(
                conn, where="WHERE a.id = ?", params=(attribute_id,)
            )
        return attributes[0] if attributes else None

    def list_category_attributes(self, category_id: int) -> List[Attribute]:
        """Attributes defined on a category, in definition order"""
        with self.get_connection() as conn:
            return self._fetch_attributes(
                conn,
                where="WHERE a.category_id = ?",
                params=(category_id,),
                order_by="a.id",
            )

    def update_attribute(self, attribute_id: int, data: AttributeInput) -> Attribute:
        """
        Update an attribute; its options are replaced by data.options

        Raises:
            RecordNotFoundError: If the attribute does not exist
            ValueError: If validation fails, or the attribute moves to another
                category while products hold values for it
        """
        with self.get_connection() as conn:
            self._check_attribute_input(conn, data)
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT category_id FROM {ATTRIBUTES_TABLE} WHERE id = ?",
                (attribute_id,),
            )
            current = cursor.fetchone()
            if current is None:
                raise RecordNotFoundError(f"Attribute {attribute_id} not found")

            if data.category_id != current["category_id"]:
                cursor.execute(
                    f"SELECT COUNT(*) AS count FROM {PRODUCT_ATTRIBUTES_TABLE} "
                    f"WHERE attribute_id = ?",
                    (attribute_id,),
                )
                if cursor.fetchone()["count"] > 0:
                    raise ValueError(
                        "Cannot move an attribute to another category "
                        "while products hold values for it"
                    )

            cursor.execute(
                f"""
                UPDATE {ATTRIBUTES_TABLE}
                SET name = ?, data_type = ?, is_required = ?, category_id = ?
                WHERE id = ?
                """,
                (
                    data.name,
                    data.data_type,
                    int(data.is_required),
                    data.category_id,
                    attribute_id,
                ),
            )

            cursor.execute(
                f"DELETE FROM {ATTRIBUTE_OPTIONS_TABLE} WHERE attribute_id = ?",
                (attribute_id,),
            )
            cursor.executemany(
                f"INSERT INTO {ATTRIBUTE_OPTIONS_TABLE} (attribute_id, value) VALUES (?, ?)",
                [(attribute_id, value) for value in data.options],
            )

        logger.info(f"Updated attribute {attribute_id}: {data.name}")
        return self.get_attribute(attribute_id)

    def delete_attribute(self, attribute_id: int) -> None:
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"DELETE FROM {ATTRIBUTES_TABLE} WHERE id = ?", (attribute_id,)
            )
            if cursor.rowcount == 0:
                raise RecordNotFoundError(f"Attribute {attribute_id} not found")

        logger.info(f"Deleted attribute {attribute_id}")

    def list_attribute_options(self, attribute_id: int) -> List[AttributeOption]:
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT id, attribute_id, value FROM {ATTRIBUTE_OPTIONS_TABLE} "
                f"WHERE attribute_id = ? ORDER BY id",
                (attribute_id,),
            )
            rows = cursor.fetchall()
        return [AttributeOption(**dict(row)) for row in rows]

    def add_attribute_option(self, attribute_id: int, value: str) -> AttributeOption:
        value = (value or "").strip()
        if not value:
            raise ValueError("Option value is required")

        try:
            with self.get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    f"SELECT id FROM {ATTRIBUTES_TABLE} WHERE id = ?", (attribute_id,)
                )
                if cursor.fetchone() is None:
                    raise RecordNotFoundError(f"Attribute {attribute_id} not found")
                cursor.execute(
                    f"INSERT INTO {ATTRIBUTE_OPTIONS_TABLE} (attribute_id, value) VALUES (?, ?)",
                    (attribute_id, value),
                )
                option_id = cursor.lastrowid
        except sqlite3.IntegrityError:
            raise ValueError(f"Option '{value}' already exists for attribute {attribute_id}")

        logger.info(f"Added option '{value}' to attribute {attribute_id}")
        return AttributeOption(id=option_id, attribute_id=attribute_id, value=value)

    def update_attribute_option(self, option_id: int, value: str) -> AttributeOption:
        value = (value or "").strip()
        if not value:
            raise ValueError("Option value is required")

        try:
            with self.get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    f"UPDATE {ATTRIBUTE_OPTIONS_TABLE} SET value = ? WHERE id = ?",
                    (value, option_id),
                )
                if cursor.rowcount == 0:
                    raise RecordNotFoundError(f"Attribute option {option_id} not found")
                cursor.execute(
                    f"SELECT id, attribute_id, value FROM {ATTRIBUTE_OPTIONS_TABLE} WHERE id = ?",
                    (option_id,),
                )
                row = cursor.fetchone()
        except sqlite3.IntegrityError:
            raise ValueError(f"Option '{value}' already exists for this attribute")

        return AttributeOption(**dict(row))

    def delete_attribute_option(self, option_id: int) -> None:
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"DELETE FROM {ATTRIBUTE_OPTIONS_TABLE} WHERE id = ?", (option_id,)
            )
            if cursor.rowcount == 0:
                raise RecordNotFoundError(f"Attribute option {option_id} not found")

    # ============= PRODUCTS =============

    def _insert_product(
        self,
        conn: sqlite3.Connection,
        name: str,
        category_id: int,
        attributes: Optional[List[Tuple[int, Optional[str]]]] = None,
        description: Optional[str] = None,
    ) -> int:
        """Insert a product and its attribute values inside an open transaction"""
        name = (name or "").strip()
        if not name:
            raise ValueError("Product name is required")

        cursor = conn.cursor()
        cursor.execute(
            f"SELECT id FROM {CATEGORIES_TABLE} WHERE id = ?", (category_id,)
        )
        if cursor.fetchone() is None:
            raise ValueError(f"Category {category_id} not found")

        attributes = attributes or []
        if attributes:
            cursor.execute(
                f"SELECT id FROM {ATTRIBUTES_TABLE} WHERE category_id = ?",
                (category_id,),
            )
            allowed = {row["id"] for row in cursor.fetchall()}
            foreign = [aid for aid, _ in attributes if aid not in allowed]
            if foreign:
                raise ValueError(
                    f"Attributes {foreign} do not belong to category {category_id}"
                )

        cursor.execute(
            f"""
            INSERT INTO {PRODUCTS_TABLE} (name, description, category_id, created_at)
            VALUES (?, ?, ?, ?)
            """,
            (name, description, category_id, _now()),
        )
        product_id = cursor.lastrowid

        cursor.executemany(
            f"""
            INSERT INTO {PRODUCT_ATTRIBUTES_TABLE} (product_id, attribute_id, value)
            VALUES (?, ?, ?)
            """,
            [(product_id, aid, value) for aid, value in attributes],
        )
        return product_id

    def create_product(
        self,
        name: str,
        description: Optional[str],
        category_id: int,
        attributes: Optional[List[Tuple[int, Optional[str]]]] = None,
    ) -> Product:
        """
        Create a product with attribute values

        Args:
            name: Product name
            description: Optional description
            category_id: Category the product belongs to
            attributes: List of (attribute_id, value); attributes must belong
                to the category

        Returns:
            The created Product
        """
        with self.get_connection() as conn:
            product_id = self._insert_product(
                conn, name, category_id, attributes, description
            )

        logger.info(f"Created product {product_id}: {name}")
        return self.get_product(product_id)

    def create_generated_product(
        self,
        name: str,
        category_id: int,
        attributes: List[Tuple[int, Optional[str]]],
        ai_confidence: float,
        ai_attributes: Dict[str, str],
        source_input: Optional[str] = None,
        provider_id: Optional[int] = None,
        model_id: Optional[int] = None,
        description: Optional[str] = None,
    ) -> Product:
        """
        Create a product and its generation record in one transaction

        Returns:
            The created Product (with ai_confidence)
        """
        with self.get_connection() as conn:
            product_id = self._insert_product(
                conn, name, category_id, attributes, description
            )
            conn.execute(
                f"""
                INSERT INTO {GENERATED_PRODUCTS_TABLE}
                    (product_id, source_input, ai_confidence, ai_attributes,
                     provider_id, model_id, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    product_id,
                    source_input,
                    ai_confidence,
                    json.dumps(ai_attributes, ensure_ascii=False),
                    provider_id,
                    model_id,
                    _now(),
                ),
            )

        logger.info(
            f"Created generated product {product_id}: {name} "
            f"(ai_confidence={ai_confidence:.2f})"
        )
        return self.get_product(product_id)

    def _fetch_products(
        self,
        conn: sqlite3.Connection,
        where: str = "",
        params: Tuple = (),
        limit: Optional[int] = None,
    ) -> List[Product]:
        """Load products with category, all category attributes and AI confidence"""
        query = f"""
            SELECT
                p.id,
                p.name,
                p.description,
                p.category_id,
                p.created_at,
                c.name AS category_name,
                g.ai_confidence
            FROM {PRODUCTS_TABLE} p
            JOIN {CATEGORIES_TABLE} c ON p.category_id = c.id
            LEFT JOIN {GENERATED_PRODUCTS_TABLE} g ON g.product_id = p.id
            {where}
            ORDER BY p.id
        """
        query_params = list(params)
        if limit is not None:
            query += " LIMIT ?"
            query_params.append(limit)

        cursor = conn.cursor()
        cursor.execute(query, query_params)
        rows = cursor.fetchall()

        product_ids = [row["id"] for row in rows]
        values: Dict[int, List[ProductAttributeValue]] = {pid: [] for pid in product_ids}
        if product_ids:
            placeholders = ", ".join(["?"] * len(product_ids))
            cursor.execute(
                f"""
                SELECT
                    p.id AS product_id,
                    a.id AS attribute_id,
                    a.name,
                    a.data_type,
                    a.is_required,
                    pa.value
                FROM {PRODUCTS_TABLE} p
                JOIN {ATTRIBUTES_TABLE} a ON a.category_id = p.category_id
                LEFT JOIN {PRODUCT_ATTRIBUTES_TABLE} pa
                    ON pa.product_id = p.id AND pa.attribute_id = a.id
                WHERE p.id IN ({placeholders})
                ORDER BY a.id
                """,
                product_ids,
            )
            for row in cursor.fetchall():
                values[row["product_id"]].append(
                    ProductAttributeValue(
                        id=row["attribute_id"],
                        name=row["name"],
                        value=row["value"] or "",
                        data_type=row["data_type"],
                        is_required=bool(row["is_required"]),
                    )
                )

        return [
            Product(
                id=row["id"],
                name=row["name"],
                description=row["description"],
                category_id=row["category_id"],
                category=CategoryRef(id=row["category_id"], name=row["category_name"]),
                attributes=values[row["id"]],
                ai_confidence=row["ai_confidence"],
                created_at=row["created_at"],
            )
            for row in rows
        ]

    def get_product(self, product_id: int) -> Optional[Product]:
        with self.get_connection() as conn:
            products = self._fetch_products(
                conn, where="WHERE p.id = ?", params=(product_id,)
            )
        if not products:
            logger.debug(f"Product not found: {product_id}")
            return None
        return products[0]

    def list_products(
        self, category_id: Optional[int] = None, limit: Optional[int] = None
    ) -> List[Product]:
        where, params = "", ()
        if category_id is not None:
            where, params = "WHERE p.category_id = ?", (category_id,)

        with self.get_connection() as conn:
            return self._fetch_products(conn, where=where, params=params, limit=limit)

    def update_product_attribute(
        self, product_id: int, attribute_id: int, value: Optional[str]
    ) -> None:
        """
        Set one attribute value on a product (insert or update)

        Raises:
            RecordNotFoundError: If the product does not exist
            ValueError: If the attribute is not defined on the product's category
        """
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT category_id FROM {PRODUCTS_TABLE} WHERE id = ?", (product_id,)
            )
            product = cursor.fetchone()
            if product is None:
                raise RecordNotFoundError(f"Product {product_id} not found")

            cursor.execute(
                f"SELECT id FROM {ATTRIBUTES_TABLE} WHERE id = ? AND category_id = ?",
                (attribute_id, product["category_id"]),
            )
            if cursor.fetchone() is None:
                raise ValueError(
                    f"Attribute {attribute_id} is not defined for product {product_id}"
                )

            self._upsert_product_attribute(conn, product_id, attribute_id, value)

        logger.debug(f"Product {product_id} attribute {attribute_id} set to {value!r}")

    def _upsert_product_attribute(
        self,
        conn: sqlite3.Connection,
        product_id: int,
        attribute_id: int,
        value: Optional[str],
    ) -> None:
        conn.execute(
            f"""
            INSERT INTO {PRODUCT_ATTRIBUTES_TABLE} (product_id, attribute_id, value)
            VALUES (?, ?, ?)
            ON CONFLICT (product_id, attribute_id) DO UPDATE SET value = excluded.value
            """,
            (product_id, attribute_id, value),
        )

    def delete_product(self, product_id: int) -> None:
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(f"DELETE FROM {PRODUCTS_TABLE} WHERE id = ?", (product_id,))
            if cursor.rowcount == 0:
                raise RecordNotFoundError(f"Product {product_id} not found")

        logger.info(f"Deleted product {product_id}")

    # ============= USERS =============

    def create_user(self, data: UserInput) -> User:
        """
        Create a user

        Raises:
            ValueError: If username or email is already taken
        """
        try:
            with self.get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    f"""
                    INSERT INTO {USERS_TABLE} (username, email, role, created_at)
                    VALUES (?, ?, ?, ?)
                    """,
                    (data.username, data.email, data.role, _now()),
                )
                user_id = cursor.lastrowid
        except sqlite3.IntegrityError:
            raise ValueError(
                f"User with username '{data.username}' or email '{data.email}' already exists"
            )

        logger.info(f"Created user {user_id}: {data.username} ({data.role})")
        return self.get_user(user_id)

    def list_users(self, role: Optional[str] = None) -> List[User]:
        query = f"SELECT id, username, email, role, created_at FROM {USERS_TABLE}"
        params: Tuple = ()
        if role:
            query += " WHERE role = ?"
            params = (role.upper(),)
        query += " ORDER BY username"

        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            rows = cursor.fetchall()
        return [User(**dict(row)) for row in rows]

    def get_user(self, user_id: int) -> Optional[User]:
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT id, username, email, role, created_at FROM {USERS_TABLE} WHERE id = ?",
                (user_id,),
            )
            row = cursor.fetchone()
        return User(**dict(row)) if row else None

    def get_user_by_email(self, email: str) -> Optional[User]:
        with self.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT id, username, email, role, created_at FROM {USERS_TABLE} WHERE email = ?",
                ((email or "").strip().lower(),),
            )
            row = cursor.fetchone()
        return User(**dict(row)) if row else None

    def update_user(self, user_id: int, data: UserInput) -> User:
        try:
            with self.get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    f"UPDATE {USERS_TABLE} SET username = ?, email = ?, role = ? WHERE id = ?",
                    (data.username, data.email, data.role, user_id),
                )
                if cursor.rowcount == 0:
                    raise RecordNotFoundError(f"User {user_id} not found")
        except sqlite3.IntegrityError:
            raise ValueError(
                f"User with username '{data.username}' or email '{data.email}' already exists"
            )

        logger.info(f"Updated user {user_id}")
        return self.get_user(user_id)

    # ============= REPORTING =============

    def get_catalog_statistics(self) -> CatalogStatistics:
        """
        Calculate catalog statistics

        Returns:
            CatalogStatistics with entity counts and grading progress
        """
        logger.info("Calculating catalog statistics...")

        with self.get_connection() as conn:
            cursor = conn.cursor()

            counts = {}
            for key, table in [
                ("total_departments", DEPARTMENTS_TABLE),
                ("total_categories", CATEGORIES_TABLE),
                ("total_attributes", ATTRIBUTES_TABLE),
                ("total_products", PRODUCTS_TABLE),
                ("total_users", USERS_TABLE),
                ("generated_products", GENERATED_PRODUCTS_TABLE),
                ("graded_products", HUMAN_GRADED_TABLE),
            ]:
                cursor.execute(f"SELECT COUNT(*) AS total FROM {table}")
                counts[key] = cursor.fetchone()["total"]

            cursor.execute(
                f"""
                SELECT COUNT(*) AS total
                FROM {GENERATED_PRODUCTS_TABLE} g
                LEFT JOIN {HUMAN_GRADED_TABLE} h ON h.product_id = g.product_id
                WHERE h.id IS NULL
                """
            )
            pending = cursor.fetchone()["total"]

            cursor.execute(
                f"SELECT COALESCE(SUM(is_approved), 0) AS approved FROM {HUMAN_GRADED_TABLE}"
            )
            approved = cursor.fetchone()["approved"]

            cursor.execute(
                f"SELECT AVG(ai_confidence) AS avg_conf FROM {GENERATED_PRODUCTS_TABLE}"
            )
            avg_conf = cursor.fetchone()["avg_conf"]

            cursor.execute(
                f"""
                SELECT d.name AS department, COUNT(p.id) AS total
                FROM {DEPARTMENTS_TABLE} d
                LEFT JOIN {CATEGORIES_TABLE} c ON c.department_id = d.id
                LEFT JOIN {PRODUCTS_TABLE} p ON p.category_id = c.id
                GROUP BY d.id
                ORDER BY d.name
                """
            )
            by_department = {row["department"]: row["total"] for row in cursor.fetchall()}

        stats = CatalogStatistics(
            **counts,
            pending_grading=pending,
            approved_products=approved,
            rejected_products=counts["graded_products"] - approved,
            average_ai_confidence=round(avg_conf, 4) if avg_conf is not None else None,
            products_by_department=by_department,
        )

        logger.info(
            f"Statistics: {stats.total_products} products, "
            f"{stats.graded_products} graded, {stats.pending_grading} pending"
        )
        return stats

    def verify_catalog_integrity(self) -> IntegrityReport:
        """
        Run integrity checks on the taxonomy and product data

        Returns:
            IntegrityReport with any issues found
        """
        logger.info("Running catalog integrity checks...")

        issues = []

        with self.get_connection() as conn:
            cursor = conn.cursor()

            # 1. Categories whose parent row is missing
            cursor.execute(
                f"""
                SELECT c.id
                FROM {CATEGORIES_TABLE} c
                LEFT JOIN {CATEGORIES_TABLE} p ON c.parent_category_id = p.id
                WHERE c.parent_category_id IS NOT NULL AND p.id IS NULL
                """
            )
            orphaned = [row["id"] for row in cursor.fetchall()]
            if orphaned:
                issues.append(f"Found {len(orphaned)} categories with missing parents")
                logger.warning(f"Orphaned categories: {orphaned[:10]}")

            # 2. Parent in another department
            cursor.execute(
                f"""
                SELECT c.id
                FROM {CATEGORIES_TABLE} c
                JOIN {CATEGORIES_TABLE} p ON c.parent_category_id = p.id
                WHERE c.department_id != p.department_id
                """
            )
            mismatches = [row["id"] for row in cursor.fetchall()]
            if mismatches:
                issues.append(
                    f"Found {len(mismatches)} categories whose parent is in another department"
                )

            # 3. Parentage cycles
            cursor.execute(f"SELECT id, parent_category_id FROM {CATEGORIES_TABLE}")
            parent_map = {row["id"]: row["parent_category_id"] for row in cursor.fetchall()}
            cycles = self.validator.find_cycles(parent_map)
            if cycles:
                issues.append(f"Found {len(cycles)} category parentage cycles")
                logger.error(f"Category cycles: {cycles}")

            # 4. Products missing required attribute values
            cursor.execute(
                f"""
                SELECT p.id AS product_id, a.name
                FROM {PRODUCTS_TABLE} p
                JOIN {ATTRIBUTES_TABLE} a ON a.category_id = p.category_id
                LEFT JOIN {PRODUCT_ATTRIBUTES_TABLE} pa
                    ON pa.product_id = p.id AND pa.attribute_id = a.id
                WHERE a.is_required = 1
                AND (pa.value IS NULL OR TRIM(pa.value) = '')
                ORDER BY p.id, a.id
                """
            )
            missing: Dict[int, List[str]] = {}
            for row in cursor.fetchall():
                missing.setdefault(row["product_id"], []).append(row["name"])
            missing_required = [
                {"product_id": pid, "attributes": names} for pid, names in missing.items()
            ]
            if missing_required:
                issues.append(
                    f"Found {len(missing_required)} products missing required attributes"
                )

            # 5. Values for attributes not defined on the product's category
            cursor.execute(
                f"""
                SELECT COUNT(*) AS count
                FROM {PRODUCT_ATTRIBUTES_TABLE} pa
                JOIN {PRODUCTS_TABLE} p ON pa.product_id = p.id
                JOIN {ATTRIBUTES_TABLE} a ON pa.attribute_id = a.id
                WHERE a.category_id != p.category_id
                """
            )
            orphaned_values = cursor.fetchone()["count"]
            if orphaned_values:
                issues.append(
                    f"Found {orphaned_values} attribute values outside the product's category"
                )

        report = IntegrityReport(
            orphaned_categories=orphaned,
            department_mismatches=mismatches,
            category_cycles=cycles,
            products_missing_required=missing_required,
            orphaned_product_attributes=orphaned_values,
            integrity_passed=len(issues) == 0,
            issues_found=issues,
        )

        if report.integrity_passed:
            logger.info(" Catalog integrity check passed - no issues found")
        else:
            logger.warning(f"✗ Catalog integrity check found {len(issues)} issues")

        return report

    def export_products(self, output_path: Path, fmt: str = "json") -> int:
        """
        Export products with their attribute values

        Args:
            output_path: Output file path
            fmt: "json" (nested) or "csv" (one column per attribute name)

        Returns:
            Number of products exported
        """
        if fmt not in ("json", "csv"):
            raise ValueError(f"Unsupported export format: {fmt}")

        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        logger.info(f"Exporting products to: {output_path} ({fmt})")

        products = self.list_products()

        if fmt == "json":
            export_data = [p.model_dump() for p in products]
            with open(output_path, "w", encoding="utf-8") as f:
                json.dump(export_data, f, indent=2, ensure_ascii=False)
        else:
            rows = []
            for product in products:
                row: Dict[str, Any] = {
                    "id": product.id,
                    "name": product.name,
                    "description": product.description,
                    "category": product.category.name if product.category else None,
                    "ai_confidence": product.ai_confidence,
                }
                row.update(product.attribute_map())
                rows.append(row)
            pd.DataFrame(rows).to_csv(output_path, index=False)

        logger.info(f"Exported {len(products)} products")
        return len(products)

    # ============= HELPERS =============

    def _normalize_paging(self, page: int, limit: int) -> Tuple[int, int]:
        try:
            page = int(page)
            limit = int(limit)
        except (TypeError, ValueError):
            raise ValueError(f"Invalid paging parameters: page={page}, limit={limit}")
        if page < 1:
            raise ValueError("page must be >= 1")
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValueError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
        return page, limit

    def _build_page(self, items: List[Any], total: int, page: int, limit: int) -> Page:
        total_pages = (total + limit - 1) // limit
        return Page(
            items=items,
            total_count=total,
            total_pages=total_pages,
            current_page=page,
            limit=limit,
        )
