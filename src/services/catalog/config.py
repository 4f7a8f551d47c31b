"""
Configuration constants for Catalog Service
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Project Root Directory
PROJECT_ROOT = Path(__file__).parent.parent.parent.parent

# File paths
DATA_DIR = PROJECT_ROOT / "data"
INPUT_DIR = DATA_DIR / "input"
LOG_DIR = DATA_DIR / "logs"
EXPORT_DIR = DATA_DIR / "exports"
DATABASE_PATH = Path(os.getenv("CATALOG_DB_PATH", str(DATA_DIR / "catalog.db")))
TAXONOMY_CSV_PATH = INPUT_DIR / "taxonomy.csv"

# Table names
USERS_TABLE = "users"
DEPARTMENTS_TABLE = "departments"
CATEGORIES_TABLE = "categories"
ATTRIBUTES_TABLE = "attributes"
ATTRIBUTE_OPTIONS_TABLE = "attribute_options"
PRODUCTS_TABLE = "products"
PRODUCT_ATTRIBUTES_TABLE = "product_attributes"
GENERATED_PRODUCTS_TABLE = "generated_products"
LLM_PROVIDERS_TABLE = "llm_providers"
LLM_MODELS_TABLE = "llm_models"
LLM_QUERIES_TABLE = "llm_queries"
GRADING_SESSIONS_TABLE = "grading_sessions"
HUMAN_GRADED_TABLE = "human_graded_products"

# Roles
ROLE_ADMIN = "ADMIN"
ROLE_USER = "USER"
ROLE_HUMAN_GRADER = "HUMAN_GRADER"
VALID_ROLES = [ROLE_ADMIN, ROLE_USER, ROLE_HUMAN_GRADER]

# Attribute data types
VALID_DATA_TYPES = ["text", "number", "boolean", "select", "date"]
BOOLEAN_VALUES = ["true", "false", "yes", "no", "1", "0"]

# Field limits
MAX_NAME_LENGTH = 100

# Pagination
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100

# Taxonomy CSV columns
TAXONOMY_COLUMNS = [
    "department",
    "category",
    "subcategory",
    "attribute",
    "data_type",
    "is_required",
    "options",
]
OPTIONS_SEPARATOR = "|"

# Logging config
LOG_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
)
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# SQL Statements
CREATE_TABLES_SQL = [
    f"""
    CREATE TABLE IF NOT EXISTS {USERS_TABLE} (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        username TEXT NOT NULL UNIQUE,
        email TEXT NOT NULL UNIQUE,
        role TEXT NOT NULL DEFAULT '{ROLE_USER}',
        created_at TEXT NOT NULL
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {DEPARTMENTS_TABLE} (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL UNIQUE
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {CATEGORIES_TABLE} (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        department_id INTEGER NOT NULL,
        parent_category_id INTEGER,
        FOREIGN KEY (department_id) REFERENCES {DEPARTMENTS_TABLE}(id),
        FOREIGN KEY (parent_category_id) REFERENCES {CATEGORIES_TABLE}(id)
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {ATTRIBUTES_TABLE} (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        data_type TEXT NOT NULL,
        is_required INTEGER NOT NULL DEFAULT 0,
        category_id INTEGER NOT NULL,
        FOREIGN KEY (category_id) REFERENCES {CATEGORIES_TABLE}(id) ON DELETE CASCADE
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {ATTRIBUTE_OPTIONS_TABLE} (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        attribute_id INTEGER NOT NULL,
        value TEXT NOT NULL,
        UNIQUE (attribute_id, value),
        FOREIGN KEY (attribute_id) REFERENCES {ATTRIBUTES_TABLE}(id) ON DELETE CASCADE
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {PRODUCTS_TABLE} (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        description TEXT,
        category_id INTEGER NOT NULL,
        created_at TEXT NOT NULL,
        FOREIGN KEY (category_id) REFERENCES {CATEGORIES_TABLE}(id)
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {PRODUCT_ATTRIBUTES_TABLE} (
        product_id INTEGER NOT NULL,
        attribute_id INTEGER NOT NULL,
        value TEXT,
        PRIMARY KEY (product_id, attribute_id),
        FOREIGN KEY (product_id) REFERENCES {PRODUCTS_TABLE}(id) ON DELETE CASCADE,
        FOREIGN KEY (attribute_id) REFERENCES {ATTRIBUTES_TABLE}(id) ON DELETE CASCADE
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {GENERATED_PRODUCTS_TABLE} (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        product_id INTEGER NOT NULL UNIQUE,
        source_input TEXT,
        ai_confidence REAL,
        ai_attributes TEXT,
        provider_id INTEGER,
        model_id INTEGER,
        created_at TEXT NOT NULL,
        FOREIGN KEY (product_id) REFERENCES {PRODUCTS_TABLE}(id) ON DELETE CASCADE
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {LLM_PROVIDERS_TABLE} (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL UNIQUE,
        api_key TEXT
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {LLM_MODELS_TABLE} (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        name TEXT NOT NULL,
        provider_id INTEGER NOT NULL,
        FOREIGN KEY (provider_id) REFERENCES {LLM_PROVIDERS_TABLE}(id) ON DELETE CASCADE
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {LLM_QUERIES_TABLE} (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        provider_id INTEGER NOT NULL,
        model_id INTEGER NOT NULL,
        prompt TEXT NOT NULL,
        response TEXT,
        timestamp TEXT NOT NULL
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {GRADING_SESSIONS_TABLE} (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        user_id INTEGER NOT NULL,
        started_at TEXT NOT NULL,
        completed_at TEXT,
        FOREIGN KEY (user_id) REFERENCES {USERS_TABLE}(id)
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {HUMAN_GRADED_TABLE} (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        product_id INTEGER NOT NULL UNIQUE,
        session_id INTEGER NOT NULL,
        category_id INTEGER NOT NULL,
        ai_attributes TEXT NOT NULL,
        human_attributes TEXT NOT NULL,
        is_approved INTEGER NOT NULL,
        graded_at TEXT NOT NULL,
        FOREIGN KEY (product_id) REFERENCES {PRODUCTS_TABLE}(id) ON DELETE CASCADE,
        FOREIGN KEY (session_id) REFERENCES {GRADING_SESSIONS_TABLE}(id)
    )
    """,
]

CREATE_INDEXES_SQL = [
    f"CREATE INDEX IF NOT EXISTS idx_categories_department ON {CATEGORIES_TABLE}(department_id)",
    f"CREATE INDEX IF NOT EXISTS idx_categories_parent ON {CATEGORIES_TABLE}(parent_category_id)",
    f"CREATE INDEX IF NOT EXISTS idx_attributes_category ON {ATTRIBUTES_TABLE}(category_id)",
    f"CREATE INDEX IF NOT EXISTS idx_products_category ON {PRODUCTS_TABLE}(category_id)",
    f"CREATE INDEX IF NOT EXISTS idx_llm_models_provider ON {LLM_MODELS_TABLE}(provider_id)",
    f"CREATE INDEX IF NOT EXISTS idx_grading_sessions_user ON {GRADING_SESSIONS_TABLE}(user_id)",
    f"CREATE INDEX IF NOT EXISTS idx_human_graded_session ON {HUMAN_GRADED_TABLE}(session_id)",
]
