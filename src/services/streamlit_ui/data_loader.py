"""
Data loading and caching logic for Streamlit UI
"""

import streamlit as st
from typing import List, Optional, Dict, Any
import sys
from pathlib import Path

# Add src to path
project_root = Path(__file__).parent.parent.parent.parent
sys.path.insert(0, str(project_root))

from src.services.common.service_factory import ServiceFactory
from src.services.catalog import CatalogDatabase
from src.services.llm_gateway import LLMRegistry

from .config import CACHE_TTL_STATISTICS, CACHE_TTL_TAXONOMY, CACHE_TTL_PRODUCTS


@st.cache_resource
def get_database() -> CatalogDatabase:
    """Get database instance with schema in place"""
    db = ServiceFactory.get_database()
    db.create_schema()
    return db


def get_registry() -> LLMRegistry:
    return ServiceFactory.get_llm_gateway().registry


@st.cache_data(ttl=CACHE_TTL_STATISTICS)
def get_catalog_statistics() -> Dict[str, Any]:
    """Get catalog statistics (cached with 10s TTL)"""
    # Convert Pydantic model to dict for pickle serialization
    return get_database().get_catalog_statistics().model_dump()


@st.cache_data(ttl=CACHE_TTL_STATISTICS)
def get_integrity_report() -> Dict[str, Any]:
    return get_database().verify_catalog_integrity().model_dump()


@st.cache_data(ttl=CACHE_TTL_TAXONOMY)
def load_departments() -> List[dict]:
    return [d.model_dump() for d in get_database().list_departments()]


@st.cache_data(ttl=CACHE_TTL_TAXONOMY)
def load_top_level_categories(department_id: Optional[int] = None) -> List[dict]:
    return [
        c.model_dump() for c in get_database().list_top_level_categories(department_id)
    ]


@st.cache_data(ttl=CACHE_TTL_TAXONOMY)
def load_categories() -> List[dict]:
    return [c.model_dump() for c in get_database().list_categories()]


@st.cache_data(ttl=CACHE_TTL_TAXONOMY)
def load_subcategories(category_id: int) -> List[dict]:
    return [c.model_dump() for c in get_database().list_subcategories(category_id)]


@st.cache_data(ttl=CACHE_TTL_PRODUCTS)
def load_products(limit: int = 500) -> List[dict]:
    return [p.model_dump() for p in get_database().list_products(limit=limit)]


def load_users() -> List[dict]:
    """Users are not cached; role changes must show immediately"""
    return [u.model_dump() for u in get_database().list_users()]


def clear_cache():
    """Clear all cached data"""
    st.cache_data.clear()
