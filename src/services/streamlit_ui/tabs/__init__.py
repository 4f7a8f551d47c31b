"""
Tab modules for Streamlit UI
Each tab represents a major section of the application
"""

from .dashboard import display_dashboard_tab
from .taxonomy import display_taxonomy_tab
from .generation import display_generation_tab
from .grading import display_grading_tab
from .products import display_products_tab
from .llm_settings import display_llm_settings_tab
from .users import display_users_tab

__all__ = [
    "display_dashboard_tab",
    "display_taxonomy_tab",
    "display_generation_tab",
    "display_grading_tab",
    "display_products_tab",
    "display_llm_settings_tab",
    "display_users_tab",
]
