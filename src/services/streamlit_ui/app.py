"""
Main Streamlit Application with Tab-Based Navigation
"""

import streamlit as st
import sys
from pathlib import Path

# Add src to path
project_root = Path(__file__).parent.parent.parent.parent
sys.path.insert(0, str(project_root))

from .data_loader import load_users
from .tabs.dashboard import display_dashboard_tab
from .tabs.taxonomy import display_taxonomy_tab
from .tabs.generation import display_generation_tab, reset_wizard_state
from .tabs.grading import display_grading_tab
from .tabs.products import display_products_tab
from .tabs.llm_settings import display_llm_settings_tab
from .tabs.users import display_users_tab


def main():
    """Main Streamlit Application with tab navigation"""

    st.title("Product Categorizer")
    st.caption("LLM-assisted product generation, categorization and human grading")

    initialize_global_session_state()
    display_user_selector()

    tabs = st.tabs(
        [
            "Dashboard",
            "Taxonomy",
            "Product Generation",
            "Grading",
            "Products",
            "LLM Settings",
            "Users",
        ]
    )

    with tabs[0]:
        display_dashboard_tab()
    with tabs[1]:
        display_taxonomy_tab()
    with tabs[2]:
        display_generation_tab()
    with tabs[3]:
        display_grading_tab()
    with tabs[4]:
        display_products_tab()
    with tabs[5]:
        display_llm_settings_tab()
    with tabs[6]:
        display_users_tab()


def display_user_selector():
    """Sidebar picker for the acting user (no sign-in)"""
    with st.sidebar:
        st.markdown("### Acting User")
        try:
            users = load_users()
        except Exception as e:
            st.error(f"Failed to load users: {str(e)}")
            return

        if not users:
            st.info("No users yet. Run scripts/init_database.py to seed demo data.")
            st.session_state.current_user = None
            return

        labels = [f"{u['username']} ({u['role']})" for u in users]
        current = st.session_state.current_user
        index = 0
        if current:
            for idx, user in enumerate(users):
                if user["id"] == current["id"]:
                    index = idx
                    break

        choice = st.selectbox("User", labels, index=index, key="user_selector")
        selected = users[labels.index(choice)]
        if current is None or current["id"] != selected["id"]:
            # Wizard and grading state belong to the previous user
            reset_wizard_state()
            st.session_state.grading_product = None
        st.session_state.current_user = selected


def initialize_global_session_state():
    """Initialize global session state variables"""

    if "current_user" not in st.session_state:
        st.session_state.current_user = None

    # Product generation wizard
    if "wizard_step" not in st.session_state:
        reset_wizard_state()

    # Grading
    if "grading_product" not in st.session_state:
        st.session_state.grading_product = None

    # Taxonomy forms
    if "editing_category_id" not in st.session_state:
        st.session_state.editing_category_id = None

    if "editing_attribute_id" not in st.session_state:
        st.session_state.editing_attribute_id = None


if __name__ == "__main__":
    main()
