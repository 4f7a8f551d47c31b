"""
Users Tab - user and role management
"""

import streamlit as st
from pathlib import Path
import sys

# Add project root to path
project_root = Path(__file__).parent.parent.parent.parent
sys.path.insert(0, str(project_root))

from src.services.catalog import UserInput
from src.services.catalog.config import ROLE_ADMIN, VALID_ROLES

from ..components import require_role
from ..data_loader import get_database, load_users


def display_users_tab():
    """Display user management (ADMIN only)"""

    st.markdown("### Users")
    st.caption("Roles: ADMIN manages taxonomy and settings, HUMAN_GRADER grades products")

    if require_role(ROLE_ADMIN) is None:
        return

    try:
        db = get_database()
        users = load_users()

        if users:
            st.dataframe(users, width="stretch", hide_index=True)

        st.markdown("#### Create User")
        with st.form("create_user_form", clear_on_submit=True):
            username = st.text_input("Username")
            email = st.text_input("Email")
            role = st.selectbox("Role", VALID_ROLES)
            if st.form_submit_button("Create User"):
                try:
                    user = db.create_user(
                        UserInput(username=username, email=email, role=role)
                    )
                    st.success(f"Created user: {user.username}")
                    st.rerun()
                except ValueError as e:
                    st.error(str(e))

        if not users:
            return

        st.markdown("#### Change Role")
        with st.form("change_role_form"):
            user = st.selectbox(
                "User", users, format_func=lambda u: f"{u['username']} ({u['role']})"
            )
            role = st.selectbox("New role", VALID_ROLES)
            if st.form_submit_button("Update Role"):
                try:
                    db.update_user(
                        user["id"],
                        UserInput(username=user["username"], email=user["email"], role=role),
                    )
                    st.success(f"{user['username']} is now {role}")
                    st.rerun()
                except (ValueError, LookupError) as e:
                    st.error(str(e))

    except Exception as e:
        st.error(f"Error loading users: {str(e)}")
