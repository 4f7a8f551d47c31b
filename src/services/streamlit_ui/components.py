"""
Reusable UI Components
"""

import streamlit as st
from typing import Dict, Any, Optional, List


def display_metric_row(metrics_dict: Dict[str, Any]):
    """Display metrics in a row of columns"""
    cols = st.columns(len(metrics_dict))
    for col, (label, value) in zip(cols, metrics_dict.items()):
        col.metric(label, value)


def get_current_user() -> Optional[Dict[str, Any]]:
    """Acting user chosen in the sidebar"""
    return st.session_state.get("current_user")


def require_role(*roles: str) -> Optional[Dict[str, Any]]:
    """
    Gate a tab on the acting user's role

    Returns:
        The acting user when allowed, otherwise None (a notice is shown)
    """
    user = get_current_user()
    if user is None:
        st.info("Select a user in the sidebar to continue.")
        return None
    if user["role"] not in roles:
        st.warning(
            f"This section requires role {' or '.join(roles)}; "
            f"{user['username']} is {user['role']}."
        )
        return None
    return user


def display_debug_panel(debug: Optional[Dict[str, Any]]):
    """Show the prompt and raw LLM reply in a collapsed panel"""
    if not debug:
        return
    with st.expander("Debug: prompt and LLM response", expanded=False):
        st.markdown("**Prompt**")
        st.code(debug.get("prompt") or "", language=None)
        st.markdown("**LLM response**")
        st.code(debug.get("llm_response") or "", language=None)


def format_confidence(confidence: Optional[float]) -> str:
    if confidence is None:
        return "N/A"
    return f"{confidence * 100:.0f}%"


def format_product_for_display(product: Dict[str, Any]) -> Dict[str, Any]:
    """Format product dict for display in table"""
    attributes = product.get("attributes") or []
    filled = sum(1 for a in attributes if a.get("value"))
    return {
        "ID": product["id"],
        "Name": product["name"],
        "Category": (product.get("category") or {}).get("name", "N/A"),
        "Attributes": f"{filled}/{len(attributes)}",
        "AI Confidence": format_confidence(product.get("ai_confidence")),
        "Created": (product.get("created_at") or "")[:10] or "N/A",
    }


def display_pagination(key_prefix: str, total_pages: int) -> int:
    """
    Previous/next controls backed by session state

    Returns:
        Current 1-based page
    """
    state_key = f"{key_prefix}_page"
    if state_key not in st.session_state:
        st.session_state[state_key] = 1

    total_pages = max(total_pages, 1)
    st.session_state[state_key] = min(st.session_state[state_key], total_pages)

    col1, col2, col3 = st.columns([1, 2, 1])
    with col1:
        if st.button(
            "Previous",
            key=f"{key_prefix}_prev",
            disabled=st.session_state[state_key] <= 1,
            width="stretch",
        ):
            st.session_state[state_key] -= 1
            st.rerun()
    with col2:
        st.markdown(f"Page {st.session_state[state_key]} of {total_pages}")
    with col3:
        if st.button(
            "Next",
            key=f"{key_prefix}_next",
            disabled=st.session_state[state_key] >= total_pages,
            width="stretch",
        ):
            st.session_state[state_key] += 1
            st.rerun()

    return st.session_state[state_key]


def option_index(options: List[Dict[str, Any]], selected_id: Optional[int]) -> int:
    """Index of the option whose id matches, 0 when absent"""
    for idx, option in enumerate(options):
        if option["id"] == selected_id:
            return idx
    return 0
