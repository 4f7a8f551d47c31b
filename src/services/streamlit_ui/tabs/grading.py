"""
Grading Tab - human review of generated products
"""

import streamlit as st
from pathlib import Path
import sys

# Add project root to path
project_root = Path(__file__).parent.parent.parent.parent
sys.path.insert(0, str(project_root))

from src.services.common.service_factory import ServiceFactory
from src.services.catalog.config import ROLE_HUMAN_GRADER
from src.services.grading import (
    GradingAttribute,
    GradingSubmission,
    ProductNotGradableError,
    NO_MORE_PRODUCTS_MESSAGE,
)

from ..components import require_role, display_metric_row, format_confidence
from ..data_loader import clear_cache


def display_grading_tab():
    """Display the grading workflow (HUMAN_GRADER only)"""

    st.markdown("### Human Grading")
    st.caption("Review LLM output, correct attribute values and approve or reject")

    user = require_role(ROLE_HUMAN_GRADER)
    if user is None:
        return

    try:
        service = ServiceFactory.get_grading_service()

        stats = service.get_grading_stats(user["id"]).model_dump()
        display_metric_row(
            {
                "Reviewed": stats["reviewed"],
                "Accuracy": f"{stats['accuracy']:.1f}%",
                "Approved": stats["approved"],
                "Rejected": stats["rejected"],
            }
        )

        session = service.get_open_session(user["id"])
        if session:
            st.caption(
                f"Session {session.id} started {session.started_at[:19]} "
                f"({session.graded_count} graded)"
            )
            if st.button("Complete Session"):
                service.complete_session(user["id"])
                st.success("Session completed")
                st.rerun()

        st.markdown("---")

        notice = st.session_state.pop("grading_notice", None)
        if notice:
            st.warning(notice)

        product = st.session_state.grading_product
        if product is None:
            next_product = service.get_next_product(user["id"])
            if next_product is None:
                st.info(NO_MORE_PRODUCTS_MESSAGE)
                return
            product = next_product.model_dump()
            st.session_state.grading_product = product

        display_grading_form(service, user, product)

    except Exception as e:
        st.error(f"Error loading grading: {str(e)}")


def display_grading_form(service, user, product):
    st.markdown(f"#### {product['name']}")
    col1, col2 = st.columns(2)
    with col1:
        st.markdown(f"**Category:** {(product.get('category') or {}).get('name', 'N/A')}")
    with col2:
        st.markdown(f"**AI confidence:** {format_confidence(product.get('ai_confidence'))}")

    if product.get("description"):
        st.caption(product["description"])

    with st.form(f"grading_form_{product['id']}"):
        values = {}
        for attribute in product["attributes"]:
            label = f"{attribute['name']} ({attribute['data_type']})"
            if attribute["is_required"]:
                label += " *"
            values[attribute["id"]] = st.text_input(
                label,
                value=attribute["value"],
                key=f"grade_{product['id']}_{attribute['id']}",
            )

        col1, col2 = st.columns(2)
        with col1:
            approve = st.form_submit_button("Approve", type="primary", width="stretch")
        with col2:
            reject = st.form_submit_button("Reject", width="stretch")

    if not (approve or reject):
        return

    submission = GradingSubmission(
        product_id=product["id"],
        attributes=[
            GradingAttribute(id=a["id"], name=a["name"], value=values[a["id"]])
            for a in product["attributes"]
        ],
        approved=bool(approve),
    )

    try:
        response = service.submit_grading(user["id"], submission)
    except ProductNotGradableError as e:
        # Move on to the next product
        st.session_state.grading_product = None
        st.session_state.grading_notice = f"{e}. Loaded the next product."
        clear_cache()
        st.rerun()
    except ValueError as e:
        st.error(str(e))
        return

    st.session_state.grading_product = None
    clear_cache()
    st.success(response.message)
    st.rerun()
