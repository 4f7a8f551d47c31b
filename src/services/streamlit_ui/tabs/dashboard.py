"""
Dashboard Tab - Catalog Statistics and System Overview
"""

import streamlit as st
from pathlib import Path
from ...common.service_factory import ServiceFactory
import sys
import time

# Add project root to path
project_root = Path(__file__).parent.parent.parent.parent
sys.path.insert(0, str(project_root))

from ..components import display_metric_row, format_confidence
from ..data_loader import get_catalog_statistics, get_integrity_report, clear_cache


def display_dashboard_tab():
    """Display dashboard with catalog statistics"""

    st.markdown("### Catalog Statistics")
    st.caption("Overview of taxonomy, generated products and grading progress")

    try:
        stats = get_catalog_statistics()

        # Section A: Taxonomy
        st.markdown("#### Taxonomy")
        display_metric_row(
            {
                "Departments": stats["total_departments"],
                "Categories": stats["total_categories"],
                "Attributes": stats["total_attributes"],
                "Users": stats["total_users"],
            }
        )

        st.markdown("---")

        # Section B: Products and grading
        st.markdown("#### Products & Grading")
        display_metric_row(
            {
                "Total Products": stats["total_products"],
                "Generated": stats["generated_products"],
                "Graded": stats["graded_products"],
                "Pending Grading": stats["pending_grading"],
            }
        )

        col1, col2, col3 = st.columns(3)
        graded = stats["graded_products"]
        with col1:
            approved_pct = stats["approved_products"] / graded * 100 if graded else 0
            st.metric("Approved", stats["approved_products"], f"{approved_pct:.1f}%")
        with col2:
            rejected_pct = stats["rejected_products"] / graded * 100 if graded else 0
            st.metric("Rejected", stats["rejected_products"], f"{rejected_pct:.1f}%")
        with col3:
            st.metric(
                "Avg AI Confidence", format_confidence(stats["average_ai_confidence"])
            )

        by_department = stats.get("products_by_department") or {}
        if by_department:
            st.markdown("**Products by Department:**")
            st.bar_chart(by_department)

        st.markdown("---")

        # Section C: Integrity
        st.markdown("#### Data Integrity")
        integrity = get_integrity_report()
        if integrity["integrity_passed"]:
            st.success("Integrity check passed - no issues found")
        else:
            for issue in integrity["issues_found"]:
                st.warning(issue)
            with st.expander("Integrity details"):
                st.json(integrity)

        st.markdown("---")

        # Section D: Actions
        st.markdown("#### Actions")

        col1, col2 = st.columns([1, 3])

        with col1:
            if st.button("Refresh Statistics", type="primary"):
                clear_cache()
                st.rerun()

        with col2:
            timestamp = stats.get("timestamp", "Unknown")
            st.caption(f"Last updated: {timestamp}")

        st.markdown("---")

        # Section E: System Actions
        st.markdown("#### System Actions")
        st.caption("Administrative tools for cache management and troubleshooting")

        if st.button("Clear All Caches", type="secondary"):
            try:
                ServiceFactory.clear_cache()
                st.cache_data.clear()
                st.cache_resource.clear()

                st.success("All caches cleared successfully!")
                st.info("Page will reload to apply changes...")

                # Wait briefly for user to see message
                time.sleep(1)
                st.rerun()

            except Exception as e:
                st.error(f"Failed to clear caches: {str(e)}")

        with st.expander("Cache Statistics (Debug Info)"):
            try:
                st.json(ServiceFactory.get_cache_stats())
                st.caption(
                    "Cached instances are reused across operations to improve performance."
                )
            except Exception as e:
                st.error(f"Failed to get cache statistics: {str(e)}")

    except Exception as e:
        st.error(f"Error loading statistics: {str(e)}")
        if st.button("Retry"):
            clear_cache()
            st.rerun()
