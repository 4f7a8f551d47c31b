"""
Products Tab - product listing, detail view and export
"""

import streamlit as st
import pandas as pd
from pathlib import Path
import sys

# Add project root to path
project_root = Path(__file__).parent.parent.parent.parent
sys.path.insert(0, str(project_root))

from src.services.catalog.config import EXPORT_DIR

from ..components import format_product_for_display
from ..config import MAX_PRODUCTS_DISPLAY
from ..data_loader import get_database, load_products


def display_products_tab():
    """Display products with attribute values"""

    st.markdown("### Products")
    st.caption(f"Showing up to {MAX_PRODUCTS_DISPLAY} products")

    try:
        products = load_products(limit=MAX_PRODUCTS_DISPLAY)

        if not products:
            st.warning("No products found")
            return

        st.dataframe(
            [format_product_for_display(p) for p in products],
            width="stretch",
            height=400,
            hide_index=True,
        )

        st.markdown("#### Product Detail")
        selected = st.selectbox(
            "Product",
            products,
            format_func=lambda p: f"{p['id']} - {p['name']}",
            key="products_detail_select",
        )
        st.dataframe(
            pd.DataFrame(
                [
                    {
                        "Attribute": a["name"],
                        "Type": a["data_type"],
                        "Required": "Yes" if a["is_required"] else "No",
                        "Value": a["value"],
                    }
                    for a in selected["attributes"]
                ]
            ),
            width="stretch",
            hide_index=True,
        )

        st.markdown("---")
        st.markdown("#### Export")
        col1, col2 = st.columns(2)
        for col, fmt in zip((col1, col2), ("json", "csv")):
            with col:
                if st.button(f"Export {fmt.upper()}", width="stretch"):
                    output_path = EXPORT_DIR / f"products.{fmt}"
                    count = get_database().export_products(output_path, fmt=fmt)
                    st.success(f"Exported {count} products to {output_path}")
                    st.download_button(
                        f"Download {fmt.upper()}",
                        data=output_path.read_bytes(),
                        file_name=output_path.name,
                        key=f"download_{fmt}",
                    )

    except Exception as e:
        st.error(f"Error loading products: {str(e)}")
