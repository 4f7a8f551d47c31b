"""
Product Categorizer
Streamlit Web Interface
"""

import streamlit as st
import sys
from pathlib import Path

# Add src to path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from src.services.streamlit_ui.app import main
from src.services.streamlit_ui.config import PAGE_TITLE, PAGE_ICON, LAYOUT

# Streamlit page config
st.set_page_config(
    page_title=PAGE_TITLE,
    page_icon=PAGE_ICON,
    layout=LAYOUT,
    initial_sidebar_state="expanded",
)

if __name__ == "__main__":
    main()
