"""
Streamlit UI Configuration
"""

# Page Config
PAGE_TITLE = "Product Categorizer"
PAGE_ICON = None
LAYOUT = "wide"

# Data display limit
MAX_PRODUCTS_DISPLAY = 500
MAX_QUERIES_DISPLAY = 50

# Pagination
CATEGORY_PAGE_SIZE = 10
ATTRIBUTE_PAGE_SIZE = 10

# Cache TTL
CACHE_TTL_STATISTICS = 10
CACHE_TTL_TAXONOMY = 30
CACHE_TTL_PRODUCTS = 60

# Product generation wizard
WIZARD_STEPS = [
    "Describe",
    "Pick Product",
    "Pick Category",
    "Confirm Category",
    "Map Attributes",
    "Review & Save",
]
