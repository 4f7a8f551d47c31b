"""
Configuration constants for Product Generation Service
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Project Root Directory
PROJECT_ROOT = Path(__file__).parent.parent.parent.parent

# File paths
DATA_DIR = PROJECT_ROOT / "data"
LOG_DIR = DATA_DIR / "logs"

# Ensure directories exist
LOG_DIR.mkdir(parents=True, exist_ok=True)

# Default model used by the pipeline (ids in the LLM registry)
LLM_PROVIDER_ID = int(os.getenv("LLM_PROVIDER_ID", "1"))
LLM_MODEL_ID = int(os.getenv("LLM_MODEL_ID", "1"))
GENERATION_MAX_TOKENS = 500

# Generation
DEFAULT_PRODUCT_COUNT = 5

# AI confidence weights
REQUIRED_ATTRIBUTE_WEIGHT = 2
OPTIONAL_ATTRIBUTE_WEIGHT = 1
REJECTED_CATEGORY_FACTOR = 0.5

# Prompt templates
GENERATE_PRODUCTS_PROMPT = (
    "Generate a list of {count} specific products related to: {input}. "
    "Format the response as a JSON array of strings."
)

IDENTIFY_CATEGORY_PROMPT = (
    'Given the product "{product}", the suggested category "{category}" in the '
    'department "{department}", and the subcategory "{subcategory}", confirm if '
    "these are correct or suggest more appropriate ones."
)

IDENTIFY_CATEGORY_FORMAT = """

Respond with ONLY a JSON object, no text before or after:
{
    "confirmed": true or false,
    "suggested_category": "category name",
    "suggested_subcategory": "subcategory name",
    "reasoning": "one sentence"
}"""

MAP_ATTRIBUTES_PROMPT = (
    'For the product "{product}" in the subcategory "{subcategory}", map the '
    "following attributes: {attribute_list}. Respond in JSON format where keys "
    "are attribute names and values are the corresponding values for this product."
)

# Logging Configuration
LOG_FILE = LOG_DIR / "generation.log"
ERROR_LOG_FILE = LOG_DIR / "generation_errors.log"
LOG_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
)
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

DEBUG_MODE = os.getenv("DEBUG_MODE", "false").lower() == "true"
LOG_LEVEL = "DEBUG" if DEBUG_MODE else "INFO"
