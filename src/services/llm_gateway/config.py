"""
Configuration constants for LLM Gateway Service
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

# Provider names (matched case-insensitively)
PROVIDER_OPENAI = "openai"
PROVIDER_ANTHROPIC = "anthropic"
SUPPORTED_PROVIDERS = [PROVIDER_OPENAI, PROVIDER_ANTHROPIC]

# Fallback API keys when a provider row has none
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")

# Request configuration
DEFAULT_MAX_TOKENS = 500
LLM_TIMEOUT = 60

# Retry Configuration
RETRY_MAX_ATTEMPTS = 3
RETRY_BASE_DELAY = 1.0  # seconds
RETRY_EXPONENTIAL_BASE = 2

# Providers and models seeded into a fresh database
DEFAULT_PROVIDERS = {
    PROVIDER_OPENAI: ["gpt-4o-mini", "gpt-4o"],
    PROVIDER_ANTHROPIC: ["claude-3-5-haiku-latest", "claude-3-5-sonnet-latest"],
}

# Logging Configuration
LOG_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
)
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Development/Production Mode
DEBUG_MODE = os.getenv("DEBUG_MODE", "false").lower() == "true"
MOCK_LLM = os.getenv("MOCK_LLM", "false").lower() == "true"

if DEBUG_MODE:
    LOG_LEVEL = "DEBUG"
else:
    LOG_LEVEL = "INFO"
