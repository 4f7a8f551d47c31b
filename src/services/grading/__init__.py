"""
Grading Service - human review of LLM-generated products
"""
from .service import (
    GradingService,
    ProductNotGradableError,
    SUCCESS_MESSAGE,
    NO_MORE_PRODUCTS_MESSAGE,
)
from .models import (
    GradingAttribute,
    GradingSubmission,
    GradingStats,
    GradingResponse,
    GradingSession,
)

__all__ = [
    "GradingService",
    "ProductNotGradableError",
    "SUCCESS_MESSAGE",
    "NO_MORE_PRODUCTS_MESSAGE",
    "GradingAttribute",
    "GradingSubmission",
    "GradingStats",
    "GradingResponse",
    "GradingSession",
]
