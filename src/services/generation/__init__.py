"""
Product Generation Service - LLM pipeline that proposes products, checks
their category and fills in attribute values

This service integrates with:
- Catalog (database): taxonomy lookup and product storage
- LLM Gateway: every LLM call
"""
from .service import ProductGenerationService
from .models import (
    GenerationResult,
    CategoryIdentification,
    AttributeMappingResult,
    MappedAttribute,
    LLMDebug,
)

__all__ = [
    "ProductGenerationService",
    "GenerationResult",
    "CategoryIdentification",
    "AttributeMappingResult",
    "MappedAttribute",
    "LLMDebug",
]
