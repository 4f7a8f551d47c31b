"""
LLM Gateway Service - provider registry and query utility

Usage:
    from src.services.llm_gateway import LLMGateway, LLMRegistry

    gateway = LLMGateway(LLMRegistry(db))
    text = gateway.query_llm(provider_id=1, model_id=1, prompt="Hello")
"""
from .api_client import (
    OpenAIClient,
    AnthropicClient,
    MockLLMClient,
    exponential_backoff_retry,
)
from .gateway import LLMGateway
from .registry import LLMRegistry
from .models import (
    LLMProvider,
    LLMModel,
    LLMQueryRecord,
    LLMQueryParams,
    LLMQueryError,
)

__all__ = [
    "LLMGateway",
    "LLMRegistry",
    "OpenAIClient",
    "AnthropicClient",
    "MockLLMClient",
    "exponential_backoff_retry",
    "LLMProvider",
    "LLMModel",
    "LLMQueryRecord",
    "LLMQueryParams",
    "LLMQueryError",
]
