"""
Provider-agnostic LLM query utility
Resolves provider and model from the registry, dispatches to the vendor
client and logs every prompt/response pair
"""

import time
import logging
from typing import Dict, Optional, Any

from .config import (
    PROVIDER_OPENAI,
    PROVIDER_ANTHROPIC,
    OPENAI_API_KEY,
    ANTHROPIC_API_KEY,
    DEFAULT_MAX_TOKENS,
    MOCK_LLM,
)
from .api_client import OpenAIClient, AnthropicClient, MockLLMClient
from .models import LLMProvider, LLMQueryParams, LLMQueryError
from .registry import LLMRegistry

logger = logging.getLogger(__name__)


class LLMGateway:
    """Single entry point for LLM calls"""

    def __init__(
        self,
        registry: LLMRegistry,
        mock_mode: Optional[bool] = None,
    ):
        self.registry = registry
        self.mock_mode = MOCK_LLM if mock_mode is None else mock_mode
        self._clients: Dict[Any, Any] = {}

        logger.info(f"LLM gateway initialized (mock_mode={self.mock_mode})")

    def _get_client(self, provider: LLMProvider):
        """
        Return (cached) vendor client for a provider

        Raises:
            ValueError: If the provider name is not supported
        """
        if self.mock_mode:
            if "mock" not in self._clients:
                self._clients["mock"] = MockLLMClient()
            return self._clients["mock"]

        name = provider.name.lower()
        cache_key = (name, provider.api_key)
        if cache_key in self._clients:
            return self._clients[cache_key]

        if name == PROVIDER_OPENAI:
            client = OpenAIClient(api_key=provider.api_key or OPENAI_API_KEY)
        elif name == PROVIDER_ANTHROPIC:
            client = AnthropicClient(api_key=provider.api_key or ANTHROPIC_API_KEY)
        else:
            raise ValueError(f"Unsupported LLM provider: {provider.name}")

        self._clients[cache_key] = client
        return client

    def query_llm(
        self,
        provider_id: int,
        model_id: int,
        prompt: str,
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> str:
        """
        Send a prompt to a registered model and return the trimmed reply

        Args:
            provider_id: Registered provider id
            model_id: Registered model id
            prompt: User message
            max_tokens: Completion limit

        Returns:
            Response text, stripped of surrounding whitespace

        Raises:
            LLMQueryError: On any failure; the cause is chained
        """
        try:
            params = LLMQueryParams(
                provider_id=provider_id,
                model_id=model_id,
                prompt=prompt,
                max_tokens=max_tokens,
            )

            provider = self.registry.get_provider(params.provider_id)
            if provider is None:
                raise ValueError(f"Provider with id {params.provider_id} not found")

            model = self.registry.get_model(params.model_id)
            if model is None:
                raise ValueError(f"Model with id {params.model_id} not found")

            client = self._get_client(provider)

            start_time = time.time()
            response = client.complete(model.name, params.prompt, params.max_tokens)
            response = (response or "").strip()
            elapsed = time.time() - start_time

            logger.debug(
                f"LLM query to {provider.name}/{model.name} took {elapsed:.2f}s "
                f"({len(response)} characters)"
            )

        except Exception as e:
            logger.error(f"Error querying LLM: {type(e).__name__}: {str(e)}")
            raise LLMQueryError("Failed to query LLM") from e

        self._log_query(params.provider_id, params.model_id, params.prompt, response)
        return response

    def _log_query(
        self, provider_id: int, model_id: int, prompt: str, response: str
    ) -> None:
        try:
            query_id = self.registry.log_query(provider_id, model_id, prompt, response)
            logger.debug(f"LLM query logged (id={query_id})")
        except Exception as e:
            logger.error(f"Error logging LLM query: {e}")
