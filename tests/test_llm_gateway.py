"""
Unit tests for the LLM Gateway Service
"""

import json
import pytest
import httpx
import openai
import anthropic
from unittest.mock import MagicMock, patch

from src.services.catalog import RecordNotFoundError
from src.services.llm_gateway import (
    LLMGateway,
    LLMQueryError,
    OpenAIClient,
    AnthropicClient,
    MockLLMClient,
)
from src.services.llm_gateway.api_client import exponential_backoff_retry
from src.services.llm_gateway.models import LLMProvider


OPENAI_URL = "https://api.openai.com/v1/chat/completions"


def openai_status_error(error_class, status_code):
    response = httpx.Response(status_code, request=httpx.Request("POST", OPENAI_URL))
    return error_class("error", response=response, body=None)


def openai_reply(text):
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = text
    return response


# ============= TEST REGISTRY =============


class TestLLMRegistry:
    """Test provider/model CRUD"""

    def test_seed_default_providers(self, registry):
        names = {p.name: [m.name for m in p.models] for p in registry.list_providers()}

        assert set(names) == {"openai", "anthropic"}
        assert "gpt-4o-mini" in names["openai"]
        assert registry.seed_default_providers() == 0

    def test_duplicate_provider_rejected(self, registry):
        with pytest.raises(ValueError, match="already exists"):
            registry.create_provider("openai")

    def test_model_needs_existing_provider(self, registry):
        with pytest.raises(ValueError, match="Provider with id 999 not found"):
            registry.create_model("gpt-x", 999)

    def test_model_carries_provider(self, registry, openai_model):
        provider_id, model_id = openai_model
        model = registry.get_model(model_id)

        assert model.provider_id == provider_id
        assert model.provider.name == "openai"

    def test_update_key_and_mask(self, registry, openai_model):
        provider_id, _ = openai_model
        provider = registry.update_provider_key(provider_id, "sk-test-1234567890")

        assert provider.api_key == "sk-test-1234567890"
        assert provider.masked_key == "sk-t...7890"
        assert LLMProvider(id=1, name="x").masked_key == "(not set)"

    def test_delete_provider_cascades_models(self, registry, openai_model):
        provider_id, model_id = openai_model
        registry.delete_provider(provider_id)

        assert registry.get_provider(provider_id) is None
        assert registry.get_model(model_id) is None
        with pytest.raises(RecordNotFoundError):
            registry.delete_provider(provider_id)


# ============= TEST GATEWAY =============


class TestLLMGateway:
    """Test query_llm dispatch, errors and logging"""

    def test_mock_query_is_logged(self, mock_gateway, registry, openai_model):
        provider_id, model_id = openai_model

        reply = mock_gateway.query_llm(provider_id, model_id, "Say hello")

        assert reply == "Mock response"
        queries = registry.list_queries()
        assert len(queries) == 1
        assert queries[0].prompt == "Say hello"
        assert queries[0].response == "Mock response"

    @patch("src.services.llm_gateway.api_client.OpenAI")
    def test_openai_dispatch_strips_reply(self, mock_openai_class, registry, openai_model):
        provider_id, model_id = openai_model
        registry.update_provider_key(provider_id, "sk-test")
        mock_client = MagicMock()
        mock_openai_class.return_value = mock_client
        mock_client.chat.completions.create.return_value = openai_reply("  Paris \n")

        gateway = LLMGateway(registry, mock_mode=False)
        reply = gateway.query_llm(provider_id, model_id, "Capital of France?", max_tokens=20)

        assert reply == "Paris"
        mock_openai_class.assert_called_once_with(api_key="sk-test")
        kwargs = mock_client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == registry.get_model(model_id).name
        assert kwargs["max_tokens"] == 20
        assert kwargs["messages"] == [{"role": "user", "content": "Capital of France?"}]

    @patch("src.services.llm_gateway.api_client.anthropic.Anthropic")
    def test_anthropic_dispatch(self, mock_anthropic_class, registry):
        provider = next(p for p in registry.list_providers() if p.name == "anthropic")
        registry.update_provider_key(provider.id, "sk-ant-test")
        mock_client = MagicMock()
        mock_anthropic_class.return_value = mock_client
        mock_client.messages.create.return_value = MagicMock(
            content=[MagicMock(text="Bonjour")]
        )

        gateway = LLMGateway(registry, mock_mode=False)
        reply = gateway.query_llm(provider.id, provider.models[0].id, "Greet me")

        assert reply == "Bonjour"

    @patch("src.services.llm_gateway.api_client.OpenAI")
    def test_client_cached_per_provider(self, mock_openai_class, registry, openai_model):
        provider_id, model_id = openai_model
        registry.update_provider_key(provider_id, "sk-test")
        mock_openai_class.return_value.chat.completions.create.return_value = (
            openai_reply("ok")
        )

        gateway = LLMGateway(registry, mock_mode=False)
        gateway.query_llm(provider_id, model_id, "one")
        gateway.query_llm(provider_id, model_id, "two")

        assert mock_openai_class.call_count == 1

    def test_unknown_provider(self, mock_gateway, openai_model):
        _, model_id = openai_model

        with pytest.raises(LLMQueryError, match="Failed to query LLM") as exc_info:
            mock_gateway.query_llm(999, model_id, "hello")

        assert "Provider with id 999 not found" in str(exc_info.value.__cause__)

    def test_unknown_model(self, mock_gateway, openai_model):
        provider_id, _ = openai_model

        with pytest.raises(LLMQueryError) as exc_info:
            mock_gateway.query_llm(provider_id, 999, "hello")

        assert "Model with id 999 not found" in str(exc_info.value.__cause__)

    def test_unsupported_provider(self, registry):
        provider = registry.create_provider("cohere", "key")
        model = registry.create_model("command", provider.id)

        gateway = LLMGateway(registry, mock_mode=False)
        with pytest.raises(LLMQueryError) as exc_info:
            gateway.query_llm(provider.id, model.id, "hello")

        assert "Unsupported LLM provider: cohere" in str(exc_info.value.__cause__)

    def test_missing_api_key(self, registry, openai_model):
        provider_id, model_id = openai_model

        gateway = LLMGateway(registry, mock_mode=False)
        with patch("src.services.llm_gateway.gateway.OPENAI_API_KEY", None):
            with pytest.raises(LLMQueryError) as exc_info:
                gateway.query_llm(provider_id, model_id, "hello")

        assert isinstance(exc_info.value.__cause__, ValueError)

    def test_empty_prompt_rejected(self, mock_gateway, registry, openai_model):
        provider_id, model_id = openai_model

        with pytest.raises(LLMQueryError):
            mock_gateway.query_llm(provider_id, model_id, "   ")

        assert registry.list_queries() == []

    def test_invalid_max_tokens(self, mock_gateway, openai_model):
        provider_id, model_id = openai_model

        with pytest.raises(LLMQueryError):
            mock_gateway.query_llm(provider_id, model_id, "hello", max_tokens=0)


# ============= TEST API CLIENTS =============


class TestAPIClients:
    """Test vendor clients and retry logic"""

    def test_openai_requires_key(self):
        with pytest.raises(ValueError, match="API key is required"):
            OpenAIClient(api_key=None)

    def test_anthropic_requires_key(self):
        with pytest.raises(ValueError, match="API key is required"):
            AnthropicClient(api_key="")

    @patch("src.services.llm_gateway.api_client.time.sleep")
    @patch("src.services.llm_gateway.api_client.OpenAI")
    def test_retry_on_rate_limit(self, mock_openai_class, mock_sleep):
        create = mock_openai_class.return_value.chat.completions.create
        create.side_effect = [
            openai_status_error(openai.RateLimitError, 429),
            openai_reply("done"),
        ]

        client = OpenAIClient(api_key="sk-test")
        reply = client.complete("gpt-4o-mini", "hello", 10)

        assert reply == "done"
        assert create.call_count == 2
        mock_sleep.assert_called_once_with(1.0)

    @patch("src.services.llm_gateway.api_client.time.sleep")
    @patch("src.services.llm_gateway.api_client.OpenAI")
    def test_server_errors_exhaust_retries(self, mock_openai_class, mock_sleep):
        create = mock_openai_class.return_value.chat.completions.create
        create.side_effect = openai_status_error(openai.InternalServerError, 500)

        client = OpenAIClient(api_key="sk-test")
        with pytest.raises(openai.InternalServerError):
            client.complete("gpt-4o-mini", "hello", 10)

        assert create.call_count == 3
        assert [c.args[0] for c in mock_sleep.call_args_list] == [1.0, 2.0]

    @patch("src.services.llm_gateway.api_client.time.sleep")
    @patch("src.services.llm_gateway.api_client.OpenAI")
    def test_authentication_error_not_retried(self, mock_openai_class, mock_sleep):
        create = mock_openai_class.return_value.chat.completions.create
        create.side_effect = openai_status_error(openai.AuthenticationError, 401)

        client = OpenAIClient(api_key="sk-bad")
        with pytest.raises(openai.AuthenticationError):
            client.complete("gpt-4o-mini", "hello", 10)

        assert create.call_count == 1
        mock_sleep.assert_not_called()

    @patch("src.services.llm_gateway.api_client.time.sleep")
    def test_retry_on_timeout(self, mock_sleep):
        calls = []

        @exponential_backoff_retry(max_attempts=3, base_delay=0.5)
        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise anthropic.APITimeoutError(
                    request=httpx.Request("POST", "https://api.anthropic.com/v1/messages")
                )
            return "ok"

        assert flaky() == "ok"
        assert [c.args[0] for c in mock_sleep.call_args_list] == [0.5, 1.0]


class TestMockLLMClient:
    """Test canned responses"""

    def test_generation_prompt(self):
        prompt = (
            "Generate a list of 5 specific products related to: running shoes. "
            "Format the response as a JSON array of strings."
        )

        products = json.loads(MockLLMClient().complete("m", prompt, 100))

        assert len(products) == 5
        assert products[0] == "running shoes Basic"

    def test_attribute_prompt(self):
        prompt = (
            'For the product "X" in the subcategory "Y", map the following '
            "attributes: Brand (text), Wireless (boolean). Respond in JSON format"
        )

        mapping = json.loads(MockLLMClient().complete("m", prompt, 100))

        assert mapping == {"Brand": "Sample", "Wireless": "true"}
