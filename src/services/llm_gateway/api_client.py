"""
Provider API clients with retry logic for LLM Gateway Service
Handles API calls with exponential backoff for transient failures
"""

import re
import json
import time
import logging
from functools import wraps
from typing import Optional

import anthropic
import openai
from openai import OpenAI

from .config import (
    LLM_TIMEOUT,
    RETRY_MAX_ATTEMPTS,
    RETRY_BASE_DELAY,
    RETRY_EXPONENTIAL_BASE,
)

logger = logging.getLogger(__name__)

NON_RETRYABLE_ERRORS = (
    openai.AuthenticationError,
    openai.BadRequestError,
    anthropic.AuthenticationError,
    anthropic.BadRequestError,
)
TIMEOUT_ERRORS = (openai.APITimeoutError, anthropic.APITimeoutError)
RATE_LIMIT_ERRORS = (openai.RateLimitError, anthropic.RateLimitError)
API_ERRORS = (openai.APIError, anthropic.APIError)


def exponential_backoff_retry(
    max_attempts: int = RETRY_MAX_ATTEMPTS, base_delay: float = RETRY_BASE_DELAY
):
    """
    Decorator for exponential backoff retry logic

    Retries timeouts, rate limits and 5xx errors from either SDK.

    Args:
        max_attempts: Maximum number of retry attempts
        base_delay: Base delay in seconds (doubles each retry)
    """

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            last_exception = None

            for attempt in range(1, max_attempts + 1):
                delay = base_delay * (RETRY_EXPONENTIAL_BASE ** (attempt - 1))
                try:
                    return func(*args, **kwargs)

                except NON_RETRYABLE_ERRORS as e:
                    logger.error(f"Non-retryable error: {type(e).__name__}: {str(e)}")
                    raise

                except TIMEOUT_ERRORS as e:
                    last_exception = e
                    if attempt < max_attempts:
                        logger.warning(
                            f"Timeout on attempt {attempt}/{max_attempts}, retrying in {delay}s..."
                        )
                        time.sleep(delay)
                    else:
                        logger.error("Max retries exceeded after timeout")
                        raise

                except RATE_LIMIT_ERRORS as e:
                    last_exception = e
                    if attempt < max_attempts:
                        logger.warning(
                            f"Rate limit hit on attempt {attempt}/{max_attempts}, waiting {delay}s..."
                        )
                        time.sleep(delay)
                    else:
                        logger.error("Max retries exceeded for rate limit")
                        raise

                except API_ERRORS as e:
                    last_exception = e
                    status_code = getattr(e, "status_code", None)
                    if status_code is not None and 500 <= status_code < 600:
                        if attempt < max_attempts:
                            logger.warning(
                                f"API error on attempt {attempt}/{max_attempts}, retrying in {delay}s..."
                            )
                            time.sleep(delay)
                        else:
                            logger.error("Max retries exceeded for API error")
                            raise
                    else:
                        logger.error(f"Non-retryable API error: {type(e).__name__}")
                        raise

            raise last_exception

        return wrapper

    return decorator


class OpenAIClient:
    """OpenAI chat completions client with retry logic"""

    def __init__(self, api_key: Optional[str] = None):
        if not api_key:
            raise ValueError(
                "OpenAI API key is required. Set it on the provider or in OPENAI_API_KEY."
            )
        self.timeout = LLM_TIMEOUT
        self.client = OpenAI(api_key=api_key)
        logger.info("OpenAI client initialized")

    @exponential_backoff_retry(
        max_attempts=RETRY_MAX_ATTEMPTS, base_delay=RETRY_BASE_DELAY
    )
    def complete(self, model: str, prompt: str, max_tokens: int) -> str:
        """
        Send a single user message and return the reply text

        Raises:
            openai.OpenAIError: After max retries or non-retryable errors
        """
        logger.debug(f"Calling OpenAI API (model={model}, max_tokens={max_tokens})")

        response = self.client.chat.completions.create(
            model=model,
            max_tokens=max_tokens,
            timeout=self.timeout,
            messages=[{"role": "user", "content": prompt}],
        )
        content = response.choices[0].message.content or ""

        logger.debug(f"API response received ({len(content)} characters)")
        return content


class AnthropicClient:
    """Anthropic messages client with retry logic"""

    def __init__(self, api_key: Optional[str] = None):
        if not api_key:
            raise ValueError(
                "Anthropic API key is required. Set it on the provider or in ANTHROPIC_API_KEY."
            )
        self.timeout = LLM_TIMEOUT
        self.client = anthropic.Anthropic(api_key=api_key)
        logger.info("Anthropic client initialized")

    @exponential_backoff_retry(
        max_attempts=RETRY_MAX_ATTEMPTS, base_delay=RETRY_BASE_DELAY
    )
    def complete(self, model: str, prompt: str, max_tokens: int) -> str:
        """
        Send a single user message and return the reply text

        Raises:
            anthropic.APIError: After max retries or non-retryable errors
        """
        logger.debug(f"Calling Anthropic API (model={model}, max_tokens={max_tokens})")

        response = self.client.messages.create(
            model=model,
            max_tokens=max_tokens,
            timeout=self.timeout,
            messages=[{"role": "user", "content": prompt}],
        )
        content = response.content[0].text if response.content else ""

        logger.debug(f"API response received ({len(content)} characters)")
        return content


class MockLLMClient:
    """Offline client returning canned JSON shaped after the prompt"""

    SAMPLE_VALUES = {
        "number": "1",
        "boolean": "true",
        "date": "2024-01-01",
        "select": "Standard",
        "text": "Sample",
    }

    def __init__(self):
        logger.warning("LLM client in MOCK MODE - using mock responses")

    def complete(self, model: str, prompt: str, max_tokens: int) -> str:
        logger.debug(f"Generating MOCK response (model={model})")

        generate = re.search(r"related to: (.+?)\. Format the response", prompt, re.S)
        if generate:
            topic = generate.group(1).strip()
            products = [
                f"{topic} {suffix}"
                for suffix in ["Basic", "Pro", "Deluxe", "Compact", "Travel Edition"]
            ]
            return json.dumps(products)

        if "confirm if these are correct" in prompt:
            category = re.search(r'suggested category "(.+?)"', prompt)
            subcategory = re.search(r'the subcategory "(.+?)"', prompt)
            return json.dumps(
                {
                    "confirmed": True,
                    "suggested_category": category.group(1) if category else None,
                    "suggested_subcategory": subcategory.group(1) if subcategory else None,
                    "reasoning": "Mock confirmation",
                }
            )

        attributes = re.search(r"map the following attributes: (.+?)\. Respond", prompt, re.S)
        if attributes:
            mapping = {}
            for item in attributes.group(1).split(", "):
                match = re.match(r"(.+) \((\w+)\)$", item.strip())
                if match:
                    name, data_type = match.groups()
                    mapping[name] = self.SAMPLE_VALUES.get(data_type, "Sample")
            return json.dumps(mapping)

        return "Mock response"
