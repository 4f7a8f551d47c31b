"""
Data models for LLM Gateway Service
"""

from typing import Optional, List
from pydantic import BaseModel, Field, field_validator, ConfigDict

from .config import DEFAULT_MAX_TOKENS


class LLMQueryError(Exception):
    """Raised when an LLM query fails for any reason"""

    def __init__(self, message: str = "Failed to query LLM"):
        super().__init__(message)


class ModelRef(BaseModel):
    id: int
    name: str


class ProviderRef(BaseModel):
    id: int
    name: str


class LLMProvider(BaseModel):
    """Configured LLM vendor with its models"""

    id: int
    name: str
    api_key: Optional[str] = None
    models: List[ModelRef] = Field(default_factory=list)

    @property
    def masked_key(self) -> str:
        """API key safe for display"""
        if not self.api_key:
            return "(not set)"
        if len(self.api_key) <= 8:
            return "****"
        return f"{self.api_key[:4]}...{self.api_key[-4:]}"


class LLMModel(BaseModel):
    """Model offered by a provider"""

    id: int
    name: str
    provider_id: int
    provider: Optional[ProviderRef] = None


class LLMQueryRecord(BaseModel):
    """One logged prompt/response pair"""

    id: int
    provider_id: int
    model_id: int
    prompt: str
    response: Optional[str] = None
    timestamp: str


class LLMQueryParams(BaseModel):
    """Validated parameters for LLMGateway.query_llm"""

    model_config = ConfigDict(str_strip_whitespace=True)

    provider_id: int
    model_id: int
    prompt: str
    max_tokens: int = DEFAULT_MAX_TOKENS

    @field_validator("prompt")
    @classmethod
    def validate_prompt(cls, v: str) -> str:
        if not v:
            raise ValueError("Prompt cannot be empty")
        return v

    @field_validator("max_tokens")
    @classmethod
    def validate_max_tokens(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"max_tokens must be positive, got: {v}")
        return v
