"""
Data models for Product Generation Service
"""

from typing import Optional, List, Dict
from pydantic import BaseModel, Field

from ..catalog.models import CategoryRef


class LLMDebug(BaseModel):
    """Prompt and raw reply, shown in the UI debug panel"""

    prompt: Optional[str] = None
    llm_response: Optional[str] = None


class GenerationResult(BaseModel):
    """Product ideas generated from a free-text input"""

    input: str
    products: List[str] = Field(default_factory=list)
    debug: LLMDebug = Field(default_factory=LLMDebug)


class CategoryIdentification(BaseModel):
    """LLM verdict on a chosen category/subcategory pair"""

    product: str
    department: str
    category: CategoryRef
    subcategory: CategoryRef
    confirmed: Optional[bool] = None  # None when the reply could not be parsed
    suggested_category: Optional[str] = None
    suggested_subcategory: Optional[str] = None
    reasoning: Optional[str] = None
    debug: LLMDebug = Field(default_factory=LLMDebug)


class MappedAttribute(BaseModel):
    id: int
    name: str
    data_type: str
    is_required: bool = False
    value: str = ""


class AttributeMappingResult(BaseModel):
    """Attribute values proposed by the LLM for a product"""

    product: str
    subcategory: CategoryRef
    attributes: List[MappedAttribute] = Field(default_factory=list)
    unmapped_keys: List[str] = Field(default_factory=list)
    missing_required: List[str] = Field(default_factory=list)
    debug: LLMDebug = Field(default_factory=LLMDebug)

    def mapped_values(self) -> Dict[str, str]:
        """Attribute name -> value"""
        return {a.name: a.value for a in self.attributes}
