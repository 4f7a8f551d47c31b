"""
Prompt construction for Product Generation Service
"""

import logging
from typing import List, Any

from .config import (
    GENERATE_PRODUCTS_PROMPT,
    IDENTIFY_CATEGORY_PROMPT,
    IDENTIFY_CATEGORY_FORMAT,
    MAP_ATTRIBUTES_PROMPT,
)

logger = logging.getLogger(__name__)


class PromptBuilder:
    """Build prompts for the three pipeline steps"""

    def build_generation_prompt(self, user_input: str, count: int = 5) -> str:
        return GENERATE_PRODUCTS_PROMPT.format(count=count, input=user_input)

    def build_category_prompt(
        self, product: str, category: Any, subcategory: Any
    ) -> str:
        """
        Build the category confirmation prompt

        Args:
            product: Product name
            category: Category with a department
            subcategory: Subcategory of the category

        Returns:
            Prompt asking the LLM to confirm or suggest better categories
        """
        department = category.department.name if category.department else ""
        prompt = IDENTIFY_CATEGORY_PROMPT.format(
            product=product,
            category=category.name,
            department=department,
            subcategory=subcategory.name,
        )
        return prompt + IDENTIFY_CATEGORY_FORMAT

    def build_attribute_prompt(
        self, product: str, subcategory: Any, attributes: List[Any]
    ) -> str:
        attribute_list = self.format_attribute_list(attributes)
        logger.debug(f"Attribute list for prompt: {attribute_list}")
        return MAP_ATTRIBUTES_PROMPT.format(
            product=product,
            subcategory=subcategory.name,
            attribute_list=attribute_list,
        )

    def format_attribute_list(self, attributes: List[Any]) -> str:
        """'Color (select), Weight (number)'"""
        return ", ".join(f"{a.name} ({a.data_type})" for a in attributes)
