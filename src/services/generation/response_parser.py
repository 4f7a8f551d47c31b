"""
Response parsing for Product Generation Service
Handles JSON extraction from LLM replies and value normalization
"""

import json
import re
import logging
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

TRUE_WORDS = {"true", "yes", "correct", "confirmed"}
FALSE_WORDS = {"false", "no", "incorrect", "rejected"}


class ResponseParser:
    """Extracts JSON arrays/objects from LLM responses"""

    def _extract(self, llm_response: str, opening: str, closing: str) -> Any:
        """
        Extract a JSON value, handling various formats

        LLM might return:
        - Pure JSON
        - Markdown wrapped: ```json\n...\n```
        - Text before/after JSON

        Raises:
            ValueError: If no valid JSON found
        """
        text = (llm_response or "").strip()

        # Try direct parsing first
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            logger.debug("Direct parsing failed, trying extraction methods")

        # Markdown code block
        match = re.search(r"```(?:json)?\s*(.*?)\s*```", text, re.DOTALL)
        if match:
            try:
                return json.loads(match.group(1))
            except json.JSONDecodeError:
                logger.debug("Markdown extraction failed")

        # Outermost bracketed span
        start = text.find(opening)
        end = text.rfind(closing)
        if start != -1 and end > start:
            try:
                return json.loads(text[start : end + 1])
            except json.JSONDecodeError:
                logger.debug("Pattern extraction failed")

        raise ValueError("Could not extract valid JSON from LLM response")

    def parse_product_list(self, llm_response: str) -> List[str]:
        """
        Parse a JSON array of product names

        Returns:
            Non-empty stripped names, duplicates removed (first wins)

        Raises:
            ValueError: If the reply holds no JSON array
        """
        parsed = self._extract(llm_response, "[", "]")
        if isinstance(parsed, dict):
            # {"products": [...]}
            parsed = next((v for v in parsed.values() if isinstance(v, list)), None)
        if not isinstance(parsed, list):
            raise ValueError("LLM response is not a JSON array")

        products = []
        seen = set()
        for item in parsed:
            if isinstance(item, dict):
                item = item.get("name") or item.get("product")
            if item is None:
                continue
            name = str(item).strip()
            if name and name.lower() not in seen:
                seen.add(name.lower())
                products.append(name)

        logger.debug(f"Parsed {len(products)} products from response")
        return products

    def parse_object(self, llm_response: str) -> Dict[str, Any]:
        """
        Parse a JSON object

        Raises:
            ValueError: If the reply holds no JSON object
        """
        parsed = self._extract(llm_response, "{", "}")
        if not isinstance(parsed, dict):
            raise ValueError("LLM response is not a JSON object")
        return parsed

    def parse_category_verdict(self, llm_response: str) -> Dict[str, Any]:
        """
        Parse a category confirmation reply

        Returns:
            Dict with confirmed (bool or None), suggested_category,
            suggested_subcategory and reasoning; all None when unparseable
        """
        verdict = {
            "confirmed": None,
            "suggested_category": None,
            "suggested_subcategory": None,
            "reasoning": None,
        }
        try:
            parsed = self.parse_object(llm_response)
        except ValueError:
            logger.warning("Category verdict could not be parsed, keeping raw text")
            return verdict

        verdict["confirmed"] = self.to_bool(parsed.get("confirmed"))
        for key in ("suggested_category", "suggested_subcategory", "reasoning"):
            value = parsed.get(key)
            verdict[key] = str(value).strip() if value not in (None, "") else None
        return verdict

    def to_bool(self, value: Any) -> Optional[bool]:
        if isinstance(value, bool):
            return value
        if value is None:
            return None
        text = str(value).strip().lower()
        if text in TRUE_WORDS:
            return True
        if text in FALSE_WORDS:
            return False
        return None

    def stringify_value(self, value: Any) -> str:
        """Normalize an attribute value to the stored text form"""
        if value is None:
            return ""
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        if isinstance(value, list):
            return ", ".join(self.stringify_value(v) for v in value)
        if isinstance(value, dict):
            return json.dumps(value, ensure_ascii=False)
        return str(value).strip()
