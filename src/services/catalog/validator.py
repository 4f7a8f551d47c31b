"""
Validation logic for Catalog Service
Form checks for categories/attributes and value checks for attribute data types
"""

import logging
import math
import re
from datetime import datetime
from typing import Dict, List, Optional, Any

from .config import (
    VALID_DATA_TYPES,
    BOOLEAN_VALUES,
    MAX_NAME_LENGTH,
)

logger = logging.getLogger(__name__)

THOUSANDS_PATTERN = re.compile(r"^[+-]?\d{1,3}(,\d{3})+(\.\d+)?$")
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class CatalogValidator:
    """Validates taxonomy forms and attribute values"""

    def validate_category_form(self, data: Dict[str, Any]) -> Dict[str, str]:
        """
        Validate a category form before it reaches the database

        Args:
            data: Dictionary with name, department_id, parent_category_id

        Returns:
            Dictionary of field -> error message (empty when valid)
        """
        errors = {}

        name = (data.get("name") or "").strip()
        if not name:
            errors["name"] = "Category name is required"
        elif len(name) > MAX_NAME_LENGTH:
            errors["name"] = f"Category name must be {MAX_NAME_LENGTH} characters or less"

        if not data.get("department_id"):
            errors["department_id"] = "Department is required"

        category_id = data.get("id")
        parent_id = data.get("parent_category_id")
        if parent_id and category_id and int(parent_id) == int(category_id):
            errors["parent_category_id"] = "Category cannot be its own parent"

        if errors:
            logger.debug(f"Category form invalid: {errors}")
        return errors

    def validate_attribute_form(self, data: Dict[str, Any]) -> Dict[str, str]:
        """
        Validate an attribute form

        Args:
            data: Dictionary with name, data_type, category_id, options

        Returns:
            Dictionary of field -> error message (empty when valid)
        """
        errors = {}

        name = (data.get("name") or "").strip()
        if not name:
            errors["name"] = "Attribute name is required"
        elif len(name) > MAX_NAME_LENGTH:
            errors["name"] = f"Attribute name must be {MAX_NAME_LENGTH} characters or less"

        data_type = (data.get("data_type") or "").lower()
        if data_type not in VALID_DATA_TYPES:
            errors["data_type"] = f"Data type must be one of {VALID_DATA_TYPES}"

        if not data.get("category_id"):
            errors["category_id"] = "Category is required"

        options = [o.strip() for o in data.get("options") or [] if o and o.strip()]
        if data_type == "select" and not options:
            errors["options"] = "Select attributes need at least one option"
        elif len(options) != len(set(options)):
            errors["options"] = "Attribute options must be unique"

        return errors

    def creates_cycle(
        self,
        parent_map: Dict[int, Optional[int]],
        category_id: int,
        new_parent_id: Optional[int],
    ) -> bool:
        """
        Check whether re-parenting a category would create a cycle

        Args:
            parent_map: category_id -> parent_category_id for all categories
            category_id: Category being re-parented
            new_parent_id: Proposed parent

        Returns:
            True if category_id would become its own ancestor
        """
        seen = set()
        current = new_parent_id
        while current is not None:
            if current == category_id:
                return True
            if current in seen:
                # pre-existing cycle not involving category_id
                return True
            seen.add(current)
            current = parent_map.get(current)
        return False

    def find_cycles(self, parent_map: Dict[int, Optional[int]]) -> List[List[int]]:
        """
        Find every parentage cycle in the category tree

        Args:
            parent_map: category_id -> parent_category_id

        Returns:
            List of cycles, each a list of category ids (smallest id first)
        """
        cycles = []
        reported = set()

        for start in parent_map:
            path = []
            position = {}
            current = start
            while current is not None and current not in position:
                if current in reported:
                    break
                position[current] = len(path)
                path.append(current)
                current = parent_map.get(current)

            if current is not None and current in position:
                cycle = path[position[current]:]
                pivot = cycle.index(min(cycle))
                cycle = cycle[pivot:] + cycle[:pivot]
                if cycle not in cycles:
                    cycles.append(cycle)
            reported.update(path)

        return cycles

    def validate_attribute_value(
        self, attribute: Any, value: Optional[str]
    ) -> Optional[str]:
        """
        Validate a single value against its attribute definition

        Args:
            attribute: Attribute or ProductAttributeValue (needs name, data_type,
                is_required; select attributes also need options)
            value: Value to check

        Returns:
            Error message, or None when valid
        """
        text = "" if value is None else str(value).strip()

        if not text:
            if attribute.is_required:
                return f"{attribute.name} is required"
            return None

        data_type = (attribute.data_type or "text").lower()

        if data_type == "number":
            number = text.replace(",", "") if THOUSANDS_PATTERN.match(text) else text
            try:
                parsed = float(number)
            except ValueError:
                return f"{attribute.name} must be a number, got: {text}"
            if not math.isfinite(parsed):
                return f"{attribute.name} must be a finite number, got: {text}"

        elif data_type == "boolean":
            if text.lower() not in BOOLEAN_VALUES:
                return f"{attribute.name} must be one of {BOOLEAN_VALUES}, got: {text}"

        elif data_type == "date":
            if not DATE_PATTERN.match(text) or not self._parses_as_date(text):
                return f"{attribute.name} must be a date (YYYY-MM-DD), got: {text}"

        elif data_type == "select":
            options = getattr(attribute, "option_values", None) or []
            if options and text not in options:
                return f"{attribute.name} must be one of {options}, got: {text}"

        return None

    def _parses_as_date(self, text: str) -> bool:
        try:
            datetime.strptime(text, "%Y-%m-%d")
        except ValueError:
            return False
        return True

    def validate_attribute_values(
        self, attributes: List[Any], values: Dict[int, Optional[str]]
    ) -> List[str]:
        """
        Validate a set of values keyed by attribute id

        Args:
            attributes: Attribute definitions
            values: attribute_id -> value

        Returns:
            List of error messages
        """
        errors = []
        for attribute in attributes:
            error = self.validate_attribute_value(attribute, values.get(attribute.id))
            if error:
                errors.append(error)
        return errors
