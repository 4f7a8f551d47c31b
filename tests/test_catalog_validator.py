"""
Unit tests for CatalogValidator
"""

import pytest

from src.services.catalog import CatalogValidator
from src.services.catalog.models import Attribute, AttributeOption


@pytest.fixture
def validator():
    return CatalogValidator()


def make_attribute(name="Size", data_type="text", is_required=False, options=None):
    return Attribute(
        id=1,
        name=name,
        data_type=data_type,
        is_required=is_required,
        category_id=1,
        options=[
            AttributeOption(id=i, attribute_id=1, value=v)
            for i, v in enumerate(options or [], start=1)
        ],
    )


class TestFormValidation:
    """Test category and attribute form checks"""

    def test_valid_category_form(self, validator):
        assert validator.validate_category_form({"name": "Audio", "department_id": 1}) == {}

    def test_category_form_missing_fields(self, validator):
        errors = validator.validate_category_form({"name": " "})

        assert "name" in errors
        assert "department_id" in errors

    def test_category_cannot_be_own_parent(self, validator):
        errors = validator.validate_category_form(
            {"id": 3, "name": "Audio", "department_id": 1, "parent_category_id": 3}
        )

        assert "parent_category_id" in errors

    def test_category_name_too_long(self, validator):
        errors = validator.validate_category_form({"name": "x" * 101, "department_id": 1})

        assert "name" in errors

    def test_attribute_form_unknown_type(self, validator):
        errors = validator.validate_attribute_form(
            {"name": "Size", "data_type": "colour", "category_id": 1}
        )

        assert "data_type" in errors

    def test_select_requires_options(self, validator):
        errors = validator.validate_attribute_form(
            {"name": "Size", "data_type": "select", "category_id": 1, "options": []}
        )

        assert errors == {"options": "Select attributes need at least one option"}

    def test_duplicate_options(self, validator):
        errors = validator.validate_attribute_form(
            {
                "name": "Size",
                "data_type": "select",
                "category_id": 1,
                "options": ["S", "S"],
            }
        )

        assert "options" in errors


class TestCycles:
    """Test category parentage cycle detection"""

    def test_reparent_to_descendant_creates_cycle(self, validator):
        parent_map = {1: None, 2: 1, 3: 2}

        assert validator.creates_cycle(parent_map, 1, 3) is True
        assert validator.creates_cycle(parent_map, 3, 1) is False
        assert validator.creates_cycle(parent_map, 2, None) is False

    def test_find_cycles(self, validator):
        parent_map = {1: None, 2: 3, 3: 4, 4: 2, 5: 1}

        assert validator.find_cycles(parent_map) == [[2, 3, 4]]

    def test_no_cycles(self, validator):
        assert validator.find_cycles({1: None, 2: 1, 3: 1}) == []


class TestValueValidation:
    """Test attribute value checks by data type"""

    @pytest.mark.parametrize(
        "data_type,value,valid",
        [
            ("number", "12.5", True),
            ("number", "1,200", True),
            ("number", "twelve", False),
            ("number", "1,2,3", False),
            ("number", "nan", False),
            ("number", "inf", False),
            ("boolean", "Yes", True),
            ("boolean", "maybe", False),
            ("date", "2024-02-29", True),
            ("date", "29/02/2024", False),
            ("date", "20240101", False),
            ("date", "2024-1-5", False),
            ("date", "2024-W01-1", False),
            ("date", "2023-02-29", False),
            ("text", "anything", True),
        ],
    )
    def test_data_types(self, validator, data_type, value, valid):
        error = validator.validate_attribute_value(make_attribute(data_type=data_type), value)

        assert (error is None) is valid

    def test_select_value_must_be_option(self, validator):
        attribute = make_attribute(data_type="select", options=["Black", "White"])

        assert validator.validate_attribute_value(attribute, "Black") is None
        assert "must be one of" in validator.validate_attribute_value(attribute, "Red")

    def test_required_value_missing(self, validator):
        attribute = make_attribute(name="Brand", is_required=True)

        assert validator.validate_attribute_value(attribute, "  ") == "Brand is required"
        assert validator.validate_attribute_value(make_attribute(), "") is None

    def test_validate_attribute_values_collects_errors(self, validator):
        number = make_attribute(name="Weight", data_type="number")
        required = make_attribute(name="Brand", is_required=True).model_copy(
            update={"id": 2}
        )

        errors = validator.validate_attribute_values(
            [number, required], {1: "heavy", 2: ""}
        )

        assert len(errors) == 2
