"""
Unit tests for Product Generation Service
"""

import json
import pytest
from unittest.mock import Mock

from src.services.generation import ProductGenerationService
from src.services.generation.prompt_builder import PromptBuilder
from src.services.generation.response_parser import ResponseParser
from src.services.grading import GradingService, GradingSubmission
from src.services.llm_gateway import LLMQueryError


@pytest.fixture
def stub_gateway():
    """Gateway whose reply is set per test"""
    gateway = Mock()
    gateway.query_llm.return_value = "[]"
    return gateway


@pytest.fixture
def service(db, taxonomy, stub_gateway):
    return ProductGenerationService(db, stub_gateway, provider_id=1, model_id=1)


@pytest.fixture
def mock_service(db, taxonomy, mock_gateway, openai_model):
    provider_id, model_id = openai_model
    return ProductGenerationService(
        db, mock_gateway, provider_id=provider_id, model_id=model_id
    )


# ============= TEST PROMPTS AND PARSING =============


class TestPromptBuilder:
    """Test prompt construction"""

    def test_generation_prompt(self):
        prompt = PromptBuilder().build_generation_prompt("running shoes", 3)

        assert "list of 3 specific products related to: running shoes" in prompt
        assert "JSON array of strings" in prompt

    def test_category_prompt_names_department(self, db, taxonomy):
        audio = db.get_category(taxonomy["audio"].id)
        headphones = db.get_category(taxonomy["headphones"].id)

        prompt = PromptBuilder().build_category_prompt("Earbuds", audio, headphones)

        assert 'the product "Earbuds"' in prompt
        assert 'department "Electronics"' in prompt
        assert 'subcategory "Headphones"' in prompt
        assert '"confirmed"' in prompt

    def test_attribute_list(self, db, taxonomy):
        attributes = db.list_category_attributes(taxonomy["headphones"].id)

        assert (
            PromptBuilder().format_attribute_list(attributes)
            == "Brand (text), Wireless (boolean), Color (select)"
        )


class TestResponseParser:
    """Test JSON extraction from LLM replies"""

    def test_markdown_wrapped_list(self):
        reply = 'Here you go:\n```json\n["Trail Runner", "trail runner", " Road Racer "]\n```'

        assert ResponseParser().parse_product_list(reply) == ["Trail Runner", "Road Racer"]

    def test_list_inside_object(self):
        reply = json.dumps({"products": ["A", {"name": "B"}]})

        assert ResponseParser().parse_product_list(reply) == ["A", "B"]

    def test_text_around_object(self):
        reply = 'Sure! {"Brand": "Acme"} Hope this helps.'

        assert ResponseParser().parse_object(reply) == {"Brand": "Acme"}

    def test_no_json(self):
        with pytest.raises(ValueError):
            ResponseParser().parse_product_list("I cannot help with that")

    def test_verdict_words(self):
        parser = ResponseParser()

        assert parser.parse_category_verdict('{"confirmed": "no"}')["confirmed"] is False
        assert parser.parse_category_verdict("not json")["confirmed"] is None

    @pytest.mark.parametrize(
        "value,expected",
        [(True, "true"), (2.0, "2"), (2.5, "2.5"), (["a", "b"], "a, b"), (None, "")],
    )
    def test_stringify_value(self, value, expected):
        assert ResponseParser().stringify_value(value) == expected


# ============= TEST SERVICE =============


class TestGenerateProducts:
    """Test product idea generation"""

    def test_generate_products(self, service, stub_gateway):
        stub_gateway.query_llm.return_value = '["Trail Runner", "Road Racer"]'

        result = service.generate_products("running shoes", count=2)

        assert result.products == ["Trail Runner", "Road Racer"]
        assert result.input == "running shoes"
        assert result.debug.llm_response == '["Trail Runner", "Road Racer"]'
        kwargs = stub_gateway.query_llm.call_args.kwargs
        assert kwargs["provider_id"] == 1
        assert "related to: running shoes" in kwargs["prompt"]

    def test_empty_input(self, service, stub_gateway):
        with pytest.raises(ValueError, match="Input is required"):
            service.generate_products("  ")

        stub_gateway.query_llm.assert_not_called()

    def test_llm_failure_propagates(self, service, stub_gateway):
        stub_gateway.query_llm.side_effect = LLMQueryError()

        with pytest.raises(LLMQueryError):
            service.generate_products("running shoes")

    def test_with_mock_llm(self, mock_service):
        result = mock_service.generate_products("headphones")

        assert len(result.products) == 5


class TestIdentifyCategory:
    """Test category confirmation"""

    def test_confirmed(self, mock_service, taxonomy):
        result = mock_service.identify_category(
            "Earbuds", taxonomy["audio"].id, taxonomy["headphones"].id
        )

        assert result.confirmed is True
        assert result.department == "Electronics"
        assert result.subcategory.name == "Headphones"
        assert result.suggested_category == "Audio"

    def test_rejected_with_suggestion(self, service, stub_gateway, taxonomy):
        stub_gateway.query_llm.return_value = json.dumps(
            {
                "confirmed": False,
                "suggested_category": "Kitchen",
                "suggested_subcategory": "",
                "reasoning": "It is a blender",
            }
        )

        result = service.identify_category(
            "Blender", taxonomy["audio"].id, taxonomy["headphones"].id
        )

        assert result.confirmed is False
        assert result.suggested_category == "Kitchen"
        assert result.suggested_subcategory is None

    def test_subcategory_must_belong_to_category(self, service, stub_gateway, taxonomy):
        with pytest.raises(ValueError, match="Invalid category or subcategory"):
            service.identify_category(
                "Earbuds", taxonomy["kitchen"].id, taxonomy["headphones"].id
            )

        stub_gateway.query_llm.assert_not_called()


class TestMapAttributes:
    """Test attribute value mapping"""

    def test_keys_matched_case_insensitively(self, service, stub_gateway, taxonomy):
        stub_gateway.query_llm.return_value = json.dumps(
            {"brand": "Acme", "WIRELESS": True, "Weight": "200g"}
        )

        result = service.map_attributes("Earbuds", taxonomy["headphones"].id)

        assert result.mapped_values() == {"Brand": "Acme", "Wireless": "true", "Color": ""}
        assert result.unmapped_keys == ["Weight"]
        assert result.missing_required == []

    def test_missing_required(self, service, stub_gateway, taxonomy):
        stub_gateway.query_llm.return_value = '{"Color": "Black"}'

        result = service.map_attributes("Earbuds", taxonomy["headphones"].id)

        assert result.missing_required == ["Brand", "Wireless"]

    def test_unknown_subcategory(self, service):
        with pytest.raises(ValueError, match="Invalid subcategory"):
            service.map_attributes("Earbuds", 999)


class TestSaveProduct:
    """Test confidence scoring and persistence"""

    def test_confidence_weights(self, service, db, taxonomy):
        attributes = db.list_category_attributes(taxonomy["headphones"].id)

        assert service.calculate_ai_confidence(attributes, {"Brand": "Acme"}) == 0.4
        assert service.calculate_ai_confidence(attributes, {"color": "Black"}) == 0.2
        assert (
            service.calculate_ai_confidence(
                attributes, {"Brand": "A", "Wireless": "true", "Color": "Black"}, False
            )
            == 0.5
        )
        assert service.calculate_ai_confidence([], {}) == 1.0

    def test_save_product(self, service, db, taxonomy):
        product = service.save_product(
            "Studio Earbuds",
            taxonomy["headphones"].id,
            {"brand": "Acme", "Wireless": "true", "Unknown": "x"},
            source_input="headphones",
            category_confirmed=True,
        )

        assert product.ai_confidence == 0.8
        assert product.attribute_map() == {"Brand": "Acme", "Wireless": "true", "Color": ""}
        assert db.get_catalog_statistics().generated_products == 1

    def test_edited_values_kept_out_of_ai_snapshot(self, service, db, taxonomy, users):
        product = service.save_product(
            "Studio Earbuds",
            taxonomy["headphones"].id,
            {"Brand": "Sample", "Wireless": "true"},
            category_confirmed=True,
            product_values={"Brand": "Acme", "Color": "Black"},
        )

        assert product.ai_confidence == 0.8
        assert product.attribute_map() == {
            "Brand": "Acme",
            "Wireless": "true",
            "Color": "Black",
        }
        with db.get_connection() as conn:
            row = conn.execute(
                "SELECT ai_attributes FROM generated_products WHERE product_id = ?",
                (product.id,),
            ).fetchone()
        assert json.loads(row["ai_attributes"]) == {"Brand": "Sample", "Wireless": "true"}

        # the grader accepts the edited values; the LLM still got Brand and Color wrong
        grading = GradingService(db)
        response = grading.submit_grading(
            users["grader"].id,
            GradingSubmission(product_id=product.id, approved=True, attributes=[]),
        )
        assert response.stats.accuracy == 0.0

    def test_save_unknown_subcategory(self, service):
        with pytest.raises(ValueError, match="Invalid subcategory"):
            service.save_product("Earbuds", 999, {})

    def test_full_pipeline_with_mock_llm(self, mock_service, db, taxonomy):
        ideas = mock_service.generate_products("headphones")
        verdict = mock_service.identify_category(
            ideas.products[0], taxonomy["audio"].id, taxonomy["headphones"].id
        )
        mapping = mock_service.map_attributes(ideas.products[0], taxonomy["headphones"].id)

        product = mock_service.save_product(
            ideas.products[0],
            taxonomy["headphones"].id,
            mapping.mapped_values(),
            source_input=ideas.input,
            category_confirmed=verdict.confirmed,
        )

        assert product.name == "headphones Basic"
        assert product.ai_confidence == 1.0
        assert product.attribute_map()["Wireless"] == "true"
