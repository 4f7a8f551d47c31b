"""
Product Generation Service - Main orchestration service
Generate products → identify category → map attributes → save
"""

import logging
from typing import Optional, List, Dict, Any

from .config import (
    LLM_PROVIDER_ID,
    LLM_MODEL_ID,
    GENERATION_MAX_TOKENS,
    DEFAULT_PRODUCT_COUNT,
    REQUIRED_ATTRIBUTE_WEIGHT,
    OPTIONAL_ATTRIBUTE_WEIGHT,
    REJECTED_CATEGORY_FACTOR,
    LOG_FILE,
    ERROR_LOG_FILE,
    LOG_FORMAT,
    LOG_DATE_FORMAT,
    LOG_LEVEL,
)
from .models import (
    LLMDebug,
    GenerationResult,
    CategoryIdentification,
    MappedAttribute,
    AttributeMappingResult,
)
from .prompt_builder import PromptBuilder
from .response_parser import ResponseParser

from ..catalog.database import CatalogDatabase
from ..catalog.models import CategoryRef, Product
from ..llm_gateway.gateway import LLMGateway

# Configure logging
error_handler = logging.FileHandler(ERROR_LOG_FILE, mode="a")
error_handler.setLevel(logging.ERROR)

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL),
    format=LOG_FORMAT,
    datefmt=LOG_DATE_FORMAT,
    handlers=[
        logging.FileHandler(LOG_FILE),
        error_handler,
        logging.StreamHandler(),
    ],
)

logger = logging.getLogger(__name__)


class ProductGenerationService:
    """
    Product Generation Service

    Drives the LLM through the three pipeline steps and persists the result
    as a generated product awaiting human grading.
    """

    def __init__(
        self,
        db: CatalogDatabase,
        gateway: LLMGateway,
        provider_id: Optional[int] = None,
        model_id: Optional[int] = None,
        max_tokens: int = GENERATION_MAX_TOKENS,
    ):
        """
        Initialize Product Generation Service

        Args:
            db: Catalog database
            gateway: LLM gateway used for every call
            provider_id: Registry provider id (defaults to LLM_PROVIDER_ID)
            model_id: Registry model id (defaults to LLM_MODEL_ID)
            max_tokens: Completion limit per call
        """
        self.db = db
        self.gateway = gateway
        self.provider_id = provider_id or LLM_PROVIDER_ID
        self.model_id = model_id or LLM_MODEL_ID
        self.max_tokens = max_tokens

        self.prompt_builder = PromptBuilder()
        self.parser = ResponseParser()

        logger.info(
            f"Product Generation Service initialized "
            f"(provider_id={self.provider_id}, model_id={self.model_id})"
        )

    def _query(self, prompt: str) -> str:
        return self.gateway.query_llm(
            provider_id=self.provider_id,
            model_id=self.model_id,
            prompt=prompt,
            max_tokens=self.max_tokens,
        )

    def generate_products(
        self, user_input: str, count: int = DEFAULT_PRODUCT_COUNT
    ) -> GenerationResult:
        """
        Ask the LLM for specific products related to a free-text input

        Args:
            user_input: Topic, e.g. "running shoes"
            count: Number of products requested

        Returns:
            GenerationResult with product names and debug info

        Raises:
            ValueError: If input is empty or the reply holds no JSON array
            LLMQueryError: If the LLM call fails
        """
        user_input = (user_input or "").strip()
        if not user_input:
            raise ValueError("Input is required")

        prompt = self.prompt_builder.build_generation_prompt(user_input, count)
        logger.info(f"Generating products for input: {user_input}")

        llm_response = self._query(prompt)
        products = self.parser.parse_product_list(llm_response)

        logger.info(f"Generated {len(products)} products for '{user_input}'")
        return GenerationResult(
            input=user_input,
            products=products,
            debug=LLMDebug(prompt=prompt, llm_response=llm_response),
        )

    def identify_category(
        self, product: str, category_id: int, subcategory_id: int
    ) -> CategoryIdentification:
        """
        Ask the LLM to confirm a category/subcategory choice

        Args:
            product: Product name
            category_id: Chosen category
            subcategory_id: Chosen subcategory (child of category_id)

        Returns:
            CategoryIdentification; confirmed is None when the reply was
            not understood

        Raises:
            ValueError: If the pair is invalid
            LLMQueryError: If the LLM call fails
        """
        product = (product or "").strip()
        if not product:
            raise ValueError("Product is required")

        category = self.db.get_category(category_id)
        subcategory = self.db.get_category(subcategory_id)
        if (
            category is None
            or subcategory is None
            or subcategory.parent_category_id != category.id
        ):
            logger.warning(
                f"Invalid category/subcategory pair: {category_id}/{subcategory_id}"
            )
            raise ValueError("Invalid category or subcategory")

        prompt = self.prompt_builder.build_category_prompt(product, category, subcategory)
        llm_response = self._query(prompt)
        verdict = self.parser.parse_category_verdict(llm_response)

        logger.info(
            f"Category check for '{product}': {category.name} > {subcategory.name} "
            f"confirmed={verdict['confirmed']}"
        )
        return CategoryIdentification(
            product=product,
            department=category.department.name if category.department else "",
            category=CategoryRef(id=category.id, name=category.name),
            subcategory=CategoryRef(id=subcategory.id, name=subcategory.name),
            debug=LLMDebug(prompt=prompt, llm_response=llm_response),
            **verdict,
        )

    def map_attributes(self, product: str, subcategory_id: int) -> AttributeMappingResult:
        """
        Ask the LLM for attribute values of a product in a subcategory

        Reply keys are matched to attribute names case-insensitively.

        Returns:
            AttributeMappingResult with one entry per subcategory attribute

        Raises:
            ValueError: If the subcategory does not exist or the reply holds
                no JSON object
            LLMQueryError: If the LLM call fails
        """
        product = (product or "").strip()
        if not product:
            raise ValueError("Product is required")

        subcategory = self.db.get_category(subcategory_id)
        if subcategory is None:
            raise ValueError("Invalid subcategory")

        attributes = self.db.list_category_attributes(subcategory_id)
        prompt = self.prompt_builder.build_attribute_prompt(product, subcategory, attributes)
        llm_response = self._query(prompt)
        parsed = self.parser.parse_object(llm_response)

        by_name = {a.name.lower(): a for a in attributes}
        values: Dict[int, str] = {}
        unmapped_keys = []
        for key, value in parsed.items():
            attribute = by_name.get(str(key).strip().lower())
            if attribute is None:
                unmapped_keys.append(str(key))
                continue
            values[attribute.id] = self.parser.stringify_value(value)

        mapped = [
            MappedAttribute(
                id=a.id,
                name=a.name,
                data_type=a.data_type,
                is_required=a.is_required,
                value=values.get(a.id, ""),
            )
            for a in attributes
        ]
        missing_required = [m.name for m in mapped if m.is_required and not m.value]

        if unmapped_keys:
            logger.warning(f"Unmapped attribute keys for '{product}': {unmapped_keys}")
        if missing_required:
            logger.warning(f"Missing required attributes for '{product}': {missing_required}")

        return AttributeMappingResult(
            product=product,
            subcategory=CategoryRef(id=subcategory.id, name=subcategory.name),
            attributes=mapped,
            unmapped_keys=unmapped_keys,
            missing_required=missing_required,
            debug=LLMDebug(prompt=prompt, llm_response=llm_response),
        )

    def calculate_ai_confidence(
        self,
        attributes: List[Any],
        mapped: Dict[str, str],
        category_confirmed: Optional[bool] = None,
    ) -> float:
        """
        Weighted share of attributes the LLM filled in

        Required attributes weigh REQUIRED_ATTRIBUTE_WEIGHT, optional ones
        OPTIONAL_ATTRIBUTE_WEIGHT. The score is scaled by
        REJECTED_CATEGORY_FACTOR when the LLM rejected the category.

        Returns:
            Confidence in [0, 1], 2 decimals
        """
        values = {str(k).strip().lower(): v for k, v in (mapped or {}).items()}

        total = 0
        covered = 0
        for attribute in attributes:
            weight = (
                REQUIRED_ATTRIBUTE_WEIGHT
                if attribute.is_required
                else OPTIONAL_ATTRIBUTE_WEIGHT
            )
            total += weight
            value = values.get(attribute.name.lower())
            if value is not None and str(value).strip():
                covered += weight

        score = covered / total if total else 1.0
        if category_confirmed is False:
            score *= REJECTED_CATEGORY_FACTOR

        return round(max(0.0, min(1.0, score)), 2)

    def save_product(
        self,
        name: str,
        subcategory_id: int,
        mapped_attributes: Dict[str, str],
        source_input: Optional[str] = None,
        category_confirmed: Optional[bool] = None,
        description: Optional[str] = None,
        product_values: Optional[Dict[str, str]] = None,
    ) -> Product:
        """
        Persist a generated product with its attribute values

        Args:
            name: Product name
            subcategory_id: Category the product is filed under
            mapped_attributes: Attribute name -> value as returned by the LLM
                (names matched case-insensitively; unknown names are ignored).
                Stored as the AI snapshot and used for ai_confidence.
            source_input: Original free-text input
            category_confirmed: LLM verdict from identify_category
            description: Optional description
            product_values: Values edited before saving; they override the
                LLM values on the product only

        Returns:
            The created Product

        Raises:
            ValueError: If the subcategory does not exist
        """
        subcategory = self.db.get_category(subcategory_id)
        if subcategory is None:
            raise ValueError("Invalid subcategory")

        attributes = self.db.list_category_attributes(subcategory_id)

        ai_values = self._resolve_values(name, attributes, mapped_attributes)
        stored = dict(ai_values)
        stored.update(self._resolve_values(name, attributes, product_values))

        ai_attributes = {a.name: ai_values[a.id] for a in attributes if a.id in ai_values}
        confidence = self.calculate_ai_confidence(
            attributes, ai_attributes, category_confirmed
        )

        product = self.db.create_generated_product(
            name=name,
            category_id=subcategory_id,
            attributes=list(stored.items()),
            ai_confidence=confidence,
            ai_attributes=ai_attributes,
            source_input=source_input,
            provider_id=self.provider_id,
            model_id=self.model_id,
            description=description,
        )

        logger.info(
            f"Saved generated product {product.id}: {product.name} "
            f"in {subcategory.name} (ai_confidence={confidence:.2f})"
        )
        return product

    def _resolve_values(
        self, name: str, attributes: List[Any], values: Optional[Dict[str, str]]
    ) -> Dict[int, str]:
        """Attribute id -> stripped value for the names that match an attribute"""
        by_name = {a.name.lower(): a for a in attributes}

        resolved = {}
        for key, value in (values or {}).items():
            attribute = by_name.get(str(key).strip().lower())
            if attribute is None:
                logger.warning(f"Ignoring unknown attribute '{key}' for '{name}'")
                continue
            resolved[attribute.id] = "" if value is None else str(value).strip()
        return resolved
