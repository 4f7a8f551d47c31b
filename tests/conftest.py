import pytest
import sys
from pathlib import Path

# Add src to Path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from src.services.catalog import (
    CatalogDatabase,
    CategoryInput,
    AttributeInput,
    UserInput,
)
from src.services.catalog.config import ROLE_ADMIN, ROLE_HUMAN_GRADER, ROLE_USER
from src.services.llm_gateway import LLMGateway, LLMRegistry


@pytest.fixture(autouse=True)
def clear_service_factory_cache():
    """
    Auto Clear ServiceFactory cache before and after each test

    Ensures test isolation by preventing cached instances from one test affecting another test.

    This fixture runs automatically for ALL tests (autouse=True)
    """

    from src.services.common.service_factory import ServiceFactory

    # Clear ServiceFactory cache before test
    ServiceFactory.clear_cache()

    # Yield control back to test
    yield

    # Clear ServiceFactory cache after test
    ServiceFactory.clear_cache()


@pytest.fixture
def temp_db_path(tmp_path):
    """Temporary database path"""
    return tmp_path / "test_catalog.db"


@pytest.fixture
def db(temp_db_path):
    """Empty catalog database with schema"""
    database = CatalogDatabase(temp_db_path)
    database.create_schema()
    return database


@pytest.fixture
def taxonomy(db):
    """
    Small taxonomy:

    Electronics
      Audio
        Headphones (Brand*, Wireless*, Color)
    Home
      Kitchen
    """
    electronics = db.create_department("Electronics")
    home = db.create_department("Home")

    audio = db.create_category(
        CategoryInput(name="Audio", department_id=electronics.id)
    )
    headphones = db.create_category(
        CategoryInput(
            name="Headphones",
            department_id=electronics.id,
            parent_category_id=audio.id,
        )
    )
    kitchen = db.create_category(CategoryInput(name="Kitchen", department_id=home.id))

    brand = db.create_attribute(
        AttributeInput(
            name="Brand", data_type="text", is_required=True, category_id=headphones.id
        )
    )
    wireless = db.create_attribute(
        AttributeInput(
            name="Wireless",
            data_type="boolean",
            is_required=True,
            category_id=headphones.id,
        )
    )
    color = db.create_attribute(
        AttributeInput(
            name="Color",
            data_type="select",
            category_id=headphones.id,
            options=["Black", "White"],
        )
    )

    return {
        "electronics": electronics,
        "home": home,
        "audio": audio,
        "headphones": headphones,
        "kitchen": kitchen,
        "brand": brand,
        "wireless": wireless,
        "color": color,
    }


@pytest.fixture
def users(db):
    """One user per role"""
    return {
        "admin": db.create_user(
            UserInput(username="admin", email="admin@example.com", role=ROLE_ADMIN)
        ),
        "grader": db.create_user(
            UserInput(
                username="grader", email="grader@example.com", role=ROLE_HUMAN_GRADER
            )
        ),
        "user": db.create_user(
            UserInput(username="user", email="user@example.com", role=ROLE_USER)
        ),
    }


@pytest.fixture
def registry(db):
    """Registry with the default providers and models"""
    reg = LLMRegistry(db)
    reg.seed_default_providers()
    return reg


@pytest.fixture
def mock_gateway(registry):
    """Gateway answering every prompt with canned mock responses"""
    return LLMGateway(registry, mock_mode=True)


@pytest.fixture
def openai_model(registry):
    """(provider_id, model_id) of the first seeded OpenAI model"""
    provider = next(p for p in registry.list_providers() if p.name == "openai")
    return provider.id, provider.models[0].id
