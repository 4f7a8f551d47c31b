"""
Data models for Catalog Service
Pydantic V2 models for validation and type safety
"""

from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field, field_validator, ConfigDict
from datetime import datetime, timezone

from .config import VALID_DATA_TYPES, VALID_ROLES, MAX_NAME_LENGTH


def _validate_name(v: str) -> str:
    if not v or v.strip() == "":
        raise ValueError("Name is required")
    if len(v) > MAX_NAME_LENGTH:
        raise ValueError(f"Name must be {MAX_NAME_LENGTH} characters or less")
    return v


class RecordNotFoundError(LookupError):
    """Raised when an update or delete targets a row that does not exist"""


class Department(BaseModel):
    """Top level of the taxonomy"""

    id: int
    name: str


class CategoryRef(BaseModel):
    """Lightweight reference to a category (id + name)"""

    id: int
    name: str


class Category(BaseModel):
    """Category with its department, parent and direct subcategories"""

    id: int
    name: str
    department_id: int
    department: Optional[Department] = None
    parent_category_id: Optional[int] = None
    parent_category: Optional[CategoryRef] = None
    subcategories: List[CategoryRef] = Field(default_factory=list)


class CategoryInput(BaseModel):
    """Input model for creating or updating a category"""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str
    department_id: int
    parent_category_id: Optional[int] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _validate_name(v)


class AttributeOption(BaseModel):
    """Allowed value for a select attribute"""

    id: int
    attribute_id: int
    value: str


class Attribute(BaseModel):
    """Attribute definition attached to a category"""

    id: int
    name: str
    data_type: str
    is_required: bool
    category_id: int
    category: Optional[CategoryRef] = None
    options: List[AttributeOption] = Field(default_factory=list)

    @property
    def option_values(self) -> List[str]:
        return [o.value for o in self.options]


class AttributeInput(BaseModel):
    """Input model for creating or updating an attribute"""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str
    data_type: str = "text"
    is_required: bool = False
    category_id: int
    options: List[str] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _validate_name(v)

    @field_validator("data_type")
    @classmethod
    def validate_data_type(cls, v: str) -> str:
        v = v.lower()
        if v not in VALID_DATA_TYPES:
            raise ValueError(f"data_type must be one of {VALID_DATA_TYPES}, got: {v}")
        return v

    @field_validator("options")
    @classmethod
    def validate_options(cls, v: List[str]) -> List[str]:
        cleaned = [o.strip() for o in v if o and o.strip()]
        if len(cleaned) != len(set(cleaned)):
            raise ValueError("Attribute options must be unique")
        return cleaned


class ProductAttributeValue(BaseModel):
    """Value of one attribute on one product (shape used by graders)"""

    id: int  # attribute id
    name: str
    value: str = ""
    data_type: str = "text"
    is_required: bool = False


class Product(BaseModel):
    """Product with category, attribute values and AI metadata"""

    id: int
    name: str
    description: Optional[str] = None
    category_id: int
    category: Optional[CategoryRef] = None
    attributes: List[ProductAttributeValue] = Field(default_factory=list)
    ai_confidence: Optional[float] = None
    created_at: Optional[str] = None

    def attribute_map(self) -> Dict[str, str]:
        """Attribute name -> value"""
        return {a.name: a.value for a in self.attributes}


class User(BaseModel):
    """Application user (no credentials are stored)"""

    id: int
    username: str
    email: str
    role: str
    created_at: Optional[str] = None


class UserInput(BaseModel):
    """Input model for creating or updating a user"""

    model_config = ConfigDict(str_strip_whitespace=True)

    username: str
    email: str
    role: str

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        return _validate_name(v)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        if "@" not in v or v.startswith("@") or v.endswith("@"):
            raise ValueError(f"Invalid email address: {v}")
        return v.lower()

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: str) -> str:
        v = v.upper()
        if v not in VALID_ROLES:
            raise ValueError(f"role must be one of {VALID_ROLES}, got: {v}")
        return v


class Page(BaseModel):
    """One page of a paginated listing"""

    items: List[Any]
    total_count: int
    total_pages: int
    current_page: int
    limit: int


class CatalogStatistics(BaseModel):
    """Statistics about the catalog contents"""

    total_departments: int
    total_categories: int
    total_attributes: int
    total_products: int
    total_users: int

    generated_products: int
    graded_products: int
    pending_grading: int
    approved_products: int
    rejected_products: int

    average_ai_confidence: Optional[float] = None
    products_by_department: Dict[str, int] = Field(default_factory=dict)

    timestamp: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )


class IntegrityReport(BaseModel):
    """Catalog integrity check report"""

    orphaned_categories: List[int]  # categories whose parent row is missing
    department_mismatches: List[int]  # parent in another department
    category_cycles: List[List[int]]
    products_missing_required: List[Dict[str, Any]]  # [{'product_id': 1, 'attributes': [...]}]
    orphaned_product_attributes: int

    integrity_passed: bool
    issues_found: List[str]
    timestamp: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )


class ImportReport(BaseModel):
    """Result of a taxonomy CSV import"""

    total_rows: int
    departments_created: int = 0
    categories_created: int = 0
    subcategories_created: int = 0
    attributes_created: int = 0
    options_created: int = 0
    skipped_rows: List[Dict[str, Any]] = Field(default_factory=list)
    timestamp: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
