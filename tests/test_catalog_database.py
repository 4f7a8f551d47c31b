"""
Unit tests for the catalog database

Tests cover:
- Department CRUD and delete protection
- Category hierarchy rules (department match, cycles, subcategories)
- Attribute CRUD with options
- Products with attribute values
- Users and roles
- Pagination, statistics, integrity checks and export
"""

import json
import sqlite3

import pandas as pd
import pytest
from pydantic import ValidationError

from src.services.catalog import (
    CategoryInput,
    AttributeInput,
    UserInput,
    RecordNotFoundError,
)


# ============= DEPARTMENTS =============


class TestDepartments:
    """Test department operations"""

    def test_create_and_list(self, db):
        db.create_department("Toys")
        db.create_department("Books")

        names = [d.name for d in db.list_departments()]
        assert names == ["Books", "Toys"]

    def test_duplicate_name_rejected(self, db):
        db.create_department("Toys")

        with pytest.raises(ValueError, match="already exists"):
            db.create_department("Toys")

    def test_empty_name_rejected(self, db):
        with pytest.raises(ValueError):
            db.create_department("   ")

    def test_update_missing_department(self, db):
        with pytest.raises(RecordNotFoundError):
            db.update_department(999, "Nothing")

    def test_delete_refused_while_categories_exist(self, db, taxonomy):
        with pytest.raises(ValueError, match="still has"):
            db.delete_department(taxonomy["home"].id)

    def test_delete_empty_department(self, db):
        department = db.create_department("Garden")
        db.delete_department(department.id)

        assert db.get_department(department.id) is None


# ============= CATEGORIES =============


class TestCategories:
    """Test category hierarchy"""

    def test_subcategory_links(self, db, taxonomy):
        audio = db.get_category(taxonomy["audio"].id)

        assert audio.parent_category is None
        assert audio.department.name == "Electronics"
        assert [s.name for s in audio.subcategories] == ["Headphones"]

        headphones = db.get_category(taxonomy["headphones"].id)
        assert headphones.parent_category.id == taxonomy["audio"].id

    def test_top_level_and_subcategories(self, db, taxonomy):
        top = db.list_top_level_categories(taxonomy["electronics"].id)
        assert [c.name for c in top] == ["Audio"]

        all_top = db.list_top_level_categories()
        assert {c.name for c in all_top} == {"Audio", "Kitchen"}

        subs = db.list_subcategories(taxonomy["audio"].id)
        assert [c.id for c in subs] == [taxonomy["headphones"].id]

    def test_missing_department_rejected(self, db):
        with pytest.raises(ValueError, match="not found"):
            db.create_category(CategoryInput(name="Ghost", department_id=42))

    def test_parent_in_other_department_rejected(self, db, taxonomy):
        with pytest.raises(ValueError, match="same department"):
            db.create_category(
                CategoryInput(
                    name="Blenders",
                    department_id=taxonomy["electronics"].id,
                    parent_category_id=taxonomy["kitchen"].id,
                )
            )

    def test_self_parent_rejected(self, db, taxonomy):
        audio = taxonomy["audio"]
        with pytest.raises(ValueError):
            db.update_category(
                audio.id,
                CategoryInput(
                    name="Audio",
                    department_id=audio.department_id,
                    parent_category_id=audio.id,
                ),
            )

    def test_cycle_rejected(self, db, taxonomy):
        audio = taxonomy["audio"]
        with pytest.raises(ValueError, match="cycle"):
            db.update_category(
                audio.id,
                CategoryInput(
                    name="Audio",
                    department_id=audio.department_id,
                    parent_category_id=taxonomy["headphones"].id,
                ),
            )

    def test_update_can_detach_parent(self, db, taxonomy):
        headphones = taxonomy["headphones"]
        updated = db.update_category(
            headphones.id,
            CategoryInput(name="Headphones", department_id=headphones.department_id),
        )

        assert updated.parent_category_id is None
        assert db.get_category(taxonomy["audio"].id).subcategories == []

    def test_department_change_refused_with_subcategories(self, db, taxonomy):
        audio = taxonomy["audio"]

        with pytest.raises(ValueError, match="subcategories"):
            db.update_category(
                audio.id,
                CategoryInput(name="Audio", department_id=taxonomy["home"].id),
            )

        assert db.get_category(audio.id).department_id == taxonomy["electronics"].id
        assert db.verify_catalog_integrity().integrity_passed is True

    def test_department_change_for_leaf_category(self, db, taxonomy):
        updated = db.update_category(
            taxonomy["kitchen"].id,
            CategoryInput(name="Kitchen", department_id=taxonomy["electronics"].id),
        )

        assert updated.department_id == taxonomy["electronics"].id

    def test_delete_refused_with_subcategories(self, db, taxonomy):
        with pytest.raises(ValueError, match="subcategories"):
            db.delete_category(taxonomy["audio"].id)

    def test_delete_refused_with_products(self, db, taxonomy):
        db.create_product("Earbuds", None, taxonomy["headphones"].id)

        with pytest.raises(ValueError, match="products"):
            db.delete_category(taxonomy["headphones"].id)

    def test_delete_cascades_attributes(self, db, taxonomy):
        db.delete_category(taxonomy["headphones"].id)

        assert db.get_category(taxonomy["headphones"].id) is None
        assert db.get_attribute(taxonomy["brand"].id) is None

    def test_delete_missing_category(self, db):
        with pytest.raises(RecordNotFoundError):
            db.delete_category(999)

    def test_page(self, db, taxonomy):
        page = db.list_categories_page(page=2, limit=2)

        assert page.total_count == 3
        assert page.total_pages == 2
        assert page.current_page == 2
        assert len(page.items) == 1

    def test_page_bad_parameters(self, db):
        with pytest.raises(ValueError):
            db.list_categories_page(page=0)
        with pytest.raises(ValueError):
            db.list_categories_page(limit=1000)


# ============= ATTRIBUTES =============


class TestAttributes:
    """Test attribute definitions and options"""

    def test_category_attributes_in_definition_order(self, db, taxonomy):
        attributes = db.list_category_attributes(taxonomy["headphones"].id)

        assert [a.name for a in attributes] == ["Brand", "Wireless", "Color"]
        assert attributes[2].option_values == ["Black", "White"]

    def test_select_needs_options(self, db, taxonomy):
        with pytest.raises(ValueError, match="option"):
            db.create_attribute(
                AttributeInput(
                    name="Size",
                    data_type="select",
                    category_id=taxonomy["headphones"].id,
                )
            )

    def test_unknown_data_type_rejected(self, taxonomy):
        with pytest.raises(ValidationError):
            AttributeInput(
                name="Size", data_type="color", category_id=taxonomy["headphones"].id
            )

    def test_update_replaces_options(self, db, taxonomy):
        color = taxonomy["color"]
        updated = db.update_attribute(
            color.id,
            AttributeInput(
                name="Color",
                data_type="select",
                category_id=color.category_id,
                options=["Red", "Black"],
            ),
        )

        assert sorted(updated.option_values) == ["Black", "Red"]

    def test_option_crud(self, db, taxonomy):
        color = taxonomy["color"]

        option = db.add_attribute_option(color.id, "Blue")
        assert "Blue" in db.get_attribute(color.id).option_values

        with pytest.raises(ValueError, match="already exists"):
            db.add_attribute_option(color.id, "Blue")

        db.update_attribute_option(option.id, "Navy")
        db.delete_attribute_option(
            next(o.id for o in db.list_attribute_options(color.id) if o.value == "White")
        )
        assert sorted(db.get_attribute(color.id).option_values) == ["Black", "Navy"]

    def test_delete_attribute_removes_values(self, db, taxonomy):
        product = db.create_product(
            "Earbuds",
            None,
            taxonomy["headphones"].id,
            [(taxonomy["brand"].id, "Acme")],
        )

        db.delete_attribute(taxonomy["brand"].id)

        reloaded = db.get_product(product.id)
        assert "Brand" not in reloaded.attribute_map()

    def test_move_refused_while_products_hold_values(self, db, taxonomy):
        brand = taxonomy["brand"]
        db.create_product(
            "Earbuds", None, taxonomy["headphones"].id, [(brand.id, "Acme")]
        )

        with pytest.raises(ValueError, match="products hold values"):
            db.update_attribute(
                brand.id,
                AttributeInput(
                    name="Brand",
                    data_type="text",
                    is_required=True,
                    category_id=taxonomy["kitchen"].id,
                ),
            )

        assert db.get_attribute(brand.id).category_id == taxonomy["headphones"].id
        assert db.verify_catalog_integrity().orphaned_product_attributes == 0

    def test_move_without_values(self, db, taxonomy):
        updated = db.update_attribute(
            taxonomy["brand"].id,
            AttributeInput(
                name="Brand", data_type="text", category_id=taxonomy["kitchen"].id
            ),
        )

        assert updated.category_id == taxonomy["kitchen"].id

    def test_update_missing_attribute(self, db, taxonomy):
        with pytest.raises(RecordNotFoundError):
            db.update_attribute(
                999, AttributeInput(name="Size", category_id=taxonomy["kitchen"].id)
            )


# ============= PRODUCTS =============


class TestProducts:
    """Test products and attribute values"""

    def test_create_product_lists_all_category_attributes(self, db, taxonomy):
        product = db.create_product(
            "Earbuds",
            "Small in-ear headphones",
            taxonomy["headphones"].id,
            [(taxonomy["brand"].id, "Acme")],
        )

        assert product.category.name == "Headphones"
        assert product.attribute_map() == {"Brand": "Acme", "Wireless": "", "Color": ""}
        assert product.ai_confidence is None

    def test_foreign_attribute_rejected(self, db, taxonomy):
        other = db.create_attribute(
            AttributeInput(name="Capacity", category_id=taxonomy["kitchen"].id)
        )

        with pytest.raises(ValueError, match="do not belong"):
            db.create_product(
                "Earbuds", None, taxonomy["headphones"].id, [(other.id, "2L")]
            )

    def test_update_product_attribute_upserts(self, db, taxonomy):
        product = db.create_product("Earbuds", None, taxonomy["headphones"].id)

        db.update_product_attribute(product.id, taxonomy["wireless"].id, "true")
        db.update_product_attribute(product.id, taxonomy["wireless"].id, "false")

        assert db.get_product(product.id).attribute_map()["Wireless"] == "false"

    def test_update_missing_product(self, db, taxonomy):
        with pytest.raises(RecordNotFoundError):
            db.update_product_attribute(999, taxonomy["brand"].id, "Acme")

    def test_generated_product_keeps_ai_metadata(self, db, taxonomy):
        product = db.create_generated_product(
            name="Studio Headphones",
            category_id=taxonomy["headphones"].id,
            attributes=[(taxonomy["brand"].id, "Acme")],
            ai_confidence=0.8,
            ai_attributes={"Brand": "Acme"},
            source_input="headphones",
        )

        assert product.ai_confidence == 0.8
        with db.get_connection() as conn:
            row = conn.execute(
                "SELECT ai_attributes FROM generated_products WHERE product_id = ?",
                (product.id,),
            ).fetchone()
        assert json.loads(row["ai_attributes"]) == {"Brand": "Acme"}

    def test_delete_product(self, db, taxonomy):
        product = db.create_product("Earbuds", None, taxonomy["headphones"].id)
        db.delete_product(product.id)

        assert db.get_product(product.id) is None
        with pytest.raises(RecordNotFoundError):
            db.delete_product(product.id)


# ============= USERS =============


class TestUsers:
    """Test users and roles"""

    def test_role_normalized(self, db):
        user = db.create_user(
            UserInput(username="sam", email="Sam@Example.com", role="human_grader")
        )

        assert user.role == "HUMAN_GRADER"
        assert user.email == "sam@example.com"
        assert db.get_user_by_email("sam@example.com").id == user.id

    def test_invalid_role_rejected(self):
        with pytest.raises(ValidationError):
            UserInput(username="sam", email="sam@example.com", role="OWNER")

    def test_duplicate_email_rejected(self, db, users):
        with pytest.raises(ValueError, match="already exists"):
            db.create_user(
                UserInput(username="other", email="admin@example.com", role="USER")
            )

    def test_filter_by_role(self, db, users):
        graders = db.list_users(role="HUMAN_GRADER")

        assert [u.username for u in graders] == ["grader"]

    def test_update_user_role(self, db, users):
        user = users["user"]
        updated = db.update_user(
            user.id, UserInput(username=user.username, email=user.email, role="ADMIN")
        )

        assert updated.role == "ADMIN"


# ============= REPORTING =============


class TestReporting:
    """Test statistics, integrity checks and export"""

    def test_statistics(self, db, taxonomy, users):
        db.create_product("Earbuds", None, taxonomy["headphones"].id)

        stats = db.get_catalog_statistics()

        assert stats.total_departments == 2
        assert stats.total_categories == 3
        assert stats.total_attributes == 3
        assert stats.total_products == 1
        assert stats.total_users == 3
        assert stats.generated_products == 0
        assert stats.products_by_department == {"Electronics": 1, "Home": 0}

    def test_integrity_passes_on_clean_catalog(self, db, taxonomy):
        db.create_product(
            "Earbuds",
            None,
            taxonomy["headphones"].id,
            [(taxonomy["brand"].id, "Acme"), (taxonomy["wireless"].id, "true")],
        )

        report = db.verify_catalog_integrity()

        assert report.integrity_passed is True
        assert report.issues_found == []

    def test_integrity_reports_missing_required(self, db, taxonomy):
        product = db.create_product("Earbuds", None, taxonomy["headphones"].id)

        report = db.verify_catalog_integrity()

        assert report.integrity_passed is False
        assert report.products_missing_required == [
            {"product_id": product.id, "attributes": ["Brand", "Wireless"]}
        ]

    def test_integrity_reports_cycles(self, db, taxonomy):
        # Bypass the service checks to plant a cycle
        conn = sqlite3.connect(db.db_path)
        conn.execute(
            "UPDATE categories SET parent_category_id = ? WHERE id = ?",
            (taxonomy["headphones"].id, taxonomy["audio"].id),
        )
        conn.commit()
        conn.close()

        report = db.verify_catalog_integrity()

        assert report.category_cycles == [
            sorted([taxonomy["audio"].id, taxonomy["headphones"].id])
        ]

    def test_export_json(self, db, taxonomy, tmp_path):
        db.create_product(
            "Earbuds", None, taxonomy["headphones"].id, [(taxonomy["brand"].id, "Acme")]
        )

        output = tmp_path / "products.json"
        count = db.export_products(output, fmt="json")

        data = json.loads(output.read_text(encoding="utf-8"))
        assert count == 1
        assert data[0]["name"] == "Earbuds"

    def test_export_csv_has_attribute_columns(self, db, taxonomy, tmp_path):
        db.create_product(
            "Earbuds", None, taxonomy["headphones"].id, [(taxonomy["brand"].id, "Acme")]
        )

        output = tmp_path / "products.csv"
        db.export_products(output, fmt="csv")

        df = pd.read_csv(output)
        assert "Brand" in df.columns
        assert df.loc[0, "Brand"] == "Acme"

    def test_export_unknown_format(self, db, tmp_path):
        with pytest.raises(ValueError, match="Unsupported"):
            db.export_products(tmp_path / "products.xml", fmt="xml")
