"""
Taxonomy Tab - CRUD for departments, categories and attributes
"""

import streamlit as st
from pathlib import Path
import sys

# Add project root to path
project_root = Path(__file__).parent.parent.parent.parent
sys.path.insert(0, str(project_root))

from src.services.catalog import CategoryInput, AttributeInput
from src.services.catalog.config import ROLE_ADMIN, VALID_DATA_TYPES, OPTIONS_SEPARATOR

from ..components import require_role, display_pagination, option_index
from ..config import CATEGORY_PAGE_SIZE, ATTRIBUTE_PAGE_SIZE
from ..data_loader import get_database, load_departments, load_categories, clear_cache


def display_taxonomy_tab():
    """Display taxonomy management (ADMIN only)"""

    st.markdown("### Taxonomy Management")
    st.caption("Departments contain categories; categories nest and carry attributes")

    if require_role(ROLE_ADMIN) is None:
        return

    try:
        db = get_database()

        section = st.radio(
            "Section",
            ["Departments", "Categories", "Attributes"],
            horizontal=True,
            key="taxonomy_section",
        )

        if section == "Departments":
            display_departments_section(db)
        elif section == "Categories":
            display_categories_section(db)
        else:
            display_attributes_section(db)

    except Exception as e:
        st.error(f"Error loading taxonomy: {str(e)}")


def display_departments_section(db):
    departments = load_departments()

    st.markdown("#### Departments")
    if departments:
        st.dataframe(departments, width="stretch", hide_index=True)
    else:
        st.warning("No departments found")

    with st.form("create_department_form", clear_on_submit=True):
        name = st.text_input("New department name")
        if st.form_submit_button("Create Department"):
            try:
                department = db.create_department(name)
                clear_cache()
                st.success(f"Created department: {department.name}")
                st.rerun()
            except ValueError as e:
                st.error(str(e))

    if not departments:
        return

    st.markdown("#### Edit Department")
    labels = [d["name"] for d in departments]
    choice = st.selectbox("Department", labels, key="edit_department_select")
    selected = departments[labels.index(choice)]

    col1, col2 = st.columns(2)
    with col1:
        new_name = st.text_input("Rename to", value=selected["name"], key="dept_rename")
        if st.button("Save Name", width="stretch"):
            try:
                db.update_department(selected["id"], new_name)
                clear_cache()
                st.success("Department renamed")
                st.rerun()
            except (ValueError, LookupError) as e:
                st.error(str(e))
    with col2:
        st.markdown("&nbsp;")
        if st.button("Delete Department", width="stretch", type="primary"):
            try:
                db.delete_department(selected["id"])
                clear_cache()
                st.success(f"Deleted department: {selected['name']}")
                st.rerun()
            except (ValueError, LookupError) as e:
                st.error(str(e))


def category_form(db, key: str, initial: dict = None):
    """
    Category create/edit form

    Returns:
        CategoryInput when submitted and valid, else None
    """
    initial = initial or {}
    departments = load_departments()
    if not departments:
        st.info("Create a department first.")
        return None

    with st.form(key):
        name = st.text_input("Name", value=initial.get("name", ""))
        department = st.selectbox(
            "Department",
            departments,
            index=option_index(departments, initial.get("department_id")),
            format_func=lambda d: d["name"],
        )

        parents = [{"id": None, "name": "(none - top level)"}] + [
            c
            for c in load_categories()
            if c["department_id"] == department["id"] and c["id"] != initial.get("id")
        ]
        parent = st.selectbox(
            "Parent category",
            parents,
            index=option_index(parents, initial.get("parent_category_id")),
            format_func=lambda c: c["name"],
            help="Only categories in the selected department are listed "
            "(the list refreshes after changing department and resubmitting)",
        )

        if not st.form_submit_button("Save Category"):
            return None

    errors = db.validator.validate_category_form(
        {
            "id": initial.get("id"),
            "name": name,
            "department_id": department["id"],
            "parent_category_id": parent["id"],
        }
    )
    if errors:
        for message in errors.values():
            st.error(message)
        return None

    return CategoryInput(
        name=name, department_id=department["id"], parent_category_id=parent["id"]
    )


def display_categories_section(db):
    st.markdown("#### Categories")

    page_data = db.list_categories_page(
        page=st.session_state.get("categories_page", 1), limit=CATEGORY_PAGE_SIZE
    )
    page = display_pagination("categories", page_data.total_pages)
    if page != page_data.current_page:
        page_data = db.list_categories_page(page=page, limit=CATEGORY_PAGE_SIZE)

    if page_data.items:
        st.dataframe(
            [
                {
                    "ID": c.id,
                    "Name": c.name,
                    "Department": c.department.name if c.department else "N/A",
                    "Parent": c.parent_category.name if c.parent_category else "",
                    "Subcategories": ", ".join(s.name for s in c.subcategories),
                }
                for c in page_data.items
            ],
            width="stretch",
            hide_index=True,
        )
        st.caption(f"{page_data.total_count} categories")
    else:
        st.warning("No categories found")

    st.markdown("#### Create Category")
    data = category_form(db, "create_category_form")
    if data is not None:
        try:
            category = db.create_category(data)
            clear_cache()
            st.success(f"Created category: {category.name}")
            st.rerun()
        except ValueError as e:
            st.error(str(e))

    categories = load_categories()
    if not categories:
        return

    st.markdown("#### Edit Category")
    selected = st.selectbox(
        "Category",
        categories,
        format_func=lambda c: f"{c['name']} ({c['department']['name']})",
        key="edit_category_select",
    )
    data = category_form(db, f"edit_category_form_{selected['id']}", initial=selected)
    if data is not None:
        try:
            db.update_category(selected["id"], data)
            clear_cache()
            st.success("Category updated")
            st.rerun()
        except (ValueError, LookupError) as e:
            st.error(str(e))

    if st.button("Delete Category", type="primary"):
        try:
            db.delete_category(selected["id"])
            clear_cache()
            st.success(f"Deleted category: {selected['name']}")
            st.rerun()
        except (ValueError, LookupError) as e:
            st.error(str(e))


def attribute_form(db, key: str, initial: dict = None):
    """
    Attribute create/edit form

    Returns:
        AttributeInput when submitted and valid, else None
    """
    initial = initial or {}
    categories = load_categories()
    if not categories:
        st.info("Create a category first.")
        return None

    with st.form(key):
        name = st.text_input("Name", value=initial.get("name", ""))
        data_type = st.selectbox(
            "Data type",
            VALID_DATA_TYPES,
            index=VALID_DATA_TYPES.index(initial.get("data_type", "text")),
        )
        is_required = st.checkbox("Required", value=initial.get("is_required", False))
        category = st.selectbox(
            "Category",
            categories,
            index=option_index(categories, initial.get("category_id")),
            format_func=lambda c: c["name"],
        )
        options_text = st.text_input(
            f"Options (separated by '{OPTIONS_SEPARATOR}', select only)",
            value=OPTIONS_SEPARATOR.join(
                o["value"] for o in initial.get("options", [])
            ),
        )
        if not st.form_submit_button("Save Attribute"):
            return None

    options = [o.strip() for o in options_text.split(OPTIONS_SEPARATOR) if o.strip()]
    form = {
        "name": name,
        "data_type": data_type,
        "category_id": category["id"],
        "options": options,
    }
    errors = db.validator.validate_attribute_form(form)
    if errors:
        for message in errors.values():
            st.error(message)
        return None

    return AttributeInput(is_required=is_required, **form)


def display_attributes_section(db):
    st.markdown("#### Attributes")

    page_data = db.list_attributes_page(
        page=st.session_state.get("attributes_page", 1), limit=ATTRIBUTE_PAGE_SIZE
    )
    page = display_pagination("attributes", page_data.total_pages)
    if page != page_data.current_page:
        page_data = db.list_attributes_page(page=page, limit=ATTRIBUTE_PAGE_SIZE)

    if page_data.items:
        st.dataframe(
            [
                {
                    "ID": a.id,
                    "Name": a.name,
                    "Type": a.data_type,
                    "Required": "Yes" if a.is_required else "No",
                    "Category": a.category.name if a.category else "N/A",
                    "Options": ", ".join(a.option_values),
                }
                for a in page_data.items
            ],
            width="stretch",
            hide_index=True,
        )
        st.caption(f"{page_data.total_count} attributes")
    else:
        st.warning("No attributes found")

    st.markdown("#### Create Attribute")
    data = attribute_form(db, "create_attribute_form")
    if data is not None:
        try:
            attribute = db.create_attribute(data)
            st.success(f"Created attribute: {attribute.name}")
            st.rerun()
        except ValueError as e:
            st.error(str(e))

    attributes = db.list_attributes()
    if not attributes:
        return

    st.markdown("#### Edit Attribute")
    labels = [
        f"{a.name} ({a.category.name if a.category else a.category_id})"
        for a in attributes
    ]
    choice = st.selectbox("Attribute", labels, key="edit_attribute_select")
    selected = attributes[labels.index(choice)]

    data = attribute_form(
        db, f"edit_attribute_form_{selected.id}", initial=selected.model_dump()
    )
    if data is not None:
        try:
            db.update_attribute(selected.id, data)
            st.success("Attribute updated")
            st.rerun()
        except (ValueError, LookupError) as e:
            st.error(str(e))

    if st.button("Delete Attribute", type="primary"):
        try:
            db.delete_attribute(selected.id)
            st.success(f"Deleted attribute: {selected.name}")
            st.rerun()
        except LookupError as e:
            st.error(str(e))
