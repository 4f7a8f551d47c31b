"""
Product Generation Tab - six-step wizard driving the LLM pipeline
"""

import streamlit as st
from pathlib import Path
import sys

# Add project root to path
project_root = Path(__file__).parent.parent.parent.parent
sys.path.insert(0, str(project_root))

from src.services.common.service_factory import ServiceFactory
from src.services.generation import ProductGenerationService

from ..components import get_current_user, display_debug_panel, format_confidence
from ..config import WIZARD_STEPS
from ..data_loader import (
    get_database,
    get_registry,
    load_departments,
    load_top_level_categories,
    load_subcategories,
    clear_cache,
)


def reset_wizard_state():
    st.session_state.wizard_step = 0
    st.session_state.wizard_input = ""
    st.session_state.wizard_products = []
    st.session_state.wizard_product = None
    st.session_state.wizard_category_id = None
    st.session_state.wizard_subcategory_id = None
    st.session_state.wizard_identification = None
    st.session_state.wizard_mapping = None
    st.session_state.wizard_values = {}
    st.session_state.wizard_debug = None
    st.session_state.wizard_model_id = None


def go_to_step(step: int):
    st.session_state.wizard_step = step
    st.rerun()


def get_generation_service() -> ProductGenerationService:
    """Service bound to the model picked in step 1 (default model otherwise)"""
    model_id = st.session_state.get("wizard_model_id")
    if model_id is None:
        return ServiceFactory.get_generation_service()

    model = get_registry().get_model(model_id)
    return ProductGenerationService(
        get_database(),
        ServiceFactory.get_llm_gateway(),
        provider_id=model.provider_id,
        model_id=model.id,
    )


def display_generation_tab():
    """Display the product generation wizard"""

    st.markdown("### Product Generation")
    st.caption("Generate products with the LLM, file them in the taxonomy and save")

    if get_current_user() is None:
        st.info("Select a user in the sidebar to continue.")
        return

    step = st.session_state.wizard_step
    st.progress((step + 1) / len(WIZARD_STEPS))
    st.markdown(f"**Step {step + 1} of {len(WIZARD_STEPS)}: {WIZARD_STEPS[step]}**")

    try:
        if step == 0:
            step_describe()
        elif step == 1:
            step_pick_product()
        elif step == 2:
            step_pick_category()
        elif step == 3:
            step_confirm_category()
        elif step == 4:
            step_map_attributes()
        else:
            step_review_and_save()
    except Exception as e:
        st.error(f"Error: {str(e)}")

    display_debug_panel(st.session_state.wizard_debug)

    if step > 0 and st.button("Start Over", key="wizard_reset"):
        reset_wizard_state()
        st.rerun()


def step_describe():
    models = get_registry().list_models()
    if models:
        model = st.selectbox(
            "Model",
            models,
            format_func=lambda m: f"{m.provider.name} / {m.name}",
            key="wizard_model_select",
        )
        st.session_state.wizard_model_id = model.id
    else:
        st.warning("No LLM models configured. Add one in LLM Settings.")
        return

    user_input = st.text_input(
        "What kind of products?",
        value=st.session_state.wizard_input,
        placeholder="e.g. camping gear",
    )

    if st.button("Generate Products", type="primary"):
        with st.spinner("Asking the LLM..."):
            result = get_generation_service().generate_products(user_input)
        st.session_state.wizard_input = result.input
        st.session_state.wizard_products = result.products
        st.session_state.wizard_debug = result.debug.model_dump()
        if not result.products:
            st.warning("The LLM returned no products. Try a different input.")
            return
        go_to_step(1)


def step_pick_product():
    products = st.session_state.wizard_products
    choice = st.radio("Generated products", products, key="wizard_product_radio")
    custom = st.text_input("Or enter a product name", key="wizard_custom_product")

    col1, col2 = st.columns(2)
    with col1:
        if st.button("Back", key="pick_product_back"):
            go_to_step(0)
    with col2:
        if st.button("Next", type="primary", key="pick_product_next"):
            st.session_state.wizard_product = (custom or choice or "").strip()
            if not st.session_state.wizard_product:
                st.error("Pick or enter a product")
                return
            go_to_step(2)


def step_pick_category():
    st.markdown(f"Product: **{st.session_state.wizard_product}**")

    departments = load_departments()
    if not departments:
        st.warning("No departments found. Import or create a taxonomy first.")
        return

    department = st.selectbox(
        "Department", departments, format_func=lambda d: d["name"]
    )
    categories = load_top_level_categories(department["id"])
    if not categories:
        st.warning("This department has no categories")
        return

    category = st.selectbox("Category", categories, format_func=lambda c: c["name"])
    subcategories = load_subcategories(category["id"])
    if not subcategories:
        st.warning("This category has no subcategories")
        return

    subcategory = st.selectbox(
        "Subcategory", subcategories, format_func=lambda c: c["name"]
    )

    col1, col2 = st.columns(2)
    with col1:
        if st.button("Back", key="pick_category_back"):
            go_to_step(1)
    with col2:
        if st.button("Next", type="primary", key="pick_category_next"):
            st.session_state.wizard_category_id = category["id"]
            st.session_state.wizard_subcategory_id = subcategory["id"]
            st.session_state.wizard_identification = None
            go_to_step(3)


def step_confirm_category():
    identification = st.session_state.wizard_identification

    if identification is None:
        with st.spinner("Asking the LLM to confirm the category..."):
            result = get_generation_service().identify_category(
                st.session_state.wizard_product,
                st.session_state.wizard_category_id,
                st.session_state.wizard_subcategory_id,
            )
        identification = result.model_dump()
        st.session_state.wizard_identification = identification
        st.session_state.wizard_debug = identification["debug"]

    st.markdown(
        f"**{identification['product']}** → {identification['department']} › "
        f"{identification['category']['name']} › {identification['subcategory']['name']}"
    )

    if identification["confirmed"] is True:
        st.success("The LLM confirmed this category")
    elif identification["confirmed"] is False:
        st.warning(
            f"The LLM suggests: {identification['suggested_category'] or '?'} › "
            f"{identification['suggested_subcategory'] or '?'}"
        )
    else:
        st.info("The LLM reply could not be interpreted; see the debug panel")

    if identification.get("reasoning"):
        st.caption(identification["reasoning"])

    col1, col2 = st.columns(2)
    with col1:
        if st.button("Choose Another Category", key="confirm_back"):
            go_to_step(2)
    with col2:
        if st.button("Keep Category", type="primary", key="confirm_next"):
            st.session_state.wizard_mapping = None
            go_to_step(4)


def step_map_attributes():
    mapping = st.session_state.wizard_mapping

    if mapping is None:
        with st.spinner("Asking the LLM for attribute values..."):
            result = get_generation_service().map_attributes(
                st.session_state.wizard_product,
                st.session_state.wizard_subcategory_id,
            )
        mapping = result.model_dump()
        st.session_state.wizard_mapping = mapping
        st.session_state.wizard_values = result.mapped_values()
        st.session_state.wizard_debug = mapping["debug"]

    if not mapping["attributes"]:
        st.info("This subcategory has no attributes")

    values = st.session_state.wizard_values
    for attribute in mapping["attributes"]:
        label = f"{attribute['name']} ({attribute['data_type']})"
        if attribute["is_required"]:
            label += " *"
        values[attribute["name"]] = st.text_input(
            label,
            value=values.get(attribute["name"], ""),
            key=f"wizard_attr_{attribute['id']}",
        )

    if mapping["unmapped_keys"]:
        st.caption(f"Ignored keys from the LLM: {', '.join(mapping['unmapped_keys'])}")
    if mapping["missing_required"]:
        st.warning(
            f"The LLM left required attributes empty: "
            f"{', '.join(mapping['missing_required'])}"
        )

    col1, col2 = st.columns(2)
    with col1:
        if st.button("Back", key="map_back"):
            go_to_step(3)
    with col2:
        if st.button("Next", type="primary", key="map_next"):
            st.session_state.wizard_values = values
            go_to_step(5)


def step_review_and_save():
    identification = st.session_state.wizard_identification or {}
    values = st.session_state.wizard_values
    ai_values = {
        a["name"]: a["value"] for a in st.session_state.wizard_mapping["attributes"]
    }
    service = get_generation_service()
    db = get_database()

    attributes = db.list_category_attributes(st.session_state.wizard_subcategory_id)
    confidence = service.calculate_ai_confidence(
        attributes, ai_values, identification.get("confirmed")
    )

    st.markdown(f"**Product:** {st.session_state.wizard_product}")
    st.markdown(
        f"**Subcategory:** {identification.get('subcategory', {}).get('name', 'N/A')}"
    )
    st.markdown(f"**AI confidence:** {format_confidence(confidence)}")
    st.dataframe(
        [
            {"Attribute": k, "LLM Value": ai_values.get(k, ""), "Value": v}
            for k, v in values.items()
        ],
        width="stretch",
        hide_index=True,
    )

    col1, col2 = st.columns(2)
    with col1:
        if st.button("Back", key="review_back"):
            go_to_step(4)
    with col2:
        if st.button("Save Product", type="primary", key="review_save"):
            product = service.save_product(
                st.session_state.wizard_product,
                st.session_state.wizard_subcategory_id,
                ai_values,
                source_input=st.session_state.wizard_input,
                category_confirmed=identification.get("confirmed"),
                product_values=values,
            )
            clear_cache()
            reset_wizard_state()
            st.success(f"Saved product {product.id}: {product.name}")
