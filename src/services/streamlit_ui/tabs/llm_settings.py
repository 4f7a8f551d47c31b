"""
LLM Settings Tab - providers, models, test prompt and query log
"""

import streamlit as st
from pathlib import Path
import sys

# Add project root to path
project_root = Path(__file__).parent.parent.parent.parent
sys.path.insert(0, str(project_root))

from src.services.common.service_factory import ServiceFactory
from src.services.catalog.config import ROLE_ADMIN
from src.services.llm_gateway import LLMQueryError
from src.services.llm_gateway.config import SUPPORTED_PROVIDERS

from ..components import require_role
from ..config import MAX_QUERIES_DISPLAY


def display_llm_settings_tab():
    """Display LLM provider/model management (ADMIN only)"""

    st.markdown("### LLM Settings")
    st.caption(f"Supported providers: {', '.join(SUPPORTED_PROVIDERS)}")

    if require_role(ROLE_ADMIN) is None:
        return

    try:
        gateway = ServiceFactory.get_llm_gateway()
        registry = gateway.registry

        # A. Providers
        st.markdown("#### Providers")
        providers = registry.list_providers()
        if providers:
            st.dataframe(
                [
                    {
                        "ID": p.id,
                        "Name": p.name,
                        "API Key": p.masked_key,
                        "Models": ", ".join(m.name for m in p.models),
                    }
                    for p in providers
                ],
                width="stretch",
                hide_index=True,
            )
        else:
            st.warning("No providers configured")

        with st.form("create_provider_form", clear_on_submit=True):
            name = st.text_input("Provider name", placeholder="openai")
            api_key = st.text_input("API key (optional)", type="password")
            if st.form_submit_button("Add Provider"):
                try:
                    registry.create_provider(name, api_key)
                    st.success(f"Added provider: {name}")
                    st.rerun()
                except ValueError as e:
                    st.error(str(e))

        if providers:
            with st.form("update_key_form", clear_on_submit=True):
                provider = st.selectbox(
                    "Provider", providers, format_func=lambda p: p.name
                )
                new_key = st.text_input("New API key", type="password")
                if st.form_submit_button("Update Key"):
                    registry.update_provider_key(provider.id, new_key)
                    st.success(f"Updated key for {provider.name}")
                    st.rerun()

            # B. Models
            st.markdown("#### Models")
            with st.form("create_model_form", clear_on_submit=True):
                provider = st.selectbox(
                    "Provider", providers, format_func=lambda p: p.name, key="model_provider"
                )
                model_name = st.text_input("Model name", placeholder="gpt-4o-mini")
                if st.form_submit_button("Add Model"):
                    try:
                        registry.create_model(model_name, provider.id)
                        st.success(f"Added model: {model_name}")
                        st.rerun()
                    except ValueError as e:
                        st.error(str(e))

            with st.expander("Delete Provider or Model"):
                col1, col2 = st.columns(2)
                with col1:
                    provider = st.selectbox(
                        "Provider", providers, format_func=lambda p: p.name, key="delete_provider"
                    )
                    if st.button("Delete Provider", key="delete_provider_btn"):
                        registry.delete_provider(provider.id)
                        st.success(f"Deleted provider {provider.name} and its models")
                        st.rerun()
                with col2:
                    all_models = registry.list_models()
                    if all_models:
                        model = st.selectbox(
                            "Model",
                            all_models,
                            format_func=lambda m: f"{m.provider.name} / {m.name}",
                            key="delete_model",
                        )
                        if st.button("Delete Model", key="delete_model_btn"):
                            registry.delete_model(model.id)
                            st.success(f"Deleted model {model.name}")
                            st.rerun()

        st.markdown("---")

        # C. Test prompt
        st.markdown("#### Test Prompt")
        models = registry.list_models()
        if models:
            model = st.selectbox(
                "Model",
                models,
                format_func=lambda m: f"{m.provider.name} / {m.name}",
                key="test_model",
            )
            prompt = st.text_area("Prompt", key="test_prompt")
            if st.button("Send"):
                try:
                    with st.spinner("Querying..."):
                        reply = gateway.query_llm(model.provider_id, model.id, prompt)
                    st.code(reply, language=None)
                except LLMQueryError as e:
                    st.error(f"{e}: {e.__cause__}")
        else:
            st.info("Add a model to send test prompts")

        # D. Query log
        with st.expander("Recent Queries"):
            queries = registry.list_queries(limit=MAX_QUERIES_DISPLAY)
            if queries:
                st.dataframe(
                    [q.model_dump() for q in queries], width="stretch", hide_index=True
                )
            else:
                st.caption("No queries logged yet")

    except Exception as e:
        st.error(f"Error loading LLM settings: {str(e)}")
