"""
Registry of LLM providers, models and the query log
Stored in the catalog database
"""

import sqlite3
import logging
from datetime import datetime, timezone
from typing import List, Optional

from ..catalog.config import (
    LLM_PROVIDERS_TABLE,
    LLM_MODELS_TABLE,
    LLM_QUERIES_TABLE,
)
from ..catalog.database import CatalogDatabase
from ..catalog.models import RecordNotFoundError
from .config import DEFAULT_PROVIDERS
from .models import LLMProvider, LLMModel, LLMQueryRecord, ModelRef, ProviderRef

logger = logging.getLogger(__name__)


class LLMRegistry:
    """CRUD for llm_providers / llm_models and access to llm_queries"""

    def __init__(self, db: CatalogDatabase):
        self.db = db

    # ============= PROVIDERS =============

    def create_provider(self, name: str, api_key: Optional[str] = None) -> LLMProvider:
        """
        Register a provider

        Raises:
            ValueError: If the name is empty or already registered
        """
        name = (name or "").strip()
        if not name:
            raise ValueError("Provider name is required")

        try:
            with self.db.get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute(
                    f"INSERT INTO {LLM_PROVIDERS_TABLE} (name, api_key) VALUES (?, ?)",
                    (name, api_key or None),
                )
                provider_id = cursor.lastrowid
        except sqlite3.IntegrityError:
            raise ValueError(f"Provider '{name}' already exists")

        logger.info(f"Created LLM provider {provider_id}: {name}")
        return self.get_provider(provider_id)

    def list_providers(self) -> List[LLMProvider]:
        """All providers with their models"""
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT id, name, api_key FROM {LLM_PROVIDERS_TABLE} ORDER BY name"
            )
            providers = [LLMProvider(**dict(row)) for row in cursor.fetchall()]

            cursor.execute(
                f"SELECT id, name, provider_id FROM {LLM_MODELS_TABLE} ORDER BY name"
            )
            by_provider = {p.id: p for p in providers}
            for row in cursor.fetchall():
                provider = by_provider.get(row["provider_id"])
                if provider is not None:
                    provider.models.append(ModelRef(id=row["id"], name=row["name"]))

        return providers

    def get_provider(self, provider_id: int) -> Optional[LLMProvider]:
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT id, name, api_key FROM {LLM_PROVIDERS_TABLE} WHERE id = ?",
                (provider_id,),
            )
            row = cursor.fetchone()
            if row is None:
                return None
            provider = LLMProvider(**dict(row))

            cursor.execute(
                f"SELECT id, name FROM {LLM_MODELS_TABLE} WHERE provider_id = ? ORDER BY name",
                (provider_id,),
            )
            provider.models = [ModelRef(**dict(m)) for m in cursor.fetchall()]

        return provider

    def update_provider_key(self, provider_id: int, api_key: Optional[str]) -> LLMProvider:
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"UPDATE {LLM_PROVIDERS_TABLE} SET api_key = ? WHERE id = ?",
                (api_key or None, provider_id),
            )
            if cursor.rowcount == 0:
                raise RecordNotFoundError(f"Provider {provider_id} not found")

        logger.info(f"Updated API key for provider {provider_id}")
        return self.get_provider(provider_id)

    def delete_provider(self, provider_id: int) -> None:
        """Delete a provider; its models cascade"""
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"DELETE FROM {LLM_PROVIDERS_TABLE} WHERE id = ?", (provider_id,)
            )
            if cursor.rowcount == 0:
                raise RecordNotFoundError(f"Provider {provider_id} not found")

        logger.info(f"Deleted LLM provider {provider_id}")

    # ============= MODELS =============

    def create_model(self, name: str, provider_id: int) -> LLMModel:
        name = (name or "").strip()
        if not name:
            raise ValueError("Model name is required")

        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT id FROM {LLM_PROVIDERS_TABLE} WHERE id = ?", (provider_id,)
            )
            if cursor.fetchone() is None:
                raise ValueError(f"Provider with id {provider_id} not found")

            cursor.execute(
                f"INSERT INTO {LLM_MODELS_TABLE} (name, provider_id) VALUES (?, ?)",
                (name, provider_id),
            )
            model_id = cursor.lastrowid

        logger.info(f"Created LLM model {model_id}: {name} (provider {provider_id})")
        return self.get_model(model_id)

    def _fetch_models(self, where: str = "", params: tuple = ()) -> List[LLMModel]:
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                SELECT m.id, m.name, m.provider_id, p.name AS provider_name
                FROM {LLM_MODELS_TABLE} m
                JOIN {LLM_PROVIDERS_TABLE} p ON m.provider_id = p.id
                {where}
                ORDER BY p.name, m.name
                """,
                params,
            )
            rows = cursor.fetchall()

        return [
            LLMModel(
                id=row["id"],
                name=row["name"],
                provider_id=row["provider_id"],
                provider=ProviderRef(id=row["provider_id"], name=row["provider_name"]),
            )
            for row in rows
        ]

    def list_models(self, provider_id: Optional[int] = None) -> List[LLMModel]:
        """Models with their provider, optionally for one provider"""
        if provider_id is None:
            return self._fetch_models()
        return self._fetch_models("WHERE m.provider_id = ?", (provider_id,))

    def get_model(self, model_id: int) -> Optional[LLMModel]:
        models = self._fetch_models("WHERE m.id = ?", (model_id,))
        return models[0] if models else None

    def delete_model(self, model_id: int) -> None:
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(f"DELETE FROM {LLM_MODELS_TABLE} WHERE id = ?", (model_id,))
            if cursor.rowcount == 0:
                raise RecordNotFoundError(f"Model {model_id} not found")

        logger.info(f"Deleted LLM model {model_id}")

    # ============= QUERY LOG =============

    def log_query(
        self, provider_id: int, model_id: int, prompt: str, response: Optional[str]
    ) -> int:
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"""
                INSERT INTO {LLM_QUERIES_TABLE}
                    (provider_id, model_id, prompt, response, timestamp)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    provider_id,
                    model_id,
                    prompt,
                    response,
                    datetime.now(timezone.utc).isoformat(),
                ),
            )
            return cursor.lastrowid

    def list_queries(self, limit: int = 50) -> List[LLMQueryRecord]:
        """Most recent queries first"""
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                f"SELECT * FROM {LLM_QUERIES_TABLE} ORDER BY id DESC LIMIT ?",
                (limit,),
            )
            rows = cursor.fetchall()
        return [LLMQueryRecord(**dict(row)) for row in rows]

    def seed_default_providers(self) -> int:
        """
        Register the default providers and models that are not yet present

        Returns:
            Number of models created
        """
        existing = {p.name.lower(): p for p in self.list_providers()}
        created = 0

        for provider_name, model_names in DEFAULT_PROVIDERS.items():
            provider = existing.get(provider_name)
            if provider is None:
                provider = self.create_provider(provider_name)
            known = {m.name for m in provider.models}
            for model_name in model_names:
                if model_name not in known:
                    self.create_model(model_name, provider.id)
                    created += 1

        logger.info(f"Seeded {created} default LLM models")
        return created
