"""
Service Factory - Centralized service instance manager with caching

Provides singleton access to all major services:
- Catalog Database
- LLM Gateway (with its registry)
- Product Generation Service
- Grading Service

Features:
- Lazy initialization (Created only when needed)
- Thread-safe instance creation
- Path aware caching (one instance per database file)
- Clearable cache for testing
"""

import logging
import threading
from pathlib import Path
from typing import Optional, Dict, Any, Callable

from ..catalog.database import CatalogDatabase
from ..catalog.config import DATABASE_PATH
from ..llm_gateway.gateway import LLMGateway
from ..llm_gateway.registry import LLMRegistry
from ..generation.service import ProductGenerationService
from ..grading.service import GradingService

logger = logging.getLogger(__name__)


class ServiceFactory:
    """
    Centralized service instance manager with caching

    Provides singleton access to all major services with path-aware caching
    to eliminate redundant service instantiation.
    """

    _instances: Dict[str, Any] = {}
    _lock: threading.RLock = threading.RLock()

    @classmethod
    def _get_or_create(cls, cache_key: str, create: Callable[[], Any]) -> Any:
        if cache_key in cls._instances:
            logger.debug(f"[ServiceFactory] Returning cached instance: {cache_key}")
            return cls._instances[cache_key]

        with cls._lock:
            if cache_key not in cls._instances:
                logger.debug(f"[ServiceFactory] Creating new instance: {cache_key}")
                cls._instances[cache_key] = create()

        return cls._instances[cache_key]

    @staticmethod
    def _resolve(db_path: Optional[Path]) -> Path:
        return Path(db_path) if db_path else DATABASE_PATH

    @classmethod
    def get_database(cls, db_path: Optional[Path] = None) -> CatalogDatabase:
        """
        Get or create CatalogDatabase instance with path-aware caching

        Args:
            db_path: Path to database file (uses default DATABASE_PATH if None)

        Returns:
            CatalogDatabase instance (cached per path)

        Usage:
            db = ServiceFactory.get_database()
            custom_db = ServiceFactory.get_database(Path('/custom/path.db'))
        """
        path = cls._resolve(db_path)
        return cls._get_or_create(f"database_{path}", lambda: CatalogDatabase(path))

    @classmethod
    def get_llm_gateway(cls, db_path: Optional[Path] = None) -> LLMGateway:
        """
        Get or create LLMGateway bound to a database's provider registry

        Notes:
            - Vendor clients are cached inside the gateway
            - MOCK_LLM=true makes every call return canned responses
        """
        path = cls._resolve(db_path)
        return cls._get_or_create(
            f"llm_gateway_{path}",
            lambda: LLMGateway(LLMRegistry(cls.get_database(path))),
        )

    @classmethod
    def get_generation_service(
        cls, db_path: Optional[Path] = None
    ) -> ProductGenerationService:
        path = cls._resolve(db_path)
        return cls._get_or_create(
            f"generation_service_{path}",
            lambda: ProductGenerationService(
                cls.get_database(path), cls.get_llm_gateway(path)
            ),
        )

    @classmethod
    def get_grading_service(cls, db_path: Optional[Path] = None) -> GradingService:
        path = cls._resolve(db_path)
        return cls._get_or_create(
            f"grading_service_{path}",
            lambda: GradingService(cls.get_database(path)),
        )

    @classmethod
    def clear_cache(cls) -> None:
        """
        Clear all cached service instances

        Usage:
            ServiceFactory.clear_cache()

        Notes:
            - Useful for testing (clear between tests)
            - Useful for troubleshooting (force fresh start)
        """
        with cls._lock:
            count = len(cls._instances)
            cls._instances.clear()
            logger.info(f"[ServiceFactory] Cleared {count} cached service instances")

    @classmethod
    def get_cache_stats(cls) -> Dict[str, Any]:
        """
        Get statistics about cached instances (for debugging/ monitoring)

        Returns:
            Dictionary with cache statistics

        Usage:
            stats = ServiceFactory.get_cache_stats()
            print(f"Total instances: {stats['total_instances']}")
        """
        keys = list(cls._instances.keys())
        return {
            "total_instances": len(keys),
            "instance_types": keys,
            "database_paths": [
                k.replace("database_", "", 1) for k in keys if k.startswith("database_")
            ],
            "has_llm_gateway": any(k.startswith("llm_gateway_") for k in keys),
            "has_generation_service": any(
                k.startswith("generation_service_") for k in keys
            ),
            "has_grading_service": any(k.startswith("grading_service_") for k in keys),
        }
