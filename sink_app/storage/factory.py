"""
Factory for creating analytics storage instances.
Simple factory with singleton caching.
"""

from enum import Enum

from sink_app.access_log.registry import DEFAULT_REGISTRY, LogFieldRegistry
from sink_app.config import settings
from .strategies import AnalyticsStorageStrategy, SQLiteAnalyticsStorage, ClickHouseAnalyticsStorage


class AnalyticsBackend(Enum):
    """Available analytics storage backends"""
    SQLITE = "sqlite"
    CLICKHOUSE = "clickhouse"


class AnalyticsStorageFactory:
    """
    Simple factory for creating analytics storage instances.

    Gets configuration from settings (not passed as parameters).
    """

    _instance: AnalyticsStorageStrategy = None  # Single cached instance

    @classmethod
    def create(
        cls,
        backend: AnalyticsBackend,
        registry: LogFieldRegistry = DEFAULT_REGISTRY
    ) -> AnalyticsStorageStrategy:
        """
        Create or return cached analytics storage instance.

        Args:
            backend: Type of storage backend (from enum)
            registry: Slot layout of the stored records

        Returns:
            Singleton analytics storage instance
        """
        if cls._instance is not None:
            return cls._instance

        if backend == AnalyticsBackend.SQLITE:
            cls._instance = SQLiteAnalyticsStorage(
                registry,
                database_url=settings.analytics_database_url,
                table_name=settings.dataset,
            )
        elif backend == AnalyticsBackend.CLICKHOUSE:
            cls._instance = ClickHouseAnalyticsStorage(
                registry,
                url=settings.analytics_clickhouse_url,
                database=settings.analytics_clickhouse_database,
                table_name=settings.dataset,
            )
        else:
            raise ValueError(f"Unknown analytics backend: {backend}")

        return cls._instance

    @classmethod
    def clear_instance(cls):
        """Clear cached instance (for testing)"""
        cls._instance = None
