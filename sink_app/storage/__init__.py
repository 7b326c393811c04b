"""
Analytics storage module.

Implements the Strategy Pattern for the positional access-log store.
Link records live in the main database; access logs live here.
"""

from .strategies import AnalyticsStorageStrategy, SQLiteAnalyticsStorage, ClickHouseAnalyticsStorage
from .factory import AnalyticsStorageFactory, AnalyticsBackend

__all__ = [
    "AnalyticsStorageStrategy",
    "SQLiteAnalyticsStorage",
    "ClickHouseAnalyticsStorage",
    "AnalyticsStorageFactory",
    "AnalyticsBackend",
]
