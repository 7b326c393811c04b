"""
FastAPI dependencies for dependency injection.

Provides singleton instances of cache, analytics storage and the access-log
pipeline, plus per-request services. Tests swap any of them through
``app.dependency_overrides``.
"""

import secrets
from functools import lru_cache
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from sink_app.access_log.codec import AccessLogDecoder, AccessLogEncoder
from sink_app.access_log.extractor import AccessLogExtractor
from sink_app.access_log.registry import DEFAULT_REGISTRY, LogFieldRegistry
from sink_app.access_log.user_agent import UserAgentClassifier
from sink_app.cache.factory import CacheBackend, CacheFactory
from sink_app.cache.strategies import CacheStrategy
from sink_app.config import settings
from sink_app.database.connection import get_db
from sink_app.services.access_log_service import AccessLogService
from sink_app.services.link_service import LinkService
from sink_app.services.query_builder import StatsQueryBuilder
from sink_app.services.stats_service import StatsService
from sink_app.storage.factory import AnalyticsBackend, AnalyticsStorageFactory
from sink_app.storage.strategies import AnalyticsStorageStrategy

bearer_scheme = HTTPBearer(auto_error=False)


def verify_site_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> None:
    """Require ``Authorization: Bearer <site_token>`` on API routes."""
    if credentials is None or not secrets.compare_digest(
        credentials.credentials.encode("utf-8"), settings.site_token.encode("utf-8")
    ):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing site token",
            headers={"WWW-Authenticate": "Bearer"},
        )


def get_registry() -> LogFieldRegistry:
    return DEFAULT_REGISTRY


@lru_cache()
def get_cache() -> CacheStrategy:
    """Cache instance (singleton) chosen by settings.cache_backend."""
    return CacheFactory.create(CacheBackend(settings.cache_backend))


@lru_cache()
def get_analytics_storage() -> AnalyticsStorageStrategy:
    """Analytics storage instance (singleton) chosen by settings.analytics_backend."""
    return AnalyticsStorageFactory.create(AnalyticsBackend(settings.analytics_backend), DEFAULT_REGISTRY)


@lru_cache()
def get_extractor() -> AccessLogExtractor:
    geo_headers = None
    if settings.cdn_geo_enabled:
        geo_headers = {
            "country": settings.geo_country_header,
            "region": settings.geo_region_header,
            "city": settings.geo_city_header,
            "timezone": settings.geo_timezone_header,
        }
    return AccessLogExtractor(
        UserAgentClassifier(),
        trusted_ip_header=settings.trusted_ip_header,
        geo_headers=geo_headers,
    )


def get_link_service(
    db: Session = Depends(get_db),
    cache: CacheStrategy = Depends(get_cache)
) -> LinkService:
    return LinkService(db=db, cache=cache)


def get_access_log_service(
    storage: AnalyticsStorageStrategy = Depends(get_analytics_storage),
    registry: LogFieldRegistry = Depends(get_registry)
) -> AccessLogService:
    return AccessLogService(
        storage=storage,
        encoder=AccessLogEncoder(registry),
        decoder=AccessLogDecoder(registry),
        production=settings.is_production,
    )


def get_stats_service(
    storage: AnalyticsStorageStrategy = Depends(get_analytics_storage),
    registry: LogFieldRegistry = Depends(get_registry)
) -> StatsService:
    return StatsService(storage=storage, builder=StatsQueryBuilder(storage.table, registry))
