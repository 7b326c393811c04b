"""
Test configuration and fixtures for the Sink service.
Centralizes app setup so individual tests stay short.
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from starlette.requests import Request

from main import app
from sink_app.access_log.codec import AccessLogDecoder, AccessLogEncoder
from sink_app.access_log.extractor import AccessLogExtractor
from sink_app.access_log.registry import DEFAULT_REGISTRY
from sink_app.access_log.user_agent import UserAgentClassifier
from sink_app.cache.strategies import InMemoryCache
from sink_app.config import settings
from sink_app.database.connection import Base, get_db
from sink_app.dependencies import get_access_log_service, get_analytics_storage, get_cache, get_extractor
from sink_app.services.access_log_service import AccessLogService
from sink_app.storage.strategies import SQLiteAnalyticsStorage

# Test database configuration
SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

CDN_GEO_HEADERS = {
    "country": "cf-ipcountry",
    "region": "cf-region",
    "city": "cf-ipcity",
    "timezone": "cf-timezone",
}


@pytest.fixture(scope="function")
def db_session():
    """Fresh database per test."""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def analytics_storage():
    """In-memory analytics store laid out by the default registry."""
    return SQLiteAnalyticsStorage(DEFAULT_REGISTRY, database_url="sqlite://")


@pytest.fixture(scope="function")
def access_log_service(analytics_storage):
    """Access log service in production mode, so redirects are persisted."""
    return AccessLogService(
        storage=analytics_storage,
        encoder=AccessLogEncoder(DEFAULT_REGISTRY),
        decoder=AccessLogDecoder(DEFAULT_REGISTRY),
        production=True,
    )


@pytest.fixture(scope="function")
def client(db_session, analytics_storage, access_log_service):
    """
    Test client with database, cache and analytics dependencies overridden,
    authenticated with the site token.
    """
    def override_get_db():
        yield db_session

    cache = InMemoryCache()
    # Requests in these tests act as if they came through the CDN
    cdn_extractor = AccessLogExtractor(UserAgentClassifier(), geo_headers=CDN_GEO_HEADERS)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache] = lambda: cache
    app.dependency_overrides[get_analytics_storage] = lambda: analytics_storage
    app.dependency_overrides[get_access_log_service] = lambda: access_log_service
    app.dependency_overrides[get_extractor] = lambda: cdn_extractor

    with TestClient(app) as test_client:
        test_client.headers.update({"Authorization": f"Bearer {settings.site_token}"})
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def make_request():
    """Build a bare Starlette request for extractor tests."""
    def _make_request(headers=None, query_string="", client=("203.0.113.9", 52000), link=None):
        scope = {
            "type": "http",
            "method": "GET",
            "path": "/abc",
            "query_string": query_string.encode("latin-1"),
            "headers": [
                (name.lower().encode("latin-1"), value.encode("latin-1"))
                for name, value in (headers or {}).items()
            ],
            "client": client,
        }
        request = Request(scope)
        if link is not None:
            request.state.link = link
        return request

    return _make_request
