import asyncio
import logging

from fastapi.testclient import TestClient

from main import app
from sink_app.access_log.codec import AccessLogDecoder, AccessLogEncoder
from sink_app.access_log.record import AccessLogRecord
from sink_app.access_log.registry import DEFAULT_REGISTRY
from sink_app.dependencies import get_access_log_service
from sink_app.exceptions import AnalyticsStorageError
from sink_app.services.access_log_service import AccessLogService
from sink_app.storage.table import INDEX_COLUMN


def stored_rows(storage):
    with storage.engine.connect() as conn:
        return [dict(row) for row in conn.execute(storage.table.select()).mappings()]


class FailingStorage:
    """Analytics storage whose writes always fail."""

    async def put(self, index, blobs, timestamp=None):
        raise AnalyticsStorageError("backend unavailable")


class TestRedirect:

    def test_redirect(self, client: TestClient):
        client.post("/api/v1/links/", json={"url": "https://www.github.com/", "slug": "gh"})

        response = client.get("/gh", follow_redirects=False)

        assert response.status_code == 302
        assert response.headers["location"] == "https://www.github.com/"

    def test_redirect_is_case_insensitive(self, client: TestClient):
        client.post("/api/v1/links/", json={"url": "https://www.github.com/", "slug": "gh"})

        assert client.get("/GH", follow_redirects=False).status_code == 302

    def test_redirect_missing_link(self, client: TestClient):
        assert client.get("/nonexistent", follow_redirects=False).status_code == 404

    def test_redirect_expired_link(self, client: TestClient):
        client.post(
            "/api/v1/links/",
            json={"url": "https://www.github.com/", "slug": "old", "expiration": 1000},
        )

        assert client.get("/old", follow_redirects=False).status_code == 404

    def test_redirect_after_edit_uses_new_url(self, client: TestClient):
        client.post("/api/v1/links/", json={"url": "https://a.example.com/", "slug": "moving"})
        client.get("/moving", follow_redirects=False)  # warm the cache

        client.put("/api/v1/links/moving", json={"url": "https://b.example.com/"})

        response = client.get("/moving", follow_redirects=False)
        assert response.headers["location"] == "https://b.example.com/"

    def test_access_log_is_stored(self, client: TestClient, analytics_storage):
        link = client.post(
            "/api/v1/links/", json={"url": "https://www.github.com/", "slug": "gh"}
        ).json()

        client.get(
            "/gh?utm_source=a&utm_source=b&utm_campaign=launch",
            headers={
                "User-Agent": "curl/8.4.0",
                "Referer": "https://news.example.com/post/1",
                "Accept-Language": "fr-FR,en;q=0.8",
                "X-Real-IP": "198.51.100.23",
                "CF-IPCountry": "FR",
            },
            follow_redirects=False,
        )

        rows = stored_rows(analytics_storage)
        assert len(rows) == 1
        assert rows[0][INDEX_COLUMN] == link["id"]

        blobs = [rows[0][slot] for slot in DEFAULT_REGISTRY.slots]
        record = AccessLogDecoder(DEFAULT_REGISTRY).decode(blobs)
        assert record.slug == "gh"
        assert record.url == "https://www.github.com/"
        assert record.ip == "198.51.100.23"
        assert record.source == "news.example.com"
        assert record.language == "fr-FR"
        assert record.country == "FR"
        assert record.browser == "curl"
        assert record.browser_type == "cli"
        assert record.utm_source == "a,b"
        assert record.utm_campaign == "launch"
        assert record.utm_medium is None

    def test_failed_write_does_not_block_redirect(self, client: TestClient):
        client.post("/api/v1/links/", json={"url": "https://www.github.com/", "slug": "gh"})
        app.dependency_overrides[get_access_log_service] = lambda: AccessLogService(
            storage=FailingStorage(),
            encoder=AccessLogEncoder(DEFAULT_REGISTRY),
            decoder=AccessLogDecoder(DEFAULT_REGISTRY),
            production=True,
        )

        response = client.get("/gh", follow_redirects=False)

        assert response.status_code == 302


class TestStatsAPI:

    def visit(self, client, path, ip):
        client.get(path, headers={"X-Real-IP": ip, "CF-IPCountry": "DE"}, follow_redirects=False)

    def test_views_counters_and_metrics(self, client: TestClient):
        link = client.post("/api/v1/links/", json={"url": "https://www.github.com/", "slug": "gh"}).json()
        self.visit(client, "/gh", "1.1.1.1")
        self.visit(client, "/gh", "1.1.1.1")
        self.visit(client, "/gh", "2.2.2.2")

        views = client.get("/api/v1/stats/views", params={"unit": "day", "id": link["id"]})
        assert views.status_code == 200
        assert len(views.json()) == 1
        assert views.json()[0]["visits"] == 3
        assert views.json()[0]["visitors"] == 2

        counters = client.get("/api/v1/stats/counters", params={"id": link["id"]}).json()
        assert counters == {"visits": 3, "visitors": 2, "referers": 0}

        metrics = client.get("/api/v1/stats/metrics", params={"type": "country"}).json()
        assert metrics == {"type": "country", "data": [{"name": "DE", "count": 3}]}

    def test_views_for_other_link_are_empty(self, client: TestClient):
        client.post("/api/v1/links/", json={"url": "https://www.github.com/", "slug": "gh"})
        self.visit(client, "/gh", "1.1.1.1")

        views = client.get(
            "/api/v1/stats/views",
            params={"unit": "hour", "clientTimezone": "Europe/Paris", "id": "someone-else"},
        )

        assert views.status_code == 200
        assert views.json() == []

    def test_minute_unit_rejected(self, client: TestClient):
        response = client.get("/api/v1/stats/views", params={"unit": "minute"})
        assert response.status_code == 422

    def test_unknown_timezone_rejected(self, client: TestClient):
        response = client.get("/api/v1/stats/views", params={"unit": "day", "clientTimezone": "Nowhere/Land"})
        assert response.status_code == 422

    def test_stats_require_site_token(self, client: TestClient):
        response = client.get(
            "/api/v1/stats/counters", headers={"Authorization": "Bearer wrong"}
        )
        assert response.status_code == 401


class TestAccessLogService:

    def test_development_mode_only_logs(self, analytics_storage, caplog):
        service = AccessLogService(
            storage=analytics_storage,
            encoder=AccessLogEncoder(DEFAULT_REGISTRY),
            decoder=AccessLogDecoder(DEFAULT_REGISTRY),
            production=False,
        )

        with caplog.at_level(logging.INFO, logger="sink_app.services.access_log_service"):
            stored = asyncio.run(service.write("link-1", AccessLogRecord(slug="gh")))

        assert stored is False
        assert stored_rows(analytics_storage) == []
        assert "access logs" in caplog.text

    def test_failed_write_is_logged(self, caplog):
        service = AccessLogService(
            storage=FailingStorage(),
            encoder=AccessLogEncoder(DEFAULT_REGISTRY),
            decoder=AccessLogDecoder(DEFAULT_REGISTRY),
            production=True,
        )

        with caplog.at_level(logging.ERROR):
            stored = asyncio.run(service.write("link-1", AccessLogRecord(slug="gh")))

        assert stored is False
        assert "link-1" in caplog.text
