"""
Tests for request signal extraction and user-agent classification.
"""
from types import SimpleNamespace

import pytest

from sink_app.access_log.extractor import AccessLogExtractor, preferred_language, referer_host
from sink_app.access_log.user_agent import DetectorSet, UserAgentClassifier
from sink_app.dependencies import get_extractor

CHROME_WINDOWS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
SAFARI_IPHONE = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)
GEO_HEADERS = {
    "country": "cf-ipcountry",
    "region": "cf-region",
    "city": "cf-ipcity",
    "timezone": "cf-timezone",
}


@pytest.fixture
def extractor():
    return AccessLogExtractor(UserAgentClassifier(), geo_headers=GEO_HEADERS)


class TestLanguage:

    def test_highest_priority_tag(self):
        assert preferred_language("fr-FR,en;q=0.8") == "fr-FR"

    def test_quality_beats_position(self):
        assert preferred_language("en;q=0.5, de-CH;q=0.9, fr;q=0.7") == "de-CH"

    def test_zero_quality_is_excluded(self):
        assert preferred_language("en;q=0, ja;q=0.1") == "ja"

    def test_wildcard_is_skipped(self):
        assert preferred_language("*, de;q=0.5") == "de"

    @pytest.mark.parametrize("header", [None, "", " , ", "*"])
    def test_empty_header(self, header):
        assert preferred_language(header) is None


class TestReferer:

    def test_host_with_port(self):
        assert referer_host("https://news.example.com:8443/a?b=c") == "news.example.com:8443"

    def test_credentials_are_dropped(self):
        assert referer_host("https://user:pw@example.com/") == "example.com"

    @pytest.mark.parametrize("referer", [None, "", "not a url"])
    def test_missing_or_relative_referer(self, referer):
        assert referer_host(referer) is None


class TestAccessLogExtractor:

    def test_utm_parameters(self, extractor, make_request):
        request = make_request(query_string="utm_source=a&utm_source=b&utm_medium=email")

        record = extractor.extract(request)

        assert record.utm_source == "a,b"
        assert record.utm_medium == "email"
        assert record.utm_campaign is None

    def test_trusted_ip_header_wins(self, extractor, make_request):
        request = make_request(headers={"X-Real-IP": "198.51.100.1", "X-Forwarded-For": "192.0.2.1"})

        assert extractor.extract(request).ip == "198.51.100.1"

    def test_forwarded_for_first_hop(self, extractor, make_request):
        request = make_request(headers={"X-Forwarded-For": "192.0.2.1, 10.0.0.1"})

        assert extractor.extract(request).ip == "192.0.2.1"

    def test_falls_back_to_peer_address(self, extractor, make_request):
        assert extractor.extract(make_request()).ip == "203.0.113.9"

    def test_geo_from_cdn_headers(self, extractor, make_request):
        request = make_request(headers={
            "CF-IPCountry": "JP",
            "CF-Region": "Tokyo",
            "CF-IPCity": "Shibuya",
            "CF-Timezone": "Asia/Tokyo",
        })

        record = extractor.extract(request)

        assert (record.country, record.region, record.city, record.timezone) == (
            "JP", "Tokyo", "Shibuya", "Asia/Tokyo"
        )

    def test_no_geo_outside_cdn(self, make_request):
        extractor = AccessLogExtractor(UserAgentClassifier(), geo_headers=None)
        request = make_request(headers={"CF-IPCountry": "JP"})

        record = extractor.extract(request)

        assert record.country is None
        assert record.timezone is None

    def test_default_settings_ignore_geo_headers(self, make_request):
        request = make_request(headers={"CF-IPCountry": "JP", "CF-Timezone": "Asia/Tokyo"})

        record = get_extractor().extract(request)

        assert record.country is None
        assert record.timezone is None

    def test_link_context(self, extractor, make_request):
        link = SimpleNamespace(slug="launch", url="https://example.com/launch")

        record = extractor.extract(make_request(link=link))

        assert record.slug == "launch"
        assert record.url == "https://example.com/launch"

    def test_bare_request_degrades_to_empty_fields(self, extractor, make_request):
        record = extractor.extract(make_request(client=None))

        assert record.slug is None
        assert record.ip is None
        assert record.source is None
        assert record.language is None
        assert record.ua is None
        assert record.browser is None

    def test_request_headers(self, extractor, make_request):
        request = make_request(headers={
            "Referer": "https://t.co/xyz",
            "Accept-Language": "fr-FR,en;q=0.8",
            "User-Agent": CHROME_WINDOWS,
        })

        record = extractor.extract(request)

        assert record.source == "t.co"
        assert record.language == "fr-FR"
        assert record.ua == CHROME_WINDOWS
        assert record.browser == "Chrome"


class TestUserAgentClassifier:

    def setup_method(self):
        self.classifier = UserAgentClassifier()

    def test_desktop_browser(self):
        info = self.classifier.classify(CHROME_WINDOWS)

        assert info.browser == "Chrome"
        assert info.browser_type == "browser"
        assert info.os == "Windows"
        assert info.device_type is None

    def test_mobile_browser(self):
        info = self.classifier.classify(SAFARI_IPHONE)

        assert info.os == "iOS"
        assert info.browser_type == "browser"
        assert info.device == "iPhone"
        assert info.device_type == "mobile"

    @pytest.mark.parametrize("user_agent, browser, browser_type", [
        ("Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)", "Googlebot", "bot"),
        ("Slackbot-LinkExpanding 1.0 (+https://api.slack.com/robots)", "Slackbot-LinkExpanding", "bot"),
        ("curl/8.4.0", "curl", "cli"),
        ("Wget/1.21.4", "Wget", "cli"),
        ("python-requests/2.31.0", "requests", "library"),
        ("Go-http-client/1.1", "Go http client", "library"),
        ("VLC/3.0.20 LibVLC/3.0.20", "VLC", "mediaplayer"),
        ("Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:115.0) Gecko/20100101 Thunderbird/115.6.0",
         "Thunderbird", "email"),
        ("Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
         "(KHTML, like Gecko) Mobile/15E148 Instagram 312.0.0.0", "Instagram", "app"),
    ])
    def test_detector_sets(self, user_agent, browser, browser_type):
        info = self.classifier.classify(user_agent)

        assert info.browser == browser
        assert info.browser_type == browser_type

    def test_extra_device_set(self):
        info = self.classifier.classify(
            "Mozilla/5.0 (PlayStation 5 3.11) AppleWebKit/605.1.15 (KHTML, like Gecko)"
        )

        assert info.device == "PlayStation 5"
        assert info.device_type == "console"

    def test_custom_detector_set(self):
        classifier = UserAgentClassifier(
            browser_detectors=[DetectorSet("app", [(r"\bSinkDesktop/", "Sink Desktop")])]
        )

        info = classifier.classify("SinkDesktop/2.0 (Macintosh)")

        assert info.browser == "Sink Desktop"
        assert info.browser_type == "app"

    def test_empty_user_agent(self):
        info = self.classifier.classify("")

        assert info.browser is None
        assert info.os is None
        assert info.device is None
