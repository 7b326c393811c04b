"""
Request signal extraction.

Builds one AccessLogRecord from an incoming redirect request: client IP,
referer host, preferred language, user-agent classification, CDN geo
headers, UTM query parameters and the link resolved for the request.
Missing signals never raise, they just stay None.
"""

from typing import List, Optional
from urllib.parse import urlsplit

from fastapi import Request

from sink_app.access_log.record import AccessLogRecord
from sink_app.access_log.user_agent import UserAgentClassifier

UTM_PARAMETERS = ("utm_source", "utm_medium", "utm_campaign", "utm_term", "utm_content")


def referer_host(referer: Optional[str]) -> Optional[str]:
    """Host (with port, if any) of a Referer header value."""
    if not referer:
        return None
    try:
        netloc = urlsplit(referer).netloc
    except ValueError:
        return None
    # Drop credentials, keep host:port
    return netloc.rpartition("@")[2] or None


def preferred_language(accept_language: Optional[str]) -> Optional[str]:
    """
    Highest-priority tag of an Accept-Language header.

    Tags without a q value weigh 1.0; ties keep header order and q=0 means
    "not acceptable". The "*" wildcard names no language and is skipped.
    """
    if not accept_language:
        return None

    candidates = []
    for position, part in enumerate(accept_language.split(",")):
        tag, _, params = part.strip().partition(";")
        tag = tag.strip()
        if not tag or tag == "*":
            continue

        quality = 1.0
        for param in params.split(";"):
            key, _, value = param.strip().partition("=")
            if key.strip().lower() == "q":
                try:
                    quality = float(value)
                except ValueError:
                    quality = 0.0
        if quality <= 0:
            continue
        candidates.append((-quality, position, tag))

    if not candidates:
        return None
    return min(candidates)[2]


def join_query_values(values: List[str]) -> Optional[str]:
    """Repeated query parameters become one comma separated string."""
    if not values:
        return None
    return ",".join(values)


class AccessLogExtractor:
    """
    Derive an AccessLogRecord from a request.

    Args:
        classifier: user-agent classifier
        trusted_ip_header: header set by a trusted proxy with the client IP
        geo_headers: CDN header names for country, region, city and timezone,
            or None when not running behind the CDN
    """

    def __init__(
        self,
        classifier: UserAgentClassifier,
        trusted_ip_header: Optional[str] = "x-real-ip",
        geo_headers: Optional[dict] = None
    ):
        self.classifier = classifier
        self.trusted_ip_header = trusted_ip_header
        self.geo_headers = geo_headers or {}

    def extract(self, request: Request) -> AccessLogRecord:
        headers = request.headers
        user_agent = headers.get("user-agent", "")
        ua_info = self.classifier.classify(user_agent)
        link = getattr(request.state, "link", None)

        values = {
            "slug": getattr(link, "slug", None),
            "url": getattr(link, "url", None),
            "ua": user_agent or None,
            "ip": self.client_ip(request),
            "source": referer_host(headers.get("referer")),
            "language": preferred_language(headers.get("accept-language")),
            "os": ua_info.os,
            "browser": ua_info.browser,
            "browser_type": ua_info.browser_type,
            "device": ua_info.device,
            "device_type": ua_info.device_type,
        }

        for field, header in self.geo_headers.items():
            values[field] = headers.get(header) or None

        for parameter in UTM_PARAMETERS:
            values[parameter] = join_query_values(request.query_params.getlist(parameter))

        return AccessLogRecord(**values)

    def client_ip(self, request: Request) -> Optional[str]:
        """Trusted proxy header, then the first X-Forwarded-For hop, then the peer."""
        if self.trusted_ip_header:
            trusted = request.headers.get(self.trusted_ip_header)
            if trusted:
                return trusted.strip()

        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            first_hop = forwarded_for.split(",")[0].strip()
            if first_hop:
                return first_hop

        return request.client.host if request.client else None
