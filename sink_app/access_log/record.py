from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from sink_app.access_log.registry import LogField


class AccessLogRecord(BaseModel):
    """
    One access-log entry, built once per logged redirect.

    Every field is optional: missing request signals stay None.
    """

    slug: Optional[str] = Field(None, description="Slug of the visited link")
    url: Optional[str] = Field(None, description="Destination URL of the link")
    ua: Optional[str] = Field(None, description="Raw User-Agent header")
    ip: Optional[str] = Field(None, description="Client IP address")
    source: Optional[str] = Field(None, description="Referer host")
    country: Optional[str] = None
    region: Optional[str] = None
    city: Optional[str] = None
    timezone: Optional[str] = None
    language: Optional[str] = Field(None, description="Preferred Accept-Language tag")
    os: Optional[str] = None
    browser: Optional[str] = None
    browser_type: Optional[str] = None
    device: Optional[str] = None
    device_type: Optional[str] = None
    utm_source: Optional[str] = None
    utm_medium: Optional[str] = None
    utm_campaign: Optional[str] = None
    utm_term: Optional[str] = None
    utm_content: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    def get(self, field: LogField) -> Optional[str]:
        return getattr(self, LogField(field).value)
