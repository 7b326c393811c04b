from enum import Enum
from typing import Dict, List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from sink_app.access_log.registry import LogField


class TimeUnit(str, Enum):
    """Time buckets for the views series. Minute buckets are not offered."""
    HOUR = "hour"
    DAY = "day"


# Dimension filters, keyed by the LogField they compare against
FILTER_FIELDS = [
    LogField.SLUG, LogField.URL, LogField.SOURCE, LogField.COUNTRY, LogField.REGION,
    LogField.CITY, LogField.TIMEZONE, LogField.LANGUAGE, LogField.OS, LogField.BROWSER,
    LogField.BROWSER_TYPE, LogField.DEVICE, LogField.DEVICE_TYPE, LogField.UTM_SOURCE,
    LogField.UTM_MEDIUM, LogField.UTM_CAMPAIGN, LogField.UTM_TERM, LogField.UTM_CONTENT,
]


class StatsFilter(BaseModel):
    """Filters shared by every stats endpoint. All values are bound, never interpolated."""

    id: Optional[str] = Field(None, max_length=26, description="Link id (index dimension)")
    start_at: Optional[int] = Field(None, description="Unix seconds, inclusive")
    end_at: Optional[int] = Field(None, description="Unix seconds, inclusive")

    slug: Optional[str] = None
    url: Optional[str] = None
    source: Optional[str] = None
    country: Optional[str] = None
    region: Optional[str] = None
    city: Optional[str] = None
    timezone: Optional[str] = None
    language: Optional[str] = None
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

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    def dimension_filters(self) -> Dict[LogField, str]:
        filters = {}
        for field in FILTER_FIELDS:
            value = getattr(self, field.value)
            if value is not None:
                filters[field] = value
        return filters


class StatsViewsQuery(StatsFilter):
    unit: TimeUnit
    client_timezone: str = "Etc/UTC"

    @field_validator("client_timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown IANA timezone: {value}")
        return value


class StatsMetricsQuery(StatsFilter):
    type: LogField = Field(..., description="Dimension to rank")
    limit: int = Field(10, ge=1, le=500)


class ViewsRow(BaseModel):
    time: str
    visits: int
    visitors: int


class Counters(BaseModel):
    visits: int = 0
    visitors: int = 0
    referers: int = 0


class MetricRow(BaseModel):
    name: Optional[str]
    count: int


class MetricsResponse(BaseModel):
    type: LogField
    data: List[MetricRow]
