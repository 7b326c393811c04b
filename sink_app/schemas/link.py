import re
import time
from typing import Annotated, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    TypeAdapter,
    computed_field,
    field_validator,
)
from pydantic.alias_generators import to_camel

from sink_app.config import settings
from sink_app.services.slug_generator import generate_id

MAX_LENGTH = 2048
MAX_SAFE_INTEGER = 2 ** 53 - 1

_http_url = TypeAdapter(HttpUrl)

LongText = Annotated[str, Field(max_length=MAX_LENGTH)]
SafeInt = Annotated[int, Field(ge=-MAX_SAFE_INTEGER, le=MAX_SAFE_INTEGER, strict=True)]


def unix_now() -> int:
    return int(time.time())


def check_url(value: Optional[str]) -> Optional[str]:
    """Reject anything that is not an absolute http(s) URL; keep the text as given."""
    if value is not None:
        _http_url.validate_python(value)
    return value


def normalize_slug(slug: str) -> str:
    return slug if settings.case_sensitive else slug.lower()


class LinkBase(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class LinkFields(LinkBase):
    """Editable fields of a link."""

    url: LongText = Field(..., description="Destination URL")
    expiration: Optional[SafeInt] = Field(None, description="Unix seconds after which the link stops redirecting")
    title: Optional[LongText] = None
    description: Optional[LongText] = None
    image: Optional[LongText] = None
    comment: Optional[LongText] = None

    @field_validator("url", "image")
    @classmethod
    def validate_url(cls, value: Optional[str]) -> Optional[str]:
        return check_url(value)


class LinkCreate(LinkFields):
    """
    Link creation payload.

    ``id`` and the timestamps get defaults; a missing ``slug`` is generated
    by the service so it can be checked for collisions.
    """

    id: Annotated[str, Field(max_length=26)] = Field(default_factory=generate_id)
    slug: Optional[LongText] = None
    created_at: SafeInt = Field(default_factory=unix_now)
    updated_at: SafeInt = Field(default_factory=unix_now)

    @field_validator("slug")
    @classmethod
    def validate_slug(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        if not re.match(settings.slug_regex, value):
            raise ValueError(f"Slug must match {settings.slug_regex}")
        return normalize_slug(value)


class LinkUpdate(LinkFields):
    """Link edit payload. ``id``, ``slug`` and ``createdAt`` never change."""
    pass


class LinkResponse(LinkBase):
    """Response schema built from the SQLAlchemy Link model."""

    id: str
    slug: str
    url: str
    created_at: int
    updated_at: int
    expiration: Optional[int] = None
    title: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    comment: Optional[str] = None

    @computed_field(alias="shortLink")
    @property
    def short_link(self) -> str:
        return f"{settings.base_url}/{self.slug}"

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )
