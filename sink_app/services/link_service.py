import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from sink_app.cache.strategies import CacheStrategy
from sink_app.config import settings
from sink_app.exceptions import (
    LinkConflictError,
    LinkIdConflictError,
    LinkNotFoundError,
    SlugConflictError,
)
from sink_app.models.link import Link
from sink_app.schemas.link import LinkCreate, LinkResponse, LinkUpdate, normalize_slug, unix_now
from sink_app.services.slug_generator import RandomSlugGenerator

logger = logging.getLogger(__name__)


def cache_key(slug: str) -> str:
    return f"link:{slug}"


class LinkService:
    """
    Link CRUD with a cache-aside redirect lookup.

    The database is the source of truth; the cache holds serialized
    LinkResponse records by slug and is invalidated on edit and delete.
    """

    def __init__(
        self,
        db: Session,
        cache: Optional[CacheStrategy] = None,
        slug_generator: Optional[RandomSlugGenerator] = None
    ):
        self.db = db
        self.cache = cache
        self.slug_generator = slug_generator or RandomSlugGenerator(
            length=settings.slug_default_length,
            max_retries=settings.max_retries,
        )

    def _find(self, slug: str) -> Optional[Link]:
        return self.db.query(Link).filter(Link.slug == normalize_slug(slug)).first()

    def _slug_exists(self, slug: str) -> bool:
        return self._find(slug) is not None

    async def create_link(self, data: LinkCreate) -> Link:
        """
        Store a new link.

        Raises:
            LinkIdConflictError: if the requested id is taken
            SlugConflictError: if the requested slug is taken
            LinkConflictError: if a concurrent create won the same id or slug
        """
        if self.db.get(Link, data.id) is not None:
            raise LinkIdConflictError(data.id)

        slug = data.slug
        if slug is None:
            slug = self.slug_generator.generate_unique(self._slug_exists)
        elif self._slug_exists(slug):
            raise SlugConflictError(slug)

        link = Link(
            id=data.id,
            slug=slug,
            url=data.url,
            created_at=data.created_at,
            updated_at=data.updated_at,
            expiration=data.expiration,
            title=data.title,
            description=data.description,
            image=data.image,
            comment=data.comment,
        )
        self.db.add(link)
        try:
            self.db.commit()
        except IntegrityError as e:
            # Another request stored the same id or slug after the checks above
            self.db.rollback()
            raise LinkConflictError(f"Link '{slug}' conflicts with an existing link") from e
        self.db.refresh(link)

        logger.info("Created link %s -> %s", link.slug, link.url)
        return link

    async def get_link(self, slug: str) -> Link:
        link = self._find(slug)
        if link is None:
            raise LinkNotFoundError(slug)
        return link

    async def list_links(self, limit: int = 20, offset: int = 0) -> List[Link]:
        return (
            self.db.query(Link)
            .order_by(Link.created_at.desc(), Link.slug)
            .offset(offset)
            .limit(limit)
            .all()
        )

    async def update_link(self, slug: str, data: LinkUpdate) -> Link:
        """Replace the editable fields; id, slug and createdAt are kept."""
        link = await self.get_link(slug)

        for field in ("url", "expiration", "title", "description", "image", "comment"):
            setattr(link, field, getattr(data, field))
        link.updated_at = max(unix_now(), link.created_at)

        self.db.commit()
        self.db.refresh(link)
        await self._invalidate(link.slug)
        return link

    async def delete_link(self, slug: str) -> None:
        link = await self.get_link(slug)
        self.db.delete(link)
        self.db.commit()
        await self._invalidate(link.slug)

    async def get_link_for_redirect(self, slug: str) -> Optional[LinkResponse]:
        """
        Resolve a slug for redirection (cache first, then database).

        Expired links resolve to None.
        """
        slug = normalize_slug(slug)
        now = unix_now()

        if self.cache:
            cached = await self.cache.get(cache_key(slug))
            if cached:
                link = LinkResponse.model_validate_json(cached)
                return None if self._expired(link.expiration, now) else link

        record = self._find(slug)
        if record is None:
            return None

        link = LinkResponse.model_validate(record)
        if self._expired(link.expiration, now):
            return None

        if self.cache:
            ttl = settings.cache_ttl
            if link.expiration is not None:
                ttl = max(1, min(ttl, link.expiration - now))
            await self.cache.set(cache_key(slug), link.model_dump_json(), ttl=ttl)

        return link

    @staticmethod
    def _expired(expiration: Optional[int], now: int) -> bool:
        return expiration is not None and expiration < now

    async def _invalidate(self, slug: str) -> None:
        if self.cache:
            await self.cache.delete(cache_key(slug))
