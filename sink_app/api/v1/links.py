from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status

from sink_app.config import settings
from sink_app.dependencies import get_link_service, verify_site_token
from sink_app.exceptions import LinkConflictError, LinkNotFoundError, SlugGenerationError
from sink_app.schemas.link import LinkCreate, LinkResponse, LinkUpdate
from sink_app.services.link_service import LinkService

router = APIRouter(prefix="/links", tags=["links"], dependencies=[Depends(verify_site_token)])


def _not_found(error: LinkNotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(error))


@router.post("/", response_model=LinkResponse, status_code=status.HTTP_201_CREATED)
async def create_link(
    link_data: LinkCreate,
    link_service: LinkService = Depends(get_link_service)
):
    """Create a short link (slug and id are generated when omitted; 409 on a taken id or slug)"""
    try:
        return await link_service.create_link(link_data)
    except LinkConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except SlugGenerationError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))


@router.get("/", response_model=List[LinkResponse])
async def list_links(
    limit: int = Query(20, ge=1, le=settings.list_limit),
    offset: int = Query(0, ge=0),
    link_service: LinkService = Depends(get_link_service)
):
    """List links, newest first"""
    return await link_service.list_links(limit=limit, offset=offset)


@router.get("/{slug}", response_model=LinkResponse)
async def get_link(
    slug: str,
    link_service: LinkService = Depends(get_link_service)
):
    try:
        return await link_service.get_link(slug)
    except LinkNotFoundError as e:
        raise _not_found(e)


@router.put("/{slug}", response_model=LinkResponse)
async def update_link(
    slug: str,
    link_data: LinkUpdate,
    link_service: LinkService = Depends(get_link_service)
):
    """Edit a link; id, slug and createdAt are preserved"""
    try:
        return await link_service.update_link(slug, link_data)
    except LinkNotFoundError as e:
        raise _not_found(e)


@router.delete("/{slug}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_link(
    slug: str,
    link_service: LinkService = Depends(get_link_service)
):
    try:
        await link_service.delete_link(slug)
    except LinkNotFoundError as e:
        raise _not_found(e)
