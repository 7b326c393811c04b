from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
from fastapi.responses import RedirectResponse

from sink_app.access_log.extractor import AccessLogExtractor
from sink_app.config import settings
from sink_app.dependencies import get_access_log_service, get_extractor, get_link_service
from sink_app.services.access_log_service import AccessLogService
from sink_app.services.link_service import LinkService

router = APIRouter(tags=["redirect"])


@router.get("/{slug}")
async def redirect_to_url(
    slug: str,
    request: Request,
    background_tasks: BackgroundTasks,
    link_service: LinkService = Depends(get_link_service),
    extractor: AccessLogExtractor = Depends(get_extractor),
    access_log_service: AccessLogService = Depends(get_access_log_service)
):
    """
    Redirect to the link's URL.

    Flow:
    1. Resolve the slug (cache first, then database)
    2. Build the access-log record from the request signals
    3. Redirect; the analytics write runs after the response is sent
    """
    link = await link_service.get_link_for_redirect(slug)
    if link is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Link not found or expired"
        )

    request.state.link = link
    record = extractor.extract(request)
    background_tasks.add_task(access_log_service.write, link.id, record)

    return RedirectResponse(url=link.url, status_code=settings.redirect_status_code)
