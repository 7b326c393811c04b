from typing import Annotated, List

from fastapi import APIRouter, Depends, Query

from sink_app.dependencies import get_stats_service, verify_site_token
from sink_app.schemas.stats import (
    Counters,
    MetricsResponse,
    StatsFilter,
    StatsMetricsQuery,
    StatsViewsQuery,
    ViewsRow,
)
from sink_app.services.stats_service import StatsService

router = APIRouter(prefix="/stats", tags=["stats"], dependencies=[Depends(verify_site_token)])


@router.get("/views", response_model=List[ViewsRow])
async def get_views(
    query: Annotated[StatsViewsQuery, Query()],
    stats_service: StatsService = Depends(get_stats_service)
):
    """Visits and visitors per hour or day, in the client's timezone"""
    return await stats_service.views(query)


@router.get("/counters", response_model=Counters)
async def get_counters(
    filters: Annotated[StatsFilter, Query()],
    stats_service: StatsService = Depends(get_stats_service)
):
    return await stats_service.counters(filters)


@router.get("/metrics", response_model=MetricsResponse)
async def get_metrics(
    query: Annotated[StatsMetricsQuery, Query()],
    stats_service: StatsService = Depends(get_stats_service)
):
    """Top values of one access-log dimension"""
    return await stats_service.metrics(query)
