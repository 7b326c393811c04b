from typing import List

from sink_app.schemas.stats import (
    Counters,
    MetricRow,
    MetricsResponse,
    StatsFilter,
    StatsMetricsQuery,
    StatsViewsQuery,
    ViewsRow,
)
from sink_app.services.query_builder import StatsQueryBuilder
from sink_app.storage.strategies import AnalyticsStorageStrategy


class StatsService:
    """
    Run stats queries against the analytics storage.

    The builder produces the statement; the storage executes it.
    """

    def __init__(self, storage: AnalyticsStorageStrategy, builder: StatsQueryBuilder):
        self.storage = storage
        self.builder = builder

    async def views(self, query: StatsViewsQuery) -> List[ViewsRow]:
        rows = await self.storage.query(self.builder.views(query))
        return [
            ViewsRow(time=row["time"], visits=row["visits"] or 0, visitors=row["visitors"] or 0)
            for row in rows
        ]

    async def counters(self, filters: StatsFilter) -> Counters:
        rows = await self.storage.query(self.builder.counters(filters))
        if not rows:
            return Counters()
        row = rows[0]
        return Counters(
            visits=row["visits"] or 0,
            visitors=row["visitors"] or 0,
            referers=row["referers"] or 0,
        )

    async def metrics(self, query: StatsMetricsQuery) -> MetricsResponse:
        rows = await self.storage.query(self.builder.metrics(query))
        return MetricsResponse(
            type=query.type,
            data=[MetricRow(name=row["name"] or None, count=row["count"] or 0) for row in rows],
        )
