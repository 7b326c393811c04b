"""
Stats query builder.

Translates stats queries into SQLAlchemy Core statements over the analytics
table. Everything caller-supplied (time bucket format, client timezone,
filter values) is a bound parameter, so the same statement runs on SQLite
and is shipped to ClickHouse as typed query parameters.

Visits are the sum of the sampling weight column, visitors the number of
distinct IP slot values.
"""

from datetime import datetime, timezone
from typing import List

from sqlalchemy import Table, bindparam, distinct, func, select
from sqlalchemy.sql import Select

from sink_app.access_log.registry import LogField, LogFieldRegistry
from sink_app.exceptions import UnsupportedTimeUnitError
from sink_app.schemas.stats import StatsFilter, StatsMetricsQuery, StatsViewsQuery, TimeUnit
from sink_app.storage.table import INDEX_COLUMN, SAMPLE_INTERVAL_COLUMN, TIMESTAMP_COLUMN

UNIT_FORMATS = {
    TimeUnit.HOUR: "%Y-%m-%d %H",
    TimeUnit.DAY: "%Y-%m-%d",
}


def unit_format(unit) -> str:
    """Bucket format for a time unit; units without one are rejected."""
    try:
        return UNIT_FORMATS[TimeUnit(unit)]
    except (ValueError, KeyError):
        raise UnsupportedTimeUnitError(unit)


def _from_unix(seconds: int) -> datetime:
    return datetime.fromtimestamp(seconds, tz=timezone.utc).replace(tzinfo=None)


class StatsQueryBuilder:
    """
    Build aggregation statements for the stats endpoints.

    Args:
        table: analytics table (see storage.table.build_access_log_table)
        registry: slot layout the table was built from
    """

    def __init__(self, table: Table, registry: LogFieldRegistry):
        self.table = table
        self.registry = registry

    def blob(self, field: LogField):
        return self.table.c[self.registry.slot_for(field)]

    @property
    def visits(self):
        return func.sum(self.table.c[SAMPLE_INTERVAL_COLUMN])

    @property
    def visitors(self):
        return func.count(distinct(self.blob(LogField.IP)))

    def where(self, filters: StatsFilter) -> List:
        clauses = []
        if filters.id is not None:
            clauses.append(self.table.c[INDEX_COLUMN] == filters.id)
        if filters.start_at is not None:
            clauses.append(self.table.c[TIMESTAMP_COLUMN] >= _from_unix(filters.start_at))
        if filters.end_at is not None:
            clauses.append(self.table.c[TIMESTAMP_COLUMN] <= _from_unix(filters.end_at))
        for field, value in filters.dimension_filters().items():
            clauses.append(self.blob(field) == value)
        return clauses

    def views(self, query: StatsViewsQuery) -> Select:
        """Visits and visitors per time bucket, oldest bucket first."""
        bucket = func.formatDateTime(
            self.table.c[TIMESTAMP_COLUMN],
            bindparam("unit_format", unit_format(query.unit)),
            bindparam("client_timezone", query.client_timezone),
        ).label("time")

        return (
            select(bucket, self.visits.label("visits"), self.visitors.label("visitors"))
            .select_from(self.table)
            .where(*self.where(query))
            .group_by(bucket)
            .order_by(bucket)
        )

    def counters(self, filters: StatsFilter) -> Select:
        """Totals: visits, visitors and distinct (non-empty) referer hosts."""
        return (
            select(
                self.visits.label("visits"),
                self.visitors.label("visitors"),
                func.count(distinct(func.nullif(self.blob(LogField.SOURCE), ""))).label("referers"),
            )
            .select_from(self.table)
            .where(*self.where(filters))
        )

    def metrics(self, query: StatsMetricsQuery) -> Select:
        """Top values of one dimension ranked by visits."""
        name = self.blob(query.type).label("name")
        count = self.visits.label("count")
        return (
            select(name, count)
            .select_from(self.table)
            .where(*self.where(query))
            .group_by(name)
            .order_by(count.desc())
            .limit(query.limit)
        )
