"""
Analytics storage strategies using Strategy Pattern.

An analytics storage accepts positional access-log data points
(one index value + one string per slot) and runs the aggregation
statements produced by the stats query builder:

- SQLite: development/testing, no external services
- ClickHouse: production columnar store over its HTTP interface
"""

import json
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import requests
from fastapi.concurrency import run_in_threadpool
from sqlalchemy import create_engine, event
from sqlalchemy.engine import default
from sqlalchemy.pool import StaticPool
from sqlalchemy.sql import Select

from sink_app.access_log.registry import LogFieldRegistry
from sink_app.exceptions import AnalyticsStorageError
from sink_app.storage.table import (
    INDEX_COLUMN,
    SAMPLE_INTERVAL_COLUMN,
    TIMESTAMP_COLUMN,
    build_access_log_table,
)

logger = logging.getLogger(__name__)

CLICKHOUSE_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class AnalyticsStorageStrategy(ABC):
    """
    Abstract base class for analytics storage strategies.

    Writes are positional: ``blobs`` must follow the slot order of the
    registry the storage was built with.
    """

    def __init__(self, registry: LogFieldRegistry, table_name: str, schema: str = None):
        self.registry = registry
        self.table = build_access_log_table(table_name, registry, schema=schema)

    async def put(self, index: str, blobs: List[str], timestamp: Optional[datetime] = None) -> None:
        """
        Store one data point.

        The backend call runs in the threadpool so a slow store never
        holds up the event loop.

        Args:
            index: the single index dimension (link id)
            blobs: one string per registry slot, in slot order
            timestamp: naive UTC write time (defaults to now)

        Raises:
            AnalyticsStorageError: if the backend rejects the write
        """
        row = self._row(index, blobs, timestamp)
        await run_in_threadpool(self._insert, row)

    async def query(self, statement: Select) -> List[Dict]:
        """Run an aggregation statement and return its rows as dicts."""
        return await run_in_threadpool(self._select, statement)

    @abstractmethod
    def _insert(self, row: Dict) -> None:
        """Blocking insert of one prepared row."""
        pass

    @abstractmethod
    def _select(self, statement: Select) -> List[Dict]:
        """Blocking execution of an aggregation statement."""
        pass

    def _row(self, index: str, blobs: List[str], timestamp: Optional[datetime]) -> Dict:
        if len(blobs) != len(self.registry):
            raise AnalyticsStorageError(
                f"expected {len(self.registry)} blobs, got {len(blobs)}"
            )
        row = {
            INDEX_COLUMN: index,
            TIMESTAMP_COLUMN: timestamp or _utcnow(),
            SAMPLE_INTERVAL_COLUMN: 1,
        }
        row.update(zip(self.registry.slots, blobs))
        return row


def format_datetime(value, fmt, tz_name):
    """
    SQLite stand-in for the analytics engine's formatDateTime(ts, fmt, tz).

    ``value`` is the stored naive UTC timestamp text.
    """
    if value is None or fmt is None:
        return None
    try:
        zone = ZoneInfo(tz_name or "UTC")
    except (ZoneInfoNotFoundError, ValueError):
        return None
    moment = datetime.fromisoformat(value).replace(tzinfo=timezone.utc)
    return moment.astimezone(zone).strftime(fmt)


class SQLiteAnalyticsStorage(AnalyticsStorageStrategy):
    """
    SQLite implementation of analytics storage.

    Pros:
    - Zero configuration (no external services)
    - Runs the same SQLAlchemy statements as production

    Cons:
    - Not optimized for analytics queries
    - No sampling (every row has a weight of 1)
    """

    def __init__(
        self,
        registry: LogFieldRegistry,
        database_url: str = "sqlite:///./analytics.db",
        table_name: str = "sink"
    ):
        super().__init__(registry, table_name)
        self.database_url = database_url

        engine_options = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection, otherwise every checkout sees an empty database
            engine_options["poolclass"] = StaticPool
        self.engine = create_engine(database_url, **engine_options)

        event.listen(self.engine, "connect", self._register_functions)
        self.table.metadata.create_all(self.engine)
        logger.info("SQLite analytics storage initialized (%s)", database_url)

    @staticmethod
    def _register_functions(dbapi_connection, connection_record):
        dbapi_connection.create_function("formatDateTime", 3, format_datetime)

    def _insert(self, row: Dict) -> None:
        try:
            with self.engine.begin() as conn:
                conn.execute(self.table.insert(), row)
        except Exception as e:
            raise AnalyticsStorageError("SQLite insert failed", e) from e

    def _select(self, statement: Select) -> List[Dict]:
        with self.engine.connect() as conn:
            result = conn.execute(statement)
            return [dict(row) for row in result.mappings()]


def _clickhouse_type(value) -> str:
    if isinstance(value, bool):
        return "Bool"
    if isinstance(value, int):
        return "Int64"
    if isinstance(value, datetime):
        return "DateTime"
    return "String"


def _clickhouse_value(value) -> str:
    if isinstance(value, datetime):
        return value.strftime(CLICKHOUSE_TIME_FORMAT)
    return str(value)


_CLICKHOUSE_DIALECT = default.DefaultDialect(paramstyle="pyformat")


def compile_clickhouse_query(statement: Select) -> Tuple[str, Dict[str, str]]:
    """
    Compile a statement into ClickHouse SQL with typed query parameters.

    Bind parameters become ``{name:Type}`` placeholders and their values are
    sent separately as ``param_<name>``, so nothing is interpolated into SQL.
    """
    compiled = statement.compile(dialect=_CLICKHOUSE_DIALECT)
    placeholders = {}
    params = {}
    for name, value in compiled.params.items():
        placeholders[name] = "{%s:%s}" % (name, _clickhouse_type(value))
        params[f"param_{name}"] = _clickhouse_value(value)
    return compiled.string % placeholders, params


class ClickHouseAnalyticsStorage(AnalyticsStorageStrategy):
    """
    ClickHouse implementation for production analytics.

    Table design:
    - MergeTree engine, partitioned by month
    - Ordered by (index1, timestamp) so per-link scans stay local
    """

    def __init__(
        self,
        registry: LogFieldRegistry,
        url: str = "http://localhost:8123",
        database: str = "sink",
        table_name: str = "sink",
        timeout: float = 5.0
    ):
        super().__init__(registry, table_name, schema=database)
        self.url = url
        self.database = database
        self.table_name = table_name
        self.timeout = timeout
        self._initialized = False
        try:
            self._init_database()
        except AnalyticsStorageError as e:
            # The server may come up after the app; the next write or query tries again
            logger.warning("ClickHouse initialization failed: %s", e)

    @property
    def qualified_name(self) -> str:
        return f"{self.database}.{self.table_name}"

    def _init_database(self):
        """Create database and table if they don't exist."""
        blob_columns = ",\n".join(f"    {slot} String" for slot in self.registry.slots)
        self._post(f"CREATE DATABASE IF NOT EXISTS {self.database}")
        self._post(f"""
            CREATE TABLE IF NOT EXISTS {self.qualified_name} (
                {INDEX_COLUMN} String,
                {TIMESTAMP_COLUMN} DateTime,
                {SAMPLE_INTERVAL_COLUMN} UInt32 DEFAULT 1,
            {blob_columns}
            )
            ENGINE = MergeTree()
            PARTITION BY toYYYYMM({TIMESTAMP_COLUMN})
            ORDER BY ({INDEX_COLUMN}, {TIMESTAMP_COLUMN})
        """)
        self._initialized = True
        logger.info("ClickHouse analytics storage initialized (%s)", self.qualified_name)

    def _ensure_initialized(self):
        if not self._initialized:
            self._init_database()

    def _post(self, sql: str, params: Dict[str, str] = None) -> requests.Response:
        try:
            response = requests.post(self.url, params=params, data=sql.encode("utf-8"), timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            raise AnalyticsStorageError(str(e), e) from e
        return response

    def _insert(self, row: Dict) -> None:
        self._ensure_initialized()
        row[TIMESTAMP_COLUMN] = row[TIMESTAMP_COLUMN].strftime(CLICKHOUSE_TIME_FORMAT)
        self._post(
            json.dumps(row),
            params={"query": f"INSERT INTO {self.qualified_name} FORMAT JSONEachRow"},
        )

    def _select(self, statement: Select) -> List[Dict]:
        self._ensure_initialized()
        sql, params = compile_clickhouse_query(statement)
        params["output_format_json_quote_64bit_integers"] = "0"
        response = self._post(f"{sql}\nFORMAT JSON", params=params)
        return response.json().get("data", [])
