"""
Analytics table layout.

Mirrors the analytics-engine data point shape: one index column, the write
timestamp, a sampling weight, and one string column per registry slot.
"""

from sqlalchemy import Column, DateTime, Integer, MetaData, String, Table

from sink_app.access_log.registry import LogFieldRegistry

INDEX_COLUMN = "index1"
TIMESTAMP_COLUMN = "timestamp"
SAMPLE_INTERVAL_COLUMN = "_sample_interval"


def build_access_log_table(name: str, registry: LogFieldRegistry, schema: str = None) -> Table:
    """Build the analytics Table with one blob column per registry slot."""
    return Table(
        name,
        MetaData(),
        Column(INDEX_COLUMN, String, nullable=False, index=True),
        Column(TIMESTAMP_COLUMN, DateTime, nullable=False, index=True),
        Column(SAMPLE_INTERVAL_COLUMN, Integer, nullable=False, default=1),
        *[Column(slot, String, nullable=False, default="") for slot in registry.slots],
        schema=schema,
    )
