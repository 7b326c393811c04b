"""
Positional codec for access-log records.

encode: AccessLogRecord -> list of strings, one per registry slot
decode: list of strings -> AccessLogRecord

The encoder always emits ``len(registry)`` strings. The decoder accepts any
prefix (older, narrower records): slots past the end of the input decode
to None. Slots beyond the registry (records written by a newer, wider
schema) are ignored.
"""

from typing import List, Sequence

from sink_app.access_log.record import AccessLogRecord
from sink_app.access_log.registry import LogFieldRegistry


class AccessLogEncoder:
    """Turn a record into the positional blob list for the analytics sink."""

    def __init__(self, registry: LogFieldRegistry):
        self.registry = registry

    def encode(self, record: AccessLogRecord) -> List[str]:
        return [record.get(field) or "" for field in self.registry.fields]


class AccessLogDecoder:
    """Rebuild a record from a positional blob list."""

    def __init__(self, registry: LogFieldRegistry):
        self.registry = registry

    def decode(self, blobs: Sequence[str]) -> AccessLogRecord:
        # An empty blob is how the encoder writes a missing value
        values = {
            field.value: blob or None
            for field, blob in zip(self.registry.fields, blobs)
        }
        return AccessLogRecord(**values)
