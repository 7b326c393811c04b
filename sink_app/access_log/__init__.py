"""
Access-log pipeline.

Request signals -> AccessLogRecord -> positional blobs for the analytics sink,
and back again for inspection.
"""

from .registry import LogField, LogFieldRegistry, DEFAULT_REGISTRY
from .record import AccessLogRecord
from .codec import AccessLogEncoder, AccessLogDecoder
from .extractor import AccessLogExtractor
from .user_agent import UserAgentClassifier, DetectorSet

__all__ = [
    "LogField",
    "LogFieldRegistry",
    "DEFAULT_REGISTRY",
    "AccessLogRecord",
    "AccessLogEncoder",
    "AccessLogDecoder",
    "AccessLogExtractor",
    "UserAgentClassifier",
    "DetectorSet",
]
