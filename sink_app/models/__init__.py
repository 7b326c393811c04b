"""
Database models for Sink.

Note: Access logs are stored in the analytics storage (positional blobs),
not in SQLAlchemy models.
"""

from .link import Link

__all__ = ["Link"]
