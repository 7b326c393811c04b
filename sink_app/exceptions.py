"""
Custom exceptions for the Sink service.

Services raise these; the API layer turns them into HTTP responses.
"""


class SinkError(Exception):
    """Base exception for the Sink service."""
    pass


class LinkConflictError(SinkError):
    """Raised when a new link collides with a stored one."""
    pass


class SlugConflictError(LinkConflictError):
    """Raised when a link is created with a slug that already exists."""

    def __init__(self, slug: str):
        self.slug = slug
        super().__init__(f"Slug '{slug}' already exists")


class LinkIdConflictError(LinkConflictError):
    """Raised when a link is created with an id that already exists."""

    def __init__(self, link_id: str):
        self.link_id = link_id
        super().__init__(f"Link id '{link_id}' already exists")


class LinkNotFoundError(SinkError):
    """Raised when no link matches the requested slug."""

    def __init__(self, slug: str):
        self.slug = slug
        super().__init__(f"Link '{slug}' not found")


class SlugGenerationError(SinkError):
    """Raised when no free slug could be generated."""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"Could not generate unique slug after {attempts} attempts")


class InvalidRegistryError(SinkError, ValueError):
    """Raised when a log field registry is not a slot/field bijection."""
    pass


class UnsupportedTimeUnitError(SinkError, ValueError):
    """Raised when stats are requested for a time unit without a bucket format."""

    def __init__(self, unit):
        self.unit = unit
        super().__init__(f"Unsupported time unit: {unit!r}")


class AnalyticsStorageError(SinkError):
    """Raised when the analytics backend rejects a write or a query."""

    def __init__(self, message: str, original_error: Exception = None):
        self.original_error = original_error
        super().__init__(f"Analytics storage error: {message}")
