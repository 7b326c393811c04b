"""
Random identifiers for links: the record id and the default slug.
"""

import secrets
import string
from typing import Callable

from sink_app.exceptions import SlugGenerationError

ID_ALPHABET = string.ascii_letters + string.digits + "_-"
SLUG_ALPHABET = string.ascii_lowercase + string.digits


def generate_id(size: int = 10) -> str:
    """nanoid-style record id."""
    return "".join(secrets.choice(ID_ALPHABET) for _ in range(size))


class RandomSlugGenerator:
    """
    Random slug generation with collision checking.

    Lowercase letters and digits only, so generated slugs always match the
    default slug pattern and survive case-insensitive lookups.
    """

    def __init__(self, length: int = 6, max_retries: int = 5):
        self.length = length
        self.max_retries = max_retries

    def generate(self) -> str:
        return "".join(secrets.choice(SLUG_ALPHABET) for _ in range(self.length))

    def generate_unique(self, exists: Callable[[str], bool]) -> str:
        """Generate a slug for which ``exists`` returns False."""
        for _ in range(self.max_retries):
            slug = self.generate()
            if not exists(slug):
                return slug
        raise SlugGenerationError(self.max_retries)
