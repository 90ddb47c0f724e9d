"""Tagger that finds nothing.

Used when open-class tagging is disabled; masking then relies on the
contextual and regex passes only.
"""

from privacymail.tagging.base import BaseEntityTagger
from privacymail.tagging.models import TaggedEntities


class NullTagger(BaseEntityTagger):
    """Adapter that always returns an empty result."""

    def tag(self, text: str) -> TaggedEntities:
        _ = text
        return TaggedEntities()
