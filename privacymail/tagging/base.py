from abc import ABC, abstractmethod

from privacymail.tagging.models import TaggedEntities


class BaseEntityTagger(ABC):
    """Contract for all entity tagging adapters."""

    @abstractmethod
    def tag(self, text: str) -> TaggedEntities:
        """Find candidate person, location and organization names in *text*.

        Args:
            text: Partially masked text; placeholders may already be present.

        Returns:
            TaggedEntities with best-effort candidate strings. Duplicates are
            allowed and order carries no meaning.

        Raises:
            TaggingError: on any failure.
        """
