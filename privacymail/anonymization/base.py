from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from privacymail.anonymization.models import AnonymizationResult, RestorationResult


class BaseAnonymizer(ABC):
    """Contract for reversible anonymizers."""

    @abstractmethod
    def anonymize(self, text: str, options: Any = None) -> AnonymizationResult:
        """Replace sensitive spans in *text* with placeholder tokens.

        Args:
            text: Free-form text, e.g. an outbound email body.
            options: AnonymizeOptions, a dict of its fields, a scope key
                     string or None.

        Returns:
            AnonymizationResult with the masked text and the
            placeholder -> original mapping. Never raises.
        """

    @abstractmethod
    def restore(self, text: str, mapping: Mapping[str, str]) -> RestorationResult:
        """Put original values back into text derived from a masked string.

        Returns:
            RestorationResult with the restored text and highlight ranges.
            Never raises.
        """
