"""Reversible PII masking for mail text sent to remote models."""

import threading
from collections.abc import Mapping
from typing import Any

from privacymail.anonymization.anonymizer import Anonymizer
from privacymail.anonymization.factory import AnonymizerFactory
from privacymail.anonymization.models import (
    AnonymizationResult,
    AnonymizeOptions,
    Highlight,
    RestorationResult,
)
from privacymail.config.settings import Settings

__all__ = [
    "AnonymizationResult",
    "AnonymizeOptions",
    "Anonymizer",
    "AnonymizerFactory",
    "Highlight",
    "RestorationResult",
    "anonymize",
    "clear_memory",
    "get_default_anonymizer",
    "restore",
]

_default_anonymizer: Anonymizer | None = None
_default_lock = threading.Lock()


def get_default_anonymizer() -> Anonymizer:
    """Shared anonymizer built from environment settings on first use."""
    global _default_anonymizer
    with _default_lock:
        if _default_anonymizer is None:
            _default_anonymizer = AnonymizerFactory.create(Settings())
        return _default_anonymizer


def anonymize(text: str, options: Any = None) -> AnonymizationResult:
    return get_default_anonymizer().anonymize(text, options)


def restore(text: str, mapping: Mapping[str, str]) -> RestorationResult:
    return get_default_anonymizer().restore(text, mapping)


def clear_memory(scope_key: str | None = None) -> None:
    get_default_anonymizer().clear_memory(scope_key)
