from dataclasses import dataclass, field
from typing import Any

from privacymail.anonymization.placeholders import extract_type

DEFAULT_SCOPE = "__default__"


@dataclass(frozen=True)
class AnonymizeOptions:
    """Per-call switches for memory-backed masking."""

    scope_key: str = DEFAULT_SCOPE
    use_memory: bool = True
    remember: bool = True

    @property
    def should_remember(self) -> bool:
        return self.use_memory and self.remember

    @classmethod
    def from_raw(cls, raw: Any) -> "AnonymizeOptions":
        """Normalize loosely typed caller options.

        Accepts an AnonymizeOptions, a mapping with any of the field names,
        a bare string (taken as the scope key) or None. Anything else falls
        back to the defaults.
        """
        if isinstance(raw, cls):
            return raw
        if isinstance(raw, str):
            return cls(scope_key=raw or DEFAULT_SCOPE)
        if not isinstance(raw, dict):
            return cls()
        scope_key = raw.get("scope_key")
        use_memory = raw.get("use_memory")
        remember = raw.get("remember")
        return cls(
            scope_key=scope_key if isinstance(scope_key, str) and scope_key else DEFAULT_SCOPE,
            use_memory=use_memory if isinstance(use_memory, bool) else True,
            remember=remember if isinstance(remember, bool) else True,
        )


@dataclass
class Entry:
    """In-flight record for one distinct value within a single call."""

    combined: str
    parts: list[str]
    types: set[str]
    value: str


@dataclass(frozen=True)
class MemorySnapshot:
    """Copy of an Entry handed to the memory store."""

    value: str
    placeholder: str
    parts: tuple[str, ...]
    types: frozenset[str]


@dataclass
class MemoryRecord:
    """Remembered person name for one scope."""

    value: str
    placeholder: str
    parts: list[str]
    types: set[str]
    updated_at: float


@dataclass(frozen=True)
class Artifact:
    """Single PII replacement record."""

    type: str  # e.g. "PERSON", "EMAIL", "PERSON|ORG"
    original: str  # original PII text
    replacement: str  # placeholder used in masked text, e.g. "{{PERSON_1}}"


@dataclass
class AnonymizationResult:
    """Output of one anonymize call."""

    masked_text: str
    mapping: dict[str, str] = field(default_factory=dict)

    @property
    def artifacts(self) -> list[Artifact]:
        return [
            Artifact(type=extract_type(placeholder), original=value, replacement=placeholder)
            for placeholder, value in self.mapping.items()
        ]


@dataclass(frozen=True)
class Highlight:
    """Restored span in the output text, [start, end)."""

    start: int
    end: int
    placeholder: str
    original: str


@dataclass
class RestorationResult:
    """Output of one restore call."""

    restored_text: str
    highlights: list[Highlight] = field(default_factory=list)
