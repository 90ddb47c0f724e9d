import re
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field

from privacymail.anonymization.models import AnonymizeOptions
from privacymail.anonymization.placeholders import PLACEHOLDER_RE, looks_like_placeholder_value
from privacymail.anonymization.registry import PlaceholderRegistry


def _overlaps(match: re.Match[str], spans: list[tuple[int, int]]) -> bool:
    start, end = match.span()
    return any(s_start < end and start < s_end for s_start, s_end in spans)


@dataclass(frozen=True)
class DerivedHint:
    """Value inferred from context, masked wherever it occurs literally."""

    entity_type: str
    value: str


@dataclass(slots=True)
class PipelineContext:
    text: str
    options: AnonymizeOptions
    registry: PlaceholderRegistry
    now: float
    derived_hints: dict[str, DerivedHint] = field(default_factory=dict)

    def substitute(
        self,
        pattern: re.Pattern[str],
        replacement: Callable[[re.Match[str]], str],
        skip_masked: bool = True,
    ) -> None:
        """Rewrite the buffer with *pattern*, then apply placeholder upgrades.

        With *skip_masked*, matches that overlap an existing placeholder are
        left alone.
        """
        masked = self._masked_spans() if skip_masked else []

        def guarded(match: re.Match[str]) -> str:
            if _overlaps(match, masked):
                return match.group(0)
            return replacement(match)

        self.text = self.registry.rewrite(pattern.sub(guarded, self.text))

    def find_unmasked(self, pattern: re.Pattern[str]) -> re.Match[str] | None:
        """First match of *pattern* that does not touch an existing placeholder."""
        masked = self._masked_spans()
        for match in pattern.finditer(self.text):
            if not _overlaps(match, masked):
                return match
        return None

    def _masked_spans(self) -> list[tuple[int, int]]:
        return [m.span() for m in PLACEHOLDER_RE.finditer(self.text)]

    def add_derived_hint(self, entity_type: str, raw_value: str) -> None:
        value = raw_value.strip() if raw_value else ""
        if not value or looks_like_placeholder_value(value):
            return
        key = f"{entity_type}:{value.lower()}"
        if key not in self.derived_hints:
            self.derived_hints[key] = DerivedHint(entity_type, value)


class PipelineStep(ABC):
    @abstractmethod
    def run(self, context: PipelineContext) -> PipelineContext:
        raise NotImplementedError
