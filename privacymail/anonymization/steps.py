import re

from privacymail.anonymization.hints import ContextualNameHinter
from privacymail.anonymization.memory import MemoryStore
from privacymail.anonymization.pipeline import PipelineContext, PipelineStep
from privacymail.anonymization.placeholders import (
    build_replacement_regex,
    contains_placeholder,
    looks_like_placeholder_value,
)
from privacymail.anonymization.rules import RuleEngine
from privacymail.logging.logger import Log
from privacymail.tagging.base import BaseEntityTagger
from privacymail.tagging.exceptions import TaggingError
from privacymail.tagging.models import TaggedEntities


def _mask_everywhere(
    context: PipelineContext,
    entity_type: str,
    value: str,
    pattern: re.Pattern[str],
) -> bool:
    """Register *value* and replace every *pattern* match with its placeholder.

    The literal text of the first match is what gets registered, so a hint
    spelled differently from the buffer still restores to the original.
    Values that are neither present in the buffer nor already registered are
    skipped so the mapping only lists what was actually masked.
    """
    match = context.find_unmasked(pattern)
    if match is None and not context.registry.knows(value):
        return False
    literal = match.group(0) if match is not None else value
    placeholder = context.registry.register(entity_type, literal)
    if placeholder == literal:
        return False
    context.substitute(pattern, lambda _match: placeholder)
    return True


class PrimeMemoryStep(PipelineStep):
    def __init__(self, memory: MemoryStore) -> None:
        self._memory = memory

    def run(self, context: PipelineContext) -> PipelineContext:
        if not context.options.use_memory:
            return context
        max_id = self._memory.prime(context.options.scope_key, context.registry, now=context.now)
        Log.debug(
            f"Primed {len(context.registry.entries)} remembered values "
            f"(max id {max_id}) for scope '{context.options.scope_key}'"
        )
        return context


class ApplyMemoryStep(PipelineStep):
    def __init__(self, memory: MemoryStore) -> None:
        self._memory = memory

    def run(self, context: PipelineContext) -> PipelineContext:
        if not context.options.use_memory:
            return context
        context.text = self._memory.apply(context.options.scope_key, context.text, now=context.now)
        return context


class ContextualNameHintStep(PipelineStep):
    def __init__(self, hinter: ContextualNameHinter) -> None:
        self._hinter = hinter

    def run(self, context: PipelineContext) -> PipelineContext:
        return self._hinter.apply(context)


class RuleEngineStep(PipelineStep):
    def __init__(self, rule_engine: RuleEngine) -> None:
        self._rule_engine = rule_engine

    def run(self, context: PipelineContext) -> PipelineContext:
        return self._rule_engine.apply(context)


class DerivedHintStep(PipelineStep):
    """Masks values staged by earlier passes (email-domain orgs, bare names)."""

    def run(self, context: PipelineContext) -> PipelineContext:
        masked = 0
        for hint in list(context.derived_hints.values()):
            pattern = build_replacement_regex(hint.value)
            if pattern is None:
                continue
            if _mask_everywhere(context, hint.entity_type, hint.value, pattern):
                masked += 1
        Log.debug(f"Applied {masked} of {len(context.derived_hints)} derived hints")
        return context


class EntityTaggingStep(PipelineStep):
    """Masks person, location and organization names found by the tagger."""

    def __init__(self, tagger: BaseEntityTagger) -> None:
        self._tagger = tagger

    def run(self, context: PipelineContext) -> PipelineContext:
        tagged = self._tag(context.text)
        for entity_type, values in tagged.by_type():
            for candidate in dict.fromkeys(self._candidates(values)):
                pattern = re.compile(
                    rf"(?<!\w){re.escape(candidate)}(?!\w)", re.IGNORECASE
                )
                _mask_everywhere(context, entity_type, candidate, pattern)
        return context

    def _tag(self, text: str) -> TaggedEntities:
        try:
            return self._tagger.tag(text)
        except TaggingError as exc:
            Log.warning(f"Entity tagging unavailable, continuing without it: {exc}")
        except Exception as exc:
            Log.warning(f"Entity tagger failed unexpectedly: {exc}")
        return TaggedEntities()

    @staticmethod
    def _candidates(values: list[str]) -> list[str]:
        candidates: list[str] = []
        for value in values:
            if not isinstance(value, str):
                continue
            candidate = value.strip()
            if len(candidate) < 2:
                continue
            if contains_placeholder(candidate) or looks_like_placeholder_value(candidate):
                continue
            candidates.append(candidate)
        return candidates
