"""Reversible, memory-aware anonymizer for outbound mail text.

Processing flow per call:
1. Prime the in-flight registry from the scope's memory.
2. Mask remembered person names literally.
3. Mask names found in salutations, recipient lines, signatures and
   behind honorifics.
4. Run the ordered regex detectors (email, address, IP, date, link, money,
   numbers, identifiers).
5. Mask derived hints (organizations from email domains, bare names).
6. Mask person / location / organization names from the entity tagger.
7. Return masked text + placeholder mapping.

Every step sees the buffer produced by the previous one; spans that are
already placeholders are never claimed again.
"""

from __future__ import annotations

import dataclasses
import time
from collections.abc import Callable, Mapping
from typing import Any

from privacymail.anonymization.base import BaseAnonymizer
from privacymail.anonymization.hints import ContextualNameHinter
from privacymail.anonymization.memory import MemoryStore
from privacymail.anonymization.models import (
    DEFAULT_SCOPE,
    AnonymizationResult,
    AnonymizeOptions,
    Artifact,
    Entry,
    RestorationResult,
)
from privacymail.anonymization.pipeline import PipelineContext, PipelineStep
from privacymail.anonymization.registry import PlaceholderRegistry
from privacymail.anonymization.restorer import Restorer
from privacymail.anonymization.rules import RuleEngine
from privacymail.anonymization.steps import (
    ApplyMemoryStep,
    ContextualNameHintStep,
    DerivedHintStep,
    EntityTaggingStep,
    PrimeMemoryStep,
    RuleEngineStep,
)
from privacymail.logging.logger import Log
from privacymail.tagging.base import BaseEntityTagger
from privacymail.tagging.null_adapter import NullTagger


class Anonymizer(BaseAnonymizer):
    """Masks PII with stable ``{{TYPE_ID}}`` placeholders and restores it."""

    def __init__(
        self,
        tagger: BaseEntityTagger | None = None,
        memory: MemoryStore | None = None,
        restorer: Restorer | None = None,
        default_scope: str = DEFAULT_SCOPE,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._memory = memory or MemoryStore(clock=clock)
        self._restorer = restorer or Restorer()
        self._default_scope = default_scope or DEFAULT_SCOPE
        self._clock = clock
        self._steps: list[PipelineStep] = [
            PrimeMemoryStep(self._memory),
            ApplyMemoryStep(self._memory),
            ContextualNameHintStep(ContextualNameHinter()),
            RuleEngineStep(RuleEngine()),
            DerivedHintStep(),
            EntityTaggingStep(tagger or NullTagger()),
        ]

    @property
    def memory(self) -> MemoryStore:
        return self._memory

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def anonymize(self, text: str, options: Any = None) -> AnonymizationResult:
        """Replace sensitive spans in *text* with placeholders.

        Args:
            text: Plain text to mask.
            options: AnonymizeOptions, a dict of its fields, a scope key or
                     None. Invalid values fall back to the defaults.

        Returns:
            AnonymizationResult with masked text and mapping.
        """
        opts = self._resolve_options(options)
        if not isinstance(text, str):
            text = "" if text is None else str(text)
        if not text:
            return AnonymizationResult(masked_text=text)

        if not opts.use_memory:
            return self._run(text, opts)
        with self._memory.lock(opts.scope_key):
            return self._run(text, opts)

    def restore(self, text: str, mapping: Mapping[str, str]) -> RestorationResult:
        """Swap placeholders in *text* back to originals, with highlights."""
        if not isinstance(text, str):
            text = "" if text is None else str(text)
        if not isinstance(mapping, Mapping):
            return RestorationResult(restored_text=text)
        try:
            return self._restorer.restore(text, mapping)
        except Exception as exc:
            Log.warning(f"Restore failed, returning text unchanged: {exc}")
            return RestorationResult(restored_text=text)

    def clear_memory(self, scope_key: str | None = None) -> None:
        """Forget remembered names for one scope, or for all scopes."""
        self._memory.clear(scope_key)

    def anonymize_entities(
        self, text: str, options: Any = None
    ) -> tuple[str, list[Artifact]]:
        """Mask *text* and list each placeholder with its type and value."""
        result = self.anonymize(text, options)
        return result.masked_text, result.artifacts

    def deanonymize(self, text: str, artifacts: list[Artifact]) -> str:
        """Restore plain text from an artifact list."""
        mapping = {artifact.replacement: artifact.original for artifact in artifacts}
        return self.restore(text, mapping).restored_text

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def _run(self, text: str, opts: AnonymizeOptions) -> AnonymizationResult:
        now = self._clock()
        registry = PlaceholderRegistry(on_entry=self._remember_listener(opts, now))
        context = PipelineContext(text=text, options=opts, registry=registry, now=now)

        for step in self._steps:
            context = self._run_step(step, context)

        Log.info(f"Anonymized text: {len(registry.mapping)} placeholders in mapping")
        return AnonymizationResult(masked_text=context.text, mapping=dict(registry.mapping))

    @staticmethod
    def _run_step(step: PipelineStep, context: PipelineContext) -> PipelineContext:
        try:
            return step.run(context)
        except Exception as exc:
            Log.warning(f"{type(step).__name__} failed, keeping partial result: {exc}")
            context.text = context.registry.rewrite(context.text)
            return context

    def _remember_listener(
        self, opts: AnonymizeOptions, now: float
    ) -> Callable[[str, Entry], None] | None:
        if not opts.should_remember:
            return None

        def remember(value_key: str, entry: Entry) -> None:
            self._memory.remember_entry(opts.scope_key, value_key, entry, now=now)

        return remember

    def _resolve_options(self, options: Any) -> AnonymizeOptions:
        opts = AnonymizeOptions.from_raw(options)
        if opts.scope_key == DEFAULT_SCOPE and self._default_scope != DEFAULT_SCOPE:
            opts = dataclasses.replace(opts, scope_key=self._default_scope)
        return opts
