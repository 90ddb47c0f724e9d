"""Context heuristics that mark likely person names before the regex pass.

Mail has a few places where a capitalized span is almost always a person:
recipient lines, salutations, greetings, the line under a closing phrase and
anything behind an honorific. Candidates found there are checked with
:func:`ContextualNameHinter.is_likely_person_name` and masked as PERSON.
"""

import re
import threading
from collections.abc import Callable
from typing import ClassVar

import icu  # type: ignore[import-untyped]

from privacymail.anonymization.pipeline import PipelineContext
from privacymail.anonymization.placeholders import contains_placeholder

RECIPIENT_LIST = "recipient_list"
SALUTATION = "salutation"
GREETING = "greeting"
SIGNATURE = "signature"
TITLE_PREFIXED = "title_prefixed"

DISALLOWED_FULL_PHRASES: frozenset[str] = frozenset(
    {
        "to whom it may concern", "whom it may concern", "valued customer",
        "valued customers", "dear customer", "dear customers", "dear team",
        "dear all", "dear friends", "dear sir", "dear madam", "dear sirs",
        "sir", "madam",
    }
)

DISALLOWED_SINGLE_WORDS: frozenset[str] = frozenset(
    {
        "i", "team", "all", "everyone", "customer", "customers", "folks", "friends",
        "friend", "colleagues", "crew", "staff", "sales", "support", "info",
        "contact", "admin", "billing", "office", "accounts", "noreply",
        "marketing", "finance", "operations", "whom", "concern",
        # Honorifics are handled by the title-prefix pass.
        "mr", "mrs", "ms", "miss", "mx", "dr", "prof", "professor",
    }
)

TITLE_PREFIXES: tuple[str, ...] = (
    "mr", "mrs", "ms", "miss", "mx", "dr", "prof", "professor", "sir", "madam",
)

SIGNATURE_KEYWORDS: tuple[str, ...] = (
    "best regards", "best wishes", "regards", "kind regards", "warm regards",
    "warmly", "cheers", "sincerely", "yours truly", "yours faithfully",
    "respectfully", "with appreciation", "with gratitude",
)


def _alternation(words: tuple[str, ...]) -> str:
    return "|".join(re.escape(word) for word in words)


class ContextualNameHinter:
    """Masks person names found in structural regions of a message."""

    CONTEXT_PATTERNS: ClassVar[list[tuple[str, re.Pattern[str]]]] = [
        (
            RECIPIENT_LIST,
            re.compile(
                r"((?:^|\n|\r|>)[^\S\r\n]*(?:to|cc|bcc)\s*[:,-]?\s+)([^\n\r]+)",
                re.IGNORECASE,
            ),
        ),
        (
            SALUTATION,
            re.compile(r"((?:^|\n|\r|>|\s)dear\s+)([^\n\r,.!?]+)", re.IGNORECASE),
        ),
        (
            GREETING,
            re.compile(
                r"((?:^|\n|\r|>|\s)"
                r"(?:hello|hi|hey|greetings|howdy|good\s+(?:morning|afternoon|evening))"
                r"[ \t]*[,:-]?[ \t]+)([^\n\r,.!?]+)",
                re.IGNORECASE,
            ),
        ),
    ]

    SIGNATURE_LINE_RE: ClassVar[re.Pattern[str]] = re.compile(
        rf"((?:^|\n|\r)[^\S\r\n]*(?:{_alternation(SIGNATURE_KEYWORDS)})[\s,.-]*[\n\r]+)"
        r"([^\n\r]+)",
        re.IGNORECASE,
    )
    TITLE_NAME_RE: ClassVar[re.Pattern[str]] = re.compile(
        rf"(^|[\s,>])((?i:{_alternation(TITLE_PREFIXES)})\.?)"
        r"((?:[^\S\r\n]+[^\W\d_][\w'.-]*){1,3})"
    )

    _NAME_TOKEN_RE: ClassVar[re.Pattern[str]] = re.compile(r"(?<![\w'.-])[^\W\d_][\w'.-]*")
    _NAME_SHAPE_RE: ClassVar[re.Pattern[str]] = re.compile(r"[A-Z][a-zA-Z'.-]*\.?")
    _SUFFIX_RE: ClassVar[re.Pattern[str]] = re.compile(r"(?:jr|sr|ii|iii|iv|phd)", re.IGNORECASE)
    _MAX_NAME_TOKENS: ClassVar[int] = 4

    _ICU_TRANSFORM: ClassVar[str] = "Any-Latin; Latin-ASCII"

    def __init__(self) -> None:
        self._transliterator: icu.Transliterator = icu.Transliterator.createInstance(
            self._ICU_TRANSFORM
        )
        # ICU transliterators are not safe for concurrent use.
        self._transliterator_lock = threading.Lock()

    def apply(self, context: PipelineContext) -> PipelineContext:
        if not context.text.strip():
            return context
        for name, pattern in self.CONTEXT_PATTERNS:
            # Segments may already hold remembered placeholders next to new names.
            context.substitute(
                pattern, self._segment_replacer(context, name), skip_masked=False
            )
        context.substitute(self.SIGNATURE_LINE_RE, self._signature_replacer(context))
        context.substitute(self.TITLE_NAME_RE, self._title_replacer(context))
        return context

    # ------------------------------------------------------------------
    # Candidate test
    # ------------------------------------------------------------------

    def is_likely_person_name(self, candidate: str, context: str) -> bool:
        """Decide whether *candidate* looks like a person's name in *context*."""
        if not candidate or any(ch in candidate for ch in "@<>"):
            return False
        if "{{" in candidate:
            return False
        normalized = " ".join(candidate.split())
        if not normalized or any(ch.isdigit() for ch in normalized):
            return False
        if normalized.lower() in DISALLOWED_FULL_PHRASES:
            return False
        words = normalized.split(" ")
        if len(words) > self._MAX_NAME_TOKENS:
            return False
        if context == RECIPIENT_LIST and len(words) < 2:
            return False

        has_name_token = False
        for word in words:
            bare = word.replace(".", "").replace(",", "")
            if not bare:
                return False
            bare_lower = bare.lower()
            if bare_lower in DISALLOWED_SINGLE_WORDS:
                return False
            if len(words) == 1 and bare_lower in ("sir", "madam"):
                return False
            if self._SUFFIX_RE.fullmatch(bare):
                continue
            if not self._NAME_SHAPE_RE.fullmatch(self._ascii(word)):
                return False
            has_name_token = True
        return has_name_token

    def _ascii(self, word: str) -> str:
        with self._transliterator_lock:
            return self._transliterator.transliterate(word)

    # ------------------------------------------------------------------
    # Replacers
    # ------------------------------------------------------------------

    def _segment_replacer(
        self, context: PipelineContext, name: str
    ) -> Callable[[re.Match[str]], str]:
        def replace(match: re.Match[str]) -> str:
            lead, segment = match.group(1), match.group(2)
            if not segment:
                return match.group(0)
            return lead + self._mask_segment(context, segment, name)

        return replace

    def _mask_segment(self, context: PipelineContext, segment: str, name: str) -> str:
        pieces: list[str] = []
        cursor = 0
        for start, end in self._capitalized_runs(segment):
            candidate = segment[start:end]
            if not self.is_likely_person_name(candidate, name):
                continue
            pieces.append(segment[cursor:start])
            pieces.append(context.registry.register("PERSON", candidate))
            cursor = end
        pieces.append(segment[cursor:])
        return "".join(pieces)

    def _capitalized_runs(self, segment: str) -> list[tuple[int, int]]:
        """Spans of up to four whitespace-separated capitalized tokens."""
        runs: list[tuple[int, int]] = []
        run_start = run_end = -1
        run_length = 0
        for token in self._NAME_TOKEN_RE.finditer(segment):
            if not token.group(0)[0].isupper():
                if run_length:
                    runs.append((run_start, run_end))
                run_length = 0
                continue
            joinable = (
                run_length
                and run_length < self._MAX_NAME_TOKENS
                and segment[run_end:token.start()].isspace()
            )
            if joinable:
                run_end = token.end()
                run_length += 1
                continue
            if run_length:
                runs.append((run_start, run_end))
            run_start, run_end, run_length = token.start(), token.end(), 1
        if run_length:
            runs.append((run_start, run_end))
        return runs

    def _signature_replacer(self, context: PipelineContext) -> Callable[[re.Match[str]], str]:
        def replace(match: re.Match[str]) -> str:
            lead, line = match.group(1), match.group(2)
            core = line.strip()
            if not core or "{{" in core:
                return match.group(0)
            if not self.is_likely_person_name(core, SIGNATURE):
                return match.group(0)
            leading = line[: len(line) - len(line.lstrip())]
            trailing = line[len(line.rstrip()):]
            return lead + leading + context.registry.register("PERSON", core) + trailing

        return replace

    def _title_replacer(self, context: PipelineContext) -> Callable[[re.Match[str]], str]:
        def replace(match: re.Match[str]) -> str:
            lead, title, names = match.group(1), match.group(2), match.group(3)
            if contains_placeholder(names):
                return match.group(0)
            cut = 0
            last_token = ""
            for token in self._NAME_TOKEN_RE.finditer(names):
                if not token.group(0)[0].isupper():
                    break
                cut, last_token = token.end(), token.group(0)
            if not cut:
                return match.group(0)
            # Sentence-final period, unless the last token is an initial.
            if last_token.endswith(".") and len(last_token) > 2:
                cut -= 1
            bare_name = names[:cut].strip()
            if not self.is_likely_person_name(bare_name, TITLE_PREFIXED):
                return match.group(0)
            titled = title + names[:cut]
            placeholder = context.registry.register("PERSON", titled)
            context.add_derived_hint("PERSON", bare_name)
            return lead + placeholder + names[cut:]

        return replace
