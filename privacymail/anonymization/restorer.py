"""Reverses placeholders in derivative text and reports restored ranges."""

from collections.abc import Mapping

from privacymail.anonymization.models import Highlight, RestorationResult
from privacymail.anonymization.placeholders import PLACEHOLDER_RE, split_placeholder
from privacymail.logging.logger import Log


class Restorer:
    """Swaps placeholder tokens back to their original literals.

    A bare ``{{PERSON_1}}`` resolves through a combined key such as
    ``{{PERSON_1|ORG_2}}`` and the other way round, so model output that
    shortens or re-joins tokens still comes back readable. Unknown tokens are
    left verbatim.
    """

    def __init__(self, keep_mask_markers: bool = False) -> None:
        self._keep_mask_markers = keep_mask_markers

    def restore(self, text: str, mapping: Mapping[str, str] | None) -> RestorationResult:
        if not text or not mapping:
            return RestorationResult(restored_text=text or "")

        lookup = self._expanded_lookup(mapping)
        pieces: list[str] = []
        highlights: list[Highlight] = []
        length = 0
        cursor = 0

        for match in PLACEHOLDER_RE.finditer(text):
            placeholder = match.group(0)
            head = text[cursor:match.start()]
            pieces.append(head)
            length += len(head)
            cursor = match.end()

            original = self._resolve(placeholder, mapping, lookup)
            if original is None:
                pieces.append(placeholder)
                length += len(placeholder)
                continue

            highlights.append(
                Highlight(
                    start=length,
                    end=length + len(original),
                    placeholder=placeholder,
                    original=original,
                )
            )
            display = f"{original} ({placeholder})" if self._keep_mask_markers else original
            pieces.append(display)
            length += len(display)

        pieces.append(text[cursor:])
        Log.debug(f"Restored {len(highlights)} placeholders")
        return RestorationResult(restored_text="".join(pieces), highlights=highlights)

    @staticmethod
    def _expanded_lookup(mapping: Mapping[str, str]) -> dict[str, str]:
        """Map every well-formed key and each of its segments to a value."""
        lookup: dict[str, str] = {}
        for placeholder, value in mapping.items():
            if not isinstance(placeholder, str) or not PLACEHOLDER_RE.fullmatch(placeholder):
                continue
            original = "" if value is None else str(value)
            # Empty values leave the token in place.
            if not original:
                continue
            lookup.setdefault(placeholder, original)
            for segment in split_placeholder(placeholder):
                lookup.setdefault(f"{{{{{segment}}}}}", original)
        return lookup

    @staticmethod
    def _resolve(
        placeholder: str,
        mapping: Mapping[str, str],
        lookup: dict[str, str],
    ) -> str | None:
        direct = mapping.get(placeholder)
        if direct is not None and str(direct) and PLACEHOLDER_RE.fullmatch(placeholder):
            return str(direct)
        if placeholder in lookup:
            return lookup[placeholder]
        # Combined token whose segments are known individually.
        for segment in split_placeholder(placeholder):
            value = lookup.get(f"{{{{{segment}}}}}")
            if value:
                return value
        return None
