"""Per-call allocator and merger of placeholder tokens."""

from collections.abc import Callable

from privacymail.anonymization.models import Entry
from privacymail.anonymization.placeholders import (
    combine_placeholders,
    looks_like_placeholder_value,
    make_placeholder,
)

EntryListener = Callable[[str, Entry], None]


class PlaceholderRegistry:
    """Owns the value -> Entry table and the placeholder -> value mapping.

    One registry lives for exactly one anonymize call. When a value already
    registered under one type is registered under another, its combined
    placeholder grows; the superseded token is queued as a rename and
    rewritten in the working buffer by :meth:`rewrite`.
    """

    def __init__(self, on_entry: EntryListener | None = None) -> None:
        self.entries: dict[str, Entry] = {}
        self.mapping: dict[str, str] = {}
        self._used: set[str] = set()
        self._counters: dict[str, int] = {}
        self._renames: list[tuple[str, str]] = []
        self._on_entry = on_entry

    def seed(self, value_key: str, entry: Entry) -> None:
        """Install an entry carried over from memory."""
        self.entries[value_key] = entry
        self.mapping[entry.combined] = entry.value
        self._used.add(entry.combined)
        self._used.update(entry.parts)

    def knows(self, value: str) -> bool:
        return value.lower() in self.entries

    def register(self, entity_type: str, raw_value: str) -> str:
        """Return the placeholder for *raw_value*, allocating one if needed.

        Values that already look like placeholders, and NUMBER values without
        any digit, come back unchanged.
        """
        entity_type = entity_type.upper() if entity_type else "UNKNOWN"
        value = raw_value if isinstance(raw_value, str) else str(raw_value)
        if entity_type == "NUMBER" and not any(ch.isdigit() for ch in value):
            return value
        if looks_like_placeholder_value(value):
            return value

        value_key = value.lower()
        entry = self.entries.get(value_key)
        if entry is None:
            placeholder = self._allocate(entity_type)
            entry = Entry(
                combined=placeholder,
                parts=[placeholder],
                types={entity_type},
                value=value,
            )
            self.entries[value_key] = entry
            self.mapping[placeholder] = value
            self._notify(value_key, entry)
            return placeholder

        if entity_type in entry.types:
            self._notify(value_key, entry)
            return entry.combined

        entry.parts.append(self._allocate(entity_type))
        entry.types.add(entity_type)
        previous = entry.combined
        entry.combined = combine_placeholders(entry.parts)
        if previous and previous != entry.combined:
            self.mapping.pop(previous, None)
            self._renames.append((previous, entry.combined))
        self._used.add(entry.combined)
        self.mapping[entry.combined] = entry.value
        self._notify(value_key, entry)
        return entry.combined

    def rewrite(self, text: str) -> str:
        """Apply queued combined-placeholder upgrades to *text*."""
        for previous, combined in self._renames:
            text = text.replace(previous, combined)
        self._renames.clear()
        return text

    def _allocate(self, entity_type: str) -> str:
        next_id = self._counters.get(entity_type, 1)
        placeholder = make_placeholder(entity_type, next_id)
        while placeholder in self._used:
            next_id += 1
            placeholder = make_placeholder(entity_type, next_id)
        self._counters[entity_type] = next_id + 1
        self._used.add(placeholder)
        return placeholder

    def _notify(self, value_key: str, entry: Entry) -> None:
        if self._on_entry is not None:
            self._on_entry(value_key, entry)
