from unittest.mock import patch

import pytest

from privacymail.anonymization.anonymizer import Anonymizer
from privacymail.anonymization.memory import MemoryStore
from privacymail.anonymization.models import AnonymizeOptions, Artifact
from privacymail.anonymization.placeholders import PLACEHOLDER_RE
from privacymail.tagging.exceptions import TaggingError
from tests.fakes import FakeClock, StubTagger

NO_MEMORY = {"use_memory": False}


class TestAnonymize:
    def test_email_phone_and_date(self, anonymizer: Anonymizer) -> None:
        result = anonymizer.anonymize(
            "Contact jane@acme.com or call 415-555-0100 on 2024-05-01.", NO_MEMORY
        )

        assert result.masked_text == "Contact {{EMAIL_1}} or call {{NUMBER_1}} on {{DATETIME_1}}."
        assert result.mapping == {
            "{{EMAIL_1}}": "jane@acme.com",
            "{{NUMBER_1}}": "415-555-0100",
            "{{DATETIME_1}}": "2024-05-01",
        }

    def test_every_mapping_value_was_masked(self, anonymizer: Anonymizer) -> None:
        text = "Dear John Smith,\nPlease wire $500 by May 3, 2024.\n\nBest regards,\nMary Jones\n"

        result = anonymizer.anonymize(text, NO_MEMORY)

        assert set(PLACEHOLDER_RE.findall(result.masked_text)) == set(result.mapping)
        for original in result.mapping.values():
            assert original not in result.masked_text

    def test_same_input_same_output_without_memory(self, anonymizer: Anonymizer) -> None:
        text = "Hi Anna,\nyour order AB12345X ships to 221 Baker Street."

        first = anonymizer.anonymize(text, NO_MEMORY)
        second = anonymizer.anonymize(text, NO_MEMORY)

        assert first == second

    def test_title_prefixed_name_masks_bare_mentions(self, anonymizer: Anonymizer) -> None:
        result = anonymizer.anonymize(
            "Dr. Jane Smith called. Jane Smith will follow up.", NO_MEMORY
        )

        assert result.masked_text == "{{PERSON_1}} called. {{PERSON_2}} will follow up."
        assert result.mapping == {"{{PERSON_1}}": "Dr. Jane Smith", "{{PERSON_2}}": "Jane Smith"}

    def test_greeting_name_upgraded_by_email_domain(self, anonymizer: Anonymizer) -> None:
        result = anonymizer.anonymize("Hi Acme,\nplease reply to ceo@acme.com", NO_MEMORY)

        assert result.masked_text == "Hi {{PERSON_1|ORG_1}},\nplease reply to {{EMAIL_1}}"
        assert result.mapping == {
            "{{PERSON_1|ORG_1}}": "Acme",
            "{{EMAIL_1}}": "ceo@acme.com",
        }

    def test_org_hint_and_tagger_share_one_entry(self, memory: MemoryStore, clock: FakeClock) -> None:
        anonymizer = Anonymizer(tagger=StubTagger(organizations=["Acme"]), memory=memory, clock=clock)

        result = anonymizer.anonymize("Acme shipped the order. Write to sales@acme.com.", NO_MEMORY)

        assert result.masked_text == "{{ORG_1}} shipped the order. Write to {{EMAIL_1}}."
        assert list(result.mapping.values()).count("Acme") == 1

    def test_tagger_entities_are_masked(self, memory: MemoryStore, clock: FakeClock) -> None:
        tagger = StubTagger(persons=["Maria Lopez"], locations=["Berlin"])
        anonymizer = Anonymizer(tagger=tagger, memory=memory, clock=clock)

        result = anonymizer.anonymize("Maria Lopez flies to Berlin tomorrow.", NO_MEMORY)

        assert result.masked_text == "{{PERSON_1}} flies to {{LOCATION_1}} tomorrow."
        assert tagger.calls == ["Maria Lopez flies to Berlin tomorrow."]

    def test_tagger_placeholder_candidates_are_ignored(
        self, memory: MemoryStore, clock: FakeClock
    ) -> None:
        tagger = StubTagger(persons=["{{EMAIL_1}}", "X", "PERSON_3", "Nobody Here"])
        anonymizer = Anonymizer(tagger=tagger, memory=memory, clock=clock)

        result = anonymizer.anonymize("Write to a@b.com", NO_MEMORY)

        assert result.mapping == {"{{EMAIL_1}}": "a@b.com"}

    @pytest.mark.parametrize("error", [TaggingError("model missing"), RuntimeError("boom")])
    def test_tagger_failure_keeps_other_passes(
        self, memory: MemoryStore, clock: FakeClock, error: Exception
    ) -> None:
        anonymizer = Anonymizer(tagger=StubTagger(error=error), memory=memory, clock=clock)

        result = anonymizer.anonymize("Write to a@b.com", NO_MEMORY)

        assert result.masked_text == "Write to {{EMAIL_1}}"

    def test_failing_step_keeps_partial_result(self, anonymizer: Anonymizer) -> None:
        with patch(
            "privacymail.anonymization.rules.RuleEngine.apply",
            side_effect=RuntimeError("boom"),
        ):
            result = anonymizer.anonymize("Dear John Smith, mail me at a@b.com", NO_MEMORY)

        assert result.masked_text == "Dear {{PERSON_1}}, mail me at a@b.com"

    def test_empty_and_non_string_text(self, anonymizer: Anonymizer) -> None:
        assert anonymizer.anonymize("").masked_text == ""
        assert anonymizer.anonymize(None).masked_text == ""  # type: ignore[arg-type]
        assert anonymizer.anonymize(12).masked_text == "12"  # type: ignore[arg-type]

    def test_invalid_options_fall_back_to_defaults(self, anonymizer: Anonymizer) -> None:
        result = anonymizer.anonymize("Write to a@b.com", 42)

        assert result.masked_text == "Write to {{EMAIL_1}}"


class TestMemory:
    def test_name_is_reused_in_later_call(self, anonymizer: Anonymizer) -> None:
        first = anonymizer.anonymize("Hi, this is Jane Doe.", {"scope_key": "s1", "remember": True})
        second = anonymizer.anonymize("Regards, Jane Doe", {"scope_key": "s1"})

        assert first.masked_text == "Hi, this is {{PERSON_1}}."
        assert second.masked_text == "Regards, {{PERSON_1}}"
        assert second.mapping["{{PERSON_1}}"] == "Jane Doe"

    def test_other_scope_does_not_see_memory(self, anonymizer: Anonymizer) -> None:
        anonymizer.anonymize("Hi, this is Jane Doe.", "s1")

        result = anonymizer.anonymize("Regards, Jane Doe", "s2")

        assert result.masked_text == "Regards, Jane Doe"
        assert result.mapping == {}

    def test_remembered_ids_are_not_reallocated(self, anonymizer: Anonymizer) -> None:
        anonymizer.anonymize("Hi, this is Jane Doe.", "s1")

        result = anonymizer.anonymize("Hi, this is Bob Stone. Regards, Jane Doe", "s1")

        assert result.masked_text == "Hi, this is {{PERSON_2}}. Regards, {{PERSON_1}}"
        assert result.mapping == {"{{PERSON_1}}": "Jane Doe", "{{PERSON_2}}": "Bob Stone"}

    def test_remember_false_leaves_memory_untouched(
        self, anonymizer: Anonymizer, memory: MemoryStore
    ) -> None:
        anonymizer.anonymize("Hi, this is Jane Doe.", {"scope_key": "s1", "remember": False})

        assert memory.records("s1") == {}

    def test_use_memory_false_leaves_memory_untouched(
        self, anonymizer: Anonymizer, memory: MemoryStore
    ) -> None:
        anonymizer.anonymize("Hi, this is Jane Doe.", AnonymizeOptions(scope_key="s1", use_memory=False))

        assert memory.records("s1") == {}

    def test_only_person_values_are_remembered(
        self, anonymizer: Anonymizer, memory: MemoryStore
    ) -> None:
        anonymizer.anonymize("Hi, this is Jane Doe. Mail jane@acme.com", "s1")

        assert list(memory.records("s1")) == ["jane doe"]

    def test_pronoun_i_is_never_remembered(
        self, anonymizer: Anonymizer, memory: MemoryStore
    ) -> None:
        anonymizer.anonymize("Hi, I am Jane", "s1")

        result = anonymizer.anonymize("I will call Jane later.", "s1")

        assert list(memory.records("s1")) == ["jane"]
        assert result.masked_text == "I will call {{PERSON_1}} later."

    def test_memory_expires(self, anonymizer: Anonymizer, clock: FakeClock) -> None:
        anonymizer.anonymize("Hi, this is Jane Doe.", "s1")
        clock.advance(601)

        result = anonymizer.anonymize("Regards, Jane Doe", "s1")

        assert result.masked_text == "Regards, Jane Doe"
        assert result.mapping == {}

    def test_oldest_name_is_evicted(self, clock: FakeClock) -> None:
        anonymizer = Anonymizer(memory=MemoryStore(max_entries=2, clock=clock), clock=clock)
        for name in ["Alice Moore", "Brian Kent", "Carla Diaz"]:
            anonymizer.anonymize(f"Hi, this is {name}.", "s1")

        assert list(anonymizer.memory.records("s1")) == ["brian kent", "carla diaz"]
        assert anonymizer.anonymize("Regards, Alice Moore", "s1").masked_text == "Regards, Alice Moore"

    def test_clear_memory(self, anonymizer: Anonymizer) -> None:
        anonymizer.anonymize("Hi, this is Jane Doe.", "s1")

        anonymizer.clear_memory("s1")

        assert anonymizer.anonymize("Regards, Jane Doe", "s1").masked_text == "Regards, Jane Doe"

    def test_configured_default_scope(self, memory: MemoryStore, clock: FakeClock) -> None:
        anonymizer = Anonymizer(memory=memory, default_scope="inbox", clock=clock)

        anonymizer.anonymize("Hi, this is Jane Doe.")

        assert list(memory.records("inbox")) == ["jane doe"]


class TestRestore:
    @pytest.mark.parametrize(
        "text",
        [
            "Contact jane@acme.com or call 415-555-0100 on 2024-05-01.",
            "Dear John Smith,\nPlease wire $500 by May 3, 2024.\n\nBest regards,\nMary Jones\n",
            "Hi Acme,\nplease reply to ceo@acme.com",
            "Server 192.168.0.1 at https://status.example.org is down, ask Dr. Jane Smith.",
        ],
    )
    def test_round_trip(self, anonymizer: Anonymizer, text: str) -> None:
        masked = anonymizer.anonymize(text, NO_MEMORY)

        restored = anonymizer.restore(masked.masked_text, masked.mapping)

        assert restored.restored_text == text

    @pytest.mark.parametrize(
        ("text", "masked_text", "org"),
        [
            (
                "Mail jane@ibm.com about the IBM contract.",
                "Mail {{EMAIL_1}} about the {{ORG_1}} contract.",
                "IBM",
            ),
            (
                "Write to bob@acme.com, acme replies soon.",
                "Write to {{EMAIL_1}}, {{ORG_1}} replies soon.",
                "acme",
            ),
        ],
    )
    def test_domain_org_keeps_buffer_casing(
        self, anonymizer: Anonymizer, text: str, masked_text: str, org: str
    ) -> None:
        masked = anonymizer.anonymize(text, NO_MEMORY)

        restored = anonymizer.restore(masked.masked_text, masked.mapping)

        assert masked.masked_text == masked_text
        assert masked.mapping["{{ORG_1}}"] == org
        assert restored.restored_text == text

    def test_highlights_cover_restored_values(self, anonymizer: Anonymizer) -> None:
        masked = anonymizer.anonymize("Dear John Smith, mail me at a@b.com", NO_MEMORY)

        restored = anonymizer.restore(masked.masked_text, masked.mapping)

        assert [
            restored.restored_text[h.start:h.end] for h in restored.highlights
        ] == ["John Smith", "a@b.com"]

    def test_non_mapping_returns_text(self, anonymizer: Anonymizer) -> None:
        result = anonymizer.restore("Hi {{PERSON_1}}", None)  # type: ignore[arg-type]

        assert result.restored_text == "Hi {{PERSON_1}}"


class TestArtifacts:
    def test_anonymize_entities_lists_types(self, anonymizer: Anonymizer) -> None:
        masked, artifacts = anonymizer.anonymize_entities("Hi Acme,\nplease reply to ceo@acme.com", NO_MEMORY)

        assert masked == "Hi {{PERSON_1|ORG_1}},\nplease reply to {{EMAIL_1}}"
        assert sorted(artifacts, key=lambda a: a.replacement) == [
            Artifact(type="EMAIL", original="ceo@acme.com", replacement="{{EMAIL_1}}"),
            Artifact(type="PERSON|ORG", original="Acme", replacement="{{PERSON_1|ORG_1}}"),
        ]

    def test_deanonymize(self, anonymizer: Anonymizer) -> None:
        artifacts = [Artifact(type="PERSON", original="Jane", replacement="{{PERSON_1}}")]

        assert anonymizer.deanonymize("Thanks {{PERSON_1}}!", artifacts) == "Thanks Jane!"
