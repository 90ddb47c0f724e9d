from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from privacymail.tagging.exceptions import TaggingError
from privacymail.tagging.spacy_adapter import SpacyTagger


def _make_nlp(*ents: tuple[str, str]) -> MagicMock:
    nlp = MagicMock()
    nlp.return_value = SimpleNamespace(
        ents=[SimpleNamespace(text=text, label_=label) for text, label in ents]
    )
    return nlp


class TestSpacyTagger:
    def test_maps_entity_labels(self) -> None:
        nlp = _make_nlp(
            ("Jane Doe", "PERSON"),
            ("Berlin", "GPE"),
            ("Alps", "LOC"),
            ("Acme", "ORG"),
            ("Monday", "DATE"),
        )
        with patch("privacymail.tagging.spacy_adapter.spacy.load", return_value=nlp):
            result = SpacyTagger().tag("Jane Doe of Acme flies to Berlin on Monday")

        assert result.persons == ["Jane Doe"]
        assert result.locations == ["Berlin", "Alps"]
        assert result.organizations == ["Acme"]

    def test_model_is_loaded_once_and_lazily(self) -> None:
        nlp = _make_nlp()
        with patch(
            "privacymail.tagging.spacy_adapter.spacy.load", return_value=nlp
        ) as mock_load:
            tagger = SpacyTagger(model_name="xx_test_model")
            mock_load.assert_not_called()
            tagger.tag("one")
            tagger.tag("two")

        mock_load.assert_called_once_with("xx_test_model")

    def test_missing_model_raises_tagging_error(self) -> None:
        with patch(
            "privacymail.tagging.spacy_adapter.spacy.load",
            side_effect=OSError("E050 can't find model"),
        ):
            with pytest.raises(TaggingError, match="not installed"):
                SpacyTagger().tag("text")

    def test_pipeline_failure_raises_tagging_error(self) -> None:
        nlp = MagicMock(side_effect=ValueError("bad input"))
        with patch("privacymail.tagging.spacy_adapter.spacy.load", return_value=nlp):
            with pytest.raises(TaggingError, match="spaCy tagging failed"):
                SpacyTagger().tag("text")
