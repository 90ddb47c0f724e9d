from typing import Any, ClassVar

import spacy

from privacymail.logging.logger import Log
from privacymail.tagging.base import BaseEntityTagger
from privacymail.tagging.exceptions import TaggingError
from privacymail.tagging.models import TaggedEntities


class SpacyTagger(BaseEntityTagger):
    """Tags entities with a local spaCy pipeline.

    The model is loaded on first use so that building an anonymizer stays
    cheap when no call ever reaches the tagging pass.
    """

    PERSON_LABELS: ClassVar[frozenset[str]] = frozenset({"PERSON"})
    LOCATION_LABELS: ClassVar[frozenset[str]] = frozenset({"GPE", "LOC", "FAC"})
    ORG_LABELS: ClassVar[frozenset[str]] = frozenset({"ORG"})

    def __init__(self, model_name: str = "en_core_web_sm") -> None:
        self._model_name = model_name
        self._nlp: Any = None

    def tag(self, text: str) -> TaggedEntities:
        nlp = self._load()
        try:
            doc = nlp(text)
        except Exception as exc:
            raise TaggingError(f"spaCy tagging failed: {exc}") from exc

        result = TaggedEntities()
        for ent in doc.ents:
            if ent.label_ in self.PERSON_LABELS:
                result.persons.append(ent.text)
            elif ent.label_ in self.LOCATION_LABELS:
                result.locations.append(ent.text)
            elif ent.label_ in self.ORG_LABELS:
                result.organizations.append(ent.text)
        return result

    def _load(self) -> Any:
        if self._nlp is None:
            try:
                self._nlp = spacy.load(self._model_name)
            except OSError as exc:
                raise TaggingError(
                    f"spaCy model '{self._model_name}' is not installed: {exc}"
                ) from exc
            Log.info(f"Loaded spaCy model {self._model_name}")
        return self._nlp
