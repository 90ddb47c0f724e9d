from privacymail.config.settings import Settings
from privacymail.tagging.base import BaseEntityTagger
from privacymail.tagging.llm_adapter import LlmTagger
from privacymail.tagging.null_adapter import NullTagger
from privacymail.tagging.spacy_adapter import SpacyTagger


class TaggerFactory:
    """Creates the entity tagger selected in settings."""

    ENGINES: tuple[str, ...] = ("spacy", "llm", "none")

    @classmethod
    def create(cls, settings: Settings) -> BaseEntityTagger:
        engine = settings.tagger_engine.lower()
        if engine == "spacy":
            return SpacyTagger(model_name=settings.spacy_model)
        if engine == "llm":
            return LlmTagger(
                api_key=settings.tagger_llm_api_key,
                model=settings.tagger_llm_model_name,
                timeout_seconds=settings.tagger_llm_timeout_seconds,
                base_url=(settings.tagger_llm_base_url or "").strip() or None,
            )
        if engine == "none":
            return NullTagger()
        raise ValueError(
            f"Unknown tagger engine '{engine}'. Choose from: {list(cls.ENGINES)}"
        )
