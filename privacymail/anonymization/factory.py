from privacymail.anonymization.anonymizer import Anonymizer
from privacymail.anonymization.memory import MemoryStore
from privacymail.anonymization.restorer import Restorer
from privacymail.config.settings import Settings
from privacymail.tagging.factory import TaggerFactory


class AnonymizerFactory:
    """Creates an anonymizer wired from settings."""

    @classmethod
    def create(cls, settings: Settings) -> Anonymizer:
        return Anonymizer(
            tagger=TaggerFactory.create(settings),
            memory=MemoryStore(
                ttl_seconds=settings.memory_ttl_seconds,
                max_entries=settings.memory_max_entries,
            ),
            restorer=Restorer(keep_mask_markers=settings.restore_keep_mask_markers),
            default_scope=settings.memory_default_scope,
        )
