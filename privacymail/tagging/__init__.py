from privacymail.tagging.base import BaseEntityTagger
from privacymail.tagging.factory import TaggerFactory
from privacymail.tagging.models import TaggedEntities

__all__ = ["BaseEntityTagger", "TaggedEntities", "TaggerFactory"]
