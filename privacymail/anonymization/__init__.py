from privacymail.anonymization.anonymizer import Anonymizer
from privacymail.anonymization.base import BaseAnonymizer
from privacymail.anonymization.factory import AnonymizerFactory

__all__ = ["Anonymizer", "AnonymizerFactory", "BaseAnonymizer"]
