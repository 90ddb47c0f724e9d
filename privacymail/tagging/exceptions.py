class TaggingError(Exception):
    """Raised when entity tagging fails."""


class TaggingNetworkError(TaggingError):
    """Raised when a remote tagging provider cannot be reached."""
