from privacymail.tagging.base import BaseEntityTagger
from privacymail.tagging.models import TaggedEntities


class FakeClock:
    """Manually advanced time source, in seconds."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class StubTagger(BaseEntityTagger):
    """Returns fixed candidates, or raises the configured error."""

    def __init__(
        self,
        persons: list[str] | None = None,
        locations: list[str] | None = None,
        organizations: list[str] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.persons = persons or []
        self.locations = locations or []
        self.organizations = organizations or []
        self.error = error
        self.calls: list[str] = []

    def tag(self, text: str) -> TaggedEntities:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return TaggedEntities(
            persons=list(self.persons),
            locations=list(self.locations),
            organizations=list(self.organizations),
        )
