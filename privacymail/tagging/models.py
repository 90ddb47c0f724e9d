from dataclasses import dataclass, field


@dataclass
class TaggedEntities:
    """Candidate open-class entities returned by a tagger."""

    persons: list[str] = field(default_factory=list)
    locations: list[str] = field(default_factory=list)
    organizations: list[str] = field(default_factory=list)

    def by_type(self) -> list[tuple[str, list[str]]]:
        """Candidates keyed by placeholder type, in masking order."""
        return [
            ("PERSON", self.persons),
            ("LOCATION", self.locations),
            ("ORG", self.organizations),
        ]
