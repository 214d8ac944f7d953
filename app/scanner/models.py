from dataclasses import dataclass, field


@dataclass(frozen=True)
class ScanVerdict:
    """Outcome of inspecting one file."""

    infected: bool
    engine: str
    signatures: list[str] = field(default_factory=list)
    details: dict[str, object] = field(default_factory=dict)

    def as_metadata(self) -> dict[str, object]:
        return {
            "infected": self.infected,
            "engine": self.engine,
            "signatures": list(self.signatures),
            **self.details,
        }
