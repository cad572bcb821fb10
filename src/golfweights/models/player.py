"""Player-level records exchanged between the ranking engine and the optimizer."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, Iterator, Mapping, Optional, Tuple


@dataclass(frozen=True)
class MetricVector:
    """Ordered ``(label, value)`` pairs; values are ``None`` when the metric is missing."""

    entries: Tuple[Tuple[str, Optional[float]], ...] = ()

    @classmethod
    def from_mapping(cls, labels: Iterable[str], values: Mapping[str, Optional[float]]) -> "MetricVector":
        return cls(tuple((label, values.get(label)) for label in labels))

    def get(self, label: str) -> Optional[float]:
        for entry_label, value in self.entries:
            if entry_label == label:
                return value
        return None

    def labels(self) -> list[str]:
        return [label for label, _ in self.entries]

    def as_dict(self) -> Dict[str, Optional[float]]:
        return dict(self.entries)

    def __iter__(self) -> Iterator[Tuple[str, Optional[float]]]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)


@dataclass(frozen=True)
class RankedPlayer:
    player_id: str
    name: str
    rank: int
    score: float
    metrics: MetricVector = field(default_factory=MetricVector)


@dataclass(frozen=True)
class FinishResult:
    player_id: str
    finish_position: Optional[int]
    name: str = ""

    def to_dict(self) -> dict:
        return {"dgId": self.player_id, "name": self.name, "finishPosition": self.finish_position}
