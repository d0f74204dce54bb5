"""
Evidence Model
──────────────
Every detector emits an ordered tuple of Evidence items. Each item pairs a
human-readable Signal with an optional weighted Vote; a feature that lacks
enough data still reports a Signal but casts no Vote.
"""

from dataclasses import dataclass, field
from typing import List, Optional

FLAG_AI = "ai"
FLAG_HUMAN = "human"
FLAG_UNCERTAIN = "uncertain"

_FLAGS = (FLAG_AI, FLAG_HUMAN, FLAG_UNCERTAIN)


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


@dataclass(frozen=True)
class Signal:
    name: str
    value: str
    flag: str

    def __post_init__(self):
        if self.flag not in _FLAGS:
            raise ValueError(f"flag must be one of {_FLAGS}, got {self.flag!r}")

    def to_dict(self) -> dict:
        return {"name": self.name, "value": self.value, "flag": self.flag}


@dataclass(frozen=True)
class Vote:
    score: float
    weight: float

    def __post_init__(self):
        if self.weight <= 0:
            raise ValueError(f"vote weight must be positive, got {self.weight}")
        object.__setattr__(self, "score", clamp(float(self.score)))


@dataclass(frozen=True)
class Evidence:
    signal: Signal
    vote: Optional[Vote] = None


def votes_of(evidence) -> List[Vote]:
    return [e.vote for e in evidence if e.vote is not None]


def signals_of(evidence) -> List[Signal]:
    return [e.signal for e in evidence]


@dataclass
class DetectionResult:
    """
    Final, user-facing verdict for one piece of content.

    human_probability is always derived from the rounded ai_probability so
    the two add up to 100.
    """
    ai_probability: int
    verdict: str
    confidence: str
    signals: List[Signal] = field(default_factory=list)
    note: Optional[str] = None
    engine: Optional[str] = None

    @property
    def human_probability(self) -> int:
        return 100 - self.ai_probability

    def to_dict(self) -> dict:
        result = {
            "aiProbability": self.ai_probability,
            "humanProbability": self.human_probability,
            "verdict": self.verdict,
            "confidence": self.confidence,
            "signals": [s.to_dict() for s in self.signals],
        }
        if self.note:
            result["note"] = self.note
        if self.engine:
            result["engine"] = self.engine
        return result
