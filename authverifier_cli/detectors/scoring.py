import math

from authverifier_cli.detectors.models import DetectionResult, Signal, clamp, FLAG_AI, FLAG_HUMAN, FLAG_UNCERTAIN
from authverifier_cli.detectors.weights import DEFINITIVE_SCORE, NEUTRAL_SCORE

TEXT = "text"
IMAGE = "image"

AI_GENERATED = "AI-Generated"
UNCERTAIN = "Uncertain"
HUMAN_WRITTEN = "Human-Written"
REAL_IMAGE = "Real Image"

SECONDARY_WEIGHT = 0.60
HEURISTIC_WEIGHT = 0.40


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def weighted_mean(votes, default: float = NEUTRAL_SCORE) -> float:
    """Weighted mean of vote scores; `default` when there are no votes."""
    votes = list(votes)
    if not votes:
        return default
    total_weight = sum(v.weight for v in votes)
    return clamp(sum(v.score * v.weight for v in votes) / total_weight)


def aggregate_image(votes) -> float:
    """
    Weighted mean with a dominance override: if any vote is a definitive
    generator signature (score >= 0.94), the strongest such vote wins.
    """
    votes = list(votes)
    if not votes:
        return NEUTRAL_SCORE
    definitive = [v.score for v in votes if v.score >= DEFINITIVE_SCORE]
    if definitive:
        return clamp(max(definitive))
    return weighted_mean(votes)


def blend_secondary(heuristic: float, secondary: float) -> float:
    return clamp(secondary * SECONDARY_WEIGHT + heuristic * HEURISTIC_WEIGHT)


def secondary_signal(engine_name: str, secondary: float) -> Signal:
    if secondary > 0.6:
        flag = FLAG_AI
    elif secondary > 0.4:
        flag = FLAG_UNCERTAIN
    else:
        flag = FLAG_HUMAN
    return Signal(f"{engine_name} Engine", f"{round_half_up(secondary * 100)}% AI probability", flag)


class VerdictClassifier:
    """
    Maps a probability to a verdict and a confidence band.

    The verdict cut-offs are shared by text and images; the confidence
    bands are slightly wider for images.
    """

    AI_ABOVE = 0.68
    UNCERTAIN_ABOVE = 0.42

    CONFIDENCE_BANDS = {
        TEXT:  {"high": (0.82, 0.18), "medium": (0.62, 0.35)},
        IMAGE: {"high": (0.80, 0.20), "medium": (0.60, 0.38)},
    }

    def verdict(self, p: float, kind: str) -> str:
        if p > self.AI_ABOVE:
            return AI_GENERATED
        if p > self.UNCERTAIN_ABOVE:
            return UNCERTAIN
        return REAL_IMAGE if kind == IMAGE else HUMAN_WRITTEN

    def confidence(self, p: float, kind: str) -> str:
        bands = self.CONFIDENCE_BANDS[kind]
        high_above, high_below = bands["high"]
        if p > high_above or p < high_below:
            return "High"
        medium_above, medium_below = bands["medium"]
        if p > medium_above or p < medium_below:
            return "Medium"
        return "Low"

    def classify(self, p: float, kind: str, signals=None, note=None, engine=None) -> DetectionResult:
        if kind not in self.CONFIDENCE_BANDS:
            raise ValueError(f"kind must be '{TEXT}' or '{IMAGE}', got {kind!r}")
        p = clamp(p)
        return DetectionResult(
            ai_probability=round_half_up(p * 100),
            verdict=self.verdict(p, kind),
            confidence=self.confidence(p, kind),
            signals=list(signals or []),
            note=note,
            engine=engine,
        )
