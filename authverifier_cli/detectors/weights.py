"""
Weight & Tier Tables
────────────────────
All hand-tuned numbers used by the detectors live here so they can be
recalibrated (and tested tier by tier) without touching feature code.

Text features map a measured value to a score through ordered tiers:
  BELOW tiers fire on the first `value < bound`,
  ABOVE tiers fire on the first `value > bound`,
and fall through to `default` when no tier matches.

Image evidence uses fixed votes per finding.
"""

from dataclasses import dataclass
from typing import Tuple

from authverifier_cli.detectors.models import Vote

BELOW = "below"
ABOVE = "above"


@dataclass(frozen=True)
class FeatureTable:
    weight: float
    direction: str
    tiers: Tuple[Tuple[float, float], ...]
    default: float

    def score(self, value: float) -> float:
        for bound, score in self.tiers:
            if self.direction == BELOW and value < bound:
                return score
            if self.direction == ABOVE and value > bound:
                return score
        return self.default

    def vote(self, value: float) -> Vote:
        return Vote(self.score(value), self.weight)


TEXT_FEATURES = {
    "sentence_uniformity": FeatureTable(
        weight=0.22, direction=BELOW,
        tiers=((0.15, 0.90), (0.25, 0.70), (0.40, 0.45)), default=0.20,
    ),
    "transition_phrases": FeatureTable(
        weight=0.20, direction=ABOVE,
        tiers=((0.8, 0.92), (0.5, 0.78), (0.25, 0.55)), default=0.20,
    ),
    "vocabulary_richness": FeatureTable(
        weight=0.18, direction=BELOW,
        tiers=((0.40, 0.85), (0.55, 0.55), (0.70, 0.35)), default=0.15,
    ),
    "informal_punctuation": FeatureTable(
        weight=0.14, direction=BELOW,
        tiers=((0.05, 0.80), (0.15, 0.50), (0.30, 0.30)), default=0.10,
    ),
    "lexical_burstiness": FeatureTable(
        weight=0.13, direction=BELOW,
        tiers=((2.5, 0.75), (4.0, 0.45)), default=0.20,
    ),
    "paragraph_balance": FeatureTable(
        weight=0.13, direction=BELOW,
        tiers=((0.20, 0.82), (0.35, 0.55)), default=0.20,
    ),
}

# Display flags use their own cut-offs, independent of the score tiers.
TEXT_FLAG_CUTOFFS = {
    "sentence_uniformity": 0.25,
    "vocabulary_richness": 0.45,
    "lexical_burstiness": 2.5,
    "paragraph_balance": 0.25,
}

# Minimum evidence a text must provide before any feature is computed.
MIN_TEXT_WORDS = 10
MIN_USABLE_SENTENCES = 3
MIN_SENTENCE_WORDS = 3
MIN_PARAGRAPHS = 2
MIN_PARAGRAPH_CHARS = 21

# TTR decays with length; above this many words it is scaled back up.
TTR_LENGTH_PIVOT = 200
TTR_LENGTH_FACTOR = 0.3

IMAGE_VOTES = {
    "generator_signature": Vote(0.97, 10),
    "png_prompt_chunk":    Vote(0.94, 10),
    "png_creator_tool":    Vote(0.95, 10),
    "png_source_metadata": Vote(0.12, 3),
    "exif_ai_tool":        Vote(0.95, 10),
    "camera_model":        Vote(0.07, 4),
    "gps":                 Vote(0.06, 4),
    "capture_timestamp":   Vote(0.15, 2),
    "bare_exif":           Vote(0.50, 1),
    "missing_exif":        Vote(0.55, 0.5),
    "low_entropy":         Vote(0.65, 0.3),
}

# A single vote at or above this score replaces the weighted mean.
DEFINITIVE_SCORE = 0.94

NEUTRAL_SCORE = 0.5

PRESCAN_BYTES = 512 * 1024
PNG_SCAN_BYTES = 512 * 1024
PNG_TEXT_CHUNK_CAP = 4096
JPEG_SCAN_BYTES = 128 * 1024
ENTROPY_SAMPLE_BYTES = 2000
LOW_ENTROPY_VOTE_BELOW = 6.5
LOW_ENTROPY_FLAG_BELOW = 6.8
