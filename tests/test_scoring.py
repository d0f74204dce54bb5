"""Tests for aggregation, blending and verdict classification."""

import pytest

from authverifier_cli.detectors.models import DetectionResult, Signal, Vote
from authverifier_cli.detectors.scoring import (
    AI_GENERATED, HUMAN_WRITTEN, IMAGE, REAL_IMAGE, TEXT, UNCERTAIN,
    VerdictClassifier, aggregate_image, blend_secondary, round_half_up,
    secondary_signal, weighted_mean,
)

classifier = VerdictClassifier()


# --- Aggregation ---


def test_weighted_mean_of_nothing_is_neutral():
    assert weighted_mean([]) == 0.5
    assert aggregate_image([]) == 0.5


def test_weighted_mean():
    votes = [Vote(0.9, 3), Vote(0.1, 1)]
    assert weighted_mean(votes) == pytest.approx(0.7)


def test_definitive_vote_dominates_the_mean():
    votes = [Vote(0.12, 3), Vote(0.94, 10), Vote(0.07, 4)]
    assert aggregate_image(votes) == 0.94


def test_strongest_definitive_vote_wins():
    votes = [Vote(0.94, 10), Vote(0.97, 10), Vote(0.12, 3)]
    assert aggregate_image(votes) == 0.97


def test_image_mean_stays_within_vote_range():
    votes = [Vote(0.55, 0.5), Vote(0.65, 0.3), Vote(0.07, 4)]
    result = aggregate_image(votes)
    assert 0.07 <= result <= 0.65


def test_strong_human_evidence_has_no_override():
    votes = [Vote(0.01, 10), Vote(0.9, 10)]
    assert aggregate_image(votes) == pytest.approx(0.455)


def test_vote_scores_are_clamped_and_weights_must_be_positive():
    assert Vote(1.7, 1).score == 1.0
    assert Vote(-0.2, 1).score == 0.0
    with pytest.raises(ValueError):
        Vote(0.5, 0)


def test_signal_flag_is_validated():
    with pytest.raises(ValueError):
        Signal("Name", "value", "maybe")


# --- Secondary blending ---


def test_blend_secondary():
    assert blend_secondary(0.5, 1.0) == pytest.approx(0.8)
    assert blend_secondary(0.2, 0.0) == pytest.approx(0.08)


@pytest.mark.parametrize("secondary, flag", [
    (0.61, "ai"),
    (0.6, "uncertain"),
    (0.41, "uncertain"),
    (0.4, "human"),
])
def test_secondary_signal_flag(secondary, flag):
    signal = secondary_signal("Sapling AI", secondary)
    assert signal.name == "Sapling AI Engine"
    assert signal.flag == flag


def test_secondary_signal_value():
    assert secondary_signal("Claude", 0.875).value == "88% AI probability"


# --- Verdicts ---


def test_round_half_up():
    assert round_half_up(62.5) == 63
    assert round_half_up(0.5) == 1
    assert round_half_up(49.49) == 49


@pytest.mark.parametrize("p, kind, verdict", [
    (0.69, TEXT, AI_GENERATED),
    (0.68, TEXT, UNCERTAIN),
    (0.43, TEXT, UNCERTAIN),
    (0.42, TEXT, HUMAN_WRITTEN),
    (0.42, IMAGE, REAL_IMAGE),
    (0.95, IMAGE, AI_GENERATED),
])
def test_verdict_thresholds(p, kind, verdict):
    assert classifier.verdict(p, kind) == verdict


@pytest.mark.parametrize("p, kind, confidence", [
    (0.83, TEXT, "High"),
    (0.82, TEXT, "Medium"),
    (0.63, TEXT, "Medium"),
    (0.50, TEXT, "Low"),
    (0.34, TEXT, "Medium"),
    (0.17, TEXT, "High"),
    (0.81, IMAGE, "High"),
    (0.80, IMAGE, "Medium"),
    (0.37, IMAGE, "Medium"),
    (0.38, IMAGE, "Low"),
    (0.07, IMAGE, "High"),
])
def test_confidence_bands(p, kind, confidence):
    assert classifier.confidence(p, kind) == confidence


def test_classify_builds_result():
    signals = [Signal("Camera EXIF", "confirmed", "human")]
    result = classifier.classify(0.07, IMAGE, signals)

    assert isinstance(result, DetectionResult)
    assert result.ai_probability == 7
    assert result.human_probability == 93
    assert result.verdict == REAL_IMAGE
    assert result.confidence == "High"
    assert result.signals == signals


@pytest.mark.parametrize("p", [0.0, 0.005, 0.125, 0.5, 0.6224, 0.945, 1.0])
def test_probabilities_add_up_to_100(p):
    result = classifier.classify(p, TEXT)
    assert result.ai_probability + result.human_probability == 100


def test_classify_rejects_unknown_kind():
    with pytest.raises(ValueError):
        classifier.classify(0.5, "audio")


def test_result_to_dict():
    result = classifier.classify(0.6224, TEXT, [Signal("A", "b", "ai")], engine="Heuristic Engine")
    assert result.to_dict() == {
        "aiProbability": 62,
        "humanProbability": 38,
        "verdict": UNCERTAIN,
        "confidence": "Medium",
        "signals": [{"name": "A", "value": "b", "flag": "ai"}],
        "engine": "Heuristic Engine",
    }
