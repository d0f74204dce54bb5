"""
Stylometric Text Engine
───────────────────────
Six independent signals, each turned into a weighted vote:

  1. Sentence uniformity   — CV of sentence lengths (AI prose is metronomic)
  2. Transition phrases    — density of stock connectives ("furthermore", ...)
  3. Vocabulary richness   — length-adjusted type-token ratio
  4. Informal punctuation  — dashes, ellipses, exclamation marks
  5. Lexical burstiness    — peak vs mean frequency of repeated words
  6. Paragraph balance     — CV of paragraph lengths

A feature whose own sample is too small still reports a signal but is left
out of the weighted mean entirely (it is not defaulted to neutral).
"""

import math
import re
import statistics
from collections import Counter

from authverifier_cli.detectors.models import (
    Evidence, Signal, FLAG_AI, FLAG_HUMAN, FLAG_UNCERTAIN, signals_of, votes_of,
)
from authverifier_cli.detectors.scoring import round_half_up, weighted_mean
from authverifier_cli.detectors import weights as W

_SENTENCE_RE = re.compile(r"[^.!?]+[.!?]+")
_WORD_RE = re.compile(r"\b[a-z']+\b", re.ASCII)
_PARAGRAPH_SPLIT_RE = re.compile(r"\n\s*\n")
_INFORMAL_RE = re.compile(r"[—–!]|\.\.\.|…")

AI_TRANSITION_PHRASES = [
    "furthermore", "moreover", "in addition", "it is worth noting",
    "it is important to note", "in conclusion", "to summarize", "in summary",
    "therefore", "thus", "additionally", "notably", "significantly",
    "interestingly", "importantly", "ultimately", "in essence", "overall",
    "needless to say", "that being said", "having said that", "with that said",
    "it can be argued", "it is clear that", "by and large", "to elaborate",
    "in other words",
]

_PHRASE_PATTERNS = [
    re.compile(r"\b" + r"\s+".join(map(re.escape, p.split())) + r"\b")
    for p in AI_TRANSITION_PHRASES
]


def _cv(values) -> float:
    """Population coefficient of variation."""
    mean = statistics.mean(values)
    if mean == 0:
        return 0.0
    return statistics.pstdev(values) / mean


def split_sentences(text: str) -> list:
    sentences = _SENTENCE_RE.findall(text)
    if not sentences:
        sentences = [line for line in text.split("\n") if line]
    return sentences


def tokenize_words(text: str) -> list:
    return _WORD_RE.findall(text.lower())


def usable_sentence_lengths(sentences) -> list:
    lengths = [len(s.split()) for s in sentences]
    return [n for n in lengths if n >= W.MIN_SENTENCE_WORDS]


def count_transition_phrases(text: str) -> int:
    lowered = text.lower()
    return sum(len(p.findall(lowered)) for p in _PHRASE_PATTERNS)


def count_informal_punctuation(text: str) -> int:
    return len(_INFORMAL_RE.findall(text))


# ─── Features ────────────────────────────────────────────────────────────────

def sentence_uniformity(sentence_lengths) -> Evidence:
    if len(sentence_lengths) < W.MIN_USABLE_SENTENCES:
        return Evidence(Signal(
            "Sentence Uniformity",
            f"Too few sentences to measure ({len(sentence_lengths)})",
            FLAG_UNCERTAIN,
        ))
    table = W.TEXT_FEATURES["sentence_uniformity"]
    cv = _cv(sentence_lengths)
    if cv < W.TEXT_FLAG_CUTOFFS["sentence_uniformity"]:
        signal = Signal("Sentence Uniformity", "Very uniform (AI-like)", FLAG_AI)
    else:
        signal = Signal("Sentence Uniformity", "Varied (human-like)", FLAG_HUMAN)
    return Evidence(signal, table.vote(cv))


def transition_phrases(text: str, sentence_count: int) -> Evidence:
    table = W.TEXT_FEATURES["transition_phrases"]
    hits = count_transition_phrases(text)
    rate = hits / max(sentence_count, 1)
    if hits > 2:
        level, flag = "high", FLAG_AI
    elif hits > 0:
        level, flag = "moderate", FLAG_UNCERTAIN
    else:
        level, flag = "none", FLAG_HUMAN
    return Evidence(
        Signal("AI Transition Phrases", f"{hits} found ({level})", flag),
        table.vote(rate),
    )


def adjusted_type_token_ratio(words) -> tuple:
    """Returns (raw_ttr, adjusted_ttr)."""
    total = len(words)
    ttr = len(set(words)) / total
    if total > W.TTR_LENGTH_PIVOT:
        return ttr, ttr * (1 + math.log10(total / W.TTR_LENGTH_PIVOT) * W.TTR_LENGTH_FACTOR)
    return ttr, ttr


def vocabulary_richness(words) -> Evidence:
    table = W.TEXT_FEATURES["vocabulary_richness"]
    ttr, adjusted = adjusted_type_token_ratio(words)
    flag = FLAG_AI if adjusted < W.TEXT_FLAG_CUTOFFS["vocabulary_richness"] else FLAG_HUMAN
    return Evidence(
        Signal("Vocabulary Richness", f"{round_half_up(ttr * 100)}% unique words", flag),
        table.vote(adjusted),
    )


def informal_punctuation(text: str, sentence_count: int) -> Evidence:
    table = W.TEXT_FEATURES["informal_punctuation"]
    count = count_informal_punctuation(text)
    rate = count / max(sentence_count, 1)
    if count == 0:
        signal = Signal("Informal Punctuation", "None (AI-like)", FLAG_AI)
    else:
        signal = Signal("Informal Punctuation", f"{count} instance(s)", FLAG_HUMAN)
    return Evidence(signal, table.vote(rate))


def burstiness(words) -> float:
    repeated = [c for c in Counter(words).values() if c > 1]
    if not repeated:
        return 1.0
    return max(repeated) / statistics.mean(repeated)


def lexical_burstiness(words) -> Evidence:
    table = W.TEXT_FEATURES["lexical_burstiness"]
    burst = burstiness(words)
    if burst < W.TEXT_FLAG_CUTOFFS["lexical_burstiness"]:
        signal = Signal("Lexical Burstiness", "Low — evenly spread (AI-like)", FLAG_AI)
    else:
        signal = Signal("Lexical Burstiness", "High — clustered (human-like)", FLAG_HUMAN)
    return Evidence(signal, table.vote(burst))


def paragraph_balance(text: str) -> Evidence:
    paragraphs = [
        p for p in _PARAGRAPH_SPLIT_RE.split(text)
        if len(p.strip()) >= W.MIN_PARAGRAPH_CHARS
    ]
    if len(paragraphs) < W.MIN_PARAGRAPHS:
        return Evidence(Signal(
            "Paragraph Balance", "Single block of text (not measured)", FLAG_UNCERTAIN,
        ))
    table = W.TEXT_FEATURES["paragraph_balance"]
    cv = _cv([len(p.split()) for p in paragraphs])
    if cv < W.TEXT_FLAG_CUTOFFS["paragraph_balance"]:
        signal = Signal("Paragraph Balance", "Highly balanced (AI-like)", FLAG_AI)
    else:
        signal = Signal("Paragraph Balance", "Varied lengths (human-like)", FLAG_HUMAN)
    return Evidence(signal, table.vote(cv))


def extract_text_evidence(text: str) -> tuple:
    """Ordered evidence for `text`; empty when there are too few words."""
    words = tokenize_words(text)
    if len(words) < W.MIN_TEXT_WORDS:
        return ()
    lengths = usable_sentence_lengths(split_sentences(text))
    return (
        sentence_uniformity(lengths),
        transition_phrases(text, len(lengths)),
        vocabulary_richness(words),
        informal_punctuation(text, len(lengths)),
        lexical_burstiness(words),
        paragraph_balance(text),
    )


class TextDetector:
    def analyze(self, text: str) -> dict:
        """
        Score `text` for AI-likeness.

        Returns {"score": float in [0, 1], "signals": [Signal, ...]}.
        """
        if not isinstance(text, str):
            raise TypeError(f"text must be str, not {type(text).__name__}")
        evidence = extract_text_evidence(text)
        return {
            "score": weighted_mean(votes_of(evidence)),
            "signals": signals_of(evidence),
        }


def score_text(text: str) -> dict:
    return TextDetector().analyze(text)
