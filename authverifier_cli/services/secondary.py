"""
Secondary Text Scorers
──────────────────────
Optional third-party AI-probability for text, blended with the heuristic
score by the pipeline. Every scorer returns a float in [0, 1] or None when it
is unavailable (no key, network error, timeout, unparseable reply); it never
raises for those.
"""

import logging
import re
from typing import Optional

import anthropic
import requests

from authverifier_cli.detectors.models import clamp

logger = logging.getLogger(__name__)


class SaplingScorer:
    name = "Sapling AI"
    URL = "https://api.sapling.ai/api/v1/aidetect"

    def __init__(self, api_key: Optional[str], timeout: float = 10.0):
        self.api_key = api_key
        self.timeout = timeout

    def score(self, text: str) -> Optional[float]:
        if not self.api_key:
            return None
        try:
            resp = requests.post(self.URL, json={"key": self.api_key, "text": text}, timeout=self.timeout)
            resp.raise_for_status()
            payload = resp.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning("Sapling AI unavailable: %s", e)
            return None
        score = payload.get("score") if isinstance(payload, dict) else None
        if isinstance(score, bool) or not isinstance(score, (int, float)):
            logger.warning("Sapling AI returned no usable score")
            return None
        return clamp(float(score))


_CLAUDE_PROMPT = (
    "Estimate how likely it is that the following text was written by an AI "
    "language model rather than a person. Reply with a single integer from 0 "
    "(certainly human) to 100 (certainly AI) and nothing else.\n\n"
    "<text>\n{text}\n</text>"
)
_NUMBER_RE = re.compile(r"\d+(?:\.\d+)?")


class ClaudeScorer:
    name = "Claude"
    MAX_CHARS = 8000

    def __init__(self, api_key: Optional[str], model: str, timeout: float = 10.0):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout

    def _ask(self, text: str) -> str:
        client = anthropic.Anthropic(api_key=self.api_key, timeout=self.timeout, max_retries=0)
        message = client.messages.create(
            model=self.model,
            max_tokens=8,
            messages=[{"role": "user", "content": _CLAUDE_PROMPT.format(text=text[:self.MAX_CHARS])}],
        )
        return "".join(block.text for block in message.content if getattr(block, "type", None) == "text")

    def score(self, text: str) -> Optional[float]:
        if not self.api_key:
            return None
        try:
            reply = self._ask(text)
        except anthropic.APIError as e:
            logger.warning("Claude scorer unavailable: %s", e)
            return None
        match = _NUMBER_RE.search(reply)
        if not match:
            logger.warning("Claude scorer reply had no number: %r", reply)
            return None
        return clamp(float(match.group()) / 100)


def build_secondary_scorer(settings):
    """Scorer selected by settings, or None when disabled."""
    if settings.secondary_engine == "sapling":
        return SaplingScorer(settings.sapling_api_key, timeout=settings.secondary_timeout)
    if settings.secondary_engine == "claude":
        return ClaudeScorer(settings.anthropic_api_key, settings.claude_model, timeout=settings.secondary_timeout)
    return None
