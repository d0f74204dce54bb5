import logging
import re
from typing import Optional

import requests

logger = logging.getLogger(__name__)

MAX_SOURCES = 5
_NON_ALNUM_RE = re.compile(r"[^a-zA-Z0-9 ]")
_SPACES_RE = re.compile(r"\s+")


def query_snippet(text: str, length: int = 120) -> str:
    """First `length` chars with punctuation turned into single spaces."""
    return _SPACES_RE.sub(" ", _NON_ALNUM_RE.sub(" ", text[:length])).strip()


class SourceSearch:
    """
    Best-effort supporting sources via SerpAPI: Google web search for text,
    Google Lens for images reachable by URL. Any failure yields [].
    """

    URL = "https://serpapi.com/search"

    def __init__(self, api_key: Optional[str], timeout: float = 15.0):
        self.api_key = api_key
        self.timeout = timeout

    def _get(self, params: dict) -> dict:
        if not self.api_key:
            return {}
        try:
            resp = requests.get(self.URL, params={**params, "api_key": self.api_key}, timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning("SerpAPI %s search failed: %s", params.get("engine"), e)
            return {}
        return data if isinstance(data, dict) else {}

    def search_text(self, text: str) -> list:
        snippet = query_snippet(text)
        if not snippet:
            return []
        data = self._get({"q": f'"{snippet}"', "num": MAX_SOURCES, "engine": "google"})
        results = [r for r in data.get("organic_results") or [] if isinstance(r, dict)]
        return [
            {
                "title": r.get("title"),
                "url": r.get("link"),
                "snippet": r.get("snippet"),
                "displayUrl": r.get("displayed_link") or r.get("link"),
            }
            for r in results[:MAX_SOURCES]
        ]

    def search_image(self, image_url: Optional[str]) -> list:
        if not image_url:
            return []
        data = self._get({"engine": "google_lens", "url": image_url})
        results = data.get("visual_matches") or data.get("image_results") or data.get("organic_results") or []
        results = [r for r in results if isinstance(r, dict)]
        return [
            {
                "title": r.get("title"),
                "url": r.get("link") or r.get("source"),
                "snippet": r.get("snippet") or r.get("source") or "",
                "displayUrl": r.get("displayed_link") or r.get("link") or r.get("source"),
                "thumbnail": r.get("thumbnail"),
            }
            for r in results[:MAX_SOURCES]
        ]
