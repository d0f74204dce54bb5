"""
Analysis Pipeline
─────────────────
Caller layer around the pure detectors:

  • rejects text that is too short and images that are too large
  • runs the secondary text scorer and the source search concurrently, each
    with its own timeout; a failure of either only removes its contribution
  • blends the secondary score into the heuristic one (text only)
  • downloads images given by URL into a temporary file that is always removed
  • classifies the final probability into a DetectionResult

Reports are plain dicts: {"type", "detection", "sources"}.
"""

import logging
import mimetypes
import os
import tempfile
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from contextlib import contextmanager
from pathlib import Path

import requests

from authverifier_cli.detectors.image import UNKNOWN, WEBP, score_image
from authverifier_cli.detectors.scoring import IMAGE, TEXT, VerdictClassifier, blend_secondary, secondary_signal
from authverifier_cli.detectors.text import score_text
from authverifier_cli.errors import InputSourceError, ImageTooLargeError, InputTooShortError
from authverifier_cli.services.secondary import build_secondary_scorer
from authverifier_cli.services.sources import SourceSearch

logger = logging.getLogger(__name__)

TEXT_SUFFIXES = {".txt", ".md"}
IMAGE_SUFFIXES = {".png", ".jpg", ".jpeg", ".webp"}

HEURISTIC_ENGINE = "Heuristic Engine"
# Grace period on top of a collaborator's own HTTP timeout.
_RESULT_GRACE = 5.0

_classifier = VerdictClassifier()


def _collect(future, default, label: str, timeout: float):
    if future is None:
        return default
    try:
        return future.result(timeout=timeout)
    except FutureTimeout:
        logger.warning("%s timed out after %.0fs", label, timeout)
    except Exception as e:
        logger.warning("%s failed: %s", label, e)
    return default


def analyze_text(text: str, settings, online: bool = True, scorer=None, search=None) -> dict:
    if not isinstance(text, str):
        raise TypeError(f"text must be str, not {type(text).__name__}")
    if len(text.strip()) < settings.min_text_chars:
        raise InputTooShortError(settings.min_text_chars)

    heuristic = score_text(text)
    secondary = None
    sources = []

    if online:
        scorer = scorer if scorer is not None else build_secondary_scorer(settings)
        search = search if search is not None else SourceSearch(settings.serpapi_api_key, settings.search_timeout)
        pool = ThreadPoolExecutor(max_workers=2, thread_name_prefix="collaborator")
        try:
            secondary_future = pool.submit(scorer.score, text) if scorer is not None else None
            sources_future = pool.submit(search.search_text, text)
            secondary = _collect(secondary_future, None, "Secondary scorer",
                                 settings.secondary_timeout + _RESULT_GRACE)
            sources = _collect(sources_future, [], "Source search", settings.search_timeout + _RESULT_GRACE)
        finally:
            pool.shutdown(wait=False, cancel_futures=True)

    signals = list(heuristic["signals"])
    if secondary is not None:
        probability = blend_secondary(heuristic["score"], secondary)
        signals.insert(0, secondary_signal(scorer.name, secondary))
        engine = f"{scorer.name} + Heuristics"
    else:
        probability = heuristic["score"]
        engine = HEURISTIC_ENGINE

    note = None
    if not heuristic["signals"]:
        note = "Too few words for stylometric analysis; the heuristic score is neutral."

    detection = _classifier.classify(probability, TEXT, signals, note=note, engine=engine)
    return {"type": TEXT, "detection": detection, "sources": sources}


def analyze_image_bytes(data: bytes, settings, mime_type: str = None, online: bool = True,
                        image_url: str = None, search=None) -> dict:
    if len(data) > settings.max_image_bytes:
        raise ImageTooLargeError(len(data), settings.max_image_bytes)

    result = score_image(data, mime_type)
    sources = []
    if online and image_url:
        search = search if search is not None else SourceSearch(settings.serpapi_api_key, settings.search_timeout)
        sources = search.search_image(image_url)

    note = None
    if result["format"] in (WEBP, UNKNOWN):
        note = "This format carries no byte-level provenance we can read; the estimate is neutral."
    detection = _classifier.classify(result["score"], IMAGE, result["signals"], note=note)
    return {"type": IMAGE, "detection": detection, "sources": sources}


def is_url(source: str) -> bool:
    return source.lower().startswith(("http://", "https://"))


@contextmanager
def downloaded_image(url: str, settings):
    """
    Stream `url` into a temporary file, yielding (file, content_type).
    The file is deleted when the block exits, whether or not it succeeded.
    """
    try:
        resp = requests.get(url, stream=True, timeout=settings.search_timeout)
        resp.raise_for_status()
    except requests.RequestException as e:
        raise InputSourceError(f"Could not download {url}: {e}") from e

    with resp, tempfile.NamedTemporaryFile(prefix="authverifier_") as tmp:
        size = 0
        try:
            for chunk in resp.iter_content(chunk_size=64 * 1024):
                size += len(chunk)
                if size > settings.max_image_bytes:
                    raise ImageTooLargeError(size, settings.max_image_bytes)
                tmp.write(chunk)
        except requests.RequestException as e:
            raise InputSourceError(f"Download of {url} was interrupted: {e}") from e
        tmp.flush()
        tmp.seek(0)
        logger.debug("downloaded %d bytes from %s into %s", size, url, tmp.name)
        yield tmp, resp.headers.get("Content-Type")


def read_image_file(path: Path, settings) -> bytes:
    try:
        size = os.path.getsize(path)
        if size > settings.max_image_bytes:
            raise ImageTooLargeError(size, settings.max_image_bytes)
        with open(path, "rb") as f:
            return f.read()
    except OSError as e:
        raise InputSourceError(f"Could not read {path}: {e}") from e


def analyze_image(source: str, settings, mime_type: str = None, online: bool = True, search=None) -> dict:
    """Analyze an image given as a local path or an http(s) URL."""
    if is_url(source):
        with downloaded_image(source, settings) as (tmp, content_type):
            data = tmp.read()
        return analyze_image_bytes(data, settings, mime_type or content_type, online=online,
                                   image_url=source, search=search)

    path = Path(source)
    data = read_image_file(path, settings)
    mime_type = mime_type or mimetypes.guess_type(path.name)[0]
    return analyze_image_bytes(data, settings, mime_type, online=online, search=search)


def analyze_path(path: Path, settings, online: bool = True) -> dict:
    """Dispatch a file to the text or image pipeline by its suffix."""
    suffix = path.suffix.lower()
    if suffix in TEXT_SUFFIXES:
        try:
            text = path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            raise InputSourceError(f"Could not read {path}: {e}") from e
        return analyze_text(text, settings, online=online)
    if suffix in IMAGE_SUFFIXES:
        return analyze_image(str(path), settings, online=online)
    raise ValueError(f"Unsupported file type: {path.name}")


def batch_candidates(directory: Path, count: int) -> list:
    files = sorted(
        p for p in directory.iterdir()
        if p.is_file() and p.suffix.lower() in TEXT_SUFFIXES | IMAGE_SUFFIXES
    )
    return files[:count]


def report_to_dict(report: dict) -> dict:
    return {
        "type": report["type"],
        "detection": report["detection"].to_dict(),
        "sources": report["sources"],
    }
