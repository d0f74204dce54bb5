import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

SECONDARY_ENGINES = ("sapling", "claude", "none")


@dataclass(frozen=True)
class Settings:
    sapling_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    serpapi_api_key: Optional[str] = None
    secondary_engine: str = "sapling"
    claude_model: str = "claude-3-5-haiku-latest"
    secondary_timeout: float = 10.0
    search_timeout: float = 15.0
    max_image_bytes: int = 10 * 1024 * 1024
    min_text_chars: int = 20
    log_level: str = "WARNING"


def _env_number(name: str, default, cast):
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = cast(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r, using %s", name, raw, default)
        return default
    if value <= 0:
        logger.warning("Ignoring non-positive %s=%r, using %s", name, raw, default)
        return default
    return value


def load_settings(dotenv: bool = True) -> Settings:
    """Read settings from the environment (and a .env file when present)."""
    if dotenv:
        load_dotenv()
    defaults = Settings()

    engine = os.getenv("AUTHVERIFIER_SECONDARY_ENGINE", defaults.secondary_engine).strip().lower()
    if engine not in SECONDARY_ENGINES:
        logger.warning("Unknown secondary engine %r, using %r", engine, defaults.secondary_engine)
        engine = defaults.secondary_engine

    return Settings(
        sapling_api_key=os.getenv("SAPLING_API_KEY") or None,
        anthropic_api_key=os.getenv("ANTHROPIC_API_KEY") or None,
        serpapi_api_key=os.getenv("SERPAPI_API_KEY") or None,
        secondary_engine=engine,
        claude_model=os.getenv("AUTHVERIFIER_CLAUDE_MODEL", defaults.claude_model),
        secondary_timeout=_env_number("AUTHVERIFIER_SECONDARY_TIMEOUT", defaults.secondary_timeout, float),
        search_timeout=_env_number("AUTHVERIFIER_SEARCH_TIMEOUT", defaults.search_timeout, float),
        max_image_bytes=_env_number("AUTHVERIFIER_MAX_IMAGE_BYTES", defaults.max_image_bytes, int),
        min_text_chars=_env_number("AUTHVERIFIER_MIN_TEXT_CHARS", defaults.min_text_chars, int),
        log_level=os.getenv("AUTHVERIFIER_LOG_LEVEL", defaults.log_level).upper(),
    )
