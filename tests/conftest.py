"""
Pytest fixtures for AuthVerifier tests. Images are built byte by byte so no
sample files or network access are needed.
"""

import struct
import zlib

import pytest

from authverifier_cli.config import Settings

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"

# Six sentences of 8/9/8/9/8/9 words with three stock transitions.
UNIFORM_TEXT = (
    "Furthermore the platform stores each record very safely. "
    "The team reviews the platform logs every single week. "
    "Moreover the platform sends each report to users. "
    "The users read the report and share their feedback. "
    "Furthermore the team improves the platform each month. "
    "The feedback helps the team keep the platform stable."
)

CASUAL_TEXT = (
    "Honestly? I didn't expect the trip to go this way... We missed the first "
    "train — twice! My sister laughed so hard she nearly dropped her coffee. "
    "Then the rain came. Hours of it, relentless, soaking every bag we had "
    "packed with such care that morning.\n\n"
    "But the hostel owner, a retired sailor named Marco, lit a fire and told "
    "stories until midnight. Best night of the whole summer, no question."
)


def png_chunk(chunk_type: str, data: bytes) -> bytes:
    kind = chunk_type.encode("latin-1")
    crc = zlib.crc32(kind + data) & 0xFFFFFFFF
    return struct.pack(">I", len(data)) + kind + data + struct.pack(">I", crc)


def make_png(chunks=(), idat=True) -> bytes:
    """PNG with an IHDR, the given (type, payload) chunks, then IDAT/IEND."""
    ihdr = struct.pack(">IIBBBBB", 1, 1, 8, 2, 0, 0, 0)
    out = PNG_SIGNATURE + png_chunk("IHDR", ihdr)
    for chunk_type, data in chunks:
        out += png_chunk(chunk_type, data)
    if idat:
        out += png_chunk("IDAT", zlib.compress(b"\x00\x00\x00\x00"))
    return out + png_chunk("IEND", b"")


def jpeg_segment(marker: int, payload: bytes) -> bytes:
    return bytes([0xFF, marker]) + struct.pack(">H", len(payload) + 2) + payload


def make_jpeg(segments=(), scan: bytes = None) -> bytes:
    """SOI, the given (marker, payload) segments, then SOS + `scan` when given."""
    out = b"\xff\xd8"
    for marker, payload in segments:
        out += jpeg_segment(marker, payload)
    if scan is not None:
        out += b"\xff\xda\x00\x02" + scan
    return out + b"\xff\xd9"


def make_exif(tags=(), text: bytes = b"", byte_order: str = "II") -> bytes:
    """APP1 Exif payload: a TIFF header, IFD0 with `tags`, then `text`."""
    order = "<" if byte_order == "II" else ">"
    tiff = byte_order.encode() + struct.pack(order + "HI", 42, 8)
    tiff += struct.pack(order + "H", len(tags))
    for tag in tags:
        tiff += struct.pack(order + "HHII", tag, 4, 1, 0)
    tiff += struct.pack(order + "I", 0) + text
    return b"Exif\x00\x00" + tiff


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every variable load_settings() reads."""
    for name in (
        "SAPLING_API_KEY", "ANTHROPIC_API_KEY", "SERPAPI_API_KEY",
        "AUTHVERIFIER_SECONDARY_ENGINE", "AUTHVERIFIER_CLAUDE_MODEL",
        "AUTHVERIFIER_SECONDARY_TIMEOUT", "AUTHVERIFIER_SEARCH_TIMEOUT",
        "AUTHVERIFIER_MAX_IMAGE_BYTES", "AUTHVERIFIER_MIN_TEXT_CHARS",
        "AUTHVERIFIER_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch
