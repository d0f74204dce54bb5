"""
Bounded Container Walkers
─────────────────────────
Minimal PNG chunk and JPEG marker walkers used by the image engine.

Every read is bounds-checked against the buffer before the cursor advances,
and every walk has a byte budget, so corrupt or hostile input can only end a
walk early. None of these functions raise for any byte sequence.
"""

import logging
import struct
import zlib
from collections import namedtuple

from authverifier_cli.detectors.weights import JPEG_SCAN_BYTES, PNG_SCAN_BYTES, PNG_TEXT_CHUNK_CAP

logger = logging.getLogger(__name__)

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
PNG_TEXT_CHUNKS = ("tEXt", "iTXt", "zTXt")
PNG_STOP_CHUNKS = ("IDAT", "IEND")

JPEG_SOI = b"\xff\xd8"
JPEG_SOS = 0xDA
JPEG_APP1 = 0xE1
# Markers that stand alone, without a length field.
JPEG_STANDALONE = frozenset([0x01, 0xD8, 0xD9] + list(range(0xD0, 0xD8)))

PngChunk = namedtuple("PngChunk", ["type", "offset", "length", "payload"])
JpegSegment = namedtuple("JpegSegment", ["marker", "offset", "payload", "truncated"])


# ─── PNG ─────────────────────────────────────────────────────────────────────

def iter_png_chunks(data: bytes, scan_limit: int = PNG_SCAN_BYTES, payload_cap: int = PNG_TEXT_CHUNK_CAP):
    """
    Yield chunks after the 8-byte signature. Payloads are truncated to
    `payload_cap` bytes. The walk ends after IDAT/IEND, at a declared length
    that is out of range or runs past the buffer, or at `scan_limit`.
    """
    view = memoryview(data)
    size = len(view)
    end = min(size, scan_limit)
    pos = len(PNG_SIGNATURE)
    while pos + 8 <= end:
        (length,) = struct.unpack_from(">I", view, pos)
        if length > scan_limit or pos + 8 + length > size:
            logger.debug("PNG chunk at %d declares %d bytes, stopping walk", pos, length)
            return
        chunk_type = bytes(view[pos + 4:pos + 8]).decode("latin-1")
        payload = bytes(view[pos + 8:pos + 8 + min(length, payload_cap)])
        yield PngChunk(chunk_type, pos, length, payload)
        if chunk_type in PNG_STOP_CHUNKS:
            return
        pos += 12 + length


def _inflate(data: bytes, cap: int):
    try:
        return zlib.decompressobj().decompress(data, cap)
    except zlib.error:
        return None


def png_text(chunk: PngChunk, cap: int = PNG_TEXT_CHUNK_CAP) -> bytes:
    """
    Readable bytes of a text chunk: `keyword\\0text`, with zTXt and
    compressed iTXt inflated. Falls back to the raw payload if inflating fails.
    """
    keyword, sep, rest = chunk.payload.partition(b"\x00")
    if not sep:
        return chunk.payload
    if chunk.type == "zTXt" and rest:
        text = _inflate(rest[1:], cap)
    elif chunk.type == "iTXt" and len(rest) >= 2 and rest[0] == 1:
        # compression flag, method, language tag \0, translated keyword \0
        fields = rest[2:].split(b"\x00", 2)
        text = _inflate(fields[2], cap) if len(fields) == 3 else None
    else:
        return chunk.payload
    if text is None:
        return chunk.payload
    return keyword + b"\x00" + text


# ─── JPEG ────────────────────────────────────────────────────────────────────

def iter_jpeg_segments(data: bytes, scan_limit: int = JPEG_SCAN_BYTES):
    """
    Yield marker segments after SOI, ending with (and including) the first
    start-of-scan segment. Stray bytes and fill bytes are skipped one at a
    time; a segment running past the buffer is yielded truncated and ends
    the walk.
    """
    view = memoryview(data)
    size = len(view)
    end = min(size, scan_limit)
    pos = len(JPEG_SOI)
    while pos + 1 < end:
        if view[pos] != 0xFF:
            pos += 1
            continue
        marker = view[pos + 1]
        if marker in (0xFF, 0x00):
            pos += 1
            continue
        if marker in JPEG_STANDALONE:
            pos += 2
            continue
        if pos + 4 > size:
            return
        (length,) = struct.unpack_from(">H", view, pos + 2)
        if length < 2:
            logger.debug("JPEG marker %02X at %d has invalid length %d", marker, pos, length)
            return
        seg_end = pos + 2 + length
        truncated = seg_end > size
        yield JpegSegment(marker, pos, bytes(view[pos + 4:min(seg_end, size)]), truncated)
        if marker == JPEG_SOS or truncated:
            return
        pos = seg_end

