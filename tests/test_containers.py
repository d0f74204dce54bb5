"""Tests for the bounded PNG and JPEG walkers."""

import struct
import zlib

import pytest

from authverifier_cli.detectors.containers import (
    JPEG_APP1, JPEG_SOS, PngChunk, iter_jpeg_segments, iter_png_chunks, png_text,
)

from conftest import PNG_SIGNATURE, make_jpeg, make_png, png_chunk


# --- PNG ---


def test_png_walk_stops_at_idat():
    data = make_png([("tEXt", b"Author\x00me")], idat=True)
    data += png_chunk("tEXt", b"Late\x00after image data")

    types = [c.type for c in iter_png_chunks(data)]
    assert types == ["IHDR", "tEXt", "IDAT"]


def test_png_walk_stops_at_oversized_length():
    data = PNG_SIGNATURE + png_chunk("IHDR", b"\x00" * 13) + struct.pack(">I", 10 ** 6) + b"tEXt" + b"short"
    types = [c.type for c in iter_png_chunks(data)]
    assert types == ["IHDR"]


def test_png_payload_is_capped_but_length_kept():
    data = make_png([("tEXt", b"Comment\x00" + b"x" * 10000)])
    chunk = [c for c in iter_png_chunks(data, payload_cap=64) if c.type == "tEXt"][0]
    assert chunk.length == 10008
    assert len(chunk.payload) == 64


@pytest.mark.parametrize("data", [
    PNG_SIGNATURE,
    PNG_SIGNATURE + b"\x00\x00",
    PNG_SIGNATURE + b"\xff\xff\xff\xff" + b"IHDR",
    b"\x89P",
])
def test_png_walk_never_raises_on_truncated_input(data):
    assert list(iter_png_chunks(data)) == []


def test_png_text_inflates_ztxt():
    payload = b"Comment\x00\x00" + zlib.compress(b"Steps: 20, Sampler: Euler a")
    chunk = PngChunk("zTXt", 0, len(payload), payload)
    assert png_text(chunk) == b"Comment\x00Steps: 20, Sampler: Euler a"


def test_png_text_inflates_compressed_itxt():
    payload = b"parameters\x00\x01\x00en\x00\x00" + zlib.compress(b"cfg scale: 7")
    chunk = PngChunk("iTXt", 0, len(payload), payload)
    assert png_text(chunk) == b"parameters\x00cfg scale: 7"


def test_png_text_keeps_uncompressed_and_corrupt_payloads():
    plain = PngChunk("tEXt", 0, 9, b"Title\x00Cat")
    assert png_text(plain) == b"Title\x00Cat"

    corrupt = PngChunk("zTXt", 0, 12, b"Comment\x00\x00nope")
    assert png_text(corrupt) == b"Comment\x00\x00nope"


def test_png_text_inflation_is_capped():
    payload = b"Comment\x00\x00" + zlib.compress(b"a" * 100000)
    chunk = PngChunk("zTXt", 0, len(payload), payload)
    assert len(png_text(chunk, cap=100)) == len(b"Comment\x00") + 100


# --- JPEG ---


def test_jpeg_walk_yields_segments_up_to_sos():
    data = make_jpeg([(0xE0, b"JFIF\x00"), (JPEG_APP1, b"Exif\x00\x00")], scan=b"\x12" * 50)
    segments = list(iter_jpeg_segments(data))

    assert [s.marker for s in segments] == [0xE0, JPEG_APP1, JPEG_SOS]
    assert segments[0].payload == b"JFIF\x00"
    assert segments[0].offset == 2
    assert not any(s.truncated for s in segments)


def test_jpeg_walk_skips_fill_and_stray_bytes():
    data = b"\xff\xd8" + b"\x00\x13\xff\xff" + b"\xff\xe1\x00\x06Exif" + b"\xff\xd9"
    segments = list(iter_jpeg_segments(data))
    assert [(s.marker, s.payload) for s in segments] == [(JPEG_APP1, b"Exif")]


def test_jpeg_walk_does_not_stop_at_sos_inside_a_segment():
    app1 = b"Exif\x00\x00" + b"thumb\xff\xda\x00\x02data" + b"Canon"
    data = make_jpeg([(JPEG_APP1, app1)], scan=b"\x00" * 10)
    segments = list(iter_jpeg_segments(data))

    assert segments[0].payload == app1
    assert segments[-1].marker == JPEG_SOS
    assert segments[-1].offset == 2 + 4 + len(app1)


def test_jpeg_truncated_segment_ends_walk():
    data = b"\xff\xd8\xff\xe1\x01\x00Exif\x00\x00Canon"
    segments = list(iter_jpeg_segments(data))

    assert len(segments) == 1
    assert segments[0].truncated
    assert segments[0].payload == b"Exif\x00\x00Canon"


@pytest.mark.parametrize("data", [
    b"\xff\xd8",
    b"\xff\xd8\xff",
    b"\xff\xd8\xff\xe1",
    b"\xff\xd8\xff\xe1\x00",
    b"\xff\xd8\xff\xe1\x00\x01rest",
    b"\xff\xd8" + b"\xff" * 100,
])
def test_jpeg_walk_never_raises_on_malformed_input(data):
    assert all(s.marker != 0xFF for s in iter_jpeg_segments(data))


def test_jpeg_walk_respects_scan_limit():
    filler = b"\xff\xe2\xff\xff" + b"\x00" * 0xFFFD
    data = b"\xff\xd8" + filler * 4 + b"\xff\xe1\x00\x06Exif"
    markers = [s.marker for s in iter_jpeg_segments(data, scan_limit=128 * 1024)]
    assert JPEG_APP1 not in markers

