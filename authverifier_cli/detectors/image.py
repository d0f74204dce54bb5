"""
Image Provenance Engine
───────────────────────
Looks for generator fingerprints and camera / editing provenance directly in
the file bytes; pixels are never decoded.

  • Signature pre-scan — AI tool names and generation-parameter keys anywhere
                          in the first 512 KB
  • PNG               — tEXt / iTXt / zTXt prompt chunks, creator software,
                          editing software, embedded eXIf
  • JPEG              — APP1 Exif (camera maker, GPS, capture date), APP1 XMP
                          creator tools, entropy of the first scan bytes
  • WebP / other      — no byte-level evidence, reported as inconclusive

A named AI tool found by the pre-scan is reported once, by the pre-scan; a bare
parameter key gives way to the PNG chunk or tag that explains it.
A single definitive generator signature (vote >= 0.94) overrides the mean.
Missing metadata is never treated as evidence of AI by itself.
"""

import logging
import re

import numpy as np
from PIL import ExifTags, Image

from authverifier_cli.detectors.containers import (
    JPEG_APP1, JPEG_SOI, JPEG_SOS, PNG_TEXT_CHUNKS,
    iter_jpeg_segments, iter_png_chunks, png_text,
)
from authverifier_cli.detectors.models import (
    Evidence, Signal, FLAG_AI, FLAG_HUMAN, FLAG_UNCERTAIN, signals_of, votes_of,
)
from authverifier_cli.detectors.scoring import aggregate_image
from authverifier_cli.detectors import weights as W

logger = logging.getLogger(__name__)

PNG = "png"
JPEG = "jpeg"
WEBP = "webp"
UNKNOWN = "unknown"

_MIME_FORMATS = {
    "image/png": PNG,
    "image/jpeg": JPEG,
    "image/jpg": JPEG,
    "image/webp": WEBP,
}

AI_TOOLS = [
    "stable diffusion", "dall-e", "dall·e", "midjourney", "adobe firefly",
    "leonardo.ai", "novel ai", "comfyui", "automatic1111", "invokeai",
    "diffusers", "dreamstudio", "getimg.ai", "nightcafe", "artbreeder",
    "bluewillow", "bing image creator", "generative fill",
    "ai generated", "generated by ai", "wombo", "runway ml",
    # IPTC digital source type written by C2PA-aware generators
    "trainedalgorithmicmedia",
]

AI_PARAM_KEYS = [
    "parameters\x00", "prompt\x00", "negative_prompt", "negative prompt",
    "sd model", "cfg scale", "sampler name", "steps\x00",
]

PNG_PROMPT_KEYWORDS = [
    "parameters", "negative prompt", "negative_prompt", "cfg scale", "sampler", "seed:",
]

_SOURCE_SOFTWARE_RE = re.compile(
    r"photoshop|lightroom|gimp|affinity|darktable|capture one|camera raw", re.IGNORECASE,
)
_CAMERA_MAKER_RE = re.compile(
    r"canon|nikon|sony|apple|iphone|samsung|fujifilm|panasonic|olympus|leica"
    r"|pentax|ricoh|xiaomi|huawei|google|oneplus|motorola",
    re.IGNORECASE,
)
_GPS_RE = re.compile(r"gps", re.IGNORECASE)
_DATE_RE = re.compile(r"20\d\d[:\-]\d\d[:\-]\d\d")


def detect_format(data: bytes, mime_type: str = None) -> str:
    """Magic bytes first, declared MIME type as fallback."""
    if data[:2] == b"\x89\x50":
        return PNG
    if data[:2] == JPEG_SOI:
        return JPEG
    if len(data) > 12 and data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return WEBP
    declared = (mime_type or "").split(";")[0].strip().lower()
    return _MIME_FORMATS.get(declared, UNKNOWN)


def _find_tool(lowered: str):
    for tool in AI_TOOLS:
        if tool in lowered:
            return tool
    return None


def shannon_entropy(sample: bytes) -> float:
    """Bits per byte of the byte-value histogram."""
    if not sample:
        return 0.0
    counts = np.bincount(np.frombuffer(sample, dtype=np.uint8), minlength=256)
    prob = counts[counts > 0] / len(sample)
    return float(abs(np.sum(prob * np.log2(prob))))


# ─── Signature pre-scan ──────────────────────────────────────────────────────

def scan_signatures(data: bytes) -> tuple:
    """(tool, parameter_key) found in the first bytes; either may be None."""
    scan = data[:W.PRESCAN_BYTES].decode("latin-1").lower()
    key = next((k for k in AI_PARAM_KEYS if k in scan), None)
    return _find_tool(scan), key


def signature_evidence(tool, key):
    if tool:
        found = f'"{tool}"'
    elif key:
        found = f'parameter key "{key.rstrip(chr(0))}"'
    else:
        return None
    return Evidence(
        Signal("AI Generator Signature", f"Detected: {found}", FLAG_AI),
        W.IMAGE_VOTES["generator_signature"],
    )


# ─── PNG ─────────────────────────────────────────────────────────────────────

def png_evidence(data: bytes, signature_found: bool = False) -> tuple:
    prompt_found = False
    creator_tool = None
    source_meta = False

    for chunk in iter_png_chunks(data):
        if chunk.type in PNG_TEXT_CHUNKS:
            text = png_text(chunk).decode("latin-1").lower()
            if any(k in text for k in PNG_PROMPT_KEYWORDS):
                prompt_found = True
            creator_tool = creator_tool or _find_tool(text)
            if _SOURCE_SOFTWARE_RE.search(text):
                source_meta = True
        elif chunk.type == "eXIf":
            source_meta = True

    evidence = []
    if prompt_found:
        evidence.append(Evidence(
            Signal("AI Prompt in PNG Chunks", "Generation parameters found (Stable Diffusion style)", FLAG_AI),
            W.IMAGE_VOTES["png_prompt_chunk"],
        ))
    if creator_tool:
        evidence.append(Evidence(
            Signal("PNG Creator Software", f'AI tool identified: "{creator_tool}"', FLAG_AI),
            W.IMAGE_VOTES["png_creator_tool"],
        ))
    if source_meta:
        evidence.append(Evidence(
            Signal("PNG Source Metadata", "Editing/camera software metadata found — processed real image", FLAG_HUMAN),
            W.IMAGE_VOTES["png_source_metadata"],
        ))
    if not evidence and not signature_found:
        # Screenshots and web graphics rarely carry metadata; no vote.
        evidence.append(Evidence(Signal(
            "PNG Metadata",
            "No provenance metadata present (inconclusive — normal for screenshots & web graphics)",
            FLAG_UNCERTAIN,
        )))
    return tuple(evidence)


# ─── JPEG ────────────────────────────────────────────────────────────────────

def exif_has_gps(payload: bytes) -> bool:
    """True when IFD0 of an APP1 Exif payload points to a GPS IFD."""
    exif = Image.Exif()
    try:
        exif.load(payload)
    except Exception as e:
        logger.debug("unreadable Exif block: %s", e)
        return False
    return ExifTags.IFD.GPSInfo in exif


def _camera_evidence(has_exif, camera, gps, dated) -> Evidence:
    """Only the strongest provenance finding contributes."""
    if camera:
        return Evidence(
            Signal("Camera EXIF", "Camera make/model confirmed — real photograph", FLAG_HUMAN),
            W.IMAGE_VOTES["camera_model"],
        )
    if gps:
        return Evidence(
            Signal("GPS Data", "Location coordinates embedded — real photograph", FLAG_HUMAN),
            W.IMAGE_VOTES["gps"],
        )
    if dated:
        return Evidence(
            Signal("Capture Timestamp", "Original capture time present", FLAG_HUMAN),
            W.IMAGE_VOTES["capture_timestamp"],
        )
    if has_exif:
        return Evidence(
            Signal("Camera EXIF", "EXIF present but no camera model (possibly stripped)", FLAG_UNCERTAIN),
            W.IMAGE_VOTES["bare_exif"],
        )
    return Evidence(
        Signal("Camera EXIF", "No EXIF data (common in web-optimized & social media images — inconclusive)", FLAG_UNCERTAIN),
        W.IMAGE_VOTES["missing_exif"],
    )


def _entropy_evidence(ent: float) -> Evidence:
    if ent > 7.6:
        label = "high (photo-like)"
    elif ent > 7.0:
        label = "normal"
    else:
        label = "low"
    flag = FLAG_UNCERTAIN if ent < W.LOW_ENTROPY_FLAG_BELOW else FLAG_HUMAN
    vote = W.IMAGE_VOTES["low_entropy"] if ent < W.LOW_ENTROPY_VOTE_BELOW else None
    return Evidence(Signal("JPEG Compression Entropy", f"{ent:.2f} bits/symbol — {label}", flag), vote)


def jpeg_evidence(data: bytes) -> tuple:
    has_exif = camera = gps = dated = False
    ai_tool = None
    sos_offset = None

    for segment in iter_jpeg_segments(data):
        if segment.marker == JPEG_SOS:
            sos_offset = segment.offset
            break
        if segment.marker != JPEG_APP1:
            continue
        payload = segment.payload
        if payload.startswith(b"Exif"):
            has_exif = True
            exif = payload.decode("latin-1")
            camera = camera or bool(_CAMERA_MAKER_RE.search(exif))
            gps = gps or bool(_GPS_RE.search(exif)) or exif_has_gps(payload)
            dated = dated or bool(_DATE_RE.search(exif))
            ai_tool = ai_tool or _find_tool(exif.lower())
        elif payload.startswith(b"http://") or b"xpacket" in payload[:28]:
            ai_tool = ai_tool or _find_tool(payload.decode("utf-8", errors="replace").lower())

    evidence = []
    if ai_tool:
        evidence.append(Evidence(
            Signal("EXIF/XMP Software Tag", f'AI tool found: "{ai_tool}"', FLAG_AI),
            W.IMAGE_VOTES["exif_ai_tool"],
        ))
    evidence.append(_camera_evidence(has_exif, camera, gps, dated))

    if sos_offset is not None:
        # sample starts after the SOS marker and its length field
        start = sos_offset + 4
        if len(data) > start + W.ENTROPY_SAMPLE_BYTES:
            ent = shannon_entropy(data[start:start + W.ENTROPY_SAMPLE_BYTES])
            evidence.append(_entropy_evidence(ent))
    return tuple(evidence)


# ─── Assembly ────────────────────────────────────────────────────────────────

def _is_definitive(e: Evidence) -> bool:
    return e.vote is not None and e.vote.score >= W.DEFINITIVE_SCORE


def extract_image_evidence(data: bytes, mime_type: str = None) -> tuple:
    """Returns (format, evidence)."""
    fmt = detect_format(data, mime_type)
    tool, key = scan_signatures(data)
    signature = signature_evidence(tool, key)

    if fmt == PNG:
        specific = png_evidence(data, signature_found=signature is not None)
    elif fmt == JPEG:
        specific = jpeg_evidence(data)
    elif fmt == WEBP:
        specific = (Evidence(Signal(
            "Format", "WebP — used by AI tools and web images alike (inconclusive)", FLAG_UNCERTAIN,
        )),)
    else:
        specific = (Evidence(Signal(
            "Format", "Unknown/unsupported format — limited forensic analysis possible", FLAG_UNCERTAIN,
        )),)

    if signature is None:
        return fmt, specific
    if tool:
        # A named generator is reported once, by the pre-scan.
        return fmt, (signature,) + tuple(e for e in specific if not _is_definitive(e))
    if any(_is_definitive(e) for e in specific):
        # A bare parameter key is explained better by the chunk or tag holding it.
        return fmt, specific
    return fmt, (signature,) + specific


class ImageDetector:
    def analyze(self, data: bytes, mime_type: str = None) -> dict:
        """
        Score raw image bytes for AI-likeness.

        Returns {"score": float in [0, 1], "signals": [Signal, ...], "format": str}.
        """
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise TypeError(f"image data must be bytes-like, not {type(data).__name__}")
        fmt, evidence = extract_image_evidence(bytes(data), mime_type)
        votes = votes_of(evidence)
        score = aggregate_image(votes)
        logger.debug("image analysed: format=%s votes=%d score=%.3f", fmt, len(votes), score)
        return {"score": score, "signals": signals_of(evidence), "format": fmt}


def score_image(data: bytes, mime_type: str = None) -> dict:
    return ImageDetector().analyze(data, mime_type)
