"""
Decode histogram log payloads.

Load generators that report through CI logs or chat bots usually ship the
histogram text as base64 of a gzip stream, e.g.

    wrk2 ... --latency | gzip | base64 -w0

This module reverses that, and reads plain or gzipped log files from disk.
"""

from __future__ import annotations

from pathlib import Path
import base64
import binascii
import gzip
import zlib


class PayloadError(ValueError):
    """Raised when a payload cannot be decoded; the message names the stage."""


def decode_base64(data: str) -> bytes:
    """Strip quotes and line wrapping, then base64-decode."""
    data = data.strip().strip('"').strip("'")
    if not data:
        raise PayloadError("empty payload")
    try:
        return base64.b64decode("".join(data.split()), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise PayloadError(f"base64: {exc}") from None


def gunzip_text(compressed: bytes) -> str:
    try:
        raw = gzip.decompress(compressed)
    except (OSError, EOFError, zlib.error) as exc:
        raise PayloadError(f"gzip: {exc}") from None
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise PayloadError(f"utf-8: {exc}") from None


def decode_payload(data: str) -> str:
    """Turn a base64(gzip(text)) payload back into the histogram text."""
    return gunzip_text(decode_base64(data))


def encode_payload(text: str, compresslevel: int = 9) -> str:
    """Inverse of decode_payload."""
    body = gzip.compress(text.encode("utf-8"), compresslevel=compresslevel)
    return base64.b64encode(body).decode("ascii")


def read_text_file(path: Path) -> str:
    """Read a histogram log from disk, transparently gunzipping ``.gz`` files."""
    if not path.exists():
        raise FileNotFoundError(f"Histogram log not found: {path}")
    if path.suffix == ".gz":
        with gzip.open(path, "rt", encoding="utf-8", errors="replace") as f:
            return f.read()
    return path.read_text(encoding="utf-8", errors="replace")
