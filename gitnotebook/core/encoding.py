from __future__ import annotations

import base64
import binascii
import re

from .errors import DecodeError, EncodeError

# GitHub wraps base64 payloads at 60 columns
_WS_RE = re.compile(r"\s+")


def encode(text: str) -> str:
    """Text -> base64 of its UTF-8 bytes (what the contents API expects)."""
    try:
        raw = text.encode("utf-8")
    except UnicodeEncodeError as e:
        raise EncodeError(f"Text is not representable as UTF-8: {e.reason}") from e
    return base64.b64encode(raw).decode("ascii")


def decode(data: str | bytes) -> str:
    """
    base64 (as returned by the contents API) -> text.
    Line breaks inside the payload are ignored; anything else that is not
    base64, or bytes that are not UTF-8, raise DecodeError.
    """
    if isinstance(data, bytes):
        try:
            data = data.decode("ascii")
        except UnicodeDecodeError as e:
            raise DecodeError("Encoded content contains non-ASCII bytes") from e
    if not isinstance(data, str):
        raise DecodeError(f"Encoded content must be str or bytes, got {type(data).__name__}")

    compact = _WS_RE.sub("", data)
    try:
        raw = base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"Malformed base64 content: {e}") from e

    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError(f"Decoded content is not UTF-8: {e.reason}") from e
