"""
Helpers for ``data:<type>/<subtype>;base64,<payload>`` strings.
"""
from __future__ import annotations

import base64
import binascii
import re
from typing import NamedTuple

from .errors import InvalidImageFormat
from .types import EncodedImage

_DATA_URL_RE = re.compile(r"^data:([\w.+-]+/[\w.+-]+);base64,(.+)$", re.DOTALL)


class DataUrl(NamedTuple):
    media_type: str
    payload: str


def parse_data_url(value: object) -> DataUrl | None:
    """Split a data URL into media type and base64 payload, or return ``None``."""
    if not isinstance(value, str):
        return None
    match = _DATA_URL_RE.match(value)
    if match is None:
        return None
    return DataUrl(media_type=match.group(1), payload=match.group(2))


def format_data_url(media_type: str, payload: str) -> str:
    return f"data:{media_type};base64,{payload}"


def decode_data_url(value: str) -> EncodedImage:
    """Parse and base64-decode a data URL into an :class:`EncodedImage`."""
    parsed = parse_data_url(value)
    if parsed is None:
        raise InvalidImageFormat("Could not process the captured image format.")
    try:
        data = base64.b64decode(parsed.payload, validate=True)
    except (ValueError, binascii.Error) as exc:
        raise InvalidImageFormat("Image payload is not valid base64 data.") from exc
    if not data:
        raise InvalidImageFormat("Image payload is empty.")
    return EncodedImage(data=data, media_type=parsed.media_type)
