from __future__ import annotations

import base64
import re
from dataclasses import dataclass

from .errors import HairstylistError, InvalidImageFormat

MEDIA_TYPE_RE = re.compile(r"^[\w.+-]+/[\w.+-]+$")


@dataclass(frozen=True, slots=True)
class EncodedImage:
    """Binary image payload tagged with its media type."""

    data: bytes
    media_type: str = "image/jpeg"

    @classmethod
    def from_data_url(cls, value: str) -> "EncodedImage":
        from .data_url import decode_data_url

        return decode_data_url(value)

    @property
    def b64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    def to_data_url(self) -> str:
        return f"data:{self.media_type};base64,{self.b64}"

    def validate(self) -> None:
        """Raise :class:`InvalidImageFormat` unless the image can be submitted."""
        if not MEDIA_TYPE_RE.match(self.media_type or ""):
            raise InvalidImageFormat(f"Invalid media type: {self.media_type!r}")
        if not self.data:
            raise InvalidImageFormat("Image payload is empty.")


@dataclass(frozen=True, slots=True)
class GenerationRequest:
    """One remote edit: the shared base image plus a per-variant instruction."""

    image: EncodedImage
    instruction: str
    index: int


@dataclass(slots=True)
class BatchSpec:
    """User request for ``count`` style variations of one photo."""

    base_image: EncodedImage | str
    base_prompt: str
    count: int


@dataclass(slots=True)
class VariationOutcome:
    """Per-item result used when a batch returns partial results."""

    index: int
    instruction: str
    image: EncodedImage | None = None
    error: HairstylistError | None = None

    @property
    def ok(self) -> bool:
        return self.image is not None and self.error is None
