"""
Camera sources for capturing the photo that gets restyled.

A source holds its device handle only between ``open()`` and ``close()``;
use it as a context manager so the handle is released on every exit path::

    with OpenCVCamera(device=0) as camera:
        image = camera.acquire_frame()

Webcam frames are mirrored horizontally, so the result matches what the user
saw in the preview, and every frame is encoded as JPEG at quality 95.
"""
from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import Any

from PIL import Image, ImageOps

from .errors import CameraUnavailable
from .types import EncodedImage

logger = logging.getLogger(__name__)

JPEG_QUALITY = 95


def encode_frame(frame: Image.Image, *, mirror: bool = True, quality: int = JPEG_QUALITY) -> EncodedImage:
    """Encode a Pillow frame as JPEG, optionally flipped left to right."""
    if frame.mode != "RGB":
        frame = frame.convert("RGB")
    if mirror:
        frame = ImageOps.mirror(frame)
    buffer = io.BytesIO()
    frame.save(buffer, format="JPEG", quality=quality)
    return EncodedImage(data=buffer.getvalue(), media_type="image/jpeg")


class CameraSource:
    """Base class for capture sources with scoped acquisition."""

    mirror = True

    def __init__(self) -> None:
        self._opened = False

    @property
    def is_open(self) -> bool:
        return self._opened

    def _acquire(self) -> None:
        raise NotImplementedError("_acquire must be implemented by subclasses")

    def _release(self) -> None:
        raise NotImplementedError("_release must be implemented by subclasses")

    def _read_frame(self) -> Image.Image:
        raise NotImplementedError("_read_frame must be implemented by subclasses")

    def open(self) -> None:
        """Acquire the device, releasing any handle this source already holds."""
        if self._opened:
            self.close()
        self._acquire()
        self._opened = True

    def close(self) -> None:
        if not self._opened:
            return
        try:
            self._release()
        finally:
            self._opened = False

    def acquire_frame(self) -> EncodedImage:
        """Grab one frame from the open device as a JPEG."""
        if not self._opened:
            raise CameraUnavailable("Camera is not open.")
        return encode_frame(self._read_frame(), mirror=self.mirror)

    def __enter__(self) -> "CameraSource":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001 - standard context manager
        self.close()


class OpenCVCamera(CameraSource):
    """Webcam source backed by ``cv2.VideoCapture``."""

    def __init__(self, device: int = 0, width: int = 1280, height: int = 720) -> None:
        super().__init__()
        self.device = device
        self.width = width
        self.height = height
        self._capture: Any = None

    def _acquire(self) -> None:
        import cv2

        capture = cv2.VideoCapture(self.device)
        if not capture.isOpened():
            capture.release()
            raise CameraUnavailable(
                f"Could not access camera: device {self.device} is unavailable. "
                "Please grant permission and retry."
            )
        capture.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        capture.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        self._capture = capture
        logger.info("Opened camera device %s", self.device)

    def _release(self) -> None:
        if self._capture is not None:
            self._capture.release()
            self._capture = None
            logger.info("Released camera device %s", self.device)

    def _read_frame(self) -> Image.Image:
        import cv2

        ok, frame = self._capture.read()
        if not ok or frame is None:
            raise CameraUnavailable(f"Could not read a frame from camera device {self.device}.")
        return Image.fromarray(cv2.cvtColor(frame, cv2.COLOR_BGR2RGB))


class StillImageCamera(CameraSource):
    """Source that replays a still image from disk, for headless machines and tests."""

    mirror = False

    def __init__(self, path: str | Path) -> None:
        super().__init__()
        self.path = Path(path)
        self._image: Image.Image | None = None

    def _acquire(self) -> None:
        if not self.path.exists():
            raise CameraUnavailable(f"Image file not found: {self.path}")
        try:
            with Image.open(self.path) as image:
                image.load()
                self._image = image.copy()
        except OSError as exc:
            raise CameraUnavailable(f"Could not read image file {self.path}: {exc}") from exc

    def _release(self) -> None:
        self._image = None

    def _read_frame(self) -> Image.Image:
        assert self._image is not None
        return self._image
