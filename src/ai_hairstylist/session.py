from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .capture import CameraSource
from .config import MAX_VARIATIONS
from .data_url import parse_data_url
from .errors import HairstylistError
from .tasks.variations import VariationBatchRunner
from .types import BatchSpec

logger = logging.getLogger(__name__)

DEFAULT_PROMPT = "Give me a short, stylish haircut"


class ViewMode(str, Enum):
    CAPTURE = "capture"
    EDIT = "edit"


class GenerationStatus(str, Enum):
    IDLE = "idle"
    GENERATING = "generating"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass
class HairstyleSession:
    """
    View state for one capture-and-restyle screen.

    Only one error is shown at a time; every new action that changes the
    image or starts a batch clears the previous error and results.
    """

    runner: VariationBatchRunner
    view: ViewMode = ViewMode.CAPTURE
    image_src: Optional[str] = None
    prompt: str = DEFAULT_PROMPT
    variation_count: int = 5
    partial_results: bool = False
    generated_images: List[str] = field(default_factory=list)
    is_loading: bool = False
    error: Optional[str] = None
    status: GenerationStatus = GenerationStatus.IDLE

    def __post_init__(self) -> None:
        self.set_variation_count(self.variation_count)

    def set_variation_count(self, count: int) -> int:
        self.variation_count = max(1, min(MAX_VARIATIONS, int(count)))
        return self.variation_count

    def capture(self, image_data_url: str) -> None:
        self.image_src = image_data_url
        self.view = ViewMode.EDIT
        self.generated_images = []
        self.error = None
        self.status = GenerationStatus.IDLE

    def capture_from(self, camera: CameraSource) -> None:
        self.capture(camera.acquire_frame().to_data_url())

    def retake(self) -> None:
        self.image_src = None
        self.view = ViewMode.CAPTURE
        self.generated_images = []
        self.error = None
        self.status = GenerationStatus.IDLE

    def _fail(self, message: str) -> None:
        self.error = message
        self.status = GenerationStatus.FAILED

    async def generate(self) -> None:
        if self.is_loading:
            logger.warning("A batch is already in flight; ignoring generate request")
            return
        if not self.image_src or not self.prompt:
            self._fail("Please ensure you have a captured image and a prompt.")
            return
        if parse_data_url(self.image_src) is None:
            self._fail("Could not process the captured image format.")
            return

        self.is_loading = True
        self.error = None
        self.generated_images = []
        self.status = GenerationStatus.GENERATING

        spec = BatchSpec(
            base_image=self.image_src,
            base_prompt=self.prompt,
            count=self.set_variation_count(self.variation_count),
        )
        try:
            if self.partial_results:
                outcomes = await self.runner.generate_outcomes(spec)
                self.generated_images = [o.image.to_data_url() for o in outcomes if o.image]
                failures = [o for o in outcomes if not o.ok]
                if failures:
                    self._fail(
                        f"{len(failures)} of {len(outcomes)} styles failed: {failures[0].error}"
                    )
                else:
                    self.status = GenerationStatus.SUCCEEDED
            else:
                images = await self.runner.generate_variations(spec)
                self.generated_images = [image.to_data_url() for image in images]
                self.status = GenerationStatus.SUCCEEDED
        except HairstylistError as exc:
            logger.error("Generation failed: %s", exc)
            self.generated_images = []
            self._fail(f"Generation failed: {exc}")
        finally:
            self.is_loading = False
