from __future__ import annotations

import asyncio
import logging
from typing import List, Protocol, Sequence

from ..config import BatchConfig
from ..errors import HairstylistError, InvalidImageFormat, ProviderError
from ..types import BatchSpec, EncodedImage, GenerationRequest, VariationOutcome

logger = logging.getLogger(__name__)

# Appended to the user's prompt so otherwise identical requests come back as distinct styles.
VARIATION_MODIFIERS: Sequence[str] = (
    "with a modern twist",
    "in a classic style",
    "that's a bit edgy and bold",
    "with a softer, more natural look",
    "with subtle color highlights",
    "that has more volume and texture",
    "in a sleek and polished version",
    "that looks playful and fun",
    "suitable for a professional setting",
    "that is completely different and surprising",
)


class ImageEditor(Protocol):
    async def edit_once(self, image: EncodedImage, instruction: str) -> EncodedImage:
        """Return one edited image for one instruction."""


def build_instruction(base_prompt: str, index: int) -> str:
    """Instruction text for the zero-based variation ``index``."""
    modifier = VARIATION_MODIFIERS[index % len(VARIATION_MODIFIERS)]
    return f"{base_prompt}, but {modifier}. Please provide style variation number {index + 1}."


def derive_instructions(base_prompt: str, count: int) -> List[str]:
    return [build_instruction(base_prompt, index) for index in range(count)]


class VariationBatchRunner:
    """Fan a single photo and prompt out into ``count`` concurrent remote edits."""

    def __init__(self, client: ImageEditor, config: BatchConfig | None = None) -> None:
        self._client = client
        self._config = config or BatchConfig()

    @staticmethod
    def _resolve_image(base_image: EncodedImage | str) -> EncodedImage:
        if isinstance(base_image, str):
            return EncodedImage.from_data_url(base_image)
        if not isinstance(base_image, EncodedImage):
            raise InvalidImageFormat(
                f"Unsupported base image type: {type(base_image).__name__}"
            )
        base_image.validate()
        return base_image

    def _resolve_count(self, count: int) -> int:
        if count < 1:
            raise ValueError(f"Variation count must be at least 1, got {count}")
        if count > self._config.max_variations:
            logger.warning(
                "Requested %d variations; clamping to %d", count, self._config.max_variations
            )
            return self._config.max_variations
        return count

    def plan(self, spec: BatchSpec) -> List[GenerationRequest]:
        """Validate ``spec`` and build one request per variation, in index order."""
        image = self._resolve_image(spec.base_image)
        count = self._resolve_count(spec.count)
        return [
            GenerationRequest(image=image, instruction=instruction, index=index)
            for index, instruction in enumerate(derive_instructions(spec.base_prompt, count))
        ]

    async def _settle(self, requests: Sequence[GenerationRequest]) -> list[EncodedImage | BaseException]:
        logger.info("Dispatching %d hairstyle variations", len(requests))
        return await asyncio.gather(
            *(self._client.edit_once(req.image, req.instruction) for req in requests),
            return_exceptions=True,
        )

    @staticmethod
    def _as_domain_error(exc: BaseException) -> HairstylistError:
        if isinstance(exc, HairstylistError):
            return exc
        return ProviderError(str(exc) or exc.__class__.__name__)

    async def generate_variations(self, spec: BatchSpec) -> List[EncodedImage]:
        """
        Generate ``spec.count`` variations, all or nothing.

        Every call is allowed to settle. If any failed, the error of the
        lowest-index failure is raised and all other results are discarded.
        Results are ordered by variation index, not completion order.
        """
        requests = self.plan(spec)
        settled = await self._settle(requests)

        for request, result in zip(requests, settled):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                failed = sum(isinstance(item, BaseException) for item in settled)
                logger.error(
                    "Variation %d of %d failed (%d failed in total): %s",
                    request.index + 1,
                    len(requests),
                    failed,
                    result,
                )
                error = self._as_domain_error(result)
                if error is result:
                    raise error
                raise error from result

        logger.info("Generated %d hairstyle variations", len(settled))
        return list(settled)  # type: ignore[arg-type]

    async def generate_outcomes(self, spec: BatchSpec) -> List[VariationOutcome]:
        """
        Generate variations and report each one separately instead of failing fast.

        Input validation errors still raise before anything is dispatched.
        """
        requests = self.plan(spec)
        settled = await self._settle(requests)

        outcomes: List[VariationOutcome] = []
        for request, result in zip(requests, settled):
            if isinstance(result, BaseException) and not isinstance(result, Exception):
                raise result
            outcome = VariationOutcome(index=request.index, instruction=request.instruction)
            if isinstance(result, Exception):
                logger.warning("Variation %d failed: %s", request.index + 1, result)
                outcome.error = self._as_domain_error(result)
            else:
                outcome.image = result
            outcomes.append(outcome)
        return outcomes
