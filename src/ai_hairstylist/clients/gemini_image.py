from __future__ import annotations

import base64
import binascii
import logging
from typing import Any, Dict

import httpx

from ..config import ApiKeyProvider, GeminiImageConfig, env_api_key_provider
from ..errors import InvalidCredentials, NoImageInResponse, ProviderError
from ..types import EncodedImage

logger = logging.getLogger(__name__)

_CREDENTIAL_MARKERS = ("API key not valid", "API_KEY_INVALID")


def _looks_like_credential_error(text: str) -> bool:
    return any(marker in text for marker in _CREDENTIAL_MARKERS)


class GeminiImageClient:
    """Client for the Gemini ``generateContent`` endpoint used as an image editor."""

    def __init__(
        self,
        config: GeminiImageConfig,
        api_key_provider: ApiKeyProvider | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._api_key_provider = api_key_provider or env_api_key_provider(config.api_key_env)
        self._session = httpx.AsyncClient(
            base_url=config.api_base,
            headers={"Content-Type": "application/json"},
            timeout=httpx.Timeout(config.timeout_seconds),
            transport=transport,
        )
        self._generate_path = f"models/{config.model}:generateContent"

    @property
    def model(self) -> str:
        return self._config.model

    async def aclose(self) -> None:
        await self._session.aclose()

    def _build_body(self, image: EncodedImage, instruction: str) -> Dict[str, Any]:
        return {
            "contents": [
                {
                    "parts": [
                        {"inlineData": {"mimeType": image.media_type, "data": image.b64}},
                        {"text": instruction},
                    ]
                }
            ],
            "generationConfig": {"responseModalities": ["IMAGE"]},
        }

    @staticmethod
    def _error_detail(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}"
        error = body.get("error") if isinstance(body, dict) else None
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        return str(body)

    def _extract_image(self, data: Dict[str, Any]) -> EncodedImage:
        candidates = data.get("candidates") or []
        if not isinstance(candidates, list):
            raise ProviderError("Malformed Gemini API response: 'candidates' is not a list")
        first = candidates[0] if candidates else {}
        if not isinstance(first, dict):
            raise ProviderError("Malformed Gemini API response: candidate is not an object")
        content = first.get("content") or {}
        parts = (content.get("parts") or []) if isinstance(content, dict) else []
        if not isinstance(parts, list):
            raise ProviderError("Malformed Gemini API response: 'parts' is not a list")

        for part in parts:
            if not isinstance(part, dict):
                continue
            inline = part.get("inlineData") or part.get("inline_data")
            if not isinstance(inline, dict):
                continue
            mime_type = inline.get("mimeType") or inline.get("mime_type") or ""
            if not isinstance(mime_type, str) or not mime_type.startswith("image/"):
                continue
            try:
                image_bytes = base64.b64decode(inline.get("data") or "", validate=True)
            except (TypeError, ValueError, binascii.Error) as exc:
                raise ProviderError(f"Failed to decode base64 image data: {exc}") from exc
            return EncodedImage(data=image_bytes, media_type=mime_type)

        feedback = data.get("promptFeedback")
        reason = feedback.get("blockReason") if isinstance(feedback, dict) else None
        if reason is None:
            reason = first.get("finishReason")
        message = "No image found in Gemini API response."
        if reason:
            message = f"{message} (reason: {reason})"
        raise NoImageInResponse(message)

    async def edit_once(self, image: EncodedImage, instruction: str) -> EncodedImage:
        """
        Submit one image plus one text instruction and return the first generated image.

        Raises
        ------
        InvalidCredentials
            No API key is configured or the provider rejected it.
        NoImageInResponse
            The call succeeded but the response carried no image part.
        ProviderError
            Any other HTTP or transport failure.
        """
        api_key = self._api_key_provider()
        if not api_key:
            raise InvalidCredentials()

        try:
            response = await self._session.post(
                self._generate_path,
                headers={"x-goog-api-key": api_key},
                json=self._build_body(image, instruction),
            )
        except httpx.HTTPError as exc:
            logger.error("Error calling Gemini API: %s", exc)
            raise ProviderError(str(exc) or exc.__class__.__name__) from exc

        if response.is_error:
            detail = self._error_detail(response)
            logger.error("Gemini API returned HTTP %s: %s", response.status_code, detail)
            if _looks_like_credential_error(detail):
                raise InvalidCredentials()
            raise ProviderError(detail)

        try:
            data = response.json()
        except ValueError as exc:
            raise ProviderError("Gemini API returned a non-JSON response") from exc
        if not isinstance(data, dict):
            raise ProviderError(f"Unexpected Gemini API response type: {type(data).__name__}")

        result = self._extract_image(data)
        logger.debug("Received %d bytes of %s", len(result.data), result.media_type)
        return result

    async def __aenter__(self) -> "GeminiImageClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001 - standard context manager
        await self.aclose()
