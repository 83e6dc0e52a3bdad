from __future__ import annotations


class HairstylistError(RuntimeError):
    """Base class for failures surfaced to the user."""


class InvalidImageFormat(HairstylistError):
    """The base image is not a well-formed data URL or its payload cannot be decoded."""


class InvalidCredentials(HairstylistError):
    """The provider rejected the configured API key, or none is configured."""

    DEFAULT_MESSAGE = "The provided API key is not valid. Please check your configuration."

    def __init__(self, message: str = DEFAULT_MESSAGE) -> None:
        super().__init__(message)


class NoImageInResponse(HairstylistError):
    """The provider answered successfully but returned no image part."""


class ProviderError(HairstylistError):
    """Any other failure while talking to the image model."""

    def __init__(self, detail: str) -> None:
        self.detail = detail
        super().__init__(f"An error occurred while communicating with the AI model: {detail}")


class CameraUnavailable(HairstylistError):
    """The capture device could not be opened or read."""
