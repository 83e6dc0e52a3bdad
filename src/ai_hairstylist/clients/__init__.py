"""
Client adapters for remote image editing providers.
"""
from .gemini_image import GeminiImageClient

__all__ = ["GeminiImageClient"]
