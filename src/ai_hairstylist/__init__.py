"""
Webcam hairstyle try-on backed by a hosted image editing model.
"""
from .clients.gemini_image import GeminiImageClient
from .config import load_config
from .session import HairstyleSession
from .tasks.variations import VariationBatchRunner

__all__ = ["GeminiImageClient", "HairstyleSession", "VariationBatchRunner", "load_config"]
