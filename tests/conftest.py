import io
import sys
from pathlib import Path

import pytest
from PIL import Image

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from ai_hairstylist.types import EncodedImage


@pytest.fixture
def jpeg_bytes() -> bytes:
    """A tiny red JPEG, wider than it is tall."""
    image = Image.new("RGB", (8, 4), (200, 40, 40))
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG")
    return buffer.getvalue()


@pytest.fixture
def base_image(jpeg_bytes) -> EncodedImage:
    return EncodedImage(data=jpeg_bytes, media_type="image/jpeg")


@pytest.fixture
def base_data_url(base_image) -> str:
    return base_image.to_data_url()
