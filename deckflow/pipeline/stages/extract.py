"""Stage 2: Extract - encode normalized pages for transport."""

import base64
import io

from PIL import Image

from deckflow.pipeline.stages.convert import ConversionCaps

DATA_URL_PREFIX = "data:image/jpeg;base64,"


def encode_page(image: Image.Image, quality: float) -> str:
    """Encode one page as a JPEG data URL."""
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=round(quality * 100))
    return DATA_URL_PREFIX + base64.b64encode(buffer.getvalue()).decode("ascii")


def encode_pages(pages: list[Image.Image], caps: ConversionCaps) -> list[str]:
    return [encode_page(page, caps.quality) for page in pages]
