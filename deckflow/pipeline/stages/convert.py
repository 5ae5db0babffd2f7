"""Stage 1: Convert - rasterize a source document into normalized pages.

PDF pages are rendered with pdfplumber; PNG/JPEG/WEBP files are opened
with Pillow as a single page. Every page is converted to RGB and
downscaled so its longest edge fits ``max_dimension``. The caps bound the
downstream payload size and latency.
"""

import io

import pdfplumber
import structlog
from PIL import Image
from pydantic import BaseModel, ConfigDict, Field

from deckflow.config.settings import Settings, get_settings
from deckflow.models.documents import SourceDocument
from deckflow.models.enums import MediaType

logger = structlog.get_logger(__name__)

IMAGE_MEDIA_TYPES = frozenset(m.value for m in MediaType if m.is_image)

# pdfplumber renders at points * resolution / 72
_POINTS_PER_INCH = 72
_MIN_RESOLUTION = 36
_MAX_RESOLUTION = 300


class ConversionCaps(BaseModel):
    """Bounds applied while rasterizing and encoding pages."""

    model_config = ConfigDict(frozen=True)

    max_pages: int = Field(default=6, ge=1)
    max_dimension: int = Field(default=1200, ge=64, description="Longest edge in pixels")
    quality: float = Field(default=0.65, gt=0.0, le=1.0, description="JPEG quality factor")


def conversion_caps(settings: Settings | None = None) -> ConversionCaps:
    settings = settings or get_settings()
    return ConversionCaps(
        max_pages=settings.conversion_max_pages,
        max_dimension=settings.conversion_max_dimension,
        quality=settings.conversion_quality,
    )


def convert_document(document: SourceDocument, caps: ConversionCaps) -> list[Image.Image]:
    """Render up to ``caps.max_pages`` normalized pages.

    Returns:
        Pages in document order. Empty when nothing could be rendered
        (unsupported type or an empty document).

    Raises:
        Exception: Whatever the underlying reader raises for corrupt input.
    """
    if document.media_type == MediaType.PDF.value:
        pages = _render_pdf(document.content, caps)
    elif document.media_type in IMAGE_MEDIA_TYPES:
        pages = [_open_image(document.content)]
    else:
        logger.warning("convert_unsupported_type", name=document.name, media_type=document.media_type)
        return []

    return [normalize_page(page, caps.max_dimension) for page in pages[: caps.max_pages]]


def normalize_page(image: Image.Image, max_dimension: int) -> Image.Image:
    """RGB copy of ``image`` with its longest edge at most ``max_dimension``."""
    page = image.convert("RGB")
    page.thumbnail((max_dimension, max_dimension))
    return page


def _render_pdf(content: bytes, caps: ConversionCaps) -> list[Image.Image]:
    images: list[Image.Image] = []

    with pdfplumber.open(io.BytesIO(content)) as pdf:
        total_pages = len(pdf.pages)
        for page in pdf.pages[: caps.max_pages]:
            longest = max(page.width, page.height) or _POINTS_PER_INCH
            resolution = caps.max_dimension * _POINTS_PER_INCH / float(longest)
            resolution = max(_MIN_RESOLUTION, min(_MAX_RESOLUTION, resolution))
            images.append(page.to_image(resolution=resolution).original.copy())

    logger.debug("pdf_rendered", total_pages=total_pages, rendered=len(images))
    return images


def _open_image(content: bytes) -> Image.Image:
    with Image.open(io.BytesIO(content)) as image:
        image.load()
        return image.copy()
