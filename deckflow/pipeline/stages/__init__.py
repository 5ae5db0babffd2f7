"""Analysis pipeline stages, in execution order."""

from .convert import ConversionCaps, conversion_caps, convert_document, normalize_page
from .extract import encode_page, encode_pages
from .analyze import request_analysis
from .score import build_snapshot

__all__ = [
    # Stage 1: Convert
    "ConversionCaps",
    "conversion_caps",
    "convert_document",
    "normalize_page",
    # Stage 2: Extract
    "encode_page",
    "encode_pages",
    # Stage 3: Analyze
    "request_analysis",
    # Stage 4: Score
    "build_snapshot",
]
