"""API routes package."""

from . import upload
from . import analyze
from . import results

__all__ = ["upload", "analyze", "results"]
