"""API schemas package."""

from .responses import (
    AnalyzeResponse,
    DataRoomResponse,
    DealflowResponse,
    RunErrorResponse,
    RunStatusResponse,
)

__all__ = [
    "AnalyzeResponse",
    "DataRoomResponse",
    "DealflowResponse",
    "RunErrorResponse",
    "RunStatusResponse",
]
