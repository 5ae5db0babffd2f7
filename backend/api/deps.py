"""
FastAPI dependencies for caller identity and shared services.
"""

from functools import lru_cache
from typing import Optional

from fastapi import Header, HTTPException, status

from deckflow.collaborators import DealTracker, GenerativeAnalyzer, RecordRegistry, StorageSink
from deckflow.config.settings import Settings, get_settings
from deckflow.models import AuthContext
from deckflow.pipeline import ConversionCaps, conversion_caps

from backend.services.storage import RunStore


class Services:
    """Collaborators used by the routes; replaced wholesale in tests."""

    def __init__(
        self,
        settings: Settings,
        sink: StorageSink,
        registry: RecordRegistry,
        tracker: DealTracker,
        analyzer: GenerativeAnalyzer,
        runs: RunStore,
        caps: Optional[ConversionCaps] = None,
    ):
        self.settings = settings
        self.sink = sink
        self.registry = registry
        self.tracker = tracker
        self.analyzer = analyzer
        self.runs = runs
        self.caps = caps or conversion_caps(settings)


@lru_cache
def get_services() -> Services:
    """Build the local, file-backed services from settings."""
    from deckflow.llm import OllamaSnapshotAnalyzer
    from deckflow.storage import JsonDealTracker, JsonRecordRegistry, LocalStorageSink

    settings = get_settings()
    data_dir = settings.data_dir
    return Services(
        settings=settings,
        sink=LocalStorageSink(data_dir / "files"),
        registry=JsonRecordRegistry(data_dir),
        tracker=JsonDealTracker(data_dir),
        analyzer=OllamaSnapshotAnalyzer(settings=settings),
        runs=RunStore(data_dir / "runs"),
    )


def get_caller(
    x_caller_id: Optional[str] = Header(default=None),
    x_referral_code: Optional[str] = Header(default=None),
) -> AuthContext:
    """Caller identity from request headers; 401 if missing."""
    if not x_caller_id or not x_caller_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return AuthContext(
        caller_id=x_caller_id.strip(),
        referral_code=(x_referral_code or "").strip() or None,
    )
