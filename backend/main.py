"""
FastAPI Backend for Deckflow

This is the main entry point for the API server. It provides endpoints for:
- Uploading files into a data room
- Starting single-deck analysis runs and polling their progress
- Saving finished snapshots to dealflow

All data is stored as JSON on disk under the configured data directory.
"""

# Load .env BEFORE any application imports that read os.environ
from dotenv import load_dotenv
load_dotenv()

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from deckflow import __version__
from deckflow.config.logging import configure_logging
from deckflow.config.settings import get_settings

from backend.api.routes import analyze, results, upload


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging and create data directories on startup."""
    settings = get_settings()
    configure_logging(level=settings.log_level, json=settings.log_json)
    for sub in ("files", "batches", "records", "runs"):
        (settings.data_dir / sub).mkdir(parents=True, exist_ok=True)
    yield


app = FastAPI(
    title="Deckflow API",
    description="Data room uploads and pitch deck snapshots",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(upload.router, prefix="/api", tags=["Data Rooms"])
app.include_router(analyze.router, prefix="/api", tags=["Analysis"])
app.include_router(results.router, prefix="/api", tags=["Results"])


@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": __version__}


# =============================================================================
# Run with: python -m backend.main
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    port = int(os.environ.get("PORT", 8100))
    uvicorn.run(
        "backend.main:app",
        host="0.0.0.0",
        port=port,
        reload=False,
    )
