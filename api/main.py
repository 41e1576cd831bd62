"""
FastAPI backend for the card identifier scanner
Handles photo uploads, catalog lookups and usage stats
"""

from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
import logging

from api.models import HealthStatus
from api.routes import scan
from api.services.rate_limiter import limiter
from cardscan.config import LOG_LEVEL, SCAN_API_TOKEN, API_HOST, API_PORT
from cardscan.recognition.orchestrator import ScanOrchestrator

logging.basicConfig(
    level=LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: build the scan pipeline on startup."""
    if app.state.orchestrator is None:
        from api.services.recognition import build_orchestrator
        app.state.orchestrator = build_orchestrator()

    if not app.state.api_token:
        logger.warning("SCAN_API_TOKEN is not set; /api/scan accepts unauthenticated requests")

    yield  # App runs here

    logger.info("Shutting down card scanner API")


def create_app(orchestrator: Optional[ScanOrchestrator] = None, api_token: str = SCAN_API_TOKEN) -> FastAPI:
    """
    Build the API app.

    Args:
        orchestrator: Preconfigured pipeline (tests); built from config at startup if None
        api_token: Shared X-Api-Token for /api/scan; empty disables the check
    """
    app = FastAPI(
        title="Card Identifier Scanner API",
        description="Card number recognition with free OCR and paid AI fallback",
        version="0.1.0",
        lifespan=lifespan
    )

    app.state.orchestrator = orchestrator
    app.state.api_token = api_token

    # Attach rate limiter to app
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(scan.router, prefix="/api", tags=["scan"])

    @app.get("/health", response_model=HealthStatus)
    async def health_check(request: Request):
        """Health check endpoint"""
        orchestrator = request.app.state.orchestrator
        catalog = orchestrator.catalog if orchestrator else None
        recognizer = orchestrator.recognizer if orchestrator else None
        extractor = orchestrator.extractor if orchestrator else None

        return HealthStatus(
            status="healthy" if catalog is not None and catalog.is_loaded else "degraded",
            service="card-scanner",
            catalog_loaded=bool(catalog is not None and catalog.is_loaded),
            catalog_size=len(catalog) if catalog is not None else 0,
            recognizer_available=bool(recognizer and recognizer.is_available()),
            extractor_available=bool(extractor and extractor.is_available()),
        )

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("api.main:app", host=API_HOST, port=API_PORT, reload=True)
