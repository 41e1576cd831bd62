"""
Scan routes
Handles card photo uploads, catalog lookups, usage stats and queue status
"""

import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, UploadFile

from api.models import MatchInfo, QueueStatusInfo, ScanResponse, ScanResult, UsageStats
from api.services.queue import acquire_scan_slot, get_queue_status
from api.services.rate_limiter import limiter, scan_rate_limit, verify_api_token
from cardscan.recognition.orchestrator import ScanOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter()


def get_orchestrator(request: Request) -> ScanOrchestrator:
    orchestrator = getattr(request.app.state, 'orchestrator', None)
    if orchestrator is None:
        raise HTTPException(status_code=503, detail="Scan service is not ready")
    return orchestrator


@router.post("/scan", response_model=ScanResponse, dependencies=[Depends(verify_api_token)])
@limiter.limit(scan_rate_limit)
async def scan_cards(
    request: Request,  # Required for rate limiter
    files: List[UploadFile] = File(...),
    orchestrator: ScanOrchestrator = Depends(get_orchestrator)
):
    """
    Identify uploaded card photos.

    Images are scanned one at a time in upload order and every image gets
    exactly one result. Oversized or undecodable files come back as
    invalid_image results rather than failing the whole request.
    """
    if not files:
        raise HTTPException(status_code=400, detail="No images uploaded")

    request_id = str(uuid.uuid4())
    # One byte past the limit is enough for decoding to reject an oversized file
    read_limit = orchestrator.max_image_bytes + 1 if orchestrator.max_image_bytes else -1
    images = [await file.read(read_limit) for file in files]
    logger.info(f"Scan {request_id}: {len(images)} image(s) received")

    async with acquire_scan_slot(request_id):
        outcomes = await orchestrator.scan_batch(images)

    results = [
        ScanResult(filename=file.filename, **outcome.to_dict())
        for file, outcome in zip(files, outcomes)
    ]
    usage = UsageStats(**orchestrator.usage.snapshot().to_dict())
    return ScanResponse(results=results, usage=usage)


@router.get("/lookup", response_model=MatchInfo)
async def lookup_card(
    identifier: str = Query(..., min_length=1, description="Card number, e.g. BF-108"),
    name: Optional[str] = Query(None, description="Printed name to disambiguate shared card numbers"),
    orchestrator: ScanOrchestrator = Depends(get_orchestrator)
):
    """Resolve a card number against the catalog and explain the decision."""
    if not orchestrator.catalog.is_loaded:
        raise HTTPException(status_code=503, detail="Card catalog is not loaded")

    resolution = orchestrator.matcher.resolve(identifier, name)
    return MatchInfo(**resolution.to_dict())


@router.get("/stats", response_model=UsageStats)
async def usage_stats(orchestrator: ScanOrchestrator = Depends(get_orchestrator)):
    """Free/paid usage and cost since startup"""
    return UsageStats(**orchestrator.usage.snapshot().to_dict())


@router.get("/queue", response_model=QueueStatusInfo)
async def queue_status():
    """Get current scan queue status for monitoring"""
    return QueueStatusInfo(**get_queue_status().to_dict())
