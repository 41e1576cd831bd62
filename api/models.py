"""
Pydantic models for API request/response schemas
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from enum import Enum


class ScanStatus(str, Enum):
    """Terminal scan status"""
    ACCEPTED = "accepted"
    FAILED = "failed"


class CardRecord(BaseModel):
    """Catalog entry"""
    identifier: str
    name: str
    year: str = ""
    set_name: str = ""
    variant: str = ""
    record_id: str = ""
    attributes: Dict[str, Any] = Field(default_factory=dict)


class MatchCandidateInfo(BaseModel):
    """Fuzzy candidate considered during matching"""
    identifier: str
    name: str
    distance: int = Field(..., ge=0)
    score: float = Field(..., le=1.0)


class MatchInfo(BaseModel):
    """How a card number was resolved against the catalog"""
    query: str
    status: str = Field(..., description="matched, ambiguous, not_found or catalog_unavailable")
    method: Optional[str] = Field(None, description="exact, exact_name, fuzzy_name or fuzzy_auto")
    name_hint: Optional[str] = None
    record: Optional[CardRecord] = None
    candidates: List[MatchCandidateInfo] = Field(default_factory=list)


class ScanResult(BaseModel):
    """Outcome for one uploaded image"""
    filename: Optional[str] = None
    status: ScanStatus
    method: Optional[str] = Field(None, description="free (local OCR) or paid (AI extraction)")
    confidence: Optional[float] = Field(None, ge=0.0, le=100.0)
    reason: Optional[str] = None
    message: str = ""
    identifier: Optional[str] = None
    name_hint: Optional[str] = None
    record: Optional[CardRecord] = None
    states: List[str] = Field(default_factory=list)
    match: Optional[MatchInfo] = None


class UsageStats(BaseModel):
    """Free/paid usage since startup"""
    scanned: int
    free_accepted: int
    paid_calls: int
    paid_accepted: int
    failed: int
    total_cost: float
    free_rate: float = Field(..., description="Percent of identified cards that needed no paid call")
    max_paid_calls: Optional[int] = None


class ScanResponse(BaseModel):
    """Results for one scan request, in upload order"""
    results: List[ScanResult]
    usage: UsageStats


class QueueStatusInfo(BaseModel):
    """Scan queue state"""
    active_requests: int
    waiting_requests: int
    max_concurrent: int
    available_slots: int
    active_request_ids: List[str] = Field(default_factory=list)
    waiting_request_ids: List[str] = Field(default_factory=list)


class HealthStatus(BaseModel):
    """Service health and capability readiness"""
    status: str
    service: str
    catalog_loaded: bool
    catalog_size: int
    recognizer_available: bool
    extractor_available: bool
