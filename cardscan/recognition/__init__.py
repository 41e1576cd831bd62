"""Catalog matching, paid extraction and scan orchestration."""

from cardscan.recognition.matcher import CatalogMatcher, MatchCandidate, MatchResolution, levenshtein_distance
from cardscan.recognition.ai_extractor import (
    AnthropicExtractor,
    BaseExtractor,
    CardExtraction,
    ExtractionError,
    InvalidResponse,
    NetworkFailure,
)
from cardscan.recognition.usage import InMemoryUsageTracker, UsageSnapshot, UsageTracker
from cardscan.recognition.orchestrator import FailureReason, ScanOrchestrator, ScanOutcome, ScanState

__all__ = [
    'CatalogMatcher',
    'MatchCandidate',
    'MatchResolution',
    'levenshtein_distance',
    'AnthropicExtractor',
    'BaseExtractor',
    'CardExtraction',
    'ExtractionError',
    'InvalidResponse',
    'NetworkFailure',
    'InMemoryUsageTracker',
    'UsageSnapshot',
    'UsageTracker',
    'FailureReason',
    'ScanOrchestrator',
    'ScanOutcome',
    'ScanState',
]
