"""
Scan orchestration: free local OCR first, paid AI extraction as fallback.

State flow for one image:

    DETECTING -> READING_FREE -> MATCHING_FREE -> ACCEPTED_FREE
                      |               |
                      +---------------+--> FALLBACK_PENDING
                                                |
                      READING_PAID <------------+--> FAILED
                           |
                      MATCHING_PAID -> ACCEPTED_PAID | FAILED

The free path only reaches the catalog when an identifier parsed AND the
recognizer confidence clears the threshold. Every free-path miss (no parse,
low confidence, ambiguous, not found) falls through to the paid path.
Paid-path problems are terminal: one call per scan, no retry.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

import numpy as np

from cardscan.catalog.loader import Catalog
from cardscan.catalog.records import CatalogRecord
from cardscan.config import (
    OCR_CONFIDENCE_THRESHOLD,
    PAID_CALL_COST,
    COMPRESS_MAX_DIMENSION,
    COMPRESS_JPEG_QUALITY,
    BATCH_YIELD_SECONDS,
    MAX_IMAGE_BYTES,
)
from cardscan.ocr.base_ocr import BaseRecognizer
from cardscan.ocr.identifier import extract_name_hint
from cardscan.ocr.regions import RegionStrategy
from cardscan.recognition.ai_extractor import BaseExtractor, ExtractionError, InvalidResponse, NetworkFailure
from cardscan.recognition.matcher import CatalogMatcher, MatchResolution, STATUS_AMBIGUOUS
from cardscan.recognition.usage import InMemoryUsageTracker, UsageTracker
from cardscan.utils.images import compress_image, decode_image

logger = logging.getLogger(__name__)

BoundaryCorrectorFn = Callable[[np.ndarray], Optional[np.ndarray]]


class ScanState(str, Enum):
    DETECTING = 'detecting'
    READING_FREE = 'reading_free'
    MATCHING_FREE = 'matching_free'
    ACCEPTED_FREE = 'accepted_free'
    FALLBACK_PENDING = 'fallback_pending'
    READING_PAID = 'reading_paid'
    MATCHING_PAID = 'matching_paid'
    ACCEPTED_PAID = 'accepted_paid'
    FAILED = 'failed'


class FailureReason(str, Enum):
    CAPABILITY_UNAVAILABLE = 'capability_unavailable'
    CATALOG_UNAVAILABLE = 'catalog_unavailable'
    INVALID_IMAGE = 'invalid_image'
    NETWORK_FAILURE = 'network_failure'
    INVALID_RESPONSE = 'invalid_response'
    NOT_FOUND = 'not_found'
    AMBIGUOUS_MATCH = 'ambiguous_match'
    PAID_LIMIT_REACHED = 'paid_limit_reached'
    INTERNAL_ERROR = 'internal_error'


METHOD_FREE = 'free'
METHOD_PAID = 'paid'


@dataclass(frozen=True)
class ScanOutcome:
    """Terminal result for one image: accepted with a record, or failed with a reason"""
    record: Optional[CatalogRecord] = None
    method: Optional[str] = None
    confidence: Optional[float] = None
    reason: Optional[FailureReason] = None
    message: str = ""
    identifier: Optional[str] = None
    name_hint: Optional[str] = None
    states: Tuple[ScanState, ...] = field(default_factory=tuple)
    resolution: Optional[MatchResolution] = None

    @classmethod
    def accepted(cls, record: CatalogRecord, method: str, **kwargs) -> "ScanOutcome":
        return cls(record=record, method=method, **kwargs)

    @classmethod
    def failed(cls, reason: FailureReason, message: str, **kwargs) -> "ScanOutcome":
        return cls(reason=reason, message=message, **kwargs)

    @property
    def is_accepted(self) -> bool:
        return self.record is not None

    @property
    def final_state(self) -> Optional[ScanState]:
        return self.states[-1] if self.states else None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return {
            'status': 'accepted' if self.is_accepted else 'failed',
            'method': self.method,
            'confidence': float(self.confidence) if self.confidence is not None else None,
            'reason': self.reason.value if self.reason else None,
            'message': self.message,
            'identifier': self.identifier,
            'name_hint': self.name_hint,
            'record': self.record.to_dict() if self.record else None,
            'states': [state.value for state in self.states],
            'match': self.resolution.to_dict() if self.resolution else None,
        }


class ScanOrchestrator:
    """
    Drives one image through the free and paid recognition paths.

    Capabilities are injected; a None recognizer or extractor means the
    capability is absent. The orchestrator never mutates the catalog and
    keeps no per-scan state between calls (usage counters aside).

    Usage:
        orchestrator = ScanOrchestrator(
            catalog,
            recognizer=TesseractRecognizer(),
            extractor=AnthropicExtractor(),
            boundary_corrector=BoundaryCorrector(),
        )
        outcome = await orchestrator.scan(image)
        if outcome.is_accepted:
            print(outcome.record.name, outcome.method)
    """

    def __init__(
        self,
        catalog: Catalog,
        recognizer: Optional[BaseRecognizer] = None,
        extractor: Optional[BaseExtractor] = None,
        boundary_corrector: Optional[BoundaryCorrectorFn] = None,
        region_strategy: Optional[RegionStrategy] = None,
        matcher: Optional[CatalogMatcher] = None,
        usage: Optional[UsageTracker] = None,
        confidence_threshold: float = OCR_CONFIDENCE_THRESHOLD,
        paid_call_cost: float = PAID_CALL_COST,
        compress_max_dimension: int = COMPRESS_MAX_DIMENSION,
        compress_quality: int = COMPRESS_JPEG_QUALITY,
        batch_yield_seconds: float = BATCH_YIELD_SECONDS,
        max_image_bytes: int = MAX_IMAGE_BYTES
    ):
        self.catalog = catalog
        self.recognizer = recognizer
        self.extractor = extractor
        self.boundary_corrector = boundary_corrector
        self.region_strategy = region_strategy or RegionStrategy()
        self.matcher = matcher or CatalogMatcher(catalog)
        self.usage = usage if usage is not None else InMemoryUsageTracker()
        self.confidence_threshold = confidence_threshold
        self.paid_call_cost = paid_call_cost
        self.compress_max_dimension = compress_max_dimension
        self.compress_quality = compress_quality
        self.batch_yield_seconds = batch_yield_seconds
        self.max_image_bytes = max_image_bytes

    def _fail(self, states: List[ScanState], reason: FailureReason, message: str, **kwargs) -> ScanOutcome:
        states.append(ScanState.FAILED)
        self.usage.record_failure()
        logger.info(f"Scan failed ({reason.value}): {message}")
        return ScanOutcome.failed(reason, message, states=tuple(states), **kwargs)

    def _correct_boundaries(self, image: np.ndarray) -> np.ndarray:
        if self.boundary_corrector is None:
            return image

        try:
            corrected = self.boundary_corrector(image)
        except ValueError as e:
            logger.warning(f"Boundary correction failed, using uncorrected image: {e}")
            return image

        if corrected is None or corrected.size == 0:
            logger.debug("No card boundary found, using uncorrected image")
            return image
        return corrected

    async def _read_free(self, image: np.ndarray, states: List[ScanState]) -> Optional[ScanOutcome]:
        """Free path. Returns an accepted outcome, or None to fall back."""
        states.append(ScanState.READING_FREE)

        if self.recognizer is None or not self.recognizer.is_available():
            logger.warning("Local recognizer not available, skipping free path")
            return None

        try:
            result = await self.region_strategy.read(image, self.recognizer)
        except Exception as e:
            logger.exception(f"Local recognition failed, falling back to paid path: {e}")
            return None

        if result.identifier is None:
            logger.info(f"Free path: no identifier parsed from '{result.raw_text}'")
            return None

        if result.confidence < self.confidence_threshold:
            logger.info(
                f"Free path: {result.identifier} below confidence threshold "
                f"({result.confidence:.1f} < {self.confidence_threshold:.1f})"
            )
            return None

        states.append(ScanState.MATCHING_FREE)
        name_hint = extract_name_hint(result.raw_text)
        resolution = self.matcher.resolve(result.identifier, name_hint)

        if resolution.record is None:
            logger.info(f"Free path: {result.identifier} {resolution.status} in catalog")
            return None

        states.append(ScanState.ACCEPTED_FREE)
        self.usage.record_free_acceptance()
        logger.info(
            f"Accepted (free): {result.identifier} -> {resolution.record.name} "
            f"[{resolution.method}, conf {result.confidence:.1f}]"
        )
        return ScanOutcome.accepted(
            resolution.record,
            METHOD_FREE,
            confidence=result.confidence,
            identifier=result.identifier,
            name_hint=name_hint,
            states=tuple(states),
            resolution=resolution,
        )

    async def _read_paid(self, image: np.ndarray, states: List[ScanState]) -> ScanOutcome:
        states.append(ScanState.READING_PAID)
        jpeg = compress_image(image, self.compress_max_dimension, self.compress_quality)

        try:
            extraction = await self.extractor.extract(jpeg)
        except NetworkFailure as e:
            return self._fail(states, FailureReason.NETWORK_FAILURE, str(e))
        except InvalidResponse as e:
            # The round trip completed, so it was billed
            self.usage.record_paid_call(self.paid_call_cost, accepted=False)
            return self._fail(states, FailureReason.INVALID_RESPONSE, str(e))
        except ExtractionError as e:
            # Not known to have completed, so not billed
            return self._fail(states, FailureReason.NETWORK_FAILURE, str(e))

        states.append(ScanState.MATCHING_PAID)
        identifier = extraction.card_number
        name_hint = extraction.hero

        if not name_hint:
            logger.warning(f"Paid extraction for {identifier} has no name; disambiguation may fail")

        resolution = self.matcher.resolve(identifier, name_hint)

        if resolution.record is None:
            self.usage.record_paid_call(self.paid_call_cost, accepted=False)
            if resolution.status == STATUS_AMBIGUOUS:
                reason = FailureReason.AMBIGUOUS_MATCH
                message = f"Card number {identifier} matches several catalog entries"
            else:
                reason = FailureReason.NOT_FOUND
                message = f"Card number {identifier} not found in catalog"
            return self._fail(
                states, reason, message,
                identifier=identifier, name_hint=name_hint, resolution=resolution
            )

        states.append(ScanState.ACCEPTED_PAID)
        self.usage.record_paid_call(self.paid_call_cost, accepted=True)
        logger.info(f"Accepted (paid): {identifier} -> {resolution.record.name} [{resolution.method}]")
        return ScanOutcome.accepted(
            resolution.record,
            METHOD_PAID,
            identifier=identifier,
            name_hint=name_hint,
            states=tuple(states),
            resolution=resolution,
        )

    async def scan(self, image: np.ndarray) -> ScanOutcome:
        """
        Identify one card image.

        Args:
            image: BGR/BGRA/grayscale card photo

        Returns:
            Exactly one ScanOutcome
        """
        states = [ScanState.DETECTING]

        if image is None or not isinstance(image, np.ndarray) or image.size == 0:
            return self._fail(states, FailureReason.INVALID_IMAGE, "Empty or missing image")

        if not self.catalog.is_loaded:
            return self._fail(states, FailureReason.CATALOG_UNAVAILABLE, "Card catalog is not loaded")

        working = self._correct_boundaries(image)

        outcome = await self._read_free(working, states)
        if outcome is not None:
            return outcome

        states.append(ScanState.FALLBACK_PENDING)

        if self.extractor is None or not self.extractor.is_available():
            return self._fail(
                states, FailureReason.CAPABILITY_UNAVAILABLE,
                "Free path was inconclusive and no paid extractor is configured"
            )

        if not self.usage.can_make_paid_call():
            return self._fail(states, FailureReason.PAID_LIMIT_REACHED, "Paid call limit reached")

        return await self._read_paid(working, states)

    async def scan_bytes(self, data: bytes) -> ScanOutcome:
        """Decode an encoded image (JPEG, PNG, ...) and scan it."""
        try:
            image = decode_image(data, max_bytes=self.max_image_bytes)
        except ValueError as e:
            return self._fail([ScanState.DETECTING], FailureReason.INVALID_IMAGE, str(e))
        return await self.scan(image)

    async def scan_batch(self, images: Iterable[Union[np.ndarray, bytes]]) -> List[ScanOutcome]:
        """
        Scan images strictly one after another.

        Items may be decoded arrays or encoded bytes. An unexpected error on
        one image becomes an INTERNAL_ERROR outcome and the batch continues.
        """
        outcomes = []

        for index, image in enumerate(images):
            if index > 0:
                await asyncio.sleep(self.batch_yield_seconds)

            try:
                if isinstance(image, (bytes, bytearray)):
                    outcome = await self.scan_bytes(bytes(image))
                else:
                    outcome = await self.scan(image)
            except Exception as e:
                logger.exception(f"Unexpected error scanning image {index}")
                outcome = self._fail([ScanState.DETECTING], FailureReason.INTERNAL_ERROR, f"Internal error: {e}")

            outcomes.append(outcome)

        return outcomes
