"""
Queue management for scan requests.

The scan pipeline owns one long-lived recognizer session and must never run
two scans at once, so requests take turns through a single processing slot.
Waiting and active requests are tracked for the monitoring endpoint.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, asdict
from typing import List, Optional, Set

logger = logging.getLogger(__name__)

# One scan request at a time
MAX_CONCURRENT_SCANS = 1


@dataclass
class QueueStatus:
    """Current queue status for monitoring."""
    active_requests: int
    waiting_requests: int
    max_concurrent: int
    available_slots: int
    active_request_ids: List[str]
    waiting_request_ids: List[str]

    def to_dict(self):
        return asdict(self)


class ScanQueueManager:
    """
    Serializes scan requests.

    asyncio primitives are created lazily so they bind to the running event
    loop rather than whichever loop existed at import time.
    """

    def __init__(self, max_concurrent: int = MAX_CONCURRENT_SCANS):
        self.max_concurrent = max_concurrent
        self._semaphore: Optional[asyncio.Semaphore] = None
        self._lock: Optional[asyncio.Lock] = None
        self._active: Set[str] = set()
        self._waiting: Set[str] = set()

    def _ensure_initialized(self):
        if self._semaphore is None:
            self._semaphore = asyncio.Semaphore(self.max_concurrent)
            self._lock = asyncio.Lock()

    @asynccontextmanager
    async def acquire_slot(self, request_id: str):
        """
        Wait for the processing slot, then hold it for the block.

        Args:
            request_id: Identifier used in logs and the status endpoint
        """
        self._ensure_initialized()

        async with self._lock:
            self._waiting.add(request_id)
        logger.info(f"Scan {request_id}: waiting for slot ({len(self._waiting)} waiting)")

        try:
            async with self._semaphore:
                async with self._lock:
                    self._waiting.discard(request_id)
                    self._active.add(request_id)
                logger.debug(f"Scan {request_id}: acquired slot")

                try:
                    yield
                finally:
                    async with self._lock:
                        self._active.discard(request_id)
                    logger.debug(f"Scan {request_id}: released slot")
        except BaseException:
            # Cancelled or failed while waiting
            async with self._lock:
                self._waiting.discard(request_id)
            raise

    def get_status(self) -> QueueStatus:
        return QueueStatus(
            active_requests=len(self._active),
            waiting_requests=len(self._waiting),
            max_concurrent=self.max_concurrent,
            available_slots=max(0, self.max_concurrent - len(self._active)),
            active_request_ids=sorted(self._active),
            waiting_request_ids=sorted(self._waiting),
        )


# Global queue manager instance
_queue_manager = ScanQueueManager()


@asynccontextmanager
async def acquire_scan_slot(request_id: str):
    """Convenience wrapper around ScanQueueManager.acquire_slot()."""
    async with _queue_manager.acquire_slot(request_id):
        yield


def get_queue_status() -> QueueStatus:
    return _queue_manager.get_status()
