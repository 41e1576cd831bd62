"""
Scan usage and paid-call cost tracking.

The orchestrator reports every terminal outcome here. Counters live in
memory for the life of the process; persisting them is left to callers.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

from cardscan.config import MAX_PAID_CALLS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UsageSnapshot:
    """Point-in-time copy of the usage counters"""
    scanned: int
    free_accepted: int
    paid_calls: int
    paid_accepted: int
    failed: int
    total_cost: float
    free_rate: float
    max_paid_calls: Optional[int]

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class UsageTracker(ABC):
    """Receives free/paid acceptance, paid-call and failure events."""

    @abstractmethod
    def can_make_paid_call(self) -> bool:
        pass

    @abstractmethod
    def record_free_acceptance(self) -> None:
        pass

    @abstractmethod
    def record_paid_call(self, cost: float, accepted: bool) -> None:
        pass

    @abstractmethod
    def record_failure(self) -> None:
        pass

    @abstractmethod
    def snapshot(self) -> UsageSnapshot:
        pass


class InMemoryUsageTracker(UsageTracker):
    """
    Process-local usage counters with an optional paid-call limit.

    Usage:
        usage = InMemoryUsageTracker(max_paid_calls=100)
        orchestrator = ScanOrchestrator(catalog, usage=usage)
        print(usage.snapshot().free_rate)
    """

    def __init__(self, max_paid_calls: Optional[int] = MAX_PAID_CALLS):
        self.max_paid_calls = max_paid_calls
        self.free_accepted = 0
        self.paid_calls = 0
        self.paid_accepted = 0
        self.failed = 0
        self.total_cost = 0.0

    @property
    def scanned(self) -> int:
        # A paid call that did not produce a match also ends as a failure
        return self.free_accepted + self.paid_accepted + self.failed

    @property
    def free_rate(self) -> float:
        """Share of accepted scans that never needed a paid call (0-100)."""
        accepted = self.free_accepted + self.paid_accepted
        if accepted == 0:
            return 0.0
        return 100.0 * self.free_accepted / accepted

    def can_make_paid_call(self) -> bool:
        if self.max_paid_calls is None:
            return True
        return self.paid_calls < self.max_paid_calls

    def record_free_acceptance(self) -> None:
        self.free_accepted += 1

    def record_paid_call(self, cost: float, accepted: bool) -> None:
        self.paid_calls += 1
        self.total_cost += cost
        if accepted:
            self.paid_accepted += 1

        if self.max_paid_calls is not None and self.paid_calls >= self.max_paid_calls:
            logger.warning(f"Paid call limit reached ({self.paid_calls}/{self.max_paid_calls})")

    def record_failure(self) -> None:
        self.failed += 1

    def snapshot(self) -> UsageSnapshot:
        return UsageSnapshot(
            scanned=self.scanned,
            free_accepted=self.free_accepted,
            paid_calls=self.paid_calls,
            paid_accepted=self.paid_accepted,
            failed=self.failed,
            total_cost=round(self.total_cost, 6),
            free_rate=round(self.free_rate, 1),
            max_paid_calls=self.max_paid_calls,
        )
