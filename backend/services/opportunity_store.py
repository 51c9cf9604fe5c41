"""
Opportunity store.

Volatile in-process storage for detected opportunities. Records are never
removed by the execution path; expired or inactive records past the
retention window are pruned by the detector to bound memory.

All access goes through one ``threading.Lock`` so the store is safe from the
event loop and from worker threads alike. The lock only ever guards dict
operations, never I/O.
"""

import threading
import uuid
from datetime import datetime, timedelta
from typing import Optional

from models.opportunity import ArbitrageOpportunity, OpportunityCreate
from utils.logger import get_logger
from utils.utcnow import utcnow

logger = get_logger(__name__)


class OpportunityStore:
    def __init__(self):
        self._opportunities: dict[str, ArbitrageOpportunity] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._opportunities)

    def create(self, data: OpportunityCreate) -> ArbitrageOpportunity:
        opportunity = ArbitrageOpportunity(
            **data.model_dump(),
            id=str(uuid.uuid4()),
            is_active=True,
            created_at=utcnow(),
        )
        with self._lock:
            self._opportunities[opportunity.id] = opportunity
            return opportunity.model_copy()

    def get(self, opportunity_id: str) -> Optional[ArbitrageOpportunity]:
        with self._lock:
            opportunity = self._opportunities.get(opportunity_id)
            return opportunity.model_copy() if opportunity else None

    def list_active(self, now: Optional[datetime] = None) -> list[ArbitrageOpportunity]:
        """Active and unexpired opportunities, best profit first."""
        now = now or utcnow()
        with self._lock:
            live = [o.model_copy() for o in self._opportunities.values() if o.is_live(now)]
        live.sort(key=lambda o: o.profit_amount, reverse=True)
        return live

    def list_all(self) -> list[ArbitrageOpportunity]:
        with self._lock:
            return [o.model_copy() for o in self._opportunities.values()]

    def set_active(self, opportunity_id: str, is_active: bool) -> None:
        with self._lock:
            opportunity = self._opportunities.get(opportunity_id)
            if opportunity is None:
                return
            if is_active and not opportunity.is_active:
                logger.warning(
                    "Ignoring reactivation of inactive opportunity",
                    opportunity_id=opportunity_id,
                )
                return
            opportunity.is_active = is_active
            if not is_active:
                opportunity.claimed = False

    def claim(self, opportunity_id: str, now: Optional[datetime] = None) -> Optional[ArbitrageOpportunity]:
        """Mark a live opportunity as taken by one execution attempt.

        Returns a snapshot on success, or None when the id is unknown,
        expired, inactive or already claimed.
        """
        now = now or utcnow()
        with self._lock:
            opportunity = self._opportunities.get(opportunity_id)
            if opportunity is None or not opportunity.is_live(now) or opportunity.claimed:
                return None
            opportunity.claimed = True
            return opportunity.model_copy()

    def is_claimed(self, opportunity_id: str) -> bool:
        with self._lock:
            opportunity = self._opportunities.get(opportunity_id)
            return bool(opportunity and opportunity.claimed)

    def release(self, opportunity_id: str) -> None:
        with self._lock:
            opportunity = self._opportunities.get(opportunity_id)
            if opportunity is not None:
                opportunity.claimed = False

    def prune(self, retention: timedelta, now: Optional[datetime] = None) -> int:
        """Drop records that can no longer be executed and are past retention."""
        now = now or utcnow()
        cutoff = now - retention
        with self._lock:
            stale = [
                opp_id
                for opp_id, o in self._opportunities.items()
                if not o.claimed and not o.is_live(now) and o.created_at < cutoff
            ]
            for opp_id in stale:
                del self._opportunities[opp_id]
        if stale:
            logger.debug("Pruned stale opportunities", count=len(stale))
        return len(stale)
