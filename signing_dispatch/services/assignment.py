"""
Order assignment on top of the stateless router.

The router only decides; this service records the decision so that an order
is held by at most one vendor at a time. A vendor that declines releases the
order and the next-ranked candidate from the same decision gets the offer.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional, Protocol

from ..exceptions import AssignmentError, InvalidOrderError
from ..models import SigningOrder
from ..routing.signing_router import RoutingDecision, SigningRouter
from .sla import SlaDeadlines, calculate_sla_deadlines

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Assignment:
    order_id: str
    vendor_id: str
    assigned_at: datetime
    deadlines: SlaDeadlines
    backup_vendor_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "order_id": self.order_id,
            "vendor_id": self.vendor_id,
            "backup_vendor_id": self.backup_vendor_id,
            "assigned_at": self.assigned_at.isoformat(),
            **self.deadlines.to_dict(),
        }


class AssignmentStore(Protocol):
    """Persistence for at-most-one assignment per order."""

    def claim(self, assignment: Assignment) -> bool:
        """Record the assignment unless the order is already held."""
        ...

    def release(self, order_id: str, vendor_id: str) -> bool:
        """Drop the assignment if ``vendor_id`` currently holds the order."""
        ...

    def get(self, order_id: str) -> Optional[Assignment]:
        ...


class InMemoryAssignmentStore:
    """Thread-safe dict-backed store, for tests and single-process use."""

    def __init__(self) -> None:
        self._assignments: Dict[str, Assignment] = {}
        self._lock = threading.Lock()

    def claim(self, assignment: Assignment) -> bool:
        with self._lock:
            if assignment.order_id in self._assignments:
                return False
            self._assignments[assignment.order_id] = assignment
            return True

    def release(self, order_id: str, vendor_id: str) -> bool:
        with self._lock:
            current = self._assignments.get(order_id)
            if current is None or current.vendor_id != vendor_id:
                return False
            del self._assignments[order_id]
            return True

    def get(self, order_id: str) -> Optional[Assignment]:
        with self._lock:
            return self._assignments.get(order_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._assignments)


@dataclass
class AssignmentResult:
    decision: RoutingDecision
    assignment: Optional[Assignment] = None
    already_assigned: bool = False
    skipped: list = field(default_factory=list)

    @property
    def assigned(self) -> bool:
        return self.assignment is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "assigned": self.assigned,
            "already_assigned": self.already_assigned,
            "assignment": self.assignment.to_dict() if self.assignment else None,
            "decision": self.decision.to_dict(),
        }


class AssignmentService:
    def __init__(self, router: SigningRouter, store: Optional[AssignmentStore] = None):
        self.router = router
        self.store = store if store is not None else InMemoryAssignmentStore()

    def assign(
        self,
        order: Any,
        candidate_vendors: Optional[Iterable[Any]] = None,
        now: Optional[datetime] = None,
    ) -> AssignmentResult:
        """
        Route the order and record the winner.

        Orders need an ``id`` here. If another caller already holds the
        order the decision is returned with ``already_assigned`` set and the
        store is left untouched.
        """
        order = SigningOrder.parse_record(order)
        if not order.id:
            raise InvalidOrderError("Order id is required for assignment", field="id")

        decision = self.router.route(order, candidate_vendors)
        if not decision.is_matched:
            return AssignmentResult(decision=decision)

        assignment = self._claim(order, decision, decision.winner.vendor_id, now)
        if assignment is None:
            logger.info(f"Order {order.id} already assigned; keeping existing assignment")
            return AssignmentResult(decision=decision, already_assigned=True)
        return AssignmentResult(decision=decision, assignment=assignment)

    def reoffer(
        self,
        order: Any,
        decision: RoutingDecision,
        declined_vendor_id: str,
        now: Optional[datetime] = None,
    ) -> AssignmentResult:
        """
        Hand the order to the next-ranked vendor after a decline.

        The declining vendor must hold the order. Returns an unassigned
        result when the ranked list is exhausted.
        """
        order = SigningOrder.parse_record(order)
        if not order.id or order.id != decision.order_id:
            raise AssignmentError(
                "Decision does not belong to this order",
                details={"order_id": order.id, "decision_order_id": decision.order_id},
            )

        if not self.store.release(order.id, declined_vendor_id):
            raise AssignmentError(
                f"Vendor {declined_vendor_id} does not hold order {order.id}",
                details={"order_id": order.id, "vendor_id": declined_vendor_id},
            )

        skipped = [declined_vendor_id]
        candidate = decision.next_after(declined_vendor_id)
        if candidate is None:
            logger.warning(f"Order {order.id}: no alternates left after {declined_vendor_id} declined")
            return AssignmentResult(decision=decision, skipped=skipped)

        assignment = self._claim(order, decision, candidate.vendor_id, now)
        if assignment is None:
            return AssignmentResult(decision=decision, already_assigned=True, skipped=skipped)

        logger.info(f"Order {order.id} re-offered to {candidate.vendor_id} after {declined_vendor_id} declined")
        return AssignmentResult(decision=decision, assignment=assignment, skipped=skipped)

    def _claim(
        self,
        order: SigningOrder,
        decision: RoutingDecision,
        vendor_id: str,
        now: Optional[datetime],
    ) -> Optional[Assignment]:
        assigned_at = now or datetime.now(timezone.utc)
        backup = decision.next_after(vendor_id)
        assignment = Assignment(
            order_id=order.id,
            vendor_id=vendor_id,
            assigned_at=assigned_at,
            deadlines=calculate_sla_deadlines(assigned_at, order.service_tier),
            backup_vendor_id=backup.vendor_id if backup else None,
        )
        if not self.store.claim(assignment):
            return None
        return assignment
