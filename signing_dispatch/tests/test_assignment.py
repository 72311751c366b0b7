from __future__ import annotations

import threading
import unittest
from datetime import datetime, timedelta, timezone

from signing_dispatch.exceptions import AssignmentError, InvalidOrderError
from signing_dispatch.routing import EligibilityMatrix, SigningRouter
from signing_dispatch.services.assignment import (
    Assignment,
    AssignmentService,
    InMemoryAssignmentStore,
)
from signing_dispatch.services.sla import calculate_sla_deadlines

NOW = datetime(2026, 3, 2, 14, 0, tzinfo=timezone.utc)


def _router() -> SigningRouter:
    return SigningRouter(EligibilityMatrix({"PA": {"active": True, "ron_allowed": True}}))


def _vendor(vendor_id: str, score: float) -> dict:
    return {
        "id": vendor_id,
        "licensed_states": ["PA"],
        "ron_authorized": True,
        "tier": "gold",
        "performance_score": score,
    }


ORDER = {"id": "ord-1", "state": "PA", "signing_type": "ron", "service_tier": "priority"}
ROSTER = [_vendor("v-1", 95), _vendor("v-2", 85), _vendor("v-3", 75)]


class InMemoryAssignmentStoreTests(unittest.TestCase):
    def _assignment(self, vendor_id: str) -> Assignment:
        return Assignment(
            order_id="ord-1",
            vendor_id=vendor_id,
            assigned_at=NOW,
            deadlines=calculate_sla_deadlines(NOW, "standard"),
        )

    def test_claim_is_exclusive(self):
        store = InMemoryAssignmentStore()

        self.assertTrue(store.claim(self._assignment("v-1")))
        self.assertFalse(store.claim(self._assignment("v-2")))
        self.assertEqual(store.get("ord-1").vendor_id, "v-1")

    def test_release_requires_holder(self):
        store = InMemoryAssignmentStore()
        store.claim(self._assignment("v-1"))

        self.assertFalse(store.release("ord-1", "v-2"))
        self.assertTrue(store.release("ord-1", "v-1"))
        self.assertIsNone(store.get("ord-1"))

    def test_concurrent_claims_admit_one(self):
        store = InMemoryAssignmentStore()
        results = []
        barrier = threading.Barrier(8)

        def worker(index: int) -> None:
            barrier.wait()
            results.append(store.claim(self._assignment(f"v-{index}")))

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(results.count(True), 1)
        self.assertEqual(len(store), 1)


class AssignmentServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.store = InMemoryAssignmentStore()
        self.service = AssignmentService(_router(), self.store)

    def test_assigns_winner_with_deadlines(self):
        result = self.service.assign(ORDER, ROSTER, now=NOW)

        self.assertTrue(result.assigned)
        self.assertEqual(result.assignment.vendor_id, "v-1")
        self.assertEqual(result.assignment.backup_vendor_id, "v-2")
        self.assertEqual(result.assignment.deadlines.confirmation_deadline, NOW + timedelta(minutes=15))
        self.assertEqual(self.store.get("ord-1").vendor_id, "v-1")

    def test_second_assign_keeps_first(self):
        self.service.assign(ORDER, ROSTER, now=NOW)
        result = self.service.assign(ORDER, list(reversed(ROSTER)), now=NOW)

        self.assertFalse(result.assigned)
        self.assertTrue(result.already_assigned)
        self.assertEqual(self.store.get("ord-1").vendor_id, "v-1")

    def test_unmatched_decision_assigns_nothing(self):
        result = self.service.assign(ORDER, [], now=NOW)

        self.assertFalse(result.assigned)
        self.assertFalse(result.decision.is_matched)
        self.assertIsNone(self.store.get("ord-1"))

    def test_order_id_required(self):
        with self.assertRaises(InvalidOrderError):
            self.service.assign({"state": "PA", "signing_type": "ron"}, ROSTER)

    def test_reoffer_walks_ranked_list(self):
        first = self.service.assign(ORDER, ROSTER, now=NOW)

        second = self.service.reoffer(ORDER, first.decision, "v-1", now=NOW)
        self.assertEqual(second.assignment.vendor_id, "v-2")
        self.assertEqual(second.skipped, ["v-1"])

        third = self.service.reoffer(ORDER, first.decision, "v-2", now=NOW)
        self.assertEqual(third.assignment.vendor_id, "v-3")

        exhausted = self.service.reoffer(ORDER, first.decision, "v-3", now=NOW)
        self.assertFalse(exhausted.assigned)
        self.assertIsNone(self.store.get("ord-1"))

    def test_reoffer_requires_holder(self):
        first = self.service.assign(ORDER, ROSTER, now=NOW)

        with self.assertRaises(AssignmentError):
            self.service.reoffer(ORDER, first.decision, "v-2", now=NOW)

    def test_reoffer_rejects_foreign_decision(self):
        first = self.service.assign(ORDER, ROSTER, now=NOW)
        other = dict(ORDER, id="ord-2")

        with self.assertRaises(AssignmentError):
            self.service.reoffer(other, first.decision, "v-1", now=NOW)


if __name__ == "__main__":
    unittest.main()
