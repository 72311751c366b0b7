"""
Signing Router - Single Entry Point for Vendor Assignment Decisions

Components used:
- EligibilityMatrix: state activity and RON permission
- VendorScorer: weighted scoring and deterministic ranking

Usage:
    from signing_dispatch.routing import SigningRouter

    router = SigningRouter.from_settings()
    decision = router.route(order, vendors)

    if decision.is_matched:
        print(f"Vendor: {decision.vendor_id} ({decision.winner.total:.3f})")
    else:
        print([reason.message for reason in decision.reasons])

The router is stateless and performs no I/O: it is safe to call concurrently
for different orders. Persisting the result (at most one assignment per
order) is the caller's job, see services/assignment.py.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from ..config import RouterConfig, Settings, get_settings
from ..exceptions import InvalidOrderError, InvalidVendorError
from ..models import SigningOrder, SigningType, Vendor
from ..services.sla import minimum_vendor_tier
from .state_eligibility import EligibilityMatrix, EligibilityResult
from .vendor_scorer import VendorMatch, VendorScorer

logger = logging.getLogger(__name__)


class DecisionStatus(str, Enum):
    MATCHED = "matched"
    UNMATCHED = "unmatched"


class ReasonCode(str, Enum):
    """Why an order, or a single candidate, could not be matched."""
    # Order-level
    STATE_INACTIVE = "state_inactive"
    RON_NOT_ALLOWED = "ron_not_allowed"
    IN_PERSON_NOT_ALLOWED = "in_person_not_allowed"
    NO_CANDIDATES = "no_candidates"
    # Candidate-level
    INVALID_VENDOR_RECORD = "invalid_vendor_record"
    DUPLICATE_CANDIDATE = "duplicate_candidate"
    NOT_LICENSED_IN_STATE = "not_licensed_in_state"
    RON_NOT_AUTHORIZED = "ron_not_authorized"
    LOCATION_UNKNOWN = "location_unknown"
    OUTSIDE_SERVICE_RADIUS = "outside_service_radius"
    UNAVAILABLE = "unavailable"
    TIER_BELOW_SERVICE_MINIMUM = "tier_below_service_minimum"


_REASON_ORDER = {code: index for index, code in enumerate(ReasonCode)}


@dataclass(frozen=True)
class UnmatchedReason:
    """Machine-readable reason attached to an unmatched decision."""
    code: ReasonCode
    message: str
    count: int = 0
    vendor_ids: tuple = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code.value,
            "message": self.message,
            "count": self.count,
            "vendor_ids": list(self.vendor_ids),
        }


@dataclass
class RoutingDecision:
    """Result of one routing invocation: matched or unmatched, never pending."""
    status: DecisionStatus
    order_id: Optional[str]
    state: str
    signing_type: SigningType
    ranked: List[VendorMatch] = field(default_factory=list)
    reasons: List[UnmatchedReason] = field(default_factory=list)
    rejections: Dict[str, List[ReasonCode]] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)
    eligibility_reason: str = ""

    @property
    def is_matched(self) -> bool:
        return self.status == DecisionStatus.MATCHED

    @property
    def winner(self) -> Optional[VendorMatch]:
        return self.ranked[0] if self.ranked else None

    @property
    def vendor_id(self) -> Optional[str]:
        return self.ranked[0].vendor_id if self.ranked else None

    @property
    def backup(self) -> Optional[VendorMatch]:
        return self.ranked[1] if len(self.ranked) > 1 else None

    @property
    def alternates(self) -> List[VendorMatch]:
        return self.ranked[1:]

    @property
    def reason_codes(self) -> List[ReasonCode]:
        return [reason.code for reason in self.reasons]

    def next_after(self, vendor_id: str) -> Optional[VendorMatch]:
        """Next-ranked candidate after ``vendor_id``, for re-offers."""
        ids = [match.vendor_id for match in self.ranked]
        if vendor_id not in ids:
            return None
        index = ids.index(vendor_id) + 1
        return self.ranked[index] if index < len(self.ranked) else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "order_id": self.order_id,
            "state": self.state,
            "signing_type": self.signing_type.value,
            "vendor_id": self.vendor_id,
            "backup_vendor_id": self.backup.vendor_id if self.backup else None,
            "ranked": [match.to_dict() for match in self.ranked],
            "reasons": [reason.to_dict() for reason in self.reasons],
            "rejections": {
                vendor_id: [code.value for code in codes]
                for vendor_id, codes in self.rejections.items()
            },
            "warnings": list(self.warnings),
            "eligibility_reason": self.eligibility_reason,
        }


OrderInput = Union[SigningOrder, Mapping[str, Any]]
VendorInput = Union[Vendor, Mapping[str, Any]]


class SigningRouter:
    """
    Assigns notary vendors to signing orders.

    Routing steps:
    1. Validate the order (bad input raises InvalidOrderError)
    2. Order-level gates: state active, RON permitted, candidates supplied
    3. Hard filters per candidate (record validity, licensure, RON
       authorization, radius, availability, service-tier minimum); every
       failure is recorded
    4. Score and rank survivors; the top one wins, the rest are alternates
    """

    def __init__(self, matrix: EligibilityMatrix, config: Optional[RouterConfig] = None):
        self.matrix = matrix
        self.config = config or RouterConfig()
        self.scorer = VendorScorer(self.config)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "SigningRouter":
        settings = settings or get_settings()
        if settings.state_matrix_path:
            matrix = EligibilityMatrix.from_yaml(settings.state_matrix_path)
        else:
            matrix = EligibilityMatrix.default()
        return cls(matrix, RouterConfig.from_settings(settings))

    def route(
        self,
        order: OrderInput,
        candidate_vendors: Optional[Iterable[VendorInput]] = None,
    ) -> RoutingDecision:
        """
        Decide which vendor should take the order.

        Args:
            order: SigningOrder or a mapping with the same fields
            candidate_vendors: Active roster entries (Vendor or mappings)

        Returns:
            RoutingDecision, matched or unmatched

        Raises:
            InvalidOrderError: the order is incomplete or malformed
        """
        order = self._validate_order(order)
        candidates = list(candidate_vendors or [])

        eligibility = self.matrix.check_eligibility(order.state, order.signing_type, order.loan_type)

        gate = self._check_order_gates(order, eligibility, candidates)
        if gate is not None:
            return self._unmatched(order, eligibility, [gate])

        survivors: List[Vendor] = []
        rejections: Dict[str, List[ReasonCode]] = {}
        vendors = self._parse_candidates(candidates, rejections)
        seen_ids = set()

        for vendor in vendors:
            if vendor.id in seen_ids:
                failures = [ReasonCode.DUPLICATE_CANDIDATE]
            else:
                seen_ids.add(vendor.id)
                failures = self._hard_filter_failures(vendor, order)

            if failures:
                rejections.setdefault(vendor.id, []).extend(failures)
                logger.debug(f"   Rejected {vendor.id}: {[code.value for code in failures]}")
            else:
                survivors.append(vendor)

        if not survivors:
            reasons = self._aggregate_reasons(order, rejections, len(candidates))
            return self._unmatched(order, eligibility, reasons, rejections)

        ranked = self.scorer.rank(self.scorer.score(vendor, order) for vendor in survivors)
        winner = ranked[0]

        logger.info(
            f"🎯 Routing {order.id or '<unsaved order>'}: {winner.vendor_id} "
            f"(score={winner.total:.3f}, {len(ranked)} eligible of {len(candidates)})"
        )

        return RoutingDecision(
            status=DecisionStatus.MATCHED,
            order_id=order.id,
            state=order.state,
            signing_type=order.signing_type,
            ranked=ranked,
            rejections=rejections,
            warnings=list(eligibility.warnings),
            eligibility_reason=eligibility.reason,
        )

    # ==========================================================================
    # Private Helper Methods
    # ==========================================================================

    @staticmethod
    def _validate_order(order: OrderInput) -> SigningOrder:
        order = SigningOrder.parse_record(order)
        if order.signing_type.requires_travel and order.location is None:
            raise InvalidOrderError(
                f"{order.signing_type.value} signings need a signing location",
                field="location",
            )
        return order

    @staticmethod
    def _parse_candidates(
        candidates: Sequence[VendorInput],
        rejections: Dict[str, List[ReasonCode]],
    ) -> List[Vendor]:
        """Validate roster entries; malformed ones are rejected, not fatal."""
        vendors: List[Vendor] = []
        for index, candidate in enumerate(candidates):
            try:
                vendors.append(Vendor.parse_record(candidate))
            except InvalidVendorError as e:
                key = e.vendor_id or f"#{index}"
                logger.warning(f"Skipping roster entry {key}: {e.message}")
                rejections.setdefault(key, []).append(ReasonCode.INVALID_VENDOR_RECORD)
        return vendors

    def _check_order_gates(
        self,
        order: SigningOrder,
        eligibility: EligibilityResult,
        candidates: Sequence[VendorInput],
    ) -> Optional[UnmatchedReason]:
        state = order.state

        if not self.matrix.is_state_active(state):
            return UnmatchedReason(ReasonCode.STATE_INACTIVE, eligibility.reason)

        if order.signing_type.requires_ron and not self.matrix.is_ron_allowed(state):
            config = self.matrix.get_state_config(state)
            return UnmatchedReason(
                ReasonCode.RON_NOT_ALLOWED,
                f"RON is not permitted in {state} ({config.display_name}); "
                f"{order.signing_type.value} orders cannot be routed there",
            )

        if order.signing_type.requires_travel and not self.matrix.is_in_person_allowed(state):
            return UnmatchedReason(
                ReasonCode.IN_PERSON_NOT_ALLOWED,
                f"In-person signings are not permitted in {state}",
            )

        if not candidates:
            return UnmatchedReason(ReasonCode.NO_CANDIDATES, "no candidates supplied")

        return None

    def _hard_filter_failures(self, vendor: Vendor, order: SigningOrder) -> List[ReasonCode]:
        failures: List[ReasonCode] = []

        if not vendor.is_licensed_in(order.state):
            failures.append(ReasonCode.NOT_LICENSED_IN_STATE)

        # RON-disallowed states never get this far
        if order.signing_type.requires_ron and not vendor.ron_authorized:
            failures.append(ReasonCode.RON_NOT_AUTHORIZED)

        if order.signing_type.requires_travel:
            distance = self.scorer.distance(vendor, order)
            if distance is None:
                failures.append(ReasonCode.LOCATION_UNKNOWN)
            elif distance > self.scorer.service_radius(vendor):
                failures.append(ReasonCode.OUTSIDE_SERVICE_RADIUS)

        if not vendor.is_available_for(order.required_window):
            failures.append(ReasonCode.UNAVAILABLE)

        required_tier = minimum_vendor_tier(order.service_tier)
        if vendor.tier < required_tier:
            failures.append(ReasonCode.TIER_BELOW_SERVICE_MINIMUM)

        return failures

    def _aggregate_reasons(
        self,
        order: SigningOrder,
        rejections: Mapping[str, List[ReasonCode]],
        total_candidates: int,
    ) -> List[UnmatchedReason]:
        counts: Counter = Counter()
        vendors_by_code: Dict[ReasonCode, List[str]] = {}
        for vendor_id, codes in rejections.items():
            for code in dict.fromkeys(codes):
                counts[code] += 1
                vendors_by_code.setdefault(code, []).append(vendor_id)

        ordered = sorted(counts, key=lambda code: (-counts[code], _REASON_ORDER[code]))
        return [
            UnmatchedReason(
                code=code,
                message=(
                    f"{self._describe(code, order)} "
                    f"({counts[code]} of {total_candidates} candidates rejected)"
                ),
                count=counts[code],
                vendor_ids=tuple(vendors_by_code[code]),
            )
            for code in ordered
        ]

    @staticmethod
    def _describe(code: ReasonCode, order: SigningOrder) -> str:
        state = order.state
        if code == ReasonCode.NOT_LICENSED_IN_STATE:
            return f"no vendor licensed in state {state}"
        if code == ReasonCode.RON_NOT_AUTHORIZED:
            return f"no RON-authorized vendor in state {state}"
        if code == ReasonCode.LOCATION_UNKNOWN:
            return "vendor location unknown, distance cannot be checked"
        if code == ReasonCode.OUTSIDE_SERVICE_RADIUS:
            return "no vendor within service radius"
        if code == ReasonCode.UNAVAILABLE:
            return "no vendor available for the required window"
        if code == ReasonCode.TIER_BELOW_SERVICE_MINIMUM:
            tier = minimum_vendor_tier(order.service_tier)
            return f"no vendor at {tier.label} tier or above for {order.service_tier.value} service"
        if code == ReasonCode.INVALID_VENDOR_RECORD:
            return "malformed vendor records skipped"
        if code == ReasonCode.DUPLICATE_CANDIDATE:
            return "duplicate vendor entries ignored"
        return code.value.replace("_", " ")

    @staticmethod
    def _unmatched(
        order: SigningOrder,
        eligibility: EligibilityResult,
        reasons: List[UnmatchedReason],
        rejections: Optional[Dict[str, List[ReasonCode]]] = None,
    ) -> RoutingDecision:
        logger.info(
            f"Routing {order.id or '<unsaved order>'}: unmatched "
            f"({', '.join(reason.code.value for reason in reasons)})"
        )
        return RoutingDecision(
            status=DecisionStatus.UNMATCHED,
            order_id=order.id,
            state=order.state,
            signing_type=order.signing_type,
            reasons=reasons,
            rejections=rejections or {},
            warnings=list(eligibility.warnings),
            eligibility_reason=eligibility.reason,
        )
