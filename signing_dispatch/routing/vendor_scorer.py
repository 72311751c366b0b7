"""
Vendor Scorer - Weighted Linear Scoring for (vendor, order) Pairs

Every sub-factor is normalized to 0..1 before weighting so that miles, tier
ordinals and performance percentages are comparable. Weights are fixed at
construction (RouterConfig) and shared by every call.

    total = w_tier * tier + w_proximity * proximity
          + w_specialization * specialization + w_performance * performance
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Tuple

from ..config import RouterConfig
from ..models import LoanType, SigningOrder, Vendor, VendorTier

logger = logging.getLogger(__name__)

# Loan products that a broader specialization also covers
RELATED_SPECIALIZATIONS: Dict[LoanType, FrozenSet[str]] = {
    LoanType.DSCR: frozenset({"commercial"}),
    LoanType.CONSTRUCTION: frozenset({"commercial"}),
}

_TIER_SPAN = max(VendorTier) - min(VendorTier)


def clamp(v: float, lo: float = 0.0, hi: float = 1.0) -> float:
    return max(lo, min(hi, v))


def specializations_for(loan_type: LoanType) -> FrozenSet[str]:
    """Specialization labels that count as a match for a loan type."""
    return frozenset({loan_type.value}) | RELATED_SPECIALIZATIONS.get(loan_type, frozenset())


@dataclass(frozen=True)
class ScoreBreakdown:
    """Normalized (0..1) sub-scores before weighting."""
    tier: float
    proximity: float
    specialization: float
    performance: float

    def to_dict(self) -> Dict[str, float]:
        return {
            "tier": round(self.tier, 4),
            "proximity": round(self.proximity, 4),
            "specialization": round(self.specialization, 4),
            "performance": round(self.performance, 4),
        }


@dataclass(frozen=True)
class VendorMatch:
    """One scored candidate for one routing request."""
    vendor: Vendor
    total: float
    breakdown: ScoreBreakdown
    distance_miles: Optional[float] = None

    @property
    def vendor_id(self) -> str:
        return self.vendor.id

    @property
    def tier(self) -> VendorTier:
        return self.vendor.tier

    def sort_key(self) -> Tuple[float, int, str]:
        # Rounded so float noise cannot reorder equal totals
        return (-round(self.total, 9), -int(self.vendor.tier), self.vendor.id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "vendor_id": self.vendor.id,
            "vendor_name": self.vendor.display_name,
            "tier": self.vendor.tier.label,
            "total": round(self.total, 4),
            "breakdown": self.breakdown.to_dict(),
            "distance_miles": round(self.distance_miles, 2) if self.distance_miles is not None else None,
        }


class VendorScorer:
    """
    Scores a vendor against an order.

    Sub-scores:
    - tier: linear in the tier ordinal (BRONZE 0.0 .. PLATINUM 1.0)
    - proximity: 1 - distance / radius for orders needing travel; a fixed
      neutral value for RON orders, where location is irrelevant
    - specialization: 1.0 on a loan-type match, a baseline otherwise
    - performance: externally maintained rolling score / 100
    """

    def __init__(self, config: Optional[RouterConfig] = None):
        self.config = config or RouterConfig()

    def service_radius(self, vendor: Vendor) -> float:
        """Effective radius: the vendor's own cap, never beyond the global cap."""
        global_cap = self.config.max_service_radius_miles
        if vendor.max_travel_radius_miles is None:
            return global_cap
        return min(vendor.max_travel_radius_miles, global_cap)

    @staticmethod
    def distance(vendor: Vendor, order: SigningOrder) -> Optional[float]:
        if vendor.location is None or order.location is None:
            return None
        return vendor.location.distance_to(order.location)

    def tier_score(self, vendor: Vendor) -> float:
        return (int(vendor.tier) - int(min(VendorTier))) / _TIER_SPAN

    def proximity_score(self, vendor: Vendor, order: SigningOrder, distance: Optional[float] = None) -> float:
        if not order.signing_type.requires_travel:
            return self.config.neutral_proximity
        if distance is None:
            distance = self.distance(vendor, order)
        if distance is None:
            return 0.0
        return clamp(1.0 - distance / self.service_radius(vendor))

    def specialization_score(self, vendor: Vendor, order: SigningOrder) -> float:
        if order.loan_type is None:
            return 1.0
        if vendor.specializations & specializations_for(order.loan_type):
            return 1.0
        return self.config.specialization_baseline

    @staticmethod
    def performance_score(vendor: Vendor) -> float:
        return clamp(vendor.performance_score / 100.0)

    def score(self, vendor: Vendor, order: SigningOrder) -> VendorMatch:
        distance = self.distance(vendor, order) if order.signing_type.requires_travel else None
        breakdown = ScoreBreakdown(
            tier=self.tier_score(vendor),
            proximity=self.proximity_score(vendor, order, distance),
            specialization=self.specialization_score(vendor, order),
            performance=self.performance_score(vendor),
        )
        weights = self.config.weights
        total = (
            weights.tier * breakdown.tier
            + weights.proximity * breakdown.proximity
            + weights.specialization * breakdown.specialization
            + weights.performance * breakdown.performance
        )
        logger.debug(f"   Scored {vendor.id}: total={total:.4f} {breakdown.to_dict()}")
        return VendorMatch(vendor=vendor, total=total, breakdown=breakdown, distance_miles=distance)

    @staticmethod
    def rank(matches: Iterable[VendorMatch]) -> List[VendorMatch]:
        """Total descending, then tier descending, then vendor id ascending."""
        return sorted(matches, key=VendorMatch.sort_key)
