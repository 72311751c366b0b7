"""
Service-tier SLA policy.

Each service tier promises the title client a confirmation and a borrower
contact deadline, and the faster tiers are only offered to proven vendors.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional, Tuple

from ..models import ServiceTier, VendorTier


@dataclass(frozen=True)
class ServiceTierPolicy:
    tier: ServiceTier
    display_name: str
    confirmation_sla_mins: int
    contact_sla_mins: int
    base_fee_range: Tuple[int, int]
    rush_fee_multiplier: float
    minimum_vendor_tier: VendorTier
    description: str


SERVICE_TIER_POLICIES: Dict[ServiceTier, ServiceTierPolicy] = {
    ServiceTier.STANDARD: ServiceTierPolicy(
        tier=ServiceTier.STANDARD,
        display_name="Standard",
        confirmation_sla_mins=60,
        contact_sla_mins=120,
        base_fee_range=(125, 150),
        rush_fee_multiplier=1.0,
        minimum_vendor_tier=VendorTier.BRONZE,
        description="60-minute confirmation, next-day scanbacks",
    ),
    ServiceTier.PRIORITY: ServiceTierPolicy(
        tier=ServiceTier.PRIORITY,
        display_name="Priority",
        confirmation_sla_mins=15,
        contact_sla_mins=60,
        base_fee_range=(175, 225),
        rush_fee_multiplier=1.5,
        minimum_vendor_tier=VendorTier.GOLD,
        description="15-minute confirmation, same-day scanbacks, top-tier notaries only",
    ),
    ServiceTier.RESCUE: ServiceTierPolicy(
        tier=ServiceTier.RESCUE,
        display_name="Rescue",
        confirmation_sla_mins=3,
        contact_sla_mins=15,
        base_fee_range=(250, 350),
        rush_fee_multiplier=2.0,
        minimum_vendor_tier=VendorTier.GOLD,
        description="Immediate dispatch, failed signing recovery, after-hours/weekend",
    ),
}


@dataclass(frozen=True)
class SlaDeadlines:
    confirmation_deadline: datetime
    contact_deadline: datetime

    def to_dict(self) -> Dict[str, str]:
        return {
            "confirmation_deadline": self.confirmation_deadline.isoformat(),
            "contact_deadline": self.contact_deadline.isoformat(),
        }


def get_policy(service_tier: ServiceTier) -> ServiceTierPolicy:
    return SERVICE_TIER_POLICIES[ServiceTier(service_tier)]


def minimum_vendor_tier(service_tier: ServiceTier) -> VendorTier:
    return get_policy(service_tier).minimum_vendor_tier


def calculate_sla_deadlines(assigned_at: datetime, service_tier: ServiceTier) -> SlaDeadlines:
    """Confirmation and contact deadlines counted from the assignment time."""
    policy = get_policy(service_tier)
    return SlaDeadlines(
        confirmation_deadline=assigned_at + timedelta(minutes=policy.confirmation_sla_mins),
        contact_deadline=assigned_at + timedelta(minutes=policy.contact_sla_mins),
    )


def _now_like(deadline: datetime, now: Optional[datetime]) -> datetime:
    if now is not None:
        return now
    if deadline.tzinfo is None:
        return datetime.now()
    return datetime.now(timezone.utc)


def is_overdue(deadline: datetime, now: Optional[datetime] = None) -> bool:
    return _now_like(deadline, now) > deadline


def minutes_remaining(deadline: datetime, now: Optional[datetime] = None) -> int:
    """Whole minutes left before the deadline; 0 once it has passed."""
    remaining = (deadline - _now_like(deadline, now)).total_seconds() / 60
    return max(0, math.floor(remaining))
