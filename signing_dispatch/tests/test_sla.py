from datetime import datetime, timedelta, timezone

import pytest

from signing_dispatch.models import ServiceTier, VendorTier
from signing_dispatch.services.sla import (
    SERVICE_TIER_POLICIES,
    calculate_sla_deadlines,
    get_policy,
    is_overdue,
    minimum_vendor_tier,
    minutes_remaining,
)

ASSIGNED_AT = datetime(2026, 3, 2, 14, 0, tzinfo=timezone.utc)


def test_every_service_tier_has_a_policy():
    assert set(SERVICE_TIER_POLICIES) == set(ServiceTier)


@pytest.mark.parametrize(
    "tier,confirmation,contact",
    [
        (ServiceTier.STANDARD, 60, 120),
        (ServiceTier.PRIORITY, 15, 60),
        (ServiceTier.RESCUE, 3, 15),
    ],
)
def test_deadlines_follow_service_tier(tier, confirmation, contact):
    deadlines = calculate_sla_deadlines(ASSIGNED_AT, tier)

    assert deadlines.confirmation_deadline == ASSIGNED_AT + timedelta(minutes=confirmation)
    assert deadlines.contact_deadline == ASSIGNED_AT + timedelta(minutes=contact)


def test_minimum_vendor_tier():
    assert minimum_vendor_tier(ServiceTier.STANDARD) == VendorTier.BRONZE
    assert minimum_vendor_tier(ServiceTier.PRIORITY) == VendorTier.GOLD
    assert minimum_vendor_tier("rescue") == VendorTier.GOLD


def test_faster_tiers_cost_more():
    standard = get_policy(ServiceTier.STANDARD)
    rescue = get_policy(ServiceTier.RESCUE)
    assert rescue.rush_fee_multiplier > standard.rush_fee_multiplier
    assert rescue.base_fee_range[0] > standard.base_fee_range[1]


def test_is_overdue():
    deadline = ASSIGNED_AT + timedelta(minutes=15)
    assert not is_overdue(deadline, now=ASSIGNED_AT)
    assert not is_overdue(deadline, now=deadline)
    assert is_overdue(deadline, now=deadline + timedelta(seconds=1))


def test_minutes_remaining_floors_and_stops_at_zero():
    deadline = ASSIGNED_AT + timedelta(minutes=15)
    assert minutes_remaining(deadline, now=ASSIGNED_AT) == 15
    assert minutes_remaining(deadline, now=ASSIGNED_AT + timedelta(seconds=61)) == 13
    assert minutes_remaining(deadline, now=deadline + timedelta(hours=1)) == 0


def test_deadlines_to_dict():
    data = calculate_sla_deadlines(ASSIGNED_AT, ServiceTier.RESCUE).to_dict()
    assert data == {
        "confirmation_deadline": "2026-03-02T14:03:00+00:00",
        "contact_deadline": "2026-03-02T14:15:00+00:00",
    }
