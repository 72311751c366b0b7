"""
Vendor performance bookkeeping.

The rolling performance score (0..100) is fed by events from completed and
declined assignments; the vendor tier follows from the score.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

from ..models import Vendor, VendorTier

logger = logging.getLogger(__name__)

MIN_SCORE = 0.0
MAX_SCORE = 100.0

TIER_THRESHOLDS = (
    (90.0, VendorTier.PLATINUM),
    (80.0, VendorTier.GOLD),
    (70.0, VendorTier.SILVER),
)


class PerformanceEvent(str, Enum):
    ACCEPT = "accept"
    DECLINE = "decline"
    COMPLETE = "complete"
    DEFECT = "defect"
    LATE = "late"
    NO_SHOW = "no_show"


def tier_for_score(score: float) -> VendorTier:
    for threshold, tier in TIER_THRESHOLDS:
        if score >= threshold:
            return tier
    return VendorTier.BRONZE


def calculate_score_adjustment(
    event: PerformanceEvent,
    current_score: float,
    response_time_seconds: Optional[float] = None,
    quality_rating: Optional[int] = None,
    first_pass_funded: Optional[bool] = None,
) -> float:
    """
    Score change for one performance event.

    Returns the adjustment actually applied, i.e. after clamping the new
    score to 0..100.
    """
    event = PerformanceEvent(event)
    adjustment = 0.0

    if event == PerformanceEvent.ACCEPT:
        if response_time_seconds is not None:
            if response_time_seconds < 60:
                adjustment = 2.0
            elif response_time_seconds < 180:
                adjustment = 1.0
    elif event == PerformanceEvent.DECLINE:
        # Legitimate reasons exist, so the penalty stays small
        adjustment = -1.0
    elif event == PerformanceEvent.COMPLETE:
        adjustment = 1.0
        if first_pass_funded:
            adjustment += 2.0
        if quality_rating is not None:
            if quality_rating == 5:
                adjustment += 2.0
            elif quality_rating == 4:
                adjustment += 1.0
            elif quality_rating < 3:
                adjustment -= 2.0
    elif event == PerformanceEvent.DEFECT:
        adjustment = -5.0
    elif event == PerformanceEvent.LATE:
        adjustment = -3.0
    elif event == PerformanceEvent.NO_SHOW:
        adjustment = -15.0

    new_score = max(MIN_SCORE, min(MAX_SCORE, current_score + adjustment))
    return new_score - current_score


def apply_performance_event(
    vendor: Vendor,
    event: PerformanceEvent,
    response_time_seconds: Optional[float] = None,
    quality_rating: Optional[int] = None,
    first_pass_funded: Optional[bool] = None,
) -> Vendor:
    """Return a copy of the vendor with its score and tier updated."""
    adjustment = calculate_score_adjustment(
        event,
        vendor.performance_score,
        response_time_seconds=response_time_seconds,
        quality_rating=quality_rating,
        first_pass_funded=first_pass_funded,
    )
    new_score = vendor.performance_score + adjustment
    new_tier = tier_for_score(new_score)
    if new_tier != vendor.tier:
        logger.info(f"Vendor {vendor.id} moves {vendor.tier.label} → {new_tier.label} (score {new_score:.1f})")
    return vendor.model_copy(update={"performance_score": new_score, "tier": new_tier})
