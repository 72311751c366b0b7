"""
Signing Order Routing Module

Single source of truth for vendor assignment decisions.

Components:
- EligibilityMatrix: State activity and RON permission lookups
- VendorScorer: Weighted vendor scoring and deterministic ranking
- SigningRouter: Main routing entry point
"""

from .state_eligibility import EligibilityMatrix, EligibilityResult, StateConfig
from .vendor_scorer import ScoreBreakdown, VendorMatch, VendorScorer
from .signing_router import (
    DecisionStatus,
    ReasonCode,
    RoutingDecision,
    SigningRouter,
    UnmatchedReason,
)

__all__ = [
    "EligibilityMatrix",
    "EligibilityResult",
    "StateConfig",
    "ScoreBreakdown",
    "VendorMatch",
    "VendorScorer",
    "DecisionStatus",
    "ReasonCode",
    "RoutingDecision",
    "SigningRouter",
    "UnmatchedReason",
]
