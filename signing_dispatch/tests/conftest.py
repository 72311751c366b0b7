"""
Shared pytest fixtures for signing-dispatch tests.

This module provides common fixtures used across all test modules.
Import fixtures from here instead of defining them in individual test files.
"""
from __future__ import annotations

import os
import pytest
from typing import Any, Dict, List

from signing_dispatch.config import get_settings

SETTINGS_ENV_KEYS = [
    "LOG_LEVEL",
    "STATE_MATRIX_PATH",
    "MAX_SERVICE_RADIUS_MILES",
    "SPECIALIZATION_BASELINE",
    "NEUTRAL_PROXIMITY",
    "WEIGHT_TIER",
    "WEIGHT_PROXIMITY",
    "WEIGHT_SPECIALIZATION",
    "WEIGHT_PERFORMANCE",
]


# ============================================================================
# Environment Fixtures
# ============================================================================

@pytest.fixture(autouse=True)
def test_environment():
    """Clear routing overrides and re-read settings for all tests."""
    old_env = os.environ.copy()
    for key in SETTINGS_ENV_KEYS:
        os.environ.pop(key, None)
    get_settings.cache_clear()
    yield
    os.environ.clear()
    os.environ.update(old_env)
    get_settings.cache_clear()


# ============================================================================
# Data Fixtures
# ============================================================================

@pytest.fixture
def sample_order() -> Dict[str, Any]:
    """RON refinance in Pennsylvania."""
    return {
        "id": "ord-1001",
        "state": "PA",
        "signingType": "ron",
        "loanType": "refinance",
        "serviceTier": "standard",
    }


@pytest.fixture
def sample_vendors() -> List[Dict[str, Any]]:
    """Three RON-capable Pennsylvania vendors, best first under default weights."""
    return [
        {
            "id": "v-alpha",
            "name": "Alpha Signings",
            "licensedStates": ["PA", "NJ"],
            "ronAuthorized": True,
            "tier": "platinum",
            "specializations": ["refinance", "purchase"],
            "performanceScore": 95,
        },
        {
            "id": "v-bravo",
            "name": "Bravo Notary",
            "licensedStates": ["PA"],
            "ronAuthorized": True,
            "tier": "gold",
            "specializations": ["purchase"],
            "performanceScore": 82,
        },
        {
            "id": "v-charlie",
            "licensedStates": ["PA", "OH"],
            "ronAuthorized": True,
            "tier": "silver",
            "performanceScore": 71,
        },
    ]
