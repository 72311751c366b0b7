"""Utility functions for signing-dispatch."""
from .geographies import (
    US_STATE_NAMES,
    haversine_miles,
    normalize_state_code,
    normalize_state_list,
    state_name,
)

__all__ = [
    # State codes
    'US_STATE_NAMES',
    'normalize_state_code',
    'normalize_state_list',
    'state_name',
    # Distance
    'haversine_miles',
]
