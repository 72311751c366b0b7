import pytest

from signing_dispatch.utils.geographies import (
    US_STATE_NAMES,
    haversine_miles,
    normalize_state_code,
    normalize_state_list,
    state_name,
)


def test_all_jurisdictions_present():
    assert len(US_STATE_NAMES) == 51
    assert US_STATE_NAMES["DC"] == "District of Columbia"


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("PA", "PA"),
        (" pa ", "PA"),
        ("Pennsylvania", "PA"),
        ("new   york", "NY"),
        ("Washington D.C.", "DC"),
        ("calif", "CA"),
        ("zz", "ZZ"),
        ("", ""),
        (None, ""),
    ],
)
def test_normalize_state_code(raw, expected):
    assert normalize_state_code(raw) == expected


def test_normalize_accepts_names_and_returns_unique_list():
    inputs = ["PA", "Pennsylvania", "oh", "  ", "Ohio", "NJ"]
    assert normalize_state_list(inputs) == ["PA", "OH", "NJ"]


def test_state_name():
    assert state_name("md") == "Maryland"
    assert state_name("ZZ") is None


def test_haversine_miles():
    # Philadelphia to Pittsburgh, roughly 257 miles great-circle
    distance = haversine_miles(39.9526, -75.1652, 40.4406, -79.9959)
    assert distance == pytest.approx(257, abs=3)
    assert haversine_miles(40.0, -76.0, 40.0, -76.0) == 0.0
