"""Unit tests for screen classification and strengths."""

from __future__ import annotations

import pytest

from ux_overhaul.design.models import ScreenType
from ux_overhaul.propagation.classifier import classify_screen, display_name, strength_for


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("Login", ScreenType.AUTH),
        ("Forgot password", ScreenType.AUTH),
        ("No results", ScreenType.EMPTY),
        ("Home", ScreenType.DASHBOARD),
        ("Product catalog", ScreenType.LIST),
        ("Create invoice", ScreenType.FORM),
        ("Account preferences", ScreenType.SETTINGS),
        ("Profile", ScreenType.DETAIL),
        ("Welcome", ScreenType.LANDING),
        ("Confirm dialog", ScreenType.MODAL),
        ("404 page", ScreenType.ERROR),
        ("Checkout", ScreenType.GENERIC),
    ],
)
def test_classify_screen_by_name(name: str, expected: ScreenType) -> None:
    """Keywords in the screen name pick the first matching type."""
    assert classify_screen(name) == expected


def test_hint_wins_over_keywords() -> None:
    """A valid explicit type hint is used verbatim; an unknown one is ignored."""
    assert classify_screen("Login", "Dashboard") == ScreenType.DASHBOARD
    assert classify_screen("Login", "unknown") == ScreenType.AUTH


def test_strength_for_type_and_override() -> None:
    """Per-type strengths apply unless an override is configured."""
    assert strength_for(ScreenType.FORM) == 0.65
    assert strength_for(ScreenType.EMPTY) == 0.50
    assert strength_for(ScreenType.FORM, 0.3) == 0.3


def test_display_name() -> None:
    """Types have human labels."""
    assert display_name(ScreenType.LIST) == "List View"
    assert display_name(ScreenType.GENERIC) == "Screen"
