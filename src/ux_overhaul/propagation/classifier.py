"""Screen-type classification and per-type propagation strength."""

from __future__ import annotations

from ux_overhaul.design.models import ScreenType

# First match wins: "profile settings" is settings, "profile" alone is detail.
CLASSIFIER_KEYWORDS: tuple[tuple[ScreenType, tuple[str, ...]], ...] = (
    (
        ScreenType.AUTH,
        (
            "login",
            "signin",
            "sign-in",
            "sign in",
            "signup",
            "sign-up",
            "sign up",
            "register",
            "forgot",
            "reset-password",
        ),
    ),
    (ScreenType.EMPTY, ("empty", "no-data", "no data", "no-results", "no results")),
    (ScreenType.DASHBOARD, ("dashboard", "overview", "home", "main")),
    (ScreenType.LIST, ("list", "browse", "catalog", "search", "results")),
    (ScreenType.FORM, ("form", "edit", "create", "add", "new")),
    (
        ScreenType.SETTINGS,
        ("settings", "preferences", "config", "account", "profile-settings"),
    ),
    (ScreenType.DETAIL, ("detail", "view", "profile", "item", "single")),
    (ScreenType.LANDING, ("landing", "welcome", "onboard", "intro", "hero")),
    (ScreenType.MODAL, ("modal", "dialog", "popup", "confirm")),
    (ScreenType.ERROR, ("error", "404", "500", "not-found")),
)

_SCREEN_TYPE_VALUES = frozenset(t.value for t in ScreenType)

SCREEN_TYPE_STRENGTHS: dict[ScreenType, float] = {
    ScreenType.DASHBOARD: 0.60,
    ScreenType.LIST: 0.55,
    ScreenType.DETAIL: 0.60,
    ScreenType.FORM: 0.65,
    ScreenType.SETTINGS: 0.60,
    ScreenType.AUTH: 0.55,
    ScreenType.LANDING: 0.55,
    ScreenType.MODAL: 0.65,
    ScreenType.EMPTY: 0.50,
    ScreenType.ERROR: 0.50,
    ScreenType.GENERIC: 0.60,
}

SCREEN_TYPE_DISPLAY_NAMES: dict[ScreenType, str] = {
    ScreenType.DASHBOARD: "Dashboard",
    ScreenType.LIST: "List View",
    ScreenType.DETAIL: "Detail View",
    ScreenType.FORM: "Form",
    ScreenType.SETTINGS: "Settings",
    ScreenType.AUTH: "Authentication",
    ScreenType.LANDING: "Landing Page",
    ScreenType.MODAL: "Modal Dialog",
    ScreenType.EMPTY: "Empty State",
    ScreenType.ERROR: "Error State",
    ScreenType.GENERIC: "Screen",
}


def classify_screen(name: str, hint: str | None = None) -> ScreenType:
    """Screen type from an explicit hint, else from keywords in the name."""
    if hint and hint.lower() in _SCREEN_TYPE_VALUES:
        return ScreenType(hint.lower())
    lowered = name.lower()
    for screen_type, keywords in CLASSIFIER_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return screen_type
    return ScreenType.GENERIC


def strength_for(screen_type: ScreenType, override: float | None = None) -> float:
    """Propagation strength for screen_type unless overridden."""
    if override is not None:
        return override
    return SCREEN_TYPE_STRENGTHS.get(screen_type, SCREEN_TYPE_STRENGTHS[ScreenType.GENERIC])


def display_name(screen_type: ScreenType) -> str:
    """Human label for a screen type."""
    return SCREEN_TYPE_DISPLAY_NAMES.get(screen_type, "Screen")
