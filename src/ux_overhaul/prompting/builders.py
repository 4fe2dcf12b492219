"""Prompt templates for screens, anchors, specimen sheets and states.

Every builder is a pure function of its inputs so prompts are reproducible
and can be asserted on directly.
"""

from __future__ import annotations

from ux_overhaul.design.models import StateType

QUALITY_SUFFIX = ". High fidelity, pixel-perfect, production-ready UI design"
MAX_PROMPT_COLORS = 5
MAX_IMPROVEMENTS = 5
MAX_REFERENCE_IMAGES = 14

VIEWPORT_DESCRIPTIONS: dict[str, str] = {
    "mobile": "optimized for mobile devices with touch-friendly elements",
    "tablet": "optimized for tablet with balanced touch and precision interactions",
    "desktop": "optimized for desktop with standard cursor interactions",
    "desktop-xl": "optimized for large desktop displays",
}

SCREEN_TYPE_PROMPTS: dict[str, str] = {
    "dashboard": (
        "data-rich dashboard with clear information hierarchy, meaningful metrics, "
        "and scannable layout"
    ),
    "form": (
        "clean form layout with proper field grouping, clear labels, and visible "
        "validation states"
    ),
    "list": (
        "well-organized list view with consistent item styling, clear actions, and "
        "efficient scanning"
    ),
    "detail": "focused detail view with clear content sections and related actions",
    "settings": (
        "organized settings page with logical groupings and clear toggle/input states"
    ),
    "auth": (
        "trustworthy authentication screen with clear call-to-action and minimal "
        "distractions"
    ),
    "landing": (
        "compelling landing page with clear value proposition and strong visual "
        "hierarchy"
    ),
    "modal": "focused modal dialog with clear purpose, actions, and dismissal options",
    "empty": "friendly empty state with clear guidance and suggested actions",
    "error": "helpful error state with clear explanation and recovery options",
    "loading": "subtle loading state with skeleton elements preserving layout structure",
}
DEFAULT_SCREEN_TYPE_PROMPT = "clean, professional interface layout"

SEVERITY_FOCUS: dict[str, str] = {
    "critical": "Pay critical attention to accessibility and core usability",
    "high": "Ensure strong attention to usability best practices",
    "medium": "Apply thoughtful attention to user experience details",
    "low": "Polish with minor UX enhancements",
}

STATE_DESCRIPTIONS: dict[StateType, str] = {
    StateType.LOADING: (
        "loading skeleton state with animated placeholder elements, preserving "
        "exact layout structure"
    ),
    StateType.EMPTY: (
        "empty state with friendly illustration, helpful message, and suggested action"
    ),
    StateType.ERROR: (
        "error state with clear error message, explanation, and recovery action"
    ),
    StateType.SUCCESS: (
        "success state with confirmation message, next steps, and positive feedback"
    ),
}

DEFAULT_FONT_FAMILY = "Inter, system-ui, sans-serif"
DEFAULT_ACCENT = "#3B82F6"


def base_prompt(
    viewport: str, screen_type: str | None = None, style: str | None = None
) -> str:
    """Opening clause: style, screen type and viewport guidance."""
    parts = [
        f"{style} user interface design"
        if style
        else "Professional modern user interface design"
    ]
    if screen_type:
        parts.append(f"for a {screen_type} screen")
    viewport_text = VIEWPORT_DESCRIPTIONS.get(viewport)
    if viewport_text:
        parts.append(viewport_text)
    return ", ".join(parts)


def color_constraints(colors: list[str]) -> str:
    """Palette clause listing at most five colors (empty when none)."""
    if not colors:
        return ""
    return f". Use this exact color palette: {', '.join(colors[:MAX_PROMPT_COLORS])}"


def screen_type_prompt(screen_type: str) -> str:
    """Screen-type guidance sentence."""
    return SCREEN_TYPE_PROMPTS.get(screen_type, DEFAULT_SCREEN_TYPE_PROMPT)


def combine_improvements(
    global_improvements: list[str],
    screen_improvements: list[str],
    max_items: int = MAX_IMPROVEMENTS,
) -> list[str]:
    """Merge audit injections: first two globals, then screen items, deduplicated."""
    combined: list[str] = []
    for item in [*global_improvements[:2], *screen_improvements]:
        if item and item not in combined:
            combined.append(item)
        if len(combined) >= max_items:
            break
    return combined


def build_screen_prompt_with_audit(
    *,
    viewport: str,
    screen_type: str,
    style: str | None,
    colors: list[str],
    improvements: list[str],
    severity_focus: str | None = None,
) -> str:
    """Full screen-redesign prompt with audit-derived UX requirements.

    Args:
        viewport: Target viewport.
        screen_type: Classified screen type.
        style: Free-text style direction.
        colors: Ordered palette colors.
        improvements: Prompt injections (at most five are used).
        severity_focus: One of critical/high/medium/low, or None.

    Returns:
        Prompt string ending with the quality suffix.
    """
    prompt = base_prompt(viewport, screen_type, style)
    prompt += f". {screen_type_prompt(screen_type)}"
    prompt += color_constraints(colors)
    if improvements:
        prompt += f". UX Requirements: {'; '.join(improvements[:MAX_IMPROVEMENTS])}"
    focus = SEVERITY_FOCUS.get(severity_focus or "")
    if focus:
        prompt += f". {focus}"
    return prompt + QUALITY_SUFFIX


def reference_instructions(reference_count: int) -> str:
    """Sentence telling the model how to use references 1..N (empty for N=0)."""
    count = min(reference_count, MAX_REFERENCE_IMAGES)
    if count <= 0:
        return ""
    text = (
        f". Match style exactly from reference images 1-{count} "
        "(use reference 1 for overall aesthetic"
    )
    if count >= 2:
        text += ", subsequent references for component styling"
    return text + ")"


def hero_prompt(app_type: str, style: str, viewport: str) -> str:
    """Prompt for the hero screen that sets the visual direction."""
    context = (
        "mobile-first design with bottom navigation and touch-friendly controls"
        if viewport == "mobile"
        else "desktop layout with sidebar navigation and hover states"
    )
    return (
        f"{style} {app_type} application main screen. {context}. "
        "Modern, clean aesthetic with clear information hierarchy. "
        "Professional color scheme, balanced whitespace, readable typography. "
        "High fidelity mockup ready for production."
    )


def typography_prompt(font_family: str, style: str) -> str:
    """Typography specimen sheet prompt."""
    return (
        f"Typography specimen sheet showing {font_family} font family in {style} "
        "style. Display headings H1-H6, body text, captions, and labels. Show "
        "different weights and sizes with clear visual hierarchy. Clean white "
        "background, professional layout."
    )


def state_prompt(base_description: str, state: StateType) -> str:
    """Attach a state description to a screen description."""
    return f"{base_description}, showing {STATE_DESCRIPTIONS[StateType(state)]}"


def iconography_prompt(style: str, colors: list[str]) -> str:
    """Icon set specimen prompt using the accent color."""
    if len(colors) > 2:
        accent = colors[2]
    elif colors:
        accent = colors[0]
    else:
        accent = DEFAULT_ACCENT
    return (
        f"Icon set specimen sheet showing common UI icons in {style} style. "
        "Include: home, settings, user, search, menu, close, add, edit, delete, "
        f"share, notification, message. Consistent stroke weight, {accent} accent "
        "color, clean grid layout on white background. SVG-style crisp icons, "
        "minimal detail, professional quality."
    )
