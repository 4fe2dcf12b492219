"""Image generation: service client, attempt escalation, image helpers."""

from ux_overhaul.generation.client import (
    FalClient,
    GeneratedImage,
    GenerationClient,
    GenerationOptions,
    GenerationResult,
    estimate_cost,
    fetch_first_image,
)
from ux_overhaul.generation.escalation import (
    AttemptOutcome,
    PromptTransform,
    run_attempts,
)
from ux_overhaul.generation.images import (
    ImageInfo,
    aspect_ratio_for_viewport,
    has_png_signature,
    read_image_info,
    to_data_url,
)

__all__ = [
    "AttemptOutcome",
    "FalClient",
    "GeneratedImage",
    "GenerationClient",
    "GenerationOptions",
    "GenerationResult",
    "ImageInfo",
    "PromptTransform",
    "aspect_ratio_for_viewport",
    "estimate_cost",
    "fetch_first_image",
    "has_png_signature",
    "read_image_info",
    "run_attempts",
    "to_data_url",
]
