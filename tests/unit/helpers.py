"""Test-only helpers for unit tests. Not part of the package API."""

from __future__ import annotations

import base64
import io
import random
from collections.abc import Callable
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from PIL import Image

from ux_overhaul.anchoring.slots import initial_anchors
from ux_overhaul.design.models import (
    AppUnderstanding,
    CapturedScreen,
    StyleConfig,
    UserFlow,
    Viewport,
)
from ux_overhaul.design.style import compile_style_config, default_palette
from ux_overhaul.generation.client import (
    COST_PER_IMAGE,
    GeneratedImage,
    GenerationOptions,
    GenerationResult,
)
from ux_overhaul.kernel.atomic_write import atomic_write_bytes_at, atomic_write_json_at
from ux_overhaul.kernel.errors import GenerationError
from ux_overhaul.kernel.manifest import PhaseName, ProjectManifest, create_manifest
from ux_overhaul.kernel.paths import (
    get_app_understanding_path,
    get_style_config_path,
    resolve_project_path,
    to_project_relative,
)
from ux_overhaul.kernel.store import ManifestStore

STYLE_DIRECTION = "modern minimal"


@lru_cache(maxsize=64)
def make_png_bytes(seed: int = 0, width: int = 1600, height: int = 1000) -> bytes:
    """Deterministic PNG: solid fill plus a 96x96 noise patch.

    The noise keeps the encoded file above the 10KB validity floor; the
    default size meets every viewport's dimension minimum.
    """
    rng = random.Random(seed)
    fill = (rng.randrange(180, 256), rng.randrange(180, 256), rng.randrange(180, 256))
    image = Image.new("RGB", (width, height), fill)
    side = min(96, width, height)
    patch = Image.frombytes("RGB", (side, side), rng.randbytes(side * side * 3))
    image.paste(patch, (0, 0))
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def tiny_png_bytes() -> bytes:
    """Readable PNG far below the 10KB floor."""
    buffer = io.BytesIO()
    Image.new("RGB", (8, 8), (255, 255, 255)).save(buffer, format="PNG")
    return buffer.getvalue()


def write_png(path: Path, seed: int = 0, width: int = 1600, height: int = 1000) -> Path:
    """Write a deterministic PNG fixture to path."""
    atomic_write_bytes_at(path, make_png_bytes(seed, width, height), "fixture")
    return path


def data_url(content: bytes) -> str:
    """PNG bytes as a data URL."""
    return f"data:image/png;base64,{base64.b64encode(content).decode('ascii')}"


@dataclass
class ClientCall:
    """One recorded call to ScriptedClient."""

    kind: str
    prompt: str
    base_image: str | None
    reference_images: list[str]
    strength: float | None


class ScriptedClient:
    """In-memory GenerationClient returning fixture PNGs as data URLs.

    fail_when marks calls that fail with a retryable, charged 503; crash_when
    marks calls that raise RuntimeError (a process crash stand-in).
    """

    def __init__(
        self,
        *,
        image: bytes | None = None,
        cost: float = COST_PER_IMAGE,
        fail_when: Callable[[ClientCall], bool] | None = None,
        crash_when: Callable[[ClientCall], bool] | None = None,
        images_for: Callable[[ClientCall], bytes] | None = None,
    ) -> None:
        self.image = image if image is not None else make_png_bytes(7)
        self.cost = cost
        self.fail_when = fail_when
        self.crash_when = crash_when
        self.images_for = images_for
        self.calls: list[ClientCall] = []

    def generate(
        self,
        prompt: str,
        options: GenerationOptions | None = None,
        *,
        reference_images: list[str] | None = None,
    ) -> GenerationResult:
        del options
        return self._respond(
            ClientCall("generate", prompt, None, list(reference_images or []), None)
        )

    def edit(
        self,
        prompt: str,
        base_image: str,
        reference_images: list[str],
        strength: float,
        options: GenerationOptions | None = None,
    ) -> GenerationResult:
        del options
        return self._respond(
            ClientCall("edit", prompt, base_image, list(reference_images), strength)
        )

    def download(self, url: str) -> bytes:
        return base64.b64decode(url.split(",", 1)[1])

    def _respond(self, call: ClientCall) -> GenerationResult:
        self.calls.append(call)
        if self.crash_when is not None and self.crash_when(call):
            raise RuntimeError("simulated crash")
        if self.fail_when is not None and self.fail_when(call):
            raise GenerationError(
                "HTTP 503: service unavailable",
                retryable=True,
                status_code=503,
                cost=self.cost,
            )
        content = self.images_for(call) if self.images_for is not None else self.image
        return GenerationResult(
            images=[GeneratedImage(url=data_url(content))], cost=self.cost
        )


class CursorCrashStore(ManifestStore):
    """ManifestStore that dies when advancing the cursor past crash_batch.

    Stands in for a process killed after the progress file was written but
    before the batch cursor moved.
    """

    crash_batch = 2

    def advance_batch(self, phase: PhaseName, items: int) -> ProjectManifest:
        if self.batch_cursor(phase) == self.crash_batch:
            raise RuntimeError("simulated crash")
        return super().advance_batch(phase, items)


def create_project(
    project_root: Path,
    *,
    viewport: Viewport = Viewport.MOBILE,
    done: tuple[PhaseName, ...] = (),
) -> ManifestStore:
    """New project whose listed phases are already complete."""
    store = ManifestStore.create(
        project_root,
        create_manifest("test-project", "https://app.example.test", viewport.value),
    )
    for phase in done:
        store.begin(phase)
        store.complete(phase)
    return store


def write_captures(
    project_root: Path,
    count: int,
    *,
    names: list[str] | None = None,
    flows: list[UserFlow] | None = None,
) -> AppUnderstanding:
    """Write count capture PNGs and app_understanding.json."""
    screens: list[CapturedScreen] = []
    for i in range(1, count + 1):
        path = write_png(project_root / "captures" / f"screen-{i:02d}.png", seed=i)
        screens.append(
            CapturedScreen(
                id=f"screen-{i:02d}",
                name=names[i - 1] if names else f"Screen {i}",
                screenshot_path=to_project_relative(project_root, path),
            )
        )
    app = AppUnderstanding(app_name="Test App", screens=screens, flows=flows or [])
    atomic_write_json_at(
        get_app_understanding_path(project_root), app.to_file_dict(), "app_understanding"
    )
    return app


def write_validated_style(
    project_root: Path, viewport: Viewport = Viewport.MOBILE
) -> StyleConfig:
    """All 14 anchors on disk and validated, plus style_config.json."""
    anchors = []
    for anchor in initial_anchors(project_root):
        write_png(resolve_project_path(project_root, anchor.image_path), seed=100 + anchor.slot)
        anchors.append(
            anchor.model_copy(
                update={"validated": True, "validated_at": "2026-01-01T00:00:00+00:00"}
            )
        )
    style = compile_style_config(
        style_direction=STYLE_DIRECTION,
        viewport=viewport,
        palette=default_palette(STYLE_DIRECTION),
        anchors=anchors,
    )
    atomic_write_json_at(
        get_style_config_path(project_root), style.to_file_dict(), "style_config"
    )
    return style
