"""Image-generation service client (fal.ai nano-banana-pro)."""

from __future__ import annotations

import base64
import logging
import os
from typing import Any, Protocol

import httpx
from pydantic import BaseModel, Field
from tenacity import (
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_incrementing,
)

from ux_overhaul.config.settings import ConfigError, GenerationSettings
from ux_overhaul.kernel.errors import GenerationError

_LOGGER = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://fal.run/fal-ai"
GENERATE_ENDPOINT = "nano-banana-pro"
EDIT_ENDPOINT = "nano-banana-pro/edit"
MAX_REFERENCE_IMAGES = 14
COST_PER_IMAGE = 0.15


class GenerationOptions(BaseModel):
    """Per-call output options."""

    num_images: int = Field(default=1, ge=1, le=4)
    aspect_ratio: str | None = None
    resolution: str = "1K"
    output_format: str = "png"


class GeneratedImage(BaseModel):
    """One image returned by the service."""

    url: str
    file_name: str | None = None
    content_type: str | None = None
    width: int | None = None
    height: int | None = None
    file_size: int | None = None


class GenerationResult(BaseModel):
    """Images plus the cost charged for the call."""

    images: list[GeneratedImage] = Field(default_factory=list)
    cost: float = 0.0
    description: str = ""


class GenerationClient(Protocol):
    """Contract every generation backend satisfies (real or scripted)."""

    def generate(
        self,
        prompt: str,
        options: GenerationOptions | None = None,
        *,
        reference_images: list[str] | None = None,
    ) -> GenerationResult:
        """Text-to-image, optionally steered by reference images."""
        ...

    def edit(
        self,
        prompt: str,
        base_image: str,
        reference_images: list[str],
        strength: float,
        options: GenerationOptions | None = None,
    ) -> GenerationResult:
        """Image-to-image edit of base_image guided by references."""
        ...

    def download(self, url: str) -> bytes:
        """Fetch an image returned by generate/edit."""
        ...


def estimate_cost(num_images: int, resolution: str = "1K") -> float:
    """Service price for num_images at resolution (4K costs double)."""
    multiplier = 2 if resolution == "4K" else 1
    return num_images * COST_PER_IMAGE * multiplier


def _is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, GenerationError) and exc.retryable


class FalClient:
    """Blocking fal.ai client with bounded, linearly backed-off retries.

    Only retryable GenerationErrors (5xx, transport) are retried; 4xx
    responses and argument errors fail immediately.
    """

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        max_retries: int = 3,
        retry_delay_s: float = 1.0,
        timeout_s: float = 120.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        """Create client.

        Args:
            api_key: fal.ai key sent as ``Authorization: Key <key>``.
            base_url: Service root.
            max_retries: Total attempts per request.
            retry_delay_s: Backoff unit; attempt n waits n * retry_delay_s.
            timeout_s: Per-request timeout.
            http_client: Injected httpx client (tests use MockTransport).
        """
        self._base_url = base_url.rstrip("/")
        self._max_retries = max_retries
        self._retry_delay_s = retry_delay_s
        self._http = http_client or httpx.Client(timeout=timeout_s)
        self._headers = {
            "Authorization": f"Key {api_key}",
            "Content-Type": "application/json",
        }

    @classmethod
    def from_env(cls, settings: GenerationSettings | None = None) -> FalClient:
        """Build a client from settings and the API key environment variable.

        Raises:
            ConfigError: If the key variable is unset.
        """
        settings = settings or GenerationSettings()
        api_key = os.environ.get(settings.api_key_env)
        if not api_key:
            raise ConfigError(f"{settings.api_key_env} environment variable is not set")
        return cls(
            api_key,
            base_url=settings.base_url,
            max_retries=settings.max_retries,
            retry_delay_s=settings.retry_delay_s,
            timeout_s=settings.timeout_s,
        )

    def close(self) -> None:
        """Release the underlying HTTP connection pool."""
        self._http.close()

    def __enter__(self) -> FalClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def generate(
        self,
        prompt: str,
        options: GenerationOptions | None = None,
        *,
        reference_images: list[str] | None = None,
    ) -> GenerationResult:
        """Text-to-image generation."""
        options = options or GenerationOptions()
        refs = reference_images or []
        self._check_references(refs)
        body: dict[str, Any] = {
            "prompt": prompt,
            "num_images": options.num_images,
            "aspect_ratio": options.aspect_ratio or "1:1",
            "resolution": options.resolution,
            "output_format": options.output_format,
        }
        if refs:
            body["reference_images"] = refs
        return self._post(GENERATE_ENDPOINT, body, options)

    def edit(
        self,
        prompt: str,
        base_image: str,
        reference_images: list[str],
        strength: float,
        options: GenerationOptions | None = None,
    ) -> GenerationResult:
        """Image-to-image edit; base_image is a URL or data URL."""
        options = options or GenerationOptions()
        if not base_image:
            raise GenerationError("base image is required for edit", retryable=False)
        self._check_references(reference_images)
        body: dict[str, Any] = {
            "prompt": prompt,
            "image_url": base_image,
            "num_images": options.num_images,
            "aspect_ratio": options.aspect_ratio or "auto",
            "resolution": options.resolution,
            "output_format": options.output_format,
            "strength": strength,
        }
        if reference_images:
            body["reference_images"] = reference_images
        return self._post(EDIT_ENDPOINT, body, options)

    def download(self, url: str) -> bytes:
        """Fetch image bytes (data URLs are decoded locally)."""
        if url.startswith("data:"):
            return base64.b64decode(url.split(",", 1)[1])
        for attempt in self._retrying():
            with attempt:
                return self._get_bytes(url)
        raise AssertionError("unreachable")  # pragma: no cover

    def check_health(self) -> bool:
        """True when the service answers an OPTIONS probe below 500."""
        try:
            response = self._http.options(
                f"{self._base_url}/{GENERATE_ENDPOINT}", headers=self._headers
            )
        except httpx.HTTPError:
            return False
        return response.status_code < 500

    def estimate_cost(self, num_images: int, resolution: str = "1K") -> float:
        """Service price for num_images at resolution."""
        return estimate_cost(num_images, resolution)

    @staticmethod
    def _check_references(reference_images: list[str]) -> None:
        if len(reference_images) > MAX_REFERENCE_IMAGES:
            raise GenerationError(
                f"Maximum {MAX_REFERENCE_IMAGES} reference images allowed",
                retryable=False,
            )

    def _retrying(self) -> Retrying:
        return Retrying(
            stop=stop_after_attempt(self._max_retries),
            wait=wait_incrementing(
                start=self._retry_delay_s, increment=self._retry_delay_s
            ),
            retry=retry_if_exception(_is_retryable),
            reraise=True,
        )

    def _post(
        self, endpoint: str, body: dict[str, Any], options: GenerationOptions
    ) -> GenerationResult:
        # Every attempt that reached the service is billed, including the
        # ones tenacity retried away.
        charged = 0.0
        try:
            for attempt in self._retrying():
                with attempt:
                    try:
                        result = self._post_once(endpoint, body, options)
                    except GenerationError as exc:
                        charged += exc.cost
                        raise
                    return result.model_copy(update={"cost": result.cost + charged})
        except GenerationError as exc:
            if charged == exc.cost:
                raise
            raise GenerationError(
                exc.message,
                retryable=exc.retryable,
                status_code=exc.status_code,
                cost=charged,
            ) from exc
        raise AssertionError("unreachable")  # pragma: no cover

    def _post_once(
        self, endpoint: str, body: dict[str, Any], options: GenerationOptions
    ) -> GenerationResult:
        url = f"{self._base_url}/{endpoint}"
        charged = estimate_cost(options.num_images, options.resolution)
        _LOGGER.debug("POST %s", url)
        try:
            response = self._http.post(url, json=body, headers=self._headers)
        except httpx.HTTPError as exc:
            raise GenerationError(f"Request failed: {exc}", retryable=True) from exc
        if response.status_code >= 400:
            raise GenerationError(
                f"HTTP {response.status_code}: {response.text}",
                retryable=response.status_code >= 500,
                status_code=response.status_code,
                cost=charged,
            )
        try:
            payload = response.json()
        except ValueError as exc:
            raise GenerationError(
                f"Invalid response body: {exc}", retryable=True, cost=charged
            ) from exc
        images = [GeneratedImage.model_validate(i) for i in payload.get("images", [])]
        return GenerationResult(
            images=images,
            cost=estimate_cost(len(images), options.resolution),
            description=payload.get("description") or "",
        )

    def _get_bytes(self, url: str) -> bytes:
        try:
            response = self._http.get(url)
        except httpx.HTTPError as exc:
            raise GenerationError(f"Download failed: {exc}", retryable=True) from exc
        if response.status_code >= 400:
            raise GenerationError(
                f"Download failed: HTTP {response.status_code}",
                retryable=response.status_code >= 500,
                status_code=response.status_code,
            )
        return response.content


def fetch_first_image(client: GenerationClient, result: GenerationResult) -> bytes:
    """Download the first image of a result.

    Raises:
        GenerationError: Retryable, when the service returned no images.
    """
    if not result.images:
        raise GenerationError("No images returned", retryable=True, cost=result.cost)
    try:
        return client.download(result.images[0].url)
    except GenerationError as exc:
        raise GenerationError(
            exc.message,
            retryable=exc.retryable,
            status_code=exc.status_code,
            cost=result.cost,
        ) from exc
