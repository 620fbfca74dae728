"""Dominant garment color from a photo, plus manual pixel picking.

The detector is the only part of the engine that suspends: one image fetch
bounded by ``settings.color_fetch_timeout_seconds``. Everything after the
fetch is deterministic (Pillow median-cut, no random seeding). Results are
memoized in a caller-owned :class:`ColorCache`, never in a module global.
"""
import asyncio
import base64
import binascii
import hashlib
import io
from typing import Awaitable, Callable, Dict, Optional

import httpx
import numpy as np
import structlog
from PIL import Image, UnidentifiedImageError

from ..config import settings
from ..schemas.results import DetectedColor
from .colors import nearest_named_color, rgb_to_hex


logger = structlog.get_logger("fitcheck")

NEAR_WHITE_MIN = 235
MIN_ALPHA = 32
BACKGROUND_DISTANCE = 30.0
BACKGROUND_MAX_SPREAD = 20.0
# Mean in-cluster distance at which tightness reaches zero
TIGHTNESS_SCALE = 128.0


class ImageUnavailable(Exception):
    """The image could not be fetched or decoded."""


def unavailable() -> DetectedColor:
    return DetectedColor(hex=None, name="unknown", rgb=None, confidence=0.0, source="unavailable")


def cache_key(image_ref: str) -> str:
    ref = image_ref.strip()
    if ref.startswith("data:"):
        return "data:" + hashlib.sha1(ref.encode()).hexdigest()
    return ref


class ColorCache:
    """Image reference -> detected color, invalidated explicitly (no TTL).

    Concurrent lookups for the same reference share one in-flight future, so
    the image is fetched and clustered once.
    """

    def __init__(self) -> None:
        self._values: Dict[str, DetectedColor] = {}
        self._inflight: Dict[str, asyncio.Future] = {}

    def __len__(self) -> int:
        return len(self._values)

    def __contains__(self, image_ref: str) -> bool:
        return cache_key(image_ref) in self._values

    def get(self, image_ref: str) -> Optional[DetectedColor]:
        return self._values.get(cache_key(image_ref))

    def set(self, image_ref: str, value: DetectedColor) -> None:
        self._values[cache_key(image_ref)] = value

    def invalidate(self, image_ref: str) -> bool:
        key = cache_key(image_ref)
        self._inflight.pop(key, None)
        return self._values.pop(key, None) is not None

    def clear(self) -> int:
        count = len(self._values)
        self._values.clear()
        self._inflight.clear()
        return count

    async def get_or_compute(
        self, image_ref: str, compute: Callable[[], Awaitable[DetectedColor]]
    ) -> DetectedColor:
        key = cache_key(image_ref)
        cached = self._values.get(key)
        if cached is not None:
            logger.debug("color_cache_hit", image_ref=key)
            return cached

        pending = self._inflight.get(key)
        if pending is not None:
            return await asyncio.shield(pending)

        fut: asyncio.Future = asyncio.get_running_loop().create_future()
        self._inflight[key] = fut
        try:
            value = await compute()
        except BaseException:
            if self._inflight.get(key) is fut:
                self._inflight.pop(key)
            # Coalesced waiters get an unknown color, not the leader's error or cancellation
            fut.set_result(unavailable())
            raise

        # An invalidate() during the fetch drops the in-flight marker; do not store then
        if self._inflight.get(key) is fut:
            self._inflight.pop(key)
            if value.is_known:
                self._values[key] = value
        fut.set_result(value)
        return value


def _decode_data_uri(ref: str) -> bytes:
    header, _, payload = ref.partition(",")
    if not payload:
        raise ImageUnavailable("empty data URI")
    try:
        if ";base64" in header:
            return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageUnavailable(f"bad base64 payload: {e}") from e
    return payload.encode()


def decode_image(data: bytes) -> Image.Image:
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise ImageUnavailable(f"undecodable image: {e}") from e
    return img


def _border_background(pixels: np.ndarray) -> Optional[np.ndarray]:
    """Return the border color when the frame edge is close to uniform."""
    border = np.concatenate([pixels[0], pixels[-1], pixels[:, 0], pixels[:, -1]])
    border = border[border[:, 3] >= MIN_ALPHA][:, :3]
    if border.size == 0:
        return None
    median = np.median(border, axis=0)
    spread = np.linalg.norm(border - median, axis=1).mean()
    if spread > BACKGROUND_MAX_SPREAD:
        return None
    return median


def sample_pixels(img: Image.Image, sample_size: int) -> np.ndarray:
    """Downsample and drop transparent, near-white and border-background samples."""
    rgba = img.convert("RGBA")
    rgba.thumbnail((sample_size, sample_size), Image.Resampling.NEAREST)
    pixels = np.asarray(rgba, dtype=np.float64)

    background = _border_background(pixels)
    flat = pixels.reshape(-1, 4)
    keep = flat[:, 3] >= MIN_ALPHA
    rgb = flat[:, :3]
    keep &= ~np.all(rgb >= NEAR_WHITE_MIN, axis=1)
    if background is not None:
        # A tightly cropped photo is all "border"; keep it rather than drop everything
        foreground = keep & (np.linalg.norm(rgb - background, axis=1) > BACKGROUND_DISTANCE)
        if foreground.any():
            keep = foreground
    return rgb[keep]


def dominant_color(samples: np.ndarray, clusters: int) -> Optional[DetectedColor]:
    """Median-cut the samples and describe the heaviest cluster."""
    if samples.size == 0:
        return None
    strip = Image.fromarray(samples.reshape(1, -1, 3).astype(np.uint8))
    quantized = strip.quantize(colors=max(1, clusters), method=Image.Quantize.MEDIANCUT)
    labels = np.asarray(quantized).reshape(-1)

    counts = np.bincount(labels)
    heaviest = int(np.argmax(counts))
    members = samples[labels == heaviest]
    mean = members.mean(axis=0)

    share = counts[heaviest] / labels.size
    spread = np.linalg.norm(members - mean, axis=1).mean()
    tightness = max(0.0, 1.0 - spread / TIGHTNESS_SCALE)

    rgb = tuple(int(round(c)) for c in mean)
    name, _ = nearest_named_color(rgb)
    return DetectedColor(
        hex=rgb_to_hex(rgb),
        name=name,
        rgb=rgb,
        confidence=round(float(share * tightness), 3),
        source="dominant-cluster",
    )


def pick_pixel_color(img: Image.Image, x: float, y: float) -> DetectedColor:
    """Exact color at natural-image coordinates, clamped to the image bounds."""
    width, height = img.size
    px = min(max(int(x), 0), width - 1)
    py = min(max(int(y), 0), height - 1)
    r, g, b = img.convert("RGB").getpixel((px, py))
    rgb = (int(r), int(g), int(b))
    return DetectedColor(
        hex=rgb_to_hex(rgb),
        name=nearest_named_color(rgb)[0],
        rgb=rgb,
        confidence=1.0,
        source="manual-pick",
    )


class DominantColorDetector:
    def __init__(
        self,
        cache: Optional[ColorCache] = None,
        timeout: Optional[float] = None,
        sample_size: Optional[int] = None,
        clusters: Optional[int] = None,
        allow_local: bool = False,
    ) -> None:
        self.cache = cache
        # Filesystem paths are for library callers only; the HTTP app leaves this off
        self.allow_local = allow_local
        self.timeout = timeout if timeout is not None else settings.color_fetch_timeout_seconds
        self.sample_size = sample_size or settings.color_sample_size
        self.clusters = clusters or settings.color_cluster_count

    async def _read(self, image_ref: str) -> bytes:
        ref = image_ref.strip()
        if ref.startswith("data:"):
            return _decode_data_uri(ref)
        if ref.startswith(("http://", "https://")):
            async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
                resp = await client.get(ref)
                resp.raise_for_status()
                return resp.content
        if not self.allow_local:
            raise ImageUnavailable("unsupported image reference")
        with open(ref, "rb") as f:
            return f.read()

    async def load(self, image_ref: str) -> Image.Image:
        if not image_ref or not image_ref.strip():
            raise ImageUnavailable("empty image reference")
        try:
            data = await asyncio.wait_for(self._read(image_ref), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise ImageUnavailable("image fetch timed out") from e
        except (httpx.HTTPError, OSError) as e:
            raise ImageUnavailable(f"image fetch failed: {e}") from e
        return decode_image(data)

    async def _detect_uncached(self, image_ref: str) -> DetectedColor:
        try:
            img = await self.load(image_ref)
            result = dominant_color(sample_pixels(img, self.sample_size), self.clusters)
        except ImageUnavailable as e:
            logger.warning("color_detect_failed", image_ref=cache_key(image_ref or ""), error=str(e))
            return unavailable()
        if result is None:
            logger.warning("color_detect_failed", image_ref=cache_key(image_ref), error="no garment pixels")
            return unavailable()
        return result

    async def detect(self, image_ref: str) -> DetectedColor:
        """Representative garment color for the image; never raises on bad input."""
        if self.cache is None or not image_ref:
            return await self._detect_uncached(image_ref)
        return await self.cache.get_or_compute(image_ref, lambda: self._detect_uncached(image_ref))

    async def pick(self, image_ref: str, x: float, y: float) -> DetectedColor:
        try:
            img = await self.load(image_ref)
        except ImageUnavailable as e:
            logger.warning("color_detect_failed", image_ref=cache_key(image_ref or ""), error=str(e), mode="manual")
            return unavailable()
        return pick_pixel_color(img, x, y)
