"""Pixel comparator — perceptual per-pixel diff between two screenshots.

Each pixel is converted to YIQ after blending its alpha over white, and the
weighted squared distance between the two pixels is compared against
``MAX_YIQ_DELTA * threshold ** 2``. Any pixel above that bound counts as a
difference and is painted red in the diff image; all other pixels are drawn
as a faded grayscale copy of the baseline so the differences stand out.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Union

import numpy as np
from PIL import Image

logger = logging.getLogger(__name__)

# Per-pixel tolerance on a 0-1 scale; absorbs anti-aliasing noise.
PIXEL_THRESHOLD = 0.1
# Upper bound of the weighted YIQ distance; the threshold scales against it.
MAX_YIQ_DELTA = 35215.0
# Opacity of the faded baseline drawn under unchanged pixels.
DIFF_BACKGROUND_ALPHA = 0.1
DIFF_COLOR = (255, 0, 0)

ImageSource = Union[Image.Image, bytes, str, Path]


class Verdict(str, Enum):
    MATCH = "match"
    MISMATCH = "mismatch"
    INDETERMINATE = "indeterminate"


@dataclass
class ComparisonResult:
    verdict: Verdict
    diff_pixels: int = 0
    diff_image: Image.Image | None = None
    message: str = ""

    @property
    def is_match(self) -> bool:
        return self.verdict == Verdict.MATCH

    @property
    def is_mismatch(self) -> bool:
        return self.verdict == Verdict.MISMATCH


def load_image(source: ImageSource) -> Image.Image:
    """Decode an image from raw PNG bytes, a path, or pass a PIL image through."""
    if isinstance(source, Image.Image):
        return source
    if isinstance(source, (bytes, bytearray)):
        image = Image.open(io.BytesIO(source))
    else:
        image = Image.open(source)
    image.load()
    return image


def _rgba(image: Image.Image) -> np.ndarray:
    return np.asarray(image.convert("RGBA"), dtype=np.float64)


def _blend_over_white(rgba: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    alpha = rgba[..., 3] / 255.0
    r = 255.0 + (rgba[..., 0] - 255.0) * alpha
    g = 255.0 + (rgba[..., 1] - 255.0) * alpha
    b = 255.0 + (rgba[..., 2] - 255.0) * alpha
    return r, g, b


def _rgb2y(r, g, b):
    return r * 0.29889531 + g * 0.58662247 + b * 0.11448223


def _rgb2i(r, g, b):
    return r * 0.59597799 - g * 0.27417610 - b * 0.32180189


def _rgb2q(r, g, b):
    return r * 0.21147017 - g * 0.52261711 + b * 0.31114694


def color_delta(first: np.ndarray, second: np.ndarray) -> np.ndarray:
    """Squared YIQ distance for every pixel of two equally sized RGBA arrays."""
    r1, g1, b1 = _blend_over_white(first)
    r2, g2, b2 = _blend_over_white(second)
    y = _rgb2y(r1, g1, b1) - _rgb2y(r2, g2, b2)
    i = _rgb2i(r1, g1, b1) - _rgb2i(r2, g2, b2)
    q = _rgb2q(r1, g1, b1) - _rgb2q(r2, g2, b2)
    return 0.5053 * y * y + 0.299 * i * i + 0.1957 * q * q


def _render_diff(baseline: np.ndarray, mask: np.ndarray) -> Image.Image:
    r, g, b, a = (baseline[..., c] for c in range(4))
    gray = 255.0 + (_rgb2y(r, g, b) - 255.0) * DIFF_BACKGROUND_ALPHA * a / 255.0
    out = np.empty(baseline.shape, dtype=np.uint8)
    out[..., 0] = out[..., 1] = out[..., 2] = np.clip(gray, 0, 255).astype(np.uint8)
    out[..., 3] = 255
    out[mask] = (*DIFF_COLOR, 255)
    return Image.fromarray(out)


def compare(
    baseline: ImageSource,
    candidate: ImageSource,
    threshold: float = PIXEL_THRESHOLD,
) -> ComparisonResult:
    """Compare a candidate screenshot against its baseline.

    Returns an INDETERMINATE result (never a pixel count) when the two images
    differ in size. Otherwise any pixel whose delta exceeds the threshold is a
    difference and a single differing pixel makes the result a MISMATCH.
    """
    base_img = load_image(baseline)
    cand_img = load_image(candidate)

    if base_img.size != cand_img.size:
        msg = (f"Image dimensions differ: baseline {base_img.size[0]}x{base_img.size[1]}, "
               f"candidate {cand_img.size[0]}x{cand_img.size[1]}")
        logger.warning("Skipping pixel comparison: %s", msg)
        return ComparisonResult(Verdict.INDETERMINATE, message=msg)

    base = _rgba(base_img)
    cand = _rgba(cand_img)
    identical = np.all(base == cand, axis=-1)
    delta = color_delta(base, cand)
    mask = (delta > MAX_YIQ_DELTA * threshold * threshold) & ~identical
    diff_pixels = int(np.count_nonzero(mask))

    diff_image = _render_diff(base, mask)
    if diff_pixels > 0:
        return ComparisonResult(
            Verdict.MISMATCH, diff_pixels, diff_image,
            f"{diff_pixels} pixels differ",
        )
    return ComparisonResult(Verdict.MATCH, 0, diff_image, "Images match")
