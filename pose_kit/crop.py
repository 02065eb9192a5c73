from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np

from .errors import ConfigurationError
from .mapping import Transform2D
from .types import Point, Rect


@dataclass(frozen=True)
class CropPlan:
    """
    A square region of the primary image fed to a second-stage model of `input_size` pixels.
    """

    rect: Rect
    input_size: int

    def to_image_transform(self) -> Transform2D:
        """
        Second-stage model coordinates (0..input_size) -> primary image coordinates.
        """

        scale = self.rect.width / self.input_size
        return Transform2D(scale_x=scale, scale_y=scale, offset_x=self.rect.x, offset_y=self.rect.y)


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(value, hi))


def plan_crop(center: Point, crop_size: float, image_size: Tuple[float, float]) -> Rect:
    """
    Square crop of side `crop_size` around `center`, shifted to lie fully inside the image.

    Raises ConfigurationError when the crop cannot fit (crop_size larger than either side).
    """

    width, height = image_size
    if crop_size <= 0:
        raise ConfigurationError(f"crop_size must be > 0, got {crop_size}")
    if crop_size > min(width, height):
        raise ConfigurationError(
            f"crop_size {crop_size} exceeds image bounds {width}x{height}; cannot plan a crop"
        )

    half = crop_size / 2
    cx = _clamp(center[0], half, width - half)
    cy = _clamp(center[1], half, height - half)
    return Rect(x=cx - half, y=cy - half, width=crop_size, height=crop_size)


def extract_crop(image: np.ndarray, rect: Rect, out_size: int) -> np.ndarray:
    """
    Cut `rect` out of an (H, W, C) image and resize it to (out_size, out_size).
    """

    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for extract_crop(). Install with `pip install opencv-python`.") from e

    if image is None or not hasattr(image, "shape") or image.ndim != 3:
        raise ValueError(f"Expected image shape (H, W, C), got {getattr(image, 'shape', None)}")

    h, w = image.shape[:2]
    x0 = int(round(rect.x))
    y0 = int(round(rect.y))
    x1 = min(w, x0 + int(round(rect.width)))
    y1 = min(h, y0 + int(round(rect.height)))
    x0, y0 = max(0, x0), max(0, y0)
    if x1 <= x0 or y1 <= y0:
        raise ValueError(f"Crop {rect} does not overlap image of size {w}x{h}")

    patch = image[y0:y1, x0:x1]
    if patch.shape[:2] != (out_size, out_size):
        patch = cv2.resize(patch, (out_size, out_size), interpolation=cv2.INTER_LINEAR)
    return patch
