from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np

from .mapping import Transform2D


PREPROCESS_MODES = ("letterbox", "center_crop")


def _require_cv2():
    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for preprocessing. Install with `pip install opencv-python`.") from e
    return cv2


@dataclass(frozen=True)
class LetterboxResult:
    """
    image: resized model input
    ratio: (w_ratio, h_ratio) applied to the source
    pad: (dw, dh) offset of the source content inside the model input (negative when cropped)
    """

    image: np.ndarray
    ratio: Tuple[float, float]
    pad: Tuple[float, float]

    def to_source(self) -> Transform2D:
        """
        Model-input coordinates -> source frame coordinates.
        """

        rw, rh = self.ratio
        dw, dh = self.pad
        return Transform2D(scale_x=1.0 / rw, scale_y=1.0 / rh, offset_x=-dw / rw, offset_y=-dh / rh)


def letterbox(
    image: np.ndarray,
    new_shape: Tuple[int, int] = (640, 640),
    color: Tuple[int, int, int] = (114, 114, 114),
    scaleup: bool = True,
) -> LetterboxResult:
    """
    Aspect-preserving resize that pads the short side to reach `new_shape` (width, height).
    Padding is split evenly (left/top and right/bottom).
    """

    cv2 = _require_cv2()

    h, w = image.shape[:2]
    if isinstance(new_shape, int):
        new_shape = (new_shape, new_shape)
    new_w, new_h = new_shape

    # Scale ratio (new / old)
    r = min(new_w / w, new_h / h)
    if not scaleup:  # only scale down
        r = min(r, 1.0)

    resized_w, resized_h = int(round(w * r)), int(round(h * r))
    dw = (new_w - resized_w) / 2
    dh = (new_h - resized_h) / 2

    if (w, h) != (resized_w, resized_h):
        image = cv2.resize(image, (resized_w, resized_h), interpolation=cv2.INTER_LINEAR)

    top, bottom = int(round(dh - 0.1)), int(round(dh + 0.1))
    left, right = int(round(dw - 0.1)), int(round(dw + 0.1))
    padded = cv2.copyMakeBorder(image, top, bottom, left, right, cv2.BORDER_CONSTANT, value=color)

    return LetterboxResult(image=padded, ratio=(r, r), pad=(float(left), float(top)))


def center_crop(image: np.ndarray, new_shape: Tuple[int, int] = (640, 640)) -> LetterboxResult:
    """
    Crop the longer axis around the center to the target aspect, then resize.

    The kept fraction of the wider axis is gap = target_aspect / source_aspect.
    """

    cv2 = _require_cv2()

    h, w = image.shape[:2]
    if isinstance(new_shape, int):
        new_shape = (new_shape, new_shape)
    new_w, new_h = new_shape

    gap = (new_w / new_h) / (w / h)
    if gap < 1.0:
        crop_w, crop_h = int(round(w * gap)), h
    else:
        crop_w, crop_h = w, int(round(h / gap))
    x0 = (w - crop_w) // 2
    y0 = (h - crop_h) // 2

    patch = image[y0 : y0 + crop_h, x0 : x0 + crop_w]
    if (crop_w, crop_h) != (new_w, new_h):
        patch = cv2.resize(patch, (new_w, new_h), interpolation=cv2.INTER_LINEAR)

    rw, rh = new_w / crop_w, new_h / crop_h
    return LetterboxResult(image=patch, ratio=(rw, rh), pad=(-x0 * rw, -y0 * rh))
