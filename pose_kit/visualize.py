from __future__ import annotations

from typing import Iterable, Optional, Tuple

import numpy as np

from .schema import KeypointSchema
from .types import Detection


BOX_COLOR = (0, 255, 255)
KEYPOINT_COLOR = (0, 0, 255)
SKELETON_COLOR = (0, 255, 0)


def _color_for_index(index: int) -> Tuple[int, int, int]:
    """
    Deterministic BGR color per keypoint index (OpenCV expects BGR).
    """

    rng = np.random.default_rng(int(index) + 7)
    bgr = rng.integers(64, 256, size=3, dtype=np.uint8)
    return int(bgr[0]), int(bgr[1]), int(bgr[2])


def _pt(x: float, y: float, w: int, h: int) -> Tuple[int, int]:
    return int(np.clip(round(x), 0, w - 1)), int(np.clip(round(y), 0, h - 1))


def draw_poses(
    image_bgr: np.ndarray,
    detections: Iterable[Detection],
    *,
    schema: Optional[KeypointSchema] = None,
    keypoint_threshold: float = 0.2,
    draw_boxes: bool = True,
    draw_skeleton: bool = False,
    per_keypoint_colors: bool = False,
    keypoint_radius: int = 3,
    line_thickness: int = 2,
    label: Optional[str] = "Person",
    font_scale: float = 0.5,
) -> np.ndarray:
    """
    Draw boxes, keypoints and skeleton lines on an OpenCV BGR image and return a copy.

    Detections must already be in image pixel coordinates. Keypoints and skeleton edges
    are drawn only when their confidence is strictly above `keypoint_threshold`; an edge
    needs both endpoints to pass.
    """

    try:
        import cv2  # type: ignore
    except Exception as e:  # pragma: no cover
        raise ImportError("OpenCV is required for draw_poses(). Install with `pip install opencv-python`.") from e

    if image_bgr is None or not hasattr(image_bgr, "shape"):
        raise TypeError("image_bgr must be a NumPy array (BGR).")
    if image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
        raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image_bgr, 'shape', None)}")

    out = image_bgr.copy()
    h, w = out.shape[:2]

    for det in detections:
        if draw_boxes and det.box.width > 0 and det.box.height > 0:
            x1, y1, x2, y2 = det.box.as_xyxy()
            p1, p2 = _pt(x1, y1, w, h), _pt(x2, y2, w, h)
            cv2.rectangle(out, p1, p2, BOX_COLOR, thickness=1)
            text = det.label or label
            if text:
                cv2.putText(
                    out,
                    f"{text} {det.confidence:.2f}",
                    (p1[0], max(p1[1] - 4, 0)),
                    cv2.FONT_HERSHEY_SIMPLEX,
                    font_scale,
                    BOX_COLOR,
                    thickness=1,
                    lineType=cv2.LINE_AA,
                )

        kps = det.keypoints
        if draw_skeleton and schema is not None and len(kps) == schema.num_keypoints:
            for edge in schema.edges:
                a, b = kps[edge.start], kps[edge.end]
                if a.confidence > keypoint_threshold and b.confidence > keypoint_threshold:
                    cv2.line(out, _pt(a.x, a.y, w, h), _pt(b.x, b.y, w, h), SKELETON_COLOR, line_thickness, cv2.LINE_AA)

        for idx, kp in enumerate(kps):
            if kp.confidence <= keypoint_threshold:
                continue
            color = _color_for_index(idx) if per_keypoint_colors else KEYPOINT_COLOR
            cv2.circle(out, _pt(kp.x, kp.y, w, h), keypoint_radius, color, thickness=-1)

    return out
