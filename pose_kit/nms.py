from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

import numpy as np

from .types import BoundingBox, Detection

# Greedy suppression is O(n^2) in the surviving candidates. Per-frame counts stay in the low
# hundreds, so there is no spatial index; adding one must keep the stable tie-break order.

IOU_EPS = 1e-6
NMS_KINDS = ("iou", "distance", "none")


@dataclass(frozen=True)
class NMSConfig:
    kind: str = "iou"
    iou_threshold: float = 0.45
    distance_threshold: float = 60.0
    max_detections: Optional[int] = None

    def __post_init__(self) -> None:
        if self.kind not in NMS_KINDS:
            raise ValueError(f"kind must be one of {NMS_KINDS}, got {self.kind!r}")
        if not (0.0 <= self.iou_threshold <= 1.0):
            raise ValueError("iou_threshold must be within [0, 1]")
        if self.distance_threshold < 0:
            raise ValueError("distance_threshold must be >= 0")
        if self.max_detections is not None and self.max_detections < 1:
            raise ValueError("max_detections must be >= 1 when set")


def _descending_order(scores: np.ndarray) -> np.ndarray:
    # Stable: equal scores keep input order.
    return np.argsort(-scores, kind="stable")


def box_iou(a: BoundingBox, b: BoundingBox) -> float:
    ax1, ay1, ax2, ay2 = a.as_xyxy()
    bx1, by1, bx2, by2 = b.as_xyxy()
    inter = max(0.0, min(ax2, bx2) - max(ax1, bx1)) * max(0.0, min(ay2, by2) - max(ay1, by1))
    area_a = max(0.0, ax2 - ax1) * max(0.0, ay2 - ay1)
    area_b = max(0.0, bx2 - bx1) * max(0.0, by2 - by1)
    union = area_a + area_b - inter
    return inter / (union + IOU_EPS)


def nms(boxes: np.ndarray, scores: np.ndarray, iou_threshold: float) -> np.ndarray:
    """
    NumPy IoU NMS. Expects boxes shape (N,4) in xyxy and scores shape (N,).
    Returns indices of kept boxes, highest score first.
    """

    if boxes.size == 0:
        return np.empty((0,), dtype=np.int64)

    x1 = boxes[:, 0]
    y1 = boxes[:, 1]
    x2 = boxes[:, 2]
    y2 = boxes[:, 3]
    areas = np.maximum(0.0, x2 - x1) * np.maximum(0.0, y2 - y1)

    order = _descending_order(scores)
    keep = []

    while order.size > 0:
        i = order[0]
        keep.append(i)

        xx1 = np.maximum(x1[i], x1[order[1:]])
        yy1 = np.maximum(y1[i], y1[order[1:]])
        xx2 = np.minimum(x2[i], x2[order[1:]])
        yy2 = np.minimum(y2[i], y2[order[1:]])

        w = np.maximum(0.0, xx2 - xx1)
        h = np.maximum(0.0, yy2 - yy1)
        inter = w * h
        union = areas[i] + areas[order[1:]] - inter
        iou = inter / (union + IOU_EPS)

        inds = np.where(iou <= iou_threshold)[0]
        order = order[inds + 1]

    return np.array(keep, dtype=np.int64)


def distance_nms(points: np.ndarray, scores: np.ndarray, distance_threshold: float) -> np.ndarray:
    """
    Same greedy walk as `nms`, but a candidate is suppressed when its Euclidean distance
    to an accepted point is strictly less than `distance_threshold`.
    Expects points shape (N,2). Returns kept indices, highest score first.
    """

    if points.size == 0:
        return np.empty((0,), dtype=np.int64)

    order = _descending_order(scores)
    keep = []

    while order.size > 0:
        i = order[0]
        keep.append(i)

        dist = np.hypot(points[order[1:], 0] - points[i, 0], points[order[1:], 1] - points[i, 1])
        inds = np.where(dist >= distance_threshold)[0]
        order = order[inds + 1]

    return np.array(keep, dtype=np.int64)


def _scores(detections: Sequence[Detection]) -> np.ndarray:
    return np.array([d.confidence for d in detections], dtype=np.float64)


def iou_nms(detections: Sequence[Detection], iou_threshold: float) -> List[Detection]:
    if not detections:
        return []
    boxes = np.array([d.box.as_xyxy() for d in detections], dtype=np.float64)
    keep = nms(boxes, _scores(detections), iou_threshold)
    return [detections[i] for i in keep]


def point_nms(detections: Sequence[Detection], distance_threshold: float) -> List[Detection]:
    """
    Distance NMS over detection centers (single-point detections such as wrists).
    """

    if not detections:
        return []
    points = np.array([d.center for d in detections], dtype=np.float64)
    keep = distance_nms(points, _scores(detections), distance_threshold)
    return [detections[i] for i in keep]


def _top_k(detections: Sequence[Detection], k: Optional[int]) -> List[Detection]:
    ordered = [detections[i] for i in _descending_order(_scores(detections))] if detections else []
    return ordered if k is None else ordered[:k]


def build_suppressor(cfg: NMSConfig) -> Callable[[Sequence[Detection]], List[Detection]]:
    """
    Return the configured strategy as a callable `detections -> kept detections`.
    """

    if cfg.kind == "iou":
        def suppress(dets: Sequence[Detection]) -> List[Detection]:
            kept = iou_nms(dets, cfg.iou_threshold)
            return kept if cfg.max_detections is None else kept[: cfg.max_detections]
    elif cfg.kind == "distance":
        def suppress(dets: Sequence[Detection]) -> List[Detection]:
            kept = point_nms(dets, cfg.distance_threshold)
            return kept if cfg.max_detections is None else kept[: cfg.max_detections]
    else:
        def suppress(dets: Sequence[Detection]) -> List[Detection]:
            return _top_k(dets, cfg.max_detections)

    return suppress
