from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np

from .schema import COCO17, HAND21, KeypointSchema
from .tensor_view import TensorView
from .types import BoundingBox, Detection, Keypoint


logger = logging.getLogger(__name__)

TensorLike = Union[np.ndarray, TensorView, Sequence[float]]

# Channel layout of a pose model column: cx, cy, w, h, objectness, then (x, y, conf) per keypoint.
BOX_CHANNELS = 4
CONFIDENCE_CHANNEL = 4
KEYPOINT_OFFSET = 5

LAYOUT_AXES = {
    "channels_first": ("batch", "channel", "detection"),
    "channels_last": ("batch", "detection", "channel"),
}
KEYPOINT_ACTIVATIONS = ("none", "sigmoid")


def _check_unit_interval(name: str, value: float) -> None:
    if not (0.0 <= value <= 1.0):
        raise ValueError(f"{name} must be within [0, 1], got {value}")


@dataclass(frozen=True)
class PoseDecodeConfig:
    """
    Decode settings for a YOLO-pose style output.

    - conf_threshold: detections keep only columns with objectness strictly above this
    - layout: "channels_first" for (1, C, N) outputs, "channels_last" for (1, N, C)
    - wrist_threshold: per-wrist confidence gate used by `decode_wrists`
    """

    conf_threshold: float = 0.5
    schema: KeypointSchema = COCO17
    layout: str = "channels_first"
    wrist_threshold: float = 0.2
    wrist_names: Tuple[str, ...] = ("left_wrist", "right_wrist")

    def __post_init__(self) -> None:
        _check_unit_interval("conf_threshold", self.conf_threshold)
        _check_unit_interval("wrist_threshold", self.wrist_threshold)
        if self.layout not in LAYOUT_AXES:
            raise ValueError(f"layout must be one of {sorted(LAYOUT_AXES)}, got {self.layout!r}")
        for name in self.wrist_names:
            # Raises KeyError early for names outside the schema.
            self.schema.index(name)


def sigmoid(x):
    return 1.0 / (1.0 + np.exp(-np.asarray(x, dtype=np.float64)))


def _as_channels_first(
    tensor: TensorLike,
    detection_stride: Optional[int] = None,
    num_detections: Optional[int] = None,
    layout: str = "channels_first",
) -> Optional[np.ndarray]:
    """
    Normalise a model output to a (channels, detections) array, or None when it is malformed.
    """

    if isinstance(tensor, TensorView):
        view = tensor
    else:
        a = np.asarray(tensor, dtype=np.float32)
        if detection_stride is not None and num_detections is not None:
            needed = int(detection_stride) * int(num_detections)
            if a.size < needed:
                logger.warning("Output buffer has %d values, expected %d; no detections decoded.", a.size, needed)
                return None
            shape = (1, int(detection_stride), int(num_detections))
            if layout == "channels_last":
                shape = (1, int(num_detections), int(detection_stride))
            a = a.reshape(-1)[:needed].reshape(shape)
        elif a.ndim == 2:
            a = a[None, ...]
        if a.ndim != 3:
            logger.warning("Unsupported pose output shape %s; no detections decoded.", a.shape)
            return None
        view = TensorView.from_array(a, LAYOUT_AXES[layout])

    if view.axes != LAYOUT_AXES["channels_first"]:
        view = view.transpose(LAYOUT_AXES["channels_first"])
    if view.size("batch") != 1:
        raise ValueError(f"Batch > 1 is not supported (got shape {view.shape}). Pass one image at a time.")
    return view.take("batch", 0)


def decode(
    tensor: TensorLike,
    detection_stride: Optional[int] = None,
    num_detections: Optional[int] = None,
    keypoint_schema: KeypointSchema = COCO17,
    confidence_threshold: float = 0.5,
    *,
    layout: str = "channels_first",
) -> List[Detection]:
    """
    Decode a raw pose output into detections, dropping columns at or below the threshold.

    Args:
        tensor: model output shaped (1, C, N) (or a flat buffer with stride/count given)
        detection_stride: channels per detection column (C); inferred from the shape when None
        num_detections: candidate columns (N); inferred from the shape when None
        keypoint_schema: schema whose length fixes how many keypoint triples are read
        confidence_threshold: objectness must be strictly greater than this to survive
    """

    p = _as_channels_first(tensor, detection_stride, num_detections, layout)
    if p is None:
        return []

    channels, count = p.shape
    if count == 0:
        return []
    k = keypoint_schema.num_keypoints
    required = KEYPOINT_OFFSET + 3 * k
    if channels < required:
        logger.warning(
            "Pose output has %d channels, schema %r needs %d; no detections decoded.",
            channels,
            keypoint_schema.name,
            required,
        )
        return []

    scores = p[CONFIDENCE_CHANNEL, :]
    keep = np.nonzero(scores > confidence_threshold)[0]
    if keep.size == 0:
        return []

    boxes = p[0:BOX_CHANNELS, keep].T  # (M, 4) as cx, cy, w, h
    kpts = p[KEYPOINT_OFFSET:required, keep].T.reshape(-1, k, 3)  # (M, K, 3)

    return [
        Detection(
            box=BoundingBox(center_x=float(cx), center_y=float(cy), width=float(w), height=float(h)),
            confidence=float(score),
            keypoints=tuple(Keypoint(x=float(x), y=float(y), confidence=float(c)) for x, y, c in kp),
        )
        for (cx, cy, w, h), score, kp in zip(boxes, scores[keep], kpts)
    ]


class PoseDecoder:
    """
    Turns raw pose model output into `Detection` records in model space.

    Supports the full-schema path (`decode`) and the wrist-only path (`decode_wrists`)
    where every confident wrist becomes its own single-keypoint detection, ready for
    distance-based suppression.
    """

    def __init__(self, cfg: PoseDecodeConfig = PoseDecodeConfig()):
        self.cfg = cfg

    def decode(self, preds: TensorLike) -> List[Detection]:
        return decode(
            preds,
            keypoint_schema=self.cfg.schema,
            confidence_threshold=self.cfg.conf_threshold,
            layout=self.cfg.layout,
        )

    def decode_wrists(self, preds: TensorLike) -> List[Detection]:
        return self.wrists_from(self.decode(preds))

    def wrists_from(self, persons: Iterable[Detection]) -> List[Detection]:
        """
        Split decoded persons into wrist detections. Keypoint confidences must already be
        activated, since the wrist gate compares them against `wrist_threshold`.
        """

        wrists: List[Detection] = []
        for person in persons:
            for name in self.cfg.wrist_names:
                kp = person.keypoints[self.cfg.schema.index(name)]
                if kp.confidence <= self.cfg.wrist_threshold:
                    continue
                wrists.append(
                    Detection(
                        box=BoundingBox(center_x=kp.x, center_y=kp.y, width=0.0, height=0.0),
                        confidence=kp.confidence,
                        keypoints=(kp,),
                        label=name,
                    )
                )
        return wrists


@dataclass(frozen=True)
class HandDecodeConfig:
    """
    Hand landmark output: a flat (1, 3 * L) buffer of (x, y, c) in hand-input pixels.

    presence_threshold only applies when a presence score is passed to the decoder.
    """

    schema: KeypointSchema = HAND21
    presence_threshold: float = 0.5

    def __post_init__(self) -> None:
        _check_unit_interval("presence_threshold", self.presence_threshold)


def decode_hand_landmarks(
    landmarks: TensorLike,
    cfg: HandDecodeConfig = HandDecodeConfig(),
    presence: Optional[TensorLike] = None,
) -> List[Detection]:
    """
    Decode one hand into at most one detection; the box spans the landmark extents.

    Keypoint confidences are returned exactly as emitted (the hand model's are raw logits).
    """

    flat = np.asarray(landmarks.numpy() if isinstance(landmarks, TensorView) else landmarks, dtype=np.float32)
    flat = flat.reshape(-1)
    k = cfg.schema.num_keypoints
    if flat.size < 3 * k:
        logger.warning("Hand output has %d values, expected at least %d; no hand decoded.", flat.size, 3 * k)
        return []

    confidence = 1.0
    if presence is not None:
        confidence = float(np.asarray(presence, dtype=np.float32).reshape(-1)[0])
        if not confidence > cfg.presence_threshold:
            return []

    pts = flat[: 3 * k].reshape(k, 3)
    x_min, y_min = pts[:, 0].min(), pts[:, 1].min()
    x_max, y_max = pts[:, 0].max(), pts[:, 1].max()
    box = BoundingBox(
        center_x=float((x_min + x_max) / 2),
        center_y=float((y_min + y_max) / 2),
        width=float(x_max - x_min),
        height=float(y_max - y_min),
    )
    keypoints = tuple(Keypoint(x=float(x), y=float(y), confidence=float(c)) for x, y, c in pts)
    return [Detection(box=box, confidence=confidence, keypoints=keypoints, label="hand")]


def activate_keypoints(detections: Iterable[Detection], activation: str = "none") -> List[Detection]:
    """
    Apply a per-model activation to keypoint confidences ("none" or "sigmoid").
    """

    if activation not in KEYPOINT_ACTIVATIONS:
        raise ValueError(f"activation must be one of {KEYPOINT_ACTIVATIONS}, got {activation!r}")
    if activation == "none":
        return list(detections)

    out: List[Detection] = []
    for det in detections:
        conf = sigmoid([kp.confidence for kp in det.keypoints])
        out.append(
            det.with_keypoints(
                tuple(Keypoint(x=kp.x, y=kp.y, confidence=float(c)) for kp, c in zip(det.keypoints, conf))
            )
        )
    return out
