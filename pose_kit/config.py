from __future__ import annotations

import json
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

from .decode import KEYPOINT_ACTIVATIONS, LAYOUT_AXES
from .errors import ConfigurationError
from .letterbox import PREPROCESS_MODES
from .mapping import MAPPING_KINDS
from .nms import NMS_KINDS
from .schema import SCHEMAS


TASKS = ("pose", "hand")


@dataclass(frozen=True)
class PipelineProfile:
    """
    Everything that distinguishes one pose demo variant from another: keypoint schema,
    thresholds, suppression strategy, coordinate mapping and the optional hand stage.
    """

    schema_version: int = 1
    task: str = "pose"
    keypoint_schema: str = "coco17"
    layout: str = "channels_first"
    preprocess: str = "letterbox"
    model_size: int = 640

    conf_threshold: float = 0.5
    keypoint_activation: str = "none"
    wrists_only: bool = False
    wrist_threshold: float = 0.2

    nms: str = "iou"
    iou_threshold: float = 0.45
    distance_threshold: float = 60.0
    max_detections: Optional[int] = None

    mapping: str = "fixed_square"
    flip_y: bool = False

    hand_stage: bool = False
    crop_size: int = 300
    hand_input_size: int = 224
    hand_keypoint_activation: str = "none"
    hand_presence_threshold: float = 0.5
    hand_landmarks_output: Optional[str] = None
    hand_presence_output: Optional[str] = None

    keypoint_render_threshold: float = 0.2
    draw_boxes: bool = True
    draw_skeleton: bool = False
    notes: Optional[str] = None

    def __post_init__(self) -> None:
        if self.schema_version != 1:
            raise ConfigurationError("pipeline profile schema_version must be 1")
        _require_choice("task", self.task, TASKS)
        _require_choice("keypoint_schema", self.keypoint_schema, tuple(SCHEMAS))
        _require_choice("layout", self.layout, tuple(LAYOUT_AXES))
        _require_choice("preprocess", self.preprocess, PREPROCESS_MODES)
        _require_choice("keypoint_activation", self.keypoint_activation, KEYPOINT_ACTIVATIONS)
        _require_choice("hand_keypoint_activation", self.hand_keypoint_activation, KEYPOINT_ACTIVATIONS)
        _require_choice("nms", self.nms, NMS_KINDS)
        _require_choice("mapping", self.mapping, MAPPING_KINDS)
        for key in (
            "conf_threshold",
            "wrist_threshold",
            "iou_threshold",
            "hand_presence_threshold",
            "keypoint_render_threshold",
        ):
            value = getattr(self, key)
            if not (0.0 <= value <= 1.0):
                raise ConfigurationError(f"{key} must be within [0, 1]")
        if self.distance_threshold < 0:
            raise ConfigurationError("distance_threshold must be >= 0")
        if self.model_size <= 0:
            raise ConfigurationError("model_size must be > 0")
        if self.max_detections is not None and self.max_detections < 1:
            raise ConfigurationError("max_detections must be >= 1 when set")
        if self.crop_size <= 0 or self.hand_input_size <= 0:
            raise ConfigurationError("crop_size and hand_input_size must be > 0")
        if self.hand_stage and not self.wrists_only:
            raise ConfigurationError("hand_stage requires wrists_only decoding")
        if self.task == "hand":
            if self.keypoint_schema != "hand21":
                raise ConfigurationError("task 'hand' requires keypoint_schema 'hand21'")
            if self.hand_stage or self.wrists_only:
                raise ConfigurationError("task 'hand' runs the hand model directly; disable hand_stage and wrists_only")
        elif self.keypoint_schema == "hand21":
            raise ConfigurationError("keypoint_schema 'hand21' is only valid with task 'hand'")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _require_choice(key: str, value: Any, choices: tuple) -> None:
    if value not in choices:
        raise ConfigurationError(f"{key} must be one of {list(choices)}, got {value!r}")


PRESETS: Dict[str, PipelineProfile] = {
    "basic": PipelineProfile(
        conf_threshold=0.5,
        nms="iou",
        iou_threshold=0.45,
        mapping="fixed_square",
        draw_boxes=True,
        notes="boxes + confident keypoints, IoU NMS",
    ),
    "pose": PipelineProfile(
        conf_threshold=0.5,
        nms="iou",
        iou_threshold=0.45,
        mapping="fixed_square",
        draw_boxes=False,
        notes="pose-only keypoints, no skeleton",
    ),
    "pose_skeleton": PipelineProfile(
        conf_threshold=0.2,
        keypoint_activation="sigmoid",
        nms="iou",
        iou_threshold=0.2,
        max_detections=200,
        mapping="aspect_fit",
        flip_y=True,
        draw_skeleton=True,
        notes="boxes, keypoints and skeleton lines on an aspect-fitted display",
    ),
    "wrist_hand": PipelineProfile(
        conf_threshold=0.7,
        wrists_only=True,
        wrist_threshold=0.2,
        nms="distance",
        distance_threshold=60.0,
        mapping="fixed_square",
        hand_stage=True,
        crop_size=300,
        hand_input_size=224,
        draw_boxes=False,
        notes="wrist crops fed to a hand landmark model",
    ),
    "hand": PipelineProfile(
        task="hand",
        keypoint_schema="hand21",
        preprocess="center_crop",
        model_size=224,
        nms="none",
        mapping="fixed_square",
        flip_y=True,
        draw_boxes=False,
        draw_skeleton=True,
        notes="hand landmark model on a centre-cropped frame, no pose stage",
    ),
}


def profile_from_preset(name: str, **overrides: Any) -> PipelineProfile:
    try:
        base = PRESETS[name]
    except KeyError:
        raise ConfigurationError(f"Unknown preset {name!r}; expected one of {sorted(PRESETS)}") from None
    return replace(base, **overrides) if overrides else base


_FIELD_TYPES = {f.name: f.type for f in fields(PipelineProfile)}


def _check_value(key: str, value: Any) -> Any:
    kind = _FIELD_TYPES[key]
    if value is None:
        if not kind.startswith("Optional"):
            raise ConfigurationError(f"{key} must not be null")
        return None
    if "bool" in kind:
        if not isinstance(value, bool):
            raise ConfigurationError(f"{key} must be a boolean")
        return value
    if "int" in kind:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigurationError(f"{key} must be an integer")
        return int(value)
    if "float" in kind:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigurationError(f"{key} must be a number")
        return float(value)
    if not isinstance(value, str):
        raise ConfigurationError(f"{key} must be a string")
    return value


def load_pipeline_profile(path: Path) -> PipelineProfile:
    """
    Load a profile from JSON. An optional "preset" key selects the starting point;
    the remaining keys override it.
    """

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Pipeline profile not found: {path}")
    raw = path.read_text(encoding="utf-8")
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Invalid pipeline profile JSON: {path}") from exc
    if not isinstance(payload, dict):
        raise ConfigurationError("Pipeline profile must be a JSON object")

    unknown = sorted(set(payload.keys()) - set(_FIELD_TYPES) - {"preset"})
    if unknown:
        raise ConfigurationError(f"Unknown pipeline profile keys: {unknown}")

    preset = payload.pop("preset", None)
    if preset is not None and not isinstance(preset, str):
        raise ConfigurationError("preset must be a string if provided")

    overrides = {key: _check_value(key, value) for key, value in payload.items()}
    if preset is not None:
        return profile_from_preset(preset, **overrides)
    return PipelineProfile(**overrides)
