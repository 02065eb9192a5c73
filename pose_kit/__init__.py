"""
Reusable post-processing for pose and hand landmark models.

Framework-agnostic: works with NumPy arrays emitted by ONNX Runtime or TorchScript.
Decoding, suppression and coordinate mapping need only NumPy; OpenCV is imported lazily
for preprocessing, crops, capture and drawing.
"""

from .config import PRESETS, PipelineProfile, load_pipeline_profile, profile_from_preset
from .crop import CropPlan, extract_crop, plan_crop
from .decode import (
    HandDecodeConfig,
    PoseDecodeConfig,
    PoseDecoder,
    activate_keypoints,
    decode,
    decode_hand_landmarks,
)
from .errors import ConfigurationError, ModelLoadError, PoseKitError
from .letterbox import LetterboxResult, center_crop, letterbox
from .mapping import (
    MODEL_SPACE,
    AspectFitMapper,
    CoordinateMapper,
    CoordinateSpace,
    FixedSquareMapper,
    Transform2D,
    build_mapper,
    image_to_local,
    video_rect_in_display,
)
from .nms import NMSConfig, box_iou, build_suppressor, iou_nms, nms, point_nms
from .runtime import FrameResult, HandResult, PosePipeline, load_pipeline
from .schema import COCO17, HAND21, KeypointSchema, SkeletonEdge, get_schema
from .tensor_view import TensorView
from .types import BoundingBox, Detection, Keypoint, Rect
from .visualize import draw_poses

__all__ = [
    "PRESETS",
    "PipelineProfile",
    "load_pipeline_profile",
    "profile_from_preset",
    "CropPlan",
    "extract_crop",
    "plan_crop",
    "HandDecodeConfig",
    "PoseDecodeConfig",
    "PoseDecoder",
    "activate_keypoints",
    "decode",
    "decode_hand_landmarks",
    "ConfigurationError",
    "ModelLoadError",
    "PoseKitError",
    "LetterboxResult",
    "center_crop",
    "letterbox",
    "MODEL_SPACE",
    "AspectFitMapper",
    "CoordinateMapper",
    "CoordinateSpace",
    "FixedSquareMapper",
    "Transform2D",
    "build_mapper",
    "image_to_local",
    "video_rect_in_display",
    "NMSConfig",
    "box_iou",
    "build_suppressor",
    "iou_nms",
    "nms",
    "point_nms",
    "FrameResult",
    "HandResult",
    "PosePipeline",
    "load_pipeline",
    "COCO17",
    "HAND21",
    "KeypointSchema",
    "SkeletonEdge",
    "get_schema",
    "TensorView",
    "BoundingBox",
    "Detection",
    "Keypoint",
    "Rect",
    "draw_poses",
]
