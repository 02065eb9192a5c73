from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from .config import PipelineProfile
from .crop import CropPlan, extract_crop, plan_crop
from .decode import HandDecodeConfig, PoseDecodeConfig, PoseDecoder, activate_keypoints, decode_hand_landmarks
from .errors import ConfigurationError
from .letterbox import LetterboxResult, center_crop, letterbox
from .mapping import Transform2D, build_mapper
from .nms import NMSConfig, build_suppressor
from .schema import HAND21, get_schema
from .types import Detection, Rect


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]
# A model is either a backend with schedule()/peek_output() or a plain callable blob -> output(s).
ModelLike = Union[Any, Callable[[np.ndarray], Any]]


@dataclass(frozen=True)
class PreprocessResult:
    blob: np.ndarray
    image: np.ndarray
    orig_size: Tuple[int, int]
    letterbox: LetterboxResult


@dataclass(frozen=True)
class HandResult:
    """
    One second-stage run: the wrist that triggered it, the crop fed to the hand model
    and the decoded landmarks (model space), if any.
    """

    wrist: Detection
    crop: CropPlan
    landmarks: Optional[Detection]


@dataclass(frozen=True)
class FrameResult:
    """
    Output of one frame. `detections` and `hands` are in the destination space
    (display rect when given, otherwise source frame pixels).
    """

    detections: Tuple[Detection, ...]
    model_detections: Tuple[Detection, ...] = ()
    hands: Tuple[Detection, ...] = ()
    hand_results: Tuple[HandResult, ...] = ()
    secondary_error: Optional[str] = None
    to_destination: Transform2D = field(default_factory=Transform2D.identity)


def to_blob(image_bgr: np.ndarray) -> np.ndarray:
    # BGR -> RGB, normalize, HWC -> CHW, add batch
    blob = image_bgr[:, :, ::-1].astype(np.float32) / 255.0
    return np.ascontiguousarray(np.transpose(blob, (2, 0, 1))[None, ...])


def run_model(model: ModelLike, blob: np.ndarray, names: Sequence[Optional[str]] = (None,)) -> Dict[Optional[str], np.ndarray]:
    """
    Run `model` once and collect the requested outputs (None = primary output).
    """

    if hasattr(model, "schedule") and hasattr(model, "peek_output"):
        model.schedule(blob)
        return {name: np.asarray(model.peek_output(name)) for name in names}

    out = model(blob)
    if isinstance(out, Mapping):
        return {name: np.asarray(out[name]) for name in names}
    if isinstance(out, (tuple, list)):
        if len(names) > len(out):
            raise ValueError(f"Model returned {len(out)} outputs, {len(names)} requested")
        return {name: np.asarray(o) for name, o in zip(names, out)}
    return {names[0]: np.asarray(out)}


class PosePipeline:
    """
    Per-frame orchestration: preprocess -> primary model -> decode -> NMS -> map
    -> [crop around wrists -> hand model -> decode -> map] -> emit.

    With `task="hand"` the hand landmark model is the primary model and there is
    no pose stage.

    Frames are independent; nothing from one frame survives into the next.
    """

    def __init__(
        self,
        model: ModelLike,
        *,
        profile: PipelineProfile = PipelineProfile(),
        hand_model: Optional[ModelLike] = None,
        backend_name: Optional[str] = None,
    ):
        if profile.hand_stage and hand_model is None:
            raise ConfigurationError("profile enables the hand stage but no hand model was given")

        self.model = model
        self.hand_model = hand_model
        self.backend_name = backend_name
        self.profile = profile
        self.schema = get_schema(profile.keypoint_schema)
        self.decoder: Optional[PoseDecoder] = None
        if profile.task == "pose":
            self.decoder = PoseDecoder(
                PoseDecodeConfig(
                    conf_threshold=profile.conf_threshold,
                    schema=self.schema,
                    layout=profile.layout,
                    wrist_threshold=profile.wrist_threshold,
                )
            )
        self.suppress = build_suppressor(
            NMSConfig(
                kind=profile.nms,
                iou_threshold=profile.iou_threshold,
                distance_threshold=profile.distance_threshold,
                max_detections=profile.max_detections,
            )
        )
        self.hand_cfg = HandDecodeConfig(schema=HAND21, presence_threshold=profile.hand_presence_threshold)

    def preprocess(self, image_bgr: np.ndarray) -> PreprocessResult:
        if image_bgr is None or not hasattr(image_bgr, "shape"):
            raise TypeError("image_bgr must be a NumPy array (BGR).")
        if image_bgr.ndim != 3 or image_bgr.shape[2] != 3:
            raise ValueError(f"Expected image shape (H, W, 3), got {getattr(image_bgr, 'shape', None)}")

        orig_h, orig_w = image_bgr.shape[:2]
        size = (self.profile.model_size, self.profile.model_size)
        if self.profile.preprocess == "center_crop":
            lb = center_crop(image_bgr, new_shape=size)
        else:
            lb = letterbox(image_bgr, new_shape=size)

        return PreprocessResult(blob=to_blob(lb.image), image=lb.image, orig_size=(orig_w, orig_h), letterbox=lb)

    def detect(self, preds: np.ndarray) -> List[Detection]:
        """
        Raw primary output -> suppressed detections in model space.
        """

        if self.decoder is None:
            raise ConfigurationError("detect() decodes pose output; this pipeline runs task 'hand'")
        # Wrist gating compares activated confidences.
        persons = activate_keypoints(self.decoder.decode(preds), self.profile.keypoint_activation)
        candidates = self.decoder.wrists_from(persons) if self.profile.wrists_only else persons
        kept = self.suppress(candidates)
        logger.debug("decoded %d candidates, kept %d after %s suppression", len(candidates), len(kept), self.profile.nms)
        return kept

    def _hand_output_names(self) -> List[Optional[str]]:
        names: List[Optional[str]] = [self.profile.hand_landmarks_output]
        if self.profile.hand_presence_output is not None:
            names.append(self.profile.hand_presence_output)
        return names

    def decode_hand(self, outputs: Mapping[Optional[str], np.ndarray]) -> List[Detection]:
        """
        Hand model outputs -> at most one activated hand detection in hand-input pixels.
        """

        p = self.profile
        hands = decode_hand_landmarks(
            outputs[p.hand_landmarks_output],
            self.hand_cfg,
            presence=outputs[p.hand_presence_output] if p.hand_presence_output is not None else None,
        )
        return activate_keypoints(hands, p.hand_keypoint_activation)

    def run_hands(self, model_image: np.ndarray, wrists: Sequence[Detection]) -> List[HandResult]:
        """
        Run the hand model on a fixed-size crop around each wrist (model space).

        Raises ConfigurationError when the crop cannot fit inside the model image.
        """

        p = self.profile
        names = self._hand_output_names()
        h, w = model_image.shape[:2]
        results: List[HandResult] = []
        for wrist in wrists:
            rect = plan_crop(wrist.center, p.crop_size, (w, h))
            crop = CropPlan(rect=rect, input_size=p.hand_input_size)
            patch = extract_crop(model_image, rect, p.hand_input_size)
            hands = self.decode_hand(run_model(self.hand_model, to_blob(patch), names))
            to_model = crop.to_image_transform()
            landmarks = to_model.apply_detection(hands[0]) if hands else None
            results.append(HandResult(wrist=wrist, crop=crop, landmarks=landmarks))
        return results

    def destination_transform(self, prep: PreprocessResult, display_rect: Optional[Rect]) -> Transform2D:
        """
        Model space -> destination. Without a display that is source frame pixels.

        fixed_square maps the model square onto the display as-is. aspect_fit fits the
        source video into the display, so the preprocess is undone first.
        """

        to_source = prep.letterbox.to_source()
        if display_rect is None:
            return to_source
        if self.profile.mapping == "aspect_fit":
            mapper = build_mapper(
                "aspect_fit",
                source_size=prep.orig_size,
                display_rect=display_rect,
                flip_y=self.profile.flip_y,
                input_size=prep.orig_size,
            )
            return to_source.then(mapper.transform)
        mapper = build_mapper(
            self.profile.mapping,
            source_size=prep.orig_size,
            display_rect=display_rect,
            model_size=self.profile.model_size,
            flip_y=self.profile.flip_y,
        )
        return mapper.transform

    def process_frame(self, image_bgr: np.ndarray, display_rect: Optional[Rect] = None) -> FrameResult:
        prep = self.preprocess(image_bgr)
        to_dest = self.destination_transform(prep, display_rect)

        if self.profile.task == "hand":
            hands = self.decode_hand(run_model(self.model, prep.blob, self._hand_output_names()))
            logger.debug("frame emitted %d hands", len(hands))
            return FrameResult(
                detections=tuple(to_dest.apply_detection(d) for d in hands),
                model_detections=tuple(hands),
                to_destination=to_dest,
            )

        preds = run_model(self.model, prep.blob)[None]
        model_dets = self.detect(preds)

        hand_results: List[HandResult] = []
        secondary_error: Optional[str] = None
        if self.profile.hand_stage and model_dets:
            try:
                hand_results = self.run_hands(prep.image, model_dets)
            except ConfigurationError as exc:
                # Only the hand stage is lost; primary detections are still emitted.
                logger.warning("hand stage skipped for this frame: %s", exc)
                secondary_error = str(exc)

        hands = tuple(to_dest.apply_detection(r.landmarks) for r in hand_results if r.landmarks is not None)
        logger.debug("frame emitted %d detections, %d hands", len(model_dets), len(hands))
        return FrameResult(
            detections=tuple(to_dest.apply_detection(d) for d in model_dets),
            model_detections=tuple(model_dets),
            hands=hands,
            hand_results=tuple(hand_results),
            secondary_error=secondary_error,
            to_destination=to_dest,
        )

    def __call__(self, image_bgr: np.ndarray, display_rect: Optional[Rect] = None) -> FrameResult:
        return self.process_frame(image_bgr, display_rect)


def _open_backend(
    model_path: Path,
    backend: Optional[str],
    *,
    onnx_providers: Optional[Sequence[str]] = None,
    torch_device: str = "cpu",
) -> Tuple[Any, str]:
    chosen = backend
    if chosen is None:
        suffix = model_path.suffix.lower()
        if suffix == ".onnx":
            chosen = "onnxruntime"
        elif suffix in {".torchscript", ".ts", ".pt"}:
            chosen = "torchscript"
        else:
            raise ValueError(f"Could not infer backend from extension '{suffix}'. Pass backend=... explicitly.")

    chosen = chosen.lower()
    if chosen == "onnxruntime":
        from .backends.onnxruntime_backend import OnnxRuntimeBackend, OnnxRuntimeBackendConfig

        return OnnxRuntimeBackend(model_path, OnnxRuntimeBackendConfig(providers=onnx_providers)), chosen

    if chosen == "torchscript":
        from .backends.torchscript_backend import TorchScriptBackend, TorchScriptBackendConfig

        return TorchScriptBackend(model_path, TorchScriptBackendConfig(device=torch_device)), chosen

    raise ValueError(f"Unsupported backend: {backend!r}")


def load_pipeline(
    model_path: PathLike,
    *,
    profile: PipelineProfile = PipelineProfile(),
    hand_model_path: Optional[PathLike] = None,
    backend: Optional[str] = None,
    onnx_providers: Optional[Sequence[str]] = None,
    torch_device: str = "cpu",
) -> PosePipeline:
    """
    Create a pipeline for models on disk. Any load failure is fatal and propagates.

        pipe = load_pipeline("models/yolo11n-pose.onnx", profile=profile_from_preset("basic"))
    """

    model, name = _open_backend(
        Path(model_path).expanduser().resolve(), backend, onnx_providers=onnx_providers, torch_device=torch_device
    )
    hand_model = None
    if hand_model_path is not None:
        hand_model, _ = _open_backend(
            Path(hand_model_path).expanduser().resolve(),
            backend,
            onnx_providers=onnx_providers,
            torch_device=torch_device,
        )
    logger.info("loaded %s model %s (hand model: %s)", name, model_path, hand_model_path or "none")
    return PosePipeline(model, profile=profile, hand_model=hand_model, backend_name=name)
