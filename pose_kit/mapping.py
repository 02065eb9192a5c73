"""
Coordinate spaces and the affine transforms between them.

Model space is the fixed square the pose model sees (640x640 by default). Source frame
space is the original camera/video image. Display space is whatever widget the detections
are drawn on. Every mapping is a `Transform2D`; multi-step mappings are built with
`Transform2D.then` instead of inline arithmetic.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Tuple

from .types import BoundingBox, Detection, Keypoint, Point, Rect


MODEL_SIZE = 640
MAPPING_KINDS = ("fixed_square", "aspect_fit")

Size = Tuple[float, float]


@dataclass(frozen=True)
class CoordinateSpace:
    name: str
    width: float
    height: float

    @property
    def size(self) -> Size:
        return self.width, self.height

    @property
    def aspect(self) -> float:
        return self.width / self.height


MODEL_SPACE = CoordinateSpace("model", MODEL_SIZE, MODEL_SIZE)


@dataclass(frozen=True)
class Transform2D:
    """
    Per-axis scale + offset: p' = scale * p + offset. Negative scales flip an axis.
    """

    scale_x: float = 1.0
    scale_y: float = 1.0
    offset_x: float = 0.0
    offset_y: float = 0.0

    @classmethod
    def identity(cls) -> "Transform2D":
        return cls()

    def then(self, other: "Transform2D") -> "Transform2D":
        """
        Transform that applies `self` first and `other` second.
        """

        return Transform2D(
            scale_x=other.scale_x * self.scale_x,
            scale_y=other.scale_y * self.scale_y,
            offset_x=other.scale_x * self.offset_x + other.offset_x,
            offset_y=other.scale_y * self.offset_y + other.offset_y,
        )

    def inverse(self) -> "Transform2D":
        if self.scale_x == 0 or self.scale_y == 0:
            raise ValueError(f"Transform is not invertible: {self}")
        return Transform2D(
            scale_x=1.0 / self.scale_x,
            scale_y=1.0 / self.scale_y,
            offset_x=-self.offset_x / self.scale_x,
            offset_y=-self.offset_y / self.scale_y,
        )

    def apply(self, point: Point) -> Point:
        x, y = point
        return self.scale_x * x + self.offset_x, self.scale_y * y + self.offset_y

    def apply_rect(self, rect: Rect) -> Rect:
        x1, y1 = self.apply((rect.x, rect.y))
        x2, y2 = self.apply((rect.x_max, rect.y_max))
        return Rect(x=min(x1, x2), y=min(y1, y2), width=abs(x2 - x1), height=abs(y2 - y1))

    def apply_box(self, box: BoundingBox) -> BoundingBox:
        cx, cy = self.apply(box.center)
        return BoundingBox(
            center_x=cx,
            center_y=cy,
            width=box.width * abs(self.scale_x),
            height=box.height * abs(self.scale_y),
        )

    def apply_detection(self, det: Detection) -> Detection:
        keypoints = []
        for kp in det.keypoints:
            x, y = self.apply(kp.position)
            keypoints.append(Keypoint(x=x, y=y, confidence=kp.confidence))
        return Detection(box=self.apply_box(det.box), confidence=det.confidence, keypoints=tuple(keypoints), label=det.label)


class CoordinateMapper(ABC):
    """
    Base for model-space -> destination-space mapping strategies.

    Subclasses only define `transform`; the point/rect/detection helpers are shared.
    """

    source_space: CoordinateSpace = MODEL_SPACE

    @property
    @abstractmethod
    def transform(self) -> Transform2D:
        ...

    def to_destination(self, point: Point) -> Point:
        return self.transform.apply(point)

    def rect_to_destination(self, rect: Rect) -> Rect:
        return self.transform.apply_rect(rect)

    def to_source(self, point: Point) -> Point:
        return self.transform.inverse().apply(point)

    def map_detection(self, det: Detection) -> Detection:
        return self.transform.apply_detection(det)


class FixedSquareMapper(CoordinateMapper):
    """
    dest = dest_origin - dest_size / 2 + (coord / model_size) * dest_size

    dest_origin is the rect center, so dest_origin - dest_size / 2 is `dest_rect.x/y`
    (Rect is top-left anchored). With `flip_y` the vertical axis grows upward, as in UI
    canvases.
    """

    def __init__(self, dest_rect: Rect, *, model_size: float = MODEL_SIZE, flip_y: bool = False):
        if model_size <= 0:
            raise ValueError("model_size must be > 0")
        self.dest_rect = dest_rect
        self.source_space = CoordinateSpace("model", model_size, model_size)
        self.flip_y = flip_y

    @property
    def transform(self) -> Transform2D:
        size = self.source_space.width
        sx = self.dest_rect.width / size
        sy = self.dest_rect.height / size
        if self.flip_y:
            return Transform2D(scale_x=sx, scale_y=-sy, offset_x=self.dest_rect.x, offset_y=self.dest_rect.y_max)
        return Transform2D(scale_x=sx, scale_y=sy, offset_x=self.dest_rect.x, offset_y=self.dest_rect.y)


class AspectFitMapper(CoordinateMapper):
    """
    Maps into a display whose aspect ratio differs from the source video.

    The video is fitted inside the display: when the source is wider, X spans the full
    display width and Y is scaled by display_width / source_aspect, otherwise the reverse.
    Output is relative to the display center (center-origin widget coordinates).

    Input coordinates are normalised by `input_size` (default: the model square) before
    fitting. Pass `input_size=source_size` to map source frame pixels, e.g. after undoing
    a letterbox. coordinate_scale replaces that normalisation with a single multiplier.
    """

    def __init__(
        self,
        source_size: Size,
        display_size: Size,
        *,
        model_size: float = MODEL_SIZE,
        flip_y: bool = True,
        coordinate_scale: Optional[float] = None,
        input_size: Optional[Size] = None,
    ):
        sw, sh = source_size
        dw, dh = display_size
        if min(sw, sh, dw, dh) <= 0:
            raise ValueError(f"source/display sizes must be positive, got {source_size} / {display_size}")
        if model_size <= 0:
            raise ValueError("model_size must be > 0")
        self.source_size = (float(sw), float(sh))
        self.display_size = (float(dw), float(dh))
        if input_size is None:
            self.source_space = CoordinateSpace("model", model_size, model_size)
        else:
            iw, ih = input_size
            if min(iw, ih) <= 0:
                raise ValueError(f"input_size must be positive, got {input_size}")
            self.source_space = CoordinateSpace("source", float(iw), float(ih))
        self.flip_y = flip_y
        self.coordinate_scale = None if coordinate_scale is None else float(coordinate_scale)

    @property
    def gap(self) -> float:
        """display_aspect / source_aspect; below 1 the source is wider than the display."""
        source_aspect = self.source_size[0] / self.source_size[1]
        display_aspect = self.display_size[0] / self.display_size[1]
        return display_aspect / source_aspect

    def fitted_size(self) -> Size:
        sw, sh = self.source_size
        dw, dh = self.display_size
        if self.gap < 1.0:
            return dw, dw * sh / sw
        return dh * sw / sh, dh

    @property
    def transform(self) -> Transform2D:
        fit_w, fit_h = self.fitted_size()
        if self.coordinate_scale is None:
            sx, sy = fit_w / self.source_space.width, fit_h / self.source_space.height
        else:
            sx, sy = fit_w * self.coordinate_scale, fit_h * self.coordinate_scale
        if self.flip_y:
            return Transform2D(scale_x=sx, scale_y=-sy, offset_x=-fit_w / 2, offset_y=fit_h / 2)
        return Transform2D(scale_x=sx, scale_y=sy, offset_x=-fit_w / 2, offset_y=-fit_h / 2)


def video_rect_in_display(source_size: Size, display_size: Size) -> Rect:
    """
    Visible video rectangle inside a display widget (top-left anchored, bands around it).
    """

    fit_w, fit_h = AspectFitMapper(source_size, display_size).fitted_size()
    dw, dh = display_size
    return Rect(x=(dw - fit_w) / 2, y=(dh - fit_h) / 2, width=fit_w, height=fit_h)


def image_to_local(image_size: Size) -> Transform2D:
    """
    Top-left pixel coordinates -> center-origin, Y-up local coordinates.
    """

    w, h = image_size
    return Transform2D(scale_x=1.0, scale_y=-1.0, offset_x=-w / 2, offset_y=h / 2)


def build_mapper(
    kind: str,
    *,
    source_size: Size,
    display_rect: Rect,
    model_size: float = MODEL_SIZE,
    flip_y: bool = False,
    input_size: Optional[Size] = None,
) -> CoordinateMapper:
    """
    `input_size` only applies to aspect_fit: the frame its input coordinates live in.
    """

    if kind == "fixed_square":
        return FixedSquareMapper(display_rect, model_size=model_size, flip_y=flip_y)
    if kind == "aspect_fit":
        return AspectFitMapper(
            source_size, display_rect.size, model_size=model_size, flip_y=flip_y, input_size=input_size
        )
    raise ValueError(f"mapping must be one of {MAPPING_KINDS}, got {kind!r}")
