from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterator, Optional, Tuple


Point = Tuple[float, float]


@dataclass(frozen=True)
class Keypoint:
    x: float
    y: float
    confidence: float

    @property
    def position(self) -> Point:
        return self.x, self.y


@dataclass(frozen=True)
class BoundingBox:
    """
    Axis-aligned box stored as center + size, the layout pose models emit.
    """

    center_x: float
    center_y: float
    width: float
    height: float

    @property
    def center(self) -> Point:
        return self.center_x, self.center_y

    @property
    def area(self) -> float:
        return max(0.0, self.width) * max(0.0, self.height)

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        half_w = self.width / 2
        half_h = self.height / 2
        return (
            self.center_x - half_w,
            self.center_y - half_h,
            self.center_x + half_w,
            self.center_y + half_h,
        )

    def to_rect(self) -> "Rect":
        x1, y1, _, _ = self.as_xyxy()
        return Rect(x=x1, y=y1, width=self.width, height=self.height)


@dataclass(frozen=True)
class Rect:
    """
    Axis-aligned rectangle anchored at its top-left corner (x, y).
    """

    x: float
    y: float
    width: float
    height: float

    @classmethod
    def from_center(cls, center_x: float, center_y: float, width: float, height: float) -> "Rect":
        return cls(x=center_x - width / 2, y=center_y - height / 2, width=width, height=height)

    @property
    def x_max(self) -> float:
        return self.x + self.width

    @property
    def y_max(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Point:
        return self.x + self.width / 2, self.y + self.height / 2

    @property
    def size(self) -> Tuple[float, float]:
        return self.width, self.height

    def as_xyxy(self) -> Tuple[float, float, float, float]:
        return self.x, self.y, self.x_max, self.y_max

    def contains(self, other: "Rect") -> bool:
        return (
            other.x >= self.x
            and other.y >= self.y
            and other.x_max <= self.x_max
            and other.y_max <= self.y_max
        )


@dataclass(frozen=True)
class Detection:
    """
    One decoded detection in a single coordinate space.

    `keypoints` always holds exactly as many entries as the schema the detection was
    decoded with; low-confidence keypoints are kept, never dropped.
    """

    box: BoundingBox
    confidence: float
    keypoints: Tuple[Keypoint, ...] = ()
    label: Optional[str] = None

    def __post_init__(self) -> None:
        # Accept lists from callers but store an immutable tuple.
        if not isinstance(self.keypoints, tuple):
            object.__setattr__(self, "keypoints", tuple(self.keypoints))

    @property
    def center(self) -> Point:
        return self.box.center

    def __iter__(self) -> Iterator[Keypoint]:
        return iter(self.keypoints)

    def with_keypoints(self, keypoints: Tuple[Keypoint, ...]) -> "Detection":
        if len(keypoints) != len(self.keypoints):
            raise ValueError(f"Expected {len(self.keypoints)} keypoints, got {len(keypoints)}")
        return replace(self, keypoints=tuple(keypoints))
