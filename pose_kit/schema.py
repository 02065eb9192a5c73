"""
Keypoint schemas: the fixed, ordered landmark names a model emits plus the skeleton
edges drawn between them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, NamedTuple, Tuple


class SkeletonEdge(NamedTuple):
    start: int
    end: int


@dataclass(frozen=True)
class KeypointSchema:
    name: str
    keypoint_names: Tuple[str, ...]
    edges: Tuple[SkeletonEdge, ...] = ()

    def __post_init__(self) -> None:
        if not self.keypoint_names:
            raise ValueError("keypoint schema must name at least one keypoint")
        if len(set(self.keypoint_names)) != len(self.keypoint_names):
            raise ValueError(f"duplicate keypoint names in schema {self.name!r}")
        n = len(self.keypoint_names)
        for edge in self.edges:
            if not (0 <= edge.start < n and 0 <= edge.end < n):
                raise ValueError(f"edge {tuple(edge)} out of range for schema {self.name!r}")

    def __len__(self) -> int:
        return len(self.keypoint_names)

    @property
    def num_keypoints(self) -> int:
        return len(self.keypoint_names)

    def index(self, keypoint_name: str) -> int:
        try:
            return self.keypoint_names.index(keypoint_name)
        except ValueError:
            raise KeyError(f"{keypoint_name!r} is not part of schema {self.name!r}") from None


def _edges(*pairs: Tuple[int, int]) -> Tuple[SkeletonEdge, ...]:
    return tuple(SkeletonEdge(a, b) for a, b in pairs)


COCO17 = KeypointSchema(
    name="coco17",
    keypoint_names=(
        "nose",
        "left_eye",
        "right_eye",
        "left_ear",
        "right_ear",
        "left_shoulder",
        "right_shoulder",
        "left_elbow",
        "right_elbow",
        "left_wrist",
        "right_wrist",
        "left_hip",
        "right_hip",
        "left_knee",
        "right_knee",
        "left_ankle",
        "right_ankle",
    ),
    edges=_edges(
        (5, 7), (7, 9),  # left arm
        (6, 8), (8, 10),  # right arm
        (5, 6),  # shoulders
        (5, 11), (6, 12),  # torso
        (11, 13), (13, 15),  # left leg
        (12, 14), (14, 16),  # right leg
    ),
)

HAND21 = KeypointSchema(
    name="hand21",
    keypoint_names=(
        "wrist",
        "thumb_cmc",
        "thumb_mcp",
        "thumb_ip",
        "thumb_tip",
        "index_mcp",
        "index_pip",
        "index_dip",
        "index_tip",
        "middle_mcp",
        "middle_pip",
        "middle_dip",
        "middle_tip",
        "ring_mcp",
        "ring_pip",
        "ring_dip",
        "ring_tip",
        "pinky_mcp",
        "pinky_pip",
        "pinky_dip",
        "pinky_tip",
    ),
    edges=_edges(
        (0, 1), (1, 2), (2, 3), (3, 4),
        (0, 5), (5, 6), (6, 7), (7, 8),
        (5, 9), (9, 10), (10, 11), (11, 12),
        (9, 13), (13, 14), (14, 15), (15, 16),
        (13, 17), (0, 17), (17, 18), (18, 19), (19, 20),
    ),
)


SCHEMAS: Dict[str, KeypointSchema] = {s.name: s for s in (COCO17, HAND21)}


def get_schema(name: str) -> KeypointSchema:
    try:
        return SCHEMAS[name]
    except KeyError:
        raise ValueError(f"Unknown keypoint schema {name!r}; expected one of {sorted(SCHEMAS)}") from None
