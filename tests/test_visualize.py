import unittest

import numpy as np

from pose_kit.schema import COCO17
from pose_kit.types import BoundingBox, Detection, Keypoint
from pose_kit.visualize import KEYPOINT_COLOR, draw_poses


def _person(conf: float) -> Detection:
    kpts = [Keypoint(0.0, 0.0, 0.0)] * COCO17.num_keypoints
    kpts[5] = Keypoint(20.0, 50.0, conf)  # left_shoulder
    kpts[6] = Keypoint(80.0, 50.0, conf)  # right_shoulder
    return Detection(box=BoundingBox(50, 50, 0, 0), confidence=0.9, keypoints=tuple(kpts))


class TestDrawPoses(unittest.TestCase):
    def test_returns_copy(self) -> None:
        img = np.zeros((100, 100, 3), dtype=np.uint8)
        out = draw_poses(img, [_person(0.9)])
        self.assertIsNot(out, img)
        self.assertEqual(int(img.sum()), 0)

    def test_confident_keypoints_and_skeleton_drawn(self) -> None:
        img = np.zeros((100, 100, 3), dtype=np.uint8)
        out = draw_poses(img, [_person(0.9)], schema=COCO17, draw_skeleton=True)
        self.assertEqual(tuple(int(v) for v in out[50, 20]), KEYPOINT_COLOR)
        self.assertGreater(int(out[50, 50, 1]), 0)
        self.assertEqual(int(out[50, 50, 2]), 0)

    def test_threshold_is_strict(self) -> None:
        img = np.zeros((100, 100, 3), dtype=np.uint8)
        out = draw_poses(img, [_person(0.2)], schema=COCO17, keypoint_threshold=0.2, draw_skeleton=True)
        self.assertEqual(int(out.sum()), 0)

    def test_box_drawn_only_with_positive_size(self) -> None:
        img = np.zeros((100, 100, 3), dtype=np.uint8)
        det = Detection(box=BoundingBox(50, 50, 40, 40), confidence=0.9)
        out = draw_poses(img, [det], label=None)
        self.assertGreater(int(out[30, 50].sum()), 0)
        self.assertEqual(int(out[50, 50].sum()), 0)

    def test_rejects_grayscale(self) -> None:
        with self.assertRaises(ValueError):
            draw_poses(np.zeros((10, 10), dtype=np.uint8), [])


if __name__ == "__main__":
    unittest.main()
