import itertools
import unittest

import numpy as np

from pose_kit.nms import NMSConfig, box_iou, build_suppressor, iou_nms, nms, point_nms
from pose_kit.types import BoundingBox, Detection, Keypoint


def _box(cx, cy, w, h, conf, label=None) -> Detection:
    return Detection(box=BoundingBox(cx, cy, w, h), confidence=conf, label=label)


def _point(x, y, conf) -> Detection:
    return Detection(box=BoundingBox(x, y, 0.0, 0.0), confidence=conf, keypoints=(Keypoint(x, y, conf),))


def _random_boxes(seed: int, n: int = 60):
    rng = np.random.default_rng(seed)
    return [
        _box(
            float(rng.uniform(0, 640)),
            float(rng.uniform(0, 640)),
            float(rng.uniform(20, 160)),
            float(rng.uniform(20, 160)),
            float(rng.uniform(0, 1)),
        )
        for _ in range(n)
    ]


class TestIouNms(unittest.TestCase):
    def test_overlapping_pair_keeps_higher_score(self) -> None:
        a = _box(100, 100, 50, 50, 0.9, "a")
        b = _box(105, 105, 50, 50, 0.8, "b")
        self.assertAlmostEqual(box_iou(a.box, b.box), 2025 / 2975, places=5)
        kept = iou_nms([b, a], iou_threshold=0.45)
        self.assertEqual([d.label for d in kept], ["a"])

    def test_output_sorted_by_confidence(self) -> None:
        dets = [_box(0, 0, 10, 10, 0.3), _box(100, 0, 10, 10, 0.9), _box(200, 0, 10, 10, 0.6)]
        kept = iou_nms(dets, 0.5)
        self.assertEqual([d.confidence for d in kept], [0.9, 0.6, 0.3])

    def test_ties_keep_input_order(self) -> None:
        dets = [_box(0, 0, 10, 10, 0.5, "first"), _box(1, 1, 10, 10, 0.5, "second"), _box(300, 0, 10, 10, 0.5, "far")]
        kept = iou_nms(dets, 0.3)
        self.assertEqual([d.label for d in kept], ["first", "far"])

    def test_idempotent(self) -> None:
        for seed in range(3):
            once = iou_nms(_random_boxes(seed), 0.45)
            self.assertEqual(iou_nms(once, 0.45), once)

    def test_no_kept_pair_exceeds_threshold(self) -> None:
        for seed in range(3):
            kept = iou_nms(_random_boxes(seed), 0.3)
            for a, b in itertools.combinations(kept, 2):
                self.assertLessEqual(box_iou(a.box, b.box), 0.3)

    def test_degenerate_boxes(self) -> None:
        dets = [_box(10, 10, 0, 0, 0.9), _box(10, 10, 0, 0, 0.8)]
        self.assertEqual(len(iou_nms(dets, 0.45)), 2)
        self.assertEqual(box_iou(dets[0].box, dets[1].box), 0.0)

    def test_empty(self) -> None:
        self.assertEqual(iou_nms([], 0.5), [])
        self.assertEqual(nms(np.zeros((0, 4)), np.zeros((0,)), 0.5).shape, (0,))


class TestDistanceNms(unittest.TestCase):
    def test_close_wrists_merge(self) -> None:
        a = _point(300, 300, 0.9)
        b = _point(310, 305, 0.5)
        kept = point_nms([b, a], distance_threshold=60)
        self.assertEqual(kept, [a])

    def test_boundary_is_strict(self) -> None:
        a = _point(0, 0, 0.9)
        b = _point(60, 0, 0.5)
        self.assertEqual(len(point_nms([a, b], 60)), 2)
        self.assertEqual(len(point_nms([a, b], 60.001)), 1)

    def test_no_kept_pair_closer_than_threshold(self) -> None:
        rng = np.random.default_rng(7)
        pts = [_point(float(x), float(y), float(c)) for x, y, c in rng.uniform(0, 1, size=(80, 3)) * [640, 640, 1]]
        kept = point_nms(pts, 50.0)
        for a, b in itertools.combinations(kept, 2):
            self.assertGreaterEqual(np.hypot(a.center[0] - b.center[0], a.center[1] - b.center[1]), 50.0)

    def test_chain_is_greedy(self) -> None:
        # b is suppressed by a; c is only close to b, so it survives.
        a, b, c = _point(0, 0, 0.9), _point(40, 0, 0.8), _point(80, 0, 0.7)
        self.assertEqual(point_nms([a, b, c], 50), [a, c])


class TestSuppressor(unittest.TestCase):
    def test_max_detections_caps_after_nms(self) -> None:
        dets = [_box(i * 100.0, 0, 10, 10, 0.1 * (i + 1)) for i in range(5)]
        suppress = build_suppressor(NMSConfig(kind="iou", iou_threshold=0.5, max_detections=2))
        self.assertEqual([round(d.confidence, 1) for d in suppress(dets)], [0.5, 0.4])

    def test_none_only_sorts_and_caps(self) -> None:
        dets = [_box(0, 0, 10, 10, 0.2), _box(0, 0, 10, 10, 0.7)]
        suppress = build_suppressor(NMSConfig(kind="none"))
        self.assertEqual([d.confidence for d in suppress(dets)], [0.7, 0.2])

    def test_distance_strategy(self) -> None:
        suppress = build_suppressor(NMSConfig(kind="distance", distance_threshold=60))
        self.assertEqual(len(suppress([_point(300, 300, 0.9), _point(310, 305, 0.5)])), 1)

    def test_invalid_config(self) -> None:
        with self.assertRaises(ValueError):
            NMSConfig(kind="soft")
        with self.assertRaises(ValueError):
            NMSConfig(iou_threshold=1.5)


if __name__ == "__main__":
    unittest.main()
