import unittest

import numpy as np

from pose_kit.tensor_view import TensorView


class TestTensorView(unittest.TestCase):
    def setUp(self) -> None:
        self.flat = np.arange(2 * 3, dtype=np.float32)
        self.view = TensorView(self.flat, (1, 2, 3), ("batch", "channel", "detection"))

    def test_named_lookup(self) -> None:
        self.assertEqual(self.view.size("channel"), 2)
        self.assertEqual(self.view.size("detection"), 3)
        self.assertEqual(self.view.at(batch=0, channel=1, detection=2), 5.0)
        self.assertEqual(self.view[0, 0, 1], 1.0)

    def test_missing_axis_rejected(self) -> None:
        with self.assertRaises(KeyError):
            self.view.at(channel=1, detection=2)
        with self.assertRaises(KeyError):
            self.view.size("anchor")

    def test_is_read_only(self) -> None:
        with self.assertRaises(ValueError):
            self.view.numpy()[0, 0, 0] = 42.0

    def test_transpose_by_name(self) -> None:
        t = self.view.transpose(("batch", "detection", "channel"))
        self.assertEqual(t.shape, (1, 3, 2))
        self.assertEqual(t.at(batch=0, channel=1, detection=2), 5.0)

    def test_take_drops_axis(self) -> None:
        row = self.view.take("batch", 0)
        self.assertEqual(row.shape, (2, 3))

    def test_shape_mismatch(self) -> None:
        with self.assertRaises(ValueError):
            TensorView(self.flat, (1, 4, 3), ("batch", "channel", "detection"))
        with self.assertRaises(ValueError):
            TensorView(self.flat, (2, 3), ("channel", "channel"))


if __name__ == "__main__":
    unittest.main()
