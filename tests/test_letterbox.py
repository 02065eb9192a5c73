import unittest

import numpy as np

from pose_kit.letterbox import center_crop, letterbox


class TestLetterbox(unittest.TestCase):
    def test_wide_frame_is_padded_top_and_bottom(self) -> None:
        img = np.zeros((640, 1280, 3), dtype=np.uint8)
        lb = letterbox(img, new_shape=(640, 640))
        self.assertEqual(lb.image.shape, (640, 640, 3))
        self.assertEqual(lb.ratio, (0.5, 0.5))
        self.assertEqual(lb.pad, (0.0, 160.0))
        self.assertEqual(tuple(int(v) for v in lb.image[0, 0]), (114, 114, 114))
        self.assertEqual(int(lb.image[320, 320].sum()), 0)

    def test_to_source_undoes_scale_and_pad(self) -> None:
        lb = letterbox(np.zeros((640, 1280, 3), dtype=np.uint8))
        self.assertEqual(lb.to_source().apply((320.0, 320.0)), (640.0, 320.0))
        self.assertEqual(lb.to_source().apply((0.0, 160.0)), (0.0, 0.0))

    def test_square_frame_is_identity(self) -> None:
        lb = letterbox(np.zeros((640, 640, 3), dtype=np.uint8))
        self.assertEqual(lb.pad, (0.0, 0.0))
        self.assertEqual(lb.to_source().apply((12.5, 600.0)), (12.5, 600.0))

    def test_no_scaleup(self) -> None:
        lb = letterbox(np.zeros((100, 200, 3), dtype=np.uint8), scaleup=False)
        self.assertEqual(lb.ratio, (1.0, 1.0))
        self.assertEqual(lb.pad, (220.0, 270.0))


class TestCenterCrop(unittest.TestCase):
    def test_wide_frame_keeps_center(self) -> None:
        img = np.zeros((640, 1280, 3), dtype=np.uint8)
        img[:, 320:960] = 255
        cc = center_crop(img, new_shape=(640, 640))
        self.assertEqual(cc.image.shape, (640, 640, 3))
        self.assertEqual(int(cc.image.min()), 255)
        self.assertEqual(cc.to_source().apply((0.0, 0.0)), (320.0, 0.0))

    def test_tall_frame(self) -> None:
        cc = center_crop(np.zeros((1280, 640, 3), dtype=np.uint8), new_shape=(320, 320))
        self.assertEqual(cc.image.shape, (320, 320, 3))
        self.assertEqual(cc.ratio, (0.5, 0.5))
        self.assertEqual(cc.to_source().apply((160.0, 160.0)), (320.0, 640.0))


if __name__ == "__main__":
    unittest.main()
