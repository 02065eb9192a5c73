import tempfile
import unittest
from pathlib import Path

import cv2
import numpy as np

from pose_kit.ingest import FrameSource


NUM_FRAMES = 5


def _write_clip(path: Path) -> bool:
    writer = cv2.VideoWriter(str(path), cv2.VideoWriter_fourcc(*"MJPG"), 10.0, (64, 48))
    if not writer.isOpened():
        return False
    for i in range(NUM_FRAMES):
        writer.write(np.full((48, 64, 3), 40 * i, dtype=np.uint8))
    writer.release()
    return True


class TestFrameSource(unittest.TestCase):
    def setUp(self) -> None:
        self.tmpdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmpdir.cleanup)
        self.clip = Path(self.tmpdir.name) / "clip.avi"
        if not _write_clip(self.clip):
            self.skipTest("OpenCV build has no MJPG writer")

    def test_requires_exactly_one_source(self) -> None:
        with self.assertRaises(ValueError):
            FrameSource()
        with self.assertRaises(ValueError):
            FrameSource(video=str(self.clip), webcam=0)

    def test_missing_video_fails_to_open(self) -> None:
        with self.assertRaises(RuntimeError):
            FrameSource(video=str(Path(self.tmpdir.name) / "missing.avi"))

    def test_reads_until_exhausted(self) -> None:
        with FrameSource(video=str(self.clip)) as source:
            info = source.info
            self.assertEqual((info.width, info.height), (64, 48))
            frames = list(source)
            self.assertEqual(len(frames), NUM_FRAMES)
            self.assertEqual(frames[0].shape, (48, 64, 3))
            self.assertIsNone(source.read())

    def test_loop_rewinds_to_first_frame(self) -> None:
        with FrameSource(video=str(self.clip), loop=True) as source:
            frames = [source.read() for _ in range(NUM_FRAMES + 2)]
        self.assertTrue(all(f is not None for f in frames))
        # Frame NUM_FRAMES is the first frame again (flat value 0, not 160).
        self.assertLess(abs(float(frames[NUM_FRAMES].mean()) - float(frames[0].mean())), 10.0)
        self.assertGreater(float(frames[NUM_FRAMES - 1].mean()), 100.0)


if __name__ == "__main__":
    unittest.main()
