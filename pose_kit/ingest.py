from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Optional

import numpy as np


@dataclass(frozen=True)
class CaptureInfo:
    fps: Optional[float]
    width: Optional[int]
    height: Optional[int]


class FrameSource:
    """
    Video file or webcam wrapped around `cv2.VideoCapture`.

    `read()` returns the next frame or None when no new frame is available.
    With `loop=True` a video file restarts from the first frame at the end.
    """

    def __init__(self, *, video: Optional[str] = None, webcam: Optional[int] = None, loop: bool = False):
        try:
            import cv2  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError("OpenCV is required for FrameSource. Install with `pip install opencv-python`.") from e

        if (video is None) == (webcam is None):
            raise ValueError("Exactly one of video/webcam must be provided.")

        self._cv2 = cv2
        self.loop = loop and video is not None
        self.cap = cv2.VideoCapture(video) if video is not None else cv2.VideoCapture(int(webcam))
        if not self.cap.isOpened():
            raise RuntimeError(f"Failed to open video source: {video if video is not None else webcam}")

    @property
    def info(self) -> CaptureInfo:
        cv2 = self._cv2
        fps = self.cap.get(cv2.CAP_PROP_FPS)
        w = self.cap.get(cv2.CAP_PROP_FRAME_WIDTH)
        h = self.cap.get(cv2.CAP_PROP_FRAME_HEIGHT)
        return CaptureInfo(
            fps=float(fps) if fps and fps > 0 else None,
            width=int(w) if w and w > 0 else None,
            height=int(h) if h and h > 0 else None,
        )

    def read(self) -> Optional[np.ndarray]:
        ok, frame = self.cap.read()
        if (not ok or frame is None) and self.loop:
            self.cap.set(self._cv2.CAP_PROP_POS_FRAMES, 0)
            ok, frame = self.cap.read()
        if not ok or frame is None:
            return None
        return frame

    def __iter__(self) -> Iterator[np.ndarray]:
        while True:
            frame = self.read()
            if frame is None:
                return
            yield frame

    def release(self) -> None:
        self.cap.release()

    def __enter__(self) -> "FrameSource":
        return self

    def __exit__(self, *exc) -> None:
        self.release()
