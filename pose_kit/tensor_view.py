from __future__ import annotations

from typing import Sequence, Tuple, Union

import numpy as np


class TensorView:
    """
    Read-only view over a flat float buffer with named axes.

    Example: a pose model output shaped (1, 56, 8400) is viewed with
    axes ("batch", "channel", "detection") so decode code can ask for
    `view.size("detection")` or `view.at(channel=4, detection=i)`.
    """

    def __init__(self, buffer: Union[np.ndarray, Sequence[float]], shape: Sequence[int], axes: Sequence[str]):
        if len(shape) != len(axes):
            raise ValueError(f"shape {tuple(shape)} and axes {tuple(axes)} must have the same length")
        if len(set(axes)) != len(axes):
            raise ValueError(f"axis names must be unique, got {tuple(axes)}")

        flat = np.asarray(buffer, dtype=np.float32).reshape(-1)
        expected = int(np.prod(shape)) if len(shape) else 1
        if flat.size != expected:
            raise ValueError(f"buffer of {flat.size} values does not match shape {tuple(shape)}")

        data = flat.reshape(tuple(int(s) for s in shape))
        data.flags.writeable = False
        self._data = data
        self.axes: Tuple[str, ...] = tuple(axes)

    @classmethod
    def from_array(cls, array: np.ndarray, axes: Sequence[str]) -> "TensorView":
        a = np.asarray(array)
        return cls(a, a.shape, axes)

    @property
    def shape(self) -> Tuple[int, ...]:
        return tuple(self._data.shape)

    @property
    def ndim(self) -> int:
        return self._data.ndim

    def size(self, axis: str) -> int:
        return int(self._data.shape[self.axis_index(axis)])

    def axis_index(self, axis: str) -> int:
        try:
            return self.axes.index(axis)
        except ValueError:
            raise KeyError(f"Unknown axis {axis!r}; view has axes {self.axes}") from None

    def at(self, **indices: int) -> float:
        """
        Scalar lookup by axis name. Every axis must be given.
        """

        missing = [a for a in self.axes if a not in indices]
        extra = [k for k in indices if k not in self.axes]
        if missing or extra:
            raise KeyError(f"at() needs exactly axes {self.axes}; missing={missing} unknown={extra}")
        return float(self._data[tuple(int(indices[a]) for a in self.axes)])

    def __getitem__(self, index):
        value = self._data[index]
        if np.ndim(value) == 0:
            return float(value)
        return value

    def take(self, axis: str, index: int) -> np.ndarray:
        """
        Read-only slice with `axis` fixed at `index` (one dimension fewer).
        """

        return np.take(self._data, int(index), axis=self.axis_index(axis))

    def transpose(self, axes: Sequence[str]) -> "TensorView":
        """
        Reorder axes by name, e.g. channels-last -> channels-first.
        """

        if sorted(axes) != sorted(self.axes):
            raise ValueError(f"transpose axes {tuple(axes)} must be a permutation of {self.axes}")
        order = [self.axis_index(a) for a in axes]
        return TensorView.from_array(np.transpose(self._data, order), axes)

    def numpy(self) -> np.ndarray:
        return self._data
