from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Union

import numpy as np

from ..errors import ModelLoadError


PathLike = Union[str, Path]


@dataclass(frozen=True)
class OnnxRuntimeBackendConfig:
    """
    Configuration for ONNX Runtime inference.

    - providers: ORT execution providers (e.g., ["CUDAExecutionProvider", "CPUExecutionProvider"])
    - input_name: override the auto-selected input name
    - output_name: primary output returned by `infer`; defaults to the first model output
    """

    providers: Optional[Sequence[str]] = None
    input_name: Optional[str] = None
    output_name: Optional[str] = None


class OnnxRuntimeBackend:
    """
    ONNX Runtime worker.

    Expects an NCHW float32 blob, typically shaped (1, 3, H, W). All outputs of the last
    `schedule` call stay readable through `peek_output` until the next call.
    """

    def __init__(self, model_path: PathLike, cfg: OnnxRuntimeBackendConfig = OnnxRuntimeBackendConfig()):
        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(str(self.model_path))

        try:
            import onnxruntime as ort  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError(
                "onnxruntime is required for the ONNX backend. Install it with `pip install onnxruntime` "
                "(or `onnxruntime-gpu`)."
            ) from e

        self._ort = ort
        providers = list(cfg.providers) if cfg.providers is not None else None
        try:
            self.session = ort.InferenceSession(
                str(self.model_path), sess_options=ort.SessionOptions(), providers=providers
            )
        except Exception as e:
            raise ModelLoadError(f"Could not create ONNX Runtime session for {self.model_path}: {e}") from e

        self.input_name = cfg.input_name or self.session.get_inputs()[0].name
        self.output_names = tuple(o.name for o in self.session.get_outputs())
        self.output_name = cfg.output_name or self.output_names[0]
        if self.output_name not in self.output_names:
            raise ModelLoadError(f"Model has no output {self.output_name!r}; outputs are {self.output_names}")
        self._outputs: Dict[str, np.ndarray] = {}

    @property
    def providers_in_use(self) -> Sequence[str]:
        # ORT returns providers in priority order for this session.
        return tuple(self.session.get_providers())

    @property
    def available_providers(self) -> Sequence[str]:
        return tuple(self._ort.get_available_providers())

    def schedule(self, blob: np.ndarray, extra_inputs: Optional[Dict[str, Any]] = None) -> None:
        inputs: Dict[str, Any] = {self.input_name: blob}
        if extra_inputs:
            inputs.update(extra_inputs)
        outputs = self.session.run(list(self.output_names), inputs)
        self._outputs = dict(zip(self.output_names, outputs))

    def peek_output(self, name: Optional[str] = None) -> np.ndarray:
        key = name or self.output_name
        if key not in self._outputs:
            raise KeyError(f"No output {key!r} from the last run; available: {sorted(self._outputs)}")
        return self._outputs[key]

    def infer(self, blob: np.ndarray) -> np.ndarray:
        self.schedule(blob)
        return self.peek_output()
