from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Union

import numpy as np

from ..errors import ModelLoadError


PathLike = Union[str, Path]


@dataclass(frozen=True)
class TorchScriptBackendConfig:
    """
    Configuration for TorchScript inference.

    - device: "cpu" or "cuda" (if available)
    - half: cast input to float16 (only if the model expects it)
    - output_index: primary output returned by `infer` when the model returns several
    """

    device: str = "cpu"
    half: bool = False
    output_index: int = 0


class TorchScriptBackend:
    """
    TorchScript worker using `torch.jit.load`.

    Tuple/list outputs are exposed as "output_0", "output_1", ... through `peek_output`.
    """

    def __init__(self, model_path: PathLike, cfg: TorchScriptBackendConfig = TorchScriptBackendConfig()):
        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(str(self.model_path))

        try:
            import torch  # type: ignore
        except Exception as e:  # pragma: no cover
            raise ImportError("torch is required for the TorchScript backend. Install with `pip install torch`.") from e

        self._torch = torch
        self.device = torch.device(cfg.device)
        self.half = cfg.half
        self.output_index = cfg.output_index

        try:
            model = torch.jit.load(str(self.model_path), map_location=self.device)
        except Exception as e:
            raise ModelLoadError(f"Could not load TorchScript model {self.model_path}: {e}") from e
        model.eval()
        self.model = model
        self._outputs: Dict[str, np.ndarray] = {}

    def schedule(self, blob: np.ndarray) -> None:
        torch = self._torch
        x = torch.as_tensor(blob, device=self.device)
        x = x.half() if self.half else x.float()
        x = x.contiguous()

        with torch.no_grad():
            y = self.model(x)

        ys = list(y) if isinstance(y, (tuple, list)) else [y]
        self._outputs = {f"output_{i}": t.detach().to("cpu").numpy() for i, t in enumerate(ys)}

    def peek_output(self, name: Optional[str] = None) -> np.ndarray:
        key = name or f"output_{self.output_index}"
        if key not in self._outputs:
            raise KeyError(f"No output {key!r} from the last run; available: {sorted(self._outputs)}")
        return self._outputs[key]

    def infer(self, blob: np.ndarray) -> np.ndarray:
        self.schedule(blob)
        return self.peek_output()
