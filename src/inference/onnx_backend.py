"""
ONNX Runtime inference backend.

Loads the exported detection model once and runs it off the event loop.
Slot names are read from the model, since different exports name them
differently.
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import numpy as np

from models.errors import InferenceFailure, ModelLoadFailure
from .backend import InferenceBackend


@dataclass(frozen=True)
class OnnxModelConfig:
    model_path: str
    input_size: int = 512
    providers: Sequence[str] = field(default_factory=lambda: ("CPUExecutionProvider",))


def _declared_spatial_size(shape) -> Optional[int]:
    """Return the square spatial size of an NCHW input shape if it is static."""
    if shape is None or len(shape) != 4:
        return None
    height, width = shape[2], shape[3]
    if isinstance(height, int) and isinstance(width, int) and height == width:
        return height
    return None


class OnnxRuntimeBackend(InferenceBackend):
    def __init__(self, cfg: OnnxModelConfig):
        self.cfg = cfg
        try:
            import onnxruntime as ort  # type: ignore
        except ImportError as e:  # pragma: no cover
            raise ModelLoadFailure(
                "onnxruntime is not installed. Install with `pip install onnxruntime`.", cause=e
            ) from e

        if not os.path.exists(cfg.model_path):
            raise ModelLoadFailure(f"Model file not found: {cfg.model_path}")

        providers = self._select_providers(ort, cfg.providers)
        try:
            options = ort.SessionOptions()
            options.graph_optimization_level = ort.GraphOptimizationLevel.ORT_ENABLE_ALL
            self._session = ort.InferenceSession(cfg.model_path, sess_options=options, providers=providers)
        except Exception as e:
            raise ModelLoadFailure(f"Failed to load model {cfg.model_path}", cause=e) from e

        inputs = self._session.get_inputs()
        outputs = self._session.get_outputs()
        if not inputs or not outputs:
            raise ModelLoadFailure(f"Model {cfg.model_path} declares no input or output slots")

        self.input_name: str = inputs[0].name
        self.output_name: str = outputs[0].name

        logging.info(
            f"ONNX session created: model={cfg.model_path}, providers={self._session.get_providers()}"
        )
        logging.info(f"Input names: {[i.name for i in inputs]}")
        logging.info(f"Output names: {[o.name for o in outputs]}")

        declared = _declared_spatial_size(getattr(inputs[0], "shape", None))
        if declared is not None and declared != cfg.input_size:
            logging.warning(
                f"Model input is {declared}x{declared} but model.input_size is {cfg.input_size}; "
                "detections will be inaccurate until they match"
            )

    @staticmethod
    def _select_providers(ort, requested: Sequence[str]) -> List[str]:
        """Keep the requested providers that this onnxruntime build offers, in order."""
        available = set(ort.get_available_providers())
        chosen = [p for p in requested if p in available]
        if not chosen:
            logging.warning(
                f"None of the requested providers {list(requested)} are available, "
                "falling back to CPUExecutionProvider"
            )
            chosen = ["CPUExecutionProvider"]
        return chosen

    def _run_sync(self, tensor: np.ndarray) -> np.ndarray:
        outputs = self._session.run([self.output_name], {self.input_name: tensor})
        return outputs[0]

    async def run(self, tensor: np.ndarray) -> np.ndarray:
        try:
            return await asyncio.to_thread(self._run_sync, tensor)
        except Exception as e:
            raise InferenceFailure(f"Inference call failed on input '{self.input_name}'", cause=e) from e


def create_backend_from_config(model_cfg) -> OnnxRuntimeBackend:
    """
    Factory: build the backend from a ModelConfig.
    """
    return OnnxRuntimeBackend(
        OnnxModelConfig(
            model_path=model_cfg.path,
            input_size=model_cfg.input_size,
            providers=tuple(model_cfg.providers),
        )
    )
