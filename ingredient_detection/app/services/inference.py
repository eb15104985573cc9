"""Model invocation boundary backed by ONNX Runtime."""
from __future__ import annotations

import logging
import threading
from typing import List, Optional, Protocol, Tuple

import numpy as np
import onnxruntime as ort

from ..models import ModelVariant

LOGGER = logging.getLogger(__name__)

GPU_PROVIDER = "CUDAExecutionProvider"
CPU_PROVIDER = "CPUExecutionProvider"


class InferenceUnavailableError(RuntimeError):
    """Raised when the model cannot be loaded or invoked."""


class ModelRunner(Protocol):
    """One input tensor in, one raw output tensor out."""

    def run(self, inputs: np.ndarray) -> np.ndarray:
        ...

    def close(self) -> None:
        ...


class OnnxModelRunner:
    """Lazily loads a model file into an ONNX Runtime session and runs it."""

    def __init__(self, variant: ModelVariant, num_threads: int = 4, use_gpu: bool = True) -> None:
        self.variant = variant
        self.num_threads = num_threads
        self.use_gpu = use_gpu
        self._session: Optional[ort.InferenceSession] = None
        self._input_name: Optional[str] = None
        self._output_name: Optional[str] = None
        self._lock = threading.Lock()

    def load(self) -> Tuple[ort.InferenceSession, str, str]:
        """Load the session once and return it with its input and output names."""

        with self._lock:
            if self._session is not None:
                return self._session, self._input_name, self._output_name
            model_path = self.variant.model_path
            if not model_path.exists():
                raise InferenceUnavailableError(f"Model file not found at {model_path}")

            options = ort.SessionOptions()
            providers = self._select_providers()
            if providers[0] == CPU_PROVIDER:
                options.intra_op_num_threads = self.num_threads
                LOGGER.info("GPU not available, using CPU with %d threads", self.num_threads)
            else:
                LOGGER.info("GPU acceleration enabled (%s)", providers[0])

            try:
                session = ort.InferenceSession(str(model_path), sess_options=options, providers=providers)
            except Exception as exc:
                LOGGER.error("Failed to load model %s: %s", model_path, exc)
                raise InferenceUnavailableError(f"Unable to load model {model_path}") from exc

            self._input_name = session.get_inputs()[0].name
            self._output_name = session.get_outputs()[0].name
            self._session = session
            LOGGER.info("Model %s loaded from %s", self.variant.name, model_path)
            return session, self._input_name, self._output_name

    def run(self, inputs: np.ndarray) -> np.ndarray:
        """Run the model on a batch tensor and return its first output."""

        # a concurrent close() only drops our references, the local session stays usable
        session, input_name, output_name = self.load()
        try:
            outputs = session.run([output_name], {input_name: inputs})
        except Exception as exc:
            LOGGER.error("Inference failed for model %s: %s", self.variant.name, exc)
            raise InferenceUnavailableError(f"Inference failed for model {self.variant.name}") from exc
        return np.asarray(outputs[0])

    def close(self) -> None:
        with self._lock:
            if self._session is not None:
                LOGGER.info("Releasing model %s", self.variant.name)
            self._session = None
            self._input_name = None
            self._output_name = None

    def __enter__(self) -> "OnnxModelRunner":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _select_providers(self) -> List[str]:
        if self.use_gpu and GPU_PROVIDER in ort.get_available_providers():
            return [GPU_PROVIDER, CPU_PROVIDER]
        return [CPU_PROVIDER]
