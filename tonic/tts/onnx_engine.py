"""
ONNX Runtime inference engine.

Loads the duration predictor, text encoder, vector estimator and
vocoder from an asset directory and runs them on CPU (or whichever
execution providers the caller passes through).
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

import numpy as np
import onnxruntime as ort

from tonic.errors import AssetError

from .base_engine import OPERATIONS, BaseInferenceEngine
from .progress import LoadingProgress, ProgressListener

logger = logging.getLogger(__name__)

_DEFAULT_PROVIDERS = ["CPUExecutionProvider"]

# Display names reported while loading
_MODEL_LABELS = {
    "predict_duration": "Duration Predictor",
    "encode_text": "Text Encoder",
    "estimate_vector": "Vector Estimator",
    "vocode": "Vocoder",
}


class OnnxInferenceEngine(BaseInferenceEngine):
    """
    Runs the four sub-models with ``onnxruntime``.

    Usage::

        engine = OnnxInferenceEngine("assets/onnx")
        duration = engine.predict_duration(ids, style.dp, mask)
    """

    def __init__(
        self,
        model_dir: Union[str, Path],
        providers: Optional[Sequence[str]] = None,
        listener: Optional[ProgressListener] = None,
    ):
        """
        Load all sessions from *model_dir*.

        Args:
            model_dir: Directory holding ``duration_predictor.onnx``,
                       ``text_encoder.onnx``, ``vector_estimator.onnx``
                       and ``vocoder.onnx``.
            providers: onnxruntime execution providers, passed through
                       unchanged.  Defaults to CPU.
            listener:  Receives a :class:`LoadingProgress` before each
                       model is loaded.

        Raises:
            AssetError: If a model file is missing or cannot be loaded.
        """
        self._model_dir = Path(model_dir)
        self._providers: List[str] = list(providers or _DEFAULT_PROVIDERS)
        self._sessions: Dict[str, ort.InferenceSession] = {}

        missing = [
            stem for stem, _ in OPERATIONS.values()
            if not (self._model_dir / f"{stem}.onnx").exists()
        ]
        if missing:
            raise AssetError(f"Model files not found in {self._model_dir}: {missing}")

        total = len(OPERATIONS)
        for i, (operation, (stem, _)) in enumerate(OPERATIONS.items(), start=1):
            label = _MODEL_LABELS[operation]
            if listener is not None:
                listener.on_loading(LoadingProgress(current=i, total=total, resource=label))
            path = self._model_dir / f"{stem}.onnx"
            logger.debug("Loading %s from %s", label, path)
            try:
                self._sessions[operation] = ort.InferenceSession(
                    str(path), providers=self._providers
                )
            except Exception as e:
                raise AssetError(f"Failed to load {label} from {path}: {e}") from e

        logger.info("ONNX models ready (%s)", ", ".join(self._providers))

    @property
    def engine_name(self) -> str:
        return f"onnxruntime ({', '.join(self._providers)})"

    @property
    def providers(self) -> List[str]:
        return list(self._providers)

    def run(self, operation: str, inputs: Dict[str, np.ndarray]) -> Dict[str, np.ndarray]:
        session = self._sessions[operation]
        output_names = [o.name for o in session.get_outputs()]
        results = session.run(output_names, inputs)
        return dict(zip(output_names, results))
