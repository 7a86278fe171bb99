"""
Abstract base class for inference engines.

The pipeline treats the neural networks as a black box that runs a
named operation on named tensors.  Backends implement :meth:`run`; the
typed helpers here build the inputs, check the outputs, and turn any
backend failure into :class:`~tonic.errors.InferenceError`.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, Mapping, Tuple

import numpy as np

from tonic.errors import InferenceError

logger = logging.getLogger(__name__)

# Operation name → (model file stem, output tensor name)
OPERATIONS: Dict[str, Tuple[str, str]] = {
    "predict_duration": ("duration_predictor", "duration"),
    "encode_text": ("text_encoder", "text_emb"),
    "estimate_vector": ("vector_estimator", "denoised_latent"),
    "vocode": ("vocoder", "wav_tts"),
}


class BaseInferenceEngine(ABC):
    """
    Common interface for the four sub-models used by the pipeline.

    Subclasses must implement :meth:`run` and the ``engine_name``
    property.
    """

    @abstractmethod
    def run(self, operation: str, inputs: Dict[str, np.ndarray]) -> Dict[str, np.ndarray]:
        """
        Run *operation* (a key of :data:`OPERATIONS`) on *inputs*.

        Returns:
            Mapping of output name to array.
        """

    @property
    @abstractmethod
    def engine_name(self) -> str:
        """Human-readable engine identifier."""

    # ------------------------------------------------------------------
    # Typed operations
    # ------------------------------------------------------------------

    def predict_duration(
        self, text_ids: np.ndarray, style_dp: np.ndarray, text_mask: np.ndarray
    ) -> np.ndarray:
        """Predicted duration in seconds, one value per batch item."""
        out = self._call(
            "predict_duration",
            {"text_ids": text_ids, "style_dp": style_dp, "text_mask": text_mask},
        )
        duration = np.asarray(out, dtype=np.float64).reshape(-1)
        if duration.size != text_ids.shape[0]:
            raise InferenceError(
                f"predict_duration returned {duration.size} values for batch of {text_ids.shape[0]}"
            )
        if not np.all(np.isfinite(duration)) or np.any(duration < 0):
            raise InferenceError(f"predict_duration returned invalid durations: {duration.tolist()}")
        return duration

    def encode_text(
        self, text_ids: np.ndarray, style_ttl: np.ndarray, text_mask: np.ndarray
    ) -> np.ndarray:
        """Text embedding conditioned on the voice style."""
        emb = self._call(
            "encode_text",
            {"text_ids": text_ids, "style_ttl": style_ttl, "text_mask": text_mask},
        )
        if emb.ndim == 0 or emb.shape[0] != text_ids.shape[0]:
            raise InferenceError(
                f"encode_text returned shape {emb.shape} for batch of {text_ids.shape[0]}"
            )
        return emb

    def estimate_vector(
        self,
        noisy_latent: np.ndarray,
        text_emb: np.ndarray,
        style_ttl: np.ndarray,
        latent_mask: np.ndarray,
        text_mask: np.ndarray,
        current_step: np.ndarray,
        total_step: np.ndarray,
    ) -> np.ndarray:
        """One denoising step; returns a latent shaped like *noisy_latent*."""
        denoised = self._call(
            "estimate_vector",
            {
                "noisy_latent": noisy_latent,
                "text_emb": text_emb,
                "style_ttl": style_ttl,
                "latent_mask": latent_mask,
                "text_mask": text_mask,
                "current_step": current_step,
                "total_step": total_step,
            },
        )
        if denoised.size != noisy_latent.size:
            raise InferenceError(
                f"estimate_vector returned shape {denoised.shape}, expected {noisy_latent.shape}"
            )
        if not np.all(np.isfinite(denoised)):
            raise InferenceError("estimate_vector returned non-finite values")
        return denoised.reshape(noisy_latent.shape)

    def vocode(self, latent: np.ndarray) -> np.ndarray:
        """Waveform samples, shape ``(batch, samples)``."""
        wav = self._call("vocode", {"latent": latent})
        batch = latent.shape[0]
        if wav.ndim == 0 or wav.size % batch:
            raise InferenceError(f"vocode returned shape {wav.shape} for batch of {batch}")
        return wav.reshape(batch, -1)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _call(self, operation: str, inputs: Dict[str, np.ndarray]) -> np.ndarray:
        output_name = OPERATIONS[operation][1]
        try:
            outputs = self.run(operation, inputs)
        except InferenceError:
            raise
        except Exception as e:
            raise InferenceError(f"{operation} failed in {self.engine_name}: {e}") from e

        if not isinstance(outputs, Mapping):
            raise InferenceError(
                f"{operation} returned {type(outputs).__name__}, expected a mapping of outputs"
            )
        if output_name not in outputs:
            raise InferenceError(
                f"{operation} did not return '{output_name}' (got {sorted(outputs)})"
            )
        return np.asarray(outputs[output_name])

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.engine_name})"
