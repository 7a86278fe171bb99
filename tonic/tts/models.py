"""
Data models shared by the inference engine, the pipeline and the
asset loader.
"""

from dataclasses import dataclass
from typing import Any, Dict

import numpy as np

from tonic.errors import AssetError


@dataclass(frozen=True)
class ModelConfig:
    """
    Audio and latent geometry read from ``tts.json``.

    ``base_chunk_size * chunk_compress_factor`` waveform samples make up
    one latent frame; the latent has ``latent_dim * chunk_compress_factor``
    channels.
    """

    sample_rate: int
    base_chunk_size: int
    chunk_compress_factor: int
    latent_dim: int

    @property
    def chunk_size(self) -> int:
        return self.base_chunk_size * self.chunk_compress_factor

    @property
    def latent_channels(self) -> int:
        return self.latent_dim * self.chunk_compress_factor

    @classmethod
    def from_dict(cls, cfg: Dict[str, Any]) -> "ModelConfig":
        """
        Build from the parsed ``tts.json`` document.

        Raises:
            AssetError: If a required field is missing or not a positive integer.
        """
        try:
            values = {
                "sample_rate": cfg["ae"]["sample_rate"],
                "base_chunk_size": cfg["ae"]["base_chunk_size"],
                "chunk_compress_factor": cfg["ttl"]["chunk_compress_factor"],
                "latent_dim": cfg["ttl"]["latent_dim"],
            }
        except (KeyError, TypeError) as e:
            raise AssetError(f"Model config is missing field {e}") from e

        for key, value in values.items():
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise AssetError(f"Model config field '{key}' must be a positive integer, got {value!r}")
        return cls(**values)


@dataclass
class VoiceStyle:
    """
    The pair of style tensors describing one voice (or a batch of voices).

    Loaded once and reused across generations; the pipeline never
    mutates them.
    """

    ttl: np.ndarray
    dp: np.ndarray

    def __post_init__(self):
        self.ttl = np.ascontiguousarray(self.ttl, dtype=np.float32)
        self.dp = np.ascontiguousarray(self.dp, dtype=np.float32)
        if self.ttl.ndim == 0 or self.dp.ndim == 0:
            raise AssetError("Style tensors need a leading batch dimension")
        if self.ttl.shape[0] != self.dp.shape[0]:
            raise AssetError(
                f"Style batch mismatch: style_ttl has {self.ttl.shape[0]}, "
                f"style_dp has {self.dp.shape[0]}"
            )

    @property
    def batch_size(self) -> int:
        return self.ttl.shape[0]

    @classmethod
    def from_json(cls, doc: Dict[str, Any]) -> "VoiceStyle":
        """
        Parse a voice style document::

            {"style_ttl": {"dims": [1, 50, 256], "data": [[[...]]]},
             "style_dp":  {"dims": [1, 8, 16],   "data": [[[...]]]}}

        Raises:
            AssetError: On missing fields or data that does not fit ``dims``.
        """
        return cls(
            ttl=_tensor_from_json(doc, "style_ttl"),
            dp=_tensor_from_json(doc, "style_dp"),
        )

    def __repr__(self) -> str:
        return f"VoiceStyle(ttl={tuple(self.ttl.shape)}, dp={tuple(self.dp.shape)})"


def _tensor_from_json(doc: Dict[str, Any], field: str) -> np.ndarray:
    try:
        entry = doc[field]
        dims = [int(d) for d in entry["dims"]]
        flat = np.asarray(entry["data"], dtype=np.float32).ravel()
    except (KeyError, TypeError, ValueError) as e:
        raise AssetError(f"Voice style field '{field}' is malformed: {e}") from e

    expected = int(np.prod(dims)) if dims else 0
    if flat.size != expected:
        raise AssetError(
            f"Voice style field '{field}' has {flat.size} values, dims {dims} need {expected}"
        )
    return flat.reshape(dims)


@dataclass
class SynthesisOutput:
    """Assembled audio for one generation request."""

    wav: np.ndarray
    duration: float
    sample_rate: int
    chunk_count: int = 1

    @property
    def num_samples(self) -> int:
        return int(self.wav.shape[-1])

    def __repr__(self) -> str:
        return (
            f"SynthesisOutput({self.duration:.2f}s, {self.num_samples} samples, "
            f"{self.sample_rate}Hz, chunks={self.chunk_count})"
        )
