import json
import pathlib
import sys
from typing import Dict, List, Tuple

import numpy as np
import pytest

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from tonic.text.indexer import VocabIndexer  # noqa: E402
from tonic.tts.base_engine import BaseInferenceEngine  # noqa: E402
from tonic.tts.models import ModelConfig, VoiceStyle  # noqa: E402

SAMPLE_RATE = 1000
BASE_CHUNK_SIZE = 10
CHUNK_COMPRESS = 2
LATENT_DIM = 3


class FakeEngine(BaseInferenceEngine):
    """
    Deterministic stand-in for the ONNX models.

    Duration is 0.01s per valid text position, the denoiser halves the
    latent, and the vocoder emits ``chunk_size`` samples per latent frame
    plus one extra sample to mimic vocoder overproduction.
    """

    def __init__(self, config: ModelConfig, duration_per_char: float = 0.01):
        self.config = config
        self.duration_per_char = duration_per_char
        self.calls: List[Tuple[str, Dict[str, np.ndarray]]] = []

    @property
    def engine_name(self) -> str:
        return "fake"

    def run(self, operation, inputs):
        self.calls.append((operation, {k: np.array(v, copy=True) for k, v in inputs.items()}))

        if operation == "predict_duration":
            lengths = inputs["text_mask"].sum(axis=(1, 2)).astype(np.float64)
            return {"duration": lengths * self.duration_per_char}
        if operation == "encode_text":
            ids = inputs["text_ids"]
            return {"text_emb": np.ones((ids.shape[0], 4, ids.shape[1]), dtype=np.float32)}
        if operation == "estimate_vector":
            return {"denoised_latent": inputs["noisy_latent"] * 0.5}
        if operation == "vocode":
            latent = inputs["latent"]
            n = latent.shape[2] * self.config.chunk_size + 1
            return {"wav_tts": np.full((latent.shape[0], n), 0.25, dtype=np.float32)}
        raise KeyError(operation)

    def operations(self) -> List[str]:
        return [op for op, _ in self.calls]


@pytest.fixture
def model_config() -> ModelConfig:
    return ModelConfig(
        sample_rate=SAMPLE_RATE,
        base_chunk_size=BASE_CHUNK_SIZE,
        chunk_compress_factor=CHUNK_COMPRESS,
        latent_dim=LATENT_DIM,
    )


@pytest.fixture
def indexer() -> VocabIndexer:
    # Every ASCII code point maps to a non-zero id
    return VocabIndexer(list(range(1, 129)))


@pytest.fixture
def engine(model_config) -> FakeEngine:
    return FakeEngine(model_config)


@pytest.fixture
def style() -> VoiceStyle:
    return VoiceStyle(
        ttl=np.zeros((1, 2, 4), dtype=np.float32),
        dp=np.zeros((1, 2, 2), dtype=np.float32),
    )


def style_document(batch: int = 1) -> dict:
    return {
        "style_ttl": {
            "dims": [batch, 2, 3],
            "data": np.arange(batch * 6, dtype=float).reshape(batch, 2, 3).tolist(),
        },
        "style_dp": {
            "dims": [batch, 1, 2],
            "data": np.zeros((batch, 1, 2)).tolist(),
        },
    }


@pytest.fixture
def asset_dir(tmp_path) -> pathlib.Path:
    """An asset directory with config, vocabulary and one voice, no models."""
    onnx = tmp_path / "onnx"
    onnx.mkdir()
    (onnx / "tts.json").write_text(
        json.dumps(
            {
                "ae": {"sample_rate": SAMPLE_RATE, "base_chunk_size": BASE_CHUNK_SIZE},
                "ttl": {"chunk_compress_factor": CHUNK_COMPRESS, "latent_dim": LATENT_DIM},
            }
        )
    )
    (onnx / "unicode_indexer.json").write_text(json.dumps(list(range(1, 129))))
    voices = tmp_path / "voice_styles"
    voices.mkdir()
    (voices / "M1.json").write_text(json.dumps(style_document()))
    return tmp_path


@pytest.fixture
def make_engine(model_config):
    def factory(**kwargs) -> FakeEngine:
        return FakeEngine(model_config, **kwargs)

    return factory


@pytest.fixture
def make_style_document():
    return style_document
