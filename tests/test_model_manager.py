import json

import numpy as np
import pytest

from conftest import BASE_CHUNK_SIZE, CHUNK_COMPRESS, LATENT_DIM, SAMPLE_RATE
from tonic.errors import AssetError
from tonic.tts import model_manager
from tonic.tts.model_manager import KNOWN_VOICES, ModelManager
from tonic.tts.models import ModelConfig, VoiceStyle


def test_loads_model_config(asset_dir):
    config = ModelManager(asset_dir).load_model_config()
    assert config == ModelConfig(SAMPLE_RATE, BASE_CHUNK_SIZE, CHUNK_COMPRESS, LATENT_DIM)
    assert config.chunk_size == BASE_CHUNK_SIZE * CHUNK_COMPRESS
    assert config.latent_channels == LATENT_DIM * CHUNK_COMPRESS


@pytest.mark.parametrize(
    "doc",
    [
        {"ae": {"sample_rate": 44100}},
        {"ae": {"sample_rate": 44100, "base_chunk_size": 512}, "ttl": {"latent_dim": 24}},
        {
            "ae": {"sample_rate": 0, "base_chunk_size": 512},
            "ttl": {"chunk_compress_factor": 6, "latent_dim": 24},
        },
        {
            "ae": {"sample_rate": "44100", "base_chunk_size": 512},
            "ttl": {"chunk_compress_factor": 6, "latent_dim": 24},
        },
    ],
)
def test_bad_model_config(asset_dir, doc):
    (asset_dir / "onnx" / "tts.json").write_text(json.dumps(doc))
    with pytest.raises(AssetError):
        ModelManager(asset_dir).load_model_config()


def test_unparseable_json(asset_dir):
    (asset_dir / "onnx" / "tts.json").write_text("{not json")
    with pytest.raises(AssetError):
        ModelManager(asset_dir).load_model_config()


def test_missing_asset(tmp_path):
    with pytest.raises(AssetError, match="not found"):
        ModelManager(tmp_path).load_indexer()


def test_loads_indexer(asset_dir):
    indexer = ModelManager(asset_dir).load_indexer()
    assert len(indexer) == 128
    assert indexer.lookup("A") == ord("A") + 1


def test_indexer_must_be_a_list(asset_dir):
    (asset_dir / "onnx" / "unicode_indexer.json").write_text(json.dumps({"a": 1}))
    with pytest.raises(AssetError):
        ModelManager(asset_dir).load_indexer()


def test_loads_voice_by_name(asset_dir):
    style = ModelManager(asset_dir).load_voice_style("M1")
    assert isinstance(style, VoiceStyle)
    assert style.ttl.shape == (1, 2, 3)
    assert style.dp.shape == (1, 1, 2)
    assert style.ttl.dtype == np.float32
    assert style.ttl[0, 1, 2] == 5.0


def test_loads_voice_by_path(asset_dir, tmp_path, make_style_document):
    path = tmp_path / "custom.json"
    path.write_text(json.dumps(make_style_document(batch=2)))
    style = ModelManager(asset_dir).load_voice_style(str(path))
    assert style.batch_size == 2


def test_voice_dims_must_match_data(asset_dir, make_style_document):
    doc = make_style_document()
    doc["style_ttl"]["dims"] = [1, 2, 4]
    (asset_dir / "voice_styles" / "M2.json").write_text(json.dumps(doc))
    with pytest.raises(AssetError, match="style_ttl"):
        ModelManager(asset_dir).load_voice_style("M2")


def test_voice_batch_mismatch(asset_dir, make_style_document):
    doc = make_style_document(batch=2)
    doc["style_dp"] = make_style_document(batch=1)["style_dp"]
    (asset_dir / "voice_styles" / "M3.json").write_text(json.dumps(doc))
    with pytest.raises(AssetError, match="batch"):
        ModelManager(asset_dir).load_voice_style("M3")


def test_voice_missing_field(asset_dir):
    (asset_dir / "voice_styles" / "F1.json").write_text(json.dumps({"style_ttl": {}}))
    with pytest.raises(AssetError):
        ModelManager(asset_dir).load_voice_style("F1")


def test_voice_listing(asset_dir):
    mgr = ModelManager(asset_dir)
    (asset_dir / "voice_styles" / "mine.json").write_text("{}")
    assert mgr.list_available_voices() == ["M1", "mine"]
    assert mgr.list_known_voices() == KNOWN_VOICES
    assert mgr.is_voice_available("M1")
    assert not mgr.is_voice_available("F3")


def test_model_files(asset_dir):
    mgr = ModelManager(asset_dir)
    names = sorted(p.name for p in mgr.model_files())
    assert names == sorted(
        [
            "tts.json",
            "unicode_indexer.json",
            "duration_predictor.onnx",
            "text_encoder.onnx",
            "vector_estimator.onnx",
            "vocoder.onnx",
        ]
    )
    assert not mgr.is_model_available()


def _fake_models(asset_dir):
    for stem in ("duration_predictor", "text_encoder", "vector_estimator", "vocoder"):
        (asset_dir / "onnx" / f"{stem}.onnx").write_bytes(b"")


def test_ensure_assets_downloads_only_missing(asset_dir, monkeypatch):
    _fake_models(asset_dir)
    fetched = []

    def fake_download(url, dest, label="file"):
        fetched.append(url)
        dest.write_text("{}")

    monkeypatch.setattr(ModelManager, "_download", staticmethod(fake_download))
    mgr = ModelManager(asset_dir)
    mgr.ensure_assets_available(voices=["M1", "F2"])

    assert fetched == [f"{model_manager._ASSETS_BASE}/voice_styles/F2.json"]
    assert mgr.is_model_available()
    assert mgr.is_voice_available("F2")


def test_unknown_voice(asset_dir, monkeypatch):
    _fake_models(asset_dir)
    monkeypatch.setattr(ModelManager, "_download", staticmethod(lambda *a, **k: None))
    with pytest.raises(AssetError, match="Unknown voice"):
        ModelManager(asset_dir).ensure_assets_available(voices=["Z9"])


def test_failed_download_removes_partial_file(tmp_path, monkeypatch):
    dest = tmp_path / "voice_styles" / "F1.json"

    def broken(url, filename, reporthook=None):
        with open(filename, "w") as f:
            f.write("partial")
        raise OSError("connection reset")

    monkeypatch.setattr(model_manager.urllib.request, "urlretrieve", broken)
    with pytest.raises(AssetError, match="connection reset"):
        ModelManager._download("http://example.invalid/F1.json", dest, label="voice F1")
    assert not dest.exists()
