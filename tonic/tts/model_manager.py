"""
Model asset manager.

Downloads, caches, and loads the ONNX models, model config, vocabulary
table and voice styles.  Assets are stored under
``~/.local/share/tonic/assets/``.
"""

import json
import logging
import urllib.request
from pathlib import Path
from typing import Any, List, Optional, Union

from tqdm import tqdm

from tonic.errors import AssetError
from tonic.text.indexer import VocabIndexer

from .base_engine import OPERATIONS
from .models import ModelConfig, VoiceStyle

logger = logging.getLogger(__name__)

# Public model repository (HuggingFace)
_ASSETS_BASE = "https://huggingface.co/Supertone/supertonic-2/resolve/main"

_DEFAULT_ASSET_DIR = Path.home() / ".local" / "share" / "tonic" / "assets"

CONFIG_FILE = "tts.json"
INDEXER_FILE = "unicode_indexer.json"

# Bundled voice styles: 5 female, 5 male
KNOWN_VOICES = ["F1", "F2", "F3", "F4", "F5", "M1", "M2", "M3", "M4", "M5"]

DEFAULT_VOICE = "M1"


class ModelManager:
    """
    Manages model asset downloads, caching and parsing.

    Usage::

        mgr = ModelManager()
        mgr.ensure_assets_available(voices=["M1"])
        config = mgr.load_model_config()
        style = mgr.load_voice_style("M1")
    """

    def __init__(self, asset_dir: Optional[Path] = None):
        self.asset_dir = Path(asset_dir) if asset_dir is not None else _DEFAULT_ASSET_DIR
        self.asset_dir.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    @property
    def onnx_dir(self) -> Path:
        return self.asset_dir / "onnx"

    @property
    def voice_dir(self) -> Path:
        return self.asset_dir / "voice_styles"

    def model_files(self) -> List[Path]:
        """Expected local paths of the config, indexer and ONNX models."""
        files = [self.onnx_dir / CONFIG_FILE, self.onnx_dir / INDEXER_FILE]
        files += [self.onnx_dir / f"{stem}.onnx" for stem, _ in OPERATIONS.values()]
        return files

    def get_voice_path(self, voice: str) -> Path:
        """
        Resolve a voice name (``"M1"``) or a path to a style JSON file.
        Does not check whether the file exists.
        """
        candidate = Path(voice)
        if candidate.suffix == ".json":
            return candidate
        return self.voice_dir / f"{voice}.json"

    # ------------------------------------------------------------------
    # Availability
    # ------------------------------------------------------------------

    def is_model_available(self) -> bool:
        return all(p.exists() for p in self.model_files())

    def is_voice_available(self, voice: str) -> bool:
        return self.get_voice_path(voice).exists()

    def ensure_assets_available(self, voices: Optional[List[str]] = None) -> Path:
        """
        Download any missing model file and the requested voice styles.

        Args:
            voices: Voice names or style paths.  Paths are never downloaded.

        Returns:
            Directory holding the ONNX models.

        Raises:
            AssetError: If a voice is unknown or a download fails.
        """
        for path in self.model_files():
            if not path.exists():
                self._download(f"{_ASSETS_BASE}/onnx/{path.name}", path, label=path.name)

        for voice in voices or []:
            path = self.get_voice_path(voice)
            if path.exists():
                continue
            if voice not in KNOWN_VOICES:
                raise AssetError(f"Unknown voice '{voice}'. Available: {KNOWN_VOICES}")
            self._download(f"{_ASSETS_BASE}/voice_styles/{voice}.json", path, label=f"voice {voice}")

        return self.onnx_dir

    def list_available_voices(self) -> List[str]:
        """Return names of locally cached voice styles."""
        if not self.voice_dir.exists():
            return []
        return sorted(p.stem for p in self.voice_dir.glob("*.json"))

    def list_known_voices(self) -> List[str]:
        """Return names of all downloadable voice styles."""
        return list(KNOWN_VOICES)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load_model_config(self) -> ModelConfig:
        """Parse ``tts.json`` into a :class:`ModelConfig`."""
        return ModelConfig.from_dict(_read_json(self.onnx_dir / CONFIG_FILE))

    def load_indexer(self) -> VocabIndexer:
        """Parse ``unicode_indexer.json`` into a :class:`VocabIndexer`."""
        table = _read_json(self.onnx_dir / INDEXER_FILE)
        if not isinstance(table, list):
            raise AssetError(f"{INDEXER_FILE} must hold a flat list, got {type(table).__name__}")
        return VocabIndexer(table)

    def load_voice_style(self, voice: str) -> VoiceStyle:
        """Parse a voice style by name or path."""
        path = self.get_voice_path(voice)
        style = VoiceStyle.from_json(_read_json(path))
        logger.info("Voice style loaded: %s %r", path.name, style)
        return style

    # ------------------------------------------------------------------
    # Download
    # ------------------------------------------------------------------

    @staticmethod
    def _download(url: str, dest: Path, label: str = "file") -> None:
        """Download a file with a progress bar."""
        logger.info("Fetching %s: %s", label, url)
        dest.parent.mkdir(parents=True, exist_ok=True)
        try:
            with tqdm(unit="B", unit_scale=True, desc=label, leave=False) as bar:

                def _progress(block_num, block_size, total_size):
                    if total_size > 0:
                        bar.total = total_size
                    bar.update(block_num * block_size - bar.n)

                urllib.request.urlretrieve(url, str(dest), reporthook=_progress)

        except Exception as e:
            # Clean up partial download
            if dest.exists():
                dest.unlink()
            raise AssetError(f"Failed to download {label} from {url}: {e}") from e

    def __repr__(self) -> str:
        cached = len(self.list_available_voices())
        return f"ModelManager(dir='{self.asset_dir}', voices={cached})"


def _read_json(path: Union[str, Path]) -> Any:
    path = Path(path)
    if not path.exists():
        raise AssetError(f"Asset not found: {path}")
    try:
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise AssetError(f"Could not read {path}: {e}") from e
