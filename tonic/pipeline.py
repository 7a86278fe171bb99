"""
Synthesis pipeline orchestrator: text → chunks → diffusion TTS → audio file.

Coordinates the full workflow:

1. **Asset loading**: download (if needed) and parse the model config,
   vocabulary table and voice style, then load the four ONNX sub-models.
2. **Synthesis**: chunk the text, run duration prediction, text
   encoding, iterative denoising and vocoding for each chunk, and join
   the chunks with silence.
3. **Export**: encode the waveform as 16-bit PCM WAV, or MP3 via pydub.

Usage::

    from tonic.pipeline import SynthesisConfig, SynthesisPipeline

    config = SynthesisConfig(voice="F1", total_steps=8)
    pipeline = SynthesisPipeline(config)
    result = pipeline.synthesize("Hello there.", "hello.wav")
    print(result.summary())
"""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import numpy as np

from tonic.text.chunker import DEFAULT_MAX_CHUNK_LENGTH
from tonic.tts.audio_builder import encode_wav, pcm_segment
from tonic.tts.base_engine import BaseInferenceEngine
from tonic.tts.model_manager import DEFAULT_VOICE, ModelManager
from tonic.tts.models import SynthesisOutput, VoiceStyle
from tonic.tts.onnx_engine import OnnxInferenceEngine
from tonic.tts.progress import ProgressListener, TqdmProgressListener
from tonic.tts.text_to_speech import (
    DEFAULT_SILENCE,
    DEFAULT_SPEED,
    DEFAULT_TOTAL_STEPS,
    TextToSpeech,
)

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Configuration
# ------------------------------------------------------------------


@dataclass
class SynthesisConfig:
    """
    All tuneable parameters for the synthesis pipeline.

    Attributes:
        asset_dir:        Override directory for cached model assets.
        voice:            Voice style name (``"M1"``) or path to a style JSON.
        total_steps:      Denoising steps per chunk.
        speed:            Speaking speed multiplier (>1 = faster).
        silence_duration: Silence inserted between chunks (seconds).
        max_chunk_length: Upper bound on chunk length in characters.
        providers:        onnxruntime execution providers (``None`` for CPU).
        seed:             Seed for latent noise (``None`` for random).
        download:         Fetch missing assets from the model repository.
        mp3_bitrate:      Bitrate string for MP3 export.
        disable_tqdm:     Suppress progress bars.
    """

    asset_dir: Optional[Path] = None
    voice: str = DEFAULT_VOICE

    total_steps: int = DEFAULT_TOTAL_STEPS
    speed: float = DEFAULT_SPEED
    silence_duration: float = DEFAULT_SILENCE
    max_chunk_length: int = DEFAULT_MAX_CHUNK_LENGTH

    providers: Optional[List[str]] = None
    seed: Optional[int] = None
    download: bool = True

    mp3_bitrate: str = "192k"
    disable_tqdm: bool = False


# ------------------------------------------------------------------
# Result
# ------------------------------------------------------------------


@dataclass
class SynthesisResult:
    """
    Summary returned after synthesis completes.

    Captures per-phase timing, output metrics, and file info so the
    caller can report or log the results.
    """

    output_path: str = ""
    chunk_count: int = 0
    char_count: int = 0
    sample_rate: int = 0
    audio_duration: float = 0.0
    file_size_mb: float = 0.0
    elapsed_seconds: float = 0.0

    time_load: float = 0.0
    time_synthesis: float = 0.0
    time_export: float = 0.0

    @property
    def real_time_factor(self) -> float:
        """Synthesis time per second of audio (< 1.0 = faster than real time)."""
        if self.audio_duration <= 0:
            return 0.0
        return self.time_synthesis / self.audio_duration

    def summary(self) -> str:
        """Format a human-readable summary of the synthesis run."""
        return (
            f"{'=' * 60}\n"
            f"SYNTHESIS COMPLETE\n"
            f"{'=' * 60}\n"
            f"  Output:       {self.output_path}\n"
            f"  Chunks:       {self.chunk_count} ({self.char_count} chars)\n"
            f"  Duration:     {self.audio_duration:.2f}s @ {self.sample_rate}Hz\n"
            f"  File size:    {self.file_size_mb:.2f} MB\n"
            f"\n"
            f"  Asset loading:    {self.time_load:.2f}s\n"
            f"  Synthesis:        {self.time_synthesis:.2f}s "
            f"(RTF {self.real_time_factor:.2f}x)\n"
            f"  Audio export:     {self.time_export:.2f}s\n"
            f"  Total wall time:  {self.elapsed_seconds:.2f}s\n"
            f"{'=' * 60}"
        )


# ------------------------------------------------------------------
# Pipeline
# ------------------------------------------------------------------


class SynthesisPipeline:
    """
    End-to-end text-to-audio-file pipeline.

    Models and the voice style are lazily loaded on first use and then
    reused by every later call.  A custom *listener* receives loading
    and denoising progress; by default progress is drawn with tqdm.
    Passing *engine* skips loading the ONNX models.
    """

    def __init__(
        self,
        config: Optional[SynthesisConfig] = None,
        listener: Optional[ProgressListener] = None,
        engine: Optional[BaseInferenceEngine] = None,
    ):
        self.config = config or SynthesisConfig()
        self._engine = engine
        self._listener = listener or TqdmProgressListener(disable=self.config.disable_tqdm)
        self._model_mgr: Optional[ModelManager] = None
        self._tts: Optional[TextToSpeech] = None
        self._style: Optional[VoiceStyle] = None

    # ------------------------------------------------------------------
    # Lazy component initialisation
    # ------------------------------------------------------------------

    def _ensure_manager(self) -> ModelManager:
        if self._model_mgr is None:
            self._model_mgr = ModelManager(asset_dir=self.config.asset_dir)
        return self._model_mgr

    def _ensure_tts(self) -> TextToSpeech:
        """Load config, vocabulary and ONNX sessions if not already loaded."""
        if self._tts is None:
            cfg = self.config
            mgr = self._ensure_manager()
            if cfg.download:
                mgr.ensure_assets_available(voices=[cfg.voice])

            model_config = mgr.load_model_config()
            indexer = mgr.load_indexer()
            engine = self._engine
            if engine is None:
                logger.info("Loading inference engine from %s", mgr.onnx_dir)
                engine = OnnxInferenceEngine(
                    mgr.onnx_dir,
                    providers=cfg.providers,
                    listener=self._listener,
                )
            self._tts = TextToSpeech(
                engine,
                indexer,
                model_config,
                rng=np.random.default_rng(cfg.seed),
            )
            logger.info("Engine ready: %s", self._tts)
        return self._tts

    def _ensure_style(self) -> VoiceStyle:
        if self._style is None:
            self._style = self._ensure_manager().load_voice_style(self.config.voice)
        return self._style

    def set_voice(self, voice: str) -> VoiceStyle:
        """Replace the voice style used by later generations."""
        mgr = self._ensure_manager()
        if self.config.download:
            mgr.ensure_assets_available(voices=[voice])
        self._style = mgr.load_voice_style(voice)
        self.config.voice = voice
        return self._style

    # ------------------------------------------------------------------
    # Main entry points
    # ------------------------------------------------------------------

    def generate(self, text: str) -> SynthesisOutput:
        """Synthesise *text* to an in-memory waveform."""
        cfg = self.config
        tts = self._ensure_tts()
        style = self._ensure_style()
        try:
            return tts.synthesize(
                text,
                style,
                total_steps=cfg.total_steps,
                speed=cfg.speed,
                silence_duration=cfg.silence_duration,
                max_chunk_length=cfg.max_chunk_length,
                listener=self._listener,
            )
        finally:
            self._listener.close()

    def synthesize(self, text: str, output_path: str) -> SynthesisResult:
        """
        Synthesise *text* and write it to *output_path*.

        Args:
            text:        Input text; blank lines separate paragraphs.
            output_path: Destination file (``.wav`` or ``.mp3``).

        Returns:
            :class:`SynthesisResult` with timing and output metrics.
        """
        t_total = time.perf_counter()
        result = SynthesisResult(output_path=output_path, char_count=len(text))

        # -- Phase 1: Assets ---------------------------------------------
        t0 = time.perf_counter()
        logger.info("Phase 1: Loading assets")
        tts = self._ensure_tts()
        self._ensure_style()
        result.time_load = time.perf_counter() - t0
        result.sample_rate = tts.sample_rate

        # -- Phase 2: Synthesis -------------------------------------------
        t0 = time.perf_counter()
        logger.info("Phase 2: Synthesis")
        output = self.generate(text)
        result.time_synthesis = time.perf_counter() - t0
        result.chunk_count = output.chunk_count
        result.audio_duration = output.duration

        # -- Phase 3: Export ----------------------------------------------
        t0 = time.perf_counter()
        logger.info("Phase 3: Export")
        self._export(output, output_path)
        result.time_export = time.perf_counter() - t0

        out = Path(output_path)
        if out.exists():
            result.file_size_mb = out.stat().st_size / (1024 * 1024)

        result.elapsed_seconds = time.perf_counter() - t_total
        logger.info("\n%s", result.summary())
        return result

    def _export(self, output: SynthesisOutput, output_path: str) -> None:
        """Write the already-trimmed waveform as MP3 or 16-bit WAV."""
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        if path.suffix.lower() == ".mp3":
            pcm_segment(output.wav, output.sample_rate).export(
                str(path), format="mp3", bitrate=self.config.mp3_bitrate
            )
        else:
            path.write_bytes(encode_wav(output.wav, output.sample_rate))
        logger.info(
            "Exported %s: %.1fs, %.2f MB",
            path,
            output.duration,
            path.stat().st_size / (1024 * 1024),
        )
