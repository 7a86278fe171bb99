"""
Text-to-speech driver: text in, waveform out.

For every chunk of the input this runs the full model chain

1. normalise and index the text,
2. predict the duration and scale it by the speaking speed,
3. encode the text conditioned on the voice style,
4. sample a noise latent sized from the duration,
5. denoise it for a fixed number of steps,
6. vocode the latent into samples,

then joins the chunks with silence.  Chunks run one after another so
peak memory stays bounded and progress only moves forward.
"""

import logging
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from tonic.errors import InvalidInputError
from tonic.text.chunker import DEFAULT_MAX_CHUNK_LENGTH, chunk_text
from tonic.text.indexer import VocabIndexer
from tonic.text.normalizer import normalize_text

from .audio_builder import AudioAssembler
from .base_engine import BaseInferenceEngine
from .denoiser import DenoisingOrchestrator
from .latent import sample_noisy_latent
from .models import ModelConfig, SynthesisOutput, VoiceStyle
from .progress import DenoisingProgress, ProgressListener, overall_progress
from .tensors import TensorScope

logger = logging.getLogger(__name__)

DEFAULT_TOTAL_STEPS = 5
DEFAULT_SPEED = 1.05
DEFAULT_SILENCE = 0.3


class TextToSpeech:
    """
    Drives the inference engine over chunked text.

    Usage::

        tts = TextToSpeech(engine, indexer, model_config)
        out = tts.synthesize("Hello there.", style, total_steps=5)
        Path("hello.wav").write_bytes(encode_wav(out.wav, out.sample_rate))

    The engine, indexer and config are read-only here, so one instance
    can serve any number of sequential requests.
    """

    def __init__(
        self,
        engine: BaseInferenceEngine,
        indexer: VocabIndexer,
        config: ModelConfig,
        rng: Optional[np.random.Generator] = None,
    ):
        self._engine = engine
        self._indexer = indexer
        self._config = config
        self._rng = rng if rng is not None else np.random.default_rng()

    @property
    def sample_rate(self) -> int:
        return self._config.sample_rate

    @property
    def config(self) -> ModelConfig:
        return self._config

    # ------------------------------------------------------------------
    # Single batch
    # ------------------------------------------------------------------

    def infer(
        self,
        texts: Sequence[str],
        style: VoiceStyle,
        total_steps: int = DEFAULT_TOTAL_STEPS,
        speed: float = DEFAULT_SPEED,
        on_step: Optional[Callable[[int, int], None]] = None,
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Run the model chain once for a batch of texts.

        Returns:
            ``(wav, durations)``: vocoder output of shape ``(batch,
            samples)`` and the speed-adjusted duration of each item in
            seconds.
        """
        if style.batch_size != len(texts):
            raise InvalidInputError(
                f"Style batch size {style.batch_size} does not match {len(texts)} texts"
            )
        cfg = self._config

        with TensorScope() as scope:
            batch = self._indexer.encode([normalize_text(t) for t in texts])
            text_ids = scope.track(batch.ids)
            text_mask = scope.track(batch.mask)

            duration = self._engine.predict_duration(text_ids, style.dp, text_mask) / speed

            text_emb = scope.track(self._engine.encode_text(text_ids, style.ttl, text_mask))

            latent, latent_mask = sample_noisy_latent(
                duration,
                cfg.sample_rate,
                cfg.base_chunk_size,
                cfg.chunk_compress_factor,
                cfg.latent_dim,
                rng=self._rng,
            )
            scope.track(latent_mask)
            logger.debug(
                "Batch of %d: text_len=%d, latent=%s, durations=%s",
                len(texts),
                batch.max_length,
                latent.shape,
                np.round(duration, 3).tolist(),
            )

            denoiser = DenoisingOrchestrator(
                self._engine,
                latent,
                text_emb,
                style,
                latent_mask,
                text_mask,
                total_steps,
            )
            final = scope.track(denoiser.run(on_step))

            wav = self._engine.vocode(np.array(final, dtype=np.float32))

        return wav, duration

    # ------------------------------------------------------------------
    # Chunked single-speaker synthesis
    # ------------------------------------------------------------------

    def synthesize(
        self,
        text: str,
        style: VoiceStyle,
        total_steps: int = DEFAULT_TOTAL_STEPS,
        speed: float = DEFAULT_SPEED,
        silence_duration: float = DEFAULT_SILENCE,
        max_chunk_length: int = DEFAULT_MAX_CHUNK_LENGTH,
        listener: Optional[ProgressListener] = None,
    ) -> SynthesisOutput:
        """
        Synthesise *text* with a single voice.

        Args:
            text:             Input text; blank lines separate paragraphs.
            style:            Voice style with batch size 1.
            total_steps:      Denoising steps per chunk.
            speed:            Speaking speed (>1 = faster).
            silence_duration: Silence between chunks in seconds.
            max_chunk_length: Upper bound on chunk length in characters.
            listener:         Receives a :class:`DenoisingProgress` before
                              every denoising step.

        Returns:
            :class:`SynthesisOutput` trimmed to the predicted duration.

        Raises:
            InvalidInputError: On bad text, style or parameters.
            InferenceError:    If any model call fails.
        """
        if not isinstance(text, str):
            raise InvalidInputError(f"Text must be a string, got {type(text).__name__}")
        if style.batch_size != 1:
            raise InvalidInputError(
                f"Single speaker synthesis needs a style with batch size 1, got {style.batch_size}"
            )
        self._check_params(total_steps, speed, silence_duration)

        chunks = chunk_text(text, max_chunk_length)
        if not chunks:
            raise InvalidInputError("Text is empty")

        total_chunks = len(chunks)
        logger.info("Synthesising %d chunk(s), %d steps each", total_chunks, total_steps)

        assembler = AudioAssembler(self.sample_rate, silence_duration)
        for index, chunk in enumerate(chunks, start=1):
            on_step = None
            if listener is not None:
                on_step = _chunk_reporter(listener, index, total_chunks)

            wav, duration = self.infer([chunk], style, total_steps, speed, on_step)
            assembler.add_chunk(wav[0], float(duration[0]))
            logger.debug(
                "Chunk %d/%d: %.2fs | %s",
                index,
                total_chunks,
                duration[0],
                chunk[:65],
            )

        return SynthesisOutput(
            wav=assembler.waveform,
            duration=assembler.duration,
            sample_rate=self.sample_rate,
            chunk_count=total_chunks,
        )

    # ------------------------------------------------------------------
    # Multi-speaker batch
    # ------------------------------------------------------------------

    def batch(
        self,
        texts: Sequence[str],
        style: VoiceStyle,
        total_steps: int = DEFAULT_TOTAL_STEPS,
        speed: float = DEFAULT_SPEED,
        listener: Optional[ProgressListener] = None,
    ) -> List[SynthesisOutput]:
        """
        Synthesise several short texts in one inference run, item *i*
        using row *i* of *style*.  Texts are not chunked.
        """
        if isinstance(texts, str) or not texts:
            raise InvalidInputError("batch expects a non-empty sequence of strings")
        for t in texts:
            if not isinstance(t, str):
                raise InvalidInputError(f"Text must be a string, got {type(t).__name__}")
        self._check_params(total_steps, speed, 0.0)

        on_step = _chunk_reporter(listener, 1, 1) if listener is not None else None
        wav, durations = self.infer(texts, style, total_steps, speed, on_step)

        outputs = []
        for row, dur in zip(wav, durations):
            n = int(np.floor(self.sample_rate * dur))
            outputs.append(
                SynthesisOutput(wav=row[:n], duration=float(dur), sample_rate=self.sample_rate)
            )
        return outputs

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _check_params(total_steps: int, speed: float, silence_duration: float) -> None:
        if isinstance(total_steps, bool) or not isinstance(total_steps, int) or total_steps < 0:
            raise InvalidInputError(f"total_steps must be a non-negative integer, got {total_steps!r}")
        if not speed > 0:
            raise InvalidInputError(f"speed must be positive, got {speed!r}")
        if not silence_duration >= 0:
            raise InvalidInputError(f"silence_duration must be >= 0, got {silence_duration!r}")

    def __repr__(self) -> str:
        return f"TextToSpeech(engine={self._engine.engine_name}, rate={self.sample_rate}Hz)"


def _chunk_reporter(
    listener: ProgressListener, chunk_index: int, total_chunks: int
) -> Callable[[int, int], None]:
    def report(step: int, total_steps: int) -> None:
        listener.on_denoising(
            DenoisingProgress(
                step=step,
                total_steps=total_steps,
                chunk_index=chunk_index,
                total_chunks=total_chunks,
                overall=overall_progress(step, total_steps, chunk_index, total_chunks),
            )
        )

    return report
