"""
Audio assembly: joins per-chunk waveforms with silence gaps, trims the
result to the predicted duration, and encodes it as 16-bit PCM WAV (or
MP3 through pydub).
"""

import io
import logging
import math
import wave
from pathlib import Path
from typing import List, Sequence, Tuple

import numpy as np
from pydub import AudioSegment

logger = logging.getLogger(__name__)

_SAMPLE_WIDTH = 2  # 16-bit PCM
_CHANNELS = 1
_PCM_SCALE = 32767


# ------------------------------------------------------------------
# PCM encoding
# ------------------------------------------------------------------


def float_to_pcm16(samples: np.ndarray) -> np.ndarray:
    """Clamp to [-1, 1], scale by 32767 and truncate to int16."""
    audio = np.clip(np.asarray(samples, dtype=np.float64).reshape(-1), -1.0, 1.0)
    return (audio * _PCM_SCALE).astype(np.int16)


def encode_wav(samples: np.ndarray, sample_rate: int) -> bytes:
    """Wrap float samples in a mono 16-bit little-endian WAV container."""
    pcm = float_to_pcm16(samples).astype("<i2").tobytes()
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(_CHANNELS)
        wf.setsampwidth(_SAMPLE_WIDTH)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm)
    return buf.getvalue()


def pcm_segment(samples: np.ndarray, sample_rate: int) -> AudioSegment:
    """Wrap float samples in a mono 16-bit pydub segment."""
    return AudioSegment(
        data=float_to_pcm16(samples).astype("<i2").tobytes(),
        sample_width=_SAMPLE_WIDTH,
        frame_rate=sample_rate,
        channels=_CHANNELS,
    )


def assemble_waveforms(
    waveforms: Sequence[np.ndarray],
    durations: Sequence[float],
    silence_seconds: float,
    sample_rate: int,
) -> Tuple[np.ndarray, float]:
    """
    Concatenate chunk waveforms with silence between them.

    Returns:
        ``(waveform, total_duration)`` where the waveform holds exactly
        ``floor(sample_rate * total_duration)`` samples (or fewer if the
        vocoder under-produced).
    """
    assembler = AudioAssembler(sample_rate, silence_seconds)
    for wav, dur in zip(waveforms, durations):
        assembler.add_chunk(wav, dur)
    return assembler.waveform, assembler.duration


# ------------------------------------------------------------------
# Incremental assembler
# ------------------------------------------------------------------


class AudioAssembler:
    """
    Incrementally builds one track from per-chunk vocoder output.

    Usage::

        assembler = AudioAssembler(sample_rate=44100, silence_seconds=0.3)
        assembler.add_chunk(wav_1, 1.8)
        assembler.add_chunk(wav_2, 2.4)
        assembler.export_wav("output.wav")
    """

    def __init__(self, sample_rate: int, silence_seconds: float = 0.3):
        if silence_seconds < 0:
            raise ValueError(f"silence_seconds must be >= 0, got {silence_seconds}")
        self._sample_rate = sample_rate
        self._silence_seconds = silence_seconds
        self._parts: List[np.ndarray] = []
        self._duration = 0.0

    def add_chunk(self, wav: np.ndarray, duration: float) -> None:
        """Append one chunk's waveform and predicted duration."""
        samples = np.asarray(wav, dtype=np.float32).reshape(-1)
        if self._parts:
            gap = int(math.floor(self._silence_seconds * self._sample_rate))
            self._parts.append(np.zeros(gap, dtype=np.float32))
            self._duration += duration + self._silence_seconds
        else:
            self._duration = float(duration)
        self._parts.append(samples)

    @property
    def chunk_count(self) -> int:
        return (len(self._parts) + 1) // 2

    @property
    def duration(self) -> float:
        """Predicted total duration in seconds."""
        return self._duration

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def is_empty(self) -> bool:
        return not self._parts

    @property
    def waveform(self) -> np.ndarray:
        """Concatenated samples trimmed to ``floor(sample_rate * duration)``."""
        if not self._parts:
            return np.zeros(0, dtype=np.float32)
        wav = np.concatenate(self._parts)
        return wav[: int(math.floor(self._sample_rate * self._duration))]

    def to_wav_bytes(self) -> bytes:
        return encode_wav(self.waveform, self._sample_rate)

    def to_segment(self) -> AudioSegment:
        """The trimmed track as a pydub segment."""
        return pcm_segment(self.waveform, self._sample_rate)

    def export_wav(self, output_path: str) -> None:
        """Write the track as 16-bit mono WAV."""
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(self.to_wav_bytes())
        self._log_export(path)

    def export_mp3(self, output_path: str, bitrate: str = "192k") -> None:
        """Write the track as MP3 (needs ffmpeg on the PATH)."""
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.to_segment().export(str(path), format="mp3", bitrate=bitrate)
        self._log_export(path)

    def _log_export(self, path: Path) -> None:
        size_mb = path.stat().st_size / (1024 * 1024)
        logger.info("Exported %s: %.1fs, %.2f MB", path, self._duration, size_mb)

    def __repr__(self) -> str:
        return f"AudioAssembler(chunks={self.chunk_count}, duration={self._duration:.2f}s)"
