"""
Gaussian noise latents sized from predicted durations.

The denoiser starts from pure noise.  Each batch item gets as many
latent frames as its predicted waveform needs; shorter items are padded
to the batch maximum with exact zeros so the padded region carries no
signal.
"""

import math
from typing import List, Optional, Sequence, Tuple

import numpy as np

from tonic.text.indexer import length_to_mask

# Lower bound on the first uniform draw, keeps log() finite
_MIN_UNIFORM = 1e-4


def latent_lengths(
    durations: Sequence[float],
    sample_rate: int,
    chunk_size: int,
) -> Tuple[List[int], int]:
    """
    Per-item latent frame counts and the batch maximum.

    Each item's waveform length is ``floor(duration * sample_rate)``;
    its latent length is ``ceil(wav_len / chunk_size)``.
    """
    wav_lengths = [int(math.floor(d * sample_rate)) for d in durations]
    lengths = [(w + chunk_size - 1) // chunk_size for w in wav_lengths]
    max_wav = max(wav_lengths) if wav_lengths else 0
    return lengths, (max_wav + chunk_size - 1) // chunk_size


def box_muller(shape: Tuple[int, ...], rng: np.random.Generator) -> np.ndarray:
    """Standard-normal samples via the Box-Muller transform."""
    u1 = np.maximum(_MIN_UNIFORM, rng.random(shape))
    u2 = rng.random(shape)
    return np.sqrt(-2.0 * np.log(u1)) * np.cos(2.0 * np.pi * u2)


def sample_noisy_latent(
    durations: Sequence[float],
    sample_rate: int,
    base_chunk_size: int,
    chunk_compress_factor: int,
    latent_dim: int,
    rng: Optional[np.random.Generator] = None,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Draw the initial latent for a batch.

    Args:
        durations:             Predicted duration of each item in seconds.
        sample_rate:           Waveform sample rate in Hz.
        base_chunk_size:       Waveform samples per autoencoder frame.
        chunk_compress_factor: Frames folded into one latent step.
        latent_dim:            Autoencoder latent channels.
        rng:                   Random generator (fresh one if ``None``).

    Returns:
        ``(latent, latent_mask)``: a float32 array of shape
        ``(batch, latent_dim * chunk_compress_factor, latent_len)`` and a
        float32 mask of shape ``(batch, 1, latent_len)``.  Positions past
        an item's own length are exactly zero in the latent.
    """
    rng = rng if rng is not None else np.random.default_rng()
    chunk_size = base_chunk_size * chunk_compress_factor
    channels = latent_dim * chunk_compress_factor

    lengths, latent_len = latent_lengths(durations, sample_rate, chunk_size)
    latent_mask = length_to_mask(lengths, latent_len)

    noise = box_muller((len(lengths), channels, latent_len), rng)
    latent = (noise * latent_mask).astype(np.float32)
    return latent, latent_mask
