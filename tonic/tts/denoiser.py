"""
Fixed-step iterative denoising of a latent.

Each step sends the current latent to the vector estimator and replaces
it with the returned tensor.  Steps are strictly sequential: step *t*
starts only after step *t - 1* has returned.
"""

import logging
from enum import Enum, auto
from typing import Callable, Optional

import numpy as np

from tonic.errors import InvalidInputError

from .base_engine import BaseInferenceEngine
from .models import VoiceStyle

logger = logging.getLogger(__name__)

# Called before each step with (step, total_steps), step 1-based
StepCallback = Callable[[int, int], None]


class DenoiseState(Enum):
    INITIALIZED = auto()
    STEPPING = auto()
    DONE = auto()


class DenoisingOrchestrator:
    """
    Owns one chunk's latent for the length of its denoising run.

    Usage::

        denoiser = DenoisingOrchestrator(engine, latent, text_emb, style,
                                         latent_mask, text_mask, total_steps=5)
        final = denoiser.run(on_step=lambda step, total: ...)

    The latent is copied on construction, so the caller's array is never
    aliased or modified.
    """

    def __init__(
        self,
        engine: BaseInferenceEngine,
        latent: np.ndarray,
        text_emb: np.ndarray,
        style: VoiceStyle,
        latent_mask: np.ndarray,
        text_mask: np.ndarray,
        total_steps: int,
    ):
        if isinstance(total_steps, bool) or not isinstance(total_steps, int) or total_steps < 0:
            raise InvalidInputError(f"total_steps must be a non-negative integer, got {total_steps!r}")

        self._engine = engine
        self._latent = np.array(latent, dtype=np.float32, copy=True)
        self._text_emb = text_emb
        self._style = style
        self._latent_mask = latent_mask
        self._text_mask = text_mask
        self._total_steps = total_steps

        batch = self._latent.shape[0]
        self._total_step_tensor = np.full(batch, total_steps, dtype=np.float32)
        self._step = 0
        self._state = DenoiseState.INITIALIZED

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> DenoiseState:
        return self._state

    @property
    def step_index(self) -> int:
        """Number of completed steps."""
        return self._step

    @property
    def total_steps(self) -> int:
        return self._total_steps

    @property
    def latent(self) -> np.ndarray:
        """Read-only view of the current latent."""
        view = self._latent.view()
        view.setflags(write=False)
        return view

    # ------------------------------------------------------------------
    # Stepping
    # ------------------------------------------------------------------

    def step(self) -> np.ndarray:
        """
        Run one denoising step and return the new latent.

        Raises:
            RuntimeError: If all steps have already run.
        """
        if self._step >= self._total_steps:
            raise RuntimeError(f"Denoising already finished after {self._total_steps} steps")

        self._state = DenoiseState.STEPPING
        current_step = np.full(self._latent.shape[0], self._step, dtype=np.float32)

        denoised = self._engine.estimate_vector(
            noisy_latent=self._latent,
            text_emb=self._text_emb,
            style_ttl=self._style.ttl,
            latent_mask=self._latent_mask,
            text_mask=self._text_mask,
            current_step=current_step,
            total_step=self._total_step_tensor,
        )
        self._latent[...] = denoised
        self._step += 1

        if self._step == self._total_steps:
            self._state = DenoiseState.DONE
        return self.latent

    def run(self, on_step: Optional[StepCallback] = None) -> np.ndarray:
        """
        Run every remaining step and return the final latent.

        *on_step* is called before each step as ``(step, total_steps)``
        with *step* 1-based.
        """
        while self._step < self._total_steps:
            if on_step is not None:
                on_step(self._step + 1, self._total_steps)
            logger.debug("Denoising step %d/%d", self._step + 1, self._total_steps)
            self.step()

        self._state = DenoiseState.DONE
        return self.latent

    def __repr__(self) -> str:
        return (
            f"DenoisingOrchestrator({self._state.name}, "
            f"step={self._step}/{self._total_steps}, latent={tuple(self._latent.shape)})"
        )
