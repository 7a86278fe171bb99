"""
Progress events emitted while loading models and while denoising.

Listeners are called synchronously between inference calls, so a
listener may render, log, or record events but never runs concurrently
with a denoising step.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from tqdm import tqdm

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoadingProgress:
    """About to load resource *current* of *total* (1-based)."""

    current: int
    total: int
    resource: str


@dataclass(frozen=True)
class DenoisingProgress:
    """
    About to run denoising step *step* of *total_steps* for chunk
    *chunk_index* of *total_chunks* (both 1-based).

    ``overall`` is the fraction of the whole request, assuming every
    step of every chunk costs the same.
    """

    step: int
    total_steps: int
    chunk_index: int
    total_chunks: int
    overall: float


def overall_progress(step: int, total_steps: int, chunk_index: int, total_chunks: int) -> float:
    """
    ``(chunk_index - 1) / total_chunks + step / (total_steps * total_chunks)``
    with *chunk_index* 1-based.
    """
    if total_chunks <= 0 or total_steps <= 0:
        return 0.0
    return (chunk_index - 1) / total_chunks + step / (total_steps * total_chunks)


class ProgressListener:
    """
    Observer for pipeline progress.  Subclass and override what you need;
    the default implementation ignores every event.
    """

    def on_loading(self, event: LoadingProgress) -> None:
        pass

    def on_denoising(self, event: DenoisingProgress) -> None:
        pass

    def close(self) -> None:
        pass


class TqdmProgressListener(ProgressListener):
    """
    Renders loading and denoising progress as tqdm bars.

    The denoising bar counts steps across all chunks of a request.
    """

    def __init__(self, disable: bool = False):
        self._disable = disable
        self._load_bar: Optional[tqdm] = None
        self._step_bar: Optional[tqdm] = None

    def on_loading(self, event: LoadingProgress) -> None:
        if self._load_bar is None:
            self._load_bar = tqdm(
                total=event.total,
                desc="Loading models",
                unit="model",
                disable=self._disable,
            )
        self._load_bar.set_postfix(model=event.resource)
        self._load_bar.update(1)
        if event.current >= event.total:
            self._load_bar.close()
            self._load_bar = None

    def on_denoising(self, event: DenoisingProgress) -> None:
        total = event.total_steps * event.total_chunks
        if self._step_bar is None:
            self._step_bar = tqdm(
                total=total,
                desc="Denoising",
                unit="step",
                disable=self._disable,
            )
        self._step_bar.set_postfix(chunk=f"{event.chunk_index}/{event.total_chunks}")
        self._step_bar.update(1)
        if event.step >= event.total_steps and event.chunk_index >= event.total_chunks:
            self.close()

    def close(self) -> None:
        for bar in (self._load_bar, self._step_bar):
            if bar is not None:
                bar.close()
        self._load_bar = None
        self._step_bar = None
