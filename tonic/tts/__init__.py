"""Inference engine, denoising, audio assembly, and model asset management."""

from .audio_builder import (
    AudioAssembler,
    assemble_waveforms,
    encode_wav,
    float_to_pcm16,
    pcm_segment,
)
from .base_engine import BaseInferenceEngine
from .denoiser import DenoiseState, DenoisingOrchestrator
from .latent import sample_noisy_latent
from .model_manager import KNOWN_VOICES, ModelManager
from .models import ModelConfig, SynthesisOutput, VoiceStyle
from .progress import (
    DenoisingProgress,
    LoadingProgress,
    ProgressListener,
    TqdmProgressListener,
)
from .tensors import TensorScope
from .text_to_speech import TextToSpeech

__all__ = [
    "AudioAssembler",
    "assemble_waveforms",
    "encode_wav",
    "float_to_pcm16",
    "pcm_segment",
    "BaseInferenceEngine",
    "DenoiseState",
    "DenoisingOrchestrator",
    "sample_noisy_latent",
    "KNOWN_VOICES",
    "ModelManager",
    "ModelConfig",
    "SynthesisOutput",
    "VoiceStyle",
    "DenoisingProgress",
    "LoadingProgress",
    "ProgressListener",
    "TqdmProgressListener",
    "TensorScope",
    "TextToSpeech",
]
