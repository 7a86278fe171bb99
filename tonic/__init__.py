"""
Tonic text-to-speech pipeline.

Text normalisation, chunking, diffusion-based synthesis through an
external inference engine, and audio assembly into WAV or MP3.
"""

from .errors import AssetError, InferenceError, InvalidInputError, SynthesisError
from .pipeline import SynthesisConfig, SynthesisPipeline, SynthesisResult

__all__ = [
    "AssetError",
    "InferenceError",
    "InvalidInputError",
    "SynthesisError",
    "SynthesisConfig",
    "SynthesisPipeline",
    "SynthesisResult",
]
