"""
Exception types raised by the synthesis pipeline.

Input problems are reported before any inference is attempted, asset
problems before any model is run, and engine failures abort the
generation in flight.
"""


class SynthesisError(Exception):
    """Base class for every error the pipeline reports to callers."""


class InvalidInputError(SynthesisError, ValueError):
    """Text, style or generation parameters that cannot be synthesised."""


class AssetError(SynthesisError):
    """Missing or malformed configuration, vocabulary, style or model file."""


class InferenceError(SynthesisError, RuntimeError):
    """The inference engine failed or returned a malformed tensor."""
