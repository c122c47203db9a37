"""Audio sources for the breathsync pipeline."""

from breathsync.sources.synthetic import (
    ArraySource,
    BreathSource,
    NoiseSource,
    SilenceSource,
    ToneSource,
)
from breathsync.sources.microphone import MicrophoneSource

__all__ = [
    "ArraySource",
    "BreathSource",
    "NoiseSource",
    "SilenceSource",
    "ToneSource",
    "MicrophoneSource",
]
