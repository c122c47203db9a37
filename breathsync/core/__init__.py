"""Core data structures, configuration and pipeline."""

from breathsync.core.config import BreathConfig, ScoreWeights, DEFAULT_CONFIG, load_config
from breathsync.core.frame import (
    BreathPhase,
    BreathReading,
    CalibrationProfile,
    CalibrationStage,
    FeatureFrame,
    SubProfile,
)
from breathsync.core.stream import AudioFrame, AudioSource, FeatureHistory
from breathsync.core.spectrum import SpectrumAnalyser
from breathsync.core.clock import Clock, SystemClock, ManualClock
from breathsync.core.pipeline import BreathPipeline

__all__ = [
    "BreathConfig",
    "ScoreWeights",
    "DEFAULT_CONFIG",
    "load_config",
    "BreathPhase",
    "BreathReading",
    "CalibrationProfile",
    "CalibrationStage",
    "FeatureFrame",
    "SubProfile",
    "AudioFrame",
    "AudioSource",
    "FeatureHistory",
    "SpectrumAnalyser",
    "Clock",
    "SystemClock",
    "ManualClock",
    "BreathPipeline",
]
