"""
breathsync - Guided paced breathing with live breath detection

breathsync listens to a microphone, learns what silence, speech and the
user's own breathing sound like, and guides a paced breathing session
while scoring how closely the user follows it.
"""

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
from breathsync.core.pipeline import BreathPipeline
from breathsync.core.clock import Clock, SystemClock, ManualClock
from breathsync.calibration.builder import CalibrationProfileBuilder
from breathsync.session.controller import SessionController, SessionSummary
from breathsync.app import BreathApp

__version__ = "0.1.0"
__all__ = [
    # Configuration
    "BreathConfig",
    "ScoreWeights",
    "DEFAULT_CONFIG",
    "load_config",
    # Core data structures
    "BreathPhase",
    "BreathReading",
    "CalibrationProfile",
    "CalibrationStage",
    "FeatureFrame",
    "SubProfile",
    "AudioFrame",
    "AudioSource",
    "FeatureHistory",
    # Pipeline and timing
    "BreathPipeline",
    "Clock",
    "SystemClock",
    "ManualClock",
    # Flow
    "CalibrationProfileBuilder",
    "SessionController",
    "SessionSummary",
    "BreathApp",
]
