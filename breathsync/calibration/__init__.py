"""Per-user calibration."""

from breathsync.calibration.stages import StageCollector, WindowCollector, BreathCollector
from breathsync.calibration.builder import CalibrationProfileBuilder

__all__ = [
    "StageCollector",
    "WindowCollector",
    "BreathCollector",
    "CalibrationProfileBuilder",
]
