"""
Feature frames, calibration profiles and per-tick readings.

A FeatureFrame is produced once per sampling tick and never changes.
A BreathReading bundles the frame with everything the detectors said
about it during the same tick.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Iterable, Sequence

import numpy as np


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class BreathPhase(str, Enum):
    """Discrete breath phase committed by the phase detector."""
    IDLE = "idle"
    RISING = "rising"
    FALLING = "falling"


class CalibrationStage(str, Enum):
    """Calibration stages, in the order they run."""
    SILENCE = "silence"
    TALKING = "talking"
    BREATHING_IN = "breathing_in"
    BREATHING_OUT = "breathing_out"


@dataclass(frozen=True, slots=True)
class FeatureFrame:
    """
    Features of one sampling tick.
    
    - envelope: smoothed RMS of the 80-600 Hz band (>= 0)
    - envelope_slope: change of the smoothed envelope since the last tick
    - spectral_centroid: magnitude-weighted mean frequency of the band (Hz)
    - zero_crossing_rate: fraction of sign changes in the waveform (0-1)
    - breath_score: breath likelihood (0-1), 0 before calibration
    """
    envelope: float = 0.0
    envelope_slope: float = 0.0
    spectral_centroid: float = 0.0
    zero_crossing_rate: float = 0.0
    breath_score: float = 0.0
    frame_id: int = 0
    timestamp_ms: float = 0.0
    
    def __post_init__(self) -> None:
        if not self.envelope >= 0.0:
            object.__setattr__(self, 'envelope', max(0.0, float(np.nan_to_num(self.envelope))))
        if not self.spectral_centroid >= 0.0:
            object.__setattr__(self, 'spectral_centroid', max(0.0, float(np.nan_to_num(self.spectral_centroid))))
        if not (0.0 <= self.zero_crossing_rate <= 1.0):
            object.__setattr__(self, 'zero_crossing_rate', _clamp(float(np.nan_to_num(self.zero_crossing_rate)), 0.0, 1.0))
        if not (0.0 <= self.breath_score <= 1.0):
            object.__setattr__(self, 'breath_score', _clamp(float(np.nan_to_num(self.breath_score)), 0.0, 1.0))
    
    def with_updates(self, **kwargs) -> FeatureFrame:
        """Create a new frame with updated fields."""
        return replace(self, **kwargs)


@dataclass(frozen=True, slots=True)
class SubProfile:
    """
    Reference statistics captured by one calibration stage.
    
    Optional fields are only filled by the stages that measure them:
    slope variance by the talking stage, duration and envelope pattern
    by the two breathing stages.
    """
    envelope: float = 0.0
    spectral_centroid: float = 0.0
    zero_crossing_rate: float = 0.0
    envelope_slope_variance: float | None = None
    duration_ms: float | None = None
    envelope_pattern: tuple[float, ...] = ()
    
    @property
    def is_calibrated(self) -> bool:
        return self.envelope > 0.0
    
    @classmethod
    def mean_of(cls, frames: Sequence[FeatureFrame], **extra) -> SubProfile:
        """Average the envelope, centroid and ZCR of a window of frames."""
        if not frames:
            return cls(**extra)
        return cls(
            envelope=float(np.mean([f.envelope for f in frames])),
            spectral_centroid=float(np.mean([f.spectral_centroid for f in frames])),
            zero_crossing_rate=float(np.mean([f.zero_crossing_rate for f in frames])),
            **extra,
        )


def slope_variance(frames: Iterable[FeatureFrame]) -> float:
    """Population variance of envelope slopes, 0 for an empty window."""
    slopes = [f.envelope_slope for f in frames]
    if not slopes:
        return 0.0
    return float(np.var(slopes))


class CalibrationProfile:
    """
    The four calibration sub-profiles of a session.
    
    Each stage is assigned once. Only reset() clears them, which is how
    a full recalibration starts.
    """
    
    def __init__(self) -> None:
        self._profiles: dict[CalibrationStage, SubProfile] = {}
    
    def assign(self, stage: CalibrationStage, profile: SubProfile) -> None:
        if stage in self._profiles:
            raise ValueError(f"Calibration stage '{stage.value}' is already set; reset first")
        self._profiles[stage] = profile
    
    def is_set(self, stage: CalibrationStage) -> bool:
        return stage in self._profiles
    
    def get(self, stage: CalibrationStage) -> SubProfile:
        return self._profiles.get(stage, SubProfile())
    
    @property
    def silence(self) -> SubProfile:
        return self.get(CalibrationStage.SILENCE)
    
    @property
    def talking(self) -> SubProfile:
        return self.get(CalibrationStage.TALKING)
    
    @property
    def breathing_in(self) -> SubProfile:
        return self.get(CalibrationStage.BREATHING_IN)
    
    @property
    def breathing_out(self) -> SubProfile:
        return self.get(CalibrationStage.BREATHING_OUT)
    
    @property
    def can_score(self) -> bool:
        """Breath scoring needs populated silence and talking references."""
        return self.silence.is_calibrated and self.talking.is_calibrated
    
    @property
    def is_complete(self) -> bool:
        return all(stage in self._profiles for stage in CalibrationStage)
    
    def reset(self) -> None:
        self._profiles.clear()
    
    @classmethod
    def from_profiles(
        cls,
        silence: SubProfile | None = None,
        talking: SubProfile | None = None,
        breathing_in: SubProfile | None = None,
        breathing_out: SubProfile | None = None,
    ) -> CalibrationProfile:
        """Build a profile directly, e.g. from saved or synthetic references."""
        profile = cls()
        for stage, sub in (
            (CalibrationStage.SILENCE, silence),
            (CalibrationStage.TALKING, talking),
            (CalibrationStage.BREATHING_IN, breathing_in),
            (CalibrationStage.BREATHING_OUT, breathing_out),
        ):
            if sub is not None:
                profile.assign(stage, sub)
        return profile
    
    def __repr__(self) -> str:
        stages = ", ".join(s.value for s in self._profiles)
        return f"CalibrationProfile([{stages}])"


@dataclass(frozen=True, slots=True)
class BreathReading:
    """
    Everything known about one sampling tick.
    
    confidence mirrors the frame's breath score.
    """
    frame: FeatureFrame = field(default_factory=FeatureFrame)
    phase: BreathPhase = BreathPhase.IDLE
    is_talking: bool = False
    last_breath_duration_ms: float = 0.0
    score_terms: dict[str, float] = field(default_factory=dict)
    
    @property
    def confidence(self) -> float:
        return self.frame.breath_score
    
    @property
    def timestamp_ms(self) -> float:
        return self.frame.timestamp_ms
    
    def to_dict(self) -> dict:
        return {
            "envelope": self.frame.envelope,
            "envelope_slope": self.frame.envelope_slope,
            "spectral_centroid": self.frame.spectral_centroid,
            "zero_crossing_rate": self.frame.zero_crossing_rate,
            "breath_score": self.frame.breath_score,
            "phase": self.phase.value,
            "is_talking": self.is_talking,
            "last_breath_duration_ms": self.last_breath_duration_ms,
            "timestamp_ms": self.frame.timestamp_ms,
            **{f"term_{k}": v for k, v in self.score_terms.items()},
        }
