"""
Session configuration.

One immutable value, built once at startup and passed by reference.
Overrides can be loaded from a YAML mapping.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields, asdict
from pathlib import Path
from typing import Any
import logging
import math

import yaml

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ScoreWeights:
    """Weights of the four breath-score terms. Must sum to 1.0."""
    envelope: float = 0.35
    envelope_slope: float = 0.25
    spectral_centroid: float = 0.20
    zero_crossing_rate: float = 0.20
    
    def __post_init__(self) -> None:
        values = (self.envelope, self.envelope_slope, self.spectral_centroid, self.zero_crossing_rate)
        if any(v < 0 for v in values):
            raise ValueError(f"Score weights must be non-negative, got {values}")
        if not math.isclose(sum(values), 1.0, abs_tol=1e-6):
            raise ValueError(f"Score weights must sum to 1.0, got {sum(values):.6f}")
    
    @property
    def total(self) -> float:
        return self.envelope + self.envelope_slope + self.spectral_centroid + self.zero_crossing_rate


@dataclass(frozen=True, slots=True)
class BreathConfig:
    """
    Process-wide configuration.
    
    Durations are in milliseconds. The analyser settings mirror a
    browser-style FFT analyser so magnitudes arrive normalized to 0-1.
    """
    # Breathing timing
    target_inhale_ms: float = 4000.0
    target_exhale_ms: float = 4000.0
    hold_ms: float = 1000.0
    total_rounds: int = 5
    
    # Calibration
    calibration_duration_ms: float = 6000.0
    calibration_timeout_ms: float = 12000.0
    calibration_settle_ms: float = 500.0
    min_breath_ms: float = 1000.0
    adaptation_rate: float = 0.5
    
    # Audio analysis
    fft_size: int = 2048
    smoothing_factor: float = 0.3
    feature_history_length: int = 30
    band_low_hz: float = 80.0
    band_high_hz: float = 600.0
    analyser_smoothing: float = 0.5
    min_decibels: float = -100.0
    max_decibels: float = -30.0
    
    # Scheduling
    poll_interval_ms: float = 50.0
    countdown_interval_ms: float = 100.0
    refresh_rate_hz: float = 60.0
    intro_delay_ms: float = 2000.0
    round_gap_ms: float = 500.0
    
    weights: ScoreWeights = field(default_factory=ScoreWeights)
    
    def __post_init__(self) -> None:
        if isinstance(self.weights, dict):
            object.__setattr__(self, 'weights', ScoreWeights(**self.weights))
        
        for name in (
            "target_inhale_ms", "target_exhale_ms", "calibration_duration_ms",
            "calibration_timeout_ms", "poll_interval_ms", "countdown_interval_ms",
            "refresh_rate_hz",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        
        for name in ("hold_ms", "calibration_settle_ms", "min_breath_ms", "intro_delay_ms", "round_gap_ms"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative, got {getattr(self, name)}")
        
        if self.total_rounds < 1:
            raise ValueError(f"total_rounds must be at least 1, got {self.total_rounds}")
        if not (0.0 < self.adaptation_rate <= 1.0):
            raise ValueError(f"adaptation_rate must be in (0, 1], got {self.adaptation_rate}")
        if not (0.0 < self.smoothing_factor <= 1.0):
            raise ValueError(f"smoothing_factor must be in (0, 1], got {self.smoothing_factor}")
        if not (0.0 <= self.analyser_smoothing < 1.0):
            raise ValueError(f"analyser_smoothing must be in [0, 1), got {self.analyser_smoothing}")
        if self.feature_history_length < 1:
            raise ValueError(f"feature_history_length must be at least 1, got {self.feature_history_length}")
        if self.fft_size < 32 or self.fft_size & (self.fft_size - 1):
            raise ValueError(f"fft_size must be a power of two >= 32, got {self.fft_size}")
        if not (0 <= self.band_low_hz < self.band_high_hz):
            raise ValueError(f"Invalid analysis band {self.band_low_hz}-{self.band_high_hz} Hz")
        if self.min_decibels >= self.max_decibels:
            raise ValueError("min_decibels must be below max_decibels")
    
    @property
    def refresh_interval_ms(self) -> float:
        """Period of the display-refresh sampling tick."""
        return 1000.0 / self.refresh_rate_hz
    
    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BreathConfig:
        """Build a config from a plain mapping, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown configuration keys: {sorted(unknown)}")
        
        values = dict(data)
        if "weights" in values and isinstance(values["weights"], dict):
            values["weights"] = ScoreWeights(**values["weights"])
        return cls(**values)
    
    @classmethod
    def from_yaml(cls, filepath: str | Path) -> BreathConfig:
        """Load configuration overrides from a YAML file."""
        with open(filepath, 'r') as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file {filepath} must contain a mapping")
        return cls.from_dict(data)
    
    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


DEFAULT_CONFIG = BreathConfig()


def load_config(path: str | Path | None = None) -> BreathConfig:
    """Return the default config, or the one described by a YAML file."""
    if path is None:
        return DEFAULT_CONFIG
    
    config = BreathConfig.from_yaml(path)
    logger.info(f"Loaded configuration from {path}")
    return config
