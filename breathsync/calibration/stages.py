"""
Calibration stage collectors.

Each collector is a finite-state consumer of the feature stream: feed it
one frame per tick until feed() returns True, then read its result.
Every collector terminates on its own, either on its condition or on a
hard timeout.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from breathsync.core.config import BreathConfig
from breathsync.core.frame import CalibrationStage, FeatureFrame, SubProfile, slope_variance

logger = logging.getLogger(__name__)


class StageCollector(ABC):
    """Base class for calibration stage collectors."""
    
    def __init__(self, stage: CalibrationStage) -> None:
        self.stage = stage
        self._frames: list[FeatureFrame] = []
        self._start_ms: float | None = None
        self._now_ms: float = 0.0
        self._result: SubProfile | None = None
    
    @property
    def done(self) -> bool:
        return self._result is not None
    
    @property
    def result(self) -> SubProfile:
        if self._result is None:
            raise RuntimeError(f"Stage '{self.stage.value}' has not finished")
        return self._result
    
    @property
    def elapsed_ms(self) -> float:
        if self._start_ms is None:
            return 0.0
        return self._now_ms - self._start_ms
    
    @property
    def sample_count(self) -> int:
        return len(self._frames)
    
    def feed(self, frame: FeatureFrame) -> bool:
        """Consume one frame. Returns True once the stage has a result."""
        if self.done:
            return True
        if self._start_ms is None:
            self._start_ms = frame.timestamp_ms
        self._now_ms = frame.timestamp_ms
        return self._consume(frame)
    
    @abstractmethod
    def _consume(self, frame: FeatureFrame) -> bool:
        ...
    
    @property
    @abstractmethod
    def progress(self) -> float:
        """Stage progress, 0-100."""
        ...


class WindowCollector(StageCollector):
    """
    Fixed-duration capture.
    
    Averages every frame that arrives before `duration_ms` has elapsed.
    With `measure_slope_variance` the variance of the envelope slopes is
    stored as well (the talking stage's noisiness reference).
    """
    
    def __init__(
        self,
        stage: CalibrationStage,
        duration_ms: float,
        measure_slope_variance: bool = False,
    ) -> None:
        super().__init__(stage)
        self._duration_ms = duration_ms
        self._measure_slope_variance = measure_slope_variance
    
    def _consume(self, frame: FeatureFrame) -> bool:
        if self.elapsed_ms >= self._duration_ms:
            extra = {}
            if self._measure_slope_variance:
                extra["envelope_slope_variance"] = slope_variance(self._frames)
            self._result = SubProfile.mean_of(self._frames, **extra)
            return True
        
        self._frames.append(frame)
        return False
    
    @property
    def progress(self) -> float:
        return min(100.0, self.elapsed_ms / self._duration_ms * 100.0)


class BreathCollector(StageCollector):
    """
    Captures one inhale or exhale.
    
    Waits for onset (envelope above `onset_threshold`), then records
    frames and tracks the peak envelope. The breath ends when the
    envelope decays below `decay_ratio` x peak, provided at least
    `min_duration_ms` have passed since onset.
    
    If nothing qualifying happens within `timeout_ms` of the first frame,
    a default profile is used instead.
    """
    
    def __init__(
        self,
        stage: CalibrationStage,
        onset_threshold: float,
        decay_ratio: float,
        default_centroid: float,
        min_duration_ms: float = 1000.0,
        timeout_ms: float = 12000.0,
        estimated_duration_ms: float = 4000.0,
        descending: bool = False,
        level_reference: float = 0.0,
    ) -> None:
        super().__init__(stage)
        self._onset_threshold = onset_threshold
        self._decay_ratio = decay_ratio
        self._default_centroid = default_centroid
        self._min_duration_ms = min_duration_ms
        self._timeout_ms = timeout_ms
        self._estimated_duration_ms = estimated_duration_ms or 4000.0
        self._descending = descending
        self._level_reference = level_reference
        
        self._onset_ms: float | None = None
        self._peak_envelope: float = 0.0
        self._last_envelope: float = 0.0
        self._timed_out = False
    
    @property
    def onset_ms(self) -> float | None:
        return self._onset_ms
    
    @property
    def peak_envelope(self) -> float:
        return self._peak_envelope
    
    @property
    def timed_out(self) -> bool:
        return self._timed_out
    
    def _consume(self, frame: FeatureFrame) -> bool:
        now = frame.timestamp_ms
        self._last_envelope = frame.envelope
        
        if self._onset_ms is None and frame.envelope > self._onset_threshold:
            self._onset_ms = now
        
        if self._onset_ms is not None:
            self._frames.append(frame)
            self._peak_envelope = max(self._peak_envelope, frame.envelope)
            
            since_onset = now - self._onset_ms
            if frame.envelope < self._peak_envelope * self._decay_ratio and since_onset >= self._min_duration_ms:
                self._result = SubProfile.mean_of(
                    self._frames,
                    duration_ms=since_onset,
                    envelope_pattern=tuple(f.envelope for f in self._frames),
                )
                return True
        
        if self.elapsed_ms >= self._timeout_ms:
            self._timed_out = True
            self._result = self.default_profile()
            logger.warning(f"No breath captured for '{self.stage.value}' within {self._timeout_ms:.0f}ms, using defaults")
            return True
        
        return False
    
    def default_profile(self) -> SubProfile:
        return SubProfile(
            envelope=self._peak_envelope or 0.1,
            spectral_centroid=self._default_centroid,
            zero_crossing_rate=0.05,
            duration_ms=4000.0,
            envelope_pattern=(),
        )
    
    @property
    def progress(self) -> float:
        """Elapsed share of the expected breath (counting down for exhales)."""
        if self._onset_ms is None:
            ratio = 0.0
        else:
            ratio = min(1.0, (self._now_ms - self._onset_ms) / self._estimated_duration_ms)
        percent = ratio * 100.0
        return 100.0 - percent if self._descending else percent
    
    @property
    def level(self) -> float:
        """Live envelope relative to the talking reference, 0-100."""
        return min(1.0, self._last_envelope / (self._level_reference + 0.01)) * 100.0


def silence_collector(config: BreathConfig) -> WindowCollector:
    return WindowCollector(CalibrationStage.SILENCE, config.calibration_duration_ms)


def talking_collector(config: BreathConfig) -> WindowCollector:
    return WindowCollector(
        CalibrationStage.TALKING,
        config.calibration_duration_ms,
        measure_slope_variance=True,
    )


def breathing_in_collector(
    config: BreathConfig,
    silence: SubProfile,
    talking: SubProfile,
) -> BreathCollector:
    return BreathCollector(
        CalibrationStage.BREATHING_IN,
        onset_threshold=silence.envelope * 1.5,
        decay_ratio=0.35,
        default_centroid=250.0,
        min_duration_ms=config.min_breath_ms,
        timeout_ms=config.calibration_timeout_ms,
        estimated_duration_ms=config.target_inhale_ms,
        level_reference=talking.envelope,
    )


def breathing_out_collector(
    config: BreathConfig,
    silence: SubProfile,
    breathing_in: SubProfile,
) -> BreathCollector:
    return BreathCollector(
        CalibrationStage.BREATHING_OUT,
        onset_threshold=silence.envelope * 1.5,
        decay_ratio=0.30,
        default_centroid=200.0,
        min_duration_ms=config.min_breath_ms,
        timeout_ms=config.calibration_timeout_ms,
        estimated_duration_ms=breathing_in.duration_ms or 4000.0,
        descending=True,
    )
