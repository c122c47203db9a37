"""
Breath likelihood scoring.

Combines one feature frame with the calibration profile into a single
score in [0, 1]. No trained model: four weighted heuristics, each judged
against the user's own calibration references.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from breathsync.core.config import ScoreWeights

if TYPE_CHECKING:
    from breathsync.core.frame import FeatureFrame, CalibrationProfile
    from breathsync.core.stream import FeatureHistory


DEFAULT_TALKING_SLOPE_VARIANCE = 0.01
DEFAULT_TALKING_CENTROID = 500.0
DEFAULT_TALKING_ZCR = 0.15
DEFAULT_BREATH_CENTROID = 300.0
DEFAULT_BREATH_ZCR = 0.05


@dataclass(frozen=True, slots=True)
class ScoreBreakdown:
    """
    Weighted contribution of each term.
    
    breath_centroid and breath_zcr are the breath-band references of the
    profile. They are reported for debugging and do not gate any term.
    """
    envelope: float = 0.0
    envelope_slope: float = 0.0
    spectral_centroid: float = 0.0
    zero_crossing_rate: float = 0.0
    breath_centroid: float = DEFAULT_BREATH_CENTROID
    breath_zcr: float = DEFAULT_BREATH_ZCR
    
    @property
    def score(self) -> float:
        total = self.envelope + self.envelope_slope + self.spectral_centroid + self.zero_crossing_rate
        return max(0.0, min(1.0, total))
    
    def to_dict(self) -> dict[str, float]:
        return {
            "envelope": self.envelope,
            "envelope_slope": self.envelope_slope,
            "spectral_centroid": self.spectral_centroid,
            "zero_crossing_rate": self.zero_crossing_rate,
            "breath_centroid": self.breath_centroid,
            "breath_zcr": self.breath_zcr,
        }


class BreathScorer:
    """
    Weighted breath-likelihood scorer.
    
    Terms:
    1. Envelope: louder than silence, quieter than speech, normalized by
       the calibrated breath envelope
    2. Slope variance: steady envelope movement scores higher than the
       jittery movement measured while talking
    3. Spectral centroid: lower than the talking centroid
    4. Zero-crossing rate: lower than the talking ZCR
    
    An uncalibrated profile (no silence envelope) always scores 0.
    """
    
    def __init__(
        self,
        weights: ScoreWeights | None = None,
        slope_window: int = 10,
        min_slope_frames: int = 5,
    ) -> None:
        self._weights = weights or ScoreWeights()
        self._slope_window = slope_window
        self._min_slope_frames = min_slope_frames
    
    @property
    def weights(self) -> ScoreWeights:
        return self._weights
    
    def score(
        self,
        frame: FeatureFrame,
        profile: CalibrationProfile,
        history: FeatureHistory,
    ) -> float:
        return self.evaluate(frame, profile, history).score
    
    def evaluate(
        self,
        frame: FeatureFrame,
        profile: CalibrationProfile,
        history: FeatureHistory,
    ) -> ScoreBreakdown:
        silence = profile.silence
        talking = profile.talking
        breathing_in = profile.breathing_in
        breathing_out = profile.breathing_out
        
        breath_centroid = max(breathing_in.spectral_centroid, breathing_out.spectral_centroid) or DEFAULT_BREATH_CENTROID
        breath_zcr = max(breathing_in.zero_crossing_rate, breathing_out.zero_crossing_rate) or DEFAULT_BREATH_ZCR
        
        if silence.envelope == 0:
            return ScoreBreakdown(breath_centroid=breath_centroid, breath_zcr=breath_zcr)
        
        w = self._weights
        
        envelope_term = 0.0
        above_silence = frame.envelope > silence.envelope * 1.3
        below_talking = frame.envelope < talking.envelope * 0.8
        if above_silence and below_talking:
            breath_envelope = max(breathing_in.envelope, breathing_out.envelope)
            envelope_term = w.envelope * min(1.0, frame.envelope / (breath_envelope + 0.01))
        
        recent_variance = history.slope_variance(self._slope_window, self._min_slope_frames)
        talking_variance = talking.envelope_slope_variance or DEFAULT_TALKING_SLOPE_VARIANCE
        slope_term = w.envelope_slope * max(0.0, 1.0 - recent_variance / talking_variance)
        
        centroid_term = 0.0
        talking_centroid = talking.spectral_centroid or DEFAULT_TALKING_CENTROID
        if 0 < frame.spectral_centroid < talking_centroid:
            centroid_term = w.spectral_centroid * max(0.0, 1.0 - frame.spectral_centroid / talking_centroid)
        
        zcr_term = 0.0
        talking_zcr = talking.zero_crossing_rate or DEFAULT_TALKING_ZCR
        if frame.zero_crossing_rate < talking_zcr:
            zcr_term = w.zero_crossing_rate * max(0.0, 1.0 - frame.zero_crossing_rate / talking_zcr)
        
        return ScoreBreakdown(
            envelope=envelope_term,
            envelope_slope=slope_term,
            spectral_centroid=centroid_term,
            zero_crossing_rate=zcr_term,
            breath_centroid=breath_centroid,
            breath_zcr=breath_zcr,
        )
