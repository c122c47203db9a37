"""
Talking classifier.

Flags sustained speech so the guide can ask the user to stay quiet.
Uses the same features and calibration as breath scoring.
"""

from __future__ import annotations

from breathsync.predictors.base import Predictor, PredictionContext


class TalkingClassifier(Predictor[bool]):
    """
    Debounced speech detector.
    
    Four indicators are checked against the talking calibration:
    - envelope above 0.5 x talking envelope
    - centroid above 0.6 x talking centroid (400 Hz if unset)
    - ZCR above 0.5 x talking ZCR (0.1 if unset)
    - recent slope variance above 0.3 x talking slope variance (0.005 if unset)
    
    A tick with 3 or more indicators increments a counter, any other tick
    decrements it (floored at 0). Talking is reported while the counter
    is at or above `frames_required`.
    
    Without a talking calibration the classifier reports False and does
    not touch its counter.
    """
    
    def __init__(
        self,
        frames_required: int = 5,
        min_indicators: int = 3,
        envelope_fraction: float = 0.5,
        centroid_fraction: float = 0.6,
        zcr_fraction: float = 0.5,
        slope_variance_fraction: float = 0.3,
    ) -> None:
        self._frames_required = frames_required
        self._min_indicators = min_indicators
        self._envelope_fraction = envelope_fraction
        self._centroid_fraction = centroid_fraction
        self._zcr_fraction = zcr_fraction
        self._slope_variance_fraction = slope_variance_fraction
        
        self._counter: int = 0
        self._last_indicators: tuple[bool, bool, bool, bool] = (False, False, False, False)
    
    @property
    def name(self) -> str:
        return "talking"
    
    @property
    def counter(self) -> int:
        return self._counter
    
    @property
    def is_talking(self) -> bool:
        return self._counter >= self._frames_required
    
    def predict(self, context: PredictionContext) -> bool:
        talking = context.profile.talking
        if talking.envelope == 0:
            return False
        
        frame = context.frame
        recent_variance = context.history.slope_variance()
        
        indicators = (
            frame.envelope > talking.envelope * self._envelope_fraction,
            frame.spectral_centroid > (talking.spectral_centroid or 400.0) * self._centroid_fraction,
            frame.zero_crossing_rate > (talking.zero_crossing_rate or 0.1) * self._zcr_fraction,
            recent_variance > (talking.envelope_slope_variance or 0.005) * self._slope_variance_fraction,
        )
        self._last_indicators = indicators
        
        if sum(indicators) >= self._min_indicators:
            self._counter += 1
        else:
            self._counter = max(0, self._counter - 1)
        
        return self.is_talking
    
    def reset(self) -> None:
        self._counter = 0
        self._last_indicators = (False, False, False, False)
    
    def describe(self) -> dict:
        high_envelope, high_centroid, high_zcr, high_slope_variance = self._last_indicators
        return {
            "counter": self._counter,
            "high_envelope": high_envelope,
            "high_centroid": high_centroid,
            "high_zcr": high_zcr,
            "high_slope_variance": high_slope_variance,
        }
