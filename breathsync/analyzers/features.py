"""
Feature extraction.

Converts one analyser snapshot into a FeatureFrame: band envelope,
envelope slope, spectral centroid, zero-crossing rate and breath score.
"""

from __future__ import annotations

import math
import numpy as np
from numpy.typing import NDArray

from breathsync.analyzers.scoring import BreathScorer, ScoreBreakdown
from breathsync.core.config import BreathConfig, DEFAULT_CONFIG
from breathsync.core.frame import FeatureFrame, CalibrationProfile
from breathsync.core.stream import AudioFrame, FeatureHistory


class FeatureExtractor:
    """
    Per-tick feature extractor.
    
    The envelope is the RMS of the normalized magnitudes inside the
    breathing band (80-600 Hz by default), exponentially smoothed with
    the configured smoothing factor. The slope is the change of that
    smoothed value since the previous tick.
    
    Every extracted frame is appended to the feature history, then
    scored against the calibration profile. Before calibration the score
    is 0. Extraction never raises on degenerate input.
    """
    
    def __init__(
        self,
        config: BreathConfig | None = None,
        history: FeatureHistory | None = None,
        scorer: BreathScorer | None = None,
    ) -> None:
        self._config = config or DEFAULT_CONFIG
        self._history = history if history is not None else FeatureHistory(self._config.feature_history_length)
        self._scorer = scorer or BreathScorer(self._config.weights)
        
        self._envelope: float = 0.0
        self._frame_count: int = 0
        self._last_breakdown = ScoreBreakdown()
        self._last_frame = FeatureFrame()
    
    @property
    def name(self) -> str:
        return "features"
    
    @property
    def history(self) -> FeatureHistory:
        return self._history
    
    @property
    def scorer(self) -> BreathScorer:
        return self._scorer
    
    @property
    def last_breakdown(self) -> ScoreBreakdown:
        return self._last_breakdown
    
    def extract(self, audio: AudioFrame, profile: CalibrationProfile) -> FeatureFrame:
        magnitudes = np.nan_to_num(np.asarray(audio.magnitudes, dtype=np.float64))
        samples = np.nan_to_num(np.asarray(audio.samples, dtype=np.float64))
        
        rms, centroid = self._band_statistics(magnitudes, audio.bin_hz)
        
        previous = self._envelope
        alpha = self._config.smoothing_factor
        self._envelope = previous * (1.0 - alpha) + rms * alpha
        
        frame = FeatureFrame(
            envelope=self._envelope,
            envelope_slope=self._envelope - previous,
            spectral_centroid=centroid,
            zero_crossing_rate=self._zero_crossing_rate(samples),
            frame_id=self._frame_count,
            timestamp_ms=audio.timestamp_ms,
        )
        
        self._history.push(frame)
        self._last_breakdown = self._scorer.evaluate(frame, profile, self._history)
        
        frame = frame.with_updates(breath_score=self._last_breakdown.score)
        self._history.replace_latest(frame)
        return self._commit(frame)
    
    def repeat(self, audio: AudioFrame) -> FeatureFrame:
        """
        The previous frame again, restamped with the next frame id and the
        snapshot time. Stands in for a snapshot that could not be extracted.
        """
        return self._commit(self._last_frame.with_updates(frame_id=self._frame_count, timestamp_ms=audio.timestamp_ms))
    
    def _commit(self, frame: FeatureFrame) -> FeatureFrame:
        self._frame_count += 1
        self._last_frame = frame
        return frame
    
    def _band_statistics(self, magnitudes: NDArray[np.float64], bin_hz: float) -> tuple[float, float]:
        """RMS and magnitude-weighted centroid of the breathing band."""
        if bin_hz <= 0:
            return 0.0, 0.0
        
        low_bin = math.floor(self._config.band_low_hz / bin_hz)
        high_bin = math.floor(self._config.band_high_hz / bin_hz)
        width = high_bin - low_bin
        if width <= 0:
            return 0.0, 0.0
        
        band = magnitudes[low_bin:min(high_bin, len(magnitudes))]
        if band.size == 0:
            return 0.0, 0.0
        
        rms = math.sqrt(float(np.sum(band ** 2)) / width)
        
        total_weight = float(np.sum(band))
        if total_weight <= 0:
            return rms, 0.0
        
        freqs = np.arange(low_bin, low_bin + band.size) * bin_hz
        centroid = float(np.dot(freqs, band)) / total_weight
        return rms, centroid
    
    def _zero_crossing_rate(self, samples: NDArray[np.float64]) -> float:
        """Fraction of adjacent sample pairs that change sign."""
        if len(samples) < 2:
            return 0.0
        non_negative = samples >= 0
        crossings = np.count_nonzero(non_negative[1:] != non_negative[:-1])
        return float(crossings / (len(samples) - 1))
    
    def reset(self) -> None:
        self._envelope = 0.0
        self._frame_count = 0
        self._last_breakdown = ScoreBreakdown()
        self._history.clear()
        self._last_frame = FeatureFrame()
