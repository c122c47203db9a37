"""
Browser-style FFT analyser.

Turns a window of raw samples into the normalized 0-1 magnitude array
the feature extractor expects: Blackman window, linear magnitudes
smoothed over time, converted to dB and mapped onto [min_db, max_db].
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from breathsync.core.config import BreathConfig, DEFAULT_CONFIG
from breathsync.core.stream import AudioFrame


class SpectrumAnalyser:
    """
    Stateful magnitude analyser.
    
    Usage:
        analyser = SpectrumAnalyser(config)
        frame = analyser.analyse(window, sample_rate=44100, timestamp_ms=now)
    """
    
    def __init__(self, config: BreathConfig | None = None) -> None:
        self._config = config or DEFAULT_CONFIG
        self._fft_size = self._config.fft_size
        self._window = np.blackman(self._fft_size).astype(np.float32)
        self._smoothed = np.zeros(self._fft_size // 2, dtype=np.float64)
        self._frame_id = 0
    
    @property
    def fft_size(self) -> int:
        return self._fft_size
    
    def magnitudes(self, samples: NDArray[np.float32]) -> NDArray[np.float32]:
        """Normalized magnitudes (fft_size/2 bins) for one window."""
        samples = self._fit(samples)
        
        spectrum = np.abs(np.fft.rfft(samples * self._window))[: self._fft_size // 2]
        spectrum /= self._fft_size
        
        tau = self._config.analyser_smoothing
        self._smoothed = tau * self._smoothed + (1.0 - tau) * spectrum
        
        db = 20.0 * np.log10(np.maximum(self._smoothed, 1e-12))
        min_db = self._config.min_decibels
        max_db = self._config.max_decibels
        scaled = (db - min_db) / (max_db - min_db)
        return np.clip(scaled, 0.0, 1.0).astype(np.float32)
    
    def analyse(self, samples: NDArray[np.float32], sample_rate: int, timestamp_ms: float) -> AudioFrame:
        samples = self._fit(samples)
        frame = AudioFrame(
            magnitudes=self.magnitudes(samples),
            samples=samples,
            sample_rate=sample_rate,
            frame_id=self._frame_id,
            timestamp_ms=timestamp_ms,
        )
        self._frame_id += 1
        return frame
    
    def _fit(self, samples: NDArray[np.float32]) -> NDArray[np.float32]:
        """Zero-pad or keep the most recent fft_size samples."""
        samples = np.nan_to_num(np.asarray(samples, dtype=np.float32))
        if len(samples) == self._fft_size:
            return samples
        if len(samples) > self._fft_size:
            return samples[-self._fft_size:]
        padded = np.zeros(self._fft_size, dtype=np.float32)
        padded[self._fft_size - len(samples):] = samples
        return padded
    
    def reset(self) -> None:
        self._smoothed[:] = 0.0
        self._frame_id = 0
