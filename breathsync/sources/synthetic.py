"""
Synthetic audio sources for testing and offline simulation.

Sources are addressed by time: read(timestamp_ms) analyses the fft_size
samples that end at that instant, so a ManualClock can drive them
deterministically.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import numpy as np
from numpy.typing import NDArray

from breathsync.core.config import BreathConfig, DEFAULT_CONFIG
from breathsync.core.spectrum import SpectrumAnalyser
from breathsync.core.stream import AudioFrame


class SyntheticSource(ABC):
    """Base class for generated audio."""
    
    def __init__(self, sample_rate: int = 44100, config: BreathConfig | None = None) -> None:
        self._config = config or DEFAULT_CONFIG
        self._sample_rate = sample_rate
        self._analyser = SpectrumAnalyser(self._config)
        self._running = False
    
    @property
    def sample_rate(self) -> int:
        return self._sample_rate
    
    @property
    def fft_size(self) -> int:
        return self._config.fft_size
    
    @property
    def is_running(self) -> bool:
        return self._running
    
    def start(self) -> bool:
        self._running = True
        return True
    
    def stop(self) -> None:
        self._running = False
    
    def read(self, timestamp_ms: float) -> AudioFrame:
        end = int(round(timestamp_ms * self._sample_rate / 1000))
        samples = self._window(end - self.fft_size, self.fft_size)
        return self._analyser.analyse(samples, self._sample_rate, timestamp_ms)
    
    def _times_ms(self, start: int, count: int) -> NDArray[np.float64]:
        return (np.arange(start, start + count, dtype=np.float64)) * 1000.0 / self._sample_rate
    
    @abstractmethod
    def _window(self, start: int, count: int) -> NDArray[np.float32]:
        """Samples [start, start + count), zero before time 0."""
        ...


class ArraySource(SyntheticSource):
    """Plays back a numpy array, silent outside its bounds unless looping."""
    
    def __init__(
        self,
        data: np.ndarray,
        sample_rate: int = 44100,
        config: BreathConfig | None = None,
        loop: bool = False,
    ) -> None:
        super().__init__(sample_rate, config)
        self._data = np.asarray(data, dtype=np.float32)
        peak = float(np.max(np.abs(self._data))) if len(self._data) else 0.0
        if peak > 1.0:
            self._data = self._data / peak
        self._loop = loop
    
    @property
    def duration_ms(self) -> float:
        return len(self._data) * 1000.0 / self._sample_rate
    
    def _window(self, start: int, count: int) -> NDArray[np.float32]:
        out = np.zeros(count, dtype=np.float32)
        n = len(self._data)
        if n == 0:
            return out
        
        idx = np.arange(start, start + count)
        valid = idx >= 0
        if self._loop:
            out[valid] = self._data[idx[valid] % n]
        else:
            valid &= idx < n
            out[valid] = self._data[idx[valid]]
        return out


class SilenceSource(SyntheticSource):
    """Digital silence. Skips the analyser: the spectrum is all zeros."""
    
    def read(self, timestamp_ms: float) -> AudioFrame:
        return AudioFrame.silence(self.fft_size, self._sample_rate, timestamp_ms=timestamp_ms)
    
    def _window(self, start: int, count: int) -> NDArray[np.float32]:
        return np.zeros(count, dtype=np.float32)


class NoiseSource(SyntheticSource):
    """White noise. Each read draws a fresh window from a seeded generator."""
    
    def __init__(
        self,
        amplitude: float = 0.1,
        sample_rate: int = 44100,
        config: BreathConfig | None = None,
        seed: int | None = None,
    ) -> None:
        super().__init__(sample_rate, config)
        self._amplitude = amplitude
        self._rng = np.random.default_rng(seed)
    
    def _window(self, start: int, count: int) -> NDArray[np.float32]:
        return (self._amplitude * self._rng.standard_normal(count)).astype(np.float32)


class ToneSource(SyntheticSource):
    """Continuous sine tone, phase-locked to absolute sample time."""
    
    def __init__(
        self,
        frequency_hz: float = 440.0,
        amplitude: float = 0.5,
        sample_rate: int = 44100,
        config: BreathConfig | None = None,
    ) -> None:
        super().__init__(sample_rate, config)
        self._frequency_hz = frequency_hz
        self._amplitude = amplitude
    
    def _window(self, start: int, count: int) -> NDArray[np.float32]:
        t = self._times_ms(start, count) / 1000.0
        tone = self._amplitude * np.sin(2 * np.pi * self._frequency_hz * t)
        tone[t < 0] = 0.0
        return tone.astype(np.float32)


class BreathSource(SyntheticSource):
    """
    Breath-like audio: low-band noise under a repeating swell envelope.
    
    One cycle is inhale, pause, exhale, pause. Each breath swells and
    decays as a half sine, so the envelope rises, peaks mid-breath and
    falls back to silence the way a real breath does at the microphone.
    """
    
    def __init__(
        self,
        inhale_ms: float = 4000.0,
        exhale_ms: float = 4000.0,
        pause_ms: float = 1000.0,
        amplitude: float = 0.3,
        onset_ms: float = 0.0,
        band_hz: tuple[float, float] = (150.0, 500.0),
        sample_rate: int = 44100,
        config: BreathConfig | None = None,
        seed: int | None = None,
    ) -> None:
        super().__init__(sample_rate, config)
        self._inhale_ms = inhale_ms
        self._exhale_ms = exhale_ms
        self._pause_ms = pause_ms
        self._amplitude = amplitude
        self._onset_ms = onset_ms
        self._band_hz = band_hz
        self._rng = np.random.default_rng(seed)
    
    @property
    def cycle_ms(self) -> float:
        return self._inhale_ms + self._exhale_ms + 2 * self._pause_ms
    
    def envelope_at(self, times_ms: NDArray[np.float64]) -> NDArray[np.float64]:
        """Swell amplitude (0-1) at each absolute time."""
        rel = np.asarray(times_ms, dtype=np.float64) - self._onset_ms
        pos = np.mod(rel, self.cycle_ms)
        env = np.zeros_like(pos)
        
        inhale = pos < self._inhale_ms
        env[inhale] = np.sin(np.pi * pos[inhale] / self._inhale_ms)
        
        exhale_start = self._inhale_ms + self._pause_ms
        exhale = (pos >= exhale_start) & (pos < exhale_start + self._exhale_ms)
        env[exhale] = np.sin(np.pi * (pos[exhale] - exhale_start) / self._exhale_ms)
        
        env[rel < 0] = 0.0
        return env
    
    def _window(self, start: int, count: int) -> NDArray[np.float32]:
        noise = self._rng.standard_normal(count)
        
        spectrum = np.fft.rfft(noise)
        freqs = np.fft.rfftfreq(count, d=1.0 / self._sample_rate)
        low, high = self._band_hz
        spectrum[(freqs < low) | (freqs > high)] = 0.0
        band = np.fft.irfft(spectrum, n=count)
        
        peak = np.max(np.abs(band))
        if peak > 0:
            band /= peak
        
        shaped = self._amplitude * band * self.envelope_at(self._times_ms(start, count))
        return shaped.astype(np.float32)
