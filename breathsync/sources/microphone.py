"""
Real-time microphone audio source.

Requires: pip install sounddevice
"""

from __future__ import annotations

import logging
from threading import Lock
import numpy as np

from breathsync.core.config import BreathConfig, DEFAULT_CONFIG
from breathsync.core.spectrum import SpectrumAnalyser
from breathsync.core.stream import AudioFrame

logger = logging.getLogger(__name__)


class MicrophoneSource:
    """
    Live microphone input using sounddevice.
    
    The input stream runs in the background and keeps the most recent
    fft_size samples; read() analyses that window on demand, so the
    caller decides the sampling cadence.
    
    Usage:
        source = MicrophoneSource(config)
        if not source.start():
            print("Microphone unavailable")
        
        frame = source.read(clock.now_ms())
    """
    
    def __init__(
        self,
        config: BreathConfig | None = None,
        sample_rate: int = 44100,
        device: int | str | None = None,
    ) -> None:
        """
        Initialize microphone source.
        
        Args:
            config: Analyser settings (fft size, smoothing, dB range)
            sample_rate: Audio sample rate (default 44.1kHz)
            device: Audio device index or name (None = default)
        """
        self._config = config or DEFAULT_CONFIG
        self._sample_rate = sample_rate
        self._device = device
        self._analyser = SpectrumAnalyser(self._config)
        
        self._window = np.zeros(self._config.fft_size, dtype=np.float32)
        self._lock = Lock()
        self._stream = None
    
    @property
    def sample_rate(self) -> int:
        return self._sample_rate
    
    @property
    def is_running(self) -> bool:
        return self._stream is not None and bool(self._stream.active)
    
    def _audio_callback(self, indata, frames, time_info, status) -> None:
        """Called by sounddevice for each audio block."""
        if status:
            logger.warning(f"Audio status: {status}")
        
        block = indata[:, 0].astype(np.float32)
        with self._lock:
            if len(block) >= len(self._window):
                self._window[:] = block[-len(self._window):]
            else:
                self._window = np.roll(self._window, -len(block))
                self._window[-len(block):] = block
    
    def start(self) -> bool:
        """
        Open and start the input stream.
        
        Returns False if sounddevice is missing or the device cannot be
        opened. There is no retry; call start() again to re-attempt.
        """
        if self._stream is not None:
            return self.resume()
        
        try:
            import sounddevice as sd
        except ImportError:
            logger.error("sounddevice is required for microphone input. Install with: pip install sounddevice")
            return False
        
        try:
            stream = sd.InputStream(
                samplerate=self._sample_rate,
                channels=1,
                dtype=np.float32,
                device=self._device,
                callback=self._audio_callback,
            )
            stream.start()
        except Exception as e:
            logger.error(f"Microphone access failed: {e}")
            return False
        
        self._stream = stream
        logger.info(f"Microphone started at {self._sample_rate}Hz (device={self._device})")
        return True
    
    def resume(self) -> bool:
        """Restart a suspended stream. Returns True if it is running."""
        if self._stream is None:
            return False
        if not self._stream.active:
            try:
                self._stream.start()
            except Exception as e:
                logger.error(f"Could not resume microphone: {e}")
                return False
        return True
    
    def ensure_running(self) -> bool:
        return self.resume() if self._stream is not None else self.start()
    
    def suspend(self) -> None:
        """Pause capture but keep the device open."""
        if self._stream is not None and self._stream.active:
            self._stream.stop()
    
    def stop(self) -> None:
        """Stop capture and release the device."""
        if self._stream is not None:
            self._stream.stop()
            self._stream.close()
            self._stream = None
    
    def read(self, timestamp_ms: float) -> AudioFrame:
        with self._lock:
            window = self._window.copy()
        return self._analyser.analyse(window, self._sample_rate, timestamp_ms)


def list_audio_devices() -> str:
    """Describe available audio devices."""
    try:
        import sounddevice as sd
    except ImportError:
        return "sounddevice not installed. Run: pip install sounddevice"
    return str(sd.query_devices())
