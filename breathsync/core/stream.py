"""
Audio stream abstractions.

An AudioFrame is one analyser snapshot: the normalized magnitude
spectrum and the time-domain samples it was computed from.
No dependency on specific audio libraries.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Iterator, Protocol, runtime_checkable
import numpy as np
from numpy.typing import NDArray

from breathsync.core.frame import FeatureFrame, slope_variance


@dataclass(slots=True)
class AudioFrame:
    """
    Single analyser snapshot.
    
    Attributes:
        magnitudes: fft_size/2 magnitudes normalized to [0.0, 1.0]
        samples: fft_size time-domain samples in [-1.0, 1.0]
        sample_rate: Device sample rate in Hz
        frame_id: Monotonically increasing frame identifier
        timestamp_ms: Clock time the snapshot was taken
    """
    magnitudes: NDArray[np.float32]
    samples: NDArray[np.float32]
    sample_rate: int
    frame_id: int = 0
    timestamp_ms: float = 0.0
    
    @property
    def fft_size(self) -> int:
        return len(self.samples)
    
    @property
    def bin_hz(self) -> float:
        """Width of one frequency bin in Hz."""
        if self.fft_size == 0:
            return 0.0
        return self.sample_rate / self.fft_size
    
    @property
    def rms(self) -> float:
        """Root mean square of the time-domain samples."""
        if len(self.samples) == 0:
            return 0.0
        return float(np.sqrt(np.mean(self.samples ** 2)))
    
    @classmethod
    def silence(cls, fft_size: int, sample_rate: int, frame_id: int = 0, timestamp_ms: float = 0.0) -> AudioFrame:
        """Create a silent snapshot."""
        return cls(
            magnitudes=np.zeros(fft_size // 2, dtype=np.float32),
            samples=np.zeros(fft_size, dtype=np.float32),
            sample_rate=sample_rate,
            frame_id=frame_id,
            timestamp_ms=timestamp_ms,
        )


@runtime_checkable
class AudioSource(Protocol):
    """
    Protocol for audio input.
    
    read() returns the analyser snapshot at the given clock time, the way
    a live analyser always reports its most recent window.
    """
    
    @property
    def sample_rate(self) -> int:
        ...
    
    @property
    def is_running(self) -> bool:
        """False while stopped or suspended."""
        ...
    
    def start(self) -> bool:
        """Acquire the device. Returns False on failure, never raises."""
        ...
    
    def stop(self) -> None:
        ...
    
    def read(self, timestamp_ms: float) -> AudioFrame:
        ...


class FeatureHistory:
    """
    Bounded FIFO of recent feature frames.
    
    Holds at most max_frames entries; pushing onto a full history evicts
    the oldest frame.
    """
    
    def __init__(self, max_frames: int = 30) -> None:
        if max_frames < 1:
            raise ValueError(f"max_frames must be at least 1, got {max_frames}")
        self._frames: deque[FeatureFrame] = deque(maxlen=max_frames)
        self._max_frames = max_frames
    
    @property
    def max_frames(self) -> int:
        return self._max_frames
    
    def push(self, frame: FeatureFrame) -> None:
        """Add frame, evicting the oldest one at capacity."""
        self._frames.append(frame)
    
    def replace_latest(self, frame: FeatureFrame) -> None:
        """Swap the newest entry, e.g. once it has been scored."""
        if not self._frames:
            self._frames.append(frame)
        else:
            self._frames[-1] = frame
    
    @property
    def frames(self) -> list[FeatureFrame]:
        return list(self._frames)
    
    @property
    def latest(self) -> FeatureFrame | None:
        return self._frames[-1] if self._frames else None
    
    def recent(self, count: int) -> list[FeatureFrame]:
        if count <= 0:
            return []
        return list(self._frames)[-count:]
    
    def slope_variance(self, window: int = 10, min_frames: int = 5) -> float:
        """
        Variance of envelope slopes over the last `window` frames.
        
        Returns 0 until at least `min_frames` frames are available.
        """
        if len(self._frames) < min_frames:
            return 0.0
        return slope_variance(self.recent(window))
    
    def clear(self) -> None:
        self._frames.clear()
    
    def __len__(self) -> int:
        return len(self._frames)
    
    def __iter__(self) -> Iterator[FeatureFrame]:
        return iter(list(self._frames))
