"""
Pacing math for guided sessions: easing, adaptive durations and
per-phase synchrony scoring.
"""

from __future__ import annotations

import math
from typing import Sequence, TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from breathsync.core.config import BreathConfig
    from breathsync.core.frame import CalibrationProfile


def ease_in_out(progress: float) -> float:
    """Symmetric quadratic ease-in-out over [0, 1]."""
    p = max(0.0, min(1.0, progress))
    if p < 0.5:
        return 2 * p * p
    return 1 - (-2 * p + 2) ** 2 / 2


def adapt_duration(current_ms: float, target_ms: float, rate: float) -> float:
    """Move the current duration a fraction `rate` of the way to the target."""
    return current_ms + (target_ms - current_ms) * rate


def sync_score(divergences: Sequence[float]) -> float:
    """
    Phase synchrony in [0, 100] from per-tick progress divergences.
    
    A phase without samples has nothing to diverge and scores 100.
    """
    if len(divergences) == 0:
        return 100.0
    mean = float(np.mean(divergences))
    return max(0.0, min(100.0, 100.0 - 200.0 * mean))


def countdown_seconds(duration_ms: float, elapsed_ms: float) -> int:
    """Whole seconds left in a phase, never negative."""
    return max(0, math.ceil((duration_ms - elapsed_ms) / 1000))


def initial_durations(profile: CalibrationProfile, config: BreathConfig) -> tuple[float, float]:
    """
    Starting inhale/exhale durations: halfway between the calibrated
    breath and the target. Uncalibrated phases start at the target.
    """
    measured_in = profile.breathing_in.duration_ms or config.target_inhale_ms
    measured_out = profile.breathing_out.duration_ms or config.target_exhale_ms
    return (
        (measured_in + config.target_inhale_ms) / 2,
        (measured_out + config.target_exhale_ms) / 2,
    )


class PhaseMonitor:
    """
    Tracks guide vs user progress through one breathing phase.
    
    The guide runs on the target duration and the user's sphere on the
    adaptive one; both are eased before they are compared.
    """
    
    def __init__(self, guide_duration_ms: float, user_duration_ms: float, started_ms: float) -> None:
        self.guide_duration_ms = guide_duration_ms
        self.user_duration_ms = user_duration_ms
        self.started_ms = started_ms
        self._divergences: list[float] = []
    
    def sample(self, now_ms: float) -> tuple[float, float]:
        """Record one tick. Returns the eased (guide, user) progress."""
        elapsed = now_ms - self.started_ms
        guide = ease_in_out(elapsed / self.guide_duration_ms)
        user = ease_in_out(elapsed / self.user_duration_ms)
        self._divergences.append(abs(user - guide))
        return guide, user
    
    @property
    def samples(self) -> int:
        return len(self._divergences)
    
    @property
    def mean_divergence(self) -> float:
        if not self._divergences:
            return 0.0
        return float(np.mean(self._divergences))
    
    @property
    def score(self) -> float:
        return sync_score(self._divergences)
