"""
Score -> feedback mapping.

Turns numbers the core produces (phase sync scores, calibrated breath
durations) into short messages for the user.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from breathsync.core.config import BreathConfig
    from breathsync.core.frame import CalibrationProfile


class FeedbackLevel(str, Enum):
    """How well the user followed the guide during one phase."""
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


_MESSAGES = {
    FeedbackLevel.EXCELLENT: "Excellent! Keep it up!",
    FeedbackLevel.GOOD: "Good rhythm!",
    FeedbackLevel.FAIR: "Try to match the guide",
    FeedbackLevel.POOR: "Follow the blue sphere",
}


@dataclass(frozen=True)
class Feedback:
    """Feedback shown after each breathing phase."""
    level: FeedbackLevel
    message: str
    score: float


def feedback_for_score(score: float) -> Feedback:
    """Map a 0-100 sync score to a feedback message."""
    if score > 80:
        level = FeedbackLevel.EXCELLENT
    elif score > 60:
        level = FeedbackLevel.GOOD
    elif score > 40:
        level = FeedbackLevel.FAIR
    else:
        level = FeedbackLevel.POOR
    return Feedback(level=level, message=_MESSAGES[level], score=score)


@dataclass(frozen=True)
class PaceAdvice:
    """Measured vs target breath durations, in seconds."""
    measured_inhale_s: float
    measured_exhale_s: float
    target_inhale_s: float
    target_exhale_s: float
    hint: str
    
    @property
    def is_on_pace(self) -> bool:
        return (
            abs(self.target_inhale_s - self.measured_inhale_s) < 0.5
            and abs(self.target_exhale_s - self.measured_exhale_s) < 0.5
        )


def _direction(verb: str, diff_s: float, tolerance_s: float) -> str | None:
    if diff_s >= tolerance_s:
        return f"breathe {verb} {diff_s:.1f}s slower"
    if diff_s <= -tolerance_s:
        return f"breathe {verb} {abs(diff_s):.1f}s faster"
    return None


def pace_hint(profile: CalibrationProfile, config: BreathConfig, tolerance_s: float = 0.5) -> PaceAdvice:
    """
    Compare the calibrated breath durations with the target pace.
    
    Within `tolerance_s` on both phases the user is told they are close;
    otherwise each off-pace phase gets a slower/faster suggestion.
    """
    measured_in = (profile.breathing_in.duration_ms or 0.0) / 1000
    measured_out = (profile.breathing_out.duration_ms or 0.0) / 1000
    target_in = config.target_inhale_ms / 1000
    target_out = config.target_exhale_ms / 1000
    
    in_diff = target_in - measured_in
    out_diff = target_out - measured_out
    
    if abs(in_diff) < tolerance_s and abs(out_diff) < tolerance_s:
        hint = "Your breathing pace is close to the target. Great!"
    else:
        parts = [
            p for p in (
                _direction("in", in_diff, tolerance_s),
                _direction("out", out_diff, tolerance_s),
            )
            if p is not None
        ]
        hint = f"To match the target, try to {' and '.join(parts)}."
    
    return PaceAdvice(
        measured_inhale_s=measured_in,
        measured_exhale_s=measured_out,
        target_inhale_s=target_in,
        target_exhale_s=target_out,
        hint=hint,
    )
