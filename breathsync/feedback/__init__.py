"""User-facing feedback derived from scores and calibration."""

from breathsync.feedback.mapper import Feedback, FeedbackLevel, PaceAdvice, feedback_for_score, pace_hint

__all__ = [
    "Feedback",
    "FeedbackLevel",
    "PaceAdvice",
    "feedback_for_score",
    "pace_hint",
]
