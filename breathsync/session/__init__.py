"""Guided session pacing and scoring."""

from breathsync.session.timing import (
    PhaseMonitor,
    adapt_duration,
    countdown_seconds,
    ease_in_out,
    initial_durations,
    sync_score,
)
from breathsync.session.controller import (
    SessionController,
    SessionPhase,
    SessionState,
    SessionSummary,
)

__all__ = [
    "PhaseMonitor",
    "adapt_duration",
    "countdown_seconds",
    "ease_in_out",
    "initial_durations",
    "sync_score",
    "SessionController",
    "SessionPhase",
    "SessionState",
    "SessionSummary",
]
