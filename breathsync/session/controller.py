"""
Guided breathing session.

A session is a fixed number of rounds of inhale, hold, exhale, hold.
After every round the user's paced durations move toward the target
pace. Each breathing phase is scored by how closely the user's paced
sphere tracked the guide.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Iterator

from breathsync.adapters.display import GUIDE, TALKING_WARNING, USER, Display, NullDisplay
from breathsync.adapters.narrator import NarrationGuard
from breathsync.core.frame import BreathReading
from breathsync.core.pipeline import BreathPipeline
from breathsync.feedback.mapper import feedback_for_score
from breathsync.session.timing import (
    PhaseMonitor,
    adapt_duration,
    countdown_seconds,
    initial_durations,
)

logger = logging.getLogger(__name__)


class SessionPhase(str, Enum):
    IDLE = "idle"
    INTRO = "intro"
    INHALE = "in"
    HOLD = "hold"
    EXHALE = "out"
    FINISHED = "finished"


@dataclass
class SessionState:
    """Mutable state of one running session."""
    current_round: int = 0
    rounds_completed: int = 0
    total_breaths: int = 0
    sync_scores: list[float] = field(default_factory=list)
    current_inhale_ms: float = 4000.0
    current_exhale_ms: float = 4000.0
    talking_phases: int = 0
    phase: SessionPhase = SessionPhase.IDLE
    started_ms: float = 0.0
    
    @property
    def average_sync(self) -> float:
        if not self.sync_scores:
            return 0.0
        return sum(self.sync_scores) / len(self.sync_scores)


@dataclass(frozen=True)
class SessionSummary:
    """End-of-session statistics."""
    rounds_completed: int
    total_breaths: int
    average_sync: float
    duration_s: float
    sync_scores: tuple[float, ...] = ()
    talking_phases: int = 0
    stopped_early: bool = False
    
    def to_dict(self) -> dict:
        return asdict(self)


class SessionStopped(Exception):
    """Raised inside the session flow when stop() was requested."""


class SessionController:
    """
    Runs guided rounds on a calibrated pipeline.
    
    Usage:
        controller = SessionController(pipeline, guard, display)
        summary = controller.run()
    
    stop() may be called from a reading callback or another thread; the
    session ends at the next tick boundary with whatever it has so far.
    """
    
    def __init__(
        self,
        pipeline: BreathPipeline,
        guard: NarrationGuard,
        display: Display | None = None,
        inhale_ms: float | None = None,
        exhale_ms: float | None = None,
    ) -> None:
        self._pipeline = pipeline
        self._config = pipeline.config
        self._clock = pipeline.clock
        self._guard = guard
        self._display = display or NullDisplay()
        self._inhale_ms = inhale_ms
        self._exhale_ms = exhale_ms
        
        self._state = SessionState()
        self._stop_requested = False
        self._summary: SessionSummary | None = None
    
    @property
    def state(self) -> SessionState:
        return self._state
    
    @property
    def summary(self) -> SessionSummary | None:
        return self._summary
    
    @property
    def is_running(self) -> bool:
        return self._state.phase not in (SessionPhase.IDLE, SessionPhase.FINISHED)
    
    def stop(self) -> None:
        """Request an early end of the session."""
        if self.is_running:
            logger.info(f"Session stop requested in round {self._state.current_round}")
        self._stop_requested = True
    
    def run(self) -> SessionSummary:
        """
        Run every round and return the summary.
        
        Adaptive durations are re-derived from the calibration profile on
        every run unless explicit durations were given, so running again
        restarts the pacing without recalibrating.
        """
        calibrated_in, calibrated_out = initial_durations(self._pipeline.profile, self._config)
        self._state = SessionState(
            current_inhale_ms=self._inhale_ms if self._inhale_ms is not None else calibrated_in,
            current_exhale_ms=self._exhale_ms if self._exhale_ms is not None else calibrated_out,
            phase=SessionPhase.INTRO,
            started_ms=self._clock.now_ms(),
        )
        self._stop_requested = False
        self._summary = None
        
        logger.info(
            f"Session started: {self._config.total_rounds} rounds, "
            f"pace {self._state.current_inhale_ms:.0f}/{self._state.current_exhale_ms:.0f}ms"
        )
        
        self._display.set_sphere(USER, 0.0)
        self._display.set_sphere(GUIDE, 0.0)
        self._display.set_talking_warning("")
        
        stopped_early = False
        try:
            self._guard.speak_and_wait("Let's begin. Find a comfortable position and relax.", self._pipeline)
            self._wait(self._config.intro_delay_ms)
            
            for round_number in range(1, self._config.total_rounds + 1):
                self._run_round(round_number)
                self._wait(self._config.round_gap_ms)
        except SessionStopped:
            stopped_early = True
        
        return self._finish(stopped_early)
    
    def _run_round(self, round_number: int) -> None:
        state = self._state
        state.current_round = round_number
        self._display.set_round(round_number, self._config.total_rounds)
        self._display.set_talking_warning("")
        
        self._breathe(SessionPhase.INHALE, self._config.target_inhale_ms, state.current_inhale_ms)
        self._hold()
        self._breathe(SessionPhase.EXHALE, self._config.target_exhale_ms, state.current_exhale_ms)
        self._hold()
        
        state.total_breaths += 1
        state.rounds_completed = round_number
        
        state.current_inhale_ms = adapt_duration(
            state.current_inhale_ms, self._config.target_inhale_ms, self._config.adaptation_rate
        )
        state.current_exhale_ms = adapt_duration(
            state.current_exhale_ms, self._config.target_exhale_ms, self._config.adaptation_rate
        )
        logger.debug(
            f"Round {round_number} done, next pace "
            f"{state.current_inhale_ms:.0f}/{state.current_exhale_ms:.0f}ms"
        )
    
    def _breathe(self, phase: SessionPhase, guide_ms: float, user_ms: float) -> None:
        rising = phase is SessionPhase.INHALE
        self._state.phase = phase
        self._display.set_phase_label("Breathe In..." if rising else "Breathe Out...")
        self._guard.speak("Breathe in" if rising else "Breathe out")
        
        started_ms = self._clock.now_ms()
        monitor = PhaseMonitor(guide_ms, user_ms, started_ms)
        next_countdown_ms = started_ms
        talking_seen = False
        
        for reading in self._ticks(self._config.poll_interval_ms, guide_ms):
            now_ms = self._clock.now_ms()
            
            if now_ms >= next_countdown_ms:
                self._display.set_countdown(countdown_seconds(guide_ms, now_ms - started_ms))
                next_countdown_ms += self._config.countdown_interval_ms
            
            talking_seen = self._update_talking(reading, talking_seen)
            
            guide, user = monitor.sample(now_ms)
            self._display.set_sphere(GUIDE, self._fill(guide, rising))
            self._display.set_sphere(USER, self._fill(user, rising))
        
        self._display.set_sphere(USER, 100.0 if rising else 0.0)
        
        score = monitor.score
        self._state.sync_scores.append(score)
        if talking_seen:
            self._state.talking_phases += 1
        self._display.set_feedback(feedback_for_score(score))
        logger.debug(f"Phase {phase.value} sync {score:.1f} over {monitor.samples} samples")
    
    def _update_talking(self, reading: BreathReading, talking_seen: bool) -> bool:
        if reading.is_talking:
            self._display.set_talking_warning(TALKING_WARNING)
            return True
        if not talking_seen:
            self._display.set_talking_warning("")
        return talking_seen
    
    @staticmethod
    def _fill(progress: float, rising: bool) -> float:
        return progress * 100.0 if rising else 100.0 - progress * 100.0
    
    def _hold(self) -> None:
        self._state.phase = SessionPhase.HOLD
        self._display.set_phase_label("Hold...")
        self._display.set_countdown(None)
        self._display.set_talking_warning("")
        self._wait(self._config.hold_ms)
    
    def _wait(self, duration_ms: float) -> None:
        for _ in self._ticks(self._config.poll_interval_ms, duration_ms):
            pass
    
    def _ticks(self, period_ms: float, duration_ms: float) -> Iterator[BreathReading]:
        if self._stop_requested:
            raise SessionStopped()
        for reading in self._pipeline.ticks(period_ms, duration_ms):
            if self._stop_requested:
                raise SessionStopped()
            yield reading
    
    def _finish(self, stopped_early: bool) -> SessionSummary:
        state = self._state
        state.phase = SessionPhase.FINISHED
        
        summary = SessionSummary(
            rounds_completed=state.rounds_completed,
            total_breaths=state.total_breaths,
            average_sync=state.average_sync,
            duration_s=(self._clock.now_ms() - state.started_ms) / 1000,
            sync_scores=tuple(state.sync_scores),
            talking_phases=state.talking_phases,
            stopped_early=stopped_early,
        )
        self._summary = summary
        
        logger.info(
            f"Session finished: {summary.rounds_completed} rounds, "
            f"sync {summary.average_sync:.0f}%, {summary.duration_s:.0f}s"
            + (" (stopped early)" if stopped_early else "")
        )
        
        self._display.show_summary(summary)
        self._guard.speak(
            "Wonderful. You've completed your meditation session. "
            "Take a moment to notice how you feel."
        )
        return summary
