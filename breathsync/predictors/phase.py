"""
Breath phase detector.

A small hysteresis state machine over the envelope and its slope:

    idle --(active, rising)--> rising --(falling)--> falling --(quiet)--> idle

A new phase is only committed after it has been proposed on
`stable_ticks` consecutive ticks.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from breathsync.core.frame import BreathPhase
from breathsync.predictors.base import Predictor, PredictionContext

logger = logging.getLogger(__name__)


@dataclass
class PhaseState:
    """Mutable state owned by the phase detector."""
    phase: BreathPhase = BreathPhase.IDLE
    pending_phase: BreathPhase | None = None
    pending_count: int = 0
    breath_start_ms: float = 0.0
    last_breath_duration_ms: float = 0.0
    last_commit_ms: float = 0.0
    confidence: float = 0.0


class PhaseDetector(Predictor[BreathPhase]):
    """
    Hysteresis phase detector.
    
    Proposal per tick:
    - idle if the envelope is below 2 x silence envelope (0.01 if unset)
    - rising if the slope is above +slope_threshold
    - falling if the slope is below -slope_threshold
    - otherwise the current phase
    
    A proposal equal to the current phase clears the pending counter.
    A different proposal must repeat for `stable_ticks` consecutive ticks
    before it is committed; a change of proposal restarts the count.
    
    Committing idle -> rising starts a breath; committing falling -> idle
    stores its duration.
    """
    
    def __init__(
        self,
        stable_ticks: int = 3,
        slope_threshold: float = 0.003,
        activity_factor: float = 2.0,
        default_silence_envelope: float = 0.01,
    ) -> None:
        self._stable_ticks = stable_ticks
        self._slope_threshold = slope_threshold
        self._activity_factor = activity_factor
        self._default_silence_envelope = default_silence_envelope
        self._state = PhaseState()
    
    @property
    def name(self) -> str:
        return "phase"
    
    @property
    def state(self) -> PhaseState:
        return self._state
    
    @property
    def phase(self) -> BreathPhase:
        return self._state.phase
    
    @property
    def last_breath_duration_ms(self) -> float:
        return self._state.last_breath_duration_ms
    
    def propose(self, context: PredictionContext) -> BreathPhase:
        """Phase suggested by this tick alone, before hysteresis."""
        frame = context.frame
        silence_envelope = context.profile.silence.envelope or self._default_silence_envelope
        
        if not frame.envelope > silence_envelope * self._activity_factor:
            return BreathPhase.IDLE
        if frame.envelope_slope > self._slope_threshold:
            return BreathPhase.RISING
        if frame.envelope_slope < -self._slope_threshold:
            return BreathPhase.FALLING
        return self._state.phase
    
    def predict(self, context: PredictionContext) -> BreathPhase:
        state = self._state
        target = self.propose(context)
        now_ms = context.frame.timestamp_ms
        
        if target == state.phase:
            state.pending_phase = None
            state.pending_count = 0
        else:
            if target != state.pending_phase:
                state.pending_phase = target
                state.pending_count = 0
            state.pending_count += 1
            
            if state.pending_count >= self._stable_ticks:
                self._commit(target, now_ms)
        
        state.confidence = context.frame.breath_score
        return state.phase
    
    def _commit(self, target: BreathPhase, now_ms: float) -> None:
        state = self._state
        previous = state.phase
        
        if previous == BreathPhase.IDLE and target == BreathPhase.RISING:
            state.breath_start_ms = now_ms
        if previous == BreathPhase.FALLING and target == BreathPhase.IDLE:
            state.last_breath_duration_ms = now_ms - state.breath_start_ms
            logger.debug(f"Breath completed in {state.last_breath_duration_ms:.0f}ms")
        
        state.phase = target
        state.pending_phase = None
        state.pending_count = 0
        state.last_commit_ms = now_ms
    
    def reset(self) -> None:
        self._state = PhaseState()
    
    def describe(self) -> dict:
        return {
            "phase": self._state.phase.value,
            "pending_phase": self._state.pending_phase.value if self._state.pending_phase else None,
            "pending_count": self._state.pending_count,
            "last_breath_duration_ms": self._state.last_breath_duration_ms,
        }
