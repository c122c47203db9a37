"""Tests for the breath phase detector."""

from breathsync.core.frame import BreathPhase, CalibrationProfile, FeatureFrame, SubProfile
from breathsync.core.stream import FeatureHistory
from breathsync.predictors.base import PredictionContext
from breathsync.predictors.phase import PhaseDetector

PROFILE = CalibrationProfile.from_profiles(silence=SubProfile(envelope=0.01))


def rising(t=0.0):
    return FeatureFrame(envelope=0.1, envelope_slope=0.01, timestamp_ms=t)


def falling(t=0.0):
    return FeatureFrame(envelope=0.1, envelope_slope=-0.01, timestamp_ms=t)


def steady(t=0.0):
    return FeatureFrame(envelope=0.1, envelope_slope=0.001, timestamp_ms=t)


def quiet(t=0.0):
    return FeatureFrame(envelope=0.015, envelope_slope=-0.001, timestamp_ms=t)


def feed(detector, frames, profile=PROFILE):
    history = FeatureHistory()
    return [detector.predict(PredictionContext(frame=f, history=history, profile=profile)) for f in frames]


class TestPhaseDetector:
    def test_initial_state(self):
        detector = PhaseDetector()
        assert detector.phase == BreathPhase.IDLE
        assert detector.last_breath_duration_ms == 0.0
    
    def test_commit_after_three_ticks(self):
        detector = PhaseDetector()
        phases = feed(detector, [rising(), rising(), rising()])
        assert phases == [BreathPhase.IDLE, BreathPhase.IDLE, BreathPhase.RISING]
    
    def test_dissent_resets_pending(self):
        detector = PhaseDetector()
        phases = feed(detector, [rising(), rising(), quiet(), rising(), rising()])
        assert phases[-1] == BreathPhase.IDLE
        assert detector.state.pending_count == 2
        assert feed(detector, [rising()]) == [BreathPhase.RISING]
    
    def test_changed_proposal_restarts_count(self):
        detector = PhaseDetector()
        phases = feed(detector, [rising(), rising(), falling(), rising(), rising()])
        assert phases[-1] == BreathPhase.IDLE
    
    def test_quiet_frame_proposes_idle(self):
        detector = PhaseDetector()
        feed(detector, [rising()] * 3)
        phases = feed(detector, [quiet()] * 3)
        assert phases == [BreathPhase.RISING, BreathPhase.RISING, BreathPhase.IDLE]
    
    def test_steady_slope_keeps_phase(self):
        detector = PhaseDetector()
        feed(detector, [rising()] * 3)
        phases = feed(detector, [steady()] * 10)
        assert all(p == BreathPhase.RISING for p in phases)
    
    def test_breath_duration(self):
        detector = PhaseDetector()
        frames = (
            [rising(t) for t in (0, 50, 100)]
            + [falling(t) for t in (150, 200, 250)]
            + [quiet(t) for t in (300, 350, 400)]
        )
        phases = feed(detector, frames)
        assert phases[2] == BreathPhase.RISING
        assert phases[5] == BreathPhase.FALLING
        assert phases[8] == BreathPhase.IDLE
        assert detector.last_breath_duration_ms == 300
    
    def test_rising_to_idle_records_no_duration(self):
        detector = PhaseDetector()
        feed(detector, [rising(t) for t in (0, 50, 100)])
        feed(detector, [quiet(t) for t in (150, 200, 250)])
        assert detector.phase == BreathPhase.IDLE
        assert detector.last_breath_duration_ms == 0.0
    
    def test_default_silence_reference(self):
        detector = PhaseDetector()
        weak = FeatureFrame(envelope=0.015, envelope_slope=0.01)
        phases = feed(detector, [weak] * 5, profile=CalibrationProfile())
        assert phases[-1] == BreathPhase.IDLE
    
    def test_reset(self):
        detector = PhaseDetector()
        feed(detector, [rising()] * 3)
        detector.reset()
        assert detector.phase == BreathPhase.IDLE
        assert detector.describe()["pending_phase"] is None
