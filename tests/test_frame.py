"""Tests for FeatureFrame, profiles and readings."""

import math

import pytest

from breathsync.core.frame import (
    BreathPhase,
    BreathReading,
    CalibrationProfile,
    CalibrationStage,
    FeatureFrame,
    SubProfile,
    slope_variance,
)


class TestFeatureFrame:
    def test_default_values(self):
        frame = FeatureFrame()
        assert frame.envelope == 0.0
        assert frame.breath_score == 0.0
        assert frame.frame_id == 0
    
    def test_clamping(self):
        frame = FeatureFrame(envelope=-0.5, zero_crossing_rate=1.5, breath_score=-0.2, spectral_centroid=-10)
        assert frame.envelope == 0.0
        assert frame.zero_crossing_rate == 1.0
        assert frame.breath_score == 0.0
        assert frame.spectral_centroid == 0.0
    
    def test_nan_becomes_zero(self):
        frame = FeatureFrame(envelope=math.nan, breath_score=math.nan)
        assert frame.envelope == 0.0
        assert frame.breath_score == 0.0
    
    def test_slope_may_be_negative(self):
        assert FeatureFrame(envelope_slope=-0.01).envelope_slope == -0.01
    
    def test_immutable(self):
        frame = FeatureFrame()
        with pytest.raises(AttributeError):
            frame.envelope = 1.0
    
    def test_with_updates(self):
        frame = FeatureFrame(envelope=0.2, timestamp_ms=100)
        scored = frame.with_updates(breath_score=0.7)
        assert scored.breath_score == 0.7
        assert scored.envelope == 0.2
        assert scored.timestamp_ms == 100
        assert frame.breath_score == 0.0
    
    def test_with_updates_clamps(self):
        assert FeatureFrame().with_updates(breath_score=3.0).breath_score == 1.0


class TestSubProfile:
    def test_uncalibrated_by_default(self):
        profile = SubProfile()
        assert profile.is_calibrated is False
        assert profile.envelope_slope_variance is None
        assert profile.duration_ms is None
        assert profile.envelope_pattern == ()
    
    def test_mean_of(self):
        frames = [
            FeatureFrame(envelope=0.1, spectral_centroid=200, zero_crossing_rate=0.02),
            FeatureFrame(envelope=0.3, spectral_centroid=400, zero_crossing_rate=0.04),
        ]
        profile = SubProfile.mean_of(frames, duration_ms=2500)
        assert profile.envelope == pytest.approx(0.2)
        assert profile.spectral_centroid == pytest.approx(300)
        assert profile.zero_crossing_rate == pytest.approx(0.03)
        assert profile.duration_ms == 2500
        assert profile.is_calibrated
    
    def test_mean_of_empty(self):
        profile = SubProfile.mean_of([])
        assert profile == SubProfile()
    
    def test_slope_variance(self):
        frames = [FeatureFrame(envelope_slope=s) for s in (0.01, -0.01, 0.01, -0.01)]
        assert slope_variance(frames) == pytest.approx(0.0001)
        assert slope_variance([]) == 0.0


class TestCalibrationProfile:
    def test_empty(self):
        profile = CalibrationProfile()
        assert profile.silence == SubProfile()
        assert profile.can_score is False
        assert profile.is_complete is False
    
    def test_assign_once(self):
        profile = CalibrationProfile()
        profile.assign(CalibrationStage.SILENCE, SubProfile(envelope=0.01))
        assert profile.is_set(CalibrationStage.SILENCE)
        with pytest.raises(ValueError):
            profile.assign(CalibrationStage.SILENCE, SubProfile(envelope=0.02))
        assert profile.silence.envelope == 0.01
    
    def test_can_score_needs_silence_and_talking(self):
        profile = CalibrationProfile.from_profiles(silence=SubProfile(envelope=0.01))
        assert profile.can_score is False
        profile.assign(CalibrationStage.TALKING, SubProfile(envelope=0.3))
        assert profile.can_score is True
    
    def test_complete_and_reset(self):
        profile = CalibrationProfile.from_profiles(
            silence=SubProfile(envelope=0.01),
            talking=SubProfile(envelope=0.3),
            breathing_in=SubProfile(envelope=0.1, duration_ms=4000),
            breathing_out=SubProfile(envelope=0.1, duration_ms=4000),
        )
        assert profile.is_complete
        profile.reset()
        assert not profile.is_complete
        assert not profile.is_set(CalibrationStage.TALKING)
        profile.assign(CalibrationStage.TALKING, SubProfile(envelope=0.2))
        assert profile.talking.envelope == 0.2


class TestBreathReading:
    def test_default_values(self):
        reading = BreathReading()
        assert reading.phase == BreathPhase.IDLE
        assert reading.is_talking is False
        assert reading.confidence == 0.0
    
    def test_confidence_mirrors_score(self):
        reading = BreathReading(frame=FeatureFrame(breath_score=0.6, timestamp_ms=250))
        assert reading.confidence == 0.6
        assert reading.timestamp_ms == 250
    
    def test_to_dict(self):
        reading = BreathReading(
            frame=FeatureFrame(envelope=0.1),
            phase=BreathPhase.RISING,
            score_terms={"envelope": 0.2},
        )
        data = reading.to_dict()
        assert data["phase"] == "rising"
        assert data["envelope"] == 0.1
        assert data["term_envelope"] == 0.2
