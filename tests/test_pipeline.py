"""Tests for the processing pipeline."""

import numpy as np
import pytest

from breathsync.core.clock import ManualClock
from breathsync.core.config import DEFAULT_CONFIG
from breathsync.core.frame import BreathPhase, CalibrationProfile, SubProfile
from breathsync.core.pipeline import BreathPipeline
from breathsync.sources.synthetic import BreathSource, SilenceSource, ToneSource


def make_pipeline(source=None, profile=None):
    return BreathPipeline(source or SilenceSource(), DEFAULT_CONFIG, ManualClock(), profile)


class TestBreathPipeline:
    def test_pipeline_creation(self):
        pipeline = make_pipeline()
        assert pipeline.config is DEFAULT_CONFIG
        assert len(pipeline.history) == 0
        assert pipeline.current_phase == BreathPhase.IDLE
        assert pipeline.history.max_frames == DEFAULT_CONFIG.feature_history_length
    
    def test_on_reading_chaining(self):
        received = []
        pipeline = make_pipeline().on_reading(received.append).on_reading(lambda r: None)
        pipeline.tick()
        assert len(received) == 1
    
    def test_tick_uses_clock(self):
        pipeline = make_pipeline()
        pipeline.clock.advance(125)
        reading = pipeline.tick()
        assert reading.timestamp_ms == 125
        assert pipeline.latest is reading
    
    def test_ticks_period_and_duration(self):
        pipeline = make_pipeline()
        readings = list(pipeline.ticks(period_ms=50, duration_ms=1000))
        assert len(readings) == 20
        assert [r.timestamp_ms for r in readings[:3]] == [0, 50, 100]
        assert pipeline.clock.now_ms() == 1000
    
    def test_wait(self):
        pipeline = make_pipeline()
        pipeline.wait(500)
        assert pipeline.clock.now_ms() == 500
        assert len(pipeline.history) == DEFAULT_CONFIG.feature_history_length
    
    def test_refresh_samples_between_polls(self):
        pipeline = make_pipeline()
        sampled = []
        pipeline.on_reading(sampled.append)
        
        yielded = list(pipeline.ticks(period_ms=50, duration_ms=100))
        
        assert [r.timestamp_ms for r in yielded] == [0, 50]
        assert len(sampled) == 6
        assert sampled[1].timestamp_ms == pytest.approx(1000 / 60)
        assert sampled[3] is yielded[1]
        assert len(pipeline.history) == 6
    
    def test_history_shared_with_extractor(self):
        pipeline = make_pipeline()
        assert pipeline.extractor.history is pipeline.history
        pipeline.tick()
        assert len(pipeline.history) == 1
    
    def test_run_refresh_rate_until_stop(self):
        pipeline = make_pipeline()
        readings = []
        for reading in pipeline.run():
            readings.append(reading)
            if len(readings) == 6:
                pipeline.stop()
        assert len(readings) == 6
        assert readings[1].timestamp_ms == pytest.approx(1000 / 60)
    
    def test_run_with_duration(self):
        pipeline = make_pipeline()
        readings = list(pipeline.run(duration_ms=90))
        assert len(readings) == 6
    
    def test_history_holds_scored_frame(self):
        profile = CalibrationProfile.from_profiles(
            silence=SubProfile(envelope=0.01),
            talking=SubProfile(envelope=0.5, spectral_centroid=500, zero_crossing_rate=0.2),
        )
        pipeline = make_pipeline(ToneSource(frequency_hz=300, amplitude=0.01), profile)
        for reading in pipeline.ticks(50, 500):
            assert pipeline.history.latest == reading.frame
            assert reading.score_terms
    
    def test_extraction_failure_keeps_previous(self, monkeypatch):
        pipeline = make_pipeline()
        first = pipeline.tick()
        
        def boom(audio, profile):
            raise ValueError("bad frame")
        
        monkeypatch.setattr(pipeline.extractor, "extract", boom)
        pipeline.clock.advance(50)
        reading = pipeline.tick()
        assert reading.frame.envelope == first.frame.envelope
        assert reading.timestamp_ms == 50
    
    def test_predictor_failure_keeps_previous(self, monkeypatch):
        pipeline = make_pipeline()
        
        def boom(context):
            raise RuntimeError("predictor bug")
        
        monkeypatch.setattr(pipeline.talking_classifier, "predict", boom)
        reading = pipeline.tick()
        assert reading.is_talking is False
    
    def test_uncalibrated_scores_zero(self):
        pipeline = make_pipeline(ToneSource(frequency_hz=300))
        for reading in pipeline.ticks(50, 300):
            assert reading.confidence == 0.0
    
    def test_reset(self):
        profile = CalibrationProfile.from_profiles(silence=SubProfile(envelope=0.01))
        pipeline = make_pipeline(profile=profile)
        pipeline.wait(200)
        pipeline.reset()
        assert len(pipeline.history) == 0
        assert pipeline.profile.silence.envelope == 0.01
        
        pipeline.reset_calibration()
        assert not pipeline.profile.silence.is_calibrated
    
    def test_tone_produces_features(self):
        pipeline = make_pipeline(ToneSource(frequency_hz=300, amplitude=0.5))
        readings = list(pipeline.ticks(50, 500))
        last = readings[-1].frame
        assert last.envelope > 0
        assert 150 < last.spectral_centroid < 500
        assert last.zero_crossing_rate == pytest.approx(2 * 300 / 44100, rel=0.1)
        assert np.isfinite(last.envelope_slope)
    
    def test_frame_ids_continue_across_failure(self, monkeypatch):
        pipeline = make_pipeline()
        extract = pipeline.extractor.extract
        calls = []
        
        def fail_second(audio, profile):
            calls.append(audio)
            if len(calls) == 2:
                raise ValueError("bad frame")
            return extract(audio, profile)
        
        monkeypatch.setattr(pipeline.extractor, "extract", fail_second)
        readings = []
        for _ in range(4):
            readings.append(pipeline.tick())
            pipeline.clock.advance(50)
        
        assert [r.frame.frame_id for r in readings] == [0, 1, 2, 3]
        assert readings[1].timestamp_ms == 50
        assert readings[1].frame.envelope == readings[0].frame.envelope
    
    def test_slope_variance_reaches_talking_classifier(self):
        profile = CalibrationProfile.from_profiles(
            silence=SubProfile(envelope=0.01),
            talking=SubProfile(
                envelope=0.5,
                spectral_centroid=500,
                zero_crossing_rate=0.2,
                envelope_slope_variance=1e-9,
            ),
        )
        pipeline = make_pipeline(BreathSource(inhale_ms=1000, exhale_ms=1000, seed=3), profile)
        
        flags = [
            pipeline.talking_classifier.describe()["high_slope_variance"]
            for _ in pipeline.ticks(50, 1000)
        ]
        
        assert len(pipeline.history) == DEFAULT_CONFIG.feature_history_length
        assert any(flags)
