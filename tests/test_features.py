"""Tests for feature extraction."""

import math

import numpy as np
import pytest

from breathsync.analyzers.features import FeatureExtractor
from breathsync.core.config import BreathConfig
from breathsync.core.frame import CalibrationProfile, SubProfile
from breathsync.core.stream import AudioFrame, FeatureHistory

SAMPLE_RATE = 44100
FFT_SIZE = 2048
BIN_HZ = SAMPLE_RATE / FFT_SIZE


def make_audio(magnitudes=None, samples=None, timestamp_ms=0.0):
    if magnitudes is None:
        magnitudes = np.zeros(FFT_SIZE // 2, dtype=np.float32)
    if samples is None:
        samples = np.zeros(FFT_SIZE, dtype=np.float32)
    return AudioFrame(
        magnitudes=np.asarray(magnitudes, dtype=np.float32),
        samples=np.asarray(samples, dtype=np.float32),
        sample_rate=SAMPLE_RATE,
        timestamp_ms=timestamp_ms,
    )


def band_magnitudes(value=1.0):
    """Magnitudes equal to `value` across the 80-600 Hz band."""
    mags = np.zeros(FFT_SIZE // 2, dtype=np.float32)
    low = math.floor(80 / BIN_HZ)
    high = math.floor(600 / BIN_HZ)
    mags[low:high] = value
    return mags


def calibrated_profile():
    return CalibrationProfile.from_profiles(
        silence=SubProfile(envelope=0.01, spectral_centroid=150, zero_crossing_rate=0.01),
        talking=SubProfile(envelope=0.5, spectral_centroid=500, zero_crossing_rate=0.2, envelope_slope_variance=0.01),
        breathing_in=SubProfile(envelope=0.2, spectral_centroid=250, zero_crossing_rate=0.05, duration_ms=4000),
        breathing_out=SubProfile(envelope=0.2, spectral_centroid=200, zero_crossing_rate=0.05, duration_ms=4000),
    )


class TestFeatureExtractor:
    def test_silence(self):
        extractor = FeatureExtractor()
        frame = extractor.extract(make_audio(), CalibrationProfile())
        assert frame.envelope == 0.0
        assert frame.envelope_slope == 0.0
        assert frame.spectral_centroid == 0.0
        assert frame.zero_crossing_rate == 0.0
        assert frame.breath_score == 0.0
    
    def test_band_rms_and_smoothing(self):
        extractor = FeatureExtractor()
        profile = CalibrationProfile()
        
        first = extractor.extract(make_audio(band_magnitudes(1.0)), profile)
        assert first.envelope == pytest.approx(0.3)
        assert first.envelope_slope == pytest.approx(0.3)
        
        second = extractor.extract(make_audio(band_magnitudes(1.0)), profile)
        assert second.envelope == pytest.approx(0.51)
        assert second.envelope_slope == pytest.approx(0.21)
    
    def test_energy_outside_band_ignored(self):
        mags = np.zeros(FFT_SIZE // 2, dtype=np.float32)
        mags[200:] = 1.0  # above 4 kHz
        frame = FeatureExtractor().extract(make_audio(mags), CalibrationProfile())
        assert frame.envelope == 0.0
    
    def test_spectral_centroid_single_bin(self):
        mags = np.zeros(FFT_SIZE // 2, dtype=np.float32)
        mags[10] = 1.0
        frame = FeatureExtractor().extract(make_audio(mags), CalibrationProfile())
        assert frame.spectral_centroid == pytest.approx(10 * BIN_HZ)
    
    def test_zero_crossing_rate(self):
        alternating = np.where(np.arange(FFT_SIZE) % 2 == 0, 0.5, -0.5)
        frame = FeatureExtractor().extract(make_audio(samples=alternating), CalibrationProfile())
        assert frame.zero_crossing_rate == pytest.approx(1.0)
    
    def test_zero_crossing_rate_sine(self):
        t = np.arange(FFT_SIZE) / SAMPLE_RATE
        tone = np.sin(2 * np.pi * 441 * t + 0.1)
        frame = FeatureExtractor().extract(make_audio(samples=tone), CalibrationProfile())
        expected = 2 * 441 / SAMPLE_RATE
        assert frame.zero_crossing_rate == pytest.approx(expected, rel=0.05)
    
    def test_pushes_scored_frame_to_history(self):
        history = FeatureHistory(30)
        extractor = FeatureExtractor(history=history)
        profile = calibrated_profile()
        
        for i in range(3):
            frame = extractor.extract(make_audio(band_magnitudes(0.3), timestamp_ms=i * 50), profile)
        
        assert len(history) == 3
        assert history.latest == frame
        assert history.latest.breath_score == frame.breath_score
        assert [f.frame_id for f in history] == [0, 1, 2]
        assert frame.timestamp_ms == 100
    
    def test_keeps_given_empty_history(self):
        history = FeatureHistory(30)
        extractor = FeatureExtractor(history=history)
        assert extractor.history is history
    
    def test_repeat_restamps_previous_frame(self):
        extractor = FeatureExtractor()
        profile = calibrated_profile()
        first = extractor.extract(make_audio(band_magnitudes(0.3)), profile)
        
        repeated = extractor.repeat(make_audio(timestamp_ms=50))
        assert repeated.frame_id == 1
        assert repeated.timestamp_ms == 50
        assert repeated.envelope == first.envelope
        assert len(extractor.history) == 1
        
        after = extractor.extract(make_audio(band_magnitudes(0.3), timestamp_ms=100), profile)
        assert after.frame_id == 2
    
    def test_uncalibrated_score_is_zero(self):
        extractor = FeatureExtractor()
        for _ in range(10):
            frame = extractor.extract(make_audio(band_magnitudes(0.5)), CalibrationProfile())
            assert frame.breath_score == 0.0
    
    def test_calibrated_score_in_range(self):
        extractor = FeatureExtractor()
        frame = extractor.extract(make_audio(band_magnitudes(0.4)), calibrated_profile())
        assert 0.0 < frame.breath_score <= 1.0
        assert extractor.last_breakdown.score == pytest.approx(frame.breath_score)
    
    def test_degenerate_input(self):
        mags = np.full(FFT_SIZE // 2, np.nan, dtype=np.float32)
        samples = np.full(FFT_SIZE, np.inf, dtype=np.float32)
        frame = FeatureExtractor().extract(make_audio(mags, samples), calibrated_profile())
        assert math.isfinite(frame.envelope)
        assert 0.0 <= frame.breath_score <= 1.0
    
    def test_empty_samples(self):
        audio = AudioFrame(
            magnitudes=np.zeros(0, dtype=np.float32),
            samples=np.zeros(0, dtype=np.float32),
            sample_rate=SAMPLE_RATE,
        )
        frame = FeatureExtractor().extract(audio, calibrated_profile())
        assert frame.envelope == 0.0
        assert frame.zero_crossing_rate == 0.0
    
    def test_custom_smoothing(self):
        extractor = FeatureExtractor(BreathConfig(smoothing_factor=1.0))
        frame = extractor.extract(make_audio(band_magnitudes(0.5)), CalibrationProfile())
        assert frame.envelope == pytest.approx(0.5)
    
    def test_reset(self):
        extractor = FeatureExtractor()
        extractor.extract(make_audio(band_magnitudes(1.0)), CalibrationProfile())
        extractor.reset()
        assert len(extractor.history) == 0
        frame = extractor.extract(make_audio(), CalibrationProfile())
        assert frame.envelope == 0.0
        assert frame.frame_id == 0
