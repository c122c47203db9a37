"""Tests for configuration loading and validation."""

import dataclasses

import pytest

from breathsync.core.config import BreathConfig, ScoreWeights, DEFAULT_CONFIG, load_config


class TestScoreWeights:
    def test_default_values(self):
        weights = ScoreWeights()
        assert weights.envelope == 0.35
        assert weights.envelope_slope == 0.25
        assert weights.spectral_centroid == 0.20
        assert weights.zero_crossing_rate == 0.20
        assert weights.total == pytest.approx(1.0)
    
    def test_must_sum_to_one(self):
        with pytest.raises(ValueError):
            ScoreWeights(envelope=0.5, envelope_slope=0.5, spectral_centroid=0.5, zero_crossing_rate=0.5)
    
    def test_rejects_negative(self):
        with pytest.raises(ValueError):
            ScoreWeights(envelope=1.2, envelope_slope=-0.2, spectral_centroid=0.0, zero_crossing_rate=0.0)
    
    def test_tolerates_float_rounding(self):
        weights = ScoreWeights(envelope=0.1, envelope_slope=0.2, spectral_centroid=0.3, zero_crossing_rate=0.4)
        assert weights.total == pytest.approx(1.0)


class TestBreathConfig:
    def test_defaults(self):
        config = BreathConfig()
        assert config.target_inhale_ms == 4000
        assert config.target_exhale_ms == 4000
        assert config.hold_ms == 1000
        assert config.total_rounds == 5
        assert config.calibration_duration_ms == 6000
        assert config.adaptation_rate == 0.5
        assert config.fft_size == 2048
        assert config.smoothing_factor == 0.3
        assert config.feature_history_length == 30
        assert config.poll_interval_ms == 50
        assert config.calibration_timeout_ms == 12000
    
    def test_immutable(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            DEFAULT_CONFIG.total_rounds = 10
    
    def test_refresh_interval(self):
        assert BreathConfig().refresh_interval_ms == pytest.approx(1000 / 60)
    
    def test_replace_revalidates(self):
        config = dataclasses.replace(DEFAULT_CONFIG, total_rounds=3)
        assert config.total_rounds == 3
        with pytest.raises(ValueError):
            dataclasses.replace(DEFAULT_CONFIG, total_rounds=0)
    
    @pytest.mark.parametrize("overrides", [
        {"target_inhale_ms": 0},
        {"hold_ms": -1},
        {"adaptation_rate": 0.0},
        {"adaptation_rate": 1.5},
        {"smoothing_factor": 0.0},
        {"feature_history_length": 0},
        {"fft_size": 1000},
        {"band_low_hz": 600, "band_high_hz": 80},
        {"min_decibels": -30, "max_decibels": -100},
    ])
    def test_invalid_values(self, overrides):
        with pytest.raises(ValueError):
            BreathConfig(**overrides)


class TestLoading:
    def test_from_dict(self):
        config = BreathConfig.from_dict({"total_rounds": 3, "target_inhale_ms": 5000})
        assert config.total_rounds == 3
        assert config.target_inhale_ms == 5000
        assert config.target_exhale_ms == 4000
    
    def test_from_dict_nested_weights(self):
        config = BreathConfig.from_dict({
            "weights": {
                "envelope": 0.4,
                "envelope_slope": 0.2,
                "spectral_centroid": 0.2,
                "zero_crossing_rate": 0.2,
            }
        })
        assert isinstance(config.weights, ScoreWeights)
        assert config.weights.envelope == 0.4
    
    def test_from_dict_unknown_key(self):
        with pytest.raises(ValueError, match="Unknown"):
            BreathConfig.from_dict({"rounds": 3})
    
    def test_from_yaml(self, tmp_path):
        path = tmp_path / "breath.yaml"
        path.write_text("total_rounds: 2\nhold_ms: 500\n")
        config = BreathConfig.from_yaml(path)
        assert config.total_rounds == 2
        assert config.hold_ms == 500
    
    def test_from_yaml_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert BreathConfig.from_yaml(path) == DEFAULT_CONFIG
    
    def test_from_yaml_not_a_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- 1\n- 2\n")
        with pytest.raises(ValueError):
            BreathConfig.from_yaml(path)
    
    def test_load_config_default(self):
        assert load_config() is DEFAULT_CONFIG
    
    def test_load_config_path(self, tmp_path):
        path = tmp_path / "breath.yaml"
        path.write_text("total_rounds: 7\n")
        assert load_config(path).total_rounds == 7
    
    def test_to_dict_round_trip(self):
        data = DEFAULT_CONFIG.to_dict()
        assert data["weights"]["envelope"] == 0.35
        assert BreathConfig.from_dict(data) == DEFAULT_CONFIG
