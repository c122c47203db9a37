"""Tests for feedback messages and the pace hint."""

import pytest

from breathsync.core.config import DEFAULT_CONFIG
from breathsync.core.frame import CalibrationProfile, SubProfile
from breathsync.feedback.mapper import FeedbackLevel, feedback_for_score, pace_hint


def profile(inhale_ms, exhale_ms):
    return CalibrationProfile.from_profiles(
        breathing_in=SubProfile(envelope=0.1, duration_ms=inhale_ms),
        breathing_out=SubProfile(envelope=0.1, duration_ms=exhale_ms),
    )


class TestFeedback:
    @pytest.mark.parametrize("score,level,message", [
        (100, FeedbackLevel.EXCELLENT, "Excellent! Keep it up!"),
        (81, FeedbackLevel.EXCELLENT, "Excellent! Keep it up!"),
        (80, FeedbackLevel.GOOD, "Good rhythm!"),
        (61, FeedbackLevel.GOOD, "Good rhythm!"),
        (60, FeedbackLevel.FAIR, "Try to match the guide"),
        (41, FeedbackLevel.FAIR, "Try to match the guide"),
        (40, FeedbackLevel.POOR, "Follow the blue sphere"),
        (0, FeedbackLevel.POOR, "Follow the blue sphere"),
    ])
    def test_thresholds(self, score, level, message):
        feedback = feedback_for_score(score)
        assert feedback.level == level
        assert feedback.message == message
        assert feedback.score == score


class TestPaceHint:
    def test_on_pace(self):
        advice = pace_hint(profile(4200, 3800), DEFAULT_CONFIG)
        assert advice.is_on_pace
        assert advice.hint == "Your breathing pace is close to the target. Great!"
    
    def test_slower_and_faster(self):
        advice = pace_hint(profile(3000, 5000), DEFAULT_CONFIG)
        assert not advice.is_on_pace
        assert advice.hint == "To match the target, try to breathe in 1.0s slower and breathe out 1.0s faster."
        assert advice.measured_inhale_s == 3.0
        assert advice.target_exhale_s == 4.0
    
    def test_single_phase_off(self):
        advice = pace_hint(profile(4000, 2500), DEFAULT_CONFIG)
        assert advice.hint == "To match the target, try to breathe out 1.5s slower."
    
    def test_half_second_boundary(self):
        advice = pace_hint(profile(3500, 4000), DEFAULT_CONFIG)
        assert advice.hint == "To match the target, try to breathe in 0.5s slower."
