"""Feature extraction and breath scoring."""

from breathsync.analyzers.features import FeatureExtractor
from breathsync.analyzers.scoring import BreathScorer, ScoreBreakdown

__all__ = [
    "FeatureExtractor",
    "BreathScorer",
    "ScoreBreakdown",
]
