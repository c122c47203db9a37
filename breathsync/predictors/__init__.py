"""Per-tick classifiers over the feature stream."""

from breathsync.predictors.base import Predictor, PredictionContext
from breathsync.predictors.talking import TalkingClassifier
from breathsync.predictors.phase import PhaseDetector, PhaseState

__all__ = [
    "Predictor",
    "PredictionContext",
    "TalkingClassifier",
    "PhaseDetector",
    "PhaseState",
]
