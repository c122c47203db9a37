"""
Base predictor protocol.

Predictors turn the current feature frame into a debounced decision.
Unlike the extractor they keep state across ticks.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Generic, TypeVar, TYPE_CHECKING

if TYPE_CHECKING:
    from breathsync.core.frame import FeatureFrame, CalibrationProfile
    from breathsync.core.stream import FeatureHistory


T = TypeVar("T")


@dataclass
class PredictionContext:
    """Context passed to predictors once the frame has been extracted."""
    frame: FeatureFrame
    history: FeatureHistory
    profile: CalibrationProfile


class Predictor(ABC, Generic[T]):
    """
    Abstract base for per-tick predictors.
    
    Implementation requirements:
    - Must be a total function of its inputs (never raise on odd values)
    - Must not block
    - Reads the frame only after extraction has finished for the tick
    """
    
    @property
    @abstractmethod
    def name(self) -> str:
        """Unique predictor name."""
        ...
    
    @abstractmethod
    def predict(self, context: PredictionContext) -> T:
        """
        Consume one tick and return the current decision.
        
        Args:
            context: Frame, history and calibration of this tick
        """
        ...
    
    def reset(self) -> None:
        """Reset predictor state (if any)."""
        pass
    
    def describe(self) -> dict[str, Any]:
        """Internal state for debug displays."""
        return {}
