"""
Core processing pipeline.

The pipeline owns the per-tick ordering: the frame is extracted (and
scored) first, then the talking classifier and the phase detector read
it. The source is sampled on a display-refresh cadence (60 Hz by
default); every routine that needs audio, from calibration to the
guided session, consumes the latest reading on its own slower period
through the tick generator.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, Iterator, TypeVar

from breathsync.analyzers.features import FeatureExtractor
from breathsync.core.clock import Clock, SystemClock
from breathsync.core.config import BreathConfig, DEFAULT_CONFIG
from breathsync.core.frame import BreathPhase, BreathReading, CalibrationProfile
from breathsync.core.stream import AudioFrame, AudioSource, FeatureHistory
from breathsync.predictors.base import Predictor, PredictionContext
from breathsync.predictors.phase import PhaseDetector
from breathsync.predictors.talking import TalkingClassifier

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Refresh samples closer than this to a due yield are folded into it.
MIN_SAMPLE_GAP_MS = 1.0


class BreathPipeline:
    """
    Main processing pipeline.
    
    Usage:
        pipeline = BreathPipeline(source, config, clock=SystemClock())
        pipeline.on_reading(display.show_debug)
        
        for reading in pipeline.ticks(period_ms=50, duration_ms=4000):
            handle(reading)
    """
    
    def __init__(
        self,
        source: AudioSource,
        config: BreathConfig | None = None,
        clock: Clock | None = None,
        profile: CalibrationProfile | None = None,
    ) -> None:
        self._config = config or DEFAULT_CONFIG
        self._source = source
        self._clock = clock or SystemClock()
        self._profile = profile if profile is not None else CalibrationProfile()
        
        self._history = FeatureHistory(self._config.feature_history_length)
        self._extractor = FeatureExtractor(self._config, self._history)
        self._talking = TalkingClassifier()
        self._phase = PhaseDetector()
        
        self._callbacks: list[Callable[[BreathReading], None]] = []
        self._latest = BreathReading()
        self._running = False
    
    @property
    def config(self) -> BreathConfig:
        return self._config
    
    @property
    def clock(self) -> Clock:
        return self._clock
    
    @property
    def source(self) -> AudioSource:
        return self._source
    
    @property
    def profile(self) -> CalibrationProfile:
        return self._profile
    
    @property
    def history(self) -> FeatureHistory:
        return self._history
    
    @property
    def extractor(self) -> FeatureExtractor:
        return self._extractor
    
    @property
    def talking_classifier(self) -> TalkingClassifier:
        return self._talking
    
    @property
    def phase_detector(self) -> PhaseDetector:
        return self._phase
    
    @property
    def latest(self) -> BreathReading:
        return self._latest
    
    def on_reading(self, callback: Callable[[BreathReading], None]) -> BreathPipeline:
        """Register a callback for every reading. Returns self for chaining."""
        self._callbacks.append(callback)
        return self
    
    def process(self, audio: AudioFrame) -> BreathReading:
        """
        Process one analyser snapshot.
        
        A failing stage is logged and the previous value is kept, so a
        single bad tick never ends a session.
        """
        try:
            frame = self._extractor.extract(audio, self._profile)
        except Exception as e:
            logger.warning(f"Feature extraction failed on frame {audio.frame_id}: {e}")
            self._latest = replace(self._latest, frame=self._extractor.repeat(audio))
            return self._latest
        
        context = PredictionContext(frame=frame, history=self._history, profile=self._profile)
        is_talking = self._predict(self._talking, context, self._latest.is_talking)
        phase = self._predict(self._phase, context, self._latest.phase)
        
        reading = BreathReading(
            frame=frame,
            phase=phase,
            is_talking=is_talking,
            last_breath_duration_ms=self._phase.last_breath_duration_ms,
            score_terms=self._extractor.last_breakdown.to_dict(),
        )
        self._latest = reading
        
        for callback in self._callbacks:
            callback(reading)
        
        return reading
    
    def _predict(self, predictor: Predictor[T], context: PredictionContext, fallback: T) -> T:
        try:
            return predictor.predict(context)
        except Exception as e:
            logger.warning(f"Predictor {predictor.name} failed on frame {context.frame.frame_id}: {e}")
            return fallback
    
    def tick(self) -> BreathReading:
        """Read the source now and process the snapshot."""
        now_ms = self._clock.now_ms()
        return self.process(self._source.read(now_ms))
    
    def ticks(self, period_ms: float, duration_ms: float | None = None) -> Iterator[BreathReading]:
        """
        Yield the latest reading once per period.
        
        The source is sampled on the display-refresh cadence the whole
        time, so features, talking and phase detection stay live between
        yields. A sample is also taken at every yield, which keeps yields
        on the exact period. Stops once `duration_ms` has elapsed since
        the first tick, or never if no duration is given.
        """
        refresh_ms = self._config.refresh_interval_ms
        start_ms = self._clock.now_ms()
        due_ms = start_ms
        
        while True:
            now_ms = self._clock.now_ms()
            if duration_ms is not None and now_ms - start_ms >= duration_ms:
                return
            
            reading = self.tick()
            if now_ms >= due_ms:
                yield reading
                due_ms = max(due_ms + period_ms, self._clock.now_ms())
            
            next_ms = self._clock.now_ms() + refresh_ms
            if next_ms > due_ms - MIN_SAMPLE_GAP_MS:
                next_ms = due_ms
            self._clock.sleep_until(next_ms)
    
    def wait(self, duration_ms: float, period_ms: float | None = None) -> None:
        """Keep sampling for a while without consuming the readings."""
        for _ in self.ticks(period_ms or self._config.poll_interval_ms, duration_ms):
            pass
    
    def run(self, duration_ms: float | None = None) -> Iterator[BreathReading]:
        """
        Continuous display-refresh sampling until stop() or the duration.
        """
        self._running = True
        try:
            for reading in self.ticks(self._config.refresh_interval_ms, duration_ms):
                if not self._running:
                    break
                yield reading
        finally:
            self._running = False
    
    def stop(self) -> None:
        """Stop a running refresh loop at the next tick boundary."""
        self._running = False
    
    def reset(self) -> None:
        """Reset per-tick state; the calibration profile is kept."""
        self._extractor.reset()
        self._talking.reset()
        self._phase.reset()
        self._latest = BreathReading()
    
    def reset_calibration(self) -> None:
        """Clear every calibration stage so calibration can start over."""
        self._profile.reset()
        self.reset()
    
    @property
    def current_phase(self) -> BreathPhase:
        return self._latest.phase
