"""
Calibration procedure.

Runs the four stages in order on the live pipeline and assigns each
sub-profile to the pipeline's CalibrationProfile as soon as the stage
finishes, so breath scoring switches on right after the talking stage.
"""

from __future__ import annotations

import logging
from typing import Callable

from breathsync.adapters.display import CALIBRATION, Display, NullDisplay
from breathsync.adapters.narrator import NarrationGuard
from breathsync.calibration.stages import (
    StageCollector,
    breathing_in_collector,
    breathing_out_collector,
    silence_collector,
    talking_collector,
)
from breathsync.core.frame import CalibrationProfile, CalibrationStage, SubProfile
from breathsync.core.pipeline import BreathPipeline
from breathsync.feedback.mapper import PaceAdvice, pace_hint

logger = logging.getLogger(__name__)

TOTAL_STEPS = len(CalibrationStage)


class CalibrationProfileBuilder:
    """
    Drives silence, talking, breathing-in and breathing-out calibration.
    
    Usage:
        builder = CalibrationProfileBuilder(pipeline, guard, display)
        profile = builder.run()
        advice = builder.show_results()
    """
    
    def __init__(
        self,
        pipeline: BreathPipeline,
        guard: NarrationGuard,
        display: Display | None = None,
    ) -> None:
        self._pipeline = pipeline
        self._config = pipeline.config
        self._guard = guard
        self._display = display or NullDisplay()
    
    @property
    def profile(self) -> CalibrationProfile:
        return self._pipeline.profile
    
    def run(self) -> CalibrationProfile:
        """Run every stage. Always ends with a complete profile."""
        self.calibrate_silence()
        self.calibrate_talking()
        self.calibrate_breathing_in()
        self.calibrate_breathing_out()
        return self.profile
    
    def reset(self) -> None:
        """Forget every sub-profile so run() can start over."""
        self._pipeline.reset_calibration()
    
    def calibrate_silence(self) -> SubProfile:
        self._display.set_calibration_step(1, TOTAL_STEPS)
        self._say("Let's start by calibrating silence. Please remain quiet and still for a few seconds.")
        self._display.set_instruction("Stay quiet and still...")
        
        result = self._capture(silence_collector(self._config), lambda c: c.progress)
        self._say("Good. Silence calibrated.")
        return result
    
    def calibrate_talking(self) -> SubProfile:
        self._display.set_calibration_step(2, TOTAL_STEPS)
        self._say(
            "Now, please speak normally for a few seconds. "
            "Count from one to ten, or say anything you like."
        )
        self._display.set_instruction("Please speak now... (count 1 to 10)")
        
        result = self._capture(talking_collector(self._config), lambda c: c.progress)
        self._say("Thank you. Now let's measure your breathing.")
        return result
    
    def calibrate_breathing_in(self) -> SubProfile:
        self._display.set_calibration_step(3, TOTAL_STEPS)
        self._say(
            "Take a slow, deep breath in through your nose. "
            "Start when you're ready and breathe in completely."
        )
        self._display.set_instruction("Breathe IN slowly... (we're measuring)")
        
        collector = breathing_in_collector(self._config, self.profile.silence, self.profile.talking)
        result = self._capture(collector, lambda c: c.level)
        
        if collector.timed_out:
            self._say("Using default timing. Let's continue.")
        else:
            self._show_timing("Inhale", result)
            self._say(f"Good. Your inhale was {result.duration_ms / 1000:.1f} seconds.")
        return result
    
    def calibrate_breathing_out(self) -> SubProfile:
        self._display.set_calibration_step(4, TOTAL_STEPS)
        self._display.set_sphere(CALIBRATION, 100.0)
        self._say("Now slowly breathe out through your mouth. Start when you're ready.")
        self._display.set_instruction("Breathe OUT slowly... (we're measuring)")
        
        collector = breathing_out_collector(self._config, self.profile.silence, self.profile.breathing_in)
        result = self._capture(collector, lambda c: c.progress)
        
        if collector.timed_out:
            self._say("Using default timing. Calibration complete.")
        else:
            self._display.set_sphere(CALIBRATION, 0.0)
            self._show_timing("Exhale", result)
            self._say(f"Your exhale was {result.duration_ms / 1000:.1f} seconds. Calibration complete.")
        return result
    
    def show_results(self) -> PaceAdvice:
        """Compare the measured pace with the target and announce the hint."""
        advice = pace_hint(self.profile, self._config)
        self._display.set_instruction(
            f"Measured {advice.measured_inhale_s:.1f}s in / {advice.measured_exhale_s:.1f}s out, "
            f"target {advice.target_inhale_s:.1f}s / {advice.target_exhale_s:.1f}s"
        )
        self._guard.speak(advice.hint)
        return advice
    
    def _capture(
        self,
        collector: StageCollector,
        fill: Callable[[StageCollector], float],
    ) -> SubProfile:
        self._pipeline.wait(self._config.calibration_settle_ms)
        
        for reading in self._pipeline.ticks(self._config.poll_interval_ms):
            done = collector.feed(reading.frame)
            self._display.set_sphere(CALIBRATION, fill(collector))
            if done:
                break
        
        result = collector.result
        self.profile.assign(collector.stage, result)
        logger.info(
            f"Calibrated {collector.stage.value}: envelope={result.envelope:.4f} "
            f"centroid={result.spectral_centroid:.0f}Hz zcr={result.zero_crossing_rate:.3f} "
            f"samples={collector.sample_count}"
        )
        return result
    
    def _show_timing(self, label: str, result: SubProfile) -> None:
        self._display.set_instruction(
            f"{label}: {result.duration_ms / 1000:.1f}s | Centroid: {result.spectral_centroid:.0f}Hz"
        )
    
    def _say(self, text: str) -> None:
        self._guard.speak_and_wait(text, self._pipeline)
