"""
Application flow: microphone permission, calibration, ready screen,
guided session and summary.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable

from breathsync.adapters.display import Display, NullDisplay
from breathsync.adapters.narrator import NarrationGuard, Narrator
from breathsync.calibration.builder import CalibrationProfileBuilder
from breathsync.core.clock import Clock
from breathsync.core.config import BreathConfig
from breathsync.core.frame import CalibrationProfile
from breathsync.core.pipeline import BreathPipeline
from breathsync.core.stream import AudioSource
from breathsync.feedback.mapper import PaceAdvice
from breathsync.session.controller import SessionController, SessionSummary

logger = logging.getLogger(__name__)


class AppScreen(str, Enum):
    PERMISSION = "permission"
    CALIBRATION = "calibration"
    READY = "ready"
    SESSION = "session"
    COMPLETE = "complete"


class BreathApp:
    """
    Wires a source, narrator and display into the full breathing flow.
    
    Usage:
        app = BreathApp(MicrophoneSource(config), config, display=ConsoleDisplay())
        if app.init_audio():
            app.calibrate()
            summary = app.start_session()
    """
    
    def __init__(
        self,
        source: AudioSource,
        config: BreathConfig | None = None,
        clock: Clock | None = None,
        narrator: Narrator | None = None,
        display: Display | None = None,
        debug: bool = False,
    ) -> None:
        self._display = display or NullDisplay()
        self._pipeline = BreathPipeline(source, config, clock)
        self._guard = NarrationGuard(narrator, self._pipeline.clock, self._display)
        self._builder = CalibrationProfileBuilder(self._pipeline, self._guard, self._display)
        self._controller: SessionController | None = None
        self._advice: PaceAdvice | None = None
        self._screen = AppScreen.PERMISSION
        
        if debug:
            self._pipeline.on_reading(self._display.show_debug)
    
    @property
    def screen(self) -> AppScreen:
        return self._screen
    
    @property
    def pipeline(self) -> BreathPipeline:
        return self._pipeline
    
    @property
    def profile(self) -> CalibrationProfile:
        return self._pipeline.profile
    
    @property
    def advice(self) -> PaceAdvice | None:
        return self._advice
    
    @property
    def controller(self) -> SessionController | None:
        return self._controller
    
    def init_audio(self) -> bool:
        """Acquire the audio source. On failure stay on the permission screen."""
        if not self._pipeline.source.start():
            logger.error("Audio input unavailable, staying on the permission screen")
            self._screen = AppScreen.PERMISSION
            return False
        self._screen = AppScreen.CALIBRATION
        return True
    
    def ensure_running(self) -> bool:
        source = self._pipeline.source
        if source.is_running:
            return True
        logger.info("Audio source suspended, restarting")
        return source.start()
    
    def calibrate(self) -> PaceAdvice:
        """Run a full (re)calibration and report the pace hint."""
        self.ensure_running()
        self._screen = AppScreen.CALIBRATION
        self._builder.reset()
        self._builder.run()
        self._advice = self._builder.show_results()
        self._screen = AppScreen.READY
        return self._advice
    
    def start_session(self) -> SessionSummary:
        """
        Run a guided session on the current calibration.
        
        Raises RuntimeError if calibration has not completed.
        """
        if not self.profile.is_complete:
            raise RuntimeError("Calibration must complete before a session can start")
        
        self.ensure_running()
        self._controller = SessionController(self._pipeline, self._guard, self._display)
        self._screen = AppScreen.SESSION
        try:
            return self._controller.run()
        finally:
            self._screen = AppScreen.COMPLETE
    
    def stop_session(self) -> None:
        if self._controller is not None:
            self._controller.stop()
    
    def restart(self) -> SessionSummary:
        """Another session with pacing re-derived from the same calibration."""
        return self.start_session()
    
    def idle(self, until: Callable[[], bool], duration_ms: float | None = None) -> None:
        """
        Keep the refresh tick sampling between screens until `until()`
        returns True, the duration passes, or stop_idle() is called.
        """
        self.ensure_running()
        for _ in self._pipeline.run(duration_ms):
            if until():
                break
    
    def stop_idle(self) -> None:
        self._pipeline.stop()
    
    def close(self) -> None:
        self._pipeline.stop()
        self._guard.cancel()
        self._pipeline.source.stop()
