"""
Display collaborator.

The display only consumes state. breathsync pushes scalar updates into
it; implementations render them however they like. Every method has a
no-op default so a display can implement just what it shows.
"""

from __future__ import annotations

from abc import ABC
from typing import Any, TYPE_CHECKING

if TYPE_CHECKING:
    from breathsync.core.frame import BreathReading
    from breathsync.feedback.mapper import Feedback
    from breathsync.session.controller import SessionSummary


GUIDE = "guide"
USER = "user"
CALIBRATION = "calibration"

TALKING_WARNING = "Talking detected - please concentrate on breathing"


def clamp_percent(percent: float) -> float:
    return max(0.0, min(100.0, percent))


class Display(ABC):
    """
    Abstract display.
    
    Indicators:
    - "guide": target breathing sphere
    - "user": the user's paced sphere
    - "calibration": calibration capture sphere
    """
    
    def set_sphere(self, indicator: str, percent: float) -> None:
        pass
    
    def set_phase_label(self, text: str) -> None:
        pass
    
    def set_countdown(self, value: int | None) -> None:
        pass
    
    def set_talking_warning(self, text: str) -> None:
        pass
    
    def set_instruction(self, text: str) -> None:
        pass
    
    def set_narration(self, text: str) -> None:
        pass
    
    def set_round(self, current: int, total: int) -> None:
        pass
    
    def set_calibration_step(self, step: int, total: int) -> None:
        pass
    
    def set_feedback(self, feedback: Feedback) -> None:
        pass
    
    def show_debug(self, reading: BreathReading) -> None:
        pass
    
    def show_summary(self, summary: SessionSummary) -> None:
        pass


class NullDisplay(Display):
    """Display that shows nothing."""


class RecordingDisplay(Display):
    """
    Keeps the latest value of every field plus the full update log.
    
    Useful for tests and for bridging to other UIs.
    """
    
    def __init__(self, record_debug: bool = False) -> None:
        self._record_debug = record_debug
        self.state: dict[str, Any] = {}
        self.events: list[tuple[str, Any]] = []
    
    def _record(self, key: str, value: Any) -> None:
        self.state[key] = value
        self.events.append((key, value))
    
    def values(self, key: str) -> list[Any]:
        """Every value recorded for one key, in order."""
        return [value for name, value in self.events if name == key]
    
    def set_sphere(self, indicator: str, percent: float) -> None:
        self._record(f"sphere.{indicator}", clamp_percent(percent))
    
    def set_phase_label(self, text: str) -> None:
        self._record("phase_label", text)
    
    def set_countdown(self, value: int | None) -> None:
        self._record("countdown", value)
    
    def set_talking_warning(self, text: str) -> None:
        self._record("talking_warning", text)
    
    def set_instruction(self, text: str) -> None:
        self._record("instruction", text)
    
    def set_narration(self, text: str) -> None:
        self._record("narration", text)
    
    def set_round(self, current: int, total: int) -> None:
        self._record("round", (current, total))
    
    def set_calibration_step(self, step: int, total: int) -> None:
        self._record("calibration_step", (step, total))
    
    def set_feedback(self, feedback: Feedback) -> None:
        self._record("feedback", feedback)
    
    def show_debug(self, reading: BreathReading) -> None:
        if self._record_debug:
            self._record("debug", reading.to_dict())
        else:
            self.state["debug"] = reading.to_dict()
    
    def show_summary(self, summary: SessionSummary) -> None:
        self._record("summary", summary)


def format_bar(value: float, width: int = 20, filled: str = "#", empty: str = ".") -> str:
    """Create a visual bar for a 0-1 value."""
    value = max(0.0, min(1.0, value))
    filled_count = int(value * width)
    return filled * filled_count + empty * (width - filled_count)


class ConsoleDisplay(Display):
    """
    Terminal display.
    
    Prints phase changes, prompts and feedback as lines, and redraws the
    sphere bars in place.
    """
    
    def __init__(self, debug: bool = False, width: int = 20) -> None:
        self._debug = debug
        self._width = width
        self._spheres: dict[str, float] = {GUIDE: 0.0, USER: 0.0, CALIBRATION: 0.0}
        self._countdown: int | None = None
        self._warning = ""
    
    def _line(self, text: str) -> None:
        print("\r" + " " * 80 + "\r", end="")
        print(text, flush=True)
    
    def _redraw(self) -> None:
        guide = format_bar(self._spheres[GUIDE] / 100, self._width)
        user = format_bar(self._spheres[USER] / 100, self._width)
        countdown = f"{self._countdown:2d}s" if self._countdown is not None else " ..."
        warning = f"  [!] {self._warning}" if self._warning else ""
        print(f"\r  guide [{guide}]  you [{user}]  {countdown}{warning}", end="", flush=True)
    
    def set_sphere(self, indicator: str, percent: float) -> None:
        self._spheres[indicator] = clamp_percent(percent)
        if indicator == CALIBRATION:
            bar = format_bar(self._spheres[CALIBRATION] / 100, self._width)
            print(f"\r  capture [{bar}]", end="", flush=True)
        else:
            self._redraw()
    
    def set_phase_label(self, text: str) -> None:
        self._line(f"\n  == {text}")
    
    def set_countdown(self, value: int | None) -> None:
        self._countdown = value
        self._redraw()
    
    def set_talking_warning(self, text: str) -> None:
        self._warning = text
    
    def set_instruction(self, text: str) -> None:
        self._line(f"  > {text}")
    
    def set_narration(self, text: str) -> None:
        self._line(f"  [VOICE] {text}")
    
    def set_round(self, current: int, total: int) -> None:
        self._line(f"\n  Round {current} of {total}")
    
    def set_calibration_step(self, step: int, total: int) -> None:
        self._line(f"\n  Calibration step {step} of {total}")
    
    def set_feedback(self, feedback: Feedback) -> None:
        self._line(f"  [SYNC {feedback.score:3.0f}%] {feedback.message}")
    
    def show_debug(self, reading: BreathReading) -> None:
        if not self._debug:
            return
        f = reading.frame
        talking = "YES" if reading.is_talking else "no"
        print(
            f"\r  env {f.envelope:.3f}  slope {f.envelope_slope:+.4f}  "
            f"centroid {f.spectral_centroid:4.0f}Hz  zcr {f.zero_crossing_rate:.3f}  "
            f"score {f.breath_score:.0%}  phase {reading.phase.value:<7}  talking {talking}",
            end="",
            flush=True,
        )
    
    def show_summary(self, summary: SessionSummary) -> None:
        minutes, seconds = divmod(int(summary.duration_s), 60)
        self._line(f"\n{'=' * 60}")
        self._line(f"  Rounds:   {summary.rounds_completed}")
        self._line(f"  Duration: {minutes}:{seconds:02d}")
        self._line(f"  Sync:     {round(summary.average_sync)}%")
        self._line(f"  Breaths:  {summary.total_breaths}")
        if summary.talking_phases:
            self._line(f"  Talking detected in {summary.talking_phases} phase(s)")
        self._line(f"{'=' * 60}")
