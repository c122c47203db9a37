"""
Narration collaborator.

breathsync does not synthesize speech. It hands prompts to a Narrator
and waits for them through a NarrationGuard, which makes sure the
completion callback fires exactly once: when speech ends, when the
backend fails, or when the estimated speaking time has passed.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
import threading
from abc import ABC, abstractmethod
from typing import Callable, Sequence, TYPE_CHECKING

if TYPE_CHECKING:
    from breathsync.adapters.display import Display
    from breathsync.core.clock import Clock
    from breathsync.core.pipeline import BreathPipeline

logger = logging.getLogger(__name__)


def estimated_duration_ms(text: str) -> float:
    """Upper bound on speaking time: 80 ms per character, at least 2 s."""
    return max(2000.0, len(text) * 80.0)


class Narrator(ABC):
    """
    Abstract speech backend.
    
    speak() must return quickly; on_complete may be called later from
    any thread, or never. The guard covers the "never" case. A new
    prompt replaces the one in flight, so backends that can talk over
    themselves cancel the previous prompt first.
    """
    
    @property
    @abstractmethod
    def name(self) -> str:
        ...
    
    @abstractmethod
    def speak(self, text: str, on_complete: Callable[[], None] | None = None) -> None:
        ...
    
    def cancel(self) -> None:
        """Stop the prompt in flight, if any."""
        pass


class SilentNarrator(Narrator):
    """Visual-only narration: prompts are logged and complete at once."""
    
    @property
    def name(self) -> str:
        return "silent"
    
    def speak(self, text: str, on_complete: Callable[[], None] | None = None) -> None:
        logger.info(f"Prompt: {text}")
        if on_complete is not None:
            on_complete()


class ThreadedNarrator(Narrator):
    """
    Runs a blocking speech function on a background thread.
    
    `cancel_fn` must make a running `speak_fn` return early. Without it
    a new prompt still waits up to `join_timeout_s` for the previous one
    to finish before starting.
    
    Usage:
        narrator = ThreadedNarrator(lambda text: subprocess.run(["say", text], check=True))
    """
    
    def __init__(
        self,
        speak_fn: Callable[[str], None],
        cancel_fn: Callable[[], None] | None = None,
        join_timeout_s: float = 1.0,
    ) -> None:
        self._speak_fn = speak_fn
        self._cancel_fn = cancel_fn
        self._join_timeout_s = join_timeout_s
        self._thread: threading.Thread | None = None
    
    @property
    def name(self) -> str:
        return "threaded"
    
    @property
    def is_speaking(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
    
    def speak(self, text: str, on_complete: Callable[[], None] | None = None) -> None:
        self.cancel()
        
        def _run() -> None:
            try:
                self._speak_fn(text)
            except Exception as e:
                logger.warning(f"Speech backend failed: {e}")
            finally:
                if on_complete is not None:
                    on_complete()
        
        self._thread = threading.Thread(target=_run, name="narrator", daemon=True)
        self._thread.start()
    
    def cancel(self) -> None:
        thread = self._thread
        if thread is None or not thread.is_alive():
            return
        
        if self._cancel_fn is not None:
            try:
                self._cancel_fn()
            except Exception as e:
                logger.warning(f"Could not cancel speech: {e}")
        
        thread.join(self._join_timeout_s)
        if thread.is_alive():
            logger.warning("Previous prompt still speaking after cancel")


class CommandNarrator(Narrator):
    """
    Speaks through an external command such as `say` or `espeak`.
    
    The prompt text is passed as the last argument. Starting a prompt
    terminates the previous command if it is still running.
    
    Usage:
        narrator = CommandNarrator("espeak -s 140")
    """
    
    def __init__(self, command: str | Sequence[str], terminate_timeout_s: float = 1.0) -> None:
        self._argv = shlex.split(command) if isinstance(command, str) else list(command)
        if not self._argv:
            raise ValueError("Speech command must not be empty")
        self._terminate_timeout_s = terminate_timeout_s
        self._process: subprocess.Popen | None = None
    
    @property
    def name(self) -> str:
        return self._argv[0]
    
    @property
    def process(self) -> subprocess.Popen | None:
        return self._process
    
    def speak(self, text: str, on_complete: Callable[[], None] | None = None) -> None:
        self.cancel()
        
        process = subprocess.Popen(
            [*self._argv, text],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
        self._process = process
        
        def _wait() -> None:
            try:
                returncode = process.wait()
                if returncode > 0:
                    logger.warning(f"Speech command exited with status {returncode}")
            finally:
                if on_complete is not None:
                    on_complete()
        
        threading.Thread(target=_wait, name="narrator", daemon=True).start()
    
    def cancel(self) -> None:
        process = self._process
        self._process = None
        if process is None or process.poll() is not None:
            return
        
        process.terminate()
        try:
            process.wait(timeout=self._terminate_timeout_s)
        except subprocess.TimeoutExpired:
            process.kill()
            process.wait()


class Narration:
    """One prompt in flight. Completes exactly once."""
    
    def __init__(
        self,
        text: str,
        started_ms: float,
        on_complete: Callable[[], None] | None = None,
    ) -> None:
        self.text = text
        self.started_ms = started_ms
        self.timeout_ms = estimated_duration_ms(text)
        self._on_complete = on_complete
        self._done = threading.Event()
        self._lock = threading.Lock()
        self._fired = False
    
    @property
    def is_done(self) -> bool:
        return self._done.is_set()
    
    def complete(self) -> bool:
        """Fire the completion. Returns False if it already fired."""
        with self._lock:
            if self._fired:
                return False
            self._fired = True
        self._done.set()
        if self._on_complete is not None:
            self._on_complete()
        return True
    
    def expire(self, now_ms: float) -> bool:
        """Complete the narration if its estimated duration has passed."""
        if now_ms - self.started_ms >= self.timeout_ms:
            return self.complete()
        return False


class NarrationGuard:
    """
    Wraps a Narrator so the session flow can never stall on it.
    
    Every prompt is also mirrored to the display as text, which is the
    whole of the experience when the narrator is silent or broken.
    """
    
    def __init__(
        self,
        narrator: Narrator | None,
        clock: Clock,
        display: Display | None = None,
    ) -> None:
        self._narrator = narrator
        self._clock = clock
        self._display = display
    
    def speak(self, text: str, on_complete: Callable[[], None] | None = None) -> Narration:
        narration = Narration(text, self._clock.now_ms(), on_complete)
        
        if self._display is not None:
            self._display.set_narration(text)
        
        if self._narrator is None:
            narration.complete()
            return narration
        
        try:
            self._narrator.speak(text, narration.complete)
        except Exception as e:
            logger.warning(f"Narrator {self._narrator.name} failed, continuing without speech: {e}")
            narration.complete()
        
        return narration
    
    def speak_and_wait(self, text: str, pipeline: BreathPipeline) -> Narration:
        """
        Speak and keep sampling until the prompt completes or times out.
        """
        narration = self.speak(text)
        if narration.is_done:
            return narration
        
        for _ in pipeline.ticks(pipeline.config.poll_interval_ms):
            if narration.is_done:
                break
            if narration.expire(self._clock.now_ms()):
                logger.debug(f"Narration timed out after {narration.timeout_ms:.0f}ms: {text!r}")
                break
        return narration
    
    def cancel(self) -> None:
        if self._narrator is not None:
            self._narrator.cancel()
