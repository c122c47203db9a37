"""Narrator and display collaborators."""

from breathsync.adapters.narrator import CommandNarrator, Narrator, NarrationGuard, SilentNarrator, ThreadedNarrator
from breathsync.adapters.display import Display, NullDisplay, RecordingDisplay, ConsoleDisplay

__all__ = [
    "Narrator",
    "NarrationGuard",
    "SilentNarrator",
    "ThreadedNarrator",
    "CommandNarrator",
    "Display",
    "NullDisplay",
    "RecordingDisplay",
    "ConsoleDisplay",
]
