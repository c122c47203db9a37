#!/usr/bin/env python3
"""
breathsync command line

Calibrates on the microphone, then runs a guided breathing session in
the terminal.

Usage:
    python -m breathsync
    python -m breathsync --rounds 3 --speak "espeak"
    python -m breathsync --list-devices

Requires:
    pip install breathsync[audio]

Press Ctrl+C during the session to stop early and see the summary.
"""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from dataclasses import replace

from breathsync.adapters.display import ConsoleDisplay
from breathsync.adapters.narrator import CommandNarrator
from breathsync.app import BreathApp
from breathsync.core.config import load_config
from breathsync.sources.microphone import MicrophoneSource, list_audio_devices

logger = logging.getLogger("breathsync")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="breathsync",
        description="Guided paced breathing with live microphone breath detection.",
    )
    parser.add_argument("--config", help="YAML file with configuration overrides")
    parser.add_argument("--rounds", type=int, help="Number of breathing rounds")
    parser.add_argument("--device", help="Input device index or name")
    parser.add_argument("--sample-rate", type=int, default=44100, help="Input sample rate in Hz")
    parser.add_argument("--speak", metavar="COMMAND", help="Speech command that takes the text as last argument, e.g. 'say'")
    parser.add_argument("--list-devices", action="store_true", help="List audio devices and exit")
    parser.add_argument("--debug", action="store_true", help="Show live features and debug logging")
    return parser


def wait_for_enter(app: BreathApp, prompt: str) -> None:
    """Keep the app sampling while waiting for the user to press Enter."""
    print(prompt, end="", flush=True)
    pressed = threading.Event()
    
    def _read() -> None:
        sys.stdin.readline()
        pressed.set()
    
    threading.Thread(target=_read, name="stdin", daemon=True).start()
    app.idle(pressed.is_set)


def _device(value: str | None) -> int | str | None:
    if value is None:
        return None
    return int(value) if value.isdigit() else value


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    
    if args.list_devices:
        print(list_audio_devices())
        return 0
    
    try:
        config = load_config(args.config)
        if args.rounds is not None:
            config = replace(config, total_rounds=args.rounds)
    except (OSError, ValueError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    
    display = ConsoleDisplay(debug=args.debug)
    narrator = CommandNarrator(args.speak) if args.speak else None
    source = MicrophoneSource(config, sample_rate=args.sample_rate, device=_device(args.device))
    app = BreathApp(source, config, narrator=narrator, display=display, debug=args.debug)
    
    if not app.init_audio():
        print("Microphone access is required. Check the device and try again.", file=sys.stderr)
        return 1
    
    try:
        app.calibrate()
        wait_for_enter(app, "\n  Press Enter to begin the session...")
        
        previous = signal.signal(signal.SIGINT, lambda signum, frame: app.stop_session())
        try:
            app.start_session()
        finally:
            signal.signal(signal.SIGINT, previous)
    except KeyboardInterrupt:
        print("\n  Stopped.")
    finally:
        app.close()
    
    return 0


if __name__ == "__main__":
    sys.exit(main())
