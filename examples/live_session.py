"""
breathsync Live Session

Calibrates on the default microphone and runs a three-round session.

Requires:
    pip install breathsync[audio]
"""

import logging
from dataclasses import replace

from breathsync import BreathApp, DEFAULT_CONFIG
from breathsync.adapters.display import ConsoleDisplay
from breathsync.sources import MicrophoneSource


def main():
    logging.basicConfig(level=logging.INFO)
    config = replace(DEFAULT_CONFIG, total_rounds=3)
    
    app = BreathApp(MicrophoneSource(config), config, display=ConsoleDisplay())
    if not app.init_audio():
        print("Microphone unavailable")
        return
    
    try:
        app.calibrate()
        input("\nPress Enter to begin...")
        app.start_session()
    except KeyboardInterrupt:
        app.stop_session()
    finally:
        app.close()


if __name__ == "__main__":
    main()
