"""
breathsync Simulated Session

Runs calibration and a short guided session against synthetic breath
audio on a virtual clock, so the whole flow completes in a few seconds.
"""

from dataclasses import replace

from breathsync import BreathApp, DEFAULT_CONFIG, ManualClock
from breathsync.adapters.display import ConsoleDisplay
from breathsync.sources import BreathSource


def main():
    config = replace(DEFAULT_CONFIG, total_rounds=2)
    
    # Quiet for the silence and talking stages, then steady 4s breaths.
    source = BreathSource(inhale_ms=4000, exhale_ms=4000, onset_ms=15000, config=config, seed=7)
    app = BreathApp(source, config, ManualClock(), display=ConsoleDisplay())
    
    if not app.init_audio():
        return
    
    advice = app.calibrate()
    print(f"\nMeasured inhale {advice.measured_inhale_s:.1f}s, exhale {advice.measured_exhale_s:.1f}s")
    
    summary = app.start_session()
    print(summary.to_dict())


if __name__ == "__main__":
    main()
