"""Player adapters.

Real playback uses mpv controlled via JSON IPC; `SimulatedPlayer` stands in
for it in dry runs and tests.
"""

from .events import MediaEvent, MediaPlayer
from .mpv_player import MpvPlayer
from .simulated import SimulatedPlayer

__all__ = ["MediaEvent", "MediaPlayer", "MpvPlayer", "SimulatedPlayer"]
