from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class TrackRect:
    """Horizontal extent of the timeline track in client coordinates."""

    left: float
    width: float

    @property
    def right(self) -> float:
        return self.left + self.width


def time_from_position(client_x: float, rect: TrackRect, duration: float) -> float:
    """Map a pointer x coordinate onto the video timeline.

    Positions left/right of the track pin to 0 / duration; we never
    extrapolate beyond the visible track.
    """

    duration = max(0.0, float(duration))
    if rect.width <= 0:
        return 0.0
    x = max(rect.left, min(rect.right, float(client_x)))
    fraction = (x - rect.left) / rect.width
    fraction = max(0.0, min(1.0, fraction))
    return fraction * duration


def position_from_time(time: float, duration: float) -> float:
    """Fraction of the track (0..1) where `time` should be drawn."""

    if duration <= 0:
        return 0.0
    return max(0.0, min(1.0, float(time) / float(duration)))


def pixel_of(fraction: float, rect: TrackRect) -> float:
    return rect.left + max(0.0, min(1.0, float(fraction))) * rect.width


def seconds_per_pixel(rect: TrackRect, duration: float) -> float:
    if rect.width <= 0:
        return float(duration)
    return float(duration) / rect.width
