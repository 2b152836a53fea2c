from __future__ import annotations

from dataclasses import dataclass

from vidbisect.core.session import ActionResult, BisectSession
from vidbisect.core.timeline import TrackRect, pixel_of, position_from_time, seconds_per_pixel

from .keys import InputEvent

_NUDGES: dict[str, tuple[str, int]] = {
    "playhead_left": ("playhead", -1),
    "playhead_right": ("playhead", 1),
    "start_left": ("start_handle", -1),
    "start_right": ("start_handle", 1),
    "end_left": ("end_handle", -1),
    "end_right": ("end_handle", 1),
}


@dataclass
class KeyGestures:
    """Turn key presses into the session's pointer gestures on a virtual track.

    The playhead keys act like a click on the timeline (so they can widen the
    range); the handle keys are a pointer-down / move / up on that handle.
    """

    session: BisectSession
    track: TrackRect
    nudge_fraction: float = 0.01

    def handle(self, evt: InputEvent) -> ActionResult | None:
        """Apply `evt`; returns None for events the caller owns (reset, quit)."""

        if evt.kind == "still_there":
            return self.session.still_there()
        if evt.kind == "stolen":
            return self.session.stolen()
        if evt.kind == "toggle_play":
            return self.session.toggle_playback()
        nudge = _NUDGES.get(evt.kind)
        if nudge is None:
            return None
        target_kind, direction = nudge
        if target_kind == "playhead":
            return self._nudge_playhead(direction)
        return self._nudge_handle(target_kind, direction)

    def _step_sec(self) -> float:
        duration = self.session.duration
        # Never smaller than one pixel, or the move would round to nothing.
        return max(duration * float(self.nudge_fraction), seconds_per_pixel(self.track, duration))

    def _x_for(self, t: float) -> float:
        return pixel_of(position_from_time(t, self.session.duration), self.track)

    def _nudge_playhead(self, direction: int) -> ActionResult:
        interval = self.session.interval
        if interval is None:
            return ActionResult(ok=False, reason="no_video")
        target = interval.current + direction * self._step_sec()
        return self.session.click_timeline(self._x_for(target), self.track)

    def _nudge_handle(self, kind: str, direction: int) -> ActionResult:
        interval = self.session.interval
        if interval is None:
            return ActionResult(ok=False, reason="no_video")
        origin = interval.start if kind == "start_handle" else interval.end
        target = origin + direction * self._step_sec()

        down = self.session.pointer_down(kind)
        if not down.ok:
            return down
        try:
            return self.session.pointer_move(self._x_for(target), self.track)
        finally:
            self.session.pointer_up()
