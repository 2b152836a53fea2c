from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from vidbisect.player.events import MediaEvent, MediaPlayer

from .assets import validate_video_asset
from .bisect import bisect as bisect_interval
from .config import Settings
from .drag import DragState, begin_drag, drag_transition, end_drag, move_playhead
from .models import PreconditionViolation, SearchInterval, SessionView, Verdict
from .playback import (
    PlaybackState,
    PlaybackStep,
    player_paused,
    start_playback,
    stop_playback,
    time_advanced,
)
from .readiness import ReadinessState, frame_ready, is_stale, request_seek
from .timeline import TrackRect, time_from_position


@dataclass(frozen=True)
class ActionResult:
    ok: bool
    reason: str | None = None


ACCEPTED = ActionResult(ok=True)


class BisectSession:
    """Owns the search state for one loaded video and keeps the player in sync.

    All mutation happens on discrete events: user gestures (methods below)
    and media events (`dispatch()`). Each one runs a pure transition from
    `bisect`, `drag`, `playback` or `readiness`, checks the interval
    invariants, and only then sends a command to the player.

    The media binding is scoped: `reset()`, loading a replacement, or leaving
    the `with` block always releases it.
    """

    def __init__(self, *, player: MediaPlayer, settings: Settings) -> None:
        self.player = player
        self.settings = settings
        self.debug = bool(settings.debug)

        self._asset_path: str | None = None
        self._bound = False
        self._duration = 0.0
        self._min_span = float(settings.min_span_sec)
        self._interval: SearchInterval | None = None
        self._drag = DragState()
        self._playback = PlaybackState()
        self._readiness = ReadinessState()
        self._step_count = 0

        self._handlers: dict[str, Callable[[MediaEvent], None]] = {
            "metadata_ready": self._on_metadata_ready,
            "frame_ready": self._on_frame_ready,
            "time_advanced": self._on_time_advanced,
            "paused": self._on_paused,
        }

    def __enter__(self) -> "BisectSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.reset()

    # --- Read-only state for rendering ---
    @property
    def interval(self) -> SearchInterval | None:
        return self._interval

    @property
    def duration(self) -> float:
        return self._duration

    @property
    def min_span_sec(self) -> float:
        return self._min_span

    @property
    def step_count(self) -> int:
        return self._step_count

    @property
    def drag(self) -> DragState:
        return self._drag

    @property
    def playback(self) -> PlaybackState:
        return self._playback

    @property
    def readiness(self) -> ReadinessState:
        return self._readiness

    @property
    def asset_path(self) -> str | None:
        return self._asset_path

    @property
    def can_bisect(self) -> bool:
        return self._interval is not None and not self._playback.playing and self._readiness.ready

    def view(self) -> SessionView:
        return SessionView(
            duration=self._duration,
            interval=self._interval,
            drag_kind=self._drag.kind,
            playback=self._playback.status,
            readiness=self._readiness.status,
            step_count=self._step_count,
            asset_path=self._asset_path,
        )

    # --- Lifecycle ---
    def load(self, path: str | Path) -> None:
        """Bind a video to the player. The interval appears on metadata_ready.

        Raises InvalidAssetError before touching any state when the file is
        not a video.
        """

        asset = validate_video_asset(path, self.settings.extensions)
        if self._bound:
            self.reset()

        self._bound = True
        self._asset_path = str(asset)
        try:
            self.player.load(str(asset))
        except BaseException:
            self.reset()
            raise

        if self.debug:
            print(f"[debug] session: load {asset.name}")

    def reset(self) -> None:
        """Return to the no-video state, releasing the player binding."""

        was_bound = self._bound
        try:
            if was_bound:
                self.player.unload()
        finally:
            self._bound = False
            self._asset_path = None
            self._duration = 0.0
            self._min_span = float(self.settings.min_span_sec)
            self._interval = None
            self._drag = DragState()
            self._playback = PlaybackState()
            self._readiness = ReadinessState()
            self._step_count = 0
            if was_bound and self.debug:
                print("[debug] session: reset")

    # --- Helpers ---
    def _guard(self, name: str, fn: Callable[[], None]) -> ActionResult:
        try:
            fn()
        except PreconditionViolation as e:
            if self.debug:
                print(f"[debug] session: {name} rejected reason={e.reason} ({e})")
            return ActionResult(ok=False, reason=e.reason)
        return ACCEPTED

    def _require_interval(self) -> SearchInterval:
        if self._interval is None:
            raise PreconditionViolation("no_video")
        return self._interval

    def _require_paused(self) -> None:
        if self._playback.playing:
            raise PreconditionViolation("playing")

    def _commit(self, interval: SearchInterval) -> None:
        interval.check(duration=self._duration, min_span_sec=self._min_span)
        self._interval = interval

    def _seek(self, time_sec: float) -> None:
        # Pending first: a stale frame must never look authoritative.
        self._readiness = request_seek(self._readiness)
        self.player.seek(time_sec, self._readiness.generation)

    def _apply_gesture(self, interval: SearchInterval) -> None:
        previous = self._require_interval()
        self._commit(interval)
        # Bound-only moves do not reseek; handle drags would otherwise seek
        # on every pixel.
        if interval.current != previous.current:
            self._seek(interval.current)

    def _apply_playback(self, step: PlaybackStep) -> None:
        self._commit(step.interval)
        self._playback = step.state
        if step.command == "pause":
            self.player.pause()
        if step.seek_to is not None:
            self._seek(step.seek_to)
        if step.command == "play":
            self.player.play()

    # --- Bisect ---
    def bisect(self, verdict: Verdict) -> ActionResult:
        def _do() -> None:
            interval = self._require_interval()
            self._require_paused()
            if not self._readiness.ready:
                raise PreconditionViolation("pending")
            new = bisect_interval(interval, verdict, min_span_sec=self._min_span)
            self._commit(new)
            self._step_count += 1
            self._seek(new.current)
            if self.debug:
                print(
                    f"[debug] bisect: step={self._step_count} verdict={verdict} "
                    f"range=[{new.start:.3f}, {new.end:.3f}] current={new.current:.3f}"
                )

        return self._guard("bisect", _do)

    def still_there(self) -> ActionResult:
        return self.bisect("present")

    def stolen(self) -> ActionResult:
        return self.bisect("absent")

    # --- Timeline gestures ---
    def pointer_down(self, kind: str) -> ActionResult:
        def _do() -> None:
            self._require_interval()
            self._require_paused()
            self._drag = begin_drag(self._drag, kind)

        return self._guard("pointer_down", _do)

    def pointer_move(self, client_x: float, rect: TrackRect) -> ActionResult:
        def _do() -> None:
            interval = self._require_interval()
            if not self._drag.active:
                raise PreconditionViolation("not_dragging")
            self._require_paused()
            t = time_from_position(client_x, rect, self._duration)
            new = drag_transition(
                self._drag,
                interval,
                t,
                duration=self._duration,
                min_span_sec=self._min_span,
            )
            self._apply_gesture(new)

        return self._guard("pointer_move", _do)

    def pointer_up(self) -> ActionResult:
        self._drag = end_drag(self._drag)
        return ACCEPTED

    def click_timeline(self, client_x: float, rect: TrackRect) -> ActionResult:
        """One-shot playhead drag to the clicked position (may widen the range)."""

        def _do() -> None:
            interval = self._require_interval()
            if self._drag.active:
                raise PreconditionViolation("dragging")
            self._require_paused()
            t = time_from_position(client_x, rect, self._duration)
            self._apply_gesture(move_playhead(interval, t, duration=self._duration))

        return self._guard("click_timeline", _do)

    # --- Playback ---
    def play(self) -> ActionResult:
        def _do() -> None:
            interval = self._require_interval()
            if self._drag.active:
                raise PreconditionViolation("dragging")
            self._apply_playback(start_playback(self._playback, interval))

        return self._guard("play", _do)

    def pause(self) -> ActionResult:
        def _do() -> None:
            interval = self._require_interval()
            self._apply_playback(stop_playback(self._playback, interval))

        return self._guard("pause", _do)

    def toggle_playback(self) -> ActionResult:
        if self._playback.playing:
            return self.pause()
        return self.play()

    # --- Media events ---
    def dispatch(self, event: MediaEvent) -> None:
        handler = self._handlers.get(event.kind)
        if handler is None:
            if self.debug:
                print(f"[debug] session: ignoring media event {event.kind!r}")
            return
        if not self._bound:
            # Late event from a binding that was already released.
            return
        handler(event)

    def pump(self) -> int:
        """Deliver all pending player events; return how many were handled."""

        events = self.player.poll_events()
        for evt in events:
            self.dispatch(evt)
        return len(events)

    def _on_metadata_ready(self, event: MediaEvent) -> None:
        if self._interval is not None:
            return
        duration = event.duration
        if duration is None or duration <= 0:
            if self.debug:
                print(f"[debug] session: unusable duration {duration!r}; waiting")
            return

        self._duration = float(duration)
        # A clip shorter than the granularity is searched as one span.
        self._min_span = min(float(self.settings.min_span_sec), self._duration)
        self._commit(SearchInterval.initial(self._duration))
        self._seek(self._interval.current)
        if self.debug:
            print(f"[debug] session: duration={self._duration:.3f}s min_span={self._min_span:.3f}s")

    def _on_frame_ready(self, event: MediaEvent) -> None:
        if is_stale(self._readiness, event.generation):
            if self.debug:
                print(
                    f"[debug] readiness: drop stale frame gen={event.generation} "
                    f"latest={self._readiness.generation}"
                )
            return
        self._readiness = frame_ready(self._readiness, event.generation)

    def _on_time_advanced(self, event: MediaEvent) -> None:
        if self._interval is None or event.position is None:
            return
        step = time_advanced(self._playback, self._interval, event.position)
        if step.seek_to is not None and self.debug:
            print(f"[debug] playback: loop at {event.position:.3f}s -> {step.seek_to:.3f}s")
        self._apply_playback(step)

    def _on_paused(self, event: MediaEvent) -> None:
        if self._interval is None:
            return
        self._apply_playback(player_paused(self._playback, self._interval, event.position))
