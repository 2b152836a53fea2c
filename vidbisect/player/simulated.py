from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable

from .events import MediaEvent


@dataclass
class SimulatedPlayer:
    """In-process stand-in for mpv.

    Used by `--dry-run` and by tests. It has no decoder: `duration` is given
    up front and playback advances with `time_fn`. Events are queued and only
    delivered by `poll_events()`, so completions are asynchronous from the
    caller's point of view.
    """

    duration: float
    debug: bool = False
    time_fn: Callable[[], float] = time.monotonic

    commands: list[tuple[Any, ...]] = field(default_factory=list)
    status_text: str = ""
    dimmed: bool = False

    _path: str | None = None
    _position: float = 0.0
    _playing: bool = False
    _last_tick: float = 0.0
    _queue: list[MediaEvent] = field(default_factory=list)

    @property
    def position(self) -> float:
        return self._position

    @property
    def playing(self) -> bool:
        return self._playing

    @property
    def loaded_path(self) -> str | None:
        return self._path

    def seeks(self) -> list[float]:
        return [float(c[1]) for c in self.commands if c[0] == "seek"]

    def load(self, path: str) -> None:
        self.commands.append(("load", str(path)))
        self._path = str(path)
        self._position = 0.0
        self._playing = False
        self._queue.clear()
        self._queue.append(MediaEvent(kind="metadata_ready", duration=float(self.duration)))
        if self.debug:
            print(f"[debug] sim: load {path} duration={self.duration:.2f}s")

    def unload(self) -> None:
        self.commands.append(("unload",))
        self._path = None
        self._playing = False
        self._position = 0.0
        self._queue.clear()

    def seek(self, time_sec: float, generation: int) -> None:
        self.commands.append(("seek", float(time_sec), int(generation)))
        if self._path is None:
            return
        self._position = max(0.0, min(float(self.duration), float(time_sec)))
        self._last_tick = float(self.time_fn())
        self._queue.append(MediaEvent(kind="frame_ready", generation=int(generation), position=self._position))

    def play(self) -> None:
        self.commands.append(("play",))
        if self._path is None:
            return
        self._playing = True
        self._last_tick = float(self.time_fn())

    def pause(self) -> None:
        self.commands.append(("pause",))
        if self._path is None or not self._playing:
            return
        self._advance()
        self._playing = False
        self._queue.append(MediaEvent(kind="paused", position=self._position))

    def _advance(self) -> None:
        now = float(self.time_fn())
        self._position = min(float(self.duration), self._position + max(0.0, now - self._last_tick))
        self._last_tick = now

    def poll_events(self) -> list[MediaEvent]:
        if self._playing:
            self._advance()
            self._queue.append(MediaEvent(kind="time_advanced", position=self._position))
            if self._position >= float(self.duration):
                # End of media: keep the last frame and pause, like mpv --keep-open.
                self._playing = False
                self._queue.append(MediaEvent(kind="paused", position=self._position))
        out = list(self._queue)
        self._queue.clear()
        return out

    def show_status(self, text: str, *, dimmed: bool) -> None:
        self.status_text = text
        self.dimmed = bool(dimmed)

    def close(self) -> None:
        self.unload()
