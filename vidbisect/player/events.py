from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class MediaEvent:
    kind: str  # "metadata_ready" | "frame_ready" | "time_advanced" | "paused"
    position: float | None = None
    duration: float | None = None
    # Seek generation a "frame_ready" completes; None for other kinds.
    generation: int | None = None


class MediaPlayer(Protocol):
    """Media primitive driven by absolute seeks.

    Every command is fire-and-forget. Completion and playback progress come
    back later through `poll_events()`.
    """

    def load(self, path: str) -> None: ...

    def unload(self) -> None: ...

    def seek(self, time_sec: float, generation: int) -> None: ...

    def play(self) -> None: ...

    def pause(self) -> None: ...

    def poll_events(self) -> list[MediaEvent]: ...

    def show_status(self, text: str, *, dimmed: bool) -> None: ...

    def close(self) -> None: ...
