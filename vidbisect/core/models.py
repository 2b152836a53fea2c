from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

DragKind = Literal["playhead", "start_handle", "end_handle", "none"]
PlaybackStatus = Literal["paused", "playing"]
ReadinessStatus = Literal["pending", "ready"]
Verdict = Literal["present", "absent"]

DRAG_KINDS: tuple[str, ...] = ("playhead", "start_handle", "end_handle")

# Tolerance for float comparisons in invariant checks only.
_TOLERANCE = 1e-9


class PreconditionViolation(RuntimeError):
    """An operation was attempted in a state where it is not allowed.

    The caller treats this as a no-op; `reason` is a short machine-readable tag
    (e.g. "playing", "pending", "no_video", "min_span").
    """

    def __init__(self, reason: str, detail: str | None = None) -> None:
        self.reason = reason
        super().__init__(detail or reason)


class IntervalError(ValueError):
    pass


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, float(value)))


@dataclass(frozen=True)
class SearchInterval:
    """Candidate range `[start, end]` known to bracket the event, plus the playhead."""

    start: float
    end: float
    current: float

    @staticmethod
    def initial(duration: float) -> "SearchInterval":
        duration = max(0.0, float(duration))
        return SearchInterval(start=0.0, end=duration, current=duration / 2.0)

    @property
    def span(self) -> float:
        return self.end - self.start

    def check(self, *, duration: float, min_span_sec: float) -> None:
        """Raise IntervalError if `0 <= start <= current <= end <= duration` or the
        minimum span does not hold."""

        tol = _TOLERANCE
        if not (-tol <= self.start <= self.current + tol):
            raise IntervalError(f"start/current out of order: {self}")
        if not (self.current <= self.end + tol):
            raise IntervalError(f"current/end out of order: {self}")
        if self.end > float(duration) + tol:
            raise IntervalError(f"end past duration {duration}: {self}")
        if self.span < float(min_span_sec) - tol:
            raise IntervalError(f"span below {min_span_sec}s: {self}")


@dataclass(frozen=True)
class SessionView:
    """Read-only snapshot handed to the rendering layer."""

    duration: float
    interval: SearchInterval | None
    drag_kind: DragKind
    playback: PlaybackStatus
    readiness: ReadinessStatus
    step_count: int
    asset_path: str | None
