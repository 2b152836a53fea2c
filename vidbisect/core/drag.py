from __future__ import annotations

from dataclasses import dataclass

from .models import DRAG_KINDS, DragKind, PreconditionViolation, SearchInterval, clamp


@dataclass(frozen=True)
class DragState:
    """Which draggable element, if any, the pointer currently holds."""

    kind: DragKind = "none"

    @property
    def active(self) -> bool:
        return self.kind != "none"


def begin_drag(state: DragState, kind: str) -> DragState:
    if kind not in DRAG_KINDS:
        raise ValueError(f"not a draggable element: {kind!r}")
    return DragState(kind=kind)  # type: ignore[arg-type]


def end_drag(state: DragState) -> DragState:
    # Pointer-up anywhere releases the capture; the last move is final.
    return DragState()


def move_playhead(interval: SearchInterval, t: float, *, duration: float) -> SearchInterval:
    """Put the playhead at `t`, widening the range to include it when needed.

    Dragging the playhead is how the user re-opens a range that was narrowed
    too aggressively, so the playhead is never clamped to the current range.
    """

    t = clamp(t, 0.0, duration)
    return SearchInterval(
        start=min(interval.start, t),
        end=max(interval.end, t),
        current=t,
    )


def move_start_handle(interval: SearchInterval, t: float, *, min_span_sec: float) -> SearchInterval:
    # Bound and pulled-along playhead change in one step so no intermediate
    # state ever has current < start.
    start = clamp(t, 0.0, max(0.0, interval.end - min_span_sec))
    return SearchInterval(
        start=start,
        end=interval.end,
        current=max(interval.current, start),
    )


def move_end_handle(
    interval: SearchInterval, t: float, *, duration: float, min_span_sec: float
) -> SearchInterval:
    end = clamp(t, min(duration, interval.start + min_span_sec), duration)
    return SearchInterval(
        start=interval.start,
        end=end,
        current=min(interval.current, end),
    )


def drag_transition(
    state: DragState,
    interval: SearchInterval,
    t: float,
    *,
    duration: float,
    min_span_sec: float,
) -> SearchInterval:
    """Apply one pointer-move for the captured element."""

    if state.kind == "playhead":
        return move_playhead(interval, t, duration=duration)
    if state.kind == "start_handle":
        return move_start_handle(interval, t, min_span_sec=min_span_sec)
    if state.kind == "end_handle":
        return move_end_handle(interval, t, duration=duration, min_span_sec=min_span_sec)
    raise PreconditionViolation("not_dragging")
