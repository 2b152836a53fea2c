from __future__ import annotations

from vidbisect.core.models import SessionView
from vidbisect.core.timefmt import format_precise, format_time
from vidbisect.core.timeline import TrackRect, pixel_of, position_from_time


def render_timeline_bar(view: SessionView, *, width: int = 60) -> str:
    """ASCII timeline: '-' outside the range, '=' inside, '[' ']' handles, '|' playhead."""

    width = max(3, int(width))
    if view.interval is None or view.duration <= 0:
        return "-" * width

    rect = TrackRect(left=0.0, width=float(width - 1))

    def col(t: float) -> int:
        return int(round(pixel_of(position_from_time(t, view.duration), rect)))

    lo, hi, cur = col(view.interval.start), col(view.interval.end), col(view.interval.current)
    cells = ["=" if lo <= i <= hi else "-" for i in range(width)]
    cells[lo] = "["
    cells[hi] = "]"
    cells[cur] = "|"
    return "".join(cells)


def render_status(view: SessionView, *, bar_width: int = 60, precise: bool = True) -> str:
    if view.interval is None:
        if view.asset_path is None:
            return "No video loaded."
        return "Loading video..."

    iv = view.interval
    lines = [
        f"Current time: {format_time(iv.current)}" + (f" ({format_precise(iv.current)})" if precise else ""),
        f"Search range: {format_time(iv.start)} - {format_time(iv.end)}",
        f"Range size: {format_time(iv.span)}" + (f" ({iv.span:.3f}s)" if precise else ""),
        f"Steps taken: {view.step_count}",
        render_timeline_bar(view, width=bar_width),
    ]
    if view.playback == "playing":
        lines.append("Playing range (space to pause)")
    elif view.readiness == "pending":
        lines.append("Loading frame...")
    else:
        lines.append("y = Item Still There   n = Item Stolen")
    return "\n".join(lines)
