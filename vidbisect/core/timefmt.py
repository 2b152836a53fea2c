from __future__ import annotations

import math


def format_time(seconds: float) -> str:
    """Format seconds as M:SS (minutes are not wrapped into hours)."""

    if not math.isfinite(seconds) or seconds < 0:
        seconds = 0.0
    mins = int(seconds // 60)
    secs = int(seconds % 60)
    return f"{mins}:{secs:02d}"


def format_precise(seconds: float) -> str:
    """M:SS.mmm, for the final answer once the range is small."""

    if not math.isfinite(seconds) or seconds < 0:
        seconds = 0.0
    # Round to the millisecond first so 59.9996 carries into the minute.
    total_ms = int(round(seconds * 1000))
    mins, rem_ms = divmod(total_ms, 60_000)
    return f"{mins}:{rem_ms // 1000:02d}.{rem_ms % 1000:03d}"
