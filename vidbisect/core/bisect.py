from __future__ import annotations

from .models import PreconditionViolation, SearchInterval, Verdict


def bisect(interval: SearchInterval, verdict: Verdict, *, min_span_sec: float) -> SearchInterval:
    """Halve the search interval around the playhead.

    - "present": the condition still holds at `current`, so the event is later.
    - "absent": the event happened at or before `current`.

    The new playhead is the midpoint of the surviving half. There is no
    termination condition; the caller reports the range size and lets the user
    stop when it is small enough. A split that would leave less than
    `min_span_sec` is refused with PreconditionViolation("min_span").
    """

    if verdict == "present":
        start, end = interval.current, interval.end
    elif verdict == "absent":
        start, end = interval.start, interval.current
    else:
        raise ValueError(f"unknown verdict: {verdict!r}")

    if (end - start) < float(min_span_sec):
        raise PreconditionViolation(
            "min_span",
            f"range {end - start:.3f}s would fall below {float(min_span_sec):.3f}s",
        )

    return SearchInterval(start=start, end=end, current=(start + end) / 2.0)
