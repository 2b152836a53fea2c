from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class InputEvent:
    # "still_there" | "stolen" | "toggle_play" | "playhead_left" | "playhead_right"
    # | "start_left" | "start_right" | "end_left" | "end_right" | "reset" | "quit"
    kind: str


# Printable keys shared by both keyboard backends.
CHAR_KEYS: dict[str, str] = {
    "y": "still_there",
    "n": "stolen",
    " ": "toggle_play",
    "[": "start_left",
    "]": "start_right",
    "{": "end_left",
    "}": "end_right",
    "r": "reset",
    "q": "quit",
}


def event_for_char(ch: str) -> InputEvent | None:
    kind = CHAR_KEYS.get(ch) or CHAR_KEYS.get(ch.lower())
    return InputEvent(kind=kind) if kind else None
