from __future__ import annotations

import os
import select
import sys
from dataclasses import dataclass, field
from typing import Any

from .keys import InputEvent, event_for_char

_ESC = 0x1B

# Arrow keys as sent by ANSI terminals.
_ESC_SEQUENCES: dict[bytes, str] = {
    b"\x1b[D": "playhead_left",
    b"\x1b[C": "playhead_right",
    b"\x1bOD": "playhead_left",
    b"\x1bOC": "playhead_right",
}

# Buffer above this size before a poll is terminal noise, not a key press.
_MAX_PENDING_BYTES = 16


def consume_posix_buffer(buf: bytearray, *, max_iterations: int = 32) -> InputEvent | None:
    """Pop bytes from `buf` until one key event is recognized.

    An incomplete escape sequence is left in place for the next poll. The
    loop is bounded; whatever is left after `max_iterations` is discarded so
    garbage cannot accumulate across polls.
    """

    iterations = 0
    while buf and iterations < max_iterations:
        iterations += 1
        if buf[0] == _ESC:
            if len(buf) < 3:
                return None
            seq = bytes(buf[:3])
            del buf[:3]
            kind = _ESC_SEQUENCES.get(seq)
            if kind is not None:
                return InputEvent(kind=kind)
            continue

        b = buf.pop(0)
        if b >= 0x80:
            continue
        evt = event_for_char(chr(b))
        if evt is not None:
            return evt

    if iterations >= max_iterations and buf:
        buf.clear()
    return None


@dataclass
class KeyboardInput:
    """Non-blocking keyboard input (no threads).

    - Windows: msvcrt polling.
    - POSIX: stdin in cbreak mode, polled with select(). When stdin is not a
      terminal the provider stays silent.

    Keys: y = item still there, n = item stolen, space = play/pause,
    Left/Right = move playhead, [ ] = start handle, { } = end handle,
    r = reset, q = quit.
    """

    _posix_fd: int | None = None
    _posix_old_attrs: Any = None
    _posix_buf: bytearray = field(default_factory=bytearray)

    def __post_init__(self) -> None:
        if os.name == "nt":
            import msvcrt  # noqa: F401

            return

        if not sys.stdin.isatty():
            return

        import termios
        import tty

        fd = sys.stdin.fileno()
        self._posix_old_attrs = termios.tcgetattr(fd)
        tty.setcbreak(fd)
        self._posix_fd = fd

    def poll(self) -> InputEvent | None:
        if os.name == "nt":
            return self._poll_windows()
        return self._poll_posix()

    def _poll_windows(self) -> InputEvent | None:
        import msvcrt

        if not msvcrt.kbhit():
            return None

        ch = msvcrt.getwch()

        # Special keys: msvcrt returns '\x00' or '\xe0', then a second code.
        if ch in ("\x00", "\xe0"):
            code = msvcrt.getwch()
            # Left=75, Right=77 in Windows console
            if code == "K" or ord(code) == 75:
                return InputEvent(kind="playhead_left")
            if code == "M" or ord(code) == 77:
                return InputEvent(kind="playhead_right")
            return None

        return event_for_char(ch)

    def _poll_posix(self) -> InputEvent | None:
        if self._posix_fd is None:
            return None

        if len(self._posix_buf) > _MAX_PENDING_BYTES:
            self._posix_buf.clear()

        readable, _w, _x = select.select([self._posix_fd], [], [], 0)
        if readable:
            chunk = os.read(self._posix_fd, 64)
            self._posix_buf += chunk

        return consume_posix_buffer(self._posix_buf)

    def close(self) -> None:
        if self._posix_fd is None or self._posix_old_attrs is None:
            return
        import termios

        try:
            termios.tcsetattr(self._posix_fd, termios.TCSADRAIN, self._posix_old_attrs)
        finally:
            self._posix_fd = None
            self._posix_old_attrs = None
