from __future__ import annotations

import os
import time
from pathlib import Path
import subprocess
from dataclasses import dataclass
from typing import Any, Callable

from .events import MediaEvent
from .mpv_ipc import MpvIpcClient, MpvIpcError

# observe_property ids; mpv echoes them back in property-change events.
_OBSERVED_PROPERTIES: tuple[str, ...] = ("duration", "time-pos", "pause", "eof-reached")

# Video equalizer brightness used to dim a frame that is not yet confirmed.
_DIM_BRIGHTNESS = -50


def _wait_for_path_exists(
    path: Path,
    *,
    timeout_sec: float,
    poll_interval_sec: float,
    exists_fn: Callable[[Path], bool] = Path.exists,
    time_fn: Callable[[], float] = time.time,
) -> bool:
    """Poll until `path` exists or the timeout expires.

    mpv creates its IPC socket shortly after launch; connecting before that
    only burns connect retries. One final check runs at the deadline.
    """

    deadline = float(time_fn()) + float(timeout_sec)
    while float(time_fn()) < deadline:
        if exists_fn(path):
            return True
        time.sleep(max(0.0, float(poll_interval_sec)))
    return bool(exists_fn(path))


def _as_float(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    return None


@dataclass
class MpvPlayer:
    """Starts one mpv process and drives it as the bisect media primitive.

    mpv runs paused with `--keep-open=always` so reaching the end of the file
    pauses on the last frame instead of unloading it. Progress is observed
    with `observe_property`; seek completion is mpv's `playback-restart`
    event following a `seek` event.
    """

    debug: bool = False
    ipc_trace: bool = False
    pipe_name: str = "vidbisect-mpv"
    mpv_exe: str = "mpv"

    _proc: subprocess.Popen[str] | None = None
    _ipc: MpvIpcClient | None = None

    _current_media_path: str | None = None
    _metadata_sent: bool = False
    _paused: bool = True
    _last_time_pos: float | None = None

    # Generation of the latest seek request and whether mpv has started it.
    _seek_generation: int = 0
    _seek_started: bool = False

    _status_overlay_id: int = 4243
    _dimmed: bool = False

    @property
    def current_media_path(self) -> str | None:
        return self._current_media_path

    @property
    def pipe_path(self) -> str:
        if os.name == "nt":
            return rf"\\.\pipe\{self.pipe_name}"
        return f"/tmp/{self.pipe_name}.sock"

    def _cleanup_stale_ipc_path(self) -> None:
        """Remove a leftover IPC socket on non-Windows.

        If the app or mpv crashes, the socket file may remain, and mpv will
        fail to bind the next time with "address already in use".
        """

        if os.name == "nt":
            return

        try:
            p = Path(self.pipe_path)
            if p.exists():
                p.unlink()
        except OSError as e:
            if self.debug:
                print(f"[debug] mpv: could not remove stale socket {self.pipe_path}: {e}")

    def _cmd(self, *cmd: Any, timeout_sec: float = 2.0) -> dict[str, Any]:
        """High-signal command: traced when `ipc_trace` is enabled."""

        if self._ipc is None:
            raise MpvIpcError("Not connected")
        send = self._ipc.trace_command if self.ipc_trace else self._ipc.command
        return send(*cmd, timeout_sec=timeout_sec)

    def start(self) -> None:
        if self._proc is not None:
            return

        self._cleanup_stale_ipc_path()

        args = [
            self.mpv_exe,
            "--idle=yes",
            "--force-window=yes",
            "--pause",
            "--keep-open=always",
            # Exact seeks; a bisect step is only meaningful on the requested frame.
            "--hr-seek=yes",
            "--no-terminal",
            "--osd-level=1",
            f"--input-ipc-server={self.pipe_path}",
            "--audio-display=no",
        ]

        if self.debug:
            print(f"[debug] mpv: launch args: {subprocess.list2cmdline(args)}")

        self._proc = subprocess.Popen(
            args,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            text=True,
        )

        if os.name != "nt":
            if not _wait_for_path_exists(Path(self.pipe_path), timeout_sec=3.0, poll_interval_sec=0.02):
                if self.debug:
                    print(f"[debug] mpv: socket {self.pipe_path} not created yet; trying to connect anyway")

        self._ipc = MpvIpcClient(pipe_path=self.pipe_path, debug=self.debug, trace=self.ipc_trace)
        self._ipc.connect(timeout_sec=3.0)

        for obs_id, name in enumerate(_OBSERVED_PROPERTIES, start=1):
            resp = self._ipc.command("observe_property", obs_id, name)
            if resp.get("error") not in (None, "success"):
                raise MpvIpcError(f"mpv observe_property {name} failed: {resp}")

    def _reset_tracking(self) -> None:
        self._metadata_sent = False
        self._paused = True
        self._last_time_pos = None
        self._seek_started = False

    def load(self, path: str) -> None:
        """Load a file paused. Duration arrives later as a metadata_ready event."""

        if self._proc is None or self._ipc is None:
            self.start()

        self._reset_tracking()
        self._cmd("set_property", "pause", True)
        resp = self._cmd("loadfile", str(path), "replace", timeout_sec=10.0)
        if resp.get("error") not in (None, "success"):
            raise MpvIpcError(f"mpv loadfile failed: {resp}")
        self._current_media_path = str(path)

    def unload(self) -> None:
        self._current_media_path = None
        self._reset_tracking()
        if self._ipc is None:
            return
        try:
            self._cmd("stop")
        except MpvIpcError as e:
            if self.debug:
                print(f"[debug] mpv: stop failed: {e}")

    def seek(self, time_sec: float, generation: int) -> None:
        """Absolute exact seek. Completion is reported by `poll_events()`."""

        if self._ipc is None:
            return
        self._seek_generation = int(generation)
        self._seek_started = False
        resp = self._cmd("seek", max(0.0, float(time_sec)), "absolute", "exact", timeout_sec=10.0)
        if resp.get("error") not in (None, "success") and self.debug:
            # No frame_ready will follow; the UI stays pending until the next seek.
            print(f"[debug] mpv: seek to {float(time_sec):.3f}s failed: {resp}")

    def play(self) -> None:
        if self._ipc is None:
            return
        self._cmd("set_property", "pause", False)

    def pause(self) -> None:
        if self._ipc is None:
            return
        self._cmd("set_property", "pause", True)

    def poll_events(self) -> list[MediaEvent]:
        """Translate queued mpv messages into media events."""

        if self._ipc is None:
            return []

        out: list[MediaEvent] = []
        for msg in self._ipc.drain_events():
            name = msg.get("event")
            if name == "property-change":
                out.extend(self._on_property_change(str(msg.get("name")), msg.get("data")))
            elif name == "seek":
                self._seek_started = True
            elif name == "playback-restart":
                # The initial file start also restarts playback; only a restart
                # that follows one of our seeks completes it.
                if self._seek_started and self._seek_generation > 0:
                    self._seek_started = False
                    out.append(
                        MediaEvent(
                            kind="frame_ready",
                            generation=self._seek_generation,
                            position=self._last_time_pos,
                        )
                    )
        return out

    def _on_property_change(self, name: str, data: Any) -> list[MediaEvent]:
        if self._current_media_path is None:
            return []

        if name == "duration":
            dur = _as_float(data)
            if dur is not None and dur > 0 and not self._metadata_sent:
                self._metadata_sent = True
                return [MediaEvent(kind="metadata_ready", duration=dur)]
            return []

        if name == "time-pos":
            pos = _as_float(data)
            if pos is None:
                return []
            self._last_time_pos = pos
            if self._paused:
                return []
            return [MediaEvent(kind="time_advanced", position=pos)]

        if name == "pause":
            if not isinstance(data, bool):
                return []
            was_paused = self._paused
            self._paused = data
            if data and not was_paused:
                return [MediaEvent(kind="paused", position=self._last_time_pos)]
            return []

        if name == "eof-reached":
            if data is True and not self._paused:
                self._paused = True
                return [MediaEvent(kind="paused", position=self._last_time_pos)]
            return []

        return []

    def show_status(self, text: str, *, dimmed: bool) -> None:
        """Status lines in the upper-left OSD; dim the video while a frame is stale."""

        if self._ipc is None:
            return

        lines = [ln for ln in str(text).splitlines() if ln.strip()]
        # ASS event text: \an7 top-left, \N line breaks.
        body = r"\N".join(ln.replace("{", "(").replace("}", ")") for ln in lines)
        ass_text = rf"{{\an7\fs24\bord2\3c&H000000&\shad0}}{body}"
        try:
            self._ipc.command("osd-overlay", self._status_overlay_id, "ass-events", ass_text)
            if bool(dimmed) != self._dimmed:
                self._ipc.command("set_property", "brightness", _DIM_BRIGHTNESS if dimmed else 0)
                self._dimmed = bool(dimmed)
        except MpvIpcError as e:
            # Overlay only; never break the bisect loop for it.
            if self.debug:
                print(f"[debug] osd: update failed: {e}")

    def close(self) -> None:
        try:
            if self._ipc is not None:
                try:
                    self._cmd("quit", timeout_sec=1.0)
                except MpvIpcError:
                    pass
        finally:
            if self._ipc is not None:
                self._ipc.close()
                self._ipc = None

            if self._proc is not None:
                try:
                    self._proc.wait(timeout=2)
                except subprocess.TimeoutExpired:
                    self._proc.kill()
                finally:
                    self._proc = None

        self._current_media_path = None
        self._reset_tracking()
        self._dimmed = False
