from __future__ import annotations

import json
import os
import select
import socket
import time
from collections import deque
from dataclasses import dataclass, field
import threading
from typing import Any, BinaryIO


class MpvIpcError(RuntimeError):
    pass


@dataclass
class MpvIpcClient:
    r"""mpv JSON IPC client with an event inbox.

    Transport:
    - Windows: named pipe path like: \\.\pipe\vidbisect-mpv
    - Linux/macOS: Unix domain socket path like: /tmp/vidbisect-mpv.sock

    Commands are synchronous request/response. Asynchronous mpv messages
    (`{"event": ...}`) seen on the wire are queued and handed out by
    `drain_events()`. No threads.
    """

    pipe_path: str
    debug: bool = False
    trace: bool = False

    _fh: BinaryIO | None = None
    _sock: socket.socket | None = None
    _next_request_id: int = 1
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)
    # Bytes of a line not yet terminated by "\n".
    _partial: bytearray = field(default_factory=bytearray, init=False, repr=False)
    _events: deque = field(default_factory=deque, init=False, repr=False)

    def connect(self, *, timeout_sec: float = 2.0) -> None:
        deadline = time.time() + timeout_sec
        last_err: Exception | None = None
        while time.time() < deadline:
            try:
                if os.name == "nt":
                    self._fh = open(self.pipe_path, "r+b", buffering=0)
                    self._sock = None
                    return

                s = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
                try:
                    s.settimeout(0.25)
                    s.connect(self.pipe_path)
                    s.settimeout(None)
                except OSError:
                    s.close()
                    raise
                self._sock = s
                self._fh = None
                return
            except OSError as e:
                self._sock = None
                self._fh = None
                last_err = e
                time.sleep(0.05)

        if last_err and getattr(last_err, "errno", None) == 13:  # Permission denied
            raise MpvIpcError(
                f"Failed to connect to mpv IPC pipe {self.pipe_path!r}: Permission denied.\n"
                f"A stale socket file from a previous run may be in the way: rm {self.pipe_path}"
            )
        raise MpvIpcError(f"Failed to connect to mpv IPC pipe {self.pipe_path!r}: {last_err}")

    def close(self) -> None:
        if self._fh is not None:
            try:
                self._fh.close()
            finally:
                self._fh = None

        if self._sock is not None:
            try:
                self._sock.close()
            finally:
                self._sock = None

        self._partial.clear()
        self._events.clear()

    @property
    def connected(self) -> bool:
        return self._fh is not None or self._sock is not None

    def _require_transport(self) -> tuple[BinaryIO | None, socket.socket | None]:
        if self._fh is None and self._sock is None:
            raise MpvIpcError("Not connected")
        return self._fh, self._sock

    def _write(self, raw: bytes) -> None:
        fh, sock = self._require_transport()
        try:
            if fh is not None:
                fh.write(raw)
                return
            assert sock is not None
            sock.sendall(raw)
        except OSError as e:
            raise MpvIpcError(f"Failed to write to mpv IPC transport: {e}")

    def _read_byte(self) -> bytes:
        fh, sock = self._require_transport()
        try:
            if fh is not None:
                return fh.read(1)
            assert sock is not None
            return sock.recv(1)
        except OSError as e:
            raise MpvIpcError(f"Failed to read from mpv IPC transport: {e}")

    def _feed(self, b: bytes) -> dict[str, Any] | None:
        """Accumulate one byte; return the decoded message when a line completes.

        Event messages are queued here as a side effect.
        """

        if b != b"\n":
            self._partial += b
            return None

        line = bytes(self._partial).strip()
        self._partial.clear()
        if not line:
            return None
        try:
            msg = json.loads(line.decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError):
            return None
        if not isinstance(msg, dict):
            return None
        if "event" in msg:
            self._events.append(msg)
        return msg

    def command(self, *cmd: Any, timeout_sec: float = 2.0) -> dict[str, Any]:
        """Send an mpv IPC command and wait for the matching response."""

        with self._lock:
            return self._command_locked(*cmd, timeout_sec=timeout_sec)

    def trace_command(self, *cmd: Any, timeout_sec: float = 2.0) -> dict[str, Any]:
        """Send an mpv command with request/response tracing regardless of `trace`.

        Use this for high-signal operations (loadfile/seek/quit). Property
        polling should use `command()` so it stays quiet.
        """

        with self._lock:
            return self._command_locked(*cmd, timeout_sec=timeout_sec, force_trace=True)

    def _command_locked(
        self, *cmd: Any, timeout_sec: float = 2.0, force_trace: bool = False
    ) -> dict[str, Any]:
        """Implementation for `command()`. Call only while holding `_lock`."""

        req_id = self._next_request_id
        self._next_request_id += 1

        payload: dict[str, Any] = {"command": list(cmd), "request_id": req_id}
        raw = (json.dumps(payload, separators=(",", ":")) + "\n").encode("utf-8")

        do_trace = bool(self.trace or force_trace)
        if self.debug and do_trace:
            print(f"[debug] mpv >>> {payload}")

        self._write(raw)

        # Events that arrive before the reply are queued by _feed().
        deadline = time.time() + timeout_sec
        while time.time() < deadline:
            b = self._read_byte()
            if not b:
                time.sleep(0.01)
                continue

            msg = self._feed(b)
            if msg is not None and msg.get("request_id") == req_id:
                if self.debug and do_trace:
                    print(f"[debug] mpv <<< {msg}")
                return msg

        raise MpvIpcError(f"Timed out waiting for mpv IPC response for request_id={req_id}")

    def drain_events(self, *, max_bytes: int = 65536) -> list[dict[str, Any]]:
        """Return queued mpv events without blocking."""

        with self._lock:
            fh, sock = self._require_transport()
            if sock is not None:
                for _ in range(max(1, int(max_bytes))):
                    readable, _w, _x = select.select([sock], [], [], 0)
                    if not readable:
                        break
                    b = self._read_byte()
                    if not b:
                        raise MpvIpcError("mpv closed the IPC connection")
                    self._feed(b)
            else:
                # Named pipes cannot be select()ed; a round trip flushes events
                # queued ahead of its reply.
                self._command_locked("client_name", timeout_sec=1.0)

            out = list(self._events)
            self._events.clear()
            return out
