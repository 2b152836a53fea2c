from __future__ import annotations

import argparse
import os
import time
from pathlib import Path

from vidbisect.core.assets import InvalidAssetError
from vidbisect.core.config import load_settings_profile
from vidbisect.core.session import BisectSession
from vidbisect.core.timeline import TrackRect
from vidbisect.input.gestures import KeyGestures
from vidbisect.input.keyboard import KeyboardInput
from vidbisect.player import MediaPlayer, MpvPlayer, SimulatedPlayer
from vidbisect.player.mpv_ipc import MpvIpcError
from vidbisect.ui.status_line import render_status

_REJECTION_TEXT: dict[str, str] = {
    "no_video": "no video loaded yet",
    "playing": "pause playback first",
    "pending": "frame still loading",
    "min_span": "search range is already at its minimum",
    "dragging": "a handle is being dragged",
    "not_dragging": "nothing is being dragged",
}


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="vidbisect")
    parser.add_argument("video", type=str, help="Video file to search.")
    default_profile = "windows" if os.name == "nt" else "linux"
    parser.add_argument(
        "--profile",
        choices=("windows", "linux"),
        default=default_profile,
        help=f"Select runtime/config profile (default: {default_profile})",
    )
    parser.add_argument(
        "--settings",
        type=str,
        default=None,
        help="Override settings config path (takes precedence over profile).",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Run without mpv; simulate playback of a video of --duration seconds.",
    )
    parser.add_argument(
        "--duration",
        type=float,
        default=600.0,
        help="Simulated video length in seconds for --dry-run (default: 600).",
    )
    return parser.parse_args()


def _start_over(session: BisectSession, video: str) -> bool:
    """Drop the current search and load `video` again.

    Returns False when the file can no longer be loaded (moved or replaced
    while the search was running); the session is left with no video.
    """

    session.reset()
    try:
        session.load(video)
    except InvalidAssetError as e:
        print(f"Cannot reload {video}: {e}")
        return False
    return True


def main() -> int:
    args = _parse_args()

    repo_root = Path(__file__).resolve().parents[1]
    settings_path = Path(args.settings).expanduser() if args.settings else None
    settings = load_settings_profile(repo_root=repo_root, profile=args.profile, path_override=settings_path)

    player: MediaPlayer
    if args.dry_run:
        player = SimulatedPlayer(duration=max(0.0, float(args.duration)), debug=settings.debug)
    else:
        # Per-process pipe so two searches can run side by side.
        player = MpvPlayer(
            debug=settings.debug,
            ipc_trace=settings.ipc_trace,
            pipe_name=f"{settings.pipe_name}-{os.getpid()}",
            mpv_exe=settings.mpv_exe,
        )

    session = BisectSession(player=player, settings=settings)
    track = TrackRect(left=0.0, width=float(settings.track_width_px))
    gestures = KeyGestures(session=session, track=track, nudge_fraction=settings.nudge_fraction)

    try:
        session.load(args.video)
    except InvalidAssetError as e:
        print(f"Cannot load {args.video}: {e}")
        player.close()
        return 2
    except MpvIpcError as e:
        print(f"mpv failed: {e}")
        player.close()
        return 1

    inp = KeyboardInput()
    print("vidbisect dry-run" if args.dry_run else "vidbisect")
    print("Controls: Y=Item Still There, N=Item Stolen, Space=Play/Pause range, Left/Right=Move playhead,")
    print("          [ ]=Move start, { }=Move end, R=Start over, Q=Quit")
    print()

    last_status: str | None = None
    try:
        with session:
            while True:
                evt = inp.poll()
                if evt is not None:
                    if evt.kind == "quit":
                        print("Exiting.")
                        return 0
                    if evt.kind == "reset":
                        print("Starting over.")
                        if not _start_over(session, args.video):
                            return 2
                        last_status = None
                    else:
                        result = gestures.handle(evt)
                        if result is not None and not result.ok:
                            reason = result.reason or "?"
                            print(f"(ignored: {_REJECTION_TEXT.get(reason, reason)})")

                session.pump()

                view = session.view()
                status = render_status(view, precise=view.playback != "playing")
                if status != last_status:
                    print(status)
                    print()
                    player.show_status(status, dimmed=view.readiness == "pending")
                    last_status = status

                # low CPU polling loop; no threads.
                time.sleep(settings.poll_interval_sec)
    finally:
        inp.close()
        player.close()


if __name__ == "__main__":
    raise SystemExit(main())
