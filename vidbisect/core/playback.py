from __future__ import annotations

from dataclasses import dataclass

from .models import PlaybackStatus, SearchInterval, clamp


@dataclass(frozen=True)
class PlaybackState:
    status: PlaybackStatus = "paused"
    # A loop-back seek has been issued and the player has not yet reported a
    # position inside the range again.
    looping: bool = False

    @property
    def playing(self) -> bool:
        return self.status == "playing"


@dataclass(frozen=True)
class PlaybackStep:
    """Result of one playback transition.

    `seek_to` is issued before a "play" command and after a "pause" command.
    """

    state: PlaybackState
    interval: SearchInterval
    seek_to: float | None = None
    command: str | None = None  # "play" | "pause"


def start_playback(state: PlaybackState, interval: SearchInterval) -> PlaybackStep:
    """Preview the candidate range: rewind to `start` when the playhead is outside it."""

    if state.playing:
        return PlaybackStep(state=state, interval=interval)

    seek_to: float | None = None
    if interval.current >= interval.end or interval.current < interval.start:
        seek_to = interval.start
        interval = SearchInterval(start=interval.start, end=interval.end, current=interval.start)

    return PlaybackStep(
        state=PlaybackState(status="playing"),
        interval=interval,
        seek_to=seek_to,
        command="play",
    )


def stop_playback(state: PlaybackState, interval: SearchInterval) -> PlaybackStep:
    """Pause and park the player on the model's playhead.

    The player may have moved past the last mirrored position before the
    pause lands, so the frame is re-requested at `current`.
    """

    if not state.playing:
        return PlaybackStep(state=state, interval=interval)
    return PlaybackStep(
        state=PlaybackState(status="paused"),
        interval=interval,
        seek_to=interval.current,
        command="pause",
    )


def time_advanced(state: PlaybackState, interval: SearchInterval, position: float) -> PlaybackStep:
    """Mirror the player's position; loop back to `start` at the end of the range.

    The model follows the player here, never the other way round. Positions
    are clamped into the range so the interval ordering always holds, even
    for the few reports that arrive between the loop seek and its landing.
    """

    if not state.playing:
        return PlaybackStep(state=state, interval=interval)

    position = float(position)
    current = clamp(position, interval.start, interval.end)
    mirrored = SearchInterval(start=interval.start, end=interval.end, current=current)

    if position >= interval.end:
        if state.looping:
            return PlaybackStep(state=state, interval=mirrored)
        return PlaybackStep(
            state=PlaybackState(status="playing", looping=True),
            interval=mirrored,
            seek_to=interval.start,
        )

    return PlaybackStep(state=PlaybackState(status="playing"), interval=mirrored)


def player_paused(state: PlaybackState, interval: SearchInterval, position: float | None) -> PlaybackStep:
    """Reconcile after the player paused on its own (end of media, external pause).

    A loop seek still in flight wins over the reported position: the player
    is heading to `start`. The frame is re-requested at the reconciled
    playhead either way. While already paused the model drives the player,
    so reports are ignored.
    """

    if not state.playing:
        return PlaybackStep(state=state, interval=interval)

    current = interval.current
    if state.looping:
        current = interval.start
    elif position is not None:
        current = clamp(position, interval.start, interval.end)
    return PlaybackStep(
        state=PlaybackState(status="paused"),
        interval=SearchInterval(start=interval.start, end=interval.end, current=current),
        seek_to=current,
    )
