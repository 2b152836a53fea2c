"""Session-level tests: gestures, media events, and the player commands they cause."""

from __future__ import annotations

from pathlib import Path

import pytest

from vidbisect.core.assets import InvalidAssetError
from vidbisect.core.config import settings_from_dict
from vidbisect.core.session import BisectSession
from vidbisect.core.timeline import TrackRect, pixel_of, position_from_time
from vidbisect.player.events import MediaEvent
from vidbisect.player.simulated import SimulatedPlayer

TRACK = TrackRect(left=0.0, width=1000.0)


class FakeClock:
    def __init__(self) -> None:
        self.t = 0.0

    def now(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += float(dt)


def _settings(**overrides):
    data = {"extensions": [".mp4", ".dav"], "min_span_sec": 0.1}
    data.update(overrides)
    return settings_from_dict(data)


@pytest.fixture
def video(tmp_path: Path) -> Path:
    p = tmp_path / "cctv.mp4"
    p.write_bytes(b"\x00\x00\x00\x18ftypmp42")
    return p


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


def _session(duration: float, clock: FakeClock) -> tuple[BisectSession, SimulatedPlayer]:
    player = SimulatedPlayer(duration=duration, time_fn=clock.now)
    return BisectSession(player=player, settings=_settings()), player


def _loaded(video: Path, clock: FakeClock, duration: float = 600.0) -> tuple[BisectSession, SimulatedPlayer]:
    session, player = _session(duration, clock)
    session.load(video)
    session.pump()  # metadata_ready -> initial seek
    session.pump()  # frame_ready
    return session, player


def _x(t: float, duration: float) -> float:
    return pixel_of(position_from_time(t, duration), TRACK)


class TestLoad:
    def test_interval_created_on_metadata(self, video: Path, clock: FakeClock) -> None:
        session, player = _session(600.0, clock)
        session.load(video)
        assert session.interval is None
        assert session.view().readiness == "pending"

        session.pump()
        iv = session.interval
        assert iv is not None
        assert (iv.start, iv.end, iv.current) == (0.0, 600.0, 300.0)
        assert player.seeks() == [300.0]
        assert session.readiness.status == "pending"

        session.pump()
        assert session.readiness.status == "ready"
        assert session.step_count == 0

    def test_non_video_is_rejected_before_any_state(self, tmp_path: Path, clock: FakeClock) -> None:
        doc = tmp_path / "notes.txt"
        doc.write_text("hello", encoding="utf-8")
        session, player = _session(600.0, clock)

        with pytest.raises(InvalidAssetError):
            session.load(doc)
        assert session.interval is None
        assert session.asset_path is None
        assert player.commands == []

    def test_missing_file_is_rejected(self, tmp_path: Path, clock: FakeClock) -> None:
        session, _player = _session(600.0, clock)
        with pytest.raises(InvalidAssetError):
            session.load(tmp_path / "gone.mp4")

    def test_vendor_extension_from_settings_is_accepted(self, tmp_path: Path, clock: FakeClock) -> None:
        p = tmp_path / "cam01.dav"
        p.write_bytes(b"DHAV")
        session, player = _session(60.0, clock)
        session.load(p)
        assert player.loaded_path == str(p.resolve())

    def test_short_clip_uses_its_duration_as_min_span(self, video: Path, clock: FakeClock) -> None:
        session, _player = _loaded(video, clock, duration=0.05)
        assert session.min_span_sec == pytest.approx(0.05)
        assert session.interval is not None
        assert session.interval.span == pytest.approx(0.05)


class TestScenario:
    def test_ten_minute_video(self, video: Path, clock: FakeClock) -> None:
        session, player = _loaded(video, clock)

        assert session.still_there().ok
        iv = session.interval
        assert (iv.start, iv.end, iv.current) == (300.0, 600.0, 450.0)
        assert session.step_count == 1
        assert player.seeks()[-1] == 450.0

        session.pump()
        assert session.stolen().ok
        iv = session.interval
        assert (iv.start, iv.end, iv.current) == (300.0, 450.0, 375.0)
        assert session.step_count == 2

    def test_range_halves_every_step(self, video: Path, clock: FakeClock) -> None:
        session, _player = _loaded(video, clock)
        for verdict in ("present", "absent", "absent", "present", "present", "absent"):
            before = session.interval.span
            assert session.bisect(verdict).ok
            session.pump()
            assert session.interval.span <= before / 2.0 + 1e-9


class TestPreconditions:
    def test_bisect_before_load(self, clock: FakeClock) -> None:
        session, player = _session(600.0, clock)
        res = session.bisect("present")
        assert not res.ok and res.reason == "no_video"
        assert player.commands == []

    def test_bisect_while_frame_pending(self, video: Path, clock: FakeClock) -> None:
        session, player = _loaded(video, clock)
        assert session.still_there().ok
        n_commands = len(player.commands)

        res = session.stolen()
        assert not res.ok and res.reason == "pending"
        assert session.step_count == 1
        assert len(player.commands) == n_commands

    def test_bisect_and_handle_drag_while_playing(self, video: Path, clock: FakeClock) -> None:
        session, _player = _loaded(video, clock)
        before = session.interval
        assert session.play().ok

        res = session.bisect("present")
        assert not res.ok and res.reason == "playing"
        res = session.pointer_down("start_handle")
        assert not res.ok and res.reason == "playing"
        res = session.click_timeline(_x(100.0, 600.0), TRACK)
        assert not res.ok and res.reason == "playing"
        assert session.interval == before
        assert session.step_count == 0
        assert session.drag.kind == "none"

    def test_bisect_at_minimum_span(self, video: Path, clock: FakeClock) -> None:
        session, _player = _loaded(video, clock, duration=0.3)
        assert session.bisect("present").ok
        session.pump()
        res = session.bisect("present")
        assert not res.ok and res.reason == "min_span"
        assert session.step_count == 1

    def test_move_without_pointer_down(self, video: Path, clock: FakeClock) -> None:
        session, _player = _loaded(video, clock)
        res = session.pointer_move(_x(10.0, 600.0), TRACK)
        assert not res.ok and res.reason == "not_dragging"


class TestGestures:
    def test_playhead_drag_expands_range_and_seeks(self, video: Path, clock: FakeClock) -> None:
        session, player = _loaded(video, clock)
        session.still_there()
        session.pump()  # [300, 600] @ 450

        assert session.pointer_down("playhead").ok
        assert session.view().drag_kind == "playhead"
        assert session.pointer_move(_x(120.0, 600.0), TRACK).ok
        assert session.pointer_up().ok

        iv = session.interval
        assert iv.start == pytest.approx(120.0)
        assert iv.end == pytest.approx(600.0)
        assert iv.current == pytest.approx(120.0)
        assert player.seeks()[-1] == pytest.approx(120.0)
        assert session.readiness.status == "pending"
        assert session.view().drag_kind == "none"

    def test_handle_drag_without_playhead_change_does_not_seek(self, video: Path, clock: FakeClock) -> None:
        session, player = _loaded(video, clock)
        seeks_before = list(player.seeks())

        session.pointer_down("end_handle")
        session.pointer_move(_x(500.0, 600.0), TRACK)
        session.pointer_move(_x(450.0, 600.0), TRACK)
        session.pointer_up()

        iv = session.interval
        assert iv.end == pytest.approx(450.0)
        assert iv.current == pytest.approx(300.0)
        assert player.seeks() == seeks_before
        assert session.readiness.status == "ready"

    def test_start_handle_pulls_playhead_and_seeks_once_per_move(self, video: Path, clock: FakeClock) -> None:
        session, player = _loaded(video, clock)
        n = len(player.seeks())

        session.pointer_down("start_handle")
        session.pointer_move(_x(330.0, 600.0), TRACK)
        session.pointer_move(_x(360.0, 600.0), TRACK)
        session.pointer_up()

        iv = session.interval
        assert iv.start == pytest.approx(360.0)
        assert iv.current == pytest.approx(360.0)
        assert len(player.seeks()) == n + 2

    def test_start_handle_cannot_cross_end(self, video: Path, clock: FakeClock) -> None:
        session, _player = _loaded(video, clock)
        session.pointer_down("end_handle")
        session.pointer_move(_x(200.0, 600.0), TRACK)
        session.pointer_up()
        session.pump()

        session.pointer_down("start_handle")
        session.pointer_move(_x(599.0, 600.0), TRACK)
        session.pointer_up()
        iv = session.interval
        assert iv.start < iv.end
        assert iv.end - iv.start == pytest.approx(0.1)

    def test_drag_moves_are_accepted_while_frame_pending(self, video: Path, clock: FakeClock) -> None:
        session, player = _loaded(video, clock)
        session.pointer_down("playhead")
        assert session.pointer_move(_x(100.0, 600.0), TRACK).ok
        assert session.pointer_move(_x(110.0, 600.0), TRACK).ok
        session.pointer_up()

        # Only the latest seek's completion counts.
        session.pump()
        assert session.readiness.status == "ready"
        assert session.interval.current == pytest.approx(110.0)

    def test_click_timeline_is_a_one_shot_playhead_drag(self, video: Path, clock: FakeClock) -> None:
        session, player = _loaded(video, clock)
        session.still_there()
        session.pump()  # [300, 600] @ 450

        assert session.click_timeline(-20.0, TRACK).ok
        iv = session.interval
        assert (iv.start, iv.current) == (0.0, 0.0)
        assert iv.end == pytest.approx(600.0)
        assert session.drag.kind == "none"
        assert player.seeks()[-1] == 0.0


class TestPlayback:
    def test_loops_inside_range(self, video: Path, clock: FakeClock) -> None:
        session, player = _loaded(video, clock, duration=100.0)

        # Narrow to [20, 40] and park the playhead just before the end.
        session.pointer_down("start_handle")
        session.pointer_move(_x(20.0, 100.0), TRACK)
        session.pointer_up()
        session.pointer_down("end_handle")
        session.pointer_move(_x(40.0, 100.0), TRACK)
        session.pointer_up()
        session.click_timeline(_x(39.9, 100.0), TRACK)
        session.pump()
        iv = session.interval
        assert (iv.start, iv.end) == (pytest.approx(20.0), pytest.approx(40.0))
        assert iv.current == pytest.approx(39.9)

        assert session.play().ok
        assert player.commands[-1] == ("play",)

        clock.advance(0.05)
        session.pump()
        assert session.playback.playing
        assert session.interval.current == pytest.approx(39.95)

        n = len(player.seeks())
        clock.advance(0.1)
        session.pump()
        assert player.seeks()[n:] == [pytest.approx(20.0)]
        assert session.playback.playing

        clock.advance(0.5)
        session.pump()
        assert session.playback.playing
        assert session.interval.current == pytest.approx(20.5)

    def test_play_from_end_of_range_rewinds_first(self, video: Path, clock: FakeClock) -> None:
        session, player = _loaded(video, clock)
        session.stolen()
        session.pump()  # [0, 300] @ 150
        session.click_timeline(_x(300.0, 600.0), TRACK)
        session.pump()

        session.play()
        assert player.commands[-2:] == [("seek", 0.0, session.readiness.generation), ("play",)]
        assert session.interval.current == 0.0

    def test_pause_from_player_reconciles(self, video: Path, clock: FakeClock) -> None:
        session, _player = _loaded(video, clock)
        session.play()
        clock.advance(1.0)
        session.pump()

        session.dispatch(MediaEvent(kind="paused", position=302.5))
        assert session.playback.status == "paused"
        assert session.interval.current == pytest.approx(302.5)

    def test_pause_then_bisect(self, video: Path, clock: FakeClock) -> None:
        session, _player = _loaded(video, clock)
        session.play()
        clock.advance(2.0)
        session.pump()
        assert session.pause().ok
        session.pump()

        assert session.can_bisect
        assert session.still_there().ok
        assert session.interval.start == pytest.approx(302.0)

    def test_playing_past_end_of_media_parks_on_range_start(self, video: Path, clock: FakeClock) -> None:
        session, player = _loaded(video, clock)
        session.play()
        clock.advance(301.0)
        session.pump()  # time_advanced at the end, loop seek, then the player's own pause
        session.pump()

        assert session.playback.status == "paused"
        assert session.readiness.status == "ready"
        assert session.interval.current == 0.0
        assert player.position == 0.0
        assert not player.playing

    def test_pause_lands_frame_on_playhead(self, video: Path, clock: FakeClock) -> None:
        session, player = _loaded(video, clock)
        session.play()
        clock.advance(1.0)
        session.pump()
        # The player runs on between the last report and the pause.
        clock.advance(0.04)
        assert session.pause().ok
        assert session.readiness.status == "pending"
        assert not session.can_bisect

        session.pump()
        assert session.readiness.status == "ready"
        assert session.interval.current == pytest.approx(301.0)
        assert player.position == pytest.approx(session.interval.current)


def _settle(session: BisectSession) -> None:
    session.pump()
    session.pump()


def _assert_in_sync(session: BisectSession, player: SimulatedPlayer) -> None:
    iv = session.interval
    iv.check(duration=session.duration, min_span_sec=session.min_span_sec)
    assert session.playback.status == "paused"
    assert session.readiness.status == "ready"
    assert iv.current == pytest.approx(player.position)


class TestModelPlayerAgreement:
    def test_mixed_session_keeps_frame_on_playhead(self, video: Path, clock: FakeClock) -> None:
        session, player = _loaded(video, clock, duration=100.0)
        _assert_in_sync(session, player)

        assert session.still_there().ok  # [50, 100] @ 75
        _settle(session)
        _assert_in_sync(session, player)

        # Play the range that ends at the end of the media, past its end.
        assert session.play().ok
        clock.advance(10.0)
        session.pump()
        assert session.interval.current == pytest.approx(85.0)
        clock.advance(20.0)
        _settle(session)
        _assert_in_sync(session, player)
        assert session.interval.current == pytest.approx(50.0)

        assert session.click_timeline(_x(30.0, 100.0), TRACK).ok
        _settle(session)
        _assert_in_sync(session, player)

        session.pointer_down("end_handle")
        session.pointer_move(_x(60.0, 100.0), TRACK)
        session.pointer_up()
        _assert_in_sync(session, player)
        assert session.interval.end == pytest.approx(60.0)

        # Pause a little after the last position report.
        assert session.play().ok
        clock.advance(5.0)
        session.pump()
        clock.advance(0.04)
        assert session.pause().ok
        _settle(session)
        _assert_in_sync(session, player)
        assert session.interval.current == pytest.approx(35.0)

        assert session.stolen().ok  # [30, 35] @ 32.5
        _settle(session)
        _assert_in_sync(session, player)

        # Pause while the loop seek back to start is still in flight.
        assert session.play().ok
        clock.advance(3.0)
        session.pump()
        assert session.playback.looping
        assert session.pause().ok
        _settle(session)
        _assert_in_sync(session, player)

        session.pointer_down("playhead")
        session.pointer_move(_x(10.0, 100.0), TRACK)
        session.pointer_up()
        _settle(session)
        _assert_in_sync(session, player)

        assert session.still_there().ok
        _settle(session)
        _assert_in_sync(session, player)
        assert session.step_count == 3


class TestEvents:
    def test_stale_frame_ready_is_ignored(self, video: Path, clock: FakeClock) -> None:
        session, _player = _loaded(video, clock)
        session.still_there()
        gen = session.readiness.generation

        session.dispatch(MediaEvent(kind="frame_ready", generation=gen - 1))
        assert session.readiness.status == "pending"
        session.dispatch(MediaEvent(kind="frame_ready", generation=gen))
        assert session.readiness.status == "ready"

    def test_unknown_event_kind_is_ignored(self, video: Path, clock: FakeClock) -> None:
        session, _player = _loaded(video, clock)
        before = session.view()
        session.dispatch(MediaEvent(kind="volume_changed"))
        assert session.view() == before

    def test_duplicate_metadata_does_not_reset_search(self, video: Path, clock: FakeClock) -> None:
        session, _player = _loaded(video, clock)
        session.still_there()
        session.dispatch(MediaEvent(kind="metadata_ready", duration=600.0))
        assert session.interval.start == 300.0
        assert session.step_count == 1


class TestReset:
    def test_reset_returns_to_no_video(self, video: Path, clock: FakeClock) -> None:
        session, player = _loaded(video, clock)
        session.still_there()
        session.reset()

        view = session.view()
        assert view.interval is None
        assert view.step_count == 0
        assert view.asset_path is None
        assert player.commands[-1] == ("unload",)

    def test_events_after_reset_are_dropped(self, video: Path, clock: FakeClock) -> None:
        session, _player = _loaded(video, clock)
        session.reset()
        session.dispatch(MediaEvent(kind="metadata_ready", duration=600.0))
        assert session.interval is None

    def test_context_manager_releases_on_error(self, video: Path, clock: FakeClock) -> None:
        player = SimulatedPlayer(duration=600.0, time_fn=clock.now)
        with pytest.raises(RuntimeError):
            with BisectSession(player=player, settings=_settings()) as session:
                session.load(video)
                raise RuntimeError("boom")
        assert player.loaded_path is None
        assert player.commands[-1] == ("unload",)

    def test_loading_replacement_releases_previous(self, video: Path, tmp_path: Path, clock: FakeClock) -> None:
        session, player = _loaded(video, clock)
        other = tmp_path / "other.mp4"
        other.write_bytes(b"\x00")
        session.load(other)

        assert ("unload",) in player.commands
        assert player.loaded_path == str(other.resolve())
        assert session.interval is None
        session.pump()
        assert session.interval is not None
