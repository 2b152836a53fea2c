"""CLI helpers that run outside the main loop."""

from __future__ import annotations

from pathlib import Path

import pytest

from vidbisect.app import _start_over
from vidbisect.core.config import settings_from_dict
from vidbisect.core.session import BisectSession
from vidbisect.player.simulated import SimulatedPlayer


@pytest.fixture
def session() -> BisectSession:
    player = SimulatedPlayer(duration=600.0)
    return BisectSession(player=player, settings=settings_from_dict({"extensions": [".mp4"]}))


def test_start_over_reloads_same_file(session: BisectSession, tmp_path: Path) -> None:
    video = tmp_path / "cctv.mp4"
    video.write_bytes(b"\x00")
    session.load(video)
    session.pump()
    session.pump()
    session.still_there()

    assert _start_over(session, str(video))
    session.pump()
    assert session.step_count == 0
    assert session.interval is not None
    assert session.interval.start == 0.0


def test_start_over_with_missing_file_reports_and_fails(
    session: BisectSession, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    video = tmp_path / "cctv.mp4"
    video.write_bytes(b"\x00")
    session.load(video)
    session.pump()
    video.unlink()

    assert not _start_over(session, str(video))
    assert "Cannot reload" in capsys.readouterr().out
    assert session.asset_path is None
    assert session.interval is None
