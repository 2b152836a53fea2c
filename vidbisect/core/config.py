from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path


def resolve_profile_config_path(*, repo_root: Path, base_name: str, profile: str | None) -> tuple[Path, str]:
    """Return the config path to use for a given base file name and profile.

    Resolution order:
    1) config/{base_name}.{profile}.json if profile is provided and file exists
    2) config/{base_name}.json

    Returns (path, reason) where reason is "profile" or "fallback".
    """

    config_dir = repo_root / "config"
    if profile:
        prof = str(profile).strip().lower()
        prof_path = config_dir / f"{base_name}.{prof}.json"
        if prof_path.exists():
            return prof_path, "profile"
    return config_dir / f"{base_name}.json", "fallback"


def load_settings_profile(*, repo_root: Path, profile: str | None = None, path_override: Path | None = None) -> Settings:
    """Load settings config honoring per-profile files and optional overrides."""

    if path_override is not None:
        print(f"[config] profile={profile or '-'} settings={path_override} (override)")
        return load_settings(path_override)
    path, reason = resolve_profile_config_path(repo_root=repo_root, base_name="settings", profile=profile)
    print(f"[config] profile={profile or '-'} settings={path} ({reason})")
    return load_settings(path)


@dataclass(frozen=True)
class Settings:
    extensions: tuple[str, ...]
    min_span_sec: float
    debug: bool
    ipc_trace: bool
    mpv_exe: str
    pipe_name: str
    poll_interval_sec: float
    track_width_px: int
    nudge_fraction: float


def settings_from_dict(data: dict) -> Settings:
    extensions = tuple(str(x).lower() for x in data.get("extensions", []))
    if not extensions:
        raise ValueError("settings.json requires non-empty extensions")
    bad = [e for e in extensions if not e.startswith(".")]
    if bad:
        raise ValueError(f"settings.json extensions must start with '.': {bad}")

    min_span_sec = float(data.get("min_span_sec", 0.1))
    if min_span_sec <= 0:
        raise ValueError("settings.json min_span_sec must be > 0")

    poll_interval_sec = float(data.get("poll_interval_sec", 0.05))
    track_width_px = int(data.get("track_width_px", 1000))
    if track_width_px <= 0:
        raise ValueError("settings.json track_width_px must be > 0")

    nudge_fraction = float(data.get("nudge_fraction", 0.01))
    if not (0.0 < nudge_fraction <= 1.0):
        raise ValueError("settings.json nudge_fraction must be in (0, 1]")

    return Settings(
        extensions=extensions,
        min_span_sec=min_span_sec,
        debug=bool(data.get("debug", False)),
        ipc_trace=bool(data.get("ipc_trace", False)),
        mpv_exe=str(data.get("mpv_exe", "mpv")),
        pipe_name=str(data.get("pipe_name", "vidbisect-mpv")),
        poll_interval_sec=max(0.0, poll_interval_sec),
        track_width_px=track_width_px,
        nudge_fraction=nudge_fraction,
    )


def load_settings(path: Path) -> Settings:
    data = json.loads(path.read_text(encoding="utf-8"))
    return settings_from_dict(data)
