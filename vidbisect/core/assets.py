from __future__ import annotations

import mimetypes
from pathlib import Path


class InvalidAssetError(ValueError):
    pass


def is_video_path(path: Path, extensions: tuple[str, ...]) -> bool:
    """Accept by configured extension first, then by guessed MIME type.

    CCTV exports often use vendor extensions (e.g. `.dav`) that `mimetypes`
    does not know, hence the explicit allow-list.
    """

    allowed = {e.lower() for e in extensions}
    if path.suffix.lower() in allowed:
        return True
    mime, _encoding = mimetypes.guess_type(path.name)
    return bool(mime) and mime.startswith("video/")


def validate_video_asset(path: str | Path, extensions: tuple[str, ...]) -> Path:
    """Return the resolved path of a loadable video or raise InvalidAssetError."""

    p = Path(path).expanduser()
    if not p.exists():
        raise InvalidAssetError(f"file does not exist: {p}")
    if not p.is_file():
        raise InvalidAssetError(f"not a file: {p}")
    if not is_video_path(p, extensions):
        raise InvalidAssetError(f"not a video file: {p.name}")
    return p.resolve()
