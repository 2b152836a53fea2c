from __future__ import annotations

from dataclasses import dataclass, replace

from .models import ReadinessStatus


@dataclass(frozen=True)
class ReadinessState:
    """Whether the frame on screen is the one the model asked for.

    `generation` increases with every seek request. A "frame ready" signal is
    only honored when it carries the generation of the latest request, so a
    late completion for a superseded seek cannot mark a stale frame as ready.
    """

    status: ReadinessStatus = "pending"
    generation: int = 0

    @property
    def ready(self) -> bool:
        return self.status == "ready"


def request_seek(state: ReadinessState) -> ReadinessState:
    # Must be applied before the seek command goes out.
    return ReadinessState(status="pending", generation=state.generation + 1)


def frame_ready(state: ReadinessState, generation: int | None) -> ReadinessState:
    if generation is None or int(generation) != state.generation:
        return state
    return replace(state, status="ready")


def is_stale(state: ReadinessState, generation: int | None) -> bool:
    return generation is None or int(generation) != state.generation
