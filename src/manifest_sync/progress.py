"""Explicit progress state and text rendering."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, TextIO

PROGRESS_BAR_WIDTH = 50


@dataclass(slots=True, frozen=True)
class ProgressState:
    """Completed/total counters for one fingerprinting pass."""

    total: int = 0
    completed: int = 0

    def advance(self, count: int = 1) -> ProgressState:
        return ProgressState(total=self.total, completed=min(self.total, self.completed + count))

    @property
    def percent(self) -> int:
        if self.total <= 0:
            return 0
        return (self.completed * 100) // self.total

    @property
    def done(self) -> bool:
        return self.completed >= self.total


class ProgressReporter(Protocol):
    def report(self, state: ProgressState) -> None: ...


def render_progress_bar(state: ProgressState, width: int = PROGRESS_BAR_WIDTH) -> str:
    """Render ``Progress: N%`` followed by a fixed-width hash bar."""
    filled = (state.percent * width) // 100
    return f"Progress: {state.percent}%\n[{'#' * filled}{' ' * (width - filled)}]"


class TextProgressReporter:
    """Writes a rendered bar to a text stream on every update."""

    def __init__(self, stream: TextIO, width: int = PROGRESS_BAR_WIDTH) -> None:
        self._stream = stream
        self._width = width

    def report(self, state: ProgressState) -> None:
        self._stream.write(render_progress_bar(state, width=self._width))
        self._stream.write("\n")
        self._stream.flush()


class NullProgressReporter:
    def report(self, state: ProgressState) -> None:
        return None
