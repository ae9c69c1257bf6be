"""Toroidal viewport over a Grid, with reload and write-back sync."""

from __future__ import annotations

import logging
import random
import threading
from dataclasses import dataclass
from enum import Enum, auto
from typing import Protocol

from torview.grid import EmptySourceError, Grid

logger = logging.getLogger(__name__)


class Direction(Enum):
    UP = auto()
    DOWN = auto()
    LEFT = auto()
    RIGHT = auto()


@dataclass(frozen=True)
class VisibleCell:
    dx: int
    dy: int
    symbol: str


class TextSource(Protocol):
    """Where the grid text lives: a file, an in-memory buffer, ..."""

    def read_all_text(self) -> str: ...

    def write_all_text(self, text: str) -> None: ...


class NotInitializedError(RuntimeError):
    """Raised when the controller is used before a successful initialize."""


def wrap_index(x: int, m: int) -> int:
    """Map any integer into ``[0, m)``, negative ``x`` included."""
    if m <= 0:
        raise ValueError(f"wrap bound must be positive, got {m}")
    return ((x % m) + m) % m


class ViewportController:
    """Owns the grid, the view center and the sync state.

    All methods except :meth:`notify_changed` must be called from one
    thread (the UI loop). Watchers running elsewhere only raise the
    pending flag; :meth:`process_pending` performs the reload.
    """

    def __init__(
        self,
        source: TextSource | None = None,
        *,
        radius: int = 1,
        start_row: int | None = None,
        rng: random.Random | None = None,
    ) -> None:
        if radius < 0:
            raise ValueError(f"radius must be >= 0, got {radius}")
        self.source = source
        self.radius: int = radius
        self.start_row = start_row
        self._rng = rng or random.Random()
        self._grid: Grid | None = None
        self.center_row: int = 0
        self.center_col: int = 0
        self.last_synced_text: str | None = None
        self._pending = threading.Event()

    # -- State -------------------------------------------------------------

    @property
    def ready(self) -> bool:
        return self._grid is not None

    @property
    def grid(self) -> Grid:
        return self._require_grid()

    @property
    def center(self) -> tuple[int, int]:
        return self.center_row, self.center_col

    def _require_grid(self) -> Grid:
        if self._grid is None:
            raise NotInitializedError("no grid loaded; initialize first")
        return self._grid

    def _require_source(self) -> TextSource:
        if self.source is None:
            raise NotInitializedError("no text source attached")
        return self.source

    def _install(self, grid: Grid, text: str) -> None:
        """Swap in a new grid, re-wrapping the center against it."""
        self._grid = grid
        self.last_synced_text = text
        self.center_row = wrap_index(self.center_row, grid.row_count())
        self.center_col = wrap_index(
            self.center_col, grid.row_length(self.center_row)
        )

    # -- Loading -----------------------------------------------------------

    def initialize(self, raw_text: str) -> tuple[VisibleCell, ...]:
        grid = Grid(raw_text)  # EmptySourceError leaves prior state alone
        if self.start_row is not None:
            row = wrap_index(self.start_row, grid.row_count())
        else:
            row = self._rng.randrange(grid.row_count())
        self.center_row = row
        self.center_col = 0
        self._install(grid, raw_text)
        self._pending.clear()
        logger.info(
            "Loaded grid with %d rows, starting at row %d", grid.row_count(), row
        )
        return self.compute_visible()

    def load(self) -> tuple[VisibleCell, ...]:
        """Initialize from the attached source."""
        return self.initialize(self._require_source().read_all_text())

    def reload(self, raw_text: str) -> tuple[VisibleCell, ...]:
        """Rebuild the grid from ``raw_text``, keeping the view center."""
        self._require_grid()
        grid = Grid(raw_text)
        self._install(grid, raw_text)
        return self.compute_visible()

    def reload_from_source(self) -> bool:
        """Re-read the source. Returns False if nothing changed."""
        self._require_grid()
        source = self._require_source()
        try:
            text = source.read_all_text()
        except OSError as exc:
            logger.warning("Failed to reload data: %s", exc)
            raise
        if text == self.last_synced_text:
            logger.debug("Source matches last synced text, skipping reload")
            return False
        try:
            self.reload(text)
        except EmptySourceError as exc:
            logger.warning("Ignoring reload: %s", exc)
            raise
        logger.info("Data reloaded from source")
        return True

    # -- Write-back --------------------------------------------------------

    def sync_out(self, new_text: str) -> bool:
        """Write an in-app edit to the source and apply it.

        Returns False without writing when ``new_text`` is what the source
        already holds.
        """
        self._require_grid()
        if new_text == self.last_synced_text:
            return False
        source = self._require_source()
        grid = Grid(new_text)
        try:
            source.write_all_text(new_text)
        except OSError as exc:
            logger.warning("Failed to save data: %s", exc)
            raise
        self._install(grid, new_text)
        logger.info("Buffer saved to source and applied")
        return True

    # -- Change notifications ----------------------------------------------

    def notify_changed(self) -> None:
        """Mark a reload as pending. Safe to call from any thread."""
        self._pending.set()

    @property
    def reload_pending(self) -> bool:
        return self._pending.is_set()

    def process_pending(self) -> bool:
        """Run a pending reload, if any. Returns True if the grid changed."""
        if not self._pending.is_set() or self._grid is None:
            return False
        self._pending.clear()
        return self.reload_from_source()

    # -- Navigation --------------------------------------------------------

    def move(self, direction: Direction) -> tuple[VisibleCell, ...]:
        grid = self._require_grid()
        if direction is Direction.UP:
            self.center_row = wrap_index(self.center_row - 1, grid.row_count())
        elif direction is Direction.DOWN:
            self.center_row = wrap_index(self.center_row + 1, grid.row_count())
        elif direction is Direction.LEFT:
            self.center_col -= 1
        elif direction is Direction.RIGHT:
            self.center_col += 1
        # rows can differ in length
        self.center_col = wrap_index(
            self.center_col, grid.row_length(self.center_row)
        )
        return self.compute_visible()

    def compute_visible(self, radius: int | None = None) -> tuple[VisibleCell, ...]:
        grid = self._require_grid()
        if radius is None:
            radius = self.radius
        cells: list[VisibleCell] = []
        for dy in range(-radius, radius + 1):
            row = wrap_index(self.center_row + dy, grid.row_count())
            length = grid.row_length(row)
            for dx in range(-radius, radius + 1):
                col = wrap_index(self.center_col + dx, length)
                cells.append(VisibleCell(dx, dy, grid.cell_at(row, col)))
        return tuple(cells)

    def symbol_at_center(self) -> str:
        return self._require_grid().cell_at(self.center_row, self.center_col)
