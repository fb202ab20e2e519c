#!/usr/bin/env python3
"""
  T E R M L I F E
  Conway's Game of Life on a fixed 130x40 board, drawn straight into the
  terminal.

  The board is seeded at random (roughly one cell in four alive), then
  advanced one generation every 220 ms. The edges are hard walls: cells
  beyond the board are simply dead, nothing wraps around.

  Rules:
    1. A live cell with fewer than two live neighbours dies.
    2. A live cell with two or three live neighbours lives on.
    3. A live cell with more than three live neighbours dies.
    4. A dead cell with exactly three live neighbours comes alive.

  Runs until interrupted (Ctrl-C). Needs a terminal of at least 130x40.
  Per-frame stats are logged to life_stats.csv in the current working
  directory.
"""

from __future__ import annotations

import curses
import sys
import time
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from typing import IO, Callable, ClassVar, Iterator, Protocol, Sequence

import numpy as np
from numpy.typing import NDArray
from scipy.ndimage import convolve

# ── Board ───────────────────────────────────────────────────────────────
WIDTH = 130
HEIGHT = 40

# ── Timing ──────────────────────────────────────────────────────────────
FRAME_DURATION_MS = 220

# ── Glyphs ──────────────────────────────────────────────────────────────
ALIVE_SYMBOL = "\u2588"  # █  full block
DEAD_SYMBOL = " "

# ── Convolution kernel (reused every step) ────────────────────────────
NEIGHBOR_KERNEL: NDArray = np.array([[1, 1, 1], [1, 0, 1], [1, 1, 1]], dtype=np.int16)

# Relative, so it lands in the working directory the program was started from
LOG_PATH = Path("life_stats.csv")


class TerminalTooSmallError(Exception):
    """The terminal cannot fit the board."""


# ═══════════════════════════════════════════════════════════════════════
#  Cells and the board
# ═══════════════════════════════════════════════════════════════════════

class CellState(IntEnum):
    DEAD = 0
    ALIVE = 1


@dataclass(frozen=True)
class Cell:
    x: int
    y: int
    state: CellState


class Grid:
    """
    A fixed-size board of cells, stored as an int8 array indexed [y, x].

    Grids are never resized. update_board() always hands back a new Grid,
    so a board that is being read is never written in the same pass.
    """

    ALIVE_CHARS: ClassVar[str] = "#O" + ALIVE_SYMBOL

    def __init__(
        self,
        width: int = WIDTH,
        height: int = HEIGHT,
        cells: NDArray | None = None,
    ) -> None:
        self.width: int = width
        self.height: int = height
        if cells is None:
            self.cells_array: NDArray[np.int8] = np.zeros((height, width), dtype=np.int8)
        else:
            if cells.shape != (height, width):
                raise ValueError(
                    f"cell array has shape {cells.shape}, expected {(height, width)}"
                )
            # any non-zero value counts as alive; stored strictly as 0/1
            self.cells_array = (np.asarray(cells) != 0).astype(np.int8)

    @classmethod
    def from_rows(cls, rows: Sequence[str]) -> Grid:
        """Build a grid from text rows; '#', 'O' or '█' mark live cells."""
        height = len(rows)
        width = max((len(r) for r in rows), default=0)
        grid = cls(width, height)
        for y, row in enumerate(rows):
            for x, ch in enumerate(row):
                if ch in cls.ALIVE_CHARS:
                    grid.set(x, y, CellState.ALIVE)
        return grid

    def get(self, x: int, y: int) -> CellState:
        return CellState(int(self.cells_array[y, x]))

    def set(self, x: int, y: int, state: CellState) -> None:
        self.cells_array[y, x] = state

    def cells(self) -> Iterator[Cell]:
        """Yield every cell, row by row, left to right."""
        for y, row in enumerate(self.cells_array.tolist()):
            for x, value in enumerate(row):
                yield Cell(x, y, CellState(value))

    def population(self) -> int:
        return int(self.cells_array.sum())

    def copy(self) -> Grid:
        return Grid(self.width, self.height, self.cells_array)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Grid):
            return NotImplemented
        return (
            self.cells_array.shape == other.cells_array.shape
            and bool(np.array_equal(self.cells_array, other.cells_array))
        )

    def __repr__(self) -> str:
        return f"Grid({self.width}x{self.height}, pop={self.population()})"


# ═══════════════════════════════════════════════════════════════════════
#  Seeding
# ═══════════════════════════════════════════════════════════════════════

def initialize_board(
    width: int = WIDTH,
    height: int = HEIGHT,
    rng: np.random.Generator | None = None,
) -> Grid:
    """Random board: each cell is alive when two coin flips both come up true (p = 1/4)."""
    if rng is None:
        rng = np.random.default_rng()
    first = rng.random((height, width)) < 0.5
    second = rng.random((height, width)) < 0.5
    return Grid(width, height, (first & second).astype(np.int8))


# ═══════════════════════════════════════════════════════════════════════
#  Simulation
# ═══════════════════════════════════════════════════════════════════════

def next_state(state: CellState, neighbors: int) -> CellState:
    if state == CellState.ALIVE and neighbors in (2, 3):
        return CellState.ALIVE
    if state == CellState.DEAD and neighbors == 3:
        return CellState.ALIVE
    return CellState.DEAD


def count_neighbors(grid: Grid, x: int, y: int) -> int:
    """Live cells around (x, y). Offsets that fall off the board are skipped."""
    count = 0
    for dy in (-1, 0, 1):
        for dx in (-1, 0, 1):
            if dx == 0 and dy == 0:
                continue
            nx, ny = x + dx, y + dy
            if nx < 0 or ny < 0 or nx >= grid.width or ny >= grid.height:
                continue
            if grid.cells_array[ny, nx]:
                count += 1
    return count


def neighbor_counts(grid: Grid) -> NDArray[np.int16]:
    """count_neighbors() for the whole board in one pass."""
    # mode="constant" pads with dead cells, so the edges never wrap
    return convolve(
        grid.cells_array.astype(np.int16), NEIGHBOR_KERNEL, mode="constant", cval=0
    )


def update_board(current: Grid) -> Grid:
    """Advance one generation. ``current`` is only read, never written."""
    n = neighbor_counts(current)
    alive = current.cells_array.view(np.bool_)
    n_is_3 = n == 3
    birth = ~alive & n_is_3
    survive = alive & (n_is_3 | (n == 2))
    return Grid(current.width, current.height, (birth | survive).astype(np.int8))


# ═══════════════════════════════════════════════════════════════════════
#  Rendering
# ═══════════════════════════════════════════════════════════════════════

class Window(Protocol):
    """The slice of curses.window the renderer needs."""

    def getmaxyx(self) -> tuple[int, int]: ...

    def addstr(self, y: int, x: int, s: str) -> None: ...

    def move(self, y: int, x: int) -> None: ...

    def refresh(self) -> None: ...


def park_position(window: Window, grid: Grid) -> tuple[int, int]:
    """Cursor resting spot just past the board's bottom-right corner."""
    max_y, max_x = window.getmaxyx()
    return min(grid.height, max_y - 1), min(grid.width, max_x - 1)


def render_board(window: Window, grid: Grid) -> None:
    """Draw every cell at its own position, then park the cursor off the board.

    Curses coordinates start at 0, so cell (x, y) lands on terminal
    column x + 1, row y + 1.
    """
    park_y, park_x = park_position(window, grid)
    max_y, max_x = window.getmaxyx()
    corner = (max_y - 1, max_x - 1)
    _addstr = window.addstr
    _move = window.move
    for cell in grid.cells():
        glyph = ALIVE_SYMBOL if cell.state == CellState.ALIVE else DEAD_SYMBOL
        try:
            _addstr(cell.y, cell.x, glyph)
        except curses.error:
            # Writing the window's last cell leaves nowhere for the cursor to go
            if (cell.y, cell.x) != corner:
                raise
        _move(park_y, park_x)


# ═══════════════════════════════════════════════════════════════════════
#  Stats logger
# ═══════════════════════════════════════════════════════════════════════

class StatsLogger:
    """Writes per-frame timing and population to CSV."""

    HEADER: ClassVar[str] = "gen,time_s,population,work_ms,slept_ms\n"

    def __init__(self, path: Path) -> None:
        self._path = path
        self._fh: IO[str] | None = None
        self._t0: float = time.monotonic()

    def open(self) -> None:
        try:
            self._fh = open(self._path, "w")
            self._fh.write(self.HEADER)
            self._fh.flush()
        except OSError:
            self._fh = None

    def log(self, gen: int, pop: int, work_ms: float, slept_ms: float) -> None:
        if self._fh is None:
            return
        t = time.monotonic() - self._t0
        try:
            self._fh.write(f"{gen},{t:.1f},{pop},{work_ms:.1f},{slept_ms:.1f}\n")
            if gen % 50 == 0:
                self._fh.flush()
        except OSError:
            self.close()

    def close(self) -> None:
        if self._fh is not None:
            try:
                self._fh.close()
            except OSError:
                pass
            self._fh = None


# ═══════════════════════════════════════════════════════════════════════
#  Main loop
# ═══════════════════════════════════════════════════════════════════════

def check_terminal_size(window: Window) -> None:
    rows, cols = window.getmaxyx()
    if cols < WIDTH or rows < HEIGHT:
        raise TerminalTooSmallError(
            "Terminal size too small. Please resize terminal to at least "
            f"{WIDTH} by {HEIGHT}"
        )


def wait_for_next_frame(
    last_update: float,
    interval: float = FRAME_DURATION_MS / 1000.0,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> float:
    """Sleep out whatever is left of the frame. Returns the seconds slept.

    A frame that already ran long is followed immediately by the next one;
    there is no catching up.
    """
    elapsed = clock() - last_update
    if elapsed >= interval:
        return 0.0
    remaining = interval - elapsed
    sleep(remaining)
    return remaining


def run(
    window: Window,
    *,
    frames: int | None = None,
    stats: StatsLogger | None = None,
    rng: np.random.Generator | None = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> Grid:
    """Step, render and pace the board. ``frames=None`` runs forever."""
    check_terminal_size(window)
    board = initialize_board(rng=rng)
    last_update = clock()
    generation = 0

    while frames is None or generation < frames:
        board = update_board(board)
        render_board(window, board)
        window.refresh()
        generation += 1

        work_s = clock() - last_update
        slept_s = wait_for_next_frame(last_update, clock=clock, sleep=sleep)
        last_update = clock()
        if stats is not None:
            stats.log(generation, board.population(), work_s * 1000.0, slept_s * 1000.0)

    return board


def main(stdscr: curses.window) -> None:
    curses.curs_set(0)

    logger = StatsLogger(LOG_PATH)
    logger.open()
    try:
        run(stdscr, stats=logger)
    finally:
        logger.close()


def cli() -> None:
    try:
        curses.wrapper(main)
    except KeyboardInterrupt:
        pass
    except TerminalTooSmallError as exc:
        sys.exit(str(exc))


if __name__ == "__main__":
    cli()
