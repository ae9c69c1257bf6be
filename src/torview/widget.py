"""Textual widget that draws the visible window of the grid."""

from __future__ import annotations

from dataclasses import dataclass

from rich.text import Text
from textual import events
from textual.message import Message
from textual.widget import Widget

from torview.viewport import Direction, ViewportController, VisibleCell

# Symbols without an entry are drawn as empty space.
SYMBOL_STYLES: dict[str, str] = {
    "1": "red",
    "2": "yellow",
    "3": "blue",
    "4": "purple",
}

KEY_DIRECTIONS: dict[str, Direction] = {
    "w": Direction.UP,
    "k": Direction.UP,
    "up": Direction.UP,
    "s": Direction.DOWN,
    "j": Direction.DOWN,
    "down": Direction.DOWN,
    "a": Direction.LEFT,
    "h": Direction.LEFT,
    "left": Direction.LEFT,
    "d": Direction.RIGHT,
    "l": Direction.RIGHT,
    "right": Direction.RIGHT,
}

SWATCH = "█"  # full block


def direction_for_key(key: str, character: str | None = None) -> Direction | None:
    """Translate a key event into a move, or None if the key is unbound."""
    if character and character in KEY_DIRECTIONS:
        return KEY_DIRECTIONS[character]
    return KEY_DIRECTIONS.get(key)


def render_cells(
    cells: tuple[VisibleCell, ...],
    radius: int,
    *,
    cell_width: int = 6,
    cell_height: int = 3,
    gap: int = 1,
) -> Text:
    """Lay out cells as colored swatches, one block per (dx, dy)."""
    by_pos = {(c.dx, c.dy): c.symbol for c in cells}
    span = range(-radius, radius + 1)
    blank = " " * cell_width
    sep = " " * gap
    result = Text()
    for dy in span:
        for line in range(cell_height):
            for i, dx in enumerate(span):
                if i:
                    result.append(sep)
                style = SYMBOL_STYLES.get(by_pos.get((dx, dy), ""))
                if style is None:
                    result.append(blank)
                else:
                    result.append(SWATCH * cell_width, style=style)
            result.append("\n")
        if gap and dy != radius:
            result.append("\n" * gap)
    return result


class GridView(Widget, can_focus=True):
    """Shows the controller's window and moves it on key presses.

    Keys: w a s d, h j k l or the arrow keys.
    """

    DEFAULT_CSS = """
    GridView {
        height: 1fr;
        padding: 1 2;
    }
    """

    @dataclass
    class Moved(Message):
        row: int
        col: int
        symbol: str

    def __init__(
        self,
        controller: ViewportController,
        *,
        name: str | None = None,
        id: str | None = None,
        classes: str | None = None,
    ) -> None:
        super().__init__(name=name, id=id, classes=classes)
        self.controller = controller
        self.cells: tuple[VisibleCell, ...] = ()
        self.status_msg: str = ""

    def show(self, cells: tuple[VisibleCell, ...]) -> None:
        """Replace the displayed cells."""
        self.cells = cells
        self.refresh()

    def refresh_cells(self) -> None:
        """Recompute cells from the controller's current state."""
        if self.controller.ready:
            self.show(self.controller.compute_visible())

    def _handle_key(self, event) -> Direction | None:
        direction = direction_for_key(event.key, event.character)
        if direction is None or not self.controller.ready:
            return None
        self.cells = self.controller.move(direction)
        row, col = self.controller.center
        self.status_msg = f"row {row + 1}, col {col + 1}"
        return direction

    def on_key(self, event: events.Key) -> None:
        if self._handle_key(event) is None:
            return
        event.prevent_default()
        event.stop()
        row, col = self.controller.center
        self.post_message(
            self.Moved(row, col, self.controller.symbol_at_center())
        )
        self.refresh()

    def render(self) -> Text:
        if not self.cells:
            return Text("(no data)", style="dim")
        result = render_cells(self.cells, self.controller.radius)
        if self.status_msg:
            result.append("\n")
            result.append(self.status_msg, style="dim")
        return result
