"""Torus grid viewer application."""

from __future__ import annotations

import argparse
import logging
import random
import sys

from textual.app import App, ComposeResult
from textual.containers import Horizontal, Vertical
from textual.logging import TextualHandler
from textual.widgets import Footer, Header, Static, TextArea

from torview.grid import EmptySourceError
from torview.source import FileTextSource, FileWatcher
from torview.viewport import ViewportController
from torview.widget import GridView

logger = logging.getLogger(__name__)

DEFAULT_DATA = """\
1234123412
2341234123
3412341234
4123412341
1234123412
"""


class TorviewApp(App):
    """Grid window on the left, the editable source text on the right."""

    CSS = """
    Screen {
        layout: vertical;
    }
    #main {
        height: 1fr;
    }
    #grid {
        width: 1fr;
        border: solid $accent;
    }
    #buffer-panel {
        width: 1fr;
        display: none;
    }
    #buffer-panel.visible {
        display: block;
    }
    #buffer {
        height: 1fr;
        border: solid $accent 50%;
    }
    #help-bar {
        height: auto;
        padding: 0 1;
        color: $text-muted;
        background: $surface;
        border-top: solid $accent 50%;
    }
    """

    TITLE = "Torus Grid"
    BINDINGS = [
        ("ctrl+r", "reload", "Reload"),
        ("f2", "toggle_buffer", "Edit text"),
    ]
    ENABLE_COMMAND_PALETTE = False

    def __init__(
        self,
        controller: ViewportController,
        watcher: FileWatcher | None = None,
        poll_interval: float = 0.1,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.controller = controller
        self.watcher = watcher
        self.poll_interval = poll_interval
        # Buffer text as last loaded from the source, not typed by the user.
        self._loaded_text: str | None = None

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)
        with Horizontal(id="main"):
            yield GridView(self.controller, id="grid")
            with Vertical(id="buffer-panel"):
                buffer = TextArea(self.controller.last_synced_text or "", id="buffer")
                self._loaded_text = buffer.text
                yield buffer
        yield Static(
            "[b]Move:[/b] w a s d  h j k l  arrows   "
            "[b]Edit:[/b] f2 [dim]toggle text[/]   "
            "[b]Reload:[/b] ctrl+r",
            id="help-bar",
        )
        yield Footer()

    def on_mount(self) -> None:
        self._update_title()
        self.query_one("#grid", GridView).refresh_cells()
        self.query_one("#grid").focus()
        if self.watcher is not None:
            self.watcher.start()
        self.set_interval(self.poll_interval, self._process_pending)

    def on_unmount(self) -> None:
        if self.watcher is not None:
            self.watcher.stop()

    def _update_title(self, note: str = "") -> None:
        source = getattr(self.controller.source, "path", None)
        title = str(source) if source is not None else "[memory]"
        self.sub_title = f"{title} {note}".rstrip()

    def _show_text(self, text: str) -> None:
        buffer = self.query_one("#buffer", TextArea)
        if buffer.text != text:
            buffer.load_text(text)
        # load_text may normalize line endings, so keep what the buffer holds.
        self._loaded_text = buffer.text

    # -- Sync --------------------------------------------------------------

    def _process_pending(self) -> None:
        try:
            changed = self.controller.process_pending()
        except OSError as exc:
            self.notify(f"Reload failed: {exc}", severity="error", timeout=6)
            return
        except EmptySourceError as exc:
            self.notify(f"Reload skipped: {exc}", severity="warning")
            return
        if changed:
            self._after_reload()
            self.notify("Data reloaded from disk", severity="information")

    def _after_reload(self) -> None:
        self.query_one("#grid", GridView).refresh_cells()
        self._show_text(self.controller.last_synced_text or "")
        self._update_title()

    def action_reload(self) -> None:
        self.controller.notify_changed()
        self._process_pending()

    def action_toggle_buffer(self) -> None:
        panel = self.query_one("#buffer-panel")
        panel.toggle_class("visible")
        if panel.has_class("visible"):
            self.query_one("#buffer").focus()
        else:
            self.query_one("#grid").focus()

    def on_grid_view_moved(self, event: GridView.Moved) -> None:
        logger.debug("Center at (%d, %d): %r", event.row, event.col, event.symbol)

    def on_text_area_changed(self, event: TextArea.Changed) -> None:
        text = event.text_area.text
        if not self.controller.ready or text == self._loaded_text:
            return
        self._loaded_text = None
        try:
            written = self.controller.sync_out(text)
        except EmptySourceError:
            self._update_title("[no rows, not saved]")
            return
        except OSError as exc:
            self.notify(f"Save failed: {exc}", severity="error", timeout=6)
            return
        if written:
            self.query_one("#grid", GridView).refresh_cells()
            self._update_title("[saved]")


def configure_logging(level: str = "WARNING", log_file: str = "") -> None:
    handlers: list[logging.Handler] = [TextualHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        handlers=handlers,
        force=True,
    )


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="torview",
        description="Wrap-around grid viewer in Textual",
    )
    parser.add_argument(
        "file",
        nargs="?",
        default="data.txt",
        help="grid text file (created with sample data if missing)",
    )
    parser.add_argument(
        "-r", "--radius",
        type=int,
        default=1,
        help="cells shown on each side of the center (default: 1)",
    )
    parser.add_argument(
        "--start-row",
        type=int,
        default=None,
        help="row to start on (default: random)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="seed for the random start row",
    )
    parser.add_argument(
        "--poll-interval",
        type=float,
        default=0.25,
        help="seconds between file checks",
    )
    parser.add_argument(
        "--settle",
        type=float,
        default=0.1,
        help="seconds a changed file must stay unchanged before reloading",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="logging level (DEBUG, INFO, WARNING, ...)",
    )
    parser.add_argument(
        "--log-file",
        default="",
        help="also write log lines to this file",
    )
    args = parser.parse_args()

    configure_logging(args.log_level, args.log_file)

    if args.radius < 0:
        parser.error("--radius must be >= 0")

    source = FileTextSource(args.file)
    try:
        source.ensure_exists(DEFAULT_DATA)
        controller = ViewportController(
            source,
            radius=args.radius,
            start_row=args.start_row,
            rng=random.Random(args.seed),
        )
        controller.load()
    except (OSError, EmptySourceError) as exc:
        print(f"torview: {args.file}: {exc}", file=sys.stderr)
        sys.exit(1)

    watcher = FileWatcher(
        source.path,
        controller.notify_changed,
        interval=args.poll_interval,
        settle=args.settle,
    )
    app = TorviewApp(controller, watcher=watcher)
    app.run()


if __name__ == "__main__":
    main()
