"""Tests for TorviewApp wiring and startup helpers."""

import asyncio
import logging

import pytest
from textual.logging import TextualHandler
from textual.widgets import TextArea

from torview.app import DEFAULT_DATA, TorviewApp, configure_logging
from torview.grid import Grid
from torview.source import FileTextSource, MemoryTextSource
from torview.viewport import ViewportController
from torview.widget import GridView


def make_app(text="12\n34\n"):
    source = MemoryTextSource(text)
    controller = ViewportController(source, start_row=0)
    controller.load()
    source.subscribe(controller.notify_changed)
    return TorviewApp(controller, poll_interval=0.05), controller, source


def run(app, scenario):
    """Drive the app headless and run ``scenario(pilot)`` inside it."""

    async def main():
        async with app.run_test() as pilot:
            await pilot.pause()
            await scenario(pilot)

    asyncio.run(main())


class TestDefaults:
    """Sample data written for new files."""

    def test_default_data_is_square(self):
        grid = Grid(DEFAULT_DATA)
        lengths = {grid.row_length(r) for r in range(grid.row_count())}
        assert len(lengths) == 1

    def test_new_file_gets_default(self, tmp_path):
        source = FileTextSource(tmp_path / "data.txt")
        source.ensure_exists(DEFAULT_DATA)
        controller = ViewportController(source, start_row=0)
        controller.load()
        assert controller.last_synced_text == DEFAULT_DATA
        assert controller.symbol_at_center() == "1"


class TestBufferEdits:
    """Typing in the text buffer writes through to the source."""

    def test_typing_writes_once(self):
        app, controller, source = make_app()

        async def scenario(pilot):
            app.action_toggle_buffer()
            await pilot.pause()
            await pilot.press("x")
            await pilot.pause(0.2)

        run(app, scenario)
        assert source.write_count == 1
        assert source.text == "x12\n34\n"
        assert controller.symbol_at_center() == "x"

    def test_startup_does_not_write(self):
        app, _, source = make_app("12\r\n34\n")

        async def scenario(pilot):
            await pilot.pause(0.2)

        run(app, scenario)
        assert source.write_count == 0

    def test_buffer_without_rows_not_saved(self):
        app, controller, source = make_app()

        async def scenario(pilot):
            app.query_one("#buffer", TextArea).text = "\n\n"
            await pilot.pause(0.2)
            assert "not saved" in app.sub_title

        run(app, scenario)
        assert source.write_count == 0
        assert controller.grid.rows == ("12", "34")

    def test_write_failure_keeps_grid(self):
        app, controller, source = make_app()
        source.fail_writes = True

        async def scenario(pilot):
            app.action_toggle_buffer()
            await pilot.pause()
            await pilot.press("x")
            await pilot.pause(0.2)

        run(app, scenario)
        assert source.text == "12\n34\n"
        assert controller.grid.rows == ("12", "34")
        assert controller.last_synced_text == "12\n34\n"


class TestExternalReload:
    """Changes made to the source by someone else."""

    def test_reload_does_not_write_back(self):
        """Line endings the buffer normalizes must not cause a save."""
        app, controller, source = make_app()

        async def scenario(pilot):
            source.replace("ab\r\ncd\nef\n")
            await pilot.pause(0.5)
            assert "ab" in app.query_one("#buffer", TextArea).text

        run(app, scenario)
        assert source.write_count == 0
        assert source.text == "ab\r\ncd\nef\n"
        assert controller.grid.rows == ("ab", "cd", "ef")

    def test_reload_updates_grid_view(self):
        app, controller, source = make_app()

        async def scenario(pilot):
            source.replace("ab\ncd\n")
            await pilot.pause(0.5)
            cells = app.query_one("#grid", GridView).cells
            assert cells == controller.compute_visible()

        run(app, scenario)
        assert controller.symbol_at_center() == "a"

    def test_read_failure_keeps_grid(self):
        app, controller, source = make_app()

        async def scenario(pilot):
            before = app.query_one("#grid", GridView).cells
            source.fail_reads = True
            source.replace("ab\ncd\n")
            await pilot.pause(0.5)
            assert app.query_one("#grid", GridView).cells == before

        run(app, scenario)
        assert controller.grid.rows == ("12", "34")
        assert controller.last_synced_text == "12\n34\n"
        assert source.write_count == 0

    def test_empty_source_keeps_grid(self):
        app, controller, source = make_app()

        async def scenario(pilot):
            source.replace("\n\n")
            await pilot.pause(0.5)

        run(app, scenario)
        assert controller.grid.rows == ("12", "34")
        assert source.write_count == 0


class TestConfigureLogging:
    """Root logger setup used by main()."""

    @pytest.fixture(autouse=True)
    def restore_root_logger(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        for handler in root.handlers:
            if handler not in handlers:
                handler.close()
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_textual_handler(self):
        configure_logging("debug")
        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert any(isinstance(h, TextualHandler) for h in root.handlers)

    def test_log_file(self, tmp_path):
        log_file = tmp_path / "torview.log"
        configure_logging("info", str(log_file))
        logging.getLogger("torview.test").info("hello")
        for handler in logging.getLogger().handlers:
            handler.flush()
        assert "hello" in log_file.read_text(encoding="utf-8")

    def test_unknown_level_falls_back(self):
        """An unrecognized level name means WARNING."""
        configure_logging("nonsense")
        assert logging.getLogger().level == logging.WARNING
