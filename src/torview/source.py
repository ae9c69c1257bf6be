"""Text sources for the grid and a polling file watcher."""

from __future__ import annotations

import logging
import os
import threading
import time
from collections.abc import Callable
from pathlib import Path

logger = logging.getLogger(__name__)


class FileTextSource:
    """Whole-file reads and writes on a text file."""

    def __init__(self, path: str | os.PathLike[str], encoding: str = "utf-8") -> None:
        self.path = Path(path)
        self.encoding = encoding

    def read_all_text(self) -> str:
        return self.path.read_text(encoding=self.encoding)

    def write_all_text(self, text: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(text, encoding=self.encoding)

    def ensure_exists(self, default_text: str) -> bool:
        """Write ``default_text`` if the file is missing. Returns True if written."""
        if self.path.exists():
            return False
        logger.info("Creating %s with default contents", self.path)
        self.write_all_text(default_text)
        return True

    def __repr__(self) -> str:
        return f"FileTextSource({str(self.path)!r})"


class MemoryTextSource:
    """In-memory buffer standing in for a file.

    ``replace`` models an edit made by someone else and fires the
    subscribed listeners; ``write_all_text`` is the app's own write and
    does not.
    """

    def __init__(self, text: str = "") -> None:
        self.text = text
        self.write_count: int = 0
        self.fail_reads: bool = False
        self.fail_writes: bool = False
        self._listeners: list[Callable[[], None]] = []

    def read_all_text(self) -> str:
        if self.fail_reads:
            raise OSError("read failed")
        return self.text

    def write_all_text(self, text: str) -> None:
        if self.fail_writes:
            raise OSError("write failed")
        self.text = text
        self.write_count += 1

    def subscribe(self, callback: Callable[[], None]) -> None:
        self._listeners.append(callback)

    def replace(self, text: str) -> None:
        self.text = text
        for callback in list(self._listeners):
            callback()


_Signature = tuple[int, int] | None


class FileWatcher:
    """Poll a file's mtime/size on a background thread.

    ``callback`` runs on the watcher thread, once per settled burst of
    changes. It should do nothing heavier than setting a flag.
    """

    def __init__(
        self,
        path: str | os.PathLike[str],
        callback: Callable[[], None],
        *,
        interval: float = 0.25,
        settle: float = 0.1,
    ) -> None:
        self.path = Path(path)
        self.callback = callback
        self.interval = interval
        self.settle = settle
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._signature: _Signature = None

    def _stat(self) -> _Signature:
        try:
            st = self.path.stat()
        except OSError:
            return None
        return st.st_mtime_ns, st.st_size

    def start(self) -> None:
        if self._thread is not None:
            return
        self._signature = self._stat()
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name=f"watch:{self.path.name}", daemon=True
        )
        self._thread.start()
        logger.debug("Watching %s", self.path)

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=max(1.0, self.interval * 4))
            self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def __enter__(self) -> FileWatcher:
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()

    def poll(self) -> bool:
        """Check once. Fires the callback and returns True on a settled change."""
        current = self._stat()
        if current == self._signature:
            return False
        # Wait until the writer is done before reporting.
        while not self._stop.is_set():
            time.sleep(self.settle)
            latest = self._stat()
            if latest == current:
                break
            current = latest
        self._signature = current
        logger.debug("Change detected on %s", self.path)
        self.callback()
        return True

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self.poll()
            except Exception:
                logger.exception("File watcher callback failed")
