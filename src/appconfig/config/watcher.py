from __future__ import annotations

import logging
import os
import threading
from typing import Callable, Optional, Tuple

from appconfig.config.models import ChangeKind, FileChangeEvent

logger = logging.getLogger(__name__)

_Signature = Tuple[int, int, int]


def _file_signature(path: str) -> Optional[_Signature]:
    try:
        st = os.stat(path)
    except FileNotFoundError:
        return None
    return st.st_ino, st.st_mtime_ns, st.st_size


class FileWatcher:
    """
    Polls a single file and reports changes from a background thread.

    Every observed change of (inode, mtime, size) fires the callback once. The callback runs on the
    watcher thread and should return quickly.
    """

    def __init__(
        self,
        path: str,
        callback: Callable[[FileChangeEvent], None],
        *,
        interval_seconds: float = 0.5,
    ) -> None:
        self.path = path
        self._callback = callback
        self._interval = interval_seconds
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._last: Optional[_Signature] = _file_signature(path)
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        with self._lock:
            if self.running:
                return
            self._stop_event.clear()
            self._last = _file_signature(self.path)
            self._thread = threading.Thread(
                target=self._run,
                name="config-watch",
                daemon=True,
            )
            self._thread.start()
        logger.info("config.watch_started path=%s interval=%s", self.path, self._interval)

    def stop(self, timeout: float = 5.0) -> None:
        with self._lock:
            thread = self._thread
            self._thread = None
            self._stop_event.set()
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=timeout)
            logger.info("config.watch_stopped path=%s", self.path)

    def poll(self) -> Optional[FileChangeEvent]:
        """Check the file once and return the change observed since the previous check, if any."""
        current = _file_signature(self.path)
        previous = self._last
        self._last = current
        if current == previous:
            return None
        if current is None:
            logger.warning("config.watched_file_missing path=%s", self.path)
            return None
        kind: ChangeKind = "created" if previous is None else "modified"
        return FileChangeEvent(path=self.path, kind=kind)

    def _run(self) -> None:
        while not self._stop_event.wait(self._interval):
            try:
                event = self.poll()
            except OSError as e:
                logger.error("config.watch_stat_error path=%s error=%s", self.path, e)
                continue
            if event is None:
                continue
            try:
                self._callback(event)
            except Exception:
                logger.exception("config.watch_callback_failed path=%s", self.path)
