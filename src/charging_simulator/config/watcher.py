from __future__ import annotations

import logging
import os
from pathlib import Path

from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from charging_simulator.config.interfaces import WatchListener

logger = logging.getLogger(__name__)

_REPORTED_EVENT_TYPES = {EVENT_TYPE_CREATED, EVENT_TYPE_DELETED, EVENT_TYPE_MODIFIED, EVENT_TYPE_MOVED}


class _SingleFileEventHandler(FileSystemEventHandler):
    def __init__(self, path: Path, listener: WatchListener):
        super().__init__()
        self._path = path
        self._listener = listener

    def _concerns_watched_file(self, event: FileSystemEvent) -> bool:
        for raw_path in (event.src_path, getattr(event, "dest_path", "")):
            if raw_path and Path(os.fsdecode(raw_path)) == self._path:
                return True
        return False

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.is_directory or event.event_type not in _REPORTED_EVENT_TYPES:
            return
        if not self._concerns_watched_file(event):
            return
        kind = "change" if event.event_type == EVENT_TYPE_MODIFIED else "rename"
        logger.debug("Configuration file event. type=%s path=%s", event.event_type, self._path)
        self._listener(kind, self._path.name)


class WatchdogWatchHandle:
    def __init__(self, observer: Observer):
        self._observer = observer

    def stop(self) -> None:
        self._observer.stop()
        self._observer.join(timeout=5.0)


class WatchdogFileWatcher:
    """
    Watch a single file with a watchdog observer on its parent directory.

    The observer thread is a daemon; it lives until the process exits unless the returned
    handle is stopped.
    """

    def watch(self, path: Path, listener: WatchListener) -> WatchdogWatchHandle:
        resolved = path.resolve()
        observer = Observer()
        observer.schedule(_SingleFileEventHandler(resolved, listener), str(resolved.parent), recursive=False)
        observer.start()
        logger.info("Watching configuration file for changes. path=%s", resolved)
        return WatchdogWatchHandle(observer)
