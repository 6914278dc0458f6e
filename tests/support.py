from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

from charging_simulator.config.interfaces import WatchEvent, WatchListener


class FakeWatchHandle:
    def __init__(self) -> None:
        self.stopped = False

    def stop(self) -> None:
        self.stopped = True


class FakeFileWatcher:
    """In-memory stand-in for the file-system watch primitive."""

    def __init__(self, error: Optional[BaseException] = None) -> None:
        self.error = error
        self.watched: list[Path] = []
        self.listeners: list[WatchListener] = []

    def watch(self, path: Path, listener: WatchListener) -> FakeWatchHandle:
        if self.error is not None:
            raise self.error
        self.watched.append(path)
        self.listeners.append(listener)
        return FakeWatchHandle()

    def emit(self, event: WatchEvent = "change", filename: Optional[str] = "config.json") -> None:
        for listener in list(self.listeners):
            listener(event, filename)


def write_config(path: Path, data: Any) -> None:
    path.write_text(json.dumps(data), encoding="utf-8")
