from __future__ import annotations

from pathlib import Path
from typing import Awaitable, Callable, Literal, Mapping, Optional, Protocol

WatchEvent = Literal["change", "rename"]
WatchListener = Callable[[WatchEvent, Optional[str]], None]
ReloadCallback = Callable[[], Awaitable[None]]
CloudEnvironmentPredicate = Callable[[Mapping[str, str]], bool]


class WatchHandle(Protocol):
    def stop(self) -> None:
        """Stop delivering events. Not required for the store's own lifecycle."""


class FileWatcher(Protocol):
    """
    Subscribes to change notifications for a single file.

    Implementations report `"change"` for content modifications and `"rename"` for any
    other event (creation, deletion, move). `filename` is the base name of the file the
    event refers to, or None when the platform does not provide it. Listeners may be
    called from a background thread.
    """

    def watch(self, path: Path, listener: WatchListener) -> WatchHandle:
        ...
