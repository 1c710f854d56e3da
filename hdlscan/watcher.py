"""File system watching for the project index.

``watchdog`` delivers events on its observer thread.  They are handed
to the event loop with ``call_soon_threadsafe`` and fed through an
:class:`EventCoalescer`, which keeps one ordered queue per path:

* rapid successive events for one path collapse into the newest one,
* at most one index operation per path is in flight at a time,
* created/changed become :meth:`ProjectIndex.update_file`, deleted
  becomes :meth:`ProjectIndex.remove_file`.

A change to a filelist triggers a full :meth:`ProjectIndex.rescan_all`,
since the set of indexed files may have changed with it.
"""

from __future__ import annotations

import asyncio
import fnmatch
import logging
import os
from enum import Enum
from typing import Dict, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .index import ProjectIndex

logger = logging.getLogger(__name__)

# Queue key used for full rescans.
RESCAN_KEY = "<rescan>"


class EventKind(str, Enum):
    CREATED = "created"
    CHANGED = "changed"
    DELETED = "deleted"
    RESCAN = "rescan"


class EventCoalescer:
    """Per-path event queue in front of a :class:`ProjectIndex`.

    Must only be used from the event loop thread.
    """

    def __init__(self, index: ProjectIndex, debounce: float = 0.1) -> None:
        self.index = index
        self.debounce = debounce
        self._pending: Dict[str, EventKind] = {}
        self._workers: Dict[str, asyncio.Task] = {}

    def submit(self, kind: EventKind, path: str) -> None:
        """Queue ``kind`` for ``path``, replacing any not yet dispatched event."""
        key = RESCAN_KEY if kind is EventKind.RESCAN else os.path.abspath(path)
        self._pending[key] = kind
        if key not in self._workers:
            self._workers[key] = asyncio.get_running_loop().create_task(self._drain(key))

    def pending(self) -> int:
        return len(self._pending)

    async def join(self) -> None:
        """Wait until every queued event has been dispatched."""
        while self._workers:
            await asyncio.gather(*list(self._workers.values()), return_exceptions=True)

    async def _drain(self, key: str) -> None:
        try:
            while True:
                if self.debounce:
                    await asyncio.sleep(self.debounce)
                kind = self._pending.pop(key, None)
                if kind is None:
                    break
                try:
                    await self._dispatch(kind, key)
                except Exception:
                    logger.exception("Failed to handle %s event for %s", kind.value, key)
        finally:
            del self._workers[key]

    async def _dispatch(self, kind: EventKind, path: str) -> None:
        logger.debug("Dispatching %s for %s", kind.value, path)
        if kind is EventKind.DELETED:
            self.index.remove_file(path)
        elif kind is EventKind.RESCAN:
            await self.index.rescan_all()
        else:
            await self.index.update_file(path)


class HdlEventHandler(FileSystemEventHandler):
    """Forward HDL source and filelist events to an :class:`EventCoalescer`."""

    def __init__(self, coalescer: EventCoalescer, loop: asyncio.AbstractEventLoop) -> None:
        super().__init__()
        self.coalescer = coalescer
        self.loop = loop
        config = coalescer.index.config
        self.extensions = tuple(ext.lower() for ext in config.extensions)
        self.filelist_pattern = config.filelist_pattern
        self.ignore_dirs = set(config.ignore_dirs)

    def _classify(self, path: str) -> Optional[str]:
        parts = os.path.normpath(path).split(os.sep)
        if self.ignore_dirs.intersection(parts[:-1]):
            return None
        name = parts[-1]
        if fnmatch.fnmatch(name, self.filelist_pattern):
            return "filelist"
        if name.lower().endswith(self.extensions):
            return "source"
        return None

    def _post(self, kind: EventKind, path: str) -> None:
        category = self._classify(path)
        if category is None:
            return
        if category == "filelist":
            kind = EventKind.RESCAN
        self.loop.call_soon_threadsafe(self.coalescer.submit, kind, path)

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._post(EventKind.CREATED, event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._post(EventKind.CHANGED, event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._post(EventKind.DELETED, event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._post(EventKind.DELETED, event.src_path)
            self._post(EventKind.CREATED, event.dest_path)


class ProjectWatcher:
    """Keep a :class:`ProjectIndex` in sync with its directory tree.

    Example usage::

        index = ProjectIndex(root)
        await index.rescan_all()
        watcher = ProjectWatcher(index, asyncio.get_running_loop())
        watcher.start()
        ...
        watcher.stop()
    """

    def __init__(self, index: ProjectIndex, loop: asyncio.AbstractEventLoop) -> None:
        self.index = index
        self.coalescer = EventCoalescer(index, debounce=index.config.debounce)
        self.handler = HdlEventHandler(self.coalescer, loop)
        self._observer: Optional[Observer] = None

    def start(self) -> None:
        if self._observer is not None:
            return
        self._observer = Observer()
        self._observer.schedule(self.handler, self.index.root, recursive=True)
        self._observer.start()
        logger.info("Watching %s", self.index.root)

    def stop(self) -> None:
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join()
        self._observer = None
        logger.info("Stopped watching %s", self.index.root)
