import asyncio
import os
import tempfile
import unittest
from unittest.mock import MagicMock

from watchdog.events import (
    DirModifiedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from hdlscan.config import HelperConfig
from hdlscan.index import ProjectIndex
from hdlscan.watcher import (
    RESCAN_KEY,
    EventCoalescer,
    EventKind,
    HdlEventHandler,
    ProjectWatcher,
)


class _RecordingIndex:
    """Stands in for ProjectIndex and records the calls it receives."""

    def __init__(self, fail_on=None):
        self.config = HelperConfig()
        self.calls = []
        self.fail_on = fail_on

    async def update_file(self, path):
        await asyncio.sleep(0)
        if path == self.fail_on:
            raise RuntimeError("boom")
        self.calls.append(("update", path))

    def remove_file(self, path):
        self.calls.append(("remove", path))
        return []

    async def rescan_all(self):
        self.calls.append(("rescan", None))
        return 0


class TestEventCoalescer(unittest.IsolatedAsyncioTestCase):
    async def test_rapid_events_collapse_to_newest(self):
        index = _RecordingIndex()
        coalescer = EventCoalescer(index, debounce=0)
        path = os.path.abspath("rtl/a.sv")
        coalescer.submit(EventKind.CREATED, path)
        coalescer.submit(EventKind.CHANGED, path)
        coalescer.submit(EventKind.DELETED, path)
        self.assertEqual(coalescer.pending(), 1)

        await coalescer.join()
        self.assertEqual(index.calls, [("remove", path)])
        self.assertEqual(coalescer.pending(), 0)

    async def test_paths_dispatched_independently(self):
        index = _RecordingIndex()
        coalescer = EventCoalescer(index, debounce=0)
        a = os.path.abspath("a.sv")
        b = os.path.abspath("b.sv")
        coalescer.submit(EventKind.CHANGED, a)
        coalescer.submit(EventKind.DELETED, b)
        await coalescer.join()
        self.assertCountEqual(index.calls, [("update", a), ("remove", b)])

    async def test_event_during_dispatch_runs_after_it(self):
        index = _RecordingIndex()
        coalescer = EventCoalescer(index, debounce=0)
        path = os.path.abspath("a.sv")
        coalescer.submit(EventKind.CHANGED, path)
        await asyncio.sleep(0)
        coalescer.submit(EventKind.DELETED, path)
        await coalescer.join()
        self.assertEqual(index.calls, [("update", path), ("remove", path)])

    async def test_rescan_uses_single_key(self):
        index = _RecordingIndex()
        coalescer = EventCoalescer(index, debounce=0)
        coalescer.submit(EventKind.RESCAN, "a.f")
        coalescer.submit(EventKind.RESCAN, "b.f")
        self.assertEqual(coalescer._pending, {RESCAN_KEY: EventKind.RESCAN})
        await coalescer.join()
        self.assertEqual(index.calls, [("rescan", None)])

    async def test_failures_are_logged_not_raised(self):
        bad = os.path.abspath("bad.sv")
        index = _RecordingIndex(fail_on=bad)
        coalescer = EventCoalescer(index, debounce=0)
        with self.assertLogs("hdlscan.watcher", level="ERROR"):
            coalescer.submit(EventKind.CHANGED, bad)
            await coalescer.join()
        good = os.path.abspath("good.sv")
        coalescer.submit(EventKind.CHANGED, good)
        await coalescer.join()
        self.assertEqual(index.calls, [("update", good)])


class TestHdlEventHandler(unittest.TestCase):
    def setUp(self):
        self.coalescer = MagicMock()
        self.coalescer.index.config = HelperConfig()
        self.loop = MagicMock()
        self.handler = HdlEventHandler(self.coalescer, self.loop)

    def _posted(self):
        return [c.args[1:] for c in self.loop.call_soon_threadsafe.call_args_list]

    def test_sources_forwarded(self):
        self.handler.on_created(FileCreatedEvent("/p/rtl/a.sv"))
        self.handler.on_modified(FileModifiedEvent("/p/rtl/b.SVH"))
        self.handler.on_deleted(FileDeletedEvent("/p/rtl/c.v"))
        self.assertEqual(self._posted(), [
            (EventKind.CREATED, "/p/rtl/a.sv"),
            (EventKind.CHANGED, "/p/rtl/b.SVH"),
            (EventKind.DELETED, "/p/rtl/c.v"),
        ])
        for call in self.loop.call_soon_threadsafe.call_args_list:
            self.assertIs(call.args[0], self.coalescer.submit)

    def test_filelist_change_requests_rescan(self):
        self.handler.on_modified(FileModifiedEvent("/p/sim/files.f"))
        self.assertEqual(self._posted(), [(EventKind.RESCAN, "/p/sim/files.f")])

    def test_other_files_and_directories_ignored(self):
        self.handler.on_modified(FileModifiedEvent("/p/readme.txt"))
        self.handler.on_modified(FileModifiedEvent("/p/.git/x.sv"))
        self.handler.on_modified(DirModifiedEvent("/p/rtl"))
        self.assertEqual(self._posted(), [])

    def test_move_is_delete_then_create(self):
        self.handler.on_moved(FileMovedEvent("/p/a.sv.tmp", "/p/a.sv"))
        self.handler.on_moved(FileMovedEvent("/p/old.sv", "/p/new.sv"))
        self.assertEqual(self._posted(), [
            (EventKind.CREATED, "/p/a.sv"),
            (EventKind.DELETED, "/p/old.sv"),
            (EventKind.CREATED, "/p/new.sv"),
        ])


class TestProjectWatcher(unittest.IsolatedAsyncioTestCase):
    async def _wait_for(self, predicate, timeout=5.0):
        deadline = asyncio.get_running_loop().time() + timeout
        while not predicate():
            if asyncio.get_running_loop().time() > deadline:
                self.fail("condition not reached before timeout")
            await asyncio.sleep(0.05)

    async def test_index_follows_file_system(self):
        with tempfile.TemporaryDirectory() as tmp:
            root = os.path.realpath(tmp)
            index = ProjectIndex(root, HelperConfig(debounce=0.05))
            await index.rescan_all()

            watcher = ProjectWatcher(index, asyncio.get_running_loop())
            watcher.start()
            try:
                path = os.path.join(root, "live.sv")
                with open(path, "w") as fh:
                    fh.write("module live (input clk);\nendmodule\n")
                await self._wait_for(lambda: "live" in index)

                os.remove(path)
                await self._wait_for(lambda: "live" not in index)
            finally:
                watcher.stop()
                await watcher.coalescer.join()


if __name__ == "__main__":
    unittest.main()
