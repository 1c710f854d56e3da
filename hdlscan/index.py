"""Project-wide module index.

:class:`ProjectIndex` owns the authoritative fact base of a project:

* ``name -> Module`` for O(1) lookup by module name, and
* ``path -> {names}`` so that a file can be re-parsed or removed
  without a full rescan.

The index is kept consistent under arbitrary sequences of
:meth:`~ProjectIndex.update_file` and :meth:`~ProjectIndex.remove_file`
calls.  A failed re-parse (no ``module`` keyword, unreadable file,
timeout) leaves the file's previous entries in place, so a file that is
half-way through an edit keeps its last good module.

Module names share one global namespace.  When two files define the
same name the most recent successful parse wins; the shadowed
definition is remembered and takes over again if the winner goes
away.  :meth:`~ProjectIndex.duplicate_names` reports such clashes.

All mutation happens on the event loop thread.  File reads and parses
run in the default executor; results are applied without awaiting in
between, so each update is atomic with respect to the other
operations.
"""

from __future__ import annotations

import asyncio
import fnmatch
import itertools
import logging
import os
from typing import Callable, Dict, Iterator, List, Optional, Set

from .config import HelperConfig
from .filelist import FilelistResolver
from .model import Module
from .strategy import ParseStrategy, parser_registry

logger = logging.getLogger(__name__)


def _read_text(path: str) -> str:
    with open(path, "r", encoding="utf-8", errors="replace") as fh:
        return fh.read()


class ProjectIndex:
    """Incrementally maintained index of the modules under ``root``."""

    def __init__(
        self,
        root: str,
        config: Optional[HelperConfig] = None,
        strategy: Optional[ParseStrategy] = None,
    ) -> None:
        self.root = os.path.abspath(root)
        self.config = config or HelperConfig()
        self.strategy = strategy or parser_registry.create(self.config.strategy)
        self.filelist_mode = False

        self._modules: Dict[str, Module] = {}
        self._files: Dict[str, Set[str]] = {}
        # Latest successful parse of every live path, and who defines what.
        self._parsed: Dict[str, Module] = {}
        self._definers: Dict[str, Set[str]] = {}
        self._stamps: Dict[str, int] = {}
        self._counter = itertools.count(1)
        # Request tickets and locks of paths with an update in flight; only
        # the newest request may apply.  Tickets are globally increasing so
        # that a pruned path never reuses one.
        self._tickets: Dict[str, int] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._pending: Dict[str, int] = {}
        self._ticket_counter = itertools.count(1)

    # ------------------------------------------------------------------
    # Queries

    def get_module(self, name: str) -> Optional[Module]:
        return self._modules.get(name)

    def get_all_modules(self) -> List[Module]:
        return list(self._modules.values())

    def modules_in_file(self, path: str) -> List[Module]:
        """Modules whose current definition comes from ``path``."""
        names = self._files.get(self._normalize(path), set())
        return [self._modules[name] for name in sorted(names)]

    def files(self) -> List[str]:
        """Paths that currently own at least one module."""
        return sorted(self._files)

    def definitions_of(self, name: str) -> List[str]:
        """Every live path defining ``name``, oldest parse first.

        The last entry is the definition :meth:`get_module` returns.
        """
        paths = self._definers.get(name, set())
        return sorted(paths, key=lambda p: self._stamps[p])

    def duplicate_names(self) -> Dict[str, List[str]]:
        """Module names defined by more than one file."""
        return {
            name: self.definitions_of(name)
            for name, paths in sorted(self._definers.items())
            if len(paths) > 1
        }

    def __len__(self) -> int:
        return len(self._modules)

    def __contains__(self, name: str) -> bool:
        return name in self._modules

    # ------------------------------------------------------------------
    # Discovery

    def discover_files(self) -> List[str]:
        """Return the files a full scan should parse.

        If any filelist matching ``config.filelist_pattern`` exists under
        the root, the result is the union of all resolved filelists and
        :attr:`filelist_mode` is set.  Otherwise every file with a
        recognised extension is returned.
        """
        pattern = self.config.filelist_pattern
        filelists = sorted(self._walk(lambda name: fnmatch.fnmatch(name, pattern)))
        if filelists:
            self.filelist_mode = True
            logger.info("Found %d filelist(s), indexing listed files only", len(filelists))
            resolver = FilelistResolver(self.config.extensions)
            files: List[str] = []
            seen: Set[str] = set()
            for filelist in filelists:
                logger.debug("Resolving filelist %s", filelist)
                for path in resolver.resolve(filelist):
                    if path not in seen:
                        seen.add(path)
                        files.append(path)
            return files

        self.filelist_mode = False
        extensions = tuple(ext.lower() for ext in self.config.extensions)
        return sorted(self._walk(lambda name: name.lower().endswith(extensions)))

    def _walk(self, accept: Callable[[str], bool]) -> Iterator[str]:
        ignored = set(self.config.ignore_dirs)
        for dirpath, dirnames, filenames in os.walk(self.root):
            dirnames[:] = [d for d in dirnames if d not in ignored]
            for filename in filenames:
                if accept(filename):
                    yield os.path.normpath(os.path.join(dirpath, filename))

    # ------------------------------------------------------------------
    # Mutation

    async def rescan_all(self) -> int:
        """Clear the index and parse every discovered file concurrently.

        Returns:
            The number of modules in the index afterwards.
        """
        for path in list(self._pending):
            self._supersede(path)
        self._modules.clear()
        self._files.clear()
        self._parsed.clear()
        self._definers.clear()
        self._stamps.clear()

        files = self.discover_files()
        if not files:
            logger.warning("No HDL files found under %s", self.root)
            return 0
        logger.info("Parsing %d file(s) under %s", len(files), self.root)

        results = await asyncio.gather(
            *(self.update_file(path) for path in files), return_exceptions=True
        )
        for path, result in zip(files, results):
            if isinstance(result, BaseException):
                logger.error("Failed to index %s: %s", path, result)

        logger.info("Scan complete: %d module(s) indexed", len(self._modules))
        return len(self._modules)

    async def update_file(self, path: str) -> Optional[Module]:
        """Re-read and re-parse ``path``, then swap its module in.

        A newer :meth:`update_file` or :meth:`remove_file` for the same
        path supersedes this call; its result is then discarded.

        Returns:
            The module now indexed for ``path``, or ``None`` if the file
            was unreadable, held no module, timed out or was superseded.
        """
        path = self._normalize(path)
        ticket = self._supersede(path)
        self._pending[path] = self._pending.get(path, 0) + 1
        try:
            async with self._locks.setdefault(path, asyncio.Lock()):
                return await self._update_locked(path, ticket)
        finally:
            self._settle(path)

    async def _update_locked(self, path: str, ticket: int) -> Optional[Module]:
        if self._tickets.get(path) != ticket:
            logger.debug("Skipping superseded update of %s", path)
            return None

        loop = asyncio.get_running_loop()
        try:
            text = await loop.run_in_executor(None, _read_text, path)
        except OSError as exc:
            logger.error("Cannot read %s: %s", path, exc)
            return None

        timeout = self.config.parse_timeout or None
        try:
            module = await asyncio.wait_for(
                loop.run_in_executor(None, self.strategy.parse, text, path),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Parsing %s timed out after %ss", path, timeout)
            return None

        if self._tickets.get(path) != ticket:
            logger.debug("Discarding superseded parse of %s", path)
            return None
        if module is None:
            logger.debug("No module found in %s; keeping previous entries", path)
            return None
        self._apply(path, module)
        return module

    def update_text(self, path: str, text: str) -> Optional[Module]:
        """Index ``text`` as the current content of ``path``.

        Used for buffers that are not saved yet.  Supersedes any update
        of ``path`` still in flight.
        """
        path = self._normalize(path)
        if path in self._pending:
            self._supersede(path)
        module = self.strategy.parse(text, path)
        if module is None:
            logger.debug("No module found in %s; keeping previous entries", path)
            return None
        self._apply(path, module)
        return module

    def remove_file(self, path: str) -> List[str]:
        """Forget every module defined by ``path``.

        Returns:
            The names ``path`` owned before removal.
        """
        path = self._normalize(path)
        if path in self._pending:
            self._supersede(path)
        owned = sorted(self._files.get(path, set()))
        previous = self._parsed.pop(path, None)
        self._stamps.pop(path, None)
        if previous is not None:
            self._forget_definer(previous.name, path)
            self._release(path, previous.name)
        self._files.pop(path, None)
        if owned:
            logger.info("Removed %s from index: %s", path, ", ".join(owned))
        return owned

    # ------------------------------------------------------------------
    # Internal helpers

    def _normalize(self, path: str) -> str:
        return os.path.normpath(os.path.abspath(path))

    def _supersede(self, path: str) -> int:
        """Issue a new ticket for ``path``; updates holding older ones lose."""
        ticket = next(self._ticket_counter)
        self._tickets[path] = ticket
        return ticket

    def _settle(self, path: str) -> None:
        """Drop the lock and ticket of ``path`` once no update waits on them."""
        remaining = self._pending.get(path, 0) - 1
        if remaining > 0:
            self._pending[path] = remaining
            return
        self._pending.pop(path, None)
        self._locks.pop(path, None)
        self._tickets.pop(path, None)

    def _apply(self, path: str, module: Module) -> None:
        name = module.name
        previous = self._parsed.get(path)
        self._parsed[path] = module
        self._stamps[path] = next(self._counter)

        if previous is not None and previous.name != name:
            self._forget_definer(previous.name, path)
            self._release(path, previous.name)
        self._definers.setdefault(name, set()).add(path)

        existing = self._modules.get(name)
        if existing is not None and existing.source_file != path:
            logger.warning(
                "Module %s defined in %s shadows the definition in %s",
                name, path, existing.source_file,
            )
            self._discard_name(existing.source_file, name)
        self._modules[name] = module
        self._files.setdefault(path, set()).add(name)
        logger.debug("Indexed %s -> %s", name, path)

    def _release(self, path: str, name: str) -> None:
        """``path`` no longer defines ``name``; fall back to another definer."""
        self._discard_name(path, name)
        current = self._modules.get(name)
        if current is None or current.source_file != path:
            return
        del self._modules[name]
        remaining = self.definitions_of(name)
        if remaining:
            successor = remaining[-1]
            self._modules[name] = self._parsed[successor]
            self._files.setdefault(successor, set()).add(name)
            logger.info("Module %s now resolves to %s", name, successor)

    def _discard_name(self, path: str, name: str) -> None:
        names = self._files.get(path)
        if names is None:
            return
        names.discard(name)
        if not names:
            del self._files[path]

    def _forget_definer(self, name: str, path: str) -> None:
        paths = self._definers.get(name)
        if paths is None:
            return
        paths.discard(path)
        if not paths:
            del self._definers[name]
