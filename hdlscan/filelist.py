"""Filelist (``.f``) resolution.

A filelist names the source files that make up a design, one per
line, mixed with comments and tool flags::

    // top level
    +incdir+../include
    -v ../lib/cells.v
    rtl/fifo.sv          // inline comment
    $PROJ/rtl/ctrl.sv

:func:`resolve_filelist` keeps only the plain paths that exist on disk
and carry a recognised HDL extension.  Tool flags are skipped, not
interpreted, and environment variables are not expanded: such lines
are skipped with a warning.
"""

from __future__ import annotations

import logging
import os
from typing import Iterable, List, Set

logger = logging.getLogger(__name__)

HDL_EXTENSIONS = (".v", ".sv", ".vh", ".svh")

_COMMENT_PREFIXES = ("//", "#", "*")
_FLAG_PREFIXES = ("+", "-")


class FilelistResolver:
    """Resolve filelists into ordered, de-duplicated absolute paths."""

    def __init__(self, extensions: Iterable[str] = HDL_EXTENSIONS) -> None:
        self.extensions = tuple(ext.lower() for ext in extensions)

    def resolve(self, filelist_path: str) -> List[str]:
        """Return the existing HDL files listed in ``filelist_path``.

        Relative entries are resolved against the filelist's own
        directory.  Order of first appearance is kept.
        """
        if not os.path.isfile(filelist_path):
            logger.warning("Filelist not found: %s", filelist_path)
            return []

        with open(filelist_path, "r", encoding="utf-8", errors="replace") as fh:
            lines = fh.read().splitlines()

        root_dir = os.path.dirname(os.path.abspath(filelist_path))
        files: List[str] = []
        seen: Set[str] = set()
        for lineno, raw in enumerate(lines, start=1):
            entry = self._entry(raw)
            if entry is None:
                continue
            if "$" in entry:
                logger.warning(
                    "%s:%d: skipped path with environment variable: %s",
                    filelist_path, lineno, entry,
                )
                continue
            path = entry if os.path.isabs(entry) else os.path.join(root_dir, entry)
            path = os.path.normpath(path)
            if not os.path.isfile(path):
                logger.debug("%s:%d: no such file: %s", filelist_path, lineno, path)
                continue
            if not path.lower().endswith(self.extensions):
                logger.debug("%s:%d: not an HDL source: %s", filelist_path, lineno, path)
                continue
            if path not in seen:
                seen.add(path)
                files.append(path)
        return files

    def _entry(self, raw: str):
        """Return the path text of a filelist line, or ``None`` to skip it."""
        line = raw.strip()
        if not line or line.startswith(_COMMENT_PREFIXES):
            return None
        if line.startswith(_FLAG_PREFIXES):
            # +incdir+..., -v lib.v, -y dir
            return None
        comment = line.find("//")
        if comment != -1:
            line = line[:comment].strip()
        return line or None


def resolve_filelist(filelist_path: str, extensions: Iterable[str] = HDL_EXTENSIONS) -> List[str]:
    """Convenience wrapper around :meth:`FilelistResolver.resolve`."""
    return FilelistResolver(extensions).resolve(filelist_path)
