"""Parsing strategies for HDL source files.

A strategy turns source text plus a file identity into zero or one
:class:`hdlscan.model.Module`.  The project index and the command line
only talk to :class:`ParseStrategy`, so the regex scanner and the
slang front end are interchangeable.  Strategies are registered in
:data:`parser_registry`:

* ``fast``: :class:`FastStrategy`, the default best-effort scanner.
* ``slang``: :class:`SlangStrategy`, elaborated headers via pyslang.
"""

from __future__ import annotations

from typing import Optional

from .model import Module
from .parser import FastParser
from .registry import Registry
from .slang_backend import SlangBackend

# Registry for parser strategies
parser_registry = Registry("parser")


class ParseStrategy:
    """Abstract base class for parsing strategies.

    Subclasses must implement :meth:`parse`.  Implementations must be
    safe to call from a worker thread, since the project index parses
    files in an executor.
    """

    def parse(self, text: str, path: str = "") -> Optional[Module]:  # pragma: no cover
        """Return the module defined in ``text``, or ``None``."""
        raise NotImplementedError

    def parse_file(self, path: str) -> Optional[Module]:
        """Read ``path`` and parse its contents.

        Raises:
            OSError: If the file cannot be read.
        """
        with open(path, "r", encoding="utf-8", errors="replace") as fh:
            text = fh.read()
        return self.parse(text, path)


@parser_registry.register("fast")
class FastStrategy(ParseStrategy):
    """Regex-based extraction; tolerant of incomplete and invalid text."""

    def __init__(self) -> None:
        self.parser = FastParser()

    def parse(self, text: str, path: str = "") -> Optional[Module]:
        return self.parser.parse(text, path)


@parser_registry.register("slang")
class SlangStrategy(ParseStrategy):
    """Port and parameter facts from the slang front end.

    Each call builds its own backend so that concurrent parses never
    share compilation state.
    """

    def parse(self, text: str, path: str = "") -> Optional[Module]:
        return SlangBackend().parse(text, path)
