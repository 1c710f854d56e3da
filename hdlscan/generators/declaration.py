"""Signal declarations from instantiation code.

:class:`SignalDeclarator` reads a block of instantiation text that
follows the comment protocol of
:class:`~hdlscan.generators.instantiation.InstantiationGenerator`::

    .addr     ( rd_addr  ),     // input logic [ADDR_W-1:0]
    .valid    ( 1'b1     ),     // input

and turns every connected signal into a declaration::

    logic [ADDR_W-1:0] rd_addr;

Constants (``1'b1``, ``0``, ``'0``) and expressions are not signals and
are skipped, as are names in the ignore set (clocks and resets are
usually declared already).
"""

from __future__ import annotations

import re
from typing import Iterable, List, Optional, Set

from ..model import Direction, Port

DEFAULT_IGNORE = ("clk", "rst_n", "rst", "clock", "reset")

_LINE_RE = re.compile(r"\(\s*([^\s()]+)\s*\).*?//\s*(input|output|inout)\b(.*)$")
_IDENT_RE = re.compile(r"[A-Za-z_]\w*")
_RANGE_RE = re.compile(r"\[[^\]]*\]")


class SignalDeclarator:
    """Read protocol comments and render signal declarations."""

    def __init__(self, storage: str = "logic", ignore: Optional[Iterable[str]] = None) -> None:
        self.storage = storage
        self.ignore: Set[str] = set(DEFAULT_IGNORE if ignore is None else ignore)

    def read(self, text: str) -> List[Port]:
        """Return one :class:`Port` per connected signal, first occurrence wins.

        The port's ``type`` is the comment text after the direction, so
        its ``bit_range`` is the range the instantiated module declared.
        """
        signals: List[Port] = []
        seen: Set[str] = set()
        for line in text.splitlines():
            m = _LINE_RE.search(line)
            if not m:
                continue
            name = m.group(1)
            if name[0].isdigit() or name.startswith("'"):
                continue
            if not _IDENT_RE.fullmatch(name) or name in seen:
                continue
            seen.add(name)
            signals.append(Port(
                name=name,
                direction=Direction.parse(m.group(2)),
                type=" ".join(m.group(3).split()),
            ))
        return signals

    def declare(self, signals: Iterable[Port]) -> List[str]:
        """Render aligned ``storage [range] name;`` lines, skipping ignored names."""
        wanted = [s for s in signals if s.name not in self.ignore]
        width = max((len(s.bit_range) for s in wanted), default=0)
        lines: List[str] = []
        for sig in wanted:
            if width:
                lines.append(f"{self.storage} {sig.bit_range.ljust(width)} {sig.name};")
            else:
                lines.append(f"{self.storage} {sig.name};")
        return lines

    def generate(self, text: str) -> str:
        """Declarations for every signal connected in ``text``, one per line."""
        return "\n".join(self.declare(self.read(text)))
