"""Module documentation as Markdown or CSV tables.

Both generators list parameters and ports.  Ports are ordered for
reading, not declaration: clock and reset ports first, then inputs,
outputs, inouts; ties keep declaration order.  The Markdown variant
ends with an example instantiation.
"""

from __future__ import annotations

import csv
import datetime
import io
import os
from typing import List, Optional

from ..model import Direction, Module, Port
from .base import (
    DEFAULT_CLOCK_PATTERN,
    DEFAULT_RESET_PATTERN,
    ModuleGenerator,
    generator_registry,
    is_clock_or_reset,
)
from .instantiation import InstantiationGenerator

_DIRECTION_ORDER = {Direction.INPUT: 1, Direction.OUTPUT: 2, Direction.INOUT: 3}


def sort_ports(ports: List[Port],
               clock_pattern: str = DEFAULT_CLOCK_PATTERN,
               reset_pattern: str = DEFAULT_RESET_PATTERN) -> List[Port]:
    """Clock/reset ports first, then by direction; stable otherwise."""
    def key(port: Port):
        special = is_clock_or_reset(port.name, clock_pattern, reset_pattern)
        return (0 if special else 1, _DIRECTION_ORDER.get(port.direction, 4))
    return sorted(ports, key=key)


def _table(headers: List[str], rows: List[List[str]]) -> List[str]:
    lines = ["| " + " | ".join(headers) + " |",
             "|" + "|".join([" :--- "] * len(headers)) + "|"]
    for row in rows:
        lines.append("| " + " | ".join(row) + " |")
    return lines


@generator_registry.register("markdown")
class MarkdownDocGenerator(ModuleGenerator):
    """Render a module reference page in GitHub Flavoured Markdown."""

    def __init__(self, date: Optional[datetime.date] = None,
                 clock_pattern: str = DEFAULT_CLOCK_PATTERN,
                 reset_pattern: str = DEFAULT_RESET_PATTERN) -> None:
        self.date = date
        self.clock_pattern = clock_pattern
        self.reset_pattern = reset_pattern

    def generate(self, module: Module) -> str:
        date = (self.date or datetime.date.today()).isoformat()
        lines = [
            f"# Module: {module.name}",
            "",
            f"**File:** `{os.path.basename(module.source_file)}`  ",
            f"**Date:** {date}",
            "",
        ]

        if module.parameters:
            lines += ["## Parameters", ""]
            lines += _table(
                ["Name", "Default Value", "Description"],
                [[f"`{p.name}`", f"`{p.default_value}`", "-"] for p in module.parameters],
            )
            lines.append("")

        if module.ports:
            lines += ["## Interface", ""]
            ports = sort_ports(module.ports, self.clock_pattern, self.reset_pattern)
            lines += _table(
                ["Port Name", "Direction", "Type", "Description"],
                [[f"**{p.name}**", str(p.direction), f"`{p.type}`" if p.type else "", "-"]
                 for p in ports],
            )
            lines.append("")
        else:
            lines += ["*(No ports detected)*", ""]

        lines += [
            "## Example Instantiation",
            "",
            "```verilog",
            InstantiationGenerator(with_comments=False).generate(module),
            "```",
        ]
        return "\n".join(lines) + "\n"


@generator_registry.register("csv")
class CsvDocGenerator(ModuleGenerator):
    """Render the parameter and port tables as CSV sections."""

    def __init__(self, clock_pattern: str = DEFAULT_CLOCK_PATTERN,
                 reset_pattern: str = DEFAULT_RESET_PATTERN) -> None:
        self.clock_pattern = clock_pattern
        self.reset_pattern = reset_pattern

    def generate(self, module: Module) -> str:
        output = io.StringIO()
        writer = csv.writer(output, lineterminator="\n")
        writer.writerow(["Parameter Name", "Default Value"])
        for p in module.parameters:
            writer.writerow([p.name, p.default_value])
        writer.writerow([])
        writer.writerow(["Port Name", "Direction", "Type", "Bit Range"])
        for p in sort_ports(module.ports, self.clock_pattern, self.reset_pattern):
            writer.writerow([p.name, str(p.direction), p.type, p.bit_range])
        return output.getvalue()
