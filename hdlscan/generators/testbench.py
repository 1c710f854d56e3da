"""SystemVerilog testbench skeletons.

:class:`TestbenchGenerator` wraps a module instance in a self-checking
simulation template: clock generator, reset task, main stimulus
process and a watchdog that fails the run when the cycle budget runs
out.  Clock and reset ports are found by name heuristics and tied to
the testbench's own ``clk`` and ``rst_n``.

The skeleton itself lives in ``templates/testbench.sv.jinja2``.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Tuple

from jinja2 import Environment, FileSystemLoader

from ..model import Module
from .base import (
    DEFAULT_CLOCK_PATTERN,
    DEFAULT_RESET_PATTERN,
    ModuleGenerator,
    find_port,
    generator_registry,
)

# Template directory
TEMPLATES_DIR = Path(__file__).parent / "templates"


def testbench_filename(module: Module) -> str:
    """File name for the testbench of ``module``; always ``.sv``."""
    return f"tb_{module.name}.sv"


@generator_registry.register("testbench")
class TestbenchGenerator(ModuleGenerator):
    """Render a ``tb_<module>`` testbench around one module instance."""

    __test__ = False  # not a unittest/pytest class despite the name

    def __init__(self, clock_pattern: str = DEFAULT_CLOCK_PATTERN,
                 reset_pattern: str = DEFAULT_RESET_PATTERN,
                 clock_period: float = 10.0, reset_cycles: int = 10,
                 timeout: int = 50000) -> None:
        self.clock_pattern = clock_pattern
        self.reset_pattern = reset_pattern
        self.clock_period = clock_period
        self.reset_cycles = reset_cycles
        self.timeout = timeout
        self._env = Environment(
            loader=FileSystemLoader(TEMPLATES_DIR),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=True,
        )

    def clock_and_reset(self, module: Module):
        """Names of the clock and reset ports, ``clk``/``rst_n`` when absent."""
        clock = find_port(module.ports, self.clock_pattern)
        reset = find_port(module.ports, self.reset_pattern)
        return (clock.name if clock else "clk", reset.name if reset else "rst_n")

    def generate(self, module: Module) -> str:
        clock, reset = self.clock_and_reset(module)
        ports = module.ports

        connections: List[Tuple[str, str]] = []
        for port in ports:
            target = port.name
            if port.name == clock:
                target = "clk"
            elif port.name == reset:
                target = "rst_n"
            connections.append((port.name, target))

        template = self._env.get_template("testbench.sv.jinja2")
        return template.render(
            name=module.name,
            clock_period=self.clock_period,
            timeout=self.timeout,
            reset_cycles=self.reset_cycles,
            parameters=module.parameters,
            signals=[p for p in ports if p.name not in (clock, reset)],
            connections=connections,
            width=max((len(p.name) for p in ports), default=0) + 1,
        )
