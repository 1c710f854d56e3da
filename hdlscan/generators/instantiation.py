"""Module instantiation templates.

The generated template self-connects every port (``.data ( data )``)
so that the user only has to edit the actual signal names.  With
comments enabled every port line carries a trailing comment::

    .data_in  ( data_in  ),     // input logic [7:0]

That comment is a stable text protocol rather than decoration:
:class:`hdlscan.generators.declaration.SignalDeclarator` reads it back
to declare the connected signals.
"""

from __future__ import annotations

from typing import List

from ..model import Module, Port
from .base import ModuleGenerator, generator_registry, pad_names


@generator_registry.register("instantiation")
class InstantiationGenerator(ModuleGenerator):
    """Render ``name #( ... ) u_name ( ... );`` for a module."""

    def __init__(self, with_comments: bool = False, comment_column: int = 30,
                 indent: str = "    ", instance_prefix: str = "u_") -> None:
        self.with_comments = with_comments
        self.comment_column = comment_column
        self.indent = indent
        self.instance_prefix = instance_prefix

    def generate(self, module: Module) -> str:
        instance = f"{self.instance_prefix}{module.name}"
        return f"{module.name}{self._parameter_block(module)} {instance}{self._port_block(module)}"

    @staticmethod
    def port_comment(port: Port) -> str:
        """Comment text for one port: direction, then the declared type."""
        return " ".join(part for part in (str(port.direction), port.type) if part)

    def _parameter_block(self, module: Module) -> str:
        params = module.parameters
        if not params:
            return ""
        lines: List[str] = []
        for i, (param, padded) in enumerate(zip(params, pad_names(p.name for p in params))):
            end = "" if i == len(params) - 1 else ","
            lines.append(f"{self.indent}.{padded} ( {param.default_value} ){end}")
        return " #(\n" + "\n".join(lines) + "\n)"

    def _port_block(self, module: Module) -> str:
        ports = module.ports
        if not ports:
            return " ();"
        lines: List[str] = []
        for i, (port, padded) in enumerate(zip(ports, pad_names(p.name for p in ports))):
            end = "" if i == len(ports) - 1 else ","
            line = f"{self.indent}.{padded} ( {padded} ){end}"
            if self.with_comments:
                pad = " " * max(0, self.comment_column - len(line))
                line += f"{pad} // {self.port_comment(port)}"
            lines.append(line)
        return " (\n" + "\n".join(lines) + "\n);"
