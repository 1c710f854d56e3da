"""Symbol model for indexed HDL sources.

This module defines the plain records produced by the parsers and
consumed by the project index, the generators and the navigation
helpers.  The records carry no behaviour beyond construction and
accumulation; every (re)parse of a file builds a fresh
:class:`Module` rather than mutating a previous one.

An :class:`Instance` only references the module it instantiates by
name.  Resolution happens lazily against the project index at query
time, so forward references, black-box IP and circular hierarchies
need no special handling while parsing.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

_BIT_RANGE_RE = re.compile(r"\[[^\]]*\]")


class Direction(str, Enum):
    """Port direction keyword."""

    INPUT = "input"
    OUTPUT = "output"
    INOUT = "inout"

    @classmethod
    def parse(cls, text: str) -> "Direction":
        """Return the direction named by ``text``.

        Raises:
            ValueError: If ``text`` is not a direction keyword.
        """
        return cls(text.strip().lower())

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Location:
    """A position inside a source file (0-based line and column)."""

    file: str
    line: int = 0
    column: int = 0
    length: int = 0

    def __str__(self) -> str:
        return f"{self.file}:{self.line + 1}:{self.column + 1}"


@dataclass
class Parameter:
    """A module parameter with its raw, unevaluated default expression."""

    name: str
    default_value: str = ""

    def __str__(self) -> str:
        return f"parameter {self.name} = {self.default_value}"


@dataclass
class Port:
    """A module port.

    ``type`` keeps the storage class and the optional packed range as
    written, e.g. ``"logic [7:0]"``, ``"[WIDTH-1:0]"`` or ``""``.
    """

    name: str
    direction: Direction
    type: str = ""

    @property
    def bit_range(self) -> str:
        m = _BIT_RANGE_RE.search(self.type)
        return m.group(0) if m else ""

    @property
    def storage_class(self) -> str:
        return " ".join(_BIT_RANGE_RE.sub(" ", self.type).split())

    def __str__(self) -> str:
        parts = [str(self.direction)]
        if self.type:
            parts.append(self.type)
        parts.append(self.name)
        return " ".join(parts)


@dataclass
class Instance:
    """A sub-module instantiation found inside a module body."""

    type: str
    name: str
    location: Location
    owner_file: str

    def __str__(self) -> str:
        return f"{self.name} : {self.type}"


@dataclass
class Module:
    """A module definition with its ports, parameters and instances."""

    name: str
    source_file: str
    location: Location
    ports: List[Port] = field(default_factory=list)
    parameters: List[Parameter] = field(default_factory=list)
    instances: List[Instance] = field(default_factory=list)

    def add_port(self, port: Port) -> None:
        self.ports.append(port)

    def add_parameter(self, param: Parameter) -> None:
        self.parameters.append(param)

    def add_instance(self, inst: Instance) -> None:
        self.instances.append(inst)

    def get_port(self, name: str) -> Optional[Port]:
        for p in self.ports:
            if p.name == name:
                return p
        return None

    def get_parameter(self, name: str) -> Optional[Parameter]:
        for g in self.parameters:
            if g.name == name:
                return g
        return None

    def __str__(self) -> str:
        return f"module {self.name}"
