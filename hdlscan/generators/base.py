"""Base generator class and registry.

This module defines the abstract :class:`ModuleGenerator` interface
and the :data:`generator_registry` used for plugin-style registration
of concrete generators, plus the clock/reset naming heuristics the
generators share.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from ..model import Module, Port
from ..registry import Registry

# Registry for module-to-text generators
generator_registry = Registry("generator")

DEFAULT_CLOCK_PATTERN = r"clk|clock"
DEFAULT_RESET_PATTERN = r"rst|reset"


class ModuleGenerator(ABC):
    """Abstract base class for generators that render one module as text."""

    @abstractmethod
    def generate(self, module: Module) -> str:
        """Render ``module``.

        Args:
            module: The :class:`Module` to render.

        Returns:
            The generated text.
        """
        raise NotImplementedError


def find_port(ports: Iterable[Port], pattern: str) -> Optional[Port]:
    """Return the first port whose name matches ``pattern`` (case-insensitive)."""
    regex = re.compile(pattern, re.IGNORECASE)
    for port in ports:
        if regex.search(port.name):
            return port
    return None


def is_clock_or_reset(name: str,
                      clock_pattern: str = DEFAULT_CLOCK_PATTERN,
                      reset_pattern: str = DEFAULT_RESET_PATTERN) -> bool:
    return bool(
        re.search(clock_pattern, name, re.IGNORECASE)
        or re.search(reset_pattern, name, re.IGNORECASE)
    )


def pad_names(names: Iterable[str]) -> List[str]:
    """Right-pad each name to the width of the longest one."""
    names = list(names)
    width = max((len(n) for n in names), default=0)
    return [n.ljust(width) for n in names]
