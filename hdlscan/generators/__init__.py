"""Generators turning module facts back into HDL and documentation text.

- instantiation: instance templates, optionally with protocol comments
- declaration: signal declarations read back from instantiation text
- testbench: simulation skeletons
- markdown / csv: module documentation

Module generators register themselves in :data:`generator_registry`.
"""

from .base import ModuleGenerator, generator_registry
from .instantiation import InstantiationGenerator
from .declaration import SignalDeclarator
from .testbench import TestbenchGenerator, testbench_filename
from .documentation import CsvDocGenerator, MarkdownDocGenerator, sort_ports

__all__ = [
    "ModuleGenerator",
    "generator_registry",
    "InstantiationGenerator",
    "SignalDeclarator",
    "TestbenchGenerator",
    "testbench_filename",
    "MarkdownDocGenerator",
    "CsvDocGenerator",
    "sort_ports",
]
