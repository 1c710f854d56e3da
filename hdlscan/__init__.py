"""Top level package for indexing and generating Verilog/SystemVerilog code.

This package scans HDL source files into an in-memory symbol graph and
uses it to generate code and to navigate designs.  It is intended for
RTL and verification engineers who want instantiation templates,
testbench skeletons, signal declarations and module documentation
without a full elaborating compiler.

Key concepts:

* **Model classes** represent modules, ports, parameters and instances.
  See :mod:`hdlscan.model`.
* **Parsers** extract those facts from source text, either with the
  regex-based :mod:`hdlscan.parser` or the pyslang-backed
  :mod:`hdlscan.slang_backend`; :mod:`hdlscan.strategy` selects one.
* **Project index** keeps the facts of a whole project up to date as
  files change.  See :mod:`hdlscan.index` and :mod:`hdlscan.watcher`.
* **Generators** render modules back to text.  See
  :mod:`hdlscan.generators`.
* **Navigation** builds hierarchy trees and answers definition and
  hover queries.  See :mod:`hdlscan.navigation`.
"""

from .model import (
    Direction,
    Location,
    Parameter,
    Port,
    Instance,
    Module,
)

from .registry import Registry
from .parser import FastParser
from .strategy import ParseStrategy, FastStrategy, SlangStrategy, parser_registry
from .filelist import FilelistResolver, resolve_filelist
from .config import ConfigError, HelperConfig
from .index import ProjectIndex
from .generators import (
    InstantiationGenerator,
    SignalDeclarator,
    TestbenchGenerator,
    MarkdownDocGenerator,
    CsvDocGenerator,
    generator_registry,
)

__version__ = "0.3.0"

__all__ = [
    "Direction",
    "Location",
    "Parameter",
    "Port",
    "Instance",
    "Module",
    "Registry",
    "FastParser",
    "ParseStrategy",
    "FastStrategy",
    "SlangStrategy",
    "parser_registry",
    "FilelistResolver",
    "resolve_filelist",
    "ConfigError",
    "HelperConfig",
    "ProjectIndex",
    "InstantiationGenerator",
    "SignalDeclarator",
    "TestbenchGenerator",
    "MarkdownDocGenerator",
    "CsvDocGenerator",
    "generator_registry",
]
