"""Slang-backed module header extraction.

This module defines a :class:`SlangBackend` class that wraps the
``pyslang`` Python bindings.  Unlike :class:`hdlscan.parser.FastParser`
it runs a real SystemVerilog front end over the text, so port
directions and packed ranges come from the elaborated design rather
than from pattern matching.  Ranges are therefore reported evaluated
(``[7:0]`` rather than ``[WIDTH-1:0]``).

Instantiations and source locations are still found with the fast
parser's :func:`~hdlscan.parser.scan_instances` and
:func:`~hdlscan.parser.find_location` rules: a single file rarely
elaborates cleanly on its own, since the modules it instantiates live
elsewhere in the project.

Because this backend depends on compiled extensions, :meth:`parse`
raises :class:`ImportError` if ``pyslang`` cannot be imported.  There
is no fallback to the fast parser; select the ``fast``
strategy instead.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from .model import Direction, Instance, Module, Parameter, Port
from .parser import find_location, find_module, scan_instances, strip_comments

logger = logging.getLogger(__name__)

try:
    import pyslang  # type: ignore[import]
except ImportError:
    pyslang = None  # type: ignore


def _slang(name: str):
    """Resolve a pyslang binding by name.

    pyslang 10 moved the syntax and AST bindings into the ``pyslang.syntax``
    and ``pyslang.ast`` submodules; older releases export them at the top
    level.
    """
    for scope_name in ("syntax", "ast"):
        scope = getattr(pyslang, scope_name, None)
        if scope is not None and hasattr(scope, name):
            return getattr(scope, name)
    return getattr(pyslang, name)


class SlangBackend:
    """Extract one :class:`Module` per text using the slang compiler.

    Diagnostics reported by slang are recorded but never fatal; a file
    that instantiates modules defined elsewhere always reports some.
    """

    def __init__(self) -> None:
        self._error_messages: List[str] = []

    def parse(self, text: str, path: str = "") -> Optional[Module]:
        """Parse ``text`` and return its first module, or ``None``.

        Raises:
            ImportError: If the ``pyslang`` package is not available.
        """
        if pyslang is None:
            raise ImportError(
                "pyslang is required for the slang strategy but is not installed. "
                "Install it via `pip install pyslang` or use the fast strategy."
            )

        clean = strip_comments(text)
        mod_match = find_module(clean)
        if not mod_match:
            return None
        name = mod_match.group(1)

        tree = _slang("SyntaxTree").fromText(text)
        comp = _slang("Compilation")()
        comp.addSyntaxTree(tree)
        self._record_errors(comp)

        module = Module(
            name=name,
            source_file=path,
            location=find_location(text, name, mod_match.start(1), path),
        )
        body = self._find_body(comp, name)
        if body is not None:
            port_kind = _slang("SymbolKind").Port
            for param in getattr(body, "parameters", []):
                converted = self._convert_parameter(param)
                if converted is not None:
                    module.add_parameter(converted)
            for port_sym in getattr(body, "portList", []):
                if port_sym.kind == port_kind:
                    module.add_port(self._convert_port(port_sym))
        else:
            logger.debug("slang produced no top instance for %s in %s", name, path)

        for found in scan_instances(clean, mod_match.start()):
            module.add_instance(Instance(
                type=found.type,
                name=found.name,
                location=find_location(text, found.name, found.offset, path),
                owner_file=path,
            ))
        return module

    def get_error_messages(self) -> List[str]:
        """Error diagnostics recorded by the most recent :meth:`parse`."""
        return list(self._error_messages)

    # ------------------------------------------------------------------
    # Internal conversion helpers

    def _record_errors(self, comp) -> None:
        self._error_messages = []
        for diag in comp.getAllDiagnostics():
            if diag.isError():
                self._error_messages.append(str(diag))
        if self._error_messages:
            logger.debug("slang reported %d errors", len(self._error_messages))

    def _find_body(self, comp, name: str):
        for inst in comp.getRoot().topInstances:
            if inst.name == name:
                return inst.body
        return None

    def _convert_parameter(self, param) -> Optional[Parameter]:
        sym = getattr(param, "symbol", param)
        is_local = getattr(param, "isLocalParam", False)
        if callable(is_local):
            is_local = is_local()
        if is_local:
            return None
        name = getattr(sym, "name", "")
        if not name:
            return None
        value = getattr(sym, "value", None)
        return Parameter(name=name, default_value="" if value is None else str(value))

    def _convert_port(self, port_sym) -> Port:
        arg_dir = _slang("ArgumentDirection")
        directions = {
            arg_dir.In: Direction.INPUT,
            arg_dir.Out: Direction.OUTPUT,
            arg_dir.InOut: Direction.INOUT,
        }
        direction = directions.get(port_sym.direction, Direction.INPUT)
        return Port(name=port_sym.name, direction=direction, type=self._range_of(port_sym.type))

    def _range_of(self, port_type) -> str:
        """Return the packed range of an integral type, or ``""`` for scalars."""
        if not port_type.isIntegral or port_type.bitWidth <= 1:
            return ""
        if port_type.hasFixedRange:
            rng = port_type.fixedRange
            return f"[{rng.left}:{rng.right}]"
        return f"[{port_type.bitWidth - 1}:0]"
