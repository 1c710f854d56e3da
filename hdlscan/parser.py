"""Lightweight structural parser for Verilog/SystemVerilog modules.

The :class:`FastParser` class extracts the facts the project index
needs (module name, ANSI header parameters and ports, sub-module
instantiations) from free-form source text without a grammar.  It is
a best-effort scanner: it tolerates files that are incomplete or being
edited, never raises on malformed input and simply returns ``None``
when no ``module`` keyword can be found.

Each extraction rule lives in its own function so that it can be
tested and extended on its own:

* :func:`strip_comments` blanks comments while keeping offsets intact.
* :func:`find_module` locates the first ``module <name>``.
* :func:`find_header` matches ``#( ... ) ( ... ) ;`` after the name.
* :func:`extract_parameters` and :func:`extract_ports` read the blocks.
* :func:`extract_body_ports` handles non-ANSI port declarations.
* :func:`scan_instances` finds ``type [#( ... )] name (`` patterns.
* :func:`find_location` maps a name back to a line and column.

Example usage::

    from hdlscan.parser import FastParser

    module = FastParser().parse_file("rtl/fifo.sv")
    if module is not None:
        for port in module.ports:
            print(port.direction, port.type, port.name)
"""

from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, List, NamedTuple, Optional, Tuple

from .model import Direction, Instance, Location, Module, Parameter, Port

logger = logging.getLogger(__name__)

# Upper bound for a single parenthesised block in a module header.
MAX_BLOCK_CHARS = 65536

# Words that look like ``keyword word (`` but never name a module type.
RESERVED_KEYWORDS = frozenset({
    'always', 'always_ff', 'always_comb', 'always_latch', 'assign',
    'initial', 'final', 'if', 'else', 'case', 'casex', 'casez', 'default',
    'endcase', 'begin', 'end', 'fork', 'join', 'join_any', 'join_none',
    'generate', 'endgenerate', 'for', 'foreach', 'while', 'do', 'repeat',
    'forever', 'return', 'break', 'continue', 'wait', 'disable', 'iff',
    'unique', 'unique0', 'priority',
    'function', 'endfunction', 'task', 'endtask', 'class', 'endclass',
    'covergroup', 'endgroup', 'coverpoint', 'cross', 'constraint',
    'assert', 'assume', 'cover', 'expect', 'property', 'endproperty',
    'sequence', 'endsequence', 'clocking', 'endclocking', 'modport',
    'module', 'endmodule', 'interface', 'endinterface', 'package',
    'endpackage', 'program', 'endprogram', 'checker', 'endchecker',
    'config', 'endconfig', 'library', 'design', 'import', 'export',
    'ifdef', 'ifndef', 'endif', 'elsif', 'define', 'undef', 'include',
    'input', 'output', 'inout', 'ref', 'wire', 'reg', 'logic', 'bit',
    'byte', 'shortint', 'int', 'longint', 'integer', 'time', 'real',
    'realtime', 'shortreal', 'string', 'void', 'var', 'tri', 'wand', 'wor',
    'supply0', 'supply1', 'genvar', 'parameter', 'localparam', 'defparam',
    'typedef', 'struct', 'union', 'enum', 'packed', 'signed', 'unsigned',
    'automatic', 'static', 'virtual', 'extern', 'pure', 'local',
    'protected', 'const', 'new', 'posedge', 'negedge', 'edge',
})

# Type words a direction-less header item may start with and still be a
# continuation of the previous port declaration.
DATA_TYPE_KEYWORDS = frozenset({
    'wire', 'reg', 'logic', 'bit', 'byte', 'shortint', 'int', 'longint',
    'integer', 'time', 'real', 'realtime', 'shortreal', 'string', 'var',
    'tri', 'tri0', 'tri1', 'triand', 'trior', 'wand', 'wor', 'uwire',
    'supply0', 'supply1', 'signed', 'unsigned',
})

_COMMENT_RE = re.compile(r"/\*.*?(?:\*/|\Z)|(?<![:\\])//[^\n]*", re.DOTALL)
_MODULE_RE = re.compile(r"\bmodule\s+([A-Za-z_]\w*)")
_ENDMODULE_RE = re.compile(r"\bendmodule\b")
_KEYWORD_RE = re.compile(r"(parameter|localparam)\b")
_DIRECTION_RE = re.compile(r"(input|output|inout)\b")
_DECL_NAME_RE = re.compile(r"([A-Za-z_]\w*)\s*((?:\[[^\]]*\]\s*)*)$")
_IDENT_RE = re.compile(r"[A-Za-z_]\w*")
_RANGE_RE = re.compile(r"\[[^\]]*\]")
_BODY_PORT_RE = re.compile(r"\b(?:input|output|inout)\b[^;]*;")
_INSTANCE_RE = re.compile(
    r"\b([A-Za-z_]\w*)\s+(?:#\s*\([^;]*?\)\s*)?([A-Za-z_]\w*)\s*\("
)


class Header(NamedTuple):
    """Raw blocks of an ANSI module header."""

    parameters: Optional[str]
    ports: str
    end: int


class InstanceMatch(NamedTuple):
    """An instantiation found by :func:`scan_instances`."""

    type: str
    name: str
    offset: int


def strip_comments(text: str) -> str:
    """Replace comments with spaces, keeping newlines and offsets.

    An unterminated block comment runs to the end of the text, and a
    ``//`` preceded by ``:`` or ``\\`` is not treated as a comment.
    """
    return _COMMENT_RE.sub(lambda m: re.sub(r"[^\n]", " ", m.group(0)), text)


def find_module(text: str) -> Optional["re.Match[str]"]:
    """Return the match of the first ``module <name>`` in ``text``."""
    return _MODULE_RE.search(text)


def extract_parenthesised(text: str, start_idx: int) -> Optional[Tuple[str, int]]:
    """Extract a parenthesised expression, handling nested parentheses.

    Args:
        text: Full text.
        start_idx: Index of the opening parenthesis.

    Returns:
        ``(content, next_idx)`` where ``content`` excludes the outer
        parentheses and ``next_idx`` follows the closing one, or
        ``None`` if the block is unbalanced or longer than
        :data:`MAX_BLOCK_CHARS`.
    """
    if start_idx >= len(text) or text[start_idx] != '(':
        return None
    limit = min(len(text), start_idx + MAX_BLOCK_CHARS)
    depth = 1
    i = start_idx + 1
    while i < limit and depth > 0:
        ch = text[i]
        if ch == '(':
            depth += 1
        elif ch == ')':
            depth -= 1
        i += 1
    if depth:
        return None
    return text[start_idx + 1:i - 1], i


def _skip_ws(text: str, pos: int) -> int:
    while pos < len(text) and text[pos].isspace():
        pos += 1
    return pos


def find_header(text: str, pos: int) -> Optional[Header]:
    """Match ``[#( params )] ( ports ) ;`` starting right after a module name.

    Returns ``None`` when the port list or the terminating semicolon
    is missing; the caller then keeps a module without ports.
    """
    pos = _skip_ws(text, pos)
    params: Optional[str] = None
    if text.startswith('#', pos):
        block = extract_parenthesised(text, _skip_ws(text, pos + 1))
        if block is None:
            return None
        params, pos = block
        pos = _skip_ws(text, pos)
    block = extract_parenthesised(text, pos)
    if block is None:
        return None
    ports, pos = block
    pos = _skip_ws(text, pos)
    if not text.startswith(';', pos):
        return None
    return Header(params, ports, pos + 1)


def split_top_level(text: str, delimiter: str = ',') -> List[str]:
    """Split ``text`` on ``delimiter`` outside of (), [] and {}."""
    parts: List[str] = []
    current: List[str] = []
    depth = 0
    for ch in text:
        if ch in '([{':
            depth += 1
        elif ch in ')]}':
            if depth > 0:
                depth -= 1
        if ch == delimiter and depth == 0:
            parts.append(''.join(current))
            current = []
        else:
            current.append(ch)
    if current:
        parts.append(''.join(current))
    return parts


def _normalise_type(text: str) -> str:
    text = ' '.join(text.split())
    return re.sub(r"(?<=[^\s\[])\[", " [", text)


def extract_parameters(block: str) -> List[Parameter]:
    """Read ``parameter [type] name = value`` items from a ``#( ... )`` block.

    ``localparam`` items are skipped.  A bare ``name = value`` item
    inherits the keyword of the item before it.
    """
    params: List[Parameter] = []
    keyword = None
    for item in split_top_level(block):
        item = item.strip()
        if not item:
            continue
        m = _KEYWORD_RE.match(item)
        if m:
            keyword = m.group(1)
            item = item[m.end():].strip()
        if keyword != 'parameter' or '=' not in item:
            continue
        lhs, value = item.split('=', 1)
        names = _IDENT_RE.findall(_RANGE_RE.sub(' ', lhs))
        if not names:
            continue
        params.append(Parameter(name=names[-1], default_value=value.strip()))
    return params


def extract_ports(block: str) -> List[Port]:
    """Read ``(input|output|inout) [type] name`` items in order.

    Items without a direction inherit the previous direction, and the
    previous type as well when they declare none (``input [7:0] a, b``).
    Items before the first direction keyword are ignored.  A
    direction-less item typed with anything but a data type keyword or a
    range (``axi_if.slave bus``, ``my_if bus``) is an interface port: it
    is skipped and ends the inherited direction.
    """
    ports: List[Port] = []
    direction: Optional[Direction] = None
    port_type = ''
    for item in split_top_level(block):
        decl = item.split('=', 1)[0].strip()
        if not decl:
            continue
        m = _DIRECTION_RE.match(decl)
        if m:
            direction = Direction.parse(m.group(1))
            rest = decl[m.end():]
            inherit = False
        elif direction is not None:
            rest = decl
            inherit = True
            if not _continues_declaration(rest):
                direction = None
                port_type = ''
                continue
        else:
            continue
        nm = _DECL_NAME_RE.search(rest)
        if not nm:
            continue
        own_type = _normalise_type(rest[:nm.start()])
        if own_type or not inherit:
            port_type = own_type
        ports.append(Port(name=nm.group(1), direction=direction, type=port_type))
    return ports



def _continues_declaration(item: str) -> bool:
    nm = _DECL_NAME_RE.search(item)
    if not nm:
        return False
    prefix = item[:nm.start()].strip()
    if not prefix or prefix.startswith('['):
        return True
    word = _IDENT_RE.match(prefix)
    return bool(word) and word.group(0) in DATA_TYPE_KEYWORDS

def extract_body_ports(body: str, order: Iterable[str]) -> List[Port]:
    """Collect non-ANSI ``input ...;`` declarations for the listed names.

    Ports are returned in the order of ``order`` (the header name list);
    names without a matching declaration are dropped.
    """
    declared: Dict[str, Port] = {}
    for m in _BODY_PORT_RE.finditer(body):
        for port in extract_ports(m.group(0)[:-1]):
            declared.setdefault(port.name, port)
    return [declared[name] for name in order if name in declared]


def scan_instances(text: str, start: int = 0) -> List[InstanceMatch]:
    """Find ``type [#( ... )] name (`` instantiations from ``start`` on.

    Matches whose type or name is in :data:`RESERVED_KEYWORDS` are
    skipped.  The keyword list is maintained by hand, so an unlisted
    construct with the same shape is reported as an instance.
    """
    found: List[InstanceMatch] = []
    for m in _INSTANCE_RE.finditer(text, start):
        inst_type, name = m.group(1), m.group(2)
        if inst_type in RESERVED_KEYWORDS or name in RESERVED_KEYWORDS:
            continue
        found.append(InstanceMatch(inst_type, name, m.start(2)))
    return found


def find_location(text: str, name: str, offset: int, path: str) -> Location:
    """Locate the first whole-word ``name`` at or after ``offset``.

    Returns a location at the start of the file when the name cannot
    be found.
    """
    m = re.search(r"\b%s\b" % re.escape(name), text[offset:])
    if not m:
        return Location(path)
    index = offset + m.start()
    line = text.count('\n', 0, index)
    column = index - (text.rfind('\n', 0, index) + 1)
    return Location(path, line, column, len(name))


class FastParser:
    """Regex-based extractor producing at most one :class:`Module` per text."""

    def parse_file(self, path: str) -> Optional[Module]:
        """Parse the file at ``path``.

        Raises:
            OSError: If the file cannot be read.
        """
        with open(path, 'r', encoding='utf-8', errors='replace') as fh:
            text = fh.read()
        return self.parse(text, path)

    def parse(self, text: str, path: str = '') -> Optional[Module]:
        """Parse source text.

        Args:
            text: Verilog/SystemVerilog source code.
            path: File identity recorded on the module and its locations.

        Returns:
            The first module in ``text``, or ``None`` if there is none.
        """
        clean = strip_comments(text)
        mod_match = find_module(clean)
        if not mod_match:
            return None

        name = mod_match.group(1)
        module = Module(
            name=name,
            source_file=path,
            location=find_location(text, name, mod_match.start(1), path),
        )

        header = find_header(clean, mod_match.end())
        if header is not None:
            if header.parameters:
                for param in extract_parameters(header.parameters):
                    module.add_parameter(param)
            ports = extract_ports(header.ports)
            if not ports:
                end = _ENDMODULE_RE.search(clean, header.end)
                body = clean[header.end:end.start() if end else len(clean)]
                order = [item.strip() for item in split_top_level(header.ports)]
                ports = extract_body_ports(body, [n for n in order if _IDENT_RE.fullmatch(n)])
            for port in ports:
                module.add_port(port)

        for found in scan_instances(clean, mod_match.start()):
            module.add_instance(Instance(
                type=found.type,
                name=found.name,
                location=find_location(text, found.name, found.offset, path),
                owner_file=path,
            ))

        logger.debug(
            "Parsed module %s from %s: %d ports, %d parameters, %d instances",
            name, path or '<text>', len(module.ports),
            len(module.parameters), len(module.instances),
        )
        return module
