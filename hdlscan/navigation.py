"""Hierarchy, go-to-definition and hover on top of a :class:`ProjectIndex`.

Instances are resolved lazily: an instance whose type names an indexed
module expands into that module's own instances, anything else is a
black box (external IP, primitive, unparsed file) and has no children.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List, Optional, Set, Union

from .index import ProjectIndex
from .model import Direction, Instance, Location, Module

HierarchyItem = Union[Module, Instance]


@dataclass
class HierarchyNode:
    """One row of the hierarchy tree."""

    label: str
    module: Optional[Module] = None
    instance: Optional[Instance] = None
    children: List["HierarchyNode"] = field(default_factory=list)
    recursive: bool = False

    @property
    def is_black_box(self) -> bool:
        return self.instance is not None and self.module is None

    @property
    def location(self) -> Optional[Location]:
        if self.instance is not None:
            return self.instance.location
        return self.module.location if self.module else None


def children_of(index: ProjectIndex, item: HierarchyItem) -> List[Instance]:
    """Direct children of a module or instance in the design hierarchy."""
    if isinstance(item, Module):
        return list(item.instances)
    definition = index.get_module(item.type)
    return list(definition.instances) if definition else []


def build_hierarchy(index: ProjectIndex, top: Optional[str] = None,
                    max_depth: int = 32) -> List[HierarchyNode]:
    """Expand the hierarchy below ``top``, or below every indexed module.

    Expansion stops at black boxes, at ``max_depth`` and where a
    module would instantiate itself through its own ancestors; such
    nodes are marked ``recursive``.
    """
    if top is not None:
        module = index.get_module(top)
        roots = [module] if module else []
    else:
        roots = sorted(index.get_all_modules(), key=lambda m: m.name)
    return [_module_node(index, m, {m.name}, max_depth) for m in roots]


def _module_node(index: ProjectIndex, module: Module, path: Set[str], depth: int) -> HierarchyNode:
    node = HierarchyNode(label=module.name, module=module)
    node.children = _expand(index, module, path, depth)
    return node


def _expand(index: ProjectIndex, module: Module, path: Set[str], depth: int) -> List[HierarchyNode]:
    nodes: List[HierarchyNode] = []
    if depth <= 0:
        return nodes
    for inst in module.instances:
        definition = index.get_module(inst.type)
        node = HierarchyNode(label=str(inst), module=definition, instance=inst)
        if definition is not None:
            if definition.name in path:
                node.recursive = True
            else:
                node.children = _expand(index, definition, path | {definition.name}, depth - 1)
        nodes.append(node)
    return nodes


def render_tree(nodes: List[HierarchyNode], indent: str = "    ") -> str:
    """Plain-text rendering, one node per line."""
    lines: List[str] = []

    def walk(node: HierarchyNode, level: int) -> None:
        suffix = ""
        if node.is_black_box:
            suffix = "  (black box)"
        elif node.recursive:
            suffix = "  (recursive)"
        elif node.instance is None and node.module is not None:
            suffix = f"  [{os.path.basename(node.module.source_file)}]"
        lines.append(f"{indent * level}{node.label}{suffix}")
        for child in node.children:
            walk(child, level + 1)

    for node in nodes:
        walk(node, 0)
    return "\n".join(lines)


def find_definition(index: ProjectIndex, word: str) -> Optional[Location]:
    """Location of the module named ``word``, if indexed."""
    module = index.get_module(word)
    return module.location if module else None


def hover_text(index: ProjectIndex, word: str) -> Optional[str]:
    """Markdown summary of the module named ``word``, if indexed."""
    module = index.get_module(word)
    if module is None:
        return None

    lines = [
        f"### Module: **{module.name}**",
        "---",
        f"*File: {os.path.basename(module.source_file)}*",
        "",
    ]
    if module.parameters:
        lines += ["#### Parameters:", "```verilog"]
        lines += [f"{p.name} = {p.default_value}" for p in module.parameters]
        lines += ["```"]

    if module.ports:
        lines += ["#### Ports:", "```verilog"]
        for direction, title in ((Direction.INPUT, "Inputs"),
                                 (Direction.OUTPUT, "Outputs"),
                                 (Direction.INOUT, "Inouts")):
            group = [p for p in module.ports if p.direction is direction]
            if group:
                lines.append(f"// {title}")
                lines += [
                    " ".join(part for part in (str(p.direction).ljust(6), p.type, p.name) if part)
                    for p in group
                ]
        lines += ["```"]
    else:
        lines.append("*(No ports detected or parsing failed)*")
    return "\n".join(lines)
