"""Serialize a DependencyGraph as JSON or as an indented text tree."""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Tuple

from .model import DependencyGraph, Edge
from .nodes import Node, NodeKind

logger = logging.getLogger(__name__)

REPEATED_MARKER = "(*)"


def _sort_key(node: Node) -> Tuple[str, str, str]:
    return (node.kind.value, node.key.name, node.key.version)


def node_to_dict(node: Node) -> Dict[str, Any]:
    """JSON-ready view of a single node."""
    if node.kind is NodeKind.PACKAGE:
        return {"kind": node.kind.value, "id": node.id, "version": node.version}
    if node.kind is NodeKind.PROJECT:
        return {"kind": node.kind.value, "path": node.path}
    return {"kind": node.kind.value, "id": node.id}


def to_json_dict(graph: DependencyGraph) -> Dict[str, Any]:
    """JSON-ready view of ``graph``.

    Nodes are listed in a stable order (kind, then name, then version); edges
    reference nodes by their index in that list.
    """
    nodes = sorted(graph.nodes, key=_sort_key)
    index = {node.key: i for i, node in enumerate(nodes)}
    edges = sorted(
        graph.edges,
        key=lambda e: (index[e.source.key], index[e.target.key]),
    )
    return {
        "root": index[graph.root.key],
        "nodes": [node_to_dict(node) for node in nodes],
        "edges": [
            {
                "source": index[edge.source.key],
                "target": index[edge.target.key],
                "label": edge.label,
            }
            for edge in edges
        ],
    }


def export_json(graph: DependencyGraph, path: str) -> None:
    """Write ``graph`` to ``path`` as JSON.

    Raises:
        OSError: If the file cannot be written.
    """
    with open(path, "w", encoding="utf-8") as file:
        json.dump(to_json_dict(graph), file, ensure_ascii=False, indent=4)
    logger.info("JSON file has been successfully exported at: %s", path)


def _line(edge_or_root, depth: int, repeated: bool) -> str:
    if isinstance(edge_or_root, Edge):
        text = edge_or_root.target.display
        if edge_or_root.label:
            text = f"{text} {edge_or_root.label}"
    else:
        text = edge_or_root.display
    if repeated:
        text = f"{text} {REPEATED_MARKER}"
    return "  " * depth + text


def _sorted_edges(graph: DependencyGraph, node: Node) -> List[Edge]:
    return sorted(graph.edges_from(node), key=lambda e: _sort_key(e.target))


def render_text(graph: DependencyGraph) -> str:
    """Indented tree from the root.

    Each node's children are expanded once; later occurrences of a node with
    children are marked with ``(*)``.
    """
    lines = [_line(graph.root, 0, False)]
    expanded = {graph.root.key}
    stack: List[Tuple[Edge, int]] = [(e, 1) for e in reversed(_sorted_edges(graph, graph.root))]
    while stack:
        edge, depth = stack.pop()
        target = edge.target
        children = _sorted_edges(graph, target)
        repeated = bool(children) and target.key in expanded
        lines.append(_line(edge, depth, repeated))
        if repeated or not children:
            continue
        expanded.add(target.key)
        stack.extend((child, depth + 1) for child in reversed(children))
    return "\n".join(lines) + "\n"
