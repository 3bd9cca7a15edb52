"""Dependency graph model: nodes, edges, the frozen graph and its builder."""

from .nodes import (  # noqa: F401
    AssemblyReferenceNode,
    Node,
    NodeKey,
    NodeKind,
    PackageReferenceNode,
    ProjectReferenceNode,
    assembly_node_from_path,
)
from .model import DependencyGraph, Edge, GraphBuilder  # noqa: F401

__all__ = [
    "AssemblyReferenceNode",
    "DependencyGraph",
    "Edge",
    "GraphBuilder",
    "Node",
    "NodeKey",
    "NodeKind",
    "PackageReferenceNode",
    "ProjectReferenceNode",
    "assembly_node_from_path",
]
