"""Graph node kinds.

Nodes form a tagged variant: every node carries a ``kind`` tag plus a typed
``key`` used for deduplication and a ``display`` string. Consumers branch on
``node.kind`` instead of checking classes.
"""
from __future__ import annotations

import ntpath
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple, Union

from common.errors import MalformedVersionError
from versioning.parser import parse_version


class NodeKind(Enum):
    """Node variants."""
    PACKAGE = "package"
    PROJECT = "project"
    ASSEMBLY = "assembly"


class NodeKey(NamedTuple):
    """Structured node identity; never built by string concatenation."""
    kind: NodeKind
    name: str
    version: str = ""


def _normalize_version_text(version: str) -> str:
    try:
        return parse_version(version).to_normalized_string().lower()
    except MalformedVersionError:
        return version.strip().lower()


@dataclass(frozen=True, eq=False)
class PackageReferenceNode:
    """A package at a concrete version."""
    id: str
    version: str
    kind: NodeKind = field(default=NodeKind.PACKAGE, init=False)

    @property
    def key(self) -> NodeKey:
        return NodeKey(NodeKind.PACKAGE, self.id.casefold(), _normalize_version_text(self.version))

    @property
    def display(self) -> str:
        return f"{self.id} {self.version}"

    def __eq__(self, other: object) -> bool:
        return _same_key(self, other)

    def __hash__(self) -> int:
        return hash(self.key)


@dataclass(frozen=True, eq=False)
class ProjectReferenceNode:
    """A project file; the key is its normalized absolute path."""
    path: str
    kind: NodeKind = field(default=NodeKind.PROJECT, init=False)

    @property
    def key(self) -> NodeKey:
        return NodeKey(NodeKind.PROJECT, os.path.normcase(os.path.abspath(self.path)))

    @property
    def display(self) -> str:
        return os.path.basename(self.path) or self.path

    def __eq__(self, other: object) -> bool:
        return _same_key(self, other)

    def __hash__(self) -> int:
        return hash(self.key)


@dataclass(frozen=True, eq=False)
class AssemblyReferenceNode:
    """An assembly or binary file, identified by its file name."""
    id: str
    kind: NodeKind = field(default=NodeKind.ASSEMBLY, init=False)

    @property
    def key(self) -> NodeKey:
        return NodeKey(NodeKind.ASSEMBLY, self.id.casefold())

    @property
    def display(self) -> str:
        return self.id

    def __eq__(self, other: object) -> bool:
        return _same_key(self, other)

    def __hash__(self) -> int:
        return hash(self.key)


Node = Union[PackageReferenceNode, ProjectReferenceNode, AssemblyReferenceNode]


def _same_key(node: Node, other: object) -> bool:
    other_key = getattr(other, "key", None)
    if not isinstance(other_key, NodeKey):
        return NotImplemented
    return node.key == other_key


def assembly_node_from_path(path: str) -> AssemblyReferenceNode:
    """Assembly node named after the file part of ``path`` (either separator)."""
    return AssemblyReferenceNode(ntpath.basename(path))
