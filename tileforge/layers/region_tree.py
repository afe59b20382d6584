"""Hierarchical registry of named rectangular regions.

Every named layer has exactly one node here. A synthetic root (which owns no
layer) spans the whole grid. Node names are unique across the tree, children
keep insertion order, and the tree is kept acyclic by refusing moves into a
node's own subtree.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional

from .schemas import Rect

ROOT_NAME = "Root"


class RegionError(Exception):
    """Base class for region-tree failures reported to callers."""


class DuplicateRegionError(RegionError):
    """Raised when a region name is already taken."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(
            f'Region "{name}" already exists. Rename or delete the existing region first.'
        )


class RegionNotFoundError(RegionError):
    """Raised when an operation names a region that does not exist."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f'Region "{name}" not found.')


class CycleError(RegionError):
    """Raised when a move would make a region its own ancestor."""

    def __init__(self, name: str, new_parent: str) -> None:
        self.name = name
        self.new_parent = new_parent
        super().__init__(
            f'Cannot move "{name}" into "{new_parent}": the target is inside "{name}"\'s own subtree.'
        )


@dataclass(eq=False)
class RegionNode:
    """A region and its direct children (in insertion order)."""

    name: str
    rect: Rect
    children: List["RegionNode"] = field(default_factory=list)
    parent: Optional["RegionNode"] = field(default=None, repr=False)

    def walk(self) -> Iterator["RegionNode"]:
        """Pre-order traversal including this node."""

        yield self
        for child in self.children:
            yield from child.walk()

    def is_ancestor_of(self, other: "RegionNode") -> bool:
        node = other.parent
        while node is not None:
            if node is self:
                return True
            node = node.parent
        return False


class RegionTree:
    """Parent/child registry of named regions rooted at a synthetic ``Root``."""

    def __init__(self, width: int, height: int):
        self.root = RegionNode(name=ROOT_NAME, rect=Rect(x=0, y=0, width=width, height=height))
        # Flat name index kept in sync with the tree so lookups are O(1)
        self._index: Dict[str, RegionNode] = {ROOT_NAME: self.root}

    def __contains__(self, name: str) -> bool:
        return name in self._index and name != ROOT_NAME

    def __len__(self) -> int:
        return len(self._index) - 1

    def find(self, name: str) -> Optional[RegionNode]:
        return self._index.get(name)

    def _require(self, name: str) -> RegionNode:
        node = self._index.get(name)
        if node is None:
            raise RegionNotFoundError(name)
        return node

    def add(self, name: str, rect: Rect, parent: str = ROOT_NAME) -> RegionNode:
        """Attach a new region under ``parent``."""

        if name in self._index:
            raise DuplicateRegionError(name)
        parent_node = self._require(parent)
        node = RegionNode(name=name, rect=rect, parent=parent_node)
        parent_node.children.append(node)
        self._index[name] = node
        return node

    def enclosing(self, rect: Rect) -> RegionNode:
        """Deepest region whose rectangle contains ``rect`` (root if none)."""

        current = self.root
        while True:
            for child in current.children:
                if child.rect.contains_rect(rect):
                    current = child
                    break
            else:
                return current

    def rename(self, old: str, new: str) -> None:
        if old == ROOT_NAME:
            raise RegionNotFoundError(old)
        node = self._require(old)
        if new in self._index:
            raise DuplicateRegionError(new)
        del self._index[old]
        node.name = new
        self._index[new] = node

    def delete(self, name: str) -> List[str]:
        """Remove a single region, handing its children to its parent.

        Returns the names of the re-parented children. Callers wanting the
        whole subtree gone delete descendants first (see ``descendants``).
        """

        if name == ROOT_NAME:
            raise RegionNotFoundError(name)
        node = self._require(name)
        parent = node.parent
        assert parent is not None
        position = parent.children.index(node)
        parent.children[position:position + 1] = node.children
        for child in node.children:
            child.parent = parent
        promoted = [child.name for child in node.children]
        node.children = []
        node.parent = None
        del self._index[name]
        return promoted

    def descendants(self, name: str) -> List[str]:
        """Names below ``name``, deepest first (safe deletion order)."""

        node = self._require(name)
        ordered = [n.name for n in node.walk()][1:]
        ordered.reverse()
        return ordered

    def move(self, name: str, new_parent: str) -> None:
        """Re-parent ``name`` under ``new_parent``; raises CycleError into own subtree."""

        if name == ROOT_NAME:
            raise RegionNotFoundError(name)
        node = self._require(name)
        target = self._require(new_parent)
        if target is node or node.is_ancestor_of(target):
            raise CycleError(name, new_parent)
        if node.parent is target:
            return
        assert node.parent is not None
        node.parent.children.remove(node)
        target.children.append(node)
        node.parent = target

    def move_to_root(self, name: str) -> None:
        self.move(name, ROOT_NAME)

    def parent_of(self, name: str) -> Optional[str]:
        node = self._require(name)
        return node.parent.name if node.parent is not None else None

    def names(self) -> List[str]:
        """All region names in pre-order, root excluded."""

        return [node.name for node in self.root.walk()][1:]

    def render(self) -> str:
        """Indented text outline of the tree (debug views and agent prompts)."""

        lines: List[str] = []

        def _visit(node: RegionNode, depth: int) -> None:
            (x0, y0), (x1, y1) = node.rect.corners()
            lines.append(f"{'  ' * depth}- {node.name} [{x0},{y0}]-[{x1},{y1}]")
            for child in node.children:
                _visit(child, depth + 1)

        _visit(self.root, 0)
        return "\n".join(lines)
