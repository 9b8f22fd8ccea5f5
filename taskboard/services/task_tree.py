"""Hierarchical task view built from subtask/depends edges."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, FrozenSet, List

from ..models.board import Board, EdgeKind

HIERARCHICAL_KINDS = frozenset({EdgeKind.SUBTASK, EdgeKind.DEPENDS})


@dataclass
class TaskTreeNode:
    id: str
    children: List["TaskTreeNode"] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def build_task_tree(board: Board) -> List[TaskTreeNode]:
    """
    Build a forest from the board's hierarchical edges.

    A child reached through several edges from the same parent appears once
    under it; a node with several parents appears under each. Roots are the
    board nodes without a hierarchical parent, in board order. A cycle is cut
    where a node would become its own ancestor.
    """
    children: Dict[str, Dict[str, None]] = {}
    has_parent = set()
    for edge in board.edges:
        if edge.type not in HIERARCHICAL_KINDS:
            continue
        children.setdefault(edge.from_, {})[edge.to] = None
        has_parent.add(edge.to)

    def build(node_id: str, ancestors: FrozenSet[str]) -> TaskTreeNode:
        if node_id in ancestors:
            return TaskTreeNode(node_id)
        lineage = ancestors | {node_id}
        return TaskTreeNode(
            node_id, [build(child, lineage) for child in children.get(node_id, {})]
        )

    return [build(node_id, frozenset()) for node_id in board.nodes if node_id not in has_parent]


__all__ = ["TaskTreeNode", "build_task_tree", "HIERARCHICAL_KINDS"]
