"""Deterministic tree layout for a subset of board nodes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Sequence, Set, Tuple

from ..models.board import Board, NodeBase, Orientation


@dataclass
class Rect:
    """Rectangle in layout axes: ``a`` is the primary axis, ``b`` the secondary."""

    a: float
    b: float
    size_a: float
    size_b: float

    def overlaps(self, other: "Rect") -> bool:
        return not (
            self.a + self.size_a <= other.a
            or other.a + other.size_a <= self.a
            or self.b + self.size_b <= other.b
            or other.b + other.size_b <= self.b
        )


class _Axes:
    """Map between board (x, y) and layout (a, b) coordinates.

    Vertical boards grow downward so siblings spread along x; horizontal
    boards swap the axes.
    """

    def __init__(self, orientation: Orientation) -> None:
        self.vertical = orientation != "horizontal"

    def position(self, node: NodeBase) -> Tuple[float, float]:
        return (node.x, node.y) if self.vertical else (node.y, node.x)

    def size(self, node: NodeBase) -> Tuple[float, float]:
        width, height = node.size()
        return (width, height) if self.vertical else (height, width)

    def place(self, node: NodeBase, a: float, b: float) -> None:
        if self.vertical:
            node.x, node.y = a, b
        else:
            node.y, node.x = a, b

    def rect(self, node: NodeBase) -> Rect:
        a, b = self.position(node)
        size_a, size_b = self.size(node)
        return Rect(a, b, size_a, size_b)


def rearrange(
    board: Board,
    ids: Sequence[str],
    orientation: Orientation | None = None,
    spacing_a: float = 40,
    spacing_b: float = 60,
) -> Dict[str, Tuple[float, float]]:
    """
    Reposition ``ids`` as a forest below their current top-left corner.

    Only edges with both endpoints in ``ids`` shape the forest. Every other
    node on the board is an obstacle: a placed rectangle that intersects one
    is pushed along the secondary axis by ``spacing_b`` until it is clear.
    Returns the new (x, y) of every placed node; unknown ids are ignored.
    """
    order = [node_id for node_id in dict.fromkeys(ids) if node_id in board.nodes]
    if not order:
        return {}

    axes = _Axes(orientation or board.orientation)
    selected: Set[str] = set(order)
    children: Dict[str, List[str]] = {node_id: [] for node_id in order}
    in_degree: Dict[str, int] = {node_id: 0 for node_id in order}
    for edge in board.edges:
        if edge.from_ in selected and edge.to in selected:
            children[edge.from_].append(edge.to)
            in_degree[edge.to] += 1

    start_a = min(axes.position(board.nodes[node_id])[0] for node_id in order)
    start_b = min(axes.position(board.nodes[node_id])[1] for node_id in order)

    obstacles: List[Rect] = [
        axes.rect(node) for node_id, node in board.nodes.items() if node_id not in selected
    ]
    visited: Set[str] = set()
    placed: Dict[str, Tuple[float, float]] = {}

    def layout(node_id: str, a: float, b: float) -> None:
        if node_id in visited:
            return
        visited.add(node_id)
        node = board.nodes[node_id]
        size_a, size_b = axes.size(node)
        rect = Rect(a, b, size_a, size_b)
        while any(rect.overlaps(other) for other in obstacles):
            rect.b += spacing_b
        axes.place(node, rect.a, rect.b)
        placed[node_id] = (node.x, node.y)
        obstacles.append(rect)

        kids = children[node_id]
        if not kids:
            return
        kid_sizes = [axes.size(board.nodes[kid])[0] for kid in kids]
        block = sum(kid_sizes) + (len(kids) - 1) * spacing_a
        child_a = rect.a + size_a / 2 - block / 2
        child_b = rect.b + size_b + spacing_b
        for kid, kid_size in zip(kids, kid_sizes):
            layout(kid, child_a, child_b)
            child_a += kid_size + spacing_a

    cursor_a = start_a
    for root in (node_id for node_id in order if in_degree[node_id] == 0):
        layout(root, cursor_a, start_b)
        cursor_a += axes.size(board.nodes[root])[0] + spacing_a

    # Nodes unreachable from any root, cycles included.
    for node_id in order:
        if node_id not in visited:
            layout(node_id, cursor_a, start_b)
            cursor_a += axes.size(board.nodes[node_id])[0] + spacing_a

    return placed


__all__ = ["Rect", "rearrange"]
