"""Derive board edges from relation tokens in task text."""

from __future__ import annotations

from typing import Iterable, List

from ..models.board import Edge, TEXT_KINDS
from ..models.task import Task
from . import relation_codec as codec


def build_edges(tasks: Iterable[Task]) -> List[Edge]:
    """Emit one edge per relation token.

    The task holding a token is the edge target and the referenced id is the
    source. Repeated tokens yield repeated edges; de-duplication happens
    during reconciliation.
    """
    edges: List[Edge] = []
    for task in tasks:
        parsed = codec.decode(task.text)
        for kind in TEXT_KINDS:
            for ref in parsed.relations[kind]:
                edges.append(Edge(from_=ref, to=task.id, type=kind))
    return edges


__all__ = ["build_edges"]
