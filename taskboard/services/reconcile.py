"""Merge freshly extracted tasks and edges into a persisted board."""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Iterable, MutableMapping, Set

from ..models.board import Board, Edge, NoteNode, TaskNode, is_structural
from ..models.task import Task
from .board_store import BOARD_SUFFIX, save_board, update_board_cards
from .extractor import ExtractionFilters, TaskExtractor
from .graph_builder import build_edges

if TYPE_CHECKING:
    from .controller import BoardContext
    from .documents import DocumentStore

logger = logging.getLogger(__name__)


def _migrate_legacy_notes(board: Board) -> None:
    """Untyped nodes that hold a ``notePath`` are note nodes from older files."""
    for node_id, node in list(board.nodes.items()):
        if not isinstance(node, TaskNode):
            continue
        extra = node.model_extra or {}
        if "notePath" not in extra:
            continue
        record = node.model_dump(by_alias=True, exclude_none=True)
        record["type"] = "note"
        board.nodes[node_id] = NoteNode.model_validate(record)


def _adopt_board_descriptions(board: Board, tasks: MutableMapping[str, Task]) -> None:
    for node_id, node in board.nodes.items():
        if isinstance(node, TaskNode) and node.description and node_id in tasks:
            tasks[node_id].description = node.description


def _prune_nodes(board: Board, tasks: MutableMapping[str, Task]) -> int:
    stale = [
        node_id
        for node_id, node in board.nodes.items()
        if node_id not in tasks and not is_structural(node)
    ]
    for node_id in stale:
        logger.debug("Pruning node %s: task no longer present", node_id)
        del board.nodes[node_id]
    return len(stale)


def _prune_edges(board: Board) -> int:
    """Drop edges with an endpoint that is not a node of the pruned board."""
    kept = [edge for edge in board.edges if edge.from_ in board.nodes and edge.to in board.nodes]
    dropped = len(board.edges) - len(kept)
    board.edges = kept
    return dropped


def _merge_derived_edges(board: Board, derived: Iterable[Edge]) -> int:
    """Append derived edges that are missing; existing edges keep their labels.

    Surviving board edges are never removed here, whether or not the text
    still derives them.
    """
    present: Set[tuple] = board.edge_signatures()
    added = 0
    for edge in derived:
        if edge.signature in present:
            continue
        if edge.from_ not in board.nodes or edge.to not in board.nodes:
            continue
        board.edges.append(Edge(from_=edge.from_, to=edge.to, type=edge.type))
        present.add(edge.signature)
        added += 1
    return added


def reconcile(board: Board, tasks: MutableMapping[str, Task], derived: Iterable[Edge]) -> bool:
    """
    Apply one reconciliation pass to ``board`` in place.

    Returns True when the board differs from its state before the pass.
    Applying the pass again with the same inputs changes nothing.
    """
    before = board.to_record()
    _migrate_legacy_notes(board)
    _adopt_board_descriptions(board, tasks)
    pruned_nodes = _prune_nodes(board, tasks)
    pruned_edges = _prune_edges(board)
    added_edges = _merge_derived_edges(board, derived)
    changed = board.to_record() != before
    logger.debug(
        "Reconciled board",
        extra={
            "pruned_nodes": pruned_nodes,
            "pruned_edges": pruned_edges,
            "added_edges": added_edges,
            "changed": changed,
        },
    )
    return changed


class ReconciliationEngine:
    """Scan documents, rebuild edges and merge them into the open board."""

    def __init__(
        self,
        context: "BoardContext",
        store: "DocumentStore",
        extractor: TaskExtractor | None = None,
    ) -> None:
        self.context = context
        self.store = store
        self.extractor = extractor or TaskExtractor(
            store, ExtractionFilters.from_config(context.config)
        )

    def refresh(self) -> bool:
        """Run extract, build, merge and persist. Returns True if the board was saved."""
        start_time = time.time()
        tasks = self.extractor.scan()
        derived = build_edges(tasks.values())

        self.context.tasks.clear()
        self.context.tasks.update(tasks)

        changed = reconcile(self.context.board, self.context.tasks, derived)
        if changed:
            save_board(self.store, self.context.board_path, self.context.board)

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "Board refreshed from documents",
            extra={
                "board_path": self.context.board_path,
                "tasks": len(tasks),
                "derived_edges": len(derived),
                "saved": changed,
                "duration_ms": f"{duration_ms:.2f}",
            },
        )
        return changed

    def handle_document_change(self, doc_path: str) -> bool:
        """React to an external change of ``doc_path``.

        Changes to the open board's own file are ignored. Other board files
        only refresh the cards that reference them.
        """
        if doc_path == self.context.board_path:
            return False
        if doc_path.endswith(BOARD_SUFFIX):
            if update_board_cards(self.context.board, self.store, doc_path, self.context.tasks):
                save_board(self.store, self.context.board_path, self.context.board)
                return True
            return False
        return self.refresh()


__all__ = ["ReconciliationEngine", "reconcile"]
