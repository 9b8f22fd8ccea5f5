"""Load and save board files through the document store."""

from __future__ import annotations

import json
import logging
from pathlib import PurePosixPath
from typing import Any, Dict, Mapping

from pydantic import TypeAdapter, ValidationError

from ..models.board import CURRENT_VERSION, Board, BoardRefNode, Edge, Lane, Node
from ..models.task import Task
from .documents import DocumentExistsError, DocumentStore, DocumentStoreError

logger = logging.getLogger(__name__)

BOARD_SUFFIX = ".mtask"
BOARD_SETTINGS = ("version", "orientation", "snapToGrid", "snap_to_grid", "title")

_NODE_ADAPTER: TypeAdapter = TypeAdapter(Node)


def board_title(board_path: str) -> str:
    return PurePosixPath(board_path).stem


def default_board(board_path: str | None = None) -> Board:
    return Board(
        version=CURRENT_VERSION,
        title=board_title(board_path) if board_path else None,
    )


def board_to_json(board: Board) -> str:
    return json.dumps(board.to_record(), indent=2)


def _valid_records(board_path: str, kind: str, records: Any, validate) -> Dict[Any, Any]:
    """Validate each record on its own; invalid ones are logged and skipped."""
    if isinstance(records, list):
        records = dict(enumerate(records))
    if not isinstance(records, dict):
        if records is not None:
            logger.warning("Board %s: %s is not a collection, ignoring it", board_path, kind)
        return {}
    valid: Dict[Any, Any] = {}
    for key, record in records.items():
        try:
            valid[key] = validate(key, record)
        except ValidationError as exc:
            logger.warning("Board %s: skipping invalid %s %s: %s", board_path, kind, key, exc)
    return valid


def _validate_lane(lane_id: str, record: Any) -> Lane:
    if isinstance(record, dict):
        record = {"id": lane_id, **record}
    return Lane.model_validate(record)


def parse_board(board_path: str, raw: Any) -> Board:
    """Build a board from decoded JSON, dropping only the records that fail validation."""
    if not isinstance(raw, dict):
        raise ValueError("board file must hold a JSON object")
    settings = {key: raw[key] for key in BOARD_SETTINGS if key in raw}
    try:
        board = Board.model_validate(settings)
    except ValidationError as exc:
        logger.warning("Board %s: invalid settings, using defaults: %s", board_path, exc)
        board = default_board(board_path)
    board.nodes = _valid_records(
        board_path, "node", raw.get("nodes"), lambda _key, record: _NODE_ADAPTER.validate_python(record)
    )
    board.edges = list(
        _valid_records(
            board_path, "edge", raw.get("edges"), lambda _key, record: Edge.model_validate(record)
        ).values()
    )
    board.lanes = _valid_records(board_path, "lane", raw.get("lanes"), _validate_lane)
    return board


def load_board(store: DocumentStore, board_path: str) -> Board:
    """
    Read a board file.

    Missing or unparseable files yield a default board instead of an error.
    Individual nodes, edges or lanes that fail validation are skipped.
    """
    try:
        raw = json.loads(store.read(board_path))
        board = parse_board(board_path, raw)
    except (DocumentStoreError, ValueError) as exc:
        logger.warning("Board %s unreadable, starting empty: %s", board_path, exc)
        return default_board(board_path)
    if not board.title:
        board.title = board_title(board_path)
    return board


def save_board(store: DocumentStore, board_path: str, board: Board) -> None:
    board.version = CURRENT_VERSION
    text = board_to_json(board)
    if store.exists(board_path):
        store.modify(board_path, text)
    else:
        store.create(board_path, text)


def get_board_file(store: DocumentStore, board_path: str) -> str:
    """Return ``board_path``, creating an empty board file when missing.

    A concurrent creation of the same file is treated as success.
    """
    if store.exists(board_path):
        return board_path
    empty = default_board()
    try:
        store.create(board_path, board_to_json(empty))
    except DocumentExistsError:
        logger.warning("Board file %s already exists, loading it", board_path)
    return board_path


def update_board_cards(
    board: Board, store: DocumentStore, target_path: str, tasks: Mapping[str, Task]
) -> bool:
    """Refresh cached counts on every card that points at ``target_path``.

    Counts are taken from the live task map: nodes of the referenced board
    that are known tasks count toward ``taskCount`` and, when checked, toward
    ``completedCount``. Returns True when any card changed.
    """
    cards = [
        node
        for node in board.nodes.values()
        if isinstance(node, BoardRefNode) and node.board_path == target_path
    ]
    if not cards:
        return False
    referenced = load_board(store, target_path)
    task_ids = [node_id for node_id in referenced.nodes if node_id in tasks]
    task_count = len(task_ids)
    completed = sum(1 for node_id in task_ids if tasks[node_id].checked)
    modified = store.stat_mtime(target_path)

    changed = False
    for card in cards:
        if (card.task_count, card.completed_count, card.last_modified) != (
            task_count,
            completed,
            modified,
        ):
            card.task_count = task_count
            card.completed_count = completed
            card.last_modified = modified
            changed = True
    return changed


__all__ = [
    "BOARD_SUFFIX",
    "board_title",
    "board_to_json",
    "default_board",
    "get_board_file",
    "load_board",
    "parse_board",
    "save_board",
    "update_board_cards",
]
