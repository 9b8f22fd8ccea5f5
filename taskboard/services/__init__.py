"""Service layer: documents, extraction, reconciliation and board operations."""

from .board_store import BOARD_SUFFIX, get_board_file, load_board, save_board, update_board_cards
from .config import AppConfig, get_config, reload_config
from .controller import BoardContext, BoardController, open_board
from .documents import (
    DocumentExistsError,
    DocumentNotFoundError,
    DocumentStore,
    DocumentStoreError,
    InvalidDocumentPathError,
)
from .extractor import ExtractionFilters, TaskExtractor
from .graph_builder import build_edges
from .layout import rearrange
from .reconcile import ReconciliationEngine, reconcile
from .relations import RelationMutator
from .task_tree import TaskTreeNode, build_task_tree

__all__ = [
    "AppConfig",
    "get_config",
    "reload_config",
    "DocumentStore",
    "DocumentStoreError",
    "DocumentExistsError",
    "DocumentNotFoundError",
    "InvalidDocumentPathError",
    "ExtractionFilters",
    "TaskExtractor",
    "build_edges",
    "BOARD_SUFFIX",
    "get_board_file",
    "load_board",
    "save_board",
    "update_board_cards",
    "reconcile",
    "ReconciliationEngine",
    "RelationMutator",
    "rearrange",
    "TaskTreeNode",
    "build_task_tree",
    "BoardContext",
    "BoardController",
    "open_board",
]
