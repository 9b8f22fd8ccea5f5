"""Pydantic models for data validation and serialization."""

from .board import (
    Board,
    BoardRefNode,
    Edge,
    EdgeKind,
    GroupNode,
    Lane,
    LaneMemberNode,
    Node,
    NodeBase,
    NoteNode,
    PostItNode,
    TaskNode,
    TEXT_KINDS,
    is_structural,
)
from .requests import (
    AlignRequest,
    BoardCardCreate,
    BoardSettingsUpdate,
    EdgeCreate,
    EdgeUpdate,
    GroupCreate,
    LaneCreate,
    LaneUpdate,
    LayoutRequest,
    NodeUpdate,
    NoteNodeCreate,
    PostItCreate,
    TaskCreate,
)
from .task import Task

__all__ = [
    "Board",
    "BoardRefNode",
    "Edge",
    "EdgeKind",
    "GroupNode",
    "Lane",
    "LaneMemberNode",
    "Node",
    "NodeBase",
    "NoteNode",
    "PostItNode",
    "TaskNode",
    "TEXT_KINDS",
    "is_structural",
    "Task",
    "AlignRequest",
    "BoardCardCreate",
    "BoardSettingsUpdate",
    "EdgeCreate",
    "EdgeUpdate",
    "GroupCreate",
    "LaneCreate",
    "LaneUpdate",
    "LayoutRequest",
    "NodeUpdate",
    "NoteNodeCreate",
    "PostItCreate",
    "TaskCreate",
]
